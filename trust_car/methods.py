"""
The registry's ARC-4 calling convention, defined once.

Both the submission path (``encode_operation``) and the history decoder
(``METHODS_BY_SELECTOR``) read this table, so the 4-byte selectors cannot
drift from the signatures the on-chain program exposes. Selectors are derived
from the signatures exactly as the AVM router does: the first four bytes of
``sha512_256(signature)``.
"""
from __future__ import annotations

import base64

from algosdk import abi

from .operations import AddService, GetInfo, Operation, Register, Transfer

# ARC-4 return values are logged with this prefix.
RETURN_PREFIX = bytes.fromhex("151f7c75")

STRING = abi.StringType()


class RegistryMethod:
    def __init__(self, signature: str, operation: type, fields: tuple[str, ...], event_type: str | None):
        self.abi = abi.Method.from_signature(signature)
        if len(self.abi.args) != len(fields):
            raise ValueError(f"{signature}: expected {len(self.abi.args)} fields, got {len(fields)}")
        self.signature = signature
        self.name = self.abi.name
        self.selector: bytes = self.abi.get_selector()
        self.operation = operation
        self.fields = fields
        self.event_type = event_type

    def build(self, values: list[str]) -> Operation:
        return self.operation(**dict(zip(self.fields, values)))

    def __repr__(self) -> str:
        return f"RegistryMethod({self.signature!r}, selector={self.selector.hex()})"


METHODS = (
    RegistryMethod("registerVehicle(string)string", Register, ("registration",), "register"),
    RegistryMethod("transferOwnership(string,string)string", Transfer, ("registration", "new_owner"), "transfer"),
    RegistryMethod("addServiceRecord(string,string)string", AddService, ("registration", "service_details"), "service"),
    RegistryMethod("getInfo()string", GetInfo, (), None),
)

METHODS_BY_SELECTOR = {m.selector: m for m in METHODS}
METHODS_BY_NAME = {m.name: m for m in METHODS}


def method_for(operation: Operation) -> RegistryMethod:
    try:
        return METHODS_BY_NAME[operation.method]
    except KeyError:
        raise ValueError(f"{type(operation).__name__} cannot be submitted as a program call") from None


def encode_operation(operation: Operation) -> list[bytes]:
    """Selector followed by each argument as an ARC-4 string."""
    method = method_for(operation)
    return [method.selector] + [STRING.encode(getattr(operation, f)) for f in method.fields]


def decode_return_value(logs: list[str] | None) -> str | None:
    """Extract the ARC-4 string return from base64 transaction logs, if any."""
    for entry in reversed(logs or []):
        raw = base64.b64decode(entry)
        if raw.startswith(RETURN_PREFIX):
            return STRING.decode(raw[len(RETURN_PREFIX):])
    return None
