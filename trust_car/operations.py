"""Typed requests a caller can submit to the registry."""
from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Union


@dataclass(frozen=True)
class Register:
    method: ClassVar[str] = "registerVehicle"
    registration: str


@dataclass(frozen=True)
class Transfer:
    method: ClassVar[str] = "transferOwnership"
    registration: str
    new_owner: str


@dataclass(frozen=True)
class AddService:
    method: ClassVar[str] = "addServiceRecord"
    registration: str
    service_details: str


@dataclass(frozen=True)
class GetInfo:
    method: ClassVar[str] = "getInfo"


@dataclass(frozen=True)
class Unknown:
    """A program call that could not be decoded into one of the above.

    ``args`` holds whatever arguments decoded cleanly, for diagnostics only.
    """

    method: ClassVar[str] = "unknown"
    selector: str = ""
    reason: str = ""
    args: tuple = ()


Operation = Union[Register, Transfer, AddService, GetInfo, Unknown]


@dataclass(frozen=True)
class TransactionResult:
    """Receipt for a confirmed program call."""

    tx_id: str
    confirmed_round: int
    message: str | None = None

    def to_dict(self) -> dict:
        return {"tx_id": self.tx_id, "confirmed_round": self.confirmed_round, "message": self.message}


def registration_of(operation: Operation) -> str | None:
    """The registration argument an operation targets, if it has one."""
    return getattr(operation, "registration", None)
