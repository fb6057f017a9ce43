"""
Transaction Decoder: raw application call -> typed ``Operation``.

Decoding is total. Anything that is not a well-formed call to one of the
registry methods comes back as ``Unknown`` carrying the reason, so a single
garbled or unrelated transaction can never abort a history scan.
"""
from __future__ import annotations

import base64
import binascii
import logging
from dataclasses import dataclass
from typing import Any, Mapping, Sequence

from algosdk.error import ABIEncodingError

from .methods import METHODS_BY_SELECTOR, STRING
from .operations import Operation, Unknown

logger = logging.getLogger(__name__)

SELECTOR_SIZE = 4
LENGTH_PREFIX_SIZE = 2


@dataclass(frozen=True)
class DecodedTransaction:
    operation: Operation
    tx_id: str
    sender: str
    round: int
    timestamp: int | None
    application_id: int | None = None

    @property
    def is_unknown(self) -> bool:
        return isinstance(self.operation, Unknown)


def _decode_string(arg: bytes) -> str:
    # algosdk accepts a short buffer as an empty string, so check the prefix here.
    if len(arg) < LENGTH_PREFIX_SIZE:
        raise ABIEncodingError(f"argument of {len(arg)} bytes has no length prefix")
    return STRING.decode(arg)


def decode_app_args(args: Sequence[Any]) -> Operation:
    """Decode ``[selector, *arc4_strings]`` into an operation."""
    if not args:
        return Unknown(reason="no application args")
    if not isinstance(args, (list, tuple)):
        return Unknown(reason=f"args are not a list: {type(args).__name__}")
    if not all(isinstance(a, (bytes, bytearray, memoryview)) for a in args):
        kinds = sorted({type(a).__name__ for a in args})
        return Unknown(reason=f"args are not bytes: {', '.join(kinds)}")
    raw = [bytes(a) for a in args]

    selector = raw[0]
    method = METHODS_BY_SELECTOR.get(selector) if len(selector) == SELECTOR_SIZE else None
    if method is None:
        return Unknown(selector=selector.hex(), reason="unrecognized method selector")

    values: list[str] = []
    for position, arg in enumerate(raw[1:len(method.fields) + 1], start=1):
        try:
            values.append(_decode_string(arg))
        except (ABIEncodingError, UnicodeDecodeError) as e:
            return Unknown(
                selector=selector.hex(),
                reason=f"{method.name}: argument {position} undecodable ({e})",
                args=tuple(values),
            )

    if len(raw) - 1 != len(method.fields):
        return Unknown(
            selector=selector.hex(),
            reason=f"{method.name}: expected {len(method.fields)} args, got {len(raw) - 1}",
            args=tuple(values),
        )
    return method.build(values)


def _b64_args(encoded: Any) -> list[bytes]:
    if not isinstance(encoded, list):
        raise ValueError("application-args is not a list")
    return [base64.b64decode(a, validate=True) for a in encoded]


def _as_int(value: Any, default: int | None) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def decode_transaction(txn: Mapping[str, Any]) -> DecodedTransaction:
    """Decode one indexer transaction record (``/v2/transactions`` JSON)."""
    if not isinstance(txn, Mapping):
        return DecodedTransaction(Unknown(reason="transaction is not an object"), "", "", 0, None)

    tx_id = str(txn.get("id") or "")
    sender = str(txn.get("sender") or "")
    confirmed_round = _as_int(txn.get("confirmed-round"), 0)
    timestamp = _as_int(txn.get("round-time"), None)

    app_txn = txn.get("application-transaction")
    if txn.get("tx-type") != "appl" or not isinstance(app_txn, Mapping):
        operation: Operation = Unknown(reason="not an application call")
        return DecodedTransaction(operation, tx_id, sender, confirmed_round, timestamp)

    application_id = _as_int(app_txn.get("application-id"), None)
    try:
        args = _b64_args(app_txn.get("application-args") or [])
    except (binascii.Error, ValueError, TypeError) as e:
        operation = Unknown(reason=f"bad application-args encoding ({e})")
    else:
        operation = decode_app_args(args)

    if isinstance(operation, Unknown):
        logger.debug(f"[DECODE] {tx_id or '<no id>'}: {operation.reason}")
    return DecodedTransaction(operation, tx_id, sender, confirmed_round, timestamp, application_id)
