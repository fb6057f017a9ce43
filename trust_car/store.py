"""
Registry Store: ``registration -> VehicleRecord``.

The in-process counterpart of the contract's box storage. Keys are normalized
once, at the boundary, by ``normalize_registration``; a key that is absent
means the vehicle is not registered.
"""
from __future__ import annotations

import threading
from dataclasses import asdict, dataclass
from typing import Iterator

from .errors import InvalidRegistration


def normalize_registration(value: str) -> str:
    """Strip all whitespace and uppercase. Result must be ASCII alphanumeric."""
    if not isinstance(value, str):
        raise InvalidRegistration(f"Registration must be text, got {type(value).__name__}")
    key = "".join(value.split()).upper()
    if not key:
        raise InvalidRegistration("Registration is required")
    if not (key.isascii() and key.isalnum()):
        raise InvalidRegistration(f"Registration {value!r} must be alphanumeric", registration=key)
    return key


def try_normalize_registration(value: object) -> str | None:
    """Like ``normalize_registration`` but returns ``None`` instead of raising."""
    if not isinstance(value, str):
        return None
    try:
        return normalize_registration(value)
    except InvalidRegistration:
        return None


@dataclass(frozen=True)
class VehicleRecord:
    registration: str
    owner: str
    registered: bool = True
    service_count: int = 0
    registered_round: int | None = None

    def to_dict(self) -> dict:
        return asdict(self)


class RegistryStore:
    """Thread-safe key-value map of vehicle records.

    Records are immutable, so ``get`` hands out the stored object directly.
    ``lock`` is re-entrant and exposed so the state machine can hold it across
    a read-check-write sequence.
    """

    def __init__(self) -> None:
        self._records: dict[str, VehicleRecord] = {}
        self.lock = threading.RLock()

    def get(self, registration: str) -> VehicleRecord | None:
        record = self._records.get(normalize_registration(registration))
        if record is None or not record.registered:
            return None
        return record

    def put(self, record: VehicleRecord) -> None:
        key = normalize_registration(record.registration)
        with self.lock:
            self._records[key] = record

    def records(self) -> Iterator[VehicleRecord]:
        """Snapshot of every stored record, ordered by registration."""
        with self.lock:
            snapshot = sorted(self._records.items())
        for _, record in snapshot:
            yield record

    def __contains__(self, registration: object) -> bool:
        key = try_normalize_registration(registration)
        return key is not None and self.get(key) is not None

    def __len__(self) -> int:
        return len(self._records)
