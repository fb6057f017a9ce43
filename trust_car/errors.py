"""
Error taxonomy and the discriminated result returned to callers.

Every public operation of the registry answers with a ``Result``: either
``Result.ok(payload, message)`` or ``Result.err(kind, message, ...)``. The
human-readable string the UI shows is rendered from the structured result,
never the other way round.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class ErrorKind(str, Enum):
    ALREADY_REGISTERED = "AlreadyRegistered"
    NOT_FOUND = "NotFound"
    NOT_OWNER = "NotOwner"
    INVALID_REGISTRATION = "InvalidRegistration"
    DECODE_FAILURE = "DecodeFailure"
    HISTORY_SOURCE_UNAVAILABLE = "HistorySourceUnavailable"
    SCAN_CANCELLED = "ScanCancelled"
    LOOKUP_FAILED = "LookupFailed"
    SUBMISSION_FAILED = "SubmissionFailed"

    @property
    def retryable(self) -> bool:
        """Only I/O-bound failures can succeed on a later attempt."""
        return self in _RETRYABLE


_RETRYABLE = frozenset({
    ErrorKind.HISTORY_SOURCE_UNAVAILABLE,
    ErrorKind.SCAN_CANCELLED,
    ErrorKind.LOOKUP_FAILED,
    ErrorKind.SUBMISSION_FAILED,
})


class RegistryError(Exception):
    """Base class for every failure the registry reports to a caller."""

    kind: ErrorKind = ErrorKind.DECODE_FAILURE

    def __init__(self, message: str, registration: str | None = None, operation: str | None = None):
        super().__init__(message)
        self.message = message
        self.registration = registration
        self.operation = operation

    def to_result(self) -> "Result[Any]":
        return Result.err(self.kind, self.message, registration=self.registration, operation=self.operation)


class AlreadyRegistered(RegistryError):
    kind = ErrorKind.ALREADY_REGISTERED


class NotFound(RegistryError):
    kind = ErrorKind.NOT_FOUND


class NotOwner(RegistryError):
    kind = ErrorKind.NOT_OWNER


class InvalidRegistration(RegistryError):
    kind = ErrorKind.INVALID_REGISTRATION


class DecodeFailure(RegistryError):
    kind = ErrorKind.DECODE_FAILURE


class HistorySourceUnavailable(RegistryError):
    kind = ErrorKind.HISTORY_SOURCE_UNAVAILABLE


class ScanCancelled(RegistryError):
    kind = ErrorKind.SCAN_CANCELLED


class LookupFailed(RegistryError):
    kind = ErrorKind.LOOKUP_FAILED


class SubmissionFailed(RegistryError):
    kind = ErrorKind.SUBMISSION_FAILED


_ERRORS_BY_KIND = {cls.kind: cls for cls in (
    AlreadyRegistered, NotFound, NotOwner, InvalidRegistration, DecodeFailure,
    HistorySourceUnavailable, ScanCancelled, LookupFailed, SubmissionFailed,
)}


@dataclass(frozen=True)
class Result(Generic[T]):
    """Tagged ``Ok(payload)`` / ``Err(kind, message)`` value."""

    is_ok: bool
    payload: T | None = None
    message: str = ""
    kind: ErrorKind | None = None
    registration: str | None = None
    operation: str | None = None
    extra: dict = field(default_factory=dict)

    @classmethod
    def ok(cls, payload: T | None = None, message: str = "", **extra: Any) -> "Result[T]":
        return cls(is_ok=True, payload=payload, message=message, extra=extra)

    @classmethod
    def err(
        cls,
        kind: ErrorKind,
        message: str,
        registration: str | None = None,
        operation: str | None = None,
    ) -> "Result[T]":
        return cls(is_ok=False, kind=kind, message=message, registration=registration, operation=operation)

    def unwrap(self) -> T | None:
        """Return the payload, or raise the matching ``RegistryError``."""
        if self.is_ok:
            return self.payload
        error_cls = _ERRORS_BY_KIND.get(self.kind, RegistryError)
        raise error_cls(self.message, registration=self.registration, operation=self.operation)

    def render(self) -> str:
        if self.is_ok:
            return self.message
        return f"Error: {self.message}"

    def to_dict(self) -> dict:
        if self.is_ok:
            payload = self.payload
            if hasattr(payload, "to_dict"):
                payload = payload.to_dict()
            return {"ok": True, "data": payload, "message": self.render(), **self.extra}
        return {
            "ok": False,
            "error": {
                "kind": self.kind.value if self.kind else None,
                "message": self.message,
                "registration": self.registration,
                "operation": self.operation,
                "retryable": bool(self.kind and self.kind.retryable),
            },
            "message": self.render(),
        }
