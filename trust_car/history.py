"""
History Reconstructor.

Rebuilds a vehicle's timeline from the ledger alone: every transaction the
indexer holds for the registry application is fetched page by page, decoded,
filtered to the queried registration and ordered newest first. Nothing is
read from the live ``RegistryStore``.

The output is a pure function of the transaction set observed, so repeated
scans of the same ledger give identical events, and a longer ledger gives a
superset with the earlier events in the same relative order.
"""
from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Protocol

from .constants import INDEXER_PAGE_LIMIT
from .decoder import DecodedTransaction, decode_transaction
from .errors import HistorySourceUnavailable, RegistryError, Result, ScanCancelled
from .methods import method_for
from .operations import AddService, Transfer, Unknown, registration_of
from .store import normalize_registration, try_normalize_registration

logger = logging.getLogger(__name__)


class TransactionSource(Protocol):
    """One page of ``/v2/transactions`` results for an application."""

    name: str

    def search_transactions(self, application_id: int, next_token: str | None = None,
                            limit: int = INDEXER_PAGE_LIMIT) -> Mapping[str, Any]:
        ...


@dataclass(frozen=True)
class HistoryEvent:
    id: str
    type: str
    timestamp: datetime
    round: int
    tx_id: str
    details: dict
    sender: str

    def sort_key(self) -> tuple:
        return (-self.timestamp.timestamp(), -self.round, self.tx_id, self.id)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "timestamp": self.timestamp.isoformat(),
            "round": self.round,
            "tx_id": self.tx_id,
            "details": dict(self.details),
            "sender": self.sender,
        }


@dataclass(frozen=True)
class SkippedTransaction:
    tx_id: str
    reason: str

    def to_dict(self) -> dict:
        return {"tx_id": self.tx_id, "reason": self.reason}


@dataclass(frozen=True)
class HistoryReport:
    registration: str
    events: tuple[HistoryEvent, ...]
    source: str
    degraded: bool = False
    skipped: tuple[SkippedTransaction, ...] = ()
    scanned: int = 0
    fetched_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc), compare=False)

    def events_by_type(self, event_type: str) -> list[HistoryEvent]:
        return [e for e in self.events if e.type == event_type]

    def latest_event(self) -> HistoryEvent | None:
        return self.events[0] if self.events else None

    def summary(self) -> dict:
        return {
            "registrations": len(self.events_by_type("register")),
            "transfers": len(self.events_by_type("transfer")),
            "services": len(self.events_by_type("service")),
        }

    def to_dict(self) -> dict:
        return {
            "registration": self.registration,
            "events": [e.to_dict() for e in self.events],
            "summary": self.summary(),
            "source": self.source,
            "degraded": self.degraded,
            "skipped": [s.to_dict() for s in self.skipped],
            "scanned": self.scanned,
            "fetched_at": self.fetched_at.isoformat(),
        }


def event_from(decoded: DecodedTransaction) -> HistoryEvent:
    """Map a decoded registry call onto its timeline event."""
    operation = decoded.operation
    method = method_for(operation)
    details: dict = {"registration": registration_of(operation)}
    if isinstance(operation, Transfer):
        details.update(from_owner=decoded.sender, to_owner=operation.new_owner)
    elif isinstance(operation, AddService):
        details["service_type"] = operation.service_details
    return HistoryEvent(
        id=f"{decoded.tx_id}:{method.name}",
        type=method.event_type or "unknown",
        timestamp=datetime.fromtimestamp(decoded.timestamp or 0, tz=timezone.utc),
        round=decoded.round,
        tx_id=decoded.tx_id,
        details=details,
        sender=decoded.sender,
    )


class HistoryReconstructor:
    """Builds ``HistoryReport`` values from a ``TransactionSource``.

    Parameters
    ----------
    source : TransactionSource
        Primary indexer-like source.
    application_id : int
        Registry program id; calls to any other application are ignored.
    page_limit : int
        ``limit`` passed on every page request.
    scan_timeout : float
        Deadline in seconds for the whole paginated scan.
    fallback : TransactionSource, optional
        Used only when the primary source is unavailable. Reports built from
        it are flagged ``degraded=True``.
    """

    def __init__(
        self,
        source: TransactionSource,
        application_id: int,
        *,
        page_limit: int = INDEXER_PAGE_LIMIT,
        scan_timeout: float = 30.0,
        max_pages: int = 10_000,
        fallback: TransactionSource | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        if page_limit < 1:
            raise ValueError(f"page_limit must be at least 1, got {page_limit}")
        if scan_timeout <= 0:
            raise ValueError(f"scan_timeout must be positive, got {scan_timeout}")
        self.source = source
        self.application_id = application_id
        self.page_limit = page_limit
        self.scan_timeout = scan_timeout
        self.max_pages = max_pages
        self.fallback = fallback
        self.clock = clock

    def fetch(self, registration: str, cancel: threading.Event | None = None) -> Result[HistoryReport]:
        """``reconstruct`` with failures reported as an error ``Result``."""
        try:
            report = self.reconstruct(registration, cancel=cancel)
        except RegistryError as e:
            e.operation = e.operation or "history"
            return e.to_result()
        message = f"{len(report.events)} event(s) for {report.registration}"
        return Result.ok(report, message)

    def reconstruct(self, registration: str, cancel: threading.Event | None = None) -> HistoryReport:
        key = normalize_registration(registration)
        try:
            transactions = self._scan(self.source, key, cancel)
            source, degraded = self.source, False
        except HistorySourceUnavailable as e:
            if self.fallback is None:
                raise
            logger.warning(f"[HISTORY] {self.source.name} unavailable ({e.message}); using {self.fallback.name}")
            transactions = self._scan(self.fallback, key, cancel)
            source, degraded = self.fallback, True

        events: list[HistoryEvent] = []
        skipped: list[SkippedTransaction] = []
        for decoded in transactions:
            if decoded.application_id != self.application_id:
                continue
            if isinstance(decoded.operation, Unknown):
                skipped.append(SkippedTransaction(decoded.tx_id, decoded.operation.reason))
                continue
            if try_normalize_registration(registration_of(decoded.operation)) != key:
                continue
            events.append(event_from(decoded))

        events.sort(key=HistoryEvent.sort_key)
        logger.info(f"[HISTORY] {key}: {len(events)} event(s) from {len(transactions)} txn(s) via {source.name}")
        return HistoryReport(
            registration=key,
            events=tuple(events),
            source=source.name,
            degraded=degraded,
            skipped=tuple(sorted(skipped, key=lambda s: s.tx_id)),
            scanned=len(transactions),
        )

    # ── Pagination ───────────────────────────────────────────────────────────

    def _scan(self, source: TransactionSource, key: str, cancel: threading.Event | None) -> list[DecodedTransaction]:
        deadline = self.clock() + self.scan_timeout
        seen: dict[str, DecodedTransaction] = {}
        next_token: str | None = None
        tokens: set[str] = set()

        for page_number in range(self.max_pages):
            if cancel is not None and cancel.is_set():
                raise ScanCancelled(f"History scan for {key} cancelled", key, "history")
            if self.clock() > deadline:
                raise HistorySourceUnavailable(
                    f"{source.name} scan for {key} exceeded {self.scan_timeout:g}s", key, "history")

            page = source.search_transactions(self.application_id, next_token=next_token, limit=self.page_limit)
            if not isinstance(page, Mapping) or not isinstance(page.get("transactions", []), list):
                raise HistorySourceUnavailable(f"{source.name} returned a malformed page", key, "history")

            batch = page.get("transactions") or []
            for txn in batch:
                decoded = decode_transaction(txn)
                # Pages may overlap while the indexer catches up; keep the first copy.
                seen.setdefault(decoded.tx_id or f"#{len(seen)}", decoded)

            next_token = page.get("next-token")
            logger.debug(f"[HISTORY] page {page_number}: {len(batch)} txn(s), next={next_token}")
            if not batch or not next_token:
                break
            if next_token in tokens:
                raise HistorySourceUnavailable(f"{source.name} pagination did not advance", key, "history")
            tokens.add(next_token)
        else:
            raise HistorySourceUnavailable(f"{source.name} returned more than {self.max_pages} pages", key, "history")

        if cancel is not None and cancel.is_set():
            raise ScanCancelled(f"History scan for {key} cancelled", key, "history")
        return list(seen.values())
