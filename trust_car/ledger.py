"""
LocalLedger: a single-writer, append-only stand-in for the Algorand network.

Program calls are decoded with the shared method table and executed by the
``RegistryStateMachine`` exactly as the on-chain program would run them. A
failing call is rejected whole, like a failed AVM ``assert``: nothing is
appended. Accepted calls are recorded in indexer JSON format, so the ledger
doubles as a ``TransactionSource`` for the history reconstructor.

Used for local development and tests in place of fabricated history data.
"""
from __future__ import annotations

import base64
import logging
import threading
import time
from typing import Any, Callable, Sequence

from algosdk import encoding

from .constants import INDEXER_PAGE_LIMIT
from .decoder import decode_app_args
from .errors import DecodeFailure, Result
from .methods import RETURN_PREFIX, STRING, encode_operation
from .operations import Operation, TransactionResult, Unknown
from .state_machine import RegistryStateMachine

logger = logging.getLogger(__name__)


def _b64(raw: bytes) -> str:
    return base64.b64encode(raw).decode()


class LocalLedger:
    name = "local"

    def __init__(
        self,
        application_id: int = 1001,
        state_machine: RegistryStateMachine | None = None,
        clock: Callable[[], int] | None = None,
        start_round: int = 1,
    ):
        self.application_id = application_id
        self.state_machine = state_machine or RegistryStateMachine()
        self.clock = clock or (lambda: int(time.time()))
        self._next_round = start_round
        self._last_time = 0
        self._log: list[dict] = []
        self._lock = threading.Lock()

    @property
    def last_round(self) -> int:
        return self._next_round - 1

    def call(self, operation: Operation, sender: str) -> Result[TransactionResult]:
        """Encode ``operation`` with the wire table and submit it."""
        return self.submit(sender, encode_operation(operation))

    def submit(self, sender: str, app_args: Sequence[bytes]) -> Result[TransactionResult]:
        operation = decode_app_args(app_args)
        if isinstance(operation, Unknown):
            logger.info(f"[LEDGER] Rejected call from {sender}: {operation.reason}")
            return DecodeFailure(f"Rejected program call: {operation.reason}", operation=Unknown.method).to_result()

        with self._lock:
            confirmed_round = self._next_round
            outcome = self.state_machine.apply(operation, sender, confirmed_round)
            if not outcome.is_ok:
                return outcome

            round_time = max(self._last_time, int(self.clock()))
            tx_id = self._tx_id(confirmed_round, sender, app_args)
            self._log.append({
                "id": tx_id,
                "sender": sender,
                "tx-type": "appl",
                "confirmed-round": confirmed_round,
                "round-time": round_time,
                "application-transaction": {
                    "application-id": self.application_id,
                    "application-args": [_b64(a) for a in app_args],
                    "on-completion": "noop",
                },
                "logs": [_b64(RETURN_PREFIX + STRING.encode(outcome.message))],
            })
            self._next_round += 1
            self._last_time = round_time

        logger.info(f"[LEDGER] Round {confirmed_round}: {operation.method} by {sender} ({tx_id})")
        receipt = TransactionResult(tx_id=tx_id, confirmed_round=confirmed_round, message=outcome.message)
        return Result.ok(receipt, outcome.message)

    def append_transaction(self, txn: dict) -> None:
        """Record a transaction verbatim without executing it.

        For replaying indexer exports that include other applications or
        calls this build of the registry cannot decode.
        """
        with self._lock:
            self._log.append(dict(txn))

    def transactions(self) -> list[dict]:
        with self._lock:
            return list(self._log)

    # ── TransactionSource ────────────────────────────────────────────────────

    def search_transactions(self, application_id: int, next_token: str | None = None,
                            limit: int = INDEXER_PAGE_LIMIT) -> dict[str, Any]:
        matching = [
            t for t in self.transactions()
            if (t.get("application-transaction") or {}).get("application-id") == application_id
        ]
        offset = int(next_token) if next_token else 0
        batch = matching[offset:offset + limit]
        page: dict[str, Any] = {"current-round": self.last_round, "transactions": batch}
        if offset + limit < len(matching):
            page["next-token"] = str(offset + limit)
        return page

    @staticmethod
    def _tx_id(confirmed_round: int, sender: str, app_args: Sequence[bytes]) -> str:
        digest = encoding.checksum(b"|".join([str(confirmed_round).encode(), sender.encode(), *app_args]))
        return base64.b32encode(digest).decode().rstrip("=")
