"""
Submission client for the deployed registry program.

Builds ``ApplicationNoOpTxn`` calls from the shared method table, signs them,
sends them through an injected ``AlgodClient`` and waits for confirmation.
The algod client is always passed in; nothing here is a module-level
singleton.
"""
from __future__ import annotations

import logging

from algosdk.error import AlgodHTTPError, ConfirmationTimeoutError, TransactionRejectedError
from algosdk.transaction import ApplicationNoOpTxn, SuggestedParams, wait_for_confirmation
from algosdk.v2client.algod import AlgodClient

from .constants import TRANSACTION_WAIT_ROUNDS
from .errors import AlreadyRegistered, NotFound, NotOwner, RegistryError, Result, SubmissionFailed
from .methods import decode_return_value, encode_operation
from .operations import AddService, Operation, Register, Transfer, TransactionResult, registration_of
from .store import normalize_registration

logger = logging.getLogger(__name__)

# Assertion messages the program rejects with, mapped back onto error kinds.
_REJECTIONS = (
    ("already registered", AlreadyRegistered),
    ("not found", NotFound),
    ("only owner", NotOwner),
)


def classify_rejection(message: str) -> type[RegistryError]:
    lowered = message.lower()
    for needle, error_cls in _REJECTIONS:
        if needle in lowered:
            return error_cls
    return SubmissionFailed


class RegistryClient:
    def __init__(self, algod_client: AlgodClient, app_id: int, wait_rounds: int = TRANSACTION_WAIT_ROUNDS):
        self.algod_client = algod_client
        self.app_id = app_id
        self.wait_rounds = wait_rounds

    def build_call(self, operation: Operation, sender: str, sp: SuggestedParams | None = None) -> ApplicationNoOpTxn:
        """Unsigned NoOp call carrying ``operation`` as ARC-4 app args."""
        if sp is None:
            sp = self.algod_client.suggested_params()
        return ApplicationNoOpTxn(
            sender=sender,
            sp=sp,
            index=self.app_id,
            app_args=encode_operation(operation),
        )

    def submit(self, operation: Operation, sender: str, private_key: str) -> Result[TransactionResult]:
        registration = registration_of(operation)
        try:
            txn = self.build_call(operation, sender)
            signed = txn.sign(private_key)
        except (ValueError, TypeError) as e:
            return SubmissionFailed(f"Could not sign {operation.method} call: {e}", registration,
                                    operation.method).to_result()
        except (AlgodHTTPError, OSError) as e:
            logger.warning(f"[CHAIN] algod unreachable: {e}")
            return SubmissionFailed(f"Algod unreachable: {e}", registration, operation.method).to_result()

        try:
            tx_id = self.algod_client.send_transaction(signed)
            logger.info(f"[CHAIN] {operation.method} submitted: {tx_id}")
            confirmed = wait_for_confirmation(self.algod_client, tx_id, self.wait_rounds)
        except AlgodHTTPError as e:
            error_cls = classify_rejection(str(e))
            logger.warning(f"[CHAIN] {operation.method} rejected: {e}")
            return error_cls(str(e), registration, operation.method).to_result()
        except (TransactionRejectedError, ConfirmationTimeoutError) as e:
            return SubmissionFailed(str(e), registration, operation.method).to_result()
        except OSError as e:
            logger.warning(f"[CHAIN] algod unreachable: {e}")
            return SubmissionFailed(f"Algod unreachable: {e}", registration, operation.method).to_result()

        message = decode_return_value(confirmed.get("logs"))
        receipt = TransactionResult(tx_id=tx_id, confirmed_round=int(confirmed.get("confirmed-round", 0)), message=message)
        return Result.ok(receipt, message or f"{operation.method} confirmed in round {receipt.confirmed_round}")

    # ── Convenience wrappers ─────────────────────────────────────────────────

    def register_vehicle(self, registration: str, sender: str, private_key: str) -> Result[TransactionResult]:
        return self._submit_checked(lambda key: Register(key), registration, sender, private_key)

    def transfer_ownership(self, registration: str, new_owner: str, sender: str,
                           private_key: str) -> Result[TransactionResult]:
        return self._submit_checked(lambda key: Transfer(key, new_owner), registration, sender, private_key)

    def add_service_record(self, registration: str, service_details: str, sender: str,
                           private_key: str) -> Result[TransactionResult]:
        return self._submit_checked(lambda key: AddService(key, service_details), registration, sender, private_key)

    def _submit_checked(self, build, registration: str, sender: str, private_key: str) -> Result[TransactionResult]:
        try:
            key = normalize_registration(registration)
        except RegistryError as e:
            return e.to_result()
        return self.submit(build(key), sender, private_key)
