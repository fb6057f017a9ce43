"""TrustCar: vehicle registry state machine and ledger history reconstruction."""
from .decoder import DecodedTransaction, decode_app_args, decode_transaction
from .errors import ErrorKind, RegistryError, Result
from .history import HistoryEvent, HistoryReconstructor, HistoryReport
from .ledger import LocalLedger
from .methods import METHODS, encode_operation
from .operations import AddService, GetInfo, Operation, Register, Transfer, TransactionResult, Unknown
from .state_machine import RegistryStateMachine
from .store import RegistryStore, VehicleRecord, normalize_registration

__version__ = "2.0.0"

__all__ = [
    "AddService",
    "DecodedTransaction",
    "ErrorKind",
    "GetInfo",
    "HistoryEvent",
    "HistoryReconstructor",
    "HistoryReport",
    "LocalLedger",
    "METHODS",
    "Operation",
    "Register",
    "RegistryError",
    "RegistryStateMachine",
    "RegistryStore",
    "Result",
    "TransactionResult",
    "Transfer",
    "Unknown",
    "VehicleRecord",
    "decode_app_args",
    "decode_transaction",
    "encode_operation",
    "normalize_registration",
]
