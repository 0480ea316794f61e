"""
Token Ledger

A fungible-token ledger with fixed supply, direct transfers and
allowance-based delegated transfers. Balances are checked unsigned
integers and every operation is all-or-nothing.
"""

__version__ = "1.0.0"

from .errors import (
    ErrorKind, LedgerError, InsufficientBalanceError, InsufficientAllowanceError,
    LedgerInvariantError, LedgerNotInitializedError, LedgerAlreadyInitializedError
)
from .events import LedgerEventType, TransferEvent, ApprovalEvent, EventDispatcher
from .ledger import CallContext, Ledger
from .state import LedgerState
from .storage import InMemoryStorage, SQLiteStorage, create_storage
from .runtime import CallResult, LedgerHost

__all__ = [
    "ErrorKind", "LedgerError", "InsufficientBalanceError", "InsufficientAllowanceError",
    "LedgerInvariantError", "LedgerNotInitializedError", "LedgerAlreadyInitializedError",
    "LedgerEventType", "TransferEvent", "ApprovalEvent", "EventDispatcher",
    "CallContext", "Ledger", "LedgerState",
    "InMemoryStorage", "SQLiteStorage", "create_storage",
    "CallResult", "LedgerHost",
]
