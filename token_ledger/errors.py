"""
Ledger Error Module

Exactly two operation-level failures exist: insufficient balance and
insufficient allowance. Both are recoverable outcomes reported to the
caller. Everything else here signals misuse of the host or a logic bug.
"""

from enum import Enum


class ErrorKind(Enum):
    """Operation-level failure kinds"""
    INSUFFICIENT_BALANCE = "insufficient_balance"
    INSUFFICIENT_ALLOWANCE = "insufficient_allowance"


class LedgerError(Exception):
    """Base class for recoverable ledger operation failures"""

    kind: ErrorKind

    def __init__(self, message: str, requested: int = 0, available: int = 0):
        super().__init__(message)
        self.requested = requested
        self.available = available


class InsufficientBalanceError(LedgerError):
    """Debit exceeds the available balance"""

    kind = ErrorKind.INSUFFICIENT_BALANCE


class InsufficientAllowanceError(LedgerError):
    """Delegated transfer exceeds the remaining allowance"""

    kind = ErrorKind.INSUFFICIENT_ALLOWANCE


class LedgerInvariantError(RuntimeError):
    """Internal consistency check failed; indicates a bug, not a user error"""


class LedgerNotInitializedError(RuntimeError):
    """Operation attempted against storage that holds no ledger"""


class LedgerAlreadyInitializedError(RuntimeError):
    """Construction attempted against storage that already holds a ledger"""
