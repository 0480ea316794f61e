"""
Token Amount Module

Value domain for the ledger: account identifiers, balances and checked
unsigned arithmetic. Balances are plain integers bounded to the unsigned
128-bit range and NEVER wrap.
"""

from .errors import LedgerInvariantError


AccountId = str
Balance = int

BALANCE_BITS = 128
MAX_BALANCE: Balance = 2 ** BALANCE_BITS - 1


def require_account(account: AccountId) -> AccountId:
    """Validate an account identifier and return it unchanged"""
    if not isinstance(account, str):
        raise TypeError(f"Account id must be a string, got {type(account).__name__}")
    if not account:
        raise ValueError("Account id cannot be empty")
    return account


def require_amount(value: Balance) -> Balance:
    """
    Validate a token amount and return it unchanged

    Raises:
        TypeError: If value is not an int (bool is rejected)
        ValueError: If value is outside [0, MAX_BALANCE]
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"Amount must be an int, got {type(value).__name__}")
    if value < 0:
        raise ValueError(f"Amount cannot be negative: {value}")
    if value > MAX_BALANCE:
        raise ValueError(f"Amount exceeds maximum balance of {MAX_BALANCE}: {value}")
    return value


def checked_add(a: Balance, b: Balance) -> Balance:
    """Add two balances, rejecting results above MAX_BALANCE"""
    result = a + b
    if result > MAX_BALANCE:
        raise LedgerInvariantError(f"Balance overflow: {a} + {b} exceeds {MAX_BALANCE}")
    return result


def checked_sub(a: Balance, b: Balance) -> Balance:
    """Subtract two balances, rejecting negative results"""
    if b > a:
        raise LedgerInvariantError(f"Balance underflow: {a} - {b} is negative")
    return a - b
