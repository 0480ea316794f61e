"""
Tests for token amount validation and checked arithmetic
"""

import pytest

from token_ledger.amounts import (
    MAX_BALANCE, checked_add, checked_sub, require_account, require_amount
)
from token_ledger.errors import LedgerInvariantError


class TestRequireAmount:
    """Test amount validation"""

    def test_accepts_range_bounds(self):
        assert require_amount(0) == 0
        assert require_amount(MAX_BALANCE) == MAX_BALANCE

    def test_max_balance_is_u128(self):
        assert MAX_BALANCE == 340282366920938463463374607431768211455

    def test_rejects_negative(self):
        with pytest.raises(ValueError, match="cannot be negative"):
            require_amount(-1)

    def test_rejects_above_max(self):
        with pytest.raises(ValueError, match="exceeds maximum balance"):
            require_amount(MAX_BALANCE + 1)

    @pytest.mark.parametrize("value", [1.0, "10", None, True])
    def test_rejects_non_int(self, value):
        with pytest.raises(TypeError):
            require_amount(value)


class TestRequireAccount:
    """Test account id validation"""

    def test_accepts_string(self):
        assert require_account("5GrwvaEF") == "5GrwvaEF"

    def test_rejects_empty(self):
        with pytest.raises(ValueError):
            require_account("")

    def test_rejects_non_string(self):
        with pytest.raises(TypeError):
            require_account(42)


class TestCheckedArithmetic:
    """Test that arithmetic never wraps"""

    def test_add(self):
        assert checked_add(2, 3) == 5
        assert checked_add(MAX_BALANCE - 1, 1) == MAX_BALANCE

    def test_add_overflow(self):
        with pytest.raises(LedgerInvariantError, match="overflow"):
            checked_add(MAX_BALANCE, 1)

    def test_sub(self):
        assert checked_sub(5, 5) == 0
        assert checked_sub(MAX_BALANCE, MAX_BALANCE - 1) == 1

    def test_sub_underflow(self):
        with pytest.raises(LedgerInvariantError, match="underflow"):
            checked_sub(1, 2)
