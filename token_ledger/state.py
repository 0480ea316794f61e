"""
Ledger State Module

Typed view of the token tables over a storage backend:

- total supply: a single value fixed at construction
- balances: AccountId -> balance, sparse, absent reads as zero
- allowances: (owner, spender) -> allowance, sparse, absent reads as zero

Zero balances are physically removed; zero allowances are kept.
"""

import json
from typing import Dict, Tuple

from .amounts import AccountId, Balance
from .errors import LedgerNotInitializedError
from .storage import StorageInterface


class LedgerState:
    """Balance, allowance and supply tables backed by a StorageInterface"""

    META_TABLE = "ledger_meta"
    BALANCES_TABLE = "balances"
    ALLOWANCES_TABLE = "allowances"
    SUPPLY_KEY = "total_supply"

    def __init__(self, storage: StorageInterface):
        self.storage = storage

    @staticmethod
    def _allowance_key(owner: AccountId, spender: AccountId) -> str:
        # JSON keeps the pair unambiguous whatever characters the ids contain
        return json.dumps([owner, spender], separators=(',', ':'))

    def is_initialized(self) -> bool:
        """Check whether a total supply has been recorded"""
        return self.storage.exists(self.META_TABLE, self.SUPPLY_KEY)

    def get_total_supply(self) -> Balance:
        record = self.storage.load(self.META_TABLE, self.SUPPLY_KEY)
        if record is None:
            raise LedgerNotInitializedError("Ledger has not been constructed")
        return int(record['value'])

    def set_total_supply(self, value: Balance) -> None:
        self.storage.save(self.META_TABLE, self.SUPPLY_KEY, {'value': str(value)})

    def get_balance(self, account: AccountId) -> Balance:
        record = self.storage.load(self.BALANCES_TABLE, account)
        if record is None:
            return 0
        return int(record['balance'])

    def set_balance(self, account: AccountId, value: Balance) -> None:
        """Upsert a balance; a zero balance removes the entry"""
        if value == 0:
            self.storage.delete(self.BALANCES_TABLE, account)
            return
        self.storage.save(self.BALANCES_TABLE, account, {
            'account': account,
            'balance': str(value)
        })

    def get_allowance(self, owner: AccountId, spender: AccountId) -> Balance:
        record = self.storage.load(self.ALLOWANCES_TABLE, self._allowance_key(owner, spender))
        if record is None:
            return 0
        return int(record['value'])

    def set_allowance(self, owner: AccountId, spender: AccountId, value: Balance) -> None:
        """Upsert an allowance; zero is stored, not removed"""
        self.storage.save(self.ALLOWANCES_TABLE, self._allowance_key(owner, spender), {
            'owner': owner,
            'spender': spender,
            'value': str(value)
        })

    def balances(self) -> Dict[AccountId, Balance]:
        """All stored (non-zero) balances"""
        return {
            record['account']: int(record['balance'])
            for record in self.storage.load_all(self.BALANCES_TABLE)
        }

    def allowances(self) -> Dict[Tuple[AccountId, AccountId], Balance]:
        """All stored allowances keyed by (owner, spender)"""
        return {
            (record['owner'], record['spender']): int(record['value'])
            for record in self.storage.load_all(self.ALLOWANCES_TABLE)
        }

    def sum_of_balances(self) -> Balance:
        return sum(self.balances().values())
