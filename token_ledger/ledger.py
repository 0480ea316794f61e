"""
Token Ledger Engine

Fungible-token state machine: fixed supply issued to the constructing
caller, direct transfers, and delegated transfers against allowances.

Every check runs before any write, so a failed operation leaves no partial
mutation and emits nothing. Events are appended to the call context only
after all writes of the operation are done.
"""

from dataclasses import dataclass, field
from typing import List

from .amounts import (
    AccountId, Balance, checked_add, checked_sub, require_account, require_amount
)
from .errors import (
    InsufficientAllowanceError, InsufficientBalanceError,
    LedgerAlreadyInitializedError, LedgerNotInitializedError
)
from .events import ApprovalEvent, LedgerEvent, TransferEvent
from .state import LedgerState


@dataclass
class CallContext:
    """
    Capability object handed to every mutating operation

    Carries the identity of the current caller and collects the events the
    operation emits. The host creates one per call and forwards ``events``
    to observers after the call commits.
    """
    caller: AccountId
    events: List[LedgerEvent] = field(default_factory=list)

    def __post_init__(self):
        require_account(self.caller)

    def emit(self, event: LedgerEvent) -> None:
        self.events.append(event)


class Ledger:
    """
    Fungible-token ledger over a LedgerState

    Use ``Ledger.new`` to construct a ledger (issuing the supply) and
    ``Ledger(state)`` to attach to one that already exists.
    """

    def __init__(self, state: LedgerState):
        if not state.is_initialized():
            raise LedgerNotInitializedError("Ledger has not been constructed")
        self.state = state

    @classmethod
    def new(cls, state: LedgerState, ctx: CallContext, initial_supply: Balance) -> 'Ledger':
        """
        Construct the ledger, crediting the whole supply to the caller

        Args:
            state: Empty ledger state to initialize
            ctx: Call context; its caller receives the supply
            initial_supply: Total supply, zero allowed

        Returns:
            The constructed Ledger

        Raises:
            LedgerAlreadyInitializedError: If the state already holds a ledger
        """
        require_amount(initial_supply)
        if state.is_initialized():
            raise LedgerAlreadyInitializedError("Ledger has already been constructed")

        caller = ctx.caller
        state.set_total_supply(initial_supply)
        state.set_balance(caller, initial_supply)

        ctx.emit(TransferEvent(from_account=None, to_account=caller, value=initial_supply))
        return cls(state)

    def total_supply(self) -> Balance:
        return self.state.get_total_supply()

    def balance_of(self, account: AccountId) -> Balance:
        """Balance of an account, zero if it never held tokens"""
        return self.state.get_balance(account)

    def allowance(self, owner: AccountId, spender: AccountId) -> Balance:
        """Amount spender may still move out of owner's balance"""
        return self.state.get_allowance(owner, spender)

    def transfer(self, ctx: CallContext, to: AccountId, value: Balance) -> TransferEvent:
        """
        Move tokens from the caller to another account

        Raises:
            InsufficientBalanceError: If the caller holds less than value
        """
        require_account(to)
        require_amount(value)

        event = self._transfer_from_to(ctx.caller, to, value)
        ctx.emit(event)
        return event

    def approve(self, ctx: CallContext, spender: AccountId, value: Balance) -> ApprovalEvent:
        """
        Set the allowance of spender over the caller's balance

        Overwrites any previous allowance; zero revokes. Always succeeds.
        """
        require_account(spender)
        require_amount(value)

        owner = ctx.caller
        self.state.set_allowance(owner, spender, value)

        event = ApprovalEvent(owner=owner, spender=spender, value=value)
        ctx.emit(event)
        return event

    def transfer_from(
        self,
        ctx: CallContext,
        from_account: AccountId,
        to: AccountId,
        value: Balance
    ) -> TransferEvent:
        """
        Move tokens out of from_account on the caller's allowance

        The allowance is checked first, then the balance. The allowance is
        decremented only once the transfer itself has succeeded.

        Raises:
            InsufficientAllowanceError: If the caller's allowance is below value
            InsufficientBalanceError: If from_account holds less than value
        """
        require_account(from_account)
        require_account(to)
        require_amount(value)

        spender = ctx.caller
        allowance = self.state.get_allowance(from_account, spender)
        if allowance < value:
            raise InsufficientAllowanceError(
                f"Allowance of {spender} over {from_account} is {allowance}, requested {value}",
                requested=value,
                available=allowance
            )

        event = self._transfer_from_to(from_account, to, value)
        self.state.set_allowance(from_account, spender, checked_sub(allowance, value))

        ctx.emit(event)
        return event

    def _transfer_from_to(self, from_account: AccountId, to: AccountId, value: Balance) -> TransferEvent:
        from_balance = self.state.get_balance(from_account)
        if from_balance < value:
            raise InsufficientBalanceError(
                f"Balance of {from_account} is {from_balance}, requested {value}",
                requested=value,
                available=from_balance
            )

        # New values are computed before any write; a self-transfer nets out
        if from_account != to:
            new_from_balance = checked_sub(from_balance, value)
            new_to_balance = checked_add(self.state.get_balance(to), value)
            self.state.set_balance(from_account, new_from_balance)
            self.state.set_balance(to, new_to_balance)

        return TransferEvent(from_account=from_account, to_account=to, value=value)
