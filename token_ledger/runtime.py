"""
Ledger Host Runtime

Reference execution environment for the ledger. Supplies the caller
identity for each call, runs every call atomically and serially against
durable storage, records emitted events in the event log, and delivers
them to observers once the call has committed.
"""

import threading
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from .amounts import AccountId, Balance
from .config import LedgerConfig, get_config
from .errors import ErrorKind, LedgerError, LedgerNotInitializedError
from .event_log import EventLog
from .events import EventDispatcher, LedgerEvent
from .ledger import CallContext, Ledger
from .logging_config import get_logger, log_action, setup_logging
from .state import LedgerState
from .storage import StorageInterface, create_storage


@dataclass
class CallResult:
    """Outcome of one host call"""
    ok: bool
    error: Optional[ErrorKind] = None
    message: Optional[str] = None
    events: List[LedgerEvent] = field(default_factory=list)

    @classmethod
    def success(cls, events: List[LedgerEvent]) -> 'CallResult':
        return cls(ok=True, events=list(events))

    @classmethod
    def failure(cls, error: LedgerError) -> 'CallResult':
        return cls(ok=False, error=error.kind, message=str(error))

    def raise_for_error(self) -> None:
        """Raise the matching LedgerError subclass if the call failed"""
        if self.ok:
            return
        for error_cls in LedgerError.__subclasses__():
            if error_cls.kind == self.error:
                raise error_cls(self.message or self.error.value)
        raise LedgerError(self.message or str(self.error))


class LedgerHost:
    """
    Hosts a single ledger over a storage backend
    """

    def __init__(
        self,
        storage: StorageInterface,
        event_dispatcher: Optional[EventDispatcher] = None,
        event_log: Optional[EventLog] = None
    ):
        self.storage = storage
        self.state = LedgerState(storage)
        self.event_dispatcher = event_dispatcher or EventDispatcher()
        self.event_log = event_log
        self.logger = get_logger("token_ledger.runtime")
        self._lock = threading.RLock()
        self._ledger: Optional[Ledger] = Ledger(self.state) if self.state.is_initialized() else None

    @classmethod
    def from_config(cls, config: Optional[LedgerConfig] = None) -> 'LedgerHost':
        """Build a host with storage, event log and logging chosen by configuration"""
        config = config or get_config()
        setup_logging(config.log_level, "token_ledger", config.log_format, config.log_file)
        storage = create_storage(config.database_url)
        event_log = EventLog(storage, config.event_log_table) if config.enable_event_log else None
        return cls(storage, event_log=event_log)

    @property
    def ledger(self) -> Ledger:
        if self._ledger is None and self.state.is_initialized():
            # Deployed through another host over the same storage
            self._ledger = Ledger(self.state)
        if self._ledger is None:
            raise LedgerNotInitializedError("Ledger has not been deployed")
        return self._ledger

    @property
    def is_deployed(self) -> bool:
        return self.state.is_initialized()

    def deploy(self, caller: AccountId, initial_supply: Balance) -> CallResult:
        """Construct the ledger with the caller holding the whole supply"""
        holder = {}

        def construct(ctx: CallContext) -> None:
            holder['ledger'] = Ledger.new(self.state, ctx, initial_supply)

        result = self._execute(caller, "deploy", construct, {'initial_supply': str(initial_supply)})
        self._ledger = holder['ledger']
        return result

    def transfer(self, caller: AccountId, to: AccountId, value: Balance) -> CallResult:
        return self._execute(
            caller, "transfer",
            lambda ctx: self.ledger.transfer(ctx, to, value),
            {'to': to, 'value': str(value)}
        )

    def approve(self, caller: AccountId, spender: AccountId, value: Balance) -> CallResult:
        return self._execute(
            caller, "approve",
            lambda ctx: self.ledger.approve(ctx, spender, value),
            {'spender': spender, 'value': str(value)}
        )

    def transfer_from(
        self,
        caller: AccountId,
        from_account: AccountId,
        to: AccountId,
        value: Balance
    ) -> CallResult:
        return self._execute(
            caller, "transfer_from",
            lambda ctx: self.ledger.transfer_from(ctx, from_account, to, value),
            {'from': from_account, 'to': to, 'value': str(value)}
        )

    def total_supply(self) -> Balance:
        return self.ledger.total_supply()

    def balance_of(self, account: AccountId) -> Balance:
        return self.ledger.balance_of(account)

    def allowance(self, owner: AccountId, spender: AccountId) -> Balance:
        return self.ledger.allowance(owner, spender)

    def _execute(
        self,
        caller: AccountId,
        action: str,
        operation: Callable[[CallContext], object],
        details: dict
    ) -> CallResult:
        """
        Run one operation atomically

        Ledger failures roll back and come back as a failed CallResult;
        any other exception rolls back and propagates.
        """
        with self._lock:
            ctx = CallContext(caller=caller)
            try:
                with self.storage.atomic():
                    operation(ctx)
                    if self.event_log:
                        for event in ctx.events:
                            self.event_log.record(event)
            except LedgerError as e:
                log_action(
                    self.logger, "warning", f"Ledger call rejected: {action}",
                    caller=caller, action=action, resource=e.kind.value,
                    extra={**details, 'reason': str(e)}
                )
                return CallResult.failure(e)

            log_action(
                self.logger, "info", f"Ledger call committed: {action}",
                caller=caller, action=action, extra=details
            )

            for event in ctx.events:
                self.event_dispatcher.publish(event)

            return CallResult.success(ctx.events)

    def close(self) -> None:
        self.storage.close()
