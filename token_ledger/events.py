"""
Event System Module

Notification shapes emitted by the ledger (Transfer, Approval) and the
publish/subscribe dispatcher the host uses to deliver them to observers.
"""

from enum import Enum
from typing import Callable, Dict, List, Any, Optional, Tuple, Union
from dataclasses import dataclass
import logging
from threading import RLock

from .amounts import AccountId, Balance


class LedgerEventType(Enum):
    """Notifications that can be emitted by the ledger"""
    TRANSFER = "transfer"
    APPROVAL = "approval"


@dataclass(frozen=True)
class TransferEvent:
    """
    Tokens moved between accounts.

    ``from_account`` is None for issuance at construction time.
    ``to_account`` is None only for a burn, which this ledger never emits.
    """
    from_account: Optional[AccountId]
    to_account: Optional[AccountId]
    value: Balance

    @property
    def event_type(self) -> LedgerEventType:
        return LedgerEventType.TRANSFER

    @property
    def topics(self) -> Tuple[AccountId, ...]:
        """Indexed accounts of this event"""
        return tuple(a for a in (self.from_account, self.to_account) if a is not None)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization"""
        return {
            'event_type': self.event_type.value,
            'from': self.from_account,
            'to': self.to_account,
            'value': str(self.value)
        }


@dataclass(frozen=True)
class ApprovalEvent:
    """Owner set the allowance of a spender"""
    owner: AccountId
    spender: AccountId
    value: Balance

    @property
    def event_type(self) -> LedgerEventType:
        return LedgerEventType.APPROVAL

    @property
    def topics(self) -> Tuple[AccountId, ...]:
        """Indexed accounts of this event"""
        return (self.owner, self.spender)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization"""
        return {
            'event_type': self.event_type.value,
            'owner': self.owner,
            'spender': self.spender,
            'value': str(self.value)
        }


LedgerEvent = Union[TransferEvent, ApprovalEvent]


def event_from_dict(data: Dict[str, Any]) -> LedgerEvent:
    """Create a TransferEvent or ApprovalEvent from its dictionary form"""
    event_type = LedgerEventType(data['event_type'])
    if event_type == LedgerEventType.TRANSFER:
        return TransferEvent(
            from_account=data.get('from'),
            to_account=data.get('to'),
            value=int(data['value'])
        )
    return ApprovalEvent(
        owner=data['owner'],
        spender=data['spender'],
        value=int(data['value'])
    )


def _handler_name(handler: Callable) -> str:
    return getattr(handler, '__name__', repr(handler))


class EventDispatcher:
    """Central event dispatcher, publish/subscribe pattern"""

    def __init__(self):
        self._handlers: Dict[LedgerEventType, List[Callable]] = {}
        self._global_handlers: List[Callable] = []  # catch-all handlers
        self._lock = RLock()
        self.logger = logging.getLogger("token_ledger.events")

    def subscribe(self, event_type: LedgerEventType, handler: Callable) -> None:
        """Subscribe to a specific event type"""
        with self._lock:
            self._handlers.setdefault(event_type, []).append(handler)
            self.logger.debug(f"Subscribed handler {_handler_name(handler)} to {event_type.value}")

    def subscribe_all(self, handler: Callable) -> None:
        """Subscribe to ALL events"""
        with self._lock:
            self._global_handlers.append(handler)
            self.logger.debug(f"Subscribed global handler {_handler_name(handler)}")

    def unsubscribe(self, event_type: LedgerEventType, handler: Callable) -> None:
        """Unsubscribe from a specific event type"""
        with self._lock:
            if event_type in self._handlers:
                try:
                    self._handlers[event_type].remove(handler)
                    self.logger.debug(f"Unsubscribed handler {_handler_name(handler)} from {event_type.value}")
                except ValueError:
                    self.logger.warning(f"Handler {_handler_name(handler)} was not subscribed to {event_type.value}")

    def unsubscribe_all(self, handler: Callable) -> None:
        """Remove a global handler"""
        with self._lock:
            try:
                self._global_handlers.remove(handler)
                self.logger.debug(f"Unsubscribed global handler {_handler_name(handler)}")
            except ValueError:
                self.logger.warning(f"Global handler {_handler_name(handler)} was not subscribed")

    def publish(self, event: LedgerEvent) -> None:
        """Deliver an event to all subscribers; handler failures never propagate"""
        with self._lock:
            self.logger.debug(f"Publishing event {event.event_type.value} for {', '.join(event.topics)}")

            for handler in self._handlers.get(event.event_type, []):
                try:
                    handler(event)
                except Exception as e:
                    self.logger.error(f"Error in event handler {_handler_name(handler)} for {event.event_type.value}: {e}")

            for handler in self._global_handlers:
                try:
                    handler(event)
                except Exception as e:
                    self.logger.error(f"Error in global event handler {_handler_name(handler)} for {event.event_type.value}: {e}")

    def clear(self) -> None:
        """Clear all handlers"""
        with self._lock:
            self._handlers.clear()
            self._global_handlers.clear()
            self.logger.info("All event handlers cleared")

    def get_handler_count(self, event_type: Optional[LedgerEventType] = None) -> int:
        """Get count of handlers for a specific event type or all"""
        with self._lock:
            if event_type:
                return len(self._handlers.get(event_type, []))
            total = sum(len(handlers) for handlers in self._handlers.values())
            return total + len(self._global_handlers)
