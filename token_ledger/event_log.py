"""
Event Log Module

Hash-chained, append-only log of every notification the ledger emitted,
starting from the genesis Transfer. Each record carries the SHA-256 of its
predecessor so tampering breaks the chain. Replaying the Transfer records
rebuilds the balance table, which lets the stored state be reconciled
against its own history.
"""

import hashlib
import json
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .amounts import AccountId, Balance
from .events import LedgerEvent, TransferEvent, event_from_dict
from .state import LedgerState
from .storage import StorageInterface


@dataclass
class EventRecord:
    """
    Immutable log entry with hash chaining for tamper detection
    """
    sequence: int
    recorded_at: datetime
    event: LedgerEvent
    previous_hash: str
    current_hash: str

    @property
    def record_id(self) -> str:
        return f"{self.sequence:012d}"

    def calculate_hash(self) -> str:
        """
        Calculate SHA-256 hash of this record
        Covers everything except current_hash itself
        """
        hash_data = {
            'sequence': self.sequence,
            'recorded_at': self.recorded_at.isoformat(),
            'event': self.event.to_dict(),
            'previous_hash': self.previous_hash
        }

        # Create deterministic JSON string
        json_data = json.dumps(hash_data, sort_keys=True, separators=(',', ':'))
        return hashlib.sha256(json_data.encode('utf-8')).hexdigest()

    def verify_hash(self) -> bool:
        return self.current_hash == self.calculate_hash()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'sequence': self.sequence,
            'recorded_at': self.recorded_at.isoformat(),
            'event': self.event.to_dict(),
            'previous_hash': self.previous_hash,
            'current_hash': self.current_hash
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'EventRecord':
        return cls(
            sequence=int(data['sequence']),
            recorded_at=datetime.fromisoformat(data['recorded_at']),
            event=event_from_dict(data['event']),
            previous_hash=data['previous_hash'],
            current_hash=data['current_hash']
        )


class EventLog:
    """
    Hash-chained event log
    """

    def __init__(self, storage: StorageInterface, table_name: str = "ledger_events"):
        self.storage = storage
        self.table_name = table_name
        self._lock = threading.Lock()

    def _last_record(self) -> Optional[EventRecord]:
        count = self.storage.count(self.table_name)
        if count == 0:
            return None
        data = self.storage.load(self.table_name, f"{count - 1:012d}")
        return EventRecord.from_dict(data) if data else None

    def record(self, event: LedgerEvent) -> EventRecord:
        """
        Append an event to the log

        Args:
            event: Notification emitted by the ledger

        Returns:
            Created EventRecord
        """
        with self._lock:
            # Re-read the tail so the chain survives a rolled-back append
            last = self._last_record()

            record = EventRecord(
                sequence=last.sequence + 1 if last else 0,
                recorded_at=datetime.now(timezone.utc),
                event=event,
                previous_hash=last.current_hash if last else "",
                current_hash=""  # Will be calculated below
            )
            record.current_hash = record.calculate_hash()

            self.storage.save(self.table_name, record.record_id, record.to_dict())
            return record

    def get_all_records(self) -> List[EventRecord]:
        """All records in sequence order"""
        records = [EventRecord.from_dict(data) for data in self.storage.load_all(self.table_name)]
        records.sort(key=lambda r: r.sequence)
        return records

    def get_events_for_account(self, account: AccountId, limit: Optional[int] = None) -> List[LedgerEvent]:
        """
        Events that name an account in one of their topics

        Args:
            account: Account to look for
            limit: Return only the most recent N events

        Returns:
            Matching events in sequence order
        """
        events = [r.event for r in self.get_all_records() if account in r.event.topics]
        if limit is not None:
            events = events[max(len(events) - limit, 0):]
        return events

    def count_records(self) -> int:
        return self.storage.count(self.table_name)

    def get_latest_hash(self) -> Optional[str]:
        last = self._last_record()
        return last.current_hash if last else None

    def verify_integrity(self) -> Dict[str, Any]:
        """
        Verify the integrity of the entire chain

        Returns:
            Dictionary with integrity check results
        """
        result = {
            'valid': True,
            'total_records': 0,
            'hash_errors': [],
            'chain_breaks': []
        }

        records = self.get_all_records()
        result['total_records'] = len(records)

        previous_hash = ""
        for position, record in enumerate(records):
            if not record.verify_hash():
                result['valid'] = False
                result['hash_errors'].append({
                    'sequence': record.sequence,
                    'expected_hash': record.calculate_hash(),
                    'actual_hash': record.current_hash
                })
            if record.previous_hash != previous_hash or record.sequence != position:
                result['valid'] = False
                result['chain_breaks'].append({
                    'sequence': record.sequence,
                    'position': position,
                    'expected_previous_hash': previous_hash,
                    'actual_previous_hash': record.previous_hash
                })
            previous_hash = record.current_hash

        return result

    def replay_balances(self) -> Dict[AccountId, Balance]:
        """Rebuild the balance table from Transfer records"""
        balances: Dict[AccountId, Balance] = {}
        for record in self.get_all_records():
            event = record.event
            if not isinstance(event, TransferEvent):
                continue
            if event.from_account is not None:
                balances[event.from_account] = balances.get(event.from_account, 0) - event.value
            if event.to_account is not None:
                balances[event.to_account] = balances.get(event.to_account, 0) + event.value
        return {account: value for account, value in balances.items() if value != 0}

    def reconcile(self, state: LedgerState) -> Dict[str, Any]:
        """
        Compare stored ledger state with what the log replays to

        Returns:
            Dictionary with ``valid`` and a list of ``mismatches``
        """
        result = {'valid': True, 'mismatches': []}

        replayed = self.replay_balances()
        stored = state.balances()
        for account in sorted(set(replayed) | set(stored)):
            expected = replayed.get(account, 0)
            actual = stored.get(account, 0)
            if expected != actual:
                result['valid'] = False
                result['mismatches'].append({
                    'account': account,
                    'replayed': expected,
                    'stored': actual
                })

        issued = sum(
            r.event.value for r in self.get_all_records()
            if isinstance(r.event, TransferEvent) and r.event.from_account is None
        )
        if state.is_initialized() and issued != state.get_total_supply():
            result['valid'] = False
            result['mismatches'].append({
                'account': None,
                'replayed': issued,
                'stored': state.get_total_supply()
            })

        return result
