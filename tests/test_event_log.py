"""
Test suite for the event log

Tests hash chaining, tamper detection, replay of balances and
reconciliation against stored ledger state.
"""

import pytest

from token_ledger.event_log import EventLog, EventRecord
from token_ledger.events import ApprovalEvent, TransferEvent
from token_ledger.ledger import CallContext, Ledger
from token_ledger.state import LedgerState
from token_ledger.storage import InMemoryStorage, SQLiteStorage


class TestEventRecord:
    """Test individual log records"""

    def test_round_trip_keeps_hash_valid(self):
        storage = InMemoryStorage()
        log = EventLog(storage)
        record = log.record(TransferEvent(None, "alice", 100))

        restored = EventRecord.from_dict(record.to_dict())

        assert restored == record
        assert restored.verify_hash()

    def test_record_id_is_zero_padded_sequence(self):
        log = EventLog(InMemoryStorage())
        record = log.record(TransferEvent(None, "alice", 1))
        assert record.record_id == "000000000000"


class TestEventLog:
    """Test the hash-chained log"""

    def setup_method(self):
        self.storage = InMemoryStorage()
        self.log = EventLog(self.storage)

    def test_chain_links_records(self):
        first = self.log.record(TransferEvent(None, "alice", 100))
        second = self.log.record(TransferEvent("alice", "bob", 10))
        third = self.log.record(ApprovalEvent("alice", "carol", 5))

        assert first.sequence == 0 and first.previous_hash == ""
        assert second.sequence == 1 and second.previous_hash == first.current_hash
        assert third.sequence == 2 and third.previous_hash == second.current_hash
        assert self.log.count_records() == 3
        assert self.log.get_latest_hash() == third.current_hash

    def test_empty_log(self):
        assert self.log.get_latest_hash() is None
        assert self.log.get_all_records() == []
        result = self.log.verify_integrity()
        assert result['valid']
        assert result['total_records'] == 0

    def test_verify_integrity_valid(self):
        self.log.record(TransferEvent(None, "alice", 100))
        self.log.record(TransferEvent("alice", "bob", 10))

        result = self.log.verify_integrity()

        assert result['valid']
        assert result['total_records'] == 2
        assert result['hash_errors'] == []
        assert result['chain_breaks'] == []

    def test_tampered_event_is_detected(self):
        self.log.record(TransferEvent(None, "alice", 100))
        record = self.log.record(TransferEvent("alice", "bob", 10))

        data = self.storage.load(self.log.table_name, record.record_id)
        data['event']['value'] = "90"
        self.storage.save(self.log.table_name, record.record_id, data)

        result = self.log.verify_integrity()

        assert not result['valid']
        assert result['hash_errors'][0]['sequence'] == 1

    def test_broken_chain_is_detected(self):
        self.log.record(TransferEvent(None, "alice", 100))
        record = self.log.record(TransferEvent("alice", "bob", 10))

        forged = EventRecord(
            sequence=record.sequence,
            recorded_at=record.recorded_at,
            event=record.event,
            previous_hash="0" * 64,
            current_hash=""
        )
        forged.current_hash = forged.calculate_hash()
        self.storage.save(self.log.table_name, forged.record_id, forged.to_dict())

        result = self.log.verify_integrity()

        assert not result['valid']
        assert result['hash_errors'] == []
        assert result['chain_breaks'][0]['sequence'] == 1

    def test_events_for_account(self):
        self.log.record(TransferEvent(None, "alice", 100))
        self.log.record(TransferEvent("alice", "bob", 10))
        self.log.record(ApprovalEvent("carol", "dave", 5))
        self.log.record(ApprovalEvent("alice", "dave", 5))

        assert self.log.get_events_for_account("alice") == [
            TransferEvent(None, "alice", 100),
            TransferEvent("alice", "bob", 10),
            ApprovalEvent("alice", "dave", 5),
        ]
        assert self.log.get_events_for_account("dave", limit=1) == [ApprovalEvent("alice", "dave", 5)]
        assert self.log.get_events_for_account("alice", limit=0) == []
        assert len(self.log.get_events_for_account("alice", limit=10)) == 3
        assert self.log.get_events_for_account("erin") == []

    def test_chain_continues_after_rollback(self):
        """Test that a rolled-back append does not leave a gap"""
        self.log.record(TransferEvent(None, "alice", 100))

        with pytest.raises(RuntimeError):
            with self.storage.atomic():
                self.log.record(TransferEvent("alice", "bob", 10))
                raise RuntimeError("abort")

        record = self.log.record(TransferEvent("alice", "carol", 20))

        assert record.sequence == 1
        assert self.log.verify_integrity()['valid']

    def test_sqlite_backed_log(self, tmp_path):
        storage = SQLiteStorage(tmp_path / "events.db")
        log = EventLog(storage)
        for i in range(5):
            log.record(TransferEvent("alice", "bob", i))

        records = log.get_all_records()

        assert [r.sequence for r in records] == [0, 1, 2, 3, 4]
        assert log.verify_integrity()['valid']
        storage.close()


class TestReplay:
    """Test rebuilding balances from history"""

    def setup_method(self):
        self.storage = InMemoryStorage()
        self.state = LedgerState(self.storage)
        self.log = EventLog(self.storage)

    def _run(self, caller, operation):
        ctx = CallContext(caller=caller)
        result = operation(ctx)
        for event in ctx.events:
            self.log.record(event)
        return result

    def test_replay_matches_state(self):
        ledger = self._run("alice", lambda ctx: Ledger.new(self.state, ctx, 1000))
        self._run("alice", lambda ctx: ledger.transfer(ctx, "bob", 400))
        self._run("alice", lambda ctx: ledger.approve(ctx, "carol", 300))
        self._run("carol", lambda ctx: ledger.transfer_from(ctx, "alice", "dave", 250))
        self._run("bob", lambda ctx: ledger.transfer(ctx, "bob", 50))
        self._run("bob", lambda ctx: ledger.transfer(ctx, "alice", 400))

        assert self.log.replay_balances() == {"alice": 750, "dave": 250}
        result = self.log.reconcile(self.state)
        assert result['valid']
        assert result['mismatches'] == []

    def test_reconcile_detects_drift(self):
        ledger = self._run("alice", lambda ctx: Ledger.new(self.state, ctx, 100))
        self._run("alice", lambda ctx: ledger.transfer(ctx, "bob", 30))

        # Out-of-band write that bypassed the ledger
        self.state.set_balance("bob", 31)

        result = self.log.reconcile(self.state)

        assert not result['valid']
        assert result['mismatches'] == [{'account': 'bob', 'replayed': 30, 'stored': 31}]

    def test_reconcile_detects_supply_drift(self):
        self._run("alice", lambda ctx: Ledger.new(self.state, ctx, 100))

        self.state.set_total_supply(200)

        result = self.log.reconcile(self.state)

        assert not result['valid']
        assert result['mismatches'] == [{'account': None, 'replayed': 100, 'stored': 200}]
