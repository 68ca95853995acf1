"""
Tests for the offline sync manager

The manager is exercised against the in-memory local store and a scripted
fake backend, so every transition of the record state machine is visible.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from budgeter.models.record import (
    GoalPayload,
    IncomePayload,
    RecordKind,
    SyncRecord,
    SyncStatus,
    TransactionPayload,
    is_temporary_id,
)
from budgeter.services.storage import (
    InMemoryRecordStore,
    LocalStoreError,
)
from budgeter.sync import describe_error

from conftest import make_manager


def income(amount: str = "100") -> IncomePayload:
    return IncomePayload(description="Salary", amount=Decimal(amount))


class BrokenLocalStore(InMemoryRecordStore):
    """Local store whose writes always fail."""

    async def insert(self, record):
        raise LocalStoreError("disk full")


class TestCreateRecord:
    """Tests for local-first writes."""

    @pytest.mark.asyncio
    async def test_offline_create_stores_pending(self, manager, local_store, remote_store):
        """Test that an offline write never touches the backend."""
        record_id = await manager.create_record("user-1", income())

        assert is_temporary_id(record_id)
        assert remote_store.create_calls == []

        stored = await local_store.get(record_id)
        assert stored.sync_status == SyncStatus.PENDING
        assert stored.owner == "user-1"
        assert stored.payload.amount == Decimal("100")

        status = await manager.get_sync_status()
        assert status.pending == 1

    @pytest.mark.asyncio
    async def test_online_create_goes_remote(self, local_store, remote_store):
        """Test that an online write returns the server id and stores nothing locally."""
        manager = make_manager(local_store, remote_store, online=True)

        record_id = await manager.create_record("user-1", income())

        assert not is_temporary_id(record_id)
        assert await local_store.count() == 0
        kind, row = remote_store.create_calls[0]
        assert kind == RecordKind.INCOME
        assert row["user_id"] == "user-1"
        assert row["amount"] == "100"

    @pytest.mark.asyncio
    async def test_online_failure_falls_back(self, local_store, remote_store):
        """Test that a rejected online write becomes a pending local record."""
        manager = make_manager(local_store, remote_store, online=True)
        remote_store.fail_all_creates = True

        record_id = await manager.create_record("user-1", income())

        assert is_temporary_id(record_id)
        assert len(remote_store.create_calls) == 1
        assert (await local_store.get(record_id)).sync_status == SyncStatus.PENDING

    @pytest.mark.asyncio
    async def test_online_timeout_falls_back(self, local_store, remote_store):
        """Test that a hung backend call is abandoned."""
        manager = make_manager(local_store, remote_store, online=True)
        remote_store.hang_calls = {1}

        record_id = await manager.create_record("user-1", income())

        assert is_temporary_id(record_id)
        assert (await manager.get_sync_status()).pending == 1

    @pytest.mark.asyncio
    async def test_no_remote_store_is_offline(self, local_store):
        """Test that an unconfigured backend means offline."""
        manager = make_manager(local_store, None, online=True)

        assert not manager.is_online()
        record_id = await manager.create_record("user-1", income())
        assert is_temporary_id(record_id)

    @pytest.mark.asyncio
    async def test_is_online_is_not_cached(self, manager):
        """Test that connectivity is read on every call."""
        assert not manager.is_online()
        manager.connectivity.set_online(True)
        assert manager.is_online()
        manager.connectivity.set_online(False)
        assert not manager.is_online()

    @pytest.mark.asyncio
    async def test_local_store_errors_propagate(self, remote_store):
        """Test that there is no fallback beneath the local store."""
        manager = make_manager(BrokenLocalStore(), remote_store, online=False)

        with pytest.raises(LocalStoreError):
            await manager.create_record("user-1", income())


class TestSyncPending:
    """Tests for the reconciliation sweep."""

    @pytest.mark.asyncio
    async def test_all_pending_become_synced(self, manager, local_store, remote_store):
        """Test that every pending record is submitted and relabelled."""
        temp_ids = [
            await manager.create_record("user-1", income(str(n)))
            for n in range(1, 4)
        ]
        manager.connectivity.set_online(True)

        report = await manager.sync_pending()

        assert not report.skipped
        assert report.attempted == 3
        assert report.synced == 3
        assert report.failed == 0
        assert set(report.id_map) == set(temp_ids)

        status = await manager.get_sync_status()
        assert status.pending == 0
        assert status.synced == 3

        records = await local_store.find()
        assert [r.id for r in records] == [report.id_map[t] for t in temp_ids]
        assert all(not r.is_temporary for r in records)
        for temp_id in temp_ids:
            assert await local_store.get(temp_id) is None

    @pytest.mark.asyncio
    async def test_submits_in_insertion_order_without_metadata(self, manager, remote_store):
        """Test order and content of the submitted rows."""
        await manager.create_record("user-1", income("1"))
        await manager.create_record("user-1", GoalPayload(goal_name="Car"))
        await manager.create_record("user-1", income("3"))
        manager.connectivity.set_online(True)

        await manager.sync_pending()

        kinds = [kind for kind, _ in remote_store.create_calls]
        assert kinds == [RecordKind.INCOME, RecordKind.GOAL, RecordKind.INCOME]
        for _, row in remote_store.create_calls:
            assert "id" not in row
            assert "sync_status" not in row
            assert "created_at" not in row
            assert row["user_id"] == "user-1"

    @pytest.mark.asyncio
    async def test_failures_do_not_stop_the_sweep(self, manager, local_store, remote_store):
        """Test alternating backend failures."""
        temp_ids = [
            await manager.create_record("user-1", income(str(n)))
            for n in range(1, 5)
        ]
        remote_store.fail_calls = {2, 4}
        manager.connectivity.set_online(True)

        report = await manager.sync_pending()

        assert report.attempted == 4
        assert report.synced == 2
        assert report.failed == 2
        assert len(remote_store.create_calls) == 4

        for temp_id in (temp_ids[1], temp_ids[3]):
            record = await local_store.get(temp_id)
            assert record.sync_status == SyncStatus.FAILED
            assert "rejected" in record.sync_error

        status = await manager.get_sync_status()
        assert (status.pending, status.failed, status.synced) == (0, 2, 2)

    @pytest.mark.asyncio
    async def test_hung_call_fails_only_that_record(self, manager, local_store, remote_store):
        """Test that a timeout marks one record failed and the sweep goes on."""
        first = await manager.create_record("user-1", income("1"))
        await manager.create_record("user-1", income("2"))
        remote_store.hang_calls = {1}
        manager.connectivity.set_online(True)

        report = await manager.sync_pending()

        assert report.synced == 1
        assert report.failed == 1
        failed = await local_store.get(first)
        assert failed.sync_status == SyncStatus.FAILED
        assert failed.sync_error == "Remote call timed out"

    @pytest.mark.asyncio
    async def test_offline_sweep_is_skipped(self, manager, remote_store):
        """Test that nothing happens while offline."""
        await manager.create_record("user-1", income())

        report = await manager.sync_pending()

        assert report.skipped
        assert report.skip_reason == "offline"
        assert remote_store.create_calls == []
        assert (await manager.get_sync_status()).pending == 1

    @pytest.mark.asyncio
    async def test_concurrent_sweeps_are_single_flight(self, manager, remote_store):
        """Test that overlapping sweeps submit each record once."""
        for n in range(3):
            await manager.create_record("user-1", income(str(n + 1)))
        remote_store.delay = 0.01
        manager.connectivity.set_online(True)

        first, second = await asyncio.gather(manager.sync_pending(), manager.sync_pending())

        assert len(remote_store.create_calls) == 3
        assert not first.skipped
        assert second.skipped
        assert second.skip_reason == "sweep_in_progress"
        assert not manager.sync_in_progress

    @pytest.mark.asyncio
    async def test_flag_cleared_after_error(self, remote_store):
        """Test that a crashed sweep doesn't block the next one."""

        class FailingFindStore(InMemoryRecordStore):
            async def find(self, **filters):
                raise LocalStoreError("corrupt database")

        manager = make_manager(FailingFindStore(), remote_store, online=True)

        with pytest.raises(LocalStoreError):
            await manager.sync_pending()
        assert not manager.sync_in_progress

    @pytest.mark.asyncio
    async def test_failed_records_are_not_resubmitted(self, manager, remote_store):
        """Test that only pending records are swept."""
        await manager.create_record("user-1", income())
        remote_store.fail_all_creates = True
        manager.connectivity.set_online(True)
        await manager.sync_pending()

        remote_store.fail_all_creates = False
        report = await manager.sync_pending()

        assert report.attempted == 0
        assert len(remote_store.create_calls) == 1

    @pytest.mark.asyncio
    async def test_empty_sweep(self, manager, remote_store):
        """Test that an empty sweep is a no-op."""
        manager.connectivity.set_online(True)

        report = await manager.sync_pending()

        assert report.attempted == 0
        assert not report.skipped
        assert remote_store.create_calls == []

    @pytest.mark.asyncio
    async def test_clear_after_sweep(self, local_store, remote_store):
        """Test the optional cleanup at the end of a sweep."""
        manager = make_manager(local_store, remote_store, clear_synced_after_sweep=True)
        await manager.create_record("user-1", income())
        manager.connectivity.set_online(True)

        report = await manager.sync_pending()

        assert report.synced == 1
        assert report.cleared == 1
        assert await local_store.count() == 0


class TestMaintenance:
    """Tests for retry and cleanup."""

    @pytest.mark.asyncio
    async def test_retry_failed(self, manager, local_store, remote_store):
        """Test that retry is the way out of FAILED."""
        record_id = await manager.create_record("user-1", income())
        remote_store.fail_all_creates = True
        manager.connectivity.set_online(True)
        await manager.sync_pending()

        moved = await manager.retry_failed()

        assert moved == 1
        record = await local_store.get(record_id)
        assert record.sync_status == SyncStatus.PENDING
        assert record.sync_error is None

        remote_store.fail_all_creates = False
        report = await manager.sync_pending()
        assert report.synced == 1

    @pytest.mark.asyncio
    async def test_retry_failed_by_kind(self, manager, remote_store):
        """Test retrying one kind only."""
        await manager.create_record("user-1", income())
        await manager.create_record("user-1", GoalPayload(goal_name="House"))
        remote_store.fail_all_creates = True
        manager.connectivity.set_online(True)
        await manager.sync_pending()

        assert await manager.retry_failed(RecordKind.GOAL) == 1
        status = await manager.get_sync_status()
        assert (status.pending, status.failed) == (1, 1)

    @pytest.mark.asyncio
    async def test_clear_synced_is_idempotent(self, manager, local_store):
        """Test repeated cleanup."""
        await manager.create_record("user-1", income())
        await manager.create_record("user-1", income())
        manager.connectivity.set_online(True)
        await manager.sync_pending()

        assert await manager.clear_synced() == 2
        assert await manager.clear_synced() == 0
        assert await local_store.count() == 0

    @pytest.mark.asyncio
    async def test_clear_synced_keeps_unsynced(self, manager, remote_store):
        """Test that pending and failed records survive cleanup."""
        await manager.create_record("user-1", income())
        await manager.create_record("user-1", income())
        remote_store.fail_calls = {2}
        manager.connectivity.set_online(True)
        await manager.sync_pending()
        manager.connectivity.set_online(False)
        await manager.create_record("user-1", income())

        assert await manager.clear_synced() == 1
        status = await manager.get_sync_status()
        assert (status.pending, status.failed, status.synced) == (1, 1, 0)

    @pytest.mark.asyncio
    async def test_status_is_idempotent(self, manager):
        """Test that reading status changes nothing."""
        await manager.create_record("user-1", income())
        first = await manager.get_sync_status()
        second = await manager.get_sync_status()
        assert first == second

    @pytest.mark.asyncio
    async def test_status_by_kind(self, manager):
        """Test per-kind counts."""
        await manager.create_record("user-1", income())
        await manager.create_record("user-1", TransactionPayload(amount=Decimal("5")))

        assert (await manager.get_sync_status(RecordKind.INCOME)).pending == 1
        assert (await manager.get_sync_status(RecordKind.ASSET)).total == 0


class TestListRecords:
    """Tests for merged listings."""

    @pytest.mark.asyncio
    async def test_offline_lists_local_only(self, manager, remote_store):
        """Test that no remote call is made offline."""
        await manager.create_record("user-1", income())

        records = await manager.list_records(RecordKind.INCOME, "user-1")

        assert len(records) == 1
        assert remote_store.list_calls == 0

    @pytest.mark.asyncio
    async def test_merges_remote_and_local_newest_first(self, local_store, remote_store):
        """Test ordering across both sources."""
        manager = make_manager(local_store, remote_store, online=True)
        base = datetime(2025, 7, 1, tzinfo=timezone.utc)
        remote_store.rows[RecordKind.INCOME] = [
            {"id": "r-old", "user_id": "user-1", "amount": "1",
             "created_at": base.isoformat()},
            {"id": "r-new", "user_id": "user-1", "amount": "3",
             "created_at": (base + timedelta(days=2)).isoformat()},
        ]
        await local_store.insert(SyncRecord(
            id="temp_1_aaaaaaaaa",
            owner="user-1",
            created_at=base + timedelta(days=1),
            updated_at=base + timedelta(days=1),
            payload=income("2"),
        ))

        records = await manager.list_records(RecordKind.INCOME, "user-1")

        assert [r.id for r in records] == ["r-new", "temp_1_aaaaaaaaa", "r-old"]
        assert records[0].sync_status == SyncStatus.SYNCED
        assert records[1].sync_status == SyncStatus.PENDING

    @pytest.mark.asyncio
    async def test_remote_failure_returns_local_rows(self, manager, remote_store):
        """Test that a broken backend degrades to local rows."""
        await manager.create_record("user-1", income())
        manager.connectivity.set_online(True)
        remote_store.fail_lists = True

        records = await manager.list_records(RecordKind.INCOME, "user-1")

        assert len(records) == 1
        assert records[0].is_temporary

    @pytest.mark.asyncio
    async def test_unreadable_remote_rows_are_skipped(self, local_store, remote_store):
        """Test that rows without an id or with bad values drop out one by one."""
        remote_store.rows[RecordKind.INCOME] = [
            {"id": "r-good", "user_id": "user-1", "amount": "10",
             "created_at": "2025-07-02T00:00:00+00:00"},
            {"user_id": "user-1", "amount": "20",
             "created_at": "2025-07-03T00:00:00+00:00"},
            {"id": "r-bad", "user_id": "user-1", "amount": "lots",
             "created_at": "2025-07-04T00:00:00+00:00"},
        ]
        manager = make_manager(local_store, remote_store, online=True)

        records = await manager.list_records(RecordKind.INCOME, "user-1")

        assert [r.id for r in records] == ["r-good"]

    @pytest.mark.asyncio
    async def test_listing_is_idempotent(self, manager):
        """Test that listing twice gives the same result."""
        await manager.create_record("user-1", income("1"))
        await manager.create_record("user-1", income("2"))

        first = await manager.list_records(RecordKind.INCOME, "user-1")
        second = await manager.list_records(RecordKind.INCOME, "user-1")
        assert [r.id for r in first] == [r.id for r in second]

    @pytest.mark.asyncio
    async def test_list_local_filters(self, manager, remote_store):
        """Test the local-only listing used by status displays."""
        await manager.create_record("user-1", income())
        await manager.create_record("user-1", income())
        remote_store.fail_calls = {1}
        manager.connectivity.set_online(True)
        await manager.sync_pending()

        failed = await manager.list_local(status=SyncStatus.FAILED)
        assert len(failed) == 1
        assert len(await manager.list_local(kind=RecordKind.INCOME, owner="user-1")) == 2
        assert await manager.list_local(owner="someone-else") == []


class TestDescribeError:
    """Tests for error messages kept on failed records."""

    def test_timeout(self):
        """Test the timeout message."""
        assert describe_error(asyncio.TimeoutError()) == "Remote call timed out"

    def test_empty_message(self):
        """Test that an empty message falls back to the type name."""
        assert describe_error(RuntimeError()) == "RuntimeError"
        assert describe_error(ValueError("bad row")) == "bad row"
