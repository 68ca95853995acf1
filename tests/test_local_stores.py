"""
Tests for local record stores

Every test runs against both the in-memory and the SQLite implementation.
"""

from decimal import Decimal

import pytest

from budgeter.models.record import (
    GoalPayload,
    IncomePayload,
    SyncRecord,
    SyncStatus,
    generate_temp_id,
)
from budgeter.services.storage import (
    DuplicateError,
    InMemoryRecordStore,
    NotFoundError,
    SQLiteRecordStore,
)


def make_record(owner: str = "user-1", payload=None, **kwargs) -> SyncRecord:
    return SyncRecord(
        id=kwargs.pop("id", None) or generate_temp_id(),
        owner=owner,
        payload=payload or IncomePayload(description="Salary", amount=Decimal("10.10")),
        **kwargs,
    )


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path):
    if request.param == "memory":
        yield InMemoryRecordStore()
    else:
        sqlite_store = SQLiteRecordStore(tmp_path / "records.db")
        yield sqlite_store
        sqlite_store.close()


class TestLocalStore:
    """Behaviour shared by every local store."""

    @pytest.mark.asyncio
    async def test_insert_and_get(self, store):
        """Test a round trip keeps every field."""
        record = make_record(sync_error=None)
        await store.insert(record)

        loaded = await store.get(record.id)
        assert loaded == record
        assert loaded.payload.amount == Decimal("10.10")

    @pytest.mark.asyncio
    async def test_get_missing(self, store):
        """Test that a missing id returns None."""
        assert await store.get("nope") is None

    @pytest.mark.asyncio
    async def test_duplicate_insert(self, store):
        """Test that ids are unique."""
        record = make_record()
        await store.insert(record)
        with pytest.raises(DuplicateError):
            await store.insert(record)

    @pytest.mark.asyncio
    async def test_find_filters(self, store):
        """Test equality filters on indexed fields."""
        await store.insert(make_record("user-1"))
        await store.insert(make_record("user-2"))
        await store.insert(make_record("user-1", payload=GoalPayload(goal_name="Car")))

        assert len(await store.find()) == 3
        assert len(await store.find(owner="user-1")) == 2
        assert len(await store.find(owner="user-1", kind="goal")) == 1
        assert len(await store.find(sync_status=SyncStatus.PENDING)) == 3
        assert await store.find(sync_status="synced") == []

    @pytest.mark.asyncio
    async def test_find_rejects_unindexed_fields(self, store):
        """Test that business fields can't be filtered on."""
        with pytest.raises(ValueError):
            await store.find(amount="10")

    @pytest.mark.asyncio
    async def test_update_merges(self, store):
        """Test a partial update."""
        record = make_record()
        await store.insert(record)

        updated = await store.update(record.id, {
            "sync_status": SyncStatus.FAILED,
            "sync_error": "timeout",
        })

        assert updated.sync_status == SyncStatus.FAILED
        loaded = await store.get(record.id)
        assert loaded.sync_error == "timeout"
        assert loaded.payload == record.payload

    @pytest.mark.asyncio
    async def test_update_missing(self, store):
        """Test updating a record that doesn't exist."""
        with pytest.raises(NotFoundError):
            await store.update("nope", {"sync_status": SyncStatus.SYNCED})

    @pytest.mark.asyncio
    async def test_identity_substitution_keeps_order(self, store):
        """Test that renaming a record keeps its place."""
        records = [make_record() for _ in range(3)]
        for record in records:
            await store.insert(record)

        await store.update(records[1].id, {"id": "server-b", "sync_status": SyncStatus.SYNCED})
        await store.update(records[0].id, {"id": "server-a", "sync_status": SyncStatus.SYNCED})

        ids = [r.id for r in await store.find()]
        assert ids == ["server-a", "server-b", records[2].id]
        assert await store.get(records[1].id) is None
        assert (await store.get("server-b")).sync_status == SyncStatus.SYNCED

    @pytest.mark.asyncio
    async def test_identity_substitution_collision(self, store):
        """Test renaming onto an existing id."""
        first, second = make_record(), make_record()
        await store.insert(first)
        await store.insert(second)

        with pytest.raises(DuplicateError):
            await store.update(first.id, {"id": second.id})

    @pytest.mark.asyncio
    async def test_delete(self, store):
        """Test delete reports whether anything was removed."""
        record = make_record()
        await store.insert(record)

        assert await store.delete(record.id) is True
        assert await store.delete(record.id) is False
        assert await store.count() == 0

    @pytest.mark.asyncio
    async def test_count(self, store):
        """Test counting with filters."""
        await store.insert(make_record(sync_status=SyncStatus.FAILED))
        await store.insert(make_record())

        assert await store.count() == 2
        assert await store.count(sync_status="failed") == 1


class TestSQLiteRecordStore:
    """SQLite-specific behaviour."""

    @pytest.mark.asyncio
    async def test_records_survive_reopen(self, tmp_path):
        """Test durability across restarts."""
        path = tmp_path / "offline.db"
        first = SQLiteRecordStore(path)
        record = make_record()
        await first.insert(record)
        first.close()

        second = SQLiteRecordStore(path)
        try:
            loaded = await second.get(record.id)
        finally:
            second.close()

        assert loaded == record

    @pytest.mark.asyncio
    async def test_in_memory_database(self):
        """Test that ':memory:' works for the lifetime of the store."""
        store = SQLiteRecordStore(":memory:")
        await store.insert(make_record())
        assert await store.count() == 1
        store.close()
