"""
Shared fixtures and fakes.

No test talks to a real backend: the remote store is an in-process fake
whose failures and delays are scripted per test.
"""

import asyncio
from typing import Any, Optional
from uuid import uuid4

import pytest

from budgeter.audit import SyncAuditLogger
from budgeter.config import SyncSettings
from budgeter.models.record import RecordKind, utcnow
from budgeter.services.connectivity import ConnectivityMonitor
from budgeter.services.storage import (
    InMemoryRecordStore,
    RemoteRecordStoreInterface,
    RemoteStoreError,
)
from budgeter.sync import OfflineSyncManager


class FakeRemoteStore(RemoteRecordStoreInterface):
    """
    Remote store double.

    fail_calls holds 1-based create call numbers that raise.
    hang_calls holds call numbers that never return.
    """

    def __init__(self):
        self.rows: dict[RecordKind, list[dict[str, Any]]] = {kind: [] for kind in RecordKind}
        self.create_calls: list[tuple[RecordKind, dict[str, Any]]] = []
        self.list_calls = 0
        self.fail_calls: set[int] = set()
        self.hang_calls: set[int] = set()
        self.fail_all_creates = False
        self.fail_lists = False
        self.delay = 0.0

    async def create_record(self, kind: RecordKind, row: dict[str, Any]) -> dict[str, Any]:
        self.create_calls.append((kind, dict(row)))
        call_number = len(self.create_calls)

        if self.delay:
            await asyncio.sleep(self.delay)
        if call_number in self.hang_calls:
            await asyncio.Event().wait()
        if self.fail_all_creates or call_number in self.fail_calls:
            raise RemoteStoreError(f"backend rejected call {call_number}")

        now = utcnow().isoformat()
        stored = {**row, "id": str(uuid4()), "created_at": now, "updated_at": now}
        self.rows[kind].append(stored)
        return stored

    async def list_records(
        self,
        kind: RecordKind,
        owner: str,
        order_by: str = "created_at",
        descending: bool = True,
    ) -> list[dict[str, Any]]:
        self.list_calls += 1
        if self.fail_lists:
            raise RemoteStoreError("backend unavailable")
        owned = [dict(r) for r in self.rows[kind] if r.get("user_id") == owner]
        owned.sort(key=lambda r: r.get(order_by) or "", reverse=descending)
        return owned


def make_manager(
    local_store=None,
    remote_store: Optional[RemoteRecordStoreInterface] = None,
    online: bool = False,
    **settings: Any,
) -> OfflineSyncManager:
    sync_settings = SyncSettings(remote_timeout_seconds=0.2, **settings)
    return OfflineSyncManager(
        local_store=local_store if local_store is not None else InMemoryRecordStore(),
        remote_store=remote_store,
        connectivity=ConnectivityMonitor(online=online, settings=sync_settings),
        settings=sync_settings,
        audit_logger=SyncAuditLogger(),
    )


@pytest.fixture
def local_store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture
def remote_store() -> FakeRemoteStore:
    return FakeRemoteStore()


@pytest.fixture
def manager(local_store, remote_store) -> OfflineSyncManager:
    """Manager that starts offline with a working fake backend."""
    return make_manager(local_store, remote_store, online=False)
