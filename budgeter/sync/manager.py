"""
Offline Sync Manager

Mediates every write between the local record store and the remote store.

STATE MACHINE (per locally originated record):

    (none) --offline create / remote create failed--> PENDING
    PENDING --sweep success (id replaced by server id)--> SYNCED
    PENDING --sweep error (id unchanged)--> FAILED
    FAILED  --retry_failed()--> PENDING
    SYNCED  --clear_synced()--> (deleted)

CRITICAL RULES:
1. Remote failures never escape a manager operation. They turn into an
   offline write, a FAILED record, or an empty remote listing.
2. Local store failures always propagate. There is nothing beneath them.
3. At most one sweep runs at a time (single-flight flag, set before the
   first await and cleared in finally).
4. Only business fields are ever sent remotely.

The manager does not watch connectivity and never retries on its own;
AutoSyncTrigger decides when a sweep starts.
"""

import asyncio
from typing import Any, Optional

from budgeter.audit import SyncAuditLogger
from budgeter.config import SyncSettings, get_settings
from budgeter.models.record import (
    RecordKind,
    RecordPayload,
    SweepReport,
    SyncRecord,
    SyncStatus,
    SyncStatusCounts,
    generate_temp_id,
    utcnow,
)
from budgeter.services.connectivity import ConnectivityMonitor
from budgeter.services.storage.interface import (
    LocalRecordStoreInterface,
    NotFoundError,
    RemoteRecordStoreInterface,
    RemoteStoreError,
)


def describe_error(error: BaseException) -> str:
    """Readable message for an exception, even one with an empty str()."""
    if isinstance(error, asyncio.TimeoutError):
        return "Remote call timed out"
    message = str(error)
    return message or type(error).__name__


class OfflineSyncManager:
    """
    Local-first record writes with deferred reconciliation.

    Usage:
        manager = OfflineSyncManager(local_store, remote_store, connectivity)
        record_id = await manager.create_record(user_id, IncomePayload(...))
        report = await manager.sync_pending()
    """

    def __init__(
        self,
        local_store: LocalRecordStoreInterface,
        remote_store: Optional[RemoteRecordStoreInterface],
        connectivity: ConnectivityMonitor,
        settings: Optional[SyncSettings] = None,
        audit_logger: Optional[SyncAuditLogger] = None,
    ):
        self._local = local_store
        self._remote = remote_store
        self._connectivity = connectivity
        self._settings = settings or get_settings().sync
        self._audit_logger = audit_logger or SyncAuditLogger()
        self._sync_in_progress = False

    @property
    def connectivity(self) -> ConnectivityMonitor:
        return self._connectivity

    @property
    def sync_in_progress(self) -> bool:
        return self._sync_in_progress

    def is_online(self) -> bool:
        """
        Current connectivity, read fresh on every call.

        Without a configured remote store the manager is always offline.
        """
        if self._remote is None:
            return False
        return self._connectivity.is_online()

    async def _remote_create(self, kind: RecordKind, row: dict[str, Any]) -> str:
        created = await asyncio.wait_for(
            self._remote.create_record(kind, row),
            timeout=self._settings.remote_timeout_seconds,
        )
        server_id = created.get("id") if created else None
        if not server_id:
            raise RemoteStoreError("Remote store returned a row without an id")
        return str(server_id)

    # =========================================================================
    # WRITES
    # =========================================================================

    async def create_record(self, owner: str, payload: RecordPayload) -> str:
        """
        Create a record, remotely if possible, locally otherwise.

        Returns:
            The server id when the remote create succeeded, otherwise
            the temporary id of the PENDING local record

        Raises:
            LocalStoreError: If the offline write fails
        """
        kind = payload.record_kind

        if self.is_online():
            row = payload.to_remote_row()
            row["user_id"] = owner
            try:
                server_id = await self._remote_create(kind, row)
            except Exception as e:
                self._audit_logger.log_remote_create_failed(kind.value, describe_error(e))
                reason = "remote_error"
            else:
                self._audit_logger.log_record_created_remote(kind.value, server_id)
                return server_id
        else:
            reason = "offline"

        now = utcnow()
        record = SyncRecord(
            id=generate_temp_id(self._settings.temp_id_prefix),
            owner=owner,
            sync_status=SyncStatus.PENDING,
            created_at=now,
            updated_at=now,
            payload=payload,
        )
        await self._local.insert(record)
        self._audit_logger.log_record_stored_offline(kind.value, record.id, reason)
        return record.id

    # =========================================================================
    # READS
    # =========================================================================

    async def list_records(self, kind: RecordKind, owner: str) -> list[SyncRecord]:
        """
        Remote rows plus local rows of one kind for one owner, newest first.

        A synced record that has not been cleared yet may appear twice
        (once from each side).
        """
        kind = RecordKind(kind)
        remote_records: list[SyncRecord] = []

        if self.is_online():
            try:
                rows = await asyncio.wait_for(
                    self._remote.list_records(kind, owner),
                    timeout=self._settings.remote_timeout_seconds,
                )
            except Exception as e:
                self._audit_logger.log_remote_list_failed(kind.value, describe_error(e))
                rows = []

            # A malformed row is skipped on its own; the rest still list
            for row in rows:
                try:
                    remote_records.append(SyncRecord.from_remote_row(kind, row))
                except (KeyError, ValueError) as e:
                    self._audit_logger.log_remote_row_skipped(
                        kind.value, str(row.get("id")), describe_error(e)
                    )

        local_records = await self._local.find(kind=kind.value, owner=owner)

        return sorted(
            remote_records + local_records,
            key=lambda record: record.created_at,
            reverse=True,
        )

    async def list_local(
        self,
        kind: Optional[RecordKind] = None,
        owner: Optional[str] = None,
        status: Optional[SyncStatus] = None,
    ) -> list[SyncRecord]:
        """Locally stored records, in insertion order."""
        filters: dict[str, Any] = {}
        if kind is not None:
            filters["kind"] = RecordKind(kind).value
        if owner is not None:
            filters["owner"] = owner
        if status is not None:
            filters["sync_status"] = SyncStatus(status).value
        return await self._local.find(**filters)

    async def get_sync_status(self, kind: Optional[RecordKind] = None) -> SyncStatusCounts:
        """Count local records per status. Never touches the remote store."""
        filters: dict[str, Any] = {}
        if kind is not None:
            filters["kind"] = RecordKind(kind).value

        return SyncStatusCounts(
            pending=await self._local.count(sync_status=SyncStatus.PENDING.value, **filters),
            failed=await self._local.count(sync_status=SyncStatus.FAILED.value, **filters),
            synced=await self._local.count(sync_status=SyncStatus.SYNCED.value, **filters),
        )

    # =========================================================================
    # RECONCILIATION
    # =========================================================================

    async def sync_pending(self) -> SweepReport:
        """
        Submit every PENDING record to the remote store, in insertion order.

        Skipped (returns immediately) when offline or when another sweep is
        already running. One record failing does not stop the sweep.
        """
        if not self.is_online():
            self._audit_logger.log_sweep_skipped("offline")
            return SweepReport.skip("offline")
        if self._sync_in_progress:
            self._audit_logger.log_sweep_skipped("sweep_in_progress")
            return SweepReport.skip("sweep_in_progress")

        self._sync_in_progress = True
        try:
            report = SweepReport()
            pending = await self._local.find(sync_status=SyncStatus.PENDING.value)
            self._audit_logger.log_sweep_started(len(pending))

            for record in pending:
                report.attempted += 1
                if await self._sync_one(record, report):
                    report.synced += 1
                else:
                    report.failed += 1

            if self._settings.clear_synced_after_sweep:
                report.cleared = await self.clear_synced()

            report.finished_at = utcnow()
            self._audit_logger.log_sweep_completed(
                report.attempted, report.synced, report.failed
            )
            return report
        finally:
            self._sync_in_progress = False

    async def _sync_one(self, record: SyncRecord, report: SweepReport) -> bool:
        """Submit one record and write back its new state. True if synced."""
        kind = record.kind.value

        try:
            server_id = await self._remote_create(record.kind, record.to_remote_row())
        except Exception as e:
            error_message = describe_error(e)
            try:
                await self._local.update(record.id, {
                    "sync_status": SyncStatus.FAILED,
                    "sync_error": error_message,
                    "updated_at": utcnow(),
                })
            except NotFoundError:
                # Removed locally while the remote call was in flight
                pass
            self._audit_logger.log_record_sync_failed(kind, record.id, error_message)
            return False

        try:
            await self._local.update(record.id, {
                "id": server_id,
                "sync_status": SyncStatus.SYNCED,
                "sync_error": None,
                "updated_at": utcnow(),
            })
        except NotFoundError:
            # The remote copy exists; there is just no local row left to mark
            self._audit_logger.log_record_sync_failed(
                kind, record.id, "Local record disappeared during sync"
            )
            return False

        report.id_map[record.id] = server_id
        self._audit_logger.log_record_synced(kind, record.id, server_id)
        return True

    async def retry_failed(self, kind: Optional[RecordKind] = None) -> int:
        """
        Move FAILED records back to PENDING so the next sweep resubmits them.

        This is the only way out of FAILED.

        Returns:
            Number of records moved
        """
        failed = await self.list_local(kind=kind, status=SyncStatus.FAILED)
        for record in failed:
            await self._local.update(record.id, {
                "sync_status": SyncStatus.PENDING,
                "sync_error": None,
                "updated_at": utcnow(),
            })

        self._audit_logger.log_failed_records_retried(
            len(failed), RecordKind(kind).value if kind is not None else None
        )
        return len(failed)

    async def clear_synced(self, kind: Optional[RecordKind] = None) -> int:
        """
        Delete SYNCED records from the local store. Safe to call repeatedly.

        Returns:
            Number of records removed
        """
        synced = await self.list_local(kind=kind, status=SyncStatus.SYNCED)
        removed = 0
        for record in synced:
            if await self._local.delete(record.id):
                removed += 1

        if removed:
            self._audit_logger.log_synced_records_cleared(
                removed, RecordKind(kind).value if kind is not None else None
            )
        return removed
