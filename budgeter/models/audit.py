"""
Sync Audit Models for Budgeter

Every record state transition and every sweep produces an audit event.
This provides:
1. Traceability of where a record went (local, remote, failed)
2. Debugging information when the backend misbehaves
3. Input for the non-blocking status indicator

DESIGN DECISION: Events are append-only structured log entries.
They are never used to drive state; the local store is the state.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from budgeter.models.record import utcnow


class SyncEventType(str, Enum):
    """
    Types of events we audit.

    Each state machine transition has its own event type.
    """
    # Writes
    RECORD_CREATED_REMOTE = "record_created_remote"
    RECORD_STORED_OFFLINE = "record_stored_offline"
    REMOTE_CREATE_FAILED = "remote_create_failed"

    # Reads
    REMOTE_LIST_FAILED = "remote_list_failed"
    REMOTE_ROW_SKIPPED = "remote_row_skipped"

    # Sweeps
    SWEEP_STARTED = "sweep_started"
    SWEEP_SKIPPED = "sweep_skipped"
    SWEEP_COMPLETED = "sweep_completed"
    RECORD_SYNCED = "record_synced"
    RECORD_SYNC_FAILED = "record_sync_failed"

    # Maintenance
    FAILED_RECORDS_RETRIED = "failed_records_retried"
    SYNCED_RECORDS_CLEARED = "synced_records_cleared"

    # Environment
    CONNECTIVITY_CHANGED = "connectivity_changed"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class SyncEvent(BaseModel):
    """
    A single audit event.

    Every significant sync action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: SyncEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - which record is this about?
    record_kind: Optional[str] = Field(
        default=None,
        description="Kind of record (e.g., 'income', 'goal')"
    )
    record_id: Optional[str] = Field(
        default=None,
        description="Identifier of the record at the time of the event"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "record_kind": self.record_kind,
            "record_id": self.record_id,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }


class SyncEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = SyncEventBuilder.record_stored_offline("income", temp_id)
        event = SyncEventBuilder.sweep_completed(attempted=3, synced=2, failed=1)
    """

    @staticmethod
    def record_created_remote(kind: str, record_id: str) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.RECORD_CREATED_REMOTE,
            record_kind=kind,
            record_id=record_id,
            description=f"{kind} record created remotely",
        )

    @staticmethod
    def record_stored_offline(
        kind: str,
        record_id: str,
        reason: str,
    ) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.RECORD_STORED_OFFLINE,
            record_kind=kind,
            record_id=record_id,
            description=f"{kind} record stored locally as pending",
            details={"reason": reason},
        )

    @staticmethod
    def remote_create_failed(kind: str, error_message: str) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.REMOTE_CREATE_FAILED,
            severity=AuditSeverity.WARNING,
            record_kind=kind,
            description=f"Online save of {kind} record failed, falling back to local storage",
            error_message=error_message,
        )

    @staticmethod
    def remote_list_failed(kind: str, error_message: str) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.REMOTE_LIST_FAILED,
            severity=AuditSeverity.WARNING,
            record_kind=kind,
            description=f"Failed to fetch remote {kind} records, showing local rows only",
            error_message=error_message,
        )

    @staticmethod
    def remote_row_skipped(kind: str, record_id: str, error_message: str) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.REMOTE_ROW_SKIPPED,
            severity=AuditSeverity.WARNING,
            record_kind=kind,
            record_id=record_id,
            description=f"Unreadable remote {kind} row left out of the listing",
            error_message=error_message,
        )

    @staticmethod
    def sweep_started(pending: int) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.SWEEP_STARTED,
            description=f"Sync sweep started with {pending} pending records",
            details={"pending": pending},
        )

    @staticmethod
    def sweep_skipped(reason: str) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.SWEEP_SKIPPED,
            severity=AuditSeverity.DEBUG,
            description=f"Sync sweep skipped: {reason}",
            details={"reason": reason},
        )

    @staticmethod
    def sweep_completed(
        attempted: int,
        synced: int,
        failed: int,
    ) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.SWEEP_COMPLETED,
            severity=AuditSeverity.WARNING if failed else AuditSeverity.INFO,
            description=f"Sync sweep completed: {synced}/{attempted} synced, {failed} failed",
            details={
                "attempted": attempted,
                "synced": synced,
                "failed": failed,
            },
        )

    @staticmethod
    def record_synced(kind: str, temp_id: str, server_id: str) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.RECORD_SYNCED,
            record_kind=kind,
            record_id=server_id,
            description=f"{kind} record synced",
            details={"temp_id": temp_id, "server_id": server_id},
        )

    @staticmethod
    def record_sync_failed(
        kind: str,
        record_id: str,
        error_message: str,
    ) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.RECORD_SYNC_FAILED,
            severity=AuditSeverity.ERROR,
            record_kind=kind,
            record_id=record_id,
            description=f"Failed to sync {kind} record",
            error_message=error_message,
        )

    @staticmethod
    def failed_records_retried(count: int, kind: Optional[str] = None) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.FAILED_RECORDS_RETRIED,
            record_kind=kind,
            description=f"{count} failed records marked pending for retry",
            details={"count": count},
        )

    @staticmethod
    def synced_records_cleared(count: int, kind: Optional[str] = None) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.SYNCED_RECORDS_CLEARED,
            record_kind=kind,
            description=f"{count} synced records removed from local storage",
            details={"count": count},
        )

    @staticmethod
    def connectivity_changed(online: bool) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.CONNECTIVITY_CHANGED,
            description="Connection restored" if online else "Connection lost",
            details={"online": online},
        )
