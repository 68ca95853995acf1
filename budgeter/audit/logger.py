"""
Sync Audit Logger

DESIGN DECISION: Every record state transition is logged.
This provides:
1. Complete traceability of each offline record
2. Debugging capability when the backend misbehaves
3. A trail explaining why a record ended up 'failed'

The audit logger:
- Is local-only (structured JSON via structlog); the sync flow never waits on it
- Gracefully handles failures (doesn't crash the sync flow if logging fails)
"""

from typing import Optional

import structlog

from budgeter.models.audit import SyncEvent, SyncEventBuilder


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class SyncAuditLogger:
    """
    Central audit logging service for the sync core.

    Keeps the most recent events in memory so a status screen can show
    what happened without reading log files.
    """

    def __init__(self, history_size: int = 200):
        self._logger = structlog.get_logger("budgeter.sync")
        self._history_size = history_size
        self._history: list[SyncEvent] = []

    @property
    def recent_events(self) -> list[SyncEvent]:
        """Most recent events, oldest first."""
        return list(self._history)

    def log(self, event: SyncEvent) -> bool:
        """
        Log an audit event.

        Returns False if the log call itself failed.
        """
        self._history.append(event)
        if len(self._history) > self._history_size:
            del self._history[: len(self._history) - self._history_size]

        log_dict = event.to_log_dict()
        try:
            if event.severity.value == "error":
                self._logger.error("sync_event", **log_dict)
            elif event.severity.value == "warning":
                self._logger.warning("sync_event", **log_dict)
            elif event.severity.value == "debug":
                self._logger.debug("sync_event", **log_dict)
            else:
                self._logger.info("sync_event", **log_dict)
        except Exception:
            # Logging must never break the sync flow
            return False
        return True

    def log_record_created_remote(self, kind: str, record_id: str) -> None:
        self.log(SyncEventBuilder.record_created_remote(kind, record_id))

    def log_record_stored_offline(self, kind: str, record_id: str, reason: str) -> None:
        self.log(SyncEventBuilder.record_stored_offline(kind, record_id, reason))

    def log_remote_create_failed(self, kind: str, error_message: str) -> None:
        self.log(SyncEventBuilder.remote_create_failed(kind, error_message))

    def log_remote_list_failed(self, kind: str, error_message: str) -> None:
        self.log(SyncEventBuilder.remote_list_failed(kind, error_message))

    def log_remote_row_skipped(self, kind: str, record_id: str, error_message: str) -> None:
        self.log(SyncEventBuilder.remote_row_skipped(kind, record_id, error_message))

    def log_sweep_started(self, pending: int) -> None:
        self.log(SyncEventBuilder.sweep_started(pending))

    def log_sweep_skipped(self, reason: str) -> None:
        self.log(SyncEventBuilder.sweep_skipped(reason))

    def log_sweep_completed(self, attempted: int, synced: int, failed: int) -> None:
        self.log(SyncEventBuilder.sweep_completed(attempted, synced, failed))

    def log_record_synced(self, kind: str, temp_id: str, server_id: str) -> None:
        self.log(SyncEventBuilder.record_synced(kind, temp_id, server_id))

    def log_record_sync_failed(self, kind: str, record_id: str, error_message: str) -> None:
        self.log(SyncEventBuilder.record_sync_failed(kind, record_id, error_message))

    def log_failed_records_retried(self, count: int, kind: Optional[str] = None) -> None:
        self.log(SyncEventBuilder.failed_records_retried(count, kind))

    def log_synced_records_cleared(self, count: int, kind: Optional[str] = None) -> None:
        self.log(SyncEventBuilder.synced_records_cleared(count, kind))

    def log_connectivity_changed(self, online: bool) -> None:
        self.log(SyncEventBuilder.connectivity_changed(online))
