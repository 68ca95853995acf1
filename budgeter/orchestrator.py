"""
Component wiring for Budgeter

Builds every long-lived object once at startup and hands them back to the
host application. There is no module-level singleton: whoever calls
create_app_components() owns the result.

DESIGN DECISION: A missing remote backend is not fatal. The app then runs
fully offline; records stay PENDING until a backend is configured.
"""

import logging
from typing import Optional

import structlog

from budgeter.audit import SyncAuditLogger
from budgeter.config import get_settings
from budgeter.services.connectivity import ConnectivityMonitor
from budgeter.services.storage import (
    GoogleSheetsClient,
    GoogleSheetsRemoteStore,
    LocalRecordStoreInterface,
    RemoteRecordStoreInterface,
    SQLiteRecordStore,
)
from budgeter.sync import AutoSyncTrigger, OfflineSyncManager


logger = structlog.get_logger(__name__)


def create_app_components(
    use_remote: bool = True,
    local_store: Optional[LocalRecordStoreInterface] = None,
    remote_store: Optional[RemoteRecordStoreInterface] = None,
    online: bool = True,
) -> tuple[OfflineSyncManager, AutoSyncTrigger, ConnectivityMonitor]:
    """
    Factory function to create all application components.

    Args:
        use_remote: Whether to initialize the Google Sheets remote store.
                    Set to False to run offline-only (or in tests).
        local_store: Local store to use instead of the configured SQLite file
        remote_store: Remote store to use instead of Google Sheets
        online: Initial connectivity state

    Returns:
        (sync_manager, auto_sync_trigger, connectivity)

    The trigger is returned unstarted; call start() inside the event loop.
    """
    settings = get_settings()
    if settings.app.debug_mode:
        logging.getLogger("budgeter").setLevel(logging.DEBUG)

    audit_logger = SyncAuditLogger()

    if local_store is None:
        local_store = SQLiteRecordStore(settings.local_store.database_path)

    if remote_store is None and use_remote:
        try:
            remote_store = GoogleSheetsRemoteStore(GoogleSheetsClient())
        except Exception as e:
            # Remote store not configured - continue offline-only
            logger.warning("remote_store_not_configured", error=str(e))
            remote_store = None

    connectivity = ConnectivityMonitor(online=online, settings=settings.sync)

    manager = OfflineSyncManager(
        local_store=local_store,
        remote_store=remote_store,
        connectivity=connectivity,
        settings=settings.sync,
        audit_logger=audit_logger,
    )
    trigger = AutoSyncTrigger(manager, connectivity, audit_logger=audit_logger)

    logger.info(
        "app_components_created",
        environment=settings.app.app_environment,
        debug_mode=settings.app.debug_mode,
        remote_configured=remote_store is not None,
    )
    return manager, trigger, connectivity
