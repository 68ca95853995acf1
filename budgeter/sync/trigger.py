"""
Automatic sweep scheduling.

Subscribes to connectivity transitions and starts a sweep as a background
task every time the process goes from offline to online.
"""

import asyncio
from typing import Callable, Optional

import structlog

from budgeter.audit import SyncAuditLogger
from budgeter.services.connectivity import ConnectivityMonitor
from budgeter.sync.manager import OfflineSyncManager


class AutoSyncTrigger:
    """
    Runs OfflineSyncManager.sync_pending() on reconnect.

    Must be started from inside a running event loop. A sweep already in
    flight is not cancelled by stop().
    """

    def __init__(
        self,
        manager: OfflineSyncManager,
        connectivity: ConnectivityMonitor,
        audit_logger: Optional[SyncAuditLogger] = None,
    ):
        self._manager = manager
        self._connectivity = connectivity
        self._audit_logger = audit_logger
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._tasks: set[asyncio.Task] = set()
        self._logger = structlog.get_logger(__name__)

    @property
    def running(self) -> bool:
        return self._unsubscribe is not None

    def start(self) -> None:
        if self._unsubscribe is None:
            self._unsubscribe = self._connectivity.subscribe(self._on_connectivity_change)

    def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _on_connectivity_change(self, online: bool) -> None:
        if self._audit_logger:
            self._audit_logger.log_connectivity_changed(online)
        if not online:
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._logger.warning("auto_sync_no_event_loop")
            return

        task = loop.create_task(self._manager.sync_pending())
        self._tasks.add(task)
        task.add_done_callback(self._on_sweep_done)

    def _on_sweep_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            # Local store failures end up here
            self._logger.error("auto_sync_failed", error=str(error))

    async def wait_idle(self) -> None:
        """Wait until every sweep this trigger started has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
