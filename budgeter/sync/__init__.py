"""Offline-first synchronization."""

from budgeter.sync.manager import OfflineSyncManager, describe_error
from budgeter.sync.trigger import AutoSyncTrigger

__all__ = [
    "AutoSyncTrigger",
    "OfflineSyncManager",
    "describe_error",
]
