"""Services package."""

from budgeter.services.connectivity import ConnectivityMonitor
from budgeter.services.storage import (
    ConnectionError,
    DuplicateError,
    GoogleSheetsClient,
    GoogleSheetsRemoteStore,
    InMemoryRecordStore,
    LocalRecordStoreInterface,
    LocalStoreError,
    NotFoundError,
    RemoteRecordStoreInterface,
    RemoteStoreError,
    SQLiteRecordStore,
    StorageError,
)

__all__ = [
    # Connectivity
    "ConnectivityMonitor",
    # Storage services
    "ConnectionError",
    "DuplicateError",
    "GoogleSheetsClient",
    "GoogleSheetsRemoteStore",
    "InMemoryRecordStore",
    "LocalRecordStoreInterface",
    "LocalStoreError",
    "NotFoundError",
    "RemoteRecordStoreInterface",
    "RemoteStoreError",
    "SQLiteRecordStore",
    "StorageError",
]
