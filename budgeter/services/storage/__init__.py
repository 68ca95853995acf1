"""
Storage Services Package

Provides abstract interfaces and concrete implementations for the local
(offline) record store and the remote (hosted) record store.
"""

from budgeter.services.storage.interface import (
    ConnectionError,
    DuplicateError,
    LocalRecordStoreInterface,
    LocalStoreError,
    NotFoundError,
    RemoteRecordStoreInterface,
    RemoteStoreError,
    StorageError,
)
from budgeter.services.storage.memory_store import InMemoryRecordStore
from budgeter.services.storage.sqlite_store import SQLiteRecordStore
from budgeter.services.storage.google_sheets import (
    GoogleSheetsClient,
    GoogleSheetsRemoteStore,
)

__all__ = [
    # Interfaces
    "LocalRecordStoreInterface",
    "RemoteRecordStoreInterface",
    # Exceptions
    "ConnectionError",
    "DuplicateError",
    "LocalStoreError",
    "NotFoundError",
    "RemoteStoreError",
    "StorageError",
    # Local implementations
    "InMemoryRecordStore",
    "SQLiteRecordStore",
    # Google Sheets implementation
    "GoogleSheetsClient",
    "GoogleSheetsRemoteStore",
]
