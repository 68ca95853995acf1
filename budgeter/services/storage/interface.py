"""
Abstract Storage Interfaces

DESIGN DECISION: The sync manager talks to two stores it does not own:
1. A local embedded record store (durable on this device)
2. A remote record store (the hosted backend, source of truth)

Both sit behind abstract interfaces. This allows us to:
1. Swap the hosted backend without touching sync logic
2. Use in-memory storage for testing
3. Keep the core free of any client library details

The interfaces are intentionally narrow - just the operations the
sync manager needs.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from budgeter.models.record import RecordKind, SyncRecord


class LocalRecordStoreInterface(ABC):
    """
    Abstract interface for the local record store.

    Filters are field equalities on the indexed fields:
    id, kind, owner, sync_status. Results come back in insertion order.

    Failures raise LocalStoreError and are never masked - there is
    no fallback tier beneath local storage.
    """

    @abstractmethod
    async def insert(self, record: SyncRecord) -> None:
        """
        Insert a new record.

        Raises:
            DuplicateError: If a record with the same id exists
            LocalStoreError: If the write fails
        """
        pass

    @abstractmethod
    async def get(self, record_id: str) -> Optional[SyncRecord]:
        """
        Retrieve a record by id.

        Returns:
            The record if found, None otherwise
        """
        pass

    @abstractmethod
    async def find(self, **filters: Any) -> list[SyncRecord]:
        """
        List records matching every given field equality.

        Raises:
            ValueError: If a filter names a non-indexed field
        """
        pass

    @abstractmethod
    async def update(self, record_id: str, changes: dict[str, Any]) -> SyncRecord:
        """
        Merge changes into an existing record (last write wins).

        An 'id' key in changes replaces the record's identifier in place;
        the record keeps its position in insertion order.

        Returns:
            The updated record

        Raises:
            NotFoundError: If the record doesn't exist
            DuplicateError: If the new id is already taken
        """
        pass

    @abstractmethod
    async def delete(self, record_id: str) -> bool:
        """
        Delete a record by id.

        Returns:
            True if a record was deleted, False if none existed
        """
        pass

    @abstractmethod
    async def count(self, **filters: Any) -> int:
        """Count records matching every given field equality."""
        pass


class RemoteRecordStoreInterface(ABC):
    """
    Abstract interface for the hosted backend.

    Authentication is established by the implementation; the sync
    manager never handles credentials.
    """

    @abstractmethod
    async def create_record(
        self,
        kind: RecordKind,
        row: dict[str, Any],
    ) -> dict[str, Any]:
        """
        Create a record from business fields.

        Args:
            kind: Which table the row belongs to
            row: Business fields plus user_id

        Returns:
            The stored row, including its server-assigned 'id'

        Raises:
            RemoteStoreError: If the backend rejects or cannot be reached
        """
        pass

    @abstractmethod
    async def list_records(
        self,
        kind: RecordKind,
        owner: str,
        order_by: str = "created_at",
        descending: bool = True,
    ) -> list[dict[str, Any]]:
        """
        List all rows of a kind owned by a user.

        Raises:
            RemoteStoreError: If the backend cannot be reached
        """
        pass


def check_filters(filters: dict[str, Any], allowed: tuple[str, ...]) -> None:
    """Reject filters on fields the local store does not index."""
    unknown = set(filters) - set(allowed)
    if unknown:
        raise ValueError(
            f"Cannot filter on {sorted(unknown)}; indexed fields are {list(allowed)}"
        )


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class LocalStoreError(StorageError):
    """The local record store failed. Always propagated to the caller."""
    pass


class RemoteStoreError(StorageError):
    """The remote store rejected a request or could not be reached."""
    pass


class ConnectionError(RemoteStoreError):
    """Could not connect to the remote backend."""
    pass
