"""
In-Memory Local Record Store

Keeps records in an insertion-ordered dict. Nothing survives the process,
so this is meant for tests and for running without a writable disk.
"""

from typing import Any, Optional

from budgeter.models.record import INDEXED_FIELDS, SyncRecord
from budgeter.services.storage.interface import (
    DuplicateError,
    LocalRecordStoreInterface,
    NotFoundError,
    check_filters,
)


def _field_value(record: SyncRecord, field: str) -> Any:
    if field == "kind":
        return record.kind.value
    value = getattr(record, field)
    return getattr(value, "value", value)


def _matches(record: SyncRecord, filters: dict[str, Any]) -> bool:
    return all(
        _field_value(record, field) == getattr(expected, "value", expected)
        for field, expected in filters.items()
    )


class InMemoryRecordStore(LocalRecordStoreInterface):
    """Dict-backed implementation of the local record store."""

    def __init__(self):
        self._records: dict[str, SyncRecord] = {}

    async def insert(self, record: SyncRecord) -> None:
        if record.id in self._records:
            raise DuplicateError(f"Record already exists: {record.id}")
        self._records[record.id] = record

    async def get(self, record_id: str) -> Optional[SyncRecord]:
        return self._records.get(record_id)

    async def find(self, **filters: Any) -> list[SyncRecord]:
        check_filters(filters, INDEXED_FIELDS)
        return [r for r in self._records.values() if _matches(r, filters)]

    async def update(self, record_id: str, changes: dict[str, Any]) -> SyncRecord:
        current = self._records.get(record_id)
        if current is None:
            raise NotFoundError(f"Record not found: {record_id}")

        updated = current.merged(changes)
        if updated.id != record_id:
            if updated.id in self._records:
                raise DuplicateError(f"Record already exists: {updated.id}")
            # Rebuild to keep the renamed record in its original position
            self._records = {
                (updated.id if key == record_id else key): (updated if key == record_id else value)
                for key, value in self._records.items()
            }
        else:
            self._records[record_id] = updated
        return updated

    async def delete(self, record_id: str) -> bool:
        return self._records.pop(record_id, None) is not None

    async def count(self, **filters: Any) -> int:
        return len(await self.find(**filters))
