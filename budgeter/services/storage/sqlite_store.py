"""
SQLite Local Record Store

DESIGN DECISION: SQLite is the embedded store for offline records because:
1. It ships with Python, no server to run on the device
2. Writes are durable across app restarts
3. Indexed lookups by owner and sync_status are cheap

LAYOUT:
- One 'records' table for every kind
- Indexed metadata columns (id, kind, owner, sync_status)
- Business fields as a JSON document (Decimals kept as strings)
- An autoincrement 'seq' column fixes insertion order, and survives
  identity substitution because only 'id' changes

Any sqlite3 failure is raised as LocalStoreError. Nothing is masked.
"""

import json
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any, Optional, Union

from budgeter.models.record import INDEXED_FIELDS, SyncRecord
from budgeter.services.storage.interface import (
    DuplicateError,
    LocalRecordStoreInterface,
    LocalStoreError,
    NotFoundError,
    check_filters,
)


SCHEMA = """
CREATE TABLE IF NOT EXISTS records (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    id TEXT NOT NULL UNIQUE,
    kind TEXT NOT NULL,
    owner TEXT NOT NULL,
    sync_status TEXT NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    sync_error TEXT,
    payload_json TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_records_owner ON records(owner);
CREATE INDEX IF NOT EXISTS idx_records_sync_status ON records(sync_status);
CREATE INDEX IF NOT EXISTS idx_records_kind ON records(kind);
"""

RECORD_COLUMNS = (
    "id",
    "kind",
    "owner",
    "sync_status",
    "created_at",
    "updated_at",
    "sync_error",
    "payload_json",
)


class SQLiteRecordStore(LocalRecordStoreInterface):
    """
    SQLite implementation of the local record store.

    Holds one connection for its lifetime, so ':memory:' databases work.
    """

    def __init__(self, database_path: Union[str, Path] = "budgeter_offline.db"):
        self._database_path = str(database_path)
        self._conn: Optional[sqlite3.Connection] = None

    def connect(self) -> sqlite3.Connection:
        """Open the database and create the schema if needed."""
        if self._conn is None:
            try:
                conn = sqlite3.connect(self._database_path, timeout=30.0)
                conn.row_factory = sqlite3.Row
                if self._database_path != ":memory:":
                    conn.execute("PRAGMA journal_mode=WAL")
                conn.executescript(SCHEMA)
                conn.commit()
            except sqlite3.Error as e:
                raise LocalStoreError(
                    f"Failed to open local store at {self._database_path}: {e}"
                )
            self._conn = conn
        return self._conn

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def _record_to_row(self, record: SyncRecord) -> tuple:
        """Convert a SyncRecord to column values in RECORD_COLUMNS order."""
        return (
            record.id,
            record.kind.value,
            record.owner,
            record.sync_status.value,
            record.created_at.isoformat(),
            record.updated_at.isoformat(),
            record.sync_error,
            record.payload.model_dump_json(),
        )

    def _row_to_record(self, row: sqlite3.Row) -> SyncRecord:
        """Convert a table row back to a SyncRecord."""
        return SyncRecord(
            id=row["id"],
            owner=row["owner"],
            sync_status=row["sync_status"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
            sync_error=row["sync_error"],
            payload=json.loads(row["payload_json"]),
        )

    def _where(self, filters: dict[str, Any]) -> tuple[str, list]:
        check_filters(filters, INDEXED_FIELDS)
        if not filters:
            return "", []
        clauses = [f"{field} = ?" for field in filters]
        values = [getattr(v, "value", v) for v in filters.values()]
        return " WHERE " + " AND ".join(clauses), values

    async def insert(self, record: SyncRecord) -> None:
        conn = self.connect()
        placeholders = ", ".join("?" for _ in RECORD_COLUMNS)
        try:
            with conn:
                conn.execute(
                    f"INSERT INTO records ({', '.join(RECORD_COLUMNS)}) VALUES ({placeholders})",
                    self._record_to_row(record),
                )
        except sqlite3.IntegrityError:
            raise DuplicateError(f"Record already exists: {record.id}")
        except sqlite3.Error as e:
            raise LocalStoreError(f"Failed to insert record: {e}")

    async def get(self, record_id: str) -> Optional[SyncRecord]:
        conn = self.connect()
        try:
            row = conn.execute(
                "SELECT * FROM records WHERE id = ?", (record_id,)
            ).fetchone()
        except sqlite3.Error as e:
            raise LocalStoreError(f"Failed to get record: {e}")
        return self._row_to_record(row) if row else None

    async def find(self, **filters: Any) -> list[SyncRecord]:
        conn = self.connect()
        where, values = self._where(filters)
        try:
            rows = conn.execute(
                f"SELECT * FROM records{where} ORDER BY seq", values
            ).fetchall()
        except sqlite3.Error as e:
            raise LocalStoreError(f"Failed to query records: {e}")
        return [self._row_to_record(row) for row in rows]

    async def update(self, record_id: str, changes: dict[str, Any]) -> SyncRecord:
        current = await self.get(record_id)
        if current is None:
            raise NotFoundError(f"Record not found: {record_id}")

        updated = current.merged(changes)
        assignments = ", ".join(f"{column} = ?" for column in RECORD_COLUMNS)
        conn = self.connect()
        try:
            with conn:
                conn.execute(
                    f"UPDATE records SET {assignments} WHERE id = ?",
                    (*self._record_to_row(updated), record_id),
                )
        except sqlite3.IntegrityError:
            raise DuplicateError(f"Record already exists: {updated.id}")
        except sqlite3.Error as e:
            raise LocalStoreError(f"Failed to update record: {e}")
        return updated

    async def delete(self, record_id: str) -> bool:
        conn = self.connect()
        try:
            with conn:
                cursor = conn.execute("DELETE FROM records WHERE id = ?", (record_id,))
        except sqlite3.Error as e:
            raise LocalStoreError(f"Failed to delete record: {e}")
        return cursor.rowcount > 0

    async def count(self, **filters: Any) -> int:
        conn = self.connect()
        where, values = self._where(filters)
        try:
            (total,) = conn.execute(
                f"SELECT COUNT(*) FROM records{where}", values
            ).fetchone()
        except sqlite3.Error as e:
            raise LocalStoreError(f"Failed to count records: {e}")
        return total
