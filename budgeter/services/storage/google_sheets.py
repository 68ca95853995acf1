"""
Google Sheets Remote Store Implementation

DESIGN DECISION: Google Sheets is the bundled remote backend because:
1. Non-technical users can view their data directly in Sheets
2. No database server to run or pay for
3. Built-in backup (Google's infrastructure)
4. Easy to export/migrate later

TRADEOFFS:
- Not suitable for high-volume data (we're fine for personal use)
- No row-level security (the service account sees every user's rows)
- Limited query capabilities (we filter in Python)

LAYOUT: one worksheet per remote table (income_sources, transactions, ...).
Columns are id, user_id, created_at, updated_at, then the business fields
of that record kind. The server side assigns UUIDs and timestamps.

gspread is blocking, so every call runs in a worker thread. That keeps the
event loop free and lets the sync manager's timeout abandon a hung call.

KNOWN GAP: Appends are not retried, but an abandoned append is not
cancelled either. The worker thread keeps running and the row may still
land after the caller gave up. The sync manager then marks the record
FAILED, and a later retry_failed() sweep appends a second copy under a
new id. Check the sheet for duplicates after timeouts.
"""

import asyncio
from typing import Any, Optional
from uuid import uuid4

import gspread
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from budgeter.config import GoogleSheetsSettings, get_settings
from budgeter.models.record import PAYLOAD_MODELS, RecordKind, utcnow
from budgeter.services.storage.interface import (
    ConnectionError,
    RemoteRecordStoreInterface,
    RemoteStoreError,
)


METADATA_COLUMNS = ["id", "user_id", "created_at", "updated_at"]


def columns_for(kind: RecordKind) -> list[str]:
    """Worksheet header for a record kind."""
    business = [name for name in PAYLOAD_MODELS[kind].model_fields if name != "kind"]
    return METADATA_COLUMNS + business


def _to_cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return str(value).lower()
    return str(value)


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def get_table(self, kind: RecordKind) -> gspread.Worksheet:
        """Get or create the worksheet holding one record kind."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(kind.table_name)
        except gspread.WorksheetNotFound:
            columns = columns_for(kind)
            sheet = spreadsheet.add_worksheet(
                title=kind.table_name,
                rows=1000,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet


class GoogleSheetsRemoteStore(RemoteRecordStoreInterface):
    """
    Google Sheets implementation of the remote record store.

    Records are stored as rows with one record per row.
    Empty cells come back as None.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_dict(self, header: list[str], row: list[str]) -> dict[str, Any]:
        """Convert a spreadsheet row to a field mapping."""
        padded = row + [""] * (len(header) - len(row))
        return {
            column: (value if value != "" else None)
            for column, value in zip(header, padded)
        }

    def _append(self, kind: RecordKind, stored: dict[str, Any]) -> None:
        sheet = self._client.get_table(kind)
        header = sheet.row_values(1) or columns_for(kind)
        sheet.append_row(
            [_to_cell(stored.get(column)) for column in header],
            value_input_option="RAW",
        )

    def _read_all(self, kind: RecordKind) -> list[dict[str, Any]]:
        sheet = self._client.get_table(kind)
        all_rows = sheet.get_all_values()
        if not all_rows:
            return []
        header, body = all_rows[0], all_rows[1:]
        return [
            self._row_to_dict(header, row)
            for row in body
            if row and row[0]  # Skip empty rows
        ]

    # Not retried: appends are not idempotent. A timed-out append may still land.
    async def create_record(
        self,
        kind: RecordKind,
        row: dict[str, Any],
    ) -> dict[str, Any]:
        """Append a row and return it with its server-assigned id."""
        now = utcnow().isoformat()
        stored = {
            **row,
            "id": str(uuid4()),
            "created_at": now,
            "updated_at": now,
        }
        try:
            await asyncio.to_thread(self._append, kind, stored)
        except ConnectionError:
            raise
        except Exception as e:
            raise RemoteStoreError(f"Failed to create {kind.value} record: {e}")
        return stored

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def list_records(
        self,
        kind: RecordKind,
        owner: str,
        order_by: str = "created_at",
        descending: bool = True,
    ) -> list[dict[str, Any]]:
        """List a user's rows, sorted on one column."""
        try:
            rows = await asyncio.to_thread(self._read_all, kind)
        except ConnectionError:
            raise
        except Exception as e:
            raise RemoteStoreError(f"Failed to list {kind.value} records: {e}")

        owned = [row for row in rows if row.get("user_id") == owner]
        # ISO timestamps and dates sort correctly as strings
        owned.sort(key=lambda r: r.get(order_by) or "", reverse=descending)
        return owned
