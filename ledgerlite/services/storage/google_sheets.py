"""
Google Sheets Storage Implementation

DESIGN DECISION: The "entries" collection lives in a worksheet:
1. The user can see and edit their ledger directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)

TRADEOFFS:
- No push notifications (live subscriptions poll, see store_adapter)
- No transactions (one append or one row delete per operation)
- No server-side queries (we filter in Python)

Columns are matched by the header row, so reordering columns in the
sheet does not break reads or writes.
"""

import threading
from datetime import datetime
from typing import Any, Optional
from uuid import uuid4

import gspread
from google.oauth2.service_account import Credentials
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from ledgerlite.config import GoogleSheetsSettings, get_settings
from ledgerlite.models.audit import AUDIT_COLUMNS, AuditEvent
from ledgerlite.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    EntryStorageInterface,
    StorageError,
)


# Column layout of a freshly created entries worksheet
ENTRY_COLUMNS = [
    "id",
    "date",
    "description",
    "category",
    "amount",
    "type",
    "created_at",
]

SCOPES = [
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/drive",
]


class GoogleSheetsClient:
    """
    The single connection handle to the spreadsheet.

    Create one per process and hand it to every storage backend;
    the authorized client, the opened spreadsheet and the worksheet
    handles are reused. Poll threads share it, so lazy setup is
    done under a lock.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._sheets: dict[str, gspread.Worksheet] = {}
        self._lock = threading.RLock()
        self._settings = settings or get_settings().google_sheets

    @retry(
        retry=retry_if_exception_type(ConnectionError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        with self._lock:
            if self._client is None:
                try:
                    credentials = Credentials.from_service_account_file(
                        self._settings.credentials_path,
                        scopes=SCOPES,
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
        with self._lock:
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

    def _get_or_create_sheet(
        self,
        title: str,
        columns: list[str],
        rows: int,
    ) -> gspread.Worksheet:
        with self._lock:
            sheet = self._sheets.get(title)
            if sheet is None:
                spreadsheet = self.get_spreadsheet()
                try:
                    sheet = spreadsheet.worksheet(title)
                except gspread.WorksheetNotFound:
                    sheet = spreadsheet.add_worksheet(
                        title=title,
                        rows=rows,
                        cols=len(columns),
                    )
                    sheet.append_row(columns)
                self._sheets[title] = sheet
            return sheet

    def get_entries_sheet(self) -> gspread.Worksheet:
        """Get or create the entries worksheet."""
        return self._get_or_create_sheet(
            self._settings.entries_sheet_name, ENTRY_COLUMNS, rows=1000
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the audit worksheet."""
        return self._get_or_create_sheet(
            self._settings.audit_sheet_name, AUDIT_COLUMNS, rows=5000
        )


class GoogleSheetsEntryStorage(EntryStorageInterface):
    """
    Google Sheets implementation of the entries collection.

    One record per row; the first row is the header.
    """

    def __init__(self, client: GoogleSheetsClient):
        self._client = client

    @staticmethod
    def _header(all_rows: list[list[str]]) -> list[str]:
        if not all_rows or not any(all_rows[0]):
            return list(ENTRY_COLUMNS)
        return [cell.strip().lower() for cell in all_rows[0]]

    @staticmethod
    def _row_to_record(header: list[str], row: list[str]) -> dict[str, Any]:
        """Zip a row with the header; missing trailing cells become blanks."""
        padded = list(row) + [""] * (len(header) - len(row))
        return {name: padded[idx] for idx, name in enumerate(header) if name}

    async def fetch_records(self) -> list[dict[str, Any]]:
        """Read every non-empty row as a record."""
        try:
            sheet = self._client.get_entries_sheet()
            all_rows = sheet.get_all_values()
        except Exception as e:
            raise StorageError(f"Failed to read entries: {e}")

        header = self._header(all_rows)
        records = []
        for row in all_rows[1:]:
            if not row or not any(cell.strip() for cell in row):
                continue
            records.append(self._row_to_record(header, row))
        return records

    async def add_record(self, record: dict[str, Any]) -> str:
        """Append a row with a fresh id."""
        entry_id = uuid4().hex
        values = {
            **record,
            "id": entry_id,
            "created_at": datetime.utcnow().isoformat(),
        }
        try:
            sheet = self._client.get_entries_sheet()
            header_row = sheet.row_values(1)
            if not any(cell.strip() for cell in header_row):
                # Empty worksheet: the first row must be the header
                sheet.append_row(list(ENTRY_COLUMNS), value_input_option="RAW")
                header_row = list(ENTRY_COLUMNS)
            header = self._header([header_row])
            row = ["" if values.get(name) is None else str(values.get(name)) for name in header]
            sheet.append_row(row, value_input_option="RAW")
        except Exception as e:
            raise StorageError(f"Failed to save entry: {e}")
        return entry_id

    async def delete_record(self, entry_id: str) -> bool:
        """Delete the first row whose id column matches."""
        try:
            sheet = self._client.get_entries_sheet()
            all_rows = sheet.get_all_values()
            header = self._header(all_rows)
            id_col = header.index("id") if "id" in header else 0

            # Row 1 is the header; sheet rows are 1-based
            for idx, row in enumerate(all_rows[1:], start=2):
                if len(row) > id_col and row[id_col] == entry_id:
                    sheet.delete_rows(idx)
                    return True
            return False
        except Exception as e:
            raise StorageError(f"Failed to delete entry: {e}")


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: GoogleSheetsClient):
        self._client = client

    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event; the caller decides what a failure means."""
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            raise StorageError(f"Failed to write audit event: {e}")

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        """Get recent events, skipping rows that no longer parse."""
        try:
            sheet = self._client.get_audit_sheet()
            all_rows = sheet.get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

        events = []
        for row in all_rows:
            if row and row[0]:
                try:
                    events.append(AuditEvent.from_sheets_row(row))
                except Exception:
                    continue

        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
