"""
In-Memory Storage

Keeps the entries collection in a list guarded by a lock. Used by the
tests and when STORAGE_BACKEND=memory, so the app runs without a
spreadsheet.
"""

import threading
from typing import Any, Iterable, Optional
from uuid import uuid4

from ledgerlite.models.audit import AuditEvent
from ledgerlite.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    EntryStorageInterface,
)


class InMemoryEntryStorage(EntryStorageInterface):
    """Entries collection held in process memory."""

    def __init__(self, records: Optional[Iterable[dict[str, Any]]] = None):
        self._lock = threading.Lock()
        self._records: list[dict[str, Any]] = []
        for record in records or []:
            self._insert(dict(record))

    def _insert(self, record: dict[str, Any]) -> str:
        entry_id = str(record.get("id") or uuid4().hex)
        if any(existing["id"] == entry_id for existing in self._records):
            raise DuplicateError(f"Entry already exists: {entry_id}")
        record["id"] = entry_id
        self._records.append(record)
        return entry_id

    async def fetch_records(self) -> list[dict[str, Any]]:
        with self._lock:
            return [dict(record) for record in self._records]

    async def add_record(self, record: dict[str, Any]) -> str:
        record = {key: value for key, value in record.items() if key != "id"}
        with self._lock:
            return self._insert(record)

    async def delete_record(self, entry_id: str) -> bool:
        with self._lock:
            for idx, record in enumerate(self._records):
                if record["id"] == entry_id:
                    del self._records[idx]
                    return True
        return False


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only audit log held in process memory."""

    def __init__(self):
        self._lock = threading.Lock()
        self._events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        with self._lock:
            self._events.append(event)
        return True

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        with self._lock:
            events = sorted(self._events, key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
