"""
Abstract Storage Interface

DESIGN DECISION: The entry store is a collection of raw records
(plain dicts). Mapping records to LedgerEntry objects, filtering and
sorting belong to the store adapter, not to the backend. This keeps
each backend down to the three operations a document collection
offers: read everything, append, delete by id.

Backends:
1. Google Sheets (one worksheet per collection, one row per record)
2. In-memory (tests and offline runs)
"""

from abc import ABC, abstractmethod
from typing import Any

from ledgerlite.models.audit import AuditEvent


class EntryStorageInterface(ABC):
    """
    Abstract interface for the "entries" collection.

    Records carry the keys id, date, description, category,
    amount and type. Values may come back as strings.
    """

    @abstractmethod
    async def fetch_records(self) -> list[dict[str, Any]]:
        """
        Read every record in the collection.

        Returns:
            Raw records in storage order

        Raises:
            StorageError: If the read fails
        """
        pass

    @abstractmethod
    async def add_record(self, record: dict[str, Any]) -> str:
        """
        Append a record to the collection.

        Args:
            record: Field values; any "id" key is ignored

        Returns:
            The identifier the store assigned

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def delete_record(self, entry_id: str) -> bool:
        """
        Delete a record by identifier.

        Returns:
            True if a record was deleted, False if none matched

        Raises:
            StorageError: If the delete fails
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event; returns True if it was stored."""
        pass

    @abstractmethod
    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        """Get the most recent audit events (newest first)."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a record whose id already exists."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
