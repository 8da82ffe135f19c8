"""
Storage Services Package

Abstract interfaces plus Google Sheets and in-memory backends
for the entries collection and the audit log.
"""

from ledgerlite.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    DuplicateError,
    EntryStorageInterface,
    StorageError,
)
from ledgerlite.services.storage.google_sheets import (
    ENTRY_COLUMNS,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsEntryStorage,
)
from ledgerlite.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryEntryStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "EntryStorageInterface",
    # Exceptions
    "ConnectionError",
    "DuplicateError",
    "StorageError",
    # Google Sheets implementation
    "ENTRY_COLUMNS",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsEntryStorage",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryEntryStorage",
]
