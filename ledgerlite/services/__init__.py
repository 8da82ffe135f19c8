"""Services package."""

from ledgerlite.services.storage import (
    AuditStorageInterface,
    ConnectionError,
    DuplicateError,
    EntryStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsEntryStorage,
    InMemoryAuditStorage,
    InMemoryEntryStorage,
    StorageError,
)
from ledgerlite.services.store_adapter import (
    EntryStore,
    Subscription,
    build_view,
    filter_by_date,
    map_records,
    sort_by_date,
)

__all__ = [
    # Storage services
    "AuditStorageInterface",
    "ConnectionError",
    "DuplicateError",
    "EntryStorageInterface",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsEntryStorage",
    "InMemoryAuditStorage",
    "InMemoryEntryStorage",
    "StorageError",
    # Store adapter
    "EntryStore",
    "Subscription",
    "build_view",
    "filter_by_date",
    "map_records",
    "sort_by_date",
]
