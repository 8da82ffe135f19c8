"""Entry validation package."""

from ledgerlite.validation.validator import (
    INCOMPLETE_ENTRY_MESSAGE,
    EntryValidator,
    IncompleteEntryError,
)

__all__ = ["INCOMPLETE_ENTRY_MESSAGE", "EntryValidator", "IncompleteEntryError"]
