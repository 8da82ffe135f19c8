"""
Data Models Package

Pydantic models for ledger entries, category suggestions,
validation results and audit events.
"""

from ledgerlite.models.entry import (
    EntryDraft,
    EntryType,
    LedgerEntry,
    LedgerTotals,
    SuggestCategoryInput,
    SuggestCategoryOutput,
    ValidationIssue,
    ValidationResult,
    parse_amount,
    parse_entry_date,
)
from ledgerlite.models.audit import (
    AUDIT_COLUMNS,
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Entry models
    "EntryDraft",
    "EntryType",
    "LedgerEntry",
    "LedgerTotals",
    "SuggestCategoryInput",
    "SuggestCategoryOutput",
    "ValidationIssue",
    "ValidationResult",
    "parse_amount",
    "parse_entry_date",
    # Audit models
    "AUDIT_COLUMNS",
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
