"""
Audit Models for LedgerLite

Every write to the ledger, every suggestion request and every remote
failure is recorded as an audit event. Events go to the local
structured log and, when configured, to an append-only worksheet.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Form submission
    ENTRY_SUBMITTED = "entry_submitted"
    VALIDATION_FAILED = "validation_failed"

    # Persistence
    ENTRY_SAVED = "entry_saved"
    ENTRY_DELETED = "entry_deleted"
    SAVE_FAILED = "save_failed"
    DELETE_FAILED = "delete_failed"

    # Category suggestion
    SUGGESTION_REQUESTED = "suggestion_requested"
    SUGGESTION_RETURNED = "suggestion_returned"
    SUGGESTION_FAILED = "suggestion_failed"

    # Live subscription
    SUBSCRIPTION_OPENED = "subscription_opened"
    SUBSCRIPTION_CLOSED = "subscription_closed"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


# Column order of the audit worksheet
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]


class AuditEvent(BaseModel):
    """A single audit event."""

    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Store ids are opaque strings, not UUIDs
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'entry', 'suggestion')"
    )
    entity_id: Optional[str] = None

    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one form submission)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(default_factory=dict)

    error_message: Optional[str] = None
    is_user_action: bool = False

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """Convert to a row in AUDIT_COLUMNS order."""
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            self.entity_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]

    @classmethod
    def from_sheets_row(cls, row: list) -> "AuditEvent":
        """Inverse of to_sheets_row; short rows are padded with blanks."""
        row = list(row) + [""] * (len(AUDIT_COLUMNS) - len(row))
        return cls(
            event_id=UUID(row[0]),
            timestamp=datetime.fromisoformat(row[1]),
            event_type=AuditEventType(row[2]),
            severity=AuditSeverity(row[3]),
            entity_type=row[4] or None,
            entity_id=row[5] or None,
            correlation_id=UUID(row[6]) if row[6] else None,
            description=row[7],
            details=json.loads(row[8]) if row[8] else {},
            error_message=row[9] or None,
            is_user_action=row[10].lower() == "true",
        )


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.entry_saved(entry_id, "Rent", "2000")
        event = AuditEventBuilder.suggestion_failed("Rent", "timeout")
    """

    @staticmethod
    def entry_submitted(
        description: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTRY_SUBMITTED,
            entity_type="entry",
            correlation_id=correlation_id,
            description=f"Entry submitted: {description}"[:500],
            is_user_action=True,
        )

    @staticmethod
    def validation_failed(
        missing_fields: list[str],
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="entry",
            correlation_id=correlation_id,
            description="Entry blocked: incomplete form",
            details={
                "missing_fields": missing_fields,
                "issues": issues,
            },
            is_user_action=True,
        )

    @staticmethod
    def entry_saved(
        entry_id: str,
        description: str,
        amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTRY_SAVED,
            entity_type="entry",
            entity_id=entry_id,
            correlation_id=correlation_id,
            description=f"Entry saved: {description}"[:500],
            details={"amount": amount},
        )

    @staticmethod
    def entry_deleted(
        entry_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTRY_DELETED,
            entity_type="entry",
            entity_id=entry_id,
            correlation_id=correlation_id,
            description=f"Entry deleted: {entry_id}",
            is_user_action=True,
        )

    @staticmethod
    def storage_failed(
        operation: str,
        error_message: str,
        entry_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        event_type = (
            AuditEventType.DELETE_FAILED if operation == "delete"
            else AuditEventType.SAVE_FAILED
        )
        return AuditEvent(
            event_type=event_type,
            severity=AuditSeverity.ERROR,
            entity_type="entry",
            entity_id=entry_id,
            correlation_id=correlation_id,
            description=f"Entry {operation} failed",
            error_message=error_message,
        )

    @staticmethod
    def suggestion_requested(description: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SUGGESTION_REQUESTED,
            severity=AuditSeverity.DEBUG,
            entity_type="suggestion",
            description="Category suggestion requested",
            details={"description": description},
        )

    @staticmethod
    def suggestion_returned(description: str, category: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SUGGESTION_RETURNED,
            severity=AuditSeverity.DEBUG,
            entity_type="suggestion",
            description=f"Category suggested: {category}"[:500],
            details={"description": description, "category": category},
        )

    @staticmethod
    def suggestion_failed(description: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SUGGESTION_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="suggestion",
            description="Failed to suggest category",
            details={"description": description},
            error_message=error_message,
        )

    @staticmethod
    def subscription_opened(selected_date: Optional[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SUBSCRIPTION_OPENED,
            severity=AuditSeverity.DEBUG,
            entity_type="subscription",
            description=f"Watching entries for {selected_date or 'all dates'}",
        )

    @staticmethod
    def subscription_closed(selected_date: Optional[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SUBSCRIPTION_CLOSED,
            severity=AuditSeverity.DEBUG,
            entity_type="subscription",
            description=f"Stopped watching entries for {selected_date or 'all dates'}",
        )
