"""
Audit Logger

Every write to the ledger and every remote failure is logged.

The audit logger:
- Always writes to the local structured log (the diagnostic channel)
- Appends to audit storage when one is configured
- Never raises: a failing audit sink must not break the form
"""

import logging
import sys
from typing import Optional
from uuid import UUID, uuid4

import structlog

from ledgerlite.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from ledgerlite.services.storage import AuditStorageInterface


structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: str = "INFO") -> None:
    """Route stdlib logging (and so structlog) to stderr at the given level."""
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, level.upper(), logging.INFO),
    )


def get_logger(name: Optional[str] = None):
    """Structured logger for code that has no AuditLogger at hand."""
    return structlog.get_logger(name)


_SEVERITY_METHODS = {
    AuditSeverity.DEBUG: "debug",
    AuditSeverity.INFO: "info",
    AuditSeverity.WARNING: "warning",
    AuditSeverity.ERROR: "error",
    AuditSeverity.CRITICAL: "critical",
}


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage (for persistence and user visibility)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("ledgerlite.audit")

    @property
    def storage(self) -> Optional[AuditStorageInterface]:
        return self._storage

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Returns True if storage write succeeded (or no storage configured).
        """
        method = _SEVERITY_METHODS.get(event.severity, "info")
        getattr(self._logger, method)("audit_event", **event.to_log_dict())

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_entry_submitted(
        self,
        description: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.entry_submitted(description, correlation_id))

    async def log_validation_failed(
        self,
        missing_fields: list[str],
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.validation_failed(
            missing_fields=missing_fields,
            issues=issues,
            correlation_id=correlation_id,
        ))

    async def log_entry_saved(
        self,
        entry_id: str,
        description: str,
        amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.entry_saved(
            entry_id=entry_id,
            description=description,
            amount=amount,
            correlation_id=correlation_id,
        ))

    async def log_entry_deleted(
        self,
        entry_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.entry_deleted(entry_id, correlation_id))

    async def log_storage_failed(
        self,
        operation: str,
        error_message: str,
        entry_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.storage_failed(
            operation=operation,
            error_message=error_message,
            entry_id=entry_id,
            correlation_id=correlation_id,
        ))

    async def log_suggestion_requested(self, description: str) -> None:
        await self.log(AuditEventBuilder.suggestion_requested(description))

    async def log_suggestion_returned(self, description: str, category: str) -> None:
        await self.log(AuditEventBuilder.suggestion_returned(description, category))

    async def log_suggestion_failed(self, description: str, error_message: str) -> None:
        await self.log(AuditEventBuilder.suggestion_failed(description, error_message))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a user action (e.g., one form submission).
    """
    return uuid4()
