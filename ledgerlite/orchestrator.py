"""
Main Orchestrator for LedgerLite

Ties the components together behind the single-page ledger:
1. Category suggestion (description → prompt → category string)
2. Form/view controller (form state, submit, delete, date filter, totals)
3. Component factory (one store handle, one agent, one audit logger)

The controller knows nothing about Streamlit. The page in app/main.py
reads widgets, calls the controller and renders what it holds, so
every rule about the form can be exercised without a browser.
"""

import threading
import weakref
from datetime import date
from decimal import Decimal
from typing import NamedTuple, Optional, Union
from uuid import UUID

from ledgerlite.agents import CategorySuggestionAgent
from ledgerlite.audit import AuditLogger, create_correlation_id, get_logger
from ledgerlite.config import Settings, StorageBackend, get_settings
from ledgerlite.models.entry import (
    EntryDraft,
    EntryType,
    LedgerEntry,
    LedgerTotals,
    SuggestCategoryInput,
)
from ledgerlite.services.storage import (
    AuditStorageInterface,
    EntryStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsEntryStorage,
    InMemoryAuditStorage,
    InMemoryEntryStorage,
    StorageError,
)
from ledgerlite.services.store_adapter import EntryStore, Subscription
from ledgerlite.validation import EntryValidator, IncompleteEntryError


# Shown in place of a suggestion when the model call fails
SUGGESTION_ERROR = "Error suggesting category"

logger = get_logger("ledgerlite.orchestrator")


class CategorySuggestionFlow:
    """
    One suggestion request per call.

    No retry, no timeout, no cache: a repeated description is asked
    again. Any failure becomes SUGGESTION_ERROR.
    """

    def __init__(
        self,
        agent: CategorySuggestionAgent,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._agent = agent
        self._audit_logger = audit_logger

    async def suggest(self, description: str) -> Optional[str]:
        """Return a category, None for an empty description, or SUGGESTION_ERROR."""
        if not description or not description.strip():
            return None

        if self._audit_logger:
            await self._audit_logger.log_suggestion_requested(description)

        try:
            output = await self._agent.suggest_category(
                SuggestCategoryInput(description=description)
            )
        except Exception as e:
            if self._audit_logger:
                await self._audit_logger.log_suggestion_failed(description, str(e))
            else:
                logger.error("suggestion_failed", description=description, error=str(e))
            return SUGGESTION_ERROR

        if self._audit_logger:
            await self._audit_logger.log_suggestion_returned(description, output.category)
        return output.category


class _EntriesReceiver:
    """
    Hands one subscription's results to a controller.

    Holds the controller weakly and is owned by it, so the store never
    keeps a controller alive. Results are dropped once the controller
    has moved on to another receiver.
    """

    def __init__(self, controller: "LedgerFormController"):
        self._controller = weakref.ref(controller)

    def deliver(self, entries: list[LedgerEntry]) -> None:
        controller = self._controller()
        if controller is not None:
            controller._on_entries(self, entries)


class LedgerFormController:
    """
    UI state for the ledger page.

    Form fields: date, description, category, amount, entry_type.
    View state: category_suggestion, is_loading_category, the entries
    of the current live subscription, and their totals.

    Entries arrive on the subscription's thread; reads of `entries`
    are guarded by a lock.
    """

    def __init__(
        self,
        store: EntryStore,
        suggestions: CategorySuggestionFlow,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[EntryValidator] = None,
    ):
        self._store = store
        self._suggestions = suggestions
        self._audit_logger = audit_logger or AuditLogger()
        self._validator = validator or EntryValidator()

        # Form fields
        self.date: Optional[date] = None
        self.description: str = ""
        self.category: str = ""
        self.amount: Optional[Union[Decimal, str]] = None
        self.entry_type: EntryType = EntryType.EXPENSE

        # Suggestion state
        self.category_suggestion: Optional[str] = None
        self.is_loading_category: bool = False
        self._suggested_for: str = ""

        # Live view
        self._subscription: Optional[Subscription] = None
        self._receiver: Optional[_EntriesReceiver] = None
        self._entries: list[LedgerEntry] = []
        self._entries_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Live view
    # ------------------------------------------------------------------

    @property
    def selected_date(self) -> Optional[date]:
        return self._subscription.selected_date if self._subscription else None

    @property
    def entries(self) -> list[LedgerEntry]:
        with self._entries_lock:
            return list(self._entries)

    @property
    def totals(self) -> LedgerTotals:
        return LedgerTotals.from_entries(self.entries)

    def _on_entries(self, receiver: _EntriesReceiver, entries: list[LedgerEntry]) -> None:
        with self._entries_lock:
            # A late result from a subscription already replaced
            if receiver is not self._receiver:
                return
            self._entries = entries

    def select_date(self, selected_date: Optional[date]) -> None:
        """
        Watch a different date.

        The old subscription is released before the new one opens.
        Selecting the date already watched does nothing.
        """
        current = self._subscription
        if current is not None and current.active and current.selected_date == selected_date:
            return

        if current is not None:
            current.unsubscribe()
        receiver = _EntriesReceiver(self)
        with self._entries_lock:
            self._receiver = receiver
            self._entries = []
        self._subscription = self._store.subscribe(selected_date, receiver.deliver)

    def refresh(self) -> None:
        """Pull an update now instead of waiting for the poll."""
        if self._subscription is not None:
            self._subscription.refresh()

    def close(self) -> None:
        """Release the live subscription (the view is going away)."""
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
        with self._entries_lock:
            self._receiver = None

    # ------------------------------------------------------------------
    # Category suggestion
    # ------------------------------------------------------------------

    async def update_description(self, description: str) -> Optional[str]:
        """
        Set the description and refresh the suggestion.

        The suggestion client runs once per distinct value; an empty
        description clears the suggestion without a request.
        """
        self.description = description
        if description == self._suggested_for:
            return self.category_suggestion
        self._suggested_for = description

        if not description.strip():
            self.category_suggestion = None
            return None

        self.is_loading_category = True
        try:
            self.category_suggestion = await self._suggestions.suggest(description)
        finally:
            self.is_loading_category = False
        return self.category_suggestion

    @property
    def has_usable_suggestion(self) -> bool:
        return bool(self.category_suggestion) and self.category_suggestion != SUGGESTION_ERROR

    def accept_suggestion(self) -> bool:
        """Copy the suggestion into the category field; False if there is none."""
        if not self.has_usable_suggestion:
            return False
        self.category = self.category_suggestion
        return True

    # ------------------------------------------------------------------
    # Submit / delete
    # ------------------------------------------------------------------

    def draft(self) -> EntryDraft:
        return EntryDraft(
            date=self.date,
            description=self.description,
            category=self.category,
            amount=self.amount,
            entry_type=self.entry_type,
        )

    def reset_form(self) -> None:
        """Clear the fields; the entry type is kept for the next entry."""
        self.date = None
        self.description = ""
        self.category = ""
        self.amount = None
        self.category_suggestion = None
        self._suggested_for = ""

    async def submit(
        self,
        correlation_id: Optional[UUID] = None,
    ) -> Optional[LedgerEntry]:
        """
        Create an entry from the form.

        Raises:
            IncompleteEntryError: If a required field is empty; nothing is created

        Returns:
            The stored entry, or None if the store write failed (logged)
        """
        correlation_id = correlation_id or create_correlation_id()
        draft = self.draft()

        try:
            self._validator.check(draft)
        except IncompleteEntryError as e:
            await self._audit_logger.log_validation_failed(
                missing_fields=e.missing_fields,
                issues=[
                    {"field": i.field, "type": i.issue_type, "message": i.message}
                    for i in e.result.issues
                ],
                correlation_id=correlation_id,
            )
            raise

        await self._audit_logger.log_entry_submitted(draft.description, correlation_id)

        try:
            entry = await self._store.create_entry(draft)
        except StorageError as e:
            await self._audit_logger.log_storage_failed(
                operation="save",
                error_message=str(e),
                correlation_id=correlation_id,
            )
            return None

        await self._audit_logger.log_entry_saved(
            entry_id=entry.id,
            description=entry.description,
            amount=str(entry.amount),
            correlation_id=correlation_id,
        )
        self.reset_form()
        return entry

    async def delete(
        self,
        entry_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """Delete by id; store failures are logged and reported as False."""
        correlation_id = correlation_id or create_correlation_id()
        try:
            deleted = await self._store.delete_entry(entry_id)
        except StorageError as e:
            await self._audit_logger.log_storage_failed(
                operation="delete",
                error_message=str(e),
                entry_id=entry_id,
                correlation_id=correlation_id,
            )
            return False

        if deleted:
            await self._audit_logger.log_entry_deleted(entry_id, correlation_id)
        return deleted


class AppComponents(NamedTuple):
    """Process-wide pieces shared by every open ledger page."""

    store: EntryStore
    suggestions: CategorySuggestionFlow
    audit_logger: AuditLogger

    def create_controller(self) -> LedgerFormController:
        """A fresh controller (one per page/session) over the shared store."""
        return LedgerFormController(
            store=self.store,
            suggestions=self.suggestions,
            audit_logger=self.audit_logger,
        )


def create_app_components(
    settings: Optional[Settings] = None,
    entry_storage: Optional[EntryStorageInterface] = None,
    agent: Optional[CategorySuggestionAgent] = None,
) -> AppComponents:
    """
    Factory function to create all application components.

    Builds one store connection handle and shares it between the
    entries collection and the audit log. Falls back to in-memory
    storage when Google Sheets is not configured.
    """
    settings = settings or get_settings()
    app_settings = settings.app

    audit_storage: Optional[AuditStorageInterface] = None

    if entry_storage is None and app_settings.storage_backend == StorageBackend.GOOGLE_SHEETS:
        try:
            sheets_client = GoogleSheetsClient(settings.google_sheets)
            entry_storage = GoogleSheetsEntryStorage(sheets_client)
            audit_storage = GoogleSheetsAuditStorage(sheets_client)
        except Exception as e:
            # Storage not configured - continue without it
            logger.warning("storage_not_configured", error=str(e))
            entry_storage = None

    if entry_storage is None:
        entry_storage = InMemoryEntryStorage()
        audit_storage = InMemoryAuditStorage()

    audit_logger = AuditLogger(audit_storage)
    store = EntryStore(
        entry_storage,
        poll_interval_seconds=app_settings.live_poll_interval_seconds,
    )

    # Gemini settings are read on the first suggestion, so a missing
    # key shows up as a failed suggestion rather than a failed start
    agent = agent or CategorySuggestionAgent()

    return AppComponents(
        store=store,
        suggestions=CategorySuggestionFlow(agent, audit_logger),
        audit_logger=audit_logger,
    )
