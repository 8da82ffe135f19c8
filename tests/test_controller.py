"""
Flow tests for the ledger page controller.

Uses in-memory storage and a fake suggestion agent; after a write the
test calls controller.refresh() so the live view is current without
waiting on the polling thread.
"""

import asyncio
import gc
from datetime import date
from decimal import Decimal

import pytest

from ledgerlite.audit import AuditLogger
from ledgerlite.config import StorageBackend
from ledgerlite.models.audit import AuditEventType
from ledgerlite.models.entry import EntryType, ValidationIssue
from ledgerlite.orchestrator import (
    SUGGESTION_ERROR,
    CategorySuggestionFlow,
    LedgerFormController,
    create_app_components,
)
from ledgerlite.services.storage import InMemoryEntryStorage, StorageError
from ledgerlite.services.store_adapter import EntryStore
from ledgerlite.validation import EntryValidator, IncompleteEntryError

from conftest import FakeCategoryAgent


AUG_1 = date(2024, 8, 1)
AUG_15 = date(2024, 8, 15)


def fill_form(controller, **overrides):
    fields = {
        "date": AUG_15,
        "description": "Coffee",
        "category": "Food",
        "amount": "3.50",
        "entry_type": EntryType.EXPENSE,
    }
    fields.update(overrides)
    for name, value in fields.items():
        setattr(controller, name, value)


def event_types(audit_storage):
    events = asyncio.run(audit_storage.get_recent_events())
    return {event.event_type for event in events}


class TestLiveView:
    """Date selection, entries and totals."""

    def test_select_date_shows_that_day(self, controller):
        controller.select_date(AUG_15)
        assert [e.id for e in controller.entries] == ["2", "3"]
        assert controller.selected_date == AUG_15

    def test_totals_for_all_entries(self, controller):
        controller.select_date(None)
        totals = controller.totals
        assert totals.income == Decimal("12000")
        assert totals.expense == Decimal("2500")
        assert totals.balance == Decimal("9500")

    def test_totals_follow_the_selected_date(self, controller):
        controller.select_date(AUG_15)
        assert controller.totals.income == Decimal("0")
        assert controller.totals.balance == Decimal("-2500")

    def test_changing_date_replaces_the_subscription(self, controller, store):
        controller.select_date(AUG_1)
        first = store.subscriptions

        controller.select_date(AUG_15)

        assert len(store.subscriptions) == 1
        assert store.subscriptions != first
        assert [e.id for e in controller.entries] == ["2", "3"]

    def test_reselecting_same_date_keeps_the_subscription(self, controller, store):
        controller.select_date(AUG_1)
        before = store.subscriptions
        controller.select_date(AUG_1)
        assert store.subscriptions == before

    def test_no_entries_for_day(self, controller):
        controller.select_date(date(2024, 9, 1))
        assert controller.entries == []
        assert controller.totals.balance == Decimal("0")

    def test_close_releases_subscription(self, controller, store):
        controller.select_date(AUG_1)
        controller.close()
        assert store.subscriptions == []

    def test_late_result_from_replaced_subscription_is_ignored(
        self, entry_storage, fake_agent, audit_logger,
    ):
        callbacks = []

        class RecordingStore(EntryStore):
            def subscribe(self, selected_date, callback):
                callbacks.append(callback)
                return super().subscribe(selected_date, callback)

        recording = RecordingStore(entry_storage, poll_interval_seconds=3600)
        controller = LedgerFormController(
            store=recording,
            suggestions=CategorySuggestionFlow(fake_agent, audit_logger),
            audit_logger=audit_logger,
        )
        try:
            controller.select_date(AUG_1)
            controller.select_date(AUG_15)

            # The first subscription's thread finishes a read after the switch
            callbacks[0](controller.entries[:1])

            assert [e.id for e in controller.entries] == ["2", "3"]
        finally:
            controller.close()
            recording.close()

    def test_abandoned_controllers_release_their_subscriptions(
        self, store, fake_agent, audit_logger,
    ):
        controllers = [
            LedgerFormController(
                store=store,
                suggestions=CategorySuggestionFlow(fake_agent, audit_logger),
                audit_logger=audit_logger,
            )
            for _ in range(3)
        ]
        for controller in controllers:
            controller.select_date(AUG_1)
        subscriptions = store.subscriptions
        assert len(subscriptions) == 3

        # Sessions that end without close()
        del controllers, controller
        gc.collect()
        for subscription in subscriptions:
            subscription.wake()
        for subscription in subscriptions:
            subscription.join(timeout=5)

        assert store.subscriptions == []


class TestCategorySuggestion:
    """Description changes drive the suggestion client."""

    def test_suggestion_for_description(self, controller, fake_agent):
        result = asyncio.run(controller.update_description("Rent"))

        assert result == "Housing"
        assert controller.category_suggestion == "Housing"
        assert controller.is_loading_category is False
        assert fake_agent.calls == ["Rent"]

    def test_one_call_per_distinct_description(self, controller, fake_agent):
        asyncio.run(controller.update_description("Rent"))
        asyncio.run(controller.update_description("Rent"))
        asyncio.run(controller.update_description("Coffee"))

        assert fake_agent.calls == ["Rent", "Coffee"]
        assert controller.category_suggestion == "Food"

    def test_empty_description_clears_without_a_call(self, controller, fake_agent):
        asyncio.run(controller.update_description("Rent"))
        asyncio.run(controller.update_description("   "))

        assert controller.category_suggestion is None
        assert fake_agent.calls == ["Rent"]

    def test_failure_shows_error_placeholder(self, store, audit_logger, audit_storage):
        agent = FakeCategoryAgent(error=RuntimeError("model unavailable"))
        controller = LedgerFormController(
            store=store,
            suggestions=CategorySuggestionFlow(agent, audit_logger),
            audit_logger=audit_logger,
        )

        asyncio.run(controller.update_description("Rent"))

        assert controller.category_suggestion == SUGGESTION_ERROR
        assert controller.is_loading_category is False
        assert controller.has_usable_suggestion is False
        assert controller.accept_suggestion() is False
        assert AuditEventType.SUGGESTION_FAILED in event_types(audit_storage)

    def test_suggestion_is_not_applied_automatically(self, controller):
        controller.category = "Bills"
        asyncio.run(controller.update_description("Rent"))
        assert controller.category == "Bills"

    def test_accept_suggestion_fills_category(self, controller):
        asyncio.run(controller.update_description("Rent"))
        assert controller.accept_suggestion() is True
        assert controller.category == "Housing"

    def test_flow_without_audit_logger(self):
        flow = CategorySuggestionFlow(FakeCategoryAgent(error=RuntimeError("down")))
        assert asyncio.run(flow.suggest("Rent")) == SUGGESTION_ERROR
        assert asyncio.run(flow.suggest("")) is None


class TestSubmit:
    """Creating entries from the form."""

    @pytest.mark.parametrize("missing", ["date", "description", "category", "amount"])
    def test_incomplete_form_creates_nothing(self, controller, entry_storage, missing):
        fill_form(controller, **{missing: None if missing in ("date", "amount") else ""})

        with pytest.raises(IncompleteEntryError) as exc_info:
            asyncio.run(controller.submit())

        assert exc_info.value.missing_fields == [missing]
        assert len(asyncio.run(entry_storage.fetch_records())) == 4

    def test_incomplete_form_keeps_fields(self, controller):
        fill_form(controller, category="")
        with pytest.raises(IncompleteEntryError):
            asyncio.run(controller.submit())
        assert controller.description == "Coffee"
        assert controller.amount == "3.50"

    def test_validation_failure_is_audited(self, controller, audit_storage):
        with pytest.raises(IncompleteEntryError):
            asyncio.run(controller.submit())
        assert AuditEventType.VALIDATION_FAILED in event_types(audit_storage)

    def test_submit_uses_the_injected_validator(self, store, fake_agent, audit_logger, entry_storage):
        class NoRefundsValidator(EntryValidator):
            def __init__(self):
                self.checked = []

            def validate(self, draft):
                self.checked.append(draft.description)
                result = super().validate(draft)
                if draft.category == "Refund":
                    result.issues.append(ValidationIssue(
                        field="category",
                        issue_type="invalid_value",
                        message="Refunds are entered as income",
                    ))
                return result

        validator = NoRefundsValidator()
        controller = LedgerFormController(
            store=store,
            suggestions=CategorySuggestionFlow(fake_agent, audit_logger),
            audit_logger=audit_logger,
            validator=validator,
        )
        fill_form(controller, category="Refund")

        with pytest.raises(IncompleteEntryError) as exc_info:
            asyncio.run(controller.submit())

        assert validator.checked == ["Coffee"]
        assert exc_info.value.result.issues[0].field == "category"
        assert len(asyncio.run(entry_storage.fetch_records())) == 4

    def test_submit_creates_entry_and_updates_view(self, controller):
        controller.select_date(AUG_15)
        fill_form(controller)

        entry = asyncio.run(controller.submit())
        controller.refresh()

        assert entry is not None
        assert entry.amount == Decimal("3.50")
        assert [e.id for e in controller.entries] == ["2", "3", entry.id]
        assert controller.totals.expense == Decimal("2503.50")

    def test_income_entry_counts_as_income(self, controller):
        controller.select_date(AUG_1)
        fill_form(controller, date=AUG_1, description="Bonus",
                  category="Income", amount="250", entry_type=EntryType.INCOME)

        asyncio.run(controller.submit())
        controller.refresh()

        assert controller.totals.income == Decimal("12250")

    def test_form_resets_after_submit(self, controller):
        fill_form(controller, entry_type=EntryType.INCOME)
        asyncio.run(controller.update_description("Coffee"))

        asyncio.run(controller.submit())

        assert controller.date is None
        assert controller.description == ""
        assert controller.category == ""
        assert controller.amount is None
        assert controller.category_suggestion is None
        assert controller.entry_type == EntryType.INCOME

    def test_submit_is_audited(self, controller, audit_storage):
        fill_form(controller)
        asyncio.run(controller.submit())
        types = event_types(audit_storage)
        assert AuditEventType.ENTRY_SUBMITTED in types
        assert AuditEventType.ENTRY_SAVED in types

    def test_store_failure_keeps_form(self, sample_records, fake_agent, audit_storage):
        class BrokenStorage(InMemoryEntryStorage):
            async def add_record(self, record):
                raise StorageError("quota exceeded")

        store = EntryStore(BrokenStorage(sample_records), poll_interval_seconds=3600)
        audit_logger = AuditLogger(audit_storage)
        controller = LedgerFormController(
            store=store,
            suggestions=CategorySuggestionFlow(fake_agent),
            audit_logger=audit_logger,
        )
        fill_form(controller)

        assert asyncio.run(controller.submit()) is None
        assert controller.description == "Coffee"
        assert AuditEventType.SAVE_FAILED in event_types(audit_storage)
        store.close()


class TestDelete:

    def test_delete_removes_entry_from_view(self, controller):
        controller.select_date(AUG_15)

        assert asyncio.run(controller.delete("2")) is True
        controller.refresh()

        assert [e.id for e in controller.entries] == ["3"]
        assert controller.totals.expense == Decimal("500")

    def test_delete_unknown_id(self, controller, audit_storage):
        assert asyncio.run(controller.delete("missing")) is False
        assert AuditEventType.ENTRY_DELETED not in event_types(audit_storage)

    def test_delete_failure_returns_false(self, sample_records, fake_agent, audit_storage):
        class BrokenStorage(InMemoryEntryStorage):
            async def delete_record(self, entry_id):
                raise StorageError("permission denied")

        store = EntryStore(BrokenStorage(sample_records), poll_interval_seconds=3600)
        controller = LedgerFormController(
            store=store,
            suggestions=CategorySuggestionFlow(fake_agent),
            audit_logger=AuditLogger(audit_storage),
        )

        assert asyncio.run(controller.delete("2")) is False
        assert AuditEventType.DELETE_FAILED in event_types(audit_storage)
        store.close()


class TestAppComponents:

    def test_memory_backend(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("STORAGE_BACKEND", StorageBackend.MEMORY.value)

        from ledgerlite.config import get_settings
        get_settings.cache_clear()
        components = create_app_components(agent=FakeCategoryAgent())
        try:
            first = components.create_controller()
            second = components.create_controller()

            assert first is not second
            assert isinstance(components.store.storage, InMemoryEntryStorage)
            assert components.audit_logger.storage is not None
        finally:
            components.store.close()
            get_settings.cache_clear()

    def test_injected_storage_is_shared(self, entry_storage):
        components = create_app_components(
            entry_storage=entry_storage,
            agent=FakeCategoryAgent(),
        )
        try:
            first = components.create_controller()
            second = components.create_controller()
            first.select_date(AUG_15)
            second.select_date(AUG_15)

            asyncio.run(first.delete("2"))
            second.refresh()

            assert [e.id for e in second.entries] == ["3"]
        finally:
            components.store.close()
