"""
Shared fixtures.

External services are replaced by fakes: no spreadsheet, no Gemini
calls. Stores poll once an hour so only explicit refreshes and
write wake-ups produce updates during a test.
"""

from types import SimpleNamespace

import pytest

from ledgerlite.audit import AuditLogger
from ledgerlite.models.entry import SuggestCategoryOutput
from ledgerlite.orchestrator import CategorySuggestionFlow, LedgerFormController
from ledgerlite.services.storage import InMemoryAuditStorage, InMemoryEntryStorage
from ledgerlite.services.store_adapter import EntryStore


SLOW_POLL_SECONDS = 3600.0


class FakeGeminiModel:
    """Stands in for genai.GenerativeModel; returns canned text or raises."""

    def __init__(self, text=None, error=None):
        self.text = text
        self.error = error
        self.prompts = []

    async def generate_content_async(self, prompt):
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return SimpleNamespace(text=self.text)


class FakeCategoryAgent:
    """Counts suggestion requests; maps descriptions to canned categories."""

    def __init__(self, answers=None, error=None):
        self.answers = answers or {}
        self.error = error
        self.calls = []

    async def suggest_category(self, prompt_input):
        self.calls.append(prompt_input.description)
        if self.error is not None:
            raise self.error
        category = self.answers.get(prompt_input.description, "Other")
        return SuggestCategoryOutput(category=category)


class FakeWorksheet:
    """Just enough of gspread.Worksheet for the storage backends."""

    def __init__(self, rows=None):
        self.rows = [list(row) for row in rows or []]
        self.fail_with = None

    def _check(self):
        if self.fail_with is not None:
            raise self.fail_with

    def get_all_values(self):
        self._check()
        return [list(row) for row in self.rows]

    def row_values(self, index):
        self._check()
        return list(self.rows[index - 1]) if len(self.rows) >= index else []

    def append_row(self, row, value_input_option=None):
        self._check()
        self.rows.append(list(row))

    def delete_rows(self, index):
        self._check()
        del self.rows[index - 1]


class FakeSheetsClient:
    """Stands in for GoogleSheetsClient with in-memory worksheets."""

    def __init__(self, entries_rows=None, audit_rows=None):
        self.entries_sheet = FakeWorksheet(entries_rows)
        self.audit_sheet = FakeWorksheet(audit_rows)

    def get_entries_sheet(self):
        return self.entries_sheet

    def get_audit_sheet(self):
        return self.audit_sheet


def entry_record(entry_id, day, description, category, amount, entry_type="expense"):
    return {
        "id": entry_id,
        "date": day,
        "description": description,
        "category": category,
        "amount": amount,
        "type": entry_type,
    }


@pytest.fixture
def sample_records():
    return [
        entry_record("1", "2024-08-01", "Salary", "Income", "5000", "income"),
        entry_record("2", "2024-08-15", "Rent", "Housing", "2000", "expense"),
        entry_record("3", "2024-08-15", "Groceries", "Food", 500, "expense"),
        entry_record("4", "2024-08-01", "Dividends", "Investment", 7000.0, "income"),
    ]


@pytest.fixture
def entry_storage(sample_records):
    return InMemoryEntryStorage(sample_records)


@pytest.fixture
def store(entry_storage):
    store = EntryStore(entry_storage, poll_interval_seconds=SLOW_POLL_SECONDS)
    yield store
    store.close()


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage):
    return AuditLogger(audit_storage)


@pytest.fixture
def fake_agent():
    return FakeCategoryAgent(answers={"Rent": "Housing", "Coffee": "Food"})


@pytest.fixture
def controller(store, fake_agent, audit_logger):
    controller = LedgerFormController(
        store=store,
        suggestions=CategorySuggestionFlow(fake_agent, audit_logger),
        audit_logger=audit_logger,
    )
    yield controller
    controller.close()


@pytest.fixture
def sheet_header():
    return ["id", "date", "description", "category", "amount", "type", "created_at"]
