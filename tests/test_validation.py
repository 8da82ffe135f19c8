"""
Tests for draft validation.

The validator is the only thing standing between the form and the
store, so every required field gets its own case.
"""

import pytest
from datetime import date

from ledgerlite.models.entry import EntryDraft, EntryType
from ledgerlite.validation import (
    INCOMPLETE_ENTRY_MESSAGE,
    EntryValidator,
    IncompleteEntryError,
)


def complete_draft(**overrides):
    fields = {
        "date": date(2024, 8, 1),
        "description": "Salary",
        "category": "Income",
        "amount": "5000",
        "entry_type": EntryType.INCOME,
    }
    fields.update(overrides)
    return EntryDraft(**fields)


@pytest.fixture
def validator():
    return EntryValidator()


class TestEntryValidator:
    """Tests for EntryValidator."""

    def test_complete_draft_is_valid(self, validator):
        result = validator.validate(complete_draft())
        assert result.is_valid
        assert result.issues == []

    @pytest.mark.parametrize("field,empty", [
        ("date", None),
        ("description", ""),
        ("category", ""),
        ("amount", None),
        ("amount", ""),
    ])
    def test_each_required_field(self, validator, field, empty):
        """Leaving any one field empty blocks the draft."""
        result = validator.validate(complete_draft(**{field: empty}))
        assert result.has_errors
        assert result.missing_fields == [field]

    def test_whitespace_description_counts_as_missing(self, validator):
        result = validator.validate(complete_draft(description="   "))
        assert "description" in result.missing_fields

    def test_empty_draft_reports_every_field(self, validator):
        result = validator.validate(EntryDraft())
        assert result.missing_fields == ["date", "description", "category", "amount"]
        assert result.error_count == 4

    def test_zero_amount_is_allowed(self, validator):
        assert validator.validate(complete_draft(amount="0")).is_valid

    def test_non_numeric_amount_is_invalid(self, validator):
        result = validator.validate(complete_draft(amount="lots"))
        assert result.has_errors
        assert result.missing_fields == []
        assert result.issues[0].issue_type == "invalid_value"

    def test_negative_amount_is_invalid(self, validator):
        result = validator.validate(complete_draft(amount="-12"))
        assert result.has_errors
        assert result.issues[0].field == "amount"
        assert result.issues[0].issue_type == "invalid_value"

    def test_entry_type_does_not_affect_validity(self, validator):
        result = validator.validate(complete_draft(entry_type=EntryType.EXPENSE))
        assert result.is_valid


class TestCheck:
    """Tests for the raising variant."""

    def test_check_raises_with_result(self, validator):
        with pytest.raises(IncompleteEntryError) as exc_info:
            validator.check(complete_draft(category=""))

        assert exc_info.value.missing_fields == ["category"]
        assert str(exc_info.value) == INCOMPLETE_ENTRY_MESSAGE

    def test_check_returns_result_when_valid(self, validator):
        assert validator.check(complete_draft()).is_valid
