"""
Entry Validation

Runs when the user submits the form. A draft missing any of date,
description, category or amount is blocked before anything reaches
the store; so is an amount that is not a non-negative number.

IMPORTANT: Validation never fixes a draft. It reports issues and the
form stays as the user left it.
"""

from ledgerlite.models.entry import EntryDraft, ValidationIssue, ValidationResult


INCOMPLETE_ENTRY_MESSAGE = "Please fill in all fields"


class IncompleteEntryError(Exception):
    """Raised when a draft is submitted with required fields missing."""

    def __init__(self, result: ValidationResult):
        self.result = result
        super().__init__(INCOMPLETE_ENTRY_MESSAGE)

    @property
    def missing_fields(self) -> list[str]:
        return self.result.missing_fields


class EntryValidator:
    """Checks a draft before it may become a ledger entry."""

    def validate(self, draft: EntryDraft) -> ValidationResult:
        issues = []

        if draft.date is None:
            issues.append(ValidationIssue(
                field="date",
                issue_type="missing",
                message="Date is required",
            ))

        if not draft.description:
            issues.append(ValidationIssue(
                field="description",
                issue_type="missing",
                message="Description is required",
            ))

        if not draft.category:
            issues.append(ValidationIssue(
                field="category",
                issue_type="missing",
                message="Category is required",
            ))

        amount_given = draft.amount is not None and str(draft.amount).strip() != ""
        amount = draft.parsed_amount
        if not amount_given:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="missing",
                message="Amount is required",
            ))
        elif amount is None:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message=f"Amount must be a number, got {draft.amount!r}",
            ))
        elif amount < 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount cannot be negative",
            ))

        return ValidationResult(issues=issues)

    def check(self, draft: EntryDraft) -> ValidationResult:
        """Validate and raise IncompleteEntryError if the draft has errors."""
        result = self.validate(draft)
        if result.has_errors:
            raise IncompleteEntryError(result)
        return result
