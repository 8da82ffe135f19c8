"""
Core Data Models for LedgerLite

These models define the schemas for everything that flows between the
form, the entry store and the category suggestion agent.

DESIGN DECISION: The income/expense split is carried by one explicit
field, `entry_type`. Totals never infer it from the category label.
"""

import datetime as dt
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Iterable, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)


# =============================================================================
# ENUMS
# =============================================================================

class EntryType(str, Enum):
    """Whether a ledger entry adds to or takes from the balance."""
    INCOME = "income"
    EXPENSE = "expense"


# =============================================================================
# HELPERS
# =============================================================================

def parse_amount(value: Any) -> Optional[Decimal]:
    """
    Parse a user- or storage-supplied amount into a Decimal.

    Accepts numbers and numeric strings (surrounding whitespace and
    thousands separators are ignored). Returns None for empty input
    and for anything that is not a finite number.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, (int, float)):
        amount = Decimal(str(value))
    else:
        text = str(value).strip().replace(",", "")
        if not text:
            return None
        try:
            amount = Decimal(text)
        except InvalidOperation:
            return None
    if not amount.is_finite():
        return None
    return amount


def parse_entry_date(value: Any) -> Optional[date]:
    """Parse an ISO `YYYY-MM-DD` string (or date/datetime) into a date."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError:
        return None


# =============================================================================
# CORE ENTRY MODEL
# =============================================================================

class LedgerEntry(BaseModel):
    """
    A ledger entry as read back from the store.

    The id is assigned by the store; everything else comes from the
    form that created the entry.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: str = Field(
        ...,
        min_length=1,
        description="Opaque identifier assigned by the store"
    )
    date: dt.date = Field(
        ...,
        description="Calendar date of the entry"
    )
    description: str = Field(
        ...,
        min_length=1,
        description="Free-text description"
    )
    category: str = Field(
        ...,
        min_length=1,
        description="Free-text category"
    )
    amount: Decimal = Field(
        ...,
        ge=0,
        description="Non-negative amount"
    )
    entry_type: EntryType = Field(
        default=EntryType.EXPENSE,
        description="Income or expense"
    )

    @field_validator('date', mode='before')
    @classmethod
    def coerce_date(cls, v: Any) -> Any:
        parsed = parse_entry_date(v)
        return parsed if parsed is not None else v

    @field_validator('amount', mode='before')
    @classmethod
    def coerce_amount(cls, v: Any) -> Any:
        """Stored amounts may be strings or numbers depending on who wrote them."""
        parsed = parse_amount(v)
        if parsed is None:
            raise ValueError(f"Amount is not a number: {v!r}")
        return parsed

    @field_validator('entry_type', mode='before')
    @classmethod
    def default_blank_type(cls, v: Any) -> Any:
        """Records written without a type column are expenses."""
        if v is None or (isinstance(v, str) and not v.strip()):
            return EntryType.EXPENSE
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @property
    def is_income(self) -> bool:
        return self.entry_type == EntryType.INCOME

    @property
    def date_key(self) -> str:
        """The string form the store keeps; entries sort by it."""
        return self.date.isoformat()

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "LedgerEntry":
        """Map a raw store record to a LedgerEntry."""
        return cls(
            id=str(record.get("id") or ""),
            date=record.get("date"),
            description=record.get("description") or "",
            category=record.get("category") or "",
            amount=record.get("amount"),
            entry_type=record.get("type"),
        )


class EntryDraft(BaseModel):
    """
    The form's field values before submission.

    Everything is optional here; the validator decides whether a
    draft is complete enough to become an entry.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    date: Optional[dt.date] = None
    description: str = ""
    category: str = ""
    amount: Optional[Union[Decimal, str]] = None
    entry_type: EntryType = EntryType.EXPENSE

    @field_validator('date', mode='before')
    @classmethod
    def coerce_date(cls, v: Any) -> Any:
        if v == "":
            return None
        return parse_entry_date(v) or v

    @property
    def parsed_amount(self) -> Optional[Decimal]:
        return parse_amount(self.amount)

    def to_record(self) -> dict[str, Any]:
        """
        Build the record appended to the store.

        Only call this on a draft the validator accepted.
        """
        return {
            "date": self.date.isoformat(),
            "description": self.description,
            "category": self.category,
            "amount": str(self.parsed_amount),
            "type": self.entry_type.value,
        }


# =============================================================================
# TOTALS
# =============================================================================

class LedgerTotals(BaseModel):
    """Income, expense and balance over a set of entries."""

    income: Decimal = Decimal("0")
    expense: Decimal = Decimal("0")

    @property
    def balance(self) -> Decimal:
        return self.income - self.expense

    @classmethod
    def from_entries(cls, entries: Iterable[LedgerEntry]) -> "LedgerTotals":
        income = Decimal("0")
        expense = Decimal("0")
        for entry in entries:
            if entry.is_income:
                income += entry.amount
            else:
                expense += entry.amount
        return cls(income=income, expense=expense)


# =============================================================================
# CATEGORY SUGGESTION SCHEMA
# =============================================================================

class SuggestCategoryInput(BaseModel):
    """Input of the category suggestion prompt."""

    description: str = Field(
        ...,
        description="The description of the ledger entry."
    )


class SuggestCategoryOutput(BaseModel):
    """Structured output of the category suggestion prompt."""

    category: str = Field(
        ...,
        description="The suggested category for the ledger entry."
    )

    @field_validator('category')
    @classmethod
    def strip_category(cls, v: str) -> str:
        return v.strip()


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found on a draft."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        default="error",
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )


class ValidationResult(BaseModel):
    """Result of checking a draft before submission."""

    validated_at: datetime = Field(
        default_factory=datetime.utcnow
    )
    issues: list[ValidationIssue] = Field(
        default_factory=list,
        description="All validation issues found"
    )

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def missing_fields(self) -> list[str]:
        return [
            issue.field for issue in self.issues
            if issue.issue_type == "missing"
        ]
