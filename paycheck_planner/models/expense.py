"""
Core Data Models for Paycheck Planner

These models define the schemas for everything the expense store holds
and hands out. They are designed to:
1. Be immutable snapshots (callers never mutate a record in place)
2. Serialize to the flat camelCase layout used by the persisted blob
3. Decode older blobs that are missing newer fields

DESIGN DECISION: Expense records are frozen. Edits and paid toggles
produce a replacement record with the same id.
"""

from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import Any, Optional, Union
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)
from pydantic.alias_generators import to_camel


# Epoch for numeric due dates in older saved data (2001-01-01 UTC)
REFERENCE_DATE = datetime(2001, 1, 1, tzinfo=timezone.utc)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class ExpenseFilter(str, Enum):
    """Which expenses the ordered view shows."""
    ALL = "all"
    UNPAID = "unpaid"
    PAID = "paid"


class ExpenseStatus(str, Enum):
    """
    Display status derived from an expense.

    Never stored. Recomputed against the current day on every read.
    """
    PAID = "paid"
    OVERDUE = "overdue"
    UPCOMING = "upcoming"


# =============================================================================
# CORE EXPENSE MODEL
# =============================================================================

class Expense(BaseModel):
    """
    One tracked bill.

    The recurrence flags are labels only. Nothing schedules a new expense
    for the next period, and both flags may be set at once.
    """
    model_config = ConfigDict(
        frozen=True,
        str_strip_whitespace=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    id: UUID = Field(
        default_factory=uuid4,
        description="Unique expense ID, never reused"
    )
    name: str = Field(
        ...,
        min_length=1,
        description="Display name (e.g., Rent)"
    )
    amount: float = Field(
        ...,
        ge=0,
        allow_inf_nan=False,
        description="Amount in the user's currency"
    )
    is_paid: bool = False
    due_date: Optional[date] = Field(
        default=None,
        description="Optional due date, compared at day granularity"
    )
    is_pinned: bool = False
    is_recurring_monthly: bool = False
    is_recurring_weekly: bool = False

    @field_validator('due_date', mode='before')
    @classmethod
    def coerce_due_date(cls, v: Any) -> Any:
        """
        Accept the encodings older blobs may carry.

        Numbers are seconds since 2001-01-01 UTC, read as a UTC date.
        Full timestamps are truncated to their date.
        """
        if isinstance(v, bool):
            return v
        if isinstance(v, (int, float)):
            try:
                return (REFERENCE_DATE + timedelta(seconds=v)).date()
            except (OverflowError, ValueError):
                raise ValueError(f"due date out of range: {v}")
        if isinstance(v, str) and "T" in v:
            return datetime.fromisoformat(v.replace("Z", "+00:00")).date()
        return v

    @property
    def is_recurring(self) -> bool:
        """True when either recurrence label is set."""
        return self.is_recurring_monthly or self.is_recurring_weekly


class ExpenseUpdate(BaseModel):
    """
    Fields an edit may replace.

    Only fields that were explicitly passed are applied. Name and amount
    are left loosely typed so the validator can report on them.
    """
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = None
    amount: Optional[Union[float, str]] = None
    is_paid: Optional[bool] = None
    due_date: Optional[date] = None
    is_pinned: Optional[bool] = None
    is_recurring_monthly: Optional[bool] = None
    is_recurring_weekly: Optional[bool] = None


# =============================================================================
# DERIVED VIEW MODELS
# =============================================================================

class ExpenseGroup(BaseModel):
    """A titled slice of the ordered view (Pinned, Monthly or All)."""
    model_config = ConfigDict(frozen=True)

    title: str
    expenses: tuple[Expense, ...] = ()


class Overview(BaseModel):
    """
    Everything a screen needs to render the current state.

    Built fresh by the store on every request.
    """
    model_config = ConfigDict(frozen=True)

    paycheck: float
    total_expenses: float
    over_under: float
    due_count: int = Field(ge=0)
    expense_filter: ExpenseFilter
    expenses: tuple[Expense, ...] = ()
    groups: tuple[ExpenseGroup, ...] = ()
    statuses: dict[UUID, ExpenseStatus] = Field(default_factory=dict)

    @property
    def is_short(self) -> bool:
        """True when expenses exceed the paycheck."""
        return self.over_under < 0


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'not_a_number', 'negative')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidationResult(BaseModel):
    """
    Result of validating user input for an expense or the paycheck.

    Warnings never block. Any error-level issue rejects the operation.
    """

    is_valid: bool
    amount: Optional[float] = Field(
        default=None,
        description="Parsed amount when it could be read"
    )
    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def warnings(self) -> list[str]:
        return [issue.message for issue in self.issues if issue.severity == "warning"]
