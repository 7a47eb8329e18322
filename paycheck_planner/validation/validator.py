"""
Input Validation

DESIGN DECISION: Validation is pure and side-effect-free.
The caller can run it ahead of an add, edit or paycheck change
(for example to disable a Save button) and the store runs the
same checks before committing anything.

Validation happens in two stages, as with any user input:

STAGE 1 - INPUT CHECKS (blocking):
- Name present after trimming whitespace
- Amount parses to a finite, non-negative number

STAGE 2 - SANITY CHECKS (never blocking):
- Unusually large amounts
- Both recurrence labels set at once

IMPORTANT: Validation NEVER silently fixes issues.
It reports them and the store refuses the operation.
"""

import math
from typing import Any, Optional

from paycheck_planner.models.expense import ValidationIssue, ValidationResult


def parse_amount(value: Any) -> Optional[float]:
    """
    Parse user input into an amount.

    Accepts numbers and numeric strings. Returns None for anything that
    is not a finite number, including booleans, NaN and infinities.
    Negative values parse; rejecting them is the validator's job.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(amount):
        return None
    return amount


class ExpenseValidator:
    """
    Validates expense and paycheck input.

    Stage 1 errors reject the operation.
    Stage 2 warnings and notes are reported but never block.
    """

    def __init__(self, max_amount: Optional[float] = None):
        """
        Initialize validator.

        Args:
            max_amount: Amount above which a warning is raised.
                        If None, the sanity check is skipped.
        """
        self._max_amount = max_amount

    def _validate_amount(
        self,
        field: str,
        value: Any,
    ) -> tuple[Optional[float], list[ValidationIssue]]:
        issues = []
        amount = parse_amount(value)

        if amount is None:
            issues.append(ValidationIssue(
                field=field,
                issue_type="not_a_number",
                message=f"{field.capitalize()} must be a number",
                severity="error",
                suggested_fix="Enter digits only, e.g. 1250.00",
            ))
        elif amount < 0:
            issues.append(ValidationIssue(
                field=field,
                issue_type="negative",
                message=f"{field.capitalize()} cannot be negative",
                severity="error",
            ))
        elif self._max_amount is not None and amount > self._max_amount:
            issues.append(ValidationIssue(
                field=field,
                issue_type="suspicious_value",
                message=f"{field.capitalize()} ({amount:,.2f}) seems unusually high",
                severity="warning",
                suggested_fix="Please verify this amount is correct",
            ))

        return amount, issues

    def validate_expense(
        self,
        name: Any,
        amount: Any,
        is_recurring_monthly: bool = False,
        is_recurring_weekly: bool = False,
    ) -> ValidationResult:
        """
        Validate the user-editable fields of an expense.

        Returns a result carrying the parsed amount.
        """
        issues = []

        if not isinstance(name, str) or not name.strip():
            issues.append(ValidationIssue(
                field="name",
                issue_type="missing",
                message="Expense name is required",
                severity="error",
                suggested_fix="Enter a name such as Rent",
            ))

        parsed, amount_issues = self._validate_amount("amount", amount)
        issues.extend(amount_issues)

        if is_recurring_monthly and is_recurring_weekly:
            issues.append(ValidationIssue(
                field="recurrence",
                issue_type="ambiguous",
                message="Expense is marked as both monthly and weekly",
                severity="info",
            ))

        has_errors = any(issue.severity == "error" for issue in issues)
        return ValidationResult(
            is_valid=not has_errors,
            amount=parsed,
            issues=issues,
        )

    def validate_paycheck(self, amount: Any) -> ValidationResult:
        """Validate a paycheck amount."""
        parsed, issues = self._validate_amount("paycheck", amount)
        has_errors = any(issue.severity == "error" for issue in issues)
        return ValidationResult(
            is_valid=not has_errors,
            amount=parsed,
            issues=issues,
        )


def validate_expense_input(name: Any, amount: Any) -> ValidationResult:
    """Validate expense input with the default (unbounded) validator."""
    return ExpenseValidator().validate_expense(name, amount)
