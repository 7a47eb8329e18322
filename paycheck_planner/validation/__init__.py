"""Input validation package."""

from paycheck_planner.validation.validator import (
    ExpenseValidator,
    parse_amount,
    validate_expense_input,
)

__all__ = ["ExpenseValidator", "parse_amount", "validate_expense_input"]
