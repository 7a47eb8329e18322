"""
Expense Ordering and Status

DESIGN DECISION: Ordering is DETERMINISTIC and pure.
Given the same records and filter, the view is always the same
sequence. Nothing here reads or writes the store.

Sort keys, in priority order:
1. Pinned first
2. Monthly-recurring first (weekly does not take part)
3. Due date ascending, dated before undated
4. Both undated: case-insensitive name ascending

Records that compare equal keep their insertion order.
"""

from datetime import date
from typing import Iterable, Optional, Union

from paycheck_planner.models.expense import (
    Expense,
    ExpenseFilter,
    ExpenseGroup,
    ExpenseStatus,
)


PINNED_GROUP = "Pinned"
MONTHLY_GROUP = "Monthly"
OTHER_GROUP = "All"


def matches_filter(
    expense: Expense,
    expense_filter: Union[ExpenseFilter, str] = ExpenseFilter.ALL,
) -> bool:
    """Check whether an expense belongs in the filtered view."""
    expense_filter = ExpenseFilter(expense_filter)
    if expense_filter == ExpenseFilter.UNPAID:
        return not expense.is_paid
    if expense_filter == ExpenseFilter.PAID:
        return expense.is_paid
    return True


def filter_expenses(
    expenses: Iterable[Expense],
    expense_filter: Union[ExpenseFilter, str] = ExpenseFilter.ALL,
) -> list[Expense]:
    expense_filter = ExpenseFilter(expense_filter)
    return [e for e in expenses if matches_filter(e, expense_filter)]


def expense_sort_key(expense: Expense) -> tuple:
    """
    Sort key implementing the display order.

    The name only breaks ties between undated records; dated records
    with the same date stay in insertion order.
    """
    undated = expense.due_date is None
    return (
        not expense.is_pinned,
        not expense.is_recurring_monthly,
        undated,
        expense.due_date or date.min,
        expense.name.casefold() if undated else "",
    )


def sort_expenses(expenses: Iterable[Expense]) -> list[Expense]:
    return sorted(expenses, key=expense_sort_key)


def order_expenses(
    expenses: Iterable[Expense],
    expense_filter: Union[ExpenseFilter, str] = ExpenseFilter.ALL,
) -> list[Expense]:
    """Filter, then sort. This is the view a list screen renders."""
    return sort_expenses(filter_expenses(expenses, expense_filter))


def group_expenses(ordered: Iterable[Expense]) -> list[ExpenseGroup]:
    """
    Partition an ordered view into display sections.

    Pinned records go to "Pinned". Unpinned records with either
    recurrence label go to "Monthly". Everything else goes to "All".
    Each section keeps the relative order of the input; empty sections
    are left out.
    """
    pinned, recurring, others = [], [], []
    for expense in ordered:
        if expense.is_pinned:
            pinned.append(expense)
        elif expense.is_recurring:
            recurring.append(expense)
        else:
            others.append(expense)

    groups = []
    for title, members in (
        (PINNED_GROUP, pinned),
        (MONTHLY_GROUP, recurring),
        (OTHER_GROUP, others),
    ):
        if members:
            groups.append(ExpenseGroup(title=title, expenses=tuple(members)))
    return groups


def expense_status(expense: Expense, today: Optional[date] = None) -> ExpenseStatus:
    """
    Derive the display status of an expense.

    Overdue means unpaid with a due date strictly before today.
    """
    if expense.is_paid:
        return ExpenseStatus.PAID
    today = today or date.today()
    if expense.due_date is not None and expense.due_date < today:
        return ExpenseStatus.OVERDUE
    return ExpenseStatus.UPCOMING
