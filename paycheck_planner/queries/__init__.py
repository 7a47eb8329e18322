"""Ordering, filtering and status derivation."""

from paycheck_planner.queries.ordering import (
    MONTHLY_GROUP,
    OTHER_GROUP,
    PINNED_GROUP,
    expense_sort_key,
    expense_status,
    filter_expenses,
    group_expenses,
    matches_filter,
    order_expenses,
    sort_expenses,
)

__all__ = [
    "MONTHLY_GROUP",
    "OTHER_GROUP",
    "PINNED_GROUP",
    "expense_sort_key",
    "expense_status",
    "filter_expenses",
    "group_expenses",
    "matches_filter",
    "order_expenses",
    "sort_expenses",
]
