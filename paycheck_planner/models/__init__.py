"""
Data Models Package

This package contains all Pydantic models used in Paycheck Planner.
All data held by the expense store must conform to these schemas.
"""

from paycheck_planner.models.expense import (
    Expense,
    ExpenseFilter,
    ExpenseGroup,
    ExpenseStatus,
    ExpenseUpdate,
    Overview,
    ValidationIssue,
    ValidationResult,
)
from paycheck_planner.models.preferences import (
    AppTheme,
    Preferences,
)
from paycheck_planner.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Expense models
    "Expense",
    "ExpenseFilter",
    "ExpenseGroup",
    "ExpenseStatus",
    "ExpenseUpdate",
    "Overview",
    "ValidationIssue",
    "ValidationResult",
    # Preferences
    "AppTheme",
    "Preferences",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
