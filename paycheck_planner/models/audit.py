"""
Audit Models for Paycheck Planner

Every mutation of the expense store, every rejected input and every
recovered load failure is logged as an audit event. This provides:
1. Traceability of what the user changed and when
2. Visibility into data that was dropped because it could not be decoded
3. Debugging information when a write fails

DESIGN DECISION: Audit events are append-only. We never modify them.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from paycheck_planner.models.expense import Expense


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Every store operation has its own event type.
    """
    # Expense mutations
    EXPENSE_ADDED = "expense_added"
    EXPENSE_UPDATED = "expense_updated"
    EXPENSE_DELETED = "expense_deleted"
    EXPENSES_REMOVED = "expenses_removed"
    PAYMENT_STATUS_TOGGLED = "payment_status_toggled"

    # Paycheck
    PAYCHECK_SET = "paycheck_set"
    PAYCHECK_CLEARED = "paycheck_cleared"

    # Preferences
    PREFERENCES_UPDATED = "preferences_updated"

    # Input rejection
    VALIDATION_FAILED = "validation_failed"

    # Persistence
    STORE_LOADED = "store_loaded"
    STORE_CLOSED = "store_closed"
    DECODE_FAILED = "decode_failed"
    SAVE_FAILED = "save_failed"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'expense', 'paycheck', 'slot')"
    )
    entity_id: Optional[UUID] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.expense_added(expense)
        event = AuditEventBuilder.decode_failed("expensesData", str(error))
    """

    @staticmethod
    def expense_added(expense: Expense) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_ADDED,
            entity_type="expense",
            entity_id=expense.id,
            description=f"Expense added: {expense.name}",
            details={
                "name": expense.name,
                "amount": expense.amount,
            },
            is_user_action=True,
        )

    @staticmethod
    def expense_updated(
        expense: Expense,
        changed_fields: list[str],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_UPDATED,
            entity_type="expense",
            entity_id=expense.id,
            description=f"Expense updated: {expense.name}",
            details={
                "changed_fields": changed_fields,
            },
            is_user_action=True,
        )

    @staticmethod
    def expense_deleted(expense: Expense) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_DELETED,
            entity_type="expense",
            entity_id=expense.id,
            description=f"Expense deleted: {expense.name}",
            details={
                "amount": expense.amount,
            },
            is_user_action=True,
        )

    @staticmethod
    def expenses_removed(expenses: list[Expense]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSES_REMOVED,
            entity_type="expense",
            description=f"Removed {len(expenses)} expenses",
            details={
                "ids": [str(expense.id) for expense in expenses],
            },
            is_user_action=True,
        )

    @staticmethod
    def payment_status_toggled(expense: Expense) -> AuditEvent:
        state = "paid" if expense.is_paid else "unpaid"
        return AuditEvent(
            event_type=AuditEventType.PAYMENT_STATUS_TOGGLED,
            entity_type="expense",
            entity_id=expense.id,
            description=f"Expense marked {state}: {expense.name}",
            details={
                "is_paid": expense.is_paid,
            },
            is_user_action=True,
        )

    @staticmethod
    def paycheck_set(previous: float, amount: float) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PAYCHECK_SET,
            entity_type="paycheck",
            description=f"Paycheck set to {amount:.2f}",
            details={
                "previous": previous,
                "amount": amount,
            },
            is_user_action=True,
        )

    @staticmethod
    def paycheck_cleared(previous: float) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PAYCHECK_CLEARED,
            entity_type="paycheck",
            description="Paycheck cleared",
            details={
                "previous": previous,
            },
            is_user_action=True,
        )

    @staticmethod
    def preferences_updated(changes: dict[str, Any]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PREFERENCES_UPDATED,
            entity_type="preferences",
            description=f"Preferences updated: {', '.join(sorted(changes))}",
            details=changes,
            is_user_action=True,
        )

    @staticmethod
    def validation_failed(
        operation: str,
        issues: list[dict],
        entity_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="expense" if entity_id else None,
            entity_id=entity_id,
            description=f"{operation} rejected with {len(issues)} issues",
            details={
                "operation": operation,
                "issues": issues,
            },
            is_user_action=True,
        )

    @staticmethod
    def store_loaded(expense_count: int, paycheck: float) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORE_LOADED,
            entity_type="store",
            description=f"Loaded {expense_count} expenses",
            details={
                "expense_count": expense_count,
                "paycheck": paycheck,
            },
        )

    @staticmethod
    def store_closed(expense_count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORE_CLOSED,
            entity_type="store",
            description="Store flushed and closed",
            details={
                "expense_count": expense_count,
            },
        )

    @staticmethod
    def decode_failed(key: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DECODE_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="slot",
            description=f"Could not decode '{key}', using defaults",
            error_message=error_message,
            details={
                "key": key,
            },
        )

    @staticmethod
    def save_failed(key: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAVE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="slot",
            description=f"Failed to write '{key}'",
            error_message=error_message,
            details={
                "key": key,
            },
        )
