"""
Audit Logger

DESIGN DECISION: Every store mutation is logged.
This provides:
1. Complete traceability of user changes
2. Debugging capability
3. Visibility into data dropped by a failed decode

The audit logger:
- Is synchronous (the store has no suspension points)
- Only writes to the local log, never to the persisted slots
- Keeps a bounded in-memory history for inspection
"""

from collections import deque
from typing import Any, Optional

import structlog

from paycheck_planner.models.audit import AuditEvent, AuditEventBuilder
from paycheck_planner.models.expense import Expense, ValidationResult


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An in-memory history (for the caller to inspect)
    """

    def __init__(self, history_size: int = 200):
        """
        Initialize audit logger.

        Args:
            history_size: How many recent events to retain.
                          0 disables the history.
        """
        self._history: deque[AuditEvent] = deque(maxlen=history_size)
        self._logger = structlog.get_logger("paycheck_planner.audit")

    def log(self, event: AuditEvent) -> None:
        """
        Log an audit event.

        Always logs locally and records the event in the history.
        """
        log_dict = event.to_log_dict()

        if event.severity.value == "error":
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        self._history.append(event)

    def recent_events(self, limit: Optional[int] = None) -> list[AuditEvent]:
        """Return retained events, newest first."""
        events = list(reversed(self._history))
        if limit is not None:
            events = events[:limit]
        return events

    def log_expense_added(self, expense: Expense) -> None:
        self.log(AuditEventBuilder.expense_added(expense))

    def log_expense_updated(self, expense: Expense, changed_fields: list[str]) -> None:
        self.log(AuditEventBuilder.expense_updated(expense, changed_fields))

    def log_expense_deleted(self, expense: Expense) -> None:
        self.log(AuditEventBuilder.expense_deleted(expense))

    def log_expenses_removed(self, expenses: list[Expense]) -> None:
        self.log(AuditEventBuilder.expenses_removed(expenses))

    def log_payment_status_toggled(self, expense: Expense) -> None:
        self.log(AuditEventBuilder.payment_status_toggled(expense))

    def log_paycheck_set(self, previous: float, amount: float) -> None:
        self.log(AuditEventBuilder.paycheck_set(previous, amount))

    def log_paycheck_cleared(self, previous: float) -> None:
        self.log(AuditEventBuilder.paycheck_cleared(previous))

    def log_preferences_updated(self, changes: dict[str, Any]) -> None:
        self.log(AuditEventBuilder.preferences_updated(changes))

    def log_validation_failed(
        self,
        operation: str,
        result: ValidationResult,
        expense: Optional[Expense] = None,
    ) -> None:
        """Log a rejected add, edit or paycheck input."""
        self.log(AuditEventBuilder.validation_failed(
            operation=operation,
            issues=[issue.model_dump() for issue in result.issues],
            entity_id=expense.id if expense else None,
        ))

    def log_store_loaded(self, expense_count: int, paycheck: float) -> None:
        self.log(AuditEventBuilder.store_loaded(expense_count, paycheck))

    def log_store_closed(self, expense_count: int) -> None:
        self.log(AuditEventBuilder.store_closed(expense_count))

    def log_decode_failed(self, key: str, error_message: str) -> None:
        self.log(AuditEventBuilder.decode_failed(key, error_message))

    def log_save_failed(self, key: str, error_message: str) -> None:
        self.log(AuditEventBuilder.save_failed(key, error_message))
