"""
Expense Store for Paycheck Planner

The single source of truth for the expense list, the paycheck and
the user's preferences. It:
1. Answers queries (ordered views, totals, over/under) from live state
2. Applies user intents (add, edit, delete, toggle paid, set paycheck)
3. Writes through to storage after every successful mutation

DESIGN DECISION: The store enforces the boundaries:
- No record changes without passing validation
- Derived numbers are computed on every read, never cached
- Every mutation is audited
- Unreadable persisted data never blocks startup

The store is single-threaded. Every operation runs to completion
before the next one starts, so there is no locking.
"""

from datetime import date
from typing import Any, Iterable, Optional, Union
from uuid import UUID

from pydantic import ValidationError

from paycheck_planner.audit import AuditLogger
from paycheck_planner.config import Settings, StorageBackend, get_settings
from paycheck_planner.models.expense import (
    Expense,
    ExpenseFilter,
    ExpenseGroup,
    ExpenseUpdate,
    Overview,
    ValidationIssue,
    ValidationResult,
)
from paycheck_planner.models.preferences import Preferences
from paycheck_planner.queries import expense_status, group_expenses, order_expenses
from paycheck_planner.services.codec import (
    EXPENSES_KEY,
    PAYCHECK_KEY,
    PREFERENCE_KEYS,
    DecodeError,
    decode_expenses,
    decode_paycheck,
    decode_preference,
    encode_expenses,
    encode_paycheck,
    encode_preferences,
)
from paycheck_planner.services.storage import (
    GoogleSheetsPreferenceStorage,
    InMemoryPreferenceStorage,
    JsonFilePreferenceStorage,
    PreferenceStorageInterface,
    StorageError,
)
from paycheck_planner.validation import ExpenseValidator


class ExpenseValidationError(ValueError):
    """An add or edit was rejected. State is unchanged."""

    def __init__(self, result: ValidationResult):
        self.result = result
        messages = "; ".join(
            issue.message for issue in result.issues if issue.severity == "error"
        )
        super().__init__(messages or "Invalid expense")


class ExpenseNotFoundError(LookupError):
    """No expense has the requested id."""

    def __init__(self, expense_id: UUID):
        self.expense_id = expense_id
        super().__init__(f"Expense not found: {expense_id}")


class ExpenseStore:
    """
    Owns the expense collection, the paycheck and the preferences.

    Lifecycle:
        store = ExpenseStore.load(storage)   # at process start
        ...                                  # user actions
        store.close()                        # at process end

    It can also be used as a context manager.
    """

    def __init__(
        self,
        storage: PreferenceStorageInterface,
        expenses: Iterable[Expense] = (),
        paycheck: float = 0.0,
        preferences: Optional[Preferences] = None,
        validator: Optional[ExpenseValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        """
        Initialize with explicit state. Nothing is read from storage.

        Raises:
            ValueError: If two expenses share an id or the paycheck is invalid
        """
        self._storage = storage
        self._expenses: list[Expense] = list(expenses)
        self._validator = validator or ExpenseValidator()
        self._audit = audit_logger or AuditLogger()
        self._preferences = preferences or Preferences()
        self._closed = False

        ids = [expense.id for expense in self._expenses]
        if len(ids) != len(set(ids)):
            raise ValueError("Expense ids must be unique")

        result = self._validator.validate_paycheck(paycheck)
        if not result.is_valid:
            raise ValueError(f"Invalid paycheck: {paycheck!r}")
        self._paycheck = result.amount

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    @classmethod
    def load(
        cls,
        storage: PreferenceStorageInterface,
        validator: Optional[ExpenseValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ) -> "ExpenseStore":
        """
        Open a store from persisted state.

        Slots that cannot be decoded fall back to their defaults
        (no expenses, zero paycheck, default preferences) and a
        warning is logged. Storage read errors propagate.
        """
        audit_logger = audit_logger or AuditLogger()

        expenses: list[Expense] = []
        data = storage.get(EXPENSES_KEY)
        if data is not None:
            try:
                expenses = _dedupe(decode_expenses(data), audit_logger)
            except DecodeError as e:
                audit_logger.log_decode_failed(EXPENSES_KEY, str(e))

        paycheck = 0.0
        data = storage.get(PAYCHECK_KEY)
        if data is not None:
            try:
                paycheck = decode_paycheck(data)
            except DecodeError as e:
                audit_logger.log_decode_failed(PAYCHECK_KEY, str(e))

        preference_values = {}
        for key in PREFERENCE_KEYS:
            data = storage.get(key)
            if data is None:
                continue
            try:
                preference_values[key] = decode_preference(key, data)
            except DecodeError as e:
                audit_logger.log_decode_failed(key, str(e))

        store = cls(
            storage,
            expenses=expenses,
            paycheck=paycheck,
            preferences=Preferences.model_validate(preference_values),
            validator=validator,
            audit_logger=audit_logger,
        )
        audit_logger.log_store_loaded(len(expenses), paycheck)
        return store

    def save(self) -> None:
        """Write every slot from current state."""
        self.save_expenses()
        self.save_paycheck()
        self.save_preferences()

    def save_expenses(self) -> None:
        self._write(EXPENSES_KEY, encode_expenses(self._expenses))

    def save_paycheck(self) -> None:
        self._write(PAYCHECK_KEY, encode_paycheck(self._paycheck))

    def save_preferences(self, keys: Optional[Iterable[str]] = None) -> None:
        slots = encode_preferences(self._preferences)
        if keys is None:
            keys = PREFERENCE_KEYS
        for key in keys:
            self._write(key, slots[key])

    def _write(self, key: str, value: bytes) -> None:
        try:
            self._storage.set(key, value)
        except StorageError as e:
            self._audit.log_save_failed(key, str(e))
            raise

    def close(self) -> None:
        """Flush all state and release the storage backend. Idempotent."""
        if self._closed:
            return
        self.save()
        self._storage.close()
        self._closed = True
        self._audit.log_store_closed(len(self._expenses))

    def __enter__(self) -> "ExpenseStore":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # =========================================================================
    # STATE ACCESS
    # =========================================================================

    @property
    def expenses(self) -> tuple[Expense, ...]:
        """All expenses in storage (insertion) order."""
        return tuple(self._expenses)

    @property
    def paycheck(self) -> float:
        return self._paycheck

    @property
    def preferences(self) -> Preferences:
        return self._preferences

    @property
    def audit_logger(self) -> AuditLogger:
        return self._audit

    def __len__(self) -> int:
        return len(self._expenses)

    def get_expense(self, expense_id: UUID) -> Optional[Expense]:
        index = self._index_of(expense_id)
        return self._expenses[index] if index is not None else None

    def _index_of(self, expense_id: UUID) -> Optional[int]:
        for index, expense in enumerate(self._expenses):
            if expense.id == expense_id:
                return index
        return None

    # =========================================================================
    # EXPENSE MUTATIONS
    # =========================================================================

    def add_expense(
        self,
        name: str,
        amount: Union[float, str],
        due_date: Optional[date] = None,
        is_pinned: bool = False,
        is_recurring_monthly: bool = False,
        is_recurring_weekly: bool = False,
    ) -> Expense:
        """
        Add a new expense and save.

        Raises:
            ExpenseValidationError: If the name is empty, the amount is
                not a finite, non-negative number or the due date is invalid
        """
        result = self._validator.validate_expense(
            name,
            amount,
            is_recurring_monthly=is_recurring_monthly,
            is_recurring_weekly=is_recurring_weekly,
        )
        if not result.is_valid:
            self._audit.log_validation_failed("add_expense", result)
            raise ExpenseValidationError(result)

        try:
            expense = Expense(
                name=name,
                amount=result.amount,
                due_date=due_date,
                is_pinned=is_pinned,
                is_recurring_monthly=is_recurring_monthly,
                is_recurring_weekly=is_recurring_weekly,
            )
        except ValidationError as e:
            rejected = _rejected(result, e)
            self._audit.log_validation_failed("add_expense", rejected)
            raise ExpenseValidationError(rejected) from e
        self._expenses.append(expense)
        self.save_expenses()
        self._audit.log_expense_added(expense)
        return expense

    def edit_expense(self, expense_id: UUID, **changes: Any) -> Expense:
        """
        Replace an expense with an edited copy and save.

        Accepts any of: name, amount, is_paid, due_date, is_pinned,
        is_recurring_monthly, is_recurring_weekly. Fields not passed
        keep their current value. Passing due_date=None clears it.

        Raises:
            ExpenseNotFoundError: If no expense has that id
            ExpenseValidationError: If the edited name or amount is invalid
            pydantic.ValidationError: If an unknown field is passed
        """
        index = self._index_of(expense_id)
        if index is None:
            raise ExpenseNotFoundError(expense_id)
        current = self._expenses[index]

        update = ExpenseUpdate(**changes)
        fields = current.model_dump()
        fields.update(update.model_dump(exclude_unset=True))

        result = self._validator.validate_expense(
            fields["name"],
            fields["amount"],
            is_recurring_monthly=bool(fields["is_recurring_monthly"]),
            is_recurring_weekly=bool(fields["is_recurring_weekly"]),
        )
        if not result.is_valid:
            self._audit.log_validation_failed("edit_expense", result, current)
            raise ExpenseValidationError(result)
        fields["amount"] = result.amount

        try:
            updated = Expense(**fields)
        except ValidationError as e:
            rejected = _rejected(result, e)
            self._audit.log_validation_failed("edit_expense", rejected, current)
            raise ExpenseValidationError(rejected) from e

        self._expenses[index] = updated
        self.save_expenses()
        changed = [
            name for name in Expense.model_fields
            if getattr(current, name) != getattr(updated, name)
        ]
        self._audit.log_expense_updated(updated, changed)
        return updated

    def delete_expense(self, expense_id: UUID) -> bool:
        """
        Delete an expense and save.

        Returns False (and writes nothing) if the id is unknown.
        """
        index = self._index_of(expense_id)
        if index is None:
            return False
        removed = self._expenses.pop(index)
        self.save_expenses()
        self._audit.log_expense_deleted(removed)
        return True

    def remove_at(self, indices: Iterable[int]) -> list[Expense]:
        """
        Remove expenses by position in storage order and save.

        Positions outside the collection are ignored.
        Returns the removed expenses in storage order.
        """
        positions = {i for i in indices if 0 <= i < len(self._expenses)}
        if not positions:
            return []
        removed = [e for i, e in enumerate(self._expenses) if i in positions]
        self._expenses = [e for i, e in enumerate(self._expenses) if i not in positions]
        self.save_expenses()
        self._audit.log_expenses_removed(removed)
        return removed

    def toggle_paid(self, expense_id: UUID) -> Optional[Expense]:
        """
        Flip the paid flag and save.

        Returns the updated expense, or None if the id is unknown.
        """
        index = self._index_of(expense_id)
        if index is None:
            return None
        current = self._expenses[index]
        updated = current.model_copy(update={"is_paid": not current.is_paid})
        self._expenses[index] = updated
        self.save_expenses()
        self._audit.log_payment_status_toggled(updated)
        return updated

    # =========================================================================
    # PAYCHECK
    # =========================================================================

    def set_paycheck(self, amount: Union[float, str]) -> bool:
        """
        Set the paycheck and save it.

        Input that is not a finite, non-negative number is ignored.
        Returns True if the paycheck was changed.
        """
        result = self._validator.validate_paycheck(amount)
        if not result.is_valid:
            self._audit.log_validation_failed("set_paycheck", result)
            return False
        previous = self._paycheck
        self._paycheck = result.amount
        self.save_paycheck()
        self._audit.log_paycheck_set(previous, self._paycheck)
        return True

    def clear_paycheck(self) -> None:
        previous = self._paycheck
        self._paycheck = 0.0
        self.save_paycheck()
        self._audit.log_paycheck_cleared(previous)

    # =========================================================================
    # PREFERENCES
    # =========================================================================

    def update_preferences(self, **changes: Any) -> Preferences:
        """
        Change one or more preferences and save the changed slots.

        Accepts app_theme, currency_code and has_seen_onboarding.

        Raises:
            pydantic.ValidationError: If a value is invalid
        """
        unknown = set(changes) - set(Preferences.model_fields)
        if unknown:
            raise TypeError(f"Unknown preferences: {', '.join(sorted(unknown))}")
        updated = Preferences.model_validate({
            **self._preferences.model_dump(),
            **changes,
        })

        changed = {
            name: getattr(updated, name)
            for name in Preferences.model_fields
            if getattr(updated, name) != getattr(self._preferences, name)
        }
        self._preferences = updated
        if changed:
            self.save_preferences(
                Preferences.model_fields[name].alias for name in changed
            )
            self._audit.log_preferences_updated(
                updated.model_dump(mode="json", include=set(changed))
            )
        return updated

    # =========================================================================
    # DERIVED VIEWS (recomputed on every call)
    # =========================================================================

    def total_expenses(self) -> float:
        """Sum of every expense amount, paid or not."""
        return sum(expense.amount for expense in self._expenses)

    def over_under(self) -> float:
        """Paycheck minus total expenses. Negative means short."""
        return self._paycheck - self.total_expenses()

    def due_count(self) -> int:
        """Number of unpaid expenses."""
        return sum(1 for expense in self._expenses if not expense.is_paid)

    def visible_expenses(
        self,
        expense_filter: Union[ExpenseFilter, str] = ExpenseFilter.ALL,
    ) -> list[Expense]:
        """The filtered, ordered view."""
        return order_expenses(self._expenses, expense_filter)

    def grouped_expenses(
        self,
        expense_filter: Union[ExpenseFilter, str] = ExpenseFilter.ALL,
    ) -> list[ExpenseGroup]:
        """The ordered view split into Pinned, Monthly and All sections."""
        return group_expenses(self.visible_expenses(expense_filter))

    def overview(
        self,
        expense_filter: Union[ExpenseFilter, str] = ExpenseFilter.ALL,
        today: Optional[date] = None,
    ) -> Overview:
        """Snapshot of everything an overview screen shows."""
        expense_filter = ExpenseFilter(expense_filter)
        today = today or date.today()
        visible = self.visible_expenses(expense_filter)
        total = self.total_expenses()
        return Overview(
            paycheck=self._paycheck,
            total_expenses=total,
            over_under=self._paycheck - total,
            due_count=self.due_count(),
            expense_filter=expense_filter,
            expenses=tuple(visible),
            groups=tuple(group_expenses(visible)),
            statuses={e.id: expense_status(e, today) for e in visible},
        )


def _rejected(result: ValidationResult, error: ValidationError) -> ValidationResult:
    """Turn a model error on an otherwise valid input into a failed result."""
    issues = list(result.issues)
    for detail in error.errors():
        field = str(detail["loc"][0]) if detail["loc"] else "expense"
        issues.append(ValidationIssue(
            field=field,
            issue_type="invalid",
            message=f"{field}: {detail['msg']}",
            severity="error",
        ))
    return ValidationResult(is_valid=False, amount=result.amount, issues=issues)


def _dedupe(expenses: list[Expense], audit_logger: AuditLogger) -> list[Expense]:
    """Drop records whose id was already seen, keeping the first."""
    seen: set[UUID] = set()
    unique = []
    for expense in expenses:
        if expense.id in seen:
            continue
        seen.add(expense.id)
        unique.append(expense)
    if len(unique) != len(expenses):
        audit_logger.log_decode_failed(
            EXPENSES_KEY,
            f"dropped {len(expenses) - len(unique)} expenses with duplicate ids",
        )
    return unique


# =============================================================================
# FACTORY
# =============================================================================

def create_storage(settings: Optional[Settings] = None) -> PreferenceStorageInterface:
    """Build the storage backend selected by configuration."""
    settings = settings or get_settings()
    storage_settings = settings.storage

    if storage_settings.backend == StorageBackend.MEMORY:
        return InMemoryPreferenceStorage()
    if storage_settings.backend == StorageBackend.GOOGLE_SHEETS:
        return GoogleSheetsPreferenceStorage()
    return JsonFilePreferenceStorage(storage_settings.data_file)


def create_store(
    settings: Optional[Settings] = None,
    storage: Optional[PreferenceStorageInterface] = None,
) -> ExpenseStore:
    """
    Factory function to open the store at process start.

    Args:
        settings: Settings to use. Defaults to get_settings().
        storage: Backend to use instead of the configured one.

    Returns:
        A loaded ExpenseStore
    """
    settings = settings or get_settings()
    app_settings = settings.app
    return ExpenseStore.load(
        storage or create_storage(settings),
        validator=ExpenseValidator(max_amount=app_settings.max_expense_amount),
        audit_logger=AuditLogger(history_size=app_settings.audit_history_size),
    )
