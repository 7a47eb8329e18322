"""
Tests for the ExpenseStore.

All tests run against in-memory storage unless they are about
the factory or file persistence.
"""

import json
import pytest
from datetime import date
from uuid import uuid4

from pydantic import ValidationError

from paycheck_planner.config import Settings
from paycheck_planner.models.audit import AuditEventType
from paycheck_planner.models.expense import ExpenseFilter, ExpenseStatus
from paycheck_planner.models.preferences import AppTheme
from paycheck_planner.queries import MONTHLY_GROUP, OTHER_GROUP, PINNED_GROUP
from paycheck_planner.services.codec import (
    EXPENSES_KEY,
    PAYCHECK_KEY,
    THEME_KEY,
    decode_expenses,
    encode_expenses,
)
from paycheck_planner.services.storage import (
    InMemoryPreferenceStorage,
    JsonFilePreferenceStorage,
    StorageError,
)
from paycheck_planner.store import (
    ExpenseNotFoundError,
    ExpenseStore,
    ExpenseValidationError,
    create_store,
)


class FailingStorage(InMemoryPreferenceStorage):
    """Storage whose writes always fail."""

    def set(self, key, value):
        raise StorageError("disk full")


@pytest.fixture
def storage():
    return InMemoryPreferenceStorage()


@pytest.fixture
def store(storage):
    return ExpenseStore.load(storage)


def event_types(store):
    return [e.event_type for e in store.audit_logger.recent_events()]


class TestAddExpense:

    def test_add_appends_and_saves(self, store, storage):
        expense = store.add_expense("Rent", 1200)
        assert store.expenses == (expense,)
        assert decode_expenses(storage.get(EXPENSES_KEY)) == [expense]
        assert storage.write_count == 1

    def test_add_parses_string_amount(self, store):
        assert store.add_expense("Power", "85.40").amount == 85.40

    def test_add_sets_flags(self, store):
        expense = store.add_expense(
            "Gym",
            30,
            due_date=date(2025, 2, 1),
            is_pinned=True,
            is_recurring_monthly=True,
            is_recurring_weekly=True,
        )
        assert expense.due_date == date(2025, 2, 1)
        assert expense.is_pinned and expense.is_recurring_monthly and expense.is_recurring_weekly
        assert expense.is_paid is False

    def test_total_grows_by_amount(self, store):
        store.add_expense("Rent", 1200)
        before = store.total_expenses()
        store.add_expense("Water", 45.5)
        assert store.total_expenses() == pytest.approx(before + 45.5)

    @pytest.mark.parametrize("name, amount", [
        ("", 50),
        ("   ", 50),
        ("Rent", float("-inf")),
        ("Rent", float("nan")),
        ("Rent", "abc"),
        ("Rent", -5),
        ("Rent", None),
    ])
    def test_invalid_add_is_rejected(self, store, storage, name, amount):
        store.add_expense("Existing", 10)
        with pytest.raises(ExpenseValidationError) as exc_info:
            store.add_expense(name, amount)
        assert len(store) == 1
        assert storage.write_count == 1
        assert exc_info.value.result.has_errors
        assert event_types(store)[0] == AuditEventType.VALIDATION_FAILED

    def test_invalid_due_date_is_rejected(self, store, storage):
        with pytest.raises(ExpenseValidationError) as exc_info:
            store.add_expense("Rent", 1200, due_date="next tuesday")
        assert len(store) == 0
        assert storage.write_count == 0
        assert exc_info.value.result.has_errors
        assert event_types(store)[0] == AuditEventType.VALIDATION_FAILED

    def test_ids_are_unique(self, store):
        ids = {store.add_expense(f"Bill {i}", i).id for i in range(20)}
        assert len(ids) == 20


class TestEditExpense:

    def test_edit_replaces_fields(self, store):
        original = store.add_expense("Rent", 1200, due_date=date(2025, 1, 1))
        updated = store.edit_expense(
            original.id,
            name="Rent (new flat)",
            amount="1350",
            is_paid=True,
            due_date=None,
            is_pinned=True,
        )
        assert updated.id == original.id
        assert updated.name == "Rent (new flat)"
        assert updated.amount == 1350.0
        assert updated.is_paid is True
        assert updated.due_date is None
        assert updated.is_pinned is True
        assert store.get_expense(original.id) == updated

    def test_edit_keeps_unmentioned_fields(self, store):
        original = store.add_expense("Phone", 40, is_recurring_monthly=True)
        updated = store.edit_expense(original.id, amount=45)
        assert updated.name == "Phone"
        assert updated.is_recurring_monthly is True

    def test_edit_keeps_position(self, store):
        first = store.add_expense("First", 1)
        store.add_expense("Second", 2)
        store.edit_expense(first.id, name="Renamed")
        assert store.expenses[0].name == "Renamed"

    def test_edit_unknown_id(self, store, storage):
        with pytest.raises(ExpenseNotFoundError):
            store.edit_expense(uuid4(), name="Nope")
        assert storage.write_count == 0

    @pytest.mark.parametrize("changes", [
        {"name": ""},
        {"amount": "abc"},
        {"amount": -1},
        {"amount": float("inf")},
    ])
    def test_invalid_edit_leaves_state(self, store, storage, changes):
        original = store.add_expense("Rent", 1200)
        with pytest.raises(ExpenseValidationError):
            store.edit_expense(original.id, **changes)
        assert store.expenses == (original,)
        assert storage.write_count == 1

    def test_unknown_field_rejected(self, store):
        original = store.add_expense("Rent", 1200)
        with pytest.raises(ValidationError):
            store.edit_expense(original.id, colour="red")

    def test_edit_is_audited(self, store):
        original = store.add_expense("Rent", 1200)
        store.edit_expense(original.id, amount=1300)
        event = store.audit_logger.recent_events(1)[0]
        assert event.event_type == AuditEventType.EXPENSE_UPDATED
        assert event.details["changed_fields"] == ["amount"]


class TestDeleteAndRemove:

    def test_delete_by_id(self, store):
        keep = store.add_expense("Keep", 1)
        gone = store.add_expense("Gone", 2)
        assert store.delete_expense(gone.id) is True
        assert store.get_expense(gone.id) is None
        for expense_filter in ExpenseFilter:
            assert gone.id not in {e.id for e in store.visible_expenses(expense_filter)}
        assert store.expenses == (keep,)

    def test_delete_unknown_id_is_noop(self, store, storage):
        store.add_expense("Rent", 1200)
        before = store.expenses
        writes = storage.write_count
        assert store.delete_expense(uuid4()) is False
        assert store.expenses == before
        assert storage.write_count == writes

    def test_remove_at(self, store):
        a = store.add_expense("A", 1)
        b = store.add_expense("B", 2)
        c = store.add_expense("C", 3)
        removed = store.remove_at([2, 0, 7, -1])
        assert removed == [a, c]
        assert store.expenses == (b,)

    def test_remove_at_nothing_valid(self, store, storage):
        store.add_expense("A", 1)
        assert store.remove_at([5]) == []
        assert storage.write_count == 1


class TestTogglePaid:

    def test_toggle_twice_restores(self, store):
        expense = store.add_expense("Rent", 1200)
        assert store.toggle_paid(expense.id).is_paid is True
        assert store.toggle_paid(expense.id).is_paid is False
        assert store.get_expense(expense.id) == expense

    def test_total_ignores_paid_status(self, store):
        expense = store.add_expense("Rent", 1200)
        store.add_expense("Power", 80)
        total = store.total_expenses()
        store.toggle_paid(expense.id)
        assert store.total_expenses() == total
        assert store.due_count() == 1

    def test_toggle_unknown_id(self, store, storage):
        assert store.toggle_paid(uuid4()) is None
        assert storage.write_count == 0


class TestPaycheck:

    def test_set_paycheck(self, store, storage):
        assert store.set_paycheck("2500") is True
        assert store.paycheck == 2500.0
        assert storage.get(PAYCHECK_KEY) == b"2500.0"
        assert storage.get(EXPENSES_KEY) is None

    @pytest.mark.parametrize("value", ["abc", "", -100, float("inf"), None])
    def test_invalid_paycheck_is_ignored(self, store, storage, value):
        store.set_paycheck(1000)
        assert store.set_paycheck(value) is False
        assert store.paycheck == 1000.0
        assert storage.get(PAYCHECK_KEY) == b"1000.0"

    def test_clear_paycheck(self, store, storage):
        store.set_paycheck(1000)
        store.clear_paycheck()
        assert store.paycheck == 0.0
        assert storage.get(PAYCHECK_KEY) == b"0.0"

    def test_over_under_after_every_mutation(self, store):
        def check():
            assert store.over_under() == store.paycheck - store.total_expenses()

        check()
        store.set_paycheck(2000)
        check()
        rent = store.add_expense("Rent", 1200)
        check()
        power = store.add_expense("Power", 95.5)
        check()
        store.toggle_paid(rent.id)
        check()
        store.edit_expense(power.id, amount=1000)
        check()
        assert store.over_under() < 0
        store.delete_expense(rent.id)
        check()
        store.clear_paycheck()
        check()


class TestViews:

    def test_visible_expenses_example_order(self, store):
        c = store.add_expense("Zeta", 30)
        b = store.add_expense("B", 20, due_date=date(2025, 1, 5), is_recurring_monthly=True)
        d = store.add_expense("alpha", 40)
        a = store.add_expense("A", 10, due_date=date(2025, 1, 1), is_pinned=True)
        assert store.visible_expenses() == [a, b, d, c]

    def test_unpaid_filter(self, store):
        paid = [store.add_expense(f"Paid {i}", 10) for i in range(3)]
        for expense in paid:
            store.toggle_paid(expense.id)
        late = store.add_expense("Late", 5, due_date=date(2025, 3, 1))
        early = store.add_expense("Early", 5, due_date=date(2025, 2, 1))

        unpaid = store.visible_expenses("unpaid")
        assert [e.id for e in unpaid] == [early.id, late.id]

    def test_views_are_not_stale(self, store):
        expense = store.add_expense("Rent", 1200)
        assert len(store.visible_expenses(ExpenseFilter.PAID)) == 0
        store.toggle_paid(expense.id)
        assert len(store.visible_expenses(ExpenseFilter.PAID)) == 1

    def test_grouped_expenses(self, store):
        store.add_expense("Rent", 1200, is_pinned=True)
        store.add_expense("Groceries", 100, is_recurring_weekly=True)
        store.add_expense("Gift", 25)
        titles = [g.title for g in store.grouped_expenses()]
        assert titles == [PINNED_GROUP, MONTHLY_GROUP, OTHER_GROUP]

    def test_overview(self, store):
        store.set_paycheck(2000)
        overdue = store.add_expense("Power", 100, due_date=date(2025, 6, 1))
        upcoming = store.add_expense("Rent", 1200, due_date=date(2025, 7, 1))
        paid = store.add_expense("Phone", 50)
        store.toggle_paid(paid.id)

        overview = store.overview(today=date(2025, 6, 15))
        assert overview.paycheck == 2000.0
        assert overview.total_expenses == 1350.0
        assert overview.over_under == 650.0
        assert overview.due_count == 2
        assert overview.is_short is False
        assert overview.statuses[overdue.id] == ExpenseStatus.OVERDUE
        assert overview.statuses[upcoming.id] == ExpenseStatus.UPCOMING
        assert overview.statuses[paid.id] == ExpenseStatus.PAID

        unpaid_overview = store.overview("unpaid", today=date(2025, 6, 15))
        assert paid.id not in unpaid_overview.statuses
        assert unpaid_overview.total_expenses == 1350.0


class TestPreferences:

    def test_update_writes_only_changed_slots(self, store, storage):
        store.update_preferences(app_theme="dark", currency_code="EUR")
        assert storage.get(THEME_KEY) == b"dark"
        assert storage.get("currencyCode") == b"EUR"
        assert storage.get("hasSeenOnboarding") is None
        assert storage.write_count == 2

    def test_update_without_change_writes_nothing(self, store, storage):
        store.update_preferences(app_theme="system")
        assert storage.write_count == 0

    def test_invalid_preference_rejected(self, store):
        with pytest.raises(ValidationError):
            store.update_preferences(app_theme="sepia")
        assert store.preferences.app_theme == AppTheme.SYSTEM

    def test_unknown_preference_rejected(self, store):
        with pytest.raises(TypeError):
            store.update_preferences(font_size=12)

    def test_preferences_load(self):
        storage = InMemoryPreferenceStorage({
            "appTheme": b"light",
            "currencyCode": b"gbp",
            "hasSeenOnboarding": b"true",
        })
        prefs = ExpenseStore.load(storage).preferences
        assert prefs.app_theme == AppTheme.LIGHT
        assert prefs.currency_code == "GBP"
        assert prefs.has_seen_onboarding is True


class TestLifecycle:

    def test_load_round_trip(self, storage):
        with ExpenseStore.load(storage) as store:
            store.set_paycheck(3000)
            rent = store.add_expense("Rent", 1200, due_date=date(2025, 1, 1))
            store.toggle_paid(rent.id)
            store.update_preferences(has_seen_onboarding=True)
            expected = store.expenses

        reopened = ExpenseStore.load(storage)
        assert reopened.expenses == expected
        assert reopened.paycheck == 3000.0
        assert reopened.preferences.has_seen_onboarding is True

    def test_malformed_expenses_fall_back_to_empty(self):
        storage = InMemoryPreferenceStorage({
            EXPENSES_KEY: b"{ definitely not json",
            PAYCHECK_KEY: b"1500",
        })
        store = ExpenseStore.load(storage)
        assert store.expenses == ()
        assert store.paycheck == 1500.0
        assert AuditEventType.DECODE_FAILED in event_types(store)

    @pytest.mark.parametrize("due_date", ["1e12", "-1e20"])
    def test_out_of_range_due_date_falls_back_to_empty(self, due_date):
        blob = (
            f'[{{"id": "{uuid4()}", "name": "Rent", "amount": 1, '
            f'"dueDate": {due_date}}}]'
        ).encode()
        storage = InMemoryPreferenceStorage({
            EXPENSES_KEY: blob,
            PAYCHECK_KEY: b"500",
        })
        store = ExpenseStore.load(storage)
        assert store.expenses == ()
        assert store.paycheck == 500.0
        assert AuditEventType.DECODE_FAILED in event_types(store)

    def test_malformed_paycheck_falls_back_to_zero(self):
        storage = InMemoryPreferenceStorage({PAYCHECK_KEY: b"lots"})
        assert ExpenseStore.load(storage).paycheck == 0.0

    def test_malformed_preference_falls_back_to_default(self):
        storage = InMemoryPreferenceStorage({
            THEME_KEY: b"sepia",
            "currencyCode": b"EUR",
        })
        prefs = ExpenseStore.load(storage).preferences
        assert prefs.app_theme == AppTheme.SYSTEM
        assert prefs.currency_code == "EUR"

    def test_duplicate_ids_in_blob_keep_first(self):
        expense_id = str(uuid4())
        blob = json.dumps([
            {"id": expense_id, "name": "First", "amount": 1},
            {"id": expense_id, "name": "Second", "amount": 2},
        ]).encode()
        store = ExpenseStore.load(InMemoryPreferenceStorage({EXPENSES_KEY: blob}))
        assert [e.name for e in store.expenses] == ["First"]

    def test_constructor_rejects_duplicate_ids(self, storage):
        store = ExpenseStore.load(storage)
        expense = store.add_expense("Rent", 1)
        with pytest.raises(ValueError):
            ExpenseStore(storage, expenses=[expense, expense])

    def test_constructor_does_not_read_storage(self):
        storage = InMemoryPreferenceStorage({PAYCHECK_KEY: b"999"})
        assert ExpenseStore(storage, paycheck=10).paycheck == 10.0

    def test_close_flushes_all_slots(self, storage):
        store = ExpenseStore(storage, paycheck=10)
        store.close()
        assert storage.get(EXPENSES_KEY) == encode_expenses([])
        assert storage.get(PAYCHECK_KEY) == b"10.0"
        assert storage.get(THEME_KEY) == b"system"
        writes = storage.write_count
        store.close()
        assert storage.write_count == writes

    def test_save_failure_propagates_and_is_audited(self):
        store = ExpenseStore(FailingStorage())
        with pytest.raises(StorageError):
            store.add_expense("Rent", 1200)
        assert AuditEventType.SAVE_FAILED in event_types(store)


class TestFactory:

    def test_create_store_memory_backend(self, monkeypatch):
        monkeypatch.setenv("PAYCHECK_STORAGE_BACKEND", "memory")
        store = create_store(Settings())
        assert store.expenses == ()

    def test_create_store_file_backend(self, monkeypatch, tmp_path):
        path = tmp_path / "planner.json"
        monkeypatch.setenv("PAYCHECK_STORAGE_BACKEND", "file")
        monkeypatch.setenv("PAYCHECK_STORAGE_DATA_FILE", str(path))

        with create_store(Settings()) as store:
            store.add_expense("Rent", 1200)
            store.set_paycheck(2500)

        reopened = create_store(Settings())
        assert [e.name for e in reopened.expenses] == ["Rent"]
        assert reopened.over_under() == 1300.0
        assert path.exists()

    def test_amount_above_bound_is_still_added(self, monkeypatch):
        monkeypatch.setenv("PAYCHECK_STORAGE_BACKEND", "memory")
        monkeypatch.setenv("MAX_EXPENSE_AMOUNT", "100")
        store = create_store(Settings())
        store.add_expense("Car", 5000)
        event = store.audit_logger.recent_events(1)[0]
        assert event.event_type == AuditEventType.EXPENSE_ADDED

    def test_create_store_with_explicit_storage(self, tmp_path):
        storage = JsonFilePreferenceStorage(tmp_path / "x.json")
        store = create_store(Settings(), storage=storage)
        store.add_expense("Rent", 1)
        assert storage.get(EXPENSES_KEY) is not None
