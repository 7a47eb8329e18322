"""
Persistence Codec

Turns the store's state into flat byte blobs and back.

Slot layout:
- expensesData: JSON array of expense objects with camelCase keys
- paycheckAmount: decimal string
- appTheme, currencyCode, hasSeenOnboarding: plain text

DESIGN DECISION: Expenses are encoded as self-describing field/value
objects. Fields added in later versions have defaults, so older blobs
that lack them still decode. Keys this version does not know are
ignored.

Decoding never guesses. A blob that cannot be read raises DecodeError
and the store decides how to recover.
"""

import math
from typing import Any, Iterable

from pydantic import TypeAdapter, ValidationError

from paycheck_planner.models.expense import Expense
from paycheck_planner.models.preferences import Preferences


EXPENSES_KEY = "expensesData"
PAYCHECK_KEY = "paycheckAmount"
THEME_KEY = "appTheme"
CURRENCY_KEY = "currencyCode"
ONBOARDING_KEY = "hasSeenOnboarding"

PREFERENCE_KEYS = (THEME_KEY, CURRENCY_KEY, ONBOARDING_KEY)

_EXPENSE_LIST = TypeAdapter(list[Expense])


class DecodeError(ValueError):
    """A persisted blob could not be decoded."""

    def __init__(self, key: str, message: str):
        self.key = key
        super().__init__(f"Cannot decode '{key}': {message}")


# =============================================================================
# EXPENSES
# =============================================================================

def encode_expenses(expenses: Iterable[Expense]) -> bytes:
    """Encode the full collection, in storage order."""
    return _EXPENSE_LIST.dump_json(list(expenses), by_alias=True)


def decode_expenses(data: bytes) -> list[Expense]:
    """
    Decode the expense collection.

    An empty blob means nothing has been saved yet.
    """
    if not data or not data.strip():
        return []
    try:
        return _EXPENSE_LIST.validate_json(data)
    except ValidationError as e:
        raise DecodeError(EXPENSES_KEY, f"{e.error_count()} invalid values") from e


# =============================================================================
# PAYCHECK
# =============================================================================

def encode_paycheck(amount: float) -> bytes:
    return repr(float(amount)).encode("utf-8")


def decode_paycheck(data: bytes) -> float:
    if not data or not data.strip():
        return 0.0
    try:
        amount = float(data.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as e:
        raise DecodeError(PAYCHECK_KEY, str(e)) from e
    if not math.isfinite(amount) or amount < 0:
        raise DecodeError(PAYCHECK_KEY, f"{amount} is not a valid paycheck")
    return amount


# =============================================================================
# PREFERENCES
# =============================================================================

def encode_preferences(preferences: Preferences) -> dict[str, bytes]:
    """Encode each preference into its own slot."""
    values = preferences.model_dump(mode="json", by_alias=True)
    slots = {}
    for key in PREFERENCE_KEYS:
        value = values[key]
        if isinstance(value, bool):
            value = "true" if value else "false"
        slots[key] = str(value).encode("utf-8")
    return slots


def decode_preference(key: str, data: bytes) -> Any:
    """
    Decode one preference slot into a validated value.

    Raises:
        DecodeError: If the slot is unknown or its value is invalid
    """
    if key not in PREFERENCE_KEYS:
        raise DecodeError(key, "not a preference slot")
    try:
        text = data.decode("utf-8").strip()
    except UnicodeDecodeError as e:
        raise DecodeError(key, str(e)) from e

    try:
        validated = Preferences.model_validate({key: text})
    except ValidationError as e:
        raise DecodeError(key, f"invalid value {text!r}") from e

    field_name = next(
        name for name, info in Preferences.model_fields.items()
        if info.alias == key
    )
    return getattr(validated, field_name)
