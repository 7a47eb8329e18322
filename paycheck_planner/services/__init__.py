"""Services package."""

from paycheck_planner.services.codec import (
    CURRENCY_KEY,
    EXPENSES_KEY,
    ONBOARDING_KEY,
    PAYCHECK_KEY,
    PREFERENCE_KEYS,
    THEME_KEY,
    DecodeError,
    decode_expenses,
    decode_paycheck,
    decode_preference,
    encode_expenses,
    encode_paycheck,
    encode_preferences,
)
from paycheck_planner.services.storage import (
    ConnectionError,
    GoogleSheetsClient,
    GoogleSheetsPreferenceStorage,
    InMemoryPreferenceStorage,
    JsonFilePreferenceStorage,
    PreferenceStorageInterface,
    StorageError,
)

__all__ = [
    # Codec
    "CURRENCY_KEY",
    "EXPENSES_KEY",
    "ONBOARDING_KEY",
    "PAYCHECK_KEY",
    "PREFERENCE_KEYS",
    "THEME_KEY",
    "DecodeError",
    "decode_expenses",
    "decode_paycheck",
    "decode_preference",
    "encode_expenses",
    "encode_paycheck",
    "encode_preferences",
    # Storage services
    "ConnectionError",
    "GoogleSheetsClient",
    "GoogleSheetsPreferenceStorage",
    "InMemoryPreferenceStorage",
    "JsonFilePreferenceStorage",
    "PreferenceStorageInterface",
    "StorageError",
]
