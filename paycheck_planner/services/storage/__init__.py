"""
Storage Services Package

Provides the abstract slot interface and concrete implementations.
The JSON file backend is the default; Google Sheets and in-memory
backends are swappable through configuration.
"""

from paycheck_planner.services.storage.interface import (
    ConnectionError,
    PreferenceStorageInterface,
    StorageError,
)
from paycheck_planner.services.storage.memory import InMemoryPreferenceStorage
from paycheck_planner.services.storage.file import JsonFilePreferenceStorage
from paycheck_planner.services.storage.google_sheets import (
    GoogleSheetsClient,
    GoogleSheetsPreferenceStorage,
)

__all__ = [
    # Interface
    "PreferenceStorageInterface",
    # Exceptions
    "ConnectionError",
    "StorageError",
    # Implementations
    "InMemoryPreferenceStorage",
    "JsonFilePreferenceStorage",
    "GoogleSheetsClient",
    "GoogleSheetsPreferenceStorage",
]
