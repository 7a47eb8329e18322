"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for the persisted slots.
This allows us to:
1. Keep data in a local JSON file for everyday use
2. Use in-memory storage for testing
3. Mirror the slots to Google Sheets so they can be viewed elsewhere
4. Keep the store decoupled from where bytes end up

The interface is intentionally tiny: a flat key-value store of byte
blobs, one slot per key. The store always overwrites a slot whole.
"""

from abc import ABC, abstractmethod
from typing import Optional


class PreferenceStorageInterface(ABC):
    """
    Abstract interface for key-value slot storage.

    Any storage implementation must implement these methods.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[bytes]:
        """
        Read a slot.

        Args:
            key: Slot name (e.g., 'expensesData')

        Returns:
            The stored bytes, or None if the slot was never written

        Raises:
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    def set(self, key: str, value: bytes) -> None:
        """
        Overwrite a slot.

        Args:
            key: Slot name
            value: Complete new contents

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        """
        Remove a slot.

        Returns:
            True if the slot existed
        """
        pass

    @abstractmethod
    def keys(self) -> list[str]:
        """List slot names currently stored."""
        pass

    def close(self) -> None:
        """Release backend resources. Default is a no-op."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
