"""In-memory slot storage, for tests and throwaway sessions."""

from typing import Optional

from paycheck_planner.services.storage.interface import PreferenceStorageInterface


class InMemoryPreferenceStorage(PreferenceStorageInterface):
    """Dict-backed storage. Counts writes so callers can check write-through."""

    def __init__(self, initial: Optional[dict[str, bytes]] = None):
        self._slots: dict[str, bytes] = dict(initial or {})
        self.write_count = 0

    def get(self, key: str) -> Optional[bytes]:
        return self._slots.get(key)

    def set(self, key: str, value: bytes) -> None:
        self._slots[key] = bytes(value)
        self.write_count += 1

    def delete(self, key: str) -> bool:
        return self._slots.pop(key, None) is not None

    def keys(self) -> list[str]:
        return list(self._slots)
