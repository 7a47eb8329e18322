"""
JSON File Storage Implementation

All slots live in one JSON document mapping slot name to text.
Blobs written by the codec are UTF-8 text, so they are stored as-is
and the file stays readable by hand.

TRADEOFFS:
- Every write rewrites the whole file (fine for a handful of slots)
- A corrupt document is treated as empty rather than blocking startup
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Optional, Union

import structlog
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from paycheck_planner.services.storage.interface import (
    PreferenceStorageInterface,
    StorageError,
)


logger = structlog.get_logger("paycheck_planner.storage.file")


class JsonFilePreferenceStorage(PreferenceStorageInterface):
    """
    Slot storage backed by a single JSON file.

    Writes go to a temporary file in the same directory which then
    replaces the document, so a crash never leaves a half-written file.
    """

    def __init__(self, path: Union[str, Path]):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def _read_all(self) -> dict[str, str]:
        """Read the whole document. Missing or corrupt files read as empty."""
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as e:
            raise StorageError(f"Failed to read {self._path}: {e}")

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning("storage_file_corrupt", path=str(self._path), error=str(e))
            return {}

        if not isinstance(data, dict):
            logger.warning("storage_file_corrupt", path=str(self._path), error="not an object")
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    @retry(
        retry=retry_if_exception_type(OSError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.1, min=0.1, max=1),
        reraise=True,
    )
    def _write_all(self, slots: dict[str, str]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=self._path.parent,
            prefix=f".{self._path.name}.",
            suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(slots, f, indent=2, sort_keys=True)
            os.replace(tmp_name, self._path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def get(self, key: str) -> Optional[bytes]:
        value = self._read_all().get(key)
        return value.encode("utf-8") if value is not None else None

    def set(self, key: str, value: bytes) -> None:
        try:
            text = bytes(value).decode("utf-8")
        except UnicodeDecodeError as e:
            raise StorageError(f"Slot '{key}' is not UTF-8 text: {e}")

        slots = self._read_all()
        slots[key] = text
        try:
            self._write_all(slots)
        except OSError as e:
            raise StorageError(f"Failed to write {self._path}: {e}")

    def delete(self, key: str) -> bool:
        slots = self._read_all()
        if key not in slots:
            return False
        del slots[key]
        try:
            self._write_all(slots)
        except OSError as e:
            raise StorageError(f"Failed to write {self._path}: {e}")
        return True

    def keys(self) -> list[str]:
        return list(self._read_all())
