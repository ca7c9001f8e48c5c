"""
Key-value stores for small persisted blobs such as calibration data.

Stores never raise on I/O problems: failures are logged and reported as a
missing value (on read) or ``False`` (on write), so the tracking pipeline
keeps running with defaults.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

from .constants import DEFAULT_STORAGE_PATH

logger = logging.getLogger(__name__)


class InMemoryStore:
    """Process-local store, used when nothing should touch the disk."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, Any] = dict(initial or {})

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> bool:
        self._data[key] = value
        return True

    def delete(self, key: str) -> bool:
        return self._data.pop(key, None) is not None

    def keys(self):
        return list(self._data.keys())


class JsonFileStore:
    """
    Key-value store backed by a single JSON file.

    The whole file is read on every ``get`` and rewritten on every ``set``;
    it only holds a handful of small records that change at calibration
    time, never per frame.
    """

    def __init__(self, path: Union[str, Path] = DEFAULT_STORAGE_PATH):
        """
        Initialize the store.

        Args:
            path: JSON file path (``~`` is expanded). The parent directory
                is created on first write.
        """
        self.path = Path(os.path.expanduser(str(path)))

    def _read_all(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}

        try:
            with open(self.path, 'r') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to read store {self.path}: {e}")
            return {}

        if not isinstance(data, dict):
            logger.warning(f"Ignoring store {self.path}: top level is not an object")
            return {}
        return data

    def _write_all(self, data: Dict[str, Any]) -> bool:
        try:
            payload = json.dumps(data, indent=2)
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, 'w') as f:
                f.write(payload)
            return True
        except (OSError, TypeError, ValueError) as e:
            logger.warning(f"Failed to write store {self.path}: {e}")
            return False

    def get(self, key: str, default: Any = None) -> Any:
        """Return the value stored under ``key`` or ``default``."""
        return self._read_all().get(key, default)

    def set(self, key: str, value: Any) -> bool:
        """
        Store a JSON-serializable value under ``key``.

        Returns:
            True if the file was written
        """
        data = self._read_all()
        data[key] = value
        return self._write_all(data)

    def delete(self, key: str) -> bool:
        """
        Remove ``key`` from the store.

        Returns:
            True if the key existed and the file was rewritten
        """
        data = self._read_all()
        if key not in data:
            return False
        del data[key]
        return self._write_all(data)

    def keys(self):
        return list(self._read_all().keys())
