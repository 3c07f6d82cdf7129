"""
Local key-value stores.

String values under string keys, read and written whole. The file-backed store
keeps every key in one JSON object and replaces the file atomically on write.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Dict, Optional, Protocol

logger = logging.getLogger(__name__)


class KeyValueStoreCorruptError(Exception):
    """The backing document exists but cannot be read as a key-value object."""


class KeyValueStore(Protocol):
    def get_str(self, key: str) -> Optional[str]:
        """
        Value for key, or None when the key is absent.
        Raises KeyValueStoreCorruptError when the store cannot be read.
        """
        ...

    def set_str(self, key: str, value: str) -> None:
        ...


class InMemoryKeyValueStore:
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get_str(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set_str(self, key: str, value: str) -> None:
        self._data[key] = value


class JsonFileKeyValueStore:
    def __init__(self, path: Path):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def _read_all(self) -> Dict[str, str]:
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as exc:
            raise KeyValueStoreCorruptError(f"{self._path} unreadable: {exc}") from exc

        if not raw.strip():
            return {}
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise KeyValueStoreCorruptError(f"{self._path} is not valid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise KeyValueStoreCorruptError(f"{self._path} does not hold a JSON object")
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _write_all(self, data: Dict[str, str]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self._path.parent, prefix=self._path.name, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_name, self._path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

    def get_str(self, key: str) -> Optional[str]:
        return self._read_all().get(key)

    def set_str(self, key: str, value: str) -> None:
        """
        Write one key. A corrupt file is replaced by a fresh document; callers
        only write after deciding to start over from an empty store.
        """
        try:
            data = self._read_all()
        except KeyValueStoreCorruptError as exc:
            logger.warning(f"Replacing corrupt key-value file: {exc}")
            data = {}
        data[key] = value
        self._write_all(data)
