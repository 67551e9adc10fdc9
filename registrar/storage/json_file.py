"""File-backed storage backend.

Keeps the whole key space as a single JSON object on disk. Suitable for
development and single-host use; every batch is written to a temporary
file and swapped into place, so a crash never leaves a half-written store.
"""

from __future__ import annotations

import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, Iterator, Mapping

from registrar.storage.base import StorageBackend

logger = logging.getLogger(__name__)


class JsonFileStorage(StorageBackend):
    """JSON-file storage backend."""

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._data: dict[str, Any] = self._load()

    def get(self, key: str) -> Any:
        return copy.deepcopy(self._data.get(key))

    def set(self, key: str, value: Any) -> None:
        self.set_many({key: value})

    def set_many(self, values: Mapping[str, Any]) -> None:
        updated = dict(self._data)
        for key, value in values.items():
            if value is None:
                updated.pop(key, None)
            else:
                updated[key] = copy.deepcopy(value)
        self._save(updated)
        self._data = updated

    def items(self) -> Iterator[tuple[str, Any]]:
        for key, value in list(self._data.items()):
            yield key, copy.deepcopy(value)

    def _load(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("Ignoring unreadable storage file %s: %s", self.path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def _save(self, data: dict[str, Any]) -> None:
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, sort_keys=True)
            os.replace(tmp_path, self.path)
        finally:
            tmp_path.unlink(missing_ok=True)
