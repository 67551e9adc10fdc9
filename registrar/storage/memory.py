"""In-process storage backend."""

from __future__ import annotations

import copy
from typing import Any, Iterator, Optional

from registrar.storage.base import StorageBackend


class MemoryStorage(StorageBackend):
    """Dict-backed storage. Nothing survives the process."""

    def __init__(self, initial: Optional[dict[str, Any]] = None) -> None:
        self._data: dict[str, Any] = dict(initial or {})

    def get(self, key: str) -> Any:
        return copy.deepcopy(self._data.get(key))

    def set(self, key: str, value: Any) -> None:
        if value is None:
            self._data.pop(key, None)
        else:
            self._data[key] = copy.deepcopy(value)

    def items(self) -> Iterator[tuple[str, Any]]:
        for key, value in list(self._data.items()):
            yield key, copy.deepcopy(value)

    def __len__(self) -> int:
        return len(self._data)
