"""Write buffering for all-or-nothing registry operations."""

from __future__ import annotations

from typing import Any

from registrar.storage.base import StorageBackend

_MISSING = object()


class StagedWrites:
    """Buffer writes against a backend until ``commit()``.

    Reads fall through to the backend unless the key has a pending write.
    ``discard()`` drops everything; the backend is never touched until
    ``commit()`` hands the whole batch to ``StorageBackend.set_many``.
    """

    def __init__(self, backend: StorageBackend) -> None:
        self.backend = backend
        self._pending: dict[str, Any] = {}

    def get(self, key: str) -> Any:
        value = self._pending.get(key, _MISSING)
        if value is _MISSING:
            return self.backend.get(key)
        return value

    def set(self, key: str, value: Any) -> None:
        self._pending[key] = value

    @property
    def pending(self) -> int:
        return len(self._pending)

    def commit(self) -> int:
        """Flush pending writes. Returns the number of keys written."""
        count = len(self._pending)
        if count:
            self.backend.set_many(self._pending)
        self._pending = {}
        return count

    def discard(self) -> None:
        self._pending = {}
