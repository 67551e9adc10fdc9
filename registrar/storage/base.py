"""Storage backend interface.

Backends are deliberately dumb: they map opaque string keys to
JSON-compatible values and know nothing about applications or versions.
All addressing lives in ``registrar.registry.keys``.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Iterator, Mapping

logger = logging.getLogger(__name__)


class StorageBackend(ABC):
    """Abstract key/value store used by the registry.

    Values must be JSON-compatible (str, int, bool, list, dict, None).
    A key that was never written reads as ``None``.
    """

    @abstractmethod
    def get(self, key: str) -> Any:
        """Return the value stored at *key*, or None."""
        ...

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """Store *value* at *key*. Storing None clears the slot."""
        ...

    @abstractmethod
    def items(self) -> Iterator[tuple[str, Any]]:
        """Iterate over every populated (key, value) pair."""
        ...

    def set_many(self, values: Mapping[str, Any]) -> None:
        """Store a batch of values.

        Backends that can persist a batch in one step should override this;
        the registry commits every operation through a single call.
        """
        for key, value in values.items():
            self.set(key, value)


def copy_storage(source: StorageBackend, target: StorageBackend) -> int:
    """Copy every key from *source* into *target*. Returns the key count.

    Used to seed a new backend before switching the registry over to it,
    so previously issued namespace keys keep resolving.
    """
    values = dict(source.items())
    target.set_many(values)
    logger.info("Copied %d storage keys", len(values))
    return len(values)
