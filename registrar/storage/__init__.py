"""Storage backends — key/value persistence addressed by opaque keys.

The registry never assumes a particular backend. Any implementation of
``StorageBackend`` can be swapped in by the moderator at runtime.
"""

from registrar.storage.base import StorageBackend, copy_storage
from registrar.storage.json_file import JsonFileStorage
from registrar.storage.memory import MemoryStorage
from registrar.storage.staged import StagedWrites

__all__ = [
    "JsonFileStorage",
    "MemoryStorage",
    "StagedWrites",
    "StorageBackend",
    "copy_storage",
]
