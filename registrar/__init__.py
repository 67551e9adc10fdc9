"""registrar — namespaced registry of applications, versions and functions."""

from registrar.registry.core import Registry
from registrar.registry.errors import InvalidInput, RegistryError, Unauthorized
from registrar.registry.models import FunctionSpec
from registrar.storage import JsonFileStorage, MemoryStorage, StorageBackend

__version__ = "0.1.0"

__all__ = [
    "FunctionSpec",
    "InvalidInput",
    "JsonFileStorage",
    "MemoryStorage",
    "Registry",
    "RegistryError",
    "StorageBackend",
    "Unauthorized",
    "__version__",
]
