"""Registry error types."""

from __future__ import annotations


class RegistryError(Exception):
    """Base class for registry failures."""


class Unauthorized(RegistryError):
    """Caller is not allowed to perform a gated operation."""

    def __init__(self, caller: str, operation: str) -> None:
        self.caller = caller
        self.operation = operation
        super().__init__(f"'{caller}' is not authorized to {operation}")


class InvalidInput(RegistryError, ValueError):
    """Malformed or conflicting input (empty names, duplicates, unknown parents)."""
