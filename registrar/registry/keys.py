"""Key derivation — names to storage keys.

Two classes of key are derived here:

- Namespace keys, handed to callers, computed from the raw UTF-8 bytes of
  a name or a composite of names (app, app+version, app+version+function).
- True locations, where a record physically lives. The registry stores a
  pointer from each namespace key to its true location, so the physical
  layout can change (``LAYOUT_VERSION``) without invalidating namespace keys.

Every derivation is SHA-256 over a domain tag followed by length-prefixed
parts, so ``("ab", "c")`` and ``("a", "bc")`` never share a key.
"""

from __future__ import annotations

import hashlib

from registrar.registry.errors import InvalidInput

LAYOUT_VERSION = 1
NULL_KEY = "0x" + "00" * 32


def _digest(tag: bytes, *parts: bytes) -> str:
    h = hashlib.sha256()
    for part in (tag, *parts):
        h.update(len(part).to_bytes(4, "big"))
        h.update(part)
    return "0x" + h.hexdigest()


def _name(value: str, what: str) -> bytes:
    if not isinstance(value, str) or not value:
        raise InvalidInput(f"{what} must be a non-empty string")
    return value.encode("utf-8")


def _key(value: str) -> bytes:
    if not is_key(value) or value == NULL_KEY:
        raise InvalidInput(f"Not a storage key: {value!r}")
    return bytes.fromhex(value[2:])


def is_key(value: object) -> bool:
    """True if *value* looks like a derived key (``0x`` + 64 hex chars)."""
    if not isinstance(value, str) or len(value) != 66 or not value.startswith("0x"):
        return False
    try:
        bytes.fromhex(value[2:])
    except ValueError:
        return False
    return True


# -- namespace keys ---------------------------------------------------------


def app_key(app_name: str) -> str:
    return _digest(b"app", _name(app_name, "Application name"))


def version_key(app_name: str, version_name: str) -> str:
    return _digest(
        b"version",
        _name(app_name, "Application name"),
        _name(version_name, "Version name"),
    )


def function_key(app_name: str, version_name: str, function_name: str) -> str:
    return _digest(
        b"function",
        _name(app_name, "Application name"),
        _name(version_name, "Version name"),
        _name(function_name, "Function name"),
    )


# -- derived locations ------------------------------------------------------


def description_key(namespace_key: str) -> str:
    """Slot holding the description blob of a record."""
    return _digest(b"description", _key(namespace_key))


def location_pointer(namespace_key: str) -> str:
    """Slot holding the namespace key -> true location mapping."""
    return _digest(b"pointer", _key(namespace_key))


def true_location(namespace_key: str, layout: int = LAYOUT_VERSION) -> str:
    """Physical record slot for *namespace_key* under a storage layout."""
    if layout < 1:
        raise InvalidInput(f"Layout version must be >= 1, got {layout}")
    return _digest(b"record", layout.to_bytes(4, "big"), _key(namespace_key))


def list_location(owner_key: str, list_name: str) -> str:
    """Base slot of an ordered list owned by a record (e.g. its versions)."""
    return _digest(b"list", _key(owner_key), _name(list_name, "List name"))


def list_slot(list_key: str, index: int) -> str:
    """Slot of element *index* within the list at *list_key*."""
    if index < 0:
        raise InvalidInput(f"List index must be >= 0, got {index}")
    return _digest(b"slot", _key(list_key), index.to_bytes(8, "big"))
