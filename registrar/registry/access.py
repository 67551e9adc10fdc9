"""Moderator access control.

The registry has exactly one privileged identity. ``AccessState`` is the
mutable configuration record the ``Registry`` owns; nothing else writes it.
"""

from __future__ import annotations

from dataclasses import dataclass

from registrar.registry.errors import Unauthorized
from registrar.storage.base import StorageBackend


@dataclass
class AccessState:
    """Current moderator and active storage backend."""

    moderator: str
    storage: StorageBackend


def is_moderator(state: AccessState, caller: str) -> bool:
    """Check whether *caller* is the acting moderator.

    Parameters
    ----------
    state:
        The registry's access state.
    caller:
        Authenticated identity making the call.

    Returns
    -------
    bool
        True if caller is the current moderator.
    """
    return bool(caller) and caller == state.moderator


def require_moderator(state: AccessState, caller: str, operation: str) -> None:
    """Raise ``Unauthorized`` unless *caller* is the acting moderator.

    Usage inside a registry operation::

        require_moderator(self._state, caller, "register an application")
    """
    if not is_moderator(state, caller):
        raise Unauthorized(caller, operation)
