"""Registry data models — stored records and the ordered info tuples."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import NamedTuple

from registrar.registry.keys import NULL_KEY


def byte_length(text: str) -> int:
    """UTF-8 byte length, as stored in ``description_length``."""
    return len(text.encode("utf-8"))


# ---------------------------------------------------------------------------
# Stored records
# ---------------------------------------------------------------------------


@dataclass
class Application:
    """An application record as persisted at its true location."""

    name: str
    description_key: str
    description_length: int
    versions_location: str
    version_count: int = 0

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> Application:
        return cls(
            name=data["name"],
            description_key=data["description_key"],
            description_length=data.get("description_length", 0),
            versions_location=data["versions_location"],
            version_count=data.get("version_count", 0),
        )


@dataclass
class Version:
    """A version record. ``app_name`` is a lookup reference, not ownership."""

    app_name: str
    version_name: str
    description_key: str
    description_length: int
    index: int
    function_list_location: str
    initialized: bool = False
    function_count: int = 0

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> Version:
        return cls(
            app_name=data["app_name"],
            version_name=data["version_name"],
            description_key=data["description_key"],
            description_length=data.get("description_length", 0),
            index=data["index"],
            function_list_location=data["function_list_location"],
            initialized=data.get("initialized", False),
            function_count=data.get("function_count", 0),
        )


@dataclass
class Function:
    """A function record attached to a version's function list."""

    app_name: str
    version_name: str
    function_name: str
    description_key: str
    description_length: int
    index: int

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> Function:
        return cls(
            app_name=data["app_name"],
            version_name=data["version_name"],
            function_name=data["function_name"],
            description_key=data["description_key"],
            description_length=data.get("description_length", 0),
            index=data["index"],
        )


@dataclass(frozen=True)
class FunctionSpec:
    """Input to ``Registry.add_version_functions``."""

    name: str
    description: str = ""


# ---------------------------------------------------------------------------
# Responses (ordered tuples)
# ---------------------------------------------------------------------------


class RegistrationKeys(NamedTuple):
    namespace_key: str
    description_key: str


class AppInfo(NamedTuple):
    true_location: str = NULL_KEY
    description: str = ""
    name: str = ""
    description_length: int = 0
    version_count: int = 0


class VersionInfo(NamedTuple):
    true_location: str = NULL_KEY
    description: str = ""
    version_name: str = ""
    description_length: int = 0
    initialized: bool = False
    index: int = 0
    function_count: int = 0
    function_list_location: str = NULL_KEY


class FunctionInfo(NamedTuple):
    true_location: str = NULL_KEY
    description: str = ""
    function_name: str = ""
    description_length: int = 0
    index: int = 0
