"""Registry settings loaded from YAML.

Default location: ``~/.registrar/config.yaml``, overridable with the
``REGISTRAR_CONFIG`` environment variable. Example::

    storage: json
    storage_path: ~/.registrar/storage.json
    moderator: ops@example.com
    layout_version: 1
    audit_dir: ~/.registrar/audit_logs
    log_level: INFO
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional

import yaml

from registrar.logging_config import setup_logging
from registrar.registry.core import Registry
from registrar.registry.keys import LAYOUT_VERSION
from registrar.security.audit_log import AuditLogger
from registrar.storage.base import StorageBackend
from registrar.storage.json_file import JsonFileStorage
from registrar.storage.memory import MemoryStorage

CONFIG_ENV_VAR = "REGISTRAR_CONFIG"
DEFAULT_HOME = Path.home() / ".registrar"
VALID_STORAGE = {"memory", "json"}


@dataclass
class Settings:
    """Settings for building a registry."""

    storage: str = "memory"  # memory | json
    storage_path: str = str(DEFAULT_HOME / "storage.json")
    moderator: str = "moderator"
    layout_version: int = LAYOUT_VERSION
    audit_dir: str = ""  # empty disables the audit trail
    log_level: str = "INFO"


def default_config_path() -> Path:
    return Path(os.environ.get(CONFIG_ENV_VAR, DEFAULT_HOME / "config.yaml")).expanduser()


def load_settings(path: Optional[str | Path] = None) -> Settings:
    """Load settings from YAML. A missing file yields the defaults."""
    config_path = Path(path).expanduser() if path else default_config_path()
    if not config_path.exists():
        return Settings()

    try:
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise ValueError(f"Expected a mapping in {config_path}")

    known = {f.name for f in fields(Settings)}
    unknown = set(data) - known
    if unknown:
        raise ValueError(f"Unknown settings in {config_path}: {sorted(unknown)}")

    settings = Settings(**data)
    if settings.storage not in VALID_STORAGE:
        raise ValueError(
            f"Invalid storage '{settings.storage}'. Must be one of: {sorted(VALID_STORAGE)}"
        )
    return settings


def build_storage(settings: Settings) -> StorageBackend:
    if settings.storage == "json":
        return JsonFileStorage(Path(settings.storage_path).expanduser())
    return MemoryStorage()


def build_registry(settings: Optional[Settings] = None) -> Registry:
    """Wire logging, storage and the audit trail into a ``Registry``."""
    settings = settings or load_settings()
    setup_logging(settings.log_level)
    audit = AuditLogger(Path(settings.audit_dir).expanduser()) if settings.audit_dir else None
    return Registry(
        build_storage(settings),
        settings.moderator,
        layout_version=settings.layout_version,
        audit=audit,
    )
