"""Registry core — registration, lookup and indexing over a storage backend.

Every record lives at a *true location* that is reached through a pointer
stored under its namespace key (see ``registrar.registry.keys``). Mutations
are staged and committed as one batch; lookups never raise for unknown
names and answer with zero-valued tuples instead.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Optional, Sequence, Union

from registrar.registry.access import AccessState, is_moderator, require_moderator
from registrar.registry.errors import InvalidInput, Unauthorized
from registrar.registry.keys import (
    LAYOUT_VERSION,
    app_key,
    description_key,
    function_key,
    list_location,
    list_slot,
    location_pointer,
    true_location,
    version_key,
)
from registrar.registry.models import (
    AppInfo,
    Application,
    Function,
    FunctionInfo,
    FunctionSpec,
    RegistrationKeys,
    Version,
    VersionInfo,
    byte_length,
)
from registrar.security.audit_log import AuditLogger
from registrar.storage.base import StorageBackend
from registrar.storage.staged import StagedWrites

logger = logging.getLogger(__name__)

VersionAuthorizer = Callable[[str, str], bool]


class Registry:
    """Namespaced registry of applications, their versions and functions.

    The identity that constructs the registry becomes its moderator.
    ``version_authorizer``, if given, is asked ``(caller, app_name)`` before
    version-level mutations and may admit callers other than the moderator
    (e.g. application owners).
    """

    def __init__(
        self,
        storage: StorageBackend,
        creator: str,
        *,
        layout_version: int = LAYOUT_VERSION,
        audit: Optional[AuditLogger] = None,
        version_authorizer: Optional[VersionAuthorizer] = None,
    ) -> None:
        if not isinstance(storage, StorageBackend):
            raise InvalidInput(f"Not a storage backend: {storage!r}")
        if not isinstance(creator, str) or not creator:
            raise InvalidInput("Registry creator must be a non-empty identity")
        if layout_version < 1:
            raise InvalidInput(f"Layout version must be >= 1, got {layout_version}")
        self._state = AccessState(moderator=creator, storage=storage)
        self._layout_version = layout_version
        self._audit = audit
        self._version_authorizer = version_authorizer

    @property
    def layout_version(self) -> int:
        return self._layout_version

    # ------------------------------------------------------------------
    # Access control
    # ------------------------------------------------------------------

    def moderator(self) -> str:
        return self._state.moderator

    def change_moderator(self, new_moderator: str, *, caller: str) -> None:
        """Hand moderation to *new_moderator*. Moderator only."""
        self._authorize(caller, "change_moderator", "registry")
        if not isinstance(new_moderator, str) or not new_moderator:
            raise InvalidInput("Moderator must be a non-empty identity")
        previous = self._state.moderator
        self._state.moderator = new_moderator
        logger.info("Moderator changed from %s to %s", previous, new_moderator)
        self._record(caller, "change_moderator", "registry", "moderator",
                     {"previous": previous, "moderator": new_moderator})

    def storage_backend(self) -> StorageBackend:
        return self._state.storage

    def change_storage_backend(self, new_backend: StorageBackend, *, caller: str) -> None:
        """Point the registry at *new_backend*. Moderator only.

        Nothing is migrated: records written to the previous backend only
        resolve if the new one was seeded with them (see ``copy_storage``).
        """
        self._authorize(caller, "change_storage_backend", "registry")
        if not isinstance(new_backend, StorageBackend):
            raise InvalidInput(f"Not a storage backend: {new_backend!r}")
        previous = self._state.storage
        self._state.storage = new_backend
        logger.info("Storage backend changed from %s to %s",
                    type(previous).__name__, type(new_backend).__name__)
        self._record(caller, "change_storage_backend", "registry", "storage",
                     {"backend": type(new_backend).__name__})

    # ------------------------------------------------------------------
    # Applications
    # ------------------------------------------------------------------

    def register_app(self, name: str, description: str, *, caller: str) -> RegistrationKeys:
        """Register a new application and return its namespace and description keys."""
        self._authorize(caller, "register_app", "app")
        ns_key = app_key(name)
        _check_description(description)

        with self._staged("register_app") as staged:
            if self._resolve(staged, ns_key) is not None:
                raise InvalidInput(f"Application '{name}' is already registered")
            desc_key = description_key(ns_key)
            staged.set(desc_key, description)
            app = Application(
                name=name,
                description_key=desc_key,
                description_length=byte_length(description),
                versions_location=list_location(ns_key, "versions"),
            )
            location = self._store(staged, ns_key, app)

        logger.info("Registered application %s at %s", name, location)
        self._record(caller, "register_app", "app", ns_key, {"name": name})
        return RegistrationKeys(ns_key, desc_key)

    def get_app_info(self, name: str) -> AppInfo:
        ns_key = _key_or_none(app_key, name)
        if ns_key is None:
            return AppInfo()
        storage = self._state.storage
        location, app = self._load(storage, ns_key, Application)
        if app is None:
            return AppInfo()
        return AppInfo(
            true_location=location,
            description=storage.get(app.description_key) or "",
            name=app.name,
            description_length=app.description_length,
            version_count=app.version_count,
        )

    def get_app_versions(self, name: str) -> list[str]:
        """Version names of an application in registration order."""
        ns_key = _key_or_none(app_key, name)
        if ns_key is None:
            return []
        storage = self._state.storage
        _, app = self._load(storage, ns_key, Application)
        if app is None:
            return []
        names = []
        for ver_key in self._list(storage, app.versions_location, app.version_count):
            _, version = self._load(storage, ver_key, Version)
            if version is not None:
                names.append(version.version_name)
        return names

    # ------------------------------------------------------------------
    # Versions
    # ------------------------------------------------------------------

    def register_version(
        self, app_name: str, version_name: str, description: str, *, caller: str
    ) -> RegistrationKeys:
        """Append a version to an application.

        The version is registered uninitialized, with ``index`` equal to the
        application's version count before the call.
        """
        self._authorize(caller, "register_version", "version", app_name=app_name)
        app_ns = app_key(app_name)
        ns_key = version_key(app_name, version_name)
        _check_description(description)

        with self._staged("register_version") as staged:
            app_location, app = self._load(staged, app_ns, Application)
            if app is None:
                raise InvalidInput(f"Unknown application '{app_name}'")
            if self._resolve(staged, ns_key) is not None:
                raise InvalidInput(f"Version '{version_name}' of '{app_name}' is already registered")

            desc_key = description_key(ns_key)
            staged.set(desc_key, description)
            version = Version(
                app_name=app_name,
                version_name=version_name,
                description_key=desc_key,
                description_length=byte_length(description),
                index=app.version_count,
                function_list_location=list_location(ns_key, "functions"),
            )
            location = self._store(staged, ns_key, version)

            staged.set(list_slot(app.versions_location, app.version_count), ns_key)
            app.version_count += 1
            staged.set(app_location, app.to_dict())

        logger.info("Registered version %s of %s at index %d (%s)",
                    version_name, app_name, version.index, location)
        self._record(caller, "register_version", "version", ns_key,
                     {"app": app_name, "version": version_name, "index": version.index})
        return RegistrationKeys(ns_key, desc_key)

    def get_ver_info(self, app_name: str, version_name: str) -> VersionInfo:
        ns_key = _key_or_none(version_key, app_name, version_name)
        if ns_key is None:
            return VersionInfo()
        storage = self._state.storage
        location, version = self._load(storage, ns_key, Version)
        if version is None:
            return VersionInfo()
        return VersionInfo(
            true_location=location,
            description=storage.get(version.description_key) or "",
            version_name=version.version_name,
            description_length=version.description_length,
            initialized=version.initialized,
            index=version.index,
            function_count=version.function_count,
            function_list_location=version.function_list_location,
        )

    def initialize_version(self, app_name: str, version_name: str, *, caller: str) -> VersionInfo:
        """Mark a version ready. Its function list is frozen afterwards."""
        self._authorize(caller, "initialize_version", "version", app_name=app_name)
        ns_key = version_key(app_name, version_name)

        with self._staged("initialize_version") as staged:
            location, version = self._load(staged, ns_key, Version)
            if version is None:
                raise InvalidInput(f"Unknown version '{version_name}' of '{app_name}'")
            if version.initialized:
                raise InvalidInput(f"Version '{version_name}' of '{app_name}' is already initialized")
            if version.function_count == 0:
                raise InvalidInput(f"Version '{version_name}' of '{app_name}' has no functions")
            version.initialized = True
            staged.set(location, version.to_dict())

        logger.info("Initialized version %s of %s", version_name, app_name)
        self._record(caller, "initialize_version", "version", ns_key,
                     {"app": app_name, "version": version_name})
        return self.get_ver_info(app_name, version_name)

    # ------------------------------------------------------------------
    # Functions
    # ------------------------------------------------------------------

    def add_version_functions(
        self,
        app_name: str,
        version_name: str,
        functions: Sequence[Union[FunctionSpec, str]],
        *,
        caller: str,
    ) -> list[RegistrationKeys]:
        """Append functions to an uninitialized version's function list."""
        self._authorize(caller, "add_version_functions", "version", app_name=app_name)
        ver_ns = version_key(app_name, version_name)
        specs = _function_specs(functions)

        keys: list[RegistrationKeys] = []
        with self._staged("add_version_functions") as staged:
            ver_location, version = self._load(staged, ver_ns, Version)
            if version is None:
                raise InvalidInput(f"Unknown version '{version_name}' of '{app_name}'")
            if version.initialized:
                raise InvalidInput(
                    f"Version '{version_name}' of '{app_name}' is initialized; its functions are final"
                )

            for spec in specs:
                ns_key = function_key(app_name, version_name, spec.name)
                if self._resolve(staged, ns_key) is not None:
                    raise InvalidInput(
                        f"Function '{spec.name}' is already registered on '{app_name}' {version_name}"
                    )
                desc_key = description_key(ns_key)
                staged.set(desc_key, spec.description)
                func = Function(
                    app_name=app_name,
                    version_name=version_name,
                    function_name=spec.name,
                    description_key=desc_key,
                    description_length=byte_length(spec.description),
                    index=version.function_count,
                )
                self._store(staged, ns_key, func)
                staged.set(list_slot(version.function_list_location, version.function_count), ns_key)
                version.function_count += 1
                keys.append(RegistrationKeys(ns_key, desc_key))

            staged.set(ver_location, version.to_dict())

        logger.info("Added %d functions to %s %s (now %d)",
                    len(keys), app_name, version_name, version.function_count)
        self._record(caller, "add_version_functions", "version", ver_ns,
                     {"app": app_name, "version": version_name,
                      "functions": [s.name for s in specs]})
        return keys

    def get_func_info(self, app_name: str, version_name: str, function_name: str) -> FunctionInfo:
        ns_key = _key_or_none(function_key, app_name, version_name, function_name)
        if ns_key is None:
            return FunctionInfo()
        storage = self._state.storage
        location, func = self._load(storage, ns_key, Function)
        if func is None:
            return FunctionInfo()
        return FunctionInfo(
            true_location=location,
            description=storage.get(func.description_key) or "",
            function_name=func.function_name,
            description_length=func.description_length,
            index=func.index,
        )

    def get_version_functions(self, app_name: str, version_name: str) -> list[str]:
        """Function names of a version in registration order."""
        ns_key = _key_or_none(version_key, app_name, version_name)
        if ns_key is None:
            return []
        storage = self._state.storage
        _, version = self._load(storage, ns_key, Version)
        if version is None:
            return []
        names = []
        for fn_key in self._list(storage, version.function_list_location, version.function_count):
            _, func = self._load(storage, fn_key, Function)
            if func is not None:
                names.append(func.function_name)
        return names

    # ------------------------------------------------------------------
    # Layout
    # ------------------------------------------------------------------

    def relocate(self, namespace_key: str, *, caller: str) -> str:
        """Move a record to its true location under the current layout.

        Only the pointer and the record slot change; namespace keys,
        description keys and list locations stay valid.
        """
        self._authorize(caller, "relocate", "record")
        target = true_location(namespace_key, self._layout_version)

        with self._staged("relocate") as staged:
            current = self._resolve(staged, namespace_key)
            if current is None:
                raise InvalidInput(f"No record behind {namespace_key}")
            if current != target:
                staged.set(target, staged.get(current))
                staged.set(current, None)
                staged.set(location_pointer(namespace_key), target)

        if current != target:
            logger.info("Relocated %s from %s to %s", namespace_key, current, target)
            self._record(caller, "relocate", "record", namespace_key,
                         {"from": current, "to": target})
        return target

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _authorize(
        self, caller: str, operation: str, resource_type: str, app_name: Optional[str] = None
    ) -> None:
        if (
            app_name is not None
            and self._version_authorizer is not None
            and not is_moderator(self._state, caller)
            and self._version_authorizer(caller, app_name)
        ):
            return
        try:
            require_moderator(self._state, caller, operation)
        except Unauthorized:
            logger.warning("Refused %s for %s", operation, caller)
            self._record(caller, operation, resource_type, app_name or "", success=False)
            raise

    @contextmanager
    def _staged(self, operation: str) -> Iterator[StagedWrites]:
        staged = StagedWrites(self._state.storage)
        try:
            yield staged
        except Exception:
            logger.debug("Rolled back %s (%d pending writes)", operation, staged.pending)
            staged.discard()
            raise
        staged.commit()

    @staticmethod
    def _resolve(reader: Any, ns_key: str) -> Optional[str]:
        return reader.get(location_pointer(ns_key))

    def _load(self, reader: Any, ns_key: str, record_type: type) -> tuple[Optional[str], Any]:
        location = self._resolve(reader, ns_key)
        if location is None:
            return None, None
        data = reader.get(location)
        if data is None:
            logger.warning("Dangling pointer for %s -> %s", ns_key, location)
            return location, None
        return location, record_type.from_dict(data)

    def _store(self, writer: StagedWrites, ns_key: str, record: Any) -> str:
        location = self._resolve(writer, ns_key) or true_location(ns_key, self._layout_version)
        writer.set(location_pointer(ns_key), location)
        writer.set(location, record.to_dict())
        return location

    @staticmethod
    def _list(reader: Any, base: str, count: int) -> Iterator[str]:
        for index in range(count):
            key = reader.get(list_slot(base, index))
            if key is not None:
                yield key

    def _record(
        self,
        caller: str,
        action: str,
        resource_type: str,
        resource_id: str,
        details: Optional[dict] = None,
        success: bool = True,
    ) -> None:
        # Runs after commit (or before raising Unauthorized); audit I/O must
        # not change the outcome of the operation.
        if self._audit is None:
            return
        try:
            self._audit.log_event(
                actor=caller,
                action=action,
                resource_type=resource_type,
                resource_id=resource_id,
                details=details,
                success=success,
            )
        except OSError as e:
            logger.warning("Could not write audit event %s for %s: %s", action, caller, e)


def _check_description(description: str) -> None:
    if not isinstance(description, str):
        raise InvalidInput("Description must be a string")


def _key_or_none(derive: Callable[..., str], *names: str) -> Optional[str]:
    try:
        return derive(*names)
    except InvalidInput:
        return None


def _function_specs(functions: Sequence[Union[FunctionSpec, str]]) -> list[FunctionSpec]:
    if isinstance(functions, (str, FunctionSpec)):
        functions = [functions]
    specs = []
    for item in functions:
        if isinstance(item, str):
            item = FunctionSpec(name=item)
        if not isinstance(item, FunctionSpec):
            raise InvalidInput(f"Not a function spec: {item!r}")
        _check_description(item.description)
        specs.append(item)
    if not specs:
        raise InvalidInput("At least one function is required")
    return specs
