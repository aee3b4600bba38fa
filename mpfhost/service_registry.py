"""Registry of service implementations keyed by interface."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable

_log = logging.getLogger(__name__)

ServiceCallback = Callable[[str], None]


def _interface_name(interface: type | str) -> str:
    if isinstance(interface, str):
        return interface
    return f"{interface.__module__}.{interface.__qualname__}"


@dataclass(frozen=True)
class ServiceEntry:
    """A registered service."""

    interface_name: str
    version: int
    instance: Any
    provider_id: str = ""


class ServiceRegistry:
    """Thread-safe map from interface to service implementation.

    Interfaces may be given as classes or as plain names.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._services: dict[str, ServiceEntry] = {}
        self._added: list[ServiceCallback] = []
        self._removed: list[ServiceCallback] = []

    def add(
        self,
        interface: type | str,
        instance: Any,
        version: int = 1,
        provider_id: str = "",
    ) -> None:
        """Register ``instance`` for ``interface``.

        Raises ValueError if the instance is None or the interface is
        already registered.
        """
        name = _interface_name(interface)
        if instance is None:
            raise ValueError(f"Cannot register null service for {name}")
        with self._lock:
            if name in self._services:
                raise ValueError(f"Service already registered: {name}")
            self._services[name] = ServiceEntry(name, version, instance, provider_id)
        _log.debug("Registered %s v%d from %s", name, version, provider_id)
        for callback in list(self._added):
            callback(name)

    def get(self, interface: type | str, min_version: int = 0) -> Any:
        """Return the service, or None if absent or older than ``min_version``."""
        name = _interface_name(interface)
        with self._lock:
            entry = self._services.get(name)
        if entry is None:
            return None
        if min_version > 0 and entry.version < min_version:
            _log.warning(
                "Service %s version %d is below required %d", name, entry.version, min_version
            )
            return None
        return entry.instance

    def has(self, interface: type | str, min_version: int = 0) -> bool:
        with self._lock:
            entry = self._services.get(_interface_name(interface))
        if entry is None:
            return False
        return not (min_version > 0 and entry.version < min_version)

    def version(self, interface: type | str) -> int:
        """Return the registered version, or -1 when not registered."""
        with self._lock:
            entry = self._services.get(_interface_name(interface))
        return -1 if entry is None else entry.version

    def remove(self, interface: type | str) -> None:
        name = _interface_name(interface)
        with self._lock:
            removed = self._services.pop(name, None) is not None
        if removed:
            _log.debug("Removed %s", name)
            for callback in list(self._removed):
                callback(name)

    def registered_services(self) -> list[str]:
        with self._lock:
            return list(self._services)

    def entry(self, interface_name: type | str) -> ServiceEntry | None:
        with self._lock:
            return self._services.get(_interface_name(interface_name))

    def on_service_added(self, callback: ServiceCallback) -> ServiceCallback:
        """Call ``callback(name)`` whenever a service is added."""
        self._added.append(callback)
        return callback

    def on_service_removed(self, callback: ServiceCallback) -> ServiceCallback:
        """Call ``callback(name)`` whenever a service is removed."""
        self._removed.append(callback)
        return callback