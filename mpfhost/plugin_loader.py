"""Loading of a single plugin and tracking of its lifecycle state."""

from __future__ import annotations

import logging
from enum import IntEnum
from typing import Any, Callable, Mapping, Protocol, runtime_checkable

from mpfhost.plugin_metadata import PluginMetadata

_log = logging.getLogger(__name__)

PluginFactory = Callable[[], Any]


@runtime_checkable
class IPlugin(Protocol):
    """What every plugin instance must provide."""

    def initialize(self, registry: Any) -> bool: ...

    def start(self) -> bool: ...

    def stop(self) -> None: ...

    def qml_module_uri(self) -> str: ...

    def entry_qml(self) -> str: ...


class State(IntEnum):
    """Lifecycle state of a plugin; later states compare greater."""

    UNLOADED = 0
    LOADED = 1
    INITIALIZED = 2
    STARTED = 3
    ERROR = 4


class PluginLoadError(RuntimeError):
    """Raised when a plugin cannot be loaded."""

    def __init__(self, plugin_id: str, message: str) -> None:
        super().__init__(message)
        self.plugin_id = plugin_id
        self.message = message


class PluginLoader:
    """Creates one plugin instance from a factory and its metadata.

    ``metadata`` may be a :class:`PluginMetadata` or the raw JSON object
    it is parsed from. ``factory`` is called on :meth:`load` and must
    return an object implementing :class:`IPlugin`.
    """

    def __init__(
        self,
        metadata: PluginMetadata | Mapping[str, Any],
        factory: PluginFactory,
        path: str = "",
    ) -> None:
        if not isinstance(metadata, PluginMetadata):
            metadata = PluginMetadata.from_json(metadata)
        self.metadata = metadata
        self.path = path
        self.state = State.UNLOADED
        self.plugin: IPlugin | None = None
        self.error_string = ""
        self._factory = factory

    def __repr__(self) -> str:
        return f"PluginLoader(id={self.metadata.id!r}, state={self.state.name})"

    def is_loaded(self) -> bool:
        return self.state >= State.LOADED and self.state != State.ERROR

    def load(self) -> None:
        """Validate the metadata and create the plugin instance.

        Does nothing if the plugin is already loaded. Raises
        PluginLoadError and enters the ERROR state on failure.
        """
        if self.is_loaded():
            return

        errors = self.metadata.validate()
        if errors:
            self._fail("Invalid metadata: " + "; ".join(errors))

        try:
            instance = self._factory()
        except Exception as exc:  # a plugin factory may fail in any way
            self._fail(str(exc) or type(exc).__name__, exc)

        if instance is None:
            self._fail("Failed to get plugin instance")
        if not isinstance(instance, IPlugin):
            self._fail("Plugin does not implement IPlugin interface")

        self.plugin = instance
        self.error_string = ""
        self.state = State.LOADED
        _log.debug("Loaded plugin %s", self.metadata.id)

    def unload(self) -> None:
        """Drop the plugin instance and return to the UNLOADED state."""
        if self.state == State.UNLOADED:
            return
        self.plugin = None
        self.state = State.UNLOADED
        _log.debug("Unloaded plugin %s", self.metadata.id)

    def _fail(self, message: str, cause: BaseException | None = None) -> None:
        self.error_string = message
        self.state = State.ERROR
        self.plugin = None
        raise PluginLoadError(self.metadata.id, message) from cause