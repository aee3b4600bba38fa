"""Dependency-ordered loading and lifecycle management of plugins."""

from __future__ import annotations

import logging
from typing import Any, Callable

from mpfhost.plugin_loader import PluginLoadError, PluginLoader, State
from mpfhost.plugin_metadata import DependencyType, PluginMetadata

_log = logging.getLogger(__name__)

ErrorCallback = Callable[[str, str], None]

_UNVISITED, _VISITING, _VISITED = 0, 1, 2


class PluginManager:
    """Holds plugin loaders and drives them through their lifecycle.

    Plugins are loaded, initialized and started in dependency order and
    stopped and unloaded in reverse. Leaving a ``with`` block stops and
    unloads everything.
    """

    def __init__(self, registry: Any) -> None:
        self._registry = registry
        self._loaders: dict[str, PluginLoader] = {}
        self._error_callbacks: list[ErrorCallback] = []

    def __enter__(self) -> PluginManager:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop_all()
        self.unload_all()

    def add_loader(self, loader: PluginLoader) -> str:
        """Add a discovered plugin; return its id.

        Raises ValueError for metadata without an id or a duplicate id.
        """
        if not loader.metadata.is_valid():
            raise ValueError(f"Invalid plugin metadata: {loader.path}")
        plugin_id = loader.metadata.id
        if plugin_id in self._loaders:
            raise ValueError(f"Duplicate plugin ID: {plugin_id}")
        self._loaders[plugin_id] = loader
        _log.debug("Discovered plugin: %s", plugin_id)
        return plugin_id

    def load_all(self) -> bool:
        """Load every plugin whose dependencies are met; True if all loaded."""
        all_loaded = True
        for plugin_id in self._compute_load_order():
            loader = self._loaders.get(plugin_id)
            if loader is None:
                continue
            unsatisfied = self.check_dependencies(loader.metadata)
            if unsatisfied:
                self._error(plugin_id, "Unsatisfied dependencies: " + ", ".join(unsatisfied))
                all_loaded = False
                continue
            try:
                loader.load()
            except PluginLoadError as exc:
                self._error(plugin_id, exc.message)
                all_loaded = False
                continue
            _log.debug("Loaded plugin: %s", plugin_id)
        return all_loaded

    def initialize_all(self) -> bool:
        """Initialize loaded plugins; True if all succeeded."""
        all_initialized = True
        for plugin_id in self._compute_load_order():
            loader = self._loaders.get(plugin_id)
            if loader is None or not loader.is_loaded():
                continue
            if loader.state >= State.INITIALIZED:
                continue
            plugin = loader.plugin
            if plugin is None:
                continue
            try:
                ok = plugin.initialize(self._registry)
            except Exception:  # a failing plugin must not stop the others
                _log.exception("Plugin %s raised during initialization", plugin_id)
                ok = False
            if not ok:
                self._error(plugin_id, "Initialization failed")
                all_initialized = False
                continue
            loader.state = State.INITIALIZED
        return all_initialized

    def start_all(self) -> bool:
        """Start initialized plugins; True if all succeeded."""
        all_started = True
        for plugin_id in self._compute_load_order():
            loader = self._loaders.get(plugin_id)
            if loader is None or loader.state != State.INITIALIZED:
                continue
            plugin = loader.plugin
            if plugin is None:
                continue
            try:
                ok = plugin.start()
            except Exception:  # a failing plugin must not stop the others
                _log.exception("Plugin %s raised while starting", plugin_id)
                ok = False
            if not ok:
                self._error(plugin_id, "Start failed")
                all_started = False
                continue
            loader.state = State.STARTED
        return all_started

    def stop_all(self) -> None:
        """Stop running plugins in reverse load order."""
        for plugin_id in reversed(self._compute_load_order()):
            loader = self._loaders.get(plugin_id)
            if loader is None or loader.state != State.STARTED:
                continue
            if loader.plugin is not None:
                loader.plugin.stop()
            loader.state = State.INITIALIZED
            _log.debug("Stopped plugin: %s", plugin_id)

    def unload_all(self) -> None:
        """Unload plugins in reverse load order and forget all of them."""
        for plugin_id in reversed(self._compute_load_order()):
            loader = self._loaders.get(plugin_id)
            if loader is None or not loader.is_loaded():
                continue
            loader.unload()
            _log.debug("Unloaded plugin: %s", plugin_id)
        self._loaders.clear()

    def plugins(self) -> list[PluginLoader]:
        return list(self._loaders.values())

    def plugin(self, plugin_id: str) -> PluginLoader | None:
        return self._loaders.get(plugin_id)

    def qml_module_uris(self) -> list[str]:
        """Return the non-empty QML module URIs of loaded plugins."""
        uris = []
        for loader in self._loaders.values():
            if loader.is_loaded() and loader.plugin is not None:
                uri = loader.plugin.qml_module_uri()
                if uri:
                    uris.append(uri)
        return uris

    def entry_qml(self, plugin_id: str) -> str:
        """Return the plugin's entry QML, or an empty string."""
        loader = self._loaders.get(plugin_id)
        if loader is not None and loader.is_loaded() and loader.plugin is not None:
            return loader.plugin.entry_qml()
        return ""

    def check_dependencies(self, metadata: PluginMetadata) -> list[str]:
        """Return the required plugin dependencies that are not satisfied."""
        unsatisfied = []
        for dep in metadata.requires:
            if dep.optional or dep.type != DependencyType.PLUGIN:
                continue
            provider = self._loaders.get(dep.id)
            if provider is None:
                unsatisfied.append(f"plugin:{dep.id}")
            elif provider.metadata.version < dep.min_version:
                minimum = ".".join(str(part) for part in dep.min_version)
                unsatisfied.append(f"plugin:{dep.id}>={minimum}")
        return unsatisfied

    def load_order(self) -> list[str]:
        """Return plugin ids with dependencies first; cycles are left out."""
        return self._compute_load_order()

    def on_plugin_error(self, callback: ErrorCallback) -> ErrorCallback:
        """Call ``callback(plugin_id, message)`` whenever a plugin fails."""
        self._error_callbacks.append(callback)
        return callback

    def _error(self, plugin_id: str, message: str) -> None:
        _log.warning("Plugin error: %s - %s", plugin_id, message)
        for callback in list(self._error_callbacks):
            callback(plugin_id, message)

    def _compute_load_order(self) -> list[str]:
        order: list[str] = []
        marks = dict.fromkeys(self._loaders, _UNVISITED)
        for plugin_id in self._loaders:
            if not self._visit(plugin_id, marks, order):
                _log.warning("Circular dependency detected involving: %s", plugin_id)
        return order

    def _visit(self, plugin_id: str, marks: dict[str, int], order: list[str]) -> bool:
        mark = marks.get(plugin_id, _UNVISITED)
        if mark == _VISITED:
            return True
        if mark == _VISITING:
            return False
        marks[plugin_id] = _VISITING
        loader = self._loaders.get(plugin_id)
        if loader is not None:
            for dep in loader.metadata.requires:
                if dep.type == DependencyType.PLUGIN and dep.id in self._loaders:
                    if not self._visit(dep.id, marks, order):
                        return False
        marks[plugin_id] = _VISITED
        order.append(plugin_id)
        return True