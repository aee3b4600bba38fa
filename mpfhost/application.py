"""Host application: paths, core services, plugin lifecycle and event loop."""

from __future__ import annotations

import json
import logging
import os
import re
import sys
import threading
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Callable, ClassVar, Iterable, Mapping, Sequence

from mpfhost.event_bus import EventBusService
from mpfhost.logger import Level, Logger
from mpfhost.menu_service import MenuService
from mpfhost.navigation_service import NavigationService
from mpfhost.plugin_loader import PluginLoader
from mpfhost.plugin_manager import PluginManager
from mpfhost.service_registry import ServiceRegistry
from mpfhost.settings_service import SettingsService
from mpfhost.theme_service import ThemeService

_log = logging.getLogger(__name__)

ORGANIZATION_NAME = "MPF"
APPLICATION_NAME = "QtModularPluginFramework"
APPLICATION_VERSION = "1.0.0"

PATHS_CONFIG_FILE = "paths.json"
LOG_FORMAT = "[%time%] [%level%] [%tag%] %message%"
FALLBACK_MAIN_QML = "qrc:/MPF/Host/qml/Main.qml"
HOST_PROVIDER = "host"

_BRACED_VAR = re.compile(r"\$\{([^}]+)\}")
_PERCENT_VAR = re.compile(r"%([^%]+)%")

QmlLoader = Callable[[str], bool]
Callback = Callable[[], None]


def expand_env_vars(path: str, environ: Mapping[str, str] | None = None) -> str:
    """Expand ``${VAR}`` and then ``%VAR%`` references in ``path``.

    Unknown variables expand to the empty string.
    """
    env = os.environ if environ is None else environ
    result = _BRACED_VAR.sub(lambda m: env.get(m.group(1), ""), path)
    return _PERCENT_VAR.sub(lambda m: env.get(m.group(1), ""), result)


@dataclass(frozen=True)
class HostPaths:
    """Directories the host reads plugins, QML and configuration from."""

    plugin_path: str
    qml_path: str
    config_path: str
    extra_qml_paths: tuple[str, ...] = field(default=())

    @classmethod
    def for_app_dir(cls, app_dir: str | os.PathLike[str]) -> HostPaths:
        """Return the default layout: siblings of the executable's directory."""
        base = os.fspath(app_dir)
        return cls(
            plugin_path=os.path.abspath(os.path.join(base, "..", "plugins")),
            qml_path=os.path.abspath(os.path.join(base, "..", "qml")),
            config_path=os.path.abspath(os.path.join(base, "..", "config")),
        )


def _resolve(raw: Any, base_dir: str) -> str | None:
    if not isinstance(raw, str):
        return None
    text = raw.strip()
    if not text:
        return None
    text = expand_env_vars(text)
    resolved = text if os.path.isabs(text) else os.path.join(base_dir, text)
    return os.path.abspath(resolved)


def load_paths_config(config_dir: str | os.PathLike[str], paths: HostPaths) -> HostPaths:
    """Apply the overrides in ``<config_dir>/paths.json`` to ``paths``.

    Relative entries are resolved against the config directory after
    environment variables are expanded. A missing file leaves ``paths``
    unchanged; a file that is not a JSON object raises ValueError.
    """
    config_file = Path(config_dir) / PATHS_CONFIG_FILE
    if not config_file.exists():
        return paths
    text = config_file.read_bytes()
    try:
        document = json.loads(text)
    except ValueError as exc:
        raise ValueError(f"Invalid paths config: {config_file} - {exc}") from exc
    if not isinstance(document, dict):
        raise ValueError(f"Invalid paths config: {config_file}")

    base_dir = os.path.abspath(os.fspath(config_dir))
    plugin_path = _resolve(document.get("pluginPath"), base_dir) or paths.plugin_path
    qml_path = _resolve(document.get("qmlPath"), base_dir) or paths.qml_path

    extra = list(paths.extra_qml_paths)
    entries = document.get("extraQmlPaths")
    if isinstance(entries, list):
        extra.extend(p for p in (_resolve(item, base_dir) for item in entries) if p)

    _log.debug("Loaded paths config: %s", config_file)
    return replace(
        paths, plugin_path=plugin_path, qml_path=qml_path, extra_qml_paths=tuple(extra)
    )


class Application:
    """Owns the host's services and plugins and runs its event loop.

    ``plugin_loaders`` are the plugins to manage. ``qml_loader`` is
    called with the main QML URL and reports whether it loaded; without
    one the resolved URL is only recorded.
    """

    _instance: ClassVar[Application | None] = None

    def __init__(
        self,
        argv: Sequence[str] | None = None,
        *,
        app_dir: str | os.PathLike[str] | None = None,
        plugin_loaders: Iterable[PluginLoader] = (),
        qml_loader: QmlLoader | None = None,
        poll_interval: float = 0.05,
    ) -> None:
        self._argv = list(sys.argv if argv is None else argv)
        if app_dir is None:
            app_dir = (
                os.path.dirname(os.path.abspath(self._argv[0])) if self._argv else os.getcwd()
            )
        self.app_dir = os.path.abspath(os.fspath(app_dir))
        self._plugin_loaders = list(plugin_loaders)
        self._qml_loader = qml_loader
        self._poll_interval = poll_interval

        self.paths: HostPaths | None = None
        self.logger: Logger | None = None
        self.registry: ServiceRegistry | None = None
        self.plugin_manager: PluginManager | None = None
        self.navigation: NavigationService | None = None
        self.settings: SettingsService | None = None
        self.theme: ThemeService | None = None
        self.menu: MenuService | None = None
        self.event_bus: EventBusService | None = None
        self.import_paths: list[str] = []
        self.main_qml = ""

        self._initialized: list[Callback] = []
        self._about_to_quit: list[Callback] = []
        self._quit = threading.Event()
        self._exit_code = 0
        Application._instance = self

    @classmethod
    def instance(cls) -> Application | None:
        return Application._instance

    def __enter__(self) -> Application:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def arguments(self) -> list[str]:
        return list(self._argv)

    def on_initialized(self, callback: Callback) -> Callback:
        self._initialized.append(callback)
        return callback

    def on_about_to_quit(self, callback: Callback) -> Callback:
        self._about_to_quit.append(callback)
        return callback

    def initialize(self) -> None:
        """Set up paths, services and plugins and load the main QML.

        Raises RuntimeError if the main QML fails to load.
        """
        self._setup_paths()
        self._setup_logging()
        assert self.paths is not None

        registry = ServiceRegistry()
        self.navigation = NavigationService()
        self.settings = SettingsService(self.paths.config_path)
        self.theme = ThemeService()
        self.menu = MenuService()
        self.event_bus = EventBusService()
        registry.add("INavigation", self.navigation, 1, HOST_PROVIDER)
        registry.add("ISettings", self.settings, 1, HOST_PROVIDER)
        registry.add("ITheme", self.theme, 1, HOST_PROVIDER)
        registry.add("IMenu", self.menu, 1, HOST_PROVIDER)
        registry.add("ILogger", self.logger, 1, HOST_PROVIDER)
        registry.add("IEventBus", self.event_bus, 1, HOST_PROVIDER)
        self.registry = registry

        self._setup_import_paths()
        self._load_plugins()
        self._load_main_qml()

        for callback in list(self._initialized):
            callback()

    def run(self) -> int:
        """Deliver queued events until :meth:`quit` is called; return the exit code."""
        try:
            while not self._quit.is_set():
                self._process_events()
                self._quit.wait(self._poll_interval)
        except KeyboardInterrupt:
            self._exit_code = 0
        self._process_events()
        for callback in list(self._about_to_quit):
            callback()
        return self._exit_code

    def quit(self, exit_code: int = 0) -> None:
        """Ask the running event loop to stop."""
        self._exit_code = exit_code
        self._quit.set()

    def close(self) -> None:
        """Stop and unload all plugins."""
        if self.plugin_manager is not None:
            self.plugin_manager.stop_all()
            self.plugin_manager.unload_all()
        if self.settings is not None:
            self.settings.sync()
        if Application._instance is self:
            Application._instance = None

    def _process_events(self) -> None:
        if self.event_bus is not None:
            self.event_bus.process_events()

    def _setup_paths(self) -> None:
        paths = HostPaths.for_app_dir(self.app_dir)
        Path(paths.config_path).mkdir(parents=True, exist_ok=True)
        try:
            paths = load_paths_config(paths.config_path, paths)
        except (OSError, ValueError) as exc:
            _log.warning("%s", exc)
        self.paths = paths
        _log.debug("Plugin path: %s", paths.plugin_path)
        _log.debug("QML path: %s", paths.qml_path)
        _log.debug("Config path: %s", paths.config_path)
        if paths.extra_qml_paths:
            _log.debug("Extra QML paths: %s", list(paths.extra_qml_paths))

    def _setup_logging(self) -> None:
        self.logger = Logger(fmt=LOG_FORMAT, min_level=Level.DEBUG)

    def _setup_import_paths(self) -> None:
        assert self.paths is not None
        import_paths = [self.paths.qml_path, "qrc:/"]
        for path in self.paths.extra_qml_paths:
            if os.path.isdir(path):
                import_paths.append(path)
                _log.debug("Added extra QML import path: %s", path)
            else:
                _log.warning("Extra QML path does not exist: %s", path)
        host_qml_dir = os.path.join(self.paths.qml_path, "MPF", "Host", "qml")
        if os.path.isdir(host_qml_dir):
            import_paths.append(host_qml_dir)
        self.import_paths = import_paths

    def _load_plugins(self) -> None:
        manager = PluginManager(self.registry)
        for loader in self._plugin_loaders:
            try:
                manager.add_loader(loader)
            except ValueError as exc:
                _log.warning("%s", exc)
        _log.debug("Discovered %d plugins", len(manager.plugins()))
        if manager.load_all() and manager.initialize_all():
            manager.start_all()
        for uri in manager.qml_module_uris():
            _log.debug("Plugin QML module: %s", uri)
        self.plugin_manager = manager

    def _load_main_qml(self) -> None:
        assert self.plugin_manager is not None and self.paths is not None
        entry = next(
            (
                qml
                for qml in (
                    self.plugin_manager.entry_qml(loader.metadata.id)
                    for loader in self.plugin_manager.plugins()
                )
                if qml
            ),
            "",
        )
        if not entry:
            fs_path = Path(self.paths.qml_path, "MPF", "Host", "qml", "Main.qml")
            entry = fs_path.absolute().as_uri() if fs_path.exists() else FALLBACK_MAIN_QML
        _log.debug("Loading main QML: %s", entry)
        self.main_qml = entry
        if self._qml_loader is not None and not self._qml_loader(entry):
            raise RuntimeError("Failed to load main QML")


def main(argv: Sequence[str] | None = None) -> int:
    """Start the host and run it until it quits."""
    app = Application(argv)
    try:
        app.initialize()
    except RuntimeError as exc:
        _log.critical("Failed to initialize application: %s", exc)
        app.close()
        return 1
    try:
        return app.run()
    finally:
        app.close()