# mpfhost

The host side of a modular plugin framework. It supplies the core services that plugins use and takes plugins through their lifecycle. The package uses only the standard library.

## Services

- `mpfhost.service_registry.ServiceRegistry` registers services by interface. An interface can be a class or a plain name. Each service is registered with an API version and a provider id. The methods are `add`, `get`, `has`, `version`, `remove`, `registered_services` and `entry`. `add` raises `ValueError` if the instance is `None` or if the interface is already registered. `get` returns `None` when the service is missing or its version is below `min_version`.
- `mpfhost.event_bus.EventBusService` does publish/subscribe messaging with topic patterns:
  - `*` matches exactly one level and `**` matches one or more levels.
  - `publish_sync` notifies listeners immediately. `publish` queues the event until `process_events` is called.
  - Both publish methods return the number of matching subscriptions that receive the event. A subscription is skipped for events sent under its own subscriber id unless its `SubscriptionOptions` set `receive_own_events=True`.
  - The bus also provides `subscriber_count`, `active_topics`, `topic_stats` / `topic_stats_as_dict`, `subscriptions_for` and `matches_topic`.
- `mpfhost.menu_service.MenuService` holds `MenuItem` entries kept sorted by group, then order, then label.
  - `register_item` raises `ValueError` for an empty or duplicate id.
  - `update_item` raises `KeyError` for an unknown id.
  - `set_badge` and `set_enabled` ignore unknown ids.
- `mpfhost.theme_service.ThemeService` has the built-in themes `Light` and `Dark`, and `Light` is the current theme at start.
  - `set_theme` raises `KeyError` for an unknown name.
  - `load_themes(path)` registers the named themes listed under `"themes"` in a JSON file and returns their names.
- `mpfhost.navigation_service.NavigationService` keeps a route stack and drives a stack view that you supply.
  - The stack view is any object with `nav_push`, `nav_pop`, `nav_pop_to_root` and `nav_replace`.
  - Route patterns are an exact route, `prefix/*` or `*`, tried in the order they were registered.
  - A route ending in `.qml` resolves to itself.
- `mpfhost.settings_service.SettingsService` stores per-plugin key/value settings.
  - Values are written as JSON-encoded entries to `settings.ini` in the config directory.
  - This happens on `sync()` or when a `with` block is left.
  - Without a directory it uses `$XDG_CONFIG_HOME/MPF/QtModularPluginFramework`, or `~/.config/MPF/QtModularPluginFramework` when that variable is unset.
- `mpfhost.logger.Logger` is a levelled logger (`Level.TRACE` … `Level.ERROR`).
  - Its format string may use `%time%`, `%date%`, `%level%`, `%tag%` and `%message%`.
  - Output goes to the standard `logging` module unless a handler is set with `set_handler`.

## Plugins

`mpfhost.plugin_metadata.PluginMetadata.from_json` parses a plugin's JSON description: id, name, version, vendor, `requires`, `provides`, `qmlModules`, `entryQml`, priority and so on. `validate()` lists any problems it finds.

`mpfhost.plugin_loader.PluginLoader` pairs metadata with a factory. The factory is a callable that returns the plugin instance. A plugin instance must provide `initialize(registry)`, `start()`, `stop()`, `qml_module_uri()` and `entry_qml()`. `load()` raises `PluginLoadError` when loading fails, and the loader then enters the `State.ERROR` state.

`mpfhost.plugin_manager.PluginManager` works out a load order in which dependencies come first (`load_order()`).
- It loads, initializes and starts plugins in that order with `load_all`, `initialize_all` and `start_all`.
- It stops and unloads them in reverse order with `stop_all` and `unload_all`.
- Failures are reported to callbacks registered with `on_plugin_error`.

```python
from mpfhost.plugin_loader import PluginLoader
from mpfhost.plugin_manager import PluginManager
from mpfhost.service_registry import ServiceRegistry

class Hello:
    def initialize(self, registry): return True
    def start(self): return True
    def stop(self): pass
    def qml_module_uri(self): return ""
    def entry_qml(self): return ""

with PluginManager(ServiceRegistry()) as manager:
    manager.add_loader(PluginLoader({"id": "hello", "version": "1.0.0"}, Hello))
    manager.load_all() and manager.initialize_all() and manager.start_all()
```

## Event bus example

```python
from mpfhost.event_bus import EventBusService, SubscriptionOptions

bus = EventBusService()
bus.on_event_published(lambda topic, data, sender: print(topic, data, sender))
bus.subscribe("orders/**", "plugin-a", SubscriptionOptions(priority=10))
bus.publish_sync("orders/items/added", {"orderId": "12345"}, "plugin-b")
```

## Running the host

```
mpf-host
```

The command runs `mpfhost.application.main`. It does the following:
1. It resolves the `plugins`, `qml` and `config` directories as siblings of the directory that holds the command.
2. It applies any overrides from `config/paths.json`. That file can set the keys `pluginPath`, `qmlPath` and `extraQmlPaths`. Values may use `${VAR}` or `%VAR%` environment variables, and relative paths are resolved against the config directory.
3. It creates and registers the core services.
4. It delivers queued events until it is interrupted with Ctrl+C.

Inside Python, `mpfhost.application.Application` takes these arguments:
- `plugin_loaders`: the plugins to manage.
- `qml_loader`: a callable that is given the main QML URL. `initialize()` raises `RuntimeError` if the callable returns false.

`quit()` stops `run()`.

## What it does not do

- The command does not find or load plugin libraries from the plugins directory. Plugins must be handed to `Application` or `PluginManager` as `PluginLoader` objects.
- There is no user interface. The main QML URL is resolved and passed to a `qml_loader` if you give one. Nothing is rendered.

## Tests

```
pip install -e .[test]
pytest
```