import pytest

from mpfhost.plugin_loader import PluginLoader, State
from mpfhost.plugin_manager import PluginManager
from mpfhost.plugin_metadata import PluginMetadata
from mpfhost.service_registry import ServiceRegistry


class FakePlugin:
    def __init__(self, name, journal, init_ok=True, start_ok=True, uri="", entry=""):
        self.name = name
        self.journal = journal
        self.init_ok = init_ok
        self.start_ok = start_ok
        self.uri = uri
        self.entry = entry
        self.registry = None

    def initialize(self, registry):
        self.journal.append(("init", self.name))
        self.registry = registry
        return self.init_ok

    def start(self):
        self.journal.append(("start", self.name))
        return self.start_ok

    def stop(self):
        self.journal.append(("stop", self.name))

    def qml_module_uri(self):
        return self.uri

    def entry_qml(self):
        return self.entry


def make_loader(meta, plugin):
    return PluginLoader(meta, lambda: plugin)


@pytest.fixture
def registry():
    return ServiceRegistry()


@pytest.fixture
def journal():
    return []


def test_load_order_puts_dependencies_first(registry, journal):
    manager = PluginManager(registry)
    manager.add_loader(make_loader({"id": "b", "requires": [{"id": "a"}]}, FakePlugin("b", journal)))
    manager.add_loader(make_loader({"id": "a"}, FakePlugin("a", journal)))
    assert manager.load_order() == ["a", "b"]


def test_cycle_is_left_out_of_order(registry, journal):
    manager = PluginManager(registry)
    manager.add_loader(make_loader({"id": "a", "requires": [{"id": "b"}]}, FakePlugin("a", journal)))
    manager.add_loader(make_loader({"id": "b", "requires": [{"id": "a"}]}, FakePlugin("b", journal)))
    manager.add_loader(make_loader({"id": "c"}, FakePlugin("c", journal)))
    assert manager.load_order() == ["c"]


def test_service_dependencies_do_not_affect_order(registry, journal):
    manager = PluginManager(registry)
    manager.add_loader(
        make_loader({"id": "a", "requires": [{"id": "b", "type": "service"}]}, FakePlugin("a", journal))
    )
    manager.add_loader(make_loader({"id": "b"}, FakePlugin("b", journal)))
    assert manager.load_order() == ["a", "b"]


def test_add_loader_rejects_duplicates_and_invalid(registry, journal):
    manager = PluginManager(registry)
    assert manager.add_loader(make_loader({"id": "a"}, FakePlugin("a", journal))) == "a"
    with pytest.raises(ValueError, match="Duplicate plugin ID: a"):
        manager.add_loader(make_loader({"id": "a"}, FakePlugin("a", journal)))
    with pytest.raises(ValueError):
        manager.add_loader(make_loader({}, FakePlugin("x", journal)))
    assert [loader.metadata.id for loader in manager.plugins()] == ["a"]


def test_check_dependencies(registry, journal):
    manager = PluginManager(registry)
    manager.add_loader(make_loader({"id": "a", "version": "1.5.0"}, FakePlugin("a", journal)))
    metadata = PluginMetadata.from_json(
        {
            "id": "z",
            "requires": [
                {"id": "a", "min": "1.0"},
                {"id": "missing"},
                {"id": "extra", "optional": True},
                {"id": "svc", "type": "service"},
            ],
        }
    )
    assert manager.check_dependencies(metadata) == ["plugin:missing"]
    too_new = PluginMetadata.from_json({"id": "z", "requires": [{"id": "a", "min": "2.0"}]})
    assert manager.check_dependencies(too_new) == ["plugin:a>=2.0"]


def test_full_lifecycle(registry, journal):
    plugin_a = FakePlugin("a", journal, uri="Demo.A", entry="qrc:/a/Main.qml")
    plugin_b = FakePlugin("b", journal)
    manager = PluginManager(registry)
    manager.add_loader(make_loader({"id": "b", "requires": [{"id": "a"}]}, plugin_b))
    manager.add_loader(make_loader({"id": "a"}, plugin_a))

    assert manager.load_all() is True
    assert manager.initialize_all() is True
    assert manager.start_all() is True
    assert plugin_a.registry is registry
    assert manager.plugin("a").state == State.STARTED
    assert manager.qml_module_uris() == ["Demo.A"]
    assert manager.entry_qml("a") == "qrc:/a/Main.qml"
    assert manager.entry_qml("unknown") == ""

    manager.stop_all()
    assert journal == [
        ("init", "a"),
        ("init", "b"),
        ("start", "a"),
        ("start", "b"),
        ("stop", "b"),
        ("stop", "a"),
    ]
    assert manager.plugin("a").state == State.INITIALIZED

    manager.unload_all()
    assert manager.plugins() == []
    assert manager.plugin("a") is None


def test_unsatisfied_dependency_reports_error(registry, journal):
    errors = []
    manager = PluginManager(registry)
    manager.on_plugin_error(lambda pid, msg: errors.append((pid, msg)))
    manager.add_loader(make_loader({"id": "a", "requires": [{"id": "missing"}]}, FakePlugin("a", journal)))
    manager.add_loader(make_loader({"id": "b"}, FakePlugin("b", journal)))
    assert manager.load_all() is False
    assert errors == [("a", "Unsatisfied dependencies: plugin:missing")]
    assert manager.plugin("a").is_loaded() is False
    assert manager.plugin("b").is_loaded() is True


def test_load_failure_reports_loader_error(registry):
    errors = []
    manager = PluginManager(registry)
    manager.on_plugin_error(lambda pid, msg: errors.append((pid, msg)))
    manager.add_loader(PluginLoader({"id": "a"}, lambda: None))
    assert manager.load_all() is False
    assert errors == [("a", "Failed to get plugin instance")]


def test_initialization_failure_skips_start(registry, journal):
    errors = []
    manager = PluginManager(registry)
    manager.on_plugin_error(lambda pid, msg: errors.append((pid, msg)))
    manager.add_loader(make_loader({"id": "a"}, FakePlugin("a", journal, init_ok=False)))
    manager.load_all()
    assert manager.initialize_all() is False
    assert errors == [("a", "Initialization failed")]
    assert manager.start_all() is True
    assert manager.plugin("a").state == State.LOADED
    assert ("start", "a") not in journal


def test_start_failure_reported(registry, journal):
    errors = []
    manager = PluginManager(registry)
    manager.on_plugin_error(lambda pid, msg: errors.append((pid, msg)))
    manager.add_loader(make_loader({"id": "a"}, FakePlugin("a", journal, start_ok=False)))
    manager.load_all()
    manager.initialize_all()
    assert manager.start_all() is False
    assert errors == [("a", "Start failed")]
    assert manager.plugin("a").state == State.INITIALIZED


def test_initialize_skips_already_initialized(registry, journal):
    manager = PluginManager(registry)
    manager.add_loader(make_loader({"id": "a"}, FakePlugin("a", journal)))
    manager.load_all()
    manager.initialize_all()
    manager.initialize_all()
    assert journal.count(("init", "a")) == 1


def test_context_manager_stops_and_unloads(registry, journal):
    with PluginManager(registry) as manager:
        manager.add_loader(make_loader({"id": "a"}, FakePlugin("a", journal)))
        manager.load_all()
        manager.initialize_all()
        manager.start_all()
    assert journal[-1] == ("stop", "a")
    assert manager.plugins() == []