import pytest

from mpfhost.service_registry import ServiceEntry, ServiceRegistry


class INavigation:
    pass


class ITheme:
    pass


class Navigation(INavigation):
    pass


@pytest.fixture
def registry():
    return ServiceRegistry()


def test_add_and_get(registry):
    nav = Navigation()
    registry.add(INavigation, nav, 2, "host")
    assert registry.get(INavigation) is nav
    assert registry.has(INavigation)
    assert registry.version(INavigation) == 2


def test_missing_service(registry):
    assert registry.get(ITheme) is None
    assert not registry.has(ITheme)
    assert registry.version(ITheme) == -1
    assert registry.entry("nothing") is None


def test_min_version(registry):
    registry.add(INavigation, Navigation(), 2)
    assert registry.get(INavigation, 3) is None
    assert registry.get(INavigation, 2) is not None and registry.has(INavigation, 2)
    assert not registry.has(INavigation, 3)
    assert registry.has(INavigation, 0)


def test_duplicate_registration_raises(registry):
    registry.add(INavigation, Navigation())
    with pytest.raises(ValueError):
        registry.add(INavigation, Navigation())
    assert len(registry.registered_services()) == 1


def test_null_instance_raises(registry):
    with pytest.raises(ValueError):
        registry.add(ITheme, None)
    assert registry.registered_services() == []


def test_string_interfaces(registry):
    service = object()
    registry.add("IEventBus", service, 1, "host")
    assert registry.get("IEventBus") is service
    assert registry.entry("IEventBus") == ServiceEntry("IEventBus", 1, service, "host")


def test_entry_by_registered_name(registry):
    nav = Navigation()
    registry.add(INavigation, nav, 1, "host")
    (name,) = registry.registered_services()
    entry = registry.entry(name)
    assert entry.instance is nav
    assert entry.provider_id == "host"
    assert entry.interface_name == name


def test_remove_and_signals(registry):
    added, removed = [], []
    registry.on_service_added(added.append)
    registry.on_service_removed(removed.append)
    registry.add("ITheme", object())
    registry.remove("ITheme")
    registry.remove("ITheme")
    assert added == ["ITheme"]
    assert removed == ["ITheme"]
    assert not registry.has("ITheme")


def test_class_and_name_are_distinct_keys(registry):
    registry.add(INavigation, Navigation())
    registry.add(ITheme, object())
    assert len(set(registry.registered_services())) == 2