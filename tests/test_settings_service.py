import pytest

from mpfhost.settings_service import SettingsService


@pytest.fixture
def settings(tmp_path):
    return SettingsService(tmp_path / "config")


def test_creates_config_directory(tmp_path):
    target = tmp_path / "a" / "b"
    service = SettingsService(target)
    assert target.is_dir()
    assert service.path == target / "settings.ini"


def test_set_and_get(settings):
    settings.set_value("plugin-a", "color", "blue")
    assert settings.value("plugin-a", "color") == "blue"
    assert settings.contains("plugin-a", "color")
    assert not settings.contains("plugin-b", "color")


def test_default_value(settings):
    assert settings.value("plugin-a", "missing") is None
    assert settings.value("plugin-a", "missing", 42) == 42


def test_change_notification_only_on_change(settings):
    changes = []
    settings.on_setting_changed(lambda pid, key, value: changes.append((pid, key, value)))
    settings.set_value("plugin-a", "size", 10)
    settings.set_value("plugin-a", "size", 10)
    settings.set_value("plugin-a", "size", 12)
    assert changes == [("plugin-a", "size", 10), ("plugin-a", "size", 12)]


def test_keys_are_direct_children(settings):
    settings.set_value("plugin-a", "one", 1)
    settings.set_value("plugin-a", "two", 2)
    settings.set_value("plugin-a", "nested/three", 3)
    settings.set_value("plugin-b", "other", 4)
    assert sorted(settings.keys("plugin-a")) == ["one", "two"]
    assert settings.keys("plugin-c") == []


def test_remove_key_and_children(settings):
    settings.set_value("plugin-a", "window", "main")
    settings.set_value("plugin-a", "window/width", 800)
    settings.set_value("plugin-a", "keep", True)
    settings.remove("plugin-a", "window")
    assert not settings.contains("plugin-a", "window")
    assert not settings.contains("plugin-a", "window/width")
    assert settings.value("plugin-a", "keep") is True


def test_sync_round_trip(tmp_path):
    directory = tmp_path / "config"
    first = SettingsService(directory)
    first.set_value("plugin-a", "count", 3)
    first.set_value("plugin-a", "Name", "Mixed Case")
    first.set_value("plugin-b", "flags", [1, 2])
    first.set_value("plugin-b", "deep/key", {"x": 1.5})
    first.sync()

    second = SettingsService(directory)
    assert second.value("plugin-a", "count") == 3
    assert second.value("plugin-a", "Name") == "Mixed Case"
    assert second.value("plugin-b", "flags") == [1, 2]
    assert second.value("plugin-b", "deep/key") == {"x": 1.5}


def test_ini_groups_by_plugin(settings):
    settings.set_value("plugin-a", "color", "blue")
    settings.sync()
    text = settings.path.read_text(encoding="utf-8")
    assert "[plugin-a]" in text


def test_context_manager_syncs(tmp_path):
    directory = tmp_path / "cfg"
    with SettingsService(directory) as service:
        service.set_value("p", "k", "v")
    assert SettingsService(directory).value("p", "k") == "v"


def test_hand_written_plain_values_load_as_text(tmp_path):
    directory = tmp_path / "cfg"
    directory.mkdir()
    (directory / "settings.ini").write_text("[p]\nname=plain words\n", encoding="utf-8")
    assert SettingsService(directory).value("p", "name") == "plain words"