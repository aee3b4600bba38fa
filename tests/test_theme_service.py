import json

import pytest

from mpfhost.theme_service import ThemeData, ThemeService


def test_light_theme_is_current_by_default():
    service = ThemeService()
    assert service.name == "Light"
    assert service.is_dark is False
    assert service.current == ThemeData.light()


def test_builtin_themes_are_available():
    service = ThemeService()
    assert sorted(service.available_themes()) == ["Dark", "Light"]


def test_set_theme_switches_and_notifies():
    service = ThemeService()
    calls = []
    service.on_theme_changed(lambda: calls.append(service.name))
    service.set_theme("Dark")
    assert service.is_dark is True
    assert service.current.primary_color == "#90CAF9"
    assert calls == ["Dark"]


def test_set_unknown_theme_raises_and_keeps_current():
    service = ThemeService()
    calls = []
    service.on_theme_changed(lambda: calls.append(1))
    with pytest.raises(KeyError):
        service.set_theme("Nope")
    assert service.name == "Light"
    assert calls == []


def test_from_json_dark_defaults():
    theme = ThemeData.from_json({"name": "Night", "isDark": True})
    assert theme.background_color == "#121212"
    assert theme.surface_color == "#1E1E1E"
    assert theme.text_color == "#FFFFFF"
    assert theme.primary_color == "#2196F3"
    assert theme.spacing_medium == 16
    assert theme.radius_large == 16


def test_from_json_light_defaults_match_light_colours():
    theme = ThemeData.from_json({"name": "Custom"})
    light = ThemeData.light()
    assert theme.background_color == light.background_color
    assert theme.text_secondary_color == light.text_secondary_color
    assert theme.is_dark is False


def test_from_json_takes_given_values():
    theme = ThemeData.from_json(
        {"name": "Brand", "primaryColor": "#123456", "spacingSmall": 10, "radiusSmall": 2}
    )
    assert theme.primary_color == "#123456"
    assert theme.spacing_small == 10
    assert theme.radius_small == 2


def test_from_json_ignores_wrong_types():
    theme = ThemeData.from_json({"name": "X", "spacingTiny": "big", "accentColor": 5})
    assert theme.spacing_tiny == 4
    assert theme.accent_color == "#FF4081"


def test_register_theme_makes_it_selectable():
    service = ThemeService()
    custom = ThemeData.from_json({"name": "Ocean"})
    service.register_theme(custom)
    service.set_theme("Ocean")
    assert service.current == custom


def test_load_themes_from_file(tmp_path):
    path = tmp_path / "themes.json"
    path.write_text(
        json.dumps(
            {
                "themes": [
                    {"name": "Ocean", "primaryColor": "#006994"},
                    {"primaryColor": "#000000"},
                ]
            }
        ),
        encoding="utf-8",
    )
    service = ThemeService()
    assert service.load_themes(path) == ["Ocean"]
    assert "Ocean" in service.available_themes()
    assert len(service.available_themes()) == 3
    service.set_theme("Ocean")
    assert service.current.primary_color == "#006994"


def test_load_themes_rejects_non_object(tmp_path):
    path = tmp_path / "themes.json"
    path.write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(ValueError):
        ThemeService().load_themes(path)


def test_load_themes_rejects_invalid_json(tmp_path):
    path = tmp_path / "themes.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(ValueError):
        ThemeService().load_themes(path)


def test_load_themes_missing_file(tmp_path):
    with pytest.raises(OSError):
        ThemeService().load_themes(tmp_path / "absent.json")