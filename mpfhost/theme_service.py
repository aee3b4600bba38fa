"""Named colour and spacing themes with a switchable current theme."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Mapping

_log = logging.getLogger(__name__)

ThemeCallback = Callable[[], None]


def _json_str(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    return value if isinstance(value, str) else ""


def _json_bool(data: Mapping[str, Any], key: str, default: bool) -> bool:
    value = data.get(key)
    return value if isinstance(value, bool) else default


def _json_int(data: Mapping[str, Any], key: str, default: int) -> int:
    value = data.get(key)
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return default


@dataclass(frozen=True)
class ThemeData:
    """Colours, spacings and corner radii that make up one theme.

    Colours are kept as the colour strings they were given, such as ``"#2196F3"``.
    """

    name: str = ""
    is_dark: bool = False

    primary_color: str = ""
    accent_color: str = ""
    background_color: str = ""
    surface_color: str = ""
    text_color: str = ""
    text_secondary_color: str = ""
    error_color: str = ""
    warning_color: str = ""
    success_color: str = ""

    spacing_tiny: int = 4
    spacing_small: int = 8
    spacing_medium: int = 16
    spacing_large: int = 24

    radius_small: int = 4
    radius_medium: int = 8
    radius_large: int = 16

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> ThemeData:
        """Build a theme from a JSON object, filling gaps with defaults."""
        is_dark = _json_bool(data, "isDark", False)

        def color(key: str, default: str) -> str:
            return _json_str(data, key) or default

        return cls(
            name=_json_str(data, "name"),
            is_dark=is_dark,
            primary_color=color("primaryColor", "#2196F3"),
            accent_color=color("accentColor", "#FF4081"),
            background_color=color("backgroundColor", "#121212" if is_dark else "#FFFFFF"),
            surface_color=color("surfaceColor", "#1E1E1E" if is_dark else "#F5F5F5"),
            text_color=color("textColor", "#FFFFFF" if is_dark else "#212121"),
            text_secondary_color=color(
                "textSecondaryColor", "#B0B0B0" if is_dark else "#757575"
            ),
            error_color=color("errorColor", "#F44336"),
            warning_color=color("warningColor", "#FF9800"),
            success_color=color("successColor", "#4CAF50"),
            spacing_tiny=_json_int(data, "spacingTiny", 4),
            spacing_small=_json_int(data, "spacingSmall", 8),
            spacing_medium=_json_int(data, "spacingMedium", 16),
            spacing_large=_json_int(data, "spacingLarge", 24),
            radius_small=_json_int(data, "radiusSmall", 4),
            radius_medium=_json_int(data, "radiusMedium", 8),
            radius_large=_json_int(data, "radiusLarge", 16),
        )

    @classmethod
    def light(cls) -> ThemeData:
        return cls(
            name="Light",
            is_dark=False,
            primary_color="#2196F3",
            accent_color="#FF4081",
            background_color="#FFFFFF",
            surface_color="#F5F5F5",
            text_color="#212121",
            text_secondary_color="#757575",
            error_color="#F44336",
            warning_color="#FF9800",
            success_color="#4CAF50",
        )

    @classmethod
    def dark(cls) -> ThemeData:
        return cls(
            name="Dark",
            is_dark=True,
            primary_color="#90CAF9",
            accent_color="#FF80AB",
            background_color="#121212",
            surface_color="#1E1E1E",
            text_color="#FFFFFF",
            text_secondary_color="#B0B0B0",
            error_color="#EF5350",
            warning_color="#FFA726",
            success_color="#66BB6A",
        )


class ThemeService:
    """Holds the registered themes and the one currently in use.

    The built-in ``Light`` and ``Dark`` themes are always registered;
    ``Light`` is current at start.
    """

    def __init__(self) -> None:
        self._themes: dict[str, ThemeData] = {}
        self._callbacks: list[ThemeCallback] = []
        self.register_theme(ThemeData.light())
        self.register_theme(ThemeData.dark())
        self._current = ThemeData.light()

    @property
    def current(self) -> ThemeData:
        return self._current

    @property
    def name(self) -> str:
        return self._current.name

    @property
    def is_dark(self) -> bool:
        return self._current.is_dark

    def set_theme(self, theme_name: str) -> None:
        """Make ``theme_name`` current; raise KeyError if it is not registered."""
        theme = self._themes.get(theme_name)
        if theme is None:
            raise KeyError(f"Unknown theme: {theme_name}")
        self._current = theme
        for callback in list(self._callbacks):
            callback()

    def available_themes(self) -> list[str]:
        return list(self._themes)

    def register_theme(self, theme: ThemeData) -> None:
        """Register ``theme``, replacing any theme of the same name."""
        self._themes[theme.name] = theme

    def load_themes(self, path: str | os.PathLike[str]) -> list[str]:
        """Register the themes in a JSON file; return the names registered.

        Raises OSError if the file cannot be read and ValueError if it is
        not a JSON object. Themes without a name are skipped.
        """
        text = Path(path).read_bytes()
        try:
            document = json.loads(text)
        except ValueError as exc:
            raise ValueError(f"Invalid themes file format: {path}") from exc
        if not isinstance(document, dict):
            raise ValueError(f"Invalid themes file format: {path}")

        entries = document.get("themes")
        loaded: list[str] = []
        for entry in entries if isinstance(entries, list) else []:
            theme = ThemeData.from_json(entry if isinstance(entry, Mapping) else {})
            if theme.name:
                self.register_theme(theme)
                loaded.append(theme.name)
        _log.debug("Loaded %d themes from %s", len(loaded), path)
        return loaded

    def on_theme_changed(self, callback: ThemeCallback) -> ThemeCallback:
        """Call ``callback()`` whenever the current theme changes."""
        self._callbacks.append(callback)
        return callback