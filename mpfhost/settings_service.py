"""Persistent per-plugin settings stored in an INI file."""

from __future__ import annotations

import configparser
import json
import os
import threading
from pathlib import Path
from typing import Any, Callable

SettingCallback = Callable[[str, str, Any], None]

_GENERAL = "General"
_FILE_NAME = "settings.ini"


def _default_config_dir() -> Path:
    base = os.environ.get("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    return Path(base) / "MPF" / "QtModularPluginFramework"


def _normalize(key: str) -> str:
    return "/".join(part for part in key.split("/") if part)


def _decode(text: str) -> Any:
    try:
        return json.loads(text)
    except ValueError:
        return text


class SettingsService:
    """Key/value settings namespaced by plugin id.

    Values live in memory and are written to ``settings.ini`` in the
    config directory by :meth:`sync` or on leaving a ``with`` block.
    """

    def __init__(self, config_path: str | os.PathLike[str] | None = None) -> None:
        directory = Path(config_path) if config_path is not None else _default_config_dir()
        directory.mkdir(parents=True, exist_ok=True)
        self._path = directory / _FILE_NAME
        self._lock = threading.RLock()
        self._values: dict[str, Any] = {}
        self._callbacks: list[SettingCallback] = []
        self._read()

    @property
    def path(self) -> Path:
        return self._path

    def __enter__(self) -> SettingsService:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.sync()

    @staticmethod
    def _make_key(plugin_id: str, key: str) -> str:
        return _normalize(f"{plugin_id}/{key}")

    def value(self, plugin_id: str, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._values.get(self._make_key(plugin_id, key), default)

    def set_value(self, plugin_id: str, key: str, value: Any) -> None:
        full_key = self._make_key(plugin_id, key)
        with self._lock:
            if self._values.get(full_key) == value:
                return
            self._values[full_key] = value
        for callback in list(self._callbacks):
            callback(plugin_id, key, value)

    def remove(self, plugin_id: str, key: str) -> None:
        """Remove ``key`` and every key nested beneath it."""
        full_key = self._make_key(plugin_id, key)
        prefix = full_key + "/" if full_key else ""
        with self._lock:
            for existing in [k for k in self._values if k == full_key or k.startswith(prefix)]:
                del self._values[existing]

    def contains(self, plugin_id: str, key: str) -> bool:
        with self._lock:
            return self._make_key(plugin_id, key) in self._values

    def keys(self, plugin_id: str) -> list[str]:
        """Return the direct child keys of the plugin's group."""
        group = _normalize(plugin_id)
        prefix = group + "/" if group else ""
        with self._lock:
            return [
                full[len(prefix):]
                for full in self._values
                if full.startswith(prefix) and "/" not in full[len(prefix):]
            ]

    def sync(self) -> None:
        """Write all settings to disk."""
        parser = self._new_parser()
        with self._lock:
            for full_key, value in self._values.items():
                group, sep, rest = full_key.partition("/")
                section, option = (group, rest) if sep else (_GENERAL, group)
                if not parser.has_section(section):
                    parser.add_section(section)
                parser.set(section, option, json.dumps(value))
            with self._path.open("w", encoding="utf-8") as handle:
                parser.write(handle)

    def on_setting_changed(self, callback: SettingCallback) -> SettingCallback:
        """Call ``callback(plugin_id, key, value)`` when a value changes."""
        self._callbacks.append(callback)
        return callback

    @staticmethod
    def _new_parser() -> configparser.ConfigParser:
        parser = configparser.ConfigParser(interpolation=None)
        parser.optionxform = str  # type: ignore[assignment, method-assign]
        return parser

    def _read(self) -> None:
        if not self._path.exists():
            return
        parser = self._new_parser()
        parser.read(self._path, encoding="utf-8")
        for section in parser.sections():
            for option, text in parser.items(section):
                full_key = option if section == _GENERAL else f"{section}/{option}"
                self._values[_normalize(full_key)] = _decode(text)