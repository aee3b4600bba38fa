"""Plugin metadata parsed from a plugin's JSON description."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping

Version = tuple[int, ...]

_DIGITS = re.compile(r"\d+")


def parse_version(text: str) -> Version:
    """Parse the leading dot-separated numeric segments of ``text``.

    Parsing stops at the first segment that is not purely numeric; a
    segment with trailing garbage still contributes its numeric prefix.
    An empty tuple means the version is null.
    """
    segments: list[int] = []
    for part in text.split("."):
        match = _DIGITS.match(part)
        if match is None:
            break
        segments.append(int(match.group()))
        if match.end() != len(part):
            break
    return tuple(segments)


def _version_text(version: Version) -> str:
    return ".".join(str(segment) for segment in version)


def _json_str(data: Mapping[str, Any], key: str, default: str = "") -> str:
    value = data.get(key)
    return value if isinstance(value, str) else default


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


def _json_list(data: Mapping[str, Any], key: str) -> list[Any]:
    value = data.get(key)
    return value if isinstance(value, list) else []


class DependencyType(Enum):
    """What a dependency refers to."""

    PLUGIN = "plugin"
    SERVICE = "service"


@dataclass(frozen=True)
class PluginDependency:
    """A dependency declared by a plugin."""

    type: DependencyType = DependencyType.PLUGIN
    id: str = ""
    min_version: Version = ()
    optional: bool = False

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> PluginDependency:
        type_text = _json_str(data, "type", "plugin")
        dep_type = DependencyType.SERVICE if type_text == "service" else DependencyType.PLUGIN
        return cls(
            type=dep_type,
            id=_json_str(data, "id"),
            min_version=parse_version(_json_str(data, "min", "0.0.0")),
            optional=_json_bool(data, "optional", False),
        )

    def to_json(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "type": self.type.value,
            "id": self.id,
            "min": _version_text(self.min_version),
        }
        if self.optional:
            result["optional"] = True
        return result


@dataclass(frozen=True)
class PluginMetadata:
    """Everything known about a plugin from its metadata JSON."""

    id: str = ""
    name: str = ""
    description: str = ""
    version: Version = ()
    vendor: str = ""
    requires: tuple[PluginDependency, ...] = ()
    min_host_version: Version = ()
    min_foundation_version: Version = ()
    provides: tuple[str, ...] = ()
    qml_modules: tuple[str, ...] = ()
    entry_qml: str = ""
    priority: int = 0
    load_on_startup: bool = True
    raw: dict[str, Any] = field(default_factory=dict, compare=False)

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> PluginMetadata:
        plugin_id = _json_str(data, "id")
        requires = tuple(
            PluginDependency.from_json(item if isinstance(item, Mapping) else {})
            for item in _json_list(data, "requires")
        )
        return cls(
            id=plugin_id,
            name=_json_str(data, "name", plugin_id),
            description=_json_str(data, "description"),
            version=parse_version(_json_str(data, "version", "1.0.0")),
            vendor=_json_str(data, "vendor"),
            requires=requires,
            min_host_version=parse_version(_json_str(data, "minHostVersion", "1.0.0")),
            min_foundation_version=parse_version(
                _json_str(data, "minFoundationVersion", "1.0.0")
            ),
            provides=tuple(
                item if isinstance(item, str) else "" for item in _json_list(data, "provides")
            ),
            qml_modules=tuple(
                item if isinstance(item, str) else "" for item in _json_list(data, "qmlModules")
            ),
            entry_qml=_json_str(data, "entryQml"),
            priority=_json_int(data, "priority", 0),
            load_on_startup=_json_bool(data, "loadOnStartup", True),
            raw=dict(data),
        )

    def is_valid(self) -> bool:
        return bool(self.id)

    def validate(self) -> list[str]:
        """Return a list of problems with this metadata; empty when valid."""
        errors: list[str] = []
        if not self.id:
            errors.append("Missing required field: id")
        if not self.version:
            errors.append("Invalid version format")
        for dep in self.requires:
            if dep.id == self.id:
                errors.append(f"Plugin cannot depend on itself: {dep.id}")
            if not dep.id:
                errors.append("Dependency has empty id")
        return errors

    def to_json(self) -> dict[str, Any]:
        """Return the raw JSON this metadata was parsed from."""
        return dict(self.raw)