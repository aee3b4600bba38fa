"""Application menu built from items that plugins register."""

from __future__ import annotations

import contextlib
import logging
import threading
from dataclasses import dataclass, replace
from typing import Any, Callable, Mapping

_log = logging.getLogger(__name__)

MenuCallback = Callable[[], None]


@dataclass
class MenuItem:
    """One entry in the application menu."""

    id: str
    label: str = ""
    icon: str = ""
    route: str = ""
    plugin_id: str = ""
    order: int = 0
    enabled: bool = True
    badge: str = ""
    group: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "label": self.label,
            "icon": self.icon,
            "route": self.route,
            "pluginId": self.plugin_id,
            "order": self.order,
            "enabled": self.enabled,
            "badge": self.badge,
            "group": self.group,
        }


def _to_str(value: Any) -> str:
    return "" if value is None else str(value)


def _to_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def _sort_key(item: MenuItem) -> tuple[str, int, str]:
    return (item.group, item.order, item.label)


class MenuService:
    """Thread-safe, sorted collection of menu items.

    Items are kept ordered by group, then order, then label.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._items: list[MenuItem] = []
        self._callbacks: list[MenuCallback] = []

    @property
    def count(self) -> int:
        with self._lock:
            return len(self._items)

    def __len__(self) -> int:
        return self.count

    def register_item(self, item: MenuItem) -> None:
        """Add an item; raise ValueError for an empty or duplicate id."""
        if not item.id:
            raise ValueError("Cannot register item with empty ID")
        with self._lock:
            if any(existing.id == item.id for existing in self._items):
                raise ValueError(f"Item already registered: {item.id}")
            self._items.append(replace(item))
            self._items.sort(key=_sort_key)
        _log.debug("Registered %s from %s", item.id, item.plugin_id)
        self._changed()

    def unregister_item(self, item_id: str) -> None:
        with self._lock:
            remaining = [item for item in self._items if item.id != item_id]
            removed = len(remaining) != len(self._items)
            self._items = remaining
        if removed:
            self._changed()

    def unregister_plugin(self, plugin_id: str) -> None:
        with self._lock:
            remaining = [item for item in self._items if item.plugin_id != plugin_id]
            removed = len(remaining) != len(self._items)
            self._items = remaining
        if removed:
            self._changed()

    def update_item(self, item_id: str, updates: Mapping[str, Any]) -> None:
        """Apply field updates to an item; raise KeyError if it is unknown.

        A ``"title"`` key replaces the label with the value under ``"label"``.
        """
        with self._lock:
            item = next((i for i in self._items if i.id == item_id), None)
            if item is None:
                raise KeyError(item_id)
            if "title" in updates:
                item.label = _to_str(updates.get("label"))
            if "icon" in updates:
                item.icon = _to_str(updates["icon"])
            if "route" in updates:
                item.route = _to_str(updates["route"])
            if "enabled" in updates:
                item.enabled = bool(updates["enabled"])
            if "badge" in updates:
                item.badge = _to_str(updates["badge"])
            if "group" in updates:
                item.group = _to_str(updates["group"])
            if "order" in updates:
                item.order = _to_int(updates["order"])
                self._items.sort(key=_sort_key)
        self._changed()

    def set_badge(self, item_id: str, badge: str) -> None:
        """Set an item's badge; unknown ids are ignored."""
        with contextlib.suppress(KeyError):
            self.update_item(item_id, {"badge": badge})

    def set_enabled(self, item_id: str, enabled: bool) -> None:
        """Enable or disable an item; unknown ids are ignored."""
        with contextlib.suppress(KeyError):
            self.update_item(item_id, {"enabled": enabled})

    def items(self) -> list[MenuItem]:
        """Return copies of all items in menu order."""
        with self._lock:
            return [replace(item) for item in self._items]

    def items_as_dicts(self) -> list[dict[str, Any]]:
        with self._lock:
            return [item.to_dict() for item in self._items]

    def items_in_group(self, group: str) -> list[dict[str, Any]]:
        with self._lock:
            return [item.to_dict() for item in self._items if item.group == group]

    def groups(self) -> list[str]:
        """Return the distinct non-empty group names."""
        with self._lock:
            return list(dict.fromkeys(item.group for item in self._items if item.group))

    def on_menu_changed(self, callback: MenuCallback) -> MenuCallback:
        """Call ``callback()`` whenever the menu changes."""
        self._callbacks.append(callback)
        return callback

    def _changed(self) -> None:
        for callback in list(self._callbacks):
            callback()