"""Route-based page navigation driving a stack view."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Protocol

_log = logging.getLogger(__name__)

NavigationCallback = Callable[[str, dict[str, Any]], None]


class StackView(Protocol):
    """The page stack that navigation drives.

    Each method returns a result, or None when the operation failed.
    """

    def nav_push(self, component: str, params: dict[str, Any]) -> Any: ...

    def nav_pop(self) -> Any: ...

    def nav_pop_to_root(self) -> Any: ...

    def nav_replace(self, component: str, params: dict[str, Any]) -> Any: ...


@dataclass(frozen=True)
class _Route:
    pattern: str
    component: str


@dataclass(frozen=True)
class _StackEntry:
    route: str
    params: dict[str, Any] = field(default_factory=dict)


class NavigationService:
    """Maps routes to components and keeps the navigation history.

    Without a stack view every navigation request fails.
    """

    def __init__(self, stack_view: StackView | None = None) -> None:
        self.stack_view = stack_view
        self._routes: list[_Route] = []
        self._stack: list[_StackEntry] = []
        self._callbacks: list[NavigationCallback] = []

    def push(self, route: str, params: Mapping[str, Any] | None = None) -> bool:
        """Open ``route`` on top of the stack; return whether it succeeded."""
        view = self.stack_view
        if view is None:
            _log.warning("StackView not found")
            return False
        component = self.resolve_component(route)
        if component is None:
            _log.warning("No component for route: %s", route)
            return False
        values = dict(params or {})
        if view.nav_push(component, dict(values)) is None:
            return False
        self._stack.append(_StackEntry(route, values))
        self._changed(route, values)
        return True

    def pop(self) -> bool:
        """Go back one page; the root page is never popped."""
        view = self.stack_view
        if view is None or len(self._stack) <= 1:
            return False
        if view.nav_pop() is None:
            return False
        self._stack.pop()
        if self._stack:
            top = self._stack[-1]
            self._changed(top.route, top.params)
        return True

    def pop_to_root(self) -> None:
        view = self.stack_view
        if view is None:
            return
        view.nav_pop_to_root()
        del self._stack[1:]
        if self._stack:
            top = self._stack[-1]
            self._changed(top.route, top.params)

    def replace(self, route: str, params: Mapping[str, Any] | None = None) -> bool:
        """Replace the top page with ``route``; return whether it succeeded."""
        view = self.stack_view
        if view is None:
            return False
        component = self.resolve_component(route)
        if component is None:
            _log.warning("No component for route: %s", route)
            return False
        values = dict(params or {})
        if view.nav_replace(component, dict(values)) is None:
            return False
        if self._stack:
            self._stack.pop()
        self._stack.append(_StackEntry(route, values))
        self._changed(route, values)
        return True

    def current_route(self) -> str:
        return self._stack[-1].route if self._stack else ""

    def stack_depth(self) -> int:
        return len(self._stack)

    def can_go_back(self) -> bool:
        return len(self._stack) > 1

    def register_route(self, route: str, component: str) -> None:
        """Map a route pattern to a component.

        A pattern is an exact route, ``*`` for every route, or ``prefix/*``.
        Patterns are tried in registration order.
        """
        self._routes.append(_Route(route, component))
        _log.debug("Registered route %s -> %s", route, component)

    def resolve_component(self, route: str) -> str | None:
        """Return the component for ``route``, or None if nothing matches."""
        for entry in self._routes:
            if entry.pattern in (route, "*"):
                return entry.component
            if entry.pattern.endswith("/*") and route.startswith(entry.pattern[:-2]):
                return entry.component
        if route.endswith(".qml"):
            return route
        return None

    def on_navigation_changed(self, callback: NavigationCallback) -> NavigationCallback:
        """Call ``callback(route, params)`` whenever the current page changes."""
        self._callbacks.append(callback)
        return callback

    def _changed(self, route: str, params: dict[str, Any]) -> None:
        for callback in list(self._callbacks):
            callback(route, dict(params))