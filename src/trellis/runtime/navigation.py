"""
Navigation registry for menu entries and breadcrumbs.

Entries are keyed by route. The registry is filled during startup, then
frozen; afterwards it is read-only until torn down with ``clear``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from trellis.errors import ConfigurationError
from trellis.runtime.logging import get_panel_logger
from trellis.specs.navigation import BreadcrumbSpec, MenuEntrySpec

logger = get_panel_logger()


@dataclass
class MenuNode:
    """A menu entry with its children, for rendering."""

    entry: MenuEntrySpec
    children: list[MenuNode] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "label": self.entry.label,
            "icon": self.entry.icon,
            "route": self.entry.route,
            "children": [child.to_dict() for child in self.children],
        }


class NavigationRegistry:
    """
    Registry of menu entries and breadcrumbs.

    Invariants: at most one menu entry and one breadcrumb per route, and no
    parent chain forms a cycle.
    """

    def __init__(self) -> None:
        self._menu: dict[str, MenuEntrySpec] = {}
        self._breadcrumbs: dict[str, BreadcrumbSpec] = {}
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def _check_writable(self) -> None:
        if self._frozen:
            raise ConfigurationError("Navigation registry is read-only after startup")

    def register_menu(self, entry: MenuEntrySpec) -> None:
        """Register a menu entry; parents may be registered later."""
        self._check_writable()
        if entry.route in self._menu:
            raise ConfigurationError(f"Menu entry already registered for route '{entry.route}'")
        self._check_cycle(entry.route, entry.parent, {r: e.parent for r, e in self._menu.items()})
        self._menu[entry.route] = entry
        logger.debug("Registered menu entry %s", entry.route)

    def register_breadcrumb(self, crumb: BreadcrumbSpec) -> None:
        """Register a breadcrumb; parents may be registered later."""
        self._check_writable()
        if crumb.route in self._breadcrumbs:
            raise ConfigurationError(f"Breadcrumb already registered for route '{crumb.route}'")
        self._check_cycle(
            crumb.route, crumb.parent, {r: c.parent for r, c in self._breadcrumbs.items()}
        )
        self._breadcrumbs[crumb.route] = crumb
        logger.debug("Registered breadcrumb %s", crumb.route)

    @staticmethod
    def _check_cycle(route: str, parent: str | None, parents: dict[str, str | None]) -> None:
        seen = {route}
        current = parent
        while current is not None:
            if current in seen:
                raise ConfigurationError(f"Navigation cycle through route '{route}'")
            seen.add(current)
            current = parents.get(current)

    def validate(self) -> None:
        """Check that every referenced parent exists."""
        for entry in self._menu.values():
            if entry.parent is not None and entry.parent not in self._menu:
                raise ConfigurationError(
                    f"Menu entry '{entry.route}' has unknown parent '{entry.parent}'"
                )
        for crumb in self._breadcrumbs.values():
            if crumb.parent is not None and crumb.parent not in self._breadcrumbs:
                raise ConfigurationError(
                    f"Breadcrumb '{crumb.route}' has unknown parent '{crumb.parent}'"
                )

    def freeze(self) -> None:
        self.validate()
        self._frozen = True

    def clear(self) -> None:
        self._menu.clear()
        self._breadcrumbs.clear()
        self._frozen = False

    def routes(self) -> list[str]:
        return list(self._menu)

    def menu_entry(self, route: str) -> MenuEntrySpec | None:
        return self._menu.get(route)

    def menu_tree(self) -> list[MenuNode]:
        """Menu as a forest; siblings ordered by ``sort`` then insertion order."""
        nodes = {route: MenuNode(entry) for route, entry in self._menu.items()}
        roots: list[MenuNode] = []
        for route, entry in self._menu.items():
            node = nodes[route]
            parent = nodes.get(entry.parent) if entry.parent else None
            if parent is None:
                roots.append(node)
            else:
                parent.children.append(node)

        def order(items: list[MenuNode]) -> list[MenuNode]:
            # sorted() is stable, so equal sort keys keep insertion order
            ordered = sorted(items, key=lambda n: n.entry.sort)
            for item in ordered:
                item.children = order(item.children)
            return ordered

        return order(roots)

    def trail(self, route: str) -> list[BreadcrumbSpec]:
        """Breadcrumbs from the root down to ``route``; empty if none registered."""
        trail: list[BreadcrumbSpec] = []
        current: str | None = route
        while current is not None and current in self._breadcrumbs:
            crumb = self._breadcrumbs[current]
            trail.append(crumb)
            current = crumb.parent
        trail.reverse()
        return trail
