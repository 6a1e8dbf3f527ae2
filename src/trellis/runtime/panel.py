"""
Panel - the process-wide registry of screens, handlers, navigation and stores.

A panel is configured once at startup, booted (validated and frozen), served,
and shut down at process exit.

Usage:
    panel = Panel("Acme Admin")
    panel.collection(CollectionSpec(name="task", columns=[...]))
    panel.register_screen(task_screen, handlers={"create": create_record("task")})

    @panel.handler("tasks", "toggle")
    def toggle(ctx): ...

    panel.boot()
    result = await panel.dispatch("tasks", "create", {"task": {"name": "Buy milk"}})
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from pathlib import Path
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from trellis.errors import ConfigurationError, UnknownActionError
from trellis.runtime.dispatcher import DispatchResult, Dispatcher, Handler
from trellis.runtime.logging import get_panel_logger
from trellis.runtime.navigation import NavigationRegistry
from trellis.runtime.rendering import RenderedScreen, ScreenRenderer
from trellis.runtime.store import CollectionSpec, RecordStore, StoreRegistry
from trellis.specs.screen import ScreenSpec

if TYPE_CHECKING:
    from trellis.core.manifest import PanelManifest

logger = get_panel_logger()


class Panel:
    """
    Process-wide registry for one admin panel.

    Invariants: each route maps to at most one screen; every dispatchable
    action has a handler once booted; nothing is registered after boot.
    """

    def __init__(
        self,
        name: str = "Trellis",
        storage: str = "memory",
        db_path: str | Path | None = None,
        timeout: float | None = 10.0,
    ):
        self.name = name
        self.timeout = timeout
        self.stores = StoreRegistry(storage, db_path)
        self.navigation = NavigationRegistry()
        self._screens: dict[str, ScreenSpec] = {}
        self._handlers: dict[tuple[str, str], Handler] = {}
        self._renderer: ScreenRenderer | None = None
        self._dispatcher: Dispatcher | None = None
        self._shut_down = False

    @classmethod
    def from_manifest(cls, manifest: PanelManifest) -> Panel:
        return cls(
            name=manifest.panel.name,
            storage=manifest.storage.backend,
            db_path=manifest.storage.path,
            timeout=manifest.dispatch.timeout,
        )

    @property
    def booted(self) -> bool:
        return self._dispatcher is not None

    @property
    def screens(self) -> Mapping[str, ScreenSpec]:
        return MappingProxyType(self._screens)

    @property
    def handlers(self) -> Mapping[tuple[str, str], Handler]:
        return MappingProxyType(self._handlers)

    def _check_open(self) -> None:
        if self._shut_down:
            raise ConfigurationError(f"Panel '{self.name}' has been shut down")

    def _check_writable(self) -> None:
        self._check_open()
        if self.booted:
            raise ConfigurationError(f"Panel '{self.name}' is already booted; registry is read-only")

    # -- configuration ------------------------------------------------------

    def collection(self, spec: CollectionSpec) -> RecordStore:
        """Declare a record collection and create its store."""
        self._check_writable()
        return self.stores.create_store(spec)

    def register_screen(
        self, screen: ScreenSpec, handlers: Mapping[str, Handler] | None = None
    ) -> ScreenSpec:
        """Register a screen under its route, with optional handlers by action name."""
        self._check_writable()
        if screen.route in self._screens:
            raise ConfigurationError(f"A screen is already registered for route '{screen.route}'")
        self._screens[screen.route] = screen
        if screen.menu is not None:
            self.navigation.register_menu(screen.menu)
        if screen.breadcrumb is not None:
            self.navigation.register_breadcrumb(screen.breadcrumb)
        for action_name, handler in (handlers or {}).items():
            self.add_handler(screen.route, action_name, handler)
        logger.info("Registered screen %s (%s)", screen.route, screen.name)
        return screen

    def add_handler(self, route: str, action_name: str, handler: Handler) -> None:
        self._check_writable()
        screen = self._screens.get(route)
        if screen is None:
            raise ConfigurationError(f"No screen registered for route '{route}'")
        if screen.action(action_name) is None:
            raise ConfigurationError(f"Screen '{route}' declares no action '{action_name}'")
        key = (route, action_name)
        if key in self._handlers:
            raise ConfigurationError(f"Handler already registered for {route}/{action_name}")
        self._handlers[key] = handler

    def handler(self, route: str, action_name: str) -> Callable[[Handler], Handler]:
        """Decorator registering a handler for an action of a registered screen."""

        def decorator(fn: Handler) -> Handler:
            self.add_handler(route, action_name, fn)
            return fn

        return decorator

    # -- lifecycle ------------------------------------------------------------

    def validate(self) -> None:
        """Check the wiring; raises ConfigurationError on the first problem."""
        for route, screen in self._screens.items():
            for action in screen.actions():
                if (route, action.name) not in self._handlers:
                    raise ConfigurationError(
                        f"Action '{action.name}' on screen '{route}' has no handler"
                    )
        for route in self.navigation.routes():
            if route not in self._screens:
                raise ConfigurationError(f"Menu entry '{route}' has no screen")
        self.navigation.validate()

    def boot(self) -> None:
        """
        Validate and freeze the panel. Calling boot on a booted panel is a no-op.

        Raises:
            ConfigurationError: Invalid wiring, or the panel has been shut down
        """
        if self.booted:
            return
        self._check_open()
        self.validate()
        self.navigation.freeze()
        self._renderer = ScreenRenderer(self.stores.view(), self.navigation)
        self._dispatcher = Dispatcher(
            screens=self.screens,
            handlers=self.handlers,
            stores=self.stores,
            renderer=self._renderer,
            timeout=self.timeout,
        )
        logger.info(
            "Panel %s booted with %d screen(s), %d handler(s), %d collection(s)",
            self.name,
            len(self._screens),
            len(self._handlers),
            len(self.stores.names()),
        )

    def shutdown(self) -> None:
        """
        Tear the panel down: close stores and clear every registry.

        Shutdown is final; a shut-down panel cannot boot or register again.
        """
        self.stores.close_all()
        self.navigation.clear()
        self._screens.clear()
        self._handlers.clear()
        self._renderer = None
        self._dispatcher = None
        self._shut_down = True
        logger.info("Panel %s shut down", self.name)

    # -- serving ------------------------------------------------------------

    def _require_booted(self) -> tuple[ScreenRenderer, Dispatcher]:
        if self._renderer is None or self._dispatcher is None:
            raise ConfigurationError(f"Panel '{self.name}' has not been booted")
        return self._renderer, self._dispatcher

    def screen(self, route: str) -> ScreenSpec:
        screen = self._screens.get(route)
        if screen is None:
            raise UnknownActionError(route)
        return screen

    def render(self, route: str) -> RenderedScreen:
        renderer, _ = self._require_booted()
        return renderer.render(self.screen(route))

    async def dispatch(
        self, route: str, action_name: str, payload: Mapping[str, Any] | None = None
    ) -> DispatchResult:
        _, dispatcher = self._require_booted()
        return await dispatcher.dispatch(route, action_name, payload)

    def menu(self) -> list[dict[str, Any]]:
        return [node.to_dict() for node in self.navigation.menu_tree()]
