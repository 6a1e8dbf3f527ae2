"""
Action dispatch for screens.

Each invocation walks a small state machine::

    idle -> validating -> executing -> committed
                 |            |
                 +------------+-> rejected

Destructive actions need an explicit ``confirmed`` flag in the payload.
Field rules are checked before the handler runs. Handlers never write to a
store directly: they stage change sets on their context, and the dispatcher
commits all of them as one unit after the handler returns. A rejected or
timed-out invocation therefore leaves every store untouched.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field, PrivateAttr

from trellis.errors import (
    ConfirmationRequiredError,
    DispatchTimeoutError,
    TrellisError,
    UnknownActionError,
    ValidationError,
)
from trellis.runtime.logging import get_dispatch_logger, log_with_context
from trellis.runtime.rendering import Alert, FieldError, RenderedScreen, ScreenRenderer
from trellis.runtime.store import ChangeSet, Record, StoreRegistry, StoreView, commit_all
from trellis.runtime.validation import validate_fields
from trellis.specs.action import ActionSpec
from trellis.specs.field import MISSING, FieldPath
from trellis.specs.screen import ScreenSpec

logger = get_dispatch_logger()

# Reserved payload keys
CONFIRM_KEY = "confirmed"
VERSION_KEY = "version"
RECORD_KEY = "id"

_TRUE_FLAGS = {"1", "true", "on", "yes"}

# =============================================================================
# Invocation State Machine
# =============================================================================


class DispatchState(StrEnum):
    """States of a single action invocation."""

    IDLE = "idle"
    VALIDATING = "validating"
    EXECUTING = "executing"
    COMMITTED = "committed"
    REJECTED = "rejected"


_ALLOWED_TRANSITIONS: dict[DispatchState, frozenset[DispatchState]] = {
    DispatchState.IDLE: frozenset({DispatchState.VALIDATING}),
    DispatchState.VALIDATING: frozenset({DispatchState.EXECUTING, DispatchState.REJECTED}),
    DispatchState.EXECUTING: frozenset({DispatchState.COMMITTED, DispatchState.REJECTED}),
    DispatchState.COMMITTED: frozenset(),
    DispatchState.REJECTED: frozenset(),
}


@dataclass
class Invocation:
    """Tracks the state of one dispatch."""

    route: str
    action: str
    state: DispatchState = DispatchState.IDLE
    history: list[DispatchState] = field(default_factory=lambda: [DispatchState.IDLE])

    def advance(self, to_state: DispatchState) -> None:
        if to_state not in _ALLOWED_TRANSITIONS[self.state]:
            raise RuntimeError(
                f"Invalid dispatch transition from '{self.state}' to '{to_state}'"
            )
        self.state = to_state
        self.history.append(to_state)

    @property
    def is_terminal(self) -> bool:
        return not _ALLOWED_TRANSITIONS[self.state]


# =============================================================================
# Handler Context
# =============================================================================


def is_confirmed(payload: Mapping[str, Any]) -> bool:
    """True when the payload carries an explicit, truthy confirmation flag."""
    flag = payload.get(CONFIRM_KEY)
    if isinstance(flag, bool):
        return flag
    if flag is None:
        return False
    return str(flag).strip().lower() in _TRUE_FLAGS


class ActionContext:
    """
    What a handler sees: validated values, read access to stores, and
    change sets to stage mutations on.
    """

    def __init__(
        self,
        screen: ScreenSpec,
        action: ActionSpec,
        payload: Mapping[str, Any],
        values: Mapping[str, Any],
        stores: StoreRegistry,
    ):
        self.screen = screen
        self.action = action
        self.payload = payload
        self.values = dict(values)
        self.stores: StoreView = stores.view()
        self.alerts: list[Alert] = []
        self._registry = stores
        self._changesets: dict[str, ChangeSet] = {}
        self._closed = False

    @property
    def record_id(self) -> str | None:
        value = self.payload.get(RECORD_KEY)
        return None if value is None or value == "" else str(value)

    @property
    def version(self) -> int | None:
        """Version token submitted with the payload, if any."""
        value = self.payload.get(VERSION_KEY)
        if value is None or value == "":
            return None
        if isinstance(value, bool):
            raise ValidationError(VERSION_KEY, "integer", "The version token must be an integer.")
        try:
            return int(value)
        except (TypeError, ValueError):
            raise ValidationError(
                VERSION_KEY, "integer", "The version token must be an integer."
            ) from None

    @property
    def confirmed(self) -> bool:
        return is_confirmed(self.payload)

    def value(self, path: str, default: Any = None) -> Any:
        """A validated value by dot path, falling back to the raw payload."""
        if path in self.values:
            return self.values[path]
        value = FieldPath.parse(path).extract(self.payload)
        return default if value is MISSING else value

    def values_under(self, prefix: str) -> dict[str, Any]:
        """Validated values below a path prefix, keyed by the remaining path."""
        marker = prefix + "."
        return {
            path[len(marker) :]: value
            for path, value in self.values.items()
            if path.startswith(marker)
        }

    def get(self, collection: str, record_id: str) -> Record:
        return self._registry[collection].get(record_id)

    def stage(self, collection: str) -> ChangeSet:
        """Change set for a collection; the same one is returned on repeat calls."""
        if self._closed:
            raise RuntimeError("Action context is closed; changes can no longer be staged")
        if collection not in self._changesets:
            self._changesets[collection] = self._registry[collection].changes()
        return self._changesets[collection]

    def alert(self, message: str, level: str = "info") -> None:
        self.alerts.append(Alert(level=level, message=message))

    def close(self) -> list[ChangeSet]:
        self._closed = True
        return list(self._changesets.values())


Handler = Callable[[ActionContext], Awaitable[None] | None]

# =============================================================================
# Results
# =============================================================================


class DispatchResult(BaseModel):
    """Outcome of one dispatch, including the screen to show next."""

    state: DispatchState
    route: str
    action: str
    error: FieldError | None = None
    render: RenderedScreen | None = None
    changed: list[str] = Field(default_factory=list, description="Ids of records written")

    _exception: TrellisError | None = PrivateAttr(default=None)

    @property
    def ok(self) -> bool:
        return self.state == DispatchState.COMMITTED

    @property
    def exception(self) -> TrellisError | None:
        return self._exception

    @property
    def status_code(self) -> int:
        if self._exception is not None:
            return self._exception.status_code
        return 200

    def raise_for_error(self) -> None:
        if self._exception is not None:
            raise self._exception


# =============================================================================
# Dispatcher
# =============================================================================


class Dispatcher:
    """
    Binds action invocations to screen handlers.

    Args:
        screens: Route -> screen
        handlers: (route, action name) -> handler
        stores: Store registry mutations are committed to
        renderer: Renderer used for the re-render after dispatch
        timeout: Seconds a handler may run before the invocation is rejected;
            None or a value <= 0 disables the limit
    """

    def __init__(
        self,
        screens: Mapping[str, ScreenSpec],
        handlers: Mapping[tuple[str, str], Handler],
        stores: StoreRegistry,
        renderer: ScreenRenderer,
        timeout: float | None = 10.0,
    ):
        self.screens = screens
        self.handlers = handlers
        self.stores = stores
        self.renderer = renderer
        self.timeout = timeout if timeout is not None and timeout > 0 else None

    def resolve(self, route: str, action_name: str) -> tuple[ScreenSpec, ActionSpec, Handler]:
        """
        Find the screen, action and handler for an invocation.

        Raises:
            UnknownActionError: Unknown route, action, or action without handler
        """
        screen = self.screens.get(route)
        if screen is None:
            raise UnknownActionError(route)
        action = screen.action(action_name)
        handler = self.handlers.get((route, action_name))
        if action is None or handler is None:
            raise UnknownActionError(route, action_name)
        return screen, action, handler

    async def dispatch(
        self,
        route: str,
        action_name: str,
        payload: Mapping[str, Any] | None = None,
    ) -> DispatchResult:
        """
        Dispatch an action.

        Args:
            route: Screen route
            action_name: Action (handler) name on that screen
            payload: Submitted input, including reserved keys
                ``confirmed``, ``id`` and ``version``

        Returns:
            A committed or rejected result carrying the re-rendered screen

        Raises:
            UnknownActionError: If the route or action cannot be resolved
        """
        payload = dict(payload or {})
        screen, action, handler = self.resolve(route, action_name)
        invocation = Invocation(route=route, action=action_name)

        invocation.advance(DispatchState.VALIDATING)
        try:
            if action.is_destructive and not is_confirmed(payload):
                raise ConfirmationRequiredError(action.name, action.confirm)
            values = validate_fields(screen.fields_for(action), payload)
        except TrellisError as exc:
            return self._reject(invocation, screen, payload, exc)

        invocation.advance(DispatchState.EXECUTING)
        context = ActionContext(screen, action, payload, values, self.stores)
        try:
            await self._run_handler(handler, context)
            changesets = context.close()
            commit_all(changesets)
        except TrellisError as exc:
            context.close()
            return self._reject(invocation, screen, payload, exc)
        except Exception:
            context.close()
            invocation.advance(DispatchState.REJECTED)
            logger.exception("Handler for %s/%s failed", route, action_name)
            raise

        invocation.advance(DispatchState.COMMITTED)
        alerts = list(context.alerts)
        if action.success:
            alerts.append(Alert(level="success", message=action.success))
        changed = [op.record_id for cs in changesets for op in cs.operations]
        log_with_context(
            logger,
            logging.INFO,
            f"Committed {route}/{action_name}",
            route=route,
            action=action_name,
            records=changed,
        )
        return DispatchResult(
            state=invocation.state,
            route=route,
            action=action_name,
            render=self.renderer.render(screen, alerts=alerts),
            changed=changed,
        )

    async def _run_handler(self, handler: Handler, context: ActionContext) -> None:
        async def run() -> None:
            if inspect.iscoroutinefunction(handler):
                await handler(context)
            else:
                result = await asyncio.to_thread(handler, context)
                if inspect.isawaitable(result):
                    await result

        try:
            await asyncio.wait_for(run(), timeout=self.timeout)
        except TimeoutError:
            raise DispatchTimeoutError(context.action.name, self.timeout or 0) from None

    def _reject(
        self,
        invocation: Invocation,
        screen: ScreenSpec,
        payload: Mapping[str, Any],
        exc: TrellisError,
    ) -> DispatchResult:
        invocation.advance(DispatchState.REJECTED)
        log_with_context(
            logger,
            logging.WARNING,
            f"Rejected {invocation.route}/{invocation.action}: {exc.message}",
            route=invocation.route,
            action=invocation.action,
            error=exc.to_dict(),
        )
        error = FieldError.from_error(exc)
        result = DispatchResult(
            state=invocation.state,
            route=invocation.route,
            action=invocation.action,
            error=error,
            render=self.renderer.render(screen, errors=[error], old_input=payload),
        )
        result._exception = exc
        return result
