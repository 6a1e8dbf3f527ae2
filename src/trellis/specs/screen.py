"""
Screen specification type.

A screen binds a query (data to display), a layout and a command bar to one
route. Screens are declared once at startup and never re-parsed per request.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from trellis.specs.action import ActionSpec
from trellis.specs.field import FieldSpec
from trellis.specs.layout import LayoutNode, ModalLayout, TableLayout, iter_fields
from trellis.specs.navigation import BreadcrumbSpec, MenuEntrySpec

_ROUTE_RE = re.compile(r"^[a-z0-9][a-z0-9_-]*$")

# Receives a read-only trellis.runtime.store.StoreView
QueryFn = Callable[..., Mapping[str, Any]]


def _empty_query(stores: Any) -> Mapping[str, Any]:
    return {}


class ScreenSpec(BaseModel):
    """
    Declarative unit binding data retrieval, layout and actions to one route.

    Example:
        ScreenSpec(
            name="Simple To-Do List",
            route="tasks",
            description="Things to get done",
            query=lambda stores: {"tasks": stores["task"].list()},
            layout=[TableLayout(...), ModalLayout(name="taskModal", ...)],
            command_bar=[ActionSpec(name="create", label="Add Task", target_modal="taskModal")],
        )
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str = Field(description="Screen title")
    route: str = Field(description="Route slug the screen is served under")
    description: str | None = Field(default=None, description="Screen subtitle")
    query: QueryFn = Field(default=_empty_query, description="Read-only data retrieval")
    layout: tuple[LayoutNode, ...] = Field(default=(), description="Ordered layout nodes")
    command_bar: tuple[ActionSpec, ...] = Field(default=(), description="Ordered actions")
    menu: MenuEntrySpec | None = Field(default=None, description="Menu entry for this screen")
    breadcrumb: BreadcrumbSpec | None = Field(default=None, description="Breadcrumb for this screen")

    @field_validator("route")
    @classmethod
    def validate_route(cls, v: str) -> str:
        if not _ROUTE_RE.match(v):
            raise ValueError(
                f"Route '{v}' must be a lowercase slug (letters, digits, '-' and '_')"
            )
        return v

    @model_validator(mode="after")
    def validate_actions(self) -> ScreenSpec:
        seen: set[str] = set()
        for action in self.actions():
            if action.name in seen:
                raise ValueError(f"Duplicate action '{action.name}' on screen '{self.route}'")
            seen.add(action.name)

        modal_names = [modal.name for modal in self.modals()]
        if len(modal_names) != len(set(modal_names)):
            raise ValueError(f"Duplicate modal names on screen '{self.route}'")
        for action in self.actions():
            if action.target_modal and action.target_modal not in modal_names:
                raise ValueError(
                    f"Action '{action.name}' targets unknown modal '{action.target_modal}'"
                )
            self.fields_for(action)

        if self.menu and self.menu.route != self.route:
            raise ValueError(f"Menu entry route '{self.menu.route}' does not match '{self.route}'")
        if self.breadcrumb and self.breadcrumb.route != self.route:
            raise ValueError(
                f"Breadcrumb route '{self.breadcrumb.route}' does not match '{self.route}'"
            )
        return self

    def modals(self) -> list[ModalLayout]:
        return [node for node in self.layout if isinstance(node, ModalLayout)]

    def modal(self, name: str) -> ModalLayout | None:
        for modal in self.modals():
            if modal.name == name:
                return modal
        return None

    def actions(self) -> list[ActionSpec]:
        """All dispatchable actions: command bar first, then table row actions in layout order."""
        actions = list(self.command_bar)
        for node in self.layout:
            if isinstance(node, TableLayout):
                actions.extend(node.row_actions)
        return actions

    def action(self, name: str) -> ActionSpec | None:
        for action in self.actions():
            if action.name == name:
                return action
        return None

    def fields(self) -> list[FieldSpec]:
        return iter_fields(self.layout)

    def fields_for(self, action: ActionSpec) -> list[FieldSpec]:
        """
        Fields validated when an action is dispatched.

        Explicit ``action.fields`` are looked up among all screen fields;
        otherwise the target modal's fields are used.
        """
        if action.fields is not None:
            by_path = {field.name: field for field in self.fields()}
            missing = [str(path) for path in action.fields if path not in by_path]
            if missing:
                raise ValueError(
                    f"Action '{action.name}' references unknown fields: {', '.join(missing)}"
                )
            return [by_path[path] for path in action.fields]
        if action.target_modal:
            modal = self.modal(action.target_modal)
            return list(modal.fields) if modal else []
        return []
