"""
Screen rendering - turns a ScreenSpec plus live data into a render tree.

``query()`` is evaluated on every render. Layout and command bar output is
derived only from the screen definition, the query result and the supplied annotations,
so rendering unchanged data twice yields equal trees.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field

from trellis.errors import TrellisError
from trellis.runtime.store import Record, RecordSet, StoreView
from trellis.specs.field import MISSING, FieldSpec
from trellis.specs.layout import ModalLayout, RowsLayout, TableLayout

if TYPE_CHECKING:
    from trellis.runtime.navigation import NavigationRegistry
    from trellis.specs.screen import ScreenSpec

# =============================================================================
# Render Models
# =============================================================================


class FieldError(BaseModel):
    """An error annotation, attributed to a field where possible."""

    model_config = ConfigDict(frozen=True)

    type: str = Field(description="Error type identifier")
    message: str = Field(description="Human-readable message")
    field: str | None = Field(default=None, description="Dot path of the offending field")
    rule: str | None = Field(default=None, description="Failed rule, for validation errors")

    @classmethod
    def from_error(cls, exc: TrellisError) -> FieldError:
        return cls(
            type=exc.error_type,
            message=exc.message,
            field=exc.field,
            rule=getattr(exc, "rule", None),
        )


class Alert(BaseModel):
    """A toast message."""

    model_config = ConfigDict(frozen=True)

    level: str = Field(default="info", description="info, success, warning or danger")
    message: str = Field(description="Message text")


class RenderedScreen(BaseModel):
    """Everything a client needs to draw a screen."""

    name: str
    route: str
    description: str | None = None
    data: dict[str, Any] = Field(default_factory=dict)
    layout: list[dict[str, Any]] = Field(default_factory=list)
    command_bar: list[dict[str, Any]] = Field(default_factory=list)
    breadcrumbs: list[dict[str, Any]] = Field(default_factory=list)
    errors: list[FieldError] = Field(default_factory=list)
    old_input: dict[str, Any] = Field(default_factory=dict)
    alerts: list[Alert] = Field(default_factory=list)


# =============================================================================
# Data Conversion
# =============================================================================


def to_plain(value: Any) -> Any:
    """Convert query output (records, record sets, models) to JSON-ready data."""
    if isinstance(value, Record):
        return value.to_dict()
    if isinstance(value, RecordSet):
        return [record.to_dict() for record in value]
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, Mapping):
        return {str(k): to_plain(v) for k, v in value.items()}
    if isinstance(value, list | tuple):
        return [to_plain(item) for item in value]
    return value


# =============================================================================
# Renderer
# =============================================================================


class ScreenRenderer:
    """
    Renders screens against the panel's stores.

    Args:
        stores: Read-only store view passed to every query
        navigation: Optional navigation registry used for breadcrumbs
    """

    def __init__(self, stores: StoreView, navigation: NavigationRegistry | None = None):
        self.stores = stores
        self.navigation = navigation

    def render(
        self,
        screen: ScreenSpec,
        errors: Iterable[FieldError] | None = None,
        old_input: Mapping[str, Any] | None = None,
        alerts: Iterable[Alert] | None = None,
    ) -> RenderedScreen:
        """
        Render a screen.

        Args:
            screen: Screen to render
            errors: Error annotations to show inline
            old_input: Previously submitted input to re-populate fields with
            alerts: Toast messages

        Returns:
            The render tree
        """
        data = to_plain(dict(screen.query(self.stores)))
        errors = list(errors or [])
        old_input = to_plain(dict(old_input or {}))
        by_field = {error.field: error for error in errors if error.field}

        layout: list[dict[str, Any]] = []
        for node in screen.layout:
            if isinstance(node, RowsLayout):
                layout.append(self._render_rows(node, data, old_input, by_field))
            elif isinstance(node, TableLayout):
                layout.append(self._render_table(node, data))
            elif isinstance(node, ModalLayout):
                layout.append(self._render_modal(node, data, old_input, by_field))

        breadcrumbs: list[dict[str, Any]] = []
        if self.navigation is not None:
            breadcrumbs = [
                {"route": crumb.route, "label": crumb.label}
                for crumb in self.navigation.trail(screen.route)
            ]

        return RenderedScreen(
            name=screen.name,
            route=screen.route,
            description=screen.description,
            data=data,
            layout=layout,
            command_bar=[action.describe() for action in screen.command_bar],
            breadcrumbs=breadcrumbs,
            errors=errors,
            old_input=old_input,
            alerts=list(alerts or []),
        )

    def _render_field(
        self,
        field: FieldSpec,
        data: Mapping[str, Any],
        old_input: Mapping[str, Any],
        by_field: Mapping[str, FieldError],
    ) -> dict[str, Any]:
        # Submitted input wins over stored data so a rejected form keeps what the user typed
        value = field.name.extract(old_input) if old_input else MISSING
        if value is MISSING:
            value = field.name.extract(data)
        rendered = field.describe()
        rendered["value"] = None if value is MISSING else value
        error = by_field.get(field.path)
        rendered["error"] = error.message if error else None
        return rendered

    def _render_rows(
        self,
        node: RowsLayout,
        data: Mapping[str, Any],
        old_input: Mapping[str, Any],
        by_field: Mapping[str, FieldError],
    ) -> dict[str, Any]:
        return {
            "kind": "rows",
            "title": node.title,
            "fields": [self._render_field(f, data, old_input, by_field) for f in node.fields],
        }

    def _render_table(self, node: TableLayout, data: Mapping[str, Any]) -> dict[str, Any]:
        source = data.get(node.target) or []
        rows: list[dict[str, Any]] = []
        for item in source:
            cells = {}
            for column in node.columns:
                value = column.source.extract(item) if isinstance(item, Mapping) else MISSING
                cells[column.name] = None if value is MISSING else value
            row_id = item.get("id") if isinstance(item, Mapping) else None
            rows.append(
                {
                    "id": row_id,
                    "version": item.get("version") if isinstance(item, Mapping) else None,
                    "cells": cells,
                    "actions": [
                        {**action.describe(), "record": row_id} for action in node.row_actions
                    ],
                }
            )

        return {
            "kind": "table",
            "title": node.title,
            "target": node.target,
            "columns": [{"name": c.name, "label": c.heading} for c in node.columns],
            "rows": rows,
            "empty": node.empty.model_dump() if not rows else None,
        }

    def _render_modal(
        self,
        node: ModalLayout,
        data: Mapping[str, Any],
        old_input: Mapping[str, Any],
        by_field: Mapping[str, FieldError],
    ) -> dict[str, Any]:
        contents = [self._render_rows(rows, data, old_input, by_field) for rows in node.layouts]
        return {
            "kind": "modal",
            "name": node.name,
            "title": node.title,
            "apply": node.apply_label,
            "close": node.close_label,
            "layouts": contents,
            # Re-open the modal when one of its fields was rejected
            "open": any(field.path in by_field for field in node.fields),
        }
