"""
Layout specification types for screens.

Defines rows of fields, record tables (with empty states) and modals.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from trellis.specs.action import ActionSpec
from trellis.specs.field import FieldPath, FieldSpec

# =============================================================================
# Rows
# =============================================================================


class RowsLayout(BaseModel):
    """
    A group of inputs rendered one per row.

    Example:
        RowsLayout(fields=[FieldSpec(name="task.name", label="Name", rules="required")])
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["rows"] = "rows"
    fields: tuple[FieldSpec, ...] = Field(description="Fields in display order")
    title: str | None = Field(default=None, description="Group heading")


# =============================================================================
# Tables
# =============================================================================


class TableColumn(BaseModel):
    """
    A table column.

    Example:
        TableColumn(name="name", label="Name")
        TableColumn(name="done", label="Done", field="active")
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Column identifier")
    label: str | None = Field(default=None, description="Column heading")
    field: str | None = Field(
        default=None, description="Record field (dot path) shown in the column; defaults to name"
    )

    @property
    def source(self) -> FieldPath:
        return FieldPath.parse(self.field or self.name)

    @property
    def heading(self) -> str:
        return self.label or self.name.replace("_", " ").title()


class EmptyState(BaseModel):
    """What a table shows when it has no rows."""

    model_config = ConfigDict(frozen=True)

    title: str = Field(default="There are no records to display")
    description: str | None = Field(default=None)
    icon: str | None = Field(default="bs.inbox")


class TableLayout(BaseModel):
    """
    A table over records returned by the screen query.

    Example:
        TableLayout(
            target="tasks",
            columns=[TableColumn(name="name")],
            row_actions=[ActionSpec(name="delete", label="Delete", confirm="Delete?")],
            empty=EmptyState(title="No tasks yet"),
        )
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["table"] = "table"
    target: str = Field(description="Query key holding the records")
    columns: tuple[TableColumn, ...] = Field(description="Columns in display order")
    row_actions: tuple[ActionSpec, ...] = Field(
        default=(), description="Per-row actions; the row id is submitted with the action"
    )
    empty: EmptyState = Field(default_factory=EmptyState, description="Empty-state display")
    title: str | None = Field(default=None, description="Table heading")


# =============================================================================
# Modals
# =============================================================================


class ModalLayout(BaseModel):
    """
    A named overlay holding rows of fields.

    Example:
        ModalLayout(name="taskModal", title="Create Task", layouts=[RowsLayout(...)])
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["modal"] = "modal"
    name: str = Field(description="Modal name referenced by ActionSpec.target_modal")
    title: str | None = Field(default=None, description="Modal title")
    layouts: tuple[RowsLayout, ...] = Field(description="Content of the modal")
    apply_label: str = Field(default="Apply", description="Submit button label")
    close_label: str = Field(default="Close", description="Dismiss button label")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Modal name must not be empty")
        return v

    @property
    def fields(self) -> tuple[FieldSpec, ...]:
        return tuple(field for rows in self.layouts for field in rows.fields)


# Union type for all layout nodes
LayoutNode = Annotated[RowsLayout | TableLayout | ModalLayout, Field(discriminator="kind")]


def iter_fields(nodes: tuple[Any, ...]) -> list[FieldSpec]:
    """Collect fields from rows and modals, in layout order."""
    fields: list[FieldSpec] = []
    for node in nodes:
        if isinstance(node, RowsLayout):
            fields.extend(node.fields)
        elif isinstance(node, ModalLayout):
            fields.extend(node.fields)
    return fields
