"""
Generic CRUD handlers.

Factories returning handlers that stage create, update and delete operations
for one collection, reading field values submitted under a path prefix
(``task.name`` -> column ``name`` of collection ``task``).
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from trellis.errors import ValidationError
from trellis.runtime.dispatcher import RECORD_KEY, VERSION_KEY, ActionContext, Handler
from trellis.runtime.store import CollectionSpec, ColumnType

_TRUE_VALUES = {"1", "true", "on", "yes"}


def coerce_values(spec: CollectionSpec, values: Mapping[str, Any]) -> dict[str, Any]:
    """
    Convert submitted form strings to column types.

    Other values are passed through unchanged; the store rejects any that
    do not fit their column.
    """
    result: dict[str, Any] = {}
    for name, value in values.items():
        column = spec.column(name)
        if column is None or value is None or not isinstance(value, str):
            result[name] = value
            continue
        try:
            if column.type == ColumnType.BOOL:
                result[name] = value.strip().lower() in _TRUE_VALUES
            elif column.type == ColumnType.INT:
                result[name] = int(value) if value.strip() else None
            elif column.type == ColumnType.DECIMAL:
                result[name] = Decimal(value) if value.strip() else None
            elif column.type == ColumnType.DATE:
                result[name] = date.fromisoformat(value) if value.strip() else None
            elif column.type == ColumnType.DATETIME:
                result[name] = datetime.fromisoformat(value) if value.strip() else None
            else:
                result[name] = value
        except (ValueError, InvalidOperation):
            raise ValidationError(
                f"{spec.name}.{name}", column.type.value, f"The {name} field has an invalid value."
            ) from None
    return result


def require_record_id(ctx: ActionContext) -> str:
    """The selected record id; ValidationError when none was submitted."""
    record_id = ctx.record_id
    if record_id is None:
        raise ValidationError(RECORD_KEY, "required", "No record was selected.")
    return record_id


def create_record(collection: str, prefix: str | None = None) -> Handler:
    """Handler creating one record from the values under ``prefix``."""
    prefix = prefix or collection

    def handler(ctx: ActionContext) -> None:
        changes = ctx.stage(collection)
        changes.create(coerce_values(changes.store.spec, ctx.values_under(prefix)))

    handler.__name__ = f"create_{collection}"
    return handler


def update_record(collection: str, prefix: str | None = None) -> Handler:
    """
    Handler updating the record named by ``id`` with the values under ``prefix``.

    The submitted ``version`` token is mandatory so concurrent edits surface
    as conflicts instead of silent overwrites.
    """
    prefix = prefix or collection

    def handler(ctx: ActionContext) -> None:
        record_id = require_record_id(ctx)
        version = ctx.version
        if version is None:
            raise ValidationError(VERSION_KEY, "required", "The version token is required.")
        changes = ctx.stage(collection)
        changes.update(
            record_id, coerce_values(changes.store.spec, ctx.values_under(prefix)), version
        )

    handler.__name__ = f"update_{collection}"
    return handler


def delete_record(collection: str) -> Handler:
    """Handler deleting the record named by ``id`` (version checked when given)."""

    def handler(ctx: ActionContext) -> None:
        ctx.stage(collection).delete(require_record_id(ctx), ctx.version)

    handler.__name__ = f"delete_{collection}"
    return handler
