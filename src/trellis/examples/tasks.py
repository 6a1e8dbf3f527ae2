"""
Simple to-do list panel.

One collection (``task``), one screen listing tasks with a modal to add one,
and row actions to toggle and delete. Serve it with::

    trellis serve --app trellis.examples.tasks:build_panel
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from trellis.runtime.dispatcher import ActionContext
from trellis.runtime.handlers import create_record, delete_record, require_record_id
from trellis.runtime.panel import Panel
from trellis.runtime.store import CollectionSpec, ColumnSpec, ColumnType, StoreView
from trellis.specs import (
    ActionSpec,
    BreadcrumbSpec,
    EmptyState,
    FieldSpec,
    MenuEntrySpec,
    ModalLayout,
    RowsLayout,
    ScreenSpec,
    TableColumn,
    TableLayout,
)

if TYPE_CHECKING:
    from trellis.core.manifest import PanelManifest

TASK = CollectionSpec(
    name="task",
    columns=[
        ColumnSpec(name="name", required=True),
        ColumnSpec(name="active", type=ColumnType.BOOL, default=True),
    ],
)


def task_query(stores: StoreView) -> Mapping[str, Any]:
    return {"tasks": stores["task"].list()}


TASK_SCREEN = ScreenSpec(
    name="Simple To-Do List",
    route="tasks",
    description="Things to get done",
    query=task_query,
    layout=[
        TableLayout(
            target="tasks",
            columns=[
                TableColumn(name="name", label="Name"),
                TableColumn(name="active", label="Active"),
            ],
            row_actions=[
                ActionSpec(name="toggle", label="Toggle", icon="bs.check2-square"),
                ActionSpec(
                    name="delete",
                    label="Delete",
                    icon="bs.trash",
                    confirm="Once the task is deleted, it cannot be recovered.",
                    success="Task deleted.",
                ),
            ],
            empty=EmptyState(
                title="No tasks yet",
                description="Add a task to get started.",
                icon="bs.list-check",
            ),
        ),
        ModalLayout(
            name="taskModal",
            title="Create Task",
            apply_label="Add Task",
            layouts=[
                RowsLayout(
                    fields=[
                        FieldSpec(
                            name="task.name",
                            label="Name",
                            placeholder="Enter task name",
                            help="The name of the task to be created.",
                            rules="required|maxLength:255",
                        ),
                    ]
                )
            ],
        ),
    ],
    command_bar=[
        ActionSpec(
            name="create",
            label="Add Task",
            icon="bs.plus-circle",
            target_modal="taskModal",
            success="Task added.",
        ),
    ],
    menu=MenuEntrySpec(label="Tasks", icon="bs.list-check", route="tasks"),
    breadcrumb=BreadcrumbSpec(route="tasks", label="Tasks"),
)


def toggle_task(ctx: ActionContext) -> None:
    """Flip the ``active`` flag of the selected task."""
    task = ctx.get("task", require_record_id(ctx))
    version = ctx.version if ctx.version is not None else task.version
    ctx.stage("task").update(task.id, {"active": not task.get("active", True)}, version)


def build_panel(manifest: PanelManifest | None = None) -> Panel:
    """Build the to-do panel, configured from the manifest when given."""
    panel = Panel.from_manifest(manifest) if manifest is not None else Panel("Tasks")
    panel.collection(TASK)
    panel.register_screen(
        TASK_SCREEN,
        handlers={
            "create": create_record("task"),
            "toggle": toggle_task,
            "delete": delete_record("task"),
        },
    )
    return panel
