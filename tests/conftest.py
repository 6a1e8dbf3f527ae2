"""Shared pytest fixtures for Trellis tests."""

from collections.abc import Iterator
from pathlib import Path
from typing import Any

import pytest

from trellis.core.manifest import PanelManifest
from trellis.examples.tasks import TASK, build_panel
from trellis.runtime.panel import Panel
from trellis.runtime.store import (
    CollectionSpec,
    ColumnSpec,
    ColumnType,
    RecordStore,
    StoreRegistry,
)


@pytest.fixture
def task_collection() -> CollectionSpec:
    """Return the task collection used by the quick-start panel."""
    return TASK


@pytest.fixture
def note_collection() -> CollectionSpec:
    """Return a second collection for multi-store tests."""
    return CollectionSpec(
        name="note",
        columns=[
            ColumnSpec(name="body", type=ColumnType.TEXT, required=True),
            ColumnSpec(name="priority", type=ColumnType.INT, default=0),
        ],
    )


@pytest.fixture(params=["memory", "sqlite"])
def registry(request: pytest.FixtureRequest, tmp_path: Path) -> Iterator[StoreRegistry]:
    """Return an empty store registry for each backend."""
    registry = StoreRegistry(request.param, tmp_path / "data.db")
    yield registry
    registry.close_all()


@pytest.fixture
def task_store(registry: StoreRegistry, task_collection: CollectionSpec) -> RecordStore:
    """Return an empty task store for each backend."""
    return registry.create_store(task_collection)


@pytest.fixture
def panel() -> Panel:
    """Return the quick-start panel, not yet booted."""
    return build_panel()


@pytest.fixture
def booted_panel(panel: Panel) -> Iterator[Panel]:
    """Return the quick-start panel, booted and torn down after the test."""
    panel.boot()
    yield panel
    panel.shutdown()


@pytest.fixture(params=["memory", "sqlite"])
def storage_options(request: pytest.FixtureRequest, tmp_path: Path) -> dict[str, Any]:
    """Return Panel storage keyword arguments for each backend."""
    return {"storage": request.param, "db_path": tmp_path / "data.db"}


@pytest.fixture
def storage_panel(storage_options: dict[str, Any]) -> Iterator[Panel]:
    """Return the quick-start panel booted on each backend."""
    manifest = PanelManifest()
    manifest.storage.backend = storage_options["storage"]
    manifest.storage.path = str(storage_options["db_path"])
    panel = build_panel(manifest)
    panel.boot()
    yield panel
    panel.shutdown()
