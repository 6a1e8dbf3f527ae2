"""
Trellis Runtime

This module provides:
- Record stores (memory and SQLite) with version tokens and atomic change sets
- Field validation
- Screen rendering
- Action dispatch and generic CRUD handlers
- The Panel registry and its FastAPI application

Example usage:
    >>> from trellis.runtime import Panel, create_app
    >>>
    >>> panel = Panel("Acme Admin")
    >>> ...  # collections, screens, handlers
    >>> app = create_app(panel)
"""

from trellis.runtime.app_factory import create_app, create_app_from_manifest, load_panel
from trellis.runtime.dispatcher import (
    ActionContext,
    DispatchResult,
    DispatchState,
    Dispatcher,
)
from trellis.runtime.handlers import create_record, delete_record, update_record
from trellis.runtime.navigation import NavigationRegistry
from trellis.runtime.panel import Panel
from trellis.runtime.rendering import Alert, FieldError, RenderedScreen, ScreenRenderer
from trellis.runtime.store import (
    ChangeSet,
    CollectionSpec,
    ColumnSpec,
    ColumnType,
    MemoryRecordStore,
    Record,
    RecordSet,
    RecordStore,
    SQLiteRecordStore,
    StoreRegistry,
    commit_all,
)
from trellis.runtime.validation import register_rule, validate_fields

__all__ = [
    # Stores
    "ChangeSet",
    "CollectionSpec",
    "ColumnSpec",
    "ColumnType",
    "MemoryRecordStore",
    "Record",
    "RecordSet",
    "RecordStore",
    "SQLiteRecordStore",
    "StoreRegistry",
    "commit_all",
    # Validation
    "register_rule",
    "validate_fields",
    # Rendering
    "Alert",
    "FieldError",
    "RenderedScreen",
    "ScreenRenderer",
    # Dispatch
    "ActionContext",
    "DispatchResult",
    "DispatchState",
    "Dispatcher",
    "create_record",
    "delete_record",
    "update_record",
    # Panel
    "NavigationRegistry",
    "Panel",
    "create_app",
    "create_app_from_manifest",
    "load_panel",
]
