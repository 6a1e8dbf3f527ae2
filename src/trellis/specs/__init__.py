"""
Screen specification types.

This module exports all declarative types used to describe admin screens.
"""

from trellis.specs.action import ActionSpec
from trellis.specs.field import (
    MISSING,
    FieldPath,
    FieldSpec,
    InputKind,
    RuleSpec,
    parse_rules,
)
from trellis.specs.layout import (
    EmptyState,
    LayoutNode,
    ModalLayout,
    RowsLayout,
    TableColumn,
    TableLayout,
)
from trellis.specs.navigation import BreadcrumbSpec, MenuEntrySpec
from trellis.specs.screen import ScreenSpec

__all__ = [
    # Field types
    "MISSING",
    "FieldPath",
    "FieldSpec",
    "InputKind",
    "RuleSpec",
    "parse_rules",
    # Action types
    "ActionSpec",
    # Layout types
    "EmptyState",
    "LayoutNode",
    "ModalLayout",
    "RowsLayout",
    "TableColumn",
    "TableLayout",
    # Navigation types
    "BreadcrumbSpec",
    "MenuEntrySpec",
    # Main spec
    "ScreenSpec",
]
