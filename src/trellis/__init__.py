"""
Trellis - declarative admin screens over record stores.

Screens bind a query, a layout and a command bar to a route; actions are
dispatched to handlers that stage changes committed as one unit.
"""

from __future__ import annotations

import re
from importlib.metadata import version as _metadata_version
from pathlib import Path as _Path

from .errors import (
    ConfigurationError,
    ConfirmationRequiredError,
    ConflictError,
    DispatchTimeoutError,
    NotFoundError,
    StorageError,
    TrellisError,
    UnknownActionError,
    ValidationError,
)


def _get_version() -> str:
    """Get version from pyproject.toml (editable) or importlib.metadata (installed)."""
    # In editable mode, read directly from pyproject.toml for live updates
    pyproject = _Path(__file__).parent.parent.parent / "pyproject.toml"
    if pyproject.exists():
        content = pyproject.read_text()
        if match := re.search(r'^version\s*=\s*["\']([^"\']+)["\']', content, re.MULTILINE):
            return match.group(1)

    try:
        return _metadata_version("trellis-admin")
    except Exception:
        return "0.0.0"


__version__ = _get_version()

__all__ = [
    "__version__",
    "TrellisError",
    "ConfigurationError",
    "ValidationError",
    "UnknownActionError",
    "NotFoundError",
    "ConfirmationRequiredError",
    "ConflictError",
    "DispatchTimeoutError",
    "StorageError",
]
