"""
Error types for Trellis screens, stores and action dispatch.

All errors are recoverable at the request boundary. Each one knows the HTTP
status it maps to and how to describe itself as a structured payload so the
boundary can annotate the offending field instead of discarding user input.
"""

from __future__ import annotations

from typing import Any


class TrellisError(Exception):
    """Base exception for all Trellis errors."""

    status_code: int = 400
    error_type: str = "trellis_error"

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        self.message = message
        self.context = context or {}
        super().__init__(message)

    @property
    def field(self) -> str | None:
        """Field the error is attributed to, if any."""
        return None

    def to_dict(self) -> dict[str, Any]:
        """Structured representation used by the HTTP boundary and logs."""
        payload: dict[str, Any] = {"type": self.error_type, "detail": self.message}
        if self.field is not None:
            payload["field"] = self.field
        if self.context:
            payload["context"] = self.context
        return payload


class ConfigurationError(TrellisError):
    """
    Raised when a panel is wired incorrectly at startup.

    Examples:
    - Two screens registered for the same route
    - An action without a registered handler
    - A menu entry whose parent chain forms a cycle
    - Registration after the panel has booted
    """

    status_code = 500
    error_type = "configuration_error"


class ValidationError(TrellisError):
    """Raised when a field value fails one of its rules, or a required column is absent."""

    status_code = 422
    error_type = "validation_error"

    def __init__(self, field: str, rule: str, message: str | None = None):
        self.field_name = field
        self.rule = rule
        super().__init__(
            message or f"Field '{field}' failed rule '{rule}'",
            context={"rule": rule},
        )

    @property
    def field(self) -> str | None:
        return self.field_name


class UnknownActionError(TrellisError):
    """Raised when a route has no screen, or the screen has no such action."""

    status_code = 404
    error_type = "unknown_action"

    def __init__(self, route: str, action: str | None = None):
        self.route = route
        self.action = action
        if action is None:
            message = f"No screen registered for route '{route}'"
        else:
            message = f"Screen '{route}' has no action '{action}'"
        super().__init__(message, context={"route": route, "action": action})


class NotFoundError(TrellisError):
    """Raised when a record id is absent from its collection."""

    status_code = 404
    error_type = "not_found"

    def __init__(self, collection: str, record_id: str):
        self.collection = collection
        self.record_id = record_id
        super().__init__(
            f"{collection} record '{record_id}' not found",
            context={"collection": collection, "id": record_id},
        )


class ConfirmationRequiredError(TrellisError):
    """Raised when a destructive action arrives without an explicit confirmation flag."""

    status_code = 428
    error_type = "confirmation_required"

    def __init__(self, action: str, prompt: str | None = None):
        self.action = action
        self.prompt = prompt or "This action cannot be undone. Confirm to continue."
        super().__init__(
            f"Action '{action}' is destructive and requires confirmation",
            context={"action": action, "prompt": self.prompt},
        )


class ConflictError(TrellisError):
    """Raised when a mutation carries a stale version token for its record."""

    status_code = 409
    error_type = "conflict"

    def __init__(
        self,
        collection: str,
        record_id: str,
        expected_version: int,
        actual_version: int,
    ):
        self.collection = collection
        self.record_id = record_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"{collection} record '{record_id}' was modified by someone else "
            f"(expected version {expected_version}, found {actual_version})",
            context={
                "collection": collection,
                "id": record_id,
                "expected_version": expected_version,
                "actual_version": actual_version,
            },
        )


class DispatchTimeoutError(TrellisError):
    """Raised when an action handler does not finish within the dispatch timeout."""

    status_code = 504
    error_type = "timeout"

    def __init__(self, action: str, timeout: float):
        self.action = action
        self.timeout = timeout
        super().__init__(
            f"Action '{action}' did not complete within {timeout:g}s; nothing was saved",
            context={"action": action, "timeout": timeout},
        )


class StorageError(TrellisError):
    """Raised when the storage backend fails to read or write; nothing was saved."""

    status_code = 503
    error_type = "storage_error"

    def __init__(self, collection: str | None, reason: str):
        self.collection = collection
        self.reason = reason
        where = f" for {collection}" if collection else ""
        super().__init__(
            f"Storage failed{where}: {reason}",
            context={"collection": collection, "reason": reason},
        )
