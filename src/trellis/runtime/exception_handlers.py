"""
Exception handlers for Trellis applications.

Converts Trellis errors raised outside a dispatch (unknown routes and
actions, unreadable request bodies, unbooted panels) into structured JSON
responses. Errors raised inside a dispatch never reach these handlers: they
come back as rejected DispatchResults carrying the re-rendered screen.
"""

import logging

from fastapi import FastAPI
from fastapi.responses import Response


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register Trellis exception handlers on a FastAPI application.

    Every TrellisError maps to its own status code, with ``to_dict()`` as the
    body. Server-side errors (5xx) are logged at ERROR, the rest at WARNING.

    Args:
        app: FastAPI application instance
    """
    from fastapi import Request
    from fastapi.responses import JSONResponse as _JSONResponse

    from trellis.errors import TrellisError
    from trellis.runtime.logging import get_http_logger, log_with_context

    logger = get_http_logger()

    @app.exception_handler(TrellisError)
    async def trellis_error_handler(request: Request, exc: TrellisError) -> Response:
        """Convert Trellis errors to their status code with a field-attributable body."""
        log_with_context(
            logger,
            logging.ERROR if exc.status_code >= 500 else logging.WARNING,
            f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}",
            error=exc.to_dict(),
        )
        return _JSONResponse(status_code=exc.status_code, content=exc.to_dict())
