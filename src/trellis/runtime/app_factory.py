"""
App factory - serves a Panel over HTTP with FastAPI.

Routes (under the configured prefix, ``/admin`` by default):

    GET  {prefix}/                  menu tree
    GET  {prefix}/{route}           rendered screen
    POST {prefix}/{route}/{action}  dispatch an action; JSON or form body
"""

from __future__ import annotations

import importlib
import json
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import JSONResponse

from trellis.errors import ValidationError
from trellis.runtime.exception_handlers import register_exception_handlers
from trellis.runtime.logging import get_http_logger, log_with_context
from trellis.runtime.panel import Panel

if TYPE_CHECKING:
    from trellis.core.manifest import PanelManifest

logger = get_http_logger()


async def _parse_request_body(request: Request) -> dict[str, Any]:
    """Parse request body as JSON or form data.

    Form posts carry flat dot-path keys (``task.name``), which field paths
    resolve directly. An empty body is an empty payload.

    Raises:
        ValidationError: The body is not JSON, or not a JSON object
    """
    content_type = (request.headers.get("content-type") or "").lower()
    if (
        "application/x-www-form-urlencoded" in content_type
        or "multipart/form-data" in content_type
    ):
        form = await request.form()
        return {k: v for k, v in form.items() if isinstance(v, str)}

    raw = await request.body()
    if not raw.strip():
        return {}
    try:
        body = json.loads(raw)
    except ValueError:
        raise ValidationError("body", "json", "The request body is not valid JSON.") from None
    if not isinstance(body, dict):
        raise ValidationError("body", "object", "The request body must be a JSON object.")
    return body


def create_router(panel: Panel) -> APIRouter:
    """Build the admin routes for a panel."""
    router = APIRouter()

    @router.get("/")
    async def menu() -> dict[str, Any]:
        return {"name": panel.name, "menu": panel.menu()}

    @router.get("/{route}")
    async def show_screen(route: str) -> dict[str, Any]:
        return panel.render(route).model_dump(mode="json")

    @router.post("/{route}/{action}")
    async def dispatch_action(route: str, action: str, request: Request) -> JSONResponse:
        payload = await _parse_request_body(request)
        result = await panel.dispatch(route, action, payload)
        log_with_context(
            logger,
            logging.INFO,
            f"POST {route}/{action} -> {result.state}",
            route=route,
            action=action,
            status=result.status_code,
        )
        return JSONResponse(
            status_code=result.status_code,
            content=result.model_dump(mode="json"),
        )

    return router


def create_app(panel: Panel, manifest: PanelManifest | None = None) -> FastAPI:
    """
    Create a FastAPI application serving a panel.

    The panel is booted here (so the app is usable without running the
    lifespan) and shut down when the application stops. Shutdown is final:
    an app serves one lifespan, and starting it again raises
    ConfigurationError. Build a new panel and app to serve again.

    Args:
        panel: Configured panel
        manifest: Optional manifest supplying the URL prefix

    Returns:
        FastAPI application
    """
    prefix = manifest.panel.prefix if manifest is not None else "/admin"
    panel.boot()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        panel.boot()
        yield
        panel.shutdown()

    app = FastAPI(title=panel.name, lifespan=lifespan)
    register_exception_handlers(app)
    app.include_router(create_router(panel), prefix=prefix)
    app.state.panel = panel
    return app


def load_panel(target: str, manifest: PanelManifest | None = None) -> Panel:
    """
    Import a panel from a ``module:attribute`` reference.

    The attribute may be a Panel or a factory returning one. Factories are
    called with the manifest when one is given, and with no arguments
    otherwise.
    """
    module_name, sep, attribute = target.partition(":")
    if not sep or not module_name or not attribute:
        raise ValueError(f"Panel reference must look like 'module:attribute', got '{target}'")
    module = importlib.import_module(module_name)
    obj = getattr(module, attribute)
    if callable(obj) and not isinstance(obj, Panel):
        obj = obj(manifest) if manifest is not None else obj()
    if not isinstance(obj, Panel):
        raise TypeError(f"'{target}' is not a Panel")
    return obj


def create_app_from_manifest(manifest: PanelManifest) -> FastAPI:
    """Load the panel named in the manifest and build its application."""
    return create_app(load_panel(manifest.panel.app, manifest), manifest)
