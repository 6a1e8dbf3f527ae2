"""
Panel manifest (trellis.toml) loading.

Example:

    [panel]
    name = "Acme Admin"
    app = "myproject.admin:build_panel"
    prefix = "/admin"

    [server]
    host = "127.0.0.1"
    port = 8000

    [storage]
    backend = "sqlite"
    path = ".trellis/data.db"

    [dispatch]
    timeout = 10.0

    [logging]
    dir = ".trellis/logs"
    level = "INFO"
"""

import tomllib
from dataclasses import dataclass, field
from pathlib import Path

from trellis.core.environment import database_override, default_log_level

MANIFEST_NAME = "trellis.toml"
DEFAULT_APP = "trellis.examples.tasks:build_panel"


@dataclass
class PanelConfig:
    """Panel identity and mount point."""

    name: str = "Trellis"
    app: str = DEFAULT_APP  # "module:attribute" of a Panel or a factory taking the manifest
    prefix: str = "/admin"


@dataclass
class ServerConfig:
    """HTTP server configuration."""

    host: str = "127.0.0.1"
    port: int = 8000


@dataclass
class StorageConfig:
    """Record store configuration."""

    backend: str = "memory"  # "memory" | "sqlite"
    path: str = ".trellis/data.db"


@dataclass
class DispatchConfig:
    """Action dispatch configuration."""

    timeout: float | None = 10.0  # seconds; None disables the limit


@dataclass
class LoggingConfig:
    """Logging configuration."""

    dir: str = ".trellis/logs"
    level: str = field(default_factory=default_log_level)
    console: bool = True


@dataclass
class PanelManifest:
    """Complete panel configuration."""

    panel: PanelConfig = field(default_factory=PanelConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    dispatch: DispatchConfig = field(default_factory=DispatchConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    source: Path | None = None


def _normalize_prefix(prefix: str) -> str:
    prefix = "/" + prefix.strip("/")
    return "" if prefix == "/" else prefix


def load_manifest(path: Path) -> PanelManifest:
    data = tomllib.loads(path.read_text(encoding="utf-8"))

    panel_data = data.get("panel", {})
    server_data = data.get("server", {})
    storage_data = data.get("storage", {})
    dispatch_data = data.get("dispatch", {})
    logging_data = data.get("logging", {})

    backend = storage_data.get("backend", "memory")
    if backend not in ("memory", "sqlite"):
        raise ValueError(f"Unknown storage backend '{backend}' in {path}")

    timeout = dispatch_data.get("timeout", 10.0)
    if timeout is not None and timeout <= 0:
        timeout = None

    manifest = PanelManifest(
        panel=PanelConfig(
            name=panel_data.get("name", "Trellis"),
            app=panel_data.get("app", DEFAULT_APP),
            prefix=_normalize_prefix(panel_data.get("prefix", "/admin")),
        ),
        server=ServerConfig(
            host=server_data.get("host", "127.0.0.1"),
            port=int(server_data.get("port", 8000)),
        ),
        storage=StorageConfig(
            backend=backend,
            path=storage_data.get("path", ".trellis/data.db"),
        ),
        dispatch=DispatchConfig(timeout=float(timeout) if timeout is not None else None),
        logging=LoggingConfig(
            dir=logging_data.get("dir", ".trellis/logs"),
            level=logging_data.get("level", default_log_level()),
            console=bool(logging_data.get("console", True)),
        ),
        source=path,
    )
    return _apply_env_overrides(manifest)


def _apply_env_overrides(manifest: PanelManifest) -> PanelManifest:
    db_path = database_override()
    if db_path:
        manifest.storage.backend = "sqlite"
        manifest.storage.path = db_path
    return manifest


def find_manifest(start: Path | None = None) -> Path | None:
    """Look for trellis.toml in ``start`` and its parents."""
    current = (start or Path.cwd()).resolve()
    for directory in (current, *current.parents):
        candidate = directory / MANIFEST_NAME
        if candidate.is_file():
            return candidate
    return None


def load_manifest_or_default(path: Path | None = None) -> PanelManifest:
    """Load the given (or discovered) manifest, falling back to defaults."""
    manifest_path = path or find_manifest()
    if manifest_path is None:
        return _apply_env_overrides(PanelManifest())
    return load_manifest(manifest_path)
