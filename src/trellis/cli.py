"""
Trellis CLI.

Commands:
- serve:   Serve a panel over HTTP
- screens: List the screens a panel registers
- menu:    Show a panel's menu tree
- logs:    Show recent log entries
- version: Show the installed version
"""

from __future__ import annotations

import platform
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table
from rich.tree import Tree

from trellis.core.manifest import PanelManifest, load_manifest_or_default
from trellis.errors import TrellisError
from trellis.runtime.navigation import MenuNode
from trellis.runtime.panel import Panel

app = typer.Typer(
    help="Declarative admin screens over record stores",
    no_args_is_help=True,
)

console = Console()

_MANIFEST_OPTION = typer.Option(
    None,
    "--manifest",
    "-m",
    help="Path to trellis.toml (default: search the current directory and its parents)",
)
_APP_OPTION = typer.Option(
    None,
    "--app",
    "-a",
    help="Panel to load as module:attribute (overrides the manifest)",
)


def _load(manifest_path: Path | None, app_ref: str | None) -> tuple[PanelManifest, Panel]:
    from trellis.runtime.app_factory import load_panel

    try:
        manifest = load_manifest_or_default(manifest_path)
        if app_ref:
            manifest.panel.app = app_ref
        return manifest, load_panel(manifest.panel.app, manifest)
    except (TrellisError, ValueError, TypeError, ImportError, AttributeError, OSError) as e:
        console.print(f"[red]Failed to load panel: {e}[/red]")
        raise typer.Exit(1)


@app.command(name="serve")
def serve_command(
    manifest_path: Path | None = _MANIFEST_OPTION,
    app_ref: str | None = _APP_OPTION,
    host: str | None = typer.Option(None, "--host", help="Bind address"),
    port: int | None = typer.Option(None, "--port", "-p", help="Bind port"),
) -> None:
    """Serve a panel over HTTP."""
    import uvicorn

    from trellis.runtime.app_factory import create_app
    from trellis.runtime.logging import setup_logging

    manifest, panel = _load(manifest_path, app_ref)
    if host:
        manifest.server.host = host
    if port:
        manifest.server.port = port

    setup_logging(
        manifest.logging.dir,
        level=manifest.logging.level,
        console=manifest.logging.console,
    )
    try:
        fastapi_app = create_app(panel, manifest)
    except TrellisError as e:
        console.print(f"[red]Panel failed to boot: {e.message}[/red]")
        raise typer.Exit(1)

    console.print(
        f"[green]Serving {panel.name} at "
        f"http://{manifest.server.host}:{manifest.server.port}{manifest.panel.prefix}/[/green]"
    )
    uvicorn.run(
        fastapi_app,
        host=manifest.server.host,
        port=manifest.server.port,
        log_level=manifest.logging.level.lower(),
    )


@app.command(name="screens")
def screens_command(
    manifest_path: Path | None = _MANIFEST_OPTION,
    app_ref: str | None = _APP_OPTION,
) -> None:
    """List registered screens with their actions."""
    _, panel = _load(manifest_path, app_ref)

    table = Table(title=f"{panel.name} screens")
    table.add_column("Route", style="cyan")
    table.add_column("Name")
    table.add_column("Actions")
    table.add_column("Unhandled", style="red")

    for route, screen in sorted(panel.screens.items()):
        names = [action.name for action in screen.actions()]
        unhandled = [name for name in names if (route, name) not in panel.handlers]
        table.add_row(route, screen.name, ", ".join(names) or "-", ", ".join(unhandled))

    console.print(table)


@app.command(name="menu")
def menu_command(
    manifest_path: Path | None = _MANIFEST_OPTION,
    app_ref: str | None = _APP_OPTION,
) -> None:
    """Show the menu tree."""
    _, panel = _load(manifest_path, app_ref)

    tree = Tree(f"[bold]{panel.name}[/bold]")

    def add(branch: Tree, nodes: list[MenuNode]) -> None:
        for node in nodes:
            child = branch.add(f"{node.entry.label} [dim]/{node.entry.route}[/dim]")
            add(child, node.children)

    add(tree, panel.navigation.menu_tree())
    console.print(tree)


@app.command(name="logs")
def logs_command(
    manifest_path: Path | None = _MANIFEST_OPTION,
    count: int = typer.Option(20, "--count", "-n", help="Number of entries"),
    level: str | None = typer.Option(None, "--level", "-l", help="Only this level"),
) -> None:
    """Show recent entries from the JSONL log."""
    from trellis.runtime.logging import LOG_FILE_NAME, read_log_entries

    manifest = load_manifest_or_default(manifest_path)
    log_file = Path(manifest.logging.dir) / LOG_FILE_NAME
    entries = read_log_entries(log_file, count=count, level=level)
    if not entries:
        console.print(f"[yellow]No log entries in {log_file}[/yellow]")
        return

    for entry in entries:
        # Messages may contain square brackets
        console.print(
            f"{entry.get('timestamp', '')} {entry.get('level', ''):<8} "
            f"[{entry.get('component', '')}] {entry.get('message', '')}",
            markup=False,
            highlight=False,
        )


@app.command(name="version")
def version_command() -> None:
    """Show version and environment information."""
    from trellis import __version__
    from trellis.core.environment import get_trellis_env

    typer.echo(f"Trellis version {__version__}")
    typer.echo(f"  Python:        {platform.python_implementation()} {platform.python_version()}")
    typer.echo(f"  Environment:   {get_trellis_env().value}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
