"""Command line interface for carbone-storage.

Provides a Typer-based CLI for inspecting the resolved configuration and
moving templates and renders between the local cache and blob storage.
"""

import asyncio
import json
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional

import typer
from rich.console import Console
from rich.table import Table

from carbone_storage import __version__
from carbone_storage.adapter import TEMPLATE_MIMETYPE_HEADER, StorageAdapter
from carbone_storage.config import StoreConfig, get_config_path, load_config
from carbone_storage.errors import StorageError
from carbone_storage.logging_config import setup_logging
from carbone_storage.storage.cache import LocalCache

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    name="carbone-storage",
    help="Template and render storage for the render service",
    rich_markup_mode="rich",
)
template_app = typer.Typer(help="Template operations")
render_app = typer.Typer(help="Render operations")
app.add_typer(template_app, name="template")
app.add_typer(render_app, name="render")


class _Request:
    """Minimal request carrying upload headers."""

    def __init__(self, headers: dict):
        self.headers = headers


def version_callback(value: bool) -> None:
    """Callback for --version flag."""
    if value:
        console.print(f"carbone-storage version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    config_path: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to JSON config file (defaults to $CARBONE_AST_CONFIG_PATH/$CARBONE_AST_CONFIG)",
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging"),
    log_dir: Optional[Path] = typer.Option(
        None,
        "--log-dir",
        help="Also write carbone_storage.log to this directory (rotated at startup)",
    ),
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """carbone-storage: template and render artifact store.

    ## Commands

    * [bold cyan]config[/bold cyan] - Show the resolved configuration
    * [bold cyan]template[/bold cyan] - Push, pull or delete templates
    * [bold cyan]render[/bold cyan] - Pull or push renders
    """
    setup_logging("DEBUG" if verbose else "WARNING", log_dir=log_dir)
    ctx.obj = {"config_path": config_path}


def _load(ctx: typer.Context) -> StoreConfig:
    return load_config(ctx.obj.get("config_path") if ctx.obj else None)


def _run(config: StoreConfig, operation: Callable[[StorageAdapter], Awaitable[Any]]) -> Any:
    """Run an adapter coroutine, turning storage errors into exit code 1."""
    adapter = StorageAdapter(config)
    try:
        return asyncio.run(operation(adapter))
    except StorageError as e:
        err_console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    except (OSError, ValueError) as e:
        err_console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
    finally:
        adapter.close()


@app.command("config")
def show_config(
    ctx: typer.Context,
    as_json: bool = typer.Option(False, "--json", help="Print as JSON"),
) -> None:
    """Show the resolved configuration (account key masked)."""
    config = _load(ctx)
    data = config.to_dict()
    if "storageCredentials" in data:
        data["storageCredentials"]["accountKey"] = "****"

    if as_json:
        console.print_json(json.dumps(data))
        return

    table = Table(title="carbone-storage configuration")
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    table.add_row("config file", str(ctx.obj.get("config_path") or get_config_path()))
    table.add_row("account url", config.account_url or "[dim]none (local only)[/dim]")
    table.add_row("templates container", config.templates_container or "[dim]-[/dim]")
    table.add_row("renders container", config.renders_container or "[dim]-[/dim]")
    table.add_row("template dir", str(config.template_dir))
    table.add_row("render dir", str(config.render_dir))
    for key, value in config.retry.to_dict().items():
        table.add_row(f"retry.{key}", str(value))
    console.print(table)


@template_app.command("push")
def push_template(
    ctx: typer.Context,
    template_id: str = typer.Argument(..., help="Template id"),
    source: Path = typer.Argument(..., help="Template file to upload"),
    mimetype: Optional[str] = typer.Option(None, "--mimetype", "-m", help="Content type to store"),
) -> None:
    """Upload a template to the templates container."""
    headers = {TEMPLATE_MIMETYPE_HEADER: mimetype} if mimetype else {}
    result = _run(
        _load(ctx),
        lambda adapter: adapter.write_template(template_id, source, request=_Request(headers)),
    )
    console.print(f"[green]Stored template {result}[/green]")


@template_app.command("pull")
def pull_template(
    ctx: typer.Context,
    template_id: str = typer.Argument(..., help="Template id"),
) -> None:
    """Fetch a template into the local cache."""
    path = _run(_load(ctx), lambda adapter: adapter.read_template(template_id))
    typer.echo(str(path))


@template_app.command("delete")
def delete_template(
    ctx: typer.Context,
    template_id: str = typer.Argument(..., help="Template id"),
    purge_local: bool = typer.Option(False, "--purge-local", help="Also remove the local copy"),
) -> None:
    """Delete a template from the templates container."""
    config = _load(ctx)
    _run(config, lambda adapter: adapter.delete_template(template_id))
    if purge_local:
        removed = LocalCache(config.template_dir).remove(template_id)
        if removed:
            console.print(f"Removed local copy of {template_id}")
    console.print(f"[green]Deleted template {template_id}[/green]")


@render_app.command("pull")
def pull_render(
    ctx: typer.Context,
    render_id: str = typer.Argument(..., help="Render id"),
) -> None:
    """Fetch a render into the local cache and purge it from the container."""
    path = _run(_load(ctx), lambda adapter: adapter.read_render(render_id))
    typer.echo(str(path))


@render_app.command("push")
def push_render(
    ctx: typer.Context,
    report: Path = typer.Argument(..., help="Rendered file to upload"),
    name: Optional[str] = typer.Option(None, "--name", "-n", help="Blob name (defaults to file name)"),
) -> None:
    """Upload a finished render to the renders container."""
    _run(_load(ctx), lambda adapter: adapter.after_render(report, name))
    console.print(f"[green]Stored render {name or report.name}[/green]")


if __name__ == "__main__":
    app()
