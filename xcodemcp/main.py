"""xcode-mcp CLI entry point using Typer."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional

import typer
import yaml
from pydantic import ValidationError
from rich.table import Table

from xcodemcp import __version__
from xcodemcp.core.config import ConfigManager, ServerConfig
from xcodemcp.core.context import ServerContext
from xcodemcp.core.errors import ProjectNotFoundError, XcodeServerError
from xcodemcp.core.logging import setup_logging
from xcodemcp.mcp.server import create_server
from xcodemcp.ui import console, err_console, error, info, success, warn

app = typer.Typer(
    name="xcode-mcp",
    help="MCP server giving AI assistants bounded access to Xcode projects.",
    no_args_is_help=True,
)

_CONFIG_DIR_OPTION = typer.Option(None, "--config-dir", help="Configuration directory (default ~/.xcode-mcp)")


def _load_config(config_dir: Optional[Path], base_dir: Optional[Path] = None) -> ServerConfig:
    cfg = ConfigManager(config_dir).load_effective()
    if base_dir is not None:
        cfg = cfg.model_copy(update={"projects_base_dir": base_dir.expanduser()})
    return cfg


@app.command()
def serve(
    base_dir: Optional[Path] = typer.Option(None, "--base-dir", "-b", help="Projects base directory"),
    config_dir: Optional[Path] = _CONFIG_DIR_OPTION,
) -> None:
    """Run the MCP server on stdio."""
    cfg = _load_config(config_dir, base_dir)
    setup_logging(cfg.effective_log_level, cfg.logs_dir)
    err_console.print(f"[bold cyan]xcode-mcp[/] v{__version__} listening on stdio")
    server = create_server(ServerContext(cfg))
    try:
        asyncio.run(server.run_stdio())
    except KeyboardInterrupt:
        err_console.print("Interrupted")


@app.command()
def detect(
    base_dir: Optional[Path] = typer.Option(None, "--base-dir", "-b", help="Projects base directory"),
    config_dir: Optional[Path] = _CONFIG_DIR_OPTION,
) -> None:
    """Detect the active Xcode project the way the server does at startup."""
    cfg = _load_config(config_dir, base_dir)
    context = ServerContext(cfg)
    try:
        project = asyncio.run(context.resolver.detect())
    except ProjectNotFoundError as e:
        warn(e.message)
        raise typer.Exit(1)

    table = Table(title="Active Project")
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Path", project.path)
    table.add_row("Name", project.name)
    table.add_row("Kind", project.kind.value)
    if project.associated_project_path:
        table.add_row("Main project", project.associated_project_path)
    if project.package_manifest_path:
        table.add_row("Package manifest", project.package_manifest_path)
    table.add_row("Active directory", context.directory.get_active_directory())
    console.print(table)


@app.command("check-path")
def check_path(
    path: str = typer.Argument(..., help="Path to check"),
    write: bool = typer.Option(False, "--write", "-w", help="Check write access instead of read"),
    project: Optional[str] = typer.Option(None, "--project", help="Treat this project as active"),
    base_dir: Optional[Path] = typer.Option(None, "--base-dir", "-b", help="Projects base directory"),
    config_dir: Optional[Path] = _CONFIG_DIR_OPTION,
) -> None:
    """Show how a path normalizes and whether the boundary admits it."""
    context = ServerContext(_load_config(config_dir, base_dir))
    if project:
        context.boundary.set_active_project(project)

    table = Table(title="Boundary Roots")
    table.add_column("Root", style="cyan")
    table.add_column("Path", style="green")
    table.add_column("Access")
    for root in context.boundary.roots():
        table.add_row(root.name, root.path, "read/write" if root.writable else "read")
    console.print(table)

    access = "write" if write else "read"
    try:
        if write:
            normalized = context.boundary.validate_path_for_writing(path)
        else:
            normalized = context.boundary.validate_path_for_reading(path)
    except XcodeServerError as e:
        error(e.message)
        raise typer.Exit(1)
    success(f"{access} allowed: {normalized}")


@app.command()
def init(config_dir: Optional[Path] = _CONFIG_DIR_OPTION) -> None:
    """Initialize the configuration directory."""
    manager = ConfigManager(config_dir)
    if manager.config_path.exists():
        info(f"Configuration already exists at {manager.config_path}")
        return
    manager.save(ServerConfig())
    manager.ensure_directories()
    success(f"Configuration initialized at {manager.config_path}")


@app.command()
def config(
    show: bool = typer.Option(False, "--show", "-s", help="Show current configuration"),
    path: bool = typer.Option(False, "--path", "-p", help="Show config file path"),
    set_values: Optional[list[str]] = typer.Option(
        None, "--set", help="Set KEY=VALUE in the config file (repeatable)"
    ),
    reset: bool = typer.Option(False, "--reset", help="Restore the default configuration"),
    config_dir: Optional[Path] = _CONFIG_DIR_OPTION,
) -> None:
    """View or edit configuration."""
    manager = ConfigManager(config_dir)
    if path:
        info(str(manager.config_path))
        return
    if reset or set_values:
        if reset:
            manager.reset()
        for item in set_values or []:
            key, sep, raw = item.partition("=")
            if not sep:
                error(f"Expected KEY=VALUE, got: {item}")
                raise typer.Exit(1)
            try:
                manager.set(key.strip(), yaml.safe_load(raw))
            except KeyError as e:
                error(str(e.args[0]))
                raise typer.Exit(1)
            except ValidationError as e:
                error(f"Invalid value for {key.strip()}: {e.errors()[0]['msg']}")
                raise typer.Exit(1)
        manager.save()
        success(f"Configuration saved to {manager.config_path}")
        return
    if show:
        cfg = manager.load_effective()
        table = Table(title="Configuration")
        table.add_column("Setting", style="cyan")
        table.add_column("Value", style="green")
        for key, value in cfg.model_dump().items():
            table.add_row(key, str(value))
        console.print(table)
        return
    info(f"Config dir: {manager.config_dir}")
    info(f"Config file exists: {manager.config_path.exists()}")


@app.command()
def version() -> None:
    """Show version."""
    console.print(f"xcode-mcp v{__version__}")


if __name__ == "__main__":
    app()
