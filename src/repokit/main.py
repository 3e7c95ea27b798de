from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path

import typer
from rich import box
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.tree import Tree

from . import __version__
from .core.config import AppConfig, ConfigLoadResult, load_config
from .core.console import console, setup_logging
from .core.diagnostics import run_doctor, select_tools, tools_for
from .workflow.create import run_create
from .workflow.validation import project_name_valid

app = typer.Typer(help="repokit: scaffold a new project and wire it to git, hosting and CI.")
logger = logging.getLogger(__name__)


@dataclass
class AppState:
    config: AppConfig
    config_meta: ConfigLoadResult
    logger: logging.Logger


@app.callback()
def main(
    ctx: typer.Context,
    config: Path | None = typer.Option(
        None, "--config", "-c", help="Path to a repokit config file (TOML or JSON)."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    loaded_config, meta = load_config(config_path=config)
    logger = setup_logging(level=loaded_config.log_level, verbose=verbose)

    ctx.obj = AppState(config=loaded_config, config_meta=meta, logger=logger)

    if meta.error:
        console.print(
            Panel(
                f"[bold red]Configuration Error - Safe Mode Active[/bold red]\n\n"
                f"Failed to load {meta.path}:\n{escape(str(meta.error))}\n\n"
                f"[yellow]Using default settings.[/yellow]",
                border_style="red",
            )
        )
    else:
        logger.debug(
            "Loaded configuration from %s (env overrides: %s)",
            meta.path,
            sorted(meta.env_overrides),
        )


def _preset_name(value: str | None) -> str | None:
    if value is None:
        return None
    name = value.lower()
    verdict = project_name_valid(name)
    if not verdict.success:
        raise typer.BadParameter(verdict.error)
    return name


@app.command("create")
def create(
    ctx: typer.Context,
    name: str | None = typer.Option(
        None, "--name", "-n", help="Project name; skips the name question."
    ),
    directory: Path | None = typer.Option(
        None,
        "--directory",
        "-C",
        help="Directory to create the project in (default: current directory).",
        file_okay=False,
        exists=True,
    ),
) -> None:
    """Create a new project, push it to a hosted remote and set up CI."""
    state: AppState = ctx.obj
    parent_dir = (directory or Path.cwd()).resolve()
    status = asyncio.run(run_create(state.config, parent_dir, name=_preset_name(name)))
    raise typer.Exit(code=status)


@app.command("doctor")
def doctor(
    ctx: typer.Context,
    tool: list[str] | None = typer.Option(
        None, "--tool", "-t", help="Check only specific tools (name or binary)."
    ),
) -> None:
    """Check that the external tools used by `create` are installed."""
    state: AppState = ctx.obj
    state.logger.debug("Running doctor for tools: %s", tool or "all")

    results = asyncio.run(run_doctor(select_tools(tools_for(state.config), tool)))

    tree = Tree("External tools")
    style_map = {"ok": "green", "warn": "yellow", "error": "red", "missing": "red"}
    for result in results:
        style = style_map.get(result.status, "white")
        message = result.version or result.message or result.tool.install_hint or ""
        tree.add(
            f"[{style}]{result.status}[/{style}] {result.tool.name} ({result.tool.binary}) {message}".strip()
        )

    console.print(tree)


@app.command("config")
def show_config(ctx: typer.Context) -> None:
    """Show the active configuration and where it came from."""
    state: AppState = ctx.obj
    config = state.config
    meta = state.config_meta

    table = Table(title="Config", box=box.SIMPLE, expand=True)
    table.add_column("Key", style="cyan", no_wrap=True)
    table.add_column("Value", style="white")

    for key, value in config.model_dump().items():
        table.add_row(key, str(value))

    console.print(table)

    meta_lines = [
        f"Path: {meta.path}",
        "File loaded: yes" if meta.file_loaded else "File loaded: no (using defaults + env)",
    ]

    if meta.env_overrides:
        meta_lines.append("Env overrides: " + ", ".join(sorted(meta.env_overrides)))

    console.print(Panel("\n".join(meta_lines), title="Config source", box=box.SIMPLE))


@app.command("version")
def show_version() -> None:
    """Print the repokit version."""
    console.print(__version__)


def cli() -> None:
    app()


if __name__ == "__main__":
    cli()
