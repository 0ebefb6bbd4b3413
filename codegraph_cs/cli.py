"""Typer-based CLI for CodeGraph CS."""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from . import __version__
from .aggregator import WorkspaceAggregator
from .config_manager import load_settings
from .display import AnalysisOptions
from .logging_config import setup_logging
from .serializer import dumps, write_json
from .workspace import UnsupportedDescriptorError, Workspace, WorkspaceLoadError

logger = logging.getLogger(__name__)

app = typer.Typer(
    help="CodeGraph CS: build a declaration graph from a C# solution or project.",
    add_completion=False,
    rich_markup_mode="rich",
)


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        typer.echo(f"CodeGraph CS v{__version__}")
        raise typer.Exit()


@app.command()
def analyze(
    path: Path = typer.Argument(..., help="Path to a .sln, .slnx or .csproj file."),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Write the JSON graph to this file instead of stdout.",
    ),
    compact: bool = typer.Option(False, "--compact", help="Emit JSON without indentation."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only report errors on stderr."),
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging."),
    config_file: Optional[Path] = typer.Option(
        None, "--config", help="Path to a config.toml (defaults to ~/.codegraph-cs/config.toml).",
    ),
    version: Optional[bool] = typer.Option(
        None, "--version", help="Show version and exit.", callback=version_callback, is_eager=True,
    ),
):
    """Analyze a C# workspace and print its declaration graph as JSON."""
    settings = load_settings(config_file)
    level = "ERROR" if quiet else "DEBUG" if verbose else settings.log_level
    setup_logging(level)
    console = Console(stderr=True, quiet=quiet)

    if not path.exists() or not path.is_file():
        typer.echo(f"Error: file not found: {path}", err=True)
        raise typer.Exit(code=1)

    started = time.perf_counter()
    console.print(f"[cyan]Loading workspace:[/cyan] {path}")
    try:
        solution = Workspace.open(path)
    except UnsupportedDescriptorError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1)
    except WorkspaceLoadError as exc:
        logger.error("Failed to load workspace: %s", exc)
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1)
    except Exception as exc:
        logger.exception("Failed to load workspace")
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1)

    console.print(f"Found {len(solution.projects)} project(s)")
    result = WorkspaceAggregator(solution, AnalysisOptions()).run_sync()

    indent = None if compact else settings.indent
    if output:
        write_json(result, output, indent)
        console.print(f"[green]Graph written to[/green] {output}")
    else:
        typer.echo(dumps(result, indent))

    elapsed_ms = int((time.perf_counter() - started) * 1000)
    console.print(
        f"[green]Analysis complete.[/green] {len(result.nodes)} nodes, "
        f"{len(result.edges)} edges in {elapsed_ms} ms"
    )


def main() -> None:
    app()


if __name__ == "__main__":
    main()
