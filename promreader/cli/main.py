"""Main CLI entry point for promreader."""

import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from promreader import __version__
from promreader.config import Settings, get_settings
from promreader.exceptions import PromReaderError
from promreader.logging_config import get_logger, setup_logging

app = typer.Typer(
    name="promreader",
    help="promreader - Prometheus remote read endpoint backed by DuckDB",
    add_completion=True,
    rich_markup_mode="rich",
    no_args_is_help=True,
)

console = Console()
console_err = Console(stderr=True)
logger = get_logger(__name__)


@dataclass
class CLIContext:
    """Shared state handed to subcommands through ``ctx.obj``."""

    settings: Settings
    config_path: Optional[Path] = None
    verbose: bool = False


def version_callback(value: bool) -> None:
    if value:
        console.print(f"promreader version: {__version__}")
        console.print(f"Python: {sys.version.split()[0]}")
        raise typer.Exit(0)


@app.callback()
def main(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version information and exit",
        callback=version_callback,
        is_eager=True,
    ),
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="YAML configuration file (default: ~/.promreader/config.yaml)",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Log at DEBUG level",
    ),
    log_format: Optional[str] = typer.Option(
        None,
        "--log-format",
        help="Log format: json, text (default: from config)",
    ),
) -> None:
    """
    promreader - Prometheus remote read endpoint

    Serves Prometheus remote read queries from a DuckDB samples table and
    queries remote read endpoints from the command line.
    """
    if log_format not in (None, "json", "text"):
        console_err.print(f"[red]Error:[/red] Invalid log format: {log_format}")
        raise typer.Exit(1)

    settings = get_settings(config_path=config, reload=config is not None)
    setup_logging("DEBUG" if verbose else None, log_format)

    if config:
        logger.debug("config_loaded", path=str(config))

    ctx.obj = CLIContext(settings=settings, config_path=config, verbose=verbose)


def handle_error(error: PromReaderError) -> None:
    """Print a promreader error; its context is only logged at DEBUG."""
    console_err.print(f"\n[red]Error:[/red] {error.message}")
    logger.debug("cli_error", **error.to_dict())


from promreader.cli import api, read  # noqa: E402
from promreader.cli import config as config_commands  # noqa: E402

app.add_typer(api.app, name="api", help="API server management")
app.add_typer(read.app, name="read", help="Query a remote read endpoint")
app.add_typer(config_commands.app, name="config", help="Configuration management")


def main_cli() -> None:
    """Entry point for CLI application with error handling."""
    try:
        app()
    except PromReaderError as e:
        handle_error(e)
        sys.exit(1)
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user[/yellow]")
        sys.exit(1)


if __name__ == "__main__":
    main_cli()
