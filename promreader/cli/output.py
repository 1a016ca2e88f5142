"""Terminal output for the promreader CLI.

Results are lists of flat dicts rendered with ``render`` as a Rich table,
JSON or CSV. Status messages go through ``print_error`` (stderr) and
``print_info``.
"""

import csv
import json
from io import StringIO
from typing import Any

import yaml
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

OUTPUT_FORMATS = ("table", "json", "csv")

console = Console()
console_err = Console(stderr=True)


def _table(rows: list[dict[str, Any]], title: str | None) -> None:
    if not rows:
        console.print("[yellow]No series matched[/yellow]")
        return

    table = Table(title=title, header_style="bold cyan")
    for column in rows[0]:
        justify = "right" if isinstance(rows[0][column], (int, float)) else "left"
        table.add_column(column, justify=justify, overflow="fold")

    for row in rows:
        table.add_row(*(str(value) for value in row.values()))

    console.print(table)


def _csv(rows: list[dict[str, Any]]) -> None:
    if not rows:
        return

    buffer = StringIO()
    writer = csv.DictWriter(buffer, fieldnames=list(rows[0]), lineterminator="\n")
    writer.writeheader()
    writer.writerows(rows)

    # Printed without markup so label values containing brackets survive.
    console.print(buffer.getvalue(), end="", markup=False, highlight=False, soft_wrap=True)


def print_json(data: Any) -> None:
    """Print data as indented JSON."""
    console.print_json(json.dumps(data, default=str), indent=2)


def render(rows: list[dict[str, Any]], output_format: str, title: str | None = None) -> None:
    """Render result rows in one of ``OUTPUT_FORMATS``.

    Raises:
        ValueError: If the format is unknown
    """
    if output_format == "table":
        _table(rows, title)
    elif output_format == "json":
        print_json(rows)
    elif output_format == "csv":
        _csv(rows)
    else:
        raise ValueError(f"Unknown output format: {output_format}")


def print_sections(sections: dict[str, dict[str, Any]]) -> None:
    """Print one two-column table per settings section."""
    for name, values in sections.items():
        table = Table(title=name, show_header=False, title_justify="left")
        table.add_column("Key", style="cyan", no_wrap=True)
        table.add_column("Value")
        for key, value in values.items():
            table.add_row(key, "-" if value is None else str(value))
        console.print(table)


def print_yaml(data: Any) -> None:
    """Print data as syntax-highlighted YAML."""
    console.print(Syntax(yaml.safe_dump(data, sort_keys=False), "yaml"))


def print_error(message: str) -> None:
    """Print error message with X mark."""
    console_err.print(f"[red]✗[/red] {message}")


def print_info(message: str) -> None:
    """Print info message with info symbol."""
    console.print(f"[blue]ℹ[/blue] {message}")
