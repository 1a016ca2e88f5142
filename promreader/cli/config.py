"""Configuration CLI commands."""

from typing import Optional

import typer

from promreader.cli.output import print_error, print_info, print_json, print_sections, print_yaml
from promreader.config import get_settings, settings_by_section

app = typer.Typer(help="Configuration management")


@app.command("show")
def show_config(
    section: Optional[str] = typer.Option(
        None,
        "--section",
        "-s",
        help="Show one section: server, store, read, logging",
    ),
    output_format: str = typer.Option(
        "table",
        "--format",
        "-f",
        help="Output format: table, yaml, json",
    ),
) -> None:
    """
    Show the effective configuration.

    Values are merged from environment variables, the YAML config file,
    .env and defaults, and grouped the way the YAML file is laid out.

    Examples:
        promreader config show

        promreader config show --section store --format yaml
    """
    sections = settings_by_section(get_settings())

    if section:
        if section not in sections:
            print_error(f"Unknown section: {section}")
            print_info(f"Available sections: {', '.join(sections)}")
            raise typer.Exit(1)
        sections = {section: sections[section]}

    if output_format == "yaml":
        print_yaml(sections)
    elif output_format == "json":
        print_json(sections)
    elif output_format == "table":
        print_sections(sections)
    else:
        print_error(f"Invalid output format: {output_format}")
        print_info("Valid formats: table, yaml, json")
        raise typer.Exit(1)
