"""CLI module for promreader."""

from promreader.cli import api, config, read
from promreader.cli.main import app, main_cli

__all__ = [
    "app",
    "main_cli",
    "api",
    "config",
    "read",
]
