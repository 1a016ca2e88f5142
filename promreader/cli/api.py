"""API server CLI commands for promreader."""

import os
from typing import Optional

import typer
from rich.console import Console

from promreader.config import CONFIG_ENV_VAR, get_settings

app = typer.Typer(
    name="api",
    help="API server management commands",
    add_completion=True,
)

console = Console()


def export_overrides(ctx: typer.Context, duckdb_path: Optional[str], table: Optional[str]) -> None:
    """Put CLI overrides in the environment.

    uvicorn imports the app by name, possibly in worker processes, so
    overrides have to travel as environment variables rather than arguments.
    """
    if duckdb_path:
        os.environ["DUCKDB_PATH"] = duckdb_path
    if table:
        os.environ["DUCKDB_TABLE"] = table

    config_path = getattr(ctx.obj, "config_path", None)
    if config_path is not None:
        os.environ[CONFIG_ENV_VAR] = str(config_path.resolve())


@app.command("serve")
def serve(
    ctx: typer.Context,
    host: Optional[str] = typer.Option(
        None, "--host", "-h", help="Host to bind to (default: from config)"
    ),
    port: Optional[int] = typer.Option(
        None, "--port", "-p", help="Port to bind to (default: from config)"
    ),
    workers: Optional[int] = typer.Option(
        None, "--workers", "-w", help="Number of worker processes"
    ),
    duckdb_path: Optional[str] = typer.Option(
        None, "--duckdb-path", "-d", help="DuckDB database holding the samples table"
    ),
    table: Optional[str] = typer.Option(
        None, "--table", "-t", help="Samples table name"
    ),
    reload: bool = typer.Option(
        False, "--reload", "-r", help="Enable auto-reload for development"
    ),
    access_log: bool = typer.Option(
        False,
        "--access-log/--no-access-log",
        help="Enable uvicorn access logging (requests are already logged by promreader)",
    ),
) -> None:
    """Start the remote read server.

    Examples:
        promreader api serve --duckdb-path metrics.duckdb

        promreader api serve --port 9201 --workers 4

        promreader -c prod.yaml api serve
    """
    import uvicorn

    export_overrides(ctx, duckdb_path, table)
    config_path = getattr(ctx.obj, "config_path", None)
    settings = get_settings(config_path=config_path, reload=True)

    host = host or settings.promreader_host
    port = port or settings.promreader_port
    workers = 1 if reload else (workers or settings.promreader_workers)

    if settings.duckdb_path == ":memory:":
        console.print(
            "[yellow]Warning:[/yellow] no DuckDB database configured, "
            "serving from an empty in-memory database"
        )

    host_display = "localhost" if host == "0.0.0.0" else host
    console.print("\n[bold cyan]Starting promreader[/bold cyan]\n")
    console.print(f"  Store:       duckdb {settings.duckdb_path} (table {settings.duckdb_table})")
    console.print(f"  Series key:  {settings.series_identity}")
    console.print(f"  Timestamps:  {settings.timestamp_policy}")
    console.print(f"  Workers:     {workers}{' (reload)' if reload else ''}")
    console.print(f"\n  Read:        http://{host_display}:{port}/api/v1/read")
    console.print(f"  Health:      http://{host_display}:{port}/health")
    if settings.metrics_enabled:
        console.print(f"  Metrics:     http://{host_display}:{port}/metrics")
    console.print()

    try:
        uvicorn.run(
            "promreader.api.app:app",
            host=host,
            port=port,
            workers=None if reload else workers,
            reload=reload,
            log_level=settings.log_level.lower(),
            access_log=access_log,
        )
    except KeyboardInterrupt:
        console.print("\n[green]✓ Server stopped[/green]\n")
    except Exception as e:
        console.print(f"\n[red]✗ Server error: {e}[/red]\n")
        raise typer.Exit(1)


@app.command("status")
def status(
    host: str = typer.Option("localhost", "--host", "-h", help="API server host"),
    port: int = typer.Option(9201, "--port", "-p", help="API server port"),
) -> None:
    """Check that a server is up and its store reader is initialized.

    Example:
        promreader api status --port 9201
    """
    import httpx

    base_url = f"http://{host}:{port}"

    try:
        health = httpx.get(f"{base_url}/health", timeout=5.0)
        ready = httpx.get(f"{base_url}/health/ready", timeout=5.0)
    except httpx.ConnectError:
        console.print(f"\n[red]✗ Cannot connect to promreader at {base_url}[/red]\n")
        raise typer.Exit(1)
    except httpx.TimeoutException:
        console.print(f"\n[red]✗ Connection timeout to {base_url}[/red]\n")
        raise typer.Exit(1)

    if health.status_code != 200:
        console.print(f"\n[yellow]⚠ /health responded with {health.status_code}[/yellow]\n")
        raise typer.Exit(1)

    data = health.json()
    console.print(f"\n[green]✓ promreader {data.get('version', 'unknown')} is running[/green]")

    if ready.status_code == 200:
        console.print("[green]✓ Ready to serve remote reads[/green]\n")
    else:
        console.print(f"[yellow]⚠ Not ready ({ready.status_code})[/yellow]\n")
        raise typer.Exit(1)
