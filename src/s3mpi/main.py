"""Main entry point for the s3mpi CLI.

Provides a Typer-based CLI for reading, writing and inspecting serialized
objects on S3.
"""

from pathlib import Path
from typing import Any, Optional

import pandas as pd
import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from s3mpi import __version__
from s3mpi.config import ensure_config_exists, get_config_path, load_config
from s3mpi.errors import FetchFailure, ObjectLoadError, RemoteFetchError, RemoteMetadataError
from s3mpi.formats import StorageFormat
from s3mpi.logging_config import setup_logging
from s3mpi.session import S3Session

console = Console()

app = typer.Typer(
    name="s3mpi",
    help="Read and write serialized objects on S3",
    rich_markup_mode="rich",
)


def version_callback(value: bool) -> None:
    """Callback for --version flag."""
    if value:
        console.print(f"s3mpi version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """s3mpi: Read and write serialized objects on S3.

    ## Commands

    * [bold cyan]get[/bold cyan] - Fetch an object and show a summary
    * [bold cyan]put[/bold cyan] - Upload a local file as an object
    * [bold cyan]info[/bold cyan] - Show when an object was last modified
    * [bold cyan]config[/bold cyan] - Show or change configuration
    """
    pass


def _open_session(config_path: Optional[Path]) -> S3Session:
    """Load config, start logging and build a session; exit 1 on failure."""
    config = load_config(config_path)
    setup_logging(config.log_dir)
    try:
        return S3Session(config)
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)


def _parse_format(storage_format: Optional[str]) -> Optional[StorageFormat]:
    if storage_format is None:
        return None
    try:
        return StorageFormat.parse(storage_format)
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)


def _summarize(path: str, obj: Any) -> Panel:
    """Build a short description of a fetched object."""
    if isinstance(obj, pd.DataFrame):
        rows, cols = obj.shape
        columns = ", ".join(str(c) for c in obj.columns[:10])
        if cols > 10:
            columns += ", ..."
        body = (
            f"[cyan]Type:[/cyan] DataFrame\n"
            f"[cyan]Shape:[/cyan] {rows:,} rows x {cols} columns\n"
            f"[cyan]Columns:[/cyan] {columns}"
        )
    else:
        text = repr(obj)
        if len(text) > 500:
            text = text[:500] + "..."
        body = f"[cyan]Type:[/cyan] {type(obj).__name__}\n[cyan]Value:[/cyan] {text}"
    return Panel.fit(body, title=path, border_style="green")


@app.command("get")
def get_object(
    path: str = typer.Argument(..., help="S3 path (s3://bucket/key)"),
    storage_format: str = typer.Option(
        None,
        "--format",
        "-f",
        help="Storage format: pickle, csv or table (default from config)",
    ),
    output: Path = typer.Option(
        None,
        "--output",
        "-o",
        help="Also save the object to this local file",
    ),
    config_path: Path = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to config file",
    ),
) -> None:
    """Fetch an object from S3 and show a summary."""
    fmt = _parse_format(storage_format)
    session = _open_session(config_path)

    try:
        result = session.read(path, storage_format=fmt)
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
    except ObjectLoadError as e:
        console.print(f"[red]Error: {e}[/red]")
        console.print("[dim]Check the --format option matches how the object was stored.[/dim]")
        raise typer.Exit(1)

    if isinstance(result, FetchFailure):
        console.print(f"[red]{result}[/red]")
        raise typer.Exit(1)

    console.print(_summarize(path, result))

    if output:
        output.parent.mkdir(parents=True, exist_ok=True)
        (fmt or session.default_format).dump(result, output)
        console.print(f"[green]Saved to {output}[/green]")


@app.command("put")
def put_object(
    file: Path = typer.Argument(..., help="Local file to upload"),
    path: str = typer.Argument(..., help="Destination S3 path (s3://bucket/key)"),
    storage_format: str = typer.Option(
        None,
        "--format",
        "-f",
        help="Storage format: pickle, csv or table (default from config)",
    ),
    config_path: Path = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to config file",
    ),
) -> None:
    """Load a local file and store it on S3."""
    if not file.exists():
        console.print(f"[red]File not found: {file}[/red]")
        raise typer.Exit(1)

    fmt = _parse_format(storage_format)
    session = _open_session(config_path)
    fmt = fmt or session.default_format

    try:
        url = session.write(fmt.load(file), path, storage_format=fmt)
    except ObjectLoadError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
    except RemoteFetchError as e:
        console.print(f"[red]Upload failed (status {e.status}): {e}[/red]")
        raise typer.Exit(1)

    console.print(f"[green]Uploaded {file} to {url}[/green]")


@app.command("info")
def show_info(
    path: str = typer.Argument(..., help="S3 path (s3://bucket/key)"),
    config_path: Path = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to config file",
    ),
) -> None:
    """Show when an object was last modified."""
    session = _open_session(config_path)

    try:
        modified = session.last_modified(path)
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
    except RemoteMetadataError as e:
        console.print(f"[red]Error reading from S3: key {e.key} not found (status {e.status}).[/red]")
        raise typer.Exit(1)

    table = Table(title="Object Information")
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Path", path)
    table.add_row("Last Modified", modified.strftime("%Y-%m-%d %H:%M:%S UTC"))
    console.print(table)


@app.command()
def config(
    action: str = typer.Argument(
        ...,
        help="Action to perform (show, get, set, path)",
    ),
    key: str = typer.Argument(
        None,
        help="Configuration key (for get and set actions)",
    ),
    value: str = typer.Argument(
        None,
        help="Configuration value (for set action)",
    ),
) -> None:
    """Manage configuration.

    Examples:
        s3mpi config show          # Show all configuration
        s3mpi config get cache_capacity
        s3mpi config set cache_capacity 20
        s3mpi config path          # Show config file path
    """
    if action == "show":
        try:
            cfg = ensure_config_exists()
        except OSError as e:
            console.print(f"[red]Error loading config: {e}[/red]")
            raise typer.Exit(1)

        panel = Panel.fit(
            f"[cyan]Bucket Location:[/cyan] {cfg.bucket_location}\n"
            f"[cyan]Endpoint:[/cyan] {cfg.endpoint_url or '(not set)'}\n"
            f"[cyan]Timeouts:[/cyan] connect {cfg.connect_timeout}s, read {cfg.read_timeout}s\n"
            f"[cyan]Cache Capacity:[/cyan] {cfg.cache_capacity}\n"
            f"[cyan]Max Entry Size:[/cyan] {cfg.max_entry_bytes or 'unlimited'}\n"
            f"[cyan]LRU Cache Disabled:[/cyan] {cfg.disable_lru_cache}\n"
            f"[cyan]Default Format:[/cyan] {cfg.default_format}\n"
            f"[cyan]Log Directory:[/cyan] {cfg.log_dir}",
            title="Configuration",
            border_style="green",
        )
        console.print(panel)

    elif action == "get":
        if not key:
            console.print("[red]Usage: s3mpi config get <key>[/red]")
            raise typer.Exit(1)

        try:
            cfg = ensure_config_exists()
        except OSError as e:
            console.print(f"[red]Error loading config: {e}[/red]")
            raise typer.Exit(1)

        setting = cfg.get(key)
        if setting is None:
            console.print(f"[red]Unknown configuration key: {key}[/red]")
            raise typer.Exit(1)
        console.print(setting)

    elif action == "set":
        if not key or value is None:
            console.print("[red]Usage: s3mpi config set <key> <value>[/red]")
            raise typer.Exit(1)

        try:
            cfg = ensure_config_exists()
            cfg.set(key, value)
            cfg.save()
            console.print(f"[green]Set {key} = {value}[/green]")
        except ValueError as e:
            console.print(f"[red]Error: {e}[/red]")
            raise typer.Exit(1)

    elif action == "path":
        console.print(get_config_path())

    else:
        console.print(f"[red]Unknown action: {action}[/red]")
        console.print("Valid actions: show, get, set, path")
        raise typer.Exit(1)


# Entry point for the CLI
def cli_entry() -> None:
    """Entry point for the CLI application."""
    app()


if __name__ == "__main__":
    cli_entry()
