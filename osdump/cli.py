"""CLI interface for osdump using Typer.

This module provides the main entry point for the osdump tool, with
commands for dumping an index, counting its documents, reading a dump
back, and verifying the local environment.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import NoReturn, Optional

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from .core.config import (
    DEFAULT_BASE_URL,
    DEFAULT_CA_PATH,
    DEFAULT_INDEX,
    DEFAULT_OUTPUT_PATH,
    DEFAULT_PASSWORD,
    DEFAULT_QUALITY,
    DEFAULT_USER,
    DEFAULT_WINDOW_SIZE,
    ExportConfig,
)
from .core.errors import ExportError
from .core.pipeline import ExportPipeline
from .core.sink import iter_records
from .core.work_queue import DEFAULT_CAPACITY
from .transport.search_client import SearchClient
from .utils.logging import mask_sensitive_data, setup_logging

# Load .env file if present
load_dotenv()

app = typer.Typer(
    name="osdump",
    help="Export an OpenSearch/Elasticsearch index to a newline-delimited JSON file.",
    add_completion=False,
)

console = Console()


def _format_bytes(size_bytes: float) -> str:
    """Format bytes to human-readable size.

    Args:
        size_bytes: Size in bytes.

    Returns:
        Human-readable size string.
    """
    for unit in ["B", "KB", "MB", "GB", "TB"]:
        if size_bytes < 1024:
            return f"{size_bytes:.1f} {unit}"
        size_bytes /= 1024
    return f"{size_bytes:.1f} PB"


def _fail(error: ExportError) -> NoReturn:
    """Report a fatal export error and exit with status 1."""
    console.print(f"[red]Dump failed during {error.phase}:[/red] {error}")
    raise typer.Exit(1)


BaseOption = typer.Option(
    DEFAULT_BASE_URL, "--base", envvar="OSDUMP_BASE", help="OpenSearch base URL"
)
UserOption = typer.Option(DEFAULT_USER, "--user", envvar="OSDUMP_USER", help="OpenSearch user")
PasswordOption = typer.Option(
    DEFAULT_PASSWORD, "--password", envvar="OSDUMP_PASSWORD", help="OpenSearch password"
)
CaOption = typer.Option(DEFAULT_CA_PATH, "--ca", envvar="OSDUMP_CA", help="CA certificate")
IndexOption = typer.Option(
    DEFAULT_INDEX, "--index", "-i", envvar="OSDUMP_INDEX", help="OpenSearch index"
)


@app.command()
def dump(
    base: str = BaseOption,
    user: str = UserOption,
    password: str = PasswordOption,
    ca: Path = CaOption,
    index: str = IndexOption,
    size: int = typer.Option(DEFAULT_WINDOW_SIZE, "--size", "-s", help="Search window size"),
    file: Path = typer.Option(
        DEFAULT_OUTPUT_PATH, "--file", "-f", help="Target file for export (must not exist)"
    ),
    brotli: bool = typer.Option(False, "--brotli", help="Compress using Brotli"),
    quality: int = typer.Option(DEFAULT_QUALITY, "--quality", help="Brotli quality setting (0-11)"),
    queue_capacity: int = typer.Option(
        DEFAULT_CAPACITY,
        "--queue-capacity",
        help="Records buffered between network and disk",
    ),
    progress: bool = typer.Option(True, "--progress/--no-progress", help="Show a progress bar"),
    log_file: Optional[Path] = typer.Option(None, "--log-file", help="Also log to this file"),
    debug: bool = typer.Option(False, "--debug", "-v", help="Debug logging"),
) -> None:
    """
    Dump every document of an index into a file, one JSON document per line.

    Example:
        osdump dump --base https://localhost:9200 --index graylog_0 --file graylog_0.json
    """
    logger = setup_logging(verbose=debug, log_file=log_file)

    config = ExportConfig(
        base_url=base,
        user=user,
        password=password,
        ca_path=ca,
        index=index,
        window_size=size,
        output_path=file,
        brotli=brotli,
        quality=quality,
        queue_capacity=queue_capacity,
        debug=debug,
        show_progress=progress,
    )

    # Display configuration
    console.print("\n[bold cyan]Dump Configuration[/bold cyan]")
    console.print(f"  Base URL:        {config.base_url}")
    console.print(f"  User:            {config.user}")
    console.print(f"  Password:        {mask_sensitive_data(config.password)}")
    if config.use_tls:
        console.print(f"  CA certificate:  {config.ca_path}")
    console.print(f"  Index:           {config.index}")
    console.print(f"  Window size:     {config.window_size}")
    console.print(f"  Output file:     {config.output_path}")
    console.print(f"  Brotli:          {config.brotli} (quality {config.quality})")
    console.print(f"  Queue capacity:  {config.queue_capacity}")
    console.print()

    try:
        stats = ExportPipeline(config, logger=logger).run()
    except KeyboardInterrupt:
        console.print("\n[yellow]Dump interrupted by user.[/yellow]")
        raise typer.Exit(130)
    except ExportError as e:
        logger.debug("Dump failed with exception", exc_info=True)
        _fail(e)

    table = Table(title=f"Dump Summary: {stats.index}")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Documents (pre-flight)", f"{stats.documents_reported:,}")
    table.add_row("Records written", f"[green]{stats.records:,}[/green]")
    table.add_row("Pages fetched", f"{stats.pages_fetched:,}")
    table.add_row("Data written", _format_bytes(stats.bytes_written))
    table.add_row("Duration", f"{stats.duration_seconds():.1f}s")
    table.add_row("Throughput", f"{stats.records_per_second():,.0f} records/s")
    console.print(table)

    if stats.records != stats.documents_reported:
        console.print(
            f"[yellow]Warning:[/yellow] index reported {stats.documents_reported:,} documents "
            f"but {stats.records:,} were dumped (index changed during the dump?)"
        )


@app.command()
def count(
    base: str = BaseOption,
    user: str = UserOption,
    password: str = PasswordOption,
    ca: Path = CaOption,
    index: str = IndexOption,
    debug: bool = typer.Option(False, "--debug", "-v", help="Debug logging"),
) -> None:
    """
    Print the number of documents in an index.
    """
    setup_logging(verbose=debug)
    config = ExportConfig(base_url=base, user=user, password=password, ca_path=ca, index=index)

    try:
        config.validate()
        with SearchClient.from_config(config) as client:
            total = client.count()
    except ExportError as e:
        _fail(e)

    console.print(f"Index [cyan]{index}[/cyan] has [bold]{total:,}[/bold] documents")


@app.command()
def cat(
    file: Path = typer.Argument(..., help="Dump file to read"),
    brotli: bool = typer.Option(False, "--brotli", help="Decompress Brotli output"),
    limit: Optional[int] = typer.Option(None, "--limit", "-n", help="Stop after this many lines"),
) -> None:
    """
    Write the records of a dump to stdout, decompressing if needed.
    """
    if not file.is_file():
        console.print(f"[red]Error:[/red] Dump file not found: {file}")
        raise typer.Exit(1)

    out = sys.stdout.buffer
    written = 0
    try:
        for record in iter_records(file, brotli_enabled=brotli):
            if limit is not None and written >= limit:
                break
            out.write(record)
            out.write(b"\n")
            written += 1
    except ExportError as e:
        _fail(e)
    finally:
        out.flush()


@app.command()
def check(
    base: str = BaseOption,
    ca: Path = CaOption,
    file: Path = typer.Option(DEFAULT_OUTPUT_PATH, "--file", "-f", help="Target file for export"),
) -> None:
    """
    Check local prerequisites for a dump.

    Verifies:
    - Python version
    - Required packages
    - CA certificate (for https base URLs)
    - Output file does not exist yet
    """
    table = Table(title="System Check")
    table.add_column("Component", style="cyan")
    table.add_column("Status")
    table.add_column("Details")

    all_ok = True

    # Python version
    py_version = sys.version_info
    py_ok = py_version >= (3, 9)
    table.add_row(
        "Python",
        "[green]OK[/green]" if py_ok else "[red]FAIL[/red]",
        f"{py_version.major}.{py_version.minor}.{py_version.micro}",
    )
    if not py_ok:
        all_ok = False

    # Required packages (distribution name, import name)
    packages = [
        ("typer", "typer"),
        ("rich", "rich"),
        ("python-dotenv", "dotenv"),
        ("requests", "requests"),
        ("Brotli", "brotli"),
    ]
    for dist, module in packages:
        try:
            __import__(module)
            table.add_row(f"Package: {dist}", "[green]OK[/green]", "Installed")
        except ImportError:
            table.add_row(f"Package: {dist}", "[red]FAIL[/red]", "Not installed")
            all_ok = False

    # CA certificate
    if base.startswith("https"):
        if ca.is_file():
            table.add_row("CA certificate", "[green]OK[/green]", str(ca))
        else:
            table.add_row("CA certificate", "[red]FAIL[/red]", f"Not found: {ca}")
            all_ok = False
    else:
        table.add_row("CA certificate", "[dim]SKIP[/dim]", "Plain http base URL")

    # Output file
    if file.exists():
        table.add_row("Output file", "[red]FAIL[/red]", f"Already exists: {file}")
        all_ok = False
    else:
        table.add_row("Output file", "[green]OK[/green]", str(file))

    console.print(table)

    if all_ok:
        console.print("\n[bold green]All checks passed![/bold green]")
    else:
        console.print("\n[bold yellow]Some checks failed.[/bold yellow]")
        raise typer.Exit(1)


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
