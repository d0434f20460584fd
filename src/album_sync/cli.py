"""Command-line interface for album sync."""

import asyncio
import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler

from album_sync.api_client import ImmichAPIClient
from album_sync.config import load_config
from album_sync.exceptions import ConfigError
from album_sync.graph import SyncGraph
from album_sync.models import EdgeReport, EdgeState, SyncReport
from album_sync.propagation import run_sync

app = typer.Typer(
    name="album-sync",
    help="Synchronize assets between shared Immich albums",
    add_completion=False,
)
console = Console()

EXIT_CONFIG_ERROR = 2


def setup_logging(verbose: bool) -> None:
    """Configure logging with Rich handler.

    Args:
        verbose: Enable verbose (DEBUG) logging
    """
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, console=console)],
    )


def print_edge_report(report: EdgeReport) -> None:
    """Print the outcome of a single edge."""
    edge = report.edge
    if report.state is EdgeState.SKIPPED:
        console.print(f"[yellow]Skipped[/yellow] {edge}: {report.error}")
    elif report.state is EdgeState.NO_OP:
        console.print(f"{edge}: nothing to synchronize")
    elif report.state is EdgeState.DRY_RUN_REPORTED:
        console.print(f"{edge}: {len(report.missing)} asset(s) would be synced")
        for asset in report.missing:
            console.print(f"  - {asset.file_name}")
    else:
        console.print(
            f"{edge}: [green]{report.uploaded_count} uploaded[/green], "
            f"{report.already_present} already present, "
            f"[red]{report.failed_count} failed[/red]"
        )


def print_summary(report: SyncReport, dry_run: bool) -> None:
    """Print the run summary and every failure reason."""
    console.print("\n[bold]Sync Summary:[/bold]")
    console.print(f"  Edges processed: {len(report.edges)}")
    if dry_run:
        would_upload = sum(len(edge.missing) for edge in report.edges)
        console.print(f"  Assets that would be uploaded: {would_upload}")
    else:
        console.print(f"  [green]Uploaded: {report.uploaded_count}[/green]")
        console.print(f"  [red]Failed: {report.failed_count}[/red]")
    if report.skipped_edges:
        console.print(f"  [yellow]Skipped edges: {len(report.skipped_edges)}[/yellow]")

    if report.fetch_errors:
        console.print("\n[bold red]Albums that could not be fetched:[/bold red]")
        for name, error in report.fetch_errors.items():
            console.print(f"  - {name}: {error}")

    failures = [(edge, failure) for edge in report.edges for failure in edge.failures]
    if failures:
        console.print("\n[bold red]Failed assets:[/bold red]")
        for edge, failure in failures:
            console.print(f"  - {failure.file_name} ({edge.edge}): {failure.reason}")


async def async_sync(
    graph: SyncGraph,
    dry_run: bool,
    max_concurrent: int,
) -> int:
    """Async sync implementation.

    Args:
        graph: Sync graph built from the configuration
        dry_run: If True, only report missing assets
        max_concurrent: Maximum concurrent album fetches and uploads

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    logger = logging.getLogger(__name__)

    try:
        async with ImmichAPIClient() as api_client:
            report = await run_sync(
                graph,
                api_client,
                dry_run=dry_run,
                max_concurrent_fetches=max_concurrent,
                max_concurrent_uploads=max_concurrent,
                report_sink=print_edge_report,
            )
    except Exception as e:
        logger.error(f"Sync failed: {e}", exc_info=True)
        return 1

    print_summary(report, dry_run)
    return 1 if report.has_failures else 0


@app.command()
def sync(
    config: Path = typer.Option(
        ...,
        "--config",
        "-c",
        envvar="ALBUM_SYNC_CONFIG",
        help="Path to the TOML album configuration (or set ALBUM_SYNC_CONFIG env var)",
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        "-d",
        help="Only print missing assets, do not upload anything",
    ),
    max_concurrent: int = typer.Option(
        1,
        "--max-concurrent",
        "-j",
        min=1,
        max=16,
        help="Maximum number of concurrent transfers",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose logging",
    ),
) -> None:
    """Synchronize shared albums.

    Every album listed in the configuration receives the assets it is missing
    from the albums named in its sync_with list. Assets only move one hop per
    edge, so a chain of albums may need a second run to settle.
    """
    setup_logging(verbose)

    try:
        graph = SyncGraph.from_config(load_config(config))
    except ConfigError as e:
        console.print(f"[red]Configuration error: {e}[/red]")
        raise typer.Exit(EXIT_CONFIG_ERROR)

    exit_code = asyncio.run(async_sync(graph, dry_run, max_concurrent))
    raise typer.Exit(exit_code)


if __name__ == "__main__":
    app()
