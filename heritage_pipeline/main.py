#!/usr/bin/env python3
"""
World Heritage Explorer - Data Pipeline Entry Point

Imports the bundled UNESCO CSV and runs the enrichment sweep.

Usage:
    python -m heritage_pipeline.main import-csv
    python -m heritage_pipeline.main enrich
    python -m heritage_pipeline.main run
    python -m heritage_pipeline.main status
"""

from pathlib import Path

import click
from loguru import logger
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from heritage_pipeline.config import DATA_SOURCES, settings
from heritage_pipeline.database import get_session, init_db
from heritage_pipeline.enrichment.orchestrator import EnrichmentOrchestrator, SweepSummary
from heritage_pipeline.importer import import_initial_csv_if_needed, reimport_from_csv
from heritage_pipeline.store import HeritageStore


console = Console()


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def cli(debug):
    """World Heritage Explorer Data Pipeline"""
    if debug:
        from heritage_pipeline.utils.logging import setup_logging
        setup_logging(level="DEBUG")
    init_db()


def _print_summary(summary: SweepSummary) -> None:
    console.print("\n[bold]Enrichment Summary[/bold]")
    table = Table()
    table.add_column("Metric")
    table.add_column("Value")

    m = summary.missing
    table.add_row("Targets", str(summary.targets))
    table.add_row("Missing main image", str(m.main_image))
    table.add_row("Missing gallery", str(m.gallery))
    table.add_row("Missing coordinates", str(m.coordinates))
    table.add_row("Processed", str(summary.processed))
    table.add_row("Saved", str(summary.saved))
    table.add_row("Failed", str(summary.failed))
    table.add_row("Skipped (in flight)", str(summary.skipped_in_flight))
    table.add_row("Coordinates filled", str(summary.coordinates_filled))
    table.add_row("Main images filled", str(summary.main_images_filled))
    table.add_row("Galleries filled", str(summary.galleries_filled))
    table.add_row("Report", str(summary.report_path) if summary.report_path else "-")

    console.print(table)
    if summary.aborted:
        console.print("[red]Sweep aborted: could not list sites (see log)[/red]")
    elif summary.cancelled:
        console.print("[yellow]Sweep cancelled before completion[/yellow]")


def _import(csv_path: Path | None, force: bool) -> None:
    with get_session() as session:
        store = HeritageStore(session)
        if force:
            result = reimport_from_csv(store, csv_path)
        else:
            result = import_initial_csv_if_needed(store, csv_path)

    if result is None:
        console.print("[yellow]Sites already imported; use --force to re-import[/yellow]")
    else:
        console.print(
            f"[green]Imported {result.sites_saved} sites[/green] "
            f"({result.skipped} rows skipped) from {result.csv_path}"
        )


@cli.command("import-csv")
@click.option("--force", is_flag=True, help="Delete all sites and import again")
@click.option(
    "--csv-path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="CSV export to import (default: CSV_PATH)",
)
def import_csv_command(force: bool, csv_path: Path | None):
    """Import the UNESCO World Heritage CSV."""
    console.print("\n[bold blue]World Heritage Explorer - CSV Import[/bold blue]")
    console.print(f"Source: {csv_path or settings.pipeline.csv_path}\n")

    try:
        _import(csv_path, force)
    except FileNotFoundError as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(1)


@cli.command()
@click.option("--background", is_flag=True, help="Run the sweep on the background worker")
def enrich(background: bool):
    """Fill missing images, galleries and coordinates from online sources."""
    console.print("\n[bold blue]World Heritage Explorer - Enrichment[/bold blue]\n")

    orchestrator = EnrichmentOrchestrator()

    if background:
        future = orchestrator.start_if_needed()
        console.print("[dim]Sweep running on background worker (Ctrl+C to cancel)[/dim]")
        try:
            summary = future.result()
        except KeyboardInterrupt:
            orchestrator.cancel()
            summary = future.result()
        finally:
            orchestrator.shutdown()
    else:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
        ) as progress:
            task = progress.add_task("Enriching sites...", total=None)
            with get_session() as session:
                summary = orchestrator.run_sweep(HeritageStore(session))
            progress.update(task, description="[green]✓ Enrichment complete[/green]")

    _print_summary(summary)


@cli.command()
@click.option(
    "--csv-path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="CSV export to import when the catalog is empty",
)
def run(csv_path: Path | None):
    """Import the CSV if the catalog is empty, then run one enrichment sweep."""
    console.print("\n[bold blue]World Heritage Explorer - Pipeline Run[/bold blue]\n")

    try:
        _import(csv_path, force=False)
    except FileNotFoundError as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(1)

    orchestrator = EnrichmentOrchestrator()
    try:
        summary = orchestrator.start_if_needed().result()
    finally:
        orchestrator.shutdown()

    _print_summary(summary)


@cli.command()
def status():
    """Show catalog coverage statistics."""
    console.print("\n[bold blue]World Heritage Explorer - Pipeline Status[/bold blue]\n")

    with get_session() as session:
        stats = HeritageStore(session).coverage_stats()

    total = stats["total"]
    if not total:
        console.print("[yellow]No sites imported. Run 'import-csv' first.[/yellow]")
        return

    table = Table()
    table.add_column("Metric")
    table.add_column("Value")
    table.add_column("Coverage")

    def coverage(missing: int) -> str:
        return f"{(1 - missing / total) * 100:.1f}%"

    table.add_row("Sites", str(total), "")
    table.add_row("Missing main image", str(stats["missing_main_image"]), coverage(stats["missing_main_image"]))
    table.add_row("Missing gallery", str(stats["missing_gallery"]), coverage(stats["missing_gallery"]))
    table.add_row("Missing coordinates", str(stats["missing_coordinates"]), coverage(stats["missing_coordinates"]))
    table.add_row("With Wikidata QID", str(stats["with_wikidata_qid"]), f"{stats['with_wikidata_qid'] / total * 100:.1f}%")
    console.print(table)

    if stats["by_source"]:
        console.print("\n[bold]Last Enrichment Source[/bold]")
        source_table = Table()
        source_table.add_column("Source")
        source_table.add_column("Name")
        source_table.add_column("Sites")
        for source_id, count in sorted(stats["by_source"].items()):
            info = DATA_SOURCES.get(source_id, {})
            source_table.add_row(source_id, info.get("name", source_id), str(count))
        console.print(source_table)

    logger.debug(f"Coverage stats: {stats}")


if __name__ == "__main__":
    cli()
