"""
CSV importer for the bundled UNESCO World Heritage list.

Reads the whc001.csv export into heritage_sites, committing every
PIPELINE import_batch_size rows.

Usage:
    python -m heritage_pipeline.main import-csv
    python -m heritage_pipeline.main import-csv --force
"""

import csv
from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from loguru import logger

from heritage_pipeline.config import CSV_COLUMNS, DATE_INSCRIBED_COLUMNS, settings
from heritage_pipeline.database import HeritageSite
from heritage_pipeline.store import HeritageStore
from heritage_pipeline.utils.geo import parse_lat_lon
from heritage_pipeline.utils.text import clean_field, extract_year


@dataclass
class ImportResult:
    """Result of a CSV import run."""
    csv_path: Path
    rows_read: int = 0
    sites_saved: int = 0
    skipped: int = 0
    started_at: datetime | None = None
    completed_at: datetime | None = None
    errors: list[str] = field(default_factory=list)

    @property
    def duration_seconds(self) -> float | None:
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None


def _year_inscribed(row: dict) -> int | None:
    for column in DATE_INSCRIBED_COLUMNS:
        year = extract_year(row.get(column))
        if year is not None:
            return year
    return None


def parse_row(row: dict) -> HeritageSite | None:
    """
    Build a HeritageSite from one CSV row.

    Returns None for rows without a name. Unparseable coordinates are left
    unset so the enrichment sweep picks the site up.
    """
    name = clean_field(row.get(CSV_COLUMNS["name"]))
    if not name:
        return None

    lat, lon = parse_lat_lon(row.get(CSV_COLUMNS["coordinates"]))

    return HeritageSite(
        name=name,
        country=clean_field(row.get(CSV_COLUMNS["country"])),
        region=clean_field(row.get(CSV_COLUMNS["region"])),
        category=clean_field(row.get(CSV_COLUMNS["category"])),
        short_description=clean_field(row.get(CSV_COLUMNS["short_description"])),
        main_image_url=clean_field(row.get(CSV_COLUMNS["main_image_url"])),
        gallery_image_urls=clean_field(row.get(CSV_COLUMNS["gallery_image_urls"])),
        latitude=lat,
        longitude=lon,
        year_inscribed=_year_inscribed(row),
    )


def read_csv(csv_path: Path) -> Iterator[dict]:
    # utf-8-sig drops the BOM the UNESCO export starts with
    with open(csv_path, encoding="utf-8-sig", newline="") as f:
        yield from csv.DictReader(f)


def import_csv(
    store: HeritageStore,
    csv_path: Path | None = None,
    batch_size: int | None = None,
) -> ImportResult:
    """
    Import every row of the CSV into the store.

    Raises:
        FileNotFoundError: if the CSV does not exist
        SQLAlchemyError: if a batch commit fails
    """
    csv_path = Path(csv_path or settings.pipeline.csv_path)
    batch_size = batch_size or settings.pipeline.import_batch_size
    result = ImportResult(csv_path=csv_path, started_at=datetime.now())

    if not csv_path.exists():
        raise FileNotFoundError(f"CSV not found: {csv_path}")

    logger.info(f"Importing heritage sites from {csv_path}")
    batch = []

    for row in read_csv(csv_path):
        result.rows_read += 1

        site = parse_row(row)
        if site is None:
            result.skipped += 1
            result.errors.append(f"row {result.rows_read}: missing name")
            continue

        batch.append(site)
        if len(batch) >= batch_size:
            store.add_all(batch)
            store.commit()
            result.sites_saved += len(batch)
            logger.info(f"Committed batch of {len(batch)} sites (total: {result.sites_saved})")
            batch = []

    if batch:
        store.add_all(batch)
        store.commit()
        result.sites_saved += len(batch)
        logger.info(f"Committed final batch of {len(batch)} sites")

    result.completed_at = datetime.now()
    logger.info(
        f"CSV import completed: {result.sites_saved} saved, {result.skipped} skipped "
        f"in {result.duration_seconds:.1f}s"
    )
    return result


def import_initial_csv_if_needed(
    store: HeritageStore, csv_path: Path | None = None
) -> ImportResult | None:
    """Import the CSV only when the store is empty. Returns None when skipped."""
    existing = store.count()
    if existing > 0:
        logger.debug(f"Skipping CSV import: {existing} sites already stored")
        return None
    return import_csv(store, csv_path)


def reimport_from_csv(store: HeritageStore, csv_path: Path | None = None) -> ImportResult:
    """Delete every stored site, then import the CSV again."""
    csv_path = Path(csv_path or settings.pipeline.csv_path)
    if not csv_path.exists():
        raise FileNotFoundError(f"CSV not found: {csv_path}")

    store.delete_all()
    return import_csv(store, csv_path)
