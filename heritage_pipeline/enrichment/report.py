"""
Missing-data report for an enrichment sweep.

One CSV row per processed site with the gap flags it had *before*
enrichment, written once at the end of the sweep.
"""

import csv
import io
from pathlib import Path

from loguru import logger

from heritage_pipeline.enrichment.models import GapFlags

REPORT_HEADER = ["name", "country", "needsMainImage", "needsGallery", "needsCoordinates"]


def atomic_write_text(dest_path: Path, content: str) -> Path:
    """Write text to a temp file beside `dest_path`, then rename it into place."""
    dest_path = Path(dest_path)
    dest_path.parent.mkdir(parents=True, exist_ok=True)

    temp_path = dest_path.with_suffix(dest_path.suffix + ".tmp")

    try:
        temp_path.write_text(content, encoding="utf-8")
        temp_path.replace(dest_path)
        return dest_path
    except Exception:
        if temp_path.exists():
            temp_path.unlink()
        raise


class MissingReport:
    """Accumulates report rows in memory until the sweep ends."""

    def __init__(self):
        self.rows: list[list[str]] = []

    def __len__(self) -> int:
        return len(self.rows)

    def add(self, name: str, country: str, flags: GapFlags) -> None:
        self.rows.append([
            name,
            country,
            str(flags.needs_main_image),
            str(flags.needs_gallery),
            str(flags.needs_coordinates),
        ])

    def to_csv(self) -> str:
        """Render header and rows. Values containing commas are double-quoted."""
        buffer = io.StringIO()
        writer = csv.writer(buffer, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
        writer.writerow(REPORT_HEADER)
        writer.writerows(self.rows)
        return buffer.getvalue()

    def write(self, path: Path) -> Path | None:
        """Write the report, returning its path, or None if the write failed."""
        try:
            atomic_write_text(path, self.to_csv())
        except OSError as e:
            logger.error(f"Missing report export failed: {e}")
            return None

        logger.info(f"Missing report exported to: {path} ({len(self.rows)} rows)")
        return Path(path)
