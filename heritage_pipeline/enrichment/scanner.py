"""
Gap scanner: finds heritage sites missing a main image, a gallery or
coordinates, and classifies which of the three each one lacks.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, NamedTuple

from sqlalchemy import or_

from heritage_pipeline.database import HeritageSite
from heritage_pipeline.enrichment.models import GapFlags
from heritage_pipeline.utils.geo import has_coordinates

if TYPE_CHECKING:
    from heritage_pipeline.store import HeritageStore

# =============================================================================
# Store predicates
# =============================================================================

MISSING_MAIN_IMAGE = or_(
    HeritageSite.main_image_url.is_(None),
    HeritageSite.main_image_url == "",
)

MISSING_GALLERY = or_(
    HeritageSite.gallery_image_urls.is_(None),
    HeritageSite.gallery_image_urls == "",
)

MISSING_COORDINATES = or_(
    HeritageSite.latitude.is_(None),
    HeritageSite.longitude.is_(None),
    (HeritageSite.latitude == 0) & (HeritageSite.longitude == 0),
)

ANY_GAP = or_(MISSING_MAIN_IMAGE, MISSING_GALLERY, MISSING_COORDINATES)


# =============================================================================
# Classification
# =============================================================================

class GapRecord(NamedTuple):
    site: HeritageSite
    flags: GapFlags


@dataclass
class GapCounts:
    """Per-field missing counts, captured before enrichment."""
    main_image: int = 0
    gallery: int = 0
    coordinates: int = 0


def classify_gaps(site: HeritageSite) -> GapFlags:
    """Compute a site's gap flags from its current field values."""
    return GapFlags(
        needs_main_image=not site.main_image_url,
        needs_gallery=not site.gallery_image_urls,
        needs_coordinates=not has_coordinates(site.latitude, site.longitude),
    )


def find_gap_records(store: "HeritageStore") -> list[GapRecord]:
    """
    Load every site missing at least one tracked field.

    Read-only. The result is materialized once and not refreshed while the
    sweep runs.
    """
    records = []
    for site in store.query(ANY_GAP):
        flags = classify_gaps(site)
        if flags.has_gaps:
            records.append(GapRecord(site, flags))
    return records


def count_missing(records: list[GapRecord]) -> GapCounts:
    counts = GapCounts()
    for record in records:
        counts.main_image += record.flags.needs_main_image
        counts.gallery += record.flags.needs_gallery
        counts.coordinates += record.flags.needs_coordinates
    return counts
