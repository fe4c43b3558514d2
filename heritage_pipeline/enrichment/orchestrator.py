"""
Enrichment sweep over heritage sites with missing data.

For every site missing a main image, a gallery or coordinates, in order:
1. Resolve the Wikidata QID (cached per name+country, persisted on the site)
2. Fetch the Wikidata bundle: P625 coordinates, P18 image, P373 category
3. Coordinates: Wikidata, else approximate geocoder
4. Main image: Wikidata (via Commons), else Wikipedia page thumbnail
5. Gallery: Commons category files, else reuse the main image
6. Save the site (one commit per site) and add a report row

Sites are processed one at a time on a single background worker; a site
already being processed by another sweep is skipped.

Usage:
    python -m heritage_pipeline.main enrich
    python -m heritage_pipeline.main run
"""

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from contextlib import AbstractContextManager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from heritage_pipeline.config import settings
from heritage_pipeline.database import DataSource, HeritageSite, get_session
from heritage_pipeline.enrichment.caches import ResolutionCaches
from heritage_pipeline.enrichment.commons import CommonsClient
from heritage_pipeline.enrichment.geocoder import Geocoder
from heritage_pipeline.enrichment.models import EMPTY_BUNDLE, GapFlags, WikidataBundle
from heritage_pipeline.enrichment.report import MissingReport
from heritage_pipeline.enrichment.scanner import GapCounts, count_missing, find_gap_records
from heritage_pipeline.enrichment.wikidata import WikidataClient
from heritage_pipeline.enrichment.wikipedia import WikipediaClient
from heritage_pipeline.store import HeritageStore
from heritage_pipeline.utils.http import Fetcher, fetch_json


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


# =============================================================================
# Data Classes
# =============================================================================

@dataclass
class RecordOutcome:
    """What one site's enrichment changed."""
    coordinates: bool = False
    main_image: bool = False
    gallery: bool = False
    identifiers: bool = False

    @property
    def changed(self) -> bool:
        return self.coordinates or self.main_image or self.gallery or self.identifiers


@dataclass
class SweepSummary:
    targets: int = 0
    processed: int = 0
    skipped_in_flight: int = 0
    saved: int = 0
    failed: int = 0
    coordinates_filled: int = 0
    main_images_filled: int = 0
    galleries_filled: int = 0
    missing: GapCounts = field(default_factory=GapCounts)
    report_path: Path | None = None
    cancelled: bool = False
    aborted: bool = False

    def add(self, outcome: RecordOutcome) -> None:
        self.coordinates_filled += outcome.coordinates
        self.main_images_filled += outcome.main_image
        self.galleries_filled += outcome.gallery


# =============================================================================
# Orchestrator
# =============================================================================

class EnrichmentOrchestrator:
    """
    Owns the resolution caches, the in-flight set and the background worker.

    Create one per process and reuse it: caches and the in-flight set live as
    long as the orchestrator.
    """

    def __init__(
        self,
        caches: ResolutionCaches | None = None,
        wikidata: WikidataClient | None = None,
        commons: CommonsClient | None = None,
        wikipedia: WikipediaClient | None = None,
        geocoder: Geocoder | None = None,
        fetch: Fetcher = fetch_json,
        report_dir: Path | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        if caches is None:
            caches = wikidata.caches if wikidata is not None else ResolutionCaches()
        self.caches = caches
        self.commons = commons or CommonsClient(fetch=fetch)
        self.wikidata = wikidata or WikidataClient(caches=caches, commons=self.commons, fetch=fetch)
        self.wikipedia = wikipedia or WikipediaClient(fetch=fetch)
        self.geocoder = geocoder or Geocoder(fetch=fetch)
        self.report_dir = Path(report_dir or settings.pipeline.report_dir)
        self.clock = clock

        self._in_flight: set[int] = set()
        self._lock = threading.Lock()
        self._cancel = threading.Event()
        self._executor: ThreadPoolExecutor | None = None

    # -------------------------------------------------------------------------
    # In-flight tracking
    # -------------------------------------------------------------------------

    def try_claim(self, site_id: int) -> bool:
        """Mark a site in flight. False if another sweep already holds it."""
        with self._lock:
            if site_id in self._in_flight:
                return False
            self._in_flight.add(site_id)
            return True

    def release(self, site_id: int) -> None:
        with self._lock:
            self._in_flight.discard(site_id)

    def is_in_flight(self, site_id: int) -> bool:
        with self._lock:
            return site_id in self._in_flight

    def cancel(self) -> None:
        """Stop the running sweep before its next site. No effect between sweeps."""
        self._cancel.set()

    @property
    def report_path(self) -> Path:
        return self.report_dir / settings.enrichment.report_filename

    # -------------------------------------------------------------------------
    # Sweep
    # -------------------------------------------------------------------------

    def run_sweep(self, store: HeritageStore) -> SweepSummary:
        """
        Enrich every site currently missing data, one at a time.

        Never raises for per-site problems; only a failure to list the gap
        sites ends the sweep early (summary.aborted).
        """
        summary = SweepSummary()
        self._cancel.clear()

        try:
            targets = find_gap_records(store)
        except SQLAlchemyError as e:
            logger.error(f"Enrichment failed listing gap sites: {e}")
            summary.aborted = True
            return summary

        if not targets:
            logger.info("Enrichment: no targets")
            return summary

        summary.targets = len(targets)
        summary.missing = count_missing(targets)
        logger.info(f"Enrichment targets: {summary.targets}")

        report = MissingReport()

        for i, (site, flags) in enumerate(targets):
            if self._cancel.is_set():
                logger.warning(f"Enrichment cancelled after {i}/{summary.targets} sites")
                summary.cancelled = True
                break

            site_id = site.id
            if not self.try_claim(site_id):
                logger.debug(f"Skipping site {site_id}: already in flight")
                summary.skipped_in_flight += 1
                continue

            try:
                name = site.name or ""
                country = site.country or ""
                self._process(store, site, flags, summary)
                report.add(name, country, flags)
                summary.processed += 1
            finally:
                self.release(site_id)

            if summary.processed and summary.processed % 50 == 0:
                logger.info(f"  Progress: {i + 1}/{summary.targets} ({summary.saved} saved)")

        if len(report):
            summary.report_path = report.write(self.report_path)

        m = summary.missing
        logger.info(
            f"Enrichment missing counts -> main: {m.main_image}, "
            f"gallery: {m.gallery}, coords: {m.coordinates}"
        )
        logger.info(
            f"Enrichment completed: {summary.processed} processed, {summary.saved} saved, "
            f"{summary.failed} failed, {summary.skipped_in_flight} skipped | filled "
            f"coords={summary.coordinates_filled} main={summary.main_images_filled} "
            f"gallery={summary.galleries_filled}"
        )
        return summary

    def _process(
        self,
        store: HeritageStore,
        site: HeritageSite,
        flags: GapFlags,
        summary: SweepSummary,
    ) -> None:
        """Enrich one site and commit it. Failures are logged, not raised."""
        try:
            outcome = self.enrich_site(site, flags)
        except Exception:
            logger.exception(f"Enrichment error for '{site.name}'")
            store.refresh(site)
            summary.failed += 1
            return

        summary.add(outcome)
        if not outcome.changed:
            return

        try:
            store.save(site)
            summary.saved += 1
        except SQLAlchemyError as e:
            logger.error(f"Enrichment save error for '{site.name}': {e}")
            summary.failed += 1
        finally:
            store.refresh(site)

    def enrich_site(self, site: HeritageSite, flags: GapFlags) -> RecordOutcome:
        """
        Fill the fields `flags` marks as missing, mutating `site` in memory.

        The caller is responsible for saving.
        """
        outcome = RecordOutcome()
        name = site.name or ""
        country = site.country or ""

        qid = site.wikidata_qid
        if not qid:
            qid = self.wikidata.resolve_identifier(name, country)
            if qid:
                site.wikidata_qid = qid
                outcome.identifiers = True

        bundle: WikidataBundle = EMPTY_BUNDLE
        if qid:
            bundle = self.wikidata.fetch_bundle(qid)
            if bundle.media_category and bundle.media_category != site.commons_category:
                site.commons_category = bundle.media_category
                outcome.identifiers = True

        if flags.needs_coordinates:
            outcome.coordinates = self._fill_coordinates(site, bundle, name, country)

        if flags.needs_main_image:
            outcome.main_image = self._fill_main_image(site, bundle, name, country)

        if flags.needs_gallery:
            outcome.gallery = self._fill_gallery(site, bundle)

        return outcome

    def _stamp(self, site: HeritageSite, source: DataSource) -> None:
        site.enriched_at = self.clock()
        site.data_source = source

    def _fill_coordinates(
        self, site: HeritageSite, bundle: WikidataBundle, name: str, country: str
    ) -> bool:
        source = DataSource.WIKIDATA
        coords = bundle.coordinates
        if coords is None:
            source = DataSource.GEOCODER
            coords = self.geocoder.geocode_approximate(name, country)
        if coords is None:
            return False

        site.latitude = coords.lat
        site.longitude = coords.lon
        self._stamp(site, source)
        return True

    def _fill_main_image(
        self, site: HeritageSite, bundle: WikidataBundle, name: str, country: str
    ) -> bool:
        if bundle.image is not None:
            site.main_image_url = bundle.image.url
            site.image_license = bundle.image.license
            self._stamp(site, DataSource.WIKIDATA)
            return True

        wiki_image = self.wikipedia.fetch_fallback_image(name, country)
        if wiki_image is None:
            return False

        site.main_image_url = wiki_image.url
        if wiki_image.license:
            site.image_license = wiki_image.license
        self._stamp(site, DataSource.WIKIPEDIA)
        return True

    def _fill_gallery(self, site: HeritageSite, bundle: WikidataBundle) -> bool:
        category = bundle.media_category or site.commons_category
        if category:
            urls = self.commons.list_category_images(category)
            if urls:
                site.gallery_image_urls = ";".join(urls)
                self._stamp(site, DataSource.WIKIDATA)
                return True

        # Derived from data already on the site, so provenance is left alone
        if site.main_image_url:
            site.gallery_image_urls = site.main_image_url
            return True
        return False

    # -------------------------------------------------------------------------
    # Background execution
    # -------------------------------------------------------------------------

    def start_if_needed(
        self,
        session_factory: Callable[[], AbstractContextManager[Session]] = get_session,
    ) -> Future:
        """Queue a sweep on the single background worker."""
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="enrichment")

        future = self._executor.submit(self._run_in_session, session_factory)
        future.add_done_callback(_log_failure)
        return future

    def _run_in_session(
        self, session_factory: Callable[[], AbstractContextManager[Session]]
    ) -> SweepSummary:
        with session_factory() as session:
            return self.run_sweep(HeritageStore(session))

    def shutdown(self, wait: bool = True) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=wait)
            self._executor = None


def _log_failure(future: Future) -> None:
    if future.cancelled():
        return
    error = future.exception()
    if error is not None:
        logger.opt(exception=error).error(f"Enrichment sweep failed: {error}")
