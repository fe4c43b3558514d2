"""
Record store for heritage sites.

A thin wrapper over one SQLAlchemy session exposing the operations the
importer, the enrichment sweep and the CLI need: predicate queries, single
record saves and discarding in-memory changes.
"""

from typing import Iterable

from loguru import logger
from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.sql import ColumnElement

from heritage_pipeline.database import HeritageSite
from heritage_pipeline.enrichment.scanner import (
    MISSING_COORDINATES,
    MISSING_GALLERY,
    MISSING_MAIN_IMAGE,
)


class HeritageStore:
    """Key-indexed access to HeritageSite rows through one session."""

    def __init__(self, session: Session):
        self.session = session

    def query(self, predicate: ColumnElement[bool] | None = None) -> list[HeritageSite]:
        """Return all sites matching `predicate` (all sites when None), ordered by id."""
        stmt = select(HeritageSite).order_by(HeritageSite.id)
        if predicate is not None:
            stmt = stmt.where(predicate)
        return list(self.session.scalars(stmt))

    def get(self, site_id: int) -> HeritageSite | None:
        return self.session.get(HeritageSite, site_id)

    def save(self, site: HeritageSite) -> None:
        """
        Commit one site's pending changes.

        Raises:
            SQLAlchemyError: the transaction is rolled back before re-raising
        """
        try:
            self.session.add(site)
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            raise

    def refresh(self, site: HeritageSite) -> None:
        """Discard in-memory state so the next access reloads from the database."""
        if site in self.session:
            self.session.expire(site)

    def add_all(self, sites: Iterable[HeritageSite]) -> None:
        self.session.add_all(sites)

    def commit(self) -> None:
        self.session.commit()

    def count(self, predicate: ColumnElement[bool] | None = None) -> int:
        stmt = select(func.count(HeritageSite.id))
        if predicate is not None:
            stmt = stmt.where(predicate)
        return self.session.scalar(stmt) or 0

    def delete_all(self) -> int:
        """Delete every site. Returns the number of rows removed."""
        result = self.session.execute(delete(HeritageSite))
        self.session.commit()
        logger.info(f"Deleted {result.rowcount} heritage sites")
        return result.rowcount

    def coverage_stats(self) -> dict:
        """Counts of sites with and without each enrichable field."""
        by_source = self.session.execute(
            select(HeritageSite.data_source, func.count(HeritageSite.id))
            .where(HeritageSite.data_source.is_not(None))
            .group_by(HeritageSite.data_source)
        ).all()

        return {
            "total": self.count(),
            "missing_main_image": self.count(MISSING_MAIN_IMAGE),
            "missing_gallery": self.count(MISSING_GALLERY),
            "missing_coordinates": self.count(MISSING_COORDINATES),
            "with_wikidata_qid": self.count(HeritageSite.wikidata_qid.is_not(None)),
            "by_source": {source.value: n for source, n in by_source},
        }
