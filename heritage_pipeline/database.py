"""
Database models for the World Heritage Explorer catalog.

Uses SQLAlchemy 2.0. The default backend is a local SQLite file; any
SQLAlchemy URL can be configured through DATABASE_URL.
"""

import enum
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Optional

from sqlalchemy import (
    create_engine,
    Boolean,
    DateTime,
    Enum as SQLEnum,
    Float,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import (
    DeclarativeBase,
    Mapped,
    mapped_column,
    sessionmaker,
)
from sqlalchemy.pool import StaticPool
from sqlalchemy.sql import func

from heritage_pipeline.config import settings


# =============================================================================
# Database Engine and Session
# =============================================================================

def make_engine(url: str, echo: bool = False) -> Engine:
    """
    Create an engine for the catalog database.

    SQLite connections are shared with the background enrichment worker, so
    the same-thread check is disabled. In-memory databases use a single
    static connection so every session sees the same data.
    """
    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        database = make_url(url).database
        if database in (None, "", ":memory:"):
            kwargs["poolclass"] = StaticPool
        else:
            Path(database).parent.mkdir(parents=True, exist_ok=True)
        return create_engine(url, echo=echo, **kwargs)

    return create_engine(
        url,
        echo=echo,
        pool_pre_ping=True,
        pool_timeout=30,
        pool_recycle=1800,
    )


engine = make_engine(
    settings.database.url,
    echo=settings.database.echo or settings.pipeline.log_level == "DEBUG",
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@contextmanager
def get_session():
    """Context manager for database sessions."""
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_db(bind: Engine | None = None) -> None:
    """Create all tables if they do not exist."""
    Base.metadata.create_all(bind=bind or engine)


# =============================================================================
# Base Model
# =============================================================================

class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class DataSource(str, enum.Enum):
    """Provenance of the last enrichment write."""
    WIKIDATA = "wikidata"
    WIKIPEDIA = "wikipedia"
    GEOCODER = "clgeocoder"


# =============================================================================
# Heritage Site
# =============================================================================

class HeritageSite(Base):
    """
    One UNESCO World Heritage site.

    Created in bulk by the CSV importer and filled in field by field by the
    enrichment sweep. User flags (is_favorite, is_visited) are never touched
    by enrichment.
    """
    __tablename__ = "heritage_sites"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Core fields
    name: Mapped[str] = mapped_column(String(500), nullable=False, index=True)
    country: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)  # may list several states
    region: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    category: Mapped[Optional[str]] = mapped_column(String(50), nullable=True, index=True)
    short_description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    year_inscribed: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # Images
    main_image_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    gallery_image_urls: Mapped[Optional[str]] = mapped_column(Text, nullable=True)  # ';'-joined
    image_license: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    # Location; (0, 0) means unset
    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    # Enrichment provenance
    data_source: Mapped[Optional[DataSource]] = mapped_column(
        SQLEnum(
            DataSource,
            native_enum=False,
            length=20,
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=True,
    )
    enriched_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    wikidata_qid: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    commons_category: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    # User flags
    is_favorite: Mapped[bool] = mapped_column(Boolean, default=False)
    is_visited: Mapped[bool] = mapped_column(Boolean, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    __table_args__ = (
        Index("idx_heritage_sites_name_country", "name", "country"),
    )

    @property
    def gallery(self) -> list[str]:
        """Gallery URLs as a list."""
        if not self.gallery_image_urls:
            return []
        return [u for u in self.gallery_image_urls.split(";") if u]

    def __repr__(self) -> str:
        return f"<HeritageSite {self.name} ({self.latitude}, {self.longitude})>"
