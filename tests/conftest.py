# SPDX-License-Identifier: MIT
"""Pytest configuration and fixtures for World Heritage Explorer pipeline tests."""

import os
from contextlib import contextmanager
from typing import Any, Generator

import pytest

# Set test environment variables before importing the pipeline
os.environ.setdefault("TESTING", "true")
os.environ.setdefault("DISABLE_LOGGING", "1")
os.environ["DATABASE_URL"] = "sqlite:///:memory:"


# =============================================================================
# Database
# =============================================================================

@pytest.fixture
def engine():
    """Fresh in-memory database with all tables created."""
    from heritage_pipeline.database import Base, make_engine

    engine = make_engine("sqlite://")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine) -> Generator:
    from sqlalchemy.orm import Session

    session = Session(engine, autoflush=False)
    yield session
    session.close()


@pytest.fixture
def store(session):
    from heritage_pipeline.store import HeritageStore

    return HeritageStore(session)


@pytest.fixture
def session_factory(engine):
    """Stand-in for database.get_session bound to the test engine."""
    from sqlalchemy.orm import Session

    @contextmanager
    def factory():
        session = Session(engine, autoflush=False)
        try:
            yield session
            session.commit()
        finally:
            session.close()

    return factory


@pytest.fixture
def make_site(store):
    """Create and commit a HeritageSite, returning it."""
    from heritage_pipeline.database import HeritageSite

    def factory(**fields):
        site = HeritageSite(**{"name": "Test Site", "country": "Italy", **fields})
        store.save(site)
        return site

    return factory


@pytest.fixture
def sample_sites(make_site) -> list:
    """One complete site and three with different gaps."""
    return [
        make_site(
            name="Historic Centre of Rome",
            country="Italy",
            latitude=41.8902,
            longitude=12.4922,
            main_image_url="https://upload.wikimedia.org/rome.jpg",
            gallery_image_urls="https://upload.wikimedia.org/rome.jpg",
        ),
        make_site(
            name="Acropolis, Athens",
            country="Greece",
            latitude=37.9715,
            longitude=23.7267,
        ),
        make_site(
            name="Memphis and its Necropolis",
            country="Egypt",
            latitude=0.0,
            longitude=0.0,
            main_image_url="https://upload.wikimedia.org/memphis.jpg",
            gallery_image_urls="https://upload.wikimedia.org/memphis.jpg",
        ),
        make_site(
            name="Old Town of Lijiang",
            country="China",
            main_image_url="https://upload.wikimedia.org/lijiang.jpg",
        ),
    ]


# =============================================================================
# Network stubs
# =============================================================================

class StubFetcher:
    """
    Replacement for utils.http.fetch_json that answers from canned routes.

    A route matches when `url_part` occurs in the URL and every given param
    equals the request's param. Unmatched requests return None, the same as a
    failed lookup.
    """

    def __init__(self):
        self.routes: list[tuple[str, dict, Any]] = []
        self.calls: list[tuple[str, dict]] = []

    def add(self, url_part: str, response: Any, **params) -> "StubFetcher":
        self.routes.append((url_part, params, response))
        return self

    def __call__(self, url: str, params: dict | None = None, **kwargs) -> Any:
        params = params or {}
        self.calls.append((url, params))
        for url_part, match, response in self.routes:
            if url_part in url and all(params.get(k) == v for k, v in match.items()):
                return response
        return None

    def calls_to(self, url_part: str) -> list[tuple[str, dict]]:
        return [call for call in self.calls if url_part in call[0]]


@pytest.fixture
def stub_fetch() -> StubFetcher:
    return StubFetcher()


def _claim(datatype: str, value: Any) -> dict:
    return {
        "mainsnak": {
            "snaktype": "value",
            "datavalue": {"type": datatype, "value": value},
        },
        "type": "statement",
        "rank": "normal",
    }


@pytest.fixture
def entity_payload():
    """Builder for Special:EntityData responses."""

    def build(qid: str, coords=None, image=None, category=None, key=None) -> dict:
        claims = {}
        if coords is not None:
            claims["P625"] = [_claim("globecoordinate", {
                "latitude": coords[0],
                "longitude": coords[1],
                "precision": 0.0001,
                "globe": "http://www.wikidata.org/entity/Q2",
            })]
        if image is not None:
            claims["P18"] = [_claim("string", image)]
        if category is not None:
            claims["P373"] = [_claim("string", category)]
        return {"entities": {key or qid: {"id": key or qid, "type": "item", "claims": claims or []}}}

    return build


@pytest.fixture
def search_payload():
    """Builder for wbsearchentities responses from (id, description) pairs."""

    def build(*candidates) -> dict:
        return {
            "searchinfo": {"search": "query"},
            "search": [
                {"id": qid, "label": qid, "description": description}
                for qid, description in candidates
            ],
            "success": 1,
        }

    return build


@pytest.fixture
def imageinfo_payload():
    """Builder for Commons imageinfo responses (formatversion=2)."""

    def build(url: str, license_short: str | None = None, license_url: str | None = None) -> dict:
        extmetadata = {}
        if license_short is not None:
            extmetadata["LicenseShortName"] = {"value": license_short, "source": "commons-desc-page"}
        if license_url is not None:
            extmetadata["LicenseUrl"] = {"value": license_url, "source": "commons-desc-page"}
        return {
            "batchcomplete": True,
            "query": {
                "pages": [{
                    "ns": 6,
                    "title": "File:Image.jpg",
                    "imageinfo": [{"url": url, "extmetadata": extmetadata}],
                }],
            },
        }

    return build


@pytest.fixture
def category_payload():
    """Builder for Commons categorymembers+imageinfo responses."""

    def build(*urls: str) -> dict:
        return {
            "batchcomplete": True,
            "query": {
                "pages": [
                    {"ns": 6, "title": f"File:Image {i}.jpg", "imageinfo": [{"url": url}]}
                    for i, url in enumerate(urls)
                ],
            },
        }

    return build


# =============================================================================
# Logging
# =============================================================================

@pytest.fixture
def log_messages() -> Generator:
    """Capture loguru messages emitted during a test."""
    from loguru import logger

    messages: list[str] = []
    handler_id = logger.add(lambda m: messages.append(m.record["message"]), level="DEBUG")
    yield messages
    logger.remove(handler_id)
