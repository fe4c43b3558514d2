"""
Value types and typed API response shapes for the enrichment pipeline.

Every response model field is optional and unknown keys are ignored, so an
unexpected payload parses to "nothing found" instead of raising.
"""

from dataclasses import dataclass
from typing import Any, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, TypeAdapter, ValidationError, field_validator
from loguru import logger


# =============================================================================
# Values produced by the source clients
# =============================================================================

@dataclass(frozen=True)
class GapFlags:
    """Which tracked fields a site is missing."""
    needs_main_image: bool
    needs_gallery: bool
    needs_coordinates: bool

    @property
    def has_gaps(self) -> bool:
        return self.needs_main_image or self.needs_gallery or self.needs_coordinates


@dataclass(frozen=True)
class Coordinates:
    lat: float
    lon: float


@dataclass(frozen=True)
class ImageInfo:
    """A Commons file resolved to a direct URL."""
    url: str
    license: str = ""


@dataclass(frozen=True)
class WikiImage:
    """A Wikipedia page thumbnail. License is unknown for this path."""
    url: str
    license: Optional[str] = None


@dataclass(frozen=True)
class WikidataBundle:
    """Coordinates, image and Commons category extracted from one entity."""
    coordinates: Optional[Coordinates] = None
    image: Optional[ImageInfo] = None
    media_category: Optional[str] = None


EMPTY_BUNDLE = WikidataBundle()


# =============================================================================
# Response parsing
# =============================================================================

class Lenient(BaseModel):
    """Base for API response shapes."""
    model_config = ConfigDict(extra="ignore")


M = TypeVar("M", bound=BaseModel)


def parse_response(model: type[M], payload: Any) -> M | None:
    """Validate a decoded JSON payload, returning None if it does not fit."""
    if payload is None:
        return None
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        logger.debug(f"Unexpected {model.__name__} payload: {e.error_count()} errors")
        return None


def _pages_as_list(v: Any) -> Any:
    # formatversion=1 returns pages keyed by page id
    if isinstance(v, dict):
        return list(v.values())
    return v


# --- Wikidata wbsearchentities ------------------------------------------------

class SearchCandidate(Lenient):
    id: Optional[str] = None
    label: Optional[str] = None
    description: Optional[str] = None


class EntitySearchResponse(Lenient):
    search: list[SearchCandidate] = []


# --- Wikidata Special:EntityData ----------------------------------------------

class DataValue(Lenient):
    type: Optional[str] = None
    value: Any = None


class Snak(Lenient):
    snaktype: Optional[str] = None
    datavalue: Optional[DataValue] = None


class Claim(Lenient):
    mainsnak: Optional[Snak] = None

    @property
    def value(self) -> Any:
        if self.mainsnak and self.mainsnak.datavalue:
            return self.mainsnak.datavalue.value
        return None


class GlobeCoordinate(Lenient):
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class Entity(Lenient):
    """
    One Wikidata item.

    Claims stay raw; only the properties read through first_value() are
    validated, so a malformed statement elsewhere does not hide them.
    """
    id: Optional[str] = None
    claims: dict[str, Any] = {}

    @field_validator("claims", mode="before")
    @classmethod
    def empty_claims(cls, v: Any) -> Any:
        # entities without statements serialize claims as []
        return v or {}

    def first_value(self, prop: str) -> Any:
        claims = self.claims.get(prop)
        if not isinstance(claims, list) or not claims:
            return None
        claim = parse_response(Claim, claims[0])
        return claim.value if claim else None


class EntityDataResponse(Lenient):
    entities: dict[str, Entity] = {}


# --- MediaWiki action=query (Commons, Wikipedia) ------------------------------

class ExtMetadataField(Lenient):
    value: Any = None


class ImageInfoEntry(Lenient):
    url: Optional[str] = None
    extmetadata: dict[str, Any] = {}

    def meta(self, key: str) -> Optional[str]:
        field = parse_response(ExtMetadataField, self.extmetadata.get(key))
        if field and isinstance(field.value, str) and field.value:
            return field.value
        return None


class QueryPage(Lenient):
    title: Optional[str] = None
    imageinfo: list[ImageInfoEntry] = []


class SearchHit(Lenient):
    title: Optional[str] = None


class QueryBody(Lenient):
    """The `query` object. Pages are validated one by one in valid_pages()."""
    pages: list[Any] = []
    search: list[SearchHit] = []

    @field_validator("pages", mode="before")
    @classmethod
    def normalize_pages(cls, v: Any) -> Any:
        return _pages_as_list(v)

    def valid_pages(self) -> list[QueryPage]:
        """Pages that parse, in API order; malformed pages are skipped."""
        pages = (parse_response(QueryPage, page) for page in self.pages)
        return [page for page in pages if page is not None]


class QueryResponse(Lenient):
    query: Optional[QueryBody] = None


# --- Wikipedia REST page/summary ----------------------------------------------

class Thumbnail(Lenient):
    source: Optional[str] = None


class PageSummary(Lenient):
    title: Optional[str] = None
    thumbnail: Optional[Thumbnail] = None


# --- Nominatim search ---------------------------------------------------------

class GeocodePlace(Lenient):
    lat: Optional[float] = None
    lon: Optional[float] = None
    display_name: Optional[str] = None


GeocodeResults = TypeAdapter(list[GeocodePlace])


def parse_geocode_results(payload: Any) -> list[GeocodePlace]:
    if payload is None:
        return []
    try:
        return GeocodeResults.validate_python(payload)
    except ValidationError as e:
        logger.debug(f"Unexpected geocoder payload: {e.error_count()} errors")
        return []
