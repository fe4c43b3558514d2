"""
Wikidata client: resolves a site's QID and extracts its coordinates, image
and Commons category.

Strategy:
1. wbsearchentities for "{name} {country}" (up to 3 candidates), preferring
   the candidate described as a World Heritage Site
2. Special:EntityData/{qid}.json, reading the first claim of
   P625 (coordinate location), P18 (image) and P373 (Commons category)
3. The P18 filename is resolved to a direct URL + license through Commons
"""

from loguru import logger

from heritage_pipeline.config import settings
from heritage_pipeline.enrichment.caches import ResolutionCaches, identifier_key
from heritage_pipeline.enrichment.commons import CommonsClient
from heritage_pipeline.enrichment.models import (
    EMPTY_BUNDLE,
    Coordinates,
    Entity,
    EntityDataResponse,
    EntitySearchResponse,
    GlobeCoordinate,
    ImageInfo,
    SearchCandidate,
    WikidataBundle,
    parse_response,
)
from heritage_pipeline.utils.http import Fetcher, fetch_json

# =============================================================================
# Configuration
# =============================================================================

WIKIDATA_API_URL = "https://www.wikidata.org/w/api.php"
WIKIDATA_ENTITY_URL = "https://www.wikidata.org/wiki/Special:EntityData/{qid}.json"

PROP_COORDINATES = "P625"
PROP_IMAGE = "P18"
PROP_COMMONS_CATEGORY = "P373"

WORLD_HERITAGE_MARKER = "world heritage"


def choose_candidate(candidates: list[SearchCandidate]) -> SearchCandidate | None:
    """Prefer a candidate described as a World Heritage Site, else the first one."""
    for candidate in candidates:
        if candidate.description and WORLD_HERITAGE_MARKER in candidate.description.lower():
            return candidate
    return candidates[0] if candidates else None


class WikidataClient:
    """QID lookup and per-entity bundle extraction."""

    def __init__(
        self,
        caches: ResolutionCaches | None = None,
        commons: CommonsClient | None = None,
        fetch: Fetcher = fetch_json,
        language: str | None = None,
        search_limit: int | None = None,
    ):
        self.caches = caches if caches is not None else ResolutionCaches()
        self.fetch = fetch
        self.commons = commons or CommonsClient(fetch=fetch)
        self.language = language or settings.enrichment.language
        self.search_limit = search_limit or settings.enrichment.search_limit

    def resolve_identifier(self, name: str, country: str) -> str | None:
        """
        Find the Wikidata QID for a site.

        Returns:
            QID (e.g. "Q10285") or None if the search finds nothing or fails
        """
        key = identifier_key(name, country)
        if key in self.caches.qids:
            return self.caches.qids[key]

        payload = self.fetch(
            WIKIDATA_API_URL,
            params={
                "action": "wbsearchentities",
                "search": f"{name} {country}".strip(),
                "language": self.language,
                "type": "item",
                "limit": self.search_limit,
                "format": "json",
            },
        )
        response = parse_response(EntitySearchResponse, payload)
        if response is None:
            return None

        candidates = [c for c in response.search if c.id]
        candidate = choose_candidate(candidates)
        if candidate is None:
            logger.debug(f"No Wikidata candidates for '{name}' ({country})")
            return None

        self.caches.qids[key] = candidate.id
        logger.debug(f"Resolved '{name}' -> {candidate.id} ({candidate.description})")
        return candidate.id

    def fetch_bundle(self, qid: str) -> WikidataBundle:
        """
        Extract coordinates, image and Commons category for one entity.

        Each part is independent: a missing claim leaves only that part empty.
        A failed fetch returns an all-empty bundle.
        """
        payload = self.fetch(WIKIDATA_ENTITY_URL.format(qid=qid))
        response = parse_response(EntityDataResponse, payload)
        if response is None or not response.entities:
            return EMPTY_BUNDLE

        # Redirected items are keyed by their target id
        entity = response.entities.get(qid) or next(iter(response.entities.values()))

        return WikidataBundle(
            coordinates=self._coordinates(entity),
            image=self._image(qid, entity),
            media_category=self._category(qid, entity),
        )

    def _coordinates(self, entity: Entity) -> Coordinates | None:
        coord = parse_response(GlobeCoordinate, entity.first_value(PROP_COORDINATES))
        if coord is None or coord.latitude is None or coord.longitude is None:
            return None
        return Coordinates(coord.latitude, coord.longitude)

    def _image(self, qid: str, entity: Entity) -> ImageInfo | None:
        if qid in self.caches.images:
            return self.caches.images[qid]

        filename = entity.first_value(PROP_IMAGE)
        if not isinstance(filename, str) or not filename:
            return None

        image = self.commons.resolve_image_info(filename)
        if image is not None:
            self.caches.images[qid] = image
        return image

    def _category(self, qid: str, entity: Entity) -> str | None:
        category = entity.first_value(PROP_COMMONS_CATEGORY)
        if not isinstance(category, str) or not category:
            return self.caches.categories.get(qid)

        self.caches.categories[qid] = category
        return category
