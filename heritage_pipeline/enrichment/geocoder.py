"""
Approximate geocoder fallback.

Forward-geocodes "{name}, {country}" with Nominatim when Wikidata has no
coordinates for a site. Each lookup is a single attempt bounded at 10s by
default (a 429 is not retried) and is followed by an extra pause on top of
the HTTP layer's pacing, per the Nominatim usage policy.
"""

import time

from loguru import logger

from heritage_pipeline.config import settings
from heritage_pipeline.enrichment.models import Coordinates, parse_geocode_results
from heritage_pipeline.utils.geo import has_coordinates, is_valid_coordinates
from heritage_pipeline.utils.http import Fetcher, fetch_json

NOMINATIM_SEARCH_URL = "https://nominatim.openstreetmap.org/search"


class Geocoder:
    def __init__(
        self,
        fetch: Fetcher = fetch_json,
        timeout: float | None = None,
        delay: float | None = None,
    ):
        self.fetch = fetch
        self.timeout = timeout or settings.enrichment.geocode_timeout
        self.delay = settings.enrichment.geocode_delay if delay is None else delay

    def geocode_approximate(self, name: str, country: str) -> Coordinates | None:
        """First match for "{name}, {country}", or None on timeout/failure/no match."""
        query = f"{name}, {country}" if country else name

        try:
            payload = self.fetch(
                NOMINATIM_SEARCH_URL,
                params={"q": query, "format": "jsonv2", "limit": 1},
                timeout=self.timeout,
                max_attempts=1,
            )
        finally:
            if self.delay > 0:
                time.sleep(self.delay)

        places = parse_geocode_results(payload)
        if not places:
            logger.debug(f"Geocoder found nothing for '{query}'")
            return None

        place = places[0]
        if place.lat is None or place.lon is None:
            return None
        if not is_valid_coordinates(place.lat, place.lon) or not has_coordinates(place.lat, place.lon):
            return None

        logger.debug(f"Geocoded '{query}' -> ({place.lat}, {place.lon})")
        return Coordinates(place.lat, place.lon)
