"""
Wikipedia image fallback.

Used when Wikidata has no P18 image: full-text search for the site, then the
page summary's thumbnail.
"""

from urllib.parse import quote

from loguru import logger

from heritage_pipeline.config import settings
from heritage_pipeline.enrichment.models import (
    PageSummary,
    QueryResponse,
    WikiImage,
    parse_response,
)
from heritage_pipeline.utils.http import Fetcher, fetch_json
from heritage_pipeline.utils.text import to_wiki_title

WIKIPEDIA_API_URL = "https://{lang}.wikipedia.org/w/api.php"
WIKIPEDIA_SUMMARY_URL = "https://{lang}.wikipedia.org/api/rest_v1/page/summary/{title}"


class WikipediaClient:
    def __init__(self, fetch: Fetcher = fetch_json, language: str | None = None):
        self.fetch = fetch
        self.language = language or settings.enrichment.language

    def search_title(self, query: str) -> str | None:
        """Title of the best full-text match for `query`."""
        payload = self.fetch(
            WIKIPEDIA_API_URL.format(lang=self.language),
            params={
                "action": "query",
                "list": "search",
                "srsearch": query,
                "srlimit": 1,
                "format": "json",
            },
        )
        response = parse_response(QueryResponse, payload)
        if response is None or response.query is None or not response.query.search:
            return None
        return response.query.search[0].title or None

    def fetch_fallback_image(self, name: str, country: str) -> WikiImage | None:
        """
        Thumbnail of the Wikipedia article best matching "{name} {country}".

        License is not known on this path.
        """
        title = self.search_title(f"{name} {country}".strip())
        if not title:
            return None

        url = WIKIPEDIA_SUMMARY_URL.format(
            lang=self.language,
            title=quote(to_wiki_title(title), safe=""),
        )
        summary = parse_response(PageSummary, self.fetch(url))
        if summary is None or summary.thumbnail is None or not summary.thumbnail.source:
            logger.debug(f"No thumbnail on Wikipedia page '{title}'")
            return None

        return WikiImage(url=summary.thumbnail.source)
