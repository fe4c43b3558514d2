"""
Wikimedia Commons client.

Resolves file names to direct image URLs with license text, and lists the
first files of a Commons category for site galleries.
"""

from loguru import logger

from heritage_pipeline.config import settings
from heritage_pipeline.enrichment.models import ImageInfo, QueryResponse, parse_response
from heritage_pipeline.utils.http import Fetcher, fetch_json
from heritage_pipeline.utils.text import to_wiki_title

# Wikimedia Commons API
COMMONS_API_URL = "https://commons.wikimedia.org/w/api.php"


class CommonsClient:
    """Image info and category listing against the Commons API."""

    def __init__(self, fetch: Fetcher = fetch_json, gallery_limit: int | None = None):
        self.fetch = fetch
        self.gallery_limit = gallery_limit or settings.enrichment.gallery_limit

    def resolve_image_info(self, filename: str) -> ImageInfo | None:
        """
        Resolve a Commons file name (as stored in Wikidata P18) to its URL.

        License preference: LicenseShortName, then LicenseUrl, else "".
        """
        title = f"File:{to_wiki_title(filename)}"
        payload = self.fetch(
            COMMONS_API_URL,
            params={
                "action": "query",
                "titles": title,
                "prop": "imageinfo",
                "iiprop": "url|extmetadata",
                "format": "json",
                "formatversion": "2",
            },
        )
        response = parse_response(QueryResponse, payload)
        if response is None or response.query is None:
            return None

        for page in response.query.valid_pages():
            if not page.imageinfo or not page.imageinfo[0].url:
                continue
            info = page.imageinfo[0]
            license_text = info.meta("LicenseShortName") or info.meta("LicenseUrl") or ""
            return ImageInfo(url=info.url, license=license_text)

        logger.debug(f"No image info for {title}")
        return None

    def list_category_images(self, category: str) -> list[str]:
        """
        Direct URLs of the first files in a Commons category.

        Returns up to `gallery_limit` URLs in API order; empty on failure.
        """
        if not category or not category.strip():
            return []

        payload = self.fetch(
            COMMONS_API_URL,
            params={
                "action": "query",
                "generator": "categorymembers",
                "gcmtitle": f"Category:{to_wiki_title(category)}",
                "gcmtype": "file",
                "gcmlimit": self.gallery_limit,
                "prop": "imageinfo",
                "iiprop": "url",
                "format": "json",
                "formatversion": "2",
            },
        )
        response = parse_response(QueryResponse, payload)
        if response is None or response.query is None:
            return []

        urls = []
        for page in response.query.valid_pages():
            if page.imageinfo and page.imageinfo[0].url:
                urls.append(page.imageinfo[0].url)
        return urls[:self.gallery_limit]
