"""
Process-lifetime resolution caches.

Owned by one EnrichmentOrchestrator and shared with its source clients, so
lookups done for one site are reused for every later site in the same
process (several sites often resolve to the same Wikidata item).
"""

from dataclasses import dataclass, field

from heritage_pipeline.enrichment.models import ImageInfo


def identifier_key(name: str, country: str) -> str:
    """Cache key for the name+country -> QID mapping."""
    return f"{name.lower()}|{country.lower()}"


@dataclass
class ResolutionCaches:
    """name|country -> QID, QID -> Commons category, QID -> image."""
    qids: dict[str, str] = field(default_factory=dict)
    categories: dict[str, str] = field(default_factory=dict)
    images: dict[str, ImageInfo] = field(default_factory=dict)

    def stats(self) -> dict[str, int]:
        return {
            "qids": len(self.qids),
            "categories": len(self.categories),
            "images": len(self.images),
        }
