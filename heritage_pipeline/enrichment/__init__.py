"""
Enrichment pipeline.

Fills in missing main images, galleries and coordinates for heritage sites
from Wikidata, Wikimedia Commons, Wikipedia and an approximate geocoder.
"""

__all__ = [
    'models',
    'caches',
    'scanner',
    'wikidata',
    'commons',
    'wikipedia',
    'geocoder',
    'report',
    'orchestrator',
]
