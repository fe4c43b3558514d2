"""Utility modules for the data pipeline."""

from heritage_pipeline.utils.geo import (
    has_coordinates,
    is_valid_coordinates,
    parse_lat_lon,
)
from heritage_pipeline.utils.http import fetch_json, fetch_with_retry
from heritage_pipeline.utils.logging import setup_logging
from heritage_pipeline.utils.text import clean_field, extract_year, to_wiki_title

__all__ = [
    # HTTP utilities
    "fetch_with_retry",
    "fetch_json",
    # Logging
    "setup_logging",
    # Geographic utilities
    "is_valid_coordinates",
    "has_coordinates",
    "parse_lat_lon",
    # Text utilities
    "extract_year",
    "to_wiki_title",
    "clean_field",
]
