"""Text processing utility functions for the data pipeline."""

import re

YEAR_PATTERN = re.compile(r"\b(1[0-9]{3}|20[0-9]{2})\b")


def extract_year(text: str | None) -> int | None:
    """Extract the first 4-digit year from a free-form string.

    Handles values like "1997", "1997-2000" or "Inscribed 1987; extended 2005".

    Args:
        text: Raw text

    Returns:
        Year as integer or None
    """
    if not text:
        return None

    match = YEAR_PATTERN.search(text)
    return int(match.group(1)) if match else None


def to_wiki_title(name: str) -> str:
    """Normalize a page, file or category name to MediaWiki title form.

    MediaWiki treats spaces and underscores as equivalent; titles are
    requested with underscores.
    """
    return name.strip().replace(" ", "_")


def clean_field(value: str | None) -> str | None:
    """Strip a CSV cell, mapping empty strings to None."""
    if value is None:
        return None
    value = value.strip()
    return value or None
