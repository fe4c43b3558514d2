"""
Configuration management for the World Heritage Explorer data pipeline.

Uses pydantic-settings for type-safe configuration with environment variable support.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Database connection settings."""

    model_config = SettingsConfigDict(
        env_prefix="DATABASE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    url: str = "sqlite:///./data/heritage.db"
    echo: bool = False


class PipelineSettings(BaseSettings):
    """Data pipeline settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Directories
    report_dir: Path = Field(default=Path("./data/reports"))

    # Bundled UNESCO list (whc001.csv export)
    csv_path: Path = Field(default=Path("./data/raw/whc001.csv"))

    # Logging
    log_level: str = "INFO"
    log_file: Path | None = None

    # Import settings
    import_batch_size: int = 200

    @field_validator("report_dir", mode="before")
    @classmethod
    def ensure_path(cls, v):
        """Convert string to Path and ensure directory exists."""
        path = Path(v)
        path.mkdir(parents=True, exist_ok=True)
        return path


class EnrichmentSettings(BaseSettings):
    """External source settings for the enrichment sweep."""

    model_config = SettingsConfigDict(
        env_prefix="ENRICHMENT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Bounded waits (seconds)
    http_timeout: float = 20.0
    geocode_timeout: float = 10.0

    # Pacing (seconds slept after every call)
    request_delay: float = 0.3
    geocode_delay: float = 0.7  # Nominatim allows 1 req/s

    # Connection errors and 429s only; timeouts are never retried
    http_max_attempts: int = 2
    http_retry_delay: float = 1.0

    user_agent: str = (
        "WorldHeritageExplorer/1.0 (heritage catalog enrichment; contact@worldheritage.local)"
    )
    language: str = "en"

    search_limit: int = 3
    gallery_limit: int = 5

    report_filename: str = "missing_report.csv"


class Settings(BaseSettings):
    """Main settings class that combines all settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Sub-settings
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    pipeline: PipelineSettings = Field(default_factory=PipelineSettings)
    enrichment: EnrichmentSettings = Field(default_factory=EnrichmentSettings)


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()


# Convenience function for quick access
settings = get_settings()


# =============================================================================
# Data Source Configuration
# =============================================================================

# Provenance tags written to heritage_sites.data_source
DATA_SOURCES = {
    "wikidata": {
        "name": "Wikidata",
        "description": "Structured data: coordinates (P625), image (P18), Commons category (P373)",
        "url": "https://www.wikidata.org/",
        "license": "CC0",
    },
    "wikipedia": {
        "name": "Wikipedia",
        "description": "Page summary thumbnail, used when Wikidata has no image",
        "url": "https://en.wikipedia.org/",
        "license": "CC BY-SA 4.0 (text); image licenses vary",
    },
    "clgeocoder": {
        "name": "Approximate geocoder",
        "description": "Forward geocode of 'name, country' when Wikidata has no coordinates",
        "url": "https://nominatim.openstreetmap.org/",
        "license": "ODbL",
        "attribution": "Data © OpenStreetMap contributors, ODbL 1.0",
    },
}

# Column mapping for the bundled UNESCO export
CSV_COLUMNS = {
    "name": "Name EN",
    "country": "States Names",
    "region": "Region",
    "coordinates": "Coordinates",
    "category": "Category",
    "short_description": "Short Description EN",
    "main_image_url": "Main Image",
    "gallery_image_urls": "Images",
}

# Tried in order; 'Secondary dates' is ignored
DATE_INSCRIBED_COLUMNS = ["Date inscribed", "Date Inscribed", "date inscribed"]
