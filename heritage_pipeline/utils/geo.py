"""Geographic utility functions for the data pipeline."""


def is_valid_coordinates(lat: float, lon: float) -> bool:
    """Check if latitude and longitude are valid.

    Args:
        lat: Latitude in degrees
        lon: Longitude in degrees

    Returns:
        True if coordinates are valid, False otherwise
    """
    return -90 <= lat <= 90 and -180 <= lon <= 180


def has_coordinates(lat: float | None, lon: float | None) -> bool:
    """Check whether a stored coordinate pair counts as set.

    Either value missing, or exactly (0, 0), means the site has no location.
    """
    if lat is None or lon is None:
        return False
    return not (lat == 0 and lon == 0)


def parse_lat_lon(value: str | None) -> tuple[float | None, float | None]:
    """Parse a "lat, lon" string into (latitude, longitude).

    Args:
        value: String like "41.8902, 12.4922"

    Returns:
        Tuple of (latitude, longitude) or (None, None) if parsing fails
    """
    if not value or not isinstance(value, str):
        return None, None

    parts = value.split(",")
    if len(parts) != 2:
        return None, None

    try:
        lat = float(parts[0].strip())
        lon = float(parts[1].strip())
    except ValueError:
        return None, None

    if not is_valid_coordinates(lat, lon):
        return None, None
    return lat, lon
