"""Geospatial helpers."""

import math

EARTH_RADIUS_KM = 6371.0

# Browsers report speed in m/s, analytics store km/h
MS_TO_KMH = 3.6


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in kilometers between two lat/lon points.

    Args:
        lat1: Latitude 1 in degrees.
        lon1: Longitude 1 in degrees.
        lat2: Latitude 2 in degrees.
        lon2: Longitude 2 in degrees.

    Returns:
        Distance in kilometers.
    """
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2.0) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2.0) ** 2
    c = 2.0 * math.atan2(math.sqrt(a), math.sqrt(1.0 - a))
    return EARTH_RADIUS_KM * c


def speed_to_kmh(speed_ms: float | None) -> float:
    """Convert a speed in m/s to km/h, treating missing values as zero."""
    if speed_ms is None:
        return 0.0
    return speed_ms * MS_TO_KMH
