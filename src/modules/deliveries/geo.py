"""Great-circle distance, travel-time estimate and coordinate validation.

Pure functions with no Django dependency; used by matching, tracking and
the courier position endpoint.
"""

from __future__ import annotations

import math

from modules.core.exceptions import InvalidCoordinates

EARTH_RADIUS_KM = 6371.0
DEFAULT_AVERAGE_SPEED_KMH = 30.0


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Distance between two points in kilometres, rounded to 2 decimals."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)

    a = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return round(EARTH_RADIUS_KM * c, 2)


def estimate_eta_minutes(
    distance_km: float, avg_speed_kmh: float = DEFAULT_AVERAGE_SPEED_KMH
) -> int:
    """Whole minutes needed to cover *distance_km*, rounded up."""
    if avg_speed_kmh <= 0:
        raise ValueError("avg_speed_kmh must be positive.")
    if distance_km <= 0:
        return 0
    return math.ceil(distance_km * 60 / avg_speed_kmh)


def validate_coordinates(latitude: float, longitude: float) -> None:
    """Raise ``InvalidCoordinates`` unless both values are finite and in range."""
    for value in (latitude, longitude):
        if value is None or not math.isfinite(value):
            raise InvalidCoordinates("Coordinates must be finite numbers.")
    if not -90 <= latitude <= 90:
        raise InvalidCoordinates(f"Latitude {latitude} is outside [-90, 90].")
    if not -180 <= longitude <= 180:
        raise InvalidCoordinates(f"Longitude {longitude} is outside [-180, 180].")
