"""Great-circle distance and travel-time helpers.

Points are ``(latitude, longitude)`` pairs in decimal degrees, or any object
exposing ``latitude`` and ``longitude`` attributes (such as the
GeoCoordinates value object).
"""

import math

from protean.exceptions import ValidationError

EARTH_RADIUS_KM = 6371.0


def _unpack(point, name: str) -> tuple[float, float]:
    if point is None:
        raise ValidationError({name: ["Coordinates are required"]})
    if hasattr(point, "latitude") and hasattr(point, "longitude"):
        lat, lng = point.latitude, point.longitude
    else:
        try:
            lat, lng = point
        except (TypeError, ValueError):
            raise ValidationError({name: ["Expected a (latitude, longitude) pair"]}) from None

    if lat is None or lng is None:
        raise ValidationError({name: ["Both latitude and longitude are required"]})
    try:
        lat, lng = float(lat), float(lng)
    except (TypeError, ValueError):
        raise ValidationError({name: ["Coordinates must be numbers"]}) from None
    if math.isnan(lat) or not -90.0 <= lat <= 90.0:
        raise ValidationError({name: [f"Latitude out of range: {lat}"]})
    if math.isnan(lng) or not -180.0 <= lng <= 180.0:
        raise ValidationError({name: [f"Longitude out of range: {lng}"]})
    return lat, lng


def distance_km(point_a, point_b) -> float:
    """Haversine distance in kilometres between two points."""
    lat1, lng1 = _unpack(point_a, "point_a")
    lat2, lng2 = _unpack(point_b, "point_b")

    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def eta_minutes(distance: float, avg_speed_kmh: float) -> float:
    """Minutes needed to cover ``distance`` km at ``avg_speed_kmh``."""
    if avg_speed_kmh is None or math.isnan(avg_speed_kmh) or avg_speed_kmh <= 0:
        raise ValidationError({"avg_speed_kmh": ["Average speed must be positive"]})
    if distance is None or math.isnan(distance) or distance < 0:
        raise ValidationError({"distance_km": ["Distance must be non-negative"]})
    return distance / avg_speed_kmh * 60.0
