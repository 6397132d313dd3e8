"""Distance and travel-time helpers."""

from __future__ import annotations

import math

from hike_planner.config import EARTH_RADIUS_M, METERS_PER_DEGREE
from hike_planner.errors import ValidationError
from hike_planner.models import Position


def haversine(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Return the great-circle distance in **meters** between two points."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_M * c


def distance_m(a: Position, b: Position) -> float:
    return haversine(a.lat, a.lon, b.lat, b.lon)


def travel_minutes(distance_meters: float, speed_kmh: float) -> float:
    """Minutes needed to cover *distance_meters* at *speed_kmh*."""
    return (distance_meters / 1000.0) / speed_kmh * 60


def round_minutes(minutes: float) -> int:
    """Round half up (2.5 -> 3), unlike Python's banker's rounding."""
    return int(math.floor(minutes + 0.5))


def validate_position(position: Position) -> Position:
    """Raise ValidationError unless lat is in [-90, 90] and lon in [-180, 180]."""
    lat, lon = position.lat, position.lon
    if not (isinstance(lat, (int, float)) and isinstance(lon, (int, float))):
        raise ValidationError(f"Invalid coordinates: lat={lat!r}, lon={lon!r}", position)
    if not (-90 <= lat <= 90 and -180 <= lon <= 180):
        # NaN fails both comparisons and lands here too
        raise ValidationError(f"Invalid coordinates: lat={lat}, lon={lon}", position)
    return position


def search_boxes(lat: float, lon: float, radius_m: float) -> list[tuple[float, float, float, float]]:
    """Degree boxes ``(min_lon, min_lat, max_lon, max_lat)`` covering a circle.

    Rough prefilter (1 degree ≈ 111 km, widened by half) to be refined with
    :func:`haversine`. A circle crossing the antimeridian yields two boxes;
    one reaching a pole spans every longitude.
    """
    lat_margin = (radius_m / METERS_PER_DEGREE) * 1.5
    min_lat = max(lat - lat_margin, -90.0)
    max_lat = min(lat + lat_margin, 90.0)
    if min_lat <= -90 or max_lat >= 90:
        return [(-180.0, min_lat, 180.0, max_lat)]

    # Longitude degrees are shortest at the box edge nearest a pole.
    widest = max(abs(min_lat), abs(max_lat))
    lon_margin = lat_margin / math.cos(math.radians(widest))
    if lon_margin >= 180:
        return [(-180.0, min_lat, 180.0, max_lat)]

    west, east = lon - lon_margin, lon + lon_margin
    if west < -180:
        return [(west + 360, min_lat, 180.0, max_lat), (-180.0, min_lat, east, max_lat)]
    if east > 180:
        return [(west, min_lat, 180.0, max_lat), (-180.0, min_lat, east - 360, max_lat)]
    return [(west, min_lat, east, max_lat)]
