# app/services/geo.py
import math

from app.models.trip import Coordinate

EARTH_RADIUS_KM = 6_371.0


def haversine_distance_km(a: Coordinate, b: Coordinate) -> float:
    """
    Compute great-circle distance between two points (lat/lon in degrees), in kilometres.
    """
    lat1 = math.radians(a.lat)
    lon1 = math.radians(a.lon)
    lat2 = math.radians(b.lat)
    lon2 = math.radians(b.lon)

    dlat = lat2 - lat1
    dlon = lon2 - lon1

    h = (
        math.sin(dlat / 2) ** 2
        + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def round_half_up(value: float, ndigits: int = 0) -> float:
    """
    Round like a price display does (2.5 -> 3), not like round() (2.5 -> 2).
    """
    factor = 10 ** ndigits
    return math.floor(value * factor + 0.5) / factor


def format_distance(distance_km: float, fixed: bool = True) -> str:
    """
    "12.0 km" with one fixed decimal, or "12 km" / "12.5 km" when `fixed` is off.
    """
    if fixed:
        return f"{distance_km:.1f} km"
    if distance_km == int(distance_km):
        return f"{int(distance_km)} km"
    return f"{distance_km} km"


def format_duration(minutes: int) -> str:
    """
    "1 hr 5 min" from one hour upwards, otherwise "45 min".
    """
    hours, remaining = divmod(minutes, 60)
    if hours > 0:
        return f"{hours} hr {remaining} min"
    return f"{minutes} min"
