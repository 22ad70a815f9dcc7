"""Geospatial helpers."""
from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal

from .models import Coordinate

EARTH_RADIUS_KM = 6371.0
DEFAULT_WALK_SPEED_KMH = 5.0

_COMPASS_POINTS = ("N", "NE", "E", "SE", "S", "SW", "W", "NW")


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    r = EARTH_RADIUS_KM
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lon2 - lon1)

    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return r * c


def distance_km(a: Coordinate, b: Coordinate) -> float:
    return haversine_km(a.latitude, a.longitude, b.latitude, b.longitude)


def round_half_up(value: float, places: int = 0) -> float:
    """Round like a person would: ties go away from zero, not to even."""
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def walk_minutes(distance: float, speed_kmh: float = DEFAULT_WALK_SPEED_KMH) -> int:
    if distance < 0:
        raise ValueError("distance must be non-negative")
    if speed_kmh <= 0:
        raise ValueError("speed_kmh must be positive")
    minutes = Decimal(repr(distance)) / Decimal(repr(speed_kmh)) * 60
    return int(minutes.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def initial_bearing_deg(a: Coordinate, b: Coordinate) -> float:
    phi1 = math.radians(a.latitude)
    phi2 = math.radians(b.latitude)
    dlambda = math.radians(b.longitude - a.longitude)
    y = math.sin(dlambda) * math.cos(phi2)
    x = math.cos(phi1) * math.sin(phi2) - math.sin(phi1) * math.cos(phi2) * math.cos(dlambda)
    return math.degrees(math.atan2(y, x)) % 360.0


def compass_point(bearing: float) -> str:
    index = int(((bearing % 360.0) + 22.5) // 45.0) % len(_COMPASS_POINTS)
    return _COMPASS_POINTS[index]
