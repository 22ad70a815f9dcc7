"""Immutable value types passed between the provider, the core and the adapters."""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from .errors import InputError

HOURS_NOT_AVAILABLE = "Hours not available"


def _require_object(value: Any, label: str) -> None:
    if not isinstance(value, dict):
        raise InputError(f"{label} must be an object, got {type(value).__name__}")


@dataclass(frozen=True)
class Coordinate:
    latitude: float
    longitude: float

    def __post_init__(self) -> None:
        lat = self.latitude
        lon = self.longitude
        if isinstance(lat, bool) or isinstance(lon, bool):
            raise InputError("Coordinates must be numeric")
        if not isinstance(lat, (int, float)) or not isinstance(lon, (int, float)):
            raise InputError("Coordinates must be numeric")
        if not (math.isfinite(lat) and math.isfinite(lon)):
            raise InputError("Coordinates must be finite")
        if not -90.0 <= lat <= 90.0:
            raise InputError(f"Latitude out of range: {lat}")
        if not -180.0 <= lon <= 180.0:
            raise InputError(f"Longitude out of range: {lon}")

    @classmethod
    def parse(cls, lat: Any, lon: Any) -> "Coordinate":
        """Build a coordinate from loosely-typed input (query strings, JSON)."""
        if lat is None or lon is None or lat == "" or lon == "":
            raise InputError("Lat/lng required")
        try:
            lat_f = float(lat)
            lon_f = float(lon)
        except (TypeError, ValueError) as exc:
            raise InputError(f"Invalid coordinates: {lat!r}, {lon!r}") from exc
        return cls(lat_f, lon_f)

    def to_dict(self) -> Dict[str, float]:
        return {"lat": self.latitude, "lng": self.longitude}


@dataclass(frozen=True)
class Venue:
    id: str
    name: str
    rating: Optional[float]
    position: Coordinate
    review_count: int = 0
    tags: Tuple[str, ...] = ()
    price_tier: int = 0
    vicinity: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "rating": self.rating,
            "review_count": self.review_count,
            "tags": list(self.tags),
            "price_tier": self.price_tier,
            "location": self.position.to_dict(),
            "vicinity": self.vicinity,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Venue":
        _require_object(data, "venue")
        location = data.get("location") or {}
        _require_object(location, "venue location")
        rating = data.get("rating")
        return cls(
            id=str(data["id"]),
            name=str(data.get("name") or ""),
            rating=float(rating) if rating is not None else None,
            position=Coordinate.parse(location.get("lat"), location.get("lng")),
            review_count=int(data.get("review_count") or 0),
            tags=tuple(data.get("tags") or ()),
            price_tier=int(data.get("price_tier") or 0),
            vicinity=str(data.get("vicinity") or ""),
        )


@dataclass(frozen=True)
class VenueDetails:
    venue_id: str
    address: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    hours_today: str = HOURS_NOT_AVAILABLE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "phone": self.phone,
            "website": self.website,
            "hours": self.hours_today,
        }


@dataclass(frozen=True)
class Combo:
    id: str
    restaurant: Venue
    bar: Venue
    distance_km: float
    walk_minutes: int
    combo_score: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "restaurant": self.restaurant.to_dict(),
            "bar": self.bar.to_dict(),
            "distance_km": self.distance_km,
            "walk_minutes": self.walk_minutes,
            "combo_score": self.combo_score,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Combo":
        _require_object(data, "combo")
        return cls(
            id=str(data["id"]),
            restaurant=Venue.from_dict(data["restaurant"]),
            bar=Venue.from_dict(data["bar"]),
            distance_km=float(data["distance_km"]),
            walk_minutes=int(data["walk_minutes"]),
            combo_score=float(data["combo_score"]),
        )


@dataclass(frozen=True)
class EnrichedCombo:
    combo: Combo
    restaurant_details: VenueDetails
    bar_details: VenueDetails
    bearing_deg: float
    direction: str

    def to_dict(self) -> Dict[str, Any]:
        data = self.combo.to_dict()
        data["restaurant"].update(self.restaurant_details.to_dict())
        data["bar"].update(self.bar_details.to_dict())
        data["bearing_deg"] = self.bearing_deg
        data["direction"] = self.direction
        return data


@dataclass(frozen=True)
class SearchRequest:
    center: Coordinate
    radius_m: int

    def __post_init__(self) -> None:
        if isinstance(self.radius_m, bool) or not isinstance(self.radius_m, int):
            raise InputError("radius_m must be an integer number of metres")
        if self.radius_m <= 0:
            raise InputError(f"radius_m must be positive, got {self.radius_m}")


@dataclass(frozen=True)
class Location:
    coordinate: Coordinate
    display_name: str = field(default="Unknown location")

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = dict(self.coordinate.to_dict())
        data["name"] = self.display_name
        return data
