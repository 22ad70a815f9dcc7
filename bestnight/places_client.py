"""Places API (v1) client: nearby search and venue details."""
from __future__ import annotations

import logging
import math
from datetime import date
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from . import config
from .errors import InputError
from .http import HttpClient, RequestMetrics
from .models import HOURS_NOT_AVAILABLE, Coordinate, Venue, VenueDetails

logger = logging.getLogger(__name__)

PRICE_LEVELS = {
    "PRICE_LEVEL_UNSPECIFIED": 0,
    "PRICE_LEVEL_FREE": 0,
    "PRICE_LEVEL_INEXPENSIVE": 1,
    "PRICE_LEVEL_MODERATE": 2,
    "PRICE_LEVEL_EXPENSIVE": 3,
    "PRICE_LEVEL_VERY_EXPENSIVE": 4,
}


class GooglePlacesClient:
    def __init__(self, http_client: HttpClient, metrics: Optional[RequestMetrics] = None) -> None:
        self.http = http_client
        self.metrics = metrics

    def search_nearby(self, center: Coordinate, radius_m: int, category: str) -> List[Venue]:
        if category not in config.CATEGORIES:
            raise InputError(f"Unknown category: {category!r}")
        body = build_nearby_search_body(center, radius_m, category)
        if self.metrics is not None:
            self.metrics.inc_network("places")
        response = self.http.post_json(
            config.PLACES_NEARBY_SEARCH_URL, body, config.PLACES_FIELD_MASK_NEARBY
        )
        venues = parse_places_response(response)
        logger.info("Nearby %s search returned %s venues", category, len(venues))
        return venues

    def fetch_details(self, venue_id: str, today: Optional[date] = None) -> VenueDetails:
        if not venue_id:
            raise InputError("place_id required")
        if self.metrics is not None:
            self.metrics.inc_network("details")
        response = self.http.get_json(details_url(venue_id), field_mask=config.PLACES_FIELD_MASK_DETAILS)
        return parse_details_response(venue_id, response, today=today)


def details_url(venue_id: str) -> str:
    return config.PLACES_DETAILS_URL_TEMPLATE.format(place_id=quote(venue_id, safe=""))


def build_nearby_search_body(center: Coordinate, radius_m: int, category: str) -> Dict[str, Any]:
    body: Dict[str, Any] = {
        "includedTypes": [category],
        "maxResultCount": config.PLACES_NEARBY_MAX_RESULTS,
        "locationRestriction": {
            "circle": {
                "center": {"latitude": center.latitude, "longitude": center.longitude},
                "radius": float(radius_m),
            }
        },
    }
    if config.PLACES_NEARBY_BODY_EXTRA:
        body.update(config.PLACES_NEARBY_BODY_EXTRA)
    return body


# Adapter/mapper for Places response fields

def parse_price_level(value: Any) -> int:
    if value is None:
        return 0
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value if 0 <= value <= 4 else 0
    return PRICE_LEVELS.get(str(value), 0)


def parse_places_response(response: Dict[str, Any]) -> List[Venue]:
    places = response.get("places") or []
    parsed: List[Venue] = []
    for p in places:
        place_id = p.get("id") or p.get("placeId") or p.get("place_id")
        if not place_id:
            continue
        location = p.get("location") or (p.get("geometry") or {}).get("location") or {}
        lat = _first_present(location, "latitude", "lat")
        lon = _first_present(location, "longitude", "lng", "lon")
        try:
            position = Coordinate.parse(lat, lon)
        except InputError:
            logger.debug("Skipping place %s without a usable location", place_id)
            continue
        display = p.get("displayName")
        if isinstance(display, dict):
            name = display.get("text") or display.get("value")
        else:
            name = display or p.get("name")
        rating = p.get("rating")
        review_count = p.get("userRatingCount") or p.get("user_ratings_total") or 0
        try:
            rating = float(rating) if rating is not None else None
            review_count = int(review_count)
            if rating is not None and not math.isfinite(rating):
                raise ValueError(rating)
        except (TypeError, ValueError):
            logger.debug("Skipping place %s with unusable rating data", place_id)
            continue
        parsed.append(
            Venue(
                id=str(place_id),
                name=str(name or ""),
                rating=rating,
                position=position,
                review_count=review_count,
                tags=tuple(p.get("types") or ()),
                price_tier=parse_price_level(p.get("priceLevel", p.get("price_level"))),
                vicinity=str(p.get("shortFormattedAddress") or p.get("vicinity") or ""),
            )
        )
    return parsed


def parse_details_response(
    venue_id: str,
    response: Dict[str, Any],
    today: Optional[date] = None,
) -> VenueDetails:
    weekday = (today or date.today()).weekday()
    hours = response.get("regularOpeningHours") or {}
    # weekdayDescriptions starts on Monday, like date.weekday().
    descriptions = hours.get("weekdayDescriptions") or []
    hours_today = descriptions[weekday] if len(descriptions) > weekday else HOURS_NOT_AVAILABLE
    return VenueDetails(
        venue_id=venue_id,
        address=response.get("formattedAddress"),
        phone=response.get("nationalPhoneNumber"),
        website=response.get("websiteUri"),
        hours_today=hours_today,
    )


def _first_present(data: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if data.get(key) is not None:
            return data[key]
    return None
