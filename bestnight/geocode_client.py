"""Geocoding API client: address to coordinates and back."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from . import config
from .errors import InputError, LocationNotFoundError, UpstreamError
from .http import HttpClient, RequestMetrics
from .models import Coordinate

logger = logging.getLogger(__name__)

UNKNOWN_LOCATION = "Unknown location"


class GoogleGeocodeClient:
    def __init__(self, http_client: HttpClient, metrics: Optional[RequestMetrics] = None) -> None:
        self.http = http_client
        self.metrics = metrics

    def geocode(self, address: str) -> Coordinate:
        query = (address or "").strip()
        if not query:
            raise InputError("Address required")
        if self.metrics is not None:
            self.metrics.inc_network("geocode")
        data = self.http.get_json(config.GEOCODE_URL, params={"address": query})
        return parse_geocode_response(data, query)

    def reverse_geocode(self, coordinate: Coordinate) -> str:
        if self.metrics is not None:
            self.metrics.inc_network("geocode")
        latlng = f"{coordinate.latitude},{coordinate.longitude}"
        data = self.http.get_json(config.GEOCODE_URL, params={"latlng": latlng})
        return parse_reverse_geocode_response(data, latlng)


def _results(data: Dict[str, Any], query: str) -> List[Dict[str, Any]]:
    status = data.get("status") or "OK"
    if status == "ZERO_RESULTS":
        raise LocationNotFoundError(f"Location not found: {query}")
    if status != "OK":
        detail = data.get("error_message") or status
        logger.error("Geocoding failed for %r: %s", query, detail)
        raise UpstreamError(f"Geocoding failed: {detail}")
    results = data.get("results") or []
    if not results:
        raise LocationNotFoundError(f"Location not found: {query}")
    return results


def parse_geocode_response(data: Dict[str, Any], query: str = "") -> Coordinate:
    first = _results(data, query)[0]
    location = (first.get("geometry") or {}).get("location") or {}
    try:
        return Coordinate.parse(location.get("lat"), location.get("lng"))
    except InputError as exc:
        raise UpstreamError(f"Geocoding returned an unusable location for {query!r}") from exc


def parse_reverse_geocode_response(data: Dict[str, Any], query: str = "") -> str:
    first = _results(data, query)[0]
    for component in first.get("address_components") or []:
        if "locality" in (component.get("types") or []):
            name = component.get("long_name")
            if name:
                return name
    return first.get("formatted_address") or UNKNOWN_LOCATION
