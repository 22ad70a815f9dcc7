"""The provider seam the core depends on, plus its Google and cached implementations."""
from __future__ import annotations

import logging
from typing import List, Optional, Protocol

from . import config
from .cache import (
    ResultCache,
    details_cache_key,
    geocode_cache_key,
    reverse_geocode_cache_key,
    search_cache_key,
)
from .geocode_client import GoogleGeocodeClient
from .http import HttpClient, RequestMetrics
from .models import Coordinate, Venue, VenueDetails
from .places_client import GooglePlacesClient

logger = logging.getLogger(__name__)


class PlacesProvider(Protocol):
    def search_nearby(self, center: Coordinate, radius_m: int, category: str) -> List[Venue]:
        ...

    def geocode(self, address: str) -> Coordinate:
        ...

    def reverse_geocode(self, coordinate: Coordinate) -> str:
        ...

    def fetch_details(self, venue_id: str) -> VenueDetails:
        ...


class GoogleProvider:
    def __init__(
        self,
        api_key: str,
        timeout: Optional[float] = None,
        metrics: Optional[RequestMetrics] = None,
        http_client: Optional[HttpClient] = None,
    ) -> None:
        if http_client is None:
            if not api_key:
                raise ValueError("API key is required when using real API clients")
            http_client = HttpClient(
                api_key,
                timeout=timeout if timeout is not None else config.HTTP_TIMEOUT_SECONDS,
            )
        self.places = GooglePlacesClient(http_client, metrics=metrics)
        self.geocoder = GoogleGeocodeClient(http_client, metrics=metrics)

    def search_nearby(self, center: Coordinate, radius_m: int, category: str) -> List[Venue]:
        return self.places.search_nearby(center, radius_m, category)

    def geocode(self, address: str) -> Coordinate:
        return self.geocoder.geocode(address)

    def reverse_geocode(self, coordinate: Coordinate) -> str:
        return self.geocoder.reverse_geocode(coordinate)

    def fetch_details(self, venue_id: str) -> VenueDetails:
        return self.places.fetch_details(venue_id)


class CachedProvider:
    """Wraps a provider so identical lookups within the TTL hit memory.

    Only successful lookups are stored; an exception leaves the cache as it was.
    """

    def __init__(
        self,
        provider: PlacesProvider,
        cache: ResultCache,
        metrics: Optional[RequestMetrics] = None,
        coord_decimals: Optional[int] = None,
    ) -> None:
        self.provider = provider
        self.cache = cache
        self.metrics = metrics
        self.coord_decimals = (
            coord_decimals if coord_decimals is not None else config.CACHE_COORD_DECIMALS
        )

    def _hit(self, kind: str) -> None:
        if self.metrics is not None:
            self.metrics.inc_cache_hit(kind)

    def search_nearby(self, center: Coordinate, radius_m: int, category: str) -> List[Venue]:
        key = search_cache_key(center, radius_m, category, self.coord_decimals)
        cached = self.cache.get(key)
        if cached is not None:
            self._hit("places")
            return list(cached)
        venues = self.provider.search_nearby(center, radius_m, category)
        self.cache.set(key, tuple(venues))
        return list(venues)

    def geocode(self, address: str) -> Coordinate:
        key = geocode_cache_key(address)
        cached = self.cache.get(key)
        if cached is not None:
            self._hit("geocode")
            return cached
        coordinate = self.provider.geocode(address)
        self.cache.set(key, coordinate)
        return coordinate

    def reverse_geocode(self, coordinate: Coordinate) -> str:
        key = reverse_geocode_cache_key(coordinate, self.coord_decimals)
        cached = self.cache.get(key)
        if cached is not None:
            self._hit("geocode")
            return cached
        name = self.provider.reverse_geocode(coordinate)
        self.cache.set(key, name)
        return name

    def fetch_details(self, venue_id: str) -> VenueDetails:
        key = details_cache_key(venue_id)
        cached = self.cache.get(key)
        if cached is not None:
            self._hit("details")
            return cached
        details = self.provider.fetch_details(venue_id)
        self.cache.set(key, details)
        return details
