"""Combo search orchestration."""
from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple, TypeVar

from . import config
from .cache import ResultCache
from .enrichment import SORT_SCORE, ComboFilters, refine_combos
from .errors import InputError, LocationNotFoundError, UpstreamError
from .geo import compass_point, initial_bearing_deg
from .geocode_client import UNKNOWN_LOCATION
from .http import RequestMetrics
from .matcher import match_combos
from .models import Combo, Coordinate, EnrichedCombo, Location, SearchRequest, Venue, VenueDetails
from .provider import CachedProvider, GoogleProvider, PlacesProvider
from .venues import qualify

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ComboService:
    """Entry point for the presentation layer.

    Tunables left as None are read from ``config`` on every call, so a config
    file loaded after construction still applies.
    """

    def __init__(
        self,
        provider: PlacesProvider,
        min_rating: Optional[float] = None,
        max_walk_distance_km: Optional[float] = None,
        top_n: Optional[int] = None,
        walk_speed_kmh: Optional[float] = None,
    ) -> None:
        self.provider = provider
        self.min_rating = min_rating
        self.max_walk_distance_km = max_walk_distance_km
        self.top_n = top_n
        self.walk_speed_kmh = walk_speed_kmh

    def _setting(self, value: Optional[T], default: T) -> T:
        return default if value is None else value

    def find_combos(self, request: SearchRequest) -> List[Combo]:
        if request.radius_m > config.MAX_RADIUS_M:
            raise InputError(f"radius_m must be at most {config.MAX_RADIUS_M}")

        restaurants, bars = _run_pair(
            lambda: self.provider.search_nearby(request.center, request.radius_m, config.CATEGORY_RESTAURANT),
            lambda: self.provider.search_nearby(request.center, request.radius_m, config.CATEGORY_BAR),
            labels=(config.CATEGORY_RESTAURANT, config.CATEGORY_BAR),
        )

        min_rating = self._setting(self.min_rating, config.MIN_RATING)
        qualified_restaurants = qualify(restaurants, min_rating)
        qualified_bars = qualify(bars, min_rating)
        combos = match_combos(
            qualified_restaurants,
            qualified_bars,
            max_walk_distance_km=self._setting(self.max_walk_distance_km, config.MAX_WALK_DISTANCE_KM),
            top_n=self._setting(self.top_n, config.TOP_N_PER_CATEGORY),
            walk_speed_kmh=self._setting(self.walk_speed_kmh, config.WALK_SPEED_KMH),
        )
        logger.info(
            "Search %.5f,%.5f r=%sm: %s/%s restaurants, %s/%s bars qualified, %s combos",
            request.center.latitude,
            request.center.longitude,
            request.radius_m,
            len(qualified_restaurants),
            len(restaurants),
            len(qualified_bars),
            len(bars),
            len(combos),
        )
        if not combos:
            logger.info("No walkable combos found; a wider radius may help")
        return combos

    def find_venues(self, center: Coordinate, radius_m: int, category: str) -> List[Venue]:
        request = SearchRequest(center=center, radius_m=radius_m)
        if category not in config.CATEGORIES:
            raise InputError(f"Unknown category: {category!r}")
        venues = self.provider.search_nearby(request.center, request.radius_m, category)
        return qualify(venues, self._setting(self.min_rating, config.MIN_RATING))

    def refine_combos(
        self,
        combos: Iterable[Combo],
        filters: Optional[ComboFilters] = None,
        sort_key: str = SORT_SCORE,
    ) -> List[Combo]:
        return refine_combos(combos, filters, sort_key)

    def get_details(self, combo: Combo) -> EnrichedCombo:
        restaurant_details, bar_details = _run_pair(
            lambda: self.provider.fetch_details(combo.restaurant.id),
            lambda: self.provider.fetch_details(combo.bar.id),
            labels=("restaurant details", "bar details"),
        )
        bearing = initial_bearing_deg(combo.restaurant.position, combo.bar.position)
        return EnrichedCombo(
            combo=combo,
            restaurant_details=restaurant_details,
            bar_details=bar_details,
            bearing_deg=round(bearing, 1),
            direction=compass_point(bearing),
        )

    def venue_details(self, venue_id: str) -> VenueDetails:
        if not (venue_id or "").strip():
            raise InputError("place_id required")
        return self.provider.fetch_details(venue_id)

    def locate(self, address: str) -> Location:
        if not (address or "").strip():
            raise InputError("Address required")
        coordinate = self.provider.geocode(address)
        return Location(coordinate=coordinate, display_name=self.describe(coordinate))

    def describe(self, coordinate: Coordinate) -> str:
        try:
            return self.provider.reverse_geocode(coordinate)
        except (LocationNotFoundError, UpstreamError) as exc:
            logger.warning("Reverse geocoding failed for %s: %s", coordinate, exc)
            return UNKNOWN_LOCATION


def _run_pair(
    first: Callable[[], T],
    second: Callable[[], T],
    labels: Sequence[str],
) -> Tuple[T, T]:
    """Run two independent upstream calls concurrently and wait for both.

    If either fails the pair fails; the first failure (in argument order) is
    raised after both calls have finished.
    """
    with ThreadPoolExecutor(max_workers=2) as pool:
        futures: Dict[str, Future] = {
            labels[0]: pool.submit(first),
            labels[1]: pool.submit(second),
        }
    failures = [(label, f.exception()) for label, f in futures.items() if f.exception() is not None]
    for label, exc in failures:
        logger.warning("Upstream %s lookup failed: %s", label, exc)
    if failures:
        raise failures[0][1]
    return futures[labels[0]].result(), futures[labels[1]].result()


def build_service(
    api_key: str,
    cache: Optional[ResultCache] = None,
    metrics: Optional[RequestMetrics] = None,
) -> ComboService:
    """Wire the Google provider behind a shared cache."""
    if cache is None:
        cache = ResultCache(
            ttl_seconds=config.CACHE_TTL_SECONDS,
            sweep_interval_seconds=config.CACHE_SWEEP_INTERVAL_SECONDS,
        )
    google = GoogleProvider(api_key, metrics=metrics)
    return ComboService(CachedProvider(google, cache, metrics=metrics))
