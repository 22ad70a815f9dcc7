"""Restaurant x bar pairing and ranking."""
from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, List, Tuple

from .geo import DEFAULT_WALK_SPEED_KMH, distance_km, walk_minutes
from .models import Combo, Venue
from .venues import top_rated

logger = logging.getLogger(__name__)

DEFAULT_MAX_WALK_DISTANCE_KM = 0.5
DEFAULT_TOP_N = 10


def combo_id(restaurant: Venue, bar: Venue) -> str:
    return f"{restaurant.id}_{bar.id}"


def combo_score(restaurant_rating: float, bar_rating: float) -> float:
    """Mean of the two ratings to one decimal, ties rounded away from zero."""
    mean = (Decimal(repr(restaurant_rating)) + Decimal(repr(bar_rating))) / 2
    return float(mean.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def combo_sort_key(combo: Combo) -> Tuple[float, float, str, str]:
    return (-combo.combo_score, combo.distance_km, combo.restaurant.id, combo.bar.id)


def match_combos(
    restaurants: Iterable[Venue],
    bars: Iterable[Venue],
    max_walk_distance_km: float = DEFAULT_MAX_WALK_DISTANCE_KM,
    top_n: int = DEFAULT_TOP_N,
    walk_speed_kmh: float = DEFAULT_WALK_SPEED_KMH,
) -> List[Combo]:
    if max_walk_distance_km < 0:
        raise ValueError("max_walk_distance_km must be non-negative")

    restaurant_pool = top_rated(_dedupe(restaurants), top_n)
    bar_pool = top_rated(_dedupe(bars), top_n)
    if not restaurant_pool or not bar_pool:
        return []

    combos: List[Combo] = []
    for restaurant in restaurant_pool:
        if restaurant.rating is None:
            continue
        for bar in bar_pool:
            if bar.rating is None or bar.id == restaurant.id:
                continue
            # Metre precision keeps the walkability boundary stable.
            distance = round(distance_km(restaurant.position, bar.position), 3)
            if distance > max_walk_distance_km:
                continue
            combos.append(
                Combo(
                    id=combo_id(restaurant, bar),
                    restaurant=restaurant,
                    bar=bar,
                    distance_km=distance,
                    walk_minutes=walk_minutes(distance, walk_speed_kmh),
                    combo_score=combo_score(restaurant.rating, bar.rating),
                )
            )

    combos.sort(key=combo_sort_key)
    logger.debug(
        "Matched %s combos from %s restaurants x %s bars (max %.3f km)",
        len(combos),
        len(restaurant_pool),
        len(bar_pool),
        max_walk_distance_km,
    )
    return combos


def _dedupe(venues: Iterable[Venue]) -> List[Venue]:
    seen: set[str] = set()
    out: List[Venue] = []
    for venue in venues:
        if venue.id in seen:
            continue
        seen.add(venue.id)
        out.append(venue)
    return out
