"""Post-search narrowing and re-sorting of computed combos.

Everything here is a pure function of its arguments: the same combo list
with the same filters and sort key always gives the same result, and
applying a filter set twice gives the same result as applying it once.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from .errors import InputError
from .geo import distance_km
from .matcher import combo_sort_key
from .models import Combo, Coordinate
from .venues import cuisine_label

SORT_SCORE = "score"
SORT_WALK_TIME = "walk_time"
SORT_RESTAURANT_RATING = "restaurant_rating"
SORT_BAR_RATING = "bar_rating"

_SORT_KEYS: Dict[str, Callable[[Combo], tuple]] = {
    SORT_SCORE: combo_sort_key,
    SORT_WALK_TIME: lambda c: (c.walk_minutes,) + combo_sort_key(c),
    SORT_RESTAURANT_RATING: lambda c: (-(c.restaurant.rating or 0.0),) + combo_sort_key(c),
    SORT_BAR_RATING: lambda c: (-(c.bar.rating or 0.0),) + combo_sort_key(c),
}
SORT_KEYS = tuple(_SORT_KEYS)


@dataclass(frozen=True)
class ComboFilters:
    cuisine: Optional[str] = None
    price_tier: Optional[int] = None
    min_combo_score: Optional[float] = None
    max_distance_km: Optional[float] = None
    reference: Optional[Coordinate] = None
    max_walk_minutes: Optional[int] = None

    def validate(self) -> None:
        if self.max_distance_km is not None and self.reference is None:
            raise InputError("max_distance_km needs a reference location")
        if self.price_tier is not None and not 0 <= self.price_tier <= 4:
            raise InputError(f"price_tier must be between 0 and 4, got {self.price_tier}")

    def accepts(self, combo: Combo) -> bool:
        if self.cuisine is not None:
            if cuisine_label(combo.restaurant).lower() != self.cuisine.strip().lower():
                return False
        if self.price_tier is not None and combo.restaurant.price_tier != self.price_tier:
            return False
        if self.min_combo_score is not None and combo.combo_score < self.min_combo_score:
            return False
        if self.max_distance_km is not None and self.reference is not None:
            if distance_km(self.reference, combo.restaurant.position) > self.max_distance_km:
                return False
        if self.max_walk_minutes is not None and combo.walk_minutes > self.max_walk_minutes:
            return False
        return True


def refine_combos(
    combos: Iterable[Combo],
    filters: Optional[ComboFilters] = None,
    sort_key: str = SORT_SCORE,
) -> List[Combo]:
    key_fn = _SORT_KEYS.get(sort_key)
    if key_fn is None:
        raise InputError(f"Unknown sort key: {sort_key!r} (expected one of {', '.join(SORT_KEYS)})")
    if filters is None:
        filters = ComboFilters()
    filters.validate()
    return sorted((c for c in combos if filters.accepts(c)), key=key_fn)


def available_cuisines(combos: Sequence[Combo]) -> List[str]:
    return sorted({cuisine_label(c.restaurant) for c in combos})
