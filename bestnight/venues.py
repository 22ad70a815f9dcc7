"""Venue qualification and presentation helpers."""
from __future__ import annotations

from typing import Iterable, List

from .models import Venue

_GENERIC_RESTAURANT_TAGS = {"restaurant", "food", "point_of_interest", "establishment"}
_GENERIC_BAR_TAGS = {"bar", "point_of_interest", "establishment"}
DEFAULT_CUISINE = "Restaurant"


def qualify(venues: Iterable[Venue], min_rating: float = 4.0) -> List[Venue]:
    """Keep venues rated at least ``min_rating``.

    Unrated venues are dropped rather than treated as zero. Input order is kept.
    """
    return [v for v in venues if v.rating is not None and v.rating >= min_rating]


def top_rated(venues: Iterable[Venue], n: int) -> List[Venue]:
    if n < 1:
        raise ValueError("n must be >= 1")
    ranked = sorted(venues, key=_rating_sort_key)
    return ranked[:n]


def _rating_sort_key(venue: Venue):
    rated = venue.rating is not None
    return (not rated, -(venue.rating or 0.0), -venue.review_count, venue.id)


def format_tag(tag: str) -> str:
    return " ".join(word[:1].upper() + word[1:] for word in tag.split("_") if word)


def cuisine_label(venue: Venue) -> str:
    for tag in venue.tags:
        if tag not in _GENERIC_RESTAURANT_TAGS:
            return format_tag(tag)
    return DEFAULT_CUISINE


def bar_features(venue: Venue, limit: int = 3) -> List[str]:
    return [format_tag(t) for t in venue.tags if t not in _GENERIC_BAR_TAGS][:limit]
