import pytest

from bestnight.models import Coordinate, Venue
from bestnight.venues import bar_features, cuisine_label, format_tag, qualify, top_rated


def make_venue(venue_id, rating, reviews=0, tags=()):
    return Venue(
        id=venue_id,
        name=venue_id.upper(),
        rating=rating,
        position=Coordinate(0.0, 0.0),
        review_count=reviews,
        tags=tuple(tags),
    )


def test_qualify_threshold_is_inclusive_and_drops_unrated():
    venues = [make_venue("a", 3.9), make_venue("b", 4.0), make_venue("c", None), make_venue("d", 4.8)]
    assert [v.id for v in qualify(venues, 4.0)] == ["b", "d"]


def test_qualify_keeps_input_order():
    venues = [make_venue("low", 4.1), make_venue("high", 4.9)]
    assert [v.id for v in qualify(venues)] == ["low", "high"]


def test_top_rated_orders_by_rating_then_reviews_then_id():
    venues = [
        make_venue("c", 4.5, reviews=10),
        make_venue("a", 4.5, reviews=10),
        make_venue("b", 4.5, reviews=99),
        make_venue("d", 4.9),
        make_venue("e", None),
    ]
    assert [v.id for v in top_rated(venues, 10)] == ["d", "b", "a", "c", "e"]
    assert [v.id for v in top_rated(venues, 2)] == ["d", "b"]


def test_top_rated_rejects_non_positive_n():
    with pytest.raises(ValueError):
        top_rated([], 0)


def test_cuisine_label_skips_generic_tags():
    assert cuisine_label(make_venue("r", 4.5, tags=["restaurant", "italian_restaurant"])) == "Italian Restaurant"
    assert cuisine_label(make_venue("r", 4.5, tags=["restaurant", "food"])) == "Restaurant"


def test_bar_features_limit_and_format():
    bar = make_venue("b", 4.5, tags=["bar", "wine_bar", "night_club", "cocktail_bar", "pub"])
    assert bar_features(bar) == ["Wine Bar", "Night Club", "Cocktail Bar"]
    assert format_tag("sports__bar") == "Sports Bar"
