"""Project configuration.

Loads tunables from combo_config.json when available, falling back to
sensible defaults. Keep API request shapes centralized here.
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Optional

_REPO_ROOT = Path(__file__).resolve().parent.parent

# --- API endpoints ---

PLACES_NEARBY_SEARCH_URL = "https://places.googleapis.com/v1/places:searchNearby"
PLACES_DETAILS_URL_TEMPLATE = "https://places.googleapis.com/v1/places/{place_id}"
GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"

# --- Field masks ---

PLACES_FIELD_MASK_NEARBY = (
    "places.id,places.displayName,places.rating,places.userRatingCount,"
    "places.location,places.types,places.priceLevel,places.shortFormattedAddress"
)
PLACES_FIELD_MASK_DETAILS = (
    "id,formattedAddress,nationalPhoneNumber,websiteUri,regularOpeningHours"
)

# --- Places API request shape ---

CATEGORY_RESTAURANT = "restaurant"
CATEGORY_BAR = "bar"
CATEGORIES = (CATEGORY_RESTAURANT, CATEGORY_BAR)

PLACES_NEARBY_MAX_RESULTS = 20
PLACES_NEARBY_BODY_EXTRA: Dict[str, Any] = {}
MAX_RADIUS_M = 50000

# --- Combo matching ---

MIN_RATING = 4.0
MAX_WALK_DISTANCE_KM = 0.5
# Each category is cut to its top N by rating before pairing. Raising this
# finds more pairs at N^2 cost.
TOP_N_PER_CATEGORY = 10
WALK_SPEED_KMH = 5.0
DEFAULT_RADIUS_M = 1000

# --- Cache ---

CACHE_TTL_SECONDS = 3600
CACHE_SWEEP_INTERVAL_SECONDS = 300
CACHE_COORD_DECIMALS = 4

# --- HTTP ---

HTTP_TIMEOUT_SECONDS = 10

# --- Server ---

SERVER_PORT = 3001
RATE_LIMIT = "100 per 15 minutes"

# --- Outputs ---

OUTPUT_DIR = "out"
FAVORITES_PATH = "favorites.json"

_OVERRIDES = {
    "min_rating": ("MIN_RATING", float),
    "max_walk_distance_km": ("MAX_WALK_DISTANCE_KM", float),
    "top_n_per_category": ("TOP_N_PER_CATEGORY", int),
    "walk_speed_kmh": ("WALK_SPEED_KMH", float),
    "default_radius_m": ("DEFAULT_RADIUS_M", int),
    "cache_ttl_seconds": ("CACHE_TTL_SECONDS", int),
    "cache_sweep_interval_seconds": ("CACHE_SWEEP_INTERVAL_SECONDS", int),
    "http_timeout_seconds": ("HTTP_TIMEOUT_SECONDS", float),
    "places_nearby_max_results": ("PLACES_NEARBY_MAX_RESULTS", int),
    "rate_limit": ("RATE_LIMIT", str),
}


def load_combo_config(path: Optional[str] = None) -> bool:
    """Load tunables from a JSON file.

    Updates module-level globals with values from the config file.
    Returns True if config was loaded, False if file not found.
    """
    if path is None:
        path = str(_REPO_ROOT / "combo_config.json")

    config_path = Path(path)
    if not config_path.exists():
        return False

    with open(config_path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"{path} must hold a JSON object")

    globals_ref = globals()
    for key, (name, cast) in _OVERRIDES.items():
        value = data.get(key)
        if value is None:
            continue
        try:
            globals_ref[name] = cast(value)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Invalid value for {key}: {value!r}") from exc

    if TOP_N_PER_CATEGORY < 1:
        raise ValueError("top_n_per_category must be >= 1")
    if MAX_WALK_DISTANCE_KM < 0:
        raise ValueError("max_walk_distance_km must be non-negative")
    return True
