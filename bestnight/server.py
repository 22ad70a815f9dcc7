"""JSON HTTP API in front of the combo service."""
from __future__ import annotations

import hmac
import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from flask import Flask, jsonify, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

from . import config
from .cache import ResultCache
from .enrichment import SORT_KEYS, SORT_SCORE, ComboFilters, available_cuisines
from .errors import ComboError, InputError
from .geo import distance_km, walk_minutes
from .http import RequestMetrics
from .models import Combo, Coordinate, SearchRequest
from .service import ComboService, build_service
from .venues import bar_features, cuisine_label

logger = logging.getLogger(__name__)

_STATUS_BY_KIND = {
    "input": 400,
    "not_found": 404,
    "upstream": 502,
}


def combo_payload(combo: Combo, data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    if data is None:
        data = combo.to_dict()
    data["restaurant"]["cuisine"] = cuisine_label(combo.restaurant)
    data["bar"]["features"] = bar_features(combo.bar)
    return data


def _optional(data: Dict[str, Any], key: str, cast):
    value = data.get(key)
    if value is None or value == "" or value == "all":
        return None
    try:
        return cast(value)
    except (TypeError, ValueError) as exc:
        raise InputError(f"Invalid value for {key}: {value!r}") from exc


def parse_filters(data: Optional[Dict[str, Any]], reference: Optional[Coordinate]) -> ComboFilters:
    if not data:
        return ComboFilters()
    if not isinstance(data, dict):
        raise InputError("filters must be an object")
    max_distance = _optional(data, "max_distance_km", float)
    return ComboFilters(
        cuisine=_optional(data, "cuisine", str),
        price_tier=_optional(data, "price_tier", int),
        min_combo_score=_optional(data, "min_combo_score", float),
        max_distance_km=max_distance,
        reference=reference if max_distance is not None else None,
        max_walk_minutes=_optional(data, "max_walk_minutes", int),
    )


def _parse_radius(value: Any) -> int:
    if value is None or value == "":
        return config.DEFAULT_RADIUS_M
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise InputError(f"Invalid radius: {value!r}") from exc


def create_app(
    service: Optional[ComboService] = None,
    cache: Optional[ResultCache] = None,
    admin_token: Optional[str] = None,
    metrics: Optional[RequestMetrics] = None,
) -> Flask:
    if cache is None:
        cache = ResultCache(
            ttl_seconds=config.CACHE_TTL_SECONDS,
            sweep_interval_seconds=config.CACHE_SWEEP_INTERVAL_SECONDS,
        )
    if service is None:
        api_key = (os.environ.get("GOOGLE_MAPS_API_KEY") or "").strip()
        if not api_key:
            raise RuntimeError("GOOGLE_MAPS_API_KEY not set")
        if metrics is None:
            metrics = RequestMetrics()
        service = build_service(api_key, cache=cache, metrics=metrics)
    if admin_token is None:
        admin_token = (os.environ.get("CACHE_ADMIN_TOKEN") or "").strip() or None

    app = Flask(__name__)
    CORS(app)
    limiter = Limiter(
        get_remote_address,
        app=app,
        default_limits=[],
        storage_uri="memory://",
    )
    api_limit = limiter.shared_limit(config.RATE_LIMIT, scope="api")

    @app.errorhandler(ComboError)
    def handle_combo_error(exc: ComboError):
        status = _STATUS_BY_KIND.get(exc.kind, 500)
        if status >= 500:
            logger.error("%s %s failed: %s", request.method, request.path, exc)
        return jsonify(exc.to_dict()), status

    @app.get("/health")
    def health():
        return jsonify({"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()})

    @app.get("/api/geocode")
    @api_limit
    def geocode():
        location = service.locate(request.args.get("address", ""))
        return jsonify(location.to_dict())

    @app.get("/api/reverse-geocode")
    @api_limit
    def reverse_geocode():
        coordinate = Coordinate.parse(request.args.get("lat"), request.args.get("lng"))
        return jsonify({"name": service.describe(coordinate)})

    @app.get("/api/places/nearby")
    @api_limit
    def places_nearby():
        coordinate = Coordinate.parse(request.args.get("lat"), request.args.get("lng"))
        radius = _parse_radius(request.args.get("radius"))
        category = request.args.get("type") or config.CATEGORY_RESTAURANT
        venues = service.find_venues(coordinate, radius, category)
        return jsonify({"count": len(venues), "results": [v.to_dict() for v in venues]})

    @app.get("/api/places/details")
    @api_limit
    def places_details():
        place_id = (request.args.get("place_id") or "").strip()
        if not place_id:
            raise InputError("place_id required")
        details = service.venue_details(place_id)
        data = details.to_dict()
        data["place_id"] = place_id
        return jsonify(data)

    @app.get("/api/distance")
    @api_limit
    def distance():
        origin = Coordinate.parse(request.args.get("origin_lat"), request.args.get("origin_lng"))
        dest = Coordinate.parse(request.args.get("dest_lat"), request.args.get("dest_lng"))
        km = round(distance_km(origin, dest), 3)
        return jsonify({"distance_km": km, "walk_minutes": walk_minutes(km, config.WALK_SPEED_KMH)})

    @app.post("/api/combos/search")
    @api_limit
    def combos_search():
        body = request.get_json(silent=True) or {}
        center = Coordinate.parse(body.get("lat"), body.get("lng"))
        search = SearchRequest(center=center, radius_m=_parse_radius(body.get("radius")))
        filters = parse_filters(body.get("filters"), reference=center)
        filters.validate()
        sort_key = body.get("sort") or SORT_SCORE
        if sort_key not in SORT_KEYS:
            raise InputError(f"Unknown sort key: {sort_key!r}")
        combos = service.find_combos(search)
        refined = service.refine_combos(combos, filters, sort_key)
        return jsonify(
            {
                "success": True,
                "count": len(refined),
                "total": len(combos),
                "cuisines": available_cuisines(combos),
                "combos": [combo_payload(c) for c in refined],
            }
        )

    @app.post("/api/combos/details")
    @api_limit
    def combos_details():
        body = request.get_json(silent=True) or {}
        try:
            combo = Combo.from_dict(body["combo"])
        except (KeyError, TypeError, ValueError) as exc:
            raise InputError(f"Invalid combo payload: {exc}") from exc
        enriched = service.get_details(combo)
        return jsonify(combo_payload(combo, enriched.to_dict()))

    @app.get("/api/cache/stats")
    @api_limit
    def cache_stats():
        stats = cache.stats()
        if metrics is not None:
            stats["requests"] = metrics.as_dict()
        return jsonify(stats)

    @app.post("/api/cache/clear")
    @api_limit
    def cache_clear():
        if not admin_token:
            return jsonify({"kind": "forbidden", "error": "Cache clearing is disabled"}), 403
        header = request.headers.get("Authorization", "")
        supplied = header[len("Bearer "):] if header.startswith("Bearer ") else ""
        if not hmac.compare_digest(supplied.encode("utf-8"), admin_token.encode("utf-8")):
            return jsonify({"kind": "unauthorized", "error": "Invalid admin token"}), 401
        cache.flush()
        return jsonify({"success": True, "message": "Cache cleared"})

    return app


def serve(port: Optional[int] = None) -> None:
    app = create_app()
    port = port or int(os.environ.get("PORT") or config.SERVER_PORT)
    logger.info("BestNight API running on port %s", port)
    app.run(host="0.0.0.0", port=port, threaded=True)
