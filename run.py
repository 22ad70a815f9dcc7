"""CLI entrypoint."""
from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from bestnight import config
from bestnight.cache import ResultCache
from bestnight.enrichment import SORT_KEYS, SORT_SCORE, ComboFilters, available_cuisines
from bestnight.errors import ComboError
from bestnight.favorites import FavoritesStore
from bestnight.http import RequestMetrics
from bestnight.models import Combo, Coordinate, EnrichedCombo, SearchRequest
from bestnight.reporting import ensure_dir, write_combos_csv, write_combos_json
from bestnight.service import ComboService, build_service

logger = logging.getLogger(__name__)


def _repo_root() -> Path:
    return Path(__file__).resolve().parent


def load_env(path: str = ".env", root_dir: Optional[Path] = None) -> None:
    """Load a repo-root .env file without overriding real env vars."""
    root = Path(root_dir) if root_dir else _repo_root()
    env_path = (root / path).resolve()
    if not env_path.exists():
        return
    load_dotenv(dotenv_path=env_path, override=False)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Find walkable restaurant + bar combos")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--preflight", action="store_true", help="Run offline checks only")
    mode.add_argument("--serve", action="store_true", help="Run the HTTP API")

    where = parser.add_mutually_exclusive_group()
    where.add_argument("--address", type=str, default=None, help="Search around this address")
    where.add_argument("--lat", type=float, default=None, help="Search center latitude")
    parser.add_argument("--lon", type=float, default=None, help="Search center longitude")
    parser.add_argument("--radius", type=int, default=None, help="Search radius in metres")

    parser.add_argument("--min-rating", type=float, default=None)
    parser.add_argument("--max-walk-km", type=float, default=None)
    parser.add_argument("--top-n", type=int, default=None, help="Venues per category considered for pairing")

    parser.add_argument("--cuisine", type=str, default=None)
    parser.add_argument("--price", type=int, default=None, choices=range(0, 5), help="Restaurant price tier")
    parser.add_argument("--min-score", type=float, default=None)
    parser.add_argument("--max-from-me-km", type=float, default=None, help="Max distance from search center")
    parser.add_argument("--max-walk-min", type=int, default=None)
    parser.add_argument("--sort", choices=SORT_KEYS, default=SORT_SCORE)

    parser.add_argument("--details", type=int, default=None, metavar="N", help="Show details for result N")
    parser.add_argument("--favorite", type=int, default=None, metavar="N", help="Toggle result N as favorite")
    parser.add_argument("--list-favorites", action="store_true")
    parser.add_argument("--favorites-path", type=str, default=config.FAVORITES_PATH)

    parser.add_argument("--out", type=str, default=None, help="Write combos.json and combos.csv here")
    parser.add_argument("--port", type=int, default=None)
    parser.add_argument("--config", type=str, default=None, help="Path to combo_config.json")
    return parser.parse_args(argv)


def run_preflight(api_key: Optional[str]) -> int:
    ok = True
    if api_key:
        print("API key: OK")
    else:
        print("API key: MISSING")
        ok = False
    print(
        "Matching: min_rating={min_rating}, max_walk_km={walk}, top_n={top_n}, radius={radius}m".format(
            min_rating=config.MIN_RATING,
            walk=config.MAX_WALK_DISTANCE_KM,
            top_n=config.TOP_N_PER_CATEGORY,
            radius=config.DEFAULT_RADIUS_M,
        )
    )
    print(f"Cache TTL: {config.CACHE_TTL_SECONDS}s")
    admin = "set" if (os.environ.get("CACHE_ADMIN_TOKEN") or "").strip() else "not set (cache clear disabled)"
    print(f"CACHE_ADMIN_TOKEN: {admin}")
    print("Preflight: PASS" if ok else "Preflight: FAIL")
    return 0 if ok else 1


def build_filters(args: argparse.Namespace, center: Coordinate) -> ComboFilters:
    return ComboFilters(
        cuisine=args.cuisine,
        price_tier=args.price,
        min_combo_score=args.min_score,
        max_distance_km=args.max_from_me_km,
        reference=center if args.max_from_me_km is not None else None,
        max_walk_minutes=args.max_walk_min,
    )


def render_combos(combos: List[Combo]) -> List[str]:
    lines = []
    for idx, combo in enumerate(combos, start=1):
        lines.append(
            f"{idx:>2}. {combo.combo_score:.1f}  {combo.restaurant.name} ({combo.restaurant.rating})"
            f" + {combo.bar.name} ({combo.bar.rating})"
            f"  {combo.distance_km:.2f} km, {combo.walk_minutes} min walk"
        )
    return lines


def render_details(enriched: EnrichedCombo) -> List[str]:
    combo = enriched.combo
    lines = [f"{combo.restaurant.name} -> {combo.bar.name}"]
    for label, venue, details in (
        ("Restaurant", combo.restaurant, enriched.restaurant_details),
        ("Bar", combo.bar, enriched.bar_details),
    ):
        lines.append(f"{label}: {venue.name} ({venue.rating}, {venue.review_count} reviews)")
        lines.append(f"  address: {details.address or venue.vicinity}")
        lines.append(f"  hours: {details.hours_today}")
        if details.phone:
            lines.append(f"  phone: {details.phone}")
        if details.website:
            lines.append(f"  website: {details.website}")
    lines.append(f"Walk: {combo.walk_minutes} min {enriched.direction} ({combo.distance_km:.2f} km)")
    return lines


def format_metrics(metrics: RequestMetrics) -> str:
    counts = metrics.as_dict()
    return ", ".join(f"{name}={counts[name]}" for name in sorted(counts))


def _pick(combos: List[Combo], index: int) -> Combo:
    if index < 1 or index > len(combos):
        raise ComboError(f"No result #{index}; {len(combos)} combos available")
    return combos[index - 1]


def resolve_center(service: ComboService, args: argparse.Namespace) -> Coordinate:
    if args.address:
        location = service.locate(args.address)
        print(f"Location: {location.display_name} ({location.coordinate.latitude}, {location.coordinate.longitude})")
        return location.coordinate
    center = Coordinate.parse(args.lat, args.lon)
    print(f"Location: {service.describe(center)}")
    return center


def run_search(service: ComboService, args: argparse.Namespace) -> int:
    center = resolve_center(service, args)
    radius = args.radius if args.radius is not None else config.DEFAULT_RADIUS_M
    combos = service.find_combos(SearchRequest(center=center, radius_m=radius))
    refined = service.refine_combos(combos, build_filters(args, center), args.sort)

    if not combos:
        print("No combos found. Try increasing the search radius.")
    elif not refined:
        print(f"{len(combos)} combos found, none match the filters.")
    else:
        print(f"{len(refined)} of {len(combos)} combos (cuisines: {', '.join(available_cuisines(combos))})")
        for line in render_combos(refined):
            print(line)

    if args.out:
        ensure_dir(args.out)
        write_combos_json(
            os.path.join(args.out, "combos.json"),
            refined,
            meta={"lat": center.latitude, "lng": center.longitude, "radius_m": radius},
        )
        write_combos_csv(os.path.join(args.out, "combos.csv"), refined)
        print(f"Results written to {args.out}/combos.json and {args.out}/combos.csv")

    if args.details is not None:
        for line in render_details(service.get_details(_pick(refined, args.details))):
            print(line)

    if args.favorite is not None:
        combo = _pick(refined, args.favorite)
        added = FavoritesStore(args.favorites_path).toggle(combo)
        print(f"{'Added' if added else 'Removed'} favorite: {combo.restaurant.name} + {combo.bar.name}")
    return 0


def main(
    argv: Optional[List[str]] = None,
    service: Optional[ComboService] = None,
    metrics: Optional[RequestMetrics] = None,
) -> int:
    load_env()
    args = parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    try:
        config.load_combo_config(args.config)
    except (OSError, ValueError) as exc:
        print(f"Invalid combo config: {exc}", file=sys.stderr)
        return 1

    api_key = (os.environ.get("GOOGLE_MAPS_API_KEY") or "").strip()
    if args.preflight:
        return run_preflight(api_key)

    if args.list_favorites:
        favorites = FavoritesStore(args.favorites_path).list()
        if not favorites:
            print("No favorites saved.")
        for line in render_combos(favorites):
            print(line)
        return 0

    if args.serve:
        if not api_key:
            print("Missing GOOGLE_MAPS_API_KEY in environment", file=sys.stderr)
            return 1
        from bestnight.server import serve

        serve(args.port)
        return 0

    if not args.address and args.lat is None:
        print("Provide --address or --lat/--lon", file=sys.stderr)
        return 1

    if metrics is None:
        metrics = RequestMetrics()
    if service is None:
        if not api_key:
            print("Missing GOOGLE_MAPS_API_KEY in environment", file=sys.stderr)
            return 1
        service = build_service(
            api_key,
            cache=ResultCache(ttl_seconds=config.CACHE_TTL_SECONDS),
            metrics=metrics,
        )
    service.min_rating = args.min_rating
    service.max_walk_distance_km = args.max_walk_km
    service.top_n = args.top_n

    try:
        return run_search(service, args)
    except ComboError as exc:
        print(f"Error ({exc.kind}): {exc.message}", file=sys.stderr)
        return 1
    finally:
        logger.info("Requests: %s", format_metrics(metrics))


if __name__ == "__main__":
    raise SystemExit(main())
