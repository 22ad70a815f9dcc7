"""Output helpers: atomic file writes and combo exports."""
from __future__ import annotations

import csv
import json
import os
import tempfile
from contextlib import contextmanager, suppress
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, TextIO

from .models import Combo
from .venues import cuisine_label

COMBO_CSV_FIELDS = [
    "rank",
    "combo_id",
    "combo_score",
    "walk_minutes",
    "distance_km",
    "restaurant_name",
    "restaurant_rating",
    "restaurant_reviews",
    "restaurant_cuisine",
    "restaurant_price_tier",
    "restaurant_vicinity",
    "bar_name",
    "bar_rating",
    "bar_reviews",
    "bar_vicinity",
]


def ensure_dir(path: str) -> None:
    os.makedirs(path, exist_ok=True)


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


def _sync_parent(folder: Path) -> None:
    # Not every platform can open a directory for fsync.
    with suppress(OSError):
        fd = os.open(folder, os.O_DIRECTORY)
        try:
            os.fsync(fd)
        finally:
            os.close(fd)


@contextmanager
def atomic_writer(path: str, newline: Optional[str] = None) -> Iterator[TextIO]:
    """Yield a text handle whose contents replace ``path`` only on success.

    Readers see either the previous file or the complete new one.
    """
    target = Path(path)
    tmp = tempfile.NamedTemporaryFile(
        "w",
        encoding="utf-8",
        newline=newline,
        dir=target.parent,
        prefix=f".{target.name}.",
        suffix=".tmp",
        delete=False,
    )
    try:
        with tmp:
            yield tmp
            tmp.flush()
            os.fsync(tmp.fileno())
        os.replace(tmp.name, target)
    except BaseException:
        with suppress(FileNotFoundError):
            os.unlink(tmp.name)
        raise
    _sync_parent(target.parent)


def atomic_write_text(path: str, text: str) -> None:
    with atomic_writer(path) as f:
        f.write(text)


def write_json_object(path: str, payload: Any) -> None:
    atomic_write_text(path, json.dumps(payload, ensure_ascii=False, indent=2))


def build_combo_row(rank: int, combo: Combo) -> Dict[str, Any]:
    r = combo.restaurant
    b = combo.bar
    return {
        "rank": rank,
        "combo_id": combo.id,
        "combo_score": combo.combo_score,
        "walk_minutes": combo.walk_minutes,
        "distance_km": combo.distance_km,
        "restaurant_name": r.name,
        "restaurant_rating": r.rating,
        "restaurant_reviews": r.review_count,
        "restaurant_cuisine": cuisine_label(r),
        "restaurant_price_tier": r.price_tier,
        "restaurant_vicinity": r.vicinity,
        "bar_name": b.name,
        "bar_rating": b.rating,
        "bar_reviews": b.review_count,
        "bar_vicinity": b.vicinity,
    }


def write_combos_csv(path: str, combos: Iterable[Combo]) -> None:
    rows: List[Dict[str, Any]] = [build_combo_row(i, c) for i, c in enumerate(combos, start=1)]
    with atomic_writer(path, newline="") as f:
        writer = csv.DictWriter(f, fieldnames=COMBO_CSV_FIELDS)
        writer.writeheader()
        writer.writerows(rows)


def write_combos_json(path: str, combos: Iterable[Combo], meta: Optional[Dict[str, Any]] = None) -> None:
    items = [c.to_dict() for c in combos]
    payload: Dict[str, Any] = {
        "generated_at": utc_now_iso(),
        "count": len(items),
        "combos": items,
    }
    if meta:
        payload["meta"] = dict(meta)
    write_json_object(path, payload)
