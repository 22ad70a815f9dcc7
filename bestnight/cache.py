"""In-memory TTL cache for provider lookups."""
from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from .models import Coordinate

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 3600
DEFAULT_SWEEP_INTERVAL_SECONDS = 300
DEFAULT_COORD_DECIMALS = 4


def _round_coord(coordinate: Coordinate, decimals: int) -> str:
    return f"{coordinate.latitude:.{decimals}f},{coordinate.longitude:.{decimals}f}"


def search_cache_key(
    center: Coordinate,
    radius_m: int,
    category: str,
    decimals: int = DEFAULT_COORD_DECIMALS,
) -> str:
    return f"nearby|{_round_coord(center, decimals)}|{int(radius_m)}|{category}"


def geocode_cache_key(address: str) -> str:
    return f"geocode|{address.strip()}"


def reverse_geocode_cache_key(coordinate: Coordinate, decimals: int = DEFAULT_COORD_DECIMALS) -> str:
    return f"reverse|{_round_coord(coordinate, decimals)}"


def details_cache_key(venue_id: str) -> str:
    return f"details|{venue_id}"


@dataclass(frozen=True)
class CacheEntry:
    key: str
    value: Any
    expires_at: float


class ResultCache:
    """Thread-safe key/value cache with a fixed expiry window per entry.

    Expired entries are dropped when looked up, and ``set`` sweeps the whole
    table once every ``sweep_interval_seconds`` so abandoned keys do not pile
    up in a long-running process. Values should be immutable; they are handed
    out as stored.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        sweep_interval_seconds: float = DEFAULT_SWEEP_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.ttl_seconds = ttl_seconds
        self.sweep_interval_seconds = sweep_interval_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: Dict[str, CacheEntry] = {}
        self._hits = 0
        self._misses = 0
        self._last_sweep = clock()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and entry.expires_at <= self._clock():
                del self._entries[key]
                entry = None
            if entry is None:
                self._misses += 1
                return None
            self._hits += 1
            return entry.value

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        ttl_seconds = self.ttl_seconds if ttl is None else ttl
        if ttl_seconds <= 0:
            raise ValueError("ttl must be positive")
        with self._lock:
            now = self._clock()
            self._entries[key] = CacheEntry(key=key, value=value, expires_at=now + ttl_seconds)
            if now - self._last_sweep >= self.sweep_interval_seconds:
                self._sweep_locked(now)

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def sweep(self) -> int:
        with self._lock:
            return self._sweep_locked(self._clock())

    def _sweep_locked(self, now: float) -> int:
        expired = [k for k, e in self._entries.items() if e.expires_at <= now]
        for key in expired:
            del self._entries[key]
        self._last_sweep = now
        if expired:
            logger.debug("Cache sweep removed %s expired entries", len(expired))
        return len(expired)

    def flush(self) -> None:
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
            self._hits = 0
            self._misses = 0
        logger.info("Cache flushed (%s entries)", count)

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            total = self._hits + self._misses
            return {
                "keys": len(self._entries),
                "hits": self._hits,
                "misses": self._misses,
                "hit_rate": round(self._hits / total * 100, 1) if total > 0 else 0.0,
            }

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
