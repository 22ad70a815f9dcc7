"""Favorite combos persisted as full snapshots.

Snapshots (not ids) are stored so a favorite stays displayable after later
searches stop surfacing that pairing.
"""
from __future__ import annotations

import json
import logging
import os
import threading
from typing import List

from .models import Combo
from .reporting import ensure_dir, write_json_object

logger = logging.getLogger(__name__)


class FavoritesStore:
    def __init__(self, path: str) -> None:
        self.path = path
        self._lock = threading.Lock()

    def load(self) -> List[Combo]:
        if not os.path.exists(self.path):
            return []
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                payload = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Failed to read favorites from %s: %s", self.path, exc)
            return []
        if not isinstance(payload, list):
            logger.warning("Favorites file %s is not a list; ignoring it", self.path)
            return []
        favorites: List[Combo] = []
        for item in payload:
            try:
                favorites.append(Combo.from_dict(item))
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning("Skipping unreadable favorite: %s", exc)
        return favorites

    def list(self) -> List[Combo]:
        return self.load()

    def _save(self, favorites: List[Combo]) -> None:
        parent = os.path.dirname(self.path)
        if parent:
            ensure_dir(parent)
        write_json_object(self.path, [c.to_dict() for c in favorites])

    def is_favorite(self, combo_id: str) -> bool:
        return any(c.id == combo_id for c in self.load())

    def add(self, combo: Combo) -> None:
        with self._lock:
            favorites = self.load()
            if any(c.id == combo.id for c in favorites):
                return
            favorites.append(combo)
            self._save(favorites)

    def remove(self, combo_id: str) -> bool:
        with self._lock:
            favorites = self.load()
            kept = [c for c in favorites if c.id != combo_id]
            if len(kept) == len(favorites):
                return False
            self._save(kept)
            return True

    def toggle(self, combo: Combo) -> bool:
        """Add or remove ``combo``; returns True when it is now a favorite."""
        with self._lock:
            favorites = self.load()
            kept = [c for c in favorites if c.id != combo.id]
            if len(kept) != len(favorites):
                self._save(kept)
                return False
            favorites.append(combo)
            self._save(favorites)
            return True
