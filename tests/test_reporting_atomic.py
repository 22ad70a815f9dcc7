import csv
import json

import pytest

from bestnight.matcher import match_combos
from bestnight.models import Coordinate, Venue
from bestnight.reporting import (
    atomic_write_text,
    atomic_writer,
    write_combos_csv,
    write_combos_json,
    write_json_object,
)


def sample_combos():
    restaurants = [
        Venue(id="r1", name="Zółw Bistro", rating=4.7, position=Coordinate(0.0, 0.0),
              tags=("polish_restaurant",), price_tier=2, vicinity="Rynek 1"),
        Venue(id="r2", name="Diner", rating=4.1, position=Coordinate(0.0, 0.001)),
    ]
    bars = [Venue(id="b1", name="Piwnica", rating=4.5, position=Coordinate(0.0, 0.002), review_count=90)]
    return match_combos(restaurants, bars)


def test_atomic_write_text(tmp_path):
    path = tmp_path / "atomic.txt"

    atomic_write_text(str(path), "first")
    assert path.read_text(encoding="utf-8") == "first"

    atomic_write_text(str(path), "second")
    assert path.read_text(encoding="utf-8") == "second"

    leftovers = [p for p in tmp_path.iterdir() if p.name != "atomic.txt"]
    assert not leftovers


def test_write_json_object_nested_atomic(tmp_path):
    path = tmp_path / "payload.json"
    payload = {"nested": {"list": [1, 2, 3], "word": "Zółć"}}

    write_json_object(str(path), payload)

    text = path.read_text(encoding="utf-8")
    assert json.loads(text) == payload
    assert "ó" in text


def test_write_combos_json(tmp_path):
    combos = sample_combos()
    path = tmp_path / "combos.json"

    write_combos_json(str(path), combos, meta={"radius_m": 1000})

    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["count"] == 2
    assert data["meta"] == {"radius_m": 1000}
    assert [c["id"] for c in data["combos"]] == [c.id for c in combos]
    assert data["generated_at"].endswith("+00:00")


def test_write_combos_csv(tmp_path):
    combos = sample_combos()
    path = tmp_path / "combos.csv"

    write_combos_csv(str(path), combos)

    with open(path, newline="", encoding="utf-8") as f:
        rows = list(csv.DictReader(f))
    assert [r["rank"] for r in rows] == ["1", "2"]
    assert rows[0]["combo_id"] == "r1_b1"
    assert rows[0]["restaurant_cuisine"] == "Polish Restaurant"
    assert rows[0]["restaurant_name"] == "Zółw Bistro"
    assert rows[1]["restaurant_cuisine"] == "Restaurant"
    assert rows[1]["bar_reviews"] == "90"


def test_failed_write_keeps_previous_file(tmp_path):
    path = tmp_path / "combos.json"
    atomic_write_text(str(path), "kept")

    with pytest.raises(RuntimeError):
        with atomic_writer(str(path)) as f:
            f.write("partial")
            raise RuntimeError("disk gone")

    assert path.read_text(encoding="utf-8") == "kept"
    assert [p.name for p in tmp_path.iterdir()] == ["combos.json"]
