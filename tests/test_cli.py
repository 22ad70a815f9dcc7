import csv
import json
import logging

import pytest

from bestnight import config
from bestnight.errors import UpstreamError
from bestnight.http import RequestMetrics
from bestnight.models import Coordinate, Venue, VenueDetails
from bestnight.service import ComboService

import run


class FakeProvider:
    def __init__(self, fail=None):
        self.fail = fail

    def search_nearby(self, center, radius_m, category):
        if self.fail is not None:
            raise self.fail
        if category == "restaurant":
            return [Venue(id="r1", name="Trattoria", rating=4.5, position=Coordinate(40.7128, -74.006))]
        return [Venue(id="b1", name="Cellar", rating=4.2, position=Coordinate(40.7138, -74.005))]

    def geocode(self, address):
        return Coordinate(40.7128, -74.006)

    def reverse_geocode(self, coordinate):
        return "New York"

    def fetch_details(self, venue_id):
        return VenueDetails(venue_id=venue_id, address=f"{venue_id} street")


def test_preflight_reports_missing_key(monkeypatch, capsys):
    monkeypatch.setattr(run, "load_env", lambda: None)
    monkeypatch.delenv("GOOGLE_MAPS_API_KEY", raising=False)

    assert run.main(["--preflight"]) == 1
    assert "API key: MISSING" in capsys.readouterr().out


def test_search_prints_and_exports(tmp_path, monkeypatch, capsys):
    monkeypatch.setattr(run, "load_env", lambda: None)
    out_dir = tmp_path / "out"

    code = run.main(
        ["--lat", "40.7128", "--lon", "-74.006", "--out", str(out_dir), "--details", "1"],
        service=ComboService(FakeProvider()),
    )

    assert code == 0
    printed = capsys.readouterr().out
    assert "Location: New York" in printed
    assert "Trattoria (4.5) + Cellar (4.2)" in printed
    assert "address: r1 street" in printed

    data = json.loads((out_dir / "combos.json").read_text(encoding="utf-8"))
    assert data["count"] == 1
    assert data["meta"]["radius_m"] == 1000
    with open(out_dir / "combos.csv", newline="", encoding="utf-8") as f:
        assert [r["combo_id"] for r in csv.DictReader(f)] == ["r1_b1"]


def test_favorite_toggle_and_listing(tmp_path, monkeypatch, capsys):
    monkeypatch.setattr(run, "load_env", lambda: None)
    favorites = str(tmp_path / "favorites.json")
    args = ["--address", "Times Square", "--favorite", "1", "--favorites-path", favorites]

    assert run.main(args, service=ComboService(FakeProvider())) == 0
    assert "Added favorite: Trattoria + Cellar" in capsys.readouterr().out

    assert run.main(["--list-favorites", "--favorites-path", favorites]) == 0
    assert "Trattoria (4.5) + Cellar (4.2)" in capsys.readouterr().out


def test_empty_results_still_exit_zero(monkeypatch, capsys):
    monkeypatch.setattr(run, "load_env", lambda: None)

    code = run.main(
        ["--lat", "0", "--lon", "0", "--min-score", "4.9"],
        service=ComboService(FakeProvider()),
    )

    assert code == 0
    assert "none match the filters" in capsys.readouterr().out


def test_upstream_errors_exit_one(monkeypatch, capsys):
    monkeypatch.setattr(run, "load_env", lambda: None)

    code = run.main(
        ["--lat", "0", "--lon", "0"],
        service=ComboService(FakeProvider(fail=UpstreamError("Provider API error: 503", status_code=503))),
    )

    assert code == 1
    assert "Error (upstream)" in capsys.readouterr().err


def test_missing_location_exits_one(monkeypatch, capsys):
    monkeypatch.setattr(run, "load_env", lambda: None)
    assert run.main([]) == 1
    assert "--address or --lat/--lon" in capsys.readouterr().err


@pytest.mark.parametrize(
    "contents",
    ['{"top_n_per_category": 0}', '{"min_rating": "high"}', "[1, 2]", "{not json"],
)
def test_invalid_config_exits_one(tmp_path, monkeypatch, capsys, contents):
    for name, _ in config._OVERRIDES.values():
        monkeypatch.setattr(config, name, getattr(config, name))
    monkeypatch.setattr(run, "load_env", lambda: None)
    path = tmp_path / "combo_config.json"
    path.write_text(contents, encoding="utf-8")

    assert run.main(["--preflight", "--config", str(path)]) == 1
    assert "Invalid combo config" in capsys.readouterr().err


def test_search_logs_request_counters(monkeypatch, caplog):
    monkeypatch.setattr(run, "load_env", lambda: None)
    metrics = RequestMetrics()
    metrics.inc_network("places")

    with caplog.at_level(logging.INFO, logger="run"):
        code = run.main(["--lat", "0", "--lon", "0"], service=ComboService(FakeProvider()), metrics=metrics)

    assert code == 0
    assert "Requests: cache_hits_details=0" in caplog.text
    assert "network_places=1" in caplog.text
