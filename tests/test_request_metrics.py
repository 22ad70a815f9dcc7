import json

import pytest
import requests

from bestnight import config
from bestnight.cache import ResultCache
from bestnight.errors import InputError, UpstreamError
from bestnight.http import HttpClient, RequestMetrics
from bestnight.models import Coordinate
from bestnight.places_client import details_url
from bestnight.provider import CachedProvider, GoogleProvider


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self._payload = payload
        self.status_code = status_code
        self.headers = {}

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


class FakeSession:
    def __init__(self, responses_by_url, status_code=200):
        self.responses_by_url = responses_by_url
        self.status_code = status_code
        self.calls = []

    def post(self, url, data=None, headers=None, timeout=None):
        self.calls.append(("POST", url, json.loads(data), headers, None))
        return FakeResponse(self.responses_by_url.get(url, {}), self.status_code)

    def get(self, url, params=None, headers=None, timeout=None):
        self.calls.append(("GET", url, None, headers, params))
        return FakeResponse(self.responses_by_url.get(url, {}), self.status_code)


class BrokenSession:
    def post(self, url, data=None, headers=None, timeout=None):
        raise requests.ConnectionError("connection refused")

    def get(self, url, params=None, headers=None, timeout=None):
        raise requests.Timeout("timed out")


def make_http_client(responses_by_url, status_code=200):
    client = HttpClient(api_key="dummy", timeout=1)
    client.session = FakeSession(responses_by_url, status_code)
    return client


CENTER = Coordinate(40.7128, -74.006)

PLACES_PAYLOAD = {
    "places": [
        {
            "id": "r1",
            "displayName": {"text": "Trattoria"},
            "rating": 4.5,
            "location": {"latitude": 40.7128, "longitude": -74.006},
        }
    ]
}


def test_nearby_search_request_shape():
    http_client = make_http_client({config.PLACES_NEARBY_SEARCH_URL: PLACES_PAYLOAD})
    provider = GoogleProvider("dummy", http_client=http_client)

    venues = provider.search_nearby(CENTER, 1000, "restaurant")

    assert [v.id for v in venues] == ["r1"]
    method, url, body, headers, _ = http_client.session.calls[0]
    assert method == "POST"
    assert url == config.PLACES_NEARBY_SEARCH_URL
    assert headers["X-Goog-Api-Key"] == "dummy"
    assert headers["X-Goog-FieldMask"] == config.PLACES_FIELD_MASK_NEARBY
    assert body["includedTypes"] == ["restaurant"]
    assert body["locationRestriction"]["circle"]["radius"] == 1000.0
    assert body["locationRestriction"]["circle"]["center"] == {"latitude": 40.7128, "longitude": -74.006}


def test_details_and_geocode_request_shapes():
    url = details_url("place/1")
    http_client = make_http_client(
        {
            url: {"formattedAddress": "1 Main St"},
            config.GEOCODE_URL: {"status": "OK", "results": [{"geometry": {"location": {"lat": 1.0, "lng": 2.0}}}]},
        }
    )
    provider = GoogleProvider("dummy", http_client=http_client)

    assert provider.fetch_details("place/1").address == "1 Main St"
    assert provider.geocode("  Main St ") == Coordinate(1.0, 2.0)

    details_call, geocode_call = http_client.session.calls
    assert details_call[1].endswith("/places/place%2F1")
    assert details_call[3]["X-Goog-FieldMask"] == config.PLACES_FIELD_MASK_DETAILS
    assert details_call[4] == {}
    assert geocode_call[4] == {"address": "Main St", "key": "dummy"}
    assert "X-Goog-Api-Key" not in geocode_call[3]


def test_non_200_status_raises_upstream_error():
    http_client = make_http_client({}, status_code=500)
    provider = GoogleProvider("dummy", http_client=http_client)

    with pytest.raises(UpstreamError) as excinfo:
        provider.search_nearby(CENTER, 1000, "bar")
    assert excinfo.value.status_code == 500
    assert excinfo.value.to_dict() == {"kind": "upstream", "error": "Provider API error: 500", "status_code": 500}


def test_non_json_body_raises_upstream_error():
    http_client = make_http_client({config.PLACES_NEARBY_SEARCH_URL: ValueError("not json")})
    provider = GoogleProvider("dummy", http_client=http_client)

    with pytest.raises(UpstreamError):
        provider.search_nearby(CENTER, 1000, "bar")


def test_transport_errors_become_upstream_errors():
    http_client = HttpClient(api_key="dummy", timeout=1)
    http_client.session = BrokenSession()
    provider = GoogleProvider("dummy", http_client=http_client)

    with pytest.raises(UpstreamError):
        provider.search_nearby(CENTER, 1000, "bar")
    with pytest.raises(UpstreamError):
        provider.geocode("Main St")


def test_unknown_category_and_empty_inputs_rejected_before_network():
    http_client = make_http_client({})
    provider = GoogleProvider("dummy", http_client=http_client)

    with pytest.raises(InputError):
        provider.search_nearby(CENTER, 1000, "cafe")
    with pytest.raises(InputError):
        provider.geocode("   ")
    with pytest.raises(InputError):
        provider.fetch_details("")
    assert http_client.session.calls == []


def test_google_provider_requires_key_without_client():
    with pytest.raises(ValueError):
        GoogleProvider("")


def test_network_counters_increment_with_mock_http():
    metrics = RequestMetrics()
    http_client = make_http_client({config.PLACES_NEARBY_SEARCH_URL: {"places": []}})
    provider = GoogleProvider("dummy", metrics=metrics, http_client=http_client)

    for _ in range(2):
        provider.search_nearby(CENTER, 1000, "bar")

    assert metrics.network_places == 2
    assert metrics.cache_hits_places == 0


def test_cache_hits_increment_without_network():
    metrics = RequestMetrics()
    http_client = make_http_client({config.PLACES_NEARBY_SEARCH_URL: PLACES_PAYLOAD})
    provider = CachedProvider(
        GoogleProvider("dummy", metrics=metrics, http_client=http_client),
        ResultCache(ttl_seconds=60),
        metrics=metrics,
    )

    first = provider.search_nearby(CENTER, 1000, "restaurant")
    second = provider.search_nearby(Coordinate(40.71281, -74.00601), 1000, "restaurant")

    assert first == second
    assert metrics.network_places == 1
    assert metrics.cache_hits_places == 1
    assert len(http_client.session.calls) == 1
    assert metrics.as_dict()["cache_hits_places"] == 1


def test_failed_lookups_are_not_cached():
    metrics = RequestMetrics()
    http_client = make_http_client({}, status_code=503)
    cache = ResultCache(ttl_seconds=60)
    provider = CachedProvider(GoogleProvider("dummy", metrics=metrics, http_client=http_client), cache, metrics=metrics)

    for _ in range(2):
        with pytest.raises(UpstreamError):
            provider.search_nearby(CENTER, 1000, "bar")

    assert len(cache) == 0
    assert metrics.network_places == 2


def test_metrics_reject_unknown_kind():
    with pytest.raises(ValueError):
        RequestMetrics().inc_network("routes")
