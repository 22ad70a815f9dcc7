"""HTTP client and request counters for the provider APIs."""
from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import requests

from .errors import UpstreamError

logger = logging.getLogger(__name__)

REQUEST_KINDS = ("places", "details", "geocode")


@dataclass
class RequestMetrics:
    network_places: int = 0
    network_details: int = 0
    network_geocode: int = 0
    cache_hits_places: int = 0
    cache_hits_details: int = 0
    cache_hits_geocode: int = 0
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def inc_network(self, kind: str) -> None:
        self._inc("network", kind)

    def inc_cache_hit(self, kind: str) -> None:
        self._inc("cache_hits", kind)

    def _inc(self, prefix: str, kind: str) -> None:
        if kind not in REQUEST_KINDS:
            raise ValueError(f"Unknown request kind: {kind}")
        name = f"{prefix}_{kind}"
        with self._lock:
            setattr(self, name, getattr(self, name) + 1)

    def as_dict(self) -> Dict[str, int]:
        with self._lock:
            return {
                f"{prefix}_{kind}": getattr(self, f"{prefix}_{kind}")
                for prefix in ("network", "cache_hits")
                for kind in REQUEST_KINDS
            }


class HttpClient:
    """One attempt per call; failures surface as UpstreamError.

    Retrying is left to whoever called the search.
    """

    def __init__(self, api_key: str, timeout: float = 10) -> None:
        self.api_key = api_key
        self.timeout = timeout
        self.session = requests.Session()

    def post_json(
        self,
        url: str,
        body: Dict[str, Any],
        field_mask: str,
        extra_headers: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        headers = {
            "X-Goog-Api-Key": self.api_key,
            "X-Goog-FieldMask": field_mask,
            "Content-Type": "application/json",
        }
        if extra_headers:
            headers.update(extra_headers)
        try:
            resp = self.session.post(url, data=json.dumps(body), headers=headers, timeout=self.timeout)
        except requests.RequestException as exc:
            logger.warning("POST %s failed: %s", url, exc)
            raise UpstreamError(f"Request to provider failed: {exc}") from exc
        return self._decode(url, resp)

    def get_json(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        field_mask: Optional[str] = None,
    ) -> Dict[str, Any]:
        headers: Dict[str, str] = {}
        query = dict(params or {})
        if field_mask:
            # Places v1 authenticates by header; legacy web services by query key.
            headers["X-Goog-Api-Key"] = self.api_key
            headers["X-Goog-FieldMask"] = field_mask
        else:
            query["key"] = self.api_key
        try:
            resp = self.session.get(url, params=query, headers=headers, timeout=self.timeout)
        except requests.RequestException as exc:
            logger.warning("GET %s failed: %s", url, exc)
            raise UpstreamError(f"Request to provider failed: {exc}") from exc
        return self._decode(url, resp)

    def _decode(self, url: str, resp: requests.Response) -> Dict[str, Any]:
        status = resp.status_code
        if status != 200:
            logger.error("HTTP %s from %s", status, url)
            raise UpstreamError(f"Provider API error: {status}", status_code=status)
        try:
            data = resp.json()
        except ValueError as exc:
            logger.error("Non-JSON response from %s", url)
            raise UpstreamError("Provider returned a non-JSON response", status_code=status) from exc
        if not isinstance(data, dict):
            raise UpstreamError(f"Unexpected provider payload: {type(data).__name__}", status_code=status)
        return data
