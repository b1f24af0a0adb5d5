"""Lightweight forward geocoding using OpenStreetMap Nominatim.

Used as the fallback when the local address index has no suggestion for
what the user typed. Requests are async so they can be cancelled when the
query is superseded or the search box is torn down.
"""

from __future__ import annotations

import asyncio
import logging
import math
import os
import re
import time
from dataclasses import dataclass
from typing import Any, List, Optional

import httpx

from domain.errors import NetworkFailure
from domain.models import LatLng

NOMINATIM_SEARCH_URL = os.getenv("NOMINATIM_SEARCH_URL", "https://nominatim.openstreetmap.org/search")
logger = logging.getLogger(__name__)
_MIN_INTERVAL_SEC = float(os.getenv("NOMINATIM_MIN_INTERVAL", "1.1"))
_logged_ua = False
NOMINATIM_USER_AGENT = os.getenv("NOMINATIM_USER_AGENT")
NOMINATIM_REFERER = os.getenv("NOMINATIM_REFERER")
NOMINATIM_ACCEPT_LANGUAGE = os.getenv("NOMINATIM_ACCEPT_LANGUAGE", "pt-BR")

FALLBACK_UA = "servicemap/0.1 (contact: example@example.com)"
if NOMINATIM_USER_AGENT is None:
    logger.warning(
        "NOMINATIM_USER_AGENT not set in environment; using fallback UA. "
        "This may violate Nominatim usage policy."
    )


def _redact_email(ua: str) -> str:
    if "@" not in ua:
        return ua
    return re.sub(r"\S+@\S+", "<redacted>", ua)


_ua_value = NOMINATIM_USER_AGENT or FALLBACK_UA
NOMINATIM_HEADERS = {
    "User-Agent": _ua_value,
    "Accept-Language": NOMINATIM_ACCEPT_LANGUAGE,
}
if NOMINATIM_REFERER:
    NOMINATIM_HEADERS["Referer"] = NOMINATIM_REFERER


@dataclass(frozen=True)
class GeocodeResult:
    display_name: str
    position: Optional[LatLng]  # None when the provider sent unusable coordinates

    @classmethod
    def from_payload(cls, item: dict[str, Any]) -> "GeocodeResult":
        try:
            lat = float(item.get("lat"))
            lon = float(item.get("lon"))
            position: Optional[LatLng] = None if math.isnan(lat) or math.isnan(lon) else (lat, lon)
        except (TypeError, ValueError):
            position = None
        return cls(display_name=str(item.get("display_name") or ""), position=position)


class NominatimGeocoder:
    """Async Nominatim search client with a simple shared rate limit."""

    def __init__(
        self,
        base_url: str = NOMINATIM_SEARCH_URL,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 5.0,
        min_interval: float = _MIN_INTERVAL_SEC,
    ):
        self.base_url = base_url
        self.client = client or httpx.AsyncClient(timeout=timeout)
        self.timeout = timeout
        self.min_interval = min_interval
        self._last_request_ts = 0.0
        self._lock = asyncio.Lock()

    async def _throttled_get(self, params: dict[str, Any]) -> httpx.Response:
        """Perform a GET request no sooner than ``min_interval`` after the previous one."""
        async with self._lock:
            delta = time.monotonic() - self._last_request_ts
            if delta < self.min_interval:
                await asyncio.sleep(self.min_interval - delta)
            self._last_request_ts = time.monotonic()
        return await self.client.get(
            self.base_url, params=params, headers=NOMINATIM_HEADERS, timeout=self.timeout
        )

    async def search(self, query: str, limit: int = 1) -> List[GeocodeResult]:
        """Resolve free text into at most ``limit`` candidate locations.

        Raises:
            NetworkFailure: on transport errors, timeouts, HTTP errors or bad JSON
        """
        global _logged_ua
        if not _logged_ua:
            logger.debug("Nominatim User-Agent: %s", _redact_email(_ua_value))
            _logged_ua = True

        params = {
            "format": "json",
            "q": query,
            "limit": str(limit),
            "addressdetails": "0",
        }
        try:
            resp = await self._throttled_get(params)
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPError as exc:
            logger.warning("Nominatim search error for %r: %s", query, exc)
            raise NetworkFailure(f"geocoder request failed: {exc}") from exc
        except ValueError as exc:
            logger.warning("Nominatim search JSON error for %r: %s", query, exc)
            raise NetworkFailure(f"geocoder returned invalid JSON: {exc}") from exc

        if not isinstance(data, list):
            return []
        return [GeocodeResult.from_payload(item) for item in data[:limit] if isinstance(item, dict)]

    async def aclose(self) -> None:
        await self.client.aclose()
