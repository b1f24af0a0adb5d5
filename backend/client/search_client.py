"""
Async client for the local address search endpoint.
"""
from __future__ import annotations

import logging
from typing import List, Optional

import httpx

from domain.errors import NetworkFailure
from domain.models import SearchResult

logger = logging.getLogger(__name__)

SEARCH_TIMEOUT_SECONDS = 5.0


class LocalSearchClient:
    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = SEARCH_TIMEOUT_SECONDS,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.client = client or httpx.AsyncClient(timeout=timeout)

    async def search(self, query: str) -> List[SearchResult]:
        """
        Query ``GET /api/search?q=``.

        Raises:
            NetworkFailure: on timeouts, transport errors, non-2xx status or a bad body
        """
        try:
            resp = await self.client.get(
                f"{self.base_url}/api/search",
                params={"q": query},
                timeout=self.timeout,
            )
            resp.raise_for_status()
            payload = resp.json()
            return [SearchResult.from_dict(item) for item in payload.get("results") or []]
        except httpx.HTTPError as exc:
            raise NetworkFailure(f"search request failed: {exc}") from exc
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise NetworkFailure(f"search returned an invalid body: {exc!r}") from exc

    async def aclose(self) -> None:
        await self.client.aclose()
