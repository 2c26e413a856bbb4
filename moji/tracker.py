"""Tracker search service.

A small seam between callers and the indexer backend, so search code does
not depend on Jackett's request and result types directly.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional

import httpx

from moji.jackett_client import JackettClient, SearchRequest, SearchResult

logger = logging.getLogger(__name__)


class Tracker(ABC):
    """Abstract tracker search backend."""

    @abstractmethod
    async def search(
        self,
        query: str,
        categories: Optional[list[int]] = None,
        trackers: Optional[list[str]] = None,
        limit: int = 0,
    ) -> list[SearchResult]:
        """
        Search for releases.

        Args:
            query: Free-text search query
            categories: Torznab category IDs to restrict to
            trackers: Indexer IDs to restrict to
            limit: Maximum number of results; 0 or less means no limit
        """

    async def aclose(self) -> None:
        pass

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()


class JackettTracker(Tracker):
    """Tracker backed by a Jackett instance."""

    def __init__(
        self,
        url: str,
        api_key: str,
        password: str = "",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.client = JackettClient(url, api_key, password=password, transport=transport)

    async def search(
        self,
        query: str,
        categories: Optional[list[int]] = None,
        trackers: Optional[list[str]] = None,
        limit: int = 0,
    ) -> list[SearchResult]:
        results = await self.client.search(
            SearchRequest(query=query, trackers=trackers or [], categories=categories or [])
        )
        if limit > 0 and len(results) > limit:
            logger.debug(f"Truncating {len(results)} results for {query!r} to {limit}")
            results = results[:limit]
        return results

    async def aclose(self) -> None:
        await self.client.aclose()
