"""Registry of the stash-box endpoints configured in Stash.

Stash already knows which stash-box servers the user has set up, with their
API keys and request budgets. The registry reads that list through a
StashClient and hands out one rate-limited StashBoxClient per endpoint.

A limiter belongs to the endpoint, not to the client: when sync() runs again
and an endpoint's budget is unchanged, the new client keeps the old limiter,
so re-reading the configuration never resets the request spacing.

Usage:
    async with StashClient(stash_url, stash_api_key) as stash:
        async with StashBoxRegistry(stash) as registry:
            await registry.sync()

            client = registry.client_for("javstash.org")
            client = registry.client_for("https://javstash.org/graphql")
"""

import logging
from dataclasses import dataclass, field
from typing import Optional
from urllib.parse import urlsplit

import httpx

from moji.rate_limiter import RateLimiter, resolve_requests_per_minute
from moji.stash_client import StashClient
from moji.stashbox_client import StashBoxClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StashBoxEndpoint:
    """One stash-box connection as configured in Stash."""

    url: str
    api_key: str = field(default="", repr=False)
    name: str = ""
    # 0 means "not set"; the limiter falls back to the default budget
    max_requests_per_minute: int = 0

    @classmethod
    def from_stash(cls, raw: dict) -> Optional["StashBoxEndpoint"]:
        """Build from a Stash `stashBoxes` entry. None when the URL is empty."""
        url = (raw.get("endpoint") or "").strip()
        if not url:
            return None
        return cls(
            url=url,
            api_key=raw.get("api_key") or "",
            name=raw.get("name") or "",
            max_requests_per_minute=raw.get("max_requests_per_minute") or 0,
        )

    @property
    def host(self) -> str:
        """Network location of the URL, e.g. 'javstash.org' or 'localhost:9998'."""
        return urlsplit(self.url).netloc

    @property
    def requests_per_minute(self) -> int:
        """The budget the limiter actually enforces."""
        return resolve_requests_per_minute(self.max_requests_per_minute)

    def matches(self, key: str) -> bool:
        """True if key is this endpoint's URL (trailing slash ignored) or host."""
        key = key.strip().rstrip("/")
        return key in (self.url.rstrip("/"), self.host)

    def describe(self) -> dict:
        """Summary for display. The API key itself is never included."""
        return {
            "url": self.url,
            "name": self.name,
            "host": self.host,
            "requests_per_minute": self.requests_per_minute,
            "has_api_key": bool(self.api_key),
        }


class StashBoxRegistry:
    """Stash-box endpoints read from Stash, with one client per endpoint."""

    def __init__(
        self,
        stash: StashClient,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            stash: Client for the Stash instance that holds the configuration.
                The registry does not close it.
            transport: Underlying transport for the stash-box clients
                (mainly for testing)
        """
        self._stash = stash
        self._transport = transport
        self._endpoints: dict[str, StashBoxEndpoint] = {}
        self._limiters: dict[str, RateLimiter] = {}
        self._clients: dict[str, StashBoxClient] = {}
        self._loaded = False

    @property
    def loaded(self) -> bool:
        return self._loaded

    async def sync(self) -> int:
        """Re-read the stash-box connections from Stash.

        Clients for removed or changed endpoints are closed. Endpoints whose
        budget did not change keep their limiter.

        Returns:
            Number of endpoints now registered.
        """
        endpoints: dict[str, StashBoxEndpoint] = {}
        for raw in await self._stash.get_stashbox_connections():
            endpoint = StashBoxEndpoint.from_stash(raw)
            if endpoint is None:
                continue
            if endpoint.url in endpoints:
                logger.warning(f"Stash lists stash-box endpoint {endpoint.url} twice, keeping the first")
                continue
            endpoints[endpoint.url] = endpoint

        for url in list(self._clients):
            if endpoints.get(url) != self._endpoints.get(url):
                await self._clients.pop(url).aclose()

        limiters: dict[str, RateLimiter] = {}
        for url, endpoint in endpoints.items():
            previous = self._endpoints.get(url)
            if previous is not None and previous.requests_per_minute == endpoint.requests_per_minute:
                limiters[url] = self._limiters[url]
            else:
                limiters[url] = RateLimiter.from_requests_per_minute(endpoint.max_requests_per_minute)

        self._endpoints = endpoints
        self._limiters = limiters
        self._loaded = True

        summary = ", ".join(f"{e.host} ({e.requests_per_minute}/min)" for e in endpoints.values())
        logger.info(f"Loaded {len(endpoints)} stash-box endpoint(s) from Stash: {summary}")
        return len(endpoints)

    def endpoints(self) -> list[StashBoxEndpoint]:
        return list(self._endpoints.values())

    def find(self, key: str) -> Optional[StashBoxEndpoint]:
        """Find an endpoint by URL or host."""
        for endpoint in self._endpoints.values():
            if endpoint.matches(key):
                return endpoint
        return None

    def client_for(self, key: str) -> Optional[StashBoxClient]:
        """Get the client for an endpoint, creating it on first use.

        Args:
            key: Host (e.g. "javstash.org") or full URL.

        Returns:
            StashBoxClient, or None if the endpoint is unknown or has no API key.
        """
        endpoint = self.find(key)
        if endpoint is None:
            return None
        if not endpoint.api_key:
            logger.debug(f"Stash-box endpoint {endpoint.url} has no API key")
            return None

        client = self._clients.get(endpoint.url)
        if client is None:
            client = StashBoxClient(
                endpoint.api_key,
                endpoint=endpoint.url,
                rate_limiter=self._limiters[endpoint.url],
                transport=self._transport,
            )
            self._clients[endpoint.url] = client
        return client

    async def aclose(self) -> None:
        """Close every client handed out so far."""
        for client in self._clients.values():
            await client.aclose()
        self._clients = {}

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()
