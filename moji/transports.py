"""
Authenticated, rate-limited httpx transports.

Two wrappers are composed around a real transport:

    ApiKeyTransport -> RateLimitedTransport -> httpx.AsyncHTTPTransport

The outer one stamps the credential header, the inner one holds the request
until the limiter grants a permit. Neither inspects the response.

A per-request cancel event rides on the request extensions:

    await client.post(url, json=payload, extensions={CANCEL_EXTENSION: event})
"""

import asyncio
import logging
from typing import Optional

import httpx

from moji.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

API_KEY_HEADER = "ApiKey"
CANCEL_EXTENSION = "cancel"


class ApiKeyTransport(httpx.AsyncBaseTransport):
    """Sets a fixed credential header on every request before forwarding it."""

    def __init__(
        self,
        transport: httpx.AsyncBaseTransport,
        api_key: str,
        header_name: str = API_KEY_HEADER,
    ):
        self._transport = transport
        self._api_key = api_key
        self.header_name = header_name

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        request.headers[self.header_name] = self._api_key
        return await self._transport.handle_async_request(request)

    async def aclose(self) -> None:
        await self._transport.aclose()


class RateLimitedTransport(httpx.AsyncBaseTransport):
    """Forwards each request exactly once, after the limiter grants a permit."""

    def __init__(self, transport: httpx.AsyncBaseTransport, limiter: RateLimiter):
        self._transport = transport
        self.limiter = limiter

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        cancel: Optional[asyncio.Event] = request.extensions.get(CANCEL_EXTENSION)
        wait_time = await self.limiter.wait(cancel)
        if wait_time > 0.001:
            logger.debug(f"Rate limited {request.method} {request.url.host}: waited {wait_time:.3f}s")
        return await self._transport.handle_async_request(request)

    async def aclose(self) -> None:
        await self._transport.aclose()


def build_transport(
    api_key: str,
    max_requests_per_minute: Optional[int] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    limiter: Optional[RateLimiter] = None,
) -> httpx.AsyncBaseTransport:
    """
    Build the credential + rate limit chain around a transport.

    Args:
        api_key: Value for the ApiKey header.
        max_requests_per_minute: Request budget. None or non-positive keeps
            the default of 240/min.
        transport: Underlying transport (default: a fresh AsyncHTTPTransport).
        limiter: Pre-built limiter to share; overrides max_requests_per_minute.
    """
    inner = transport or httpx.AsyncHTTPTransport()
    limiter = limiter or RateLimiter.from_requests_per_minute(max_requests_per_minute)
    return ApiKeyTransport(RateLimitedTransport(inner, limiter), api_key)


async def execute(
    transport: httpx.AsyncBaseTransport,
    request: httpx.Request,
    cancel: Optional[asyncio.Event] = None,
) -> httpx.Response:
    """
    Send a single request through a transport chain.

    Raises RequestCanceled if cancel fires before dispatch. Transport
    failures propagate unchanged.
    """
    if cancel is not None:
        request.extensions[CANCEL_EXTENSION] = cancel
    return await transport.handle_async_request(request)
