"""
Base GraphQL client shared by the Stash and stash-box clients.

Requests go through whatever transport chain the subclass supplies, so
authentication and rate limiting stay out of the query code.
"""

import asyncio
import logging
from typing import Optional

import httpx

from moji.transports import CANCEL_EXTENSION

logger = logging.getLogger(__name__)


class GraphQLError(RuntimeError):
    """The server answered, but the GraphQL response carries errors."""

    def __init__(self, errors: list):
        super().__init__(f"GraphQL error: {errors}")
        self.errors = errors


class TransportFailure(RuntimeError):
    """A request failed after dispatch (network, HTTP status or decoding).

    The original exception is kept as __cause__.
    """

    def __init__(self, operation: str, error: Exception):
        super().__init__(f"{operation} failed: {error}")
        self.operation = operation


class GraphQLClient:
    """Async client for a single GraphQL endpoint."""

    def __init__(
        self,
        endpoint: str,
        transport: httpx.AsyncBaseTransport,
        timeout: float = 30.0,
    ):
        self.endpoint = endpoint
        self.timeout = timeout
        self.headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(transport=self._transport, timeout=self.timeout)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    async def _execute(
        self,
        query: str,
        variables: dict | None = None,
        operation_name: str | None = None,
        cancel: Optional[asyncio.Event] = None,
    ) -> dict:
        """
        Execute a GraphQL query against the endpoint.

        Args:
            query: GraphQL query string
            variables: Query variables
            operation_name: Operation to run; also names the call in errors
            cancel: Event that abandons the call while it waits to be sent

        Returns:
            The 'data' portion of the GraphQL response.

        Raises:
            RequestCanceled: If cancel fired before the request was sent.
            TransportFailure: If the HTTP request failed or the body is not a
                JSON object.
            GraphQLError: If the GraphQL response contains errors.
        """
        payload = {"query": query}
        if variables:
            payload["variables"] = variables
        if operation_name:
            payload["operationName"] = operation_name

        operation = operation_name or "GraphQL query"
        extensions = {CANCEL_EXTENSION: cancel} if cancel is not None else None

        try:
            response = await self._http().post(
                self.endpoint,
                json=payload,
                headers=self.headers,
                extensions=extensions,
            )
            response.raise_for_status()
            result = response.json()
        except httpx.HTTPError as e:
            raise TransportFailure(operation, e) from e
        except ValueError as e:
            raise TransportFailure(operation, e) from e

        if not isinstance(result, dict):
            error = ValueError(f"expected a JSON object, got {type(result).__name__}")
            raise TransportFailure(operation, error) from error

        if result.get("errors"):
            raise GraphQLError(result["errors"])

        data = result.get("data") or {}
        if not isinstance(data, dict):
            error = ValueError(f"expected 'data' to be an object, got {type(data).__name__}")
            raise TransportFailure(operation, error) from error

        logger.debug(f"{operation} on {self.endpoint} succeeded")
        return data
