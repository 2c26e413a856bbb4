"""Tests for the shared GraphQL client base."""

import json

import httpx
import pytest

from moji.graphql_client import GraphQLClient, GraphQLError, TransportFailure

ENDPOINT = "https://graphql.example/graphql"


def _client(handler) -> GraphQLClient:
    return GraphQLClient(ENDPOINT, httpx.MockTransport(handler))


class TestGraphQLClientExecute:
    """Tests for GraphQLClient._execute."""

    @pytest.mark.asyncio
    async def test_posts_query_and_returns_data(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"data": {"test": "value"}})

        async with _client(handler) as client:
            result = await client._execute(
                "query Test($id: ID!) { test(id: $id) }",
                variables={"id": "1"},
                operation_name="Test",
            )

        assert result == {"test": "value"}
        request = seen[0]
        assert request.method == "POST"
        assert str(request.url) == ENDPOINT
        assert request.headers["Content-Type"] == "application/json"
        assert request.headers["Accept"] == "application/json"
        body = json.loads(request.content)
        assert body["variables"] == {"id": "1"}
        assert body["operationName"] == "Test"

    @pytest.mark.asyncio
    async def test_omits_empty_variables(self):
        bodies = []

        def handler(request):
            bodies.append(json.loads(request.content))
            return httpx.Response(200, json={"data": {}})

        async with _client(handler) as client:
            await client._execute("query { test }")

        assert bodies == [{"query": "query { test }"}]

    @pytest.mark.asyncio
    async def test_missing_data_returns_empty_dict(self):
        async with _client(lambda r: httpx.Response(200, json={"data": None})) as client:
            assert await client._execute("query { test }") == {}

    @pytest.mark.asyncio
    async def test_raises_on_graphql_errors(self):
        errors = [{"message": "Something went wrong"}]

        async with _client(lambda r: httpx.Response(200, json={"errors": errors})) as client:
            with pytest.raises(GraphQLError, match="Something went wrong") as exc_info:
                await client._execute("query { test }")

        assert exc_info.value.errors == errors

    @pytest.mark.asyncio
    async def test_http_error_is_wrapped_with_operation_name(self):
        async with _client(lambda r: httpx.Response(500, text="boom")) as client:
            with pytest.raises(TransportFailure, match="FindThing failed") as exc_info:
                await client._execute("query FindThing { test }", operation_name="FindThing")

        assert exc_info.value.operation == "FindThing"
        assert isinstance(exc_info.value.__cause__, httpx.HTTPStatusError)

    @pytest.mark.asyncio
    async def test_network_error_is_wrapped(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with _client(handler) as client:
            with pytest.raises(TransportFailure) as exc_info:
                await client._execute("query { test }")

        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)
        assert exc_info.value.operation == "GraphQL query"

    @pytest.mark.asyncio
    async def test_invalid_json_is_wrapped(self):
        async with _client(lambda r: httpx.Response(200, text="<html>not json</html>")) as client:
            with pytest.raises(TransportFailure) as exc_info:
                await client._execute("query { test }")

        assert isinstance(exc_info.value.__cause__, ValueError)

    @pytest.mark.asyncio
    async def test_list_body_is_wrapped(self):
        async with _client(lambda r: httpx.Response(200, json=[{"data": {}}])) as client:
            with pytest.raises(TransportFailure, match="expected a JSON object") as exc_info:
                await client._execute("query { test }")

        assert isinstance(exc_info.value.__cause__, ValueError)

    @pytest.mark.asyncio
    async def test_non_object_data_is_wrapped(self):
        async with _client(lambda r: httpx.Response(200, json={"data": ["x"]})) as client:
            with pytest.raises(TransportFailure, match="'data' to be an object"):
                await client._execute("query { test }")


class TestGraphQLClientLifecycle:
    """Tests for client creation and closing."""

    @pytest.mark.asyncio
    async def test_http_client_is_reused(self):
        client = _client(lambda r: httpx.Response(200, json={"data": {}}))
        assert client._http() is client._http()
        await client.aclose()
        assert client._client is None

    @pytest.mark.asyncio
    async def test_aclose_without_requests(self):
        client = _client(lambda r: httpx.Response(200))
        await client.aclose()
