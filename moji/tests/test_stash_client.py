"""Tests for StashClient - queries the local Stash instance."""

import json

import httpx
import pytest

from moji.stash_client import StashClient


def _stub(data: dict, seen: list):
    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"data": data})
    return handler


class TestStashClient:
    """Tests for the local Stash GraphQL client."""

    def test_endpoint_from_url(self):
        client = StashClient("http://localhost:9999/", "key")
        assert client.base_url == "http://localhost:9999"
        assert client.endpoint == "http://localhost:9999/graphql"

    @pytest.mark.asyncio
    async def test_requests_carry_api_key(self):
        seen = []
        transport = httpx.MockTransport(_stub({"version": {"version": "v0.27.0"}}, seen))

        async with StashClient("http://stash:9999", "local-key", transport=transport) as stash:
            version = await stash.get_version()

        assert version["version"] == "v0.27.0"
        assert str(seen[0].url) == "http://stash:9999/graphql"
        assert seen[0].headers["ApiKey"] == "local-key"

    @pytest.mark.asyncio
    async def test_find_performer(self):
        seen = []
        transport = httpx.MockTransport(_stub({"findPerformer": {"id": "7", "name": "Jane"}}, seen))

        async with StashClient("http://stash:9999", transport=transport) as stash:
            performer = await stash.find_performer("7")

        assert performer["name"] == "Jane"
        assert json.loads(seen[0].content)["variables"] == {"id": "7"}

    @pytest.mark.asyncio
    async def test_all_performers(self):
        seen = []
        data = {"findPerformers": {"performers": [{"id": "1"}, {"id": "2"}]}}
        transport = httpx.MockTransport(_stub(data, seen))

        async with StashClient("http://stash:9999", transport=transport) as stash:
            performers = await stash.all_performers()

        assert [p["id"] for p in performers] == ["1", "2"]
        assert "per_page: -1" in json.loads(seen[0].content)["query"]

    @pytest.mark.asyncio
    async def test_get_stashbox_connections(self):
        boxes = [
            {"endpoint": "https://javstash.org/graphql", "api_key": "k", "name": "JAVStash",
             "max_requests_per_minute": 120},
        ]
        transport = httpx.MockTransport(
            _stub({"configuration": {"general": {"stashBoxes": boxes}}}, [])
        )

        async with StashClient("http://stash:9999", transport=transport) as stash:
            assert await stash.get_stashbox_connections() == boxes

    @pytest.mark.asyncio
    async def test_missing_nested_objects_degrade_to_empty(self):
        transport = httpx.MockTransport(
            _stub({"configuration": {"general": None}, "findPerformers": None}, [])
        )

        async with StashClient("http://stash:9999", transport=transport) as stash:
            assert await stash.get_stashbox_connections() == []
            assert await stash.all_performers() == []

    @pytest.mark.asyncio
    async def test_stash_requests_are_not_rate_limited(self):
        """Stash calls go out back to back; only the stash-box client waits."""
        import time

        seen = []
        transport = httpx.MockTransport(_stub({"version": {"version": "v1"}}, seen))

        async with StashClient("http://stash:9999", transport=transport) as stash:
            start = time.monotonic()
            for _ in range(5):
                await stash.get_version()
            elapsed = time.monotonic() - start

        assert len(seen) == 5
        assert elapsed < 0.5
