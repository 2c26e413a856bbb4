"""Tests for the search command line entry point."""

import argparse

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from moji.config import JackettConfig
from moji.jackett_client import SearchResult
from moji.search_cli import format_result, run_search


class TestSearchCli:
    def test_format_result(self):
        result = SearchResult(
            title="ABC-123", tracker="Sukebei", size=2 * 1024 * 1024, seeders=7,
            magnet_uri="magnet:?xt=urn:btih:aaa",
        )
        assert format_result(result) == "[Sukebei] ABC-123 (2.0 MB, 7 seeders) magnet:?xt=urn:btih:aaa"

    def test_format_result_missing_fields(self):
        assert format_result(SearchResult(title="x")) == "[?] x (0.0 MB, 0 seeders) "

    @pytest.mark.asyncio
    async def test_run_search_forwards_arguments(self, capsys):
        tracker = MagicMock()
        tracker.__aenter__ = AsyncMock(return_value=tracker)
        tracker.__aexit__ = AsyncMock(return_value=False)
        tracker.search = AsyncMock(return_value=[SearchResult(title="one"), SearchResult(title="two")])

        args = argparse.Namespace(query="abc", categories=[6000], trackers=["nyaa"], limit=2)
        config = JackettConfig(url="http://j:9117", api_key="k", password="p")

        with patch("moji.search_cli.JackettTracker", return_value=tracker) as mock_cls:
            count = await run_search(config, args)

        assert count == 2
        mock_cls.assert_called_once_with("http://j:9117", "k", password="p")
        tracker.search.assert_awaited_once_with("abc", categories=[6000], trackers=["nyaa"], limit=2)
        assert capsys.readouterr().out.count("\n") == 2
