"""Tests for environment configuration."""

import os
from unittest.mock import patch

from moji.config import JackettConfig, QBittorrentConfig, StashBoxConfig, StashConfig


class TestStashConfig:
    def test_defaults(self):
        with patch.dict(os.environ, {}, clear=True):
            config = StashConfig.from_env()
        assert config.url == "http://localhost:9999"
        assert config.api_key == ""

    def test_from_env(self):
        env = {"STASH_URL": "http://stash:9999", "STASH_API_KEY": "abc"}
        with patch.dict(os.environ, env, clear=True):
            config = StashConfig.from_env()
        assert config.url == "http://stash:9999"
        assert config.api_key == "abc"


class TestStashBoxConfig:
    """Tests for the stash-box budget parsing."""

    def test_defaults(self):
        with patch.dict(os.environ, {}, clear=True):
            config = StashBoxConfig.from_env()
        assert config.url == "https://javstash.org/graphql"
        assert config.max_requests_per_minute == 240

    def test_custom_budget(self):
        with patch.dict(os.environ, {"STASHBOX_MAX_REQUESTS_PER_MINUTE": "120"}, clear=True):
            assert StashBoxConfig.from_env().max_requests_per_minute == 120

    def test_zero_budget_keeps_default(self):
        with patch.dict(os.environ, {"STASHBOX_MAX_REQUESTS_PER_MINUTE": "0"}, clear=True):
            assert StashBoxConfig.from_env().max_requests_per_minute == 240

    def test_negative_budget_keeps_default(self):
        with patch.dict(os.environ, {"STASHBOX_MAX_REQUESTS_PER_MINUTE": "-30"}, clear=True):
            assert StashBoxConfig.from_env().max_requests_per_minute == 240

    def test_invalid_budget_keeps_default(self):
        with patch.dict(os.environ, {"STASHBOX_MAX_REQUESTS_PER_MINUTE": "fast"}, clear=True):
            assert StashBoxConfig.from_env().max_requests_per_minute == 240


class TestServiceConfigs:
    def test_jackett(self):
        env = {"JACKETT_URL": "http://j:9117", "JACKETT_API_KEY": "k", "JACKETT_PASSWORD": "p"}
        with patch.dict(os.environ, env, clear=True):
            config = JackettConfig.from_env()
        assert (config.url, config.api_key, config.password) == ("http://j:9117", "k", "p")

    def test_qbittorrent_defaults(self):
        with patch.dict(os.environ, {}, clear=True):
            config = QBittorrentConfig.from_env()
        assert config.url == "http://localhost:8080"
        assert config.username == ""
