"""Configuration for the service clients, read from the environment."""
import logging
import os
from dataclasses import dataclass

from moji.rate_limiter import DEFAULT_MAX_REQUESTS_PER_MINUTE
from moji.stashbox_client import DEFAULT_ENDPOINT

logger = logging.getLogger(__name__)


def _env_rate(name: str) -> int:
    """Read a requests-per-minute budget; missing, invalid or non-positive keeps the default."""
    raw = os.environ.get(name, "")
    try:
        value = int(raw)
    except ValueError:
        if raw:
            logger.warning(f"{name}={raw!r} is not an integer, using {DEFAULT_MAX_REQUESTS_PER_MINUTE}")
        return DEFAULT_MAX_REQUESTS_PER_MINUTE
    return value if value > 0 else DEFAULT_MAX_REQUESTS_PER_MINUTE


@dataclass
class StashConfig:
    """Local Stash instance configuration."""
    url: str
    api_key: str

    @classmethod
    def from_env(cls) -> "StashConfig":
        return cls(
            url=os.environ.get("STASH_URL", "http://localhost:9999"),
            api_key=os.environ.get("STASH_API_KEY", ""),
        )


@dataclass
class StashBoxConfig:
    """Stash-box endpoint configuration (JAVStash by default)."""
    url: str
    api_key: str
    max_requests_per_minute: int = DEFAULT_MAX_REQUESTS_PER_MINUTE

    @classmethod
    def from_env(cls) -> "StashBoxConfig":
        return cls(
            url=os.environ.get("STASHBOX_URL", DEFAULT_ENDPOINT),
            api_key=os.environ.get("STASHBOX_API_KEY", ""),
            max_requests_per_minute=_env_rate("STASHBOX_MAX_REQUESTS_PER_MINUTE"),
        )


@dataclass
class JackettConfig:
    url: str
    api_key: str
    password: str = ""  # Dashboard password, empty if not set

    @classmethod
    def from_env(cls) -> "JackettConfig":
        return cls(
            url=os.environ.get("JACKETT_URL", "http://localhost:9117"),
            api_key=os.environ.get("JACKETT_API_KEY", ""),
            password=os.environ.get("JACKETT_PASSWORD", ""),
        )


@dataclass
class QBittorrentConfig:
    url: str
    username: str = ""
    password: str = ""

    @classmethod
    def from_env(cls) -> "QBittorrentConfig":
        return cls(
            url=os.environ.get("QBITTORRENT_URL", "http://localhost:8080"),
            username=os.environ.get("QBITTORRENT_USERNAME", ""),
            password=os.environ.get("QBITTORRENT_PASSWORD", ""),
        )
