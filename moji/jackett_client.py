"""
Jackett API Client

Searches every configured indexer at once through Jackett's
/api/v2.0/indexers/all/results endpoint and lists the indexers themselves.

When the Jackett dashboard is password protected, login() posts the
password once and the session cookie is reused for later calls.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

logger = logging.getLogger(__name__)

USER_AGENT = "moji"


class JackettError(RuntimeError):
    """Raised for Jackett API errors."""


class JackettModel(BaseModel):
    """Base for Jackett payloads: explicit nulls fall back to field defaults."""

    model_config = ConfigDict(populate_by_name=True)

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data


class SearchResult(JackettModel):
    """One release returned by a Jackett search.

    Absent or null fields take zero values ("", 0, 0.0, []). The external
    IDs are the exception and stay None, since indexers send them either
    as numbers or as strings.
    """

    first_seen: str = Field("", alias="FirstSeen")
    tracker: str = Field("", alias="Tracker")
    tracker_id: str = Field("", alias="TrackerId")
    tracker_type: str = Field("", alias="TrackerType")
    category_desc: str = Field("", alias="CategoryDesc")
    blackhole_link: str = Field("", alias="BlackholeLink")
    title: str = Field("", alias="Title")
    guid: str = Field("", alias="Guid")
    link: str = Field("", alias="Link")
    details: str = Field("", alias="Details")
    publish_date: str = Field("", alias="PublishDate")
    category: list[int] = Field(default_factory=list, alias="Category")
    size: int = Field(0, alias="Size")
    # Jackett reports a file count here, not names
    files: int = Field(0, alias="Files")
    grabs: int = Field(0, alias="Grabs")
    description: str = Field("", alias="Description")
    rage_id: Optional[int | str] = Field(None, alias="RageID")
    tvdb_id: Optional[int | str] = Field(None, alias="TVDBId")
    imdb: Optional[int | str] = Field(None, alias="Imdb")
    tmdb: Optional[int | str] = Field(None, alias="TMDb")
    tvmaze_id: Optional[int | str] = Field(None, alias="TVMazeId")
    trakt_id: Optional[int | str] = Field(None, alias="TraktId")
    douban_id: Optional[int | str] = Field(None, alias="DoubanId")
    genres: list[str] = Field(default_factory=list, alias="Genres")
    languages: list[str] = Field(default_factory=list, alias="Languages")
    subs: list[str] = Field(default_factory=list, alias="Subs")
    year: int = Field(0, alias="Year")
    author: str = Field("", alias="Author")
    book_title: str = Field("", alias="BookTitle")
    publisher: str = Field("", alias="Publisher")
    artist: str = Field("", alias="Artist")
    album: str = Field("", alias="Album")
    label: str = Field("", alias="Label")
    track: str = Field("", alias="Track")
    seeders: int = Field(0, alias="Seeders")
    peers: int = Field(0, alias="Peers")
    poster: str = Field("", alias="Poster")
    info_hash: str = Field("", alias="InfoHash")
    magnet_uri: str = Field("", alias="MagnetUri")
    minimum_ratio: float = Field(0.0, alias="MinimumRatio")
    minimum_seed_time: int = Field(0, alias="MinimumSeedTime")
    download_volume_factor: float = Field(0.0, alias="DownloadVolumeFactor")
    upload_volume_factor: float = Field(0.0, alias="UploadVolumeFactor")
    gain: float = Field(0.0, alias="Gain")

    @property
    def download_url(self) -> str:
        """Magnet link when present, otherwise the .torrent link."""
        return self.magnet_uri or self.link


class IndexerCapability(JackettModel):
    id: str = Field(alias="ID")
    name: str = Field(alias="Name")


class Indexer(JackettModel):
    """An indexer known to Jackett, configured or not."""

    id: str
    name: str
    description: str = ""
    type: str = ""
    configured: bool = False
    site_link: str = ""
    alternative_site_links: list[str] = Field(default_factory=list, alias="alternativesitelinks")
    language: str = ""
    tags: list[str] = Field(default_factory=list)
    last_error: str = ""
    potato_enabled: bool = Field(False, alias="potatoenabled")
    caps: list[IndexerCapability] = Field(default_factory=list)


@dataclass
class SearchRequest:
    """Parameters for a search across indexers."""
    query: str
    trackers: list[str] = field(default_factory=list)  # Indexer IDs, e.g. "sukebeinyaasi"
    categories: list[int] = field(default_factory=list)  # Torznab category IDs


class JackettClient:
    """Async client for the Jackett JSON API."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        password: str = "",
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 60.0,
    ):
        """
        Initialize the Jackett client.

        Args:
            base_url: Jackett URL (e.g. "http://localhost:9117")
            api_key: Jackett API key
            password: Dashboard admin password; empty when none is set
            transport: Underlying httpx transport (mainly for testing)
        """
        self.base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._password = password
        self._client = httpx.AsyncClient(
            transport=transport,
            timeout=timeout,
            headers={"User-Agent": USER_AGENT},
        )
        self._logged_in = False

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self):
        await self.login()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    async def login(self) -> None:
        """Post the dashboard password so Jackett issues a session cookie.

        Does nothing when no password is configured or already logged in.
        """
        if not self._password or self._logged_in:
            return

        response = await self._request("POST", "/UI/Dashboard", data={"password": self._password})
        if response.status_code != 200:
            raise JackettError(f"Jackett login error: HTTP {response.status_code}, body: {response.text}")

        self._logged_in = True
        logger.info(f"Logged in to Jackett at {self.base_url}")

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            return await self._client.request(method, f"{self.base_url}{path}", **kwargs)
        except httpx.HTTPError as e:
            raise JackettError(f"Jackett request {method} {path} failed: {e}") from e

    async def _get_json(self, path: str, params: list[tuple[str, str]]):
        await self.login()
        response = await self._request("GET", path, params=params)
        if response.status_code != 200:
            raise JackettError(f"Jackett API error: HTTP {response.status_code}, body: {response.text}")
        try:
            return response.json()
        except ValueError as e:
            raise JackettError(f"Failed to decode JSON response: {e}") from e

    async def search(self, request: SearchRequest) -> list[SearchResult]:
        """
        Search all indexers.

        Args:
            request: Query plus optional tracker and category filters

        Returns:
            Results in the order Jackett returns them.

        Raises:
            JackettError: If the API call fails or returns bad JSON
        """
        params = [("apikey", self._api_key), ("Query", request.query)]
        params.extend(("Tracker[]", tracker) for tracker in request.trackers)
        params.extend(("Category[]", str(category)) for category in request.categories)

        logger.debug(
            f"Jackett search: query={request.query!r} trackers={request.trackers} "
            f"categories={request.categories}"
        )
        data = await self._get_json("/api/v2.0/indexers/all/results", params)

        try:
            results = [SearchResult.model_validate(r) for r in data.get("Results") or []]
        except ValidationError as e:
            raise JackettError(f"Failed to decode search results: {e}") from e

        for indexer in data.get("Indexers") or []:
            if indexer.get("Error"):
                logger.warning(f"Jackett indexer {indexer.get('ID')} failed: {indexer['Error']}")

        return results

    async def get_indexers(self) -> list[Indexer]:
        """List every indexer Jackett knows about."""
        data = await self._get_json("/api/v2.0/indexers", [("apikey", self._api_key)])
        try:
            return [Indexer.model_validate(i) for i in data]
        except ValidationError as e:
            raise JackettError(f"Failed to decode indexers: {e}") from e
