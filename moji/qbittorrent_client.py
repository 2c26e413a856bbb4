"""
qBittorrent Web API v2 client.

Covers the auth, log, sync, application, transfer, search and torrent
management method groups. qBittorrent authenticates with a SID cookie set
by auth/login; the underlying httpx.AsyncClient keeps it for every later call.

Usage:
    async with QBittorrentClient("http://localhost:8080") as qb:
        await qb.login("admin", "adminadmin")
        torrents = await qb.get_torrents(TorrentListOptions(filter="downloading"))
"""

import json
import logging
from typing import Any, Optional

import httpx
from pydantic import TypeAdapter, ValidationError

from moji.qbittorrent_models import (
    AddTorrentOptions,
    BuildInfo,
    Category,
    Cookie,
    FilePriority,
    LogEntry,
    LogType,
    MainData,
    PeerLogEntry,
    Preferences,
    SearchPlugin,
    SearchResult,
    SearchStatus,
    ShareLimits,
    Torrent,
    TorrentContentFile,
    TorrentListOptions,
    TorrentProperties,
    TorrentTracker,
    TransferInfo,
)

logger = logging.getLogger(__name__)


class QBittorrentError(RuntimeError):
    """Raised when a qBittorrent API call fails."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


def _bool(value: bool) -> str:
    return "true" if value else "false"


def _join(values, sep: str = "|") -> str:
    return sep.join(str(v) for v in values)


class QBittorrentClient:
    """Async client for the qBittorrent Web UI API."""

    def __init__(
        self,
        base_url: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 30.0,
    ):
        """
        Args:
            base_url: Web UI URL (e.g. "http://localhost:8080")
            transport: Underlying httpx transport (mainly for testing)
        """
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(transport=transport, timeout=timeout)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    # ==================== Plumbing ====================

    async def _request(
        self,
        method: str,
        endpoint: str,
        *,
        params: Any = None,
        data: Any = None,
        files: Any = None,
        headers: Optional[dict] = None,
        allow_status: tuple[int, ...] = (),
    ) -> httpx.Response:
        """Send a request to /api/v2/{endpoint} and check the status code."""
        url = f"{self.base_url}/api/v2/{endpoint}"
        try:
            response = await self._client.request(
                method, url, params=params, data=data, files=files, headers=headers
            )
        except httpx.HTTPError as e:
            raise QBittorrentError(f"{endpoint} request failed: {e}") from e

        if response.status_code != 200 and response.status_code not in allow_status:
            raise QBittorrentError(
                f"{endpoint} failed with status: HTTP {response.status_code}, body: {response.text}",
                status_code=response.status_code,
            )
        return response

    async def _get(self, endpoint: str, params: Any = None) -> httpx.Response:
        return await self._request("GET", endpoint, params=params)

    async def _post(self, endpoint: str, data: Any = None) -> httpx.Response:
        return await self._request("POST", endpoint, data=data)

    @staticmethod
    def _decode(response: httpx.Response, type_: Any) -> Any:
        """Validate a JSON body against a model or type."""
        try:
            return TypeAdapter(type_).validate_json(response.content)
        except ValidationError as e:
            raise QBittorrentError(f"Failed to decode {response.request.url.path}: {e}") from e

    async def _get_json(self, endpoint: str, type_: Any, params: Any = None) -> Any:
        return self._decode(await self._get(endpoint, params), type_)

    # ==================== Auth ====================

    async def login(self, username: str, password: str) -> None:
        """Log in and store the SID cookie on the client."""
        response = await self._request(
            "POST",
            "auth/login",
            data={"username": username, "password": password},
            headers={"Referer": self.base_url},
        )
        # Bad credentials still answer 200, with "Fails." as the body
        if response.text.strip() == "Fails.":
            raise QBittorrentError("login failed: invalid username or password")
        logger.info(f"Logged in to qBittorrent at {self.base_url} as {username}")

    async def logout(self) -> None:
        await self._post("auth/logout")

    # ==================== Log ====================

    async def get_log(
        self, types: LogType = LogType.ALL, last_known_id: Optional[int] = None
    ) -> list[LogEntry]:
        """Get main log entries of the given types, newer than last_known_id."""
        params = {}
        for flag, key in (
            (LogType.NORMAL, "normal"),
            (LogType.INFO, "info"),
            (LogType.WARNING, "warning"),
            (LogType.CRITICAL, "critical"),
        ):
            params[key] = _bool(bool(types & flag))
        if last_known_id is not None:
            params["last_known_id"] = last_known_id
        return await self._get_json("log/main", list[LogEntry], params)

    async def get_peer_log(self, last_known_id: Optional[int] = None) -> list[PeerLogEntry]:
        params = {"last_known_id": last_known_id} if last_known_id is not None else None
        return await self._get_json("log/peers", list[PeerLogEntry], params)

    # ==================== Sync ====================

    async def get_main_data(self, rid: Optional[int] = None) -> MainData:
        """Get changes since response id rid (full state when rid is None or stale)."""
        params = {"rid": rid} if rid is not None else None
        return await self._get_json("sync/maindata", MainData, params)

    # ==================== Application ====================

    async def get_application_version(self) -> str:
        return (await self._get("app/version")).text

    async def get_api_version(self) -> str:
        return (await self._get("app/webapiVersion")).text

    async def get_build_info(self) -> BuildInfo:
        return await self._get_json("app/buildInfo", BuildInfo)

    async def get_preferences(self) -> Preferences:
        return await self._get_json("app/preferences", Preferences)

    async def set_preferences(self, prefs: Preferences) -> None:
        """Set preferences. Only fields that were explicitly set are sent."""
        payload = prefs.model_dump(mode="json", by_alias=True, exclude_unset=True)
        await self._post("app/setPreferences", {"json": json.dumps(payload)})

    async def get_default_save_path(self) -> str:
        return (await self._get("app/defaultSavePath")).text

    async def get_cookies(self) -> list[Cookie]:
        return await self._get_json("app/cookies", list[Cookie])

    async def set_cookies(self, cookies: list[Cookie]) -> None:
        payload = [c.model_dump(mode="json", by_alias=True) for c in cookies]
        await self._post("app/setCookies", {"cookies": json.dumps(payload)})

    # ==================== Transfer ====================

    async def get_transfer_info(self) -> TransferInfo:
        return await self._get_json("transfer/info", TransferInfo)

    async def get_speed_limits_mode(self) -> bool:
        """True when alternative speed limits are enabled."""
        return await self._get_json("transfer/speedLimitsMode", int) == 1

    async def toggle_speed_limits_mode(self) -> None:
        await self._post("transfer/toggleSpeedLimitsMode")

    async def get_download_limit(self) -> int:
        """Global download limit in bytes/s; 0 if unlimited."""
        return await self._get_json("transfer/downloadLimit", int)

    async def set_download_limit(self, limit: int) -> None:
        await self._post("transfer/setDownloadLimit", {"limit": limit})

    async def get_upload_limit(self) -> int:
        """Global upload limit in bytes/s; 0 if unlimited."""
        return await self._get_json("transfer/uploadLimit", int)

    async def set_upload_limit(self, limit: int) -> None:
        await self._post("transfer/setUploadLimit", {"limit": limit})

    async def ban_peers(self, peers: list[str]) -> None:
        """Ban peers given as "host:port"."""
        await self._post("transfer/banPeers", {"peers": _join(peers)})

    # ==================== Search ====================

    async def start_search(self, pattern: str, plugins: str = "all", category: str = "all") -> int:
        """Start a search job and return its ID."""
        response = await self._post(
            "search/start", {"pattern": pattern, "plugins": plugins, "category": category}
        )
        return self._decode(response, SearchStatus).id

    async def stop_search(self, search_id: int) -> None:
        await self._post("search/stop", {"id": search_id})

    async def get_search_status(self, search_id: Optional[int] = None) -> list[SearchStatus]:
        params = {"id": search_id} if search_id is not None else None
        return await self._get_json("search/status", list[SearchStatus], params)

    async def get_search_results(
        self, search_id: int, limit: Optional[int] = None, offset: Optional[int] = None
    ) -> tuple[Optional[str], list[SearchResult]]:
        """
        Get results of a search job.

        Returns:
            Tuple of (job status, results). (None, []) if the job is unknown.
        """
        params: dict = {"id": search_id}
        if limit is not None:
            params["limit"] = limit
        if offset is not None:
            params["offset"] = offset

        response = await self._request("GET", "search/results", params=params, allow_status=(404,))
        if response.status_code == 404:
            return None, []

        body = self._decode(response, dict[str, Any])
        try:
            results = TypeAdapter(list[SearchResult]).validate_python(body.get("results") or [])
        except ValidationError as e:
            raise QBittorrentError(f"Failed to decode search results for job {search_id}: {e}") from e
        return body.get("status"), results

    async def delete_search(self, search_id: int) -> None:
        await self._post("search/delete", {"id": search_id})

    async def get_search_plugins(self) -> list[SearchPlugin]:
        return await self._get_json("search/plugins", list[SearchPlugin])

    async def install_search_plugin(self, sources: list[str]) -> None:
        """Install plugins from URLs or file paths."""
        await self._post("search/installPlugin", {"sources": _join(sources)})

    async def uninstall_search_plugin(self, names: list[str]) -> None:
        await self._post("search/uninstallPlugin", {"names": _join(names)})

    async def enable_search_plugin(self, names: list[str], enable: bool) -> None:
        await self._post("search/enablePlugin", {"names": _join(names), "enable": _bool(enable)})

    async def update_search_plugins(self) -> None:
        await self._post("search/updatePlugins")

    # ==================== Torrents ====================

    async def get_torrents(self, options: Optional[TorrentListOptions] = None) -> list[Torrent]:
        params: dict = {}
        if options is not None:
            for key in ("filter", "category", "tag", "sort", "limit", "offset"):
                value = getattr(options, key)
                if value is not None:
                    params[key] = value
            if options.reverse is not None:
                params["reverse"] = _bool(options.reverse)
            if options.hashes:
                params["hashes"] = _join(options.hashes)
        return await self._get_json("torrents/info", list[Torrent], params)

    async def get_torrent_properties(self, torrent_hash: str) -> TorrentProperties:
        return await self._get_json("torrents/properties", TorrentProperties, {"hash": torrent_hash})

    async def get_torrent_trackers(self, torrent_hash: str) -> list[TorrentTracker]:
        return await self._get_json("torrents/trackers", list[TorrentTracker], {"hash": torrent_hash})

    async def get_torrent_webseeds(self, torrent_hash: str) -> list[str]:
        seeds = await self._get_json("torrents/webseeds", list[dict[str, str]], {"hash": torrent_hash})
        return [s["url"] for s in seeds if "url" in s]

    async def get_torrent_files(
        self, torrent_hash: str, indexes: Optional[list[int]] = None
    ) -> list[TorrentContentFile]:
        params = {"hash": torrent_hash}
        if indexes:
            params["indexes"] = _join(indexes)
        return await self._get_json("torrents/files", list[TorrentContentFile], params)

    async def get_piece_states(self, torrent_hash: str) -> list[int]:
        """Per-piece PieceState values."""
        return await self._get_json("torrents/pieceStates", list[int], {"hash": torrent_hash})

    async def get_piece_hashes(self, torrent_hash: str) -> list[str]:
        return await self._get_json("torrents/pieceHashes", list[str], {"hash": torrent_hash})

    async def stop_torrents(self, hashes: list[str]) -> None:
        await self._post("torrents/stop", {"hashes": _join(hashes)})

    async def start_torrents(self, hashes: list[str]) -> None:
        await self._post("torrents/start", {"hashes": _join(hashes)})

    async def delete_torrents(self, hashes: list[str], delete_files: bool = False) -> None:
        await self._post("torrents/delete", {"hashes": _join(hashes), "deleteFiles": _bool(delete_files)})

    async def recheck_torrents(self, hashes: list[str]) -> None:
        await self._post("torrents/recheck", {"hashes": _join(hashes)})

    async def reannounce_torrents(self, hashes: list[str]) -> None:
        await self._post("torrents/reannounce", {"hashes": _join(hashes)})

    async def add_torrent(self, options: AddTorrentOptions) -> None:
        """Add torrents from URLs/magnets and/or raw .torrent files (multipart)."""
        if not options.urls and not options.torrents:
            raise ValueError("add_torrent needs at least one URL or torrent file")

        fields: dict[str, str] = {}
        if options.urls:
            fields["urls"] = "\n".join(options.urls)
        if options.tags:
            fields["tags"] = _join(options.tags, ",")

        for key, value in (
            ("savepath", options.save_path),
            ("category", options.category),
            ("root_folder", options.root_folder),
            ("rename", options.rename),
            ("upLimit", options.up_limit),
            ("dlLimit", options.dl_limit),
            ("ratioLimit", options.ratio_limit),
            ("seedingTimeLimit", options.seeding_time_limit),
        ):
            if value is not None:
                fields[key] = str(value)

        for key, flag in (
            ("skip_checking", options.skip_checking),
            ("paused", options.paused),
            ("stopped", options.paused),
            ("autoTMM", options.auto_tmm),
            ("sequentialDownload", options.sequential_download),
            ("firstLastPiecePrio", options.first_last_piece_prio),
        ):
            if flag is not None:
                fields[key] = _bool(flag)

        files = [
            ("torrents", (t.filename, t.data, "application/x-bittorrent"))
            for t in options.torrents
        ]

        response = await self._request("POST", "torrents/add", data=fields, files=files or None)
        if response.text.strip() == "Fails.":
            raise QBittorrentError("add torrent failed: qBittorrent rejected the torrent")

    async def add_trackers(self, torrent_hash: str, urls: list[str]) -> None:
        await self._post("torrents/addTrackers", {"hash": torrent_hash, "urls": "\n".join(urls)})

    async def edit_tracker(self, torrent_hash: str, old_url: str, new_url: str) -> None:
        await self._post("torrents/editTracker", {"hash": torrent_hash, "oldUrl": old_url, "newUrl": new_url})

    async def remove_trackers(self, torrent_hash: str, urls: list[str]) -> None:
        await self._post("torrents/removeTrackers", {"hash": torrent_hash, "urls": _join(urls)})

    async def add_peers(self, hashes: list[str], peers: list[str]) -> None:
        await self._post("torrents/addPeers", {"hashes": _join(hashes), "peers": _join(peers)})

    async def increase_priority(self, hashes: list[str]) -> None:
        await self._post("torrents/increasePrio", {"hashes": _join(hashes)})

    async def decrease_priority(self, hashes: list[str]) -> None:
        await self._post("torrents/decreasePrio", {"hashes": _join(hashes)})

    async def top_priority(self, hashes: list[str]) -> None:
        await self._post("torrents/topPrio", {"hashes": _join(hashes)})

    async def bottom_priority(self, hashes: list[str]) -> None:
        await self._post("torrents/bottomPrio", {"hashes": _join(hashes)})

    async def set_file_priority(self, torrent_hash: str, file_ids: list[int], priority: FilePriority) -> None:
        await self._post(
            "torrents/filePrio",
            {"hash": torrent_hash, "id": _join(file_ids), "priority": int(priority)},
        )

    async def get_torrent_download_limit(self, hashes: list[str]) -> dict[str, int]:
        """Download limit per torrent hash (bytes/s, 0 or -1 if unlimited)."""
        return await self._get_json("torrents/downloadLimit", dict[str, int], {"hashes": _join(hashes)})

    async def set_torrent_download_limit(self, hashes: list[str], limit: int) -> None:
        await self._post("torrents/setDownloadLimit", {"hashes": _join(hashes), "limit": limit})

    async def set_share_limits(self, hashes: list[str], limits: ShareLimits) -> None:
        await self._post(
            "torrents/setShareLimits",
            {
                "hashes": _join(hashes),
                "ratioLimit": limits.ratio,
                "seedingTimeLimit": limits.seeding_time,
                "inactiveSeedingTimeLimit": limits.inactive_seeding_time,
            },
        )

    async def get_torrent_upload_limit(self, hashes: list[str]) -> dict[str, int]:
        """Upload limit per torrent hash (bytes/s, 0 or -1 if unlimited)."""
        return await self._get_json("torrents/uploadLimit", dict[str, int], {"hashes": _join(hashes)})

    async def set_torrent_upload_limit(self, hashes: list[str], limit: int) -> None:
        await self._post("torrents/setUploadLimit", {"hashes": _join(hashes), "limit": limit})

    async def set_location(self, hashes: list[str], location: str) -> None:
        await self._post("torrents/setLocation", {"hashes": _join(hashes), "location": location})

    async def rename_torrent(self, torrent_hash: str, name: str) -> None:
        await self._post("torrents/rename", {"hash": torrent_hash, "name": name})

    async def set_category(self, hashes: list[str], category: str) -> None:
        """Assign a category; an empty string clears it."""
        await self._post("torrents/setCategory", {"hashes": _join(hashes), "category": category})

    async def get_categories(self) -> dict[str, Category]:
        return await self._get_json("torrents/categories", dict[str, Category])

    async def add_category(self, category: Category) -> None:
        await self._post("torrents/createCategory", {"category": category.name, "savePath": category.save_path})

    async def edit_category(self, category: Category) -> None:
        await self._post("torrents/editCategory", {"category": category.name, "savePath": category.save_path})

    async def remove_categories(self, names: list[str]) -> None:
        await self._post("torrents/removeCategories", {"categories": "\n".join(names)})

    async def add_tags(self, hashes: list[str], tags: list[str]) -> None:
        await self._post("torrents/addTags", {"hashes": _join(hashes), "tags": _join(tags, ",")})

    async def remove_tags(self, hashes: list[str], tags: list[str]) -> None:
        await self._post("torrents/removeTags", {"hashes": _join(hashes), "tags": _join(tags, ",")})

    async def get_tags(self) -> list[str]:
        return await self._get_json("torrents/tags", list[str])

    async def create_tags(self, tags: list[str]) -> None:
        await self._post("torrents/createTags", {"tags": _join(tags, ",")})

    async def delete_tags(self, tags: list[str]) -> None:
        await self._post("torrents/deleteTags", {"tags": _join(tags, ",")})

    async def set_auto_management(self, hashes: list[str], enable: bool) -> None:
        await self._post("torrents/setAutoManagement", {"hashes": _join(hashes), "enable": _bool(enable)})

    async def toggle_sequential_download(self, hashes: list[str]) -> None:
        await self._post("torrents/toggleSequentialDownload", {"hashes": _join(hashes)})

    async def toggle_first_last_piece_priority(self, hashes: list[str]) -> None:
        await self._post("torrents/toggleFirstLastPiecePrio", {"hashes": _join(hashes)})

    async def set_force_start(self, hashes: list[str], enable: bool) -> None:
        await self._post("torrents/setForceStart", {"hashes": _join(hashes), "value": _bool(enable)})

    async def set_super_seeding(self, hashes: list[str], enable: bool) -> None:
        await self._post("torrents/setSuperSeeding", {"hashes": _join(hashes), "value": _bool(enable)})

    async def rename_file(self, torrent_hash: str, old_path: str, new_path: str) -> None:
        await self._post("torrents/renameFile", {"hash": torrent_hash, "oldPath": old_path, "newPath": new_path})

    async def rename_folder(self, torrent_hash: str, old_path: str, new_path: str) -> None:
        await self._post("torrents/renameFolder", {"hash": torrent_hash, "oldPath": old_path, "newPath": new_path})
