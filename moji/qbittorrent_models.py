"""Data models for the qBittorrent Web API v2.

Response models are pydantic so the JSON the Web UI returns can be
validated directly. Fields the server leaves out fall back to zero values,
which also lets the same models decode the partial objects in sync/maindata.

See: https://github.com/qbittorrent/qBittorrent/wiki/WebUI-API-(qBittorrent-5.0)
"""
from dataclasses import dataclass, field
from enum import Enum, IntEnum, IntFlag
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ==================== Enums ====================

class TorrentState(str, Enum):
    ERROR = "error"
    MISSING_FILES = "missingFiles"
    UPLOADING = "uploading"
    PAUSED_UP = "pausedUP"
    STOPPED_UP = "stoppedUP"
    QUEUED_UP = "queuedUP"
    STALLED_UP = "stalledUP"
    CHECKING_UP = "checkingUP"
    FORCED_UP = "forcedUP"
    ALLOCATING = "allocating"
    DOWNLOADING = "downloading"
    META_DL = "metaDL"
    PAUSED_DL = "pausedDL"
    STOPPED_DL = "stoppedDL"
    QUEUED_DL = "queuedDL"
    STALLED_DL = "stalledDL"
    CHECKING_DL = "checkingDL"
    FORCED_DL = "forcedDL"
    CHECKING_RESUME_DATA = "checkingResumeData"
    MOVING = "moving"
    UNKNOWN = "unknown"


class LogType(IntFlag):
    NORMAL = 1
    INFO = 2
    WARNING = 4
    CRITICAL = 8
    ALL = NORMAL | INFO | WARNING | CRITICAL


class TrackerStatus(IntEnum):
    DISABLED = 0  # DHT, PeX and LSD pseudo-trackers
    NOT_CONTACTED = 1
    WORKING = 2
    UPDATING = 3
    NOT_WORKING = 4


class FilePriority(IntEnum):
    DONT_DOWNLOAD = 0
    NORMAL = 1
    HIGH = 6
    MAXIMAL = 7


class PieceState(IntEnum):
    NOT_DOWNLOADED = 0
    DOWNLOADING = 1
    DOWNLOADED = 2


class ProxyType(IntEnum):
    DISABLED = -1
    HTTP = 1
    SOCKS5 = 2
    HTTP_AUTH = 3
    SOCKS5_AUTH = 4
    SOCKS4 = 5


# Newer servers report proxy_type by name instead of number
_PROXY_TYPE_NAMES = {
    "HTTP": ProxyType.HTTP,
    "SOCKS5": ProxyType.SOCKS5,
    "SOCKS4": ProxyType.SOCKS4,
    "NONE": ProxyType.DISABLED,
}


# ==================== Responses ====================

class QBModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class LogEntry(QBModel):
    id: int
    type: int
    message: str = ""
    timestamp: int = 0  # Seconds since epoch


class PeerLogEntry(QBModel):
    id: int
    ip: str = ""
    timestamp: int = 0
    blocked: bool = False
    reason: str = ""


class Torrent(QBModel):
    """Entry of torrents/info (and of sync/maindata, where it may be partial)."""
    hash: str = ""
    name: str = ""
    state: str = ""  # Compare against TorrentState
    added_on: int = 0
    amount_left: int = 0
    auto_tmm: bool = False
    availability: float = 0.0
    category: str = ""
    completed: int = 0
    completion_on: int = 0
    content_path: str = ""
    dl_limit: int = 0  # -1 if unlimited
    dlspeed: int = 0
    downloaded: int = 0
    downloaded_session: int = 0
    eta: int = 0
    f_l_piece_prio: bool = False
    force_start: bool = False
    is_private: bool = Field(False, alias="isPrivate")
    last_activity: int = 0
    magnet_uri: str = ""
    max_ratio: float = 0.0
    max_seeding_time: int = 0
    num_complete: int = 0
    num_incomplete: int = 0
    num_leechs: int = 0
    num_seeds: int = 0
    priority: int = 0  # -1 if queueing is disabled or torrent is seeding
    progress: float = 0.0
    ratio: float = 0.0
    ratio_limit: float = 0.0
    reannounce: int = 0
    save_path: str = ""
    seeding_time: int = 0
    seeding_time_limit: int = 0
    seen_complete: int = 0
    seq_dl: bool = False
    size: int = 0
    super_seeding: bool = False
    tags: str = ""  # Comma separated
    time_active: int = 0
    total_size: int = 0
    tracker: str = ""
    up_limit: int = 0
    uploaded: int = 0
    uploaded_session: int = 0
    upspeed: int = 0

    @property
    def tag_list(self) -> list[str]:
        return [t.strip() for t in self.tags.split(",") if t.strip()]


class TorrentProperties(QBModel):
    """Generic properties of one torrent (torrents/properties)."""
    save_path: str = ""
    creation_date: int = 0
    piece_size: int = 0
    comment: str = ""
    total_wasted: int = 0
    total_uploaded: int = 0
    total_uploaded_session: int = 0
    total_downloaded: int = 0
    total_downloaded_session: int = 0
    up_limit: int = 0
    dl_limit: int = 0
    time_elapsed: int = 0
    seeding_time: int = 0
    nb_connections: int = 0
    nb_connections_limit: int = 0
    share_ratio: float = 0.0
    addition_date: int = 0
    completion_date: int = 0
    created_by: str = ""
    dl_speed_avg: int = 0
    dl_speed: int = 0
    eta: int = 0
    last_seen: int = 0
    peers: int = 0
    peers_total: int = 0
    pieces_have: int = 0
    pieces_num: int = 0
    reannounce: int = 0
    seeds: int = 0
    seeds_total: int = 0
    total_size: int = 0
    up_speed_avg: int = 0
    up_speed: int = 0
    is_private: bool = Field(False, alias="isPrivate")


class TorrentTracker(QBModel):
    url: str
    status: int = TrackerStatus.NOT_CONTACTED
    tier: int | str = 0  # Placeholder (< 0 or "") for DHT/PeX/LSD entries
    num_peers: int = 0
    num_seeds: int = 0
    num_leeches: int = 0
    num_downloaded: int = 0
    msg: str = ""


class TorrentContentFile(QBModel):
    index: int
    name: str
    size: int = 0
    progress: float = 0.0
    priority: int = FilePriority.NORMAL
    is_seed: bool = False
    piece_range: list[int] = Field(default_factory=list)  # [first, last], inclusive
    availability: float = 0.0


class Category(QBModel):
    name: str = ""
    save_path: str = Field("", alias="savePath")


class TransferInfo(QBModel):
    """Global transfer info (transfer/info, sync/maindata server_state)."""
    dl_info_speed: int = 0
    dl_info_data: int = 0
    up_info_speed: int = 0
    up_info_data: int = 0
    dl_rate_limit: int = 0
    up_rate_limit: int = 0
    dht_nodes: int = 0
    connection_status: str = ""  # connected, firewalled, disconnected
    queueing: bool = False
    use_alt_speed_limits: bool = False
    refresh_interval: int = 0


class MainData(QBModel):
    """Changes since the previous sync/maindata response id."""
    rid: int = 0
    full_update: bool = False
    torrents: dict[str, Torrent] = Field(default_factory=dict)
    torrents_removed: list[str] = Field(default_factory=list)
    categories: dict[str, Category] = Field(default_factory=dict)
    categories_removed: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    tags_removed: list[str] = Field(default_factory=list)
    server_state: Optional[TransferInfo] = None


class BuildInfo(QBModel):
    qt: str = ""
    libtorrent: str = ""
    boost: str = ""
    openssl: str = ""
    zlib: str = ""
    bitness: int = 0


class Preferences(QBModel):
    """Application preferences.

    Only commonly used keys are typed; everything else the server sends is
    kept as extra fields and round-trips through set_preferences.
    """
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    # Downloads
    save_path: Optional[str] = None
    temp_path_enabled: Optional[bool] = None
    temp_path: Optional[str] = None
    scan_dirs: Optional[dict[str, int | str]] = None  # 0/1 mode or explicit path
    export_dir: Optional[str] = None
    export_dir_fin: Optional[str] = None
    preallocate_all: Optional[bool] = None
    incomplete_files_ext: Optional[bool] = None
    auto_delete_mode: Optional[int] = None

    # Queueing
    queueing_enabled: Optional[bool] = None
    max_active_downloads: Optional[int] = None
    max_active_uploads: Optional[int] = None
    max_active_torrents: Optional[int] = None
    dont_count_slow_torrents: Optional[bool] = None

    # Share limits
    max_ratio_enabled: Optional[bool] = None
    max_ratio: Optional[float] = None
    max_ratio_act: Optional[int] = None  # 0 = pause, 1 = remove
    max_seeding_time_enabled: Optional[bool] = None
    max_seeding_time: Optional[int] = None

    # BitTorrent
    dht: Optional[bool] = None
    pex: Optional[bool] = None
    lsd: Optional[bool] = None
    encryption: Optional[int] = None  # 0 = prefer, 1 = force on, 2 = force off
    anonymous_mode: Optional[bool] = None

    # Connection
    listen_port: Optional[int] = None
    upnp: Optional[bool] = None
    random_port: Optional[bool] = None
    bittorrent_protocol: Optional[int] = None  # 0 = TCP and uTP, 1 = TCP, 2 = uTP

    # Speed limits
    dl_limit: Optional[int] = None
    up_limit: Optional[int] = None
    alt_dl_limit: Optional[int] = None
    alt_up_limit: Optional[int] = None
    scheduler_enabled: Optional[bool] = None
    scheduler_days: Optional[int] = None

    # Proxy
    proxy_type: Optional[ProxyType] = None
    proxy_ip: Optional[str] = None
    proxy_port: Optional[int] = None
    proxy_peer_connections: Optional[bool] = None
    proxy_auth_enabled: Optional[bool] = None
    proxy_username: Optional[str] = None
    proxy_password: Optional[str] = None

    # Web UI
    web_ui_address: Optional[str] = None
    web_ui_port: Optional[int] = None
    web_ui_username: Optional[str] = None
    web_ui_password: Optional[str] = None  # Always empty when read back
    bypass_local_auth: Optional[bool] = None
    bypass_auth_subnet_whitelist: Optional[str] = None
    alt_speed_enabled: Optional[bool] = None

    @field_validator("proxy_type", mode="before")
    @classmethod
    def _parse_proxy_type(cls, v):
        if isinstance(v, str) and not v.lstrip("-").isdigit():
            try:
                return _PROXY_TYPE_NAMES[v.upper()]
            except KeyError:
                raise ValueError(f"unknown proxy_type: {v}") from None
        return v


class Cookie(QBModel):
    name: str
    value: str = ""
    domain: str = ""
    path: str = "/"
    expiration_date: int = Field(0, alias="expirationDate")  # Seconds since epoch


class SearchStatus(QBModel):
    id: int
    status: str = ""  # Running or Stopped
    total: int = 0


class SearchResult(QBModel):
    descr_link: str = Field("", alias="descrLink")
    file_name: str = Field("", alias="fileName")
    file_size: int = Field(0, alias="fileSize")
    file_url: str = Field("", alias="fileUrl")
    nb_leechers: int = Field(0, alias="nbLeechers")
    nb_seeders: int = Field(0, alias="nbSeeders")
    site_url: str = Field("", alias="siteUrl")


class SearchPluginCategory(QBModel):
    id: str
    name: str = ""


class SearchPlugin(QBModel):
    name: str
    full_name: str = Field("", alias="fullName")
    enabled: bool = False
    version: str = ""
    url: str = ""
    supported_categories: list[SearchPluginCategory] = Field(default_factory=list, alias="supportedCategories")


# ==================== Request options ====================

@dataclass
class TorrentListOptions:
    """Filters for torrents/info. None means "don't send"."""
    filter: Optional[str] = None  # all, downloading, seeding, completed, stopped, active, ...
    category: Optional[str] = None  # "" means without category
    tag: Optional[str] = None  # "" means without tag
    sort: Optional[str] = None
    reverse: Optional[bool] = None
    limit: Optional[int] = None
    offset: Optional[int] = None
    hashes: list[str] = field(default_factory=list)


@dataclass
class TorrentFile:
    """Raw .torrent file content to upload."""
    filename: str
    data: bytes


@dataclass
class AddTorrentOptions:
    urls: list[str] = field(default_factory=list)
    torrents: list[TorrentFile] = field(default_factory=list)
    save_path: Optional[str] = None
    category: Optional[str] = None
    tags: list[str] = field(default_factory=list)
    skip_checking: Optional[bool] = None
    paused: Optional[bool] = None
    root_folder: Optional[str] = None  # "true", "false" or "unset"
    rename: Optional[str] = None
    up_limit: Optional[int] = None  # bytes/s
    dl_limit: Optional[int] = None  # bytes/s
    ratio_limit: Optional[float] = None
    seeding_time_limit: Optional[int] = None  # minutes
    auto_tmm: Optional[bool] = None
    sequential_download: Optional[bool] = None
    first_last_piece_prio: Optional[bool] = None


@dataclass
class ShareLimits:
    """Per-torrent share limits. -2 uses the global limit, -1 means no limit."""
    ratio: float = -2
    seeding_time: int = -2  # minutes
    inactive_seeding_time: int = -2  # minutes
