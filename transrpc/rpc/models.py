"""Typed arguments and results for daemon RPC methods.

Python attributes are snake_case; the wire names (camelCase or hyphenated,
as the daemon spells them) are carried as field aliases. Argument models are
serialized with ``by_alias=True, exclude_none=True`` so unset options are
left out of the request.
"""

from __future__ import annotations

import base64
from enum import Enum, IntEnum

from pydantic import BaseModel, ConfigDict, Field

TorrentId = int | str

DEFAULT_TORRENT_FIELDS: tuple[str, ...] = (
    "activityDate",
    "addedDate",
    "desiredAvailable",
    "error",
    "errorString",
    "eta",
    "haveUnchecked",
    "haveValid",
    "id",
    "isFinished",
    "isStalled",
    "labels",
    "leftUntilDone",
    "magnetLink",
    "metadataPercentComplete",
    "name",
    "peersConnected",
    "peersGettingFromUs",
    "peersSendingToUs",
    "percentDone",
    "primary-mime-type",
    "downloadDir",
    "queuePosition",
    "rateDownload",
    "rateUpload",
    "sizeWhenDone",
    "totalSize",
    "status",
    "uploadRatio",
    "uploadedEver",
    "downloadedEver",
)

DEFAULT_SESSION_FIELDS: tuple[str, ...] = (
    "alt-speed-down",
    "alt-speed-enabled",
    "alt-speed-up",
    "download-dir",
    "download-queue-enabled",
    "download-queue-size",
    "incomplete-dir",
    "incomplete-dir-enabled",
    "peer-limit-global",
    "peer-limit-per-torrent",
    "peer-port",
    "peer-port-random-on-start",
    "port-forwarding-enabled",
    "rename-partial-files",
    "seed-queue-enabled",
    "seed-queue-size",
    "seedRatioLimit",
    "seedRatioLimited",
    "speed-limit-down",
    "speed-limit-down-enabled",
    "speed-limit-up",
    "speed-limit-up-enabled",
    "start-added-torrents",
    "trash-original-torrent-files",
    "version",
)

FILE_FIELDS: tuple[str, ...] = ("files", "fileStats")
PEER_FIELDS: tuple[str, ...] = ("peers", "peersFrom")
PIECE_FIELDS: tuple[str, ...] = ("pieceCount", "pieceSize", "pieces")


class TorrentStatus(IntEnum):
    """Daemon torrent activity codes."""

    STOPPED = 0
    CHECK_WAIT = 1
    CHECK = 2
    DOWNLOAD_WAIT = 3
    DOWNLOAD = 4
    SEED_WAIT = 5
    SEED = 6


class TorrentErrorCode(IntEnum):
    """Daemon torrent error codes."""

    OK = 0
    TRACKER_WARNING = 1
    TRACKER_ERROR = 2
    LOCAL_ERROR = 3


class TorrentStatusCalc(str, Enum):
    """Display status derived from a torrent's raw fields."""

    COMPLETE = "Complete"
    PAUSED = "Paused"
    QUEUED = "Queued"
    VERIFYING = "Verifying local data"
    RETRIEVING = "Retrieving metadata"
    STALLED = "Stalled"
    DOWNLOADING = "Downloading"
    SEEDING = "Seeding"
    UNKNOWN = "Unknown"


class FilePriority(IntEnum):
    """Per-file download priority."""

    LOW = -1
    NORMAL = 0
    HIGH = 1


class TorrentPriority(str, Enum):
    """Whole-torrent priority, applied to every file."""

    HIGH = "priority-high"
    NORMAL = "priority-normal"
    LOW = "priority-low"


class RPCModel(BaseModel):
    """Base for models that accept both wire aliases and field names."""

    model_config = ConfigDict(populate_by_name=True)

    def to_arguments(self) -> dict:
        """Serialize as the ``arguments`` object of a request."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# Torrents


class Torrent(RPCModel):
    """One torrent as returned by ``torrent-get``.

    Only ``id`` is required; other fields keep their defaults when the caller
    asked for a narrower field list.
    """

    id: int
    name: str = ""
    activity_date: int = Field(0, alias="activityDate")
    added_date: int = Field(0, alias="addedDate")
    desired_available: int = Field(0, alias="desiredAvailable")
    error: TorrentErrorCode = TorrentErrorCode.OK
    error_string: str = Field("", alias="errorString")
    eta: int = -1
    have_unchecked: int = Field(0, alias="haveUnchecked")
    have_valid: int = Field(0, alias="haveValid")
    is_finished: bool = Field(False, alias="isFinished")
    is_stalled: bool = Field(False, alias="isStalled")
    labels: list[str] = Field(default_factory=list)
    left_until_done: int = Field(0, alias="leftUntilDone")
    magnet_link: str = Field("", alias="magnetLink")
    metadata_percent_complete: float = Field(0.0, alias="metadataPercentComplete")
    peers_connected: int = Field(0, alias="peersConnected")
    peers_getting_from_us: int = Field(0, alias="peersGettingFromUs")
    peers_sending_to_us: int = Field(0, alias="peersSendingToUs")
    percent_done: float = Field(0.0, alias="percentDone")
    primary_mime_type: str | None = Field(None, alias="primary-mime-type")
    download_dir: str = Field("", alias="downloadDir")
    queue_position: int = Field(0, alias="queuePosition")
    rate_download: int = Field(0, alias="rateDownload")
    rate_upload: int = Field(0, alias="rateUpload")
    size_when_done: int = Field(0, alias="sizeWhenDone")
    total_size: int = Field(0, alias="totalSize")
    status: int = 0
    upload_ratio: float = Field(0.0, alias="uploadRatio")
    uploaded_ever: int = Field(0, alias="uploadedEver")
    downloaded_ever: int = Field(0, alias="downloadedEver")

    @property
    def status_calc(self) -> TorrentStatusCalc:
        """Human-facing status derived from status, progress and metadata."""
        if self.status == TorrentStatus.STOPPED:
            if self.percent_done == 1:
                return TorrentStatusCalc.COMPLETE
            return TorrentStatusCalc.PAUSED
        if self.status in (
            TorrentStatus.CHECK_WAIT,
            TorrentStatus.DOWNLOAD_WAIT,
            TorrentStatus.SEED_WAIT,
        ):
            return TorrentStatusCalc.QUEUED
        if self.status == TorrentStatus.CHECK:
            return TorrentStatusCalc.VERIFYING
        if self.status == TorrentStatus.DOWNLOAD:
            if self.metadata_percent_complete < 1:
                return TorrentStatusCalc.RETRIEVING
            if self.is_stalled:
                return TorrentStatusCalc.STALLED
            return TorrentStatusCalc.DOWNLOADING
        if self.status == TorrentStatus.SEED:
            return TorrentStatusCalc.SEEDING
        return TorrentStatusCalc.UNKNOWN

    @property
    def downloaded_calc(self) -> int:
        """Bytes on disk, verified or not."""
        return self.have_unchecked + self.have_valid

    @property
    def is_active(self) -> bool:
        """Whether the daemon is currently working on this torrent."""
        return self.status != TorrentStatus.STOPPED

    @property
    def has_error(self) -> bool:
        """Whether the daemon reported a tracker or local problem."""
        return self.error != TorrentErrorCode.OK


class TorrentList(RPCModel):
    torrents: list[Torrent] = Field(default_factory=list)


class TorrentFile(RPCModel):
    bytes_completed: int = Field(0, alias="bytesCompleted")
    length: int = 0
    name: str = ""

    @property
    def percent_done(self) -> float:
        if self.length <= 0:
            return 0.0
        return self.bytes_completed / self.length


class TorrentFileStats(RPCModel):
    bytes_completed: int = Field(0, alias="bytesCompleted")
    wanted: bool = True
    priority: int = FilePriority.NORMAL


class TorrentFilesEntry(RPCModel):
    files: list[TorrentFile] = Field(default_factory=list)
    file_stats: list[TorrentFileStats] = Field(default_factory=list, alias="fileStats")


class TorrentFilesList(RPCModel):
    torrents: list[TorrentFilesEntry] = Field(default_factory=list)


class Peer(RPCModel):
    """A peer connected to one torrent."""

    address: str = ""
    client_name: str = Field("", alias="clientName")
    client_is_choked: bool = Field(False, alias="clientIsChoked")
    client_is_interested: bool = Field(False, alias="clientIsInterested")
    flag_str: str = Field("", alias="flagStr")
    is_downloading_from: bool = Field(False, alias="isDownloadingFrom")
    is_encrypted: bool = Field(False, alias="isEncrypted")
    is_incoming: bool = Field(False, alias="isIncoming")
    is_uploading_to: bool = Field(False, alias="isUploadingTo")
    is_utp: bool = Field(False, alias="isUTP")
    peer_is_choked: bool = Field(False, alias="peerIsChoked")
    peer_is_interested: bool = Field(False, alias="peerIsInterested")
    port: int = 0
    progress: float = 0.0
    rate_to_client: int = Field(0, alias="rateToClient")
    rate_to_peer: int = Field(0, alias="rateToPeer")


class PeersFrom(RPCModel):
    """How many connected peers were found through each source."""

    from_cache: int = Field(0, alias="fromCache")
    from_dht: int = Field(0, alias="fromDht")
    from_incoming: int = Field(0, alias="fromIncoming")
    from_lpd: int = Field(0, alias="fromLpd")
    from_ltep: int = Field(0, alias="fromLtep")
    from_pex: int = Field(0, alias="fromPex")
    from_tracker: int = Field(0, alias="fromTracker")


class TorrentPeersEntry(RPCModel):
    peers: list[Peer] = Field(default_factory=list)
    peers_from: PeersFrom | None = Field(None, alias="peersFrom")


class TorrentPeersList(RPCModel):
    torrents: list[TorrentPeersEntry] = Field(default_factory=list)


class TorrentPieces(RPCModel):
    """Piece layout and completion bitfield for one torrent."""

    piece_count: int = Field(0, alias="pieceCount")
    piece_size: int = Field(0, alias="pieceSize")
    pieces: str = Field("", description="Base64-encoded have-bitfield")

    def bitfield(self) -> bytes:
        return base64.b64decode(self.pieces) if self.pieces else b""

    def have_piece(self, index: int) -> bool:
        """Whether piece ``index`` is complete (most significant bit first)."""
        if index < 0 or index >= self.piece_count:
            raise IndexError(f"piece index {index} out of range")
        bits = self.bitfield()
        byte_index, bit = divmod(index, 8)
        if byte_index >= len(bits):
            return False
        return bool(bits[byte_index] & (0x80 >> bit))

    @property
    def pieces_have(self) -> int:
        return sum(1 for i in range(self.piece_count) if self.have_piece(i))


class TorrentPiecesList(RPCModel):
    torrents: list[TorrentPieces] = Field(default_factory=list)


class TorrentGetArgs(RPCModel):
    fields: list[str]
    ids: list[TorrentId] | None = None


class TorrentIdsArgs(RPCModel):
    ids: list[TorrentId]


class TorrentAddArgs(RPCModel):
    """Arguments of ``torrent-add``. Exactly one of filename or metainfo is set."""

    filename: str | None = Field(None, description="URL, magnet link or daemon-side path")
    metainfo: str | None = Field(None, description="Base64-encoded .torrent content")
    download_dir: str | None = Field(None, alias="download-dir")
    paused: bool | None = None
    labels: list[str] | None = None


class TorrentAdded(RPCModel):
    hash_string: str = Field("", alias="hashString")
    id: int
    name: str = ""


class TorrentAddResult(RPCModel):
    """Result of ``torrent-add``; one of the two fields is present."""

    torrent_added: TorrentAdded | None = Field(None, alias="torrent-added")
    torrent_duplicate: TorrentAdded | None = Field(None, alias="torrent-duplicate")

    @property
    def torrent(self) -> TorrentAdded | None:
        return self.torrent_added or self.torrent_duplicate

    @property
    def is_duplicate(self) -> bool:
        return self.torrent_added is None and self.torrent_duplicate is not None


class TorrentRemoveArgs(RPCModel):
    ids: list[TorrentId]
    delete_local_data: bool = Field(False, alias="delete-local-data")


class TorrentSetArgs(RPCModel):
    """Arguments of ``torrent-set``; unset options are not sent."""

    ids: list[TorrentId]
    bandwidth_priority: int | None = Field(None, alias="bandwidthPriority")
    download_limit: int | None = Field(None, alias="downloadLimit")
    download_limited: bool | None = Field(None, alias="downloadLimited")
    files_wanted: list[int] | None = Field(None, alias="files-wanted")
    files_unwanted: list[int] | None = Field(None, alias="files-unwanted")
    honors_session_limits: bool | None = Field(None, alias="honorsSessionLimits")
    labels: list[str] | None = None
    location: str | None = None
    peer_limit: int | None = Field(None, alias="peer-limit")
    priority_high: list[int] | None = Field(None, alias="priority-high")
    priority_low: list[int] | None = Field(None, alias="priority-low")
    priority_normal: list[int] | None = Field(None, alias="priority-normal")
    queue_position: int | None = Field(None, alias="queuePosition")
    seed_idle_limit: int | None = Field(None, alias="seedIdleLimit")
    seed_idle_mode: int | None = Field(None, alias="seedIdleMode")
    seed_ratio_limit: float | None = Field(None, alias="seedRatioLimit")
    seed_ratio_mode: int | None = Field(None, alias="seedRatioMode")
    upload_limit: int | None = Field(None, alias="uploadLimit")
    upload_limited: bool | None = Field(None, alias="uploadLimited")


class TorrentSetLocationArgs(RPCModel):
    ids: list[TorrentId]
    location: str
    move: bool = True


class TorrentRenameArgs(RPCModel):
    ids: list[TorrentId]
    path: str
    name: str


class TorrentRenameResult(RPCModel):
    path: str
    name: str
    id: int


# Session


class SessionInfo(RPCModel):
    """Daemon settings as returned by ``session-get``."""

    alt_speed_down: int | None = Field(None, alias="alt-speed-down")
    alt_speed_enabled: bool | None = Field(None, alias="alt-speed-enabled")
    alt_speed_up: int | None = Field(None, alias="alt-speed-up")
    download_dir: str | None = Field(None, alias="download-dir")
    download_queue_enabled: bool | None = Field(None, alias="download-queue-enabled")
    download_queue_size: int | None = Field(None, alias="download-queue-size")
    incomplete_dir: str | None = Field(None, alias="incomplete-dir")
    incomplete_dir_enabled: bool | None = Field(None, alias="incomplete-dir-enabled")
    peer_limit_global: int | None = Field(None, alias="peer-limit-global")
    peer_limit_per_torrent: int | None = Field(None, alias="peer-limit-per-torrent")
    peer_port: int | None = Field(None, alias="peer-port")
    peer_port_random_on_start: bool | None = Field(None, alias="peer-port-random-on-start")
    port_forwarding_enabled: bool | None = Field(None, alias="port-forwarding-enabled")
    rename_partial_files: bool | None = Field(None, alias="rename-partial-files")
    seed_queue_enabled: bool | None = Field(None, alias="seed-queue-enabled")
    seed_queue_size: int | None = Field(None, alias="seed-queue-size")
    seed_ratio_limit: float | None = Field(None, alias="seedRatioLimit")
    seed_ratio_limited: bool | None = Field(None, alias="seedRatioLimited")
    speed_limit_down: int | None = Field(None, alias="speed-limit-down")
    speed_limit_down_enabled: bool | None = Field(None, alias="speed-limit-down-enabled")
    speed_limit_up: int | None = Field(None, alias="speed-limit-up")
    speed_limit_up_enabled: bool | None = Field(None, alias="speed-limit-up-enabled")
    start_added_torrents: bool | None = Field(None, alias="start-added-torrents")
    trash_original_torrent_files: bool | None = Field(
        None, alias="trash-original-torrent-files"
    )
    version: str | None = None


class SessionGetArgs(RPCModel):
    fields: list[str]


class SessionSetArgs(RPCModel):
    """Arguments of ``session-set``; unset options are not sent."""

    alt_speed_down: int | None = Field(None, alias="alt-speed-down")
    alt_speed_enabled: bool | None = Field(None, alias="alt-speed-enabled")
    alt_speed_up: int | None = Field(None, alias="alt-speed-up")
    download_dir: str | None = Field(None, alias="download-dir")
    download_queue_enabled: bool | None = Field(None, alias="download-queue-enabled")
    download_queue_size: int | None = Field(None, alias="download-queue-size")
    incomplete_dir: str | None = Field(None, alias="incomplete-dir")
    incomplete_dir_enabled: bool | None = Field(None, alias="incomplete-dir-enabled")
    peer_limit_global: int | None = Field(None, alias="peer-limit-global")
    peer_limit_per_torrent: int | None = Field(None, alias="peer-limit-per-torrent")
    peer_port: int | None = Field(None, alias="peer-port")
    peer_port_random_on_start: bool | None = Field(None, alias="peer-port-random-on-start")
    port_forwarding_enabled: bool | None = Field(None, alias="port-forwarding-enabled")
    rename_partial_files: bool | None = Field(None, alias="rename-partial-files")
    seed_queue_enabled: bool | None = Field(None, alias="seed-queue-enabled")
    seed_queue_size: int | None = Field(None, alias="seed-queue-size")
    seed_ratio_limit: float | None = Field(None, alias="seedRatioLimit")
    seed_ratio_limited: bool | None = Field(None, alias="seedRatioLimited")
    speed_limit_down: int | None = Field(None, alias="speed-limit-down")
    speed_limit_down_enabled: bool | None = Field(None, alias="speed-limit-down-enabled")
    speed_limit_up: int | None = Field(None, alias="speed-limit-up")
    speed_limit_up_enabled: bool | None = Field(None, alias="speed-limit-up-enabled")
    start_added_torrents: bool | None = Field(None, alias="start-added-torrents")
    trash_original_torrent_files: bool | None = Field(
        None, alias="trash-original-torrent-files"
    )


class CumulativeStats(RPCModel):
    """Transfer counters, either since daemon start or over its lifetime."""

    downloaded_bytes: int = Field(0, alias="downloadedBytes")
    uploaded_bytes: int = Field(0, alias="uploadedBytes")
    files_added: int = Field(0, alias="filesAdded")
    session_count: int = Field(0, alias="sessionCount")
    seconds_active: int = Field(0, alias="secondsActive")


class SessionStats(RPCModel):
    """Result of ``session-stats``."""

    active_torrent_count: int = Field(0, alias="activeTorrentCount")
    paused_torrent_count: int = Field(0, alias="pausedTorrentCount")
    torrent_count: int = Field(0, alias="torrentCount")
    download_speed: int = Field(0, alias="downloadSpeed")
    upload_speed: int = Field(0, alias="uploadSpeed")
    cumulative_stats: CumulativeStats = Field(
        default_factory=CumulativeStats, alias="cumulative-stats"
    )
    current_stats: CumulativeStats = Field(
        default_factory=CumulativeStats, alias="current-stats"
    )


class SessionOverview(BaseModel):
    """Compact summary of a daemon's activity, for status displays."""

    active: int
    paused: int
    total: int
    download_speed: int
    upload_speed: int
    ratio: float

    @classmethod
    def from_stats(cls, stats: SessionStats) -> SessionOverview:
        current = stats.current_stats
        ratio = 0.0
        if current.downloaded_bytes > 0:
            ratio = current.uploaded_bytes / current.downloaded_bytes
        return cls(
            active=stats.active_torrent_count,
            paused=stats.paused_torrent_count,
            total=stats.torrent_count,
            download_speed=stats.download_speed,
            upload_speed=stats.upload_speed,
            ratio=ratio,
        )


class FreeSpaceArgs(RPCModel):
    path: str


class FreeSpace(RPCModel):
    path: str = ""
    size_bytes: int = Field(0, alias="size-bytes")
    total_size: int | None = Field(None, alias="total_size")


class PortTestArgs(RPCModel):
    ip_protocol: str | None = Field(None, alias="ipProtocol")


class PortTest(RPCModel):
    port_is_open: bool = Field(False, alias="port-is-open")
    ip_protocol: str | None = Field(None, alias="ipProtocol")


class BlocklistUpdate(RPCModel):
    blocklist_size: int = Field(0, alias="blocklist-size")
