"""High-level client for the daemon's RPC.

One async method per daemon method, each expressed as a method name plus a
typed argument model. Data calls return decoded models and raise
:class:`~transrpc.utils.exceptions.RPCError` subclasses; action calls return
a :class:`~transrpc.rpc.protocol.RequestStatus`.
"""

from __future__ import annotations

import base64
import logging
from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING, Any

import aiohttp

from transrpc.rpc.dispatcher import RequestDispatcher
from transrpc.rpc.models import (
    DEFAULT_SESSION_FIELDS,
    DEFAULT_TORRENT_FIELDS,
    FILE_FIELDS,
    PEER_FIELDS,
    PIECE_FIELDS,
    BlocklistUpdate,
    FilePriority,
    FreeSpace,
    FreeSpaceArgs,
    Peer,
    PeersFrom,
    PortTest,
    PortTestArgs,
    SessionGetArgs,
    SessionInfo,
    SessionOverview,
    SessionSetArgs,
    SessionStats,
    Torrent,
    TorrentAddArgs,
    TorrentAddResult,
    TorrentFile,
    TorrentFileStats,
    TorrentFilesList,
    TorrentGetArgs,
    TorrentId,
    TorrentIdsArgs,
    TorrentList,
    TorrentPeersList,
    TorrentPieces,
    TorrentPiecesList,
    TorrentPriority,
    TorrentRemoveArgs,
    TorrentRenameArgs,
    TorrentRenameResult,
    TorrentSetArgs,
    TorrentSetLocationArgs,
)
from transrpc.rpc.protocol import Credentials, Endpoint, RequestStatus, RPCMethod
from transrpc.rpc.session import RpcSession

if TYPE_CHECKING:
    from transrpc.models import ServerConfig

logger = logging.getLogger(__name__)

_QUEUE_MOVES: dict[str, RPCMethod] = {
    "top": RPCMethod.QUEUE_MOVE_TOP,
    "up": RPCMethod.QUEUE_MOVE_UP,
    "down": RPCMethod.QUEUE_MOVE_DOWN,
    "bottom": RPCMethod.QUEUE_MOVE_BOTTOM,
}


def _ids(ids: TorrentId | Iterable[TorrentId]) -> list[TorrentId]:
    if isinstance(ids, (int, str)):
        return [ids]
    return list(ids)


class TransmissionClient:
    """Async client bound to one :class:`RpcSession`.

    Example::

        async with TransmissionClient.connect(Endpoint(host="nas.local")) as client:
            torrents = await client.get_torrents()

    """

    def __init__(self, session: RpcSession, dispatcher: RequestDispatcher | None = None):
        """Initialize client.

        Args:
            session: Connection state for the daemon
            dispatcher: Dispatcher to send calls through (created if None)

        """
        self.session = session
        self.dispatcher = dispatcher or RequestDispatcher(session)

    @classmethod
    def connect(
        cls,
        endpoint: Endpoint,
        credentials: Credentials | None = None,
        http_session: aiohttp.ClientSession | None = None,
    ) -> TransmissionClient:
        """Create a client with a new session for ``endpoint``."""
        session = RpcSession(endpoint, credentials)
        return cls(session, RequestDispatcher(session, http_session))

    @classmethod
    def from_config(cls, server: ServerConfig) -> TransmissionClient:
        return cls(RpcSession.from_config(server))

    async def close(self) -> None:
        await self.dispatcher.close()

    async def __aenter__(self) -> TransmissionClient:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def switch_server(self, endpoint: Endpoint, credentials: Credentials | None = None) -> None:
        """Send subsequent calls to another daemon."""
        self.session.switch_server(endpoint, credentials)

    async def call(self, method: str, arguments: dict[str, Any] | None = None) -> dict[str, Any]:
        """Send an arbitrary method and return its raw ``arguments`` object."""
        return await self.dispatcher.request(method, arguments, dict[str, Any])

    # Torrent queries

    async def get_torrents(
        self,
        fields: Sequence[str] | None = None,
        ids: TorrentId | Iterable[TorrentId] | None = None,
    ) -> list[Torrent]:
        """Fetch torrents with the given fields (all, unless ``ids`` is set)."""
        args = TorrentGetArgs(
            fields=list(fields or DEFAULT_TORRENT_FIELDS),
            ids=_ids(ids) if ids is not None else None,
        )
        result = await self.dispatcher.request(RPCMethod.TORRENT_GET.value, args, TorrentList)
        return result.torrents

    async def get_torrent_files(
        self, torrent_id: TorrentId
    ) -> tuple[list[TorrentFile], list[TorrentFileStats]]:
        """Fetch the file list and per-file state of one torrent."""
        args = TorrentGetArgs(fields=list(FILE_FIELDS), ids=[torrent_id])
        result = await self.dispatcher.request(
            RPCMethod.TORRENT_GET.value, args, TorrentFilesList
        )
        if not result.torrents:
            return [], []
        entry = result.torrents[0]
        return entry.files, entry.file_stats

    async def get_torrent_peers(self, torrent_id: TorrentId) -> tuple[list[Peer], PeersFrom | None]:
        args = TorrentGetArgs(fields=list(PEER_FIELDS), ids=[torrent_id])
        result = await self.dispatcher.request(
            RPCMethod.TORRENT_GET.value, args, TorrentPeersList
        )
        if not result.torrents:
            return [], None
        entry = result.torrents[0]
        return entry.peers, entry.peers_from

    async def get_torrent_pieces(self, torrent_id: TorrentId) -> TorrentPieces | None:
        args = TorrentGetArgs(fields=list(PIECE_FIELDS), ids=[torrent_id])
        result = await self.dispatcher.request(
            RPCMethod.TORRENT_GET.value, args, TorrentPiecesList
        )
        return result.torrents[0] if result.torrents else None

    # Adding and removing

    async def add_torrent(
        self,
        *,
        filename: str | None = None,
        metainfo: bytes | None = None,
        download_dir: str | None = None,
        paused: bool | None = None,
        labels: Sequence[str] | None = None,
    ) -> TorrentAddResult:
        """Add a torrent by URL/magnet/daemon-side path or by .torrent content.

        Args:
            filename: URL, magnet link or path on the daemon host
            metainfo: Raw .torrent bytes (sent base64-encoded)
            download_dir: Target directory on the daemon host
            paused: Add without starting
            labels: Labels to attach

        Raises:
            ValueError: Neither or both of filename and metainfo were given

        """
        if (filename is None) == (metainfo is None):
            raise ValueError("Exactly one of filename or metainfo is required")
        args = TorrentAddArgs(
            filename=filename,
            metainfo=base64.b64encode(metainfo).decode("ascii") if metainfo is not None else None,
            download_dir=download_dir,
            paused=paused,
            labels=list(labels) if labels is not None else None,
        )
        result = await self.dispatcher.request(RPCMethod.TORRENT_ADD.value, args, TorrentAddResult)
        if result.is_duplicate:
            logger.info("Torrent already present on daemon: %s", result.torrent_duplicate.name)
        return result

    async def remove_torrents(
        self,
        ids: TorrentId | Iterable[TorrentId],
        delete_local_data: bool = False,
    ) -> RequestStatus:
        args = TorrentRemoveArgs(ids=_ids(ids), delete_local_data=delete_local_data)
        return await self.dispatcher.request_status(RPCMethod.TORRENT_REMOVE.value, args)

    # Torrent actions

    async def _torrent_action(
        self, method: RPCMethod, ids: TorrentId | Iterable[TorrentId]
    ) -> RequestStatus:
        return await self.dispatcher.request_status(method.value, TorrentIdsArgs(ids=_ids(ids)))

    async def start_torrents(self, ids: TorrentId | Iterable[TorrentId]) -> RequestStatus:
        return await self._torrent_action(RPCMethod.TORRENT_START, ids)

    async def start_torrents_now(self, ids: TorrentId | Iterable[TorrentId]) -> RequestStatus:
        """Start torrents, bypassing the download queue."""
        return await self._torrent_action(RPCMethod.TORRENT_START_NOW, ids)

    async def stop_torrents(self, ids: TorrentId | Iterable[TorrentId]) -> RequestStatus:
        return await self._torrent_action(RPCMethod.TORRENT_STOP, ids)

    async def verify_torrents(self, ids: TorrentId | Iterable[TorrentId]) -> RequestStatus:
        return await self._torrent_action(RPCMethod.TORRENT_VERIFY, ids)

    async def reannounce_torrents(self, ids: TorrentId | Iterable[TorrentId]) -> RequestStatus:
        return await self._torrent_action(RPCMethod.TORRENT_REANNOUNCE, ids)

    async def start_all(self) -> RequestStatus:
        """Start every torrent (no ``ids`` argument means all)."""
        return await self.dispatcher.request_status(RPCMethod.TORRENT_START.value, {})

    async def stop_all(self) -> RequestStatus:
        return await self.dispatcher.request_status(RPCMethod.TORRENT_STOP.value, {})

    async def toggle_torrent(self, torrent: Torrent) -> RequestStatus:
        """Stop an active torrent or start a stopped one."""
        if torrent.is_active:
            return await self.stop_torrents(torrent.id)
        return await self.start_torrents(torrent.id)

    async def move_in_queue(
        self, ids: TorrentId | Iterable[TorrentId], direction: str
    ) -> RequestStatus:
        """Move torrents in the queue; ``direction`` is top, up, down or bottom."""
        try:
            method = _QUEUE_MOVES[direction]
        except KeyError:
            msg = f"Unknown queue direction {direction!r}"
            raise ValueError(msg) from None
        return await self._torrent_action(method, ids)

    # Torrent settings

    async def set_torrents(self, args: TorrentSetArgs) -> RequestStatus:
        return await self.dispatcher.request_status(RPCMethod.TORRENT_SET.value, args)

    async def set_files_wanted(
        self, torrent_id: TorrentId, file_indices: Sequence[int], wanted: bool
    ) -> RequestStatus:
        indices = list(file_indices)
        if wanted:
            args = TorrentSetArgs(ids=[torrent_id], files_wanted=indices)
        else:
            args = TorrentSetArgs(ids=[torrent_id], files_unwanted=indices)
        return await self.set_torrents(args)

    async def set_file_priority(
        self, torrent_id: TorrentId, file_indices: Sequence[int], priority: FilePriority
    ) -> RequestStatus:
        indices = list(file_indices)
        field = {
            FilePriority.HIGH: "priority_high",
            FilePriority.NORMAL: "priority_normal",
            FilePriority.LOW: "priority_low",
        }[FilePriority(priority)]
        args = TorrentSetArgs(ids=[torrent_id], **{field: indices})
        return await self.set_torrents(args)

    async def set_torrent_priority(
        self, ids: TorrentId | Iterable[TorrentId], priority: TorrentPriority
    ) -> RequestStatus:
        """Apply a priority to every file of the torrents (empty list means all files)."""
        args = TorrentSetArgs.model_validate({"ids": _ids(ids), TorrentPriority(priority).value: []})
        return await self.set_torrents(args)

    async def set_bandwidth_priority(
        self, ids: TorrentId | Iterable[TorrentId], priority: FilePriority
    ) -> RequestStatus:
        """Set the torrents' share of bandwidth (-1 low, 0 normal, 1 high)."""
        args = TorrentSetArgs(ids=_ids(ids), bandwidth_priority=int(FilePriority(priority)))
        return await self.set_torrents(args)

    async def set_labels(
        self, ids: TorrentId | Iterable[TorrentId], labels: Sequence[str]
    ) -> RequestStatus:
        return await self.set_torrents(TorrentSetArgs(ids=_ids(ids), labels=list(labels)))

    async def set_torrent_location(
        self,
        ids: TorrentId | Iterable[TorrentId],
        location: str,
        move: bool = True,
    ) -> RequestStatus:
        """Change the data directory, moving existing data when ``move`` is set."""
        args = TorrentSetLocationArgs(ids=_ids(ids), location=location, move=move)
        return await self.dispatcher.request_status(RPCMethod.TORRENT_SET_LOCATION.value, args)

    async def rename_torrent_path(
        self, torrent_id: TorrentId, path: str, name: str
    ) -> TorrentRenameResult:
        args = TorrentRenameArgs(ids=[torrent_id], path=path, name=name)
        return await self.dispatcher.request(
            RPCMethod.TORRENT_RENAME_PATH.value, args, TorrentRenameResult
        )

    # Session

    async def get_session(self, fields: Sequence[str] | None = None) -> SessionInfo:
        args = SessionGetArgs(fields=list(fields or DEFAULT_SESSION_FIELDS))
        return await self.dispatcher.request(RPCMethod.SESSION_GET.value, args, SessionInfo)

    async def set_session(self, args: SessionSetArgs) -> RequestStatus:
        return await self.dispatcher.request_status(RPCMethod.SESSION_SET.value, args)

    async def get_session_stats(self) -> SessionStats:
        return await self.dispatcher.request(RPCMethod.SESSION_STATS.value, {}, SessionStats)

    async def get_overview(self) -> SessionOverview:
        """Torrent counts, current speeds and session ratio."""
        return SessionOverview.from_stats(await self.get_session_stats())

    async def free_space(self, path: str) -> FreeSpace:
        return await self.dispatcher.request(
            RPCMethod.FREE_SPACE.value, FreeSpaceArgs(path=path), FreeSpace
        )

    async def port_test(self, ip_protocol: str | None = None) -> PortTest:
        """Ask the daemon whether its peer port is reachable from outside."""
        return await self.dispatcher.request(
            RPCMethod.PORT_TEST.value, PortTestArgs(ip_protocol=ip_protocol), PortTest
        )

    async def update_blocklist(self) -> BlocklistUpdate:
        return await self.dispatcher.request(
            RPCMethod.BLOCKLIST_UPDATE.value, {}, BlocklistUpdate
        )
