"""Tests for the transrpc command-line interface."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from click.testing import CliRunner

from transrpc.cli.main import _format_bytes, _parse_ids, cli
from transrpc.rpc.models import (
    SessionInfo,
    SessionOverview,
    Torrent,
    TorrentAdded,
    TorrentAddResult,
)
from transrpc.rpc.protocol import RequestStatus
from transrpc.utils.exceptions import AuthError, TransportError

pytestmark = [pytest.mark.unit, pytest.mark.cli]

TORRENT_BYTES = b"d4:infod4:name3:abc6:lengthi12eee"


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def mock_client():
    """Client double whose RPC methods are AsyncMocks."""
    client = MagicMock()
    client.close = AsyncMock()
    with patch("transrpc.cli.main._build_client", return_value=client):
        yield client


class TestHelpers:
    """Tests for CLI helper functions."""

    def test_parse_ids(self):
        """Test numeric ids become ints and hashes stay strings."""
        assert _parse_ids(("1", "abcdef", "22")) == [1, "abcdef", 22]

    def test_format_bytes(self):
        """Test human-readable sizes."""
        assert _format_bytes(12) == "12 B"
        assert _format_bytes(2048) == "2.0 KiB"
        assert _format_bytes(5 * 1024**3) == "5.0 GiB"


class TestInspect:
    """Tests for the inspect command."""

    def test_inspect(self, runner, tmp_path):
        """Test a valid .torrent is summarized without contacting a daemon."""
        path = tmp_path / "abc.torrent"
        path.write_bytes(TORRENT_BYTES)
        result = runner.invoke(cli, ["inspect", str(path)])
        assert result.exit_code == 0, result.output
        assert "abc" in result.output
        assert "12 B" in result.output

    def test_inspect_malformed(self, runner, tmp_path):
        """Test malformed files produce an error."""
        path = tmp_path / "bad.torrent"
        path.write_bytes(b"d4:infod4:name99:abc6:lengthi12eee")
        result = runner.invoke(cli, ["inspect", str(path)])
        assert result.exit_code != 0
        assert "Malformed torrent file" in result.output

    def test_inspect_incomplete(self, runner, tmp_path):
        """Test files without a resolvable summary produce an error."""
        path = tmp_path / "empty.torrent"
        path.write_bytes(b"d4:infodee")
        result = runner.invoke(cli, ["inspect", str(path)])
        assert result.exit_code != 0
        assert "No name or size" in result.output


class TestTorrentCommands:
    """Tests for commands that talk to the daemon."""

    def test_list(self, runner, mock_client):
        """Test listing torrents."""
        mock_client.get_torrents = AsyncMock(
            return_value=[Torrent(id=1, name="ubuntu.iso", status=6, percent_done=1.0)]
        )
        result = runner.invoke(cli, ["list"])
        assert result.exit_code == 0, result.output
        assert "ubuntu.iso" in result.output
        assert "Seeding" in result.output
        mock_client.get_torrents.assert_awaited_once_with(ids=None)
        mock_client.close.assert_awaited_once()

    def test_list_empty(self, runner, mock_client):
        """Test listing when the daemon has no torrents."""
        mock_client.get_torrents = AsyncMock(return_value=[])
        result = runner.invoke(cli, ["list", "--ids", "3"])
        assert result.exit_code == 0
        assert "No torrents" in result.output
        mock_client.get_torrents.assert_awaited_once_with(ids=[3])

    def test_list_shows_torrent_error(self, runner, mock_client):
        """Test torrents with a daemon error show its message."""
        mock_client.get_torrents = AsyncMock(
            return_value=[
                Torrent(id=2, name="broken", status=0, error=3, error_string="ENOSPC")
            ]
        )
        result = runner.invoke(cli, ["list"])
        assert result.exit_code == 0, result.output
        assert "ENOSPC" in result.output

    def test_add_local_file(self, runner, mock_client, tmp_path):
        """Test adding a local .torrent sends its content."""
        path = tmp_path / "abc.torrent"
        path.write_bytes(TORRENT_BYTES)
        mock_client.add_torrent = AsyncMock(
            return_value=TorrentAddResult(torrent_added=TorrentAdded(id=7, name="abc"))
        )
        result = runner.invoke(cli, ["add", str(path), "--paused"])
        assert result.exit_code == 0, result.output
        assert "Added" in result.output
        mock_client.add_torrent.assert_awaited_once_with(
            metainfo=TORRENT_BYTES, download_dir=None, paused=True
        )

    def test_add_magnet_duplicate(self, runner, mock_client):
        """Test adding a magnet the daemon already has."""
        mock_client.add_torrent = AsyncMock(
            return_value=TorrentAddResult(torrent_duplicate=TorrentAdded(id=7, name="abc"))
        )
        result = runner.invoke(cli, ["add", "magnet:?xt=urn:btih:abc", "-d", "/dl"])
        assert result.exit_code == 0, result.output
        assert "Already present" in result.output
        mock_client.add_torrent.assert_awaited_once_with(
            filename="magnet:?xt=urn:btih:abc", download_dir="/dl", paused=None
        )

    def test_remove(self, runner, mock_client):
        """Test removing torrents with their data."""
        mock_client.remove_torrents = AsyncMock(return_value=RequestStatus.SUCCESS)
        result = runner.invoke(cli, ["remove", "1", "2", "--delete-data"])
        assert result.exit_code == 0, result.output
        mock_client.remove_torrents.assert_awaited_once_with([1, 2], delete_local_data=True)

    def test_start_requires_ids_or_all(self, runner, mock_client):
        """Test start without targets is a usage error."""
        result = runner.invoke(cli, ["start"])
        assert result.exit_code == 2

    def test_start_all_and_now(self, runner, mock_client):
        """Test start variants."""
        mock_client.start_all = AsyncMock(return_value=RequestStatus.SUCCESS)
        mock_client.start_torrents_now = AsyncMock(return_value=RequestStatus.SUCCESS)
        assert runner.invoke(cli, ["start", "--all"]).exit_code == 0
        assert runner.invoke(cli, ["start", "--now", "4"]).exit_code == 0
        mock_client.start_all.assert_awaited_once()
        mock_client.start_torrents_now.assert_awaited_once_with([4])

    def test_stop_failure_status(self, runner, mock_client):
        """Test a failed status is reported as an error."""
        mock_client.stop_torrents = AsyncMock(return_value=RequestStatus.UNAUTHORIZED)
        result = runner.invoke(cli, ["stop", "1"])
        assert result.exit_code == 1
        assert "Daemon rejected the credentials" in result.output

    @pytest.mark.parametrize(
        ("command", "method"),
        [("verify", "verify_torrents"), ("reannounce", "reannounce_torrents")],
    )
    def test_id_commands(self, runner, mock_client, command, method):
        """Test id-based commands."""
        setattr(mock_client, method, AsyncMock(return_value=RequestStatus.SUCCESS))
        result = runner.invoke(cli, [command, "5"])
        assert result.exit_code == 0, result.output
        getattr(mock_client, method).assert_awaited_once_with([5])

    def test_queue(self, runner, mock_client):
        """Test queue moves."""
        mock_client.move_in_queue = AsyncMock(return_value=RequestStatus.SUCCESS)
        result = runner.invoke(cli, ["queue", "top", "3", "4"])
        assert result.exit_code == 0, result.output
        mock_client.move_in_queue.assert_awaited_once_with([3, 4], "top")


class TestSessionCommands:
    """Tests for session-level commands."""

    def test_session(self, runner, mock_client):
        """Test showing daemon settings."""
        mock_client.get_session = AsyncMock(
            return_value=SessionInfo(download_dir="/downloads", version="4.0.5")
        )
        result = runner.invoke(cli, ["session"])
        assert result.exit_code == 0, result.output
        assert "/downloads" in result.output
        assert "4.0.5" in result.output

    def test_stats(self, runner, mock_client):
        """Test showing the overview."""
        mock_client.get_overview = AsyncMock(
            return_value=SessionOverview(
                active=1, paused=2, total=3, download_speed=0, upload_speed=0, ratio=1.5
            )
        )
        result = runner.invoke(cli, ["stats"])
        assert result.exit_code == 0, result.output
        assert "1.50" in result.output

    def test_free_space(self, runner, mock_client):
        """Test free-space output."""
        mock_client.free_space = AsyncMock(
            return_value=MagicMock(path="/dl", size_bytes=2048)
        )
        result = runner.invoke(cli, ["free-space", "/dl"])
        assert result.exit_code == 0, result.output
        assert "2.0 KiB free" in result.output

    def test_port_test(self, runner, mock_client):
        """Test port-test output."""
        mock_client.port_test = AsyncMock(return_value=MagicMock(port_is_open=True))
        result = runner.invoke(cli, ["port-test", "--ip-protocol", "ipv4"])
        assert result.exit_code == 0, result.output
        assert "Port is open" in result.output
        mock_client.port_test.assert_awaited_once_with("ipv4")

    def test_blocklist_update(self, runner, mock_client):
        """Test blocklist-update output."""
        mock_client.update_blocklist = AsyncMock(return_value=MagicMock(blocklist_size=42))
        result = runner.invoke(cli, ["blocklist-update"])
        assert result.exit_code == 0, result.output
        assert "42 rules" in result.output


class TestErrorsAndOptions:
    """Tests for error mapping and global options."""

    def test_auth_error(self, runner, mock_client):
        """Test AuthError becomes a user-facing error."""
        mock_client.get_torrents = AsyncMock(side_effect=AuthError("401"))
        result = runner.invoke(cli, ["list"])
        assert result.exit_code == 1
        assert "rejected the credentials" in result.output
        mock_client.close.assert_awaited_once()

    def test_transport_error(self, runner, mock_client):
        """Test other RPC errors are reported with their message."""
        mock_client.get_session = AsyncMock(side_effect=TransportError("No response from daemon"))
        result = runner.invoke(cli, ["session"])
        assert result.exit_code == 1
        assert "No response from daemon" in result.output

    def test_server_overrides(self, runner):
        """Test command-line options override the configured server."""
        client = MagicMock()
        client.close = AsyncMock()
        client.get_torrents = AsyncMock(return_value=[])

        with patch(
            "transrpc.cli.main.TransmissionClient.from_config", return_value=client
        ) as from_config:
            result = runner.invoke(
                cli,
                ["--host", "nas.local", "--port", "9092", "--scheme", "https", "-u", "admin", "list"],
            )

        assert result.exit_code == 0, result.output
        server = from_config.call_args.args[0]
        assert (server.host, server.port, server.scheme.value, server.username) == (
            "nas.local",
            9092,
            "https",
            "admin",
        )

    def test_invalid_config_file(self, runner, tmp_path):
        """Test a broken config file is reported."""
        path = tmp_path / "bad.toml"
        path.write_text("[server\n", encoding="utf-8")
        result = runner.invoke(cli, ["--config", str(path), "list"])
        assert result.exit_code == 1
        assert "Failed to load config file" in result.output

    def test_version(self, runner):
        """Test --version."""
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "transrpc" in result.output
