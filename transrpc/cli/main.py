"""Command-line interface for transrpc.

Thin consumer of :class:`~transrpc.rpc.client.TransmissionClient` and the
bencode summary scanner.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any, TypeVar

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from transrpc import __version__
from transrpc.bencode import parse_torrent_summary
from transrpc.config.config import ConfigManager, init_config
from transrpc.models import LogLevel, Scheme
from transrpc.rpc.client import TransmissionClient
from transrpc.rpc.models import Torrent
from transrpc.rpc.protocol import RequestStatus
from transrpc.utils.exceptions import (
    AuthError,
    ConfigurationError,
    ParseError,
    RPCError,
)
from transrpc.utils.logging_config import setup_logging

logger = logging.getLogger(__name__)

T = TypeVar("T")

_STATUS_MESSAGES = {
    RequestStatus.UNAUTHORIZED: "Daemon rejected the credentials",
    RequestStatus.CONFIG_ERROR: "Could not reach the daemon; check host, port and scheme",
    RequestStatus.FAILED: "Daemon reported a failure",
}


def _format_bytes(num: float) -> str:
    for unit in ("B", "KiB", "MiB", "GiB", "TiB"):
        if abs(num) < 1024 or unit == "TiB":
            return f"{num:.0f} {unit}" if unit == "B" else f"{num:.1f} {unit}"
        num /= 1024
    return f"{num:.1f} TiB"


def _format_speed(bytes_per_second: int) -> str:
    return f"{_format_bytes(bytes_per_second)}/s"


def _status_text(torrent: Torrent) -> str:
    if torrent.has_error:
        detail = escape(torrent.error_string or torrent.error.name)
        return f"{torrent.status_calc.value} [red]({detail})[/red]"
    return torrent.status_calc.value


def _parse_ids(raw_ids: tuple[str, ...]) -> list[int | str]:
    """Numeric ids become ints; anything else is passed through as a hash."""
    return [int(raw) if raw.isdigit() else raw for raw in raw_ids]


def _get_config_manager(ctx: click.Context) -> ConfigManager:
    return ctx.obj["config_manager"]


def _build_client(ctx: click.Context) -> TransmissionClient:
    """Create a client for the configured server."""
    return TransmissionClient.from_config(_get_config_manager(ctx).config.server)


def _run(ctx: click.Context, action: Callable[[TransmissionClient], Awaitable[T]]) -> T:
    """Run ``action`` against a fresh client and map RPC errors for the user."""

    async def _runner() -> T:
        client = _build_client(ctx)
        try:
            return await action(client)
        finally:
            await client.close()

    try:
        return asyncio.run(_runner())
    except click.ClickException:
        raise
    except AuthError as e:
        raise click.ClickException("Daemon rejected the credentials (HTTP 401)") from e
    except RPCError as e:
        logger.debug("RPC call failed", exc_info=True)
        raise click.ClickException(str(e)) from e


def _check_status(status: RequestStatus, action: str) -> None:
    if status is not RequestStatus.SUCCESS:
        raise click.ClickException(f"{action} failed: {_STATUS_MESSAGES[status]}")


@click.group()
@click.version_option(__version__, prog_name="transrpc")
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    help="Configuration file path",
)
@click.option("--host", "-H", help="Daemon host")
@click.option("--port", "-p", type=int, help="Daemon RPC port")
@click.option(
    "--scheme",
    type=click.Choice([s.value for s in Scheme]),
    help="URL scheme",
)
@click.option("--username", "-u", help="RPC username")
@click.option("--password", help="RPC password")
@click.option(
    "--verbose",
    "-v",
    count=True,
    help="Increase verbosity (-v: info, -vv: debug)",
)
@click.pass_context
def cli(ctx, config, host, port, scheme, username, password, verbose):
    """Transrpc - control a Transmission-style BitTorrent daemon."""
    ctx.ensure_object(dict)
    try:
        config_manager = init_config(config)
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from e

    server = config_manager.config.server
    overrides: dict[str, Any] = {
        "host": host,
        "port": port,
        "scheme": Scheme(scheme) if scheme else None,
        "username": username,
        "password": password,
    }
    for key, value in overrides.items():
        if value is not None:
            setattr(server, key, value)

    if verbose:
        observability = config_manager.config.observability
        observability.log_level = LogLevel.DEBUG if verbose >= 2 else LogLevel.INFO
        setup_logging(observability)

    ctx.obj["config_manager"] = config_manager


@cli.command()
@click.argument("torrent_file", type=click.Path(exists=True, dir_okay=False))
def inspect(torrent_file: str) -> None:
    """Show name, size and file count of a local .torrent file."""
    console = Console()
    data = Path(torrent_file).read_bytes()
    try:
        summary = parse_torrent_summary(data)
    except ParseError as e:
        raise click.ClickException(f"Malformed torrent file: {e}") from e
    if summary is None:
        raise click.ClickException("No name or size found in the info dictionary")

    table = Table(title=Path(torrent_file).name, show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Name", summary.name)
    table.add_row("Total size", _format_bytes(summary.total_size_bytes))
    table.add_row("Files", str(summary.file_count))
    console.print(table)


@cli.command("list")
@click.option("--ids", "raw_ids", multiple=True, help="Only these torrent ids")
@click.pass_context
def list_torrents(ctx, raw_ids: tuple[str, ...]) -> None:
    """List torrents on the daemon."""
    console = Console()

    async def _list(client: TransmissionClient) -> None:
        torrents = await client.get_torrents(ids=_parse_ids(raw_ids) if raw_ids else None)
        if not torrents:
            console.print("[yellow]No torrents[/yellow]")
            return

        table = Table(title="Torrents")
        table.add_column("ID", style="cyan", justify="right")
        table.add_column("Name", style="white")
        table.add_column("Status", style="yellow")
        table.add_column("Progress", style="green", justify="right")
        table.add_column("Size", justify="right")
        table.add_column("Down", style="blue", justify="right")
        table.add_column("Up", style="blue", justify="right")
        table.add_column("Ratio", justify="right")

        for torrent in torrents:
            table.add_row(
                str(torrent.id),
                torrent.name,
                _status_text(torrent),
                f"{torrent.percent_done * 100:.1f}%",
                _format_bytes(torrent.size_when_done),
                _format_speed(torrent.rate_download),
                _format_speed(torrent.rate_upload),
                f"{max(torrent.upload_ratio, 0):.2f}",
            )
        console.print(table)

    _run(ctx, _list)


@cli.command()
@click.argument("source")
@click.option("--download-dir", "-d", help="Download directory on the daemon host")
@click.option("--paused", is_flag=True, help="Add without starting")
@click.pass_context
def add(ctx, source: str, download_dir: str | None, paused: bool) -> None:
    """Add a torrent from a local .torrent file, URL or magnet link."""
    console = Console()
    path = Path(source)
    metainfo: bytes | None = None
    if path.is_file():
        metainfo = path.read_bytes()
        try:
            summary = parse_torrent_summary(metainfo)
        except ParseError as e:
            raise click.ClickException(f"Malformed torrent file: {e}") from e
        if summary is not None:
            console.print(
                f"Adding [bold]{summary.name}[/bold] "
                f"({_format_bytes(summary.total_size_bytes)}, {summary.file_count} files)"
            )

    async def _add(client: TransmissionClient) -> None:
        if metainfo is not None:
            result = await client.add_torrent(
                metainfo=metainfo, download_dir=download_dir, paused=paused or None
            )
        else:
            result = await client.add_torrent(
                filename=source, download_dir=download_dir, paused=paused or None
            )
        torrent = result.torrent
        if torrent is None:
            raise click.ClickException("Daemon did not report the added torrent")
        if result.is_duplicate:
            console.print(f"[yellow]Already present:[/yellow] {torrent.name} (id {torrent.id})")
        else:
            console.print(f"[green]Added:[/green] {torrent.name} (id {torrent.id})")

    _run(ctx, _add)


@cli.command()
@click.argument("raw_ids", nargs=-1, required=True)
@click.option("--delete-data", is_flag=True, help="Also delete downloaded data")
@click.pass_context
def remove(ctx, raw_ids: tuple[str, ...], delete_data: bool) -> None:
    """Remove torrents from the daemon."""
    ids = _parse_ids(raw_ids)

    async def _remove(client: TransmissionClient) -> RequestStatus:
        return await client.remove_torrents(ids, delete_local_data=delete_data)

    _check_status(_run(ctx, _remove), "Remove")
    Console().print(f"[green]Removed {len(ids)} torrent(s)[/green]")


@cli.command()
@click.argument("raw_ids", nargs=-1)
@click.option("--all", "all_torrents", is_flag=True, help="Start every torrent")
@click.option("--now", is_flag=True, help="Bypass the download queue")
@click.pass_context
def start(ctx, raw_ids: tuple[str, ...], all_torrents: bool, now: bool) -> None:
    """Start torrents."""
    if not raw_ids and not all_torrents:
        raise click.UsageError("Give torrent ids or --all")

    async def _start(client: TransmissionClient) -> RequestStatus:
        if all_torrents:
            return await client.start_all()
        if now:
            return await client.start_torrents_now(_parse_ids(raw_ids))
        return await client.start_torrents(_parse_ids(raw_ids))

    _check_status(_run(ctx, _start), "Start")


@cli.command()
@click.argument("raw_ids", nargs=-1)
@click.option("--all", "all_torrents", is_flag=True, help="Stop every torrent")
@click.pass_context
def stop(ctx, raw_ids: tuple[str, ...], all_torrents: bool) -> None:
    """Stop torrents."""
    if not raw_ids and not all_torrents:
        raise click.UsageError("Give torrent ids or --all")

    async def _stop(client: TransmissionClient) -> RequestStatus:
        if all_torrents:
            return await client.stop_all()
        return await client.stop_torrents(_parse_ids(raw_ids))

    _check_status(_run(ctx, _stop), "Stop")


@cli.command()
@click.argument("raw_ids", nargs=-1, required=True)
@click.pass_context
def verify(ctx, raw_ids: tuple[str, ...]) -> None:
    """Verify local data of torrents."""

    async def _verify(client: TransmissionClient) -> RequestStatus:
        return await client.verify_torrents(_parse_ids(raw_ids))

    _check_status(_run(ctx, _verify), "Verify")


@cli.command()
@click.argument("raw_ids", nargs=-1, required=True)
@click.pass_context
def reannounce(ctx, raw_ids: tuple[str, ...]) -> None:
    """Ask trackers for more peers now."""

    async def _reannounce(client: TransmissionClient) -> RequestStatus:
        return await client.reannounce_torrents(_parse_ids(raw_ids))

    _check_status(_run(ctx, _reannounce), "Reannounce")


@cli.command()
@click.argument("direction", type=click.Choice(["top", "up", "down", "bottom"]))
@click.argument("raw_ids", nargs=-1, required=True)
@click.pass_context
def queue(ctx, direction: str, raw_ids: tuple[str, ...]) -> None:
    """Move torrents in the download queue."""

    async def _move(client: TransmissionClient) -> RequestStatus:
        return await client.move_in_queue(_parse_ids(raw_ids), direction)

    _check_status(_run(ctx, _move), f"Queue move {direction}")


@cli.command()
@click.pass_context
def session(ctx) -> None:
    """Show daemon settings."""
    console = Console()

    async def _session(client: TransmissionClient) -> None:
        info = await client.get_session()
        table = Table(title="Daemon session", show_header=False)
        table.add_column("Setting", style="cyan")
        table.add_column("Value", style="green")
        for name, value in info.model_dump(by_alias=True).items():
            if value is not None:
                table.add_row(name, str(value))
        console.print(table)

    _run(ctx, _session)


@cli.command()
@click.pass_context
def stats(ctx) -> None:
    """Show torrent counts, speeds and session ratio."""
    console = Console()

    async def _stats(client: TransmissionClient) -> None:
        overview = await client.get_overview()
        table = Table(title="Daemon statistics", show_header=False)
        table.add_column("Metric", style="cyan")
        table.add_column("Value", style="green")
        table.add_row("Active", str(overview.active))
        table.add_row("Paused", str(overview.paused))
        table.add_row("Total", str(overview.total))
        table.add_row("Download", _format_speed(overview.download_speed))
        table.add_row("Upload", _format_speed(overview.upload_speed))
        table.add_row("Ratio", f"{overview.ratio:.2f}")
        console.print(table)

    _run(ctx, _stats)


@cli.command("free-space")
@click.argument("path")
@click.pass_context
def free_space(ctx, path: str) -> None:
    """Show free space at a path on the daemon host."""

    async def _free_space(client: TransmissionClient) -> None:
        result = await client.free_space(path)
        Console().print(f"{result.path or path}: {_format_bytes(result.size_bytes)} free")

    _run(ctx, _free_space)


@cli.command("port-test")
@click.option("--ip-protocol", type=click.Choice(["ipv4", "ipv6"]), help="Address family to test")
@click.pass_context
def port_test(ctx, ip_protocol: str | None) -> None:
    """Check whether the daemon's peer port is reachable."""

    async def _port_test(client: TransmissionClient) -> None:
        result = await client.port_test(ip_protocol)
        if result.port_is_open:
            Console().print("[green]Port is open[/green]")
        else:
            Console().print("[red]Port is closed[/red]")

    _run(ctx, _port_test)


@cli.command("blocklist-update")
@click.pass_context
def blocklist_update(ctx) -> None:
    """Refresh the daemon's peer blocklist."""

    async def _update(client: TransmissionClient) -> None:
        result = await client.update_blocklist()
        Console().print(f"Blocklist has {result.blocklist_size} rules")

    _run(ctx, _update)


def main():
    """Main CLI entry point."""
    cli()


if __name__ == "__main__":
    main()
