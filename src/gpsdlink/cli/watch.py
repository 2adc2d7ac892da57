"""CLI commands for watching gpsd reports and sending raw commands."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from gpsdlink._internal.async_utils import run_async
from gpsdlink.errors import ConnectError, GpsdError
from gpsdlink.session import connect_with_timeout

if TYPE_CHECKING:
    from gpsdlink.cli.main import AppContext
    from gpsdlink.models.reports import BaseReport

DEFAULT_CLASSES = ("TPV", "SKY")


@click.command("watch")
@click.option("--address", default=None, help="gpsd address as HOST:PORT")
@click.option("--timeout", type=float, default=None, help="Connect timeout in seconds")
@click.option(
    "--class",
    "classes",
    multiple=True,
    help="Report class to print (repeatable, default: TPV and SKY)",
)
@click.option("--count", type=int, default=0, help="Stop after this many reports")
@click.pass_obj
def watch_cmd(
    app_ctx: AppContext,
    address: str | None,
    timeout: float | None,
    classes: tuple[str, ...],
    count: int,
) -> None:
    """Print reports from gpsd as they arrive."""
    exit_code = run_async(
        _watch(
            app_ctx,
            address=address or app_ctx.settings.address,
            timeout=timeout if timeout is not None else app_ctx.settings.connect_timeout,
            classes=tuple(name.upper() for name in classes) or DEFAULT_CLASSES,
            count=count,
        )
    )
    if exit_code:
        raise SystemExit(exit_code)


async def _watch(
    app_ctx: AppContext,
    *,
    address: str,
    timeout: float,
    classes: tuple[str, ...],
    count: int,
) -> int:
    formatter = app_ctx.formatter
    try:
        session = await connect_with_timeout(address, timeout)
    except ConnectError as exc:
        formatter.output_error(code="connect_failed", message=str(exc))
        return 1

    received = 0

    async def on_report(report: BaseReport) -> None:
        nonlocal received
        if count and received >= count:
            return
        received += 1
        formatter.output_report(report)
        if count and received >= count and not session.is_closed:
            await session.close()

    async with session:
        for name in classes:
            session.add_filter(name, on_report)
        done = await session.watch()
        error = await done

    if error is not None:
        formatter.output_error(code="stream_error", message=str(error))
        return 1
    return 0


@click.command("send")
@click.argument("command")
@click.option("--address", default=None, help="gpsd address as HOST:PORT")
@click.pass_obj
def send_cmd(app_ctx: AppContext, command: str, address: str | None) -> None:
    """Send one raw command (without the leading ? and trailing ;)."""
    exit_code = run_async(_send(app_ctx, address or app_ctx.settings.address, command))
    if exit_code:
        raise SystemExit(exit_code)


async def _send(app_ctx: AppContext, address: str, command: str) -> int:
    formatter = app_ctx.formatter
    try:
        session = await connect_with_timeout(address, app_ctx.settings.connect_timeout)
        async with session:
            await session.send_command(command)
    except GpsdError as exc:
        formatter.output_error(code="send_failed", message=str(exc))
        return 1
    if formatter.format == "rich":
        formatter.rich.info(f"Sent [cyan]?{command};[/cyan] to {address}")
    return 0
