"""Connection to a gpsd daemon and the background watch loop.

Usage::

    session = await connect("localhost:2947")
    session.add_filter(TPVReport, lambda tpv: print(tpv.lat, tpv.lon))
    done = await session.watch()
    error = await done  # None on EOF / close, StreamError otherwise

Filters must be registered before :meth:`Session.watch` is called.  The
loop reads one line at a time and runs filters inline, so a slow filter
delays every report behind it.  Closing the session is the only way to
stop a loop whose peer has gone quiet.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from enum import Enum
from typing import TYPE_CHECKING, Any, TypeVar

from gpsdlink.decoder import ReportDecoder
from gpsdlink.errors import (
    AlreadyClosedError,
    ConnectError,
    DecodeError,
    StreamError,
    UnknownClassError,
)
from gpsdlink.filters import FilterRegistry
from gpsdlink.models.config import DEFAULT_HOST, DEFAULT_PORT
from gpsdlink.models.reports import BaseReport

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable
    from types import TracebackType

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=BaseReport)

DEFAULT_ADDRESS = f"{DEFAULT_HOST}:{DEFAULT_PORT}"
WATCH_COMMAND = '?WATCH={"enable":true,"json":true}'

# SKY reports from multi-constellation receivers run past asyncio's 64 KiB default.
_STREAM_LIMIT = 1 << 20


class WatchState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


def parse_address(address: str) -> tuple[str, int]:
    """Split ``host:port`` (or ``[v6]:port``) into its parts.

    A bare host uses the default gpsd port.
    """
    host, sep, port = address.rpartition(":")
    if not sep or "]" in port:
        host, port = address, str(DEFAULT_PORT)
    host = host.strip("[]") or DEFAULT_HOST
    try:
        return host, int(port)
    except ValueError as exc:
        raise ConnectError(f"Invalid gpsd address {address!r}", address=address) from exc


class Session:
    """An open connection to gpsd.

    Owns the stream exclusively.  Reads happen only in the watch task;
    writes (:meth:`send_command`) and :meth:`close` are called by the owner.

    *on_error* receives every :class:`DecodeError` the watch loop skips.  It
    may be a plain function or a coroutine function; coroutines are awaited
    inline like filters.  A line longer than the reader limit is reported
    once; if the tail arrives as a separate unparseable line it is dropped
    without a second error.
    """

    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        *,
        address: str = DEFAULT_ADDRESS,
        decoder: ReportDecoder | None = None,
        on_error: Callable[[DecodeError], None | Awaitable[None]] | None = None,
    ) -> None:
        self._reader = reader
        self._writer = writer
        self._address = address
        self._decoder = decoder or ReportDecoder()
        self._on_error = on_error
        self._filters = FilterRegistry()
        self._closed = False
        self._state = WatchState.IDLE
        self._watch_task: asyncio.Task[StreamError | None] | None = None
        self._line_count = 0
        self._report_count = 0
        self._decode_error_count = 0

    @property
    def address(self) -> str:
        return self._address

    @property
    def is_closed(self) -> bool:
        return self._closed

    @property
    def watch_state(self) -> WatchState:
        return self._state

    @property
    def filters(self) -> FilterRegistry:
        return self._filters

    @property
    def line_count(self) -> int:
        """Lines read by the watch loop (blank lines excluded)."""
        return self._line_count

    @property
    def report_count(self) -> int:
        """Reports decoded and dispatched to filters."""
        return self._report_count

    @property
    def decode_error_count(self) -> int:
        return self._decode_error_count

    # -- Filters ------------------------------------------------------------

    def add_filter(
        self,
        target: str | type[R],
        callback: Callable[[R], None | Awaitable[None]],
    ) -> None:
        """Call *callback* for every report of class *target*.

        Register filters before :meth:`watch`; filters added while the loop
        runs may miss lines that are already being processed.

        Example::

            session.add_filter("TPV", lambda r: print(r.time, r.lat, r.lon))
            session.add_filter(SKYReport, on_sky)
        """
        self._filters.add_filter(target, callback)

    # -- Commands -----------------------------------------------------------

    async def send_command(self, command: str) -> None:
        """Send ``?<command>;`` to gpsd.  No response is awaited.

        Raises:
            AlreadyClosedError: If the session was closed.
            StreamError: If the write fails.
        """
        await self._write(f"?{command};")

    async def _write(self, text: str) -> None:
        if self._closed:
            raise AlreadyClosedError("gpsd session is already closed")
        try:
            self._writer.write(text.encode("utf-8"))
            await self._writer.drain()
        except OSError as exc:
            raise StreamError(f"Failed to send {text!r} to {self._address}: {exc}") from exc
        logger.debug("Sent to gpsd: %s", text)

    # -- Watch loop ---------------------------------------------------------

    async def watch(self) -> asyncio.Task[StreamError | None]:
        """Enable JSON watch mode and start the watch loop in a new task.

        Returns the task immediately.  It completes once, with ``None``
        when the stream ends or the session is closed, or with the
        :class:`StreamError` that stopped it.
        """
        if self._watch_task is not None:
            raise RuntimeError("Watch loop already started for this session")

        await self._write(WATCH_COMMAND)
        self._state = WatchState.RUNNING
        self._watch_task = asyncio.create_task(
            self._watch_loop(), name=f"gpsd-watch[{self._address}]"
        )
        return self._watch_task

    async def _watch_loop(self) -> StreamError | None:
        error: StreamError | None = None
        after_overrun = False
        try:
            while True:
                try:
                    line = await self._reader.readline()
                except ValueError as exc:
                    # Over-long line; the reader already discarded what it buffered.
                    await self._report_decode_error(DecodeError(f"Line too long: {exc}"))
                    after_overrun = True
                    continue
                except OSError as exc:
                    if self._closed:
                        logger.debug("Watch loop stopped: session closed")
                        break
                    error = StreamError(f"Read from {self._address} failed: {exc}")
                    error.__cause__ = exc
                    logger.error("Stream reader error (is gpsd running?): %s", exc)
                    break

                if not line:
                    if self._closed:
                        logger.debug("Watch loop stopped: session closed")
                    else:
                        logger.info("gpsd at %s closed the connection", self._address)
                    break

                tail, after_overrun = after_overrun, False
                if not line.strip():
                    continue

                self._line_count += 1
                await self._handle_line(line, after_overrun=tail)
        finally:
            self._state = WatchState.STOPPED

        return error

    async def _handle_line(self, line: bytes, *, after_overrun: bool = False) -> None:
        try:
            class_name = self._decoder.peek(line)
        except DecodeError as exc:
            if after_overrun:
                # Rest of the over-long line that was already reported.
                logger.debug("Dropped tail of over-long line: %s", exc)
                return
            await self._report_decode_error(exc)
            return

        if not self._filters.has_subscribers(class_name):
            return

        try:
            report = self._decoder.decode(class_name, line)
        except UnknownClassError:
            logger.debug("No decoder for %s report; skipping", class_name)
            return
        except DecodeError as exc:
            await self._report_decode_error(exc)
            return

        self._report_count += 1
        await self._filters.dispatch(class_name, report)

    async def _report_decode_error(self, exc: DecodeError) -> None:
        self._decode_error_count += 1
        logger.warning("JSON parsing error: %s", exc)
        if self._on_error is None:
            return
        try:
            result = self._on_error(exc)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.warning("on_error hook failed", exc_info=True)

    # -- Lifecycle ----------------------------------------------------------

    async def close(self) -> None:
        """Close the connection.

        A watch loop blocked on a read stops cleanly with ``None``.

        Raises:
            AlreadyClosedError: If the session was already closed.
        """
        if self._closed:
            raise AlreadyClosedError("gpsd session is already closed")

        self._closed = True
        self._writer.close()
        try:
            await self._writer.wait_closed()
        except OSError as exc:
            logger.debug("Error while closing %s: %s", self._address, exc)
        logger.info("Closed gpsd session to %s", self._address)

    async def __aenter__(self) -> Session:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if not self._closed:
            await self.close()


# -- Connecting -------------------------------------------------------------


async def _open(address: str, **kwargs: Any) -> Session:
    host, port = parse_address(address)
    reader, writer = await asyncio.open_connection(host, port, limit=_STREAM_LIMIT)
    try:
        banner = await reader.readline()
    except ValueError as exc:
        writer.close()
        raise ConnectError(
            f"gpsd at {address} sent a banner longer than {_STREAM_LIMIT} bytes", address=address
        ) from exc
    except BaseException:
        writer.close()
        raise

    if not banner:
        writer.close()
        raise ConnectError(f"gpsd at {address} closed the connection before sending a banner")

    logger.debug("gpsd banner: %s", banner.strip())
    logger.info("Connected to gpsd at %s", address)
    return Session(reader, writer, address=address, **kwargs)


async def _dial(address: str, timeout: float | None, **kwargs: Any) -> Session:
    try:
        return await asyncio.wait_for(_open(address, **kwargs), timeout=timeout)
    except ConnectError as exc:
        exc.address = address
        raise
    except TimeoutError as exc:
        raise ConnectError(
            f"Timed out connecting to gpsd at {address} after {timeout}s", address=address
        ) from exc
    except OSError as exc:
        raise ConnectError(
            f"Failed to connect to gpsd at {address}: {exc}", address=address
        ) from exc


async def connect(
    address: str = DEFAULT_ADDRESS,
    *,
    decoder: ReportDecoder | None = None,
    on_error: Callable[[DecodeError], None | Awaitable[None]] | None = None,
) -> Session:
    """Open a session to gpsd at *address* and skip its banner line.

    Raises :class:`ConnectError` if the daemon cannot be reached.
    """
    return await _dial(address, None, decoder=decoder, on_error=on_error)


async def connect_with_timeout(
    address: str,
    timeout: float,
    *,
    decoder: ReportDecoder | None = None,
    on_error: Callable[[DecodeError], None | Awaitable[None]] | None = None,
) -> Session:
    """Like :func:`connect`, but give up after *timeout* seconds."""
    return await _dial(address, timeout, decoder=decoder, on_error=on_error)
