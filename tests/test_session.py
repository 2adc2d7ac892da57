"""Tests for Session: connecting, commands, and the watch loop."""

from __future__ import annotations

import asyncio
import contextlib
import socket
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from gpsdlink.decoder import ReportDecoder
from gpsdlink.errors import AlreadyClosedError, ConnectError, DecodeError, StreamError
from gpsdlink.models.reports import Mode, SKYReport, TPVReport
from gpsdlink.session import (
    DEFAULT_ADDRESS,
    WATCH_COMMAND,
    Session,
    WatchState,
    connect,
    connect_with_timeout,
    parse_address,
)
from tests.fake_gpsd import FakeGpsd
from tests.samples import MALFORMED, SKY, TPV, TPV_2, UNKNOWN


def _free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return int(s.getsockname()[1])


async def _finish(gpsd: FakeGpsd, done: asyncio.Task[StreamError | None]) -> StreamError | None:
    """Hang up from the server side and wait for the watch loop to stop."""
    await gpsd.hang_up()
    return await asyncio.wait_for(done, timeout=5)


class TestParseAddress:
    def test_host_and_port(self) -> None:
        assert parse_address("gps.local:3000") == ("gps.local", 3000)

    def test_default_address(self) -> None:
        assert parse_address(DEFAULT_ADDRESS) == ("localhost", 2947)

    def test_bare_host_uses_default_port(self) -> None:
        assert parse_address("gps.local") == ("gps.local", 2947)

    def test_ipv6(self) -> None:
        assert parse_address("[::1]:2947") == ("::1", 2947)

    def test_invalid_port(self) -> None:
        with pytest.raises(ConnectError, match="Invalid gpsd address"):
            parse_address("localhost:gps")


class TestConnect:
    async def test_connect_skips_banner(self, gpsd: FakeGpsd) -> None:
        session = await connect(gpsd.address)
        try:
            assert session.address == gpsd.address
            assert not session.is_closed
            assert session.watch_state is WatchState.IDLE
        finally:
            await session.close()

    async def test_connection_refused(self) -> None:
        address = f"127.0.0.1:{_free_port()}"
        with pytest.raises(ConnectError) as exc_info:
            await connect(address)
        assert exc_info.value.address == address

    async def test_timeout_waiting_for_banner(self) -> None:
        silent = FakeGpsd(banner=b"")
        await silent.start()
        try:
            with pytest.raises(ConnectError, match="Timed out"):
                await connect_with_timeout(silent.address, 0.2)
        finally:
            await silent.stop()

    async def test_peer_closes_before_banner(self) -> None:
        async def _hang_up(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
            writer.close()

        server = await asyncio.start_server(_hang_up, "127.0.0.1", 0)
        port = server.sockets[0].getsockname()[1]
        try:
            with pytest.raises(ConnectError, match="banner"):
                await connect(f"127.0.0.1:{port}")
        finally:
            server.close()
            await server.wait_closed()

    async def test_oversized_banner(self) -> None:
        async def _flood(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
            with contextlib.suppress(ConnectionError):
                writer.write(b'{"class":"VERSION","release":"' + b"x" * (2 << 20))
                await writer.drain()
                await reader.read()
            writer.close()

        server = await asyncio.start_server(_flood, "127.0.0.1", 0)
        port = server.sockets[0].getsockname()[1]
        address = f"127.0.0.1:{port}"
        try:
            with pytest.raises(ConnectError, match="banner") as exc_info:
                await connect(address)
            assert exc_info.value.address == address
            assert isinstance(exc_info.value.__cause__, ValueError)
        finally:
            server.close()
            await server.wait_closed()

    async def test_context_manager_closes(self, gpsd: FakeGpsd) -> None:
        async with await connect(gpsd.address) as session:
            pass
        assert session.is_closed


class TestCommands:
    async def test_send_command_framing(self, gpsd: FakeGpsd) -> None:
        session = await connect(gpsd.address)
        await session.send_command("DEVICES")
        await gpsd.wait_for_received(b"?DEVICES;")
        await session.close()

    async def test_watch_sends_enable(self, gpsd: FakeGpsd) -> None:
        session = await connect(gpsd.address)
        done = await session.watch()
        await gpsd.wait_for_received(WATCH_COMMAND.encode())
        await session.close()
        assert await asyncio.wait_for(done, timeout=5) is None

    async def test_send_after_close(self, gpsd: FakeGpsd) -> None:
        session = await connect(gpsd.address)
        await session.close()
        with pytest.raises(AlreadyClosedError):
            await session.send_command("VERSION")

    async def test_close_twice(self, gpsd: FakeGpsd) -> None:
        session = await connect(gpsd.address)
        await session.close()
        with pytest.raises(AlreadyClosedError):
            await session.close()

    async def test_write_failure_is_stream_error(self) -> None:
        writer = MagicMock()
        writer.write.side_effect = BrokenPipeError("pipe")
        session = Session(MagicMock(), writer)

        with pytest.raises(StreamError, match="VERSION"):
            await session.send_command("VERSION")

    async def test_watch_twice(self, gpsd: FakeGpsd) -> None:
        session = await connect(gpsd.address)
        done = await session.watch()
        with pytest.raises(RuntimeError):
            await session.watch()
        await session.close()
        await asyncio.wait_for(done, timeout=5)


class TestWatchLoop:
    async def test_delivers_in_arrival_order(self, gpsd: FakeGpsd) -> None:
        session = await connect(gpsd.address)
        tpv: list[TPVReport] = []
        sky: list[SKYReport] = []
        session.add_filter("TPV", tpv.append)
        session.add_filter(SKYReport, sky.append)

        done = await session.watch()
        await gpsd.send(TPV, SKY, TPV_2)
        assert await _finish(gpsd, done) is None

        assert [r.lat for r in tpv] == [45.81, 45.82]
        assert all(isinstance(r, TPVReport) for r in tpv)
        assert len(sky) == 1
        assert isinstance(sky[0], SKYReport)
        assert session.watch_state is WatchState.STOPPED
        await session.close()

    async def test_end_to_end_tpv(self, gpsd: FakeGpsd) -> None:
        session = await connect(gpsd.address)
        callback = MagicMock()
        session.add_filter("TPV", callback)

        done = await session.watch()
        await gpsd.send(TPV)
        await _finish(gpsd, done)

        callback.assert_called_once()
        report = callback.call_args.args[0]
        assert report.lat == 45.81
        assert report.lon == 15.98
        assert report.mode == 3
        assert report.mode is Mode.MODE_3D
        await session.close()

    async def test_unsubscribed_class_is_not_decoded(self, gpsd: FakeGpsd) -> None:
        decoder = ReportDecoder()
        session = await connect(gpsd.address, decoder=decoder)
        session.add_filter("TPV", MagicMock())

        with patch.object(decoder, "decode", wraps=decoder.decode) as decode_spy:
            done = await session.watch()
            await gpsd.send(SKY, SKY, TPV, SKY, UNKNOWN)
            await _finish(gpsd, done)

        assert decode_spy.call_count == 1
        assert decode_spy.call_args.args[0] == "TPV"
        assert session.line_count == 5
        assert session.report_count == 1
        await session.close()

    async def test_malformed_line_does_not_stop_loop(self, gpsd: FakeGpsd) -> None:
        errors: list[DecodeError] = []
        session = await connect(gpsd.address, on_error=errors.append)
        tpv: list[TPVReport] = []
        session.add_filter(TPVReport, tpv.append)

        done = await session.watch()
        await gpsd.send(TPV, MALFORMED, TPV_2)
        assert await _finish(gpsd, done) is None

        assert [r.lat for r in tpv] == [45.81, 45.82]
        assert len(errors) == 1
        assert isinstance(errors[0], DecodeError)
        assert session.decode_error_count == 1
        await session.close()

    @pytest.mark.parametrize(
        "bad_line",
        [
            b'{"class":"TPV","lat":"north"}\n',
            b'{"class":"TPV","lat":"45.81"}\n',
            b'{"class":"TPV","lat":true}\n',
            b'{"class":"TPV","mode":"3"}\n',
            b'{"class":"TPV","time":1714564800}\n',
        ],
        ids=["word", "numeric-string", "bool", "string-mode", "epoch-time"],
    )
    async def test_schema_error_reported(self, gpsd: FakeGpsd, bad_line: bytes) -> None:
        errors: list[DecodeError] = []
        session = await connect(gpsd.address, on_error=errors.append)
        tpv = MagicMock()
        session.add_filter("TPV", tpv)

        done = await session.watch()
        await gpsd.send(bad_line, TPV)
        await _finish(gpsd, done)

        assert tpv.call_count == 1
        assert tpv.call_args.args[0].lat == 45.81
        assert len(errors) == 1
        assert errors[0].class_name == "TPV"
        await session.close()

    @pytest.mark.parametrize(
        ("class_name", "bad_line"),
        [
            ("SKY", b'{"class":"SKY","satellites":[{"PRN":5,"used":"true"}]}\n'),
            ("VERSION", b'{"class":"VERSION","proto_major":3.0}\n'),
        ],
        ids=["string-bool", "float-int"],
    )
    async def test_wrong_type_in_other_classes_reported(
        self, gpsd: FakeGpsd, class_name: str, bad_line: bytes
    ) -> None:
        errors: list[DecodeError] = []
        session = await connect(gpsd.address, on_error=errors.append)
        callback = MagicMock()
        session.add_filter(class_name, callback)

        done = await session.watch()
        await gpsd.send(bad_line)
        await _finish(gpsd, done)

        callback.assert_not_called()
        assert [e.class_name for e in errors] == [class_name]
        await session.close()

    async def test_async_on_error_hook_is_awaited(self, gpsd: FakeGpsd) -> None:
        errors: list[DecodeError] = []

        async def on_error(exc: DecodeError) -> None:
            await asyncio.sleep(0)
            errors.append(exc)

        session = await connect(gpsd.address, on_error=on_error)
        session.add_filter("TPV", MagicMock())

        done = await session.watch()
        await gpsd.send(MALFORMED, TPV)
        await _finish(gpsd, done)

        assert len(errors) == 1
        assert session.decode_error_count == 1
        await session.close()

    async def test_subscribed_unknown_class_skipped(self, gpsd: FakeGpsd) -> None:
        errors: list[DecodeError] = []
        session = await connect(gpsd.address, on_error=errors.append)
        poll = MagicMock()
        session.add_filter("POLL", poll)

        done = await session.watch()
        await gpsd.send(UNKNOWN)
        assert await _finish(gpsd, done) is None

        poll.assert_not_called()
        assert errors == []
        await session.close()

    async def test_failing_on_error_hook_is_isolated(self, gpsd: FakeGpsd) -> None:
        session = await connect(gpsd.address, on_error=MagicMock(side_effect=RuntimeError))
        tpv = MagicMock()
        session.add_filter("TPV", tpv)

        done = await session.watch()
        await gpsd.send(MALFORMED, TPV)
        assert await _finish(gpsd, done) is None

        tpv.assert_called_once()
        await session.close()

    async def test_async_filter_runs_inline(self, gpsd: FakeGpsd) -> None:
        session = await connect(gpsd.address)
        seen: list[float | None] = []

        async def slow_filter(report: TPVReport) -> None:
            await asyncio.sleep(0.01)
            seen.append(report.lat)

        session.add_filter(TPVReport, slow_filter)
        done = await session.watch()
        await gpsd.send(TPV, TPV_2)
        await _finish(gpsd, done)

        assert seen == [45.81, 45.82]
        await session.close()

    async def test_blank_lines_skipped(self, gpsd: FakeGpsd) -> None:
        errors: list[DecodeError] = []
        session = await connect(gpsd.address, on_error=errors.append)
        session.add_filter("TPV", MagicMock())

        done = await session.watch()
        await gpsd.send(b"\n", b"\r\n", TPV)
        await _finish(gpsd, done)

        assert errors == []
        assert session.line_count == 1
        await session.close()


class TestWatchTermination:
    async def test_close_while_blocked_on_read(self, gpsd: FakeGpsd) -> None:
        session = await connect(gpsd.address)
        session.add_filter("TPV", MagicMock())
        done = await session.watch()
        await gpsd.wait_for_received(WATCH_COMMAND.encode())
        assert session.watch_state is WatchState.RUNNING

        await session.close()
        result = await asyncio.wait_for(done, timeout=5)

        assert result is None
        assert done.done()
        assert session.watch_state is WatchState.STOPPED

    async def test_peer_eof_is_clean_stop(self, gpsd: FakeGpsd) -> None:
        session = await connect(gpsd.address)
        done = await session.watch()

        assert await _finish(gpsd, done) is None
        assert not session.is_closed
        await session.close()

    async def test_read_error_is_returned(self) -> None:
        reader = MagicMock()
        reader.readline = AsyncMock(side_effect=[TPV, ConnectionResetError("reset by peer")])
        writer = MagicMock()
        writer.drain = AsyncMock()
        session = Session(reader, writer, address="gps.test:2947")
        tpv = MagicMock()
        session.add_filter("TPV", tpv)

        done = await session.watch()
        result = await asyncio.wait_for(done, timeout=5)

        assert isinstance(result, StreamError)
        assert isinstance(result.__cause__, ConnectionResetError)
        tpv.assert_called_once()
        assert session.watch_state is WatchState.STOPPED

    async def test_overlong_line_is_decode_error(self) -> None:
        reader = MagicMock()
        reader.readline = AsyncMock(side_effect=[ValueError("limit exceeded"), TPV, b""])
        writer = MagicMock()
        writer.drain = AsyncMock()
        errors: list[DecodeError] = []
        session = Session(reader, writer, on_error=errors.append)
        tpv = MagicMock()
        session.add_filter("TPV", tpv)

        done = await session.watch()
        assert await asyncio.wait_for(done, timeout=5) is None

        assert len(errors) == 1
        tpv.assert_called_once()

    async def test_overlong_line_tail_is_dropped(self) -> None:
        reader = MagicMock()
        tail = b'{"PRN":12,"el":10,"az":300,"ss":20,"used":false}]}\n'
        reader.readline = AsyncMock(
            side_effect=[ValueError("limit exceeded"), tail, TPV, MALFORMED, b""]
        )
        writer = MagicMock()
        writer.drain = AsyncMock()
        errors: list[DecodeError] = []
        session = Session(reader, writer, on_error=errors.append)
        tpv = MagicMock()
        session.add_filter("TPV", tpv)

        done = await session.watch()
        assert await asyncio.wait_for(done, timeout=5) is None

        # One error for the over-long line, one for the later malformed line.
        assert len(errors) == 2
        assert "too long" in str(errors[0])
        tpv.assert_called_once()
