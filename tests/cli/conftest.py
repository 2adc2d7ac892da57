"""Shared fixtures for CLI execution tests."""

from __future__ import annotations

import contextlib
import socketserver
import threading
from typing import TYPE_CHECKING

import pytest

from tests.samples import BANNER

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path


class _ScriptedHandler(socketserver.BaseRequestHandler):
    """Send the banner, wait for the client's command, replay the script, hang up."""

    server: _ScriptedServer

    def handle(self) -> None:
        with contextlib.suppress(OSError):
            self.request.sendall(BANNER)
            self.server.commands.append(self.request.recv(4096))
            self.server.command_received.set()
            for line in self.server.script:
                self.request.sendall(line)


class _ScriptedServer(socketserver.ThreadingTCPServer):
    daemon_threads = True
    allow_reuse_address = True

    def __init__(self) -> None:
        super().__init__(("127.0.0.1", 0), _ScriptedHandler)
        self.script: list[bytes] = []
        self.commands: list[bytes] = []
        self.command_received = threading.Event()

    @property
    def address(self) -> str:
        host, port = self.server_address[:2]
        return f"{host}:{port}"


@pytest.fixture()
def scripted_gpsd() -> Iterator[_ScriptedServer]:
    """A threaded fake gpsd usable from synchronous CLI tests."""
    server = _ScriptedServer()
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield server
    server.shutdown()
    server.server_close()


@pytest.fixture()
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep GPSD_* variables and any local .env out of CLI tests."""
    monkeypatch.chdir(tmp_path)
    for name in ("GPSD_HOST", "GPSD_PORT", "GPSD_CONNECT_TIMEOUT", "GPSD_OUTPUT_FORMAT"):
        monkeypatch.delenv(name, raising=False)
