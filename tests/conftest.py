"""Shared fixtures for session tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from tests.fake_gpsd import FakeGpsd

if TYPE_CHECKING:
    from collections.abc import AsyncIterator


@pytest.fixture()
async def gpsd() -> AsyncIterator[FakeGpsd]:
    server = FakeGpsd()
    await server.start()
    yield server
    await server.stop()
