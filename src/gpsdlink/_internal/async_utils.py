"""Asyncio utilities."""

from __future__ import annotations

import asyncio
from typing import Any, Coroutine


def run_async(coro: Coroutine[Any, Any, Any]) -> Any:
    """Run an async coroutine from synchronous CLI code.

    Returns ``None`` if the run is interrupted with Ctrl+C.
    """
    try:
        return asyncio.run(coro)
    except KeyboardInterrupt:
        return None
