from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel


def _serialize(obj: Any) -> Any:
    """Convert *obj* to a JSON-friendly structure.

    Report models are dumped by wire name (``class``, ``PRN``) with
    ``None`` fields left out.
    """
    if isinstance(obj, BaseModel):
        return obj.model_dump(mode="json", by_alias=True, exclude_none=True)
    if isinstance(obj, (list, tuple)):
        return [_serialize(item) for item in obj]
    return obj


def format_report(report: BaseModel, *, class_name: str) -> str:
    """Return a single-line JSON envelope for a received report.

    The envelope has the shape::

        {"class": "<class>", "data": <report>, "received_at": "<ISO-8601 UTC>"}
    """
    envelope: dict[str, Any] = {
        "class": class_name,
        "data": _serialize(report),
        "received_at": datetime.now(UTC).isoformat(),
    }
    return json.dumps(envelope, default=str)


def format_json_error(*, code: str, message: str, **extra: Any) -> str:
    """Return a single-line JSON envelope for an error.

    The envelope has the shape::

        {"ok": false, "error": {"code": "...", "message": "...", ...extra},
         "timestamp": "<ISO-8601 UTC>"}
    """
    envelope: dict[str, Any] = {
        "ok": False,
        "error": {"code": code, "message": message, **extra},
        "timestamp": datetime.now(UTC).isoformat(),
    }
    return json.dumps(envelope, default=str)
