"""Decode gpsd JSON lines into typed report models.

A line is handled in two steps:

1. :meth:`ReportDecoder.peek` reads only the ``class`` discriminator, which
   is enough to decide whether anybody is interested in the line.
2. :meth:`ReportDecoder.decode` validates the full line against the model
   registered for that discriminator in :data:`REPORT_TYPES`.

Unknown discriminators raise :class:`UnknownClassError`, which is kept
separate from :class:`DecodeError` so callers can tell "not modelled" from
"malformed".
"""

from __future__ import annotations

import logging
from typing import cast

from pydantic import ValidationError

from gpsdlink.errors import DecodeError, UnknownClassError
from gpsdlink.models.reports import REPORT_TYPES, Report, ReportPeek

logger = logging.getLogger(__name__)


def _preview(raw: bytes | str, limit: int = 120) -> str:
    text = raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else raw
    text = text.strip()
    return text if len(text) <= limit else text[:limit] + "..."


def _as_bytes(raw: bytes | str) -> bytes:
    return raw.encode("utf-8") if isinstance(raw, str) else raw


class ReportDecoder:
    """Decodes gpsd JSON lines into :data:`~gpsdlink.models.reports.Report` values."""

    def knows(self, class_name: str) -> bool:
        """Return ``True`` if a model exists for *class_name*."""
        return class_name in REPORT_TYPES

    def peek(self, raw: bytes | str) -> str:
        """Return the ``class`` discriminator of *raw* without a full decode.

        Raises:
            DecodeError: If *raw* is not a JSON object with a string ``class``.
        """
        try:
            return ReportPeek.model_validate_json(raw).class_
        except ValidationError as exc:
            raise DecodeError(
                f"Cannot classify line: {_preview(raw)} ({exc.error_count()} error(s))",
                line=_as_bytes(raw),
            ) from exc

    def decode(self, class_name: str, raw: bytes | str) -> Report:
        """Decode *raw* as the report model registered for *class_name*.

        Args:
            class_name: The discriminator previously read by :meth:`peek`.
            raw: One JSON line, with or without the trailing newline.

        Returns:
            The frozen report model.

        Raises:
            UnknownClassError: If no model is registered for *class_name*.
            DecodeError: If the line does not match the model's schema,
                including a field of the wrong JSON type.  Integers are
                accepted for floats; timestamps must be ISO 8601 strings.
        """
        model = REPORT_TYPES.get(class_name)
        if model is None:
            raise UnknownClassError(class_name)

        try:
            # Strict mode: "45.81" is not a float and 3.0 is not an int.
            report = model.model_validate_json(raw, strict=True)
        except ValidationError as exc:
            first = exc.errors()[0]
            location = ".".join(str(part) for part in first["loc"]) or "<root>"
            raise DecodeError(
                f"Invalid {class_name} report at {location}: {first['msg']}",
                class_name=class_name,
                line=_as_bytes(raw),
            ) from exc

        return cast(Report, report)

    def decode_line(self, raw: bytes | str) -> Report:
        """Peek and decode *raw* in one call."""
        return self.decode(self.peek(raw), raw)
