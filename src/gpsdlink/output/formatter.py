from __future__ import annotations

import sys
from typing import TYPE_CHECKING, Any

from rich.console import Console

from gpsdlink.output.json_output import format_json_error, format_report
from gpsdlink.output.rich_output import RichOutput

if TYPE_CHECKING:
    from io import TextIOBase

    from gpsdlink.models.reports import BaseReport


class OutputFormatter:
    """Unified output formatter that auto-detects JSON vs Rich output.

    Selection logic:

    * If *force_format* is provided, use it unconditionally.
    * Otherwise, if *stream* (default ``sys.stdout``) is a TTY, use ``"rich"``.
    * If the stream is **not** a TTY (piped / redirected), use ``"json"``.

    In ``"quiet"`` mode reports are dropped and errors go to *stderr*.
    """

    def __init__(
        self,
        *,
        stream: TextIOBase | Any | None = None,
        force_format: str | None = None,
    ) -> None:
        self._stream = stream or sys.stdout
        if force_format is not None:
            self._format = force_format
        elif hasattr(self._stream, "isatty") and self._stream.isatty():
            self._format = "rich"
        else:
            self._format = "json"

        if self._format == "quiet":
            self._console = Console(stderr=True)
        else:
            self._console = Console(file=self._stream)

        self._rich = RichOutput(self._console)

    @property
    def format(self) -> str:  # noqa: A003
        """Return the active output format (``"rich"``, ``"json"``, or ``"quiet"``)."""
        return self._format

    @property
    def rich(self) -> RichOutput:
        """Return the underlying :class:`RichOutput` instance."""
        return self._rich

    def output_report(self, report: BaseReport) -> None:
        """Emit one received report using the current format."""
        if self._format == "json":
            line = format_report(report, class_name=report.report_class)
            print(line, file=self._stream)  # noqa: T201
        elif self._format == "rich":
            self._rich.report(report)

    def output_error(self, *, code: str, message: str) -> None:
        """Emit an error using the current format."""
        if self._format == "json":
            print(format_json_error(code=code, message=message), file=self._stream)  # noqa: T201
        else:
            self._rich.error(message)
