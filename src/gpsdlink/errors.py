"""Exception hierarchy for the gpsd client."""

from __future__ import annotations


class GpsdError(Exception):
    """Base class for every error raised by :mod:`gpsdlink`."""


class ConnectError(GpsdError):
    """Could not reach gpsd (refused, DNS failure, timeout, no banner)."""

    def __init__(self, message: str, *, address: str | None = None) -> None:
        super().__init__(message)
        self.address = address


class StreamError(GpsdError):
    """A read or write failed on an established connection."""


class AlreadyClosedError(GpsdError):
    """The session was already closed."""


class DecodeError(GpsdError):
    """A line could not be decoded into a report.

    ``class_name`` is ``None`` when the discriminator itself could not be
    read (malformed JSON or a missing ``class`` key).
    """

    def __init__(self, message: str, *, class_name: str | None = None, line: bytes = b"") -> None:
        super().__init__(message)
        self.class_name = class_name
        self.line = line


class UnknownClassError(GpsdError):
    """No report model exists for the given discriminator."""

    def __init__(self, class_name: str) -> None:
        super().__init__(f"No decoder for report class {class_name!r}")
        self.class_name = class_name
