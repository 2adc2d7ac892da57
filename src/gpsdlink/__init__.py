"""gpsdlink — asyncio client for the gpsd JSON reporting protocol."""

from __future__ import annotations

from gpsdlink.decoder import ReportDecoder
from gpsdlink.errors import (
    AlreadyClosedError,
    ConnectError,
    DecodeError,
    GpsdError,
    StreamError,
    UnknownClassError,
)
from gpsdlink.filters import FilterRegistry
from gpsdlink.models.reports import (
    REPORT_TYPES,
    ATTReport,
    DeviceReport,
    DevicesReport,
    ErrorReport,
    GSTReport,
    Mode,
    PPSReport,
    Report,
    Satellite,
    SKYReport,
    TOFFReport,
    TPVReport,
    VersionReport,
)
from gpsdlink.session import (
    DEFAULT_ADDRESS,
    Session,
    WatchState,
    connect,
    connect_with_timeout,
)

__version__ = "0.1.0"

__all__ = [
    "DEFAULT_ADDRESS",
    "REPORT_TYPES",
    "ATTReport",
    "AlreadyClosedError",
    "ConnectError",
    "DecodeError",
    "DeviceReport",
    "DevicesReport",
    "ErrorReport",
    "FilterRegistry",
    "GSTReport",
    "GpsdError",
    "Mode",
    "PPSReport",
    "Report",
    "ReportDecoder",
    "SKYReport",
    "Satellite",
    "Session",
    "StreamError",
    "TOFFReport",
    "TPVReport",
    "UnknownClassError",
    "VersionReport",
    "WatchState",
    "__version__",
    "connect",
    "connect_with_timeout",
]
