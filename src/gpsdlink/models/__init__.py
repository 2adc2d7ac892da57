from __future__ import annotations

from gpsdlink.models.config import DEFAULT_HOST, DEFAULT_PORT, GpsdSettings
from gpsdlink.models.reports import (
    REPORT_TYPES,
    ATTReport,
    BaseReport,
    DeviceReport,
    DevicesReport,
    ErrorReport,
    GSTReport,
    Mode,
    PPSReport,
    Report,
    ReportPeek,
    Satellite,
    SKYReport,
    TOFFReport,
    TPVReport,
    VersionReport,
)

__all__ = [
    # config
    "DEFAULT_HOST",
    "DEFAULT_PORT",
    "GpsdSettings",
    # reports
    "REPORT_TYPES",
    "ATTReport",
    "BaseReport",
    "DeviceReport",
    "DevicesReport",
    "ErrorReport",
    "GSTReport",
    "Mode",
    "PPSReport",
    "Report",
    "ReportPeek",
    "SKYReport",
    "Satellite",
    "TOFFReport",
    "TPVReport",
    "VersionReport",
]
