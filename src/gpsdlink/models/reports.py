"""Typed models for gpsd JSON reports.

Each model maps one ``class`` value of the gpsd protocol to a frozen
pydantic model.  Field names follow the wire names; gpsd omits fields it
has no value for, so everything except the discriminator is optional.
"""

from __future__ import annotations

from datetime import datetime
from enum import IntEnum
from typing import ClassVar, Literal

from pydantic import BaseModel, ConfigDict, Field

_REPORT_CONFIG = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)


class Mode(IntEnum):
    """Fix quality of a TPV report."""

    NO_VALUE_SEEN = 0
    NO_FIX = 1
    MODE_2D = 2
    MODE_3D = 3


class BaseReport(BaseModel):
    """Common base for every report model."""

    model_config = _REPORT_CONFIG

    report_class: ClassVar[str]


class ReportPeek(BaseModel):
    """Envelope carrying only the discriminator of a line."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    class_: str = Field(alias="class")


class TPVReport(BaseReport):
    """Time-position-velocity report."""

    report_class: ClassVar[str] = "TPV"

    class_: Literal["TPV"] = Field(default="TPV", alias="class")
    tag: str | None = None
    device: str | None = None
    mode: Mode = Mode.NO_VALUE_SEEN
    time: datetime | None = None
    ept: float | None = None
    lat: float | None = None
    lon: float | None = None
    alt: float | None = None
    epx: float | None = None
    epy: float | None = None
    epv: float | None = None
    track: float | None = None
    speed: float | None = None
    climb: float | None = None
    epd: float | None = None
    eps: float | None = None
    epc: float | None = None


class Satellite(BaseModel):
    """One satellite entry of a SKY report."""

    model_config = _REPORT_CONFIG

    prn: float | None = Field(default=None, alias="PRN")
    az: float | None = None
    el: float | None = None
    ss: float | None = None
    used: bool = False


class SKYReport(BaseReport):
    """Sky view of the satellites in use."""

    report_class: ClassVar[str] = "SKY"

    class_: Literal["SKY"] = Field(default="SKY", alias="class")
    tag: str | None = None
    device: str | None = None
    time: datetime | None = None
    xdop: float | None = None
    ydop: float | None = None
    vdop: float | None = None
    tdop: float | None = None
    hdop: float | None = None
    pdop: float | None = None
    gdop: float | None = None
    satellites: tuple[Satellite, ...] = ()


class GSTReport(BaseReport):
    """Pseudorange noise statistics."""

    report_class: ClassVar[str] = "GST"

    class_: Literal["GST"] = Field(default="GST", alias="class")
    tag: str | None = None
    device: str | None = None
    time: datetime | None = None
    rms: float | None = None
    major: float | None = None
    minor: float | None = None
    orient: float | None = None
    lat: float | None = None
    lon: float | None = None
    alt: float | None = None


class ATTReport(BaseReport):
    """Vehicle attitude from a compass or gyroscope."""

    report_class: ClassVar[str] = "ATT"

    class_: Literal["ATT"] = Field(default="ATT", alias="class")
    tag: str | None = None
    device: str | None = None
    time: datetime | None = None
    heading: float | None = None
    mag_st: str | None = None
    pitch: float | None = None
    pitch_st: str | None = None
    yaw: float | None = None
    yaw_st: str | None = None
    roll: float | None = None
    roll_st: str | None = None
    dip: float | None = None
    mag_len: float | None = None
    mag_x: float | None = None
    mag_y: float | None = None
    mag_z: float | None = None
    acc_len: float | None = None
    acc_x: float | None = None
    acc_y: float | None = None
    acc_z: float | None = None
    gyro_x: float | None = None
    gyro_y: float | None = None
    depth: float | None = None
    temperature: float | None = None


class VersionReport(BaseReport):
    """Daemon version, sent as the banner and on ``?VERSION;``."""

    report_class: ClassVar[str] = "VERSION"

    class_: Literal["VERSION"] = Field(default="VERSION", alias="class")
    release: str | None = None
    rev: str | None = None
    proto_major: int | None = None
    proto_minor: int | None = None
    remote: str | None = None


class DeviceReport(BaseReport):
    """State of one attached device."""

    report_class: ClassVar[str] = "DEVICE"

    class_: Literal["DEVICE"] = Field(default="DEVICE", alias="class")
    path: str | None = None
    activated: str | None = None
    flags: int | None = None
    driver: str | None = None
    subtype: str | None = None
    bps: int | None = None
    parity: str | None = None
    stopbits: str | None = None
    native: int | None = None
    cycle: float | None = None
    mincycle: float | None = None


class DevicesReport(BaseReport):
    """All devices known to the daemon."""

    report_class: ClassVar[str] = "DEVICES"

    class_: Literal["DEVICES"] = Field(default="DEVICES", alias="class")
    devices: tuple[DeviceReport, ...] = ()
    remote: str | None = None


class PPSReport(BaseReport):
    """Pulse-per-second strobe from a device."""

    report_class: ClassVar[str] = "PPS"

    class_: Literal["PPS"] = Field(default="PPS", alias="class")
    device: str | None = None
    real_sec: float | None = None
    real_musec: float | None = None
    clock_sec: float | None = None
    clock_musec: float | None = None


class TOFFReport(BaseReport):
    """Time offset between the GPS time and the system clock."""

    report_class: ClassVar[str] = "TOFF"

    class_: Literal["TOFF"] = Field(default="TOFF", alias="class")
    device: str | None = None
    real_sec: float | None = None
    real_nsec: float | None = None
    clock_sec: float | None = None
    clock_nsec: float | None = None


class ErrorReport(BaseReport):
    """Error response to a malformed command."""

    report_class: ClassVar[str] = "ERROR"

    class_: Literal["ERROR"] = Field(default="ERROR", alias="class")
    message: str | None = None


Report = (
    TPVReport
    | SKYReport
    | GSTReport
    | ATTReport
    | VersionReport
    | DevicesReport
    | DeviceReport
    | PPSReport
    | TOFFReport
    | ErrorReport
)

REPORT_TYPES: dict[str, type[BaseReport]] = {
    model.report_class: model
    for model in (
        TPVReport,
        SKYReport,
        GSTReport,
        ATTReport,
        VersionReport,
        DevicesReport,
        DeviceReport,
        PPSReport,
        TOFFReport,
        ErrorReport,
    )
}
