from __future__ import annotations

from typing import TYPE_CHECKING

from rich.markup import escape
from rich.table import Table

from gpsdlink._internal.units import format_coordinate, mps_to_kmh
from gpsdlink.models.reports import DevicesReport, Mode, SKYReport, TPVReport

if TYPE_CHECKING:
    from rich.console import Console

    from gpsdlink.models.reports import BaseReport

_MODE_LABELS = {
    Mode.NO_VALUE_SEEN: "[dim]no data[/dim]",
    Mode.NO_FIX: "[red]no fix[/red]",
    Mode.MODE_2D: "[yellow]2D[/yellow]",
    Mode.MODE_3D: "[green]3D[/green]",
}


class RichOutput:
    """Rich-based terminal output helpers for *gpsdlink*."""

    def __init__(self, console: Console) -> None:
        self._con = console

    def report(self, report: BaseReport) -> None:
        """Print *report* with the renderer for its class, or a generic line."""
        if isinstance(report, TPVReport):
            self.tpv(report)
        elif isinstance(report, SKYReport):
            self.sky(report)
        elif isinstance(report, DevicesReport):
            self.devices(report)
        else:
            fields = report.model_dump(exclude_none=True, exclude={"class_"})
            body = " ".join(f"{key}={escape(str(value))}" for key, value in fields.items())
            self._con.print(f"[cyan]{report.report_class}[/cyan] {body}")

    # ------------------------------------------------------------------
    # Position
    # ------------------------------------------------------------------

    def tpv(self, tpv: TPVReport) -> None:
        """Print one line per TPV: fix mode, time, position and speed."""
        parts = [f"[cyan]TPV[/cyan] {_MODE_LABELS[tpv.mode]}"]
        if tpv.time is not None:
            parts.append(tpv.time.isoformat())
        if tpv.lat is not None and tpv.lon is not None:
            parts.append(
                f"{format_coordinate(tpv.lat, 'N', 'S')} {format_coordinate(tpv.lon, 'E', 'W')}"
            )
        if tpv.alt is not None:
            parts.append(f"alt {tpv.alt} m")
        if tpv.speed is not None:
            parts.append(f"{mps_to_kmh(tpv.speed)} km/h")
        self._con.print("  ".join(parts))

    # ------------------------------------------------------------------
    # Satellites
    # ------------------------------------------------------------------

    def sky(self, sky: SKYReport) -> None:
        """Print the satellite count and dilution of precision."""
        used = sum(1 for sat in sky.satellites if sat.used)
        text = f"[cyan]SKY[/cyan] {len(sky.satellites)} satellites ({used} used)"
        if sky.hdop is not None:
            text += f"  hdop {sky.hdop}"
        self._con.print(text)

    def devices(self, report: DevicesReport) -> None:
        """Print a table of attached devices."""
        table = Table(title="Devices")
        table.add_column("Path", style="cyan")
        table.add_column("Driver")
        table.add_column("Baud", justify="right")
        table.add_column("Activated")

        for dev in report.devices:
            table.add_row(
                escape(dev.path or ""),
                escape(dev.driver or ""),
                str(dev.bps) if dev.bps is not None else "",
                escape(dev.activated or ""),
            )

        self._con.print(table)

    def error(self, message: str) -> None:
        """Print a bold red error line."""
        self._con.print(f"[bold red]Error:[/bold red] {escape(message)}")

    def info(self, message: str) -> None:
        """Print an informational message (plain)."""
        self._con.print(message)
