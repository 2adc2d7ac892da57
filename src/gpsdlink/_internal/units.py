"""Unit conversion helpers for report rendering."""

from __future__ import annotations


def mps_to_kmh(speed: float) -> float:
    """Convert metres per second to kilometres per hour, rounded to 1 decimal place."""
    return round(speed * 3.6, 1)


def format_coordinate(value: float | None, positive: str, negative: str) -> str:
    """Render a signed degree value as ``45.810000\u00b0N`` style text."""
    if value is None:
        return "n/a"
    hemisphere = positive if value >= 0 else negative
    return f"{abs(value):.6f}\u00b0{hemisphere}"
