"""Human readable byte counts (decimal units)."""

from __future__ import annotations

__all__ = ["format_bytes"]

_UNITS = ("B", "kB", "MB", "GB", "TB", "PB")


def format_bytes(size: int | float) -> str:
    if size < 0:
        return "-" + format_bytes(-size)
    if size < 1:
        return f"{size:g} B"
    exponent = 0
    value = float(size)
    while value >= 1000 and exponent < len(_UNITS) - 1:
        value /= 1000
        exponent += 1
    # Three significant digits, trailing zeros dropped.
    return f"{float(f'{value:.3g}'):g} {_UNITS[exponent]}"
