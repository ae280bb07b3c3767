"""Injection point lookup inside a built asset."""

from __future__ import annotations

import re

from .errors import (
    AmbiguousInjectionPoint,
    InjectionPointNotFound,
    E_INJECTION_POINT_AMBIGUOUS,
    E_INJECTION_POINT_NOT_FOUND,
)

__all__ = [
    "count_occurrences",
    "locate_injection_point",
    "line_column",
]


def count_occurrences(text: str, marker: str) -> int:
    if not marker:
        return 0
    return len(re.findall(re.escape(marker), text))


def locate_injection_point(text: str, marker: str) -> int:
    """Return the offset of the single literal occurrence of ``marker``.

    Zero or several occurrences are configuration errors and raise.
    """
    matches = (
        [m.start() for m in re.finditer(re.escape(marker), text)]
        if marker
        else []
    )
    if not matches:
        raise InjectionPointNotFound(
            code=E_INJECTION_POINT_NOT_FOUND,
            message=f"Can't find {marker} in your SW source.",
            context={"injection_point": marker},
        )
    if len(matches) != 1:
        raise AmbiguousInjectionPoint(
            code=E_INJECTION_POINT_AMBIGUOUS,
            message=(
                f"Multiple instances of {marker} were found in your SW "
                "source. Include it only once."
            ),
            context={"injection_point": marker, "count": len(matches)},
        )
    return matches[0]


def line_column(text: str, offset: int) -> tuple[int, int]:
    """0-based (line, column) of ``offset`` in ``text``."""
    line = text.count("\n", 0, offset)
    line_start = text.rfind("\n", 0, offset) + 1
    return line, offset - line_start
