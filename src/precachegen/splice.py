"""Text substitution of the injection point, with optional map update."""

from __future__ import annotations

from typing import Optional

from .models import SpliceResult
from .sourcemap import replace_and_update_source_map

__all__ = ["splice"]


def splice(
    text: str,
    search_string: str,
    replace_string: str,
    source_map: Optional[dict | str] = None,
    map_filename: Optional[str] = None,
) -> SpliceResult:
    if source_map is None:
        # Without a companion map a first-occurrence replace is enough.
        return SpliceResult(source=text.replace(search_string, replace_string, 1))
    return replace_and_update_source_map(
        original_source=text,
        original_map=source_map,
        search_string=search_string,
        replace_string=replace_string,
        js_filename=map_filename or "",
    )
