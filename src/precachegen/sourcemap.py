"""Source map support for the manifest splice.

Only what the splice needs: a Base64 VLQ codec for the ``mappings`` field,
``sourceMappingURL`` discovery and a replace-with-remap operation. Columns
are counted in UTF-16 code units, matching how browsers and the source map
format address generated code.
"""

from __future__ import annotations

import json
import posixpath
import re
from typing import Any, Optional, Protocol, Sequence

from .errors import SourceMapError, E_SOURCEMAP
from .models import SpliceResult

__all__ = [
    "decode_mappings",
    "encode_mappings",
    "get_source_map_url",
    "get_sourcemap_asset_name",
    "replace_and_update_source_map",
    "utf16_len",
]

_B64 = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/"
_B64_INDEX = {c: i for i, c in enumerate(_B64)}
_VLQ_SHIFT = 5
_VLQ_MASK = (1 << _VLQ_SHIFT) - 1
_VLQ_CONTINUATION = 1 << _VLQ_SHIFT

# A segment holds absolute values: (gen_col,) or
# (gen_col, source, orig_line, orig_col) or the same plus a name index.
Segment = tuple[int, ...]

_INNER_URL = r"[#@] sourceMappingURL=([^\s'\"]*)"
_SOURCE_MAP_URL = re.compile(
    r"(?:/\*(?:\s*\r?\n(?://)?)?(?:"
    + _INNER_URL
    + r")\s*\*/|//(?:"
    + _INNER_URL
    + r"))\s*"
)


def _err(message: str, **context: Any) -> SourceMapError:
    return SourceMapError(code=E_SOURCEMAP, message=message, context=context)


def utf16_len(text: str) -> int:
    return len(text.encode("utf-16-le")) // 2


# VLQ codec -------------------------------------------------------------------
def _encode_vlq(value: int) -> str:
    vlq = (-value << 1) | 1 if value < 0 else value << 1
    out = []
    while True:
        digit = vlq & _VLQ_MASK
        vlq >>= _VLQ_SHIFT
        if vlq:
            digit |= _VLQ_CONTINUATION
        out.append(_B64[digit])
        if not vlq:
            return "".join(out)


def _decode_segment(text: str) -> list[int]:
    values: list[int] = []
    value = 0
    shift = 0
    for ch in text:
        try:
            digit = _B64_INDEX[ch]
        except KeyError:
            raise _err(
                f"Invalid base64 VLQ character {ch!r}", segment=text
            ) from None
        value += (digit & _VLQ_MASK) << shift
        if digit & _VLQ_CONTINUATION:
            shift += _VLQ_SHIFT
            continue
        negative = value & 1
        value >>= 1
        values.append(-value if negative else value)
        value = 0
        shift = 0
    if shift:
        raise _err("Truncated base64 VLQ segment", segment=text)
    return values


def decode_mappings(mappings: str) -> list[list[Segment]]:
    lines: list[list[Segment]] = []
    source = orig_line = orig_col = name = 0
    for raw_line in mappings.split(";"):
        gen_col = 0
        segments: list[Segment] = []
        for raw in raw_line.split(","):
            if not raw:
                continue
            fields = _decode_segment(raw)
            if len(fields) not in (1, 4, 5):
                raise _err(
                    f"Segment has {len(fields)} fields", segment=raw
                )
            gen_col += fields[0]
            if len(fields) == 1:
                segments.append((gen_col,))
                continue
            source += fields[1]
            orig_line += fields[2]
            orig_col += fields[3]
            if len(fields) == 5:
                name += fields[4]
                segments.append((gen_col, source, orig_line, orig_col, name))
            else:
                segments.append((gen_col, source, orig_line, orig_col))
        lines.append(segments)
    return lines


def encode_mappings(lines: Sequence[Sequence[Segment]]) -> str:
    out_lines = []
    source = orig_line = orig_col = name = 0
    for segments in lines:
        gen_col = 0
        encoded = []
        for seg in sorted(segments, key=lambda s: s[0]):
            parts = [_encode_vlq(seg[0] - gen_col)]
            gen_col = seg[0]
            if len(seg) >= 4:
                parts.append(_encode_vlq(seg[1] - source))
                parts.append(_encode_vlq(seg[2] - orig_line))
                parts.append(_encode_vlq(seg[3] - orig_col))
                source, orig_line, orig_col = seg[1], seg[2], seg[3]
                if len(seg) == 5:
                    parts.append(_encode_vlq(seg[4] - name))
                    name = seg[4]
            encoded.append("".join(parts))
        out_lines.append(",".join(encoded))
    return ";".join(out_lines)


# sourceMappingURL ------------------------------------------------------------
def get_source_map_url(text: str) -> Optional[str]:
    """Return the last ``sourceMappingURL`` reference in ``text``."""
    url = None
    for match in _SOURCE_MAP_URL.finditer(text):
        url = match.group(1) or match.group(2) or ""
    return url


class _AssetLookup(Protocol):
    def get_asset(self, name: str) -> Any: ...


def get_sourcemap_asset_name(
    compilation: _AssetLookup, sw_text: str, sw_dest: str
) -> Optional[str]:
    url = get_source_map_url(sw_text)
    if not url:
        return None
    name = posixpath.normpath(posixpath.join(posixpath.dirname(sw_dest), url))
    if compilation.get_asset(name) is not None:
        return name
    return None


# Splice with remap -----------------------------------------------------------
def _position(text: str, offset: int) -> tuple[int, int]:
    line = text.count("\n", 0, offset)
    line_start = text.rfind("\n", 0, offset) + 1
    return line, utf16_len(text[line_start:offset])


def _end_after(start: tuple[int, int], inserted: str) -> tuple[int, int]:
    parts = inserted.split("\n")
    if len(parts) == 1:
        return start[0], start[1] + utf16_len(inserted)
    return start[0] + len(parts) - 1, utf16_len(parts[-1])


def _remap_one(
    lines: list[list[Segment]],
    start: tuple[int, int],
    old_end: tuple[int, int],
    new_end: tuple[int, int],
) -> list[list[Segment]]:
    line_delta = new_end[0] - old_end[0]
    out: dict[int, list[Segment]] = {}
    for line_no, segments in enumerate(lines):
        for seg in segments:
            pos = (line_no, seg[0])
            if pos <= start:
                target = pos
            elif pos >= old_end:
                if line_no == old_end[0]:
                    target = (new_end[0], seg[0] - old_end[1] + new_end[1])
                else:
                    target = (line_no + line_delta, seg[0])
            else:
                # Mapping pointed inside the replaced text.
                target = start
            out.setdefault(target[0], []).append((target[1],) + seg[1:])
    count = max(len(lines) + line_delta, max(out, default=-1) + 1, 0)
    return [out.get(i, []) for i in range(count)]


def _check_sources(lines: list[list[Segment]], map_data: dict) -> None:
    sources = map_data.get("sources") or []
    names = map_data.get("names") or []
    for line_no, segments in enumerate(lines):
        for seg in segments:
            if len(seg) >= 4 and not 0 <= seg[1] < len(sources):
                raise _err(
                    f"Mapping references source index {seg[1]} but the map "
                    f"lists {len(sources)} sources",
                    line=line_no,
                )
            if len(seg) == 5 and not 0 <= seg[4] < len(names):
                raise _err(
                    f"Mapping references name index {seg[4]} but the map "
                    f"lists {len(names)} names",
                    line=line_no,
                )


def replace_and_update_source_map(
    *,
    original_source: str,
    original_map: dict | str,
    search_string: str,
    replace_string: str,
    js_filename: str,
) -> SpliceResult:
    """Replace every ``search_string`` and shift the map to match.

    Mappings before a replaced span are untouched, mappings at or after its
    end move by exactly the inserted line/column delta.
    """
    if isinstance(original_map, str):
        try:
            original_map = json.loads(original_map)
        except json.JSONDecodeError as exc:
            raise _err(f"Source map is not valid JSON: {exc}") from exc
    if not isinstance(original_map, dict):
        raise _err("Source map root must be an object")
    if "sections" in original_map:
        raise _err("Indexed source maps are not supported")
    mappings = original_map.get("mappings")
    if not isinstance(mappings, str):
        raise _err("Source map has no 'mappings' string")
    if not search_string:
        raise _err("Search string must not be empty")

    lines = decode_mappings(mappings)
    _check_sources(lines, original_map)

    offsets = [
        m.start() for m in re.finditer(re.escape(search_string), original_source)
    ]
    source = original_source
    # Right to left so earlier offsets stay valid.
    for offset in reversed(offsets):
        start = _position(source, offset)
        old_end = _end_after(start, search_string)
        new_end = _end_after(start, replace_string)
        lines = _remap_one(lines, start, old_end, new_end)
        source = (
            source[:offset]
            + replace_string
            + source[offset + len(search_string):]
        )

    updated = dict(original_map)
    updated["file"] = js_filename
    updated["mappings"] = encode_mappings(lines)
    return SpliceResult(source=source, map=json.dumps(updated))
