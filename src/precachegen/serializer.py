"""Deterministic manifest serialization.

Equal entry sequences must always produce byte-identical text so that a
rebuilt service worker diffs cleanly. Object keys are sorted at every
level, arrays keep their order and no insignificant whitespace is emitted.
"""

from __future__ import annotations

import json
from typing import Any, Iterable, Optional

from .models import ManifestEntry

__all__ = [
    "stable_stringify",
    "needs_quote_rewrite",
    "serialize_manifest",
    "EVAL_DEVTOOL",
]

# Devtool that wraps each module in an eval'd string literal; combined with
# minification, rewriting quotes would break that literal.
EVAL_DEVTOOL = "eval-cheap-source-map"


def _default(value: Any) -> Any:
    if isinstance(value, ManifestEntry):
        return value.to_dict()
    raise TypeError(f"Object of type {type(value).__name__} is not serializable")


# JavaScript and source map consumers treat these as line terminators.
_LINE_SEPARATORS = {"\u2028": "\\u2028", "\u2029": "\\u2029"}


def stable_stringify(value: Any) -> str:
    text = json.dumps(
        value,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        default=_default,
    )
    for char, escaped in _LINE_SEPARATORS.items():
        text = text.replace(char, escaped)
    return text


def needs_quote_rewrite(
    compile_src: bool, devtool: Optional[str], minimize: bool
) -> bool:
    if not compile_src:
        return False
    return not (devtool == EVAL_DEVTOOL and minimize)


def serialize_manifest(
    entries: Iterable[ManifestEntry], *, rewrite_quotes: bool = False
) -> str:
    text = stable_stringify(list(entries))
    if rewrite_quotes:
        text = text.replace('"', "'")
    return text
