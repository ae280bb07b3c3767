"""Default manifest entry source.

Turns the finished compilation's assets into a sorted list of
``ManifestEntry`` values. Selection follows the configured include/exclude
specifiers plus any extra predicates supplied by the caller (the engine
passes ``AssetRegistry.is_generated`` so self-generated files are never
listed). The transform pipeline then runs in a fixed order: URL prefix
rewriting, cache-bust exemption, user transforms.

Callers may replace this module with any callable of the same shape.
"""

from __future__ import annotations

import dataclasses
import hashlib
import re
from typing import Any, Callable, Iterable, Protocol, Sequence

from pathspec import GitIgnoreSpec

from .config import GLOB_PREFIX, PipelineConfig, Specifier
from .models import ManifestEntry, ManifestResult, coerce_entry
from .utils.sizes import format_bytes

__all__ = [
    "EntrySource",
    "compile_specifier",
    "get_manifest_entries_from_compilation",
    "asset_revision",
]

Predicate = Callable[[str], bool]


class EntrySource(Protocol):
    def __call__(
        self,
        compilation: Any,
        config: PipelineConfig,
        *,
        extra_exclude: Sequence[Predicate] = (),
    ) -> ManifestResult: ...


def compile_specifier(spec: Specifier) -> Predicate:
    if isinstance(spec, re.Pattern):
        return lambda name: spec.search(name) is not None
    if callable(spec):
        return spec
    if spec.startswith(GLOB_PREFIX):
        return GitIgnoreSpec.from_lines([spec[len(GLOB_PREFIX):]]).match_file
    pattern = re.compile(spec)
    return lambda name: pattern.search(name) is not None


def asset_revision(asset: Any) -> str | None:
    # Content-hashed filenames version themselves.
    if asset.info.get("immutable"):
        return None
    return hashlib.md5(asset.source.buffer()).hexdigest()


def _is_selected(
    name: str, include: list[Predicate], exclude: list[Predicate]
) -> bool:
    if include and not any(p(name) for p in include):
        return False
    return not any(p(name) for p in exclude)


def _modify_url_prefix(
    entries: list[ManifestEntry], prefixes: Iterable[tuple[str, str]]
) -> list[ManifestEntry]:
    prefixes = list(prefixes)
    out = []
    for entry in entries:
        for old, new in prefixes:
            if entry.url.startswith(old):
                entry = dataclasses.replace(entry, url=new + entry.url[len(old):])
                break
        out.append(entry)
    return out


def _apply_user_transform(
    transform: Callable[..., Any], entries: list[ManifestEntry], compilation: Any
) -> tuple[list[ManifestEntry], list[str]]:
    result = transform(list(entries), compilation)
    warnings: list[str] = []
    if isinstance(result, tuple):
        result, warnings = result[0], list(result[1] or [])
    elif isinstance(result, dict):
        warnings = list(result.get("warnings") or [])
        result = result.get("manifest")
    if result is None:
        raise TypeError(
            f"Manifest transform {getattr(transform, '__name__', transform)!r} "
            "did not return a manifest"
        )
    return [coerce_entry(e) for e in result], [str(w) for w in warnings]


def get_manifest_entries_from_compilation(
    compilation: Any,
    config: PipelineConfig,
    *,
    extra_exclude: Sequence[Predicate] = (),
) -> ManifestResult:
    include = [compile_specifier(s) for s in config.include]
    exclude = [compile_specifier(s) for s in config.exclude] + list(extra_exclude)
    public_path = getattr(compilation.options, "public_path", "") or ""
    limit = config.maximum_file_size_to_cache_in_bytes

    warnings: list[str] = []
    entries: list[ManifestEntry] = []
    for asset in compilation.get_assets():
        if not _is_selected(asset.name, include, exclude):
            continue
        size = asset.source.size()
        if size > limit:
            warnings.append(
                f"{asset.name} is {format_bytes(size)}, and won't be precached. "
                "Configure maximum_file_size_to_cache_in_bytes to change this limit."
            )
            continue
        entries.append(
            ManifestEntry(
                url=public_path + asset.name,
                revision=asset_revision(asset),
                size=size,
            )
        )
    entries.extend(config.additional_manifest_entries)

    if config.modify_url_prefix:
        entries = _modify_url_prefix(entries, config.modify_url_prefix)
    if config.dont_cache_bust_urls_matching is not None:
        bust = config.dont_cache_bust_urls_matching
        entries = [
            dataclasses.replace(e, revision=None) if bust.search(e.url) else e
            for e in entries
        ]
    for transform in config.manifest_transforms:
        entries, transform_warnings = _apply_user_transform(
            transform, entries, compilation
        )
        warnings.extend(transform_warnings)

    entries.sort(key=lambda e: (e.url, e.revision or ""))
    size = sum(e.size or 0 for e in entries)
    return ManifestResult(entries=entries, size=size, warnings=warnings)
