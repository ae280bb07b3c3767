"""Option handling for InjectManifest.

``InjectManifestOptions`` is what users construct. ``validate_options``
returns a defaulted copy, and ``resolve_config`` folds in values derived
from the host build to produce the frozen ``PipelineConfig`` used for one
build. Explicit options always win over derived ones.
"""

from __future__ import annotations

import dataclasses
import json
import os
import re
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Any, Callable, Optional, Sequence, Union

import yaml

from .errors import config_error
from .models import ManifestEntry, coerce_entry

__all__ = [
    "DEFAULT_INJECTION_POINT",
    "DEFAULT_MAXIMUM_FILE_SIZE",
    "DEFAULT_EXCLUDE",
    "InjectManifestOptions",
    "PipelineConfig",
    "Specifier",
    "validate_options",
    "resolve_config",
    "load_options",
]

DEFAULT_INJECTION_POINT = "self.__WB_MANIFEST"
DEFAULT_MAXIMUM_FILE_SIZE = 2 * 1024 * 1024
DEFAULT_EXCLUDE: tuple[str, ...] = (r"\.map$", r"^manifest.*\.js$")
GLOB_PREFIX = "glob:"

Specifier = Union[str, re.Pattern, Callable[[str], bool]]
ManifestTransform = Callable[..., Any]


@dataclass
class InjectManifestOptions:
    sw_src: Optional[Union[str, os.PathLike]] = None
    sw_dest: Optional[str] = None
    compile_src: Optional[bool] = None
    injection_point: Optional[str] = None
    include: Optional[list[Specifier]] = None
    exclude: Optional[list[Specifier]] = None
    manifest_transforms: Optional[list[ManifestTransform]] = None
    maximum_file_size_to_cache_in_bytes: Optional[int] = None
    compilation_plugins: Optional[list[Any]] = None
    mode: Optional[str] = None
    additional_manifest_entries: Optional[list[Any]] = None
    modify_url_prefix: Optional[dict[str, str]] = None
    dont_cache_bust_urls_matching: Optional[Union[str, "re.Pattern[str]"]] = None


@dataclass(frozen=True)
class PipelineConfig:
    sw_src: str
    sw_dest: str
    injection_point: str = DEFAULT_INJECTION_POINT
    compile_src: bool = True
    include: tuple[Specifier, ...] = ()
    exclude: tuple[Specifier, ...] = DEFAULT_EXCLUDE
    manifest_transforms: tuple[ManifestTransform, ...] = ()
    maximum_file_size_to_cache_in_bytes: int = DEFAULT_MAXIMUM_FILE_SIZE
    mode: Optional[str] = None
    compilation_plugins: tuple[Any, ...] = ()
    additional_manifest_entries: tuple[ManifestEntry, ...] = ()
    modify_url_prefix: tuple[tuple[str, str], ...] = ()
    dont_cache_bust_urls_matching: Optional["re.Pattern[str]"] = None

    def with_dest(self, sw_dest: str) -> "PipelineConfig":
        return dataclasses.replace(self, sw_dest=sw_dest)


def _check_specifiers(
    name: str, values: Any, errors: list[str]
) -> None:
    if not isinstance(values, (list, tuple)):
        errors.append(f"'{name}' must be a list")
        return
    for i, spec in enumerate(values):
        if callable(spec) or isinstance(spec, re.Pattern):
            continue
        if not isinstance(spec, str):
            errors.append(
                f"'{name}[{i}]' must be a string, compiled pattern or callable"
            )
            continue
        if spec.startswith(GLOB_PREFIX):
            continue
        try:
            re.compile(spec)
        except re.error as exc:
            errors.append(f"'{name}[{i}]' is not a valid pattern: {exc}")


def validate_options(options: InjectManifestOptions) -> InjectManifestOptions:
    """Return a defaulted copy of ``options`` or raise ConfigurationError."""
    errors: list[str] = []
    if not isinstance(options.sw_src, (str, os.PathLike)) or not str(
        options.sw_src
    ):
        errors.append("'sw_src' is required and must be a path")
    if options.sw_dest is not None and not isinstance(options.sw_dest, str):
        errors.append("'sw_dest' must be a string")
    if options.compile_src is not None and not isinstance(
        options.compile_src, bool
    ):
        errors.append("'compile_src' must be a boolean")
    if options.injection_point is not None and (
        not isinstance(options.injection_point, str)
        or not options.injection_point
    ):
        errors.append("'injection_point' must be a non-empty string")
    if options.include is not None:
        _check_specifiers("include", options.include, errors)
    if options.exclude is not None:
        _check_specifiers("exclude", options.exclude, errors)
    if options.manifest_transforms is not None and not all(
        callable(t) for t in options.manifest_transforms
    ):
        errors.append("'manifest_transforms' must only contain callables")
    size = options.maximum_file_size_to_cache_in_bytes
    if size is not None and (
        isinstance(size, bool) or not isinstance(size, int) or size < 0
    ):
        errors.append(
            "'maximum_file_size_to_cache_in_bytes' must be a non-negative integer"
        )
    if options.compilation_plugins is not None:
        for i, plugin in enumerate(options.compilation_plugins):
            if not callable(getattr(plugin, "apply", None)):
                errors.append(
                    f"'compilation_plugins[{i}]' must have an apply() method"
                )
    if options.mode is not None and not isinstance(options.mode, str):
        errors.append("'mode' must be a string")
    additional: list[ManifestEntry] = []
    for i, entry in enumerate(options.additional_manifest_entries or []):
        try:
            additional.append(coerce_entry(entry))
        except (TypeError, ValueError) as exc:
            errors.append(f"'additional_manifest_entries[{i}]': {exc}")
    prefixes = options.modify_url_prefix
    if prefixes is not None and (
        not isinstance(prefixes, dict)
        or not all(
            isinstance(k, str) and isinstance(v, str)
            for k, v in prefixes.items()
        )
    ):
        errors.append("'modify_url_prefix' must map strings to strings")
    bust = options.dont_cache_bust_urls_matching
    if bust is not None and not isinstance(bust, re.Pattern):
        if not isinstance(bust, str):
            errors.append(
                "'dont_cache_bust_urls_matching' must be a pattern"
            )
        else:
            try:
                bust = re.compile(bust)
            except re.error as exc:
                errors.append(
                    f"'dont_cache_bust_urls_matching' is not a valid pattern: {exc}"
                )
    if errors:
        raise config_error("\n".join(errors), {"errors": errors})

    return InjectManifestOptions(
        sw_src=str(options.sw_src),
        sw_dest=options.sw_dest,
        compile_src=True if options.compile_src is None else options.compile_src,
        injection_point=options.injection_point or DEFAULT_INJECTION_POINT,
        include=list(options.include or []),
        exclude=list(
            DEFAULT_EXCLUDE if options.exclude is None else options.exclude
        ),
        manifest_transforms=list(options.manifest_transforms or []),
        maximum_file_size_to_cache_in_bytes=(
            DEFAULT_MAXIMUM_FILE_SIZE if size is None else size
        ),
        compilation_plugins=list(options.compilation_plugins or []),
        mode=options.mode,
        additional_manifest_entries=additional,
        modify_url_prefix=dict(prefixes or {}),
        dont_cache_bust_urls_matching=bust,
    )


def default_sw_dest(sw_src: str) -> str:
    # Always .js, the source may be e.g. a .ts file.
    return PurePosixPath(Path(sw_src).as_posix()).stem + ".js"


def resolve_config(
    options: InjectManifestOptions, *, host_mode: Optional[str] = None
) -> PipelineConfig:
    """Merge host-derived values with validated options into a frozen config."""
    validated = validate_options(options)
    sw_src = str(validated.sw_src)
    return PipelineConfig(
        sw_src=sw_src,
        sw_dest=validated.sw_dest or default_sw_dest(sw_src),
        injection_point=validated.injection_point or DEFAULT_INJECTION_POINT,
        compile_src=bool(validated.compile_src),
        include=tuple(validated.include or ()),
        exclude=tuple(validated.exclude or ()),
        manifest_transforms=tuple(validated.manifest_transforms or ()),
        maximum_file_size_to_cache_in_bytes=int(
            validated.maximum_file_size_to_cache_in_bytes or 0
        ),
        mode=validated.mode if validated.mode is not None else host_mode,
        compilation_plugins=tuple(validated.compilation_plugins or ()),
        additional_manifest_entries=tuple(
            validated.additional_manifest_entries or ()
        ),
        modify_url_prefix=tuple(sorted((validated.modify_url_prefix or {}).items())),
        dont_cache_bust_urls_matching=validated.dont_cache_bust_urls_matching,  # type: ignore[arg-type]
    )


_KEY_ALIASES = {
    "swSrc": "sw_src",
    "swDest": "sw_dest",
    "compileSrc": "compile_src",
    "injectionPoint": "injection_point",
    "maximumFileSizeToCacheInBytes": "maximum_file_size_to_cache_in_bytes",
    "additionalManifestEntries": "additional_manifest_entries",
    "modifyURLPrefix": "modify_url_prefix",
    "dontCacheBustURLsMatching": "dont_cache_bust_urls_matching",
}
_FILE_KEYS = {
    f.name for f in dataclasses.fields(InjectManifestOptions)
} - {"manifest_transforms", "compilation_plugins"}


def options_from_dict(data: dict[str, Any]) -> InjectManifestOptions:
    kwargs: dict[str, Any] = {}
    unknown: list[str] = []
    for key, value in data.items():
        name = _KEY_ALIASES.get(key, key)
        if name not in _FILE_KEYS:
            unknown.append(key)
            continue
        kwargs[name] = value
    if unknown:
        raise config_error(
            "Unknown option(s): " + ", ".join(sorted(unknown)),
            {"unknown": unknown},
        )
    return InjectManifestOptions(**kwargs)


def load_options(path: str | Path) -> InjectManifestOptions:
    """Read options from a JSON or YAML file."""
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(p)
    text = p.read_text(encoding="utf-8")
    try:
        if p.suffix.lower() in {".yaml", ".yml"}:
            data: Any = yaml.safe_load(text)
        else:
            data = json.loads(text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise config_error(
            f"Unable to parse {p.name}: {exc}", {"path": str(p)}
        ) from exc
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise config_error(f"Root of {p.name} must be an object")
    return options_from_dict(data)


def merge_options(
    base: InjectManifestOptions, overrides: Sequence[tuple[str, Any]]
) -> InjectManifestOptions:
    """Return ``base`` with non-None ``overrides`` applied."""
    changes = {k: v for k, v in overrides if v is not None}
    return dataclasses.replace(base, **changes)
