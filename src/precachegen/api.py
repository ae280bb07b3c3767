"""High-level API used by the CLI.

``inject_directory`` treats an existing output directory as the outer
build's asset set and runs InjectManifest against it through the in-process
toolchain.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from .config import InjectManifestOptions, default_sw_dest
from .host.toolchain import Compiler, CompilerOptions, DiskFileSystem, RawSource
from .locator import line_column, locate_injection_point
from .logging import get_logger
from .plugin import InjectManifest
from .registry import AssetRegistry
from .reporting import get_reporter, task
from .utils.paths import relative_to_output_path
from .utils.sizes import format_bytes

__all__ = [
    "InjectOptions",
    "InjectResult",
    "PreloadOutputPlugin",
    "inject_directory",
    "locate_in_file",
]


@dataclass(slots=True)
class InjectOptions:
    output_dir: Path
    manifest: InjectManifestOptions
    context: Path = field(default_factory=Path.cwd)
    devtool: Optional[str] = None
    minimize: bool = False
    mode: Optional[str] = None
    api: str = "staged"


@dataclass(slots=True)
class InjectResult:
    sw_dest: str
    written: list[str]
    errors: list[str]
    warnings: list[str]

    @property
    def ok(self) -> bool:
        return not self.errors


class PreloadOutputPlugin:
    """Loads files already present in the output directory as assets."""

    def __init__(self, directory: Path, skip: set[str]) -> None:
        self.directory = directory
        self.skip = skip

    def apply(self, compiler: Any) -> None:
        compiler.hooks.this_compilation.tap(type(self).__name__, self._preload)

    def _preload(self, compilation: Any) -> None:
        for path in sorted(p for p in self.directory.rglob("*") if p.is_file()):
            name = path.relative_to(self.directory).as_posix()
            if name in self.skip:
                continue
            compilation.preload_asset(name, RawSource(path.read_bytes()))


def inject_directory(
    options: InjectOptions, *, registry: Optional[AssetRegistry] = None
) -> InjectResult:
    logger = get_logger()
    rep = get_reporter()
    output_dir = options.output_dir.resolve()
    sw_dest = options.manifest.sw_dest or default_sw_dest(str(options.manifest.sw_src))
    sw_dest = relative_to_output_path(output_dir, sw_dest)
    skip = {sw_dest, sw_dest + ".map"}

    plugin = InjectManifest(options.manifest, registry=registry)
    compiler = Compiler(
        CompilerOptions(
            context=str(options.context.resolve()),
            mode=options.mode,
            devtool=options.devtool,
            minimize=options.minimize,
            output_path=str(output_dir),
        ),
        input_fs=DiskFileSystem(),
        api=options.api,
        plugins=[PreloadOutputPlugin(output_dir, skip), plugin],
    )
    with task("inject.build", f"Inject precache manifest into {sw_dest}") as stats:
        compilation = compiler.run()
        # A failed build leaves the output directory untouched.
        written = [] if compilation.errors else compiler.emit_assets(compilation)
        stats.update(
            written=len(written),
            warnings=len(compilation.warnings),
            errors=len(compilation.errors),
        )

    for warning in compilation.warnings:
        logger.warning("%s", warning)
    for error in compilation.errors:
        logger.error("%s", error)
    dest = plugin.config.sw_dest if plugin.config else sw_dest
    manifest = plugin.manifest_result
    urls = len(manifest.entries) if manifest else 0
    size = format_bytes(manifest.size if manifest else 0).replace(" ", "")
    rep.status(
        "Inject summary: "
        + f"dest={dest} urls={urls} bytes={size} written={len(written)} "
        + f"errors={len(compilation.errors)} warnings={len(compilation.warnings)}"
    )
    return InjectResult(
        sw_dest=dest,
        written=written,
        errors=[str(e) for e in compilation.errors],
        warnings=[str(w) for w in compilation.warnings],
    )


def locate_in_file(path: str | os.PathLike, injection_point: str) -> tuple[int, int, int]:
    """Return (offset, line, column) of the injection point, 1-based line."""
    text = Path(path).read_text(encoding="utf-8")
    offset = locate_injection_point(text, injection_point)
    line, column = line_column(text, offset)
    return offset, line + 1, column
