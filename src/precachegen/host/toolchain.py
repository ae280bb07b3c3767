"""A small in-process build toolchain.

It gives the injection engine something concrete to run against: compilers
with tap-able hooks, compilations holding an asset store and diagnostics,
child compilers for nested builds, and pluggable input/output filesystems.
Two generations of the hook API are available. ``api="staged"`` exposes a
``process_assets`` hook with numeric stages; ``api="legacy"`` only offers
the compiler-level ``emit`` hook.
"""

from __future__ import annotations

import json
import logging
import posixpath
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from ..sourcemap import encode_mappings

__all__ = [
    "BuildError",
    "Hook",
    "RawSource",
    "Asset",
    "Module",
    "MemoryFileSystem",
    "DiskFileSystem",
    "CompilerOptions",
    "Compilation",
    "StagedCompilation",
    "Compiler",
    "EntryPlugin",
]

_log = logging.getLogger("precachegen.host")


class BuildError(Exception):
    """A diagnostic recorded on a compilation (error or warning)."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


@dataclass(order=True)
class _Tap:
    stage: int
    order: int
    name: str = field(compare=False)
    fn: Callable[..., Any] = field(compare=False)


class Hook:
    """Ordered callback list; taps run by stage, then registration order."""

    def __init__(self, name: str = "") -> None:
        self.name = name
        self._taps: List[_Tap] = []

    def tap(self, name: str, fn: Callable[..., Any], *, stage: int = 0) -> None:
        self._taps.append(_Tap(stage, len(self._taps), name, fn))
        self._taps.sort()

    @property
    def taps(self) -> list[str]:
        return [t.name for t in self._taps]

    def call(self, *args: Any) -> None:
        for t in list(self._taps):
            t.fn(*args)


class RawSource:
    def __init__(self, value: Union[str, bytes, bytearray]) -> None:
        self._value = bytes(value) if isinstance(value, bytearray) else value

    def source(self) -> Union[str, bytes]:
        return self._value

    def buffer(self) -> bytes:
        if isinstance(self._value, str):
            return self._value.encode("utf-8")
        return self._value

    def text(self) -> str:
        if isinstance(self._value, str):
            return self._value
        return self._value.decode("utf-8")

    def size(self) -> int:
        return len(self.buffer())


@dataclass
class Asset:
    name: str
    source: RawSource
    info: Dict[str, Any] = field(default_factory=dict)


@dataclass
class Module:
    """An entry being built; ``build_module`` taps may rewrite ``source``."""

    name: str
    resource: str
    original: str
    source: str


# Filesystems -----------------------------------------------------------------
class MemoryFileSystem:
    def __init__(self, files: Optional[Dict[str, Union[str, bytes]]] = None):
        self._files: Dict[str, bytes] = {}
        for path, data in (files or {}).items():
            self.write_file(path, data)

    @staticmethod
    def _key(path: Union[str, Path]) -> str:
        return posixpath.normpath(str(path).replace("\\", "/"))

    def read_file(self, path: Union[str, Path]) -> bytes:
        try:
            return self._files[self._key(path)]
        except KeyError:
            raise FileNotFoundError(str(path)) from None

    def write_file(self, path: Union[str, Path], data: Union[str, bytes]) -> None:
        if isinstance(data, str):
            data = data.encode("utf-8")
        self._files[self._key(path)] = data

    def exists(self, path: Union[str, Path]) -> bool:
        return self._key(path) in self._files

    def files(self) -> list[str]:
        return sorted(self._files)


class DiskFileSystem:
    def read_file(self, path: Union[str, Path]) -> bytes:
        return Path(path).read_bytes()

    def write_file(self, path: Union[str, Path], data: Union[str, bytes]) -> None:
        p = Path(path)
        p.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(data, str):
            data = data.encode("utf-8")
        p.write_bytes(data)

    def exists(self, path: Union[str, Path]) -> bool:
        return Path(path).exists()


# Compilations ----------------------------------------------------------------
@dataclass
class CompilerOptions:
    context: str = "/"
    mode: Optional[str] = None
    devtool: Optional[str] = None
    minimize: bool = False
    output_path: str = "/dist"
    filename: str = "[name].js"
    public_path: str = ""
    entry: Dict[str, str] = field(default_factory=dict)


class _CompilationHooks:
    def __init__(self) -> None:
        self.build_module = Hook("build_module")


class _StagedCompilationHooks(_CompilationHooks):
    def __init__(self) -> None:
        super().__init__()
        self.process_assets = Hook("process_assets")


class Compilation:
    hooks_class = _CompilationHooks

    def __init__(self, compiler: "Compiler") -> None:
        self.compiler = compiler
        self.options = compiler.options
        self.hooks = self.hooks_class()
        self.assets: Dict[str, Asset] = {}
        self.errors: List[Exception] = []
        self.warnings: List[Exception] = []
        self.file_dependencies: set[str] = set()
        self.changed: set[str] = set()

    @property
    def output_path(self) -> str:
        return self.options.output_path

    def get_asset(self, name: str) -> Optional[Asset]:
        return self.assets.get(name)

    def get_assets(self) -> list[Asset]:
        return [self.assets[k] for k in sorted(self.assets)]

    def emit_asset(
        self, name: str, source: RawSource, info: Optional[Dict[str, Any]] = None
    ) -> None:
        existing = self.assets.get(name)
        if existing is not None and existing.source.buffer() != source.buffer():
            raise BuildError(
                f"Conflict: multiple assets emit different content to {name}"
            )
        self.assets[name] = Asset(name, source, dict(info or {}))
        self.changed.add(name)

    def update_asset(
        self, name: str, source: RawSource, info: Optional[Dict[str, Any]] = None
    ) -> None:
        asset = self.assets.get(name)
        if asset is None:
            raise BuildError(f"Called update_asset for not existing filename {name}")
        asset.source = source
        if info:
            asset.info.update(info)
        self.changed.add(name)

    def preload_asset(
        self, name: str, source: RawSource, info: Optional[Dict[str, Any]] = None
    ) -> None:
        """Add an asset that already exists in the output directory."""
        self.assets[name] = Asset(name, source, dict(info or {}))

    def get_logger(self, name: str) -> logging.Logger:
        return logging.getLogger(f"precachegen.build.{name}")

    def create_child_compiler(
        self,
        name: str,
        output_options: Optional[Dict[str, Any]] = None,
        plugins: Iterable[Any] = (),
    ) -> "Compiler":
        return self.compiler.create_child_compiler(
            self, name, output_options or {}, plugins
        )

    def resolve(self, request: str) -> str:
        return self.compiler.resolve(request)


class StagedCompilation(Compilation):
    hooks_class = _StagedCompilationHooks

    # Stage at which assets are compressed for transfer.
    PROCESS_ASSETS_STAGE_OPTIMIZE_TRANSFER = 3000


class _CompilerHooks:
    def __init__(self, legacy: bool) -> None:
        self.this_compilation = Hook("this_compilation")
        self.compilation = Hook("compilation")
        self.make = Hook("make")
        self.done = Hook("done")
        if legacy:
            self.emit = Hook("emit")


_TOKEN = re.compile(r"\S+")


def _identity_mappings(text: str) -> str:
    lines = []
    for line_no, line in enumerate(text.split("\n")):
        lines.append([(m.start(), 0, line_no, m.start()) for m in _TOKEN.finditer(line)])
    return encode_mappings(lines)


class Compiler:
    def __init__(
        self,
        options: Optional[CompilerOptions] = None,
        *,
        input_fs: Any = None,
        output_fs: Any = None,
        api: str = "staged",
        plugins: Iterable[Any] = (),
        name: str = "",
        parent: Optional[Compilation] = None,
    ) -> None:
        if api not in ("staged", "legacy"):
            raise ValueError(f"Unknown hook api {api!r}")
        self.options = options or CompilerOptions()
        self.api = api
        self.name = name
        self.parent = parent
        self.context = self.options.context
        self.input_fs = input_fs if input_fs is not None else DiskFileSystem()
        self.output_fs = output_fs if output_fs is not None else self.input_fs
        self.compilation_class = (
            Compilation if api == "legacy" else StagedCompilation
        )
        self.hooks = _CompilerHooks(legacy=api == "legacy")
        for entry_name, request in self.options.entry.items():
            EntryPlugin(self.context, request, entry_name).apply(self)
        for plugin in plugins:
            plugin.apply(self)

    @property
    def is_child(self) -> bool:
        return self.parent is not None

    def resolve(self, request: str) -> str:
        request = request.replace("\\", "/")
        if posixpath.isabs(request) or Path(request).is_absolute():
            return posixpath.normpath(request)
        return posixpath.normpath(
            posixpath.join(self.context.replace("\\", "/"), request)
        )

    def output_filename(self, entry_name: str) -> str:
        return self.options.filename.replace("[name]", entry_name)

    def build_entry(self, compilation: Compilation, request: str, name: str) -> None:
        resource = self.resolve(request)
        compilation.file_dependencies.add(resource)
        try:
            original = self.input_fs.read_file(resource).decode("utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            compilation.errors.append(
                BuildError(f"Module not found: Can't resolve '{request}' ({exc})")
            )
            return
        module = Module(name=name, resource=resource, original=original, source=original)
        compilation.hooks.build_module.call(module)
        filename = self.output_filename(name)
        text = module.source
        if self.options.devtool == "source-map":
            map_name = filename + ".map"
            source_name = posixpath.relpath(resource, self.context.replace("\\", "/"))
            map_data = {
                "version": 3,
                "file": filename,
                "sources": [source_name],
                "sourcesContent": [original],
                "names": [],
                "mappings": _identity_mappings(text),
            }
            compilation.emit_asset(map_name, RawSource(json.dumps(map_data)))
            text = f"{text}\n//# sourceMappingURL={posixpath.basename(map_name)}"
        compilation.emit_asset(filename, RawSource(text))

    def _new_compilation(self) -> Compilation:
        compilation = self.compilation_class(self)
        if not self.is_child:
            self.hooks.this_compilation.call(compilation)
        self.hooks.compilation.call(compilation)
        return compilation

    def _seal(self, compilation: Compilation) -> None:
        if isinstance(compilation, StagedCompilation):
            compilation.hooks.process_assets.call(compilation.assets)
        else:
            self.hooks.emit.call(compilation)

    def run(self, *, emit: bool = False) -> Compilation:
        compilation = self._new_compilation()
        self.hooks.make.call(compilation)
        self._seal(compilation)
        if emit:
            self.emit_assets(compilation)
        self.hooks.done.call(compilation)
        return compilation

    def emit_assets(self, compilation: Compilation) -> list[str]:
        written = []
        for name in sorted(compilation.changed):
            asset = compilation.assets.get(name)
            if asset is None:
                continue
            path = posixpath.join(compilation.output_path.replace("\\", "/"), name)
            self.output_fs.write_file(path, asset.source.buffer())
            written.append(name)
        return written

    def create_child_compiler(
        self,
        compilation: Compilation,
        name: str,
        output_options: Dict[str, Any],
        plugins: Iterable[Any] = (),
    ) -> "Compiler":
        options = CompilerOptions(
            context=self.options.context,
            mode=self.options.mode,
            devtool=self.options.devtool,
            minimize=self.options.minimize,
            output_path=output_options.get("path", self.options.output_path),
            filename=output_options.get("filename", self.options.filename),
            public_path=self.options.public_path,
        )
        return Compiler(
            options,
            input_fs=self.input_fs,
            output_fs=self.output_fs,
            api=self.api,
            plugins=plugins,
            name=name,
            parent=compilation,
        )

    def run_as_child(self) -> Compilation:
        """Run a nested build and merge its assets into the parent."""
        if self.parent is None:
            raise BuildError("run_as_child() requires a parent compilation")
        compilation = self._new_compilation()
        self.hooks.make.call(compilation)
        self._seal(compilation)
        for asset in compilation.get_assets():
            self.parent.emit_asset(asset.name, asset.source, asset.info)
        self.parent.file_dependencies.update(compilation.file_dependencies)
        _log.debug(
            "child compiler %s produced %d asset(s)", self.name, len(compilation.assets)
        )
        self.hooks.done.call(compilation)
        return compilation


class EntryPlugin:
    """Adds a single entry to be built during ``make``."""

    def __init__(self, context: str, request: str, name: str) -> None:
        self.context = context
        self.request = request
        self.name = name

    def apply(self, compiler: Compiler) -> None:
        request = self.request.replace("\\", "/")
        if not posixpath.isabs(request) and not Path(request).is_absolute():
            request = posixpath.join(self.context.replace("\\", "/"), request)
        compiler.hooks.make.tap(
            "EntryPlugin",
            lambda compilation: compiler.build_entry(compilation, request, self.name),
        )
