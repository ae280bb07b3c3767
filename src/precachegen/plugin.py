"""The InjectManifest build plugin.

``InjectManifest`` compiles (or copies) a service worker source into the
outer build, then, once every other asset is final, replaces its single
injection point with the serialized precache manifest. A companion source
map, when present, is updated to stay in step with the edit.
"""

from __future__ import annotations

import posixpath
import weakref
from pathlib import Path
from typing import Any, Optional

from .config import InjectManifestOptions, PipelineConfig, resolve_config
from .entries import EntrySource, get_manifest_entries_from_compilation
from .errors import (
    AssetMissingError,
    ConfigurationError,
    SourceReadError,
    E_ASSET_MISSING,
    E_SOURCE_READ,
    config_error,
    internal_error,
)
from .host.adapters import select_stage_adapter
from .host.toolchain import BuildError, EntryPlugin, RawSource
from .locator import locate_injection_point
from .logging import get_logger
from .models import ManifestResult
from .registry import AssetRegistry, InvocationGuard, get_asset_registry
from .serializer import needs_quote_rewrite, serialize_manifest
from .sourcemap import get_sourcemap_asset_name
from .splice import splice
from .utils.paths import relative_to_output_path
from .utils.sizes import format_bytes

__all__ = ["InjectManifest"]


class InjectManifest:
    """Compile ``sw_src`` and inject a precache manifest into it.

    Options are given either as an ``InjectManifestOptions`` or as keyword
    arguments with the same names. ``registry`` defaults to the process-wide
    ``AssetRegistry``; ``entry_source`` defaults to
    ``get_manifest_entries_from_compilation``.
    """

    def __init__(
        self,
        options: Optional[InjectManifestOptions] = None,
        *,
        registry: Optional[AssetRegistry] = None,
        entry_source: Optional[EntrySource] = None,
        **kwargs: Any,
    ) -> None:
        if options is not None and kwargs:
            raise TypeError("Pass either an options object or keyword options")
        self.options = options if options is not None else InjectManifestOptions(**kwargs)
        self.registry = registry if registry is not None else get_asset_registry()
        self.entry_source = entry_source or get_manifest_entries_from_compilation
        self.config: Optional[PipelineConfig] = None
        self.manifest_result: Optional[ManifestResult] = None
        self._guard = InvocationGuard()
        self._failed_makes: weakref.WeakSet = weakref.WeakSet()
        self._log = get_logger("inject")

    @property
    def name(self) -> str:
        return type(self).__name__

    def apply(self, compiler: Any) -> None:
        # Invalid options fail here, before the host starts building.
        self._resolve_config(compiler)
        adapter = select_stage_adapter(compiler)
        self._log.debug("%s attached through the %s hook api", self.name, adapter.name)
        adapter.register(
            compiler,
            self.name,
            make=lambda compilation: self.handle_make(compilation, compiler),
            process=self.add_assets,
        )

    # make ---------------------------------------------------------------------
    def _resolve_config(self, parent_compiler: Any) -> PipelineConfig:
        try:
            return resolve_config(self.options, host_mode=parent_compiler.options.mode)
        except ConfigurationError as exc:
            raise config_error(
                f"Please check your {self.name} plugin configuration:\n{exc.message}",
                exc.context,
            ) from exc

    def handle_make(self, compilation: Any, parent_compiler: Any) -> None:
        config = self._resolve_config(parent_compiler)
        config = config.with_dest(
            relative_to_output_path(compilation.output_path, config.sw_dest)
        )
        self.config = config
        self.registry.register(config.sw_dest)

        errors_before = len(compilation.errors)
        try:
            if config.compile_src:
                self.perform_child_compilation(compilation, parent_compiler)
            else:
                self.add_src_to_assets(compilation, parent_compiler)
        except Exception:
            self._failed_makes.add(compilation)
            raise
        if len(compilation.errors) > errors_before:
            self._failed_makes.add(compilation)

        if not config.compile_src and config.compilation_plugins:
            # Not fatal: this can only be noticed at build time.
            compilation.warnings.append(
                BuildError(
                    "compileSrc is false, so the compilation_plugins "
                    "option will be ignored."
                )
            )

    def perform_child_compilation(self, compilation: Any, parent_compiler: Any) -> None:
        config = self._require_config()
        child = compilation.create_child_compiler(
            self.name,
            {"path": parent_compiler.options.output_path, "filename": config.sw_dest},
        )
        child.context = parent_compiler.context
        child.input_fs = parent_compiler.input_fs
        child.output_fs = parent_compiler.output_fs
        for plugin in config.compilation_plugins:
            plugin.apply(child)
        EntryPlugin(parent_compiler.context, config.sw_src, self.name).apply(child)

        child_compilation = child.run_as_child()
        compilation.warnings.extend(child_compilation.warnings)
        compilation.errors.extend(child_compilation.errors)
        self._log.debug(
            "sub-build of %s finished: errors=%d warnings=%d",
            config.sw_src,
            len(child_compilation.errors),
            len(child_compilation.warnings),
        )

    def add_src_to_assets(self, compilation: Any, parent_compiler: Any) -> None:
        config = self._require_config()
        path = parent_compiler.resolve(config.sw_src)
        try:
            source = parent_compiler.input_fs.read_file(path)
        except OSError as exc:
            raise SourceReadError(
                code=E_SOURCE_READ,
                message=f"Unable to read {config.sw_src}: {exc}",
                context={"path": path},
            ) from exc
        compilation.emit_asset(config.sw_dest, RawSource(source))

    # process assets -------------------------------------------------------------
    def _warn_repeated_invocation(self, compilation: Any) -> None:
        message = (
            f"{self.name} has been called multiple times, perhaps due to "
            "running in watch mode. The precache manifest generated after "
            "the first call may be inaccurate!"
        )
        if not any(str(w) == message for w in compilation.warnings):
            compilation.warnings.append(BuildError(message))

    def _require_config(self) -> PipelineConfig:
        if self.config is None:
            raise internal_error(f"{self.name} ran before its make stage")
        return self.config

    def add_assets(self, compilation: Any) -> None:
        if self._guard.note_invocation():
            self._warn_repeated_invocation(compilation)

        config = self._require_config()
        compilation.file_dependencies.add(
            posixpath.normpath(Path(compilation.resolve(config.sw_src)).as_posix())
        )

        sw_asset = compilation.get_asset(config.sw_dest)
        if sw_asset is None:
            if compilation in self._failed_makes:
                # The make stage already reported why.
                self._log.debug("skipping injection, %s was not built", config.sw_dest)
                return
            raise AssetMissingError(
                code=E_ASSET_MISSING,
                message=f"{config.sw_dest} was not produced by the build.",
                context={"sw_dest": config.sw_dest},
            )
        sw_text = sw_asset.source.text()
        locate_injection_point(sw_text, config.injection_point)

        sourcemap_name = get_sourcemap_asset_name(compilation, sw_text, config.sw_dest)
        if sourcemap_name:
            self.registry.register(sourcemap_name)

        result = self.entry_source(
            compilation, config, extra_exclude=(self.registry.is_generated,)
        )
        compilation.warnings.extend(BuildError(w) for w in result.warnings)
        self.manifest_result = result

        manifest = serialize_manifest(
            result.entries,
            rewrite_quotes=needs_quote_rewrite(
                config.compile_src,
                getattr(compilation.options, "devtool", None),
                bool(getattr(compilation.options, "minimize", False)),
            ),
        )

        if sourcemap_name:
            sourcemap_asset = compilation.get_asset(sourcemap_name)
            spliced = splice(
                sw_text,
                config.injection_point,
                manifest,
                source_map=sourcemap_asset.source.text(),
                map_filename=config.sw_dest,
            )
            compilation.update_asset(sourcemap_name, RawSource(spliced.map))
        else:
            spliced = splice(sw_text, config.injection_point, manifest)
        compilation.update_asset(config.sw_dest, RawSource(spliced.source))

        compilation.get_logger(self.name).info(
            "The service worker at %s will precache %d URLs, totaling %s.",
            config.sw_dest,
            len(result.entries),
            format_bytes(result.size),
        )
