"""Attach the injection stages to whichever hook API the host offers.

Capability is detected once, when the plugin is applied. The core logic
never branches on the host generation itself.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

__all__ = [
    "StageAdapter",
    "StagedAdapter",
    "LegacyAdapter",
    "select_stage_adapter",
]

_log = logging.getLogger("precachegen.host")

StageCallback = Callable[[Any], None]


def _report_errors(compilation: Any, fn: StageCallback) -> None:
    # Stage failures become build errors instead of escaping the build.
    try:
        fn(compilation)
    except Exception as exc:
        _log.debug("stage failed: %s", exc)
        compilation.errors.append(exc)


class StageAdapter:
    name = "base"

    def register(
        self,
        compiler: Any,
        plugin_name: str,
        *,
        make: StageCallback,
        process: StageCallback,
    ) -> None:
        raise NotImplementedError

    def _tap_make(self, compiler: Any, plugin_name: str, make: StageCallback) -> None:
        compiler.hooks.make.tap(
            plugin_name, lambda compilation: _report_errors(compilation, make)
        )


class StagedAdapter(StageAdapter):
    """Runs ``process`` in ``process_assets`` just before transfer optimisation."""

    name = "staged"

    def __init__(self, transfer_stage: int) -> None:
        self.stage = transfer_stage - 10

    def register(self, compiler, plugin_name, *, make, process) -> None:
        self._tap_make(compiler, plugin_name, make)

        def on_this_compilation(compilation: Any) -> None:
            compilation.hooks.process_assets.tap(
                plugin_name,
                lambda _assets: _report_errors(compilation, process),
                stage=self.stage,
            )

        compiler.hooks.this_compilation.tap(plugin_name, on_this_compilation)


class LegacyAdapter(StageAdapter):
    """Runs ``process`` from the compiler-level ``emit`` hook."""

    name = "legacy"

    def register(self, compiler, plugin_name, *, make, process) -> None:
        self._tap_make(compiler, plugin_name, make)
        compiler.hooks.emit.tap(
            plugin_name, lambda compilation: _report_errors(compilation, process)
        )


def select_stage_adapter(compiler: Any) -> StageAdapter:
    stage = getattr(
        compiler.compilation_class, "PROCESS_ASSETS_STAGE_OPTIMIZE_TRANSFER", None
    )
    if stage is not None:
        return StagedAdapter(stage)
    if getattr(compiler.hooks, "emit", None) is not None:
        return LegacyAdapter()
    raise TypeError(
        "Host compiler exposes neither process_assets stages nor an emit hook"
    )
