"""Build host integration: reference toolchain and hook adapters."""

from .adapters import (
    LegacyAdapter,
    StageAdapter,
    StagedAdapter,
    select_stage_adapter,
)
from .toolchain import (
    Asset,
    BuildError,
    Compilation,
    Compiler,
    CompilerOptions,
    DiskFileSystem,
    EntryPlugin,
    Hook,
    MemoryFileSystem,
    Module,
    RawSource,
    StagedCompilation,
)

__all__ = [
    "Asset",
    "BuildError",
    "Compilation",
    "Compiler",
    "CompilerOptions",
    "DiskFileSystem",
    "EntryPlugin",
    "Hook",
    "MemoryFileSystem",
    "Module",
    "RawSource",
    "StagedCompilation",
    "LegacyAdapter",
    "StageAdapter",
    "StagedAdapter",
    "select_stage_adapter",
]
