"""Precache manifest injection for service worker builds."""

from .config import (
    DEFAULT_INJECTION_POINT,
    InjectManifestOptions,
    PipelineConfig,
    load_options,
    resolve_config,
    validate_options,
)
from .errors import (
    AmbiguousInjectionPoint,
    ConfigurationError,
    InjectError,
    InjectionPointNotFound,
    SourceMapError,
)
from .locator import locate_injection_point
from .models import ManifestEntry, ManifestResult, SpliceResult
from .plugin import InjectManifest
from .registry import AssetRegistry, InvocationGuard, get_asset_registry
from .serializer import needs_quote_rewrite, serialize_manifest, stable_stringify
from .sourcemap import replace_and_update_source_map
from .splice import splice

__all__ = [
    "DEFAULT_INJECTION_POINT",
    "InjectManifest",
    "InjectManifestOptions",
    "PipelineConfig",
    "load_options",
    "resolve_config",
    "validate_options",
    "InjectError",
    "ConfigurationError",
    "InjectionPointNotFound",
    "AmbiguousInjectionPoint",
    "SourceMapError",
    "locate_injection_point",
    "ManifestEntry",
    "ManifestResult",
    "SpliceResult",
    "AssetRegistry",
    "InvocationGuard",
    "get_asset_registry",
    "needs_quote_rewrite",
    "serialize_manifest",
    "stable_stringify",
    "replace_and_update_source_map",
    "splice",
]
