"""Error definitions for precachegen."""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Optional

E_CONFIG = "E_CONFIG"
E_INJECTION_POINT_NOT_FOUND = "E_INJECTION_POINT_NOT_FOUND"
E_INJECTION_POINT_AMBIGUOUS = "E_INJECTION_POINT_AMBIGUOUS"
E_SOURCEMAP = "E_SOURCEMAP"
E_SOURCE_READ = "E_SOURCE_READ"
E_ASSET_MISSING = "E_ASSET_MISSING"
E_INTERNAL = "E_INTERNAL"


@dataclass
class InjectError(Exception):
    code: str
    message: str
    context: Optional[Dict[str, Any]] = None

    def __str__(self) -> str:
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "context": self.context or {},
        }


class ConfigurationError(InjectError):
    pass


class InjectionPointNotFound(InjectError):
    pass


class AmbiguousInjectionPoint(InjectError):
    pass


class SourceMapError(InjectError):
    pass


class SourceReadError(InjectError):
    pass


class AssetMissingError(InjectError):
    pass


def config_error(
    message: str, context: Optional[Dict[str, Any]] = None
) -> ConfigurationError:
    return ConfigurationError(code=E_CONFIG, message=message, context=context)


def internal_error(
    message: str, context: Optional[Dict[str, Any]] = None
) -> InjectError:
    return InjectError(code=E_INTERNAL, message=message, context=context)


__all__ = [
    "InjectError",
    "ConfigurationError",
    "InjectionPointNotFound",
    "AmbiguousInjectionPoint",
    "SourceMapError",
    "SourceReadError",
    "AssetMissingError",
    "config_error",
    "internal_error",
    "E_CONFIG",
    "E_INJECTION_POINT_NOT_FOUND",
    "E_INJECTION_POINT_AMBIGUOUS",
    "E_SOURCEMAP",
    "E_SOURCE_READ",
    "E_ASSET_MISSING",
    "E_INTERNAL",
]
