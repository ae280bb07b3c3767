"""Bookkeeping shared across InjectManifest invocations.

``AssetRegistry`` remembers every destination asset written by *any*
injection engine in this process, so that no engine ever precaches a file
produced by another (or by itself on an earlier build). ``InvocationGuard``
tracks whether one engine instance has already run its injection stage.
"""

from __future__ import annotations

import threading
from typing import Iterator, Optional

__all__ = [
    "AssetRegistry",
    "InvocationGuard",
    "get_asset_registry",
]


class AssetRegistry:
    """Append-only, thread-safe set of generated asset names."""

    def __init__(self) -> None:
        self._names: set[str] = set()
        self._lock = threading.Lock()

    def register(self, name: str) -> None:
        with self._lock:
            self._names.add(name)

    def is_generated(self, name: str) -> bool:
        with self._lock:
            return name in self._names

    def snapshot(self) -> frozenset[str]:
        with self._lock:
            return frozenset(self._names)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.is_generated(name)

    def __len__(self) -> int:
        with self._lock:
            return len(self._names)

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self.snapshot()))


class InvocationGuard:
    def __init__(self) -> None:
        self._invoked = False
        self._lock = threading.Lock()

    @property
    def invoked(self) -> bool:
        return self._invoked

    def note_invocation(self) -> bool:
        """Return False on the first call and True on every later call."""
        with self._lock:
            if self._invoked:
                return True
            self._invoked = True
            return False


_PROCESS_REGISTRY: Optional[AssetRegistry] = None
_PROCESS_REGISTRY_LOCK = threading.Lock()


def get_asset_registry() -> AssetRegistry:
    global _PROCESS_REGISTRY
    with _PROCESS_REGISTRY_LOCK:
        if _PROCESS_REGISTRY is None:
            _PROCESS_REGISTRY = AssetRegistry()
        return _PROCESS_REGISTRY
