"""Value types shared by the injection engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

__all__ = ["ManifestEntry", "ManifestResult", "SpliceResult", "coerce_entry"]


@dataclass(slots=True, frozen=True)
class ManifestEntry:
    url: str
    revision: Optional[str] = None
    integrity: Optional[str] = None
    # Byte size is only used for filtering and reporting, never serialized.
    size: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"url": self.url, "revision": self.revision}
        if self.integrity is not None:
            d["integrity"] = self.integrity
        return d


@dataclass(slots=True)
class ManifestResult:
    entries: list[ManifestEntry]
    size: int
    warnings: list[str] = field(default_factory=list)


@dataclass(slots=True, frozen=True)
class SpliceResult:
    source: str
    map: Optional[str] = None


def coerce_entry(value: Any) -> ManifestEntry:
    """Accept a ManifestEntry, a bare URL string, or a mapping."""
    if isinstance(value, ManifestEntry):
        return value
    if isinstance(value, str):
        return ManifestEntry(url=value, revision=None)
    if isinstance(value, dict):
        if not isinstance(value.get("url"), str):
            raise ValueError(f"Manifest entry is missing a url: {value!r}")
        return ManifestEntry(
            url=value["url"],
            revision=value.get("revision"),
            integrity=value.get("integrity"),
            size=value.get("size"),
        )
    raise TypeError(f"Unsupported manifest entry: {value!r}")
