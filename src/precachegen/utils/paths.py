"""Path helpers (posix asset names)."""

from __future__ import annotations

import posixpath
from pathlib import PurePath

__all__ = ["to_posix", "relative_to_output_path"]


def to_posix(path: str | PurePath) -> str:
    return str(path).replace("\\", "/")


def relative_to_output_path(output_path: str | PurePath, name: str) -> str:
    """Asset name for ``name``, relative to the build output directory.

    Relative names are already asset names and are returned normalised.
    """
    posix_name = to_posix(name)
    if not posixpath.isabs(posix_name) and not PurePath(name).is_absolute():
        return posixpath.normpath(posix_name)
    rel = posixpath.relpath(posix_name, to_posix(output_path))
    return posixpath.normpath(rel)
