"""
Helpers to derive object store keys from local asset paths.

Why:
    The local tree and the bucket are joined by key only. Publishing and
    retracting must compute the exact same key for a path, whatever separator
    convention the watcher reported it with, or remote objects leak.

Conventions:
    - Key = path relative to the public asset root segment (default "public").
      `/srv/site/public/images/a.png` -> `images/a.png`
    - Backslashes are treated as separators; the key uses forward slashes.
    - The match is on a whole path segment: `publicity/` is not `public/`.
"""
from __future__ import annotations

import os
from typing import Union

DEFAULT_ROOT_SEGMENT = "public"

PathLike = Union[str, os.PathLike]


class AssetKeyError(ValueError):
    """The path does not live below the public asset root."""


def make_asset_key(path: PathLike, *, root_segment: str = DEFAULT_ROOT_SEGMENT) -> str:
    """Build the bucket-relative key for a local asset path.

    Returns: everything after the first `root_segment` segment, joined by "/".

    Raises:
        AssetKeyError when the path has no such segment or nothing below it.
    """
    raw = os.fspath(path).replace("\\", "/")
    segments = [s for s in raw.split("/") if s and s != "."]
    try:
        idx = segments.index(root_segment)
    except ValueError:
        raise AssetKeyError(f"path is outside the '{root_segment}' root: {raw}") from None
    key = "/".join(segments[idx + 1:]).lstrip("/")
    if not key:
        raise AssetKeyError(f"path names the '{root_segment}' root itself: {raw}")
    return key


__all__ = ["DEFAULT_ROOT_SEGMENT", "AssetKeyError", "make_asset_key"]
