"""Path normalisation and bundle-path helpers."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable, Optional

from ..config import APP_BUNDLE_SUFFIX, PACKAGE_SUFFIXES


def standardize(path: str | os.PathLike[str]) -> str:
    """Return an absolute, ``~``-expanded path with ``.``/``..`` removed.

    Symlinks are not resolved; use :func:`resolve` for that.
    """

    return os.path.normpath(os.path.abspath(os.path.expanduser(os.fspath(path))))


def resolve(path: str | os.PathLike[str]) -> str:
    """Return the canonical path with symlinks resolved."""

    return os.path.realpath(os.path.expanduser(os.fspath(path)))


def is_under(path: str, root: str) -> bool:
    """Return ``True`` if *path* equals *root* or lies below it."""

    if path == root:
        return True
    prefix = root if root.endswith(os.sep) else root + os.sep
    return path.startswith(prefix)


def first_matching_root(path: str, roots: Iterable[str]) -> Optional[str]:
    for root in roots:
        if is_under(path, root):
            return root
    return None


def is_bundle_name(name: str) -> bool:
    return name.lower().endswith(APP_BUNDLE_SUFFIX)


def is_package_name(name: str) -> bool:
    return os.path.splitext(name)[1].lower() in PACKAGE_SUFFIXES


def canonical_bundle_path(path: str) -> Optional[str]:
    """Return *path* truncated after its first application-bundle segment."""

    parts = Path(path).parts
    for index, part in enumerate(parts):
        if is_bundle_name(part):
            return str(Path(*parts[: index + 1]))
    return None


def is_nested_bundle(path: str) -> bool:
    """Return ``True`` if *path* sits inside another application bundle."""

    bundle_segments = [part for part in Path(path).parts if is_bundle_name(part)]
    return len(bundle_segments) > 1


def is_valid_bundle(path: str) -> bool:
    """Return ``True`` if *path* is an existing, non-nested application bundle."""

    return is_bundle_name(os.path.basename(path)) and os.path.isdir(path) and not is_nested_bundle(path)


def display_stem(path: str) -> str:
    name = os.path.basename(path.rstrip(os.sep))
    stem, ext = os.path.splitext(name)
    return stem if ext.lower() == APP_BUNDLE_SUFFIX and stem else name


__all__ = [
    "canonical_bundle_path",
    "display_stem",
    "first_matching_root",
    "is_bundle_name",
    "is_nested_bundle",
    "is_package_name",
    "is_under",
    "is_valid_bundle",
    "resolve",
    "standardize",
]
