"""Coalescing and classification of filesystem change events."""

from __future__ import annotations

import enum
import os
from dataclasses import dataclass
from typing import Iterable, List, Mapping, Optional, Sequence

from ..config import FULL_RESCAN_THRESHOLD
from ..domain.models import AppRecord
from ..io.metadata import MetadataResolver
from ..utils.logging import get_logger
from ..utils.pathutils import canonical_bundle_path, first_matching_root, is_valid_bundle, resolve, standardize

LOGGER = get_logger()


class ChangeFlags(enum.Flag):
    NONE = 0
    CREATED = enum.auto()
    REMOVED = enum.auto()
    RENAMED = enum.auto()
    MODIFIED = enum.auto()
    IS_DIR = enum.auto()


STRUCTURAL = ChangeFlags.CREATED | ChangeFlags.REMOVED | ChangeFlags.RENAMED


@dataclass(frozen=True)
class FileChangeEvent:
    path: str
    flags: ChangeFlags = ChangeFlags.MODIFIED

    @property
    def is_structural_dir_event(self) -> bool:
        return bool(self.flags & ChangeFlags.IS_DIR) and bool(self.flags & STRUCTURAL)


@dataclass(frozen=True)
class ChangeBatch:
    full_scan: bool
    paths: frozenset[str]


class ChangeKind(enum.Enum):
    INSERT = "insert"
    UPDATE = "update"
    REMOVE = "remove"


@dataclass(frozen=True)
class PendingChange:
    kind: ChangeKind
    path: str
    record: Optional[AppRecord] = None


class ChangeAccumulator:
    """Collect events between debounce ticks.

    A structural directory event directly below a watched root forces a full
    scan, bundles included; any other event is reduced to the bundle that
    contains it.
    """

    def __init__(self, threshold: int = FULL_RESCAN_THRESHOLD) -> None:
        self._threshold = threshold
        self._paths: set[str] = set()
        self._force_full = False

    @property
    def pending(self) -> bool:
        return self._force_full or bool(self._paths)

    @property
    def force_full(self) -> bool:
        return self._force_full

    def record(self, events: Iterable[FileChangeEvent], roots: Sequence[str]) -> None:
        normalized_roots = [standardize(root) for root in roots]
        for event in events:
            path = standardize(event.path)
            if event.is_structural_dir_event and (
                os.path.dirname(path) in normalized_roots or path in normalized_roots
            ):
                self._force_full = True
                continue
            bundle = canonical_bundle_path(path)
            if bundle is not None:
                self._paths.add(bundle)

    def request_full_scan(self) -> None:
        self._force_full = True

    def drain(self) -> ChangeBatch:
        """Return and reset the accumulated state."""

        paths = frozenset(self._paths)
        full = self._force_full or len(paths) > self._threshold
        self._paths.clear()
        self._force_full = False
        if full:
            return ChangeBatch(full_scan=True, paths=frozenset())
        return ChangeBatch(full_scan=False, paths=paths)


def classify_changes(
    paths: Iterable[str],
    known_paths: Iterable[str],
    resolver: MetadataResolver,
    roots: Sequence[str] = (),
    custom_titles: Optional[Mapping[str, str]] = None,
) -> List[PendingChange]:
    """Turn changed bundle paths into insert/update/remove decisions.

    Metadata for inserts and updates is resolved here so the caller only
    applies ready records.
    """

    known = set(known_paths)
    changes: List[PendingChange] = []
    for raw in sorted(set(paths)):
        path = resolve(raw)
        if not is_valid_bundle(path):
            if raw in known or path in known:
                changes.append(PendingChange(ChangeKind.REMOVE, raw if raw in known else path))
            continue
        source = first_matching_root(path, roots) or first_matching_root(raw, roots)
        try:
            record = resolver.record_for(path, source, custom_titles)
        except OSError as exc:
            LOGGER.warning("Could not resolve %s: %s", path, exc)
            continue
        kind = ChangeKind.UPDATE if path in known else ChangeKind.INSERT
        changes.append(PendingChange(kind, path, record))
    return changes


__all__ = [
    "ChangeAccumulator",
    "ChangeBatch",
    "ChangeFlags",
    "ChangeKind",
    "FileChangeEvent",
    "PendingChange",
    "classify_changes",
]
