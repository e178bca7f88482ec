"""Application discovery and order-preserving catalog merge."""

from __future__ import annotations

import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Generator, Iterable, List, Mapping, Optional, Sequence

from ..config import SYSTEM_APPLICATION_DIRS
from ..domain.models import AppRecord
from ..utils.logging import get_logger
from ..utils.pathutils import is_bundle_name, is_nested_bundle, is_package_name, resolve, standardize
from .metadata import MetadataResolver

LOGGER = get_logger()


@dataclass
class ScanMerge:
    """Outcome of merging a fresh scan into the known catalog."""

    apps: list[AppRecord] = field(default_factory=list)
    added: list[AppRecord] = field(default_factory=list)
    missing: list[AppRecord] = field(default_factory=list)


def normalize_path(raw: str) -> Optional[str]:
    cleaned = raw.strip() if isinstance(raw, str) else ""
    if not cleaned:
        return None
    return standardize(cleaned)


def search_paths(
    custom_dirs: Iterable[str] = (),
    system_dirs: Iterable[str] = SYSTEM_APPLICATION_DIRS,
) -> list[str]:
    """System directories followed by custom ones, normalised and de-duplicated.

    Directories that do not exist are dropped.
    """

    seen: set[str] = set()
    ordered: list[str] = []
    for raw in list(system_dirs) + list(custom_dirs):
        path = normalize_path(raw)
        if path is None or path in seen:
            continue
        seen.add(path)
        if os.path.isdir(path):
            ordered.append(path)
    return ordered


def sort_by_name(apps: Iterable[AppRecord]) -> list[AppRecord]:
    return sorted(apps, key=lambda app: (app.name.casefold(), app.path))


class ApplicationScanner:
    """Walk search directories for application bundles."""

    def __init__(
        self,
        resolver: MetadataResolver,
        max_workers: int = 4,
        custom_titles: Optional[Mapping[str, str]] = None,
    ) -> None:
        self._resolver = resolver
        self._max_workers = max_workers
        self._custom_titles = dict(custom_titles or {})

    def scan(self, roots: Sequence[str], parallel: bool = True) -> list[AppRecord]:
        """Return every bundle under *roots*, unique by path, sorted by name."""

        if parallel and len(roots) > 1:
            with ThreadPoolExecutor(max_workers=self._max_workers) as executor:
                batches = list(executor.map(self._scan_root, roots))
        else:
            batches = [self._scan_root(root) for root in roots]

        by_path: dict[str, AppRecord] = {}
        # Earlier roots win so results do not depend on thread timing.
        for batch in batches:
            for record in batch:
                by_path.setdefault(record.path, record)
        return sort_by_name(by_path.values())

    def record_for(self, path: str, source_dir: Optional[str] = None) -> AppRecord:
        return self._resolver.record_for(path, source_dir, self._custom_titles)

    def _scan_root(self, root: str) -> list[AppRecord]:
        records = [self.record_for(path, root) for path in self.discover(root)]
        LOGGER.debug("Found %d applications under %s", len(records), root)
        return records

    def discover(self, root: str) -> Generator[str, None, None]:
        """Yield resolved bundle paths below *root*.

        Hidden entries and package contents are skipped; unreadable
        directories are logged and skipped.
        """

        try:
            entries = list(os.scandir(root))
        except OSError as exc:
            LOGGER.warning("Cannot read %s: %s", root, exc)
            return
        for entry in entries:
            if entry.name.startswith("."):
                continue
            try:
                if is_bundle_name(entry.name):
                    if not entry.is_dir(follow_symlinks=True):
                        continue
                    resolved = resolve(entry.path)
                    if not is_nested_bundle(resolved):
                        yield resolved
                elif is_package_name(entry.name):
                    continue
                elif entry.is_dir(follow_symlinks=False):
                    yield from self.discover(entry.path)
            except OSError as exc:
                LOGGER.warning("Skipping %s: %s", entry.path, exc)


def merge_order_preserving(
    prior: Sequence[AppRecord],
    scanned: Sequence[AppRecord],
) -> ScanMerge:
    """Refresh *prior* in place from *scanned* and append new records by name."""

    fresh = {record.path: record for record in scanned}
    apps: List[AppRecord] = []
    missing: List[AppRecord] = []
    known: set[str] = set()
    for record in prior:
        if record.path in known:
            continue
        known.add(record.path)
        current = fresh.get(record.path)
        if current is None:
            missing.append(record)
        else:
            apps.append(current)
    added = sort_by_name(record for path, record in fresh.items() if path not in known)
    apps.extend(added)
    return ScanMerge(apps=apps, added=added, missing=missing)


__all__ = [
    "ApplicationScanner",
    "ScanMerge",
    "merge_order_preserving",
    "normalize_path",
    "search_paths",
    "sort_by_name",
]
