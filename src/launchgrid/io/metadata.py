"""Display-name and icon resolution for application bundles."""

from __future__ import annotations

import os
import plistlib
from abc import ABC, abstractmethod
from typing import Mapping, Optional

from ..domain.models import AppRecord
from ..utils.logging import get_logger
from ..utils.pathutils import display_stem

LOGGER = get_logger()

_NAME_KEYS = ("CFBundleDisplayName", "CFBundleName")
_ICON_EXTENSIONS = ("", ".icns", ".png")


class MetadataResolver(ABC):
    """Resolve ``(display name, icon path)`` for a bundle path."""

    @abstractmethod
    def resolve(self, path: str) -> tuple[str, Optional[str]]:
        """Return the display name and icon for *path*; must not raise."""

    def record_for(
        self,
        path: str,
        source_dir: Optional[str] = None,
        custom_titles: Optional[Mapping[str, str]] = None,
    ) -> AppRecord:
        name, icon = self.resolve(path)
        override = (custom_titles or {}).get(path)
        if override and override.strip():
            name = override.strip()
        return AppRecord(path=path, name=name, icon=icon, source_dir=source_dir)


class BundleMetadataResolver(MetadataResolver):
    """Read names and icons from ``Contents/Info.plist``.

    Unreadable or missing property lists fall back to the bundle's file name.
    """

    def resolve(self, path: str) -> tuple[str, Optional[str]]:
        info = self._read_info(path)
        name = None
        for key in _NAME_KEYS:
            value = info.get(key)
            if isinstance(value, str) and value.strip():
                name = value.strip()
                break
        return name or display_stem(path), self._icon_path(path, info)

    @staticmethod
    def _read_info(path: str) -> dict:
        plist_path = os.path.join(path, "Contents", "Info.plist")
        try:
            with open(plist_path, "rb") as handle:
                payload = plistlib.load(handle)
        except FileNotFoundError:
            return {}
        except (OSError, plistlib.InvalidFileException, ValueError) as exc:
            LOGGER.debug("Unreadable Info.plist in %s: %s", path, exc)
            return {}
        return payload if isinstance(payload, dict) else {}

    @staticmethod
    def _icon_path(path: str, info: dict) -> Optional[str]:
        icon_name = info.get("CFBundleIconFile")
        if not isinstance(icon_name, str) or not icon_name:
            return None
        resources = os.path.join(path, "Contents", "Resources")
        for ext in _ICON_EXTENSIONS:
            candidate = os.path.join(resources, icon_name + ext)
            if os.path.isfile(candidate):
                return candidate
        return None


__all__ = ["BundleMetadataResolver", "MetadataResolver"]
