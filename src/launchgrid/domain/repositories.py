"""Storage interfaces for the persisted layout."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class PageEntryRow:
    """One grid slot in the current page/slot format."""

    slot_id: str
    page_index: int
    position: int
    kind: str
    folder_id: Optional[str] = None
    folder_name: Optional[str] = None
    member_paths: List[str] = field(default_factory=list)
    app_path: Optional[str] = None
    app_display_name: Optional[str] = None
    removable_source: Optional[str] = None
    created_at: Optional[str] = None


@dataclass
class LegacyItemRow:
    """One entry of the older flat-order format."""

    id: str
    order_index: int
    kind: str
    folder_name: Optional[str] = None
    app_paths: List[str] = field(default_factory=list)
    app_path: Optional[str] = None
    created_at: Optional[str] = None


class ILayoutRepository(ABC):
    @abstractmethod
    def fetch_page_entries(self) -> List[PageEntryRow]:
        """Return current-format rows ordered by page and position."""
        pass

    @abstractmethod
    def fetch_legacy_items(self) -> List[LegacyItemRow]:
        """Return legacy rows ordered by their order index."""
        pass

    @abstractmethod
    def replace_page_entries(self, rows: List[PageEntryRow]) -> None:
        """Atomically replace every stored row with *rows* and drop legacy rows."""
        pass

    @abstractmethod
    def insert_legacy_items(self, rows: List[LegacyItemRow]) -> None:
        pass

    @abstractmethod
    def clear(self) -> None:
        pass
