import json
import sqlite3
from typing import List

from ...domain.repositories import ILayoutRepository, LegacyItemRow, PageEntryRow
from ...errors import DatabaseError
from ...utils.logging import get_logger
from ..db.pool import ConnectionPool

LOGGER = get_logger()


def _decode_paths(raw) -> List[str]:
    if not raw:
        return []
    try:
        value = json.loads(raw)
    except (TypeError, ValueError):
        LOGGER.warning("Ignoring malformed path list in layout row: %r", raw)
        return []
    if not isinstance(value, list):
        return []
    return [entry for entry in value if isinstance(entry, str)]


class SQLiteLayoutRepository(ILayoutRepository):
    def __init__(self, pool: ConnectionPool):
        self._pool = pool
        self._init_tables()

    def _init_tables(self):
        with self._pool.connection() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS page_entries (
                    slot_id TEXT PRIMARY KEY,
                    page_index INTEGER NOT NULL,
                    position INTEGER NOT NULL,
                    kind TEXT NOT NULL,
                    folder_id TEXT,
                    folder_name TEXT,
                    member_paths TEXT,
                    app_path TEXT,
                    app_display_name TEXT,
                    removable_source TEXT,
                    created_at TEXT
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS top_items (
                    id TEXT PRIMARY KEY,
                    order_index INTEGER NOT NULL,
                    kind TEXT NOT NULL,
                    folder_name TEXT,
                    app_paths TEXT,
                    app_path TEXT,
                    created_at TEXT
                )
            """)

    def fetch_page_entries(self) -> List[PageEntryRow]:
        try:
            with self._pool.connection() as conn:
                rows = conn.execute(
                    "SELECT * FROM page_entries ORDER BY page_index, position"
                ).fetchall()
        except sqlite3.Error as exc:
            raise DatabaseError(f"Failed to read page entries: {exc}") from exc
        return [self._map_page_entry(row) for row in rows]

    def fetch_legacy_items(self) -> List[LegacyItemRow]:
        try:
            with self._pool.connection() as conn:
                rows = conn.execute("SELECT * FROM top_items ORDER BY order_index").fetchall()
        except sqlite3.Error as exc:
            raise DatabaseError(f"Failed to read legacy items: {exc}") from exc
        return [self._map_legacy_item(row) for row in rows]

    def replace_page_entries(self, rows: List[PageEntryRow]) -> None:
        try:
            with self._pool.connection() as conn:
                conn.execute("DELETE FROM page_entries")
                conn.executemany("""
                    INSERT INTO page_entries
                    (slot_id, page_index, position, kind, folder_id, folder_name,
                     member_paths, app_path, app_display_name, removable_source, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """, [
                    (
                        row.slot_id,
                        row.page_index,
                        row.position,
                        row.kind,
                        row.folder_id,
                        row.folder_name,
                        json.dumps(row.member_paths) if row.member_paths else None,
                        row.app_path,
                        row.app_display_name,
                        row.removable_source,
                        row.created_at,
                    )
                    for row in rows
                ])
                conn.execute("DELETE FROM top_items")
        except sqlite3.Error as exc:
            raise DatabaseError(f"Failed to save layout: {exc}") from exc

    def insert_legacy_items(self, rows: List[LegacyItemRow]) -> None:
        try:
            with self._pool.connection() as conn:
                conn.executemany("""
                    INSERT OR REPLACE INTO top_items
                    (id, order_index, kind, folder_name, app_paths, app_path, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                """, [
                    (
                        row.id,
                        row.order_index,
                        row.kind,
                        row.folder_name,
                        json.dumps(row.app_paths) if row.app_paths else None,
                        row.app_path,
                        row.created_at,
                    )
                    for row in rows
                ])
        except sqlite3.Error as exc:
            raise DatabaseError(f"Failed to write legacy items: {exc}") from exc

    def clear(self) -> None:
        try:
            with self._pool.connection() as conn:
                conn.execute("DELETE FROM page_entries")
                conn.execute("DELETE FROM top_items")
        except sqlite3.Error as exc:
            raise DatabaseError(f"Failed to clear layout: {exc}") from exc

    def _map_page_entry(self, row) -> PageEntryRow:
        return PageEntryRow(
            slot_id=row["slot_id"],
            page_index=row["page_index"],
            position=row["position"],
            kind=row["kind"],
            folder_id=row["folder_id"],
            folder_name=row["folder_name"],
            member_paths=_decode_paths(row["member_paths"]),
            app_path=row["app_path"],
            app_display_name=row["app_display_name"],
            removable_source=row["removable_source"],
            created_at=row["created_at"],
        )

    def _map_legacy_item(self, row) -> LegacyItemRow:
        return LegacyItemRow(
            id=row["id"],
            order_index=row["order_index"],
            kind=row["kind"],
            folder_name=row["folder_name"],
            app_paths=_decode_paths(row["app_paths"]),
            app_path=row["app_path"],
            created_at=row["created_at"],
        )
