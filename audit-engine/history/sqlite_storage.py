"""
SQLite implementation of HistoryStore.
One short-lived connection per operation, so calls are safe from worker threads.
"""

import sqlite3
from pathlib import Path
from typing import Any, Dict, List, Optional

from history.storage import COLUMNS, HistoryStore

_SELECT = f"SELECT {', '.join(COLUMNS)} FROM change_log"


class SQLiteHistoryStore(HistoryStore):

    def __init__(self, db_path):
        self.db_path = Path(db_path)
        self.initialize()

    def get_connection(self):
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def initialize(self):
        """Create the change_log table and its lookup index if missing."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = self.get_connection()
        try:
            conn.execute("""
            CREATE TABLE IF NOT EXISTS change_log (
                entry_id TEXT PRIMARY KEY,
                resource_id TEXT NOT NULL,
                url TEXT,
                timestamp TEXT NOT NULL,      -- fixed-width UTC ISO-8601
                change_type TEXT NOT NULL,    -- FIRST_SCAN / CONTENT_CHANGED / TECH_CHANGE_ONLY
                summary TEXT,
                full_hash TEXT NOT NULL,
                content_hash TEXT NOT NULL,
                score REAL,
                field_changes TEXT,           -- JSON list
                snapshot TEXT,                -- JSON object
                html_source TEXT,
                record TEXT                   -- JSON, full uncompacted audit record
            );
            """)
            conn.execute("CREATE INDEX IF NOT EXISTS idx_change_log_resource ON change_log(resource_id);")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_change_log_timestamp ON change_log(timestamp);")
            conn.commit()
        finally:
            conn.close()

    def _insert(self, row: Dict[str, Any]) -> None:
        placeholders = ", ".join("?" for _ in COLUMNS)
        conn = self.get_connection()
        try:
            conn.execute(
                f"INSERT INTO change_log ({', '.join(COLUMNS)}) VALUES ({placeholders})",
                tuple(row[c] for c in COLUMNS),
            )
            conn.commit()
        finally:
            conn.close()

    def _find_by_resource(self, resource_id: str) -> List[Dict[str, Any]]:
        conn = self.get_connection()
        try:
            rows = conn.execute(f"{_SELECT} WHERE resource_id = ?", (resource_id,)).fetchall()
            return [dict(r) for r in rows]
        finally:
            conn.close()

    def _find_by_id(self, entry_id: str) -> Optional[Dict[str, Any]]:
        conn = self.get_connection()
        try:
            row = conn.execute(f"{_SELECT} WHERE entry_id = ?", (entry_id,)).fetchone()
            return dict(row) if row else None
        finally:
            conn.close()

    def _resources_older_than(self, cutoff: str) -> List[str]:
        conn = self.get_connection()
        try:
            rows = conn.execute(
                "SELECT DISTINCT resource_id FROM change_log WHERE timestamp < ? ORDER BY resource_id",
                (cutoff,),
            ).fetchall()
            return [r[0] for r in rows]
        finally:
            conn.close()

    def _delete_ids(self, entry_ids: List[str]) -> int:
        if not entry_ids:
            return 0
        placeholders = ", ".join("?" for _ in entry_ids)
        conn = self.get_connection()
        try:
            cur = conn.execute(f"DELETE FROM change_log WHERE entry_id IN ({placeholders})", tuple(entry_ids))
            conn.commit()
            return cur.rowcount
        finally:
            conn.close()

    def _count_by_resource(self, resource_id: str) -> int:
        conn = self.get_connection()
        try:
            return conn.execute(
                "SELECT COUNT(*) FROM change_log WHERE resource_id = ?", (resource_id,)
            ).fetchone()[0]
        finally:
            conn.close()

    def _delete_by_resource(self, resource_id: str) -> int:
        conn = self.get_connection()
        try:
            cur = conn.execute("DELETE FROM change_log WHERE resource_id = ?", (resource_id,))
            conn.commit()
            return cur.rowcount
        finally:
            conn.close()
