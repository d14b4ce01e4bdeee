import threading
from typing import Any, Dict, List, Optional

from history.storage import COLUMNS, HistoryStore

_SELECT = f"SELECT {', '.join(COLUMNS)} FROM change_log"

SCHEMA_SQL = """
    CREATE TABLE IF NOT EXISTS change_log (
        entry_id VARCHAR(64) PRIMARY KEY,
        resource_id VARCHAR(255) NOT NULL,
        url VARCHAR(2048) NULL,
        timestamp CHAR(32) NOT NULL,
        change_type VARCHAR(32) NOT NULL,
        summary TEXT NULL,
        full_hash CHAR(64) NOT NULL,
        content_hash CHAR(64) NOT NULL,
        score DOUBLE NULL,
        field_changes LONGTEXT NULL,
        snapshot LONGTEXT NULL,
        html_source LONGTEXT NULL,
        record LONGTEXT NULL,
        INDEX idx_change_log_resource (resource_id),
        INDEX idx_change_log_timestamp (timestamp)
    )
"""


class MySQLHistoryStore(HistoryStore):
    """
    MySQL implementation of HistoryStore.
    Wraps a single pymysql connection; a lock serializes worker-thread access.
    Pass the same lock to every store sharing the connection.
    """

    def __init__(self, connection, lock=None):
        self._pool = connection
        self._lock = lock or threading.Lock()

    def initialize(self) -> None:
        with self._lock, self._pool.cursor() as cursor:
            cursor.execute(SCHEMA_SQL)
            self._pool.commit()

    def _rows(self, cursor) -> List[Dict[str, Any]]:
        return [dict(zip(COLUMNS, row)) for row in cursor.fetchall()]

    def _insert(self, row: Dict[str, Any]) -> None:
        sql = f"""
            INSERT INTO change_log ({', '.join(COLUMNS)})
            VALUES ({', '.join('%s' for _ in COLUMNS)})
        """
        with self._lock, self._pool.cursor() as cursor:
            try:
                cursor.execute(sql, tuple(row[c] for c in COLUMNS))
                self._pool.commit()
            except Exception:
                self._pool.rollback()
                raise

    def _find_by_resource(self, resource_id: str) -> List[Dict[str, Any]]:
        with self._lock, self._pool.cursor() as cursor:
            cursor.execute(f"{_SELECT} WHERE resource_id = %s", (resource_id,))
            return self._rows(cursor)

    def _find_by_id(self, entry_id: str) -> Optional[Dict[str, Any]]:
        with self._lock, self._pool.cursor() as cursor:
            cursor.execute(f"{_SELECT} WHERE entry_id = %s", (entry_id,))
            row = cursor.fetchone()
            return dict(zip(COLUMNS, row)) if row else None

    def _resources_older_than(self, cutoff: str) -> List[str]:
        sql = """
            SELECT DISTINCT resource_id FROM change_log
            WHERE timestamp < %s
            ORDER BY resource_id
        """
        with self._lock, self._pool.cursor() as cursor:
            cursor.execute(sql, (cutoff,))
            return [row[0] for row in cursor.fetchall()]

    def _delete_ids(self, entry_ids: List[str]) -> int:
        if not entry_ids:
            return 0
        sql = f"DELETE FROM change_log WHERE entry_id IN ({', '.join('%s' for _ in entry_ids)})"
        with self._lock, self._pool.cursor() as cursor:
            try:
                affected = cursor.execute(sql, tuple(entry_ids))
                self._pool.commit()
                return affected
            except Exception:
                self._pool.rollback()
                raise

    def _count_by_resource(self, resource_id: str) -> int:
        with self._lock, self._pool.cursor() as cursor:
            cursor.execute("SELECT COUNT(*) FROM change_log WHERE resource_id = %s", (resource_id,))
            return cursor.fetchone()[0]

    def _delete_by_resource(self, resource_id: str) -> int:
        with self._lock, self._pool.cursor() as cursor:
            try:
                affected = cursor.execute("DELETE FROM change_log WHERE resource_id = %s", (resource_id,))
                self._pool.commit()
                return affected
            except Exception:
                self._pool.rollback()
                raise
