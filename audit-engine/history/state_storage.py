import asyncio
import json
import sqlite3
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional

from history.storage import StoreError


class CurrentStateStore(ABC):
    """
    Latest compacted audit record per resource. Last write wins.
    """

    @abstractmethod
    def _write(self, resource_id: str, payload: str) -> None:
        pass

    @abstractmethod
    def _read(self, resource_id: str) -> Optional[str]:
        pass

    async def _run(self, func, *args):
        try:
            return await asyncio.to_thread(func, *args)
        except Exception as e:
            raise StoreError(f"{func.__name__} failed: {e}") from e

    async def save(self, resource_id: str, record: Dict[str, Any]) -> None:
        await self._run(self._write, resource_id, json.dumps(record, default=str))

    async def load(self, resource_id: str) -> Optional[Dict[str, Any]]:
        payload = await self._run(self._read, resource_id)
        return json.loads(payload) if payload else None


class SQLiteStateStore(CurrentStateStore):

    def __init__(self, db_path):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self.db_path)
        try:
            conn.execute("""
            CREATE TABLE IF NOT EXISTS current_state (
                resource_id TEXT PRIMARY KEY,
                record TEXT NOT NULL
            );
            """)
            conn.commit()
        finally:
            conn.close()

    def _write(self, resource_id: str, payload: str) -> None:
        conn = sqlite3.connect(self.db_path)
        try:
            conn.execute("""
            INSERT INTO current_state (resource_id, record) VALUES (?, ?)
            ON CONFLICT(resource_id) DO UPDATE SET record=excluded.record;
            """, (resource_id, payload))
            conn.commit()
        finally:
            conn.close()

    def _read(self, resource_id: str) -> Optional[str]:
        conn = sqlite3.connect(self.db_path)
        try:
            row = conn.execute(
                "SELECT record FROM current_state WHERE resource_id = ?", (resource_id,)
            ).fetchone()
            return row[0] if row else None
        finally:
            conn.close()


class MySQLStateStore(CurrentStateStore):

    def __init__(self, connection, lock=None):
        self._pool = connection
        self._lock = lock or threading.Lock()

    def initialize(self) -> None:
        with self._lock, self._pool.cursor() as cursor:
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS current_state (
                    resource_id VARCHAR(255) PRIMARY KEY,
                    record LONGTEXT NOT NULL
                )
            """)
            self._pool.commit()

    def _write(self, resource_id: str, payload: str) -> None:
        sql = """
            INSERT INTO current_state (resource_id, record) VALUES (%s, %s)
            ON DUPLICATE KEY UPDATE record = VALUES(record)
        """
        with self._lock, self._pool.cursor() as cursor:
            try:
                cursor.execute(sql, (resource_id, payload))
                self._pool.commit()
            except Exception:
                self._pool.rollback()
                raise

    def _read(self, resource_id: str) -> Optional[str]:
        with self._lock, self._pool.cursor() as cursor:
            cursor.execute("SELECT record FROM current_state WHERE resource_id = %s", (resource_id,))
            row = cursor.fetchone()
            return row[0] if row else None
