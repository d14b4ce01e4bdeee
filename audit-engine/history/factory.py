import threading

import pymysql

from auditor.config import DB_CONFIG, HISTORY_BACKEND, HISTORY_DB_PATH, STATE_DB_PATH
from auditor.logger import get_logger
from history.mysql_storage import MySQLHistoryStore
from history.sqlite_storage import SQLiteHistoryStore
from history.state_storage import MySQLStateStore, SQLiteStateStore

logger = get_logger("store")


def create_stores(backend: str = HISTORY_BACKEND):
    """Build (history_store, state_store) for the configured backend."""
    if backend == "mysql":
        connection = pymysql.connect(**DB_CONFIG)
        lock = threading.Lock()
        history_store = MySQLHistoryStore(connection, lock)
        state_store = MySQLStateStore(connection, lock)
        history_store.initialize()
        state_store.initialize()
        logger.info(f"[STORE] Using MySQL backend at {DB_CONFIG['host']}:{DB_CONFIG['port']}")
        return history_store, state_store

    if backend != "sqlite":
        raise ValueError(f"Unknown history backend: {backend}")

    logger.info(f"[STORE] Using SQLite backend at {HISTORY_DB_PATH}")
    return SQLiteHistoryStore(HISTORY_DB_PATH), SQLiteStateStore(STATE_DB_PATH)
