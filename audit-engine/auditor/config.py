import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# Configuration for the change audit engine.
# Storage locations, retention policy and compaction limits.
# No diffing or classification logic here.

# Canonical data directory. Defaults to the `data` folder next to the
# packages in the source root.
DATA_DIR = Path(os.getenv("AUDIT_DATA_DIR", Path(__file__).resolve().parents[1] / "data"))

# History backend: "sqlite" (default) or "mysql"
HISTORY_BACKEND = os.getenv("HISTORY_BACKEND", "sqlite").lower()

HISTORY_DB_PATH = Path(os.getenv("HISTORY_DB_PATH", DATA_DIR / "history.db"))
STATE_DB_PATH = Path(os.getenv("STATE_DB_PATH", DATA_DIR / "state.db"))

DB_CONFIG = {
    "host": os.getenv("MYSQL_HOST", "localhost"),
    "port": int(os.getenv("MYSQL_PORT", 3306)),
    "user": os.getenv("MYSQL_USER", "root"),
    "password": os.getenv("MYSQL_PASSWORD", ""),
    "database": os.getenv("MYSQL_DATABASE", "auditdb"),
    "charset": "utf8mb4",
}

# Retention: entries older than RETENTION_MAX_AGE_DAYS are removed,
# but every resource keeps at least RETENTION_KEEP_PER_RESOURCE entries.
RETENTION_MAX_AGE_DAYS = int(os.getenv("RETENTION_MAX_AGE_DAYS", 30))
RETENTION_KEEP_PER_RESOURCE = int(os.getenv("RETENTION_KEEP_PER_RESOURCE", 2))

# Max ids per DELETE statement during cleanup
CLEANUP_BATCH_SIZE = int(os.getenv("CLEANUP_BATCH_SIZE", 500))

# Size ceiling (bytes) for a compacted current-state record
COMPACT_TARGET_BYTES = int(os.getenv("COMPACT_TARGET_BYTES", 1_000_000))

# Shared secret for the cleanup endpoint. Unset = endpoint is open.
CRON_SECRET = os.getenv("CRON_SECRET")

LOG_FILE = os.getenv("AUDIT_LOG_FILE")
LOG_LEVEL = os.getenv("AUDIT_LOG_LEVEL", "INFO").upper()
