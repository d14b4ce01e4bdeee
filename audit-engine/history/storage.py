import asyncio
import json
import uuid
from abc import ABC, abstractmethod
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from auditor.config import CLEANUP_BATCH_SIZE
from auditor.logger import get_logger
from detection.models import HashPair, Snapshot
from diffing.models import FieldChange
from history.models import ChangeLogEntry, CleanupResult, EntryType, parse_timestamp, utcnow

logger = get_logger("history")

# Column order used by every backend's SELECT statements
COLUMNS = (
    "entry_id",
    "resource_id",
    "url",
    "timestamp",
    "change_type",
    "summary",
    "full_hash",
    "content_hash",
    "score",
    "field_changes",
    "snapshot",
    "html_source",
    "record",
)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


class StoreError(RuntimeError):
    """Read/write failure in a history or state backend."""


def format_timestamp(dt: datetime) -> str:
    """Fixed-width UTC ISO string, so text comparison matches time order."""
    return dt.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f+00:00")


def entry_to_row(entry: ChangeLogEntry) -> Dict[str, Any]:
    return {
        "entry_id": entry.entry_id,
        "resource_id": entry.resource_id,
        "url": entry.url,
        "timestamp": format_timestamp(entry.timestamp),
        "change_type": entry.change_type.value,
        "summary": entry.summary,
        "full_hash": entry.hashes.full_hash,
        "content_hash": entry.hashes.content_hash,
        "score": entry.score,
        "field_changes": json.dumps([c.to_dict() for c in entry.field_changes]),
        "snapshot": json.dumps(entry.snapshot.to_dict()) if entry.snapshot else None,
        "html_source": entry.html_source,
        "record": json.dumps(entry.record, default=str) if entry.record is not None else None,
    }


def row_to_entry(row: Dict[str, Any]) -> ChangeLogEntry:
    field_changes = json.loads(row["field_changes"]) if row.get("field_changes") else []
    return ChangeLogEntry(
        entry_id=row["entry_id"],
        resource_id=row["resource_id"],
        url=row.get("url"),
        timestamp=parse_timestamp(row["timestamp"]),
        change_type=EntryType(row["change_type"]),
        summary=row.get("summary") or "",
        hashes=HashPair(full_hash=row["full_hash"], content_hash=row["content_hash"]),
        score=row.get("score"),
        field_changes=[FieldChange.from_dict(c) for c in field_changes],
        snapshot=Snapshot.from_dict(json.loads(row["snapshot"])) if row.get("snapshot") else None,
        html_source=row.get("html_source"),
        record=json.loads(row["record"]) if row.get("record") else None,
    )


class HistoryStore(ABC):
    """
    Append-only change log keyed by resource id.

    Backends only provide equality lookups (by resource, by id) plus an
    "older than" scan for retention; ordering is done here, newest first.
    Backend calls are blocking and run in a worker thread so the public
    API never blocks the event loop.
    """

    batch_size = CLEANUP_BATCH_SIZE

    # --------------------------------------------------
    # Backend primitives (blocking)
    # --------------------------------------------------
    @abstractmethod
    def _insert(self, row: Dict[str, Any]) -> None:
        pass

    @abstractmethod
    def _find_by_resource(self, resource_id: str) -> List[Dict[str, Any]]:
        pass

    @abstractmethod
    def _find_by_id(self, entry_id: str) -> Optional[Dict[str, Any]]:
        pass

    @abstractmethod
    def _resources_older_than(self, cutoff: str) -> List[str]:
        """Distinct resource ids owning at least one entry older than cutoff."""
        pass

    @abstractmethod
    def _delete_ids(self, entry_ids: List[str]) -> int:
        pass

    @abstractmethod
    def _count_by_resource(self, resource_id: str) -> int:
        pass

    @abstractmethod
    def _delete_by_resource(self, resource_id: str) -> int:
        pass

    # --------------------------------------------------
    # Public API
    # --------------------------------------------------
    async def _run(self, func, *args):
        try:
            return await asyncio.to_thread(func, *args)
        except StoreError:
            raise
        except Exception as e:
            raise StoreError(f"{func.__name__} failed: {e}") from e

    async def append(self, entry: ChangeLogEntry) -> str:
        """Persist an entry. Stamps the current time when it has none. Returns its id."""
        entry = entry.stamped()
        if not entry.entry_id:
            entry = replace(entry, entry_id=uuid.uuid4().hex)

        await self._run(self._insert, entry_to_row(entry))
        logger.info(
            f"[HISTORY] Appended {entry.change_type.value} for {entry.resource_id} "
            f"(id={entry.entry_id})"
        )
        return entry.entry_id

    async def get(self, entry_id: str) -> Optional[ChangeLogEntry]:
        row = await self._run(self._find_by_id, entry_id)
        return row_to_entry(row) if row else None

    async def history(self, resource_id: str, limit: Optional[int] = None) -> List[ChangeLogEntry]:
        """Entries for a resource, newest first. A limit below 1 means no limit."""
        rows = await self._run(self._find_by_resource, resource_id)
        entries = [row_to_entry(row) for row in rows]
        # Appends may land out of timestamp order
        entries.sort(key=lambda e: e.timestamp or _EPOCH, reverse=True)
        if limit is not None and limit > 0:
            entries = entries[:limit]
        return entries

    async def latest(self, resource_id: str) -> Optional[ChangeLogEntry]:
        entries = await self.history(resource_id, limit=1)
        return entries[0] if entries else None

    async def count_for(self, resource_id: str) -> int:
        return await self._run(self._count_by_resource, resource_id)

    async def delete_all_for(self, resource_id: str) -> int:
        deleted = await self._run(self._delete_by_resource, resource_id)
        logger.info(f"[HISTORY] Deleted {deleted} entr(y/ies) for {resource_id}")
        return deleted

    async def cleanup(self, max_age_days: int, keep_per_resource: int) -> CleanupResult:
        """
        Retention pass.
        Per resource the keep_per_resource newest entries always survive; of the
        rest, anything at or after the cutoff survives and older entries go.
        A failing resource is logged and skipped.
        """
        if max_age_days < 0 or keep_per_resource < 0:
            raise ValueError("max_age_days and keep_per_resource must be >= 0")

        cutoff = utcnow() - timedelta(days=max_age_days)
        resource_ids = await self._run(self._resources_older_than, format_timestamp(cutoff))

        logger.info(
            f"[CLEANUP] cutoff={format_timestamp(cutoff)} keep_per_resource={keep_per_resource} "
            f"candidates={len(resource_ids)}"
        )

        deleted = 0
        kept = 0
        failed: List[str] = []

        for resource_id in resource_ids:
            removed_here = 0
            try:
                entries = await self.history(resource_id)
                doomed = [
                    e.entry_id
                    for e in entries[keep_per_resource:]
                    if e.timestamp is not None and e.timestamp < cutoff
                ]

                for start in range(0, len(doomed), self.batch_size):
                    batch = doomed[start:start + self.batch_size]
                    await self._run(self._delete_ids, batch)
                    removed_here += len(batch)

                deleted += removed_here
                kept += len(entries) - removed_here
            except (StoreError, ValueError) as e:
                deleted += removed_here
                failed.append(resource_id)
                logger.error(f"[CLEANUP] Failed for {resource_id}: {e}")

        logger.info(f"[CLEANUP] deleted={deleted} kept={kept} failed={len(failed)}")
        return CleanupResult(deleted=deleted, kept=kept, failed_resources=failed)
