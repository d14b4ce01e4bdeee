"""
Scan lifecycle: classify -> diff -> compact -> persist -> log.

UNSCANNED -> BASELINE (first scan, always logged as FIRST_SCAN)
          -> NO_CHANGE | TECH_CHANGE_ONLY | CONTENT_CHANGED | SCAN_FAILED

Only TECH_CHANGE_ONLY / CONTENT_CHANGED (and the bootstrap entry) reach the
history log. NO_CHANGE and SCAN_FAILED only rewrite the current state.
"""

import asyncio
import copy
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from auditor.config import COMPACT_TARGET_BYTES
from auditor.logger import get_logger
from compaction.compactor import compact
from detection.classifier import classify
from detection.models import ChangeStatus, HashPair, ScanResult, Snapshot
from diffing.field_diff import diff_fields, summarize_changes
from diffing.models import FieldChange
from diffing.patch import diff_raw_html
from history.models import ChangeLogEntry, EntryType, utcnow
from history.state_storage import CurrentStateStore
from history.storage import HistoryStore

logger = get_logger("pipeline")

LOGGED_STATUSES = (ChangeStatus.CONTENT_CHANGED, ChangeStatus.TECH_CHANGE_ONLY)

FIRST_SCAN_SUMMARY = "Initial history snapshot"
CHANGE_SUMMARY = "Changes detected"


@dataclass(frozen=True)
class ScanOutcome:
    resource_id: str
    status: ChangeStatus
    record: Dict[str, Any]
    field_changes: List[FieldChange] = field(default_factory=list)
    diff_patch: Optional[str] = None
    entry_id: Optional[str] = None


def fallback_summary(status: ChangeStatus) -> str:
    return f"Scan completed. Status: {status.value}"


class ScanPipeline:
    """
    Runs one scan of one resource through the engine.
    Scans of the same resource are serialized; different resources run freely.
    """

    def __init__(
        self,
        history_store: HistoryStore,
        state_store: CurrentStateStore,
        target_bytes: int = COMPACT_TARGET_BYTES,
    ):
        self.history = history_store
        self.state = state_store
        self.target_bytes = target_bytes
        # resource id -> [lock, number of scans holding or waiting for it]
        self._locks: Dict[str, list] = {}

    def _acquire_slot(self, resource_id: str) -> asyncio.Lock:
        slot = self._locks.setdefault(resource_id, [asyncio.Lock(), 0])
        slot[1] += 1
        return slot[0]

    def _release_slot(self, resource_id: str) -> None:
        slot = self._locks[resource_id]
        slot[1] -= 1
        if slot[1] == 0:
            del self._locks[resource_id]

    async def process(
        self,
        resource_id: str,
        scan: Optional[ScanResult] = None,
        error: Optional[Any] = None,
    ) -> ScanOutcome:
        """
        Process a scan result, or a scan failure when error is set / scan is None.
        Store errors propagate to the caller.
        """
        lock = self._acquire_slot(resource_id)
        try:
            async with lock:
                if scan is None or error is not None:
                    return await self._record_failure(resource_id, error)
                return await self._record_scan(resource_id, scan)
        finally:
            self._release_slot(resource_id)

    async def process_many(self, scans: Dict[str, ScanResult]) -> List[ScanOutcome]:
        return list(await asyncio.gather(
            *(self.process(resource_id, scan) for resource_id, scan in scans.items())
        ))

    # --------------------------------------------------
    # Successful scan
    # --------------------------------------------------
    async def _record_scan(self, resource_id: str, scan: ScanResult) -> ScanOutcome:
        prev_record = await self.state.load(resource_id)
        latest = await self.history.latest(resource_id)

        status = classify(scan.hashes, HashPair.from_record(prev_record))
        logger.info(
            f"[SCAN] {resource_id} new={scan.hashes.full_hash[:10]} "
            f"(content {scan.hashes.content_hash[:10]}) -> {status.value}"
        )

        field_changes: List[FieldChange] = []
        diff_patch: Optional[str] = None
        diff_summary: Optional[str] = None

        if status in LOGGED_STATUSES and (prev_record or latest):
            try:
                if status == ChangeStatus.CONTENT_CHANGED:
                    prev_snapshot = self._previous_snapshot(prev_record, latest)
                    field_changes = diff_fields(scan.snapshot, prev_snapshot)
                    diff_summary = summarize_changes(field_changes)
                prev_html = latest.html_source if latest else None
                diff_patch = diff_raw_html(prev_html, scan.html_source)
            except Exception as e:
                # Diffs are optional; the scan itself still gets saved
                logger.error(f"[DIFF] Diff generation failed for {resource_id}: {e}")
                field_changes, diff_patch, diff_summary = [], None, None

        timestamp = utcnow()
        record = self._build_record(scan, status, timestamp, field_changes, diff_summary, diff_patch)

        await self.state.save(resource_id, compact(record, self.target_bytes))

        entry_id = None
        if latest is None or status in LOGGED_STATUSES:
            entry_type = EntryType.FIRST_SCAN if latest is None else EntryType(status.value)
            default_summary = FIRST_SCAN_SUMMARY if entry_type == EntryType.FIRST_SCAN else CHANGE_SUMMARY
            entry_id = await self.history.append(ChangeLogEntry(
                resource_id=resource_id,
                url=scan.url,
                timestamp=timestamp,
                change_type=entry_type,
                field_changes=field_changes,
                summary=diff_summary or default_summary,
                snapshot=scan.snapshot,
                hashes=scan.hashes,
                score=scan.score,
                html_source=scan.html_source,
                record=record,
            ))

        return ScanOutcome(
            resource_id=resource_id,
            status=status,
            record=record,
            field_changes=field_changes,
            diff_patch=diff_patch,
            entry_id=entry_id,
        )

    @staticmethod
    def _previous_snapshot(prev_record, latest) -> Optional[Snapshot]:
        # History keeps the full snapshot; the current state only a compacted one
        if latest is not None and latest.snapshot is not None:
            return latest.snapshot
        if prev_record:
            return Snapshot.from_dict(prev_record.get("contentSnapshot"))
        return None

    @staticmethod
    def _build_record(scan, status, timestamp, field_changes, diff_summary, diff_patch) -> Dict[str, Any]:
        record: Dict[str, Any] = {
            "url": scan.url,
            "score": scan.score,
            "summary": diff_summary or fallback_summary(status),
            "fullHash": scan.hashes.full_hash,
            "contentHash": scan.hashes.content_hash,
            "changeStatus": status.value,
            "lastRun": timestamp.isoformat(),
            "contentSnapshot": scan.snapshot.to_dict(),
            "categories": copy.deepcopy(scan.categories),
        }
        record.update(copy.deepcopy(scan.screenshots))
        if field_changes:
            record["fieldChanges"] = [c.to_dict() for c in field_changes]
        if diff_summary:
            record["diffSummary"] = diff_summary
        if diff_patch:
            record["diffPatch"] = diff_patch
        return record

    # --------------------------------------------------
    # Failed scan
    # --------------------------------------------------
    async def _record_failure(self, resource_id: str, error: Optional[Any]) -> ScanOutcome:
        """Mark the current state SCAN_FAILED, keeping the last good hashes."""
        logger.warning(f"[SCAN] {resource_id} scan failed: {error}")

        prev_record = await self.state.load(resource_id) or {}
        record = dict(prev_record)
        for key in ("fieldChanges", "diffSummary", "diffPatch"):
            record.pop(key, None)
        record["changeStatus"] = ChangeStatus.SCAN_FAILED.value
        record["lastRun"] = utcnow().isoformat()
        record["summary"] = f"Scan failed: {error}" if error else "Scan failed"

        compacted = compact(record, self.target_bytes)
        await self.state.save(resource_id, compacted)

        return ScanOutcome(resource_id=resource_id, status=ChangeStatus.SCAN_FAILED, record=compacted)
