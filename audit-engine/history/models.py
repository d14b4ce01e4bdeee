from enum import Enum
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from detection.models import HashPair, Snapshot
from diffing.models import FieldChange


class EntryType(Enum):
    FIRST_SCAN = "FIRST_SCAN"
    CONTENT_CHANGED = "CONTENT_CHANGED"
    TECH_CHANGE_ONLY = "TECH_CHANGE_ONLY"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Accept datetimes or ISO-8601 strings; naive values are taken as UTC."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


@dataclass(frozen=True)
class ChangeLogEntry:
    """
    One row of a resource's change history. Append-only.
    html_source and record carry the full scan so the visual diff and the
    unified patch can be rebuilt later; list views leave them out.
    """
    resource_id: str
    change_type: EntryType
    summary: str
    hashes: HashPair
    snapshot: Optional[Snapshot] = None
    field_changes: List[FieldChange] = field(default_factory=list)
    score: Optional[float] = None
    url: Optional[str] = None
    timestamp: Optional[datetime] = None
    entry_id: Optional[str] = None
    html_source: Optional[str] = None
    record: Optional[Dict[str, Any]] = None

    def stamped(self) -> "ChangeLogEntry":
        """Copy with a timestamp, keeping an existing one."""
        if self.timestamp is not None:
            return replace(self, timestamp=parse_timestamp(self.timestamp))
        return replace(self, timestamp=utcnow())

    def to_dict(self, include_source: bool = False) -> Dict[str, Any]:
        out = {
            "id": self.entry_id,
            "resourceId": self.resource_id,
            "url": self.url,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
            "changeType": self.change_type.value,
            "fieldChanges": [c.to_dict() for c in self.field_changes],
            "summary": self.summary,
            "snapshot": self.snapshot.to_dict() if self.snapshot else None,
            "fullHash": self.hashes.full_hash,
            "contentHash": self.hashes.content_hash,
            "score": self.score,
        }
        if include_source:
            out["htmlSource"] = self.html_source
            out["record"] = self.record
        return out


@dataclass(frozen=True)
class CleanupResult:
    deleted: int = 0
    kept: int = 0
    failed_resources: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "deleted": self.deleted,
            "kept": self.kept,
            "failedResources": list(self.failed_resources),
        }
