from enum import Enum
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple


class ChangeStatus(Enum):
    NO_CHANGE = "NO_CHANGE"
    TECH_CHANGE_ONLY = "TECH_CHANGE_ONLY"
    CONTENT_CHANGED = "CONTENT_CHANGED"
    SCAN_FAILED = "SCAN_FAILED"


@dataclass(frozen=True)
class HashPair:
    """
    Dual fingerprint of one scan.
    full_hash covers markup + content, content_hash covers content only,
    so an unchanged full_hash implies an unchanged content_hash.
    """
    full_hash: str
    content_hash: str

    @classmethod
    def from_record(cls, record: Optional[Dict[str, Any]]) -> Optional["HashPair"]:
        """Read fullHash/contentHash off a stored record. None when either is missing."""
        if not record:
            return None
        full_hash = record.get("fullHash")
        content_hash = record.get("contentHash")
        if not full_hash or not content_hash:
            return None
        return cls(full_hash=full_hash, content_hash=content_hash)

    def to_dict(self) -> Dict[str, str]:
        return {"fullHash": self.full_hash, "contentHash": self.content_hash}


@dataclass(frozen=True)
class Snapshot:
    """
    Observable page content extracted by the scanner at scan time.
    simplified_content is absent on records written before it was introduced.
    """
    title: Optional[str] = None
    h1: Optional[str] = None
    meta_description: Optional[str] = None
    word_count: Optional[int] = None
    headings: Tuple[str, ...] = field(default_factory=tuple)
    simplified_content: Optional[str] = None
    body_text_preview: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["Snapshot"]:
        if data is None:
            return None
        return cls(
            title=data.get("title"),
            h1=data.get("h1"),
            meta_description=data.get("metaDescription"),
            word_count=data.get("wordCount"),
            headings=tuple(data.get("headings") or ()),
            simplified_content=data.get("simplifiedContent"),
            body_text_preview=data.get("bodyTextPreview"),
        )

    def to_dict(self) -> Dict[str, Any]:
        out = {
            "title": self.title,
            "h1": self.h1,
            "metaDescription": self.meta_description,
            "wordCount": self.word_count,
            "headings": list(self.headings),
        }
        if self.simplified_content is not None:
            out["simplifiedContent"] = self.simplified_content
        if self.body_text_preview is not None:
            out["bodyTextPreview"] = self.body_text_preview
        return out


@dataclass(frozen=True)
class ScanResult:
    """
    What the page scanner hands over for one resource.
    categories and screenshot references are opaque to this engine.
    """
    url: str
    snapshot: Snapshot
    hashes: HashPair
    html_source: Optional[str] = None
    score: Optional[float] = None
    categories: Dict[str, Any] = field(default_factory=dict)
    screenshots: Dict[str, Any] = field(default_factory=dict)
