import difflib
import re
from typing import Any, List, Optional

from detection.models import Snapshot
from diffing.models import ChangeType, ContentKind, FieldChange, FIELD_NAME_BY_KIND

# (field name in the stored record, attribute on Snapshot)
SCALAR_FIELDS = (
    ("title", "title"),
    ("h1", "h1"),
    ("metaDescription", "meta_description"),
    ("wordCount", "word_count"),
)

# Chunks made only of tags and shorter than this are layout noise ("</a>", "<p>")
MIN_TAG_CHUNK_LENGTH = 5

# Legacy previews are compared on this many leading characters
PREVIEW_LENGTH = 50

HTML_TAG_RE = re.compile(r"<\s*/?\s*[a-zA-Z][^>]*>")
TAG_ONLY_RE = re.compile(r"(?:\s*<\s*/?\s*[a-zA-Z][^>]*>\s*)+")

SUMMARY_VERBS = {
    ChangeType.MODIFIED: "Updated",
    ChangeType.ADDED: "Added",
    ChangeType.REMOVED: "Removed",
}


def _normalize(value: Any) -> Any:
    # Empty strings and None are the same "absent" value
    if value == "":
        return None
    return value


def _change_type(old: Any, new: Any) -> ChangeType:
    if old is None:
        return ChangeType.ADDED
    if new is None:
        return ChangeType.REMOVED
    return ChangeType.MODIFIED


def _is_noise(chunk: str) -> bool:
    stripped = chunk.strip()
    if not stripped:
        return True
    return len(stripped) < MIN_TAG_CHUNK_LENGTH and TAG_ONLY_RE.fullmatch(stripped) is not None


def _classify_chunk(chunk: str) -> ContentKind:
    if HTML_TAG_RE.search(chunk):
        return ContentKind.STRUCTURAL
    return ContentKind.TEXTUAL


def _chunk_change(chunk: str, change_type: ChangeType) -> FieldChange:
    kind = _classify_chunk(chunk)
    return FieldChange(
        field=FIELD_NAME_BY_KIND[kind],
        old_value=chunk if change_type == ChangeType.REMOVED else None,
        new_value=chunk if change_type == ChangeType.ADDED else None,
        change_type=change_type,
        kind=kind,
    )


def diff_content_lines(old_content: str, new_content: str) -> List[FieldChange]:
    """
    Line diff over simplified content.
    Every non-equal region yields a removed chunk and/or an added chunk;
    whitespace-only chunks and short tag-only fragments are dropped.
    """
    old_lines = old_content.splitlines()
    new_lines = new_content.splitlines()

    sm = difflib.SequenceMatcher(None, old_lines, new_lines, autojunk=False)
    changes: List[FieldChange] = []

    for tag, i1, i2, j1, j2 in sm.get_opcodes():
        if tag == "equal":
            continue

        if tag in ("replace", "delete"):
            removed = "\n".join(old_lines[i1:i2])
            if not _is_noise(removed):
                changes.append(_chunk_change(removed, ChangeType.REMOVED))

        if tag in ("replace", "insert"):
            added = "\n".join(new_lines[j1:j2])
            if not _is_noise(added):
                changes.append(_chunk_change(added, ChangeType.ADDED))

    return changes


def diff_headings(old_headings, new_headings) -> Optional[FieldChange]:
    """
    One "modified" change for the heading list: old_value holds the removed
    headings, new_value the added ones, one per line. Reordering alone is
    not a change.
    """
    old_lines = list(old_headings or ())
    new_lines = list(new_headings or ())
    if old_lines == new_lines:
        return None

    old_set = set(old_lines)
    new_set = set(new_lines)
    removed = [h for h in old_lines if h not in new_set]
    added = [h for h in new_lines if h not in old_set]
    if not removed and not added:
        return None

    return FieldChange(
        field="headings",
        old_value="\n".join(removed),
        new_value="\n".join(added),
        change_type=ChangeType.MODIFIED,
    )


def _preview(text: Optional[str]) -> str:
    return (text or "")[:PREVIEW_LENGTH] + "..."


def diff_fields(new_snapshot: Optional[Snapshot], prev_snapshot: Optional[Snapshot] = None) -> List[FieldChange]:
    """
    Compare two snapshots field by field.
    Returns an ordered list: scalar fields, then headings, then content chunks.
    A missing snapshot on either side yields an empty list.
    """
    changes: List[FieldChange] = []

    if new_snapshot is None or prev_snapshot is None:
        return changes

    for field_name, attr in SCALAR_FIELDS:
        old = _normalize(getattr(prev_snapshot, attr))
        new = _normalize(getattr(new_snapshot, attr))
        if old != new:
            changes.append(FieldChange(
                field=field_name,
                old_value=old,
                new_value=new,
                change_type=_change_type(old, new),
            ))

    headings_change = diff_headings(prev_snapshot.headings, new_snapshot.headings)
    if headings_change is not None:
        changes.append(headings_change)

    old_content = prev_snapshot.simplified_content
    new_content = new_snapshot.simplified_content

    if old_content is not None and new_content is not None:
        if old_content != new_content:
            changes.extend(diff_content_lines(old_content, new_content))
        return changes

    # Legacy records carry only a body preview
    old_preview = _preview(prev_snapshot.body_text_preview)
    new_preview = _preview(new_snapshot.body_text_preview)
    if old_preview != new_preview:
        changes.append(FieldChange(
            field=FIELD_NAME_BY_KIND[ContentKind.TEXTUAL],
            old_value=old_preview,
            new_value=new_preview,
            change_type=ChangeType.MODIFIED,
            kind=ContentKind.TEXTUAL,
        ))

    return changes


def summarize_changes(changes: List[FieldChange]) -> Optional[str]:
    """'Updated title, Added sections' style summary. None when nothing changed."""
    if not changes:
        return None

    parts: List[str] = []
    for change in changes:
        part = f"{SUMMARY_VERBS[change.change_type]} {change.field}"
        if part not in parts:
            parts.append(part)
    return ", ".join(parts)
