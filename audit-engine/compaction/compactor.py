"""
Lossy, deterministic size reduction of audit records.

The compacted record is what gets stored as the resource's current state, so it
has to fit under the store's document ceiling. The full record lives on in the
history entry written for the same scan.

Least valuable data goes first: inline screenshots, then the raw patch, then
large arrays, then long strings. Every step is idempotent, so
compact(compact(x)) == compact(x).
"""

import copy
import json
from typing import Any, Dict

from auditor.config import COMPACT_TARGET_BYTES

ELLIPSIS = "..."

SNAPSHOT_TITLE_LIMIT = 200
SNAPSHOT_H1_LIMIT = 200
SNAPSHOT_META_LIMIT = 300
SNAPSHOT_HEADINGS_LIMIT = 10

HEADING_STRUCTURE_LIMIT = 20
BROKEN_LINKS_LIMIT = 10
ACCESSIBILITY_ISSUES_LIMIT = 20

FIELD_CHANGES_LIMIT = 10
FIELD_VALUE_LIMIT = 200
FIELD_ARRAY_THRESHOLD = 5
FIELD_ARRAY_KEEP = 3

DIFF_SUMMARY_LIMIT = 500

# Escalation when the record is still over the ceiling
CATEGORY_ARRAY_KEEP = 3
STRING_LIMIT = 200

INLINE_SCREENSHOT_FIELDS = (
    "screenshot",
    "previousScreenshot",
    "mobileScreenshot",
    "tabletScreenshot",
    "desktopScreenshot",
)


def record_size(record: Dict[str, Any]) -> int:
    """Size in bytes of the JSON-encoded record."""
    return len(json.dumps(record, default=str, ensure_ascii=False).encode("utf-8"))


def _truncate(value: str, limit: int) -> str:
    if len(value) > limit:
        return value[:limit] + ELLIPSIS
    return value


def _truncate_field_value(value: Any) -> Any:
    if isinstance(value, str):
        return _truncate(value, FIELD_VALUE_LIMIT)
    if isinstance(value, list) and len(value) > FIELD_ARRAY_THRESHOLD:
        return value[:FIELD_ARRAY_KEEP]
    return value


def _compact_snapshot(snapshot: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "title": (snapshot.get("title") or "")[:SNAPSHOT_TITLE_LIMIT],
        "h1": (snapshot.get("h1") or "")[:SNAPSHOT_H1_LIMIT],
        "metaDescription": (snapshot.get("metaDescription") or "")[:SNAPSHOT_META_LIMIT],
        "wordCount": snapshot.get("wordCount") or 0,
        "headings": list(snapshot.get("headings") or [])[:SNAPSHOT_HEADINGS_LIMIT],
    }


def _limit_list(container: Any, key: str, limit: int) -> None:
    if isinstance(container, dict) and isinstance(container.get(key), list):
        container[key] = container[key][:limit]


def _compact_categories(categories: Dict[str, Any]) -> None:
    schema = categories.get("schema")
    if isinstance(schema, dict):
        # Parsed JSON-LD can be huge; derived metadata stays
        schema["rawSchemas"] = []

    _limit_list(categories.get("headingStructure"), "headings", HEADING_STRUCTURE_LIMIT)
    _limit_list(categories.get("links"), "brokenLinks", BROKEN_LINKS_LIMIT)
    _limit_list(categories.get("accessibility"), "issues", ACCESSIBILITY_ISSUES_LIMIT)


def _is_inline_screenshot(key: str, value: Any) -> bool:
    if key in INLINE_SCREENSHOT_FIELDS:
        return True
    return "screenshot" in key.lower() and isinstance(value, str) and value.startswith("data:")


def _compact_field_changes(changes: list) -> list:
    out = []
    for change in changes[:FIELD_CHANGES_LIMIT]:
        if not isinstance(change, dict):
            continue
        change = dict(change)
        if "oldValue" in change:
            change["oldValue"] = _truncate_field_value(change["oldValue"])
        if "newValue" in change:
            change["newValue"] = _truncate_field_value(change["newValue"])
        out.append(change)
    return out


def _cap_lists(node: Any, keep: int) -> Any:
    if isinstance(node, list):
        return [_cap_lists(item, keep) for item in node[:keep]]
    if isinstance(node, dict):
        return {k: _cap_lists(v, keep) for k, v in node.items()}
    return node


def _cap_strings(node: Any, limit: int) -> Any:
    if isinstance(node, str):
        return _truncate(node, limit)
    if isinstance(node, list):
        return [_cap_strings(item, limit) for item in node]
    if isinstance(node, dict):
        return {k: _cap_strings(v, limit) for k, v in node.items()}
    return node


def compact(record: Dict[str, Any], target_bytes: int = COMPACT_TARGET_BYTES) -> Dict[str, Any]:
    """
    Return a size-bounded copy of an audit record. The input is not modified.
    Missing fields are left missing; None yields None.
    """
    if record is None:
        return None

    compacted = copy.deepcopy(record)

    snapshot = compacted.get("contentSnapshot")
    if isinstance(snapshot, dict):
        compacted["contentSnapshot"] = _compact_snapshot(snapshot)

    categories = compacted.get("categories")
    if isinstance(categories, dict):
        _compact_categories(categories)

    for key in [k for k, v in compacted.items() if _is_inline_screenshot(k, v)]:
        del compacted[key]

    if isinstance(compacted.get("fieldChanges"), list):
        compacted["fieldChanges"] = _compact_field_changes(compacted["fieldChanges"])

    if isinstance(compacted.get("diffSummary"), str):
        compacted["diffSummary"] = _truncate(compacted["diffSummary"], DIFF_SUMMARY_LIMIT)

    # Patch is kept in history only
    compacted.pop("diffPatch", None)

    if record_size(compacted) <= target_bytes:
        return compacted

    if isinstance(compacted.get("categories"), dict):
        compacted["categories"] = _cap_lists(compacted["categories"], CATEGORY_ARRAY_KEEP)
        if record_size(compacted) <= target_bytes:
            return compacted

    return _cap_strings(compacted, STRING_LIMIT)
