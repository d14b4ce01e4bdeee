from typing import Any, Dict, Optional

from auditor.logger import get_logger
from diffing.structural import structural_diff, text_preview, wrap_diff_html
from history.storage import HistoryStore

logger = get_logger("visual")

NO_DIFF_HTML = "<p>No difference available</p>"


async def build_visual_diff(history_store: HistoryStore, resource_id: str) -> Optional[Dict[str, Any]]:
    """
    Visual diff between the two most recent history entries of a resource.
    None when the resource has no history at all.
    """
    entries = await history_store.history(resource_id, limit=2)
    if not entries:
        return None

    current = entries[0]
    previous = entries[1] if len(entries) > 1 else None

    if previous is None:
        body = (
            '<div class="no-diff">'
            "<p>This is the first scan for this page. No previous version to compare against.</p>"
            f"{text_preview(current.html_source)}"
            "</div>"
        )
        return {
            "diffHtml": wrap_diff_html(body, current.url),
            "stats": {"additions": 0, "deletions": 0},
            "baseUrl": current.url,
            "isFirstScan": True,
        }

    payload = {
        "baseUrl": current.url,
        "currentTimestamp": current.timestamp.isoformat() if current.timestamp else None,
        "previousTimestamp": previous.timestamp.isoformat() if previous.timestamp else None,
        "isFirstScan": False,
    }

    if not current.html_source or not previous.html_source:
        payload["diffHtml"] = wrap_diff_html(NO_DIFF_HTML, current.url)
        payload["stats"] = {"additions": 0, "deletions": 0}
        return payload

    try:
        result = structural_diff(previous.html_source, current.html_source, current.url)
    except Exception as e:
        logger.error(f"[DIFF] Structural diff failed for {resource_id}: {e}")
        payload["diffHtml"] = wrap_diff_html(NO_DIFF_HTML, current.url)
        payload["stats"] = {"additions": 0, "deletions": 0}
        return payload

    payload["diffHtml"] = wrap_diff_html(result.merged_html, current.url, result.stylesheets)
    payload["stats"] = {"additions": result.additions, "deletions": result.deletions}
    return payload
