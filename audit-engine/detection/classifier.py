from typing import Optional

from detection.models import ChangeStatus, HashPair


def classify(new_hashes: HashPair, prev_hashes: Optional[HashPair] = None) -> ChangeStatus:
    """
    Classify the transition between two scans of the same resource.

    Rules, in order:
    - no previous hashes -> CONTENT_CHANGED (first scan establishes the baseline)
    - same full hash -> NO_CHANGE
    - same content hash -> TECH_CHANGE_ONLY (markup/script/style only)
    - otherwise -> CONTENT_CHANGED

    SCAN_FAILED is never produced here; the caller assigns it on fetch errors.
    """
    if prev_hashes is None or not prev_hashes.full_hash or not prev_hashes.content_hash:
        return ChangeStatus.CONTENT_CHANGED

    if new_hashes.full_hash == prev_hashes.full_hash:
        return ChangeStatus.NO_CHANGE

    if new_hashes.content_hash == prev_hashes.content_hash:
        return ChangeStatus.TECH_CHANGE_ONLY

    return ChangeStatus.CONTENT_CHANGED
