"""
Verification Scenarios for hash-based change classification
"""

import unittest

from detection.classifier import classify
from detection.models import ChangeStatus, HashPair


class TestClassify(unittest.TestCase):
    def setUp(self):
        self.prev = HashPair(full_hash="full-a", content_hash="content-a")

    def test_first_scan_is_content_changed(self):
        """Scenario: no previous hashes means this scan becomes the baseline."""
        self.assertEqual(classify(self.prev), ChangeStatus.CONTENT_CHANGED)
        self.assertEqual(classify(self.prev, None), ChangeStatus.CONTENT_CHANGED)

    def test_incomplete_previous_hashes_count_as_missing(self):
        self.assertEqual(
            classify(self.prev, HashPair(full_hash="", content_hash="content-a")),
            ChangeStatus.CONTENT_CHANGED,
        )
        self.assertEqual(
            classify(self.prev, HashPair(full_hash="full-a", content_hash="")),
            ChangeStatus.CONTENT_CHANGED,
        )

    def test_identical_full_hash_is_no_change(self):
        self.assertEqual(classify(self.prev, self.prev), ChangeStatus.NO_CHANGE)

    def test_full_hash_match_wins_over_content_hash(self):
        """Full hash equality alone decides NO_CHANGE."""
        new = HashPair(full_hash="full-a", content_hash="content-b")
        self.assertEqual(classify(new, self.prev), ChangeStatus.NO_CHANGE)

    def test_markup_only_change_is_tech_change(self):
        new = HashPair(full_hash="full-b", content_hash="content-a")
        self.assertEqual(classify(new, self.prev), ChangeStatus.TECH_CHANGE_ONLY)

    def test_both_hashes_differ_is_content_change(self):
        new = HashPair(full_hash="full-b", content_hash="content-b")
        self.assertEqual(classify(new, self.prev), ChangeStatus.CONTENT_CHANGED)

    def test_never_returns_scan_failed(self):
        candidates = [
            HashPair("full-a", "content-a"),
            HashPair("full-b", "content-a"),
            HashPair("full-b", "content-b"),
        ]
        for new in candidates:
            self.assertNotEqual(classify(new, self.prev), ChangeStatus.SCAN_FAILED)
            self.assertNotEqual(classify(new), ChangeStatus.SCAN_FAILED)

    def test_hash_pair_from_record(self):
        self.assertEqual(
            HashPair.from_record({"fullHash": "f", "contentHash": "c"}),
            HashPair("f", "c"),
        )
        self.assertIsNone(HashPair.from_record(None))
        self.assertIsNone(HashPair.from_record({"fullHash": "f"}))


if __name__ == "__main__":
    unittest.main()
