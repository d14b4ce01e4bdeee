"""
Verification Scenarios for audit record compaction
"""

import copy
import unittest

from compaction.compactor import compact, record_size


def big_record():
    return {
        "url": "https://example.com/",
        "score": 87,
        "summary": "Updated title",
        "fullHash": "f" * 64,
        "contentHash": "c" * 64,
        "changeStatus": "CONTENT_CHANGED",
        "contentSnapshot": {
            "title": "T" * 300,
            "h1": "H" * 250,
            "metaDescription": "M" * 400,
            "wordCount": 1200,
            "headings": [f"Heading {i}" for i in range(15)],
            "simplifiedContent": "<p>" + "body " * 1000 + "</p>",
            "bodyTextPreview": "body text",
            "images": ["a.png", "b.png"],
        },
        "categories": {
            "schema": {"rawSchemas": [{"@type": "Organization"}] * 5, "types": ["Organization"]},
            "headingStructure": {"headings": [{"level": 2, "text": f"h{i}"} for i in range(30)]},
            "links": {"brokenLinks": [f"https://example.com/{i}" for i in range(15)], "total": 40},
            "accessibility": {"issues": [f"issue {i}" for i in range(25)], "score": 70},
        },
        "screenshot": "data:image/png;base64," + "A" * 5000,
        "mobileScreenshot": "data:image/png;base64," + "B" * 5000,
        "heroScreenshotData": "data:image/jpeg;base64,AAAA",
        "screenshotUrl": "https://cdn.example.com/shot.png",
        "fieldChanges": [
            {
                "field": f"field{i}",
                "oldValue": "o" * 300,
                "newValue": ["x"] * 6,
                "changeType": "modified",
            }
            for i in range(12)
        ],
        "diffSummary": "S" * 600,
        "diffPatch": "--- Previous Version\n+++ Current Version\n",
    }


class TestCompact(unittest.TestCase):
    def setUp(self):
        self.record = big_record()
        self.compacted = compact(self.record)

    def test_snapshot_is_reduced(self):
        snap = self.compacted["contentSnapshot"]
        self.assertEqual(set(snap), {"title", "h1", "metaDescription", "wordCount", "headings"})
        self.assertEqual(len(snap["title"]), 200)
        self.assertEqual(len(snap["h1"]), 200)
        self.assertEqual(len(snap["metaDescription"]), 300)
        self.assertEqual(len(snap["headings"]), 10)
        self.assertEqual(snap["wordCount"], 1200)

    def test_categories_are_limited(self):
        categories = self.compacted["categories"]
        self.assertEqual(categories["schema"]["rawSchemas"], [])
        self.assertEqual(categories["schema"]["types"], ["Organization"])
        self.assertEqual(len(categories["headingStructure"]["headings"]), 20)
        self.assertEqual(len(categories["links"]["brokenLinks"]), 10)
        self.assertEqual(categories["links"]["total"], 40)
        self.assertEqual(len(categories["accessibility"]["issues"]), 20)

    def test_inline_screenshots_removed_urls_kept(self):
        self.assertNotIn("screenshot", self.compacted)
        self.assertNotIn("mobileScreenshot", self.compacted)
        self.assertNotIn("heroScreenshotData", self.compacted)
        self.assertEqual(self.compacted["screenshotUrl"], "https://cdn.example.com/shot.png")

    def test_field_changes_truncated(self):
        changes = self.compacted["fieldChanges"]
        self.assertEqual(len(changes), 10)
        for change in changes:
            self.assertEqual(change["oldValue"], "o" * 200 + "...")
            self.assertEqual(change["newValue"], ["x"] * 3)
            self.assertEqual(change["changeType"], "modified")

    def test_diff_summary_and_patch(self):
        self.assertEqual(self.compacted["diffSummary"], "S" * 500 + "...")
        self.assertNotIn("diffPatch", self.compacted)

    def test_scalar_fields_untouched(self):
        for key in ("url", "score", "summary", "fullHash", "contentHash", "changeStatus"):
            self.assertEqual(self.compacted[key], self.record[key])

    def test_input_not_mutated(self):
        self.assertEqual(self.record, big_record())

    def test_idempotent(self):
        self.assertEqual(compact(self.compacted), self.compacted)

    def test_missing_fields_stay_missing(self):
        self.assertEqual(compact({}), {})
        self.assertEqual(compact({"url": "https://example.com/"}), {"url": "https://example.com/"})
        self.assertIsNone(compact(None))

    def test_short_arrays_kept(self):
        record = {"fieldChanges": [{"field": "headings", "oldValue": ["a", "b"], "newValue": ["a"]}]}
        self.assertEqual(compact(record), record)


class TestEscalation(unittest.TestCase):
    def setUp(self):
        self.record = {
            "url": "https://example.com/",
            "categories": {
                "seo": {"issues": [{"message": "m" * 500} for _ in range(50)]},
                "performance": {"opportunities": ["p" * 100 for _ in range(40)]},
            },
            "notes": "n" * 5000,
        }

    def test_lists_capped_then_strings(self):
        target = 3000
        compacted = compact(self.record, target_bytes=target)

        self.assertLessEqual(len(compacted["categories"]["seo"]["issues"]), 3)
        self.assertLessEqual(len(compacted["categories"]["performance"]["opportunities"]), 3)
        self.assertEqual(compacted["notes"], "n" * 200 + "...")
        self.assertLessEqual(record_size(compacted), target)

    def test_list_cap_alone_when_sufficient(self):
        record = copy.deepcopy(self.record)
        record["notes"] = "short"
        compacted = compact(record, target_bytes=3000)

        self.assertEqual(len(compacted["categories"]["seo"]["issues"]), 3)
        # Strings survive when capping lists was enough
        self.assertEqual(compacted["categories"]["seo"]["issues"][0]["message"], "m" * 500)

    def test_under_target_untouched(self):
        compacted = compact(self.record)
        self.assertEqual(len(compacted["categories"]["seo"]["issues"]), 50)

    def test_escalated_is_idempotent(self):
        once = compact(self.record, target_bytes=3000)
        self.assertEqual(compact(once, target_bytes=3000), once)


if __name__ == "__main__":
    unittest.main()
