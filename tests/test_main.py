"""
Verification Scenarios for the command-line entry point
"""

import io
import tempfile
import unittest
from contextlib import redirect_stdout
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import main
from history.models import CleanupResult


class TestMain(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        self.previous = self.root / "previous.html"
        self.current = self.root / "current.html"
        self.previous.write_text("<html>\n<body>\n<main><p>Hello world</p></main>\n</body>\n</html>\n")
        self.current.write_text("<html>\n<body>\n<main><p>Hello brave world</p></main>\n</body>\n</html>\n")

    def tearDown(self):
        self._tmp.cleanup()

    def test_patch_mode(self):
        out = io.StringIO()
        with redirect_stdout(out):
            code = main.main(["--mode", "patch", "--previous", str(self.previous), "--current", str(self.current)])

        self.assertEqual(code, 0)
        self.assertIn("+<main><p>Hello brave world</p></main>", out.getvalue())

    def test_visual_diff_mode_writes_document(self):
        target = self.root / "out" / "diff.html"
        code = main.main([
            "--mode", "visual-diff",
            "--previous", str(self.previous),
            "--current", str(self.current),
            "--base-url", "https://example.com/",
            "--out", str(target),
        ])

        self.assertEqual(code, 0)
        document = target.read_text(encoding="utf-8")
        self.assertIn("<ins>", document)
        self.assertIn('<base href="https://example.com/">', document)

    def test_diff_modes_need_both_files(self):
        with redirect_stdout(io.StringIO()), self.assertRaises(SystemExit):
            main.main(["--mode", "patch", "--previous", str(self.previous)])

    def test_cleanup_mode(self):
        store = MagicMock()
        store.cleanup = AsyncMock(return_value=CleanupResult(deleted=2, kept=3))

        with patch("main.create_stores", return_value=(store, MagicMock())):
            code = main.main(["--mode", "cleanup", "--max-age-days", "30", "--keep-per-resource", "2"])

        self.assertEqual(code, 0)
        store.cleanup.assert_awaited_once_with(30, 2)

    def test_cleanup_mode_reports_failures(self):
        store = MagicMock()
        store.cleanup = AsyncMock(return_value=CleanupResult(deleted=0, kept=0, failed_resources=["page-1"]))

        with patch("main.create_stores", return_value=(store, MagicMock())):
            self.assertEqual(main.main(["--mode", "cleanup"]), 1)


if __name__ == "__main__":
    unittest.main()
