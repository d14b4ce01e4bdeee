"""
Verification Scenarios for the structural (visual) HTML diff
"""

import unittest

from diffing.structural import (
    DIFF_STYLES,
    EMPTY_DIFF_HTML,
    extract_main_content,
    extract_stylesheets,
    structural_diff,
    text_preview,
    wrap_diff_html,
)

BASE_URL = "https://example.com/blog/"


def document(main_html, head=""):
    return (
        f"<html><head>{head}</head><body>"
        "<header><a href='/'>Logo</a></header>"
        "<nav><a href='/about'>About</a></nav>"
        f"<main>{main_html}</main>"
        "<footer>Footer text</footer>"
        "</body></html>"
    )


class TestMainContent(unittest.TestCase):
    def test_prefers_main_and_drops_chrome(self):
        html = document("<h1>Post</h1><p>Body</p><script>track()</script>")
        content = extract_main_content(html)

        self.assertIn("<h1>Post</h1>", content)
        self.assertIn("<p>Body</p>", content)
        self.assertNotIn("Logo", content)
        self.assertNotIn("About", content)
        self.assertNotIn("Footer text", content)
        self.assertNotIn("track()", content)

    def test_article_when_no_main(self):
        html = "<html><body><div>Sidebar</div><article><p>Story</p></article></body></html>"
        self.assertEqual(extract_main_content(html), "<p>Story</p>")

    def test_content_selector_needs_enough_text(self):
        long_text = "x" * 150
        html = (
            "<html><body><div class='intro'>Intro</div>"
            f"<div class='content'><p>{long_text}</p></div></body></html>"
        )
        self.assertEqual(extract_main_content(html), f"<p>{long_text}</p>")

        short = "<html><body><div class='intro'>Intro</div><div class='content'><p>tiny</p></div></body></html>"
        content = extract_main_content(short)
        self.assertIn("Intro", content)
        self.assertIn("tiny", content)

    def test_body_fallback(self):
        html = "<html><body><p>Only body</p></body></html>"
        self.assertEqual(extract_main_content(html), "<p>Only body</p>")

    def test_empty_document(self):
        self.assertEqual(extract_main_content(""), "")
        self.assertEqual(extract_main_content(None), "")

    def test_relative_assets_are_absolutized(self):
        html = document(
            "<img src='images/a.png'>"
            "<img src='https://cdn.example.com/b.png'>"
            "<div style=\"background: url('/img/bg.jpg')\">x</div>"
        )
        content = extract_main_content(html, BASE_URL)

        self.assertIn('src="https://example.com/blog/images/a.png"', content)
        self.assertIn('src="https://cdn.example.com/b.png"', content)
        self.assertIn("url('https://example.com/img/bg.jpg')", content)


class TestStylesheets(unittest.TestCase):
    def test_links_and_inline_styles_in_order(self):
        head = (
            "<link rel='stylesheet' href='/css/site.css'>"
            "<link rel='icon' href='/favicon.ico'>"
            "<style>body { margin: 0; }</style>"
        )
        sheets = extract_stylesheets(document("<p>x</p>", head), BASE_URL)

        self.assertEqual(sheets, [
            '<link rel="stylesheet" href="https://example.com/css/site.css">',
            "<style>body { margin: 0; }</style>",
        ])

    def test_empty_document(self):
        self.assertEqual(extract_stylesheets(None), [])


class TestStructuralDiff(unittest.TestCase):
    def test_identical_documents(self):
        html = document("<p>Unchanged paragraph</p>")
        result = structural_diff(html, html, BASE_URL)

        self.assertEqual((result.additions, result.deletions), (0, 0))
        self.assertNotIn("<ins", result.merged_html)
        self.assertNotIn("<del", result.merged_html)

    def test_previous_empty_is_one_addition(self):
        """Scenario: no previous HTML, the whole page counts as one added block."""
        curr = document("<p>One</p><p>Two</p><p>Three</p>")
        result = structural_diff(None, curr)

        self.assertEqual((result.additions, result.deletions), (1, 0))
        self.assertTrue(result.merged_html.startswith('<ins class="diff-added">'))

    def test_current_empty_is_one_deletion(self):
        prev = document("<p>Gone</p>")
        result = structural_diff(prev, "")

        self.assertEqual((result.additions, result.deletions), (0, 1))
        self.assertTrue(result.merged_html.startswith('<del class="diff-removed">'))

    def test_both_empty(self):
        result = structural_diff(None, None)
        self.assertEqual(result.merged_html, EMPTY_DIFF_HTML)
        self.assertEqual((result.additions, result.deletions), (0, 0))

    def test_inserted_word(self):
        prev = document("<p>Hello world</p>")
        curr = document("<p>Hello brave world</p>")
        result = structural_diff(prev, curr, BASE_URL)

        self.assertGreaterEqual(result.additions, 1)
        self.assertEqual(result.deletions, 0)
        self.assertIn("brave", result.merged_html)
        self.assertIn("<ins>", result.merged_html)

    def test_comments_do_not_leak_into_diff(self):
        """Unchanged block-editor comments around a single edited paragraph."""
        prev = document("<!-- wp:paragraph --><p>Price 10</p><!-- /wp:paragraph -->")
        curr = document("<!-- wp:paragraph --><p>Price 12</p><!-- /wp:paragraph -->")

        result = structural_diff(prev, curr, BASE_URL)

        self.assertNotIn("cyfunction", result.merged_html)
        self.assertNotIn("wp:paragraph", result.merged_html)
        self.assertEqual((result.additions, result.deletions), (1, 1))
        self.assertIn("12", result.merged_html)
        self.assertIn("<ins>", result.merged_html)

    def test_extracted_content_has_no_comments(self):
        html = document("<!-- hero --><p>Body</p>")
        self.assertEqual(extract_main_content(html), "<p>Body</p>")

    def test_stylesheets_come_from_current_document(self):
        prev = document("<p>a</p>", "<link rel='stylesheet' href='/old.css'>")
        curr = document("<p>b</p>", "<link rel='stylesheet' href='/new.css'>")
        result = structural_diff(prev, curr, BASE_URL)

        self.assertEqual(result.stylesheets, ['<link rel="stylesheet" href="https://example.com/new.css">'])
        self.assertEqual(result.to_dict()["stats"], {"additions": result.additions, "deletions": result.deletions})


class TestWrap(unittest.TestCase):
    def test_site_styles_load_before_diff_styles(self):
        sheet = '<link rel="stylesheet" href="https://example.com/site.css">'
        html = wrap_diff_html("<p>diff</p>", BASE_URL, [sheet])

        self.assertTrue(html.startswith("<!DOCTYPE html>"))
        self.assertIn(f'<base href="{BASE_URL}">', html)
        self.assertLess(html.index(sheet), html.index(DIFF_STYLES))
        self.assertIn("<p>diff</p>", html)

    def test_no_base_url(self):
        html = wrap_diff_html("<p>diff</p>")
        self.assertNotIn("<base", html)

    def test_text_preview(self):
        html = "<html><body><script>x()</script><p>" + "word " * 200 + "</p></body></html>"
        preview = text_preview(html)
        self.assertNotIn("x()", preview)
        self.assertTrue(preview.endswith('...</p>'))
        self.assertEqual(text_preview(None), "<p>No content available</p>")


if __name__ == "__main__":
    unittest.main()
