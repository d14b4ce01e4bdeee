"""
Structural (tag-preserving) HTML diff for the visual comparison view.

The main content of both documents is extracted, relative asset URLs are made
absolute, and a word-level diff is merged into a single fragment with
<ins>/<del> markers. The fragment is then embedded in a standalone document
that loads the site's own stylesheets before the diff highlighting rules.
"""

import re
from html import escape
from typing import List, Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Comment
from lxml.html.diff import htmldiff

from diffing.models import StructuralDiffResult

PARSER = "lxml"

# Never part of the comparable content
STRIP_SELECTOR = (
    "script, noscript, iframe, nav, header, footer, "
    "[role=navigation], [role=banner], [role=contentinfo]"
)

# Tried in order when there is no <main>, <article> or [role=main]
CONTENT_SELECTORS = (
    ".content",
    ".main-content",
    ".page-content",
    "#content",
    "#main",
    ".container main",
    ".wrapper main",
)
MIN_CONTAINER_LENGTH = 100

EMPTY_DIFF_HTML = "<p>No content found in either version</p>"

CSS_URL_RE = re.compile(r"""url\(['"]?([^'")\s]+)['"]?\)""")

PREVIEW_LENGTH = 500

DIFF_STYLES = """
    /* Base diff styles */
    .diff-container {
      font-family: system-ui, -apple-system, sans-serif;
      line-height: 1.6;
      padding: 16px;
    }

    /* Deleted content */
    del, .diff-del, del.diff-removed {
      background-color: #fecaca;
      text-decoration: line-through;
      color: #991b1b;
      padding: 2px 4px;
      border-radius: 2px;
    }

    /* Added content */
    ins, .diff-ins, ins.diff-added {
      background-color: #bbf7d0;
      text-decoration: none;
      color: #166534;
      padding: 2px 4px;
      border-radius: 2px;
    }

    /* Deleted images */
    del img, img.diff-del {
      border: 4px solid #ef4444;
      opacity: 0.5;
      box-shadow: 0 0 0 2px #fecaca;
    }

    /* Added images */
    ins img, img.diff-ins {
      border: 4px solid #22c55e;
      box-shadow: 0 0 0 2px #bbf7d0;
    }

    /* Block-level deletions */
    del > div, del > section, del > article, del > p {
      background-color: #fee2e2;
      border-left: 4px solid #ef4444;
      padding-left: 12px;
      margin: 8px 0;
    }

    /* Block-level additions */
    ins > div, ins > section, ins > article, ins > p {
      background-color: #dcfce7;
      border-left: 4px solid #22c55e;
      padding-left: 12px;
      margin: 8px 0;
    }

    img {
      max-width: 100%;
      height: auto;
    }
"""


def _is_absolute(url: str) -> bool:
    return url.startswith("http") or url.startswith("//") or url.startswith("data:")


def _absolute(url: str, base_url: Optional[str]) -> str:
    if not base_url or _is_absolute(url):
        return url
    try:
        return urljoin(base_url, url)
    except ValueError:
        return url


def extract_stylesheets(html: Optional[str], base_url: Optional[str] = None) -> List[str]:
    """External <link rel=stylesheet> and inline <style> blocks, in document order."""
    if not html:
        return []

    soup = BeautifulSoup(html, PARSER)
    stylesheets: List[str] = []

    for el in soup.find_all(["link", "style"]):
        if el.name == "link":
            rel = el.get("rel") or []
            if isinstance(rel, str):
                rel = rel.split()
            href = el.get("href")
            if "stylesheet" not in [r.lower() for r in rel] or not href:
                continue
            href = _absolute(href, base_url)
            stylesheets.append(f'<link rel="stylesheet" href="{escape(href, quote=True)}">')
        else:
            css = el.string if el.string is not None else el.get_text()
            if css and css.strip():
                stylesheets.append(f"<style>{css}</style>")

    return stylesheets


def _inner_html(el) -> str:
    if el is None:
        return ""
    return el.decode_contents()


def _rewrite_urls(wrapper, base_url: str) -> None:
    for img in wrapper.find_all("img"):
        src = img.get("src")
        if src and not src.startswith("http") and not src.startswith("data:"):
            img["src"] = _absolute(src, base_url)

    def repl(match):
        url = match.group(1)
        if url.startswith("http") or url.startswith("data:"):
            return match.group(0)
        return f"url('{_absolute(url, base_url)}')"

    for el in wrapper.find_all(style=CSS_URL_RE):
        el["style"] = CSS_URL_RE.sub(repl, el["style"])


def extract_main_content(html: Optional[str], base_url: Optional[str] = None) -> str:
    """
    Inner HTML of the page's main content area with chrome removed.
    Returns "" for empty documents.
    """
    if not html:
        return ""

    soup = BeautifulSoup(html, PARSER)

    for el in soup.select(STRIP_SELECTOR):
        # Children of an already removed element are gone with it
        if el.decomposed:
            continue
        el.decompose()

    # htmldiff cannot render comment nodes
    for comment in soup.find_all(string=lambda s: isinstance(s, Comment)):
        comment.extract()

    content = ""
    for candidate in (soup.find("main"), soup.find("article"), soup.find(attrs={"role": "main"})):
        content = _inner_html(candidate)
        if content.strip():
            break

    if not content.strip():
        for selector in CONTENT_SELECTORS:
            found = _inner_html(soup.select_one(selector))
            if len(found.strip()) > MIN_CONTAINER_LENGTH:
                content = found
                break

    if not content.strip():
        content = _inner_html(soup.body)

    if not content.strip():
        return ""

    fragment = BeautifulSoup(f"<div>{content}</div>", PARSER)
    wrapper = fragment.find("div")

    for el in wrapper.find_all("script"):
        el.decompose()

    if base_url:
        _rewrite_urls(wrapper, base_url)

    return wrapper.decode_contents().strip()


def count_changes(diff_html: str):
    """Number of <ins> and <del> elements (not characters)."""
    soup = BeautifulSoup(diff_html, PARSER)
    return len(soup.find_all("ins")), len(soup.find_all("del"))


def structural_diff(
    prev_html: Optional[str],
    curr_html: Optional[str],
    base_url: Optional[str] = None,
) -> StructuralDiffResult:
    """
    Merged <ins>/<del> diff of the main content of two documents.

    One-sided inputs are reported as a single added or removed block
    (additions=1 or deletions=1) whatever their size.
    """
    # Current document's styles only, for faithful re-rendering
    stylesheets = extract_stylesheets(curr_html, base_url)

    prev_main = extract_main_content(prev_html, base_url)
    curr_main = extract_main_content(curr_html, base_url)

    if not prev_main and not curr_main:
        return StructuralDiffResult(EMPTY_DIFF_HTML, 0, 0, stylesheets, base_url)

    if not prev_main:
        return StructuralDiffResult(f'<ins class="diff-added">{curr_main}</ins>', 1, 0, stylesheets, base_url)

    if not curr_main:
        return StructuralDiffResult(f'<del class="diff-removed">{prev_main}</del>', 0, 1, stylesheets, base_url)

    if prev_main == curr_main:
        return StructuralDiffResult(curr_main, 0, 0, stylesheets, base_url)

    merged = htmldiff(prev_main, curr_main)
    additions, deletions = count_changes(merged)

    return StructuralDiffResult(merged, additions, deletions, stylesheets, base_url)


def wrap_diff_html(diff_html: str, base_url: Optional[str] = None, stylesheets: Optional[List[str]] = None) -> str:
    """
    Standalone document for iframe rendering.
    Site stylesheets load first so the diff rules that follow win any conflict.
    """
    base_tag = f'<base href="{escape(base_url, quote=True)}">' if base_url else ""
    site_styles = "\n  ".join(stylesheets or [])

    return f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  {base_tag}
  <!-- Original page stylesheets -->
  {site_styles}
  <!-- Diff highlighting styles -->
  <style>
{DIFF_STYLES}
  </style>
</head>
<body>
  <div class="diff-container">
    {diff_html}
  </div>
</body>
</html>"""


def text_preview(html: Optional[str], length: int = PREVIEW_LENGTH) -> str:
    """Plain-text preview paragraph, shown when there is nothing to compare against."""
    if not html:
        return "<p>No content available</p>"

    soup = BeautifulSoup(html, PARSER)
    for el in soup.find_all(["script", "style"]):
        el.decompose()
    text = " ".join(soup.get_text(" ").split())[:length]
    suffix = "..." if len(text) >= length else ""
    return f'<p style="color: #666;">{escape(text)}{suffix}</p>'
