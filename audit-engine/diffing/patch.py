import difflib
import re
from typing import Optional

DIFF_CONTEXT = 3

PREVIOUS_LABEL = "Previous Version"
CURRENT_LABEL = "Current Version"

# Blocks that never carry page content worth diffing.
# Each is replaced by a sentinel so the diff still shows where it sat.
NOISE_BLOCKS = ("nav", "footer", "script", "style")

SVG_MARKER = "<svg>[svg]</svg>"

# Stand-in while nested blocks are collapsed; cannot occur in HTML text
_PLACEHOLDER = "\x00{tag}\x00"


def _block_pattern(tag: str):
    # Exact tag name only (not <nav-menu>), and a body with no opening tag of
    # the same name, so the innermost block matches first
    opening = rf"<{tag}(?=[\s/>])"
    return re.compile(
        rf"{opening}[^>]*>(?:(?!{opening}).)*?</{tag}\s*>",
        re.DOTALL | re.IGNORECASE,
    )


_BLOCK_PATTERNS = [(tag, _block_pattern(tag), f"<!-- [{tag} removed] -->") for tag in NOISE_BLOCKS]
_BLOCK_PATTERNS.append(("svg", _block_pattern("svg"), SVG_MARKER))


def _collapse(html: str, tag: str, pattern, replacement: str) -> str:
    placeholder = _PLACEHOLDER.format(tag=tag)
    while True:
        collapsed = pattern.sub(placeholder, html)
        if collapsed == html:
            break
        html = collapsed
    return html.replace(placeholder, replacement)


def strip_noise(html: str) -> str:
    """Drop nav/footer/script/style blocks and collapse inline SVG, nested ones included."""
    for tag, pattern, replacement in _BLOCK_PATTERNS:
        html = _collapse(html, tag, pattern, replacement)
    return html


def diff_raw_html(prev_html: Optional[str] = None, curr_html: Optional[str] = None) -> Optional[str]:
    """
    Unified diff of two raw HTML documents after noise stripping.
    Returns None when either side is empty (no baseline to diff against)
    or when the stripped documents are identical.
    """
    if not prev_html or not curr_html:
        return None

    old = strip_noise(prev_html)
    new = strip_noise(curr_html)

    if old == new:
        return None

    lines = difflib.unified_diff(
        old.splitlines(keepends=True),
        new.splitlines(keepends=True),
        fromfile=PREVIOUS_LABEL,
        tofile=CURRENT_LABEL,
        n=DIFF_CONTEXT,
    )

    out = []
    for line in lines:
        # Last line of a file without trailing newline
        if not line.endswith("\n"):
            line += "\n\\ No newline at end of file\n"
        out.append(line)
    return "".join(out)
