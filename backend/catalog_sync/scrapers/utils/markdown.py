"""HTML -> Markdown conversion used to repair AI replies.

The completion service is asked for prose, but occasionally echoes the
HTML back (sometimes wrapped in a ```markdown fence). These helpers detect
that case and convert locally so that no raw markup is stored as text.
"""

import re

from bs4 import BeautifulSoup
from markdownify import markdownify as md

_HTML_TAG_PATTERN = re.compile(r"<[a-z][\s\S]*>", re.IGNORECASE)
_MARKDOWN_FENCE_OPEN = re.compile(r"^\s*```(?:markdown|md)?\s*\n?", re.IGNORECASE)
_MARKDOWN_FENCE_CLOSE = re.compile(r"\n?```\s*$")

# Dropped together with their contents before conversion
_NON_CONTENT_TAGS = ("script", "style", "noscript")


def is_html(text: str) -> bool:
    """Return True if the string contains an HTML tag."""
    if not text:
        return False
    return bool(_HTML_TAG_PATTERN.search(text))


def convert_html_to_markdown(html: str) -> str:
    """Convert an HTML fragment into Markdown.

    Args:
        html: HTML fragment

    Returns:
        Markdown text, empty string for empty input
    """
    if not html:
        return ""
    soup = BeautifulSoup(html, "html.parser")
    for node in soup(_NON_CONTENT_TAGS):
        node.decompose()

    markdown = md(str(soup), heading_style="ATX", bullets="-")
    markdown = re.sub(r"[ \t]+\n", "\n", markdown)
    markdown = re.sub(r"\n{3,}", "\n\n", markdown)
    return markdown.strip()


def fix_markdown_content(content: str) -> str:
    """Normalize an AI reply into Markdown.

    - strips a wrapping ```markdown fence
    - converts the body locally if it is still HTML
    - otherwise returns the text unchanged (trimmed)
    """
    if not content:
        return ""
    cleaned = content.strip()
    if cleaned.startswith("```"):
        cleaned = _MARKDOWN_FENCE_OPEN.sub("", cleaned, count=1)
        cleaned = _MARKDOWN_FENCE_CLOSE.sub("", cleaned, count=1).strip()
    if is_html(cleaned):
        return convert_html_to_markdown(cleaned)
    return cleaned
