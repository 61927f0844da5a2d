"""Cleanup of the description fragment scraped from a detail page."""

import re

# Boilerplate appended by the source site to every article.
LEGAL_NOTICE_TEXT = (
    "声明：本站所有文章，如无特殊说明或标注，均为本站原创发布。"
    "任何个人或组织，在未征得本站同意时，禁止复制、盗用、采集、发布本站内容到任何网站、书籍等各类媒体平台。"
    "如若本站内容侵犯了原著者的合法权益，可联系我们进行处理。"
)

_LEGAL_NOTICE_PATTERN = re.compile(
    r"<p[^>]*>.*?本站所有文章.*?原创发布.*?进行处理.*?</p>",
    re.IGNORECASE | re.DOTALL,
)

# Table-of-contents widget injected by a WordPress plugin
_TOC_STRICT_PATTERN = re.compile(
    r"<div\s+class=[\"']lwptoc[^\"']*[\"'][^>]*>[\s\S]*?</div>",
    re.IGNORECASE,
)
_TOC_PARTIAL_PATTERN = re.compile(
    r"<div[^>]*lwptoc[^>]*>[\s\S]*?</div>",
    re.IGNORECASE,
)


def strip_legal_notice(html: str) -> str:
    """Remove the site's legal notice.

    The exact notice string is removed when present; otherwise a loose
    paragraph regex matching the same notice is tried.
    """
    if not html:
        return html
    if LEGAL_NOTICE_TEXT in html:
        return html.replace(LEGAL_NOTICE_TEXT, "", 1)
    return _LEGAL_NOTICE_PATTERN.sub("", html, count=1)


def strip_toc_widget(html: str) -> str:
    """Remove the embedded table-of-contents widget.

    A strict class-attribute match is tried first, then any div whose
    attributes mention the widget class.
    """
    if not html:
        return html
    if _TOC_STRICT_PATTERN.search(html):
        return _TOC_STRICT_PATTERN.sub("", html)
    return _TOC_PARTIAL_PATTERN.sub("", html)


def clean_description_html(html: str) -> str:
    """Apply all description cleanups in order."""
    return strip_toc_widget(strip_legal_notice(html)).strip() if html else ""
