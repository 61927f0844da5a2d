"""Scraper utilities for unit parsing, HTML cleanup and retries."""

from .units import parse_duration_minutes, parse_size_gb
from .html_cleaning import (
    LEGAL_NOTICE_TEXT,
    strip_legal_notice,
    strip_toc_widget,
    clean_description_html,
)
from .markdown import convert_html_to_markdown, fix_markdown_content, is_html
from .retry import http_retry, RETRYABLE_HTTP_ERRORS


__all__ = [
    # Units
    "parse_duration_minutes",
    "parse_size_gb",
    # HTML cleanup
    "LEGAL_NOTICE_TEXT",
    "strip_legal_notice",
    "strip_toc_widget",
    "clean_description_html",
    # Markdown
    "convert_html_to_markdown",
    "fix_markdown_content",
    "is_html",
    # Retry decorators
    "http_retry",
    "RETRYABLE_HTTP_ERRORS",
]
