"""Unit parsing for free-text duration and file-size fields.

The source site writes course length as e.g. "(3小时45分钟)" or "30分钟" and
file size as "1.5 GB" / "512MB". These helpers turn them into the canonical
numbers stored on catalog entries. All of them are pure: unmatched input
yields 0 rather than raising.
"""

import re

# Ordered: the first pattern that matches wins.
_DURATION_PATTERNS = [
    (re.compile(r"\(\s*(\d+)\s*小时\s*(\d+)\s*分钟\s*\)", re.IGNORECASE), "hours_minutes"),
    (re.compile(r"(\d+)\s*小时\s*(\d+)\s*分钟", re.IGNORECASE), "hours_minutes"),
    (re.compile(r"(\d+)\s*小时", re.IGNORECASE), "hours"),
    (re.compile(r"(\d+)\s*分钟", re.IGNORECASE), "minutes"),
]

_NUMBER = r"(\d+(?:\.\d+)?)"

_SIZE_PATTERNS = [
    (re.compile(_NUMBER + r"\s*GB", re.IGNORECASE), 1.0),
    (re.compile(_NUMBER + r"\s*MB", re.IGNORECASE), 1024.0),
    (re.compile(_NUMBER + r"\s*KB", re.IGNORECASE), 1024.0 * 1024.0),
]


def parse_duration_minutes(text) -> int:
    """Convert a course-length string into whole minutes.

    Handles:
    - "(3小时45分钟)" -> 225
    - "3小时45分钟" -> 225
    - "2小时" -> 120
    - "30分钟" -> 30

    Args:
        text: Raw duration text from the detail page

    Returns:
        Duration in minutes, or 0 if nothing matched
    """
    if not text:
        return 0

    for pattern, kind in _DURATION_PATTERNS:
        match = pattern.search(text)
        if not match:
            continue
        if kind == "hours_minutes":
            return int(match.group(1)) * 60 + int(match.group(2))
        if kind == "hours":
            return int(match.group(1)) * 60
        return int(match.group(1))

    return 0


def parse_size_gb(text) -> float:
    """Convert a file-size string into gigabytes.

    Handles:
    - "1.5 GB" -> 1.5
    - "512 MB" -> 0.5
    - "1024 KB" -> 0.0009765625

    Args:
        text: Raw size text from the detail page

    Returns:
        Size in GB, or 0.0 if nothing matched
    """
    if not text:
        return 0.0

    cleaned = text.replace(",", "")
    for pattern, divisor in _SIZE_PATTERNS:
        match = pattern.search(cleaned)
        if match:
            return float(match.group(1)) / divisor

    return 0.0
