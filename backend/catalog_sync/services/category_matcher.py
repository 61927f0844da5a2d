"""Map external category titles onto the internal category list.

External titles look like "设计-平面设计与插画" (menu parent and child joined
with a hyphen). Matching goes through tiers, first hit wins:

1. exact       -- equal after removing whitespace and lower-casing
2. compound    -- the hyphen-joined title (with or without the hyphen)
                  contains, or is contained in, an internal name
3. segment     -- the first segment equals or is contained in a name; else
                  the second segment is a substring of a name
4. fuzzy       -- longest containment either way
5. default     -- first name containing a default keyword, else the first
                  category

Pure functions; results depend only on the inputs and their order.
"""

import re
from typing import Optional, Protocol, Sequence, Tuple

from catalog_sync.config import settings

TIER_EXACT = "exact"
TIER_COMPOUND = "compound"
TIER_SEGMENT = "segment"
TIER_FUZZY = "fuzzy"
TIER_DEFAULT = "default"

_WHITESPACE = re.compile(r"\s+")


class NamedCategory(Protocol):
    id: int
    name: str


def normalize_name(name: str) -> str:
    return _WHITESPACE.sub("", name or "").lower()


def _contains_either_way(a: str, b: str) -> bool:
    if not a or not b:
        return False
    return a in b or b in a


def match_category_with_tier(
    external_title: str,
    categories: Sequence[NamedCategory],
    default_keywords: Optional[Sequence[str]] = None,
) -> Tuple[Optional[int], Optional[str]]:
    """Match an external title and report which tier matched.

    Args:
        external_title: External category title
        categories: Internal categories, in the order they should be tried
        default_keywords: Keywords for the default tier, defaults to
            DEFAULT_CATEGORY_KEYWORDS

    Returns:
        Tuple of (category id, tier name), (None, None) without categories
    """
    if not categories:
        return None, None

    keywords = settings.get_default_category_keywords() if default_keywords is None else tuple(default_keywords)
    title = normalize_name(external_title)
    names = [(category, normalize_name(category.name)) for category in categories]

    if title:
        # 1. exact
        for category, name in names:
            if name == title:
                return category.id, TIER_EXACT

        parts = [part.strip() for part in external_title.split("-")]

        # 2. compound
        if len(parts) >= 2:
            joined = normalize_name("-".join(parts))
            joined_no_hyphen = normalize_name("".join(parts))
            for category, name in names:
                if name in (joined, joined_no_hyphen) or _contains_either_way(name, joined):
                    return category.id, TIER_COMPOUND

        # 3. segment
        # One direction only (name contains the segment); a short name inside
        # the segment is left to the fuzzy tier. Existing assignments rely on it.
        first = normalize_name(parts[0])
        for category, name in names:
            if first and first in name:
                return category.id, TIER_SEGMENT
        if len(parts) >= 2:
            second = normalize_name(parts[1])
            for category, name in names:
                if second and second in name:
                    return category.id, TIER_SEGMENT

        # 4. fuzzy
        best_id, best_score = None, 0
        for category, name in names:
            score = 0
            if name and title in name:
                score = len(title)
            elif name and name in title:
                score = len(name)
            if score > best_score:
                best_id, best_score = category.id, score
        if best_id is not None:
            return best_id, TIER_FUZZY

    # 5. default
    for category in categories:
        if any(keyword in category.name for keyword in keywords):
            return category.id, TIER_DEFAULT
    return categories[0].id, TIER_DEFAULT


def match_category(
    external_title: str,
    categories: Sequence[NamedCategory],
    default_keywords: Optional[Sequence[str]] = None,
) -> Optional[int]:
    """Return the id of the best internal category for an external title."""
    category_id, _ = match_category_with_tier(external_title, categories, default_keywords)
    return category_id
