"""Assign catalog categories and age filters to extracted products."""

from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from elfbaby.config import AGE_FILTERS

__all__ = [
    "AGE_KEYWORDS",
    "match_categories",
    "determine_age_filters",
]

# filter tag -> keywords that imply it
AGE_KEYWORDS: List[Tuple[str, Tuple[str, ...]]] = [
    ("0 to 12 months", ("baby", "newborn", "0-12")),
    ("1 - 3 years", ("toddler", "1-3", "1 to 3")),
    ("3 - 5 years", ("preschool", "3-5", "3 to 5")),
    ("5 - 7 years", ("child", "kid", "5-7")),
    ("13 - 17 years", ("teen", "13-17")),
    ("Adults", ("adult", "18+")),
]


def _search_text(title: Optional[str], text_content: str) -> str:
    return f"{title or ''} {text_content or ''}".lower()


def match_categories(
    title: Optional[str],
    text_content: str,
    categories: Iterable[Dict[str, Any]],
) -> List[str]:
    """Ids of categories whose title occurs in the product text.

    A category also matches when its title contains the first 20 characters
    of the product text, which catches short titles like "Teddy bear".
    """
    search_text = _search_text(title, text_content)
    prefix = search_text[:20]
    matched: List[str] = []
    for category in categories:
        category_title = category["title"].lower()
        if category_title in search_text or (prefix.strip() and prefix in category_title):
            if category["id"] not in matched:
                matched.append(category["id"])
    return matched


def determine_age_filters(
    title: Optional[str],
    text_content: str,
    available_filters: Optional[Sequence[str]] = None,
) -> List[str]:
    """Age filter tags implied by keywords, restricted to ``available_filters``."""
    allowed = list(available_filters) if available_filters else list(AGE_FILTERS)
    search_text = _search_text(title, text_content)
    return [
        tag for tag, keywords in AGE_KEYWORDS
        if tag in allowed and any(keyword in search_text for keyword in keywords)
    ]
