"""Text helpers shared by the extractors and scripts."""

import html
import re
from typing import Optional

from bs4 import BeautifulSoup

from elfbaby.config import TEXT_CONTENT_LIMIT

__all__ = [
    "generate_slug",
    "collapse_whitespace",
    "strip_tags",
    "extract_body_text",
    "parse_price",
]


def generate_slug(title: str) -> str:
    """URL slug: lowercase ASCII word characters separated by single hyphens."""
    slug = title.lower().strip()
    slug = re.sub(r"[^\w\s-]", "", slug, flags=re.ASCII)
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")


def collapse_whitespace(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip()


def strip_tags(markup: str) -> str:
    """Remove tags and decode entities from an HTML fragment."""
    return html.unescape(re.sub(r"<[^>]*>", "", markup)).strip()


def extract_body_text(page_html: str, limit: int = TEXT_CONTENT_LIMIT) -> str:
    """Visible body text with scripts and styles removed, capped at ``limit``."""
    soup = BeautifulSoup(page_html, "html.parser")
    body = soup.body
    if body is None:
        return ""
    for tag in body.find_all(["script", "style", "noscript"]):
        tag.decompose()
    return collapse_whitespace(body.get_text(" "))[:limit]


def parse_price(raw: str) -> Optional[float]:
    """Parse "12,99" / "12.99" / "1,299.00" into a positive float, else None."""
    try:
        raw = raw.strip()
        if "," in raw and "." in raw:
            raw = raw.replace(",", "")
        price = float(raw.replace(",", ".", 1))
    except (ValueError, AttributeError):
        return None
    return price if price > 0 else None
