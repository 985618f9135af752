"""Heuristic extraction of shop details from a homepage."""

import re
from typing import List, Optional

from bs4 import BeautifulSoup

from elfbaby.config import DEFAULT_MARKETS, MARKET_KEYWORDS
from elfbaby.models import ExtractedShopInfo
from elfbaby.text_utils import collapse_whitespace, extract_body_text, strip_tags
from elfbaby.url_utils import absolutize_url, extract_domain

__all__ = [
    "extract_shop_title",
    "extract_logo",
    "extract_categories",
    "extract_shipping_info",
    "extract_markets",
    "extract_shop_info",
]

# Ordered: an explicit logo image beats a favicon
LOGO_PATTERNS = [
    re.compile(r'<img[^>]*class="[^"]*logo[^"]*"[^>]*src="([^"]+)"', re.IGNORECASE),
    re.compile(r'<img[^>]*src="([^"]*logo[^"]*)"[^>]*>', re.IGNORECASE),
    re.compile(r'<link[^>]*rel="icon"[^>]*href="([^"]+)"', re.IGNORECASE),
    re.compile(r'<link[^>]*rel="shortcut icon"[^>]*href="([^"]+)"', re.IGNORECASE),
]

CATEGORY_PATTERNS = [
    re.compile(r'<a[^>]*href="[^"]*categor[^"]*"[^>]*>([^<]+)</a>', re.IGNORECASE),
    re.compile(r'<a[^>]*class="[^"]*categor[^"]*"[^>]*>([^<]+)</a>', re.IGNORECASE),
    re.compile(r"<nav[^>]*>([\s\S]*?)</nav>", re.IGNORECASE),
]

MAX_SHOP_CATEGORIES = 10

SHIPPING_LINK_RE = re.compile(r'<a[^>]*href="[^"]*shipping[^"]*"[^>]*>([^<]+)</a>', re.IGNORECASE)
FREE_SHIPPING_RE = re.compile(r"free shipping", re.IGNORECASE)


def extract_shop_title(page_html: str) -> Optional[str]:
    soup = BeautifulSoup(page_html, "html.parser")
    if soup.title and soup.title.string:
        title = collapse_whitespace(soup.title.string)
        return title or None
    return None


def extract_logo(page_html: str, page_url: str) -> Optional[str]:
    """First logo-looking image or icon link, as an absolute URL."""
    for pattern in LOGO_PATTERNS:
        match = pattern.search(page_html)
        if match:
            return absolutize_url(match.group(1), page_url)
    return None


def extract_categories(page_html: str) -> List[str]:
    """Up to ten category-like link texts, in page order."""
    found: List[str] = []
    for pattern in CATEGORY_PATTERNS:
        for match in pattern.finditer(page_html):
            text = collapse_whitespace(strip_tags(match.group(1)))
            if 2 < len(text) < 50 and text not in found:
                found.append(text)
    return found[:MAX_SHOP_CATEGORIES]


def extract_shipping_info(page_html: str) -> str:
    info: List[str] = []
    if SHIPPING_LINK_RE.search(page_html):
        info.append("Shipping information available on website")
    if FREE_SHIPPING_RE.search(page_html):
        info.append("Free shipping available")
    if not info:
        return "Shipping information: Please check website for details"
    return ". ".join(info)


def extract_markets(page_html: str) -> List[str]:
    """Markets mentioned on the page, defaulting to DEFAULT_MARKETS.

    Keywords must match as whole words so that e.g. "uk" is not found
    inside "bukowski".
    """
    lower = page_html.lower()
    markets: List[str] = []
    for keyword, market in MARKET_KEYWORDS.items():
        if re.search(rf"\b{re.escape(keyword)}\b", lower) and market not in markets:
            markets.append(market)
    return markets or list(DEFAULT_MARKETS)


def extract_shop_info(page_html: str, url: str) -> ExtractedShopInfo:
    """Run every shop heuristic over a homepage."""
    return ExtractedShopInfo(
        domain=extract_domain(url),
        title=extract_shop_title(page_html),
        logo=extract_logo(page_html, url),
        categories=extract_categories(page_html),
        shipping=extract_shipping_info(page_html),
        markets=extract_markets(page_html),
        text_content=extract_body_text(page_html),
    )
