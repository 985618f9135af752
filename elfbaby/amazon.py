"""Amazon search URLs and product listing extraction."""

import html
import re
from typing import List, Optional, Sequence, Set
from urllib.parse import quote

from elfbaby.config import AMAZON_BASE_URL, AMAZON_HEADERS
from elfbaby.fetcher import fetch_html
from elfbaby.logging_config import get_logger
from elfbaby.models import AmazonListing
from elfbaby.url_utils import canonical_amazon_url, extract_asin, strip_query

__all__ = [
    "DEFAULT_LISTING_TITLE",
    "get_bestseller_url",
    "get_search_url",
    "fetch_amazon_page",
    "extract_listing_title",
    "extract_product_listings",
]

logger = get_logger("amazon")

DEFAULT_LISTING_TITLE = "Amazon Product"
TITLE_CONTEXT_CHARS = 500

# characters left unescaped in the search query, as browsers do
SEARCH_QUERY_SAFE = "-_.!~*'()"

AGE_TO_BESTSELLER_CATEGORY = {
    "0 to 12 months": "baby-products",
    "0-12 months": "baby-products",
    "0-12": "baby-products",
}

LISTING_LINK_PATTERNS = [
    re.compile(r'<a[^>]*href="([^"]*/dp/[A-Z0-9]{10}[^"]*)"[^>]*>', re.IGNORECASE),
    re.compile(r'<a[^>]*href="([^"]*/gp/product/[A-Z0-9]{10}[^"]*)"[^>]*>', re.IGNORECASE),
    re.compile(
        r'<div[^>]*class="[^"]*zg-item[^"]*"[^>]*>[\s\S]*?<a[^>]*href="([^"]*/dp/[A-Z0-9]{10}[^"]*)"[^>]*>',
        re.IGNORECASE,
    ),
]
ANY_DP_LINK_RE = re.compile(r'href="([^"]*/dp/[A-Z0-9]{10}[^"]*)"', re.IGNORECASE)

# Ordered title heuristics; the first one matching the link's context wins
LINK_TEXT_RE = re.compile(r">([^<]{10,150})<")
TITLE_CONTEXT_PATTERNS = [
    re.compile(r"""(?:alt|aria-label|title)=["']([^"']{10,150})["']""", re.IGNORECASE),
    re.compile(r'<span[^>]*class="[^"]*(?:text|title|name)[^"]*"[^>]*>([^<]{10,150})</span>', re.IGNORECASE),
    re.compile(r'<div[^>]*class="[^"]*p13n-sc-truncate[^"]*"[^>]*>([^<]{10,150})</div>', re.IGNORECASE),
    re.compile(
        r'<h2[^>]*class="[^"]*a-text-normal[^"]*"[^>]*>[\s\S]*?<span[^>]*>([^<]{10,150})</span>',
        re.IGNORECASE,
    ),
    re.compile(r'<span[^>]*class="[^"]*a-text-normal[^"]*"[^>]*>([^<]{10,150})</span>', re.IGNORECASE),
]


def get_bestseller_url(
    age_group: Optional[str] = None,
    category: Optional[str] = None,
    keyword: Optional[str] = None,
) -> str:
    """Bestseller list URL; toy keywords and unknown ages fall back to baby products."""
    if category:
        return f"{AMAZON_BASE_URL}/gp/bestsellers/{category}/"
    if keyword and "toy" in keyword.lower():
        return f"{AMAZON_BASE_URL}/gp/bestsellers/baby-products/"
    slug = AGE_TO_BESTSELLER_CATEGORY.get((age_group or "").lower(), "baby-products")
    return f"{AMAZON_BASE_URL}/gp/bestsellers/{slug}/"


def get_search_url(
    keyword: str,
    category: Optional[str] = None,
    excluded_asins: Sequence[str] = (),
    page: int = 1,
) -> str:
    """Search URL; excluded ASINs are appended to the query as ``-ASIN`` terms."""
    query = keyword
    if excluded_asins:
        query += " " + " ".join(f"-{asin}" for asin in excluded_asins)

    url = f"{AMAZON_BASE_URL}/s?k={quote(query, safe=SEARCH_QUERY_SAFE)}"
    if category:
        url += f"&i={category}"
    if page > 1:
        url += f"&page={page}"
    return url


def fetch_amazon_page(url: str) -> str:
    """Fetch a search or bestseller page with browser-like headers."""
    return fetch_html(url, headers=AMAZON_HEADERS)


def _clean_title(raw: str) -> str:
    return html.unescape(re.sub(r"\s+", " ", raw.strip()))


def extract_listing_title(page_html: str, start: int, end: int) -> str:
    """Best-guess title for the link tag spanning ``page_html[start:end]``."""
    # anchor text directly after the opening tag
    match = LINK_TEXT_RE.match(page_html, end - 1, end + 152)
    if match and len(match.group(1).strip()) > 10:
        return _clean_title(match.group(1))

    context = page_html[max(0, start - TITLE_CONTEXT_CHARS):end + TITLE_CONTEXT_CHARS]
    for pattern in TITLE_CONTEXT_PATTERNS:
        match = pattern.search(context)
        if match and len(match.group(1).strip()) > 10:
            return _clean_title(match.group(1))
    return DEFAULT_LISTING_TITLE


def _absolute(url: str) -> str:
    url = strip_query(html.unescape(url))
    if not url.startswith("http"):
        url = f"{AMAZON_BASE_URL}{url}"
    return url


def extract_product_listings(
    page_html: str,
    limit: int = 3,
    processed: Optional[Set[str]] = None,
) -> List[AmazonListing]:
    """Product links on a search or bestseller page, as /dp/ASIN URLs.

    URLs already in ``processed`` (checklist entries) are skipped. When the
    structured patterns yield fewer than ``limit`` products, any remaining
    /dp/ link on the page is taken with a placeholder title.
    """
    processed = processed or set()
    found: Set[str] = set()
    listings: List[AmazonListing] = []

    for pattern in LISTING_LINK_PATTERNS:
        for match in pattern.finditer(page_html):
            asin = extract_asin(_absolute(match.group(1)), strict=False)
            if not asin:
                continue
            url = canonical_amazon_url(asin)
            if url in processed or url in found:
                logger.debug(f"Skipping already seen product: {url}")
                continue
            found.add(url)

            title = extract_listing_title(page_html, match.start(), match.end())
            listings.append(AmazonListing(title=title, url=url, rank=len(listings) + 1))
            if len(listings) >= limit:
                return listings

    for match in ANY_DP_LINK_RE.finditer(page_html):
        asin = extract_asin(_absolute(match.group(1)))
        if not asin:
            continue
        url = canonical_amazon_url(asin)
        if url in processed or url in found:
            continue
        found.add(url)
        listings.append(AmazonListing(title=DEFAULT_LISTING_TITLE, url=url, rank=len(listings) + 1))
        if len(listings) >= limit:
            break

    return listings[:limit]
