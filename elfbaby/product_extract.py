"""Heuristic extraction of product data from arbitrary shop pages.

Shops share no markup, so each field is tried against an ordered list of
patterns and the first plausible hit wins.
"""

import html
import re
from typing import List, Optional

from bs4 import BeautifulSoup

from elfbaby.config import MAX_PRODUCT_IMAGES
from elfbaby.models import ExtractedProduct
from elfbaby.text_utils import collapse_whitespace, extract_body_text, parse_price
from elfbaby.url_utils import absolutize_url

__all__ = [
    "clean_product_title",
    "extract_product_title",
    "extract_price",
    "extract_images",
    "extract_meta_description",
    "extract_product_info",
    "find_product_urls",
]

TITLE_PATTERNS = [
    re.compile(r"<title[^>]*>([^<]+)</title>", re.IGNORECASE),
    re.compile(r"<h1[^>]*>([^<]+)</h1>", re.IGNORECASE),
    re.compile(r'<meta[^>]*property="og:title"[^>]*content="([^"]+)"', re.IGNORECASE),
]

# " | Shop Name", " - Shop Name"; a hyphen inside a word is not a separator
TITLE_SUFFIX_RE = re.compile(r"\s*(?:\||\s[-–—])\s*[^|]+$")
TITLE_BRANDING_RE = re.compile(r"\s*-\s*(YourSurprise|Shop|Store|Gifts?)$", re.IGNORECASE)

PRICE_PATTERNS = [
    re.compile(r"""<meta[^>]*property=["']og:price:amount["'][^>]*content=["']([^"']+)["']""", re.IGNORECASE),
    re.compile(r"""<meta[^>]*property=["']product:price:amount["'][^>]*content=["']([^"']+)["']""", re.IGNORECASE),
    re.compile(r""""price":\s*["']?([0-9]+\.?[0-9]*)["']?""", re.IGNORECASE),
    re.compile(r"""<[^>]*class=["'][^"']*price[^"']*["'][^>]*>[\s\S]*?([0-9]+[.,][0-9]{2})""", re.IGNORECASE),
    re.compile(r"""(?:€|EUR|USD|\$)\s*([0-9]+[.,][0-9]{2})""", re.IGNORECASE),
    re.compile(r"""([0-9]+[.,][0-9]{2})\s*(?:€|EUR|USD|\$)""", re.IGNORECASE),
    re.compile(r"""data-price=["']([0-9]+\.?[0-9]*)["']""", re.IGNORECASE),
    re.compile(r"""data-product-price=["']([0-9]+\.?[0-9]*)["']""", re.IGNORECASE),
]
PRICE_TEXT_FALLBACK_RE = re.compile(r"price[\s:]*([0-9]+[.,][0-9]{2})", re.IGNORECASE)

IMAGE_PATTERNS = [
    re.compile(r"""<img[^>]*\ssrc=["']([^"']+)["'][^>]*>""", re.IGNORECASE),
    re.compile(r"""<img[^>]*data-src=["']([^"']+)["'][^>]*>""", re.IGNORECASE),
    re.compile(r"""<img[^>]*data-lazy-src=["']([^"']+)["'][^>]*>""", re.IGNORECASE),
    re.compile(r"""<img[^>]*data-original=["']([^"']+)["'][^>]*>""", re.IGNORECASE),
    re.compile(r"""<img[^>]*srcset=["']([^"']+)["'][^>]*>""", re.IGNORECASE),
    re.compile(r"""style=["'][^"']*background-image:\s*url\(["']?([^"')]+)["']?\)""", re.IGNORECASE),
    re.compile(r"""<meta[^>]*property=["']og:image["'][^>]*content=["']([^"']+)["']""", re.IGNORECASE),
    re.compile(r'''"image":\s*["']([^"']+)["']''', re.IGNORECASE),
    re.compile(r'''"images":\s*\[([^\]]+)\]''', re.IGNORECASE),
    re.compile(r"""<div[^>]*class="[^"]*gallery[^"]*"[^>]*>[\s\S]*?<img[^>]*src=["']([^"']+)["']""", re.IGNORECASE),
    re.compile(r"""<div[^>]*class="[^"]*product[^"]*image[^"]*"[^>]*>[\s\S]*?<img[^>]*src=["']([^"']+)["']""", re.IGNORECASE),
]
CDN_IMAGE_RE = re.compile(r"""https?://[^"'\s<>]+\.(?:jpg|jpeg|png|webp|gif)(?:\?[^"'\s<>]*)?""", re.IGNORECASE)

IMAGE_SKIP_RE = re.compile(
    r"logo|icon|avatar|profile|banner|header|footer|social|favicon|\.svg|flag|country|payment|badge|button",
    re.IGNORECASE,
)
IMAGE_CDN_RE = re.compile(r"(static|cdn|media|img|galleryimage|assets)\.", re.IGNORECASE)
IMAGE_KEYWORD_RE = re.compile(r"(product|gallery|mug|gift|item)", re.IGNORECASE)
IMAGE_FILE_RE = re.compile(r"\.(jpg|jpeg|png|webp|gif)(\?|$)", re.IGNORECASE)
THUMBNAIL_RE = re.compile(r"_thumb|width=(58|100|150|200)\b", re.IGNORECASE)
VIDEO_THUMB_RE = re.compile(r"play-thumb|play-button|video.*thumb", re.IGNORECASE)

PRODUCT_LINK_PATTERNS = [
    re.compile(r'<a[^>]*href="([^"]*/product[^"]*)"[^>]*>', re.IGNORECASE),
    re.compile(r'<a[^>]*href="([^"]*/p/[^"]*)"[^>]*>', re.IGNORECASE),
    re.compile(r'<a[^>]*href="([^"]*/item[^"]*)"[^>]*>', re.IGNORECASE),
]


def clean_product_title(title: str) -> str:
    """Drop a trailing " | Shop" / " - Shop" suffix and stock branding."""
    title = html.unescape(title).strip()
    title = TITLE_SUFFIX_RE.sub("", title).strip()
    return TITLE_BRANDING_RE.sub("", title).strip()


def extract_product_title(page_html: str) -> Optional[str]:
    for pattern in TITLE_PATTERNS:
        match = pattern.search(page_html)
        if match:
            title = clean_product_title(collapse_whitespace(match.group(1)))
            return title or None
    return None


def extract_price(page_html: str) -> Optional[float]:
    """First positive price found by the ordered patterns, else the text fallback."""
    for pattern in PRICE_PATTERNS:
        match = pattern.search(page_html)
        if match:
            price = parse_price(match.group(1))
            if price is not None:
                return price

    match = PRICE_TEXT_FALLBACK_RE.search(page_html)
    if match:
        return parse_price(match.group(1))
    return None


def _accept_image(raw_url: str, page_url: str) -> Optional[str]:
    """Absolute URL if the candidate looks like a product photo, else None."""
    if not raw_url:
        return None
    candidate = html.unescape(raw_url.strip())
    if not candidate or IMAGE_SKIP_RE.search(candidate):
        return None

    full_url = absolutize_url(candidate, page_url)

    from_cdn = IMAGE_CDN_RE.search(full_url) is not None
    has_keyword = IMAGE_KEYWORD_RE.search(full_url) is not None
    is_image = IMAGE_FILE_RE.search(full_url) is not None
    if (from_cdn and (has_keyword or is_image)) or (has_keyword and is_image):
        return full_url
    return None


def _split_candidates(value: str) -> List[str]:
    # srcset and JSON arrays carry several comma-separated URLs
    if "," not in value:
        return [value]
    parts = []
    for part in value.split(","):
        part = part.strip().strip("\"'")
        if part:
            parts.append(part.split()[0])
    return parts


def extract_images(page_html: str, page_url: str) -> List[str]:
    """Ordered, de-duplicated product image URLs (at most MAX_PRODUCT_IMAGES).

    Thumbnails and video play buttons are dropped unless nothing else is left.
    """
    images: List[str] = []

    def add(raw: str) -> None:
        accepted = _accept_image(raw, page_url)
        if accepted and accepted not in images:
            images.append(accepted)

    for pattern in IMAGE_PATTERNS:
        for match in pattern.finditer(page_html):
            for candidate in _split_candidates(match.group(1)):
                add(candidate)

    for match in CDN_IMAGE_RE.finditer(page_html):
        add(match.group(0))

    full_size = [
        url for url in images
        if not THUMBNAIL_RE.search(url) and not VIDEO_THUMB_RE.search(url)
    ]
    return (full_size or images)[:MAX_PRODUCT_IMAGES]


def extract_meta_description(page_html: str) -> Optional[str]:
    soup = BeautifulSoup(page_html, "html.parser")
    tag = soup.find("meta", attrs={"name": "description"}) or soup.find(
        "meta", attrs={"property": "og:description"}
    )
    if tag and tag.get("content"):
        text = collapse_whitespace(tag["content"])
        return text or None
    return None


def extract_product_info(page_html: str, url: str) -> ExtractedProduct:
    """Run every product heuristic over a product page."""
    return ExtractedProduct(
        url=url,
        title=extract_product_title(page_html),
        price=extract_price(page_html),
        images=extract_images(page_html, url),
        meta_description=extract_meta_description(page_html),
        text_content=extract_body_text(page_html),
    )


def find_product_urls(page_html: str, base_url: str, limit: int) -> List[str]:
    """Product-looking links (/product, /p/, /item) on a listing page."""
    urls: List[str] = []
    for pattern in PRODUCT_LINK_PATTERNS:
        for match in pattern.finditer(page_html):
            link = absolutize_url(html.unescape(match.group(1)), base_url)
            if link not in urls:
                urls.append(link)
            if len(urls) >= limit:
                return urls
    return urls
