"""URL normalization and validation helpers.

Partner sites are arbitrary, so unlike a single-site scraper there is no
domain whitelist; validation only rejects unusable or dangerous URLs.
"""

import re
from typing import Optional
from urllib.parse import urljoin, urlparse

__all__ = [
    "URLValidationError",
    "sanitize_url",
    "ensure_scheme",
    "validate_url",
    "extract_domain",
    "site_origin",
    "absolutize_url",
    "strip_query",
    "extract_asin",
    "canonical_amazon_url",
]


class URLValidationError(Exception):
    """Raised when URL validation fails."""


DANGEROUS_SCHEMES = {"javascript", "data", "vbscript", "file"}

SUSPICIOUS_PATTERNS = [
    r"\.\./",
    r"%2e%2e",
    r"<script",
    r"javascript:",
]

# /dp/ASIN or /gp/product/ASIN
STRICT_ASIN_RE = re.compile(r"/(?:dp|gp/product)/([A-Z0-9]{10})(?:[/?]|$)")
# any 10-char uppercase path segment
LOOSE_ASIN_RE = re.compile(r"/([A-Z0-9]{10})(?:[/?]|$)")


def sanitize_url(url: str) -> str:
    """Strip whitespace, control characters and null bytes."""
    if not url:
        return ""
    url = url.strip()
    url = re.sub(r"[\x00-\x1f\x7f-\x9f]", "", url)
    return url.replace("%00", "")


def ensure_scheme(url: str) -> str:
    """Prefix bare domains ("shop.com/x") with https://."""
    url = sanitize_url(url)
    if url.startswith("//"):
        return f"https:{url}"
    if not re.match(r"^https?://", url, re.IGNORECASE):
        return f"https://{url}"
    return url


def validate_url(url: str, require_https: bool = False) -> str:
    """Validate a URL before fetching it.

    Raises:
        URLValidationError: If the URL is empty, has no host, uses a
            non-HTTP scheme, or contains a suspicious pattern
    """
    if not url:
        raise URLValidationError("URL is empty")

    url = sanitize_url(url)
    parsed = urlparse(url)

    scheme = parsed.scheme.lower()
    if scheme in DANGEROUS_SCHEMES:
        raise URLValidationError(f"Dangerous URL scheme: {scheme}")
    if require_https and scheme != "https":
        raise URLValidationError(f"URL must use HTTPS, got: {scheme}")
    if scheme not in ("http", "https"):
        raise URLValidationError(f"Invalid URL scheme: {scheme or '(none)'}")
    if not parsed.netloc:
        raise URLValidationError("URL has no domain")

    url_lower = url.lower()
    for pattern in SUSPICIOUS_PATTERNS:
        if re.search(pattern, url_lower):
            raise URLValidationError(f"URL contains suspicious pattern: {pattern}")

    return url


def extract_domain(url: str) -> str:
    """Return the host of a URL or bare domain without a leading "www."."""
    host = urlparse(ensure_scheme(url)).hostname
    if host:
        return re.sub(r"^www\.", "", host)
    stripped = re.sub(r"^https?://", "", url.strip())
    return re.sub(r"^www\.", "", stripped).split("/")[0]


def site_origin(url: str) -> str:
    """scheme://host[:port] of a URL."""
    parsed = urlparse(ensure_scheme(url))
    return f"{parsed.scheme}://{parsed.netloc}"


def absolutize_url(link: str, page_url: str) -> str:
    """Resolve a possibly relative or protocol-relative link against a page."""
    link = link.strip()
    if link.startswith(("http://", "https://")):
        return link
    if link.startswith("//"):
        return f"https:{link}"
    return urljoin(site_origin(page_url) + "/", link)


def strip_query(url: str) -> str:
    return url.split("?", 1)[0]


def extract_asin(url: str, strict: bool = True) -> Optional[str]:
    """Extract an Amazon ASIN from a product URL.

    Strict mode only accepts /dp/ and /gp/product/ paths; loose mode accepts
    any ten-character uppercase path segment.
    """
    pattern = STRICT_ASIN_RE if strict else LOOSE_ASIN_RE
    match = pattern.search(url)
    return match.group(1) if match else None


def canonical_amazon_url(asin: str) -> str:
    return f"https://www.amazon.com/dp/{asin}"
