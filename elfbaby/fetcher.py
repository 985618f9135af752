"""HTTP fetching for partner sites."""

import time
from typing import Dict, Optional

import requests

from elfbaby.config import (
    HEADERS,
    MAX_FETCH_ATTEMPTS,
    REQUEST_TIMEOUT,
    RETRY_DELAY_STEP,
    RETRY_STATUS_CODES,
)
from elfbaby.logging_config import get_logger, log_scrape_event
from elfbaby.url_utils import URLValidationError, ensure_scheme, validate_url

__all__ = [
    "FetchError",
    "RateLimitedError",
    "create_session",
    "fetch_html",
]

logger = get_logger("fetcher")


class FetchError(ValueError):
    """A page could not be fetched."""


class RateLimitedError(FetchError):
    """The site kept answering 429 after every retry."""


_sessions: Dict[str, requests.Session] = {}


def create_session(headers: Optional[Dict[str, str]] = None) -> requests.Session:
    """A requests Session carrying the given headers (default: HEADERS)."""
    session = requests.Session()
    session.headers.update(headers or HEADERS)
    return session


def _get_session(headers: Optional[Dict[str, str]]) -> requests.Session:
    key = repr(sorted((headers or HEADERS).items()))
    if key not in _sessions:
        _sessions[key] = create_session(headers)
    return _sessions[key]


def fetch_html(
    url: str,
    session: Optional[requests.Session] = None,
    headers: Optional[Dict[str, str]] = None,
    attempts: int = MAX_FETCH_ATTEMPTS,
) -> str:
    """GET a page, retrying only when rate limited.

    Attempt n (n >= 2) waits ``n * RETRY_DELAY_STEP`` seconds first. Any
    status other than 429 fails immediately.

    Args:
        url: Page URL; a bare domain gets https:// prepended
        session: Session to use (default: shared session for ``headers``)
        headers: Header profile for the shared session
        attempts: Total number of attempts

    Returns:
        Response body as text

    Raises:
        RateLimitedError: If every attempt returned 429
        FetchError: On an invalid URL, a non-2xx status or a network error
    """
    try:
        url = validate_url(ensure_scheme(url))
    except URLValidationError as e:
        raise FetchError(f"Invalid URL: {e}") from e

    sess = session or _get_session(headers)
    logger.info(f"Fetching: {url}")

    for attempt in range(1, attempts + 1):
        if attempt > 1:
            delay = attempt * RETRY_DELAY_STEP
            logger.info(f"  Waiting {delay:.0f}s before retry {attempt}/{attempts}")
            time.sleep(delay)

        try:
            resp = sess.get(url, timeout=REQUEST_TIMEOUT)
        except requests.exceptions.RequestException as e:
            logger.error(f"Request error fetching {url}: {e}")
            raise FetchError(f"Failed to fetch {url}: {e}") from e

        if resp.status_code in RETRY_STATUS_CODES:
            log_scrape_event("fetch_retry", {
                "message": f"Rate limited ({resp.status_code}) on {url}",
                "url": url,
                "attempt": attempt,
            }, logger_name="fetcher")
            continue

        if not resp.ok:
            raise FetchError(f"HTTP error {resp.status_code} {resp.reason} fetching {url}")

        return str(resp.text)

    raise RateLimitedError(
        f"HTTP 429: {url} is rate limiting requests after {attempts} attempts.\n"
        "Wait a few minutes, switch networks, or import product URLs manually:\n"
        "  elfbaby new-products <shop> <product-url-1> <product-url-2> ..."
    )
