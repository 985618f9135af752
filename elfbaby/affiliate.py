"""Amazon Associates affiliate links via a real Firefox session.

The SiteStripe "Get Link" button only appears for a logged-in Associates
account, so the browser reuses the local Firefox profile.
"""

import sys
import time
from pathlib import Path
from typing import Optional

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeout
from playwright.sync_api import sync_playwright

from elfbaby.config import BROWSER_TIMEOUT_MS
from elfbaby.logging_config import get_logger

__all__ = [
    "find_firefox_profile",
    "extract_affiliate_link",
]

logger = get_logger("affiliate")

GET_LINK_BUTTON = "#amzn-ss-get-link-button"
GET_LINK_FALLBACK_SELECTORS = [
    'button:has-text("Get Link")',
    'a:has-text("Get Link")',
    'button[id*="get-link"]',
    'a[id*="get-link"]',
    'button[aria-label*="Get Link"]',
    'a[aria-label*="Get Link"]',
    ".amzn-ss-text-shortlink-button",
    "#amzn-ss-text-shortlink-button",
]
SHORTLINK_TEXTAREA = "#amzn-ss-text-shortlink-textarea"
SHORTLINK_FALLBACK_SELECTORS = [
    SHORTLINK_TEXTAREA,
    'textarea[id*="shortlink"]',
    'textarea[id*="affiliate"]',
    'textarea[class*="shortlink"]',
]

SETTLE_SECONDS = 3
MANUAL_LOGIN_WAIT_SECONDS = 60


def find_firefox_profile(home: Optional[Path] = None, platform: str = sys.platform) -> Optional[Path]:
    """The default Firefox profile directory, or the first one found."""
    home = home or Path.home()
    if platform == "darwin":
        base = home / "Library" / "Application Support" / "Firefox" / "Profiles"
    else:
        base = home / ".mozilla" / "firefox"

    if not base.is_dir():
        logger.warning(f"Firefox profiles directory not found: {base}")
        return None

    profiles = sorted(p for p in base.iterdir() if p.is_dir())
    for profile in profiles:
        if ".default" in profile.name:
            return profile
    return profiles[0] if profiles else None


def _click_get_link(page) -> bool:
    try:
        button = page.locator(GET_LINK_BUTTON)
        if button.is_visible(timeout=5000):
            button.click()
            time.sleep(SETTLE_SECONDS)
            return True
    except PlaywrightError:
        logger.debug("Get Link button not found by id, trying fallbacks")

    for selector in GET_LINK_FALLBACK_SELECTORS:
        try:
            button = page.locator(selector).first
            if button.is_visible(timeout=2000):
                logger.info(f"  Found Get Link button: {selector}")
                button.click()
                time.sleep(SETTLE_SECONDS)
                return True
        except PlaywrightError:
            continue
    return False


def _read_shortlink(page) -> Optional[str]:
    for selector in SHORTLINK_FALLBACK_SELECTORS:
        element = page.query_selector(selector)
        if element:
            value = (element.input_value() or "").strip()
            if value:
                return value
    return None


def extract_affiliate_link(
    product_url: str,
    profile_dir: Optional[Path] = None,
    manual_wait_seconds: int = MANUAL_LOGIN_WAIT_SECONDS,
) -> Optional[str]:
    """Open the product page in Firefox and read the SiteStripe short link.

    If the link does not appear the browser stays open for
    ``manual_wait_seconds`` so the user can log in, then checks once more.

    Returns:
        The affiliate link, or None if it could not be obtained
    """
    profile_dir = profile_dir or find_firefox_profile()
    logger.info(f"  Opening product page in Firefox (profile: {profile_dir or 'temporary'})")

    try:
        with sync_playwright() as p:
            context = p.firefox.launch_persistent_context(
                str(profile_dir) if profile_dir else "",
                headless=False,
                no_viewport=True,
                timeout=BROWSER_TIMEOUT_MS,
            )
            try:
                page = context.pages[0] if context.pages else context.new_page()
                try:
                    page.goto(product_url, wait_until="networkidle", timeout=BROWSER_TIMEOUT_MS)
                except PlaywrightTimeout as e:
                    # the page is often usable even if the network never settles
                    logger.warning(f"  Navigation error: {e}")
                time.sleep(SETTLE_SECONDS)

                if not _click_get_link(page):
                    logger.warning("  Get Link button not found; it may need a manual click")

                try:
                    page.wait_for_selector(SHORTLINK_TEXTAREA, timeout=BROWSER_TIMEOUT_MS)
                except PlaywrightTimeout:
                    link = _read_shortlink(page)
                    if link:
                        return link
                    logger.warning(
                        "  Affiliate link not found. Log into Amazon Associates in the open "
                        f"browser; checking again in {manual_wait_seconds}s"
                    )
                    time.sleep(manual_wait_seconds)

                link = _read_shortlink(page)
                if not link:
                    logger.warning("  Affiliate link textarea empty")
                return link
            finally:
                context.close()
    except PlaywrightError as e:
        logger.error(f"  Error extracting affiliate link: {e}")
        return None
