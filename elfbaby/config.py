"""Configuration and constants for the catalog tooling."""

import os
from pathlib import Path
from typing import Dict, List

from dotenv import load_dotenv

__all__ = [
    "PROJECT_ROOT",
    "DB_PATH",
    "AGENT_DATA_DIR",
    "CATEGORIES_MD_PATH",
    "FILTERS_MD_PATH",
    "CHECKLIST_PATH",
    "PRODUCTS_TEMP_JSON",
    "HEADERS",
    "AMAZON_HEADERS",
    "REQUEST_TIMEOUT",
    "MAX_FETCH_ATTEMPTS",
    "RETRY_DELAY_STEP",
    "RETRY_STATUS_CODES",
    "MIN_DESCRIPTION_LENGTH",
    "API_MIN_DESCRIPTION_LENGTH",
    "DEFAULT_PRODUCT_LIMIT",
    "MAX_PRODUCT_IMAGES",
    "TEXT_CONTENT_LIMIT",
    "DEFAULT_MARKETS",
    "MARKET_KEYWORDS",
    "AGE_FILTERS",
    "RAKUTEN_BASE_URL",
    "RAKUTEN_CLIENT_ID",
    "RAKUTEN_CLIENT_SECRET",
    "RAKUTEN_TOKEN_TIMEOUT",
    "RAKUTEN_TOKEN_EXPIRY_MARGIN",
    "RAKUTEN_PAGE_SIZE",
    "AMAZON_BASE_URL",
    "AMAZON_SHOP_ID",
    "AMAZON_SEARCH_KEYWORDS",
    "AMAZON_MAX_PAGES_PER_KEYWORD",
    "AMAZON_DEFAULT_LIMIT",
    "AMAZON_CYCLE_DELAY",
    "BROWSER_TIMEOUT_MS",
    "PLACEHOLDER_IMAGE",
    "NEW_PRODUCT_DAYS",
]

PROJECT_ROOT = Path(__file__).parent.parent

# .env.local wins over .env
load_dotenv(dotenv_path=Path.cwd() / ".env.local")
load_dotenv(dotenv_path=Path.cwd() / ".env")

DB_PATH = os.getenv("ELFBABY_DB_PATH", "data/catalog.db")

# Markdown files shared with the curation workflow
AGENT_DATA_DIR = Path(os.getenv("ELFBABY_AGENT_DATA_DIR", "agents/data"))
CATEGORIES_MD_PATH = AGENT_DATA_DIR / "categories.md"
FILTERS_MD_PATH = AGENT_DATA_DIR / "filters.md"
CHECKLIST_PATH = AGENT_DATA_DIR / "amazon-bestsellers-checklist.md"
PRODUCTS_TEMP_JSON = "products-temp.json"

HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36",
}

# Amazon rejects bare clients, so mimic a full browser request
AMAZON_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": (
        "text/html,application/xhtml+xml,application/xml;q=0.9,"
        "image/avif,image/webp,image/apng,*/*;q=0.8"
    ),
    "Accept-Language": "en-US,en;q=0.9",
    "Accept-Encoding": "gzip, deflate",
    "Connection": "keep-alive",
    "Upgrade-Insecure-Requests": "1",
    "Sec-Fetch-Dest": "document",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Site": "none",
    "Cache-Control": "max-age=0",
}

REQUEST_TIMEOUT = 15

# Retry only on rate limiting, linear backoff: 2s, 4s, ...
MAX_FETCH_ATTEMPTS = 3
RETRY_DELAY_STEP = 2.0
RETRY_STATUS_CODES = {429}

# Products
MIN_DESCRIPTION_LENGTH = 100
API_MIN_DESCRIPTION_LENGTH = 10  # feed descriptions are short
DEFAULT_PRODUCT_LIMIT = 10
MAX_PRODUCT_IMAGES = 20
TEXT_CONTENT_LIMIT = 10000

# Shops
DEFAULT_MARKETS: List[str] = ["europe", "america"]
MARKET_KEYWORDS: Dict[str, str] = {
    "europe": "europe",
    "europa": "europe",
    "america": "america",
    "usa": "usa",
    "united states": "usa",
    "canada": "canada",
    "uk": "uk",
    "united kingdom": "uk",
    "latvia": "latvia",
    "lithuania": "lithuania",
    "estonia": "estonia",
}

# Age filter tags, used when filters.md is absent
AGE_FILTERS: List[str] = [
    "0 to 12 months",
    "1 - 3 years",
    "3 - 5 years",
    "5 - 7 years",
    "13 - 17 years",
    "Adults",
]

# Rakuten Advertising
RAKUTEN_BASE_URL = "https://api.linksynergy.com"
RAKUTEN_CLIENT_ID = os.getenv("RAKUTEN_CLIENT_ID")
RAKUTEN_CLIENT_SECRET = os.getenv("RAKUTEN_CLIENT_SECRET")
RAKUTEN_TOKEN_TIMEOUT = 30
RAKUTEN_TOKEN_EXPIRY_MARGIN = 3600  # refresh an hour early
RAKUTEN_PAGE_SIZE = 100

# Amazon
AMAZON_BASE_URL = "https://www.amazon.com"
AMAZON_SHOP_ID = os.getenv("AMAZON_SHOP_ID", "9f947e90-eae1-4651-ba9f-7f8174375be8")
AMAZON_SEARCH_KEYWORDS: List[str] = [
    "popular gifts for kids",
    "best selling toys",
    "popular baby products",
    "best gifts for children",
    "popular kids items",
    "best selling baby items",
    "popular children products",
    "best kids gifts",
    "popular baby gifts",
    "best selling children items",
    "popular household items",
    "best selling home products",
    "popular kitchen items",
    "best selling electronics",
    "popular gadgets",
    "best selling accessories",
    "popular health products",
    "best selling beauty items",
    "popular sports items",
    "best selling outdoor products",
]
AMAZON_MAX_PAGES_PER_KEYWORD = 10
AMAZON_DEFAULT_LIMIT = 3
AMAZON_CYCLE_DELAY = 2.0
BROWSER_TIMEOUT_MS = 60000

# Storefront
PLACEHOLDER_IMAGE = "/placeholder-product.jpg"
NEW_PRODUCT_DAYS = 30
