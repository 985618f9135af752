"""Storefront view of the catalog: display records, search and filters."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional

from elfbaby import db
from elfbaby.config import NEW_PRODUCT_DAYS, PLACEHOLDER_IMAGE
from elfbaby.logging_config import get_logger

__all__ = [
    "CATEGORIES",
    "AGE_GROUPS",
    "DisplayProduct",
    "to_display_product",
    "get_active_products",
    "get_product_by_slug",
    "search_products",
    "filter_products",
]

logger = get_logger("catalog")

ALL = "all"

CATEGORIES = [
    {"id": "all", "label": "All Gifts"},
    {"id": "toys", "label": "Toys"},
    {"id": "clothing", "label": "Clothing"},
    {"id": "nursery", "label": "Nursery"},
    {"id": "mom", "label": "For Mom"},
    {"id": "dad", "label": "For Dad"},
]

AGE_GROUPS = [
    {"id": "all", "label": "All Ages"},
    {"id": "0-12m", "label": "0-12 Months"},
    {"id": "1-3y", "label": "1-3 Years"},
    {"id": "3-5y", "label": "3-5 Years"},
    {"id": "5-12y", "label": "5-12 Years"},
    {"id": "adults", "label": "Adults"},
]


@dataclass
class DisplayProduct:
    """A product as shown on listing and detail pages."""

    id: str
    slug: str
    title: str
    price: float
    image: str
    category: str
    age_group: str
    url: str
    is_new: bool = False
    price_discount: Optional[float] = None
    original_price: Optional[float] = None
    description: str = ""
    images: List[str] = field(default_factory=list)
    specifications: Dict[str, Any] = field(default_factory=dict)


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00")).replace(tzinfo=None)
    except ValueError:
        return None


def _display_price(price: Any, specifications: Dict[str, Any]) -> float:
    # a zero or missing price falls back to the price stored in specifications
    for candidate in (price, specifications.get("price")):
        try:
            value = float(candidate)
        except (TypeError, ValueError):
            continue
        if value:
            return value
    return 0.0


def to_display_product(row: Dict[str, Any], now: Optional[datetime] = None) -> DisplayProduct:
    """Turn a products row into a display record.

    Timestamps are compared as naive UTC, which is what SQLite stores.
    """
    images = row.get("images") or []
    filters = row.get("filters") or {}
    specifications = row.get("specifications") or {}

    created_at = _parse_timestamp(row.get("created_at"))
    cutoff = (now or datetime.now(timezone.utc).replace(tzinfo=None)) - timedelta(days=NEW_PRODUCT_DAYS)

    return DisplayProduct(
        id=row["id"],
        slug=row["slug"],
        title=row["title"],
        price=_display_price(row.get("price"), specifications),
        image=images[0] if images else PLACEHOLDER_IMAGE,
        category=filters.get("category") or ALL,
        age_group=filters.get("ageGroup") or ALL,
        url=row.get("url") or "",
        is_new=created_at is not None and created_at > cutoff,
        price_discount=row.get("price_discount"),
        original_price=specifications.get("originalPrice"),
        description=row.get("description") or "",
        images=list(images),
        specifications=specifications,
    )


def get_active_products(db_path: str = db.DEFAULT_DB_PATH) -> List[DisplayProduct]:
    """Active products, newest first."""
    rows = db.get_active_products(db_path)
    if not rows:
        logger.warning("No products found in database")
    return [to_display_product(row) for row in rows]


def get_product_by_slug(slug: str, db_path: str = db.DEFAULT_DB_PATH) -> Optional[DisplayProduct]:
    row = db.find_product_by_slug(db_path, slug)
    return to_display_product(row) if row else None


def search_products(products: Iterable[DisplayProduct], query: str) -> List[DisplayProduct]:
    """Case-insensitive title substring search; a blank query matches everything."""
    products = list(products)
    query = (query or "").strip().lower()
    if not query:
        return products
    return [p for p in products if query in p.title.lower()]


def filter_products(
    products: Iterable[DisplayProduct],
    category: str = ALL,
    age_group: str = ALL,
) -> List[DisplayProduct]:
    """Products in ``category`` suitable for ``age_group``.

    Products tagged for all ages pass any age filter.
    """
    return [
        p for p in products
        if (category == ALL or p.category == category)
        and (age_group == ALL or p.age_group == age_group or p.age_group == ALL)
    ]
