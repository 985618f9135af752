"""Data models for shops, categories, products and threads."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

__all__ = [
    "Shop",
    "Category",
    "Product",
    "ProductThread",
    "ExtractedShopInfo",
    "ExtractedProduct",
    "AmazonListing",
]


@dataclass
class Shop:
    """A partner store products are linked to."""

    title: str
    domain: str
    description: str = ""
    logo: str = ""
    markets: List[str] = field(default_factory=list)
    category: str = "General"
    shipping: Dict[str, Any] = field(default_factory=dict)
    active: bool = True
    rakuten_mid: Optional[str] = None
    id: Optional[str] = None


@dataclass
class Category:
    """A catalog category; parent_id is set for second-level categories."""

    title: str
    slug: str
    parent_id: Optional[str] = None
    id: Optional[str] = None


@dataclass
class Product:
    """A catalog product ready to be inserted.

    ``categories`` holds category ids, slugs or titles; they are resolved
    against the categories table when the product is imported.
    """

    shop_id: str
    title: str
    slug: str
    url: str
    price: Optional[float] = None
    description: str = ""
    specifications: Dict[str, Any] = field(default_factory=dict)
    images: List[str] = field(default_factory=list)
    filters: Dict[str, Any] = field(default_factory=dict)
    categories: List[str] = field(default_factory=list)
    # body text kept for matching and the temp JSON, never stored
    text_content: str = ""
    active: bool = True
    id: Optional[str] = None


@dataclass
class ProductThread:
    """A social caption posted with a product link."""

    product_id: str
    text: str
    keywords: str = ""
    id: Optional[str] = None


@dataclass
class ExtractedShopInfo:
    """Everything new-shop can read off a homepage."""

    domain: str
    title: Optional[str] = None
    logo: Optional[str] = None
    categories: List[str] = field(default_factory=list)
    shipping: str = ""
    markets: List[str] = field(default_factory=list)
    text_content: str = ""


@dataclass
class ExtractedProduct:
    """Raw heuristic output for a single product page."""

    url: str
    title: Optional[str] = None
    price: Optional[float] = None
    images: List[str] = field(default_factory=list)
    meta_description: Optional[str] = None
    text_content: str = ""


@dataclass
class AmazonListing:
    """A product link found on an Amazon search or bestseller page."""

    title: str
    url: str
    rank: int
