"""elf.baby gift catalog tooling."""

__version__ = "0.1.0"

# Re-export main components for convenient imports
from elfbaby.catalog import filter_products, get_active_products, search_products
from elfbaby.config import DB_PATH
from elfbaby.db import find_shop, get_stats, init_db
from elfbaby.models import Category, Product, ProductThread, Shop

__all__ = [
    # Version
    "__version__",
    # Config
    "DB_PATH",
    # Models
    "Shop",
    "Category",
    "Product",
    "ProductThread",
    # Database
    "init_db",
    "find_shop",
    "get_stats",
    # Storefront
    "get_active_products",
    "search_products",
    "filter_products",
]
