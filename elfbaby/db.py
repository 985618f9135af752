"""SQLite database schema and helpers for the catalog."""

import json
import re
import sqlite3
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Generator, Iterable, List, Optional

from elfbaby.config import DB_PATH
from elfbaby.models import Category, Product, ProductThread, Shop
from elfbaby.url_utils import extract_domain

__all__ = [
    "DEFAULT_DB_PATH",
    "ShopNotFoundError",
    "DuplicateProductError",
    "get_connection",
    "init_db",
    "insert_shop",
    "find_shop",
    "find_shop_by_mid",
    "find_shop_by_domain",
    "get_shop",
    "set_shop_mid",
    "activate_shop",
    "list_shops",
    "insert_category",
    "find_category",
    "list_categories",
    "category_path",
    "resolve_category_ids",
    "insert_product",
    "get_product",
    "find_product_by_slug",
    "update_product_images",
    "link_product_categories",
    "get_product_category_titles",
    "insert_thread",
    "count_threads",
    "get_products_without_threads",
    "get_active_products",
    "get_stats",
]

DEFAULT_DB_PATH = DB_PATH

UUID_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
    re.IGNORECASE,
)


class ShopNotFoundError(LookupError):
    """No active shop matches a domain, id or title."""


class DuplicateProductError(Exception):
    """A product with the same slug already exists for the shop."""


def _new_id() -> str:
    return str(uuid.uuid4())


@contextmanager
def get_connection(db_path: str = DEFAULT_DB_PATH) -> Generator[sqlite3.Connection, None, None]:
    """Context manager for database connections."""
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    try:
        yield conn
    finally:
        conn.close()


def init_db(db_path: str = DEFAULT_DB_PATH) -> None:
    """Initialize the database schema."""
    with get_connection(db_path) as conn:
        cursor = conn.cursor()

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS shops (
                id TEXT PRIMARY KEY,
                title TEXT NOT NULL,
                description TEXT,
                logo TEXT,
                domain TEXT UNIQUE NOT NULL,
                markets TEXT,
                category TEXT,
                shipping TEXT,
                active INTEGER NOT NULL DEFAULT 1,
                rakuten_mid TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        # Two levels only; enforced in insert_category
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS categories (
                id TEXT PRIMARY KEY,
                title TEXT NOT NULL,
                slug TEXT NOT NULL,
                parent_id TEXT,
                FOREIGN KEY (parent_id) REFERENCES categories(id) ON DELETE CASCADE
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS products (
                id TEXT PRIMARY KEY,
                shop_id TEXT NOT NULL,
                title TEXT NOT NULL,
                slug TEXT NOT NULL,
                url TEXT NOT NULL,
                price REAL,
                price_discount REAL,
                description TEXT,
                specifications TEXT,
                images TEXT,
                filters TEXT,
                active INTEGER NOT NULL DEFAULT 1,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                UNIQUE (shop_id, slug),
                FOREIGN KEY (shop_id) REFERENCES shops(id) ON DELETE CASCADE
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS product_categories (
                product_id TEXT NOT NULL,
                category_id TEXT NOT NULL,
                PRIMARY KEY (product_id, category_id),
                FOREIGN KEY (product_id) REFERENCES products(id) ON DELETE CASCADE,
                FOREIGN KEY (category_id) REFERENCES categories(id) ON DELETE CASCADE
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS product_threads (
                id TEXT PRIMARY KEY,
                product_id TEXT NOT NULL,
                text TEXT NOT NULL,
                keywords TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                FOREIGN KEY (product_id) REFERENCES products(id) ON DELETE CASCADE
            )
        """)

        cursor.execute("CREATE INDEX IF NOT EXISTS idx_shops_rakuten_mid ON shops(rakuten_mid)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_categories_slug ON categories(slug)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_products_shop_id ON products(shop_id)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_products_slug ON products(slug)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_product_threads_product_id ON product_threads(product_id)")

        conn.commit()


# Shops

def _shop_from_row(row: sqlite3.Row) -> Dict[str, Any]:
    shop = dict(row)
    shop["markets"] = json.loads(shop["markets"]) if shop.get("markets") else []
    shop["shipping"] = json.loads(shop["shipping"]) if shop.get("shipping") else {}
    shop["active"] = bool(shop["active"])
    return shop


def insert_shop(db_path: str, shop: Shop) -> str:
    """Insert a shop, returning its ID.

    Raises:
        ValueError: If a shop with the same domain exists
    """
    shop_id = shop.id or _new_id()
    with get_connection(db_path) as conn:
        try:
            conn.execute("""
                INSERT INTO shops (id, title, description, logo, domain, markets,
                                   category, shipping, active, rakuten_mid)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                shop_id, shop.title, shop.description, shop.logo, shop.domain,
                json.dumps(shop.markets), shop.category,
                json.dumps(shop.shipping, ensure_ascii=False),
                int(shop.active), shop.rakuten_mid,
            ))
        except sqlite3.IntegrityError as e:
            raise ValueError(f"Shop with domain {shop.domain} already exists") from e
        conn.commit()
    return shop_id


def get_shop(db_path: str, shop_id: str) -> Optional[Dict[str, Any]]:
    with get_connection(db_path) as conn:
        row = conn.execute("SELECT * FROM shops WHERE id = ?", (shop_id,)).fetchone()
        return _shop_from_row(row) if row else None


def find_shop(db_path: str, identifier: str) -> Dict[str, Any]:
    """Resolve an active shop by domain, then by UUID id, then by title.

    The title match is a case-insensitive substring; the first shop in
    title order wins when several match.

    Raises:
        ShopNotFoundError: If nothing matches
    """
    identifier = identifier.strip()
    if not identifier:
        raise ShopNotFoundError("Shop identifier is empty")
    with get_connection(db_path) as conn:
        row = conn.execute(
            "SELECT * FROM shops WHERE domain = ? AND active = 1",
            (extract_domain(identifier),),
        ).fetchone()

        if row is None and UUID_RE.match(identifier):
            row = conn.execute(
                "SELECT * FROM shops WHERE id = ? AND active = 1", (identifier,)
            ).fetchone()

        if row is None:
            row = conn.execute(
                "SELECT * FROM shops WHERE active = 1 AND instr(LOWER(title), ?) > 0 "
                "ORDER BY title LIMIT 1",
                (identifier.lower(),),
            ).fetchone()

    if row is None:
        raise ShopNotFoundError(f"Shop not found: {identifier}")
    return _shop_from_row(row)


def find_shop_by_mid(db_path: str, mid: str) -> Optional[Dict[str, Any]]:
    with get_connection(db_path) as conn:
        row = conn.execute(
            "SELECT * FROM shops WHERE rakuten_mid = ? LIMIT 1", (str(mid),)
        ).fetchone()
        return _shop_from_row(row) if row else None


def find_shop_by_domain(db_path: str, domain: str) -> Optional[Dict[str, Any]]:
    """Any shop (active or not) registered for a domain."""
    with get_connection(db_path) as conn:
        row = conn.execute(
            "SELECT * FROM shops WHERE domain = ?", (extract_domain(domain),)
        ).fetchone()
        return _shop_from_row(row) if row else None


def set_shop_mid(db_path: str, shop_id: str, mid: str) -> None:
    with get_connection(db_path) as conn:
        conn.execute("UPDATE shops SET rakuten_mid = ? WHERE id = ?", (str(mid), shop_id))
        conn.commit()


def activate_shop(db_path: str, shop_id: str) -> None:
    with get_connection(db_path) as conn:
        conn.execute("UPDATE shops SET active = 1 WHERE id = ?", (shop_id,))
        conn.commit()


def list_shops(db_path: str = DEFAULT_DB_PATH, active_only: bool = False) -> List[Dict[str, Any]]:
    """All shops ordered by title."""
    query = "SELECT * FROM shops"
    if active_only:
        query += " WHERE active = 1"
    query += " ORDER BY title"
    with get_connection(db_path) as conn:
        return [_shop_from_row(row) for row in conn.execute(query).fetchall()]


# Categories

def insert_category(db_path: str, category: Category) -> str:
    """Insert a category, returning its ID.

    Raises:
        ValueError: If the parent does not exist or is itself a child
    """
    category_id = category.id or _new_id()
    with get_connection(db_path) as conn:
        if category.parent_id:
            parent = conn.execute(
                "SELECT parent_id FROM categories WHERE id = ?", (category.parent_id,)
            ).fetchone()
            if parent is None:
                raise ValueError(f"Parent category not found: {category.parent_id}")
            if parent["parent_id"]:
                raise ValueError("Categories can only be nested two levels deep")

        conn.execute(
            "INSERT INTO categories (id, title, slug, parent_id) VALUES (?, ?, ?, ?)",
            (category_id, category.title, category.slug, category.parent_id),
        )
        conn.commit()
    return category_id


def find_category(db_path: str, slug: str, parent_id: Optional[str] = None) -> Optional[Dict[str, Any]]:
    """Category with ``slug`` under ``parent_id`` (top level when None)."""
    with get_connection(db_path) as conn:
        if parent_id is None:
            row = conn.execute(
                "SELECT * FROM categories WHERE slug = ? AND parent_id IS NULL", (slug,)
            ).fetchone()
        else:
            row = conn.execute(
                "SELECT * FROM categories WHERE slug = ? AND parent_id = ?", (slug, parent_id)
            ).fetchone()
        return dict(row) if row else None


def list_categories(db_path: str = DEFAULT_DB_PATH) -> List[Dict[str, Any]]:
    with get_connection(db_path) as conn:
        rows = conn.execute("SELECT * FROM categories ORDER BY title").fetchall()
        return [dict(row) for row in rows]


def category_path(db_path: str, category_id: str) -> str:
    """Full path ("Parent > Child") for a subcategory, the bare title otherwise."""
    with get_connection(db_path) as conn:
        row = conn.execute("""
            SELECT c.title AS title, p.title AS parent_title
            FROM categories c
            LEFT JOIN categories p ON c.parent_id = p.id
            WHERE c.id = ?
        """, (category_id,)).fetchone()
    if row is None:
        raise LookupError(f"Category not found: {category_id}")
    if row["parent_title"]:
        return f"{row['parent_title']} > {row['title']}"
    return row["title"]


def resolve_category_ids(db_path: str, references: Iterable[str]) -> List[str]:
    """Map category ids, slugs or titles to ids; unknown references are dropped."""
    resolved: List[str] = []
    with get_connection(db_path) as conn:
        for ref in references:
            ref = str(ref).strip()
            if not ref:
                continue
            row = conn.execute(
                """
                SELECT id FROM categories
                WHERE id = ? OR slug = ? OR LOWER(title) = LOWER(?)
                ORDER BY (id = ?) DESC, (slug = ?) DESC
                LIMIT 1
                """,
                (ref, ref, ref, ref, ref),
            ).fetchone()
            if row and row["id"] not in resolved:
                resolved.append(row["id"])
    return resolved


# Products

def _product_from_row(row: sqlite3.Row) -> Dict[str, Any]:
    product = dict(row)
    product["specifications"] = json.loads(product["specifications"]) if product.get("specifications") else {}
    product["images"] = json.loads(product["images"]) if product.get("images") else []
    product["filters"] = json.loads(product["filters"]) if product.get("filters") else {}
    product["active"] = bool(product["active"])
    return product


def insert_product(db_path: str, product: Product) -> str:
    """Insert a product, returning its ID.

    Raises:
        DuplicateProductError: If the shop already has a product with this slug
    """
    product_id = product.id or _new_id()
    with get_connection(db_path) as conn:
        try:
            conn.execute("""
                INSERT INTO products (id, shop_id, title, slug, url, price, description,
                                      specifications, images, filters, active)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                product_id, product.shop_id, product.title, product.slug, product.url,
                product.price, product.description,
                json.dumps(product.specifications, ensure_ascii=False),
                json.dumps(product.images, ensure_ascii=False),
                json.dumps(product.filters, ensure_ascii=False),
                int(product.active),
            ))
        except sqlite3.IntegrityError as e:
            if "UNIQUE" in str(e):
                raise DuplicateProductError(
                    f"Product '{product.slug}' already exists for shop {product.shop_id}"
                ) from e
            raise
        conn.commit()
    return product_id


def get_product(db_path: str, product_id: str) -> Optional[Dict[str, Any]]:
    with get_connection(db_path) as conn:
        row = conn.execute("SELECT * FROM products WHERE id = ?", (product_id,)).fetchone()
        return _product_from_row(row) if row else None


def find_product_by_slug(db_path: str, slug: str) -> Optional[Dict[str, Any]]:
    """Active product with the given slug."""
    with get_connection(db_path) as conn:
        row = conn.execute(
            "SELECT * FROM products WHERE slug = ? AND active = 1 LIMIT 1", (slug,)
        ).fetchone()
        return _product_from_row(row) if row else None


def update_product_images(db_path: str, product_id: str, images: List[str]) -> bool:
    """Replace a product's image list; False if the product does not exist."""
    with get_connection(db_path) as conn:
        cursor = conn.execute(
            "UPDATE products SET images = ?, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
            (json.dumps(images, ensure_ascii=False), product_id),
        )
        conn.commit()
        return cursor.rowcount > 0


def link_product_categories(db_path: str, product_id: str, category_ids: Iterable[str]) -> int:
    """Link a product to categories.

    Idempotent; duplicate ids and existing links are skipped.

    Returns:
        Number of new links
    """
    unique_ids = list(dict.fromkeys(category_ids))
    if not unique_ids:
        return 0
    with get_connection(db_path) as conn:
        added = 0
        for category_id in unique_ids:
            cursor = conn.execute(
                "INSERT OR IGNORE INTO product_categories (product_id, category_id) VALUES (?, ?)",
                (product_id, category_id),
            )
            added += cursor.rowcount
        conn.commit()
        return added


def get_product_category_titles(db_path: str, product_id: str) -> List[str]:
    with get_connection(db_path) as conn:
        rows = conn.execute("""
            SELECT c.title FROM product_categories pc
            JOIN categories c ON pc.category_id = c.id
            WHERE pc.product_id = ?
            ORDER BY c.title
        """, (product_id,)).fetchall()
        return [row["title"] for row in rows]


def get_active_products(db_path: str = DEFAULT_DB_PATH) -> List[Dict[str, Any]]:
    """Active products, newest first."""
    with get_connection(db_path) as conn:
        rows = conn.execute(
            "SELECT * FROM products WHERE active = 1 ORDER BY created_at DESC, title"
        ).fetchall()
        return [_product_from_row(row) for row in rows]


# Threads

def insert_thread(db_path: str, thread: ProductThread) -> str:
    thread_id = thread.id or _new_id()
    with get_connection(db_path) as conn:
        conn.execute(
            "INSERT INTO product_threads (id, product_id, text, keywords) VALUES (?, ?, ?, ?)",
            (thread_id, thread.product_id, thread.text, thread.keywords),
        )
        conn.commit()
    return thread_id


def count_threads(db_path: str, product_id: Optional[str] = None) -> int:
    with get_connection(db_path) as conn:
        if product_id:
            row = conn.execute(
                "SELECT COUNT(*) AS count FROM product_threads WHERE product_id = ?", (product_id,)
            ).fetchone()
        else:
            row = conn.execute("SELECT COUNT(*) AS count FROM product_threads").fetchone()
        return row["count"]


def get_products_without_threads(db_path: str, shop_id: Optional[str] = None) -> List[Dict[str, Any]]:
    """Products with no thread yet, optionally for one shop."""
    query = """
        SELECT p.* FROM products p
        WHERE NOT EXISTS (SELECT 1 FROM product_threads t WHERE t.product_id = p.id)
    """
    params: tuple = ()
    if shop_id:
        query += " AND p.shop_id = ?"
        params = (shop_id,)
    query += " ORDER BY p.created_at, p.title"
    with get_connection(db_path) as conn:
        return [_product_from_row(row) for row in conn.execute(query, params).fetchall()]


def get_stats(db_path: str = DEFAULT_DB_PATH) -> Dict[str, int]:
    """Row counts for the stats command."""
    with get_connection(db_path) as conn:
        stats = {}
        for key, query in (
            ("shops", "SELECT COUNT(*) AS count FROM shops"),
            ("active_shops", "SELECT COUNT(*) AS count FROM shops WHERE active = 1"),
            ("categories", "SELECT COUNT(*) AS count FROM categories"),
            ("products", "SELECT COUNT(*) AS count FROM products"),
            ("active_products", "SELECT COUNT(*) AS count FROM products WHERE active = 1"),
            ("threads", "SELECT COUNT(*) AS count FROM product_threads"),
            ("products_without_threads", """
                SELECT COUNT(*) AS count FROM products p
                WHERE NOT EXISTS (SELECT 1 FROM product_threads t WHERE t.product_id = p.id)
            """),
        ):
            stats[key] = conn.execute(query).fetchone()["count"]
        return stats
