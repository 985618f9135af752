"""Catalog ingestion workflows.

Each public function backs one CLI sub-command. Per-item failures are
logged and skipped so that one bad page does not abort a batch.
"""

import json
import time
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from elfbaby import db
from elfbaby.affiliate import extract_affiliate_link
from elfbaby.agent_data import add_categories_to_file, read_available_filters
from elfbaby.amazon import (
    extract_product_listings,
    fetch_amazon_page,
    get_bestseller_url,
    get_search_url,
)
from elfbaby.checklist import append_to_checklist, is_processed, read_checklist
from elfbaby.config import (
    AMAZON_CYCLE_DELAY,
    AMAZON_DEFAULT_LIMIT,
    AMAZON_MAX_PAGES_PER_KEYWORD,
    AMAZON_SEARCH_KEYWORDS,
    AMAZON_SHOP_ID,
    API_MIN_DESCRIPTION_LENGTH,
    DEFAULT_MARKETS,
    DEFAULT_PRODUCT_LIMIT,
    MIN_DESCRIPTION_LENGTH,
    PRODUCTS_TEMP_JSON,
)
from elfbaby.fetcher import FetchError, RateLimitedError, fetch_html
from elfbaby.logging_config import get_logger, log_scrape_event
from elfbaby.matching import determine_age_filters, match_categories
from elfbaby.models import Category, Product, ProductThread, Shop
from elfbaby.product_extract import extract_product_info, find_product_urls
from elfbaby.rakuten import RakutenAPIClient, convert_rakuten_product, fallback_description
from elfbaby.shop_extract import extract_shop_info
from elfbaby.shutdown import shutdown_requested
from elfbaby.text_utils import generate_slug
from elfbaby.threads import generate_keywords, generate_thread_text, load_threads_json
from elfbaby.url_utils import ensure_scheme, extract_asin, extract_domain

__all__ = [
    "new_shop",
    "load_products_json",
    "extract_products",
    "write_products_temp",
    "import_product",
    "insert_products",
    "new_products",
    "parse_category_path",
    "new_categories",
    "new_product_threads",
    "generate_missing_threads",
    "find_or_create_amazon_shop",
    "amazon_bestsellers",
    "create_shop_from_rakuten",
    "rakuten_import",
    "fix_product_images",
    "format_category_paths",
    "list_shops",
    "list_categories",
    "show_stats",
]

logger = get_logger("pipelines")

PathLike = Union[str, Path]
Prompt = Callable[[str], str]

TEMP_TEXT_PREVIEW = 2000
SHOP_TEXT_PREVIEW = 2000
AMAZON_DESCRIPTION_PREVIEW = 1000
IMAGES_JSON_DIR = "tmp"


def _banner(title: str) -> None:
    print(f"\n{'=' * 80}")
    print(title)
    print("=" * 80)


# Shops

def new_shop(
    url: str,
    description: Optional[str] = None,
    db_path: str = db.DEFAULT_DB_PATH,
    categories_md_path: Optional[PathLike] = None,
) -> Optional[str]:
    """Analyse a shop homepage and, given a description, register the shop.

    Without a description the extracted information is printed so that one
    can be written, and nothing is stored.

    Returns:
        The new shop ID, or None when only the analysis was printed
    """
    url = ensure_scheme(url)
    logger.info(f"Analysing shop: {url}")
    page_html = fetch_html(url)
    info = extract_shop_info(page_html, url)

    if not description:
        _banner("Extracted shop information")
        print(json.dumps({
            "domain": info.domain,
            "title": info.title,
            "logo": info.logo,
            "categories": info.categories,
            "shipping": info.shipping,
            "markets": info.markets,
        }, indent=2, ensure_ascii=False))
        print(f"\nWebsite text content (first {SHOP_TEXT_PREVIEW} chars):")
        print(info.text_content[:SHOP_TEXT_PREVIEW])
        print("\nDescription not provided. Write one from the information above and run:")
        print(f'  elfbaby new-shop {url} "<description>"')
        return None

    if len(description) < MIN_DESCRIPTION_LENGTH:
        logger.warning(f"Description is shorter than recommended ({MIN_DESCRIPTION_LENGTH} chars)")

    if info.categories:
        add_categories_to_file(info.categories, categories_md_path)

    shop = Shop(
        title=info.title or "Unknown Shop",
        domain=info.domain or extract_domain(url),
        description=description,
        logo=info.logo or "",
        markets=info.markets or list(DEFAULT_MARKETS),
        category=info.categories[0] if info.categories else "General",
        shipping={"info": info.shipping or "Shipping information not available"},
    )
    db.init_db(db_path)
    shop_id = db.insert_shop(db_path, shop)
    log_scrape_event("shop_created", {
        "message": f"Created shop: {shop.title} ({shop.domain})",
        "shop_id": shop_id,
        "domain": shop.domain,
    }, logger_name="pipelines")
    return shop_id


# Products

def _parse_json_price(raw: Any) -> Optional[float]:
    if raw is None or raw == "":
        return None
    try:
        return float(raw)
    except (TypeError, ValueError):
        return None


def load_products_json(path: PathLike, shop_id: str) -> List[Product]:
    """Products from a JSON list (the products-temp.json format).

    Duplicate category references within a product are dropped.
    """
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(data, list):
        raise ValueError(f"Expected a JSON array of products in {path}")

    products = []
    for item in data:
        categories = [str(c) for c in item.get("categories") or []]
        unique = list(dict.fromkeys(categories))
        if len(unique) != len(categories):
            logger.warning(
                f"Product \"{item.get('title')}\": removed "
                f"{len(categories) - len(unique)} duplicate categories from JSON"
            )
        products.append(Product(
            shop_id=shop_id,
            title=item["title"],
            slug=item.get("slug") or generate_slug(item["title"]),
            url=item.get("url") or "",
            price=_parse_json_price(item.get("price")),
            description=item.get("description") or "",
            specifications=item.get("specifications") or {},
            images=item.get("images") or [],
            filters=item.get("filters") or {},
            categories=unique,
            text_content=item.get("textContent") or "",
        ))
    return products


def _product_from_page(
    url: str,
    page_html: str,
    shop_id: str,
    categories: Sequence[Dict[str, Any]],
    available_filters: Sequence[str],
) -> Optional[Product]:
    info = extract_product_info(page_html, url)
    if not info.title:
        logger.warning(f"Could not extract title from {url}, skipping")
        return None

    age_filters = determine_age_filters(info.title, info.text_content, available_filters)
    return Product(
        shop_id=shop_id,
        title=info.title,
        slug=generate_slug(info.title),
        url=url,
        price=info.price,
        images=info.images,
        filters={"age": age_filters} if age_filters else {},
        categories=match_categories(info.title, info.text_content, categories),
        text_content=info.text_content,
        description=info.meta_description or "",
    )


def extract_products(
    urls: Iterable[str],
    shop_id: str,
    categories: Sequence[Dict[str, Any]],
    available_filters: Sequence[str],
) -> List[Product]:
    """Fetch and extract each product page; failures are logged and skipped.

    The meta description is kept as a draft; imports still require a full
    description.
    """
    urls = list(urls)
    products = []
    for i, url in enumerate(urls, 1):
        logger.info(f"[{i}/{len(urls)}] Processing: {url}")
        try:
            product = _product_from_page(url, fetch_html(url), shop_id, categories, available_filters)
        except FetchError as e:
            log_scrape_event("product_error", {
                "message": f"Error processing product: {e}",
                "url": url,
            }, logger_name="pipelines")
            continue
        if product is None:
            continue

        products.append(product)
        price = f"{product.price:.2f}" if product.price is not None else "not found"
        logger.info(f"  Extracted: {product.title}")
        logger.info(
            f"  Price: {price} | Images: {len(product.images)} | "
            f"Categories: {len(product.categories)} | "
            f"Age filters: {', '.join(product.filters.get('age', [])) or 'none'}"
        )
    return products


def write_products_temp(products: Sequence[Product], path: PathLike = PRODUCTS_TEMP_JSON) -> Path:
    """Write products for description writing; ``description`` is left blank."""
    path = Path(path)
    payload = [
        {
            "title": p.title,
            "url": p.url,
            "slug": p.slug,
            "price": p.price,
            "images": p.images,
            "specifications": p.specifications,
            "filters": p.filters,
            "categories": p.categories,
            "textContent": p.text_content[:TEMP_TEXT_PREVIEW],
            "description": "",
        }
        for p in products
    ]
    path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
    return path


def import_product(
    db_path: str,
    product: Product,
    min_description_length: int = MIN_DESCRIPTION_LENGTH,
) -> Optional[str]:
    """Insert one product and link its categories.

    Products with a too-short description or an existing slug are skipped.

    Returns:
        The new product ID, or None if skipped
    """
    if len(product.description.strip()) < min_description_length:
        logger.warning(f"Product \"{product.title}\" missing description, skipping")
        return None

    try:
        product_id = db.insert_product(db_path, product)
    except db.DuplicateProductError:
        logger.warning(f"Product \"{product.title}\" already exists (slug: {product.slug})")
        return None

    category_ids = db.resolve_category_ids(db_path, product.categories)
    linked = db.link_product_categories(db_path, product_id, category_ids)
    log_scrape_event("product_inserted", {
        "message": f"Created product: {product.title} (ID: {product_id})",
        "product_id": product_id,
        "shop_id": product.shop_id,
        "slug": product.slug,
        "categories": linked,
    }, logger_name="pipelines")
    return product_id


def insert_products(
    db_path: str,
    products: Iterable[Product],
    min_description_length: int = MIN_DESCRIPTION_LENGTH,
) -> List[str]:
    """Import products, returning the IDs that were inserted."""
    inserted = []
    for product in products:
        product_id = import_product(db_path, product, min_description_length)
        if product_id:
            inserted.append(product_id)
            logger.info(f"  Thread needed: elfbaby new-product-threads {product_id}")
    return inserted


def new_products(
    shop_identifier: str,
    urls: Optional[Sequence[str]] = None,
    limit: int = DEFAULT_PRODUCT_LIMIT,
    from_json: Optional[PathLike] = None,
    with_descriptions: bool = False,
    db_path: str = db.DEFAULT_DB_PATH,
    temp_json_path: PathLike = PRODUCTS_TEMP_JSON,
    filters_md_path: Optional[PathLike] = None,
) -> List[str]:
    """Extract products for a shop, then either stage them or insert them.

    Products come from ``from_json``, from ``urls``, or from product links
    found on the shop homepage. Without descriptions (and without JSON) the
    extraction is written to ``temp_json_path`` for editing.

    Returns:
        IDs of inserted products (empty when only staging)

    Raises:
        ShopNotFoundError: If the shop cannot be resolved
    """
    db.init_db(db_path)
    shop = db.find_shop(db_path, shop_identifier)
    logger.info(f"Found shop: {shop['title']} ({shop['domain']})")

    if from_json:
        products = load_products_json(from_json, shop["id"])
        logger.info(f"Loaded {len(products)} products from {from_json}")
    else:
        urls = list(urls or [])
        if not urls:
            logger.info(f"Finding products (limit: {limit})...")
            homepage = f"https://{shop['domain']}"
            urls = find_product_urls(fetch_html(homepage), homepage, limit)
            logger.info(f"Found {len(urls)} product URLs")
        if not urls:
            logger.warning("No products found. Provide product URLs manually.")
            return []

        products = extract_products(
            urls,
            shop["id"],
            db.list_categories(db_path),
            read_available_filters(filters_md_path),
        )

    if not (with_descriptions or from_json):
        if products:
            path = write_products_temp(products, temp_json_path)
            _banner("Product information (for description writing)")
            for product in products:
                print(f"\nProduct: {product.title}")
                print(f"URL: {product.url}")
                print(f"Text content preview: {product.text_content[:500]}...")
            print(f"\nProduct data saved to: {path}")
            print("Add descriptions there, then run:")
            print(f"  elfbaby new-products {shop['domain']} --from-json {path}")
        return []

    return insert_products(db_path, products)


# Categories

def parse_category_path(entry: str) -> Tuple[Optional[str], str]:
    """Split "Parent > Child" into (parent, child); deeper paths keep first and last."""
    parts = [p.strip() for p in entry.strip().split(" > ")]
    if len(parts) >= 2:
        return parts[0], parts[-1]
    return None, parts[0]


def _find_or_create_parent(db_path: str, title: str) -> str:
    slug = generate_slug(title)
    existing = db.find_category(db_path, slug)
    if existing:
        return existing["id"]
    category_id = db.insert_category(db_path, Category(title=title, slug=slug))
    logger.info(f"Created parent category: {title} (ID: {category_id})")
    return category_id


def new_categories(db_path: str, entries: Sequence[str]) -> List[str]:
    """Create categories given as "Title" or "Parent > Child".

    Parents are created first. A category whose slug already exists under
    the same parent is skipped.

    Returns:
        IDs of the categories created (parents included)
    """
    db.init_db(db_path)
    parsed = [parse_category_path(e) for e in entries if e.strip()]
    created: List[str] = []

    parent_ids: Dict[str, str] = {}
    for parent, _ in parsed:
        if parent and parent not in parent_ids:
            existed = db.find_category(db_path, generate_slug(parent))
            parent_ids[parent] = _find_or_create_parent(db_path, parent)
            if not existed:
                created.append(parent_ids[parent])

    for parent, title in parsed:
        parent_id = parent_ids.get(parent) if parent else None
        slug = generate_slug(title)
        if db.find_category(db_path, slug, parent_id):
            logger.warning(f"Category already exists: {title}")
            continue
        category_id = db.insert_category(db_path, Category(title=title, slug=slug, parent_id=parent_id))
        created.append(category_id)
        path = f"{parent} > {title}" if parent else title
        logger.info(f"Created category: {path} (ID: {category_id}, slug: {slug})")
    return created


# Threads

def new_product_threads(
    db_path: str,
    product_id: str,
    from_json: Optional[PathLike] = None,
    auto: bool = False,
) -> List[str]:
    """Insert threads for a product from JSON, or a templated one with ``auto``.

    With neither, the product information and suggested keywords are
    printed for writing threads by hand.

    Returns:
        IDs of inserted threads

    Raises:
        LookupError: If the product does not exist
    """
    product = db.get_product(db_path, product_id)
    if product is None:
        raise LookupError(f"Product not found: {product_id}")
    category_titles = db.get_product_category_titles(db_path, product_id)
    keywords = generate_keywords(product["title"], category_titles)

    if auto:
        threads = [{
            "text": generate_thread_text(product["title"], product["description"] or "", category_titles),
            "keywords": keywords,
        }]
    elif from_json:
        threads = load_threads_json(from_json)
        logger.info(f"Loaded {len(threads)} thread(s) from {from_json}")
    else:
        _banner("Product information (for thread writing)")
        print(f"\nProduct: {product['title']}")
        print(f"Description: {(product['description'] or '')[:500]}...")
        print(f"Categories: {', '.join(category_titles)}")
        print(f"URL: {product['url']}")
        print(f"\nSuggested keywords: {keywords}")
        print("\nWrite 1-3 threads and save them as JSON, then run:")
        print(f"  elfbaby new-product-threads {product_id} --from-json <json-file>")
        print(json.dumps([{"text": "Your thread text here", "keywords": keywords}], indent=2))
        return []

    inserted = []
    for thread in threads:
        text = (thread.get("text") or "").strip()
        if not text:
            logger.warning("Skipping empty thread")
            continue
        thread_id = db.insert_thread(db_path, ProductThread(
            product_id=product_id,
            text=text,
            keywords=thread.get("keywords") or keywords,
        ))
        inserted.append(thread_id)
        logger.info(f"Created thread: \"{text[:60]}...\"")
    return inserted


def generate_missing_threads(db_path: str, shop_identifier: Optional[str] = None) -> int:
    """Template a thread for every product that has none.

    Returns:
        Number of threads created
    """
    shop_id = db.find_shop(db_path, shop_identifier)["id"] if shop_identifier else None
    products = db.get_products_without_threads(db_path, shop_id)
    logger.info(f"Products without threads: {len(products)}")

    created = 0
    for i, product in enumerate(products, 1):
        logger.info(f"[{i}/{len(products)}] Processing: {product['title'][:60]}")
        titles = db.get_product_category_titles(db_path, product["id"])
        db.insert_thread(db_path, ProductThread(
            product_id=product["id"],
            text=generate_thread_text(product["title"], product["description"] or "", titles),
            keywords=generate_keywords(product["title"], titles),
        ))
        created += 1
    return created


# Amazon

def find_or_create_amazon_shop(db_path: str, shop_id: str = AMAZON_SHOP_ID) -> Dict[str, Any]:
    """The Amazon shop by known ID, domain or title; created if missing.

    An inactive Amazon shop is reactivated.
    """
    shop = db.get_shop(db_path, shop_id) or db.find_shop_by_domain(db_path, "amazon.com")
    if shop is None:
        for candidate in db.list_shops(db_path):
            if "amazon" in candidate["title"].lower():
                shop = candidate
                break

    if shop is None:
        new_id = db.insert_shop(db_path, Shop(
            id=shop_id,
            title="Amazon",
            domain="amazon.com",
            description=(
                "Amazon.com is the world's largest online retailer, offering millions of "
                "products across various categories including baby products, toys, "
                "electronics, and more."
            ),
            logo="https://www.amazon.com/favicon.ico",
            markets=["usa", "europe", "america"],
            shipping={"info": "Shipping varies by product and location. "
                              "Check individual product pages for shipping details."},
        ))
        logger.info(f"Created Amazon shop (ID: {new_id})")
        return db.get_shop(db_path, new_id)

    if not shop["active"]:
        db.activate_shop(db_path, shop["id"])
        shop["active"] = True
        logger.info("Activated Amazon shop")
    return shop


def _amazon_description(meta_description: Optional[str], text_content: str) -> str:
    if meta_description and len(meta_description) >= MIN_DESCRIPTION_LENGTH:
        return meta_description
    return text_content[:AMAZON_DESCRIPTION_PREVIEW]


def _import_amazon_product(
    db_path: str,
    shop_id: str,
    listing_url: str,
    fallback_title: str,
    affiliate_url: str,
    categories: Sequence[Dict[str, Any]],
    available_filters: Sequence[str],
) -> Optional[Tuple[str, Product]]:
    info = extract_product_info(fetch_amazon_page(listing_url), listing_url)
    title = info.title or fallback_title
    age_filters = determine_age_filters(title, info.text_content, available_filters)
    product = Product(
        shop_id=shop_id,
        title=title,
        slug=generate_slug(title),
        url=affiliate_url,
        price=info.price,
        description=_amazon_description(info.meta_description, info.text_content),
        images=info.images,
        filters={"age": age_filters} if age_filters else {},
        categories=match_categories(title, info.text_content, categories),
        specifications={"asin": extract_asin(listing_url), "source_url": listing_url},
    )
    product_id = import_product(db_path, product)
    return (product_id, product) if product_id else None


def _cycle_page_urls(
    keyword: str,
    category: Optional[str],
    excluded_asins: Sequence[str],
    bestseller_url: Optional[str] = None,
) -> Iterable[str]:
    if bestseller_url:
        yield bestseller_url
    for page in range(1, AMAZON_MAX_PAGES_PER_KEYWORD + 1):
        yield get_search_url(keyword, category, excluded_asins, page)


def amazon_bestsellers(
    db_path: str = db.DEFAULT_DB_PATH,
    age_group: Optional[str] = None,
    category: Optional[str] = None,
    keyword: Optional[str] = None,
    limit: int = AMAZON_DEFAULT_LIMIT,
    checklist_path: Optional[PathLike] = None,
    filters_md_path: Optional[PathLike] = None,
    get_affiliate_link: Callable[[str], Optional[str]] = extract_affiliate_link,
    sleep: Callable[[float], None] = time.sleep,
) -> List[str]:
    """Run ``limit`` search cycles, importing at most one new product per cycle.

    Each cycle searches the next keyword (up to AMAZON_MAX_PAGES_PER_KEYWORD
    pages), takes the first product not on the checklist, obtains an
    affiliate link (falling back to the product URL), imports the product
    and records it on the checklist. With a category and no keyword, the
    category's bestseller list is checked before the search pages.

    Returns:
        IDs of imported products

    Raises:
        RateLimitedError: If Amazon keeps rate limiting a search or product page
    """
    db.init_db(db_path)
    shop = find_or_create_amazon_shop(db_path)
    logger.info(f"Using Amazon shop: {shop['title']} (ID: {shop['id']})")

    if age_group and not keyword and not category:
        if "0" in age_group and "12" in age_group:
            keyword = "baby toys 0-12 months"
    keywords = [keyword] if keyword else list(AMAZON_SEARCH_KEYWORDS)
    bestseller_url = None
    if category and not keyword:
        bestseller_url = get_bestseller_url(age_group, category)

    categories = db.list_categories(db_path)
    available_filters = read_available_filters(filters_md_path)
    excluded_asins: List[str] = []
    imported: List[str] = []

    for cycle in range(1, limit + 1):
        if shutdown_requested():
            logger.warning("Shutdown requested, stopping")
            break
        _banner(f"CYCLE {cycle}/{limit}")
        current_keyword = keywords[(cycle - 1) % len(keywords)]

        listing = None
        for page_url in _cycle_page_urls(current_keyword, category, excluded_asins, bestseller_url):
            logger.info(f"Searching \"{current_keyword}\": {page_url}")
            try:
                page_html = fetch_amazon_page(page_url)
            except RateLimitedError:
                raise
            except FetchError as e:
                logger.error(f"Search failed: {e}")
                break

            listings = [
                candidate
                for candidate in extract_product_listings(
                    page_html, len(excluded_asins) + 1, read_checklist(checklist_path)
                )
                if extract_asin(candidate.url) not in excluded_asins
            ]
            if listings:
                listing = listings[0]
                break
            logger.info(f"No new products on {page_url}")
            sleep(AMAZON_CYCLE_DELAY)

        if listing is None:
            logger.info(f"No product found for \"{current_keyword}\", trying next keyword")
            continue

        logger.info(f"Found product: {listing.title[:60]} ({listing.url})")
        affiliate_url = get_affiliate_link(listing.url)
        if not affiliate_url:
            logger.warning("Could not extract affiliate link, using product URL")
            affiliate_url = listing.url

        asin = extract_asin(listing.url)
        if asin and asin not in excluded_asins:
            excluded_asins.append(asin)

        if is_processed([affiliate_url, listing.url], read_checklist(checklist_path)):
            logger.info("Product already in checklist, skipping")
            sleep(AMAZON_CYCLE_DELAY)
            continue

        try:
            result = _import_amazon_product(
                db_path, shop["id"], listing.url, listing.title,
                affiliate_url, categories, available_filters,
            )
        except RateLimitedError:
            raise
        except FetchError as e:
            log_scrape_event("product_error", {
                "message": f"Error importing {listing.url}: {e}",
                "url": listing.url,
            }, logger_name="pipelines")
            result = None

        if result:
            product_id, product = result
            imported.append(product_id)
            category_titles = db.get_product_category_titles(db_path, product_id)
            append_to_checklist(
                affiliate_url,
                product.title,
                product_id,
                product.filters.get("age", []),
                ", ".join(category_titles),
                path=checklist_path,
            )

        log_scrape_event("cycle_complete", {
            "message": f"Cycle {cycle} complete",
            "cycle": cycle,
            "imported": bool(result),
        }, logger_name="pipelines")
        if cycle < limit:
            sleep(AMAZON_CYCLE_DELAY)

    return imported


# Rakuten

def _ask_domain(prompt: Prompt) -> str:
    while True:
        domain = extract_domain(prompt("Enter the merchant website domain (e.g., example.com): "))
        if domain:
            return domain
        print("Domain is required.")


def create_shop_from_rakuten(
    db_path: str,
    client: RakutenAPIClient,
    mid: str,
    domain: Optional[str] = None,
    description: Optional[str] = None,
    prompt: Optional[Prompt] = None,
) -> Dict[str, Any]:
    """Register a shop for a Rakuten merchant.

    If the domain is already registered, that shop gets the MID instead.

    Raises:
        ValueError: If no domain is given and there is no prompt to ask for one
    """
    merchant = client.get_merchant_info(mid)
    logger.info(f"Found merchant: {merchant['merchantname']}")

    if not domain:
        if prompt is None:
            raise ValueError("A shop domain is required to create a Rakuten shop (--domain)")
        domain = _ask_domain(prompt)
        if description is None:
            description = prompt("Enter a description for this shop (or press Enter to skip): ")
    domain = extract_domain(domain)

    existing = db.find_shop_by_domain(db_path, domain)
    if existing:
        db.set_shop_mid(db_path, existing["id"], mid)
        if not existing["active"]:
            db.activate_shop(db_path, existing["id"])
            logger.info(f"Reactivated shop: {existing['title']}")
        logger.info(f"Updated existing shop with MID: {existing['title']}")
        return db.get_shop(db_path, existing["id"])

    shop_id = db.insert_shop(db_path, Shop(
        title=merchant.get("merchantname") or domain,
        domain=domain,
        description=description or f"Merchant from Rakuten Advertising with MID {mid}",
        category=merchant.get("merchantcategorypath") or "General",
        markets=list(DEFAULT_MARKETS),
        rakuten_mid=str(mid),
    ))
    log_scrape_event("shop_created", {
        "message": f"Created shop: {merchant.get('merchantname')} (ID: {shop_id})",
        "shop_id": shop_id,
        "mid": str(mid),
    }, logger_name="pipelines")
    return db.get_shop(db_path, shop_id)


def _choose_categories(db_path: str, prompt: Prompt) -> List[str]:
    categories = db.list_categories(db_path)
    if not categories:
        logger.warning("No categories found in database")
        return []
    print("\nAvailable categories:")
    for i, category in enumerate(categories, 1):
        print(f"  {i}. {category['title']} ({category['slug']})")
    answer = prompt("Enter category numbers to assign (comma-separated) or press Enter to skip: ")
    chosen = []
    for part in answer.split(","):
        part = part.strip()
        if part.isdigit() and 1 <= int(part) <= len(categories):
            chosen.append(categories[int(part) - 1]["id"])
    return chosen


def rakuten_import(
    db_path: str,
    mid: str,
    client: RakutenAPIClient,
    limit: Optional[int] = None,
    domain: Optional[str] = None,
    description: Optional[str] = None,
    category_refs: Optional[Sequence[str]] = None,
    create: bool = False,
    prompt: Optional[Prompt] = None,
) -> List[str]:
    """Import a Rakuten merchant's in-stock products.

    The shop is found by MID, or created when ``create`` is set (or the
    prompt confirms it). Feed items without a usable description get one
    built from their specifications.

    Returns:
        IDs of imported products
    """
    db.init_db(db_path)
    client.get_access_token()
    logger.info("Connected to Rakuten API")

    shop = db.find_shop_by_mid(db_path, mid)
    if shop is None or not shop["active"]:
        logger.warning(f"Shop with MID {mid} not found in database")
        if not create and prompt is not None:
            create = prompt("Create new shop? (y/n): ").strip().lower() in ("y", "yes")
        if not create:
            print("Create the shop with `elfbaby new-shop <shop-url>` and set its MID, "
                  "or rerun with --create.")
            return []
        shop = create_shop_from_rakuten(db_path, client, mid, domain, description, prompt)
    else:
        logger.info(f"Found existing shop: {shop['title']} ({shop['domain']})")

    if limit is None and prompt is not None:
        answer = prompt("Enter maximum number of products to process (or press Enter for all): ").strip()
        limit = int(answer) if answer.isdigit() else None

    items = client.get_all_products_by_mid(mid, instock=True, max_products=limit)
    if not items:
        logger.warning("No products found for this merchant")
        return []
    logger.info(f"Found {len(items)} products")

    if category_refs is not None:
        category_ids = db.resolve_category_ids(db_path, category_refs)
    elif prompt is not None:
        category_ids = _choose_categories(db_path, prompt)
    else:
        category_ids = []

    imported = []
    for i, item in enumerate(items, 1):
        if shutdown_requested():
            logger.warning("Shutdown requested, stopping")
            break
        logger.info(f"[{i}/{len(items)}] Processing: {item.get('productname')}")
        product = convert_rakuten_product(item, shop["id"], category_ids)
        if len(product.description.strip()) < API_MIN_DESCRIPTION_LENGTH:
            product.description = fallback_description(product)

        product_id = import_product(db_path, product, API_MIN_DESCRIPTION_LENGTH)
        if product_id:
            imported.append(product_id)
            logger.info(f"  Thread needed: elfbaby new-product-threads {product_id}")

    logger.info(f"Imported {len(imported)} of {len(items)} products")
    return imported


# Maintenance and listings

def _images_json_path(path: PathLike) -> Path:
    path = Path(path)
    if path.is_absolute() or path.parts[:1] == (IMAGES_JSON_DIR,):
        return path
    return Path(IMAGES_JSON_DIR) / path


def fix_product_images(
    db_path: str,
    product_id: str,
    images: Optional[Sequence[str]] = None,
    from_json: Optional[PathLike] = None,
) -> int:
    """Replace a product's images from arguments or a JSON file under tmp/.

    Returns:
        Number of images set

    Raises:
        ValueError: If no images are given
        LookupError: If the product does not exist
    """
    image_list = list(images or [])
    if from_json:
        data = json.loads(_images_json_path(from_json).read_text(encoding="utf-8"))
        if data.get("id") and data["id"] != product_id:
            logger.warning(
                f"JSON file has different product ID ({data['id']}) than provided ({product_id})"
            )
        image_list = data.get("images") or []

    if not image_list:
        raise ValueError("No images provided")
    if not db.update_product_images(db_path, product_id, image_list):
        raise LookupError(f"Product not found: {product_id}")
    logger.info(f"Updated product {product_id}: {len(image_list)} images, first: {image_list[0]}")
    return len(image_list)


def format_category_paths(categories: Sequence[Dict[str, Any]]) -> List[Tuple[str, str]]:
    """(full path, id) for each category, in input order."""
    by_id = {c["id"]: c for c in categories}

    def path_of(category: Dict[str, Any]) -> str:
        parent = by_id.get(category.get("parent_id"))
        return f"{path_of(parent)} > {category['title']}" if parent else category["title"]

    return [(path_of(c), c["id"]) for c in categories]


def list_shops(db_path: str = db.DEFAULT_DB_PATH) -> None:
    db.init_db(db_path)
    shops = db.list_shops(db_path)
    print(f"Shops ({len(shops)}):")
    for shop in shops:
        status = "" if shop["active"] else " (inactive)"
        mid = f" MID {shop['rakuten_mid']}" if shop.get("rakuten_mid") else ""
        print(f"- {shop['title']} ({shop['domain']}){mid}{status} [{shop['id']}]")


def list_categories(db_path: str = db.DEFAULT_DB_PATH) -> None:
    db.init_db(db_path)
    print("Categories:")
    for path, category_id in format_category_paths(db.list_categories(db_path)):
        print(f"- {path} [{category_id}]")


def show_stats(db_path: str = db.DEFAULT_DB_PATH) -> None:
    """Display database statistics."""
    db.init_db(db_path)
    stats = db.get_stats(db_path)

    print(f"\n{'=' * 50}")
    print(f"Database: {db_path}")
    print(f"{'=' * 50}")
    print(f"\nShops: {stats['shops']} ({stats['active_shops']} active)")
    print(f"Categories: {stats['categories']}")
    print(f"Products: {stats['products']} ({stats['active_products']} active)")
    print(f"Threads: {stats['threads']}")
    print(f"Products without threads: {stats['products_without_threads']}")
    print()
