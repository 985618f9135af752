"""Command-line interface for the catalog tools."""

import argparse
import logging
import sys
from typing import List, Optional

__all__ = ["main", "build_parser"]

from elfbaby import pipelines
from elfbaby.config import (
    AMAZON_DEFAULT_LIMIT,
    DB_PATH,
    DEFAULT_PRODUCT_LIMIT,
    PRODUCTS_TEMP_JSON,
    RAKUTEN_CLIENT_ID,
    RAKUTEN_CLIENT_SECRET,
)
from elfbaby.logging_config import get_logger, setup_logging
from elfbaby.rakuten import RakutenAPIClient
from elfbaby.shutdown import get_shutdown_handler

logger = get_logger("cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="elfbaby",
        description="Shop, product and thread ingestion for the elf.baby gift catalog",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Analyse a shop, then register it with a description
  elfbaby new-shop https://example.com
  elfbaby new-shop https://example.com "A family-run toy shop ..."

  # Extract products to products-temp.json, add descriptions, then import
  elfbaby new-products example.com --limit 5
  elfbaby new-products example.com --from-json products-temp.json

  # Create categories
  elfbaby new-category "Toys" "Toys > Wooden Toys"

  # Import three Amazon products with affiliate links
  elfbaby amazon-bestsellers --age "0-12 months" --limit 3

  # Import a Rakuten merchant's products without prompts
  elfbaby rakuten-api 12345 --create --domain example.com --limit 20

  # Show database statistics
  elfbaby stats
        """,
    )
    parser.add_argument(
        "--db",
        default=DB_PATH,
        help=f"SQLite database path (default: {DB_PATH})",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Show debug output on the console",
    )
    parser.add_argument(
        "--no-log-file",
        action="store_true",
        help="Don't write the JSONL log file",
    )

    sub = parser.add_subparsers(dest="command", required=True, metavar="COMMAND")

    p = sub.add_parser("new-shop", help="Analyse a shop homepage and register the shop")
    p.add_argument("url", help="Shop homepage URL")
    p.add_argument("description", nargs="?", help="Shop description (omit to print the analysis)")

    p = sub.add_parser("new-products", help="Extract and import products for a shop")
    p.add_argument("shop", help="Shop domain, ID or title")
    p.add_argument("urls", nargs="*", metavar="URL", help="Product URLs (default: discover from homepage)")
    p.add_argument(
        "--limit",
        type=int,
        default=DEFAULT_PRODUCT_LIMIT,
        help=f"Maximum products to discover (default: {DEFAULT_PRODUCT_LIMIT})",
    )
    p.add_argument("--from-json", metavar="FILE", help="Import products from a JSON file")
    p.add_argument(
        "--with-descriptions",
        action="store_true",
        help="Insert directly instead of writing the temp JSON",
    )
    p.add_argument(
        "--temp-json",
        default=PRODUCTS_TEMP_JSON,
        help=f"Where to write extracted products (default: {PRODUCTS_TEMP_JSON})",
    )

    p = sub.add_parser("new-category", help="Create categories")
    p.add_argument("categories", nargs="+", metavar="CATEGORY", help='"Title" or "Parent > Child"')

    p = sub.add_parser("new-product-threads", help="Create social threads for a product")
    p.add_argument("product_id", help="Product ID")
    p.add_argument("--from-json", metavar="FILE", help="Threads JSON (a list or {\"threads\": [...]})")
    p.add_argument("--auto", action="store_true", help="Generate one thread from a template")

    p = sub.add_parser("generate-missing-threads", help="Template a thread for products without one")
    p.add_argument("--shop", help="Only products of this shop (domain, ID or title)")

    p = sub.add_parser("amazon-bestsellers", help="Import Amazon products with affiliate links")
    p.add_argument("--age", help='Age group, e.g. "0-12 months"')
    p.add_argument(
        "--category",
        help="Amazon category, e.g. baby-products (without --keyword its bestseller list is checked first)",
    )
    p.add_argument("--keyword", help="Search keyword (default: rotate the built-in list)")
    p.add_argument(
        "--limit",
        type=int,
        default=AMAZON_DEFAULT_LIMIT,
        help=f"Number of search cycles (default: {AMAZON_DEFAULT_LIMIT})",
    )

    p = sub.add_parser("rakuten-api", help="Import a Rakuten Advertising merchant's products")
    p.add_argument("mid", nargs="?", help="Merchant ID (prompted if omitted)")
    p.add_argument("--limit", type=int, help="Maximum products to import (default: all)")
    p.add_argument("--domain", help="Shop domain, used when creating the shop")
    p.add_argument("--description", help="Shop description, used when creating the shop")
    p.add_argument(
        "--categories",
        help="Comma-separated category IDs, slugs or titles for every product",
    )
    p.add_argument("--create", action="store_true", help="Create the shop without asking")
    p.add_argument("--no-input", action="store_true", help="Never prompt; use flags and defaults")

    p = sub.add_parser("fix-product-images", help="Replace a product's images")
    p.add_argument("product_id", help="Product ID")
    p.add_argument("images", nargs="*", metavar="URL", help="Image URLs")
    p.add_argument("--from-json", metavar="FILE", help="JSON file with an images list (under tmp/)")

    sub.add_parser("list-shops", help="List shops")
    sub.add_parser("list-categories", help="List categories with their full paths")
    sub.add_parser("stats", help="Show database statistics")

    return parser


def _rakuten_client() -> RakutenAPIClient:
    if not RAKUTEN_CLIENT_ID or not RAKUTEN_CLIENT_SECRET:
        raise ValueError(
            "Missing Rakuten API credentials. Set RAKUTEN_CLIENT_ID and "
            "RAKUTEN_CLIENT_SECRET in .env.local"
        )
    return RakutenAPIClient(RAKUTEN_CLIENT_ID, RAKUTEN_CLIENT_SECRET)


def run(args: argparse.Namespace) -> None:
    """Dispatch a parsed command."""
    if args.command == "new-shop":
        shop_id = pipelines.new_shop(args.url, args.description, db_path=args.db)
        if shop_id:
            print(f"\nShop ID: {shop_id}")

    elif args.command == "new-products":
        inserted = pipelines.new_products(
            args.shop,
            urls=args.urls,
            limit=args.limit,
            from_json=args.from_json,
            with_descriptions=args.with_descriptions,
            db_path=args.db,
            temp_json_path=args.temp_json,
        )
        if inserted:
            print(f"\nInserted {len(inserted)} products")

    elif args.command == "new-category":
        created = pipelines.new_categories(args.db, args.categories)
        print(f"\nCreated {len(created)} categories")

    elif args.command == "new-product-threads":
        inserted = pipelines.new_product_threads(
            args.db, args.product_id, from_json=args.from_json, auto=args.auto
        )
        if inserted:
            print(f"\nCreated {len(inserted)} threads")

    elif args.command == "generate-missing-threads":
        created = pipelines.generate_missing_threads(args.db, args.shop)
        print(f"\nCreated {created} threads")

    elif args.command == "amazon-bestsellers":
        imported = pipelines.amazon_bestsellers(
            db_path=args.db,
            age_group=args.age,
            category=args.category,
            keyword=args.keyword,
            limit=args.limit,
        )
        print(f"\nImported {len(imported)} products")
        for product_id in imported:
            print(f"  elfbaby new-product-threads {product_id}")

    elif args.command == "rakuten-api":
        prompt = None if args.no_input else input
        mid = args.mid
        if not mid:
            if prompt is None:
                raise ValueError("A merchant ID is required with --no-input")
            mid = prompt("Enter the Merchant ID (MID): ").strip()
        if not mid:
            raise ValueError("MID is required")
        categories = (
            [c.strip() for c in args.categories.split(",") if c.strip()]
            if args.categories is not None else None
        )
        imported = pipelines.rakuten_import(
            args.db,
            mid,
            _rakuten_client(),
            limit=args.limit,
            domain=args.domain,
            description=args.description,
            category_refs=categories,
            create=args.create,
            prompt=prompt,
        )
        print(f"\nImported {len(imported)} products")

    elif args.command == "fix-product-images":
        if not args.images and not args.from_json:
            raise ValueError("Provide image URLs or --from-json")
        pipelines.fix_product_images(
            args.db, args.product_id, images=args.images, from_json=args.from_json
        )

    elif args.command == "list-shops":
        pipelines.list_shops(args.db)

    elif args.command == "list-categories":
        pipelines.list_categories(args.db)

    elif args.command == "stats":
        pipelines.show_stats(args.db)


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for CLI."""
    args = build_parser().parse_args(argv)
    setup_logging(
        level=logging.DEBUG if args.verbose else logging.INFO,
        log_to_file=not args.no_log_file,
    )
    get_shutdown_handler().install()

    try:
        run(args)
    except KeyboardInterrupt:
        logger.warning("Interrupted")
        sys.exit(130)
    except Exception as e:
        logger.error(f"Error: {e}")
        logger.debug("Traceback", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
