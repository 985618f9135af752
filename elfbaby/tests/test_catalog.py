"""Tests for the storefront view of the catalog."""

from datetime import datetime

from elfbaby.catalog import (
    DisplayProduct,
    filter_products,
    get_active_products,
    get_product_by_slug,
    search_products,
    to_display_product,
)
from elfbaby.config import PLACEHOLDER_IMAGE
from elfbaby.db import insert_product
from elfbaby.models import Product

ROW = {
    "id": "p1",
    "slug": "wooden-train",
    "title": "Wooden Train",
    "price": 24.99,
    "price_discount": None,
    "url": "https://littletoys.com/train",
    "description": "A train.",
    "images": ["https://cdn.littletoys.com/train.jpg", "https://cdn.littletoys.com/train2.jpg"],
    "filters": {"category": "toys", "ageGroup": "1-3y"},
    "specifications": {"originalPrice": 29.99},
    "created_at": "2024-01-10 12:00:00",
}


def _display(title, category="all", age_group="all"):
    return DisplayProduct(
        id=title, slug=title.lower(), title=title, price=1.0, image=PLACEHOLDER_IMAGE,
        category=category, age_group=age_group, url="",
    )


class TestToDisplayProduct:
    """Tests for row conversion."""

    def test_fields(self):
        product = to_display_product(ROW, now=datetime(2024, 1, 20))

        assert product.image == "https://cdn.littletoys.com/train.jpg"
        assert product.category == "toys"
        assert product.age_group == "1-3y"
        assert product.original_price == 29.99
        assert product.is_new is True

    def test_not_new_after_thirty_days(self):
        assert to_display_product(ROW, now=datetime(2024, 3, 1)).is_new is False

    def test_defaults(self):
        row = dict(ROW, images=[], filters={}, created_at=None)
        product = to_display_product(row)

        assert product.image == PLACEHOLDER_IMAGE
        assert product.category == "all"
        assert product.age_group == "all"
        assert product.is_new is False

    def test_price_falls_back_to_specifications(self):
        row = dict(ROW, price=0, specifications={"price": "19.99"})
        assert to_display_product(row).price == 19.99

    def test_price_missing(self):
        row = dict(ROW, price=None, specifications={})
        assert to_display_product(row).price == 0.0


class TestSearchAndFilter:
    """Tests for storefront search and filters."""

    PRODUCTS = [
        _display("Wooden Train", "toys", "1-3y"),
        _display("Baby Romper", "clothing", "0-12m"),
        _display("Gift Card", "mom", "all"),
    ]

    def test_search_is_case_insensitive(self):
        assert [p.title for p in search_products(self.PRODUCTS, "  TRAIN ")] == ["Wooden Train"]

    def test_blank_search_returns_all(self):
        assert len(search_products(self.PRODUCTS, "")) == 3

    def test_filter_category(self):
        assert [p.title for p in filter_products(self.PRODUCTS, category="clothing")] == ["Baby Romper"]

    def test_filter_age_includes_all_ages(self):
        assert [p.title for p in filter_products(self.PRODUCTS, age_group="1-3y")] == [
            "Wooden Train",
            "Gift Card",
        ]

    def test_no_filters(self):
        assert len(filter_products(self.PRODUCTS)) == 3


class TestCatalogQueries:
    """Tests for reading display products from the database."""

    def test_active_products_and_slug_lookup(self, temp_db, shop_id):
        insert_product(temp_db, Product(
            shop_id=shop_id, title="Wooden Train", slug="wooden-train",
            url="https://littletoys.com/train", price=24.99,
        ))
        insert_product(temp_db, Product(
            shop_id=shop_id, title="Hidden", slug="hidden",
            url="https://littletoys.com/hidden", active=False,
        ))

        products = get_active_products(temp_db)
        assert [p.slug for p in products] == ["wooden-train"]
        assert products[0].is_new is True

        assert get_product_by_slug("wooden-train", temp_db).price == 24.99
        assert get_product_by_slug("hidden", temp_db) is None

    def test_empty_catalog(self, temp_db):
        assert get_active_products(temp_db) == []
