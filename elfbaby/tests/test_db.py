"""Tests for the SQLite catalog store."""

import pytest

from elfbaby.db import (
    DuplicateProductError,
    ShopNotFoundError,
    activate_shop,
    category_path,
    count_threads,
    find_category,
    find_product_by_slug,
    find_shop,
    find_shop_by_domain,
    find_shop_by_mid,
    get_connection,
    get_product,
    get_product_category_titles,
    get_products_without_threads,
    get_shop,
    get_stats,
    insert_category,
    insert_product,
    insert_shop,
    insert_thread,
    link_product_categories,
    list_shops,
    resolve_category_ids,
    set_shop_mid,
    update_product_images,
)
from elfbaby.models import Category, Product, ProductThread, Shop


def _product(shop_id, title="Wooden Train", **kwargs):
    slug = kwargs.pop("slug", title.lower().replace(" ", "-"))
    return Product(shop_id=shop_id, title=title, slug=slug, url=f"https://littletoys.com/{slug}", **kwargs)


class TestSchema:
    """Tests for init_db."""

    @pytest.mark.parametrize("table", [
        "shops", "categories", "products", "product_categories", "product_threads",
    ])
    def test_creates_table(self, temp_db, table):
        with get_connection(temp_db) as conn:
            row = conn.execute(
                "SELECT name FROM sqlite_master WHERE type='table' AND name=?", (table,)
            ).fetchone()
            assert row is not None


class TestShops:
    """Tests for shop storage and lookup."""

    def test_insert_and_get(self, temp_db, shop_id):
        shop = get_shop(temp_db, shop_id)
        assert shop["title"] == "Little Toy Shop"
        assert shop["markets"] == ["europe"]
        assert shop["active"] is True

    def test_duplicate_domain(self, temp_db, shop_id):
        with pytest.raises(ValueError):
            insert_shop(temp_db, Shop(title="Copy", domain="littletoys.com"))

    def test_find_by_url(self, temp_db, shop_id):
        assert find_shop(temp_db, "https://www.littletoys.com/products/1")["id"] == shop_id

    def test_find_by_id(self, temp_db, shop_id):
        assert find_shop(temp_db, shop_id)["id"] == shop_id

    def test_find_by_title_substring(self, temp_db, shop_id):
        assert find_shop(temp_db, "toy shop")["id"] == shop_id

    def test_find_ignores_inactive(self, temp_db):
        insert_shop(temp_db, Shop(title="Closed Shop", domain="closed.com", active=False))
        with pytest.raises(ShopNotFoundError):
            find_shop(temp_db, "closed.com")

    def test_not_found_is_lookup_error(self, temp_db):
        with pytest.raises(LookupError):
            find_shop(temp_db, "nowhere.com")

    @pytest.mark.parametrize("identifier", ["", "   ", "%", "___", "Little%Shop"])
    def test_blank_or_wildcard_identifier_matches_nothing(self, temp_db, shop_id, identifier):
        with pytest.raises(ShopNotFoundError):
            find_shop(temp_db, identifier)

    def test_title_with_underscore_matches_literally(self, temp_db):
        shop_id = insert_shop(temp_db, Shop(title="Toys_R_Fun", domain="toysrfun.com"))
        assert find_shop(temp_db, "toys_r")["id"] == shop_id

    def test_mid_lookup(self, temp_db, shop_id):
        assert find_shop_by_mid(temp_db, "123") is None
        set_shop_mid(temp_db, shop_id, "123")
        assert find_shop_by_mid(temp_db, 123)["id"] == shop_id

    def test_domain_lookup_includes_inactive(self, temp_db):
        shop_id = insert_shop(temp_db, Shop(title="Closed Shop", domain="closed.com", active=False))
        assert find_shop_by_domain(temp_db, "www.closed.com")["id"] == shop_id
        activate_shop(temp_db, shop_id)
        assert get_shop(temp_db, shop_id)["active"] is True

    def test_list_active_only(self, temp_db, shop_id):
        insert_shop(temp_db, Shop(title="Closed Shop", domain="closed.com", active=False))
        assert len(list_shops(temp_db)) == 2
        assert [s["id"] for s in list_shops(temp_db, active_only=True)] == [shop_id]


class TestCategories:
    """Tests for the two-level category tree."""

    def test_parent_and_child(self, temp_db):
        toys = insert_category(temp_db, Category(title="Toys", slug="toys"))
        wooden = insert_category(temp_db, Category(title="Wooden Toys", slug="wooden-toys", parent_id=toys))

        assert find_category(temp_db, "toys")["id"] == toys
        assert find_category(temp_db, "wooden-toys") is None
        assert find_category(temp_db, "wooden-toys", toys)["id"] == wooden
        assert category_path(temp_db, wooden) == "Toys > Wooden Toys"
        assert category_path(temp_db, toys) == "Toys"

    def test_three_levels_rejected(self, temp_db):
        toys = insert_category(temp_db, Category(title="Toys", slug="toys"))
        wooden = insert_category(temp_db, Category(title="Wooden Toys", slug="wooden-toys", parent_id=toys))
        with pytest.raises(ValueError):
            insert_category(temp_db, Category(title="Trains", slug="trains", parent_id=wooden))

    def test_missing_parent_rejected(self, temp_db):
        with pytest.raises(ValueError):
            insert_category(temp_db, Category(title="Trains", slug="trains", parent_id="nope"))

    def test_path_of_missing_category(self, temp_db):
        with pytest.raises(LookupError):
            category_path(temp_db, "nope")

    def test_resolve_references(self, temp_db):
        toys = insert_category(temp_db, Category(title="Toys", slug="toys"))
        books = insert_category(temp_db, Category(title="Baby Books", slug="baby-books"))

        resolved = resolve_category_ids(temp_db, [toys, "baby-books", "TOYS", "unknown", ""])
        assert resolved == [toys, books]


class TestProducts:
    """Tests for product storage."""

    def test_insert_and_decode(self, temp_db, shop_id):
        product_id = insert_product(temp_db, _product(
            shop_id,
            price=19.99,
            images=["https://cdn.littletoys.com/a.jpg"],
            filters={"age": ["1 - 3 years"]},
            specifications={"material": "beech"},
        ))
        product = get_product(temp_db, product_id)
        assert product["price"] == 19.99
        assert product["images"] == ["https://cdn.littletoys.com/a.jpg"]
        assert product["filters"] == {"age": ["1 - 3 years"]}
        assert product["specifications"] == {"material": "beech"}
        assert product["active"] is True

    def test_duplicate_slug_in_shop(self, temp_db, shop_id):
        insert_product(temp_db, _product(shop_id))
        with pytest.raises(DuplicateProductError):
            insert_product(temp_db, _product(shop_id))

    def test_same_slug_in_other_shop(self, temp_db, shop_id):
        other = insert_shop(temp_db, Shop(title="Other", domain="other.com"))
        insert_product(temp_db, _product(shop_id))
        assert insert_product(temp_db, _product(other))

    def test_find_by_slug_active_only(self, temp_db, shop_id):
        insert_product(temp_db, _product(shop_id, title="Hidden", active=False))
        assert find_product_by_slug(temp_db, "hidden") is None

    def test_update_images(self, temp_db, shop_id):
        product_id = insert_product(temp_db, _product(shop_id))
        assert update_product_images(temp_db, product_id, ["https://cdn.x/b.jpg"])
        assert get_product(temp_db, product_id)["images"] == ["https://cdn.x/b.jpg"]
        assert update_product_images(temp_db, "missing", ["https://cdn.x/b.jpg"]) is False

    def test_link_categories_is_idempotent(self, temp_db, shop_id):
        product_id = insert_product(temp_db, _product(shop_id))
        toys = insert_category(temp_db, Category(title="Toys", slug="toys"))
        gifts = insert_category(temp_db, Category(title="Gifts", slug="gifts"))

        assert link_product_categories(temp_db, product_id, [toys, toys, gifts]) == 2
        assert link_product_categories(temp_db, product_id, [toys]) == 0
        assert get_product_category_titles(temp_db, product_id) == ["Gifts", "Toys"]


class TestThreadsAndStats:
    """Tests for thread storage and statistics."""

    def test_products_without_threads(self, temp_db, shop_id):
        first = insert_product(temp_db, _product(shop_id, title="First"))
        second = insert_product(temp_db, _product(shop_id, title="Second"))
        insert_thread(temp_db, ProductThread(product_id=first, text="Hello"))

        assert [p["id"] for p in get_products_without_threads(temp_db)] == [second]
        assert count_threads(temp_db) == 1
        assert count_threads(temp_db, first) == 1
        assert count_threads(temp_db, second) == 0

    def test_products_without_threads_for_shop(self, temp_db, shop_id):
        other = insert_shop(temp_db, Shop(title="Other", domain="other.com"))
        insert_product(temp_db, _product(shop_id))
        theirs = insert_product(temp_db, _product(other))
        assert [p["id"] for p in get_products_without_threads(temp_db, other)] == [theirs]

    def test_stats(self, temp_db, shop_id):
        product_id = insert_product(temp_db, _product(shop_id))
        insert_product(temp_db, _product(shop_id, title="Hidden", active=False))
        insert_category(temp_db, Category(title="Toys", slug="toys"))
        insert_thread(temp_db, ProductThread(product_id=product_id, text="Hello"))

        assert get_stats(temp_db) == {
            "shops": 1,
            "active_shops": 1,
            "categories": 1,
            "products": 2,
            "active_products": 1,
            "threads": 1,
            "products_without_threads": 1,
        }
