"""Tests for Amazon search URLs and listing extraction."""

from unittest.mock import patch

from elfbaby.amazon import (
    DEFAULT_LISTING_TITLE,
    extract_listing_title,
    extract_product_listings,
    fetch_amazon_page,
    get_bestseller_url,
    get_search_url,
)
from elfbaby.config import AMAZON_HEADERS

SEARCH_HTML = """
<div class="s-result-item">
  <a class="a-link-normal" href="/Wooden-Building-Blocks/dp/B0AAAAAAAA/ref=sr_1_1?keywords=toys">Wooden Building Blocks Set</a>
</div>
<div class="s-result-item">
  <a class="a-link-normal" href="/Soft-Rattle/dp/B0BBBBBBBB?th=1"><img alt="Soft Baby Rattle Toy" src="rattle.jpg"></a>
</div>
<div class="s-result-item">
  <a class="a-link-normal" href="/Wooden-Building-Blocks/dp/B0AAAAAAAA/ref=sr_1_9">Wooden Building Blocks Set</a>
</div>
"""


class TestUrls:
    """Tests for search and bestseller URLs."""

    def test_search_url(self):
        assert get_search_url("baby toys") == "https://www.amazon.com/s?k=baby%20toys"

    def test_search_url_with_exclusions_and_page(self):
        url = get_search_url("baby toys", "baby-products", ["B0AAAAAAAA", "B0BBBBBBBB"], page=2)
        assert url == (
            "https://www.amazon.com/s?k=baby%20toys%20-B0AAAAAAAA%20-B0BBBBBBBB"
            "&i=baby-products&page=2"
        )

    def test_bestseller_url_for_category(self):
        assert get_bestseller_url(category="toys-and-games") == (
            "https://www.amazon.com/gp/bestsellers/toys-and-games/"
        )

    def test_bestseller_url_defaults_to_baby_products(self):
        assert get_bestseller_url(age_group="5-7 years") == (
            "https://www.amazon.com/gp/bestsellers/baby-products/"
        )

    @patch("elfbaby.amazon.fetch_html", return_value="<html></html>")
    def test_fetch_uses_browser_headers(self, mock_fetch):
        assert fetch_amazon_page("https://www.amazon.com/s?k=toys") == "<html></html>"
        mock_fetch.assert_called_once_with("https://www.amazon.com/s?k=toys", headers=AMAZON_HEADERS)


class TestListings:
    """Tests for product listing extraction."""

    def test_extracts_canonical_urls_and_titles(self):
        listings = extract_product_listings(SEARCH_HTML, limit=5)

        assert [l.url for l in listings] == [
            "https://www.amazon.com/dp/B0AAAAAAAA",
            "https://www.amazon.com/dp/B0BBBBBBBB",
        ]
        assert [l.title for l in listings] == ["Wooden Building Blocks Set", "Soft Baby Rattle Toy"]
        assert [l.rank for l in listings] == [1, 2]

    def test_limit(self):
        assert len(extract_product_listings(SEARCH_HTML, limit=1)) == 1

    def test_skips_processed(self):
        listings = extract_product_listings(
            SEARCH_HTML, limit=1, processed={"https://www.amazon.com/dp/B0AAAAAAAA"}
        )
        assert [l.url for l in listings] == ["https://www.amazon.com/dp/B0BBBBBBBB"]
        assert listings[0].rank == 1

    def test_fallback_to_any_dp_link(self):
        page = '<link rel="canonical" href="https://www.amazon.com/dp/B0CCCCCCCC">'
        listings = extract_product_listings(page, limit=3)

        assert len(listings) == 1
        assert listings[0].url == "https://www.amazon.com/dp/B0CCCCCCCC"
        assert listings[0].title == DEFAULT_LISTING_TITLE

    def test_fallback_skips_checklist_entries(self):
        page = (
            '<link rel="canonical" href="https://www.amazon.com/Wooden-Train/dp/B0CCCCCCCC?th=1">'
        )
        processed = {"https://www.amazon.com/dp/B0CCCCCCCC"}

        assert extract_product_listings(page, limit=3, processed=processed) == []

    def test_no_products(self):
        assert extract_product_listings("<p>No results</p>") == []

    def test_title_defaults_when_nothing_found(self):
        page = '<a href="/dp/B0DDDDDDDD"></a>'
        assert extract_listing_title(page, 0, page.index(">") + 1) == DEFAULT_LISTING_TITLE
