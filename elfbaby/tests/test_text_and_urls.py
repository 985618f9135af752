"""Tests for slug, price and URL helpers."""

import pytest

from elfbaby.text_utils import extract_body_text, generate_slug, parse_price, strip_tags
from elfbaby.url_utils import (
    URLValidationError,
    absolutize_url,
    canonical_amazon_url,
    ensure_scheme,
    extract_asin,
    extract_domain,
    strip_query,
    validate_url,
)


class TestGenerateSlug:
    """Tests for URL slugs."""

    def test_lowercases_and_hyphenates(self):
        assert generate_slug("Wooden Toy Train") == "wooden-toy-train"

    def test_strips_punctuation(self):
        assert generate_slug("Baby's First Book!") == "babys-first-book"

    def test_collapses_hyphens(self):
        assert generate_slug("Blocks -- 3 - 5 years") == "blocks-3-5-years"

    def test_drops_non_ascii_letters(self):
        assert generate_slug("Café Set") == "caf-set"

    def test_trims_edge_hyphens(self):
        assert generate_slug("  - Rattle - ") == "rattle"


class TestParsePrice:
    """Tests for price parsing."""

    def test_comma_decimal(self):
        assert parse_price("12,99") == 12.99

    def test_dot_decimal(self):
        assert parse_price(" 24.50 ") == 24.5

    def test_thousands_separator(self):
        assert parse_price("1,299.00") == 1299.0

    def test_zero_is_not_a_price(self):
        assert parse_price("0.00") is None

    def test_garbage(self):
        assert parse_price("free") is None


class TestTextHelpers:
    """Tests for markup stripping and body text."""

    def test_strip_tags_decodes_entities(self):
        assert strip_tags("<b>Toys &amp; Games</b>") == "Toys & Games"

    def test_body_text_skips_scripts(self):
        page = "<html><body><p>Hello</p><script>var x = 1;</script><p>world</p></body></html>"
        assert extract_body_text(page) == "Hello world"

    def test_body_text_limit(self):
        page = "<html><body><p>" + "a" * 50 + "</p></body></html>"
        assert len(extract_body_text(page, limit=10)) == 10

    def test_body_text_without_body(self):
        assert extract_body_text("") == ""


class TestUrlHelpers:
    """Tests for URL normalization."""

    def test_ensure_scheme_bare_domain(self):
        assert ensure_scheme("shop.com/toys") == "https://shop.com/toys"

    def test_ensure_scheme_protocol_relative(self):
        assert ensure_scheme("//cdn.shop.com/a.jpg") == "https://cdn.shop.com/a.jpg"

    def test_ensure_scheme_keeps_http(self):
        assert ensure_scheme("http://shop.com") == "http://shop.com"

    def test_extract_domain_strips_www(self):
        assert extract_domain("https://www.littletoys.com/products/1") == "littletoys.com"

    def test_extract_domain_bare(self):
        assert extract_domain("littletoys.com") == "littletoys.com"

    def test_absolutize_relative(self):
        assert absolutize_url("/img/a.jpg", "https://shop.com/products/x") == "https://shop.com/img/a.jpg"

    def test_absolutize_protocol_relative(self):
        assert absolutize_url("//cdn.shop.com/a.jpg", "https://shop.com") == "https://cdn.shop.com/a.jpg"

    def test_strip_query(self):
        assert strip_query("https://amzn.to/abc?tag=x") == "https://amzn.to/abc"

    def test_validate_rejects_dangerous_scheme(self):
        with pytest.raises(URLValidationError):
            validate_url("javascript:alert(1)")

    def test_validate_rejects_traversal(self):
        with pytest.raises(URLValidationError):
            validate_url("https://shop.com/../etc/passwd")

    def test_validate_requires_https(self):
        with pytest.raises(URLValidationError):
            validate_url("http://shop.com", require_https=True)


class TestAsin:
    """Tests for Amazon ASIN handling."""

    def test_dp_url(self):
        url = "https://www.amazon.com/Wooden-Blocks/dp/B0ABCDEFGH/ref=sr_1_1?keywords=toys"
        assert extract_asin(url) == "B0ABCDEFGH"

    def test_gp_product_url(self):
        assert extract_asin("https://www.amazon.com/gp/product/B0ABCDEFGH") == "B0ABCDEFGH"

    def test_strict_rejects_bare_segment(self):
        assert extract_asin("https://www.amazon.com/B0ABCDEFGH") is None

    def test_loose_accepts_bare_segment(self):
        assert extract_asin("https://www.amazon.com/B0ABCDEFGH", strict=False) == "B0ABCDEFGH"

    def test_canonical_url(self):
        assert canonical_amazon_url("B0ABCDEFGH") == "https://www.amazon.com/dp/B0ABCDEFGH"
