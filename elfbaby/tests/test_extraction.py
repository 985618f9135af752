"""Tests for shop and product page heuristics."""

from elfbaby.product_extract import (
    clean_product_title,
    extract_images,
    extract_meta_description,
    extract_price,
    extract_product_info,
    extract_product_title,
    find_product_urls,
)
from elfbaby.shop_extract import (
    extract_categories,
    extract_logo,
    extract_markets,
    extract_shipping_info,
    extract_shop_info,
    extract_shop_title,
)

SHOP_HTML = """
<html>
<head>
  <title> Little Toy Shop </title>
  <link rel="icon" href="/favicon.ico">
</head>
<body>
  <img class="site-logo" src="/img/logo.png">
  <a href="/category/wooden-toys">Wooden Toys</a>
  <a href="/category/plush">Plush</a>
  <a href="/shipping">Shipping</a>
  <p>Free shipping on orders over 50 EUR. We deliver across Europe and the USA.</p>
</body>
</html>
"""

PRODUCT_HTML = """
<html>
<head>
  <title>Jack-in-the-box - Little Toy Shop</title>
  <meta name="description" content="A classic wooden jack-in-the-box.">
  <meta property="og:price:amount" content="24.99">
</head>
<body>
  <h1>Jack-in-the-box</h1>
  <img src="https://cdn.littletoys.com/products/jack.jpg">
  <img src="https://cdn.littletoys.com/products/jack_thumb.jpg">
  <img src="/static/logo.png">
  <p>Price: 24.99 EUR</p>
  <script>var tracking = true;</script>
</body>
</html>
"""


class TestShopExtraction:
    """Tests for homepage heuristics."""

    def test_title(self):
        assert extract_shop_title(SHOP_HTML) == "Little Toy Shop"

    def test_title_missing(self):
        assert extract_shop_title("<html><body></body></html>") is None

    def test_logo_prefers_logo_image(self):
        assert extract_logo(SHOP_HTML, "https://littletoys.com") == "https://littletoys.com/img/logo.png"

    def test_logo_falls_back_to_icon(self):
        page = '<html><head><link rel="icon" href="/favicon.ico"></head></html>'
        assert extract_logo(page, "https://littletoys.com") == "https://littletoys.com/favicon.ico"

    def test_categories(self):
        assert extract_categories(SHOP_HTML) == ["Wooden Toys", "Plush"]

    def test_categories_capped(self):
        links = "".join(f'<a href="/category/c{i}">Category {i}</a>' for i in range(15))
        assert len(extract_categories(links)) == 10

    def test_shipping(self):
        assert extract_shipping_info(SHOP_HTML) == (
            "Shipping information available on website. Free shipping available"
        )

    def test_shipping_unknown(self):
        assert "check website" in extract_shipping_info("<p>Hello</p>")

    def test_markets_whole_words(self):
        assert extract_markets(SHOP_HTML) == ["europe", "usa"]

    def test_markets_ignore_substrings(self):
        assert extract_markets("<p>Books by Bukowski</p>") == ["europe", "america"]

    def test_shop_info(self):
        info = extract_shop_info(SHOP_HTML, "https://www.littletoys.com")
        assert info.domain == "littletoys.com"
        assert info.title == "Little Toy Shop"
        assert "Free shipping" in info.text_content


class TestProductExtraction:
    """Tests for product page heuristics."""

    def test_clean_title_pipe_suffix(self):
        assert clean_product_title("Wooden Train | Little Toy Shop") == "Wooden Train"

    def test_clean_title_keeps_inner_hyphens(self):
        assert clean_product_title("Jack-in-the-box - Toy Store") == "Jack-in-the-box"

    def test_title_from_title_tag(self):
        assert extract_product_title(PRODUCT_HTML) == "Jack-in-the-box"

    def test_title_from_h1(self):
        assert extract_product_title("<h1>Stacking Rings</h1>") == "Stacking Rings"

    def test_price_from_meta(self):
        assert extract_price(PRODUCT_HTML) == 24.99

    def test_price_with_thousands_separator(self):
        page = '<meta property="og:price:amount" content="1,299.00">'
        assert extract_price(page) == 1299.0

    def test_price_from_json(self):
        assert extract_price('<script>{"price": "15.5"}</script>') == 15.5

    def test_price_text_fallback(self):
        assert extract_price("<p>Our price: 9,99</p>") == 9.99

    def test_price_missing(self):
        assert extract_price("<p>Call us</p>") is None

    def test_images_skip_logos_and_thumbnails(self):
        images = extract_images(PRODUCT_HTML, "https://littletoys.com/products/jack")
        assert images == ["https://cdn.littletoys.com/products/jack.jpg"]

    def test_images_keep_thumbnails_when_nothing_else(self):
        page = '<img src="https://cdn.littletoys.com/products/jack_thumb.jpg">'
        assert extract_images(page, "https://littletoys.com") == [
            "https://cdn.littletoys.com/products/jack_thumb.jpg"
        ]

    def test_images_from_srcset(self):
        page = ('<img srcset="https://cdn.shop.com/products/a.jpg 1x, '
                'https://cdn.shop.com/products/b.jpg 2x">')
        assert extract_images(page, "https://shop.com") == [
            "https://cdn.shop.com/products/a.jpg",
            "https://cdn.shop.com/products/b.jpg",
        ]

    def test_meta_description(self):
        assert extract_meta_description(PRODUCT_HTML) == "A classic wooden jack-in-the-box."

    def test_product_info(self):
        info = extract_product_info(PRODUCT_HTML, "https://littletoys.com/products/jack")
        assert info.title == "Jack-in-the-box"
        assert info.price == 24.99
        assert "tracking" not in info.text_content

    def test_find_product_urls(self):
        page = """
            <a href="/products/train">Train</a>
            <a href="/p/123">Blocks</a>
            <a href="/products/train">Train again</a>
            <a href="/about">About</a>
        """
        assert find_product_urls(page, "https://littletoys.com", 10) == [
            "https://littletoys.com/products/train",
            "https://littletoys.com/p/123",
        ]

    def test_find_product_urls_limit(self):
        page = '<a href="/products/a">A</a><a href="/products/b">B</a>'
        assert find_product_urls(page, "https://littletoys.com", 1) == [
            "https://littletoys.com/products/a"
        ]
