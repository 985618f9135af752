"""Rakuten Advertising product search API client.

API reference: https://developers.rakutenadvertising.com/documentation/en-US/affiliate_apis
"""

import time
from typing import Any, Dict, List, Optional, Sequence

import requests

from elfbaby.config import (
    RAKUTEN_BASE_URL,
    RAKUTEN_PAGE_SIZE,
    RAKUTEN_TOKEN_EXPIRY_MARGIN,
    RAKUTEN_TOKEN_TIMEOUT,
    REQUEST_TIMEOUT,
)
from elfbaby.logging_config import get_logger
from elfbaby.models import Product
from elfbaby.text_utils import generate_slug

__all__ = [
    "RakutenAPIError",
    "RakutenAuthorizationError",
    "RakutenAPIClient",
    "convert_rakuten_product",
    "fallback_description",
]

logger = get_logger("rakuten")

ERROR_PREVIEW_CHARS = 500


class RakutenAPIError(Exception):
    """The Rakuten API returned an error or an unusable response."""


class RakutenAuthorizationError(RakutenAPIError):
    """The merchant has not approved the affiliate partnership, or auth failed."""


def _partnership_hint(mid: str) -> str:
    return (
        f"- The merchant (MID: {mid}) has not approved your affiliate partnership\n"
        "- Your affiliate account doesn't have access to this merchant's products\n"
    )


class RakutenAPIClient:
    """OAuth client-credentials client for the product search API."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        base_url: str = RAKUTEN_BASE_URL,
        session: Optional[requests.Session] = None,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self._access_token: Optional[str] = None
        self._token_expiry = 0.0

    def get_access_token(self) -> str:
        """Cached bearer token, refreshed an hour before it expires.

        Raises:
            RakutenAPIError: On HTTP, network or response-format errors
        """
        if self._access_token and self._token_expiry > time.time():
            return self._access_token

        token_url = f"{self.base_url}/token"
        logger.debug(f"Requesting token from: {token_url}")
        try:
            resp = self.session.post(
                token_url,
                auth=(self.client_id, self.client_secret),
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                data="grant_type=client_credentials&scope=PRODUCTION",
                timeout=RAKUTEN_TOKEN_TIMEOUT,
            )
        except requests.exceptions.RequestException as e:
            raise RakutenAPIError(
                "Network error connecting to Rakuten API.\n"
                f"URL: {token_url}\n"
                "This could be due to:\n"
                "- Network connectivity issues\n"
                "- Firewall blocking the request\n"
                "- SSL certificate issues\n"
                "- Incorrect API base URL\n"
                f"Original error: {e}"
            ) from e

        if not resp.ok:
            raise RakutenAPIError(
                f"Failed to get access token: {resp.status_code} {resp.reason} - {resp.text}"
            )

        try:
            data = resp.json()
        except ValueError as e:
            raise RakutenAPIError(
                f"Token endpoint returned invalid JSON: {resp.text[:ERROR_PREVIEW_CHARS]}"
            ) from e

        if not isinstance(data, dict) or not data.get("access_token"):
            raise RakutenAPIError(
                f"Token endpoint did not return access_token. Response: {resp.text[:ERROR_PREVIEW_CHARS]}"
            )

        expires_in = int(data.get("expires_in", 0))
        logger.debug(f"Token obtained, expires in {expires_in}s")
        self._access_token = data["access_token"]
        self._token_expiry = time.time() + expires_in - RAKUTEN_TOKEN_EXPIRY_MARGIN
        return self._access_token

    def search_products_by_mid(
        self,
        mid: str,
        keyword: Optional[str] = None,
        page: Optional[int] = None,
        page_size: Optional[int] = None,
        category: Optional[str] = None,
        instock: Optional[bool] = None,
    ) -> Dict[str, Any]:
        """One page of product search results for a merchant.

        Raises:
            RakutenAuthorizationError: On 401 or a token error in an XML body
            RakutenAPIError: On any other error status or unparseable body
        """
        token = self.get_access_token()

        params: Dict[str, str] = {"mid": str(mid)}
        if keyword:
            params["keyword"] = keyword
        if page:
            params["page"] = str(page)
        if page_size:
            params["pagesize"] = str(page_size)
        if category:
            params["category"] = category
        if instock is not None:
            params["instock"] = "1" if instock else "0"
        params["token"] = token

        search_url = f"{self.base_url}/productsearch/1.0"
        redacted = dict(params, token="[TOKEN]")
        logger.debug(f"Searching products: {search_url} {redacted}")

        try:
            resp = self.session.get(
                search_url,
                params=params,
                headers={"Authorization": f"Bearer {token}", "Accept": "application/json"},
                timeout=REQUEST_TIMEOUT,
            )
        except requests.exceptions.RequestException as e:
            raise RakutenAPIError(f"Error searching Rakuten products: {e}") from e

        if resp.status_code == 401:
            raise RakutenAuthorizationError(
                "Unauthorized (401). This usually means:\n"
                + _partnership_hint(mid)
                + f"- Please verify your affiliate partnership status with merchant MID {mid}\n\n"
                f"Error details: {resp.text[:ERROR_PREVIEW_CHARS]}"
            )
        if not resp.ok:
            raise RakutenAPIError(
                f"Failed to search products: {resp.status_code} {resp.reason} - "
                f"{resp.text[:ERROR_PREVIEW_CHARS]}"
            )

        body = resp.text
        content_type = resp.headers.get("content-type", "")
        if "xml" in content_type or body.strip().startswith("<"):
            logger.debug(f"API returned XML response: {body}")
            if "Invalid token" in body or "718619" in body:
                raise RakutenAuthorizationError(
                    "Invalid token error. This usually means:\n"
                    + _partnership_hint(mid)
                    + "- The API credentials may not have the required permissions\n\n"
                    f"Please verify that your affiliate partnership with merchant MID {mid} is approved."
                )
            if "No token" in body or "718614" in body:
                raise RakutenAuthorizationError(
                    "No token specified. Authentication issue with the API request."
                )
            raise RakutenAPIError(
                "Rakuten API returned XML instead of JSON. This may indicate:\n"
                + _partnership_hint(mid)
                + "- The API endpoint or format is different\n\n"
                f"Response preview: {body[:ERROR_PREVIEW_CHARS]}..."
            )

        try:
            data = resp.json()
        except ValueError as e:
            raise RakutenAPIError(
                f"Failed to parse API response as JSON. Response: {body[:ERROR_PREVIEW_CHARS]}..."
            ) from e
        return data

    def get_all_products_by_mid(
        self,
        mid: str,
        keyword: Optional[str] = None,
        category: Optional[str] = None,
        instock: Optional[bool] = None,
        max_products: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Every product page for a merchant, up to ``max_products``."""
        products: List[Dict[str, Any]] = []
        page = 1
        while True:
            response = self.search_products_by_mid(
                mid,
                keyword=keyword,
                page=page,
                page_size=RAKUTEN_PAGE_SIZE,
                category=category,
                instock=instock,
            )
            batch = response.get("products") or []
            products.extend(batch)

            if max_products is not None and len(products) >= max_products:
                return products[:max_products]

            total_pages = response.get("totalpages") or 1
            if page >= int(total_pages) or not batch:
                break
            page += 1

        return products

    def get_merchant_info(self, mid: str) -> Dict[str, Any]:
        """Merchant name and category path, read off its first product.

        Raises:
            RakutenAPIError: If the merchant has no products
        """
        response = self.search_products_by_mid(mid, page_size=1)
        products = response.get("products") or []
        if not products:
            raise RakutenAPIError(f"No products found for merchant MID: {mid}")
        first = products[0]
        return {
            "mid": first.get("mid"),
            "merchantname": first.get("merchantname"),
            "merchantcategorypath": first.get("merchantcategorypath"),
        }


def _parse_feed_price(raw: Any) -> Optional[float]:
    if raw in (None, ""):
        return None
    try:
        return float(raw)
    except (TypeError, ValueError):
        return None


def convert_rakuten_product(item: Dict[str, Any], shop_id: str, categories: Sequence[str] = ()) -> Product:
    """Map a product search item onto a catalog Product."""
    title = item.get("productname") or "Unknown Product"
    merchant_product_id = item.get("merchantproductid")
    return Product(
        shop_id=shop_id,
        title=title,
        slug=generate_slug(item.get("productname") or "unknown-product"),
        url=item.get("producturl") or "",
        price=_parse_feed_price(item.get("price")),
        description=item.get("description") or "",
        specifications={
            "merchantproductid": merchant_product_id,
            "sku": item.get("sku") or merchant_product_id,
            "manufacturer": item.get("manufacturer") or None,
            "category": item.get("category") or None,
            "instock": str(item.get("instock", "")).lower() in ("1", "true"),
        },
        images=[item["imageurl"]] if item.get("imageurl") else [],
        filters={},
        categories=list(categories),
    )


def fallback_description(product: Product) -> str:
    """Description built from the title and specifications for bare feed items."""
    specs = product.specifications
    text = f"{product.title}. "
    if specs.get("manufacturer"):
        text += f"Manufactured by {specs['manufacturer']}. "
    if specs.get("category"):
        text += f"Category: {specs['category']}. "
    if "instock" in specs:
        text += f"Stock status: {'Currently in stock' if specs['instock'] else 'Out of stock'}."
    else:
        text += "Available through Rakuten Advertising."
    return text
