"""Markdown checklist of Amazon products already imported.

The file is read in full and appended to; it is not safe for two imports
running at the same time.
"""

import re
from datetime import date
from pathlib import Path
from typing import Iterable, Optional, Set, Union

from elfbaby.config import CHECKLIST_PATH
from elfbaby.logging_config import get_logger
from elfbaby.url_utils import canonical_amazon_url, extract_asin, strip_query

__all__ = [
    "CHECKLIST_HEADER",
    "read_checklist",
    "is_processed",
    "append_to_checklist",
]

logger = get_logger("checklist")

PathLike = Union[str, Path]

CHECKLIST_HEADER = """# Amazon Bestsellers Checklist

This file tracks all products that have been successfully added to the database from Amazon bestseller searches. When searching for new bestseller products, check this list first to avoid processing the same products again.

## Format

Each entry includes:
- Product URL (affiliate link if available, or direct Amazon URL)
- Product Title
- Product ID (from database)
- Date Added
- Age Filters (actual age range, not requested)

## Products Added

"""

# a bare URL line, or the URL bullet of an entry
CHECKLIST_URL_RE = re.compile(r"^(?:- \*\*URL:\*\*\s*)?(https?://\S+)\s*$", re.MULTILINE)
ENTRY_NUMBER_RE = re.compile(r"^### (\d+)\.", re.MULTILINE)


def read_checklist(path: Optional[PathLike] = None) -> Set[str]:
    """Processed URLs without query strings, plus /dp/ASIN forms."""
    path = Path(path or CHECKLIST_PATH)
    processed: Set[str] = set()
    if not path.exists():
        return processed

    for match in CHECKLIST_URL_RE.finditer(path.read_text(encoding="utf-8")):
        url = match.group(1).strip()
        processed.add(strip_query(url))
        asin = extract_asin(url)
        if asin:
            processed.add(canonical_amazon_url(asin))
    return processed


def is_processed(urls: Iterable[str], processed: Set[str]) -> bool:
    """True if any of the URLs (or its /dp/ASIN form) is in ``processed``."""
    for url in urls:
        if strip_query(url) in processed:
            return True
        asin = extract_asin(url)
        if asin and canonical_amazon_url(asin) in processed:
            return True
    return False


def append_to_checklist(
    product_url: str,
    product_title: str,
    product_id: str,
    age_filters: Iterable[str],
    category: str = "",
    path: Optional[PathLike] = None,
    added_on: Optional[date] = None,
) -> int:
    """Append a numbered entry, creating the file with its header if needed.

    Returns:
        The entry number written
    """
    path = Path(path or CHECKLIST_PATH)
    content = path.read_text(encoding="utf-8") if path.exists() else CHECKLIST_HEADER

    numbers = [int(n) for n in ENTRY_NUMBER_RE.findall(content)]
    next_number = max(numbers, default=0) + 1

    filters = list(age_filters)
    entry = (
        f"### {next_number}. {product_title}\n"
        f"- **URL:** {product_url}\n"
        f"- **Product ID:** {product_id}\n"
        f"- **Date Added:** {(added_on or date.today()).isoformat()}\n"
        f"- **Age Filters:** {', '.join(filters) if filters else 'none'}\n"
        f"- **Category:** {category or '(none assigned)'}\n\n"
    )

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content + entry, encoding="utf-8")
    logger.info(f"Added to checklist: {product_title[:50]}")
    return next_number
