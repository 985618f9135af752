"""Read and update the markdown data files under agents/data/.

categories.md lists known shop categories as ``- **A**`` or
``- **A** > **B**`` bullets under a ``## Categories`` heading; filters.md
lists filter tags as ``- **X**`` bullets.
"""

import re
from pathlib import Path
from typing import Iterable, List, Optional, Union

from elfbaby.config import CATEGORIES_MD_PATH, FILTERS_MD_PATH
from elfbaby.logging_config import get_logger

__all__ = [
    "read_existing_categories",
    "add_categories_to_file",
    "read_available_filters",
]

logger = get_logger("agent_data")

PathLike = Union[str, Path]

CATEGORY_ENTRY_RE = re.compile(r"- \*\*([^*]+)\*\*(?: > \*\*([^*]+)\*\*)?")
FILTER_ENTRY_RE = re.compile(r"- \*\*([^*]+)\*\*")
CATEGORIES_HEADING = "## Categories"


def read_existing_categories(path: Optional[PathLike] = None) -> List[str]:
    """Categories from categories.md as "A" or "A > B" strings."""
    path = Path(path or CATEGORIES_MD_PATH)
    if not path.exists():
        logger.warning(f"Could not read {path}: file not found")
        return []

    categories = []
    for match in CATEGORY_ENTRY_RE.finditer(path.read_text(encoding="utf-8")):
        level1, level2 = match.group(1).strip(), match.group(2)
        categories.append(f"{level1} > {level2.strip()}" if level2 else level1)
    return categories


def _format_entry(category: str) -> str:
    if " > " in category:
        level1, level2 = category.split(" > ", 1)
        return f"- **{level1}** > **{level2}**"
    return f"- **{category}**"


def add_categories_to_file(new_categories: Iterable[str], path: Optional[PathLike] = None) -> int:
    """Merge categories into categories.md, case-insensitively.

    The Categories section is rewritten sorted; the rest of the file is kept.

    Returns:
        Number of categories added
    """
    path = Path(path or CATEGORIES_MD_PATH)
    existing = read_existing_categories(path) if path.exists() else []
    existing_lower = {c.lower() for c in existing}

    to_add: List[str] = []
    for category in new_categories:
        category = category.strip()
        if category and category.lower() not in existing_lower:
            existing_lower.add(category.lower())
            to_add.append(category)

    if not to_add:
        logger.info("No new categories to add")
        return 0

    section = "\n".join(_format_entry(c) for c in sorted(existing + to_add))
    content = path.read_text(encoding="utf-8") if path.exists() else "# Shop Categories\n"

    start = content.find(CATEGORIES_HEADING)
    if start == -1:
        content = content.rstrip("\n") + f"\n\n{CATEGORIES_HEADING}\n\n{section}\n"
    else:
        end = content.find("\n## ", start + len(CATEGORIES_HEADING))
        tail = content[end:] if end != -1 else ""
        content = f"{content[:start]}{CATEGORIES_HEADING}\n\n{section}\n{tail}"

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    logger.info(f"Added {len(to_add)} new categories to {path.name}")
    return len(to_add)


def read_available_filters(path: Optional[PathLike] = None) -> List[str]:
    """Filter tags from filters.md; empty if the file is missing."""
    path = Path(path or FILTERS_MD_PATH)
    if not path.exists():
        logger.warning(f"Could not read {path}: file not found")
        return []
    return [m.group(1).strip() for m in FILTER_ENTRY_RE.finditer(path.read_text(encoding="utf-8"))]
