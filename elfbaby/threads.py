"""Social thread captions for products."""

import json
import re
from pathlib import Path
from typing import Any, Dict, List, Sequence, Union

from elfbaby.text_utils import strip_tags

__all__ = [
    "MAX_THREAD_LENGTH",
    "generate_keywords",
    "generate_thread_text",
    "load_threads_json",
]

MAX_THREAD_LENGTH = 500
DESCRIPTION_PREVIEW_LENGTH = 300
THREAD_HASHTAGS = "#KidsToys #GiftsForKids"


def generate_keywords(title: str, categories: Sequence[str]) -> str:
    """Comma-separated keywords: up to three long title words, then two categories.

    Words of three letters or fewer are dropped; the result holds at most
    five unique keywords.
    """
    words = re.split(r"\s+", re.sub(r"[^\w\s]", " ", title.lower(), flags=re.ASCII))
    title_words = [w for w in words if len(w) > 3][:3]
    category_words = [c.lower() for c in categories][:2]

    keywords = list(dict.fromkeys(title_words + category_words))[:5]
    return ", ".join(keywords)


def generate_thread_text(title: str, description: str, categories: Sequence[str]) -> str:
    """Templated caption, capped at MAX_THREAD_LENGTH characters."""
    preview = strip_tags(description or "")[:DESCRIPTION_PREVIEW_LENGTH]

    text = f"{title} 🎁\n\n"
    if preview:
        text += f"{preview}...\n\n"
    if categories:
        text += f"Perfect {categories[0].lower()} gift for kids! ✨\n\n"
    text += THREAD_HASHTAGS

    if len(text) > MAX_THREAD_LENGTH:
        text = text[:MAX_THREAD_LENGTH - 3] + "..."
    return text


def load_threads_json(path: Union[str, Path]) -> List[Dict[str, Any]]:
    """Threads from a JSON file holding a list or ``{"threads": [...]}``.

    Raises:
        ValueError: If the file holds neither shape
    """
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if isinstance(data, dict):
        data = data.get("threads")
    if not isinstance(data, list):
        raise ValueError(
            'Invalid JSON format. Expected array of threads or object with "threads" array'
        )
    return data
