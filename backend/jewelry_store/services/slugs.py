"""URL slugs for product detail pages."""

from __future__ import annotations

import re
from typing import Callable

from slugify import slugify

UUID_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE
)


def looks_like_id(identifier: str) -> bool:
    return bool(UUID_RE.match(identifier))


def slug_source(category: str, row: dict) -> str:
    """Human-readable text a product's slug is derived from."""
    if category == "gemstone":
        return f"{row.get('carat')}ct {row.get('shape')} {row.get('type')}"
    if category == "diamond":
        return (
            f"{row.get('carat')}ct {row.get('shape')} {row.get('color')} "
            f"{row.get('clarity')} {row.get('type')} diamond"
        )
    if "title" in row:
        return row["title"]
    return f"{row.get('name', '')} {row.get('type', '')}"


def unique_slug(text: str, exists: Callable[[str], bool]) -> str:
    """Slugify *text*, appending ``-1``, ``-2``... until *exists* reports it free."""
    base_slug = slugify(text) or "product"
    slug = base_slug
    counter = 1
    while exists(slug):
        slug = f"{base_slug}-{counter}"
        counter += 1
    return slug
