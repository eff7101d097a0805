from __future__ import annotations

import math
from typing import Optional, Sequence

from app.config import settings
from app.models.news_feed import CanonicalNewsItem, Page


def paginate(
    items: Sequence[CanonicalNewsItem],
    page: int,
    page_size: int,
    *,
    default_page_size: Optional[int] = None,
) -> Page:
    """
    Slice an ordered collection. ``page`` is 1-indexed; values below 1 mean 1.
    A non-positive ``page_size`` falls back to the configured default. Pages
    past the end are empty, not an error.
    """
    fallback = default_page_size or settings.DEFAULT_PAGE_SIZE
    size = page_size if page_size and page_size > 0 else fallback
    current = page if page and page > 0 else 1

    total = len(items)
    total_pages = math.ceil(total / size) if total else 0
    start = (current - 1) * size

    return Page(
        items=list(items[start:start + size]),
        page=current,
        page_size=size,
        total_items=total,
        total_pages=total_pages,
    )
