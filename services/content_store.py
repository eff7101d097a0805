"""
Read side of the internally authored content collection.

Records are written by the authoring workflow (outside this service); here we
only read the published ones. A record is soft-deleted by flipping
``published`` to false, so that flag is the only visibility rule.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol

from services.db_service import fetch

_PUBLISHED_SQL = """
    SELECT
        id::text AS id,
        title,
        content,
        excerpt,
        category,
        image_url,
        tags,
        author,
        read_time,
        publish_date,
        created_at
    FROM news_articles
    WHERE published = true
"""


class ContentStore(Protocol):
    async def fetch_published(self, category: Optional[str] = None) -> List[Dict[str, Any]]:
        ...


class PostgresContentStore:
    """ContentStore backed by the ``news_articles`` table."""

    async def fetch_published(self, category: Optional[str] = None) -> List[Dict[str, Any]]:
        if category:
            rows = await fetch(
                _PUBLISHED_SQL + " AND category = $1 ORDER BY created_at DESC",
                category,
            )
        else:
            rows = await fetch(_PUBLISHED_SQL + " ORDER BY created_at DESC")
        return [dict(row) for row in rows]
