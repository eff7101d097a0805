from __future__ import annotations

from typing import List, Optional

from app.core.logging import get_logger
from app.models.news_feed import InternalRecord
from services.content_store import ContentStore

logger = get_logger().bind(module="internal_source")


class InternalSourceAdapter:
    """
    Reads published records from the content store. Store failures degrade to
    an empty contribution so the other source can still fill the feed.
    """

    def __init__(self, store: ContentStore):
        self.store = store

    async def fetch_published(self, category: Optional[str] = None) -> List[InternalRecord]:
        try:
            rows = await self.store.fetch_published(category)
        except Exception as exc:
            logger.warning(
                "internal_source_unavailable",
                category=category,
                error=str(exc),
                error_type=exc.__class__.__name__,
            )
            return []

        records = [
            InternalRecord(fields=row)
            for row in rows
            if row.get("published", True) is not False
        ]
        logger.debug("internal_source_fetched", category=category, count=len(records))
        return records
