from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional

from app.config import settings
from app.core.logging import get_logger
from app.models.news_feed import (
    CanonicalNewsItem,
    FeedMode,
    Page,
    SourceCounts,
    source_counts_for,
)
from services.external_source import ExternalSourceAdapter
from services.feed_merge import merge_items
from services.feed_normalization import normalize_records
from services.internal_source import InternalSourceAdapter
from services.pagination import paginate

logger = get_logger().bind(module="aggregation_service")


@dataclass
class CombinedFeed:
    page: Page
    source_counts: SourceCounts


def _matches_section(item: CanonicalNewsItem, wanted: str) -> bool:
    label = item.category.strip().lower()
    return bool(label) and (label == wanted or wanted in label)


class AggregationService:
    """
    Builds the combined feed from scratch on every call: both sources are
    fetched concurrently, normalized, merged and paginated.
    """

    def __init__(
        self,
        internal: InternalSourceAdapter,
        external: ExternalSourceAdapter,
        *,
        external_batch_limit: Optional[int] = None,
    ):
        self.internal = internal
        self.external = external
        self.external_batch_limit = external_batch_limit or settings.EXTERNAL_BATCH_LIMIT

    async def combined_feed(
        self,
        *,
        page: int = 1,
        limit: int = 0,
        category: Optional[str] = None,
    ) -> CombinedFeed:
        category_key = (category or "").strip() or None
        mode = FeedMode.CATEGORY if category_key else FeedMode.GLOBAL
        now = datetime.now(timezone.utc)

        # Adapters swallow their own failures; gather never sees an exception.
        internal_records, external_records = await asyncio.gather(
            self.internal.fetch_published(category_key),
            self.external.fetch_batch(self.external_batch_limit, section=category_key),
        )

        internal_items, internal_errors = normalize_records(internal_records, now=now)
        external_items, external_errors = normalize_records(external_records, now=now)

        merged = merge_items([internal_items, external_items], mode)
        counts = source_counts_for(merged)
        result_page = paginate(merged, page, limit)

        logger.info(
            "combined_feed_built",
            mode=mode.value,
            category=category_key,
            internal=counts.internal,
            external=counts.external,
            dropped=len(internal_errors) + len(external_errors),
            page=result_page.page,
            total_pages=result_page.total_pages,
        )
        return CombinedFeed(page=result_page, source_counts=counts)

    async def section_feed(self, category: str, limit: int) -> List[CanonicalNewsItem]:
        """
        External-only feed for one section. Items are filtered on their own
        section label (exact or substring); if nothing matches, the whole
        batch is returned rather than an empty list.
        """
        wanted = category.strip().lower()
        records = await self.external.fetch_batch(limit, section=category.strip())
        items, _ = normalize_records(records)

        filtered = [item for item in items if _matches_section(item, wanted)]
        if not filtered and items:
            logger.info(
                "section_feed_filter_fallback",
                category=category,
                batch_size=len(items),
            )
            return items
        return filtered
