from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query

from app.config import settings
from app.deps.services import get_aggregation_service
from app.models.news_feed import (
    CombinedFeedResponse,
    PaginationInfo,
    SectionFeedResponse,
)
from services.aggregation_service import AggregationService

router = APIRouter(tags=["feed"])


@router.get("/combined-feed", response_model=CombinedFeedResponse)
async def get_combined_feed(
    page: int = Query(1, description="1-indexed page; values below 1 are read as 1."),
    limit: int = Query(
        settings.DEFAULT_PAGE_SIZE,
        le=settings.MAX_PAGE_SIZE,
        description="Page size; non-positive values fall back to the default.",
    ),
    category: Optional[str] = Query(
        default=None,
        description="Optional category. When set, internal stories lead the page.",
    ),
    service: AggregationService = Depends(get_aggregation_service),
) -> CombinedFeedResponse:
    feed = await service.combined_feed(page=page, limit=limit, category=category)
    return CombinedFeedResponse(
        items=feed.page.items,
        pagination=PaginationInfo(
            page=feed.page.page,
            total_pages=feed.page.total_pages,
            total_items=feed.page.total_items,
            limit=feed.page.page_size,
        ),
        source_counts=feed.source_counts,
    )


@router.get("/section-feed/{category}/{limit}", response_model=SectionFeedResponse)
async def get_section_feed(
    category: str = Path(..., description="Section label of the external feed."),
    limit: int = Path(..., ge=1, le=100),
    service: AggregationService = Depends(get_aggregation_service),
) -> SectionFeedResponse:
    if not category.strip():
        raise HTTPException(status_code=400, detail="Category is required.")
    items = await service.section_feed(category, limit)
    return SectionFeedResponse(items=items)
