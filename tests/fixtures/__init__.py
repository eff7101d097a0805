# tests/fixtures/__init__.py
"""
Factory functions for feed and notification tests:
- make_internal_row()
- make_external_item()
- make_item()
- FakeContentStore / FakeExternalSource
- RecordingTransport
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence

from app.models.news_feed import CanonicalNewsItem, ExternalRecord, SourceKind
from app.models.notifications import DeliveryOutcome, NotificationPayload


def make_internal_row(
    record_id: str = "int-1",
    title: str = "Internal story",
    category: str = "bengal",
    publish_date: Any = "2025-01-01T08:00:00Z",
    **overrides: Any,
) -> Dict[str, Any]:
    row: Dict[str, Any] = {
        "id": record_id,
        "title": title,
        "content": "Body of the internal story.",
        "excerpt": None,
        "category": category,
        "image_url": "https://cdn.example.com/int.jpg",
        "tags": ["kolkata", "politics"],
        "author": "Desk",
        "read_time": 4,
        "publish_date": publish_date,
        "created_at": datetime(2024, 12, 31, tzinfo=timezone.utc),
        "published": True,
    }
    row.update(overrides)
    return row


def make_external_item(
    item_id: str = "ext-1",
    head_line: str = "External story",
    section: str = "bengal",
    published: str = "2025-01-01 09:00:00",
    **overrides: Any,
) -> Dict[str, Any]:
    item: Dict[str, Any] = {
        "itemId": item_id,
        "headLine": head_line,
        "subHead": "",
        "shortDescription": "Short description",
        "wallpaperLarge": "",
        "mediumRes": "https://img.example.com/medium.jpg",
        "thumbImage": "https://img.example.com/thumb.jpg",
        "publishedDate": published,
        "timeToRead": 2,
        "detailFeedURL": f"https://feed.example.com/detail/{item_id}",
        "websiteURL": f"https://www.example.com/story/{item_id}",
        "contentType": "News",
        "section": section,
        "authorName": "Correspondent",
        "keywords": ["news"],
    }
    item.update(overrides)
    return item


def make_item(
    item_id: str,
    kind: SourceKind,
    published: datetime,
    **overrides: Any,
) -> CanonicalNewsItem:
    fields: Dict[str, Any] = {
        "id": item_id,
        "title": f"Story {item_id}",
        "excerpt": "excerpt",
        "category": "bengal",
        "publish_instant": published,
        "source_kind": kind,
        "detail_reference": item_id,
    }
    fields.update(overrides)
    return CanonicalNewsItem(**fields)


class FakeContentStore:
    def __init__(self, rows: Optional[List[Dict[str, Any]]] = None, error: Optional[Exception] = None):
        self.rows = rows or []
        self.error = error
        self.calls: List[Optional[str]] = []

    async def fetch_published(self, category: Optional[str] = None) -> List[Dict[str, Any]]:
        self.calls.append(category)
        if self.error is not None:
            raise self.error
        return [
            row for row in self.rows
            if category is None or row.get("category") == category
        ]


class FakeExternalSource:
    def __init__(self, items: Optional[List[Dict[str, Any]]] = None):
        self.items = items or []
        self.calls: List[tuple[int, Optional[str]]] = []

    async def fetch_batch(self, limit: int, section: Optional[str] = None) -> List[ExternalRecord]:
        self.calls.append((limit, section))
        return [ExternalRecord(fields=item, requested_section=section) for item in self.items[:limit]]


class RecordingTransport:
    """PushTransport that answers from a token -> outcome map."""

    def __init__(self, rejected: Iterable[str] = (), failed: Iterable[str] = ()):
        self.rejected = set(rejected)
        self.failed = set(failed)
        self.calls: List[tuple[List[str], NotificationPayload]] = []

    async def send_multicast(
        self,
        tokens: Sequence[str],
        payload: NotificationPayload,
    ) -> List[DeliveryOutcome]:
        self.calls.append((list(tokens), payload))
        outcomes: List[DeliveryOutcome] = []
        for token in tokens:
            if token in self.rejected:
                outcomes.append(DeliveryOutcome(token=token, success=False, rejected=True, error="unregistered"))
            elif token in self.failed:
                outcomes.append(DeliveryOutcome(token=token, success=False, error="503"))
            else:
                outcomes.append(DeliveryOutcome(token=token, success=True))
        return outcomes
