"""
Third-party section feed client.

Fetches one bounded batch of stories per call, no local persistence. Every
failure mode (timeout, non-2xx, transport error, body of the wrong shape)
degrades to an empty list with a warning; nothing propagates to callers.
"""

from __future__ import annotations

import asyncio
from typing import Any, List, Optional
from urllib.parse import quote

import httpx

from app.config import settings
from app.core.logging import get_logger
from app.models.news_feed import ExternalRecord

logger = get_logger().bind(module="external_source")

_NEWS_CONTENT_TYPE = "News"
_REQUEST_HEADERS = {
    "User-Agent": "news-feed-backend/1.0",
    "Accept": "application/json, text/plain, */*",
}


def _extract_section_items(payload: Any) -> Optional[List[Any]]:
    """``{"content": {"sectionItems": [...]}}`` or None when the shape is off."""
    if not isinstance(payload, dict):
        return None
    content = payload.get("content")
    if not isinstance(content, dict):
        return None
    items = content.get("sectionItems")
    if not isinstance(items, list):
        return None
    return items


class ExternalSourceAdapter:
    def __init__(
        self,
        *,
        base_url: Optional[str] = None,
        default_section: Optional[str] = None,
        timeout_s: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.EXTERNAL_FEED_BASE_URL).rstrip("/")
        self.default_section = default_section or settings.EXTERNAL_DEFAULT_SECTION
        self.timeout_s = timeout_s if timeout_s is not None else settings.EXTERNAL_FETCH_TIMEOUT_S
        self._transport = transport

    def build_url(self, section: str, limit: int) -> str:
        return f"{self.base_url}/{quote(section, safe='')}/{int(limit)}"

    async def _get_json(self, url: str) -> Any:
        async with httpx.AsyncClient(timeout=self.timeout_s, transport=self._transport) as client:
            response = await client.get(url, headers=_REQUEST_HEADERS, follow_redirects=True)
            response.raise_for_status()
            return response.json()

    async def fetch_batch(self, limit: int, section: Optional[str] = None) -> List[ExternalRecord]:
        """
        One GET against the section feed. Only items whose contentType is
        "News" are kept; photo galleries and videos share the same feed.
        """
        section_key = (section or self.default_section).strip()
        url = self.build_url(section_key, max(1, limit))

        try:
            # Client timeouts bound each phase; wait_for bounds the whole call.
            payload = await asyncio.wait_for(self._get_json(url), timeout=self.timeout_s)
        except (httpx.TimeoutException, asyncio.TimeoutError) as exc:
            logger.warning("external_source_timeout", url=url, timeout_s=self.timeout_s, error=str(exc))
            return []
        except httpx.HTTPStatusError as exc:
            logger.warning(
                "external_source_bad_status",
                url=url,
                status_code=exc.response.status_code,
            )
            return []
        except httpx.HTTPError as exc:
            logger.warning("external_source_fetch_failed", url=url, error=str(exc))
            return []
        except ValueError as exc:
            logger.warning("external_source_malformed_body", url=url, error=str(exc))
            return []

        section_items = _extract_section_items(payload)
        if section_items is None:
            logger.warning("external_source_unexpected_shape", url=url)
            return []

        records = [
            ExternalRecord(fields=item, requested_section=section_key)
            for item in section_items
            if isinstance(item, dict) and item.get("contentType", _NEWS_CONTENT_TYPE) == _NEWS_CONTENT_TYPE
        ]

        logger.info(
            "external_source_fetch_success",
            section=section_key,
            items_returned=len(records),
            items_upstream=len(section_items),
        )
        return records[:limit]
