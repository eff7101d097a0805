from __future__ import annotations

import asyncio
from datetime import timedelta
from typing import Any, Dict, Mapping, Optional, Set

from app.config import settings
from app.core.logging import get_logger
from app.models.news_feed import CanonicalNewsItem, SourceKind
from app.models.notifications import DispatchResult, PruneResult
from services.notification_registry import NotificationRegistry
from services.push_dispatcher import PushDispatcher

logger = get_logger().bind(module="notification_service")


def article_link(item: CanonicalNewsItem) -> str:
    if item.source_kind == SourceKind.EXTERNAL and item.detail_reference:
        return item.detail_reference
    return f"/article/{item.detail_reference or item.id}"


class NotificationService:
    """
    Registration, broadcast and cleanup for push subscribers. The authoring
    workflow calls ``notify_published`` after a record goes live.
    """

    def __init__(
        self,
        registry: NotificationRegistry,
        dispatcher: PushDispatcher,
        *,
        max_idle: Optional[timedelta] = None,
        default_article_body: Optional[str] = None,
    ):
        self.registry = registry
        self.dispatcher = dispatcher
        self.max_idle = max_idle or timedelta(days=settings.TOKEN_MAX_IDLE_DAYS)
        self.default_article_body = default_article_body or settings.DEFAULT_ARTICLE_NOTIFICATION_BODY
        self._pending: Set[asyncio.Task[DispatchResult]] = set()

    def register(self, token: str, metadata: Optional[Mapping[str, Any]] = None) -> int:
        """Returns the registry size after the upsert."""
        self.registry.register(token, metadata)
        return len(self.registry)

    async def send_custom(
        self,
        title: str,
        body: str,
        *,
        image_url: Optional[str] = None,
        data: Optional[Mapping[str, Any]] = None,
    ) -> DispatchResult:
        return await self.dispatcher.send(title, body, data, image_url=image_url)

    async def send_article(self, item: CanonicalNewsItem) -> DispatchResult:
        extra = {
            "url": article_link(item),
            "articleId": item.id,
            "type": "new_article",
        }
        return await self.dispatcher.send(
            item.title,
            item.excerpt or self.default_article_body,
            extra,
            image_url=item.image_url,
        )

    def notify_published(self, item: CanonicalNewsItem) -> asyncio.Task[DispatchResult]:
        """
        Best-effort broadcast for a freshly published record. Spawns the
        dispatch and returns at once; the task's errors are only logged.
        Must be called from inside the running event loop.
        """
        task = asyncio.get_running_loop().create_task(
            self._notify_published(item), name=f"notify-published-{item.id}"
        )
        # Keep a reference so the task is not garbage collected mid-flight.
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _notify_published(self, item: CanonicalNewsItem) -> DispatchResult:
        try:
            result = await self.send_article(item)
        except Exception as exc:
            logger.error(
                "publish_notification_failed",
                article_id=item.id,
                error=str(exc),
                exc_info=True,
            )
            return DispatchResult(success=False, message=str(exc))
        logger.info(
            "publish_notification_sent",
            article_id=item.id,
            success=result.success,
            success_count=result.success_count,
            failure_count=result.failure_count,
        )
        return result

    async def drain(self) -> None:
        """Wait for in-flight publish notifications (used on shutdown)."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def stats(self) -> Dict[str, Any]:
        return self.registry.stats()

    def cleanup(self, max_idle: Optional[timedelta] = None) -> PruneResult:
        return self.registry.prune(max_idle or self.max_idle)
