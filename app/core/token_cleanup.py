from __future__ import annotations

import asyncio
from typing import Optional

from app.core.logging import get_logger
from app.core.request_id import with_run_id
from services.notification_service import NotificationService

logger = get_logger().bind(module="token_cleanup")


class TokenCleanupMonitor:
    """
    Periodically prunes idle subscriber endpoints so the registry does not
    grow with tokens that are never delivered to again.
    """

    def __init__(
        self,
        notifications: NotificationService,
        *,
        interval_seconds: int = 6 * 60 * 60,
    ) -> None:
        self.notifications = notifications
        self.interval_seconds = interval_seconds
        self._stop_event = asyncio.Event()
        self._task: Optional[asyncio.Task[None]] = None

    @property
    def running(self) -> bool:
        return self._task is not None

    def start(self) -> None:
        if self._task is not None:
            return
        loop = asyncio.get_running_loop()
        self._stop_event.clear()
        self._task = loop.create_task(self._run(), name="token-cleanup-monitor")
        logger.info("token_cleanup_started", interval_seconds=self.interval_seconds)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._stop_event.set()
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        finally:
            self._task = None
            logger.info("token_cleanup_stopped")

    def run_once(self) -> None:
        with with_run_id():
            self.notifications.cleanup()

    async def _run(self) -> None:
        while not self._stop_event.is_set():
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval_seconds)
                break
            except asyncio.TimeoutError:
                pass
            try:
                self.run_once()
            except Exception:
                logger.exception("token_cleanup_failed")
