from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from app.core.logging import get_logger
from app.models.notifications import DispatchResult, NotificationPayload
from services.notification_registry import NotificationRegistry
from services.push_service import PushTransport

logger = get_logger().bind(module="push_dispatcher")

NO_TARGETS_MESSAGE = "No tokens registered"
CHANNEL_UNAVAILABLE_MESSAGE = "Push channel not configured"


def _stringify_data(extra: Optional[Mapping[str, Any]]) -> Dict[str, str]:
    # Push data payloads are flat string maps.
    data: Dict[str, str] = {}
    for key, value in (extra or {}).items():
        if value is None:
            continue
        data[str(key)] = value if isinstance(value, str) else str(value)
    return data


class PushDispatcher:
    """
    Sends one logical notification to every registered endpoint in a single
    batched call, then reconciles the registry with the per-token outcomes:
    delivered endpoints get their last-used time refreshed, rejected ones are
    removed on the spot.
    """

    def __init__(self, registry: NotificationRegistry, transport: Optional[PushTransport]):
        self.registry = registry
        self.transport = transport

    async def send(
        self,
        title: str,
        body: str,
        extra: Optional[Mapping[str, Any]] = None,
        *,
        image_url: Optional[str] = None,
    ) -> DispatchResult:
        if self.transport is None:
            logger.warning("push_dispatch_skipped", reason="channel_unavailable")
            return DispatchResult(success=False, message=CHANNEL_UNAVAILABLE_MESSAGE)

        tokens = self.registry.tokens()
        if not tokens:
            logger.info("push_dispatch_skipped", reason="no_targets")
            return DispatchResult(success=False, message=NO_TARGETS_MESSAGE)

        data = {"url": "/", "timestamp": datetime.now(timezone.utc).isoformat()}
        data.update(_stringify_data(extra))
        payload = NotificationPayload(title=title, body=body, image_url=image_url, data=data)

        try:
            outcomes = await self.transport.send_multicast(tokens, payload)
        except Exception as exc:
            logger.error(
                "push_dispatch_failed",
                total_targets=len(tokens),
                error=str(exc),
                exc_info=True,
            )
            return DispatchResult(
                failure_count=len(tokens),
                total_targets=len(tokens),
                success=False,
                message=str(exc),
            )

        success_count = 0
        failure_count = 0
        removed = 0
        delivered_at = datetime.now(timezone.utc)
        for outcome in outcomes:
            if outcome.success:
                success_count += 1
                self.registry.mark_delivered(outcome.token, at=delivered_at)
                continue
            failure_count += 1
            if outcome.rejected and self.registry.remove(outcome.token):
                removed += 1

        logger.info(
            "push_dispatch_completed",
            total_targets=len(tokens),
            success_count=success_count,
            failure_count=failure_count,
            removed_endpoints=removed,
        )
        return DispatchResult(
            success_count=success_count,
            failure_count=failure_count,
            total_targets=len(tokens),
            success=True,
            message="Notification sent",
        )
