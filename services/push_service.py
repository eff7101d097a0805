# services/push_service.py
from __future__ import annotations

import asyncio
import json
from typing import Any, Dict, List, Optional, Protocol, Sequence

from pywebpush import webpush, WebPushException

from app.config import push_channel_configured, settings
from app.core.logging import get_logger
from app.models.notifications import DeliveryOutcome, NotificationPayload
from services.errors import DeliveryRejected

logger = get_logger().bind(module="push_service")

# Push services answer 404/410 for subscriptions that no longer exist.
_GONE_STATUS_CODES = {404, 410}


class PushTransport(Protocol):
    async def send_multicast(
        self,
        tokens: Sequence[str],
        payload: NotificationPayload,
    ) -> List[DeliveryOutcome]:
        """One batched send; returns one outcome per token, in token order."""
        ...


def _parse_subscription(token: str) -> Dict[str, Any]:
    try:
        subscription = json.loads(token)
    except (TypeError, ValueError) as exc:
        raise DeliveryRejected(None, "token is not a Web Push subscription") from exc
    if not isinstance(subscription, dict) or not subscription.get("endpoint"):
        raise DeliveryRejected(None, "subscription has no endpoint")
    return subscription


class WebPushTransport:
    """
    Web Push via pywebpush. Tokens are JSON-encoded PushSubscription objects
    as produced by the browser. pywebpush is blocking, so each send runs in a
    worker thread and the batch is gathered.
    """

    def __init__(
        self,
        *,
        vapid_private_key: str,
        vapid_email: str,
        ttl_seconds: int = 24 * 60 * 60,
    ):
        self.vapid_private_key = vapid_private_key
        self.vapid_claims = {"sub": f"mailto:{vapid_email}"}
        self.ttl_seconds = ttl_seconds

    async def send_multicast(
        self,
        tokens: Sequence[str],
        payload: NotificationPayload,
    ) -> List[DeliveryOutcome]:
        data = json.dumps(payload.to_message(), ensure_ascii=False)
        return list(await asyncio.gather(*(self._send_one(token, data) for token in tokens)))

    async def _send_one(self, token: str, data: str) -> DeliveryOutcome:
        try:
            subscription = _parse_subscription(token)
            await asyncio.to_thread(
                webpush,
                subscription_info=subscription,
                data=data,
                vapid_private_key=self.vapid_private_key,
                vapid_claims=dict(self.vapid_claims),
                ttl=self.ttl_seconds,
            )
        except DeliveryRejected as exc:
            return DeliveryOutcome(token=token, success=False, rejected=True, error=exc.reason)
        except WebPushException as exc:
            status_code = getattr(exc.response, "status_code", None)
            if status_code in _GONE_STATUS_CODES:
                return DeliveryOutcome(
                    token=token,
                    success=False,
                    rejected=True,
                    error=f"subscription_gone:{status_code}",
                )
            logger.warning("web_push_failed", status_code=status_code, error=str(exc))
            return DeliveryOutcome(token=token, success=False, error=str(exc))
        except Exception as exc:
            logger.error("web_push_unexpected_error", error=str(exc), exc_info=True)
            return DeliveryOutcome(token=token, success=False, error=str(exc))
        return DeliveryOutcome(token=token, success=True)


def build_push_transport() -> Optional[PushTransport]:
    """WebPushTransport when VAPID keys are configured, else None."""
    if not push_channel_configured():
        logger.warning(
            "vapid_keys_missing",
            message="VAPID keys not configured. Push notifications will not work.",
        )
        return None
    return WebPushTransport(
        vapid_private_key=str(settings.VAPID_PRIVATE_KEY),
        vapid_email=settings.VAPID_EMAIL,
    )
