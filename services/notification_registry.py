from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Mapping, Optional

from app.core.logging import get_logger
from app.models.notifications import PruneResult, SubscriberEndpoint

logger = get_logger().bind(module="notification_registry")

DEFAULT_MAX_IDLE = timedelta(days=7)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class NotificationRegistry:
    """
    In-memory subscriber endpoints keyed by token.

    One instance is created per application and handed to both the
    registration and the dispatch/prune paths. The map is only touched from
    the event loop thread; a preemptive runtime would need a lock around
    the read-then-delete in dispatch.
    """

    def __init__(self) -> None:
        self._endpoints: Dict[str, SubscriberEndpoint] = {}

    def __len__(self) -> int:
        return len(self._endpoints)

    def __contains__(self, token: object) -> bool:
        return token in self._endpoints

    def register(
        self,
        token: str,
        metadata: Optional[Mapping[str, Any]] = None,
        *,
        now: Optional[datetime] = None,
    ) -> SubscriberEndpoint:
        """Insert or overwrite; re-registering replaces metadata, never duplicates."""
        at = now or _utcnow()
        endpoint = SubscriberEndpoint(
            token=token,
            registered_at=at,
            last_used_at=at,
            is_active=True,
            metadata=dict(metadata or {}),
        )
        replaced = token in self
        self._endpoints[token] = endpoint
        logger.info("subscriber_registered", replaced=replaced, total=len(self._endpoints))
        return endpoint

    def get(self, token: str) -> Optional[SubscriberEndpoint]:
        return self._endpoints.get(token)

    def list(self) -> List[SubscriberEndpoint]:
        return list(self._endpoints.values())

    def tokens(self) -> List[str]:
        return list(self._endpoints.keys())

    def mark_delivered(self, token: str, *, at: Optional[datetime] = None) -> None:
        endpoint = self.get(token)
        if endpoint is None:
            return
        moment = at or _utcnow()
        # last_used_at never moves backwards
        if moment > endpoint.last_used_at:
            endpoint.last_used_at = moment

    def remove(self, token: str) -> bool:
        return self._endpoints.pop(token, None) is not None

    def prune(
        self,
        max_idle: timedelta = DEFAULT_MAX_IDLE,
        *,
        now: Optional[datetime] = None,
    ) -> PruneResult:
        """Drop endpoints idle for longer than ``max_idle`` plus any inactive ones."""
        cutoff = (now or _utcnow()) - max_idle
        stale = [
            token
            for token, endpoint in self._endpoints.items()
            if not endpoint.is_active or endpoint.last_used_at < cutoff
        ]
        for token in stale:
            del self._endpoints[token]

        result = PruneResult(cleaned_count=len(stale), remaining_tokens=len(self._endpoints))
        logger.info(
            "subscribers_pruned",
            cleaned_count=result.cleaned_count,
            remaining_tokens=result.remaining_tokens,
            max_idle_hours=round(max_idle.total_seconds() / 3600, 2),
        )
        return result

    def stats(self) -> Dict[str, Any]:
        active = [endpoint for endpoint in self._endpoints.values() if endpoint.is_active]
        return {
            "total_tokens": len(self._endpoints),
            "active_tokens": len(active),
            "tokens": [
                {
                    "registered_at": endpoint.registered_at,
                    "last_used_at": endpoint.last_used_at,
                    "user_agent": endpoint.metadata.get("userAgent")
                    or endpoint.metadata.get("user_agent"),
                }
                for endpoint in active
            ],
        }
