from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.models.news_feed import CanonicalNewsItem


@dataclass
class SubscriberEndpoint:
    """A push destination. The token is its only identity."""

    token: str
    registered_at: datetime
    last_used_at: datetime
    is_active: bool = True
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class PruneResult:
    cleaned_count: int
    remaining_tokens: int


@dataclass(frozen=True)
class DeliveryOutcome:
    token: str
    success: bool
    # Receiving side refused the endpoint for good (unsubscribed, expired, invalid).
    rejected: bool = False
    error: Optional[str] = None


@dataclass(frozen=True)
class NotificationPayload:
    title: str
    body: str
    image_url: Optional[str] = None
    data: Dict[str, str] = field(default_factory=dict)
    icon: str = "/icon-192x192.png"
    badge: str = "/badge-72x72.png"
    require_interaction: bool = True

    def to_message(self) -> Dict[str, Any]:
        notification: Dict[str, Any] = {
            "title": self.title,
            "body": self.body,
            "icon": self.icon,
            "badge": self.badge,
            "requireInteraction": self.require_interaction,
            "data": dict(self.data),
        }
        if self.image_url:
            notification["image"] = self.image_url
        return notification


@dataclass(frozen=True)
class DispatchResult:
    success_count: int = 0
    failure_count: int = 0
    total_targets: int = 0
    success: bool = True
    message: Optional[str] = None


# ---- HTTP payloads ------------------------------------------------------------

class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TokenRegistration(_CamelModel):
    token: str
    metadata: Dict[str, Any] = Field(default_factory=dict)


class TokenRegistrationResponse(_CamelModel):
    success: bool = True
    token_count: int


class CustomNotificationRequest(_CamelModel):
    title: str
    body: str = ""
    image_url: Optional[str] = None
    data: Dict[str, Any] = Field(default_factory=dict)


class ArticleNotificationRequest(_CamelModel):
    article: CanonicalNewsItem


class DispatchResponse(_CamelModel):
    success: bool
    message: Optional[str] = None
    success_count: int = 0
    failure_count: int = 0
    total_targets: int = 0

    @classmethod
    def from_result(cls, result: DispatchResult) -> "DispatchResponse":
        return cls(
            success=result.success,
            message=result.message,
            success_count=result.success_count,
            failure_count=result.failure_count,
            total_targets=result.total_targets,
        )


class TokenStat(_CamelModel):
    registered_at: datetime
    last_used_at: datetime
    user_agent: Optional[str] = None


class NotificationStatsResponse(_CamelModel):
    total_tokens: int
    active_tokens: int
    tokens: List[TokenStat]


class CleanupResponse(_CamelModel):
    cleaned_count: int
    remaining_tokens: int
