# api/routers/notifications.py
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from app.core.logging import get_logger
from app.deps.services import get_notification_service
from app.models.notifications import (
    ArticleNotificationRequest,
    CleanupResponse,
    CustomNotificationRequest,
    DispatchResponse,
    NotificationStatsResponse,
    TokenRegistration,
    TokenRegistrationResponse,
    TokenStat,
)
from services.notification_service import NotificationService

logger = get_logger()

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.post("/register", response_model=TokenRegistrationResponse)
async def register_token(
    registration: TokenRegistration,
    service: NotificationService = Depends(get_notification_service),
) -> TokenRegistrationResponse:
    """
    Register (or refresh) a push subscriber. Re-registering a token replaces
    its metadata.
    """
    token = registration.token.strip()
    if not token:
        raise HTTPException(status_code=400, detail="Push token is required")

    token_count = service.register(token, registration.metadata)
    return TokenRegistrationResponse(token_count=token_count)


@router.post("/send", response_model=DispatchResponse)
async def send_notification(
    request: CustomNotificationRequest,
    service: NotificationService = Depends(get_notification_service),
) -> DispatchResponse:
    """
    Broadcast a custom notification. "Nothing to send to" and "channel not
    configured" come back as 200 with success=false.
    """
    if not request.title.strip():
        raise HTTPException(status_code=400, detail="Notification title is required")

    result = await service.send_custom(
        request.title,
        request.body,
        image_url=request.image_url,
        data=request.data,
    )
    return DispatchResponse.from_result(result)


@router.post("/send-article", response_model=DispatchResponse)
async def send_article_notification(
    request: ArticleNotificationRequest,
    service: NotificationService = Depends(get_notification_service),
) -> DispatchResponse:
    result = await service.send_article(request.article)
    logger.info(
        "article_notification_requested",
        article_id=request.article.id,
        success=result.success,
    )
    return DispatchResponse.from_result(result)


@router.get("/stats", response_model=NotificationStatsResponse)
async def get_notification_stats(
    service: NotificationService = Depends(get_notification_service),
) -> NotificationStatsResponse:
    stats = service.stats()
    return NotificationStatsResponse(
        total_tokens=stats["total_tokens"],
        active_tokens=stats["active_tokens"],
        tokens=[TokenStat(**entry) for entry in stats["tokens"]],
    )


@router.post("/cleanup", response_model=CleanupResponse)
async def cleanup_tokens(
    service: NotificationService = Depends(get_notification_service),
) -> CleanupResponse:
    result = service.cleanup()
    return CleanupResponse(
        cleaned_count=result.cleaned_count,
        remaining_tokens=result.remaining_tokens,
    )
