# app/deps/services.py
from __future__ import annotations

from fastapi import HTTPException, Request

from services.aggregation_service import AggregationService
from services.notification_service import NotificationService

__all__ = ["get_aggregation_service", "get_notification_service"]


def get_aggregation_service(request: Request) -> AggregationService:
    service = getattr(request.app.state, "aggregation_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Aggregation service not initialised")
    return service


def get_notification_service(request: Request) -> NotificationService:
    service = getattr(request.app.state, "notification_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Notification service not initialised")
    return service
