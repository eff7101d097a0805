# app/main.py
from __future__ import annotations

from datetime import timedelta
from typing import Optional

from fastapi import FastAPI, Response, HTTPException
from fastapi.responses import JSONResponse

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response as StarletteResponse

from app.config import settings
from app.core.logging import configure_logging, logger
from app.core.request_id import request_scope
from app.core.token_cleanup import TokenCleanupMonitor
from services.aggregation_service import AggregationService
from services.content_store import PostgresContentStore
from services.db_service import close_pool
from services.external_source import ExternalSourceAdapter
from services.internal_source import InternalSourceAdapter
from services.notification_registry import NotificationRegistry
from services.notification_service import NotificationService
from services.push_dispatcher import PushDispatcher
from services.push_service import build_push_transport

from api.routers.feed import router as feed_router
from api.routers.notifications import router as notifications_router


class RequestIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        with request_scope(request.headers.get("x-request-id")) as req_id:
            logger.info("request_started", method=request.method, path=str(request.url.path))
            try:
                response: StarletteResponse = await call_next(request)
            except Exception as exc:
                logger.error("request_exception", error=exc.__class__.__name__)
                raise
            logger.info("request_ended", status_code=response.status_code)
            response.headers["X-Request-Id"] = req_id
            return response


def build_aggregation_service() -> AggregationService:
    return AggregationService(
        InternalSourceAdapter(PostgresContentStore()),
        ExternalSourceAdapter(),
    )


def build_notification_service() -> NotificationService:
    registry = NotificationRegistry()
    dispatcher = PushDispatcher(registry, build_push_transport())
    return NotificationService(
        registry,
        dispatcher,
        max_idle=timedelta(days=settings.TOKEN_MAX_IDLE_DAYS),
    )


def create_app(
    *,
    aggregation_service: Optional[AggregationService] = None,
    notification_service: Optional[NotificationService] = None,
    enable_token_cleanup: bool = True,
) -> FastAPI:
    app = FastAPI(
        title="Combined News Feed - Backend",
        version=settings.APP_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.state.aggregation_service = aggregation_service or build_aggregation_service()
    app.state.notification_service = notification_service or build_notification_service()
    cleanup_monitor = TokenCleanupMonitor(
        app.state.notification_service,
        interval_seconds=settings.TOKEN_CLEANUP_INTERVAL_S,
    )
    app.state.token_cleanup_monitor = cleanup_monitor

    @app.on_event("startup")
    async def _startup_background() -> None:
        if enable_token_cleanup:
            cleanup_monitor.start()

    @app.on_event("shutdown")
    async def _shutdown_cleanup() -> None:
        await cleanup_monitor.stop()
        await app.state.notification_service.drain()
        await close_pool()

    app.add_middleware(RequestIdMiddleware)

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
            headers=dict(exc.headers or {}),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("unhandled_exception", exc_info=True)
        return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})

    # --- Health endpoints ---
    @app.get("/")
    async def root():
        return {"ok": True, "app": "Combined News Feed", "message": "Up & running"}

    @app.head("/")
    async def root_head():
        return Response(status_code=200)

    @app.get("/health")
    async def health():
        return {"ok": True}

    app.include_router(feed_router)
    app.include_router(notifications_router)

    logger.info("routers_registered", routers=["feed", "notifications"])
    return app


configure_logging(service_name="api", level=settings.LOG_LEVEL)
app = create_app()
