# app/core/logging.py
"""
structlog setup shared by the API and the token cleanup loop.

Every event is one JSON line on stdout:
    {"event": "combined_feed_built", "ts": "...", "level": "info",
     "service": "api", "request_id": "...", "internal": 3, ...}

Push tokens are credentials for a subscriber's browser, so anything that
looks like one is masked before rendering.
"""

from __future__ import annotations

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Callable, Dict

import structlog

from app.core.request_id import get_request_id, get_run_id

EventDict = Dict[str, Any]

_REDACTED = "***redacted***"
_SECRET_KEYS = frozenset({
    "token", "tokens", "fcm_token", "push_token", "subscription",
    "authorization", "auth", "api_key", "password", "secret",
    "vapid_private_key", "database_url", "dsn", "email",
})
# Browser push endpoints embed the subscription id in the URL path.
_PUSH_ENDPOINT_MARKERS = ("fcm.googleapis.com", "updates.push.services.mozilla.com", "notify.windows.com", "web.push.apple.com")


def _stamp(service_name: str) -> Callable[[Any, str, EventDict], EventDict]:
    def _inner(_: Any, method_name: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("ts", datetime.now(timezone.utc).isoformat(timespec="milliseconds"))
        event_dict["level"] = str(event_dict.get("level") or method_name or "info").lower()
        event_dict.setdefault("service", service_name)
        return event_dict
    return _inner


def _correlation_ids(_: Any, __: str, event_dict: EventDict) -> EventDict:
    rid = get_request_id()
    if rid:
        event_dict.setdefault("request_id", rid)
    run = get_run_id()
    if run:
        event_dict.setdefault("run_id", run)
    return event_dict


def _mask_secrets(_: Any, __: str, event_dict: EventDict) -> EventDict:
    for key, value in list(event_dict.items()):
        if str(key).lower() in _SECRET_KEYS:
            event_dict[key] = _REDACTED
        elif isinstance(value, str) and any(marker in value for marker in _PUSH_ENDPOINT_MARKERS):
            event_dict[key] = _REDACTED
    return event_dict


_logger: structlog.BoundLogger | None = None


def configure_logging(service_name: str = "api", *, level: int | str = logging.INFO) -> None:
    """Install the global structlog pipeline. Safe to call more than once."""
    global _logger

    numeric_level = logging.getLevelName(level.upper()) if isinstance(level, str) else level
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    # asyncpg and uvicorn log through stdlib; keep their lines on stderr.
    logging.basicConfig(level=numeric_level, format="%(message)s", stream=sys.stderr, force=True)

    structlog.configure(
        processors=[
            _stamp(service_name),
            _correlation_ids,
            _mask_secrets,
            structlog.processors.EventRenamer("event"),
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(ensure_ascii=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
    _logger = structlog.get_logger()


def get_logger() -> structlog.BoundLogger:
    if _logger is None:
        configure_logging()
    return _logger


logger = get_logger()
