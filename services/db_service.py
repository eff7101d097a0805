# services/db_service.py
"""
Read-only asyncpg access for the internal content store.

The pool is created lazily on the first feed request, so the API boots (and
serves external-only feeds) without a database. Any failure to reach the
database surfaces as SourceUnavailable; the internal source adapter turns that
into an empty contribution.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from time import monotonic
from typing import Any, AsyncIterator, List, Optional
from urllib.parse import urlparse

import asyncpg

from app.config import settings
from services.errors import SourceUnavailable

logger = logging.getLogger(__name__)

APPLICATION_NAME = "news-feed-backend"
SLOW_QUERY_THRESHOLD_MS = 1_000

_pool: Optional[asyncpg.Pool] = None
_pool_lock = asyncio.Lock()


def normalize_database_url(raw_dsn: str) -> str:
    """SQLAlchemy-style ``postgresql+asyncpg://`` URLs are accepted too."""
    dsn = raw_dsn.strip()
    for prefix in ("postgresql+asyncpg://", "postgres+asyncpg://"):
        if dsn.startswith(prefix):
            return "postgresql://" + dsn[len(prefix):]
    return dsn


async def _create_pool(dsn: str) -> asyncpg.Pool:
    logger.info(
        "content_store_pool_initializing",
        extra={"dsn_host": urlparse(dsn).hostname, "max_size": settings.DB_POOL_MAX_SIZE},
    )
    return await asyncpg.create_pool(
        dsn=dsn,
        min_size=settings.DB_POOL_MIN_SIZE,
        max_size=settings.DB_POOL_MAX_SIZE,
        timeout=settings.DB_CONNECT_TIMEOUT_S,
        statement_cache_size=0,
        server_settings={
            "application_name": APPLICATION_NAME,
            "statement_timeout": str(settings.DB_STATEMENT_TIMEOUT_MS),
            "default_transaction_read_only": "on",
        },
    )


async def ensure_pool() -> asyncpg.Pool:
    global _pool
    if _pool is not None:
        return _pool

    async with _pool_lock:
        if _pool is None:
            dsn = normalize_database_url(settings.DATABASE_URL or "")
            if not dsn:
                raise SourceUnavailable("content_store", "DATABASE_URL not configured")
            try:
                _pool = await _create_pool(dsn)
            except (OSError, asyncio.TimeoutError, asyncpg.PostgresError) as exc:
                raise SourceUnavailable("content_store", str(exc)) from exc
    return _pool


async def close_pool() -> None:
    global _pool
    pool, _pool = _pool, None
    if pool is not None:
        await pool.close()


@asynccontextmanager
async def connection() -> AsyncIterator[asyncpg.Connection]:
    pool = await ensure_pool()
    async with pool.acquire() as conn:
        yield conn


async def fetch(query: str, *args: Any, timeout: Optional[float] = None) -> List[asyncpg.Record]:
    """Run a SELECT and log it when it is slower than SLOW_QUERY_THRESHOLD_MS."""
    effective_timeout = timeout if timeout is not None else settings.DB_QUERY_TIMEOUT_S
    async with connection() as conn:
        started = monotonic()
        try:
            return await conn.fetch(query, *args, timeout=effective_timeout)
        finally:
            elapsed_ms = (monotonic() - started) * 1000
            if elapsed_ms >= SLOW_QUERY_THRESHOLD_MS:
                logger.warning(
                    "content_store_slow_query",
                    extra={
                        "duration_ms": round(elapsed_ms, 2),
                        "query_snippet": query.strip().splitlines()[0][:200],
                    },
                )
