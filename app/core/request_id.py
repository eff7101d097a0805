# app/core/request_id.py
from __future__ import annotations

import contextvars
import uuid
from contextlib import contextmanager
from typing import Iterator, Optional

# One id per HTTP request, one per background pass (cleanup sweep, publish fan-out).
_request_id: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar("request_id", default=None)
_run_id: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar("run_id", default=None)


def new_id() -> str:
    return uuid.uuid4().hex


def get_request_id() -> Optional[str]:
    return _request_id.get()


def get_run_id() -> Optional[str]:
    return _run_id.get()


@contextmanager
def request_scope(request_id: Optional[str] = None) -> Iterator[str]:
    """Bind a request id for the duration of one HTTP request."""
    rid = (request_id or "").strip() or new_id()
    token = _request_id.set(rid)
    try:
        yield rid
    finally:
        _request_id.reset(token)


@contextmanager
def with_run_id(run_id: Optional[str] = None) -> Iterator[str]:
    """
    Tag every log line emitted inside the block with one run id:

        with with_run_id():
            registry.prune(...)
    """
    rid = run_id or new_id()
    token = _run_id.set(rid)
    try:
        yield rid
    finally:
        _run_id.reset(token)
