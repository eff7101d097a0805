"""
Tolerant publish-date parsing.

Upstream records carry dates in several shapes. Attempts, in order:

    1. ISO-8601 instant            2025-08-13T10:30:15Z / 2025-08-13T10:30:15.123+05:30
    2. space-delimited UTC         2025-08-13 10:30:15
    3. day-first 12h clock (UTC)   13/08/2025 10:30:15 AM
    4. python-dateutil fallback    anything else dateutil understands

Naive results are taken as UTC. An unparseable value, or one more than a year
ahead of "now", becomes "now". That substitution is logged, never raised.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any, Callable, List, Optional

from dateutil import parser as dtparser
from dateutil.relativedelta import relativedelta

from app.core.logging import get_logger

logger = get_logger().bind(module="date_parsing")

_ISO_INSTANT_RE = re.compile(
    r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}(:\d{2}(\.\d+)?)?(Z|[+-]\d{2}:?\d{2})?$"
)
_SPACE_DELIMITED_FMT = "%Y-%m-%d %H:%M:%S"
_DAY_FIRST_12H_FMT = "%d/%m/%Y %I:%M:%S %p"

# Shortest string dateutil is allowed to guess at ("YYYYMMDD"). Shorter input
# such as "5" would silently become the 5th of the current month.
_MIN_GENERIC_LEN = 8

MAX_FUTURE_SKEW = relativedelta(years=1)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _parse_iso(text: str) -> Optional[datetime]:
    if not _ISO_INSTANT_RE.match(text):
        return None
    candidate = text[:-1] + "+00:00" if text.endswith("Z") else text
    try:
        return datetime.fromisoformat(candidate)
    except ValueError:
        return None


def _parse_space_delimited(text: str) -> Optional[datetime]:
    try:
        return datetime.strptime(text, _SPACE_DELIMITED_FMT)
    except ValueError:
        return None


def _parse_day_first_12h(text: str) -> Optional[datetime]:
    try:
        return datetime.strptime(text.upper(), _DAY_FIRST_12H_FMT)
    except ValueError:
        return None


def _parse_generic(text: str) -> Optional[datetime]:
    if len(text) < _MIN_GENERIC_LEN:
        return None
    try:
        return dtparser.parse(text)
    except (ValueError, OverflowError):
        return None


_ATTEMPTS: List[Callable[[str], Optional[datetime]]] = [
    _parse_iso,
    _parse_space_delimited,
    _parse_day_first_12h,
    _parse_generic,
]


def _try_parse_instant(value: Any) -> Optional[datetime]:
    """Parse without any fallback. Returns a UTC datetime or None."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return _as_utc(value)
    text = str(value).strip()
    if not text:
        return None
    for attempt in _ATTEMPTS:
        parsed = attempt(text)
        if parsed is not None:
            return _as_utc(parsed)
    return None


def parse_publish_instant(value: Any, *, now: Optional[datetime] = None) -> datetime:
    """
    Resolve a raw publish date to a UTC instant, degrading to ``now`` when the
    value is missing, unparseable or too far in the future.
    """
    current = _as_utc(now) if now is not None else datetime.now(timezone.utc)
    parsed = _try_parse_instant(value)

    if parsed is None:
        if value not in (None, ""):
            logger.warning("publish_date_unparseable", raw=str(value)[:80])
        return current

    if parsed > current + MAX_FUTURE_SKEW:
        logger.warning("publish_date_too_far_in_future", raw=str(value)[:80])
        return current

    return parsed
