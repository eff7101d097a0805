from __future__ import annotations

import hashlib
import re
from datetime import datetime
from html import unescape
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple

from app.core.logging import get_logger
from app.models.news_feed import (
    CanonicalNewsItem,
    ExternalRecord,
    InternalRecord,
    RawRecord,
    SourceKind,
)
from services.date_parsing import parse_publish_instant
from services.errors import NormalizationError

logger = get_logger().bind(module="feed_normalization")

_HTML_TAG_RE = re.compile(r"<[^>]+>")
_WHITESPACE_RE = re.compile(r"\s+")

EXCERPT_MAX_LEN = 200
EXCERPT_SUFFIX = "..."
DEFAULT_READ_TIME_MINUTES = 3
DEFAULT_INTERNAL_AUTHOR = "Admin"


# -------- Shared helpers -----------------------------------------------------

def _strip_html(value: str) -> str:
    text = unescape(value or "")
    text = _HTML_TAG_RE.sub(" ", text)
    text = _WHITESPACE_RE.sub(" ", text)
    return text.strip()


def _first_text(fields: Mapping[str, Any], *keys: str) -> str:
    """First non-empty string among ``keys``."""
    for key in keys:
        value = fields.get(key)
        if value is None:
            continue
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            value = str(value)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return ""


def _first_present(fields: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = fields.get(key)
        if value not in (None, ""):
            return value
    return None


def derive_excerpt(content: str) -> str:
    text = _strip_html(content)
    if len(text) <= EXCERPT_MAX_LEN:
        return text
    return text[:EXCERPT_MAX_LEN] + EXCERPT_SUFFIX


def _coerce_read_time(value: Any) -> int:
    if isinstance(value, bool):
        return DEFAULT_READ_TIME_MINUTES
    try:
        minutes = int(float(str(value).strip()))
    except (TypeError, ValueError, OverflowError):
        return DEFAULT_READ_TIME_MINUTES
    return minutes if minutes > 0 else DEFAULT_READ_TIME_MINUTES


def _coerce_tags(value: Any) -> List[str]:
    if isinstance(value, str):
        candidates: Sequence[Any] = value.split(",")
    elif isinstance(value, Sequence) and not isinstance(value, (bytes, bytearray)):
        candidates = value
    else:
        return []

    tags: List[str] = []
    seen: set[str] = set()
    for candidate in candidates:
        if not isinstance(candidate, str):
            continue
        cleaned = candidate.strip()
        if not cleaned or cleaned.lower() in seen:
            continue
        seen.add(cleaned.lower())
        tags.append(cleaned)
    return tags


def _stable_external_id(title: str) -> str:
    return "ext-" + hashlib.sha1(title.encode("utf-8")).hexdigest()[:16]


# -------- Internal records ---------------------------------------------------

def _normalize_internal(record: InternalRecord, now: Optional[datetime]) -> CanonicalNewsItem:
    fields = record.fields
    title = _first_text(fields, "title")
    if not title:
        raise NormalizationError("missing_title", record_raw=dict(fields))

    record_id = _first_text(fields, "id")
    if not record_id:
        raise NormalizationError("missing_id", record_raw=dict(fields))

    excerpt = _first_text(fields, "excerpt")
    if not excerpt:
        content = _first_text(fields, "content")
        excerpt = derive_excerpt(content) if content else title

    publish_raw = _first_present(fields, "publish_date", "publishDate", "created_at", "createdAt")

    return CanonicalNewsItem(
        id=record_id,
        title=title,
        excerpt=excerpt,
        image_url=_first_text(fields, "image_url", "imageUrl") or None,
        category=_first_text(fields, "category"),
        tags=_coerce_tags(fields.get("tags")),
        author=_first_text(fields, "author") or DEFAULT_INTERNAL_AUTHOR,
        read_time_minutes=_coerce_read_time(_first_present(fields, "read_time", "readTime")),
        publish_instant=parse_publish_instant(publish_raw, now=now),
        source_kind=SourceKind.INTERNAL,
        detail_reference=record_id,
    )


# -------- External records ---------------------------------------------------

def _normalize_external(record: ExternalRecord, now: Optional[datetime]) -> CanonicalNewsItem:
    fields = record.fields
    title = _first_text(fields, "headLine", "headline", "title")
    if not title:
        raise NormalizationError("missing_title", record_raw=dict(fields))

    record_id = (
        _first_text(fields, "itemId", "storyId", "websiteURL", "detailFeedURL")
        or _stable_external_id(title)
    )

    excerpt = _first_text(fields, "shortDescription", "subHead")
    if not excerpt:
        content = _first_text(fields, "content", "body")
        excerpt = derive_excerpt(content) if content else title

    return CanonicalNewsItem(
        id=record_id,
        title=title,
        excerpt=excerpt,
        image_url=_first_text(
            fields, "wallpaperLarge", "mediumRes", "thumbImage", "imageUrl", "image"
        ) or None,
        category=_first_text(fields, "section", "sectionName") or (record.requested_section or ""),
        tags=_coerce_tags(fields.get("keywords")),
        author=_first_text(fields, "authorName", "author"),
        read_time_minutes=_coerce_read_time(fields.get("timeToRead")),
        publish_instant=parse_publish_instant(
            _first_present(fields, "publishedDate", "publishDate", "date"), now=now
        ),
        source_kind=SourceKind.EXTERNAL,
        detail_reference=_first_text(fields, "detailFeedURL", "websiteURL", "storyURL"),
    )


# -------- Public API ---------------------------------------------------------

def normalize_record(record: RawRecord, *, now: Optional[datetime] = None) -> CanonicalNewsItem:
    """
    Map one raw record to a CanonicalNewsItem.
    Raises NormalizationError when no usable title (or internal id) exists.
    """
    try:
        if isinstance(record, InternalRecord):
            return _normalize_internal(record, now)
        if isinstance(record, ExternalRecord):
            return _normalize_external(record, now)
    except NormalizationError:
        raise
    except (TypeError, ValueError, OverflowError) as exc:
        raise NormalizationError(str(exc), record_raw=dict(getattr(record, "fields", {}))) from exc
    raise NormalizationError(f"unsupported_record_type:{type(record).__name__}")


def normalize_records(
    records: Iterable[RawRecord],
    *,
    now: Optional[datetime] = None,
) -> Tuple[List[CanonicalNewsItem], List[NormalizationError]]:
    """
    Normalize a batch, keeping input order. Failing records are dropped and
    returned alongside so callers can count them.
    """
    items: List[CanonicalNewsItem] = []
    errors: List[NormalizationError] = []
    for record in records:
        try:
            items.append(normalize_record(record, now=now))
        except NormalizationError as err:
            errors.append(err)
            logger.debug("record_normalization_failed", error=str(err))
    if errors:
        logger.info("records_dropped", dropped=len(errors), kept=len(items))
    return items, errors
