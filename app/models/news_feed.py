from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class SourceKind(str, Enum):
    INTERNAL = "Internal"
    EXTERNAL = "External"


class FeedMode(str, Enum):
    GLOBAL = "global"
    CATEGORY = "category"


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CanonicalNewsItem(_CamelModel):
    """Source-agnostic news record served by the combined feed."""

    id: str
    title: str = Field(min_length=1)
    excerpt: str = ""
    image_url: Optional[str] = None
    category: str = ""
    tags: List[str] = Field(default_factory=list)
    author: str = ""
    read_time_minutes: int = Field(default=3, ge=1)
    publish_instant: datetime
    source_kind: SourceKind
    detail_reference: str = ""

    @property
    def dedup_key(self) -> tuple[SourceKind, str]:
        return (self.source_kind, self.id)


# Raw records: one variant per source shape. The normalizer dispatches on the
# variant rather than probing field names.

@dataclass(frozen=True)
class InternalRecord:
    fields: Mapping[str, Any]


@dataclass(frozen=True)
class ExternalRecord:
    fields: Mapping[str, Any]
    # Section the batch was requested for; used when the item carries none.
    requested_section: Optional[str] = None


RawRecord = Union[InternalRecord, ExternalRecord]


@dataclass
class Page:
    items: List[CanonicalNewsItem] = field(default_factory=list)
    page: int = 1
    page_size: int = 20
    total_items: int = 0
    total_pages: int = 0


# ---- Response payloads ------------------------------------------------------

class PaginationInfo(_CamelModel):
    page: int
    total_pages: int
    total_items: int
    limit: int


class SourceCounts(_CamelModel):
    internal: int = 0
    external: int = 0
    total: int = 0


class CombinedFeedResponse(_CamelModel):
    """Response for GET /combined-feed."""

    items: List[CanonicalNewsItem]
    pagination: PaginationInfo
    source_counts: SourceCounts


class SectionFeedResponse(_CamelModel):
    items: List[CanonicalNewsItem]


def source_counts_for(items: List[CanonicalNewsItem]) -> SourceCounts:
    counts: Dict[SourceKind, int] = {SourceKind.INTERNAL: 0, SourceKind.EXTERNAL: 0}
    for item in items:
        counts[item.source_kind] += 1
    return SourceCounts(
        internal=counts[SourceKind.INTERNAL],
        external=counts[SourceKind.EXTERNAL],
        total=len(items),
    )
