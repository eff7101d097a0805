from __future__ import annotations

from typing import Iterable, List, Sequence, Tuple

from app.models.news_feed import CanonicalNewsItem, FeedMode, SourceKind

# Internal items are editorially curated and lead category pages.
_CATEGORY_BLOCK_ORDER: Tuple[SourceKind, ...] = (SourceKind.INTERNAL, SourceKind.EXTERNAL)


def dedupe_items(batches: Iterable[Sequence[CanonicalNewsItem]]) -> List[CanonicalNewsItem]:
    """
    Flatten the batches in fetch order and drop repeats of (source_kind, id).
    The first occurrence wins. Items of different source kinds are never
    considered duplicates of each other, even when their ids coincide.
    """
    seen: set[tuple[SourceKind, str]] = set()
    unique: List[CanonicalNewsItem] = []
    for batch in batches:
        for item in batch:
            key = item.dedup_key
            if key in seen:
                continue
            seen.add(key)
            unique.append(item)
    return unique


def _newest_first(items: Sequence[CanonicalNewsItem]) -> List[CanonicalNewsItem]:
    # sorted() is stable with reverse=True, so ties keep fetch order.
    return sorted(items, key=lambda item: item.publish_instant, reverse=True)


def merge_items(
    batches: Iterable[Sequence[CanonicalNewsItem]],
    mode: FeedMode = FeedMode.GLOBAL,
) -> List[CanonicalNewsItem]:
    """
    Deduplicate and order normalized items.

    GLOBAL:   one recency sort, sources interleaved.
    CATEGORY: every Internal item (newest first), then every External item.
    """
    unique = dedupe_items(batches)

    if mode == FeedMode.GLOBAL:
        return _newest_first(unique)

    merged: List[CanonicalNewsItem] = []
    for kind in _CATEGORY_BLOCK_ORDER:
        merged.extend(_newest_first([item for item in unique if item.source_kind == kind]))
    return merged
