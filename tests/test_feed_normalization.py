from __future__ import annotations

from datetime import datetime, timezone

import pytest

from app.models.news_feed import ExternalRecord, InternalRecord, SourceKind
from services.errors import NormalizationError
from services.feed_normalization import (
    DEFAULT_INTERNAL_AUTHOR,
    DEFAULT_READ_TIME_MINUTES,
    derive_excerpt,
    normalize_record,
    normalize_records,
)
from tests.fixtures import make_external_item, make_internal_row

NOW = datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


def test_internal_record_maps_all_fields():
    item = normalize_record(InternalRecord(fields=make_internal_row()), now=NOW)

    assert item.id == "int-1"
    assert item.title == "Internal story"
    assert item.source_kind == SourceKind.INTERNAL
    assert item.category == "bengal"
    assert item.image_url == "https://cdn.example.com/int.jpg"
    assert item.tags == ["kolkata", "politics"]
    assert item.author == "Desk"
    assert item.read_time_minutes == 4
    assert item.publish_instant == datetime(2025, 1, 1, 8, 0, 0, tzinfo=timezone.utc)
    assert item.detail_reference == "int-1"


def test_internal_excerpt_derived_from_content():
    long_body = "<p>" + ("ক" * 250) + "</p>"
    item = normalize_record(
        InternalRecord(fields=make_internal_row(excerpt="", content=long_body)),
        now=NOW,
    )
    assert item.excerpt == "ক" * 200 + "..."


def test_internal_excerpt_falls_back_to_title():
    item = normalize_record(
        InternalRecord(fields=make_internal_row(excerpt=None, content=None)),
        now=NOW,
    )
    assert item.excerpt == "Internal story"


def test_internal_defaults_for_author_and_read_time():
    row = make_internal_row(author="", read_time=None)
    item = normalize_record(InternalRecord(fields=row), now=NOW)
    assert item.author == DEFAULT_INTERNAL_AUTHOR
    assert item.read_time_minutes == DEFAULT_READ_TIME_MINUTES


def test_internal_camel_case_fields_are_accepted():
    row = {
        "id": 42,
        "title": "Camel",
        "imageUrl": "https://cdn.example.com/c.jpg",
        "readTime": "6",
        "publishDate": "2025-02-03T04:05:06Z",
    }
    item = normalize_record(InternalRecord(fields=row), now=NOW)
    assert item.id == "42"
    assert item.image_url == "https://cdn.example.com/c.jpg"
    assert item.read_time_minutes == 6
    assert item.publish_instant == datetime(2025, 2, 3, 4, 5, 6, tzinfo=timezone.utc)


def test_internal_publish_date_falls_back_to_created_at():
    row = make_internal_row(publish_date=None)
    item = normalize_record(InternalRecord(fields=row), now=NOW)
    assert item.publish_instant == datetime(2024, 12, 31, tzinfo=timezone.utc)


def test_internal_missing_title_raises():
    with pytest.raises(NormalizationError):
        normalize_record(InternalRecord(fields=make_internal_row(title="   ")), now=NOW)


def test_external_record_maps_all_fields():
    item = normalize_record(ExternalRecord(fields=make_external_item()), now=NOW)

    assert item.id == "ext-1"
    assert item.title == "External story"
    assert item.excerpt == "Short description"
    # wallpaperLarge is empty, so mediumRes wins
    assert item.image_url == "https://img.example.com/medium.jpg"
    assert item.category == "bengal"
    assert item.tags == ["news"]
    assert item.author == "Correspondent"
    assert item.read_time_minutes == 2
    assert item.publish_instant == datetime(2025, 1, 1, 9, 0, 0, tzinfo=timezone.utc)
    assert item.source_kind == SourceKind.EXTERNAL
    assert item.detail_reference == "https://feed.example.com/detail/ext-1"


def test_external_fallbacks():
    fields = make_external_item(
        itemId="",
        headLine="",
        headline="Lowercase headline",
        shortDescription="",
        subHead="Sub head",
        mediumRes="",
        thumbImage="https://img.example.com/thumb.jpg",
        section="",
        timeToRead="abc",
    )
    item = normalize_record(ExternalRecord(fields=fields, requested_section="sports"), now=NOW)

    assert item.id == "https://www.example.com/story/ext-1"
    assert item.title == "Lowercase headline"
    assert item.excerpt == "Sub head"
    assert item.image_url == "https://img.example.com/thumb.jpg"
    assert item.category == "sports"
    assert item.read_time_minutes == DEFAULT_READ_TIME_MINUTES


def test_external_without_any_id_gets_stable_title_hash():
    fields = {"headLine": "Only a headline"}
    first = normalize_record(ExternalRecord(fields=fields), now=NOW)
    second = normalize_record(ExternalRecord(fields=dict(fields)), now=NOW)
    assert first.id == second.id
    assert first.id.startswith("ext-")


def test_external_unparseable_date_becomes_now():
    item = normalize_record(
        ExternalRecord(fields=make_external_item(published="yesterday-ish")),
        now=NOW,
    )
    assert item.publish_instant == NOW


def test_normalize_records_drops_failures_and_keeps_order():
    records = [
        InternalRecord(fields=make_internal_row(record_id="a")),
        InternalRecord(fields=make_internal_row(record_id="b", title="")),
        ExternalRecord(fields=make_external_item(item_id="c")),
    ]
    items, errors = normalize_records(records, now=NOW)
    assert [item.id for item in items] == ["a", "c"]
    assert len(errors) == 1
    assert errors[0].record_raw["id"] == "b"


def test_derive_excerpt_short_content_has_no_ellipsis():
    assert derive_excerpt("<b>Short</b>   text") == "Short text"


def test_infinite_read_time_falls_back_to_default():
    for raw in (float("inf"), "inf", "Infinity", float("-inf")):
        item = normalize_record(
            ExternalRecord(fields=make_external_item(timeToRead=raw)),
            now=NOW,
        )
        assert item.read_time_minutes == DEFAULT_READ_TIME_MINUTES


def test_one_bad_read_time_does_not_sink_the_batch():
    records = [
        InternalRecord(fields=make_internal_row(record_id="good")),
        ExternalRecord(fields=make_external_item(item_id="huge", timeToRead=float("inf"))),
    ]
    items, errors = normalize_records(records, now=NOW)
    assert [item.id for item in items] == ["good", "huge"]
    assert errors == []
