from __future__ import annotations

from datetime import datetime, timedelta, timezone

from services.date_parsing import parse_publish_instant

NOW = datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


def test_iso_instant_round_trips():
    instant = datetime(2025, 1, 2, 3, 4, 5, 123456, tzinfo=timezone.utc)
    assert parse_publish_instant(instant.isoformat(), now=NOW) == instant


def test_iso_with_z_suffix_and_offset():
    assert parse_publish_instant("2025-01-02T03:04:05Z", now=NOW) == datetime(
        2025, 1, 2, 3, 4, 5, tzinfo=timezone.utc
    )
    # +05:30 is converted to UTC
    assert parse_publish_instant("2025-01-02T08:34:05+05:30", now=NOW) == datetime(
        2025, 1, 2, 3, 4, 5, tzinfo=timezone.utc
    )


def test_space_delimited_is_utc():
    parsed = parse_publish_instant("2025-08-13 10:30:15", now=datetime(2025, 9, 1, tzinfo=timezone.utc))
    assert parsed == datetime(2025, 8, 13, 10, 30, 15, tzinfo=timezone.utc)


def test_day_first_twelve_hour_clock():
    parsed = parse_publish_instant("13/08/2025 10:30:15 PM", now=datetime(2025, 9, 1, tzinfo=timezone.utc))
    assert parsed == datetime(2025, 8, 13, 22, 30, 15, tzinfo=timezone.utc)

    morning = parse_publish_instant("01/02/2025 12:05:00 am", now=NOW)
    assert morning == datetime(2025, 2, 1, 0, 5, 0, tzinfo=timezone.utc)


def test_generic_fallback_handles_rfc822():
    parsed = parse_publish_instant("Mon, 01 Jan 2024 12:00:00 GMT", now=NOW)
    assert parsed == datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def test_datetime_objects_are_normalized_to_utc():
    naive = datetime(2025, 1, 1, 10, 0, 0)
    assert parse_publish_instant(naive, now=NOW).tzinfo is not None
    assert parse_publish_instant(naive, now=NOW) == datetime(2025, 1, 1, 10, 0, 0, tzinfo=timezone.utc)


def test_far_future_value_becomes_now():
    assert parse_publish_instant("2099-01-01T00:00:00Z", now=NOW) == NOW


def test_far_future_without_explicit_now_is_close_to_wall_clock():
    before = datetime.now(timezone.utc)
    parsed = parse_publish_instant("2999-05-05 10:00:00")
    after = datetime.now(timezone.utc)
    assert before - timedelta(seconds=1) <= parsed <= after + timedelta(seconds=1)


def test_slightly_future_value_is_kept():
    value = NOW + timedelta(days=30)
    assert parse_publish_instant(value.isoformat(), now=NOW) == value


def test_garbage_and_missing_values_become_now():
    assert parse_publish_instant("not a date at all", now=NOW) == NOW
    assert parse_publish_instant("", now=NOW) == NOW
    assert parse_publish_instant(None, now=NOW) == NOW
    # too short for a guess
    assert parse_publish_instant("12", now=NOW) == NOW
