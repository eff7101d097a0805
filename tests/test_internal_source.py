from __future__ import annotations

import pytest

from app.models.news_feed import InternalRecord
from services.errors import SourceUnavailable
from services.internal_source import InternalSourceAdapter
from tests.fixtures import FakeContentStore, make_internal_row


@pytest.mark.asyncio
async def test_fetch_published_wraps_rows():
    store = FakeContentStore(rows=[
        make_internal_row(record_id="a", category="bengal"),
        make_internal_row(record_id="b", category="sports"),
    ])
    records = await InternalSourceAdapter(store).fetch_published("sports")

    assert store.calls == ["sports"]
    assert len(records) == 1
    assert isinstance(records[0], InternalRecord)
    assert records[0].fields["id"] == "b"


@pytest.mark.asyncio
async def test_unpublished_rows_are_skipped():
    store = FakeContentStore(rows=[
        make_internal_row(record_id="live"),
        make_internal_row(record_id="hidden", published=False),
    ])
    records = await InternalSourceAdapter(store).fetch_published()
    assert [record.fields["id"] for record in records] == ["live"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error",
    [
        SourceUnavailable("content_store", "DATABASE_URL not configured"),
        ConnectionRefusedError("db down"),
        RuntimeError("unexpected"),
    ],
)
async def test_store_failure_degrades_to_empty(error):
    store = FakeContentStore(error=error)
    assert await InternalSourceAdapter(store).fetch_published() == []
