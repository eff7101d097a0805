from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from services.notification_registry import NotificationRegistry
from services.push_dispatcher import (
    CHANNEL_UNAVAILABLE_MESSAGE,
    NO_TARGETS_MESSAGE,
    PushDispatcher,
)
from tests.fixtures import RecordingTransport


@pytest.mark.asyncio
async def test_rejected_tokens_are_removed_after_send():
    registry = NotificationRegistry()
    registry.register("A")
    registry.register("B")
    transport = RecordingTransport(rejected={"B"})

    result = await PushDispatcher(registry, transport).send("Title", "Body")

    assert (result.success_count, result.failure_count, result.total_targets) == (1, 1, 2)
    assert result.success is True
    assert registry.tokens() == ["A"]


@pytest.mark.asyncio
async def test_transient_failures_keep_the_token():
    registry = NotificationRegistry()
    registry.register("A")
    registry.register("B")
    transport = RecordingTransport(failed={"B"})

    result = await PushDispatcher(registry, transport).send("Title", "Body")

    assert (result.success_count, result.failure_count) == (1, 1)
    assert sorted(registry.tokens()) == ["A", "B"]


@pytest.mark.asyncio
async def test_single_batched_call_with_payload():
    registry = NotificationRegistry()
    for token in ("A", "B", "C"):
        registry.register(token)
    transport = RecordingTransport()

    await PushDispatcher(registry, transport).send(
        "Breaking",
        "Details",
        {"articleId": 7, "skip": None},
        image_url="https://img.example.com/x.jpg",
    )

    assert len(transport.calls) == 1
    tokens, payload = transport.calls[0]
    assert tokens == ["A", "B", "C"]
    assert payload.title == "Breaking"
    assert payload.image_url == "https://img.example.com/x.jpg"
    assert payload.data["articleId"] == "7"
    assert payload.data["url"] == "/"
    assert "timestamp" in payload.data
    assert "skip" not in payload.data


@pytest.mark.asyncio
async def test_successful_delivery_refreshes_last_used():
    registry = NotificationRegistry()
    long_ago = datetime.now(timezone.utc) - timedelta(days=6)
    registry.register("A", now=long_ago)

    await PushDispatcher(registry, RecordingTransport()).send("T", "B")

    endpoint = registry.get("A")
    assert endpoint is not None
    assert endpoint.last_used_at > long_ago


@pytest.mark.asyncio
async def test_empty_registry_short_circuits():
    transport = RecordingTransport()

    result = await PushDispatcher(NotificationRegistry(), transport).send("T", "B")

    assert result.success is False
    assert result.message == NO_TARGETS_MESSAGE
    assert transport.calls == []


@pytest.mark.asyncio
async def test_missing_transport_reports_unavailable_channel():
    registry = NotificationRegistry()
    registry.register("A")

    result = await PushDispatcher(registry, None).send("T", "B")

    assert result.success is False
    assert result.message == CHANNEL_UNAVAILABLE_MESSAGE
    assert registry.tokens() == ["A"]


class _FailingTransport:
    async def send_multicast(self, tokens, payload):
        raise RuntimeError("push backend unreachable")


@pytest.mark.asyncio
async def test_transport_exception_becomes_failed_result():
    registry = NotificationRegistry()
    registry.register("A")

    result = await PushDispatcher(registry, _FailingTransport()).send("T", "B")

    assert result.success is False
    assert result.message == "push backend unreachable"
    assert (result.success_count, result.failure_count, result.total_targets) == (0, 1, 1)
    assert registry.tokens() == ["A"]
