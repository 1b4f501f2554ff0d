"""Tests for connection health event tracking."""

import asyncio

from flint.analytics.tracker import ConnectionHealthEvent, EventTracker


def test_sync_and_async_sinks_receive_events():
    received = []

    async def async_sink(name, properties):
        received.append(("async", name, properties["account_id"]))

    tracker = EventTracker()
    tracker.register(lambda name, properties: received.append(("sync", name, properties["account_id"])))
    tracker.register(async_sink)

    asyncio.run(tracker.track_account_disconnected_shown("acc-1", "snaptrade"))

    assert received == [
        ("sync", "account_disconnected_shown", "acc-1"),
        ("async", "account_disconnected_shown", "acc-1"),
    ]


def test_payload_has_timestamp():
    payload = asyncio.run(EventTracker().track(ConnectionHealthEvent.RECONNECT_CLICKED, {"provider": "teller"}))

    assert payload["provider"] == "teller"
    assert "timestamp" in payload


def test_failing_sink_does_not_break_others():
    received = []

    def broken(name, properties):
        raise RuntimeError("transport down")

    tracker = EventTracker()
    tracker.register(broken)
    tracker.register(lambda name, properties: received.append(properties.get("error")))

    asyncio.run(tracker.track_reconnect_failed("acc-2", "snaptrade", "timeout"))

    assert received == ["timeout"]


def test_clear_removes_sinks():
    tracker = EventTracker()
    tracker.register(lambda name, properties: None)
    tracker.clear()

    assert tracker.sinks == []
