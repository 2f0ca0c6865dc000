import asyncio
import logging
from unittest.mock import Mock

from fastapi.testclient import TestClient

from messages_api.lifecycle import InFlightTracker, close_when_idle
from messages_api.main import create_app


def test_idle_tracker_returns_immediately():
    tracker = InFlightTracker()
    assert asyncio.run(tracker.wait_idle(0.01)) is True


def test_wait_idle_times_out_while_busy():
    tracker = InFlightTracker()
    tracker.enter()
    assert tracker.count == 1
    assert asyncio.run(tracker.wait_idle(0.05)) is False


def test_wait_idle_resolves_when_last_request_finishes():
    async def scenario():
        tracker = InFlightTracker()
        tracker.enter()
        tracker.enter()
        loop = asyncio.get_running_loop()
        loop.call_later(0.01, tracker.exit)
        loop.call_later(0.02, tracker.exit)
        return await tracker.wait_idle(1.0), tracker.count

    assert asyncio.run(scenario()) == (True, 0)


def test_close_when_idle_disposes_engine():
    engine = Mock()
    drained = asyncio.run(close_when_idle(InFlightTracker(), engine, 0.1))
    assert drained is True
    engine.dispose.assert_called_once()


def test_close_when_idle_disposes_after_timeout(caplog):
    tracker = InFlightTracker()
    tracker.enter()
    engine = Mock()
    with caplog.at_level(logging.WARNING, logger="messages_api"):
        drained = asyncio.run(close_when_idle(tracker, engine, 0.05))
    assert drained is False
    engine.dispose.assert_called_once()
    assert "still in flight" in caplog.text


def test_shutdown_closes_pool(settings, caplog):
    app = create_app(settings)
    with TestClient(app) as client:
        client.get("/")
    assert "Database connection pool closed." in caplog.text
