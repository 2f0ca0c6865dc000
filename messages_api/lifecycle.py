import asyncio
import logging
from typing import Callable

from fastapi import Request, Response
from sqlalchemy.engine import Engine


logger = logging.getLogger(__name__)


class InFlightTracker:
    """Counts requests currently being handled so shutdown can wait for them."""

    def __init__(self) -> None:
        self._count = 0
        self._idle = asyncio.Event()
        self._idle.set()

    @property
    def count(self) -> int:
        return self._count

    def enter(self) -> None:
        self._count += 1
        self._idle.clear()

    def exit(self) -> None:
        self._count -= 1
        if self._count <= 0:
            self._count = 0
            self._idle.set()

    async def wait_idle(self, timeout: float) -> bool:
        """True once no request is in flight, False if the timeout elapses first."""
        try:
            await asyncio.wait_for(self._idle.wait(), timeout)
        except asyncio.TimeoutError:
            return False
        return True


async def track_in_flight(request: Request, call_next: Callable) -> Response:
    tracker: InFlightTracker = request.app.state.in_flight
    tracker.enter()
    try:
        return await call_next(request)
    finally:
        tracker.exit()


async def close_when_idle(tracker: InFlightTracker, engine: Engine, timeout: float) -> bool:
    drained = await tracker.wait_idle(timeout)
    if not drained:
        logger.warning(
            "Closing the database pool with %d request(s) still in flight after %.1fs",
            tracker.count,
            timeout,
        )
    engine.dispose()
    logger.info("Database connection pool closed.")
    return drained
