# market_pulse/resilience/deduplicator.py
import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Deduplicator:
    """Shares one in-flight execution per key between concurrent callers"""

    def __init__(self) -> None:
        self._in_flight: dict[str, asyncio.Future[Any]] = {}

    def in_flight(self, key: str) -> bool:
        return key in self._in_flight

    async def run(self, key: str, operation: Callable[[], Awaitable[T]]) -> T:
        future = self._in_flight.get(key)
        if future is None:
            future = asyncio.ensure_future(operation())
            self._in_flight[key] = future
            future.add_done_callback(lambda f: self._settle(key, f))
        else:
            logger.debug(f"Deduplicating request for {key}")

        # a cancelled waiter must not cancel the shared execution
        return await asyncio.shield(future)

    def _settle(self, key: str, future: asyncio.Future[Any]) -> None:
        if self._in_flight.get(key) is future:
            del self._in_flight[key]
        if not future.cancelled() and future.exception() is not None:
            logger.debug(f"Shared request {key} failed: {future.exception()}")
