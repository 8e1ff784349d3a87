# market_pulse/resilience/debouncer.py
import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class DebounceSuperseded(Exception):
    """A newer call for the same key replaced this one before it fired"""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Debounced call superseded: {key}")


class Debouncer:
    """Runs only the last of a burst of calls sharing a key, after a quiet period"""

    def __init__(self) -> None:
        self._pending: dict[str, asyncio.Task[Any]] = {}

    def pending(self, key: str) -> bool:
        return key in self._pending

    async def schedule(
        self,
        key: str,
        delay: float,
        operation: Callable[[], Awaitable[T]],
    ) -> T:
        previous = self._pending.pop(key, None)
        if previous is not None:
            previous.cancel()
            logger.debug(f"Debounce reset for {key}")

        task: asyncio.Task[T] = asyncio.create_task(self._fire_after(key, delay, operation))
        self._pending[key] = task

        try:
            return await task
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                task.cancel()
                raise
            raise DebounceSuperseded(key) from None
        finally:
            if self._pending.get(key) is task:
                del self._pending[key]

    async def _fire_after(
        self,
        key: str,
        delay: float,
        operation: Callable[[], Awaitable[T]],
    ) -> T:
        await asyncio.sleep(delay)
        # once fired the call is no longer pending and cannot be superseded
        if self._pending.get(key) is asyncio.current_task():
            del self._pending[key]
        return await operation()
