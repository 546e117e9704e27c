"""Trailing-edge debounce for bursty change sources."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ChangeAggregator(Generic[T]):
    """Coalesce bursts of events into one delayed callback.

    Every ``push`` re-arms the timer, so the callback fires ``delay_seconds``
    after the last event of a burst and receives every event of that burst in
    arrival order. Coroutine callbacks run as a task owned by the aggregator;
    ``close`` cancels both the timer and any running flush.
    """

    def __init__(
        self,
        callback: Callable[[list[T]], object],
        delay_seconds: float,
        *,
        name: str = "changes",
    ) -> None:
        self._callback = callback
        self._delay_seconds = max(0.0, delay_seconds)
        self.name = name
        self._pending: list[T] = []
        self._timer: asyncio.TimerHandle | None = None
        self._running: asyncio.Task[None] | None = None
        self._closed = False

    @property
    def pending(self) -> bool:
        return bool(self._pending)

    @property
    def closed(self) -> bool:
        return self._closed

    def push(self, event: T) -> None:
        if self._closed:
            return
        self._pending.append(event)
        if self._timer is not None:
            self._timer.cancel()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self._delay_seconds, self._on_timer)

    def _on_timer(self) -> None:
        self._timer = None
        events, self._pending = self._pending, []
        if not events or self._closed:
            return
        self._running = asyncio.get_running_loop().create_task(self._deliver(events))

    async def _deliver(self, events: list[T]) -> None:
        try:
            result = self._callback(events)
            if inspect.isawaitable(result):
                await result
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Debounced handler for %s failed", self.name)
        finally:
            if self._running is asyncio.current_task():
                self._running = None

    async def flush(self) -> None:
        """Deliver pending events now instead of waiting for the timer."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        events, self._pending = self._pending, []
        if events and not self._closed:
            await self._deliver(events)
        running = self._running
        if running is not None and running is not asyncio.current_task():
            await asyncio.wait({running})

    def close(self) -> None:
        self._closed = True
        self._pending = []
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        running, self._running = self._running, None
        if running is None or running.done():
            return
        try:
            current = asyncio.current_task()
        except RuntimeError:
            current = None
        if running is not current:
            running.cancel()


__all__ = ["ChangeAggregator"]
