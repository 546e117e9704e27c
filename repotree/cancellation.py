"""Cooperative cancellation for long-running tree searches."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_CANCELLABLE_TIMEOUT_SECONDS = 60.0


class CancellationToken:
    """One-shot cancellation flag that awaiting code can poll or wait on."""

    def __init__(self) -> None:
        self._cancelled = False
        self._waiters: list[asyncio.Future[None]] = []

    @property
    def is_cancellation_requested(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        waiters, self._waiters = self._waiters, []
        for waiter in waiters:
            if not waiter.done():
                waiter.set_result(None)

    def _wait(self) -> asyncio.Future[None]:
        waiter: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        if self._cancelled:
            waiter.set_result(None)
        else:
            self._waiters.append(waiter)
        return waiter

    def _forget(self, waiter: asyncio.Future[None]) -> None:
        try:
            self._waiters.remove(waiter)
        except ValueError:
            pass
        if not waiter.done():
            waiter.cancel()


def is_cancelled(token: CancellationToken | None) -> bool:
    return token is not None and token.is_cancellation_requested


def _log_abandoned_failure(task: asyncio.Future[object]) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.debug("Abandoned operation failed after cancellation", exc_info=exc)


async def cancellable(
    awaitable: Awaitable[T],
    token: CancellationToken | None,
    *,
    default: T,
    timeout_seconds: float = DEFAULT_CANCELLABLE_TIMEOUT_SECONDS,
) -> T:
    """Await ``awaitable`` unless ``token`` cancels first.

    Without a token the wait is bounded by ``timeout_seconds`` instead. On
    cancellation or timeout ``default`` is returned and the underlying work is
    left to finish on its own, since it may be shared with other callers.
    """
    task = asyncio.ensure_future(awaitable)
    if token is not None and token.is_cancellation_requested:
        task.add_done_callback(_log_abandoned_failure)
        return default

    waiter = token._wait() if token is not None else None
    try:
        pending: set[asyncio.Future[object]] = {task}
        if waiter is not None:
            pending.add(waiter)
        done, _ = await asyncio.wait(
            pending,
            timeout=None if waiter is not None else timeout_seconds,
            return_when=asyncio.FIRST_COMPLETED,
        )
    finally:
        if waiter is not None and token is not None:
            token._forget(waiter)

    if task in done:
        return task.result()
    task.add_done_callback(_log_abandoned_failure)
    return default


__all__ = [
    "CancellationToken",
    "DEFAULT_CANCELLABLE_TIMEOUT_SECONDS",
    "cancellable",
    "is_cancelled",
]
