"""Lazy binding between a node and an external change source."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable

from ..events import Disposable

logger = logging.getLogger(__name__)

Subscriber = Callable[[], "Awaitable[Disposable | None] | Disposable | None"]


class SubscriptionHandle:
    """Subscribe on first ``ensure()``, release at most once per subscription.

    ``release()`` drops the current binding but allows a later ``ensure()`` to
    subscribe again (configuration changes use this). ``dispose()`` is
    terminal. Subscriber failures are logged and leave the handle inactive.
    """

    def __init__(self, owner_id: str, subscribe: Subscriber) -> None:
        self.owner_id = owner_id
        self._subscribe = subscribe
        self._binding: Disposable | None = None
        self._subscribing: asyncio.Future[bool] | None = None
        self.disposed = False
        self.subscribe_count = 0
        self.release_count = 0

    @property
    def active(self) -> bool:
        return self._binding is not None

    async def ensure(self) -> bool:
        """Subscribe if not already subscribed; return whether a binding is live."""
        if self.disposed:
            return False
        if self._binding is not None:
            return True
        if self._subscribing is None:
            self._subscribing = asyncio.ensure_future(self._subscribe_once())
        return await asyncio.shield(self._subscribing)

    async def _subscribe_once(self) -> bool:
        try:
            result = self._subscribe()
            if inspect.isawaitable(result):
                result = await result
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Subscription for %s failed", self.owner_id)
            return False
        finally:
            self._subscribing = None

        binding = result if result is not None else Disposable()
        if self.disposed:
            binding.dispose()
            return False
        self._binding = binding
        self.subscribe_count += 1
        logger.debug("Subscribed %s", self.owner_id)
        return True

    def release(self) -> bool:
        """Drop the live binding, if any. Returns ``True`` when one was released."""
        binding, self._binding = self._binding, None
        if binding is None:
            return False
        self.release_count += 1
        try:
            binding.dispose()
        except Exception:
            logger.exception("Unsubscribing %s failed", self.owner_id)
        logger.debug("Unsubscribed %s", self.owner_id)
        return True

    def dispose(self) -> None:
        if self.disposed:
            return
        self.disposed = True
        self.release()


__all__ = ["SubscriptionHandle", "Subscriber"]
