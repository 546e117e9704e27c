"""Listener registration and disposable handles.

``EventEmitter`` fans one value out to synchronous listeners; ``Disposable``
wraps a release callback that runs at most once.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Disposable:
    """Release callback that runs at most once."""

    def __init__(self, callback: Callable[[], object] | None = None) -> None:
        self._callback = callback

    @classmethod
    def from_(cls, *disposables: Disposable | None) -> Disposable:
        """Combine several disposables into one that releases them in order."""
        items = [item for item in disposables if item is not None]

        def dispose_all() -> None:
            for item in items:
                item.dispose()

        return cls(dispose_all)

    @property
    def disposed(self) -> bool:
        return self._callback is None

    def dispose(self) -> None:
        callback = self._callback
        if callback is None:
            return
        self._callback = None
        callback()


class EventEmitter(Generic[T]):
    """Synchronous multi-listener event.

    Listener failures are logged and do not stop delivery to the remaining
    listeners.
    """

    def __init__(self, name: str = "event") -> None:
        self.name = name
        self._listeners: list[Callable[[T], object]] = []

    def __len__(self) -> int:
        return len(self._listeners)

    def subscribe(self, listener: Callable[[T], object]) -> Disposable:
        """Register ``listener`` and return a handle that unregisters it."""
        self._listeners.append(listener)

        def remove() -> None:
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass

        return Disposable(remove)

    def fire(self, value: T) -> None:
        for listener in list(self._listeners):
            try:
                listener(value)
            except Exception:
                logger.exception("Listener for %s failed", self.name)

    def clear(self) -> None:
        self._listeners.clear()


__all__ = ["Disposable", "EventEmitter"]
