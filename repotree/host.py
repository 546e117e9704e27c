"""Host-side boundary of a view tree."""

from __future__ import annotations

from collections.abc import Awaitable, Sequence
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from .view_model import ViewNode


class HostAdapter(Protocol):
    """What a view tree needs from the UI that displays it.

    ``reveal`` may be synchronous or a coroutine function; failures are the
    tree's to log, not the host's to prevent.
    """

    @property
    def visible(self) -> bool: ...

    @property
    def selection(self) -> Sequence[ViewNode]: ...

    def reveal(
        self,
        node: ViewNode,
        *,
        select: bool,
        focus: bool,
        expand: bool | int,
    ) -> Awaitable[None] | None: ...


__all__ = ["HostAdapter"]
