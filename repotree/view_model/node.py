"""Base contract for every node of a view tree.

A node owns its cached children and its subscription. Children are computed
lazily on first ``get_children()`` and kept until a reset refresh or
disposal. Parents are held weakly, so a node never keeps its ancestors alive.

Failures while loading children, describing the node, or refreshing are logged
and replaced with safe defaults; they never escape to the host.
"""

from __future__ import annotations

import asyncio
import logging
import weakref
from typing import TYPE_CHECKING

from ..events import Disposable
from .subscription import SubscriptionHandle
from .types import (
    Capability,
    DisplayRecord,
    NodeState,
    PagingState,
    RefreshReason,
)

if TYPE_CHECKING:
    from ..view_tree import ViewTree

logger = logging.getLogger(__name__)


class ViewNode:
    """One element of a view tree.

    Subclasses override ``_load_children`` and ``_build_display_record``;
    optionally ``_on_refresh`` (mutable nodes), ``_subscribe`` (nodes that
    declare ``Capability.SUBSCRIBEABLE``) and ``show_more`` (nodes that declare
    ``Capability.PAGEABLE`` and set ``paging``).
    """

    capabilities: frozenset[Capability] = frozenset()
    is_placeholder = False

    def __init__(self, node_id: str, view: ViewTree, parent: ViewNode | None = None) -> None:
        self.id = node_id
        self.view = view
        self._parent_ref = weakref.ref(parent) if parent is not None else None
        self._children: list[ViewNode] | None = None
        self._loading: asyncio.Future[list[ViewNode]] | None = None
        self._refreshing: asyncio.Future[bool] | None = None
        self._queued_refresh: tuple[bool, RefreshReason | None] | None = None
        self._generation = 0
        self._stale = False
        self.subscription: SubscriptionHandle | None = None
        self.paging: PagingState | None = None
        self.disposed = False

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.id!r})"

    def get_parent(self) -> ViewNode | None:
        if self._parent_ref is None:
            return None
        return self._parent_ref()

    @property
    def parent(self) -> ViewNode | None:
        return self.get_parent()

    @property
    def stable_key(self) -> str | None:
        """Identity used to match this node against fresh data on reconcile."""
        return None

    def has_capability(self, capability: Capability) -> bool:
        return capability in self.capabilities

    @property
    def state(self) -> NodeState:
        if self.disposed:
            return NodeState.DISPOSED
        if self._children is not None:
            return NodeState.LOADED
        if self._stale:
            return NodeState.STALE
        return NodeState.UNLOADED

    @property
    def children_loaded(self) -> bool:
        return self._children is not None

    @property
    def cached_children(self) -> list[ViewNode] | None:
        """Current generation without triggering a load."""
        return self._children

    async def get_children(self) -> list[ViewNode]:
        """Return the cached generation, loading it first when absent.

        Concurrent callers on an unloaded node share one load.
        """
        if self.disposed:
            return []
        if self._children is not None:
            return self._children
        if self._loading is None or self._loading.cancelled():
            self._loading = asyncio.ensure_future(self._load_generation())
        return await asyncio.shield(self._loading)

    async def _load_generation(self) -> list[ViewNode]:
        generation = self._generation
        await self.ensure_subscription()
        try:
            children = list(await self._load_children())
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Loading children of %s failed", self.id)
            children = []

        if self.disposed:
            dispose_nodes(children)
            return []
        if generation != self._generation:
            # Reset while loading; this generation is already stale.
            dispose_nodes(children)
            return await self.get_children()

        self._children = children
        self._loading = None
        self._stale = False
        return children

    async def _load_children(self) -> list[ViewNode]:
        return []

    async def get_display_record(self) -> DisplayRecord:
        if self.disposed:
            return DisplayRecord.minimal(self.id)
        await self.ensure_subscription()
        try:
            return await self._build_display_record()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Describing %s failed", self.id)
            return DisplayRecord.minimal(self.id)

    async def _build_display_record(self) -> DisplayRecord:
        return DisplayRecord.minimal(self.id)

    async def refresh(self, reset: bool = False, reason: RefreshReason | None = None) -> bool:
        """Refresh this node; returns ``True`` when callers should not re-render.

        ``reset`` drops the cached generation. Calls that arrive while a
        refresh is running join it instead of starting another one; a joiner
        asking for ``reset`` or a ``reason`` gets one more pass once the
        running one finishes.
        """
        if self.disposed:
            return True
        if self._refreshing is not None:
            if reset or reason is not None:
                self._queue_refresh(reset, reason)
            return await asyncio.shield(self._refreshing)

        refreshing = asyncio.ensure_future(self._run_refreshes(reset, reason))
        self._refreshing = refreshing

        def clear(_done: asyncio.Future[bool]) -> None:
            if self._refreshing is refreshing:
                self._refreshing = None

        refreshing.add_done_callback(clear)
        return await asyncio.shield(refreshing)

    def _queue_refresh(self, reset: bool, reason: RefreshReason | None) -> None:
        if self._queued_refresh is not None:
            queued_reset, queued_reason = self._queued_refresh
            reset = reset or queued_reset
            reason = reason or queued_reason
        self._queued_refresh = (reset, reason)

    async def _run_refreshes(self, reset: bool, reason: RefreshReason | None) -> bool:
        skip = await self._refresh_once(reset, reason)
        while self._queued_refresh is not None and not self.disposed:
            (reset, reason), self._queued_refresh = self._queued_refresh, None
            skip = await self._refresh_once(reset, reason) and skip
        self._queued_refresh = None
        return skip

    async def _refresh_once(self, reset: bool, reason: RefreshReason | None) -> bool:
        try:
            if reset:
                self._reset_children()
            skip = await self._on_refresh(reset, reason)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Refreshing %s failed", self.id)
            skip = False
        if reason is RefreshReason.CONFIGURATION_CHANGED:
            self.unsubscribe()
        return bool(skip)

    async def _on_refresh(self, reset: bool, reason: RefreshReason | None) -> bool:
        return False

    def _reset_children(self) -> None:
        children, self._children = self._children, None
        self._loading = None
        self._generation += 1
        if children is not None:
            self._stale = True
            dispose_nodes(children)

    async def ensure_subscription(self) -> bool:
        """Subscribe on first use when this node wants live updates."""
        if self.disposed or not self.has_capability(Capability.SUBSCRIBEABLE):
            return False
        if not self._wants_subscription():
            return False
        if self.subscription is None:
            self.subscription = SubscriptionHandle(self.id, self._subscribe)
        return await self.subscription.ensure()

    def _wants_subscription(self) -> bool:
        return self.view.auto_refresh

    async def _subscribe(self) -> Disposable | None:
        return None

    def unsubscribe(self) -> None:
        if self.subscription is not None:
            self.subscription.release()

    async def show_more(self, limit: int | None = None, *, until: str | None = None) -> None:
        raise TypeError(f"{self!r} does not support paging")

    async def trigger_change(self, reset: bool = False, reason: RefreshReason | None = None) -> None:
        await self.view.refresh_node(self, reset=reset, reason=reason)

    def dispose(self) -> None:
        """Release the subscription and dispose loaded children; idempotent."""
        if self.disposed:
            return
        self.disposed = True
        if self.subscription is not None:
            self.subscription.dispose()
        children, self._children = self._children, None
        self._loading = None
        if children is not None:
            dispose_nodes(children)
        self._on_dispose()

    def _on_dispose(self) -> None:
        pass


def dispose_nodes(nodes: list[ViewNode]) -> None:
    for node in nodes:
        node.dispose()


__all__ = ["ViewNode", "dispose_nodes"]
