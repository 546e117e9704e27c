"""View-tree orchestration: root lifecycle, notifications, reveal, search, paging.

``ViewTree`` is what a host talks to. It creates its root lazily, forwards
child/display requests to nodes, turns node refreshes into change
notifications (a node, or ``None`` for "everything"), and offers a bounded
breadth-first ``find_node`` that can page through pageable nodes without
descending into them.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable, Sequence
from pathlib import Path

from .aggregator import ChangeAggregator
from .cancellation import CancellationToken, cancellable, is_cancelled
from .config import ViewConfig
from .events import EventEmitter
from .host import HostAdapter
from .view_model import (
    Capability,
    CollapsibleState,
    DisplayRecord,
    NodeStateChange,
    RefreshReason,
    ViewNode,
)

logger = logging.getLogger(__name__)

Predicate = Callable[[ViewNode], bool]
TraversalCheck = Callable[[ViewNode], "bool | Awaitable[bool]"]


class ViewTree:
    """Owner of one root node and the host-facing change stream.

    Subclasses implement ``create_root``.
    """

    def __init__(
        self,
        view_id: str,
        name: str,
        *,
        config: ViewConfig | None = None,
        host: HostAdapter | None = None,
    ) -> None:
        self.id = view_id
        self.name = name
        self.config = config if config is not None else ViewConfig()
        self._host = host
        self._root: ViewNode | None = None
        self._last_known_limits: dict[str, int | None] = {}
        self._disposed = False
        self.on_did_change_tree_data: EventEmitter[ViewNode | None] = EventEmitter(f"{view_id}.treeData")
        self.on_did_change_visibility: EventEmitter[bool] = EventEmitter(f"{view_id}.visibility")
        self.on_did_change_node_state: EventEmitter[NodeStateChange] = EventEmitter(f"{view_id}.nodeState")
        self.on_did_change_active_document: EventEmitter[Path | None] = EventEmitter(f"{view_id}.activeDocument")
        self._visibility_changes: ChangeAggregator[bool] = ChangeAggregator(
            self._deliver_visibility,
            self.config.visibility_debounce_seconds,
            name=f"{view_id}.visibility",
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.id!r})"

    def create_root(self) -> ViewNode:
        raise NotImplementedError

    @property
    def root(self) -> ViewNode | None:
        return self._root

    @property
    def host(self) -> HostAdapter | None:
        return self._host

    def attach_host(self, host: HostAdapter | None) -> None:
        self._host = host

    @property
    def auto_refresh(self) -> bool:
        return self.config.auto_refresh and not self._disposed

    @property
    def visible(self) -> bool:
        if self._host is None:
            return False
        try:
            return bool(self._host.visible)
        except Exception:
            logger.exception("Reading visibility of %s failed", self.id)
            return False

    @property
    def selection(self) -> list[ViewNode]:
        if self._host is None or self._root is None:
            return []
        try:
            return list(self._host.selection)
        except Exception:
            logger.exception("Reading selection of %s failed", self.id)
            return []

    def ensure_root(self, force: bool = False) -> ViewNode:
        """Return the root, creating it on first use or when ``force`` is set.

        A replaced root is disposed so its subscriptions do not leak.
        """
        if self._root is None or force:
            previous = self._root
            self._root = self.create_root()
            if previous is not None:
                previous.dispose()
        return self._root

    async def get_children(self, node: ViewNode | None = None) -> list[ViewNode]:
        if node is not None:
            return await node.get_children()
        return await self.ensure_root().get_children()

    async def get_display_record(self, node: ViewNode) -> DisplayRecord:
        return await node.get_display_record()

    def get_parent(self, node: ViewNode) -> ViewNode | None:
        return node.get_parent()

    async def refresh(self, reset: bool = False, reason: RefreshReason | None = None) -> None:
        if self._root is not None:
            await self._root.refresh(reset, reason)
        self.trigger_node_change()

    async def refresh_node(
        self,
        node: ViewNode,
        reset: bool = False,
        reason: RefreshReason | None = None,
    ) -> None:
        if await node.refresh(reset, reason):
            return
        self.trigger_node_change(node)

    def trigger_node_change(self, node: ViewNode | None = None) -> None:
        # The root cannot be targeted by itself; invalidate everything instead.
        self.on_did_change_tree_data.fire(node if node is not None and node is not self._root else None)

    async def reveal(
        self,
        node: ViewNode,
        *,
        select: bool = False,
        focus: bool = False,
        expand: bool | int = False,
    ) -> None:
        """Ask the host to scroll to ``node``; best effort, never raises."""
        if self._host is None:
            return
        try:
            result = self._host.reveal(node, select=select, focus=focus, expand=expand)
            if inspect.isawaitable(result):
                await result
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Revealing %r failed", node)

    async def find_node(
        self,
        predicate: Predicate | str,
        *,
        allow_paging: bool = False,
        can_traverse: TraversalCheck | None = None,
        max_depth: int | None = None,
        token: CancellationToken | None = None,
    ) -> ViewNode | None:
        """Breadth-first search from the root, bounded by ``max_depth``.

        A string predicate matches ``node.id``. Children of pageable nodes are
        tested but never descended into; with ``allow_paging`` the window is
        grown one page at a time until a match appears or the node runs out.
        Returns ``None`` when nothing matches, when ``token`` is cancelled,
        or when the predicate or traversal check fails.
        """
        if isinstance(predicate, str):
            predicate = _id_matcher(predicate)

        depth_limit = self.config.find_max_depth if max_depth is None else max_depth
        try:
            return await self._find_node_breadth_first(
                predicate,
                self.ensure_root(),
                allow_paging,
                can_traverse,
                depth_limit,
                token,
            )
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Searching %s failed", self.id)
            return None

    async def _find_node_breadth_first(
        self,
        predicate: Predicate,
        root: ViewNode,
        allow_paging: bool,
        can_traverse: TraversalCheck | None,
        max_depth: int,
        token: CancellationToken | None,
    ) -> ViewNode | None:
        page_size = self.config.page_size
        depth = 0
        level: list[ViewNode] = [root]
        while level:
            next_level: list[ViewNode] = []
            for node in level:
                if is_cancelled(token):
                    return None
                if predicate(node):
                    return node

                if can_traverse is not None:
                    traversable = can_traverse(node)
                    if inspect.isawaitable(traversable):
                        traversable = await traversable
                    if not traversable:
                        continue

                children = await node.get_children()
                if not children:
                    continue

                if not node.has_capability(Capability.PAGEABLE):
                    next_level.extend(children)
                    continue

                match = _first_match(children, predicate)
                if match is not None:
                    return match

                paging = node.paging
                if allow_paging and paging is not None and paging.has_more:
                    while True:
                        if is_cancelled(token):
                            return None
                        await self.show_more(node, page_size)
                        paged = await cancellable(node.get_children(), token, default=[])
                        match = _first_match(paged, predicate)
                        if match is not None:
                            return match
                        if is_cancelled(token) or not paging.has_more:
                            break
                # Paged children are searched in place but never descended into.

            depth += 1
            if depth > max_depth:
                break
            level = next_level
        return None

    async def show_more(
        self,
        node: ViewNode,
        limit: int | None = None,
        *,
        until: str | None = None,
        previous_node: ViewNode | None = None,
    ) -> None:
        """Grow a pageable node's window and remember its new limit."""
        if not node.has_capability(Capability.PAGEABLE) or node.paging is None:
            raise TypeError(f"{node!r} is not pageable")
        if previous_node is not None:
            await self.reveal(previous_node, select=True)
        await node.show_more(limit, until=until)
        self._last_known_limits[node.id] = node.paging.limit

    def get_last_known_limit(self, node: ViewNode) -> int | None:
        return self._last_known_limits.get(node.id)

    def has_last_known_limit(self, node: ViewNode) -> bool:
        return node.id in self._last_known_limits

    def reset_last_known_limit(self, node: ViewNode) -> None:
        self._last_known_limits.pop(node.id, None)

    def reset_last_known_limits(self, prefix: str = "") -> None:
        """Forget remembered limits for every node id starting with ``prefix``."""
        for node_id in [key for key in self._last_known_limits if key.startswith(prefix)]:
            del self._last_known_limits[node_id]

    def on_visibility_changed(self, visible: bool) -> None:
        """Host callback; re-published after a short debounce."""
        self._visibility_changes.push(visible)

    def _deliver_visibility(self, changes: list[bool]) -> None:
        self.on_did_change_visibility.fire(changes[-1])

    def on_element_expanded(self, node: ViewNode) -> None:
        self.on_did_change_node_state.fire(NodeStateChange(node, CollapsibleState.EXPANDED))

    def on_element_collapsed(self, node: ViewNode) -> None:
        self.on_did_change_node_state.fire(NodeStateChange(node, CollapsibleState.COLLAPSED))

    def notify_active_document_changed(self, path: Path | None) -> None:
        """Host callback for the focused document changing."""
        self.on_did_change_active_document.fire(path)

    def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        self._visibility_changes.close()
        root, self._root = self._root, None
        if root is not None:
            root.dispose()
        self._last_known_limits.clear()
        for emitter in (
            self.on_did_change_tree_data,
            self.on_did_change_visibility,
            self.on_did_change_node_state,
            self.on_did_change_active_document,
        ):
            emitter.clear()


def _id_matcher(node_id: str) -> Predicate:
    def matches(node: ViewNode) -> bool:
        return node.id == node_id

    return matches


def _first_match(nodes: Sequence[ViewNode], predicate: Predicate) -> ViewNode | None:
    for node in nodes:
        if predicate(node):
            return node
    return None


__all__ = ["Predicate", "TraversalCheck", "ViewTree"]
