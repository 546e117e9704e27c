"""Container nodes whose children mirror a live external collection."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Generic, TypeVar

from .common import MessageNode
from .node import ViewNode, dispose_nodes
from .types import RefreshReason

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ReconcilingContainerNode(ViewNode, Generic[T]):
    """Keep children in sync with an external collection, preserving identity.

    On refresh the collection is fetched again and matched against cached
    children by stable key: matches keep their instance (and subscription)
    and are refreshed in place, new items get new nodes, and children whose
    item disappeared are disposed. An empty collection is shown as a single
    placeholder; refreshing an empty container that already shows it is a
    no-op and reports "skip" so no change notification goes out.
    """

    placeholder_message = "Nothing to show"

    async def _fetch_items(self) -> Sequence[T]:
        raise NotImplementedError

    def _item_key(self, item: T) -> str:
        raise NotImplementedError

    def _child_key(self, child: ViewNode) -> str | None:
        return child.stable_key

    def _create_child(self, item: T) -> ViewNode:
        raise NotImplementedError

    def _ordering_key(self, item: T) -> object:
        return 0

    def _accepts(self, item: T) -> bool:
        return True

    def _update_child(self, child: ViewNode, item: T) -> None:
        """Hand a retained child its fresh item before it refreshes."""

    def _create_placeholder(self) -> ViewNode:
        return MessageNode(self.view, self, self.placeholder_message)

    async def _current_items(self) -> list[T]:
        items = [item for item in await self._fetch_items() if self._accepts(item)]
        items.sort(key=self._ordering_key)
        return items

    async def _load_children(self) -> list[ViewNode]:
        items = await self._current_items()
        if not items:
            return [self._create_placeholder()]
        return [self._create_child(item) for item in items]

    async def _on_refresh(self, reset: bool, reason: RefreshReason | None) -> bool:
        previous = self._children
        if reset or previous is None:
            return False

        items = await self._current_items()
        if self.disposed or self._children is not previous:
            # Reset or disposed while fetching; the next load starts fresh.
            return True

        if not items:
            if len(previous) == 1 and previous[0].is_placeholder:
                return True
            dispose_nodes(previous)
            self._children = [self._create_placeholder()]
            return False

        cached: dict[str, ViewNode] = {}
        for child in previous:
            key = self._child_key(child)
            if key is not None and not child.disposed:
                cached.setdefault(key, child)

        children: list[ViewNode] = []
        retained: list[ViewNode] = []
        for item in items:
            child = cached.pop(self._item_key(item), None)
            if child is None:
                children.append(self._create_child(item))
                continue
            self._update_child(child, item)
            children.append(child)
            retained.append(child)

        kept = {id(child) for child in children}
        for child in previous:
            if id(child) not in kept:
                child.dispose()

        self._children = children
        logger.debug(
            "Reconciled %s: %d kept, %d added, %d dropped",
            self.id,
            len(retained),
            len(children) - len(retained),
            len(previous) - len(retained),
        )

        for child in retained:
            await child.refresh()
        return False


__all__ = ["ReconcilingContainerNode"]
