"""Leaf nodes shared by every view: informational messages and paging rows."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .node import ViewNode
from .types import CollapsibleState, CommandDescriptor, DisplayRecord

if TYPE_CHECKING:
    from ..view_tree import ViewTree

SHOW_MORE_COMMAND = "repotree.showMore"


class MessageNode(ViewNode):
    """Informational leaf, used as the placeholder for empty collections."""

    is_placeholder = True

    def __init__(
        self,
        view: ViewTree,
        parent: ViewNode,
        message: str,
        tooltip: str | None = None,
    ) -> None:
        super().__init__(f"{parent.id}/message:{message}", view, parent)
        self.message = message
        self.tooltip = tooltip

    async def _build_display_record(self) -> DisplayRecord:
        return DisplayRecord(
            label=self.message,
            tooltip=self.tooltip,
            context_value="message",
        )


class ShowMoreNode(ViewNode):
    """Trailing row of a paged list that asks the host to grow the window."""

    def __init__(self, view: ViewTree, parent: ViewNode, page_size: int, total: int | None = None) -> None:
        super().__init__(f"{parent.id}/more", view, parent)
        self.page_size = page_size
        self.total = total

    async def _build_display_record(self) -> DisplayRecord:
        parent = self.get_parent()
        description = f"({self.page_size} more)" if self.total is None else f"({self.page_size} of {self.total} more)"
        return DisplayRecord(
            label="Load more…",
            description=description,
            collapsible_state=CollapsibleState.NONE,
            context_value="pager",
            command=CommandDescriptor(
                SHOW_MORE_COMMAND,
                (parent.id if parent is not None else None, self.page_size),
                title="Load more",
            ),
        )


__all__ = ["MessageNode", "SHOW_MORE_COMMAND", "ShowMoreNode"]
