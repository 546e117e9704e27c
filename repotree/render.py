"""Plain-text host for a view tree.

``TextHost`` stands in for a tree widget: it keeps the selection and the set
of expanded rows that reveals produce. ``render_tree`` walks a view the way a
widget would and returns one indented line per visible row.
"""

from __future__ import annotations

from collections.abc import Sequence

from .view_model import CollapsibleState, ViewNode
from .view_tree import ViewTree

INDENT = "  "
_MARKERS = {
    CollapsibleState.NONE: "  ",
    CollapsibleState.COLLAPSED: "▸ ",
    CollapsibleState.EXPANDED: "▾ ",
}


class TextHost:
    """In-memory ``HostAdapter`` that records what the tree asked of it."""

    def __init__(self, visible: bool = True) -> None:
        self.visible = visible
        self.selection: Sequence[ViewNode] = ()
        self.expanded: set[str] = set()
        self.focused = False
        self.reveals: list[ViewNode] = []

    def reveal(self, node: ViewNode, *, select: bool, focus: bool, expand: bool | int) -> None:
        self.reveals.append(node)
        parent = node.get_parent()
        while parent is not None:
            self.expanded.add(parent.id)
            parent = parent.get_parent()
        if expand:
            self.expanded.add(node.id)
        if select:
            self.selection = (node,)
        if focus:
            self.focused = True

    def is_expanded(self, node: ViewNode, state: CollapsibleState) -> bool:
        return state is CollapsibleState.EXPANDED or node.id in self.expanded


async def render_tree(
    view: ViewTree,
    *,
    depth: int = 3,
    host: TextHost | None = None,
    expand_all: bool = False,
) -> list[str]:
    """Render ``view`` to text lines, descending at most ``depth`` levels.

    Collapsed rows are descended only with ``expand_all`` or when ``host``
    has expanded them (for example through a reveal).
    """
    lines: list[str] = []
    selected = {id(node) for node in host.selection} if host is not None else set()

    async def walk(nodes: list[ViewNode], level: int) -> None:
        for node in nodes:
            record = await view.get_display_record(node)
            state = record.collapsible_state
            marker = ">" if id(node) in selected else " "
            line = f"{marker}{INDENT * level}{_MARKERS[state]}{record.label}"
            if record.description:
                line += f"  {record.description}"
            lines.append(line)

            if state is CollapsibleState.NONE or level + 1 >= depth:
                continue
            if expand_all or (host.is_expanded(node, state) if host is not None else state is CollapsibleState.EXPANDED):
                await walk(await view.get_children(node), level + 1)

    if depth > 0:
        await walk(await view.get_children(), 0)
    return lines


__all__ = ["TextHost", "render_tree"]
