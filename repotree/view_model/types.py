"""Value types shared by view nodes and the view tree."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Capability(Enum):
    """Optional contracts a node can declare in ``ViewNode.capabilities``."""

    PAGEABLE = "pageable"
    SUBSCRIBEABLE = "subscribeable"


class NodeState(Enum):
    UNLOADED = "unloaded"
    LOADED = "loaded"
    STALE = "stale"
    DISPOSED = "disposed"


class RefreshReason(Enum):
    CONFIGURATION_CHANGED = "configuration"


class CollapsibleState(Enum):
    NONE = "none"
    COLLAPSED = "collapsed"
    EXPANDED = "expanded"


@dataclass(frozen=True)
class CommandDescriptor:
    """Opaque command reference forwarded to the host, never executed here."""

    name: str
    arguments: tuple[object, ...] = ()
    title: str = ""


@dataclass(frozen=True)
class DisplayRecord:
    """Everything the host needs to draw one row."""

    label: str
    collapsible_state: CollapsibleState = CollapsibleState.NONE
    description: str | None = None
    tooltip: str | None = None
    icon: str | None = None
    context_value: str | None = None
    command: CommandDescriptor | None = None

    @classmethod
    def minimal(cls, label: str) -> DisplayRecord:
        """Fallback record used when a node cannot describe itself."""
        return cls(label=label)


@dataclass
class PagingState:
    """Window over a larger child list.

    ``limit`` of ``None`` means unbounded. ``has_more`` is owned by the node and
    updated whenever its window is reloaded.
    """

    page_size: int
    limit: int | None = None
    has_more: bool = False

    def grow(self, count: int | None = None) -> int | None:
        """Extend the window by ``count`` (default one page); ``0`` loads all."""
        if count == 0:
            self.limit = None
            return None
        step = self.page_size if count is None else count
        self.limit = step if self.limit is None else self.limit + step
        return self.limit


@dataclass(frozen=True)
class NodeStateChange:
    """Host-reported expand/collapse of one node."""

    node: object
    state: CollapsibleState


__all__ = [
    "Capability",
    "CollapsibleState",
    "CommandDescriptor",
    "DisplayRecord",
    "NodeState",
    "NodeStateChange",
    "PagingState",
    "RefreshReason",
]
