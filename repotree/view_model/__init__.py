"""Node contract, capabilities, subscriptions and reconciling containers.

This package holds the UI-agnostic building blocks of a view tree:
- value types (display records, commands, paging windows, capabilities)
- the ``ViewNode`` base with lazy, cached, disposable children
- ``SubscriptionHandle`` for lazily bound change sources
- ``ReconcilingContainerNode`` for identity-preserving live collections
"""

from __future__ import annotations

from .common import SHOW_MORE_COMMAND, MessageNode, ShowMoreNode
from .container import ReconcilingContainerNode
from .node import ViewNode, dispose_nodes
from .subscription import SubscriptionHandle
from .types import (
    Capability,
    CollapsibleState,
    CommandDescriptor,
    DisplayRecord,
    NodeState,
    NodeStateChange,
    PagingState,
    RefreshReason,
)

__all__ = [
    "Capability",
    "CollapsibleState",
    "CommandDescriptor",
    "DisplayRecord",
    "MessageNode",
    "NodeState",
    "NodeStateChange",
    "PagingState",
    "ReconcilingContainerNode",
    "RefreshReason",
    "SHOW_MORE_COMMAND",
    "ShowMoreNode",
    "SubscriptionHandle",
    "ViewNode",
    "dispose_nodes",
]
