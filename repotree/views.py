"""The repositories view: a ``ViewTree`` rooted at ``RepositoriesNode``.

In history mode the root is a ``HistoryNode`` following the active document
instead.
"""

from __future__ import annotations

import logging
from dataclasses import fields
from enum import Enum
from pathlib import Path

from .aggregator import ChangeAggregator
from .config import ViewConfig
from .host import HostAdapter
from .nodes import HistoryNode, RepositoriesNode, RepositoryNode
from .source import RepositorySource
from .view_model import RefreshReason, ViewNode
from .view_tree import ViewTree

logger = logging.getLogger(__name__)

VIEW_ID = "repotree.repositories"

# Settings whose change invalidates node construction, not just rendering.
_ROOT_SHAPING_SETTINGS = frozenset(
    {"splat_single_repo", "auto_reveal", "auto_refresh", "page_size", "show_branch_comparison"}
)


class ViewMode(Enum):
    REPOSITORY = "repository"
    HISTORY = "history"


class RepositoriesView(ViewTree):
    """Repositories, their status, branches and commits.

    With ``splat_single_repo`` a lone repository is flattened: the root's
    children are that repository's children. Paging windows are not carried
    across a switch between the flattened and the nested layout.

    ``switch_to`` swaps between the repository and the history mode.
    """

    def __init__(
        self,
        source: RepositorySource,
        *,
        config: ViewConfig | None = None,
        host: HostAdapter | None = None,
        mode: ViewMode = ViewMode.REPOSITORY,
    ) -> None:
        super().__init__(VIEW_ID, "Repositories", config=config, host=host)
        self.source = source
        self._mode = mode
        self.active_document: Path | None = None
        self._splatted: RepositoryNode | None = None
        self._layout_resolved = False
        self._configuration_changes: ChangeAggregator[ViewConfig] = ChangeAggregator(
            self._apply_configuration,
            self.config.debounce_seconds,
            name=f"{VIEW_ID}.configuration",
        )

    def create_root(self) -> RepositoriesNode | HistoryNode:
        if self._mode is ViewMode.HISTORY:
            return HistoryNode(self)
        return RepositoriesNode(self)

    @property
    def mode(self) -> ViewMode:
        return self._mode

    def switch_to(self, mode: ViewMode) -> None:
        """Show ``mode``; a no-op when it is already showing."""
        if mode is self._mode:
            return
        logger.debug("Switching %s to %s mode", self.id, mode.value)
        self._mode = mode
        self.reset()

    def reset(self) -> None:
        """Rebuild the root for the current mode and re-render everything."""
        self._splatted = None
        self._layout_resolved = False
        self.ensure_root(force=True)
        self.trigger_node_change()

    def notify_active_document_changed(self, path: Path | None) -> None:
        if path is not None:
            self.active_document = path
        super().notify_active_document_changed(path)

    @property
    def splatted(self) -> RepositoryNode | None:
        return self._splatted

    async def get_children(self, node: ViewNode | None = None) -> list[ViewNode]:
        if node is not None:
            return await node.get_children()

        root = self.ensure_root()
        children = await root.get_children()
        single: RepositoryNode | None = None
        if self.config.splat_single_repo and len(children) == 1 and isinstance(children[0], RepositoryNode):
            single = children[0]

        if not self._layout_resolved:
            # The first layout decision is not a switch.
            self._splatted = single
            self._layout_resolved = True
        elif single is not self._splatted:
            previous, self._splatted = self._splatted, single
            await self._on_splat_changed(previous, single)
        if single is not None:
            return await single.get_children()
        return children

    def get_parent(self, node: ViewNode) -> ViewNode | None:
        parent = node.get_parent()
        if parent is not None and parent is self._splatted:
            return None
        return parent

    async def _on_splat_changed(self, previous: RepositoryNode | None, current: RepositoryNode | None) -> None:
        for node in (previous, current):
            if node is None or node.disposed:
                continue
            logger.debug("Layout of %s changed; dropping its paging state", node.id)
            self.reset_last_known_limits(f"{node.id}/")
            if node.children_loaded:
                await node.refresh(reset=True)

    def update_config(self, config: ViewConfig) -> None:
        """Queue a configuration change; bursts apply once, after a debounce."""
        self._configuration_changes.push(config)

    async def flush_configuration(self) -> None:
        await self._configuration_changes.flush()

    async def _apply_configuration(self, configs: list[ViewConfig]) -> None:
        previous, current = self.config, configs[-1]
        if current == previous:
            return
        changed = {item.name for item in fields(ViewConfig) if getattr(previous, item.name) != getattr(current, item.name)}
        logger.debug("Configuration of %s changed: %s", self.id, ", ".join(sorted(changed)))
        self.config = current

        if "page_size" in changed:
            self.reset_last_known_limits()
        if changed & _ROOT_SHAPING_SETTINGS:
            self.reset()
            return
        await self.refresh(reason=RefreshReason.CONFIGURATION_CHANGED)

    def dispose(self) -> None:
        self._configuration_changes.close()
        self._splatted = None
        super().dispose()


__all__ = ["RepositoriesView", "VIEW_ID", "ViewMode"]
