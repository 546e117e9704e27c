"""Root container mirroring the set of open repositories."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING

from ..aggregator import ChangeAggregator
from ..events import Disposable
from ..source import Repository
from ..view_model import (
    Capability,
    CollapsibleState,
    DisplayRecord,
    ReconcilingContainerNode,
    ViewNode,
)
from .repository import RepositoryNode

if TYPE_CHECKING:
    from ..views import RepositoriesView

logger = logging.getLogger(__name__)


class RepositoriesNode(ReconcilingContainerNode[Repository]):
    """Repositories ordered by index, reconciled by normalized path.

    While subscribed it follows repository-set changes and, with
    ``auto_reveal`` on, reveals the repository holding the active document.
    """

    capabilities = frozenset({Capability.SUBSCRIBEABLE})
    placeholder_message = "No repositories found"
    view: RepositoriesView

    def __init__(self, view: RepositoriesView) -> None:
        super().__init__("repositories", view)

    async def _fetch_items(self) -> Sequence[Repository]:
        return await self.view.source.get_repositories()

    def _accepts(self, item: Repository) -> bool:
        return not item.closed

    def _ordering_key(self, item: Repository) -> object:
        return item.index

    def _item_key(self, item: Repository) -> str:
        return item.normalized_path

    def _create_child(self, item: Repository) -> ViewNode:
        return RepositoryNode(self.view, self, item)

    def _update_child(self, child: ViewNode, item: Repository) -> None:
        if isinstance(child, RepositoryNode):
            child.update_repository(item)

    def repository_nodes(self) -> list[RepositoryNode]:
        """Loaded repository children, skipping the placeholder."""
        return [child for child in self._children or [] if isinstance(child, RepositoryNode)]

    async def _build_display_record(self) -> DisplayRecord:
        return DisplayRecord(
            label="Repositories",
            collapsible_state=CollapsibleState.EXPANDED,
            context_value="repositories",
        )

    async def _subscribe(self) -> Disposable:
        view = self.view
        repositories_changed: ChangeAggregator[None] = ChangeAggregator(
            self._on_repositories_changed,
            view.config.debounce_seconds,
            name=f"{self.id}.repositories",
        )
        bindings = [
            view.source.on_did_change_repositories(repositories_changed.push),
            Disposable(repositories_changed.close),
        ]
        if view.config.auto_reveal:
            document_changed: ChangeAggregator[Path | None] = ChangeAggregator(
                self._on_active_document_changed,
                view.config.active_editor_debounce_seconds,
                name=f"{self.id}.activeDocument",
            )
            bindings.append(view.on_did_change_active_document.subscribe(document_changed.push))
            bindings.append(Disposable(document_changed.close))
        return Disposable.from_(*bindings)

    async def _on_repositories_changed(self, _events: list[None]) -> None:
        await self.view.refresh_node(self)

    async def _on_active_document_changed(self, paths: list[Path | None]) -> None:
        path = paths[-1]
        if path is None or self._children is None or len(self._children) == 1:
            return

        node = next((child for child in self.repository_nodes() if child.repo.contains(path)), None)
        if node is None:
            return

        # Leave the selection alone when it is already inside this repository.
        selection = self.view.selection
        selected = selection[0] if selection else None
        while selected is not None:
            if selected is node:
                return
            selected = selected.get_parent()

        # Revealing the first child forces the host to expand the repository.
        children = await node.get_children()
        await self.view.reveal(children[0] if children else node)


__all__ = ["RepositoriesNode"]
