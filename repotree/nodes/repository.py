"""One repository row: status and branches, kept live by repository events."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..aggregator import ChangeAggregator
from ..events import Disposable
from ..source import Repository, RepositoryChange, RepositoryChangeEvent
from ..view_model import Capability, CollapsibleState, DisplayRecord, RefreshReason, ViewNode
from .branches import BranchesNode
from .formatting import format_relative_time
from .status import StatusNode

if TYPE_CHECKING:
    from ..views import RepositoriesView

logger = logging.getLogger(__name__)


class RepositoryNode(ViewNode):
    capabilities = frozenset({Capability.SUBSCRIBEABLE})
    view: RepositoriesView

    def __init__(self, view: RepositoriesView, parent: ViewNode, repo: Repository) -> None:
        super().__init__(f"{parent.id}/repository:{repo.normalized_path}", view, parent)
        self.repo = repo
        self._status_node: StatusNode | None = None

    @property
    def stable_key(self) -> str:
        return self.repo.normalized_path

    def update_repository(self, repo: Repository) -> None:
        self.repo = repo

    async def _load_children(self) -> list[ViewNode]:
        self._status_node = StatusNode(self.view, self, self.repo)
        return [self._status_node, BranchesNode(self.view, self, self.repo)]

    async def _on_refresh(self, reset: bool, reason: RefreshReason | None) -> bool:
        if reset:
            self._status_node = None
            return False
        # Working-tree status goes stale first; branch windows keep their paging.
        status_node = self._status_node
        if status_node is not None and not status_node.disposed:
            await status_node.refresh(reset=True)
        return False

    async def _build_display_record(self) -> DisplayRecord:
        repo = self.repo
        source = self.view.source
        context_value = "repository+starred" if repo.starred else "repository"
        branch = await source.get_branch(repo)
        if branch is None:
            return DisplayRecord(
                label=repo.name,
                collapsible_state=CollapsibleState.COLLAPSED,
                tooltip=str(repo.path),
                icon="repo",
                context_value=context_value,
            )

        last_fetched = await source.get_last_fetched(repo)
        parts: list[str] = []
        tracking = branch.tracking_status()
        if tracking:
            parts.append(tracking)
        parts.append(branch.name)
        if last_fetched is not None:
            parts.append(f"Last fetched {format_relative_time(last_fetched)}")

        if branch.upstream:
            in_sync = not branch.ahead and not branch.behind
            tracking_text = f"is up to date with {branch.upstream}" if in_sync else f"is {tracking} {branch.upstream}"
        else:
            tracking_text = "hasn't been published to a remote"

        expand = repo.starred or branch.ahead > 0 or branch.behind > 0
        return DisplayRecord(
            label=repo.name,
            collapsible_state=CollapsibleState.EXPANDED if expand else CollapsibleState.COLLAPSED,
            description=" · ".join(parts),
            tooltip=f"{repo.path}\n\nBranch {branch.name} {tracking_text}",
            icon="repo",
            context_value=context_value,
        )

    async def _subscribe(self) -> Disposable:
        changes: ChangeAggregator[RepositoryChangeEvent] = ChangeAggregator(
            self._on_repository_changed,
            self.view.config.debounce_seconds,
            name=f"{self.id}.changes",
        )
        binding = self.view.source.on_did_change_repository(self.repo, changes.push)
        return Disposable.from_(binding, Disposable(changes.close))

    async def _on_repository_changed(self, events: list[RepositoryChangeEvent]) -> None:
        changes = {change for event in events for change in event.changes}
        logger.debug("Repository %s changed (%s)", self.repo.path, ", ".join(sorted(c.value for c in changes)))
        if RepositoryChange.CONFIG not in changes:
            await self.view.refresh_node(self, reset=True)
            return

        # Configuration changes also drop the subscription until next access.
        # It owns this handler's aggregator: release only after notifying.
        await self.view.refresh_node(self, reset=bool(changes - {RepositoryChange.CONFIG}))
        self.unsubscribe()


__all__ = ["RepositoryNode"]
