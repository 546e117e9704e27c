"""History mode: the commits that touched the active document."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from ..aggregator import ChangeAggregator
from ..events import Disposable
from ..source import CommitSummary, Repository, RepositoryChangeEvent, normalize_repo_path
from ..view_model import Capability, CollapsibleState, DisplayRecord, MessageNode, ViewNode
from .commits import CommitWindowNode
from .formatting import split_path

if TYPE_CHECKING:
    from ..views import RepositoriesView

logger = logging.getLogger(__name__)

NO_ACTIVE_FILE_MESSAGE = "No active file, no history to show"


class HistoryNode(ViewNode):
    """Root of history mode; follows the host's active document.

    A ``None`` document (focus moved to a non-file pane) keeps the last
    history on screen.
    """

    capabilities = frozenset({Capability.SUBSCRIBEABLE})
    view: RepositoriesView

    def __init__(self, view: RepositoriesView) -> None:
        super().__init__("history", view)
        self.document: Path | None = view.active_document

    async def _load_children(self) -> list[ViewNode]:
        document = self.document
        if document is None:
            return [MessageNode(self.view, self, NO_ACTIVE_FILE_MESSAGE)]

        repositories = [repo for repo in await self.view.source.get_repositories() if not repo.closed]
        containing = [repo for repo in repositories if repo.contains(document)]
        if not containing:
            return [MessageNode(self.view, self, f"{Path(document).name} is not in a repository")]
        # Nested repositories: the innermost one owns the file.
        repo = max(containing, key=lambda item: len(item.normalized_path))
        return [FileHistoryNode(self.view, self, repo, repo.relative_path(document))]

    async def _build_display_record(self) -> DisplayRecord:
        return DisplayRecord(
            label="History",
            collapsible_state=CollapsibleState.EXPANDED,
            context_value="history",
        )

    async def _subscribe(self) -> Disposable:
        documents: ChangeAggregator[Path | None] = ChangeAggregator(
            self._on_active_document_changed,
            self.view.config.active_editor_debounce_seconds,
            name=f"{self.id}.activeDocument",
        )
        binding = self.view.on_did_change_active_document.subscribe(documents.push)
        return Disposable.from_(binding, Disposable(documents.close))

    async def _on_active_document_changed(self, paths: list[Path | None]) -> None:
        path = paths[-1]
        if path is None:
            return
        if self.document is not None and normalize_repo_path(path) == normalize_repo_path(self.document):
            return
        logger.debug("History follows %s", path)
        self.document = path
        await self.view.refresh_node(self, reset=True)


class FileHistoryNode(CommitWindowNode):
    """Paged commits touching one worktree-relative path, renames followed."""

    capabilities = frozenset({Capability.PAGEABLE, Capability.SUBSCRIBEABLE})

    def __init__(self, view: RepositoriesView, parent: ViewNode, repo: Repository, path: str) -> None:
        self.path = path
        super().__init__(f"{parent.id}/file:{repo.normalized_path}/{path}", view, parent, repo)

    @property
    def stable_key(self) -> str:
        return f"{self.repo.normalized_path}/{self.path}"

    async def _fetch_commits(self, limit: int | None) -> list[CommitSummary]:
        return await self.view.source.get_file_commits(self.repo, self.path, limit)

    async def _build_display_record(self) -> DisplayRecord:
        name, directory = split_path(self.path)
        return DisplayRecord(
            label=name if self.path != "." else self.repo.name,
            collapsible_state=CollapsibleState.EXPANDED,
            description=directory or self.repo.name,
            tooltip=f"History of {self.path} in {self.repo.path}",
            icon="history",
            context_value="file-history",
        )

    async def _subscribe(self) -> Disposable:
        changes: ChangeAggregator[RepositoryChangeEvent] = ChangeAggregator(
            self._on_repository_changed,
            self.view.config.debounce_seconds,
            name=f"{self.id}.changes",
        )
        binding = self.view.source.on_did_change_repository(self.repo, changes.push)
        return Disposable.from_(binding, Disposable(changes.close))

    async def _on_repository_changed(self, _events: list[RepositoryChangeEvent]) -> None:
        await self.view.refresh_node(self, reset=True)


__all__ = ["FileHistoryNode", "HistoryNode", "NO_ACTIVE_FILE_MESSAGE"]
