"""Commit rows, the files each commit touched, and paged commit windows."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..source import CommitFile, CommitSummary, Repository
from ..view_model import (
    Capability,
    CollapsibleState,
    CommandDescriptor,
    DisplayRecord,
    PagingState,
    ShowMoreNode,
    ViewNode,
)
from .formatting import format_relative_time, split_path, status_icon, status_label

if TYPE_CHECKING:
    from ..views import RepositoriesView

SHOW_COMMIT_COMMAND = "repotree.showCommit"
OPEN_CHANGES_COMMAND = "repotree.openChanges"


class CommitNode(ViewNode):
    view: RepositoriesView

    def __init__(self, view: RepositoriesView, parent: ViewNode, repo: Repository, commit: CommitSummary) -> None:
        super().__init__(f"{parent.id}/commit:{commit.sha}", view, parent)
        self.repo = repo
        self.commit = commit

    @property
    def stable_key(self) -> str:
        return self.commit.sha

    async def _load_children(self) -> list[ViewNode]:
        files = await self.view.source.get_commit_files(self.repo, self.commit.sha)
        return [CommitFileNode(self.view, self, self.repo, self.commit, file) for file in files]

    async def _build_display_record(self) -> DisplayRecord:
        commit = self.commit
        details = [commit.short_sha]
        if commit.author:
            details.append(commit.author)
        if commit.date is not None:
            details.append(format_relative_time(commit.date))
        return DisplayRecord(
            label=commit.summary or commit.short_sha,
            collapsible_state=CollapsibleState.COLLAPSED,
            description=" · ".join(details),
            tooltip=f"{commit.sha}\n{commit.author}\n\n{commit.summary}".rstrip(),
            icon="commit",
            context_value="commit",
            command=CommandDescriptor(
                SHOW_COMMIT_COMMAND,
                (str(self.repo.path), commit.sha),
                title="Show Commit Details",
            ),
        )


class CommitFileNode(ViewNode):
    def __init__(
        self,
        view: RepositoriesView,
        parent: ViewNode,
        repo: Repository,
        commit: CommitSummary,
        file: CommitFile,
    ) -> None:
        super().__init__(f"{parent.id}/file:{file.path}", view, parent)
        self.repo = repo
        self.commit = commit
        self.file = file

    async def _build_display_record(self) -> DisplayRecord:
        name, directory = split_path(self.file.path)
        tooltip = f"{self.file.path}\n{status_label(self.file.status)}"
        if self.file.original_path:
            tooltip += f" from {self.file.original_path}"
        return DisplayRecord(
            label=name,
            description=directory or None,
            tooltip=tooltip,
            icon=status_icon(self.file.status),
            context_value="commit-file",
            command=CommandDescriptor(
                OPEN_CHANGES_COMMAND,
                (str(self.repo.path), self.commit.sha, self.file.path),
                title="Open Changes",
            ),
        )


class CommitWindowNode(ViewNode):
    """Pageable window over a commit history.

    The window starts at the tree's last-known limit for this node (or one
    page) and ends with a ``ShowMoreNode`` while older commits remain.
    Commit rows keep their identity when the window grows. Subclasses
    implement ``_fetch_commits`` and may put rows ahead of the commits with
    ``_leading_children``.
    """

    capabilities = frozenset({Capability.PAGEABLE})
    view: RepositoriesView

    def __init__(self, node_id: str, view: RepositoriesView, parent: ViewNode, repo: Repository) -> None:
        super().__init__(node_id, view, parent)
        self.repo = repo
        page_size = view.config.page_size
        limit: int | None = page_size
        if view.has_last_known_limit(self):
            limit = view.get_last_known_limit(self)
        self.paging = PagingState(page_size=page_size, limit=limit)

    async def _fetch_commits(self, limit: int | None) -> list[CommitSummary]:
        raise NotImplementedError

    def _leading_children(self, previous: list[ViewNode]) -> list[ViewNode]:
        return []

    async def _fetch_window(self) -> list[CommitSummary]:
        paging = self.paging
        assert paging is not None
        limit = paging.limit
        commits = await self._fetch_commits(None if limit is None else limit + 1)
        paging.has_more = limit is not None and len(commits) > limit
        return commits if limit is None else commits[:limit]

    def _build_window(self, commits: list[CommitSummary], previous: list[ViewNode]) -> list[ViewNode]:
        """Build the rows, reusing nodes for commits already shown."""
        children = self._leading_children(previous)
        reusable = {node.stable_key: node for node in previous if isinstance(node, CommitNode)}
        for commit in commits:
            node = reusable.pop(commit.sha, None)
            children.append(node if node is not None else CommitNode(self.view, self, self.repo, commit))

        kept = {id(node) for node in children}
        for node in previous:
            if id(node) not in kept:
                node.dispose()

        paging = self.paging
        assert paging is not None
        if paging.has_more:
            children.append(ShowMoreNode(self.view, self, paging.page_size))
        return children

    async def _load_children(self) -> list[ViewNode]:
        return self._build_window(await self._fetch_window(), [])

    async def _reload_window(self) -> None:
        generation = self._generation
        previous = self._children or []
        commits = await self._fetch_window()
        if self.disposed or generation != self._generation:
            # Reset while fetching; the next load starts from the new generation.
            return
        self._children = self._build_window(commits, previous)
        self._stale = False

    def _shows_commit(self, sha_prefix: str) -> bool:
        for node in self._children or []:
            if isinstance(node, CommitNode) and node.commit.sha.startswith(sha_prefix):
                return True
        return False

    async def show_more(self, limit: int | None = None, *, until: str | None = None) -> None:
        """Grow the window by ``limit`` commits, or page until ``until`` shows up."""
        paging = self.paging
        assert paging is not None
        if until is None:
            paging.grow(limit)
            await self._reload_window()
        else:
            if self._children is None:
                await self.get_children()
            while not self._shows_commit(until) and paging.has_more and not self.disposed:
                generation = self._generation
                paging.grow(limit)
                await self._reload_window()
                if generation != self._generation:
                    break
        self.view.trigger_node_change(self)


__all__ = [
    "CommitFileNode",
    "CommitNode",
    "CommitWindowNode",
    "OPEN_CHANGES_COMMAND",
    "SHOW_COMMIT_COMMAND",
]
