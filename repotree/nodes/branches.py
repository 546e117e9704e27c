"""Branch list, the paged commit history of each branch, and upstream comparisons."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..source import BranchSummary, CommitSummary, Repository
from ..view_model import CollapsibleState, DisplayRecord, MessageNode, ViewNode
from .commits import CommitWindowNode

if TYPE_CHECKING:
    from ..views import RepositoriesView


class BranchesNode(ViewNode):
    view: RepositoriesView

    def __init__(self, view: RepositoriesView, parent: ViewNode, repo: Repository) -> None:
        super().__init__(f"{parent.id}/branches", view, parent)
        self.repo = repo

    async def _load_children(self) -> list[ViewNode]:
        branches = await self.view.source.get_branches(self.repo)
        if not branches:
            return [MessageNode(self.view, self, "No branches could be found.")]
        ordered = sorted(branches, key=lambda branch: (not branch.current, branch.name.lower()))
        return [BranchNode(self.view, self, self.repo, branch) for branch in ordered]

    async def _build_display_record(self) -> DisplayRecord:
        return DisplayRecord(
            label="Branches",
            collapsible_state=CollapsibleState.COLLAPSED,
            icon="branches",
            context_value="branches",
        )


class BranchNode(CommitWindowNode):
    """Branch whose children are a window over its commit history.

    With ``show_branch_comparison`` on, a branch that tracks an upstream
    shows a ``BranchComparisonNode`` above its commits.
    """

    def __init__(self, view: RepositoriesView, parent: ViewNode, repo: Repository, branch: BranchSummary) -> None:
        self.branch = branch
        super().__init__(f"{parent.id}/branch:{branch.name}", view, parent, repo)

    @property
    def stable_key(self) -> str:
        return self.branch.name

    async def _fetch_commits(self, limit: int | None) -> list[CommitSummary]:
        return await self.view.source.get_commits(self.repo, self.branch.name, limit)

    def _leading_children(self, previous: list[ViewNode]) -> list[ViewNode]:
        if not self.view.config.show_branch_comparison or not self.branch.upstream:
            return []
        for node in previous:
            if isinstance(node, BranchComparisonNode) and not node.disposed:
                return [node]
        return [BranchComparisonNode(self.view, self, self.repo, self.branch)]

    async def _build_display_record(self) -> DisplayRecord:
        branch = self.branch
        if branch.upstream_gone:
            description = f"{branch.upstream} (gone)" if branch.upstream else "(gone)"
        else:
            description = " ".join(part for part in (branch.tracking_status(), branch.upstream or "") if part)
        tooltip = f"Branch {branch.name}"
        if branch.upstream:
            tooltip += f" tracking {branch.upstream}"
        return DisplayRecord(
            label=branch.name,
            collapsible_state=CollapsibleState.EXPANDED if branch.current else CollapsibleState.COLLAPSED,
            description=description or None,
            tooltip=tooltip,
            icon="branch-current" if branch.current else "branch",
            context_value="branch+current" if branch.current else "branch",
        )


class BranchComparisonNode(ViewNode):
    """Commits a branch has that its upstream lacks, and the reverse."""

    view: RepositoriesView

    def __init__(self, view: RepositoriesView, parent: ViewNode, repo: Repository, branch: BranchSummary) -> None:
        super().__init__(f"{parent.id}/compare", view, parent)
        self.repo = repo
        self.branch = branch

    async def _load_children(self) -> list[ViewNode]:
        name, upstream = self.branch.name, self.branch.upstream or ""
        return [
            ComparisonCommitsNode(self.view, self, self.repo, "ahead", f"{upstream}..{name}", self.branch.ahead),
            ComparisonCommitsNode(self.view, self, self.repo, "behind", f"{name}..{upstream}", self.branch.behind),
        ]

    async def _build_display_record(self) -> DisplayRecord:
        branch = self.branch
        return DisplayRecord(
            label=f"Compare {branch.name} with {branch.upstream}",
            collapsible_state=CollapsibleState.COLLAPSED,
            description=branch.tracking_status() or "in sync",
            icon="compare",
            context_value="branch-comparison",
        )


class ComparisonCommitsNode(CommitWindowNode):
    """Paged commits of one side of a branch comparison (a ``a..b`` range)."""

    def __init__(
        self,
        view: RepositoriesView,
        parent: ViewNode,
        repo: Repository,
        direction: str,
        revision_range: str,
        count: int,
    ) -> None:
        self.direction = direction
        self.revision_range = revision_range
        self.count = count
        super().__init__(f"{parent.id}/{direction}", view, parent, repo)

    async def _fetch_commits(self, limit: int | None) -> list[CommitSummary]:
        return await self.view.source.get_commits(self.repo, self.revision_range, limit)

    async def _build_display_record(self) -> DisplayRecord:
        noun = "commit" if self.count == 1 else "commits"
        return DisplayRecord(
            label=f"{self.count} {noun} {self.direction}",
            collapsible_state=CollapsibleState.COLLAPSED if self.count else CollapsibleState.NONE,
            description=self.revision_range,
            icon=f"comparison-{self.direction}",
            context_value=f"comparison-{self.direction}",
        )


__all__ = ["BranchComparisonNode", "BranchNode", "BranchesNode", "ComparisonCommitsNode"]
