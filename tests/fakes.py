"""In-memory stand-ins for the data source, the host and simple trees."""

from __future__ import annotations

import asyncio
from datetime import datetime
from pathlib import Path

from repotree.config import ViewConfig
from repotree.events import Disposable, EventEmitter
from repotree.source import (
    BranchSummary,
    CommitFile,
    CommitSummary,
    Repository,
    RepositoryChange,
    RepositoryChangeEvent,
    StatusSummary,
)
from repotree.view_model import (
    Capability,
    CollapsibleState,
    DisplayRecord,
    PagingState,
    ViewNode,
)
from repotree.view_tree import ViewTree

# Zero debounce keeps event-driven tests fast; a single sleep lets timers fire.
FAST_CONFIG = ViewConfig(debounce_ms=0, active_editor_debounce_ms=0, visibility_debounce_ms=0)


async def settle(rounds: int = 5) -> None:
    """Let zero-delay timers and the tasks they start run to completion."""
    for _ in range(rounds):
        await asyncio.sleep(0.01)


def make_repository(path: str, index: int = 0, **kwargs) -> Repository:
    return Repository(path=Path(path), index=index, **kwargs)


def make_commits(count: int, prefix: str = "c") -> list[CommitSummary]:
    return [CommitSummary(sha=f"{prefix}{i:039d}", summary=f"commit {i}", author="Tests") for i in range(count)]


class FakeRepositorySource:
    """``RepositorySource`` over plain dicts keyed by normalized repo path."""

    def __init__(self, repositories: list[Repository] | None = None) -> None:
        self.repositories = list(repositories or [])
        self.branches: dict[str, list[BranchSummary]] = {}
        self.statuses: dict[str, StatusSummary] = {}
        self.commits: dict[tuple[str, str], list[CommitSummary]] = {}
        self.file_commits: dict[tuple[str, str], list[CommitSummary]] = {}
        self.commit_files: dict[str, list[CommitFile]] = {}
        self.last_fetched: dict[str, datetime] = {}
        self.failing: set[str] = set()
        self.calls: list[tuple[object, ...]] = []
        self._repositories_changed: EventEmitter[None] = EventEmitter("fake.repositories")
        self._repository_changed: dict[str, EventEmitter[RepositoryChangeEvent]] = {}

    def _record(self, name: str, *args: object) -> None:
        self.calls.append((name, *args))
        if name in self.failing:
            raise RuntimeError(f"{name} failed")

    def call_count(self, name: str) -> int:
        return sum(1 for call in self.calls if call[0] == name)

    async def get_repositories(self) -> list[Repository]:
        self._record("get_repositories")
        return list(self.repositories)

    async def get_branch(self, repo: Repository) -> BranchSummary | None:
        self._record("get_branch", repo.normalized_path)
        for branch in self.branches.get(repo.normalized_path, []):
            if branch.current:
                return branch
        return None

    async def get_branches(self, repo: Repository) -> list[BranchSummary]:
        self._record("get_branches", repo.normalized_path)
        return list(self.branches.get(repo.normalized_path, []))

    async def get_status(self, repo: Repository) -> StatusSummary | None:
        self._record("get_status", repo.normalized_path)
        return self.statuses.get(repo.normalized_path)

    async def get_commits(self, repo: Repository, ref: str, limit: int | None) -> list[CommitSummary]:
        self._record("get_commits", repo.normalized_path, ref, limit)
        commits = self.commits.get((repo.normalized_path, ref), [])
        return list(commits if limit is None else commits[:limit])

    async def get_file_commits(self, repo: Repository, path: str, limit: int | None) -> list[CommitSummary]:
        self._record("get_file_commits", repo.normalized_path, path, limit)
        commits = self.file_commits.get((repo.normalized_path, path), [])
        return list(commits if limit is None else commits[:limit])

    async def get_commit_files(self, repo: Repository, sha: str) -> list[CommitFile]:
        self._record("get_commit_files", repo.normalized_path, sha)
        return list(self.commit_files.get(sha, []))

    async def get_last_fetched(self, repo: Repository) -> datetime | None:
        self._record("get_last_fetched", repo.normalized_path)
        return self.last_fetched.get(repo.normalized_path)

    def on_did_change_repositories(self, listener) -> Disposable:
        return self._repositories_changed.subscribe(listener)

    def on_did_change_repository(self, repo: Repository, listener) -> Disposable:
        emitter = self._repository_changed.setdefault(repo.normalized_path, EventEmitter(repo.normalized_path))
        return emitter.subscribe(listener)

    def set_repositories(self, repositories: list[Repository]) -> None:
        self.repositories = list(repositories)
        self._repositories_changed.fire(None)

    def fire_repository_changed(self, repo: Repository, *changes: RepositoryChange) -> None:
        event = RepositoryChangeEvent(repo, frozenset(changes or {RepositoryChange.UNKNOWN}))
        emitter = self._repository_changed.get(repo.normalized_path)
        if emitter is not None:
            emitter.fire(event)

    def repositories_listener_count(self) -> int:
        return len(self._repositories_changed)

    def repository_listener_count(self, repo: Repository) -> int:
        emitter = self._repository_changed.get(repo.normalized_path)
        return len(emitter) if emitter is not None else 0

    async def close(self) -> None:
        self.calls.append(("close",))
        self._repositories_changed.clear()
        self._repository_changed.clear()


class FakeHost:
    def __init__(self) -> None:
        self.visible = True
        self.selection: list[ViewNode] = []
        self.reveals: list[tuple[ViewNode, bool, bool, bool | int]] = []
        self.fail_reveal = False

    def reveal(self, node: ViewNode, *, select: bool, focus: bool, expand: bool | int) -> None:
        if self.fail_reveal:
            raise RuntimeError("host is gone")
        self.reveals.append((node, select, focus, expand))


# Simple trees: a dict value is a nested node, an int is a pageable node with
# that many leaf children.
TreeShape = dict[str, "TreeShape | int"]


class StaticNode(ViewNode):
    def __init__(self, view: ViewTree, parent: ViewNode | None, name: str, shape: TreeShape) -> None:
        node_id = name if parent is None else f"{parent.id}/{name}"
        super().__init__(node_id, view, parent)
        self.name = name
        self.shape = shape
        self.load_count = 0

    async def _load_children(self) -> list[ViewNode]:
        self.load_count += 1
        children: list[ViewNode] = []
        for name, value in self.shape.items():
            if isinstance(value, int):
                children.append(PagedNode(self.view, self, name, value))
            else:
                children.append(StaticNode(self.view, self, name, value))
        return children

    async def _build_display_record(self) -> DisplayRecord:
        state = CollapsibleState.COLLAPSED if self.shape else CollapsibleState.NONE
        return DisplayRecord(label=self.name, collapsible_state=state)


class PagedNode(ViewNode):
    capabilities = frozenset({Capability.PAGEABLE})

    def __init__(self, view: ViewTree, parent: ViewNode, name: str, total: int, page_size: int = 2) -> None:
        super().__init__(f"{parent.id}/{name}", view, parent)
        self.name = name
        self.total = total
        self.paging = PagingState(page_size=page_size, limit=page_size)
        self.show_more_calls = 0

    async def _load_children(self) -> list[ViewNode]:
        paging = self.paging
        count = self.total if paging.limit is None else min(paging.limit, self.total)
        paging.has_more = count < self.total
        return [StaticNode(self.view, self, f"item{i}", {}) for i in range(count)]

    async def show_more(self, limit: int | None = None, *, until: str | None = None) -> None:
        self.show_more_calls += 1
        self.paging.grow(limit)
        await self.refresh(reset=True)
        await self.get_children()


class StaticTree(ViewTree):
    def __init__(self, shape: TreeShape, *, config: ViewConfig | None = None, host: FakeHost | None = None) -> None:
        super().__init__("tests.static", "Static", config=config or FAST_CONFIG, host=host)
        self.shape = shape

    def create_root(self) -> StaticNode:
        return StaticNode(self, None, "root", self.shape)
