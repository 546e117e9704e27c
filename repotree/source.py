"""Data-source boundary: repository records, summaries, and change events.

The view never runs version-control commands itself. Everything it shows
comes through a ``RepositorySource``; ``repotree.git_source`` provides one
backed by the ``git`` executable, tests provide in-memory fakes.
"""

from __future__ import annotations

import os
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Protocol

from .events import Disposable


class RepositoryChange(Enum):
    CONFIG = "config"
    HEADS = "heads"
    REMOTES = "remotes"
    INDEX = "index"
    UNKNOWN = "unknown"


def normalize_repo_path(path: Path | str) -> str:
    """Stable comparison key for a repository path (no filesystem access)."""
    text = os.path.normpath(os.fspath(path))
    return text.replace("\\", "/")


@dataclass(frozen=True)
class Repository:
    """One open repository; ``index`` orders repositories in the view."""

    path: Path
    index: int = 0
    closed: bool = False
    starred: bool = False

    @property
    def normalized_path(self) -> str:
        return normalize_repo_path(self.path)

    @property
    def name(self) -> str:
        return Path(self.path).name or str(self.path)

    def contains(self, target: Path | str) -> bool:
        """Return whether ``target`` lies inside this repository's worktree."""
        root = self.normalized_path
        candidate = normalize_repo_path(target)
        return candidate == root or candidate.startswith(root.rstrip("/") + "/")

    def relative_path(self, target: Path | str) -> str:
        """Worktree-relative form of ``target``; ``"."`` for the root itself."""
        root = self.normalized_path.rstrip("/")
        candidate = normalize_repo_path(target)
        if candidate == root:
            return "."
        return candidate[len(root) + 1 :]


@dataclass(frozen=True)
class RepositoryChangeEvent:
    repository: Repository
    changes: frozenset[RepositoryChange] = frozenset({RepositoryChange.UNKNOWN})

    def changed(self, *changes: RepositoryChange) -> bool:
        return any(change in self.changes for change in changes)


@dataclass(frozen=True)
class BranchSummary:
    name: str
    current: bool = False
    upstream: str | None = None
    ahead: int = 0
    behind: int = 0
    sha: str | None = None
    upstream_gone: bool = False

    def tracking_status(self, separator: str = " ") -> str:
        """Compact ``↑ahead ↓behind`` text; empty when in sync or untracked."""
        parts: list[str] = []
        if self.ahead:
            parts.append(f"{self.ahead}↑")
        if self.behind:
            parts.append(f"{self.behind}↓")
        return separator.join(parts)


@dataclass(frozen=True)
class StatusFile:
    """One changed path in the working tree; ``status`` is a single letter."""

    path: str
    status: str
    original_path: str | None = None
    staged: bool = False


@dataclass(frozen=True)
class StatusSummary:
    branch: str | None
    upstream: str | None = None
    ahead: int = 0
    behind: int = 0
    files: tuple[StatusFile, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class CommitSummary:
    sha: str
    summary: str
    author: str = ""
    date: datetime | None = None

    @property
    def short_sha(self) -> str:
        return self.sha[:7]


@dataclass(frozen=True)
class CommitFile:
    path: str
    status: str
    original_path: str | None = None


RepositoriesListener = Callable[[None], object]
RepositoryListener = Callable[[RepositoryChangeEvent], object]


class RepositorySource(Protocol):
    """Everything the repositories view reads from version control."""

    async def get_repositories(self) -> list[Repository]: ...

    async def get_branch(self, repo: Repository) -> BranchSummary | None: ...

    async def get_branches(self, repo: Repository) -> list[BranchSummary]: ...

    async def get_status(self, repo: Repository) -> StatusSummary | None: ...

    async def get_commits(self, repo: Repository, ref: str, limit: int | None) -> list[CommitSummary]: ...

    async def get_file_commits(self, repo: Repository, path: str, limit: int | None) -> list[CommitSummary]: ...

    async def get_commit_files(self, repo: Repository, sha: str) -> list[CommitFile]: ...

    async def get_last_fetched(self, repo: Repository) -> datetime | None: ...

    def on_did_change_repositories(self, listener: RepositoriesListener) -> Disposable: ...

    def on_did_change_repository(self, repo: Repository, listener: RepositoryListener) -> Disposable: ...


__all__ = [
    "BranchSummary",
    "CommitFile",
    "CommitSummary",
    "Repository",
    "RepositoryChange",
    "RepositoryChangeEvent",
    "RepositorySource",
    "StatusFile",
    "StatusSummary",
    "normalize_repo_path",
]
