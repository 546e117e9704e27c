"""``RepositorySource`` backed by the ``git`` executable.

Every query runs one short-lived ``git`` subprocess in a worker thread and
never raises: failures are logged and come back as empty results. Change
detection polls stat snapshots of each repository's git dir.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import subprocess
from collections.abc import Iterable
from datetime import datetime, timezone
from pathlib import Path

from .events import Disposable, EventEmitter
from .source import (
    BranchSummary,
    CommitFile,
    CommitSummary,
    Repository,
    RepositoriesListener,
    RepositoryChangeEvent,
    RepositoryListener,
    StatusFile,
    StatusSummary,
)
from .watch import GitWatchSnapshot, build_git_watch_snapshot, diff_git_watch_snapshots, resolve_git_paths

logger = logging.getLogger(__name__)

GIT_TIMEOUT_SECONDS = 5.0
POLL_INTERVAL_SECONDS = 1.0

_BRANCH_REF_FORMAT = "%(refname:short)%00%(HEAD)%00%(upstream:short)%00%(upstream:track,nobracket)%00%(objectname)"
_LOG_FORMAT = "%H%x1f%s%x1f%an%x1f%aI%x1e"


def _run_git(repo_root: Path, args: list[str], timeout_seconds: float) -> subprocess.CompletedProcess[str] | None:
    try:
        return subprocess.run(
            ["git", "-C", str(repo_root), *args],
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            encoding="utf-8",
            errors="replace",
            check=False,
            timeout=timeout_seconds,
        )
    except Exception:
        logger.debug("git %s failed to run in %s", " ".join(args), repo_root, exc_info=True)
        return None


def _status_letter(xy: str) -> tuple[str, bool]:
    """Collapse a porcelain ``XY`` pair to one letter plus a staged flag."""
    staged, unstaged = xy[0], xy[1]
    if unstaged != ".":
        return unstaged, False
    return staged, True


def parse_status_v2(output: str) -> StatusSummary:
    """Parse ``git status --porcelain=v2 --branch -z`` output."""
    branch: str | None = None
    oid: str | None = None
    upstream: str | None = None
    ahead = behind = 0
    files: list[StatusFile] = []

    tokens = output.split("\0")
    index = 0
    while index < len(tokens):
        token = tokens[index]
        index += 1
        if not token:
            continue

        if token.startswith("# "):
            key, _, value = token[2:].partition(" ")
            if key == "branch.oid":
                oid = None if value == "(initial)" else value
            elif key == "branch.head":
                branch = None if value == "(detached)" else value
            elif key == "branch.upstream":
                upstream = value or None
            elif key == "branch.ab":
                for part in value.split():
                    if part.startswith("+"):
                        ahead = int(part[1:] or 0)
                    elif part.startswith("-"):
                        behind = int(part[1:] or 0)
            continue

        kind = token[0]
        if kind == "1":
            fields = token.split(" ", 8)
            if len(fields) < 9:
                continue
            status, staged = _status_letter(fields[1])
            files.append(StatusFile(fields[8], status, staged=staged))
        elif kind == "2":
            fields = token.split(" ", 9)
            if len(fields) < 10:
                continue
            # Renames and copies carry the source path as the next token.
            original = tokens[index] if index < len(tokens) else None
            index += 1
            status, staged = _status_letter(fields[1])
            files.append(StatusFile(fields[9], status, original_path=original or None, staged=staged))
        elif kind == "u":
            fields = token.split(" ", 10)
            if len(fields) < 11:
                continue
            files.append(StatusFile(fields[10], "U"))
        elif kind == "?":
            files.append(StatusFile(token[2:], "?"))

    if branch is None and oid is not None:
        branch = oid[:7]
    return StatusSummary(branch=branch, upstream=upstream, ahead=ahead, behind=behind, files=tuple(files))


def _parse_track(track: str) -> tuple[int, int, bool]:
    if track == "gone":
        return 0, 0, True
    ahead = behind = 0
    for part in track.split(","):
        word, _, count = part.strip().partition(" ")
        if word == "ahead" and count.isdigit():
            ahead = int(count)
        elif word == "behind" and count.isdigit():
            behind = int(count)
    return ahead, behind, False


def parse_branch_refs(output: str) -> list[BranchSummary]:
    """Parse ``git for-each-ref`` output written with ``_BRANCH_REF_FORMAT``."""
    branches: list[BranchSummary] = []
    for line in output.splitlines():
        fields = line.split("\0")
        if len(fields) < 5 or not fields[0]:
            continue
        name, head, upstream, track, sha = fields[:5]
        ahead, behind, gone = _parse_track(track)
        branches.append(
            BranchSummary(
                name=name,
                current=head == "*",
                upstream=upstream or None,
                ahead=ahead,
                behind=behind,
                sha=sha or None,
                upstream_gone=gone,
            )
        )
    return branches


def _parse_date(text: str) -> datetime | None:
    try:
        return datetime.fromisoformat(text.strip())
    except ValueError:
        return None


def parse_log(output: str) -> list[CommitSummary]:
    """Parse ``git log`` output written with ``_LOG_FORMAT``."""
    commits: list[CommitSummary] = []
    for record in output.split("\x1e"):
        record = record.strip("\n")
        if not record:
            continue
        fields = record.split("\x1f")
        if len(fields) < 4:
            continue
        sha, summary, author, date = fields[:4]
        commits.append(CommitSummary(sha=sha, summary=summary, author=author, date=_parse_date(date)))
    return commits


def parse_name_status(output: str) -> list[CommitFile]:
    """Parse ``--name-status -z`` output into per-file changes."""
    files: list[CommitFile] = []
    tokens = [token for token in output.split("\0")]
    index = 0
    while index < len(tokens):
        code = tokens[index].strip()
        index += 1
        if not code:
            continue
        letter = code[0]
        if letter in ("R", "C"):
            if index + 1 >= len(tokens):
                break
            original, path = tokens[index], tokens[index + 1]
            index += 2
            files.append(CommitFile(path, letter, original_path=original))
        else:
            if index >= len(tokens):
                break
            path = tokens[index]
            index += 1
            files.append(CommitFile(path, letter))
    return files


class GitRepositorySource:
    """Repositories found at ``paths``, queried and watched through ``git``.

    ``start()`` begins polling for changes; ``close()`` stops it.
    """

    def __init__(
        self,
        paths: Iterable[Path | str],
        *,
        timeout_seconds: float = GIT_TIMEOUT_SECONDS,
        poll_interval_seconds: float = POLL_INTERVAL_SECONDS,
    ) -> None:
        self._paths = [Path(path) for path in paths]
        self.timeout_seconds = timeout_seconds
        self.poll_interval_seconds = poll_interval_seconds
        self._repositories: list[Repository] | None = None
        self._git_dirs: dict[str, Path] = {}
        self._snapshots: dict[str, GitWatchSnapshot] = {}
        self._repositories_changed: EventEmitter[None] = EventEmitter("repositories")
        self._repository_changed: dict[str, EventEmitter[RepositoryChangeEvent]] = {}
        self._poll_task: asyncio.Task[None] | None = None

    async def _git(self, repo: Repository, *args: str) -> str | None:
        proc = await asyncio.to_thread(_run_git, repo.path, list(args), self.timeout_seconds)
        if proc is None:
            return None
        if proc.returncode != 0:
            logger.debug("git %s exited %s in %s: %s", args[0], proc.returncode, repo.path, proc.stderr.strip())
            return None
        return proc.stdout

    # Discovery

    async def _discover(self) -> list[Repository]:
        repositories: list[Repository] = []
        seen: set[Path] = set()
        for path in self._paths:
            repo_root, git_dir = await asyncio.to_thread(resolve_git_paths, path, self.timeout_seconds)
            if repo_root is None or git_dir is None:
                logger.warning("Not a git repository: %s", path)
                continue
            if repo_root in seen:
                continue
            seen.add(repo_root)
            repo = Repository(path=repo_root, index=len(repositories))
            self._git_dirs[repo.normalized_path] = git_dir
            repositories.append(repo)
        return repositories

    async def refresh_repositories(self) -> list[Repository]:
        """Re-resolve the configured paths; notify listeners if the set changed."""
        previous = self._repositories
        current = await self._discover()
        self._repositories = current
        self._forget_departed({repo.normalized_path for repo in current})
        for repo in current:
            key = repo.normalized_path
            if key not in self._snapshots:
                self._snapshots[key] = await asyncio.to_thread(build_git_watch_snapshot, self._git_dirs.get(key))
        if previous is not None and previous != current:
            logger.debug("Repositories changed: %s", ", ".join(repo.normalized_path for repo in current))
            self._repositories_changed.fire(None)
        return list(current)

    def _forget_departed(self, keys: set[str]) -> None:
        """Drop watch state and listeners of repositories no longer present."""
        for key in [key for key in self._snapshots if key not in keys]:
            del self._snapshots[key]
        for key in [key for key in self._git_dirs if key not in keys]:
            del self._git_dirs[key]
        for key in [key for key in self._repository_changed if key not in keys]:
            self._repository_changed.pop(key).clear()

    def set_paths(self, paths: Iterable[Path | str]) -> None:
        """Replace the configured paths; the next poll picks the change up."""
        self._paths = [Path(path) for path in paths]

    # RepositorySource

    async def get_repositories(self) -> list[Repository]:
        if self._repositories is None:
            return await self.refresh_repositories()
        return list(self._repositories)

    async def get_status(self, repo: Repository) -> StatusSummary | None:
        output = await self._git(repo, "status", "--porcelain=v2", "--branch", "-z", "--untracked-files=normal")
        if output is None:
            return None
        return parse_status_v2(output)

    async def get_branch(self, repo: Repository) -> BranchSummary | None:
        output = await self._git(repo, "status", "--porcelain=v2", "--branch", "-z", "--untracked-files=no")
        if output is None:
            return None
        status = parse_status_v2(output)
        if status.branch is None:
            return None
        return BranchSummary(
            name=status.branch,
            current=True,
            upstream=status.upstream,
            ahead=status.ahead,
            behind=status.behind,
        )

    async def get_branches(self, repo: Repository) -> list[BranchSummary]:
        output = await self._git(repo, "for-each-ref", f"--format={_BRANCH_REF_FORMAT}", "refs/heads")
        if output is None:
            return []
        return parse_branch_refs(output)

    async def get_commits(self, repo: Repository, ref: str, limit: int | None) -> list[CommitSummary]:
        if ref.startswith("-"):
            logger.warning("Refusing to log ref %r", ref)
            return []
        return await self._log(repo, limit, ref, "--")

    async def get_file_commits(self, repo: Repository, path: str, limit: int | None) -> list[CommitSummary]:
        if path in ("", "."):
            return await self._log(repo, limit, "--", ".")
        return await self._log(repo, limit, "--follow", "--", path)

    async def _log(self, repo: Repository, limit: int | None, *tail: str) -> list[CommitSummary]:
        args = ["log", f"--format={_LOG_FORMAT}"]
        if limit is not None:
            args.append(f"--max-count={max(limit, 0)}")
        output = await self._git(repo, *args, *tail)
        if output is None:
            return []
        return parse_log(output)

    async def get_commit_files(self, repo: Repository, sha: str) -> list[CommitFile]:
        if sha.startswith("-"):
            return []
        output = await self._git(repo, "show", "--name-status", "-z", "--format=", sha, "--")
        if output is None:
            return []
        return parse_name_status(output)

    async def get_last_fetched(self, repo: Repository) -> datetime | None:
        git_dir = self._git_dirs.get(repo.normalized_path)
        if git_dir is None:
            return None
        try:
            st = await asyncio.to_thread((git_dir / "FETCH_HEAD").stat)
        except OSError:
            return None
        return datetime.fromtimestamp(st.st_mtime, timezone.utc)

    def on_did_change_repositories(self, listener: RepositoriesListener) -> Disposable:
        return self._repositories_changed.subscribe(listener)

    def on_did_change_repository(self, repo: Repository, listener: RepositoryListener) -> Disposable:
        key = repo.normalized_path
        emitter = self._repository_changed.get(key)
        if emitter is None:
            emitter = self._repository_changed[key] = EventEmitter(f"repository:{key}")
        return emitter.subscribe(listener)

    # Change detection

    async def poll(self) -> None:
        """Compare fresh watch snapshots against the previous ones and notify."""
        for repo in await self.refresh_repositories():
            key = repo.normalized_path
            snapshot = await asyncio.to_thread(build_git_watch_snapshot, self._git_dirs.get(key))
            previous = self._snapshots.get(key)
            self._snapshots[key] = snapshot
            if previous is None:
                continue
            changes = diff_git_watch_snapshots(previous, snapshot)
            if not changes:
                continue
            emitter = self._repository_changed.get(key)
            if emitter is not None:
                emitter.fire(RepositoryChangeEvent(repo, changes))

    async def _poll_forever(self) -> None:
        while True:
            await asyncio.sleep(self.poll_interval_seconds)
            try:
                await self.poll()
            except Exception:
                logger.exception("Polling repositories failed")

    def start(self) -> None:
        if self._poll_task is None or self._poll_task.done():
            self._poll_task = asyncio.get_running_loop().create_task(self._poll_forever())

    async def close(self) -> None:
        task, self._poll_task = self._poll_task, None
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._repositories_changed.clear()
        for emitter in self._repository_changed.values():
            emitter.clear()
        self._repository_changed.clear()


__all__ = [
    "GitRepositorySource",
    "parse_branch_refs",
    "parse_log",
    "parse_name_status",
    "parse_status_v2",
]
