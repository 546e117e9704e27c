"""Stat-based watch snapshots of a git directory.

Polling code takes a snapshot of the git control files that matter to the
view, compares it with the previous one, and maps the files that changed to
``RepositoryChange`` reasons.
"""

from __future__ import annotations

import os
import subprocess
from pathlib import Path

from .source import RepositoryChange

StatSignature = tuple[str, int, int, int]
GitWatchSnapshot = dict[str, StatSignature]

# Control-file label -> reason it signals.
_WATCHED_FILES: dict[str, RepositoryChange] = {
    "HEAD": RepositoryChange.HEADS,
    "index": RepositoryChange.INDEX,
    "config": RepositoryChange.CONFIG,
    "packed-refs": RepositoryChange.HEADS,
    "FETCH_HEAD": RepositoryChange.REMOTES,
    "MERGE_HEAD": RepositoryChange.HEADS,
    "REBASE_HEAD": RepositoryChange.HEADS,
    "CHERRY_PICK_HEAD": RepositoryChange.HEADS,
}
_WATCHED_REF_DIRS: dict[str, RepositoryChange] = {
    "refs/heads": RepositoryChange.HEADS,
    "refs/remotes": RepositoryChange.REMOTES,
    "refs/tags": RepositoryChange.HEADS,
}


def _path_stat_signature(path: Path) -> StatSignature:
    """Return a stable stat tuple describing ``path`` existence and metadata."""
    try:
        st = path.stat()
    except FileNotFoundError:
        return ("missing", 0, 0, 0)
    except OSError:
        return ("error", 0, 0, 0)
    return ("ok", st.st_mtime_ns, st.st_size, st.st_mode)


def resolve_git_paths(path: Path, timeout_seconds: float = 0.5) -> tuple[Path | None, Path | None]:
    """Resolve repository root and git-dir for ``path``.

    Uses ``git rev-parse --show-toplevel --git-dir`` and returns ``(None, None)``
    if git is unavailable, the directory is not in a repo, or probing fails.
    """
    try:
        proc = subprocess.run(
            ["git", "-C", str(path), "rev-parse", "--show-toplevel", "--git-dir"],
            stdout=subprocess.PIPE,
            stderr=subprocess.DEVNULL,
            text=True,
            encoding="utf-8",
            errors="replace",
            check=False,
            timeout=timeout_seconds,
        )
    except Exception:
        return None, None

    if proc.returncode != 0:
        return None, None

    lines = [line.strip() for line in proc.stdout.splitlines() if line.strip()]
    if len(lines) < 2:
        return None, None

    repo_root = Path(lines[0]).resolve()
    git_dir_raw = Path(lines[1])
    git_dir = git_dir_raw if git_dir_raw.is_absolute() else (repo_root / git_dir_raw)
    return repo_root, git_dir.resolve()


def _ref_dir_entries(directory: Path, label: str, snapshot: GitWatchSnapshot) -> None:
    """Add one stat entry per ref file below ``directory``."""
    try:
        walker = os.walk(directory)
        for current, _dirs, files in walker:
            for name in files:
                ref_path = Path(current) / name
                relative = ref_path.relative_to(directory).as_posix()
                snapshot[f"{label}/{relative}"] = _path_stat_signature(ref_path)
    except OSError:
        snapshot[f"{label}/"] = ("error", 0, 0, 0)


def build_git_watch_snapshot(git_dir: Path | None) -> GitWatchSnapshot:
    """Stat every watched control file and ref under ``git_dir``."""
    snapshot: GitWatchSnapshot = {}
    if git_dir is None:
        return snapshot
    for label in _WATCHED_FILES:
        snapshot[label] = _path_stat_signature(git_dir / label)
    for label in _WATCHED_REF_DIRS:
        _ref_dir_entries(git_dir / label, label, snapshot)
    return snapshot


def _reason_for(label: str) -> RepositoryChange:
    reason = _WATCHED_FILES.get(label)
    if reason is not None:
        return reason
    for prefix, ref_reason in _WATCHED_REF_DIRS.items():
        if label.startswith(prefix + "/"):
            return ref_reason
    return RepositoryChange.UNKNOWN


def diff_git_watch_snapshots(previous: GitWatchSnapshot, current: GitWatchSnapshot) -> frozenset[RepositoryChange]:
    """Return the change reasons implied by entries that differ between snapshots."""
    reasons: set[RepositoryChange] = set()
    for label in previous.keys() | current.keys():
        if previous.get(label) != current.get(label):
            reasons.add(_reason_for(label))
    return frozenset(reasons)


__all__ = [
    "GitWatchSnapshot",
    "build_git_watch_snapshot",
    "diff_git_watch_snapshots",
    "resolve_git_paths",
]
