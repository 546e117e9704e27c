"""Repository-set bookkeeping of ``GitRepositorySource`` without a git binary."""

from __future__ import annotations

import unittest
from pathlib import Path
from unittest import mock

from repotree.git_source import GitRepositorySource


def _resolve(path: Path, timeout_seconds: float = 0.5) -> tuple[Path, Path]:
    return Path(path), Path(path) / ".git"


class RepositorySetTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        patches = [
            mock.patch("repotree.git_source.resolve_git_paths", side_effect=_resolve),
            mock.patch("repotree.git_source.build_git_watch_snapshot", return_value={}),
        ]
        for patcher in patches:
            patcher.start()
            self.addCleanup(patcher.stop)

    async def test_departed_repository_state_is_dropped(self) -> None:
        source = GitRepositorySource(["/work/a", "/work/b"])
        repo_a, repo_b = await source.get_repositories()
        events: list[object] = []
        source.on_did_change_repository(repo_a, events.append)
        source.on_did_change_repository(repo_b, events.append)
        set_changes: list[object] = []
        source.on_did_change_repositories(set_changes.append)

        source.set_paths(["/work/a"])
        repositories = await source.refresh_repositories()

        self.assertEqual([repo.normalized_path for repo in repositories], ["/work/a"])
        self.assertEqual(set_changes, [None])
        self.assertEqual(set(source._snapshots), {"/work/a"})
        self.assertEqual(set(source._git_dirs), {"/work/a"})
        self.assertEqual(set(source._repository_changed), {"/work/a"})
        self.assertEqual(len(source._repository_changed["/work/a"]), 1)
        await source.close()

    async def test_same_path_twice_is_one_repository(self) -> None:
        source = GitRepositorySource(["/work/a", "/work/a"])

        repositories = await source.get_repositories()

        self.assertEqual(len(repositories), 1)
        await source.close()


if __name__ == "__main__":
    unittest.main()
