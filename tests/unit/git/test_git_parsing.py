"""Parsers for the git output formats ``GitRepositorySource`` requests."""

from __future__ import annotations

import unittest
from datetime import timedelta

from repotree.git_source import parse_branch_refs, parse_log, parse_name_status, parse_status_v2
from repotree.source import CommitFile, StatusFile


class StatusParsingTests(unittest.TestCase):
    def test_branch_headers_and_entries(self) -> None:
        output = "\0".join(
            [
                "# branch.oid 1234567890abcdef",
                "# branch.head main",
                "# branch.upstream origin/main",
                "# branch.ab +2 -1",
                "1 .M N... 100644 100644 100644 aaa bbb src/app.py",
                "1 A. N... 000000 100644 100644 000 ccc docs/new file.md",
                "2 R. N... 100644 100644 100644 ddd eee R100 lib/new.py",
                "lib/old.py",
                "u UU N... 100644 100644 100644 100644 f1 f2 f3 conflicted.txt",
                "? notes.txt",
                "",
            ]
        )

        status = parse_status_v2(output)

        self.assertEqual(status.branch, "main")
        self.assertEqual(status.upstream, "origin/main")
        self.assertEqual((status.ahead, status.behind), (2, 1))
        self.assertEqual(
            status.files,
            (
                StatusFile("src/app.py", "M", staged=False),
                StatusFile("docs/new file.md", "A", staged=True),
                StatusFile("lib/new.py", "R", original_path="lib/old.py", staged=True),
                StatusFile("conflicted.txt", "U"),
                StatusFile("notes.txt", "?"),
            ),
        )

    def test_detached_head_uses_short_sha(self) -> None:
        output = "# branch.oid 1234567890abcdef\0# branch.head (detached)\0"

        status = parse_status_v2(output)

        self.assertEqual(status.branch, "1234567")
        self.assertIsNone(status.upstream)

    def test_initial_commit_has_branch_without_sha(self) -> None:
        status = parse_status_v2("# branch.oid (initial)\0# branch.head main\0")

        self.assertEqual(status.branch, "main")
        self.assertEqual(status.files, ())


class BranchParsingTests(unittest.TestCase):
    def test_for_each_ref_fields(self) -> None:
        output = (
            "main\0*\0origin/main\0ahead 3, behind 1\0aaa111\n"
            "old\0 \0origin/old\0gone\0bbb222\n"
            "local\0 \0\0\0ccc333\n"
        )

        main, old, local = parse_branch_refs(output)

        self.assertTrue(main.current)
        self.assertEqual((main.ahead, main.behind), (3, 1))
        self.assertEqual(main.upstream, "origin/main")
        self.assertTrue(old.upstream_gone)
        self.assertFalse(old.current)
        self.assertIsNone(local.upstream)
        self.assertEqual(local.sha, "ccc333")


class LogParsingTests(unittest.TestCase):
    def test_records_and_dates(self) -> None:
        output = (
            "a" * 40 + "\x1fFix parser\x1fAda\x1f2024-05-01T10:00:00+02:00\x1e\n"
            + "b" * 40 + "\x1fInitial\x1fGrace\x1fnot-a-date\x1e\n"
        )

        first, second = parse_log(output)

        self.assertEqual(first.summary, "Fix parser")
        self.assertEqual(first.author, "Ada")
        self.assertEqual(first.date.utcoffset(), timedelta(hours=2))
        self.assertEqual(first.short_sha, "aaaaaaa")
        self.assertIsNone(second.date)

    def test_empty_output(self) -> None:
        self.assertEqual(parse_log(""), [])


class NameStatusParsingTests(unittest.TestCase):
    def test_renames_carry_both_paths(self) -> None:
        output = "M\0src/a.py\0R087\0old/name.py\0new/name.py\0D\0gone.txt\0"

        self.assertEqual(
            parse_name_status(output),
            [
                CommitFile("src/a.py", "M"),
                CommitFile("new/name.py", "R", original_path="old/name.py"),
                CommitFile("gone.txt", "D"),
            ],
        )


if __name__ == "__main__":
    unittest.main()
