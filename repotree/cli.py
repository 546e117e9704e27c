"""Command-line front door for repotree.

Opens the repositories view over one or more git working trees, optionally
searches it for a node, and prints the tree as indented text. With
``--history FILE`` the view shows the commits that touched that file.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from .config import load_view_config
from .git_source import GitRepositorySource
from .render import TextHost, render_tree
from .view_model import ViewNode
from .views import RepositoriesView, ViewMode

logger = logging.getLogger(__name__)

DEFAULT_DEPTH = 4


def _positive_int(value: str) -> int:
    """argparse type for positive integer values."""
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid integer value: {value!r}") from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError("value must be >= 1")
    return parsed


def find_predicate(text: str):
    """Match a full node id, its last id segment, or that segment's value.

    Commit ids also match on a sha prefix of four or more characters.
    """

    def matches(node: ViewNode) -> bool:
        segment = node.id.rpartition("/")[2]
        kind, _, value = segment.partition(":")
        if text in (node.id, segment, value):
            return True
        return kind == "commit" and len(text) >= 4 and value.startswith(text)

    return matches


async def describe_path(view: RepositoriesView, node: ViewNode) -> str:
    """Labels from the top of the view down to ``node``, joined with ›."""
    labels: list[str] = []
    current: ViewNode | None = node
    while current is not None:
        labels.append((await view.get_display_record(current)).label)
        current = view.get_parent(current)
    return " › ".join(reversed(labels))


async def run(args: argparse.Namespace) -> int:
    config = load_view_config()
    if args.page_size is not None:
        config = config.with_overrides(page_size=args.page_size)

    history = args.history.resolve() if args.history is not None else None
    paths = args.paths or [history.parent if history is not None else Path.cwd()]
    source = GitRepositorySource(paths)
    host = TextHost()
    mode = ViewMode.HISTORY if history is not None else ViewMode.REPOSITORY
    view = RepositoriesView(source, config=config, host=host, mode=mode)
    if history is not None:
        view.notify_active_document_changed(history)
    status = 0
    try:
        found: ViewNode | None = None
        if args.find is not None:
            found = await view.find_node(
                find_predicate(args.find),
                allow_paging=args.all_pages,
                max_depth=max(args.depth, config.find_max_depth),
            )
            if found is not None:
                await view.reveal(found, select=True, expand=True)

        for line in await render_tree(view, depth=args.depth, host=host, expand_all=args.expand_all):
            sys.stdout.write(line + "\n")

        if args.find is not None:
            if found is None:
                sys.stdout.write(f"\nNo node matches {args.find!r}\n")
                status = 1
            else:
                sys.stdout.write(f"\nFound: {await describe_path(view, found)}\n")
    finally:
        view.dispose()
        await source.close()
    return status


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments and print the repositories view."""
    parser = argparse.ArgumentParser(description="Show git repositories, branches and commits as a tree.")
    parser.add_argument("paths", nargs="*", type=Path, help="Repository paths. Defaults to current directory.")
    parser.add_argument(
        "--depth",
        type=_positive_int,
        default=DEFAULT_DEPTH,
        help=f"Number of tree levels to print (default: {DEFAULT_DEPTH}).",
    )
    parser.add_argument("--page-size", type=_positive_int, default=None, help="Commits per page of branch history.")
    parser.add_argument("--find", metavar="ID_OR_TEXT", default=None, help="Search for a node and reveal it.")
    parser.add_argument("--all-pages", action="store_true", help="Let --find page through branch histories.")
    parser.add_argument("--expand-all", action="store_true", help="Print collapsed rows' children too.")
    parser.add_argument(
        "--history", metavar="FILE", type=Path, default=None, help="Show the commit history of FILE instead."
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug output to stderr.")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    checked = list(args.paths)
    if args.history is not None:
        checked.append(args.history)
    for path in checked:
        if not path.exists():
            raise SystemExit(f"Path not found: {path}")

    status = asyncio.run(run(args))
    if status:
        raise SystemExit(status)


if __name__ == "__main__":
    main()
