"""Node kinds of the repositories view.

repositories → repository → (status → changed files, branches → branch →
(comparison →) commits → commit files). History mode roots at the active
document: history → file history → commits.
"""

from __future__ import annotations

from .branches import BranchComparisonNode, BranchesNode, BranchNode, ComparisonCommitsNode
from .commits import OPEN_CHANGES_COMMAND, SHOW_COMMIT_COMMAND, CommitFileNode, CommitNode, CommitWindowNode
from .history import NO_ACTIVE_FILE_MESSAGE, FileHistoryNode, HistoryNode
from .repositories import RepositoriesNode
from .repository import RepositoryNode
from .status import OPEN_WORKING_FILE_COMMAND, StatusFileNode, StatusNode

__all__ = [
    "BranchComparisonNode",
    "BranchNode",
    "BranchesNode",
    "CommitFileNode",
    "CommitNode",
    "CommitWindowNode",
    "ComparisonCommitsNode",
    "FileHistoryNode",
    "HistoryNode",
    "NO_ACTIVE_FILE_MESSAGE",
    "OPEN_CHANGES_COMMAND",
    "OPEN_WORKING_FILE_COMMAND",
    "RepositoriesNode",
    "RepositoryNode",
    "SHOW_COMMIT_COMMAND",
    "StatusFileNode",
    "StatusNode",
]
