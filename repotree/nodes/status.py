"""Working-tree status of one repository."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..source import Repository, StatusFile, StatusSummary
from ..view_model import CollapsibleState, CommandDescriptor, DisplayRecord, RefreshReason, ViewNode
from .formatting import split_path, status_icon, status_label

if TYPE_CHECKING:
    from ..views import RepositoriesView

OPEN_WORKING_FILE_COMMAND = "repotree.openWorkingFile"


class StatusNode(ViewNode):
    """Upstream summary row whose children are the changed files."""

    view: RepositoriesView

    def __init__(self, view: RepositoriesView, parent: ViewNode, repo: Repository) -> None:
        super().__init__(f"{parent.id}/status", view, parent)
        self.repo = repo
        self._status: StatusSummary | None = None
        self._status_loaded = False

    async def _get_status(self) -> StatusSummary | None:
        if not self._status_loaded:
            self._status = await self.view.source.get_status(self.repo)
            self._status_loaded = True
        return self._status

    async def _on_refresh(self, reset: bool, reason: RefreshReason | None) -> bool:
        self._status = None
        self._status_loaded = False
        return False

    async def _load_children(self) -> list[ViewNode]:
        status = await self._get_status()
        if status is None:
            return []
        return [StatusFileNode(self.view, self, self.repo, file) for file in status.files]

    async def _build_display_record(self) -> DisplayRecord:
        status = await self._get_status()
        if status is None:
            return DisplayRecord(label="No repository status", context_value="status")

        branch = status.branch or "HEAD"
        icon = "status-synced"
        if status.upstream:
            if not status.ahead and not status.behind:
                label = f"{branch} is up to date with {status.upstream}"
            else:
                label = f"{branch} is not up to date with {status.upstream}"
                if status.ahead and status.behind:
                    icon = "status-diverged"
                elif status.ahead:
                    icon = "status-ahead"
                else:
                    icon = "status-behind"
        else:
            label = f"{branch} is up to date"

        file_count = len(status.files)
        description = None
        if file_count:
            description = "1 file changed" if file_count == 1 else f"{file_count} files changed"
        return DisplayRecord(
            label=label,
            collapsible_state=CollapsibleState.COLLAPSED if file_count else CollapsibleState.NONE,
            description=description,
            icon=icon,
            context_value="status",
        )


class StatusFileNode(ViewNode):
    def __init__(self, view: RepositoriesView, parent: ViewNode, repo: Repository, file: StatusFile) -> None:
        super().__init__(f"{parent.id}/file:{file.path}", view, parent)
        self.repo = repo
        self.file = file

    async def _build_display_record(self) -> DisplayRecord:
        name, directory = split_path(self.file.path)
        state = "staged" if self.file.staged else "unstaged"
        return DisplayRecord(
            label=name,
            description=directory or None,
            tooltip=f"{self.file.path}\n{status_label(self.file.status)} ({state})",
            icon=status_icon(self.file.status),
            context_value="status-file",
            command=CommandDescriptor(
                OPEN_WORKING_FILE_COMMAND,
                (str(self.repo.path), self.file.path),
                title="Open File",
            ),
        )


__all__ = ["OPEN_WORKING_FILE_COMMAND", "StatusFileNode", "StatusNode"]
