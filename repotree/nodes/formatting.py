"""Label helpers shared by repository node kinds."""

from __future__ import annotations

from datetime import datetime, timezone

STATUS_LABELS = {
    "M": "Modified",
    "A": "Added",
    "D": "Deleted",
    "R": "Renamed",
    "C": "Copied",
    "T": "Type changed",
    "U": "Conflict",
    "?": "Untracked",
}


def status_label(status: str) -> str:
    return STATUS_LABELS.get(status, "Changed")


def status_icon(status: str) -> str:
    return f"status-{STATUS_LABELS.get(status, 'Changed').lower().replace(' ', '-')}"


def split_path(path: str) -> tuple[str, str]:
    """Return ``(file_name, directory)`` for a repository-relative path."""
    head, _, tail = path.rstrip("/").rpartition("/")
    return tail, head


def format_relative_time(then: datetime, now: datetime | None = None) -> str:
    """Human-readable age of ``then`` relative to ``now``."""
    if now is None:
        now = datetime.now(timezone.utc)
    if then.tzinfo is None:
        then = then.replace(tzinfo=timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    seconds = int((now - then).total_seconds())
    if seconds < 45:
        return "just now"
    minutes = round(seconds / 60)
    if minutes < 60:
        return "1 minute ago" if minutes == 1 else f"{minutes} minutes ago"
    hours = round(seconds / 3600)
    if hours < 24:
        return "1 hour ago" if hours == 1 else f"{hours} hours ago"
    days = round(seconds / 86400)
    if days < 30:
        return "yesterday" if days == 1 else f"{days} days ago"
    return then.strftime("%Y-%m-%d")


__all__ = [
    "STATUS_LABELS",
    "format_relative_time",
    "split_path",
    "status_icon",
    "status_label",
]
