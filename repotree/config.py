"""JSON view settings loaded from the user config directory.

Every field is validated on load; malformed or missing config falls back to
defaults so a bad file never breaks the view.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, replace
from pathlib import Path

from platformdirs import user_config_dir

APP_NAME = "repotree"
CONFIG_FILENAME = "config.json"
DEFAULT_CONFIG_PATH = Path(user_config_dir(APP_NAME, appauthor=False)) / CONFIG_FILENAME
CONFIG_PATH = DEFAULT_CONFIG_PATH

DEFAULT_PAGE_SIZE = 200
DEFAULT_DEBOUNCE_MS = 250
DEFAULT_ACTIVE_EDITOR_DEBOUNCE_MS = 500
DEFAULT_VISIBILITY_DEBOUNCE_MS = 250
DEFAULT_FIND_MAX_DEPTH = 2


@dataclass(frozen=True)
class ViewConfig:
    """Settings consumed by the repositories view and its nodes."""

    page_size: int = DEFAULT_PAGE_SIZE
    debounce_ms: int = DEFAULT_DEBOUNCE_MS
    active_editor_debounce_ms: int = DEFAULT_ACTIVE_EDITOR_DEBOUNCE_MS
    visibility_debounce_ms: int = DEFAULT_VISIBILITY_DEBOUNCE_MS
    auto_refresh: bool = True
    auto_reveal: bool = True
    splat_single_repo: bool = True
    show_branch_comparison: bool = False
    find_max_depth: int = DEFAULT_FIND_MAX_DEPTH

    @property
    def debounce_seconds(self) -> float:
        return self.debounce_ms / 1000.0

    @property
    def active_editor_debounce_seconds(self) -> float:
        return self.active_editor_debounce_ms / 1000.0

    @property
    def visibility_debounce_seconds(self) -> float:
        return self.visibility_debounce_ms / 1000.0

    def with_overrides(self, **changes: object) -> ViewConfig:
        return replace(self, **changes)


def load_config() -> dict[str, object]:
    """Load the persisted JSON config object.

    Returns an empty dict when the file is missing, unreadable, malformed, or
    does not decode to a top-level JSON object.
    """
    try:
        data = json.loads(CONFIG_PATH.read_text(encoding="utf-8"))
    except Exception:
        return {}
    return data if isinstance(data, dict) else {}


def _coerce_positive_int(value: object, default: int) -> int:
    """Booleans and non-integers are invalid; so are values below 1."""
    if isinstance(value, bool) or not isinstance(value, int):
        return default
    return value if value > 0 else default


def _coerce_nonnegative_int(value: object, default: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        return default
    return value if value >= 0 else default


def _coerce_bool(value: object, default: bool) -> bool:
    return value if isinstance(value, bool) else default


def view_config_from_mapping(data: dict[str, object]) -> ViewConfig:
    """Build a ``ViewConfig`` from raw JSON values.

    Settings may live at the top level or under a ``"view"`` object; the
    nested form wins when both are present.
    """
    merged: dict[str, object] = dict(data)
    nested = data.get("view")
    if isinstance(nested, dict):
        merged.update(nested)

    defaults = ViewConfig()
    return ViewConfig(
        page_size=_coerce_positive_int(merged.get("page_size"), defaults.page_size),
        debounce_ms=_coerce_nonnegative_int(merged.get("debounce_ms"), defaults.debounce_ms),
        active_editor_debounce_ms=_coerce_nonnegative_int(
            merged.get("active_editor_debounce_ms"),
            defaults.active_editor_debounce_ms,
        ),
        visibility_debounce_ms=_coerce_nonnegative_int(
            merged.get("visibility_debounce_ms"),
            defaults.visibility_debounce_ms,
        ),
        auto_refresh=_coerce_bool(merged.get("auto_refresh"), defaults.auto_refresh),
        auto_reveal=_coerce_bool(merged.get("auto_reveal"), defaults.auto_reveal),
        splat_single_repo=_coerce_bool(merged.get("splat_single_repo"), defaults.splat_single_repo),
        show_branch_comparison=_coerce_bool(
            merged.get("show_branch_comparison"),
            defaults.show_branch_comparison,
        ),
        find_max_depth=_coerce_nonnegative_int(merged.get("find_max_depth"), defaults.find_max_depth),
    )


def load_view_config() -> ViewConfig:
    """Load validated view settings from ``CONFIG_PATH``."""
    return view_config_from_mapping(load_config())


__all__ = [
    "APP_NAME",
    "CONFIG_PATH",
    "DEFAULT_CONFIG_PATH",
    "ViewConfig",
    "load_config",
    "load_view_config",
    "view_config_from_mapping",
]
