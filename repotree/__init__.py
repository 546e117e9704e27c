"""Public package surface for repotree.

Exports ``main`` for programmatic CLI invocation and the types a host needs
to embed the repositories view. Most implementation lives in submodules.
"""

from __future__ import annotations

from .config import ViewConfig, load_view_config
from .view_tree import ViewTree
from .views import RepositoriesView


def main(*args, **kwargs):
    """Lazily import CLI entrypoint to keep package imports lightweight."""
    from .cli import main as _main

    return _main(*args, **kwargs)


__all__ = ["RepositoriesView", "ViewConfig", "ViewTree", "load_view_config", "main"]
