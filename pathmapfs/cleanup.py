"""Pruning of stale entries from the path index."""

from __future__ import annotations

import logging
from collections.abc import Callable

from .base import Node
from .index import PathIndex

logger = logging.getLogger(__name__)


def cleanup(index: PathIndex, retain: Callable[[Node], bool]) -> int:
    """Remove file nodes rejected by retain and any directories left empty.

    Each file node is offered to ``retain``; it is deleted when the
    predicate returns false. Directories are never offered to the
    predicate: they are pruned bottom-up once all their entries are gone.

    Useful after remapping a source directory: pass a predicate like
    "was this node touched by the latest scan" to evict files that have
    disappeared without rebuilding the tree.

    Args:
        index: Index to prune.
        retain: Called with each file node; return False to delete it.

    Returns:
        Number of file nodes removed.

    Raises:
        Exception: Whatever retain raises. Entries rejected before the
            error are still removed.
    """
    with index.writing():
        return _prune(index.root, retain)


def _prune(directory: Node, retain: Callable[[Node], bool]) -> int:
    removed = 0
    doomed: list[str] = []
    try:
        for name, child in directory.children.items():
            if child.is_file:
                if not retain(child):
                    doomed.append(name)
                    removed += 1
            else:
                try:
                    removed += _prune(child, retain)
                finally:
                    if not child.children:
                        doomed.append(name)
    finally:
        # Applied after iterating so the children dict never changes
        # mid-loop, and also when retain raises so nothing already
        # rejected is left behind.
        for name in doomed:
            child = directory.children.pop(name)
            if child.is_file:
                logger.debug("Evicted %s (%s)", name, child.real_path)
    return removed
