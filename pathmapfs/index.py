"""In-memory tree of virtual paths."""

from __future__ import annotations

import errno
import os
from typing import ContextManager, Iterator

from .base import Node
from .locks import ReadWriteLock


class PathIndex:
    """Owns the root node and walks virtual paths through the tree.

    ``insert`` and ``lookup`` are the raw tree primitives and expect the
    caller to hold the matching side of the lock (``writing()`` for
    insert, ``reading()`` or ``writing()`` for lookup). The mapper,
    resolver and cleanup all take the lock themselves.

    Example:
        >>> index = PathIndex()
        >>> with index.writing():
        ...     node = index.insert("/Artist/Title.mp3")
        >>> with index.reading():
        ...     index.lookup("Artist//Title.mp3") is node
        True
    """

    SEPARATOR = "/"

    def __init__(self) -> None:
        self.root = Node()
        self.generation = 0
        self._lock = ReadWriteLock()

    # -------------------------------------------------------------------------
    # Locking
    # -------------------------------------------------------------------------

    def reading(self) -> ContextManager[None]:
        """Context manager holding the tree lock shared."""
        return self._lock.read_locked()

    def writing(self) -> ContextManager[None]:
        """Context manager holding the tree lock exclusively."""
        return self._lock.write_locked()

    def next_generation(self) -> int:
        """Start a new scan generation and return its number."""
        with self.writing():
            self.generation += 1
            return self.generation

    # -------------------------------------------------------------------------
    # Tree primitives
    # -------------------------------------------------------------------------

    @classmethod
    def decompose(cls, path: str | os.PathLike[str] | None) -> list[str]:
        """Split a virtual path into its non-empty components.

        Leading, trailing and doubled separators are dropped, so "a/b",
        "/a/b/" and "a//b" all decompose to ["a", "b"].
        """
        if path is None:
            return []
        return [part for part in os.fspath(path).split(cls.SEPARATOR) if part]

    def insert(self, path: str) -> Node:
        """Return the node at path, creating missing directory nodes.

        Raises:
            NotADirectoryError: If an intermediate component is a file node.
        """
        node = self.root
        walked: list[str] = []
        for name in self.decompose(path):
            if node.is_file:
                raise NotADirectoryError(
                    errno.ENOTDIR, "Not a directory", "/" + "/".join(walked)
                )
            child = node.children.get(name)
            if child is None:
                child = Node(parent=node)
                node.children[name] = child
            node = child
            walked.append(name)
        return node

    def lookup(self, path: str) -> Node | None:
        """Return the node at path, or None if any component is missing."""
        node = self.root
        for name in self.decompose(path):
            child = node.children.get(name)
            if child is None:
                return None
            node = child
        return node

    def walk(self) -> Iterator[tuple[str, Node]]:
        """Yield (virtual_path, node) for every file node, depth first.

        Caller must hold the lock.
        """
        stack: list[tuple[str, Node]] = [("", self.root)]
        while stack:
            prefix, node = stack.pop()
            if node.is_file:
                yield prefix or "/", node
            for name in reversed(list(node.children)):
                stack.append((f"{prefix}/{name}", node.children[name]))
