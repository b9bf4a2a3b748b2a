"""Read-only queries against the path index."""

from __future__ import annotations

import errno
import os
from typing import Any

from .base import XATTR_KEY, FileTimes, Node, NodeStat
from .index import PathIndex


class Resolver:
    """Answers existence, listing and metadata questions for virtual paths.

    Every query looks the path up under the shared side of the tree lock
    and copies what it needs before releasing it; stat calls against the
    real filesystem happen outside the lock. Errors from the real
    filesystem (e.g. a backing file deleted since the last scan)
    propagate unchanged.
    """

    def __init__(self, index: PathIndex):
        self._index = index

    def node(self, path: str) -> Node | None:
        """Return the node at path, or None if it is not mapped."""
        with self._index.reading():
            return self._index.lookup(path)

    def _require(self, path: str) -> Node:
        node = self.node(path)
        if node is None:
            raise FileNotFoundError(errno.ENOENT, "No such file or directory", path)
        return node

    def exists(self, path: str) -> bool:
        """Check if path is in the index (file or directory)."""
        return self.node(path) is not None

    def isdir(self, path: str) -> bool:
        """Check if path is a virtual directory."""
        node = self.node(path)
        return node is not None and node.is_dir

    def unmap(self, path: str) -> str | None:
        """Return the real path behind a mapped file.

        Returns:
            The backing file location, or None if path is missing or is a
            directory.
        """
        with self._index.reading():
            node = self._index.lookup(path)
            return node.real_path if node is not None else None

    def isfile(self, path: str) -> bool:
        """Check if path is mapped to a real file that currently exists.

        Stale mappings whose backing file has been deleted are not files.
        """
        real_path = self.unmap(path)
        return real_path is not None and os.path.isfile(real_path)

    def list_children(self, path: str) -> list[str]:
        """List entry names of a virtual directory in insertion order.

        Raises:
            FileNotFoundError: If path is not mapped.
            NotADirectoryError: If path is a file.
        """
        with self._index.reading():
            node = self._index.lookup(path)
            if node is None:
                raise FileNotFoundError(errno.ENOENT, "No such directory", path)
            if node.is_file:
                raise NotADirectoryError(errno.ENOTDIR, "Not a directory", path)
            return list(node.children)

    def metadata(self, path: str, key: str, default: Any = None) -> Any:
        """Return a metadata value stored on a node, or default if unset.

        Raises:
            FileNotFoundError: If path is not mapped.
        """
        with self._index.reading():
            node = self._index.lookup(path)
            if node is None:
                raise FileNotFoundError(errno.ENOENT, "No such file or directory", path)
            return node.metadata.get(key, default)

    def extended_attributes(self, path: str) -> dict[str, bytes]:
        """Return a copy of the extended attributes of a node ({} if unset).

        Raises:
            FileNotFoundError: If path is not mapped.
        """
        xattr = self.metadata(path, XATTR_KEY)
        return dict(xattr) if xattr else {}

    def size(self, path: str) -> int:
        """Get backing file size in bytes; directories report 0.

        Raises:
            FileNotFoundError: If path is not mapped or the backing file
                is gone.
        """
        real_path = self._require(path).real_path
        if real_path is None:
            return 0
        return os.path.getsize(real_path)

    def times(self, path: str) -> FileTimes:
        """Get (atime, mtime, ctime) of the backing file.

        Directories have no backing inode and report the epoch for all
        three.

        Raises:
            FileNotFoundError: If path is not mapped or the backing file
                is gone.
        """
        real_path = self._require(path).real_path
        if real_path is None:
            return FileTimes(0.0, 0.0, 0.0)
        st = os.stat(real_path)
        return FileTimes(st.st_atime, st.st_mtime, st.st_ctime)

    def stat(self, path: str) -> NodeStat:
        """Get size, timestamps and kind of a mapped path in one call.

        Raises:
            FileNotFoundError: If path is not mapped or the backing file
                is gone.
        """
        real_path = self._require(path).real_path
        if real_path is None:
            return NodeStat(size=0, atime=0.0, mtime=0.0, ctime=0.0, is_dir=True)
        st = os.stat(real_path)
        return NodeStat(
            size=st.st_size,
            atime=st.st_atime,
            mtime=st.st_mtime,
            ctime=st.st_ctime,
        )
