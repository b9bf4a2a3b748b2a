"""Tree node, stat result and dispatcher interface.

Defines the in-memory node type shared by the index, mapper, resolver and
cleanup, plus the structures handed back to a filesystem dispatcher.
"""

from __future__ import annotations

import os
import weakref
from dataclasses import dataclass
from typing import Any, NamedTuple, Protocol, runtime_checkable

# Reserved metadata key holding extended attributes (name -> bytes).
XATTR_KEY = "xattr"


class Node:
    """One path component in the virtual tree.

    A node is a file when ``real_path`` is set, otherwise a directory.
    The parent link is a weak reference: ownership runs strictly from
    parent to child, so dropping a subtree releases it immediately.

    Attributes:
        children: Child nodes keyed by component name.
        real_path: Location of the backing file, or None for a directory.
        metadata: Caller-supplied data attached when mapping a file.
        generation: Scan generation that last mapped this node.
    """

    def __init__(self, parent: Node | None = None) -> None:
        self.children: dict[str, Node] = {}
        self.real_path: str | None = None
        self.metadata: dict[str, Any] = {}
        self.generation = 0
        self._parent = weakref.ref(parent) if parent is not None else None

    @property
    def parent(self) -> Node | None:
        """Enclosing node, or None for the root (or a detached node)."""
        if self._parent is None:
            return None
        return self._parent()

    @property
    def is_file(self) -> bool:
        return self.real_path is not None

    @property
    def is_dir(self) -> bool:
        return self.real_path is None

    def __repr__(self) -> str:
        if self.is_file:
            return f"Node(real_path={self.real_path!r})"
        return f"Node(children={list(self.children)!r})"


class FileTimes(NamedTuple):
    """Access, modification and change times in seconds since the epoch."""

    atime: float
    mtime: float
    ctime: float


@dataclass
class NodeStat:
    """Stat information for a mapped path.

    Attributes:
        size: Backing file size in bytes (0 for directories).
        atime: Last access time of the backing file (0.0 for directories).
        mtime: Last modification time of the backing file.
        ctime: Last status change time of the backing file.
        is_dir: True for directory nodes.
    """

    size: int
    atime: float
    mtime: float
    ctime: float
    is_dir: bool = False

    # os.stat_result-compatible properties so a dispatcher can hand this
    # straight to its getattr reply.

    @property
    def st_size(self) -> int:
        return self.size

    @property
    def st_mode(self) -> int:
        return 0o040755 if self.is_dir else 0o100644

    @property
    def st_nlink(self) -> int:
        return 2 if self.is_dir else 1

    @property
    def st_uid(self) -> int:
        return os.getuid() if hasattr(os, "getuid") else 0

    @property
    def st_gid(self) -> int:
        return os.getgid() if hasattr(os, "getgid") else 0

    @property
    def st_atime(self) -> float:
        return self.atime

    @property
    def st_mtime(self) -> float:
        return self.mtime

    @property
    def st_ctime(self) -> float:
        return self.ctime


@runtime_checkable
class FileSystem(Protocol):
    """Operations a filesystem dispatcher routes to the path mapper.

    Metadata and listing calls resolve against the in-memory index; data
    calls go either through whole-file reads/writes or, when raw access
    is enabled, through the raw handle methods.
    """

    def exists(self, path: str) -> bool:
        """Check if path is mapped."""
        ...

    def isdir(self, path: str) -> bool:
        """Check if path is a virtual directory."""
        ...

    def isfile(self, path: str) -> bool:
        """Check if path is mapped to an existing real file."""
        ...

    def list_children(self, path: str) -> list[str]:
        """List entry names of a virtual directory."""
        ...

    def read_file(self, path: str) -> bytes:
        """Read a whole backing file."""
        ...

    def can_write(self, path: str) -> bool:
        """Check if writes may go through to the backing file."""
        ...

    def write_file(self, path: str, content: bytes) -> None:
        """Replace the contents of a backing file."""
        ...

    def size(self, path: str) -> int:
        """Get backing file size in bytes."""
        ...

    def times(self, path: str) -> FileTimes:
        """Get backing file timestamps."""
        ...

    def extended_attributes(self, path: str) -> dict[str, bytes]:
        """Get extended attributes attached to a mapped path."""
        ...

    def raw_open(self, path: str, mode: str, **kwargs: Any) -> Any:
        """Open a backing file for positioned I/O."""
        ...

    def raw_read(self, path: str, offset: int, length: int, handle: Any = None) -> bytes:
        """Read from an open backing file."""
        ...

    def raw_write(
        self, path: str, offset: int, buffer: bytes, length: int, handle: Any = None
    ) -> int:
        """Write to an open backing file."""
        ...

    def raw_close(self, path: str, handle: Any = None) -> None:
        """Close an open backing file."""
        ...
