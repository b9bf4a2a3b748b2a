"""pathmapfs: Expose real files under synthetic paths via an in-memory index."""

from .base import XATTR_KEY, FileSystem, FileTimes, Node, NodeStat
from .cleanup import cleanup
from .config import PathMapperConfig, configure
from .fs import PathMapperFS
from .index import PathIndex
from .locks import ReadWriteLock
from .mapper import Mapper
from .modes import open_mode, wants_write
from .rawio import RawHandle, RawHandleManager
from .resolver import Resolver

__all__ = [
    "cleanup",
    "configure",
    "FileSystem",
    "FileTimes",
    "Mapper",
    "Node",
    "NodeStat",
    "open_mode",
    "PathIndex",
    "PathMapperConfig",
    "PathMapperFS",
    "RawHandle",
    "RawHandleManager",
    "ReadWriteLock",
    "Resolver",
    "wants_write",
    "XATTR_KEY",
]
