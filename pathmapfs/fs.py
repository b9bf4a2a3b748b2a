"""Path-mapping filesystem.

Provides PathMapperFS, the object a filesystem dispatcher holds: it maps
real files onto virtual paths and answers every per-request call
(stat, readdir, open, read, write, release, getxattr) from the
in-memory index and the backing files.
"""

from __future__ import annotations

import errno
import logging
import os
from collections.abc import Callable, Iterable, Mapping
from typing import IO, Any

from .base import FileTimes, Node, NodeStat
from .cleanup import cleanup
from .config import PathMapperConfig, configure
from .index import PathIndex
from .mapper import Chooser, Mapper
from .rawio import RawHandleManager
from .resolver import Resolver

logger = logging.getLogger(__name__)


class PathMapperFS:
    """Filesystem exposing real files under unrelated virtual paths.

    The tree is held in memory and rebuilt from scans; nothing is stored
    on disk apart from the backing files themselves. Directories are
    implicit: they exist while at least one mapped file lives below them.

    Example:
        >>> fs = PathMapperFS()
        >>> fs.map_file("/src/song.mp3", "Artist/Title.mp3", {"track": 1})
        Node(real_path='/src/song.mp3')
        >>> fs.isdir("Artist")
        True
        >>> fs.unmap("Artist/Title.mp3")
        '/src/song.mp3'
        >>> fs.metadata("Artist/Title.mp3", "track")
        1
    """

    def __init__(self, config: PathMapperConfig | None = None, **options: Any):
        """Initialize an empty path mapper.

        Args:
            config: Raw access and write-through switches. Mutually
                exclusive with keyword options.
            **options: Passed to configure() when no config is given
                (use_raw_file_access, allow_write).

        Raises:
            ValueError: If both config and options are given, or an
                option is unknown.
        """
        if config is not None and options:
            raise ValueError("Pass either config or keyword options, not both")
        self.config = config if config is not None else configure(**options)
        self._index = PathIndex()
        self._mapper = Mapper(self._index)
        self._resolver = Resolver(self._index)
        self._handles = RawHandleManager(self._resolver, self.config)

    @classmethod
    def create(
        cls,
        dirs: str | os.PathLike[str] | Iterable[str | os.PathLike[str]],
        chooser: Chooser,
        config: PathMapperConfig | None = None,
        **options: Any,
    ) -> PathMapperFS:
        """Create a path mapper over existing directories.

        Args:
            dirs: A real directory, or several.
            chooser: Called with each real file path; returns the virtual
                path, a (virtual_path, metadata) tuple, or None to skip.
            config: Optional configuration.
            **options: Configuration switches when config is omitted.

        Returns:
            The populated PathMapperFS.
        """
        fs = cls(config, **options)
        fs.map_directory(dirs, chooser)
        return fs

    @property
    def use_raw_file_access(self) -> bool:
        return self.config.use_raw_file_access

    @property
    def allow_write(self) -> bool:
        return self.config.allow_write

    # -------------------------------------------------------------------------
    # Mapping
    # -------------------------------------------------------------------------

    def map_file(
        self,
        real_path: str | os.PathLike[str],
        virtual_path: str,
        options: Mapping[str, Any] | None = None,
    ) -> Node:
        """Add (or replace) a mapped file. See Mapper.map_file."""
        return self._mapper.map_file(real_path, virtual_path, options)

    def map_directory(
        self,
        dirs: str | os.PathLike[str] | Iterable[str | os.PathLike[str]],
        chooser: Chooser,
    ) -> int:
        """Recursively map files under real directories.

        Args:
            dirs: A real directory, or several.
            chooser: See PathMapperFS.create.

        Returns:
            Number of files mapped.

        Raises:
            OSError: If a directory cannot be enumerated.
        """
        count = self._mapper.map_directory(dirs, chooser)
        logger.debug("Mapped %d files", count)
        return count

    def cleanup(self, retain: Callable[[Node], bool]) -> int:
        """Remove file nodes rejected by retain, then empty directories.

        Returns:
            Number of file nodes removed.
        """
        return cleanup(self._index, retain)

    def rescan(
        self,
        dirs: str | os.PathLike[str] | Iterable[str | os.PathLike[str]],
        chooser: Chooser,
    ) -> tuple[int, int]:
        """Remap real directories and evict files the scan did not touch.

        Files that were mapped before but are no longer found (or no
        longer chosen) are removed along with directories left empty.
        Files mapped directly with map_file since the previous scan are
        evicted too unless this scan maps them again.

        Returns:
            (files mapped, files evicted).
        """
        generation = self._index.next_generation()
        mapped = self.map_directory(dirs, chooser)
        # Newer generations count as touched: an overlapping rescan may have
        # restamped nodes this one mapped.
        evicted = self.cleanup(lambda node: node.generation >= generation)
        logger.debug("Rescan %d: %d mapped, %d evicted", generation, mapped, evicted)
        return mapped, evicted

    def node(self, path: str) -> Node | None:
        """Retrieve the in-memory node for a virtual path (None if absent)."""
        return self._resolver.node(path)

    def unmap(self, path: str) -> str | None:
        """Return the real path behind a virtual file (None if not a file)."""
        return self._resolver.unmap(path)

    def mapped(self) -> dict[str, str]:
        """Return every mapping as {virtual_path: real_path}."""
        with self._index.reading():
            return {path: node.real_path for path, node in self._index.walk()}

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def exists(self, path: str) -> bool:
        return self._resolver.exists(path)

    def isdir(self, path: str) -> bool:
        return self._resolver.isdir(path)

    def isfile(self, path: str) -> bool:
        return self._resolver.isfile(path)

    def list_children(self, path: str = "/") -> list[str]:
        return self._resolver.list_children(path)

    def metadata(self, path: str, key: str, default: Any = None) -> Any:
        return self._resolver.metadata(path, key, default)

    def extended_attributes(self, path: str) -> dict[str, bytes]:
        return self._resolver.extended_attributes(path)

    xattr = extended_attributes

    def size(self, path: str) -> int:
        return self._resolver.size(path)

    def times(self, path: str) -> FileTimes:
        return self._resolver.times(path)

    def stat(self, path: str) -> NodeStat:
        return self._resolver.stat(path)

    # -------------------------------------------------------------------------
    # Whole-file I/O
    # -------------------------------------------------------------------------

    def read_file(self, path: str) -> bytes:
        """Read the whole backing file (used when raw access is disabled).

        Raises:
            FileNotFoundError: If path is not a mapped file.
        """
        real_path = self._require_file(path)
        with open(real_path, "rb") as f:
            return f.read()

    def can_write(self, path: str) -> bool:
        """Check if writes to path may go through to its backing file.

        Only existing mapped files can be written, since nothing else has
        a real file behind it.
        """
        return self.config.allow_write and self.isfile(path)

    def write_file(self, path: str, content: bytes) -> None:
        """Replace the contents of the backing file.

        Raises:
            OSError: EROFS if write-through is disabled.
            FileNotFoundError: If path is not a mapped file.
            TypeError: If content is not bytes.
        """
        if not self.config.allow_write:
            raise OSError(errno.EROFS, "Read-only file system", path)
        if not isinstance(content, (bytes, bytearray)):
            raise TypeError(f"Expected bytes, got {type(content).__name__}")
        real_path = self._require_file(path)
        with open(real_path, "wb") as f:
            f.write(content)

    def _require_file(self, path: str) -> str:
        real_path = self.unmap(path)
        if real_path is None:
            raise FileNotFoundError(errno.ENOENT, "No such file", path)
        return real_path

    # -------------------------------------------------------------------------
    # Raw I/O
    # -------------------------------------------------------------------------

    def raw_open(
        self, path: str, mode: str, *, strict: bool = False, track: bool = True
    ) -> IO[bytes] | None:
        """Open a backing file for positioned I/O. See RawHandleManager.open."""
        return self._handles.open(path, mode, strict=strict, track=track)

    def raw_read(
        self, path: str, offset: int, length: int, handle: IO[bytes] | None = None
    ) -> bytes:
        return self._handles.read(path, offset, length, handle)

    def raw_write(
        self,
        path: str,
        offset: int,
        buffer: bytes,
        length: int,
        handle: IO[bytes] | None = None,
    ) -> int:
        return self._handles.write(path, offset, buffer, length, handle)

    def raw_close(self, path: str, handle: IO[bytes] | None = None) -> None:
        self._handles.close(path, handle)

    @property
    def handles(self) -> RawHandleManager:
        """The raw handle table."""
        return self._handles

    def close(self) -> None:
        """Close all tracked raw handles."""
        self._handles.close_all()

    def __enter__(self) -> PathMapperFS:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
