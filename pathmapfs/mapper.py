"""Building the index from explicit mappings and directory scans."""

from __future__ import annotations

import errno
import logging
import os
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from .base import Node
from .index import PathIndex

logger = logging.getLogger(__name__)

# A chooser maps a real file path to its virtual path, optionally with
# metadata for the node, or returns None to leave the file out.
ChooserResult = str | tuple[str, Mapping[str, Any]] | None
Chooser = Callable[[str], ChooserResult]


def _raise(err: OSError) -> None:
    raise err


class Mapper:
    """Adds (or replaces) mapped files in a PathIndex."""

    def __init__(self, index: PathIndex):
        self._index = index

    def map_file(
        self,
        real_path: str | os.PathLike[str],
        virtual_path: str,
        options: Mapping[str, Any] | None = None,
    ) -> Node:
        """Map a real file onto a virtual path.

        Missing directories along the virtual path are created. Mapping
        the same virtual path again replaces its real path and merges the
        new options over the existing metadata.

        Args:
            real_path: Location of the backing file.
            virtual_path: Path to expose it under.
            options: Metadata for the node. The reserved "xattr" key holds
                extended attributes as a mapping of name to bytes.

        Returns:
            The file node for virtual_path.

        Raises:
            IsADirectoryError: If virtual_path is the root or a directory
                that already has entries.
            NotADirectoryError: If a parent component is a mapped file.
        """
        # Copy before touching the tree so a bad options value cannot
        # leave a half-updated node behind.
        updates = dict(options) if options else {}
        real = os.fspath(real_path)

        with self._index.writing():
            node = self._index.insert(virtual_path)
            if node is self._index.root or node.children:
                raise IsADirectoryError(errno.EISDIR, "Is a directory", virtual_path)
            node.metadata.update(updates)
            node.real_path = real
            node.generation = self._index.generation

        logger.debug("Mapped %s -> %s", virtual_path, real)
        return node

    def map_directory(
        self,
        dirs: str | os.PathLike[str] | Iterable[str | os.PathLike[str]],
        chooser: Chooser,
    ) -> int:
        """Recursively map every file under the given real directories.

        The chooser is called once per real file and returns the virtual
        path to map it to, a (virtual_path, options) tuple, or None to
        skip the file. A chooser that raises only skips that file.

        Args:
            dirs: A real directory (or single file) to scan, or several.
            chooser: Callable deciding where each file goes.

        Returns:
            Number of files mapped.

        Raises:
            OSError: If a directory cannot be enumerated.
        """
        if isinstance(dirs, (str, os.PathLike)):
            dirs = [dirs]

        mapped = 0
        for real_path in self._enumerate(dirs):
            try:
                choice = chooser(real_path)
                if choice is None:
                    continue
                if isinstance(choice, tuple):
                    virtual_path, options = choice
                else:
                    virtual_path, options = choice, None
                self.map_file(real_path, virtual_path, options)
            except Exception:
                logger.warning("Skipping %s", real_path, exc_info=True)
            else:
                mapped += 1
        return mapped

    def _enumerate(self, dirs: Iterable[str | os.PathLike[str]]) -> Iterable[str]:
        """Yield every regular file under dirs exactly once, in sorted order."""
        seen: set[str] = set()
        for top in dirs:
            top = os.fspath(top)
            if os.path.isfile(top):
                candidates: Iterable[str] = [top]
            else:
                candidates = self._walk(top)
            for path in candidates:
                if path not in seen:
                    seen.add(path)
                    yield path

    def _walk(self, top: str) -> Iterable[str]:
        for dirpath, dirnames, filenames in os.walk(top, onerror=_raise):
            dirnames.sort()
            for name in sorted(filenames):
                path = os.path.join(dirpath, name)
                if os.path.isfile(path):
                    yield path
