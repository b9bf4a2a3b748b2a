"""Table of open backing-file handles for positioned raw I/O.

Maps virtual paths to unbuffered binary file objects on the real backing
files, so a dispatcher can serve read/write requests at arbitrary
offsets without reopening the file on every call.
"""

from __future__ import annotations

import errno
import io
import logging
import threading
from dataclasses import dataclass, field
from typing import IO

from .config import PathMapperConfig
from .modes import open_mode, wants_write
from .resolver import Resolver

logger = logging.getLogger(__name__)


@dataclass
class RawHandle:
    """State for a single tracked handle."""

    path: str
    real_path: str
    mode: str
    file: IO[bytes]
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)


class RawHandleManager:
    """Thread-safe path -> handle table.

    The table has its own lock, separate from the tree lock, so frequent
    open/read/write/close traffic never contends with scans. Each tracked
    handle also carries a lock that makes a seek and the following
    read or write a single step.

    Handles opened with ``track=False`` are owned by the caller: they are
    passed back explicitly to read/write/close and never enter the table.
    """

    def __init__(self, resolver: Resolver, config: PathMapperConfig) -> None:
        self._resolver = resolver
        self._config = config
        self._lock = threading.Lock()
        self._table: dict[str, RawHandle] = {}

    def open(
        self, path: str, mode: str, *, strict: bool = False, track: bool = True
    ) -> IO[bytes] | None:
        """Open the file backing path for raw access.

        Args:
            path: Virtual path of a mapped file.
            mode: Access token ("r", "ra", "rw", "rwa", "w", "wa").
            strict: Raise FileNotFoundError for an unmapped path instead
                of returning None.
            track: Store the handle in the table. When False the caller
                owns the returned handle.

        Returns:
            The open binary file, or None when raw access is not supported
            for this request (raw access disabled, write without
            write-through, or an unmapped path when not strict).

        Raises:
            FileNotFoundError: If path is unmapped and strict is set.
            BlockingIOError: If a tracked handle for path is already open.
            ValueError: If mode is not a known access token.
            OSError: If the backing file cannot be opened.
        """
        if not self._config.use_raw_file_access:
            return None
        if wants_write(mode) and not self._config.allow_write:
            return None

        real_path = self._resolver.unmap(path)
        if real_path is None:
            if strict:
                raise FileNotFoundError(errno.ENOENT, "No such file", path)
            return None

        real_mode = open_mode(mode)

        if not track:
            return io.open(real_path, real_mode, buffering=0)

        with self._lock:
            if path in self._table:
                raise BlockingIOError(errno.EBUSY, "Raw handle already open", path)

        # Opened outside the table lock so a slow open does not stall I/O
        # on other paths.
        file = io.open(real_path, real_mode, buffering=0)
        with self._lock:
            raced = path in self._table
            if not raced:
                self._table[path] = RawHandle(
                    path=path, real_path=real_path, mode=mode, file=file
                )
        if raced:
            file.close()
            raise BlockingIOError(errno.EBUSY, "Raw handle already open", path)

        logger.debug("Opened raw handle %s -> %s (%s)", path, real_path, real_mode)
        return file

    def get(self, path: str) -> RawHandle | None:
        """Look up a tracked handle. Returns None if not in the table."""
        with self._lock:
            return self._table.get(path)

    def __contains__(self, path: object) -> bool:
        with self._lock:
            return path in self._table

    def __len__(self) -> int:
        with self._lock:
            return len(self._table)

    def read(
        self, path: str, offset: int, length: int, handle: IO[bytes] | None = None
    ) -> bytes:
        """Read up to length bytes at offset.

        Args:
            path: Virtual path the handle was opened for.
            offset: Byte offset in the backing file.
            length: Maximum number of bytes to read.
            handle: Caller-owned handle to use instead of the table.

        Raises:
            OSError: EBADF if no handle is available.
        """
        if handle is not None:
            handle.seek(offset)
            return handle.read(length) or b""

        entry = self._entry(path)
        with entry.lock:
            self._check_open(entry)
            entry.file.seek(offset)
            return entry.file.read(length) or b""

    def write(
        self,
        path: str,
        offset: int,
        buffer: bytes,
        length: int,
        handle: IO[bytes] | None = None,
    ) -> int:
        """Write the first length bytes of buffer at offset.

        Handles opened in an append mode always write at the end of the
        file, whatever the offset.

        Args:
            path: Virtual path the handle was opened for.
            offset: Byte offset in the backing file.
            buffer: Data to write from.
            length: Number of bytes of buffer to write.
            handle: Caller-owned handle to use instead of the table.

        Returns:
            Number of bytes written.

        Raises:
            OSError: EBADF if no handle is available or it is not writable.
            ValueError: If length is larger than buffer.
        """
        data = memoryview(buffer)
        if length > len(data):
            raise ValueError(
                f"length {length} exceeds buffer of {len(data)} bytes"
            )
        data = data[:length]

        if handle is not None:
            if not handle.writable():
                raise OSError(errno.EBADF, "File not open for writing", path)
            handle.seek(offset)
            return self._write_all(handle, data)

        entry = self._entry(path)
        with entry.lock:
            self._check_open(entry)
            if not entry.file.writable():
                raise OSError(errno.EBADF, "File not open for writing", path)
            entry.file.seek(offset)
            return self._write_all(entry.file, data)

    def close(self, path: str, handle: IO[bytes] | None = None) -> None:
        """Close a handle.

        With an explicit handle, closes that handle and leaves the table
        alone. Otherwise removes and closes the tracked handle for path;
        closing a path with no tracked handle is a no-op.
        """
        if handle is not None:
            handle.close()
            return

        with self._lock:
            entry = self._table.pop(path, None)

        if entry is None:
            return

        with entry.lock:
            entry.file.close()
        logger.debug("Closed raw handle %s", path)

    def close_all(self) -> None:
        """Close every tracked handle (e.g. at unmount)."""
        with self._lock:
            entries = list(self._table.values())
            self._table.clear()

        for entry in entries:
            with entry.lock:
                entry.file.close()

    def _entry(self, path: str) -> RawHandle:
        with self._lock:
            entry = self._table.get(path)
        if entry is None:
            raise OSError(errno.EBADF, "No open raw handle", path)
        return entry

    @staticmethod
    def _check_open(entry: RawHandle) -> None:
        # Closed by another thread between lookup and lock.
        if entry.file.closed:
            raise OSError(errno.EBADF, "No open raw handle", entry.path)

    @staticmethod
    def _write_all(file: IO[bytes], data: memoryview) -> int:
        written = 0
        while written < len(data):
            n = file.write(data[written:])
            if n is None:
                # Non-blocking file with nothing accepted; retry.
                continue
            written += n
        return written
