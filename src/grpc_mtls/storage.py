"""
Byte-storage backends for loading PEM artifacts.

Credential construction only needs to open an identifier and read it to
completion, so any backend that can do that is pluggable: the real
filesystem, an in-memory map, or a remote secret store.
"""

import io
import os
import threading
from abc import ABC, abstractmethod
from typing import BinaryIO, Optional, Union


class Storage(ABC):
    """Read-only view of a byte store keyed by path.

    Implementations must be safe for concurrent reads. Every backend failure
    (missing path, permission denied, backend unreachable, read cut short)
    must surface as an OSError or one of its subclasses such as
    ConnectionError or TimeoutError; anything else is treated as a bug in
    the backend and is not classified as an I/O failure.
    """

    @abstractmethod
    def open(self, path: str) -> BinaryIO:
        """Open a path for binary reading.

        Raises:
            OSError: If the path cannot be opened
        """

    def read_stream(self, stream: BinaryIO) -> bytes:
        """Read an opened stream to completion and close it.

        Either the complete content is returned or an OSError is raised.
        """
        with stream:
            return stream.read()

    def read_all(self, path: str) -> bytes:
        """Open path and read its full content."""
        return self.read_stream(self.open(path))


class OsStorage(Storage):
    """The real filesystem."""

    def open(self, path: str) -> BinaryIO:
        return open(os.fspath(path), "rb")

    def __eq__(self, other: object) -> bool:
        return isinstance(other, OsStorage)

    def __hash__(self) -> int:
        return hash(OsStorage)

    def __repr__(self) -> str:
        return "OsStorage()"


class MemoryStorage(Storage):
    """In-memory storage for tests and non-disk backends."""

    def __init__(self, files: Optional[dict[str, bytes]] = None):
        self._files: dict[str, bytes] = {}
        self._lock = threading.Lock()
        for path, data in (files or {}).items():
            self.write_file(path, data)

    def open(self, path: str) -> BinaryIO:
        with self._lock:
            try:
                data = self._files[self._normalize(path)]
            except KeyError:
                raise FileNotFoundError(f"No such file: {path!r}") from None
        # Readers get their own stream; later writes don't leak into it
        return io.BytesIO(data)

    def write_file(self, path: str, data: Union[bytes, str]) -> None:
        """Create or replace a file."""
        if isinstance(data, str):
            data = data.encode()
        with self._lock:
            self._files[self._normalize(path)] = bytes(data)

    def remove(self, path: str) -> None:
        """Delete a file.

        Raises:
            FileNotFoundError: If the path does not exist
        """
        with self._lock:
            try:
                del self._files[self._normalize(path)]
            except KeyError:
                raise FileNotFoundError(f"No such file: {path!r}") from None

    def exists(self, path: str) -> bool:
        with self._lock:
            return self._normalize(path) in self._files

    @staticmethod
    def _normalize(path: str) -> str:
        return os.path.normpath(os.fspath(path))

    def __repr__(self) -> str:
        with self._lock:
            return f"MemoryStorage(files={sorted(self._files)!r})"
