"""
Abstract base class for byte sources.

Every concrete source (a wrapped binary stream today; sockets or object
storage later) must implement this interface. The reader works exclusively
against ``ByteSource`` so detection and row iteration are transport-agnostic.

Usage:
    with StreamByteSource.open(path) as source:
        prefix = source.read(4)
        line = source.read_until(b"\\n")
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class ByteSource(ABC):
    """
    Interface for all readable byte sources.

    Subclasses must implement ``read``, ``read_until``, ``unread``,
    ``seekable``, ``seek`` and ``close``. Context manager support
    (``__enter__`` / ``__exit__``) is provided by this base class and
    delegates to ``close``.

    Args:
        name: Human-readable name used in error messages.
    """

    def __init__(self, name: str) -> None:
        self.name = name

    @abstractmethod
    def read(self, size: int) -> bytes:
        """
        Return up to ``size`` bytes.

        Fewer bytes are returned only at end of stream; ``b""`` means the
        stream is exhausted.
        """

    @abstractmethod
    def read_until(self, terminator: bytes) -> bytes | None:
        """
        Return the bytes up to ``terminator``, consuming but excluding it.

        At end of stream the remaining bytes are returned without a
        terminator; once nothing is left, ``None`` is returned.
        """

    @abstractmethod
    def unread(self, data: bytes) -> None:
        """Push ``data`` back so the next read returns it first."""

    @abstractmethod
    def seekable(self) -> bool:
        """Return True if ``seek`` is supported."""

    @abstractmethod
    def seek(self, offset: int) -> None:
        """
        Reposition to ``offset`` bytes from the start of the source.

        Raises:
            SeekError: If the source is not seekable or the seek fails.
        """

    @abstractmethod
    def close(self) -> None:
        """Release the underlying stream if this source owns it."""

    # ── context manager ──────────────────────────────────────────────────

    def __enter__(self) -> "ByteSource":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
        return None
