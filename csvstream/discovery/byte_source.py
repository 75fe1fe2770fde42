"""
Binary stream adapter implementing ``ByteSource``.

Handles:
- Files opened by path (owned, closed by ``close()``).
- Already-open binary streams handed in by the caller (borrowed, never closed).
- Non-seekable streams such as pipes or ``sys.stdin.buffer``.
- Short reads: ``read(n)`` keeps reading until ``n`` bytes or end of stream.
- Multi-byte terminators, including terminators split across chunk reads.

Offsets given to ``seek`` are relative to the stream position at the time
it was wrapped, so a handed-in stream that is already past some preamble
behaves as if it started there.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import BinaryIO

from csvstream.configs.config import DEFAULT_READ_CHUNK_SIZE
from csvstream.configs.exceptions import SeekError, SourceOpenError
from csvstream.discovery.base import ByteSource

logger = logging.getLogger(__name__)


class StreamByteSource(ByteSource):
    """
    ``ByteSource`` over a binary file-like object.

    Args:
        stream:     Binary stream supporting ``read(n)``; ``seekable()``,
                    ``seek()`` and ``tell()`` are used when available.
        name:       Name for error messages; defaults to ``stream.name``.
        owned:      If True, ``close()`` closes ``stream``.
        chunk_size: Bytes requested per underlying read in ``read_until``.
    """

    def __init__(
        self,
        stream: BinaryIO,
        name: str | None = None,
        owned: bool = False,
        chunk_size: int = DEFAULT_READ_CHUNK_SIZE,
    ) -> None:
        super().__init__(name or str(getattr(stream, "name", None) or "<stream>"))
        self._stream = stream
        self._owned = owned
        self._chunk_size = chunk_size
        self._pending = bytearray()
        self._eof = False
        self._closed = False
        self._seekable = _is_seekable(stream)
        self._origin = stream.tell() if self._seekable else 0

    @classmethod
    def open(
        cls,
        path: Path | str,
        chunk_size: int = DEFAULT_READ_CHUNK_SIZE,
    ) -> "StreamByteSource":
        """
        Open ``path`` for binary reading; the returned source owns the handle.

        Raises:
            SourceOpenError: If the file cannot be opened.
        """
        try:
            stream = open(path, "rb")  # noqa: SIM115 - closed by close()
        except OSError as e:
            raise SourceOpenError(
                f"Failed to open {path} for reading: {e}",
                source=str(path),
            ) from e
        return cls(stream, name=str(path), owned=True, chunk_size=chunk_size)

    @property
    def owned(self) -> bool:
        return self._owned

    # ── ByteSource interface ─────────────────────────────────────────────

    def read(self, size: int) -> bytes:
        while len(self._pending) < size and self._fill(size - len(self._pending)):
            pass
        data = bytes(self._pending[:size])
        del self._pending[:size]
        return data

    def read_until(self, terminator: bytes) -> bytes | None:
        if not terminator:
            raise ValueError("terminator must not be empty")
        start = 0
        while True:
            index = self._pending.find(terminator, start)
            if index != -1:
                line = bytes(self._pending[:index])
                del self._pending[: index + len(terminator)]
                return line
            # Resume the search where a terminator split across chunks could begin.
            start = max(0, len(self._pending) - len(terminator) + 1)
            if not self._fill(self._chunk_size):
                break
        if not self._pending:
            return None
        line = bytes(self._pending)
        self._pending.clear()
        return line

    def unread(self, data: bytes) -> None:
        if data:
            self._pending[:0] = data

    def seekable(self) -> bool:
        return self._seekable

    def seek(self, offset: int) -> None:
        if not self._seekable:
            raise SeekError(f"Cannot seek to {offset}: stream is not seekable", source=self.name)
        try:
            self._stream.seek(self._origin + offset)
        except (OSError, ValueError) as e:
            raise SeekError(f"Failed to seek to {offset}: {e}", source=self.name) from e
        self._pending.clear()
        self._eof = False

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._pending.clear()
        if self._owned:
            logger.debug("Closing owned stream %s", self.name)
            self._stream.close()

    # ── internals ────────────────────────────────────────────────────────

    def _fill(self, size: int) -> bool:
        """Append up to ``size`` bytes from the stream; False once at end of stream."""
        if self._eof:
            return False
        try:
            chunk = self._stream.read(max(size, 1))
        except OSError as e:
            raise SourceOpenError(f"Failed to read from {self.name}: {e}", source=self.name) from e
        if not chunk:
            self._eof = True
            return False
        self._pending += chunk
        return True


def _is_seekable(stream: BinaryIO) -> bool:
    seekable = getattr(stream, "seekable", None)
    if seekable is None:
        return False
    try:
        return bool(seekable())
    except (OSError, ValueError):
        return False
