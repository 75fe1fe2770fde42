"""
Stream fakes for reader tests.

``ForwardOnlyStream`` behaves like a pipe or ``sys.stdin.buffer``: it can
only be read forward, reports ``seekable() == False`` and can be told to
return short reads, which exercises the adapter's read loop.
"""

from __future__ import annotations

import io


class ForwardOnlyStream(io.RawIOBase):
    """
    Non-seekable binary stream over ``data``.

    Args:
        data:     Bytes to serve.
        max_read: Upper bound on bytes returned by a single read.
    """

    def __init__(self, data: bytes, max_read: int | None = None) -> None:
        super().__init__()
        self._buf = io.BytesIO(data)
        self._max_read = max_read

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return False

    def readinto(self, b) -> int:
        n = len(b) if self._max_read is None else min(len(b), self._max_read)
        chunk = self._buf.read(n)
        b[: len(chunk)] = chunk
        return len(chunk)


class FailingStream(io.RawIOBase):
    """Stream whose every read fails with ``OSError``."""

    def readable(self) -> bool:
        return True

    def readinto(self, b) -> int:
        raise OSError("device not ready")


def utf16le(text: str) -> bytes:
    """``text`` as UTF-16LE with a leading BOM."""
    return b"\xff\xfe" + text.encode("utf-16-le")
