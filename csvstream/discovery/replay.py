"""
Replay buffer for forward-only sources.

Detection over a non-seekable stream consumes bytes that cannot be read
again. The complete lines consumed that way are kept here, raw and not yet
transcoded, and handed back to the row tokenizer before any live read.
Once the last entry has been popped the buffer frees its storage and stays
empty.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable


class ReplayBuffer:
    """FIFO of raw lines consumed during detection."""

    def __init__(self, lines: Iterable[bytes] = ()) -> None:
        self._lines: deque[bytes] = deque(lines)

    def append(self, line: bytes) -> None:
        self._lines.append(line)

    def extend(self, lines: Iterable[bytes]) -> None:
        self._lines.extend(lines)

    def pop(self) -> bytes:
        """
        Remove and return the oldest line.

        Raises:
            IndexError: If the buffer is drained.
        """
        return self._lines.popleft()

    @property
    def drained(self) -> bool:
        return not self._lines

    def lines(self) -> list[bytes]:
        """Snapshot of the lines still waiting to be replayed."""
        return list(self._lines)

    def clear(self) -> None:
        self._lines.clear()

    def __len__(self) -> int:
        return len(self._lines)
