"""
Byte-order-mark detection.

The table is checked in order; the UTF-32LE mark starts with the UTF-16LE
mark, so the four-byte patterns must be tried before the two-byte ones.

    EF BB BF      UTF-8     3
    00 00 FE FF   UTF-32BE  4
    FF FE 00 00   UTF-32LE  4
    FE FF         UTF-16BE  2
    FF FE         UTF-16LE  2
"""

from __future__ import annotations

BOM_READ_SIZE: int = 4
"""Bytes read from the start of the stream to look for a BOM."""

_BOMS: tuple[tuple[bytes, str], ...] = (
    (b"\xef\xbb\xbf", "UTF-8"),
    (b"\x00\x00\xfe\xff", "UTF-32BE"),
    (b"\xff\xfe\x00\x00", "UTF-32LE"),
    (b"\xfe\xff", "UTF-16BE"),
    (b"\xff\xfe", "UTF-16LE"),
)


def detect_bom(prefix: bytes) -> tuple[str | None, int]:
    """
    Identify a byte-order mark at the start of ``prefix``.

    Args:
        prefix: The first (up to) four bytes of the stream.

    Returns:
        ``(encoding, bom_length)``; ``(None, 0)`` when there is no BOM.
    """
    for mark, encoding in _BOMS:
        if prefix.startswith(mark):
            return encoding, len(mark)
    return None, 0
