"""
Line terminators for multi-byte (UTF-16 / UTF-32) encodings.

Single-byte files end their lines with ``b"\\n"`` unless configured or
sniffed otherwise. UTF-16 and UTF-32 files need the terminator spelled in
their own code units, and only the four endian-specific encodings have a
known spelling:

    encoding    LF                    CR
    UTF-16LE    0A 00                 0D 00
    UTF-16BE    00 0A                 00 0D
    UTF-32LE    0A 00 00 00           0D 00 00 00
    UTF-32BE    00 00 00 0A           00 00 00 0D

Any other multi-byte encoding (including endian-less ``UTF-16``) raises
``UnsupportedEncodingForLineDetectionError``.
"""

from __future__ import annotations

from csvstream.configs.exceptions import UnsupportedEncodingForLineDetectionError
from csvstream.discovery.base import ByteSource
from csvstream.discovery.encoding import codec_name, is_multibyte

SINGLE_BYTE_LINE_SEPARATOR: bytes = b"\n"

_LINE_FEEDS: dict[str, bytes] = {
    "utf-16-le": b"\n\x00",
    "utf-16-be": b"\x00\n",
    "utf-32-le": b"\n\x00\x00\x00",
    "utf-32-be": b"\x00\x00\x00\n",
}

_CARRIAGE_RETURNS: dict[str, bytes] = {
    "utf-16-le": b"\r\x00",
    "utf-16-be": b"\x00\r",
    "utf-32-le": b"\r\x00\x00\x00",
    "utf-32-be": b"\x00\x00\x00\r",
}


def multibyte_terminators(encoding: str, source: str | None = None) -> tuple[bytes, bytes]:
    """
    Return ``(lf, cr)`` spelled in ``encoding``.

    Raises:
        UnsupportedEncodingForLineDetectionError: If ``encoding`` has no entry
            in the terminator table.
    """
    name = codec_name(encoding)
    if name not in _LINE_FEEDS:
        raise UnsupportedEncodingForLineDetectionError(
            f"Line ending detection for file encoding {encoding} is not implemented",
            source=source,
            encoding=encoding,
        )
    return _LINE_FEEDS[name], _CARRIAGE_RETURNS[name]


def default_line_separator(encoding: str | None, source: str | None = None) -> bytes:
    """
    Separator used when none was configured and none could be guessed.

    Raises:
        UnsupportedEncodingForLineDetectionError: For a multi-byte encoding
            outside the terminator table.
    """
    if is_multibyte(encoding):
        return multibyte_terminators(encoding, source)[0]
    return SINGLE_BYTE_LINE_SEPARATOR


def read_multibyte_first_line(source: ByteSource, encoding: str) -> tuple[bytes, bytes | None]:
    """
    Read the first line of a forward-only multi-byte stream.

    The line is read up to the encoding's LF. If it ends in the encoding's
    CR, the file uses CR+LF: the separator becomes CR+LF and the CR is
    removed from the line.

    Args:
        source:   Byte source positioned just past the BOM.
        encoding: Endian-specific UTF-16 / UTF-32 encoding from the BOM.

    Returns:
        ``(line_separator, first_line)``; ``first_line`` is ``None`` when the
        stream holds nothing past the BOM.

    Raises:
        UnsupportedEncodingForLineDetectionError: If ``encoding`` has no
            entry in the terminator table.
    """
    lf, cr = multibyte_terminators(encoding, source.name)
    line = source.read_until(lf)
    if line is not None and line.endswith(cr):
        return cr + lf, line[: -len(cr)]
    return lf, line
