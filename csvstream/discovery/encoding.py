"""
Encoding resolution and transcoding.

Three jobs:

1. **Guess** the file encoding when neither the caller nor a BOM supplied
   one. Candidates are tried in order and the first one that strictly
   decodes the sniffing sample wins::

       [internal encoding, *detect order, UTF-32BE, UTF-32LE, UTF-16BE,
        UTF-16LE, UTF-8, Windows-1252, cp1252, ISO-8859-1]

   The detect order defaults to the ranked guesses of ``charset-normalizer``
   for the sample.

2. **Decide** whether file bytes must be transcoded into the internal
   encoding. Equal encodings never need it, and neither do these subsets:
   ASCII inside UTF-8 / cp1252 / ISO-8859-1, and ISO-8859-1 inside cp1252.
   Names are compared case-insensitively or by ``codecs`` registry identity
   (which makes ``cp1252`` and ``Windows-1252`` the same codec).

3. **Transcode and decode** each line. Header lines are always strict; data
   lines follow the configured ``decode_errors`` policy.
"""

from __future__ import annotations

import codecs
from collections.abc import Iterable

from charset_normalizer import from_bytes

from csvstream.configs.exceptions import DecodeError

COMMON_FILE_ENCODINGS: tuple[str, ...] = (
    "UTF-32BE",
    "UTF-32LE",
    "UTF-16BE",
    "UTF-16LE",
    "UTF-8",
    "Windows-1252",
    "cp1252",
    "ISO-8859-1",
)

_MULTIBYTE_CODECS: frozenset[str] = frozenset(
    {"utf-16", "utf-16-le", "utf-16-be", "utf-32", "utf-32-le", "utf-32-be"}
)

# file codec -> internal codecs it is a strict subset of
_SUBSET_OF: dict[str, frozenset[str]] = {
    "ascii": frozenset({"utf-8", "cp1252", "iso8859-1"}),
    "iso8859-1": frozenset({"cp1252"}),
}


# ---------------------------------------------------------------------------
# Name handling
# ---------------------------------------------------------------------------

def codec_name(encoding: str) -> str:
    """
    Return the ``codecs`` registry name for ``encoding``.

    Raises:
        LookupError: If the encoding is unknown.
    """
    return codecs.lookup(encoding).name


def same_encoding(a: str, b: str) -> bool:
    """True if ``a`` and ``b`` name the same encoding."""
    if a.lower() == b.lower():
        return True
    try:
        return codec_name(a) == codec_name(b)
    except LookupError:
        return False


def is_multibyte(encoding: str | None) -> bool:
    """True for the UTF-16 / UTF-32 family, whose code units are wider than a byte."""
    if not encoding:
        return False
    try:
        return codec_name(encoding) in _MULTIBYTE_CODECS
    except LookupError:
        return False


def resolve_byte_order(encoding: str | None, bom_encoding: str | None) -> str | None:
    """
    Pin an endian-less ``utf-16`` / ``utf-32`` to the byte order of the BOM.

    The BOM is stripped before any line is decoded, so the endian-less codec
    would otherwise fall back to the platform byte order. Any other
    combination returns ``encoding`` unchanged.
    """
    if not encoding or not bom_encoding:
        return encoding
    try:
        name, bom_name = codec_name(encoding), codec_name(bom_encoding)
    except LookupError:
        return encoding
    if name in ("utf-16", "utf-32") and bom_name in (f"{name}-le", f"{name}-be"):
        return bom_encoding
    return encoding


def encode_text(text: str, encoding: str) -> bytes:
    """
    Encode ``text`` without a leading BOM.

    Endian-less codecs such as ``utf-16`` prepend a BOM on every encode;
    terminators and delimiters must be spelled without it.
    """
    bom = "".encode(encoding)
    return text.encode(encoding)[len(bom):]


def must_transcode(file_encoding: str | None, internal_encoding: str) -> bool:
    """
    Decide whether bytes in ``file_encoding`` need transcoding to ``internal_encoding``.

    An unknown file encoding is decoded as the internal encoding as-is.
    """
    if not file_encoding or same_encoding(file_encoding, internal_encoding):
        return False
    try:
        source, target = codec_name(file_encoding), codec_name(internal_encoding)
    except LookupError:
        return True
    return target not in _SUBSET_OF.get(source, frozenset())


# ---------------------------------------------------------------------------
# Detection
# ---------------------------------------------------------------------------

def statistical_detect_order(sample: bytes) -> list[str]:
    """Return ``charset-normalizer``'s ranked encoding guesses for ``sample``."""
    return [match.encoding for match in from_bytes(sample)]


def candidate_encodings(
    internal_encoding: str | None,
    detect_order: Iterable[str],
) -> list[str]:
    """
    Build the ordered, case-insensitively de-duplicated candidate list.

    Args:
        internal_encoding: Configured internal encoding; tried first.
        detect_order:      Preferred detection order; tried next.
    """
    ordered = ([internal_encoding] if internal_encoding else []) + list(detect_order)
    ordered += COMMON_FILE_ENCODINGS
    seen: set[str] = set()
    candidates: list[str] = []
    for name in ordered:
        key = name.lower()
        if key not in seen:
            seen.add(key)
            candidates.append(name)
    return candidates


def decodes_cleanly(sample: bytes, encoding: str) -> bool:
    """
    True if ``sample`` is a legal byte sequence in ``encoding``.

    An incremental decoder is used so that a multi-byte character cut off
    at the end of the sample does not count against the encoding.
    """
    try:
        decoder = codecs.getincrementaldecoder(encoding)(errors="strict")
        decoder.decode(sample, final=False)
    except (LookupError, UnicodeError):
        return False
    return True


def detect_encoding(sample: bytes, candidates: Iterable[str]) -> str | None:
    """
    Return the first candidate that decodes ``sample``, or ``None``.
    """
    for encoding in candidates:
        if decodes_cleanly(sample, encoding):
            return encoding
    return None


# ---------------------------------------------------------------------------
# Transcoding
# ---------------------------------------------------------------------------

def transcode(data: bytes, from_encoding: str, to_encoding: str, errors: str = "strict") -> bytes:
    """
    Convert ``data`` from ``from_encoding`` into ``to_encoding``.

    Characters that are invalid in the source or not representable in the
    target are handled by ``errors`` (``"strict"``, ``"ignore"``, ``"replace"``).

    Raises:
        DecodeError: If ``errors`` is ``"strict"`` and conversion fails.
    """
    try:
        return data.decode(from_encoding, errors).encode(to_encoding, errors)
    except UnicodeError as e:
        raise DecodeError(
            f"Cannot transcode {len(data)} bytes: {e}",
            encoding=f"{from_encoding} -> {to_encoding}",
        ) from e


class LineDecoder:
    """
    Turns raw line bytes into ``str``.

    When transcoding is required the bytes are first converted from the
    file encoding into the internal encoding, then decoded with the internal
    encoding; otherwise they are decoded with the internal encoding directly.

    Args:
        file_encoding:     Resolved file encoding, or ``None`` if unknown.
        internal_encoding: Target encoding.
        errors:            Policy for data lines: ``"ignore"``, ``"replace"``
                           or ``"strict"``.
        source:            Source name for error messages.
    """

    def __init__(
        self,
        file_encoding: str | None,
        internal_encoding: str,
        errors: str = "ignore",
        source: str | None = None,
    ) -> None:
        self.file_encoding = file_encoding
        self.internal_encoding = internal_encoding
        self.errors = errors
        self.source = source
        self.must_transcode = must_transcode(file_encoding, internal_encoding)

    def decode(self, raw: bytes, strict: bool = False, line_number: int | None = None) -> str:
        """
        Decode one raw line.

        Args:
            raw:         Line bytes without terminator.
            strict:      Force strict decoding (used for the header row).
            line_number: Physical line number for error messages.

        Raises:
            DecodeError: If decoding fails under the strict policy.
        """
        errors = "strict" if strict else self.errors
        try:
            if self.must_transcode:
                raw = transcode(raw, self.file_encoding, self.internal_encoding, errors)
            return raw.decode(self.internal_encoding, errors)
        except DecodeError as e:
            raise DecodeError(
                str(e.args[0]),
                source=self.source,
                encoding=e.encoding,
                line_number=line_number,
            ) from e
        except UnicodeError as e:
            raise DecodeError(
                f"Cannot decode line: {e}",
                source=self.source,
                encoding=self.internal_encoding,
                line_number=line_number,
            ) from e
