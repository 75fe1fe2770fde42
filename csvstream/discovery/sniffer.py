"""
Format sniffer.

``csv_guess`` inspects a raw byte sample and guesses the line ending, the
field delimiter and the field enclosure by counting candidate occurrences.

Candidates, in priority order (ties always keep the earlier candidate):

    line endings   CRLF, LFCR   then   LF, CR
    delimiters     ,  ;  :  |  TAB
    enclosures     "  '  (none)

Steps:
  1. Count the two-character line endings over the whole sample; the most
     frequent wins. Only if none occurs, do the same for LF and CR.
  2. Remove every occurrence of the guessed line ending from the sample.
  3. The most frequent delimiter in what is left wins.
  4. With a delimiter found, count ``enclosure + delimiter + enclosure`` for
     each enclosure. The empty candidate counts bare delimiters; when it
     wins the file is treated as unquoted.

When the sample is UTF-16 / UTF-32, every candidate is first converted
from Latin-1 into that encoding so counts are done in the file's own code
units.

The function is pure: the same sample always produces the same result.
"""

from __future__ import annotations

from dataclasses import dataclass

from csvstream.discovery.encoding import encode_text, is_multibyte

_MULTI_LINE_ENDINGS: tuple[bytes, ...] = (b"\r\n", b"\n\r")
_SINGLE_LINE_ENDINGS: tuple[bytes, ...] = (b"\n", b"\r")
_DELIMITERS: tuple[bytes, ...] = (b",", b";", b":", b"|", b"\t")
_ENCLOSURES: tuple[bytes, ...] = (b'"', b"'", b"")


@dataclass(frozen=True, slots=True)
class DetectionResult:
    """
    Guessed format parameters; ``None`` means "could not detect".

    All values are raw bytes in the sample's encoding. An ``enclosure`` of
    ``b""`` means the file is not quoted.
    """

    line_separator: bytes | None = None
    delimiter: bytes | None = None
    enclosure: bytes | None = None


def csv_guess(data: bytes, data_encoding: str | None = None) -> DetectionResult:
    """
    Guess line ending, delimiter and enclosure of a CSV sample.

    Args:
        data:          Any length of raw CSV bytes; at least one full line
                       gives a useful answer.
        data_encoding: Encoding of ``data`` if known. Only matters for the
                       UTF-16 / UTF-32 family.

    Returns:
        DetectionResult with each field guessed or ``None``.
    """
    encode = _candidate_encoder(data_encoding)

    line_separator = _most_frequent(data, [encode(c) for c in _MULTI_LINE_ENDINGS])
    if line_separator is None:
        line_separator = _most_frequent(data, [encode(c) for c in _SINGLE_LINE_ENDINGS])

    stripped = data.replace(line_separator, b"") if line_separator else data

    delimiter = _most_frequent(stripped, [encode(c) for c in _DELIMITERS])

    enclosure = None
    if delimiter is not None:
        patterns = {encode(c) + delimiter + encode(c): encode(c) for c in _ENCLOSURES}
        best = _most_frequent(stripped, list(patterns))
        if best is not None:
            enclosure = patterns[best]

    return DetectionResult(line_separator, delimiter, enclosure)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _most_frequent(data: bytes, candidates: list[bytes]) -> bytes | None:
    """Return the candidate with the highest non-zero count; first one wins ties."""
    best: bytes | None = None
    best_count = 0
    for candidate in candidates:
        count = data.count(candidate)
        if count > best_count:
            best, best_count = candidate, count
    return best


def _candidate_encoder(data_encoding: str | None):
    if not is_multibyte(data_encoding):
        return lambda candidate: candidate
    return lambda candidate: encode_text(candidate.decode("latin-1"), data_encoding)
