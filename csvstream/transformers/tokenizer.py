"""
Row tokenizer.

Reads one logical CSV line at a time and splits it into raw cell values.

Per call to ``next_line``:
  1. Take the next raw line from the replay buffer while it has entries,
     otherwise read from the byte source up to the line separator.
  2. A zero-length line is a blank line; nothing is decoded or tokenized.
  3. Decode the line (transcoding first when the file encoding differs
     from the internal encoding).
  4. While an enclosure is left open at the end of the decoded text, read
     the following physical line and join it with the separator, so quoted
     cells may contain line breaks. The enclosure state is carried from
     segment to segment; joined text is never rescanned.
  5. Split the text with ``csv.reader`` using the reader's dialect.

Escape handling: inside an enclosure the escape character stops the
following enclosure from closing the cell, and both characters stay in the
value. Outside an enclosure the escape is an ordinary character.

CR, LF and NUL inside a logical line are cell data. They are swapped for
placeholder characters before ``csv`` sees the text and restored in the
values. A single CR ending the line outside an enclosure is the rest of a
CR+LF terminator and is dropped.

Line numbers are physical line numbers, 1-based, counted from the first
line after the BOM (the header is line 1).
"""

from __future__ import annotations

import csv
from dataclasses import dataclass
from enum import Enum

from csvstream.configs.exceptions import MalformedRowError
from csvstream.discovery.base import ByteSource
from csvstream.discovery.encoding import LineDecoder
from csvstream.discovery.replay import ReplayBuffer

_MASKED_CHARS: tuple[str, ...] = ("\r", "\n", "\0")

# Private use area; placeholders are picked from here per line.
_PLACEHOLDER_START = 0xE000


class LineKind(Enum):
    END = "end"
    EMPTY = "empty"
    FIELDS = "fields"


@dataclass(frozen=True, slots=True)
class TokenizedLine:
    """
    Result of one ``next_line`` call.

    Attributes:
        kind:        ``END`` (stream exhausted), ``EMPTY`` (blank line) or
                     ``FIELDS``.
        fields:      Raw, untrimmed cell values; empty unless ``kind`` is ``FIELDS``.
        line_number: Physical line the logical line started on; 0 for ``END``.
    """

    kind: LineKind
    fields: tuple[str, ...] = ()
    line_number: int = 0


END_OF_STREAM = TokenizedLine(LineKind.END)


class EnclosureScanner:
    """
    Tracks whether a logical line is inside an enclosure.

    Text is fed segment by segment; state survives between calls, so each
    character is looked at once.

    Args:
        delimiter: Field delimiter.
        enclosure: Enclosure character, or ``None`` / ``""`` when unquoted.
        escape:    Escape character; ignored when empty or equal to the
                   enclosure.
    """

    def __init__(self, delimiter: str, enclosure: str | None, escape: str | None) -> None:
        self._delimiter = delimiter
        self._quote = enclosure or None
        self._escape = escape if escape and escape != enclosure else None
        self._in_quotes = False
        self._at_field_start = True
        self._escaped = False
        self._after_quote = False

    @property
    def open(self) -> bool:
        """True if the text fed so far ends inside an enclosure."""
        return self._in_quotes and not self._after_quote

    def feed(self, text: str) -> list[int]:
        """
        Scan ``text``, continuing from the previous call.

        Returns:
            Indices into ``text`` of enclosure characters that an escape
            keeps from closing the cell.
        """
        quote = self._quote
        if quote is None:
            return []
        delimiter, escape = self._delimiter, self._escape
        escaped_quotes: list[int] = []
        for index, ch in enumerate(text):
            if self._after_quote:
                self._after_quote = False
                if ch == quote:
                    # Doubled enclosure: a literal quote, still enclosed.
                    continue
                self._in_quotes = False

            if self._in_quotes:
                if self._escaped:
                    self._escaped = False
                    if ch == quote:
                        escaped_quotes.append(index)
                elif ch == escape:
                    self._escaped = True
                elif ch == quote:
                    self._after_quote = True
            elif ch == delimiter:
                self._at_field_start = True
            elif self._at_field_start and ch == quote:
                self._in_quotes = True
                self._at_field_start = False
            else:
                self._at_field_start = False
        return escaped_quotes


class RowTokenizer:
    """
    Turns a byte source into a sequence of ``TokenizedLine`` results.

    Args:
        source:         Byte source positioned at the first unread line.
        line_separator: Raw terminator in the file encoding.
        decoder:        Line decoder for the resolved encodings.
        dialect:        ``csv`` dialect built from delimiter and enclosure.
        escape:         Escape character honoured inside enclosures
                        (``""`` for none).
        replay:         Lines consumed during detection on a forward-only
                        source; replayed before any live read.
    """

    def __init__(
        self,
        source: ByteSource,
        line_separator: bytes,
        decoder: LineDecoder,
        dialect: type[csv.Dialect],
        escape: str = "\\",
        replay: ReplayBuffer | None = None,
    ) -> None:
        self._source = source
        self._line_separator = line_separator
        self._decoder = decoder
        self._dialect = dialect
        self._escape = escape
        self._replay = replay
        self._joiner = decoder.decode(line_separator)
        self.line_number = 0

    def reset(self) -> None:
        """Restart line numbering; the caller repositions the source."""
        self.line_number = 0

    def next_line(self, strict: bool = False) -> TokenizedLine:
        """
        Read and tokenize the next logical line.

        Args:
            strict: Decode strictly regardless of the data-line policy.

        Raises:
            DecodeError:       If a line cannot be decoded under the active policy.
            MalformedRowError: If ``csv`` rejects the line.
        """
        raw = self._read_raw()
        if raw is None:
            return END_OF_STREAM
        self.line_number += 1
        start = self.line_number
        if not raw:
            return TokenizedLine(LineKind.EMPTY, line_number=start)

        scanner = EnclosureScanner(
            self._dialect.delimiter,
            self._dialect.quotechar if self._dialect.quoting != csv.QUOTE_NONE else None,
            self._escape,
        )
        text = self._decoder.decode(raw, strict=strict, line_number=start)
        escaped_quotes = scanner.feed(text)
        parts = [text]
        length = len(text)
        while scanner.open:
            more = self._read_raw()
            if more is None:
                break
            self.line_number += 1
            segment = self._joiner + self._decoder.decode(
                more, strict=strict, line_number=self.line_number
            )
            escaped_quotes.extend(length + i for i in scanner.feed(segment))
            parts.append(segment)
            length += len(segment)

        text = "".join(parts)
        if not scanner.open and text.endswith("\r"):
            text = text[:-1]

        try:
            fields = self._split(text, escaped_quotes)
        except csv.Error as e:
            raise MalformedRowError(
                f"Cannot tokenize line: {e}",
                source=self._source.name,
                line_number=start,
            ) from e

        if not fields:
            return TokenizedLine(LineKind.EMPTY, line_number=start)
        return TokenizedLine(LineKind.FIELDS, tuple(fields), start)

    # ── internals ────────────────────────────────────────────────────────

    def _read_raw(self) -> bytes | None:
        if self._replay is not None and not self._replay.drained:
            return self._replay.pop()
        return self._source.read_until(self._line_separator)

    def _split(self, text: str, escaped_quotes: list[int]) -> list[str]:
        """Run ``csv`` over ``text`` with line breaks and escaped quotes masked."""
        specials = [ch for ch in _MASKED_CHARS if ch in text]
        if not specials and not escaped_quotes:
            return next(csv.reader([text], dialect=self._dialect), [])

        needed = specials + ([self._dialect.quotechar] if escaped_quotes else [])
        placeholders = _free_chars(text, len(needed))
        if escaped_quotes:
            chars = list(text)
            for index in escaped_quotes:
                chars[index] = placeholders[-1]
            text = "".join(chars)
        text = text.translate({ord(ch): ph for ch, ph in zip(specials, placeholders)})

        restore = {ord(ph): ch for ch, ph in zip(needed, placeholders)}
        fields = next(csv.reader([text], dialect=self._dialect), [])
        return [field.translate(restore) for field in fields]


def _free_chars(text: str, count: int) -> list[str]:
    """Return ``count`` private-use characters that do not occur in ``text``."""
    found: list[str] = []
    code_point = _PLACEHOLDER_START
    while len(found) < count:
        ch = chr(code_point)
        if ch not in text:
            found.append(ch)
        code_point += 1
    return found
