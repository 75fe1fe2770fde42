"""
Streaming CSV reader.

Wires detection, decoding, tokenizing and header mapping together and
exposes a pull-based cursor over header-mapped records.

Construction order:
  1. Read up to four bytes and look for a BOM (``EmptySourceError`` if the
     source has no bytes at all).
  2. Position after the BOM: seekable sources seek; forward-only sources
     push the surplus bytes back into the adapter.
  3. If anything is left to detect, take a sample. Seekable sources read it
     and seek back; forward-only sources keep the complete lines they read
     in a ``ReplayBuffer`` and push the trailing partial line back.
  4. Resolve, in order: file encoding, line separator, delimiter, enclosure.
     Configured values always win.
  5. Read the header row (decoded strictly) and build the field map.
  6. ``advance()`` once, landing on the first data row.

Any error during construction closes the byte source and propagates; no
half-built reader is ever returned.

Usage::

    with CSVReader("products.csv") as reader:
        print(reader.field_names())
        for record in reader:
            if record is None:       # blank line
                continue
            print(record["Name"])

    with open_reader(path) as reader:       # SeekableCSVReader for files
        first_pass = list(reader)
        reader.rewind()
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, BinaryIO

from csvstream.configs.config import DEFAULT_DELIMITER, DEFAULT_ENCLOSURE, ReaderConfig
from csvstream.configs.csv_dialect import build_dialect
from csvstream.configs.exceptions import EmptySourceError, SeekError
from csvstream.discovery.base import ByteSource
from csvstream.discovery.bom import BOM_READ_SIZE, detect_bom
from csvstream.discovery.byte_source import StreamByteSource
from csvstream.discovery.encoding import (
    LineDecoder,
    candidate_encodings,
    detect_encoding,
    encode_text,
    is_multibyte,
    resolve_byte_order,
    statistical_detect_order,
)
from csvstream.discovery.line_endings import default_line_separator, read_multibyte_first_line
from csvstream.discovery.replay import ReplayBuffer
from csvstream.discovery.sniffer import DetectionResult, csv_guess
from csvstream.transformers.field_map import FieldMap, build_field_map
from csvstream.transformers.normalizers import project_row
from csvstream.transformers.tokenizer import LineKind, RowTokenizer

logger = logging.getLogger(__name__)

Record = dict[str, str | None]
SourceLike = str | os.PathLike | BinaryIO | ByteSource


# ---------------------------------------------------------------------------
# State objects
# ---------------------------------------------------------------------------

class CursorState(Enum):
    BEFORE_FIRST = "before_first"
    ON_ROW = "on_row"
    ON_BLANK = "on_blank"
    EXHAUSTED = "exhausted"


@dataclass(slots=True)
class ReaderState:
    """
    Mutable cursor state; changed only by ``advance()`` and ``rewind()``.

    Attributes:
        record:  Current record, ``None`` before the first row, on a blank
                 line, and once exhausted.
        ordinal: 0-based index of the current line among data lines
                 (blank lines included); -1 before the first and once exhausted.
        cursor:  Where the cursor stands.
    """
    record: Record | None = None
    ordinal: int = -1
    cursor: CursorState = CursorState.BEFORE_FIRST


@dataclass(frozen=True, slots=True)
class StreamProfile:
    """
    Every format decision made while opening the stream.

    ``line_separator`` is raw bytes in the file encoding; ``delimiter``,
    ``enclosure`` and ``escape`` are text. An empty ``enclosure`` means
    the file is read unquoted.
    """
    source: str
    seekable: bool
    bom_encoding: str | None
    bom_length: int
    file_encoding: str | None
    internal_encoding: str
    must_transcode: bool
    line_separator: bytes
    delimiter: str
    enclosure: str
    escape: str


# ---------------------------------------------------------------------------
# Reader
# ---------------------------------------------------------------------------

class CSVReader:
    """
    Forward-only reader over a CSV byte stream.

    Args:
        source: A path (opened and owned by the reader), an open binary
                stream (borrowed; never closed by the reader) or a
                ``ByteSource``.
        config: ``ReaderConfig``, or a plain option mapping validated with
                ``ReaderConfig.from_options``. ``None`` uses defaults.

    Raises:
        SourceOpenError:      If ``source`` is a path that cannot be opened.
        EmptySourceError:     If the stream holds no bytes.
        InvalidOptionError:   For unknown or invalid options.
        UnsupportedEncodingForLineDetectionError:
                              If a multi-byte encoding has no known terminator.
        DecodeError:          If the header row cannot be decoded.
        SchemaError:          If the header cannot be mapped to field names.
        MalformedRowError:    If ``csv`` rejects the header or first data row.
    """

    def __init__(
        self,
        source: SourceLike,
        config: ReaderConfig | Mapping[str, Any] | None = None,
    ) -> None:
        if not isinstance(config, ReaderConfig):
            config = ReaderConfig.from_options(config)
        self.config = config
        self._source = _as_byte_source(source, config.read_chunk_size)
        self._state = ReaderState()
        try:
            self._check_source()
            self._open()
        except BaseException:
            self._source.close()
            raise

    # ── public surface ───────────────────────────────────────────────────

    @property
    def profile(self) -> StreamProfile:
        return self._profile

    @property
    def ordinal(self) -> int:
        return self._state.ordinal

    @property
    def state(self) -> CursorState:
        return self._state.cursor

    def field_names(self) -> list[str]:
        """Mapped field names in header column order."""
        return self._field_map.names()

    def current(self) -> Record | None:
        """The current record; ``None`` on a blank line or once exhausted."""
        return self._state.record

    def is_seekable(self) -> bool:
        return self._profile.seekable

    def advance(self) -> bool:
        """
        Move to the next data line.

        Blank lines become ``ON_BLANK`` steps unless ``skip_empty_lines`` is
        set, in which case they are passed over (but still counted in the
        ordinal).

        Returns:
            False once the stream is exhausted.

        Raises:
            DecodeError:       Under the ``"strict"`` decode policy.
            MalformedRowError: If ``csv`` rejects a line.
        """
        while True:
            line = self._tokenizer.next_line()
            if line.kind is LineKind.END:
                self._state.record = None
                self._state.ordinal = -1
                self._state.cursor = CursorState.EXHAUSTED
                if self._replay is not None:
                    self._replay.clear()
                return False

            self._state.ordinal += 1
            if line.kind is LineKind.FIELDS:
                self._state.record = project_row(line.fields, self._field_map)
                self._state.cursor = CursorState.ON_ROW
                return True

            self._state.record = None
            self._state.cursor = CursorState.ON_BLANK
            if not self.config.skip_empty_lines:
                return True

    def close(self) -> None:
        self._source.close()

    def __iter__(self) -> Iterator[Record | None]:
        """
        Yield the current record, then advance, until exhausted.

        Blank lines yield ``None``. Iteration starts at the current position
        and never rewinds.
        """
        while self._state.cursor in (CursorState.ON_ROW, CursorState.ON_BLANK):
            yield self._state.record
            self.advance()

    def __enter__(self) -> "CSVReader":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
        return None

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(source={self._source.name!r}, "
            f"ordinal={self._state.ordinal}, state={self._state.cursor.value})"
        )

    # ── construction ─────────────────────────────────────────────────────

    def _check_source(self) -> None:
        """Hook for subclasses that need more from the source."""

    def _open(self) -> None:
        cfg = self.config
        source = self._source
        seekable = source.seekable()

        # ── BOM ──────────────────────────────────────────────────────────
        prefix = source.read(BOM_READ_SIZE)
        if not prefix:
            raise EmptySourceError(f"No bytes to read from {source.name}", source=source.name)
        bom_encoding, bom_length = detect_bom(prefix)
        if bom_encoding:
            self._trace("File has BOM for %s (%d bytes)", bom_encoding, bom_length)
        else:
            self._trace("File has no BOM")
        if seekable:
            source.seek(bom_length)
        else:
            source.unread(prefix[bom_length:])

        file_encoding = resolve_byte_order(cfg.file_encoding, bom_encoding) or bom_encoding
        self._replay = None if seekable else ReplayBuffer()

        # ── forward-only UTF-16/32: the first line fixes the separator ──
        line_separator: bytes | None = None
        if (
            not seekable
            and bom_encoding
            and cfg.line_separator is None
            and is_multibyte(bom_encoding)
        ):
            line_separator, first_line = read_multibyte_first_line(source, bom_encoding)
            if first_line is not None:
                self._replay.append(first_line)
            self._trace("Multi-byte line separator from first line: 0x%s", line_separator.hex())

        # ── sample ───────────────────────────────────────────────────────
        needs_sample = (
            cfg.delimiter is None
            or cfg.enclosure is None
            or file_encoding is None
            or (cfg.line_separator is None and line_separator is None)
        )
        sample = b""
        chunk = b""
        if needs_sample:
            chunk = source.read(cfg.sniff_sample_size)
            if seekable:
                source.seek(bom_length)
                sample = chunk
            elif len(self._replay):
                sample = (line_separator or b"\n").join(self._replay.lines()) + (
                    (line_separator or b"\n") + chunk if chunk else b""
                )
            else:
                sample = chunk

        # ── file encoding ────────────────────────────────────────────────
        if file_encoding is None:
            file_encoding = self._detect_encoding(sample)

        # ── line separator, delimiter, enclosure ─────────────────────────
        guess = csv_guess(sample, file_encoding) if needs_sample else DetectionResult()
        if cfg.line_separator is not None:
            line_separator = _configured_separator(
                cfg.line_separator, file_encoding or cfg.internal_encoding
            )
        elif line_separator is None:
            if guess.line_separator is not None:
                line_separator = guess.line_separator
                self._trace("Guessed line separator: 0x%s", line_separator.hex())
            else:
                line_separator = default_line_separator(file_encoding, source.name)
                self._trace("Default line separator: 0x%s", line_separator.hex())

        delimiter = cfg.delimiter
        if delimiter is None:
            if guess.delimiter is not None:
                delimiter = _symbol(guess.delimiter, file_encoding)
                self._trace("Guessed delimiter: %r", delimiter)
            else:
                delimiter = DEFAULT_DELIMITER
                self._trace("Default delimiter: %r", delimiter)

        enclosure = cfg.enclosure
        if enclosure is None:
            if guess.enclosure is not None:
                enclosure = _symbol(guess.enclosure, file_encoding)
                self._trace("Guessed enclosure: %r", enclosure or "none")
            else:
                enclosure = DEFAULT_ENCLOSURE
                self._trace("Default enclosure: %r", enclosure)

        # Forward-only: complete sample lines go to the replay buffer, the
        # trailing partial line goes back to the adapter.
        if not seekable and chunk:
            *complete, tail = chunk.split(line_separator)
            self._replay.extend(complete)
            source.unread(tail)

        # ── decoder and tokenizer ────────────────────────────────────────
        decoder = LineDecoder(
            file_encoding,
            cfg.internal_encoding,
            errors=cfg.decode_errors,
            source=source.name,
        )
        self._trace("Must transcode: %s", decoder.must_transcode)
        self._tokenizer = RowTokenizer(
            source,
            line_separator,
            decoder,
            build_dialect(delimiter, enclosure),
            escape=cfg.escape,
            replay=self._replay,
        )

        self._profile = StreamProfile(
            source=source.name,
            seekable=seekable,
            bom_encoding=bom_encoding,
            bom_length=bom_length,
            file_encoding=file_encoding,
            internal_encoding=cfg.internal_encoding,
            must_transcode=decoder.must_transcode,
            line_separator=line_separator,
            delimiter=delimiter,
            enclosure=enclosure,
            escape=cfg.escape,
        )

        # ── header ───────────────────────────────────────────────────────
        header = self._tokenizer.next_line(strict=True)
        self._trace("Raw header row: %s", header.fields)
        self._field_map: FieldMap = build_field_map(
            header.fields,
            normalizer=cfg.field_normalizer,
            aliases=cfg.field_aliases,
            include=cfg.include_fields,
        )
        self._trace("Field name => column index pairs: %s", dict(self._field_map))

        self.advance()

    def _detect_encoding(self, sample: bytes) -> str | None:
        cfg = self.config
        if cfg.detect_order is not None:
            detect_order = list(cfg.detect_order)
        else:
            detect_order = statistical_detect_order(sample) if sample else []
        candidates = candidate_encodings(cfg.internal_encoding, detect_order)
        self._trace("Guessing file encoding using encodings: %s", ", ".join(candidates))
        encoding = detect_encoding(sample, candidates)
        if encoding is None:
            logger.warning(
                "Could not detect the encoding of %s; decoding as %s",
                self._source.name, cfg.internal_encoding,
            )
        else:
            self._trace("Guessed file encoding: %s", encoding)
        return encoding

    def _trace(self, msg: str, *args: Any) -> None:
        if self.config.debug:
            logger.debug(msg, *args)


class SeekableCSVReader(CSVReader):
    """
    ``CSVReader`` over a seekable source, adding ``rewind()``.

    Raises:
        SeekError: If the source is not seekable (raised during construction).
    """

    def _check_source(self) -> None:
        if not self._source.seekable():
            raise SeekError(
                "SeekableCSVReader requires a seekable source; use CSVReader",
                source=self._source.name,
            )

    def rewind(self) -> None:
        """
        Return to the first data row.

        Seeks to just past the BOM, skips the header line and advances once,
        so iterating afterwards reproduces the first pass exactly.

        Raises:
            SeekError: If the seek fails.
        """
        self._source.seek(self._profile.bom_length)
        self._tokenizer.reset()
        self._state = ReaderState()
        self._tokenizer.next_line(strict=True)
        self.advance()


def open_reader(
    source: SourceLike,
    config: ReaderConfig | Mapping[str, Any] | None = None,
) -> CSVReader:
    """
    Return a ``SeekableCSVReader`` when the source can seek, else a ``CSVReader``.
    """
    if not isinstance(config, ReaderConfig):
        config = ReaderConfig.from_options(config)
    byte_source = _as_byte_source(source, config.read_chunk_size)
    cls = SeekableCSVReader if byte_source.seekable() else CSVReader
    return cls(byte_source, config)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _as_byte_source(source: SourceLike, chunk_size: int) -> ByteSource:
    if isinstance(source, ByteSource):
        return source
    if isinstance(source, (str, os.PathLike)):
        return StreamByteSource.open(Path(source), chunk_size=chunk_size)
    return StreamByteSource(source, chunk_size=chunk_size)


def _configured_separator(value: str | bytes, encoding: str) -> bytes:
    if isinstance(value, bytes):
        return value
    return encode_text(value, encoding)


def _symbol(raw: bytes, file_encoding: str | None) -> str:
    """Decode a guessed delimiter or enclosure into text."""
    return raw.decode(file_encoding if is_multibyte(file_encoding) else "latin-1")
