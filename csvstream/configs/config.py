"""
Reader configuration.

All tuneable constants live here. Import from this module everywhere;
never hardcode buffer sizes or sample sizes inline.

Usage:
    from csvstream.configs.config import ReaderConfig
    cfg = ReaderConfig()                                   # defaults
    cfg = ReaderConfig(delimiter=";", skip_empty_lines=True)
    cfg = ReaderConfig.from_options({"file_encoding": "cp1252"})

Environment overrides (optional) can be loaded via .env / os.environ before
constructing the config object; this module does not load .env itself.
"""

from __future__ import annotations

import dataclasses
import os
import sys
from collections.abc import Callable, Collection, Mapping
from dataclasses import dataclass, field
from typing import Any, Literal

from csvstream.configs.exceptions import InvalidOptionError
from csvstream.utils.validation import (
    validate_bool,
    validate_callable,
    validate_char,
    validate_encoding_name,
    validate_line_separator,
    validate_positive_int,
    validate_str_collection,
    validate_str_mapping,
)


DEFAULT_READ_CHUNK_SIZE: int = 4096
"""Bytes requested from the underlying stream per read while looking for a line end."""

DEFAULT_SNIFF_SAMPLE_SIZE: int = 16384
"""Bytes inspected when guessing encoding, line separator, delimiter and enclosure."""

DEFAULT_ESCAPE: str = "\\"

DEFAULT_DELIMITER: str = ","
"""Used when no delimiter is configured and none could be guessed."""

DEFAULT_ENCLOSURE: str = '"'
"""Used when no enclosure is configured and none could be guessed."""

DecodeErrorPolicy = Literal["ignore", "replace", "strict"]
DECODE_ERROR_POLICIES: tuple[str, ...] = ("ignore", "replace", "strict")


def _env_int(key: str, default: int) -> int:
    raw = os.environ.get(key)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise InvalidOptionError(
            f"Environment variable {key} must be an integer, got {raw!r}."
        ) from e


@dataclass(slots=True)
class ReaderConfig:
    """
    Runtime configuration for a ``CSVReader``.

    Every attribute left at ``None`` is detected from the stream.

    Attributes:
        debug: If True, every detection decision is logged at DEBUG level.
        internal_encoding: Encoding that file bytes are transcoded into before
            decoding to ``str``. Defaults to ``CSVSTREAM_INTERNAL_ENCODING`` or
            the interpreter's default text encoding.
        skip_empty_lines: Suppress blank-line steps during iteration.
        delimiter: Field delimiter override (one character).
        enclosure: Field enclosure override (one character, or ``""`` for none).
        escape: Escape character handed to the tokenizer (``""`` for none).
        file_encoding: File encoding override; beats BOM and heuristics.
        line_separator: Line terminator override. ``bytes`` are used as-is,
            ``str`` is encoded with the file encoding.
        read_chunk_size: Buffering granularity for line reads.
        field_aliases: Header rename table; keys are matched case-insensitively.
        field_normalizer: Hook that receives a trimmed header name and returns
            the normalized name.
        include_fields: Field names to keep; every one of them is also required.
        decode_errors: Data-line decode policy: ``"ignore"`` drops bad bytes,
            ``"replace"`` substitutes them, ``"strict"`` raises ``DecodeError``.
            Header lines are always decoded strictly.
        sniff_sample_size: Bytes inspected during detection.
        detect_order: Encodings tried after ``internal_encoding`` when the file
            encoding has to be guessed. ``None`` asks the statistical detector.
    """

    debug: bool = False
    internal_encoding: str = field(
        default_factory=lambda: os.environ.get(
            "CSVSTREAM_INTERNAL_ENCODING", sys.getdefaultencoding()
        )
    )
    skip_empty_lines: bool = False
    delimiter: str | None = None
    enclosure: str | None = None
    escape: str = DEFAULT_ESCAPE
    file_encoding: str | None = None
    line_separator: str | bytes | None = None
    read_chunk_size: int = field(
        default_factory=lambda: _env_int("CSVSTREAM_READ_CHUNK_SIZE", DEFAULT_READ_CHUNK_SIZE)
    )
    field_aliases: Mapping[str, str] | None = None
    field_normalizer: Callable[[str], str] | None = None
    include_fields: Collection[str] | None = None
    decode_errors: DecodeErrorPolicy = "ignore"
    sniff_sample_size: int = field(
        default_factory=lambda: _env_int("CSVSTREAM_SNIFF_SAMPLE_SIZE", DEFAULT_SNIFF_SAMPLE_SIZE)
    )
    detect_order: Collection[str] | None = None

    def __post_init__(self) -> None:
        validate_bool("debug", self.debug)
        validate_bool("skip_empty_lines", self.skip_empty_lines)
        validate_encoding_name("internal_encoding", self.internal_encoding)
        validate_char("escape", self.escape, allow_empty=True)
        validate_positive_int("read_chunk_size", self.read_chunk_size)
        validate_positive_int("sniff_sample_size", self.sniff_sample_size)

        if self.delimiter is not None:
            validate_char("delimiter", self.delimiter)
        if self.enclosure is not None:
            validate_char("enclosure", self.enclosure, allow_empty=True)
        if self.delimiter is not None and self.delimiter in (self.enclosure, self.escape):
            raise InvalidOptionError(
                f"The 'delimiter' option {self.delimiter!r} collides with the "
                "enclosure or escape character.",
                option="delimiter",
            )
        if self.file_encoding is not None:
            validate_encoding_name("file_encoding", self.file_encoding)
        if self.line_separator is not None:
            validate_line_separator("line_separator", self.line_separator)

        if self.decode_errors not in DECODE_ERROR_POLICIES:
            raise InvalidOptionError(
                f"The 'decode_errors' option must be one of {DECODE_ERROR_POLICIES}, "
                f"got {self.decode_errors!r}.",
                option="decode_errors",
            )

        if self.field_aliases is not None:
            validate_str_mapping("field_aliases", self.field_aliases)
            self.field_aliases = {k.lower(): v for k, v in self.field_aliases.items()}
        if self.field_normalizer is not None:
            validate_callable("field_normalizer", self.field_normalizer)
        if self.include_fields is not None:
            validate_str_collection("include_fields", self.include_fields)
            # Keep caller order; it is the order missing names are reported in.
            self.include_fields = tuple(dict.fromkeys(self.include_fields))
        if self.detect_order is not None:
            validate_str_collection("detect_order", self.detect_order)
            for name in self.detect_order:
                validate_encoding_name("detect_order", name)
            self.detect_order = tuple(self.detect_order)

    @classmethod
    def from_options(cls, options: Mapping[str, Any] | None = None) -> "ReaderConfig":
        """
        Build a config from a loose option mapping.

        Unknown option names are rejected before anything is applied.

        Raises:
            InvalidOptionError: For an unknown name or an invalid value.
        """
        options = dict(options or {})
        known = {f.name for f in dataclasses.fields(cls)}
        unknown = sorted(set(options) - known)
        if unknown:
            raise InvalidOptionError(
                f"Unknown option(s): {', '.join(unknown)}",
                option=unknown[0],
            )
        return cls(**options)
