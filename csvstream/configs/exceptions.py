"""
Custom exceptions for the csvstream reader.

Hierarchy:
    CSVReaderError
    ├── SourceOpenError            The byte source could not be opened.
    ├── EmptySourceError           The byte source yielded no bytes at all.
    ├── InvalidOptionError         Unknown option, or an option of the wrong type/value.
    ├── UnsupportedEncodingForLineDetectionError
    │                              Multi-byte encoding without a line terminator table.
    ├── DecodeError                A line could not be transcoded.
    ├── MalformedRowError          The cell tokenizer rejected a line.
    ├── SchemaError                Header row could not be mapped to field names.
    │   ├── DuplicateFieldNameError
    │   ├── MissingRequiredFieldsError
    │   └── InvalidNormalizerOutputError
    └── SeekError                  Seek failed, or rewind requested on a forward-only source.

Every error raised while a reader is being constructed aborts construction;
no partially-usable reader is ever returned.
"""

from __future__ import annotations


class CSVReaderError(Exception):
    """
    Base class for all reader errors.

    Args:
        message: Human-readable description of the failure.
        source: Name of the byte source (path, ``<stdin>``...) if known.
    """

    def __init__(self, message: str, source: str | None = None) -> None:
        super().__init__(message)
        self.source = source

    def __str__(self) -> str:
        base = super().__str__()
        if self.source:
            return f"{base} | source={self.source}"
        return base


class SourceOpenError(CSVReaderError):
    """Raised when the underlying stream cannot be opened or accessed."""


class EmptySourceError(CSVReaderError):
    """Raised when the byte source has no bytes at all."""


class InvalidOptionError(CSVReaderError):
    """
    Raised for an unknown option name or an option of the wrong type or value.

    Args:
        message: Human-readable description.
        option: Name of the offending option.
    """

    def __init__(self, message: str, option: str | None = None) -> None:
        super().__init__(message)
        self.option = option

    def __str__(self) -> str:
        base = super().__str__()
        if self.option:
            return f"{base} | option={self.option}"
        return base


class UnsupportedEncodingForLineDetectionError(CSVReaderError):
    """
    Raised when a multi-byte encoding has no known line terminator.

    Args:
        message: Human-readable description.
        source: Name of the byte source.
        encoding: The encoding that could not be handled.
    """

    def __init__(
        self,
        message: str,
        source: str | None = None,
        encoding: str | None = None,
    ) -> None:
        super().__init__(message, source)
        self.encoding = encoding

    def __str__(self) -> str:
        base = super().__str__()
        if self.encoding:
            return f"{base} | encoding={self.encoding}"
        return base


class DecodeError(CSVReaderError):
    """
    Raised when a line (or header) cannot be transcoded.

    Distinct from end-of-stream: the line exists but its bytes are not valid
    in the file encoding, or its text is not representable in the internal
    encoding.

    Args:
        message: Human-readable description.
        source: Name of the byte source.
        encoding: Encoding pair involved, e.g. ``"UTF-8 -> cp1252"``.
        line_number: 1-based physical line number, if known.
    """

    def __init__(
        self,
        message: str,
        source: str | None = None,
        encoding: str | None = None,
        line_number: int | None = None,
    ) -> None:
        super().__init__(message, source)
        self.encoding = encoding
        self.line_number = line_number

    def __str__(self) -> str:
        base = super().__str__()
        parts = []
        if self.encoding:
            parts.append(f"encoding={self.encoding}")
        if self.line_number is not None:
            parts.append(f"line={self.line_number}")
        if parts:
            return f"{base} | {' '.join(parts)}"
        return base


class MalformedRowError(CSVReaderError):
    """
    Raised when the cell tokenizer rejects a line.

    Args:
        message: Human-readable description.
        source: Name of the byte source.
        line_number: 1-based physical line number where the row started.
    """

    def __init__(
        self,
        message: str,
        source: str | None = None,
        line_number: int | None = None,
    ) -> None:
        super().__init__(message, source)
        self.line_number = line_number

    def __str__(self) -> str:
        base = super().__str__()
        if self.line_number is not None:
            return f"{base} | line={self.line_number}"
        return base


class SchemaError(CSVReaderError):
    """Base class for header-row mapping failures."""


class DuplicateFieldNameError(SchemaError):
    """
    Raised when two header columns resolve to the same final field name.

    Args:
        message: Human-readable description.
        field_name: The duplicated name (after trim, normalizer and aliasing).
    """

    def __init__(self, message: str, field_name: str | None = None) -> None:
        super().__init__(message)
        self.field_name = field_name

    def __str__(self) -> str:
        base = super().__str__()
        if self.field_name:
            return f"{base} | field={self.field_name}"
        return base


class MissingRequiredFieldsError(SchemaError):
    """
    Raised when ``include_fields`` names are absent from the header row.

    Args:
        message: Human-readable description.
        missing: Every missing name, in filter order.
    """

    def __init__(self, message: str, missing: tuple[str, ...] = ()) -> None:
        super().__init__(message)
        self.missing = tuple(missing)

    def __str__(self) -> str:
        base = super().__str__()
        if self.missing:
            return f"{base} | missing={', '.join(self.missing)}"
        return base


class InvalidNormalizerOutputError(SchemaError):
    """
    Raised when ``field_normalizer`` returns something other than a non-empty string.

    Args:
        message: Human-readable description.
        raw_name: The header name passed to the normalizer.
    """

    def __init__(self, message: str, raw_name: str | None = None) -> None:
        super().__init__(message)
        self.raw_name = raw_name

    def __str__(self) -> str:
        base = super().__str__()
        if self.raw_name is not None:
            return f"{base} | name={self.raw_name!r}"
        return base


class SeekError(CSVReaderError):
    """Raised when seeking fails or a rewind is requested on a forward-only source."""
