"""
Validation helpers for reader options.

These functions are called from ``ReaderConfig.__post_init__`` so that a bad
option is rejected before any byte of the source is read.

All functions raise ``InvalidOptionError`` on failure rather than returning
a boolean; callers are expected to let the exception propagate out of the
reader constructor.
"""

from __future__ import annotations

import codecs
from collections.abc import Collection, Mapping
from typing import Any

from csvstream.configs.exceptions import InvalidOptionError


def validate_bool(option: str, value: Any) -> None:
    """
    Assert that ``value`` is a real ``bool``.

    Raises:
        InvalidOptionError: If ``value`` is not ``True`` or ``False``.
    """
    if not isinstance(value, bool):
        raise InvalidOptionError(
            f"The '{option}' option must be a boolean, got {type(value).__name__}.",
            option=option,
        )


def validate_non_empty_str(option: str, value: Any) -> None:
    """
    Assert that ``value`` is a non-empty string.

    Raises:
        InvalidOptionError: If ``value`` is not a ``str`` or is empty.
    """
    if not (isinstance(value, str) and value):
        raise InvalidOptionError(
            f"The '{option}' option must be a non-empty string.",
            option=option,
        )


def validate_char(option: str, value: Any, allow_empty: bool = False) -> None:
    """
    Assert that ``value`` is a single-character string.

    The ``csv`` module only accepts one-character delimiters, quote and
    escape characters.

    Args:
        option:      Option name for error reporting.
        value:       Value to check.
        allow_empty: Also accept ``""`` (used for enclosure and escape).

    Raises:
        InvalidOptionError: If ``value`` is not a one-character string.
    """
    if not isinstance(value, str):
        raise InvalidOptionError(
            f"The '{option}' option must be a string, got {type(value).__name__}.",
            option=option,
        )
    if allow_empty and value == "":
        return
    if len(value) != 1:
        raise InvalidOptionError(
            f"The '{option}' option must be a single character, got {value!r}.",
            option=option,
        )


def validate_positive_int(option: str, value: Any) -> None:
    """
    Assert that ``value`` is an ``int`` greater than zero.

    Raises:
        InvalidOptionError: If ``value`` is not a positive int (bools rejected).
    """
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise InvalidOptionError(
            f"The '{option}' option must be a positive int, got {value!r}.",
            option=option,
        )


def validate_encoding_name(option: str, value: Any) -> None:
    """
    Assert that ``value`` names an encoding known to the ``codecs`` registry.

    Raises:
        InvalidOptionError: If ``value`` is empty or not a known encoding.
    """
    validate_non_empty_str(option, value)
    try:
        codecs.lookup(value)
    except LookupError as e:
        raise InvalidOptionError(
            f"The '{option}' option names an unknown encoding: {value!r}.",
            option=option,
        ) from e


def validate_line_separator(option: str, value: Any) -> None:
    """
    Assert that ``value`` is a non-empty ``str`` or ``bytes``.

    Raises:
        InvalidOptionError: If ``value`` is of another type or empty.
    """
    if not isinstance(value, (str, bytes)) or not value:
        raise InvalidOptionError(
            f"The '{option}' option must be a non-empty string or bytes.",
            option=option,
        )


def validate_str_mapping(option: str, value: Any) -> None:
    """
    Assert that ``value`` maps strings to non-empty strings.

    Raises:
        InvalidOptionError: If ``value`` is not a mapping of ``str`` to ``str``.
    """
    if not isinstance(value, Mapping):
        raise InvalidOptionError(
            f"The '{option}' option must be a mapping.",
            option=option,
        )
    for key, target in value.items():
        if not isinstance(key, str) or not (isinstance(target, str) and target):
            raise InvalidOptionError(
                f"The '{option}' option must map strings to non-empty strings, "
                f"got {key!r} -> {target!r}.",
                option=option,
            )


def validate_callable(option: str, value: Any) -> None:
    """
    Assert that ``value`` can be called.

    Raises:
        InvalidOptionError: If ``value`` is not callable.
    """
    if not callable(value):
        raise InvalidOptionError(
            f"The '{option}' option must be callable, such as a function or lambda.",
            option=option,
        )


def validate_str_collection(option: str, value: Any) -> None:
    """
    Assert that ``value`` is a collection of strings (but not a bare string).

    Raises:
        InvalidOptionError: If ``value`` is a ``str``/``bytes``, not a
            collection, or contains non-string items.
    """
    if isinstance(value, (str, bytes)) or not isinstance(value, Collection):
        raise InvalidOptionError(
            f"The '{option}' option must be a collection of strings.",
            option=option,
        )
    for item in value:
        if not isinstance(item, str):
            raise InvalidOptionError(
                f"The '{option}' option must only contain strings, got {item!r}.",
                option=option,
            )
