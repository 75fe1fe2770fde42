"""
Cell-level value normalizers.

Each normalizer is a **pure function** over a tokenized cell.

Rules applied by ``normalize_cell``:
  1. Missing cell (short row, or ``None`` from the tokenizer) → ``None``
  2. Trim leading/trailing ``" \\t\\n\\r\\0\\x0b"``
  3. Empty after trimming → ``None``

Header names go through the same trim (``trim``) but an empty name is
skipped by the field mapper rather than mapped to ``None``.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence

# ---------------------------------------------------------------------------
# Patterns
# ---------------------------------------------------------------------------
TRIM_CHARS: str = " \t\n\r\0\x0b"


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def trim(value: str) -> str:
    """Strip surrounding whitespace and null bytes."""
    return value.strip(TRIM_CHARS)


def is_empty(value: str | None) -> bool:
    """Return True if the cell should be treated as NULL."""
    return value is None or not trim(value)


def normalize_cell(raw: str | None) -> str | None:
    """
    Normalize a single CSV cell value.

    Args:
        raw: Raw cell text, or ``None`` when the row has no such column.

    Returns:
        The trimmed string, or ``None`` for missing / empty cells.
    """
    if is_empty(raw):
        return None
    return trim(raw)


def project_row(
    fields: Sequence[str | None],
    field_map: Mapping[str, int],
) -> dict[str, str | None]:
    """
    Build a record from a tokenized row.

    Every mapped field gets a key. Columns past the end of a short row map
    to ``None``; extra columns beyond the header are ignored.
    """
    width = len(fields)
    return {
        name: normalize_cell(fields[index]) if index < width else None
        for name, index in field_map.items()
    }
