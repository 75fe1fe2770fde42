"""
Header row → field map.

Runs exactly once per reader, over the first tokenized line. For each
column, in order:

  1. Trim surrounding whitespace and null bytes; skip the column if nothing
     is left.
  2. Pass the name through ``normalizer`` (if given). The result must be a
     non-empty ``str``.
  3. Rename through ``aliases``, looked up by the lower-cased name.
  4. With an ``include`` filter, drop names that are not in it.
  5. Reject a name that an earlier column already produced.

Afterwards every name in ``include`` must have been mapped; all missing
names are reported together, in filter order.
"""

from __future__ import annotations

from collections.abc import Callable, Collection, Iterator, Mapping, Sequence

from csvstream.configs.exceptions import (
    DuplicateFieldNameError,
    InvalidNormalizerOutputError,
    MissingRequiredFieldsError,
)
from csvstream.transformers.normalizers import trim


class FieldMap(Mapping[str, int]):
    """
    Immutable, ordered mapping of field name → column index.

    Iteration order is header column order.
    """

    __slots__ = ("_columns",)

    def __init__(self, columns: Mapping[str, int] | None = None) -> None:
        self._columns: dict[str, int] = dict(columns or {})

    def __getitem__(self, name: str) -> int:
        return self._columns[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._columns)

    def __len__(self) -> int:
        return len(self._columns)

    def __repr__(self) -> str:
        return f"FieldMap({self._columns!r})"

    def names(self) -> list[str]:
        """Field names in column order."""
        return list(self._columns)


def build_field_map(
    row: Sequence[str | None],
    *,
    normalizer: Callable[[str], str] | None = None,
    aliases: Mapping[str, str] | None = None,
    include: Collection[str] | None = None,
) -> FieldMap:
    """
    Map header names to column indices.

    Args:
        row:        Tokenized header row.
        normalizer: Optional name hook; must return a non-empty ``str``.
        aliases:    Rename table keyed by lower-cased header name.
        include:    Names to keep. Every one of them is required. Empty or
                    ``None`` keeps every column.

    Returns:
        FieldMap in column order.

    Raises:
        InvalidNormalizerOutputError: If ``normalizer`` returns anything but
            a non-empty string.
        DuplicateFieldNameError: If two columns end up with the same name.
        MissingRequiredFieldsError: If ``include`` names are not in the header.
    """
    alias_table = {k.lower(): v for k, v in (aliases or {}).items()}
    wanted = list(dict.fromkeys(include or ()))
    wanted_set = set(wanted)

    columns: dict[str, int] = {}
    for index, raw in enumerate(row):
        if raw is None:
            continue
        name = trim(raw)
        if not name:
            continue

        if normalizer is not None:
            normalized = normalizer(name)
            if not isinstance(normalized, str) or not normalized:
                raise InvalidNormalizerOutputError(
                    "The 'field_normalizer' hook must return a non-empty string, "
                    f"got {normalized!r}",
                    raw_name=name,
                )
            name = normalized

        name = alias_table.get(name.lower(), name)

        if wanted_set and name not in wanted_set:
            continue
        if name in columns:
            raise DuplicateFieldNameError(
                f'Duplicate field "{name}" detected', field_name=name
            )
        columns[name] = index

    missing = tuple(name for name in wanted if name not in columns)
    if missing:
        raise MissingRequiredFieldsError(
            f"The following column headers are missing: {', '.join(missing)}",
            missing=missing,
        )

    return FieldMap(columns)
