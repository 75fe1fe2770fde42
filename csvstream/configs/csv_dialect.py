"""
CSV dialect construction for the cell tokenizer.

Each reader builds its own ``csv.Dialect`` subclass from the resolved
delimiter and enclosure instead of registering a global named dialect, so
two readers over differently formatted files never share state.

The dialect never carries an ``escapechar``. ``csv`` would drop the escape
character everywhere, including unquoted cells; the row tokenizer handles
the escape itself, only inside an enclosure, and keeps it in the value.

The dialect is lenient (``strict = False``): malformed quoting is handled
the way the ``csv`` module handles it and is not repaired further.

Usage:
    import csv
    from csvstream.configs.csv_dialect import build_dialect

    dialect = build_dialect(delimiter=";", enclosure='"')
    fields = next(csv.reader([line], dialect=dialect))
"""

from __future__ import annotations

import csv

from csvstream.configs.exceptions import InvalidOptionError


class LenientDialect(csv.Dialect):
    """
    Base dialect for the reader.

    Comma-delimited, double-quote enclosed, doubled-quote escaping. Line
    terminators never reach ``csv`` (the row tokenizer strips and masks
    them), so ``lineterminator`` only matters for writing.
    """

    delimiter = ","
    quotechar = '"'
    escapechar = None
    doublequote = True
    skipinitialspace = False
    lineterminator = "\r\n"
    quoting = csv.QUOTE_MINIMAL
    strict = False


def build_dialect(delimiter: str, enclosure: str) -> type[csv.Dialect]:
    """
    Return a ``LenientDialect`` subclass for the given format characters.

    Args:
        delimiter: One-character field delimiter.
        enclosure: One-character enclosure, or ``""`` to disable quoting.

    Raises:
        InvalidOptionError: If the ``csv`` module rejects the combination.
    """
    attrs: dict[str, object] = {"delimiter": delimiter}
    if enclosure:
        attrs["quotechar"] = enclosure
        attrs["quoting"] = csv.QUOTE_MINIMAL
    else:
        attrs["quotechar"] = None
        attrs["quoting"] = csv.QUOTE_NONE

    dialect = type("ReaderDialect", (LenientDialect,), attrs)
    try:
        # csv validates dialect attributes when the class is instantiated.
        dialect()
    except (TypeError, ValueError, csv.Error) as e:
        raise InvalidOptionError(
            f"Invalid CSV format characters delimiter={delimiter!r} "
            f"enclosure={enclosure!r}: {e}"
        ) from e
    return dialect
