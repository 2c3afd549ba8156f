"""
CSV dialect used when an external table is read from a file.

``tablebatch_strict`` is ``csv.excel`` with strict quoting, so a malformed
row raises ``csv.Error`` at read time instead of being staged half-parsed.

BOM handling is an encoding concern, not a dialect one: open files with
``encoding='utf-8-sig'`` and ``newline=''``.
"""

from __future__ import annotations

import csv

DIALECT_NAME: str = "tablebatch_strict"


class StrictDialect(csv.excel):
    """Comma-delimited, double-quoted, raises on malformed rows."""

    strict: bool = True
    skipinitialspace: bool = True


def register_dialect() -> None:
    """Register ``tablebatch_strict``.  Safe to call repeatedly."""
    if DIALECT_NAME not in csv.list_dialects():
        csv.register_dialect(DIALECT_NAME, StrictDialect)
