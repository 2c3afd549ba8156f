"""
Row stream for CSV-backed external tables.

Streams rows from an ``AbstractSource`` through ``normalize_cell`` and yields
one ``dict[column_name, value]`` per row, ready for ``cursor.executemany()``
against ``ExternalTable.insert_sql``.

  - **Lazy**: one row in memory at a time.
  - **Positional**: the n-th CSV field feeds the n-th table column, so the
    column names may differ from the raw headers (they are sanitized).
  - **Padded**: a short row binds ``None`` for its missing trailing columns;
    extra fields are ignored.
"""

from __future__ import annotations

from typing import Any, Iterator

from tablebatch.discovery.base import AbstractSource
from tablebatch.models.models import TableColumn
from tablebatch.transformers.normalizers import normalize_cell


def generate_rows(
    source: AbstractSource,
    columns: list[TableColumn],
) -> Iterator[dict[str, Any]]:
    """
    Yield named-bind dicts for every data row of an opened ``source``.

    Args:
        source:  An already-opened source.  ``rows()`` rewinds on each call.
        columns: Table columns in CSV field order.
    """
    col_info = [(col.name, col.data_type) for col in columns]

    for raw_row in source.rows():
        yield {
            name: normalize_cell(raw_row[i] if i < len(raw_row) else None, data_type)
            for i, (name, data_type) in enumerate(col_info)
        }
