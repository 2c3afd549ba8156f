"""
CSV reader and CSV-backed external tables.

``CSVReader`` handles:
- UTF-8 with or without BOM (``utf-8-sig``).
- CRLF and LF line endings (``newline=''``).
- Strict dialect: malformed rows raise ``SourceError``.
- Rewinding, so one open file can be iterated more than once.

``csv_table`` wraps a file as an ``ExternalTable`` whose rows re-open the
file on every iteration.
"""

from __future__ import annotations

import csv
from pathlib import Path
from typing import Any, Iterator, Mapping

from tablebatch.configs.config import ExecutorConfig
from tablebatch.configs.csv_dialect import DIALECT_NAME, register_dialect
from tablebatch.configs.exceptions import SourceError
from tablebatch.discovery.base import AbstractSource
from tablebatch.models.models import ExternalTable, OracleDataType, TableColumn
from tablebatch.transformers.row_generator import generate_rows
from tablebatch.utils.identifiers import to_column_name, to_staging_name


class CSVReader(AbstractSource):
    """Generic CSV file reader."""

    def __init__(self, path: Path | str) -> None:
        super().__init__(path)
        self._file = None
        self._headers: list[str] | None = None

    def open(self) -> None:
        """
        Open the file and read the header row.

        Raises:
            SourceError: If the file cannot be opened or has no header row.
        """
        register_dialect()
        try:
            self._file = open(self.path, encoding="utf-8-sig", newline="")
        except OSError as e:
            raise SourceError(f"Cannot open {self.path}: {e}", source_path=str(self.path)) from e

        reader = csv.reader(self._file, dialect=DIALECT_NAME)
        try:
            raw_headers = next(reader)
        except StopIteration:
            self.close()
            raise SourceError(f"CSV file is empty: {self.path}", source_path=str(self.path))
        except csv.Error as e:
            self.close()
            raise SourceError(
                f"Malformed CSV header in {self.path}: {e}", source_path=str(self.path)
            ) from e

        self._headers = [h.strip() for h in raw_headers]

    def headers(self) -> list[str]:
        if self._headers is None:
            raise RuntimeError("CSVReader.open() must be called before headers().")
        return self._headers

    def rows(self) -> Iterator[list[str]]:
        """
        Yield each data row, rewinding to the first data row on each call.

        Raises:
            SourceError: If a malformed row is encountered.
        """
        if self._file is None:
            raise RuntimeError("CSVReader.open() must be called before rows().")

        self._file.seek(0)
        reader = csv.reader(self._file, dialect=DIALECT_NAME)
        next(reader)  # header

        try:
            for row in reader:
                if row:
                    yield row
        except csv.Error as e:
            raise SourceError(f"Malformed row in {self.path}: {e}", source_path=str(self.path)) from e

    def close(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None


def csv_table(
    name: str,
    path: Path | str,
    config: ExecutorConfig,
    types: Mapping[str, OracleDataType] | None = None,
) -> ExternalTable:
    """
    Build an ``ExternalTable`` backed by a CSV file.

    Headers are read once now and sanitized into column names.  Every column
    is VARCHAR2 unless ``types`` maps its sanitized name to another type.

    Args:
        name:   Staging table name the statement refers to (validated against
                ``config.staging_prefix``).
        path:   CSV file path.
        config: Executor configuration.
        types:  Optional ``{column_name: data_type}`` overrides.

    Raises:
        ConfigurationError: If ``name`` is not a valid staging table name.
        SourceError:        If the file cannot be opened or a header is blank.
    """
    table_name = to_staging_name(name, config)
    path = Path(path)
    overrides = {k.upper(): v for k, v in (types or {}).items()}

    with CSVReader(path) as source:
        headers = source.headers()

    columns = []
    for position, header in enumerate(headers, start=1):
        try:
            col_name = to_column_name(header, config)
        except ValueError as e:
            raise SourceError(
                f"Header {position} cannot be used as a column name: {e}", source_path=str(path)
            ) from e
        columns.append(TableColumn(name=col_name, data_type=overrides.get(col_name, "VARCHAR2")))

    def _rows() -> Iterator[dict[str, Any]]:
        with CSVReader(path) as source:
            yield from generate_rows(source, columns)

    return ExternalTable(name=table_name, columns=columns, source=_rows)
