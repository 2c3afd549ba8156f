"""
Private temporary table staging.

Each external table bound to a statement is materialised on the executing
session as an Oracle private temporary table (PTT), named exactly as the
statement refers to it.  PTTs are session-private, so concurrent sessions
staging the same name never collide.

DDL builders are pure functions; ``create_staging``, ``load_staging`` and
``drop_staged`` run them on a cursor.

    CREATE PRIVATE TEMPORARY TABLE ORA$PTT_ORDERS (
        ORDER_ID NUMBER NULL,
        NOTE VARCHAR2(4000 CHAR) NULL
    ) ON COMMIT PRESERVE DEFINITION

``ON COMMIT PRESERVE DEFINITION`` keeps the table alive across the
statement's own commit; the runner drops it explicitly when the response
is closed.
"""

from __future__ import annotations

import logging
from itertools import islice
from typing import Any, Iterator

from tablebatch.configs.config import ORACLE_MAX_VARCHAR2_CHAR, ExecutorConfig
from tablebatch.configs.exceptions import ConfigurationError
from tablebatch.loaders.binds import build_input_sizes
from tablebatch.models.models import ExternalTable, TableColumn
from tablebatch.utils.identifiers import to_staging_name

logger = logging.getLogger(__name__)


def column_definition(col: TableColumn, config: ExecutorConfig) -> str:
    """
    DDL fragment for one staging column, e.g. ``NOTE VARCHAR2(150 CHAR) NULL``.

    Raises:
        ConfigurationError: If a VARCHAR2 length exceeds 4000 CHAR or the type
            is not recognised.
    """
    nullable_clause = "NULL" if col.nullable else "NOT NULL"
    return f"{col.name} {_type_clause(col, config)} {nullable_clause}"


def _type_clause(col: TableColumn, config: ExecutorConfig) -> str:
    if col.data_type in ("VARCHAR2", "UNKNOWN"):
        if col.length > ORACLE_MAX_VARCHAR2_CHAR:
            raise ConfigurationError(
                f"Column '{col.name}' length {col.length} exceeds VARCHAR2 limit "
                f"of {ORACLE_MAX_VARCHAR2_CHAR} CHAR."
            )
        return f"VARCHAR2({config.effective_max_varchar2(col.length)} CHAR)"

    if col.data_type in ("NUMBER", "DATE", "TIMESTAMP"):
        return col.data_type

    raise ConfigurationError(f"Unrecognised data_type '{col.data_type}' on column '{col.name}'.")


def build_create_staging(table: ExternalTable, config: ExecutorConfig) -> str:
    """
    ``CREATE PRIVATE TEMPORARY TABLE`` statement for ``table``.

    Raises:
        ConfigurationError: If the name is not a valid staging name, the table
            has no columns, or a column cannot be defined.
    """
    name = to_staging_name(table.name, config)
    if not table.columns:
        raise ConfigurationError(f"Cannot stage {name}: no columns defined.")

    cols_sql = ",\n".join(f"    {column_definition(c, config)}" for c in table.columns)
    return (
        f"CREATE PRIVATE TEMPORARY TABLE {name} (\n"
        f"{cols_sql}\n"
        f") ON COMMIT PRESERVE DEFINITION"
    )


def build_drop_staging(name: str) -> str:
    return f"DROP TABLE {name}"


def _chunks(rows: Iterator[dict[str, Any]], size: int) -> Iterator[list[dict[str, Any]]]:
    while True:
        chunk = list(islice(rows, size))
        if not chunk:
            return
        yield chunk


def create_staging(cursor, table: ExternalTable, config: ExecutorConfig) -> str:
    """Create the empty staging table for ``table``; return its name."""
    cursor.execute(build_create_staging(table, config))
    return table.name


def load_staging(cursor, table: ExternalTable, config: ExecutorConfig) -> int:
    """
    Load ``table``'s rows into its (already created) staging table.

    Rows are sent with ``executemany`` in chunks of ``config.batch_size``,
    with bind types declared up front through ``setinputsizes``.

    Returns:
        Number of rows loaded.
    """
    cursor.bindarraysize = config.batch_size
    cursor.setinputsizes(**build_input_sizes(table))

    loaded = 0
    for chunk in _chunks(table.rows(), config.batch_size):
        cursor.executemany(table.insert_sql, chunk)
        loaded += len(chunk)

    logger.debug("Staged %d row(s) into %s", loaded, table.name)
    return loaded


def drop_staged(cursor, names: list[str]) -> None:
    """Drop staging tables in reverse creation order."""
    for name in reversed(names):
        cursor.execute(build_drop_staging(name))
