"""
Named bind type mapping for ``cursor.setinputsizes()`` during staging.

``oracledb`` is imported lazily so DDL previews (``dry-run``) and the
statement core never need the driver loaded.

Mapping rules:
  - VARCHAR2  → ``oracledb.DB_TYPE_VARCHAR``
  - NUMBER    → ``oracledb.DB_TYPE_NUMBER``
  - DATE      → ``oracledb.DB_TYPE_DATE``
  - TIMESTAMP → ``oracledb.DB_TYPE_TIMESTAMP``
  - UNKNOWN   → ``oracledb.DB_TYPE_VARCHAR``
"""

from __future__ import annotations

from tablebatch.models.models import ExternalTable, OracleDataType


def oracle_type_for(data_type: OracleDataType) -> object:
    """
    Return the ``oracledb`` DB type constant for a staging column type.

    Raises:
        KeyError: If ``data_type`` is not mapped.
    """
    import oracledb

    type_map: dict[OracleDataType, object] = {
        "VARCHAR2":  oracledb.DB_TYPE_VARCHAR,
        "NUMBER":    oracledb.DB_TYPE_NUMBER,
        "DATE":      oracledb.DB_TYPE_DATE,
        "TIMESTAMP": oracledb.DB_TYPE_TIMESTAMP,
        "UNKNOWN":   oracledb.DB_TYPE_VARCHAR,
    }

    if data_type not in type_map:
        raise KeyError(
            f"No Oracle bind type mapping for data_type '{data_type}'. "
            f"Valid types: {list(type_map)}"
        )
    return type_map[data_type]


def build_input_sizes(table: ExternalTable) -> dict[str, object]:
    """``**kwargs`` for ``cursor.setinputsizes()``: column name → DB type."""
    return {col.name: oracle_type_for(col.data_type) for col in table.columns}
