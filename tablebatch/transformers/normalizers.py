"""
Cell normalizers for CSV-backed external tables.

``normalize_cell`` turns a raw CSV string into the Python object bound for
a staging column of the given Oracle type:

  - empty / whitespace-only / null bytes only → ``None``
  - NUMBER    → ``Decimal`` (thousands separators dropped)
  - DATE      → ``datetime.date``
  - TIMESTAMP → ``datetime.datetime`` (timezone offset stripped)
  - VARCHAR2 / UNKNOWN → stripped ``str``

Unparseable NUMBER cells become ``None``.  Unparseable DATE/TIMESTAMP cells
are returned as the raw string so Oracle reports the bad value at bind time.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from tablebatch.models.models import OracleDataType

_NULL_BYTE_RE = re.compile(r"\x00")
_TZ_OFFSET_RE = re.compile(r"(Z|[+-]\d{2}:?\d{2})$")

_DATE_FMT = "%Y-%m-%d"
_TIMESTAMP_FMTS = (
    "%Y-%m-%dT%H:%M:%S.%f",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d %H:%M:%S.%f",
    "%Y-%m-%d %H:%M:%S",
)


def normalize_cell(raw: str | None, data_type: OracleDataType) -> Any:
    """Normalize one CSV cell for binding into a staging column."""
    if raw is None:
        return None
    value = _NULL_BYTE_RE.sub("", raw).strip()
    if not value:
        return None

    if data_type == "NUMBER":
        return _to_decimal(value)
    if data_type == "DATE":
        return _to_date(value)
    if data_type == "TIMESTAMP":
        return _to_datetime(value)
    return value


def _to_decimal(value: str) -> Decimal | None:
    try:
        return Decimal(value.replace(",", ""))
    except InvalidOperation:
        return None


def _to_date(value: str) -> date | str:
    try:
        return datetime.strptime(value[:10], _DATE_FMT).date()
    except ValueError:
        return value


def _to_datetime(value: str) -> datetime | str:
    cleaned = _TZ_OFFSET_RE.sub("", value)
    for fmt in _TIMESTAMP_FMTS:
        try:
            return datetime.strptime(cleaned, fmt)
        except ValueError:
            continue
    return value
