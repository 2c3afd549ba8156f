"""
Core data models for table-bound statement execution.

TableColumn   : one column of an external table (name + Oracle type).
ExternalTable : caller-supplied tabular data bound in place of a scalar parameter.
Bound/UNBOUND : the two states a binding slot can be in.
BatchEntry    : immutable snapshot of every slot, queued for one execution.
ExecutionOutcome, BatchFailure: what an execution hands back.

Named bind strategy
-------------------
Rows of an external table are dicts keyed by column name, staged with
Oracle named binds:

    INSERT INTO ORA$PTT_ORDERS (ORDER_ID, AMOUNT) VALUES (:ORDER_ID, :AMOUNT)

The executor itself never looks inside an ``ExternalTable``; only the
staging layer does.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Iterator, Literal, Sequence


# Supported Oracle data type labels for staging columns.
OracleDataType = Literal["VARCHAR2", "NUMBER", "DATE", "TIMESTAMP", "UNKNOWN"]

# Batch error-isolation policies.
ErrorIsolation = Literal["fail_fast", "continue_on_error"]
FAIL_FAST: ErrorIsolation = "fail_fast"
CONTINUE_ON_ERROR: ErrorIsolation = "continue_on_error"


@dataclass(slots=True)
class TableColumn:
    """
    A single column of an external table.

    Attributes:
        name:      Oracle column name (already sanitized).
        data_type: Oracle data type label used for staging DDL and binds.
        length:    Declared max character length for VARCHAR2; 0 if unknown.
        nullable:  Whether the staging column accepts NULLs.
    """

    name: str
    data_type: OracleDataType = "VARCHAR2"
    length: int = 0
    nullable: bool = True

    @property
    def bind_name(self) -> str:
        """The Oracle named bind placeholder, e.g. ``:ORDER_ID``."""
        return f":{self.name}"


@dataclass
class ExternalTable:
    """
    Externally supplied tabular data, bound to a statement by name.

    Attributes:
        name:    Table name the statement text refers to (uppercased).
        columns: Ordered column definitions.
        source:  Zero-argument callable returning a fresh iterable of row dicts.
                 Called once per staging, so the same table can be bound into
                 several batch entries.
    """

    name: str
    columns: list[TableColumn]
    source: Callable[[], Iterable[dict[str, Any]]] = field(repr=False)

    _insert_sql: str | None = field(default=None, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        self.name = self.name.strip().upper()

    @classmethod
    def from_rows(
        cls,
        name: str,
        columns: Sequence[TableColumn | str],
        rows: Iterable[dict[str, Any]],
    ) -> "ExternalTable":
        """
        Build a table from in-memory rows.  ``rows`` is materialised once.

        Plain strings in ``columns`` become VARCHAR2 columns.
        """
        cols = [c if isinstance(c, TableColumn) else TableColumn(name=c) for c in columns]
        data = list(rows)
        return cls(name=name, columns=cols, source=lambda: data)

    @property
    def column_names(self) -> list[str]:
        return [c.name for c in self.columns]

    def rows(self) -> Iterator[dict[str, Any]]:
        """Return a fresh iterator over the table's rows."""
        return iter(self.source())

    @property
    def insert_sql(self) -> str:
        """
        Named-bind INSERT statement that loads this table's staging copy.

        Cached after first access.

        Raises:
            ValueError: If ``columns`` is empty.
        """
        if self._insert_sql is not None:
            return self._insert_sql

        if not self.columns:
            raise ValueError(f"Cannot generate insert_sql for {self.name}: columns is empty.")

        col_list = ", ".join(c.name for c in self.columns)
        bind_list = ", ".join(c.bind_name for c in self.columns)
        self._insert_sql = f"INSERT INTO {self.name} ({col_list})\nVALUES ({bind_list})"
        return self._insert_sql


class _Unbound:
    """Marker for a binding slot with no table."""

    _instance: "_Unbound | None" = None

    def __new__(cls) -> "_Unbound":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNBOUND"

    def __bool__(self) -> bool:
        return False


UNBOUND = _Unbound()


@dataclass(frozen=True, slots=True)
class Bound:
    """A binding slot holding a table."""

    table: ExternalTable


SlotValue = Bound | _Unbound


@dataclass(frozen=True, slots=True)
class BatchEntry:
    """One queued execution: a table per slot, in ordinal order."""

    tables: tuple[ExternalTable, ...]

    def __len__(self) -> int:
        return len(self.tables)


@dataclass
class ExecutionOutcome:
    """
    Result of the generic ``execute()``.

    Attributes:
        update_count: Rows affected; 0 when the statement produced a result set
                      or reported no count.
        response:     Open response holding the result set, or ``None``.
                      The caller must close it.
    """

    update_count: int = 0
    response: Any = None

    @property
    def has_result_set(self) -> bool:
        return self.response is not None


@dataclass(frozen=True)
class BatchFailure:
    """
    A batch entry that failed under continue-on-error.

    Attributes:
        position: 1-based entry position.
        size:     Number of entries in the batch.
        error:    The wrapped execution error.
    """

    position: int
    size: int
    error: Exception
