"""
Table-bound prepared statement.

A ``TableBasedStatement`` runs one SQL template whose parameters are whole
tables rather than scalar values.  Callers bind an ``ExternalTable`` to each
required name, then either execute once or queue the bindings and run them
as a batch.

Single execution::

    stmt = TableBasedStatement(ctx, runner, ["ORA$PTT_ORDERS", "ORA$PTT_KEYS"])
    stmt.set_object(1, orders)
    stmt.set_object(2, keys)
    rows = stmt.execute_update()

Batch::

    for orders, keys in pairs:
        stmt.set_object(1, orders)
        stmt.set_object(2, keys)
        stmt.add_to_batch()          # snapshots and clears the slots
    codes = stmt.run_batch()         # one code per entry; EXECUTE_FAILED on isolated failure

Error policy:
  - Binding errors (missing tables, bad ordinal, scalar setter, wrong value
    type) and ``add_batch(sql)`` raise immediately and are never isolated.
  - Anything the runner raises becomes ``DatabaseExecutionError``.  Inside
    ``run_batch`` that error either aborts the batch (``fail_fast``) or is
    recorded as ``EXECUTE_FAILED`` (``continue_on_error``).
  - The queue is cleared after every ``run_batch``, whichever way it ends.

Instances are not thread-safe; serialize calls per statement.
"""

from __future__ import annotations

import logging
from typing import Any, NoReturn, Sequence

from tablebatch.configs.config import EXECUTE_FAILED
from tablebatch.configs.exceptions import (
    ConfigurationError,
    DatabaseExecutionError,
    ScalarBindingNotSupportedError,
    StatementClosedError,
    UnsupportedOperationError,
)
from tablebatch.models.models import (
    CONTINUE_ON_ERROR,
    FAIL_FAST,
    BatchFailure,
    ErrorIsolation,
    ExecutionOutcome,
    ExternalTable,
)
from tablebatch.statement.batch import BatchQueue
from tablebatch.statement.context import StatementContext
from tablebatch.statement.slots import BindingSlots

logger = logging.getLogger(__name__)


def _update_count(rows: int | None) -> int:
    return rows if rows is not None and rows > 0 else 0


def _close_response(response) -> None:
    try:
        response.close()
    except Exception as e:
        logger.warning("Error closing response: %s", e)


class TableBasedStatement:
    """
    Prepared statement whose parameters are external tables.

    Args:
        context:        Live SQL text and configuration.
        runner:         Execution collaborator exposing
                        ``execute(sql, params, tables, data_sources)``.
        required_names: Table names the statement references, in ordinal order.

    Raises:
        ConfigurationError: If ``required_names`` is ``None`` or empty.
    """

    def __init__(
        self,
        context: StatementContext,
        runner,
        required_names: Sequence[str] | None,
    ) -> None:
        self._context = context
        self._runner = runner
        self._slots = BindingSlots(required_names)
        self._batch = BatchQueue()
        self.batch_failures: list[BatchFailure] = []
        self.closed = False

    # ── introspection ────────────────────────────────────────────────────

    @property
    def parameter_names(self) -> tuple[str, ...]:
        return self._slots.names

    @property
    def batch_size(self) -> int:
        """Number of queued entries."""
        return len(self._batch)

    # ── binding ──────────────────────────────────────────────────────────

    def set_object(
        self,
        ordinal: int,
        value: Any,
        target_type: Any = None,
        scale_or_length: int | None = None,
    ) -> None:
        """
        Bind an ``ExternalTable`` at a 1-based ordinal.

        ``target_type`` and ``scale_or_length`` are accepted for signature
        compatibility and ignored.

        Raises:
            UnsupportedBindingTypeError: If ``value`` is not an ``ExternalTable``.
            OrdinalOutOfRangeError:      If ``ordinal`` is outside ``[1, N]``.
        """
        self._ensure_open()
        self._slots.bind(ordinal, value)

    def bind(self, ordinal: int, table: ExternalTable) -> None:
        self.set_object(ordinal, table)

    def bind_name(self, name: str, table: ExternalTable) -> None:
        """
        Bind by required table name instead of ordinal.

        Raises:
            UnknownTableError: If the statement does not reference ``name``.
        """
        self._ensure_open()
        self._slots.bind(self._slots.ordinal_of(name), table)

    def _reject_scalar(self, ordinal: int, *args: Any, **kwargs: Any) -> NoReturn:
        raise ScalarBindingNotSupportedError()

    set_null = set_boolean = set_byte = set_short = set_int = set_long = _reject_scalar
    set_float = set_double = set_decimal = set_string = set_bytes = _reject_scalar
    set_date = set_time = set_timestamp = set_array = _reject_scalar

    def clear_parameters(self) -> None:
        """Unbind every slot."""
        self._ensure_open()
        self._slots.clear()

    def check_complete(self) -> None:
        """
        Raises:
            MissingBindingsError: Naming every unbound table.
        """
        self._slots.check_complete()

    # ── single execution ─────────────────────────────────────────────────

    def execute_update(self) -> int:
        """
        Execute once with the current bindings and return the update count.

        Raises:
            MissingBindingsError:   If any table is unbound (runner not called).
            DatabaseExecutionError: If the runner fails.
        """
        self._ensure_open()
        self._slots.check_complete()
        return self._run_counted(self._context.current_sql(), self._slots.tables())

    def execute_query(self):
        """
        Execute once and return the open response.  The caller closes it.

        Raises:
            MissingBindingsError:   If any table is unbound (runner not called).
            DatabaseExecutionError: If the runner fails.
        """
        self._ensure_open()
        self._slots.check_complete()
        return self._run_response(self._context.current_sql())

    def execute(self) -> ExecutionOutcome:
        """
        Execute once in generic mode.

        Returns:
            ``ExecutionOutcome`` holding the open response when the statement
            produced rows, otherwise the update count (response closed).
        """
        self._ensure_open()
        self._slots.check_complete()
        sql = self._context.current_sql()
        response = self._run_response(sql)
        try:
            has_rows = response.description is not None
        except Exception as e:
            _close_response(response)
            raise DatabaseExecutionError(f"Failed to execute statement: {e}", sql=sql) from e
        if has_rows:
            return ExecutionOutcome(response=response)
        try:
            with response:
                rows = response.rowcount
        except Exception as e:
            raise DatabaseExecutionError(f"Failed to execute statement: {e}", sql=sql) from e
        return ExecutionOutcome(update_count=_update_count(rows))

    def _run_response(self, sql: str):
        try:
            return self._runner.execute(sql, [], list(self._slots.tables()), None)
        except DatabaseExecutionError:
            raise
        except Exception as e:
            raise DatabaseExecutionError(f"Failed to execute statement: {e}", sql=sql) from e

    def _run_counted(
        self,
        sql: str,
        tables: Sequence[ExternalTable],
        position: int | None = None,
    ) -> int:
        """Run once, close the response on every path, return the update count."""
        try:
            with self._runner.execute(sql, [], list(tables), None) as response:
                rows = response.rowcount
        except DatabaseExecutionError:
            raise
        except Exception as e:
            raise DatabaseExecutionError(
                f"Failed to execute statement: {e}", sql=sql, position=position
            ) from e
        return _update_count(rows)

    # ── batch ────────────────────────────────────────────────────────────

    def add_to_batch(self) -> None:
        """
        Queue a snapshot of the current bindings, then unbind every slot.

        Raises:
            MissingBindingsError: If any table is unbound; nothing is queued.
        """
        self._ensure_open()
        position = self._batch.append(self._slots.snapshot())
        self._slots.clear()
        logger.debug("Queued batch entry %d", position)

    def add_batch(self, sql: str) -> NoReturn:
        """Always raises: batches are built from table bindings, never raw SQL."""
        self._ensure_open()
        raise UnsupportedOperationError(
            "add_batch(sql) cannot be called on a table-bound statement; use add_to_batch()"
        )

    def run_batch(self, isolation: ErrorIsolation | None = None) -> list[int]:
        """
        Execute every queued entry in order, then clear the queue.

        Args:
            isolation: ``"fail_fast"`` or ``"continue_on_error"``.  ``None`` reads
                       ``config.continue_batch_on_error`` once, now.

        Returns:
            One code per processed entry: the update count (0 if none was
            reported) or ``EXECUTE_FAILED``.  Failures are also kept in
            ``batch_failures``.

        Raises:
            DatabaseExecutionError: First entry failure under ``fail_fast``.
            ConfigurationError:     Unknown ``isolation`` value.
        """
        self._ensure_open()
        size = len(self._batch)
        results: list[int] = []
        self.batch_failures = []
        try:
            if isolation is None:
                isolation = CONTINUE_ON_ERROR if self._context.config.continue_batch_on_error else FAIL_FAST
            if isolation not in (FAIL_FAST, CONTINUE_ON_ERROR):
                raise ConfigurationError(f"Unknown error isolation policy: {isolation!r}")
            continue_on_error = isolation == CONTINUE_ON_ERROR

            sql = self._context.current_sql()
            for position, entry in enumerate(self._batch, start=1):
                try:
                    results.append(self._run_counted(sql, entry.tables, position))
                except DatabaseExecutionError as e:
                    if not continue_on_error:
                        raise
                    results.append(EXECUTE_FAILED)
                    self.batch_failures.append(BatchFailure(position=position, size=size, error=e))
                    logger.error(
                        "Failed to execute batch entry %d of %d: %s", position, size, e, exc_info=e
                    )
        finally:
            self._batch.clear()

        if self.batch_failures:
            logger.warning("Batch finished: %d of %d entries failed", len(self.batch_failures), size)
        else:
            logger.debug("Batch finished: %d entries", size)
        return results

    def clear_batch(self) -> None:
        """Drop every queued entry."""
        self._ensure_open()
        self._batch.clear()

    # ── lifecycle ────────────────────────────────────────────────────────

    def close(self) -> None:
        """Release bindings and queued entries.  Idempotent."""
        if self.closed:
            return
        self._batch.clear()
        self._slots.clear()
        self.closed = True

    def _ensure_open(self) -> None:
        if self.closed:
            raise StatementClosedError()

    def __enter__(self) -> "TableBasedStatement":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
