"""
Oracle execution collaborator for table-bound statements.

``OracleRunner.execute`` is the single submission primitive a
``TableBasedStatement`` calls:

    response = runner.execute(sql, params=[], tables=[orders, keys])

Steps:
  1. Stage every table as a private temporary table on the connection's
     session (create, then ``executemany`` the rows).
  2. Execute ``sql`` on a fresh cursor.
  3. Commit when the statement produced no result set and ``autocommit``
     is on.
  4. Return an ``OracleResponse``.  Closing it closes the cursor and drops
     the staged tables.

If anything fails after staging began, the staged tables are dropped and
every cursor is closed before the original error propagates.  Errors are
raised as-is (``oracledb.Error``, ``SourceError``, ...); wrapping them is
the statement's job.
"""

from __future__ import annotations

import logging
from typing import Any, Sequence

from tablebatch.configs.config import ExecutorConfig
from tablebatch.loaders.staging import create_staging, drop_staged, load_staging
from tablebatch.models.models import ExternalTable

logger = logging.getLogger(__name__)


class OracleResponse:
    """
    Open result of one execution.

    Attributes:
        staged: Names of the staging tables that live until ``close()``.
    """

    def __init__(self, connection, cursor, staged: list[str]) -> None:
        self._connection = connection
        self._cursor = cursor
        self.staged = list(staged)
        self.closed = False

    @property
    def rowcount(self) -> int:
        return self._cursor.rowcount

    @property
    def description(self):
        return self._cursor.description

    def fetchone(self):
        return self._cursor.fetchone()

    def fetchall(self) -> list:
        return self._cursor.fetchall()

    def __iter__(self):
        return iter(self._cursor)

    def close(self) -> None:
        """Close the cursor, then drop the staged tables.  Idempotent."""
        if self.closed:
            return
        self.closed = True
        try:
            self._cursor.close()
        finally:
            if self.staged:
                with self._connection.cursor() as cur:
                    drop_staged(cur, self.staged)

    def __enter__(self) -> "OracleResponse":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class OracleRunner:
    """
    Stages external tables and runs statements on one Oracle connection.

    Args:
        connection: Open ``oracledb`` connection (or a test double).
        config:     Executor configuration (staging prefix, batch size).
        autocommit: Commit after every statement that returns no rows.
    """

    def __init__(self, connection, config: ExecutorConfig, autocommit: bool = True) -> None:
        self._connection = connection
        self._config = config
        self._autocommit = autocommit

    def execute(
        self,
        sql: str,
        params: Sequence[Any],
        tables: Sequence[ExternalTable],
        data_sources: Sequence[Any] | None = None,
    ) -> OracleResponse:
        """
        Stage ``tables``, execute ``sql`` with ``params``, return the response.

        Raises:
            ValueError: If ``data_sources`` is non-empty; Oracle sessions have
                no external data source channel.
        """
        if data_sources:
            raise ValueError("OracleRunner does not support external data sources.")

        staged: list[str] = []
        cursor = None
        stage_cursor = self._connection.cursor()
        try:
            for table in tables:
                staged.append(create_staging(stage_cursor, table, self._config))
                load_staging(stage_cursor, table, self._config)

            cursor = self._connection.cursor()
            if params:
                cursor.execute(sql, params)
            else:
                cursor.execute(sql)

            if cursor.description is None and self._autocommit:
                self._connection.commit()
        except Exception:
            if cursor is not None:
                cursor.close()
            self._discard(stage_cursor, staged)
            raise
        finally:
            stage_cursor.close()

        logger.debug("Executed with %d staged table(s): %s", len(staged), staged)
        return OracleResponse(self._connection, cursor, staged)

    def _discard(self, cursor, staged: list[str]) -> None:
        """Drop what was staged before a failure without masking it."""
        if not staged:
            return
        try:
            drop_staged(cursor, staged)
        except Exception as e:
            logger.warning("Could not drop staging tables %s: %s", staged, e)
