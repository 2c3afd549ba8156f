"""
Staging & Oracle runner: test_staging_runner.py

Covers:

DDL:
  - CREATE PRIVATE TEMPORARY TABLE with one line per column
  - VARCHAR2 sized with the growth buffer, capped at 4000 CHAR
  - Invalid staging name / no columns / oversize VARCHAR2 → ConfigurationError
  - DROP TABLE builder

Binds:
  - Oracle data type → oracledb DB_TYPE_* constant; unknown type → KeyError

OracleRunner (against MockConnection):
  - Each table created then loaded before the statement runs
  - Rows sent in executemany chunks of batch_size, input sizes declared
  - Commit after DML when autocommit is on; not after SELECT or with autocommit off
  - Closing the response drops staged tables in reverse order; close idempotent
  - Statement failure: original error propagates, staged tables dropped,
    statement cursor closed
  - Load failure: the half-loaded table is still dropped
  - Non-empty data_sources → ValueError, nothing executed

Batch error log:
  - One line per failure with sql digest, entry position, error code, root message
  - Appends across runs; count_errors_in_log
"""

from __future__ import annotations

import sys
import pathlib

import oracledb
import pytest

_root = str(pathlib.Path(__file__).parent.parent)
if _root not in sys.path:
    sys.path.insert(0, _root)

from tests.fixtures.oracle_mocks import MockConnection, MockDatabaseError
from tests.fixtures.runner_fakes import make_table

from tablebatch.configs.config import ExecutorConfig
from tablebatch.configs.exceptions import ConfigurationError, DatabaseExecutionError
from tablebatch.loaders.binds import build_input_sizes, oracle_type_for
from tablebatch.loaders.error_logging import (
    LOG_FILENAME,
    count_errors_in_log,
    extract_error_code,
    log_batch_failures,
    sql_digest,
)
from tablebatch.loaders.runner import OracleRunner
from tablebatch.loaders.staging import (
    build_create_staging,
    build_drop_staging,
    column_definition,
)
from tablebatch.models.models import BatchFailure, ExternalTable, TableColumn


SQL = "INSERT INTO SALES.ORDERS SELECT * FROM ORA$PTT_T1 JOIN ORA$PTT_T2 USING (ID)"


@pytest.fixture
def cfg(tmp_path):
    return ExecutorConfig(
        continue_batch_on_error=False,
        batch_size=2,
        varchar2_growth_buffer=50,
        oracle_max_identifier_len=128,
        staging_prefix="ORA$PTT_",
        error_dir=tmp_path,
    )


def five_rows(name: str) -> ExternalTable:
    return make_table(name, [{"ID": i, "NAME": f"n{i}"} for i in range(5)])


# ============================================================================
# DDL builders
# ============================================================================

class TestStagingDDL:
    def test_create_statement(self, cfg):
        ddl = build_create_staging(make_table("ora$ptt_t1"), cfg)
        assert ddl.startswith("CREATE PRIVATE TEMPORARY TABLE ORA$PTT_T1 (")
        assert "    ID NUMBER NULL" in ddl
        assert "    NAME VARCHAR2(70 CHAR) NULL" in ddl
        assert ddl.endswith(") ON COMMIT PRESERVE DEFINITION")

    def test_unknown_length_uses_max(self, cfg):
        col = TableColumn("NOTE", "VARCHAR2", length=0)
        assert column_definition(col, cfg) == "NOTE VARCHAR2(4000 CHAR) NULL"

    def test_buffer_capped(self, cfg):
        col = TableColumn("NOTE", "VARCHAR2", length=3990)
        assert column_definition(col, cfg) == "NOTE VARCHAR2(4000 CHAR) NULL"

    def test_not_null(self, cfg):
        col = TableColumn("ID", "NUMBER", nullable=False)
        assert column_definition(col, cfg) == "ID NUMBER NOT NULL"

    @pytest.mark.parametrize("data_type", ["DATE", "TIMESTAMP"])
    def test_temporal_types(self, cfg, data_type):
        assert column_definition(TableColumn("AT", data_type), cfg) == f"AT {data_type} NULL"

    def test_oversize_varchar2(self, cfg):
        with pytest.raises(ConfigurationError):
            column_definition(TableColumn("NOTE", "VARCHAR2", length=4001), cfg)

    def test_unrecognised_type(self, cfg):
        with pytest.raises(ConfigurationError):
            column_definition(TableColumn("X", "CLOB"), cfg)

    @pytest.mark.parametrize("name", ["ORDERS", "ORA$PTT_", "ORA$PTT_BAD-NAME", "ORA$PTT_" + "X" * 130])
    def test_invalid_staging_name(self, cfg, name):
        with pytest.raises(ConfigurationError):
            build_create_staging(make_table(name), cfg)

    def test_no_columns(self, cfg):
        table = ExternalTable.from_rows("ORA$PTT_EMPTY", [], [])
        with pytest.raises(ConfigurationError):
            build_create_staging(table, cfg)

    def test_custom_prefix(self, cfg):
        cfg.staging_prefix = "TMP$"
        assert "TMP$ORDERS" in build_create_staging(make_table("TMP$ORDERS"), cfg)
        with pytest.raises(ConfigurationError):
            build_create_staging(make_table("ORA$PTT_T1"), cfg)

    def test_drop(self):
        assert build_drop_staging("ORA$PTT_T1") == "DROP TABLE ORA$PTT_T1"


class TestBinds:
    @pytest.mark.parametrize("data_type, expected", [
        ("VARCHAR2", oracledb.DB_TYPE_VARCHAR),
        ("NUMBER", oracledb.DB_TYPE_NUMBER),
        ("DATE", oracledb.DB_TYPE_DATE),
        ("TIMESTAMP", oracledb.DB_TYPE_TIMESTAMP),
        ("UNKNOWN", oracledb.DB_TYPE_VARCHAR),
    ])
    def test_type_mapping(self, data_type, expected):
        assert oracle_type_for(data_type) is expected

    def test_unmapped_type(self):
        with pytest.raises(KeyError):
            oracle_type_for("CLOB")

    def test_input_sizes_keyed_by_column(self):
        sizes = build_input_sizes(make_table("ORA$PTT_T1"))
        assert sizes == {"ID": oracledb.DB_TYPE_NUMBER, "NAME": oracledb.DB_TYPE_VARCHAR}


# ============================================================================
# OracleRunner
# ============================================================================

class TestOracleRunner:
    def test_stages_then_executes(self, cfg):
        conn = MockConnection(rowcount=4)
        runner = OracleRunner(conn, cfg)
        response = runner.execute(SQL, [], [make_table("ORA$PTT_T1"), make_table("ORA$PTT_T2")])

        sql = conn.executed_sql
        assert sql[0].startswith("CREATE PRIVATE TEMPORARY TABLE ORA$PTT_T1")
        assert sql[1].startswith("INSERT INTO ORA$PTT_T1 (ID, NAME)")
        assert sql[2].startswith("CREATE PRIVATE TEMPORARY TABLE ORA$PTT_T2")
        assert sql[3].startswith("INSERT INTO ORA$PTT_T2 (ID, NAME)")
        assert sql[4] == SQL
        assert response.rowcount == 4
        assert response.staged == ["ORA$PTT_T1", "ORA$PTT_T2"]

    def test_rows_chunked_by_batch_size(self, cfg):
        conn = MockConnection()
        OracleRunner(conn, cfg).execute(SQL, [], [five_rows("ORA$PTT_T1")]).close()
        loads = [rows for sql, rows in conn.executed if sql.startswith("INSERT INTO ORA$PTT_T1")]
        assert [len(chunk) for chunk in loads] == [2, 2, 1]
        assert loads[0][0] == {"ID": 0, "NAME": "n0"}

    def test_input_sizes_declared(self, cfg):
        conn = MockConnection()
        OracleRunner(conn, cfg).execute(SQL, [], [make_table("ORA$PTT_T1")])
        stage_cursor = conn.cursors[0]
        assert stage_cursor.input_sizes == {
            "ID": oracledb.DB_TYPE_NUMBER,
            "NAME": oracledb.DB_TYPE_VARCHAR,
        }
        assert stage_cursor.bindarraysize == 2
        assert stage_cursor.closed

    def test_commit_after_dml(self, cfg):
        conn = MockConnection()
        OracleRunner(conn, cfg).execute(SQL, [], [make_table("ORA$PTT_T1")])
        assert conn.committed == 1

    def test_no_commit_without_autocommit(self, cfg):
        conn = MockConnection()
        OracleRunner(conn, cfg, autocommit=False).execute(SQL, [], [make_table("ORA$PTT_T1")])
        assert conn.committed == 0

    def test_query_returns_rows_without_commit(self, cfg):
        conn = MockConnection(query_results=[(1, "a"), (2, "b")])
        response = OracleRunner(conn, cfg).execute(
            "SELECT * FROM ORA$PTT_T1", [], [make_table("ORA$PTT_T1")]
        )
        assert response.description is not None
        assert response.fetchall() == [(1, "a"), (2, "b")]
        assert conn.committed == 0

    def test_params_passed_through(self, cfg):
        conn = MockConnection()
        OracleRunner(conn, cfg).execute("DELETE FROM T WHERE ID = :1", [7], [])
        assert conn.executed[-1] == ("DELETE FROM T WHERE ID = :1", [7])

    def test_close_drops_in_reverse(self, cfg):
        conn = MockConnection()
        response = OracleRunner(conn, cfg).execute(
            SQL, [], [make_table("ORA$PTT_T1"), make_table("ORA$PTT_T2")]
        )
        response.close()
        assert conn.statements_starting("DROP TABLE") == [
            "DROP TABLE ORA$PTT_T2",
            "DROP TABLE ORA$PTT_T1",
        ]
        assert all(c.closed for c in conn.cursors)

    def test_close_idempotent(self, cfg):
        conn = MockConnection()
        with OracleRunner(conn, cfg).execute(SQL, [], [make_table("ORA$PTT_T1")]) as response:
            pass
        response.close()
        assert len(conn.statements_starting("DROP TABLE")) == 1

    def test_statement_failure_drops_staged(self, cfg):
        conn = MockConnection(fail_on="SALES.ORDERS")
        runner = OracleRunner(conn, cfg)
        with pytest.raises(MockDatabaseError):
            runner.execute(SQL, [], [make_table("ORA$PTT_T1"), make_table("ORA$PTT_T2")])
        assert conn.statements_starting("DROP TABLE") == [
            "DROP TABLE ORA$PTT_T2",
            "DROP TABLE ORA$PTT_T1",
        ]
        assert all(c.closed for c in conn.cursors)
        assert conn.committed == 0

    def test_load_failure_drops_created_table(self, cfg):
        conn = MockConnection(fail_on="INSERT INTO ORA$PTT_T2")
        with pytest.raises(MockDatabaseError):
            OracleRunner(conn, cfg).execute(
                SQL, [], [make_table("ORA$PTT_T1"), make_table("ORA$PTT_T2")]
            )
        assert conn.statements_starting("DROP TABLE") == [
            "DROP TABLE ORA$PTT_T2",
            "DROP TABLE ORA$PTT_T1",
        ]
        assert SQL not in conn.executed_sql

    def test_bad_staging_name_nothing_created(self, cfg):
        conn = MockConnection()
        with pytest.raises(ConfigurationError):
            OracleRunner(conn, cfg).execute(SQL, [], [make_table("ORDERS")])
        assert conn.executed == []

    def test_data_sources_rejected(self, cfg):
        conn = MockConnection()
        with pytest.raises(ValueError):
            OracleRunner(conn, cfg).execute(SQL, [], [make_table("ORA$PTT_T1")], ["jdbc-source"])
        assert conn.executed == []

    def test_same_table_staged_twice(self, cfg):
        conn = MockConnection()
        runner = OracleRunner(conn, cfg)
        table = five_rows("ORA$PTT_T1")
        runner.execute(SQL, [], [table]).close()
        runner.execute(SQL, [], [table]).close()
        loads = [rows for sql, rows in conn.executed if sql.startswith("INSERT INTO ORA$PTT_T1")]
        assert sum(len(chunk) for chunk in loads) == 10


# ============================================================================
# Batch error log
# ============================================================================

def _failure(position: int, size: int, message: str) -> BatchFailure:
    try:
        try:
            raise MockDatabaseError(message)
        except MockDatabaseError as cause:
            raise DatabaseExecutionError(f"Failed to execute statement: {cause}", position=position) from cause
    except DatabaseExecutionError as e:
        return BatchFailure(position=position, size=size, error=e)


class TestErrorLog:
    def test_line_format(self, tmp_path):
        path = log_batch_failures(
            [_failure(2, 5, "ORA-00942: table or view\ndoes not exist")], SQL, tmp_path
        )
        assert path == tmp_path / LOG_FILENAME
        (line,) = path.read_text(encoding="utf-8").splitlines()
        fields = line.split(" | ")
        assert fields[1] == f"sql={sql_digest(SQL)}"
        assert fields[2] == "entry=2/5"
        assert fields[3] == "ora_code=ORA-00942"
        assert fields[4] == "msg=ORA-00942: table or view does not exist"

    def test_appends_and_counts(self, tmp_path):
        assert count_errors_in_log(tmp_path) == 0
        log_batch_failures([_failure(1, 2, "boom")], SQL, tmp_path)
        log_batch_failures([_failure(1, 3, "ORA-00001"), _failure(3, 3, "ORA-01400")], SQL, tmp_path)
        assert count_errors_in_log(tmp_path) == 3

    def test_creates_error_dir(self, tmp_path):
        target = tmp_path / "nested" / "errors"
        log_batch_failures([_failure(1, 1, "boom")], SQL, target)
        assert (target / LOG_FILENAME).exists()

    @pytest.mark.parametrize("message, code", [
        ("ORA-01400: cannot insert NULL", "ORA-01400"),
        ("DPY-4011: the database or network closed the connection", "DPY-4011"),
        ("something else", "ORA-UNKNOWN"),
    ])
    def test_extract_error_code(self, message, code):
        assert extract_error_code(message) == code

    def test_digest_stable_and_short(self):
        assert sql_digest(SQL) == sql_digest(SQL)
        assert len(sql_digest(SQL)) == 12
        assert sql_digest(SQL) != sql_digest(SQL + " ")
