"""
Oracle connections: test_oracle_client.py

Covers:
  - credentials_from_env reads DB_DSN / DB_USER / DB_PASSWORD, names every missing one
  - connect applies the NLS session settings on the new session
  - Driver failure on connect → DatabaseExecutionError with the cause chained
  - Session setup failure → DatabaseExecutionError, connection closed
  - Server older than 18c → ConfigurationError, connection closed
"""

from __future__ import annotations

import sys
import pathlib

import oracledb
import pytest

_root = str(pathlib.Path(__file__).parent.parent)
if _root not in sys.path:
    sys.path.insert(0, _root)

from tests.fixtures.oracle_mocks import MockConnection

from tablebatch.configs.exceptions import ConfigurationError, DatabaseExecutionError
from tablebatch.discovery import oracle_client
from tablebatch.discovery.oracle_client import check_server_version, connect, credentials_from_env


class SessionFailingConnection(MockConnection):
    def maybe_fail(self, sql: str) -> None:
        if sql.startswith("ALTER SESSION"):
            raise oracledb.DatabaseError("ORA-02248: invalid option for ALTER SESSION")


@pytest.fixture
def patch_connect(monkeypatch):
    calls = []

    def install(result):
        def fake_connect(**kwargs):
            calls.append(kwargs)
            if isinstance(result, BaseException):
                raise result
            return result
        monkeypatch.setattr(oracle_client.oracledb, "connect", fake_connect)
        return calls

    return install


class TestCredentials:
    def test_all_present(self, monkeypatch):
        monkeypatch.setenv("DB_DSN", "localhost:1521/FREEPDB1")
        monkeypatch.setenv("DB_USER", "scott")
        monkeypatch.setenv("DB_PASSWORD", "tiger")
        assert credentials_from_env() == {
            "dsn": "localhost:1521/FREEPDB1",
            "user": "scott",
            "password": "tiger",
        }

    def test_missing_named(self, monkeypatch):
        monkeypatch.setenv("DB_DSN", "localhost:1521/FREEPDB1")
        monkeypatch.setenv("DB_USER", "")
        monkeypatch.delenv("DB_PASSWORD", raising=False)
        with pytest.raises(ConfigurationError) as exc:
            credentials_from_env()
        assert "DB_USER" in str(exc.value)
        assert "DB_PASSWORD" in str(exc.value)
        assert "DB_DSN" not in str(exc.value)


class TestConnect:
    def test_session_settings_applied(self, patch_connect):
        conn = MockConnection()
        calls = patch_connect(conn)
        assert connect("h:1521/svc", "scott", "tiger") is conn
        assert calls == [{"dsn": "h:1521/svc", "user": "scott", "password": "tiger"}]
        assert [sql for sql in conn.executed_sql if sql.startswith("ALTER SESSION")] == [
            "ALTER SESSION SET NLS_DATE_FORMAT = 'YYYY-MM-DD HH24:MI:SS'",
            "ALTER SESSION SET NLS_TIMESTAMP_FORMAT = 'YYYY-MM-DD HH24:MI:SS.FF6'",
        ]
        assert not conn.closed

    def test_extra_kwargs_forwarded(self, patch_connect):
        calls = patch_connect(MockConnection())
        connect("h/svc", "u", "p", stmtcachesize=40)
        assert calls[0]["stmtcachesize"] == 40

    def test_connect_failure(self, patch_connect):
        cause = oracledb.DatabaseError("ORA-12541: TNS:no listener")
        patch_connect(cause)
        with pytest.raises(DatabaseExecutionError) as exc:
            connect("h:1521/svc", "scott", "tiger")
        assert exc.value.__cause__ is cause
        assert "h:1521/svc" in str(exc.value)

    def test_session_failure_closes(self, patch_connect):
        conn = SessionFailingConnection()
        patch_connect(conn)
        with pytest.raises(DatabaseExecutionError):
            connect("h/svc", "u", "p")
        assert conn.closed

    def test_old_server_rejected(self, patch_connect):
        conn = MockConnection(version="12.2.0.1.0")
        patch_connect(conn)
        with pytest.raises(ConfigurationError) as exc:
            connect("h/svc", "u", "p")
        assert "18c" in str(exc.value)
        assert conn.closed
        assert conn.executed == []


class TestServerVersion:
    @pytest.mark.parametrize("version", ["18.3.0.0.0", "19.22.0.0.0", "23.4.0.24.5"])
    def test_supported(self, version):
        check_server_version(MockConnection(version=version))

    @pytest.mark.parametrize("version", ["11.2.0.4.0", "12.1.0.2.0", "12.2.0.1.0"])
    def test_unsupported(self, version):
        with pytest.raises(ConfigurationError):
            check_server_version(MockConnection(version=version))
