"""
Oracle connections for staging sessions.

Every table a statement binds is staged as a private temporary table on the
same session that runs the statement, so one connection carries a whole
execution.  ``connect`` opens it, applies the NLS settings staged DATE and
TIMESTAMP values rely on, and refuses servers older than 18c (no private
temporary tables).

Usage:
    from tablebatch.discovery.oracle_client import connect, credentials_from_env

    conn = connect(**credentials_from_env())
    runner = OracleRunner(conn, config)
"""

from __future__ import annotations

import logging
import os

import oracledb

from tablebatch.configs.exceptions import ConfigurationError, DatabaseExecutionError

logger = logging.getLogger(__name__)

CREDENTIAL_VARS = {"dsn": "DB_DSN", "user": "DB_USER", "password": "DB_PASSWORD"}

MIN_SERVER_MAJOR = 18

_SESSION_SQL = [
    "ALTER SESSION SET NLS_DATE_FORMAT = 'YYYY-MM-DD HH24:MI:SS'",
    "ALTER SESSION SET NLS_TIMESTAMP_FORMAT = 'YYYY-MM-DD HH24:MI:SS.FF6'",
]


def credentials_from_env() -> dict[str, str]:
    """
    ``connect`` keyword arguments from DB_DSN / DB_USER / DB_PASSWORD.

    Raises:
        ConfigurationError: Naming every variable that is unset or empty.
    """
    creds = {arg: os.environ.get(var, "") for arg, var in CREDENTIAL_VARS.items()}
    missing = [CREDENTIAL_VARS[arg] for arg, value in creds.items() if not value]
    if missing:
        raise ConfigurationError(
            f"Missing required environment variable(s): {', '.join(missing)}"
        )
    return creds


def connect(dsn: str, user: str, password: str, **kwargs):
    """
    Open a thin-mode connection ready for staging.

    Args:
        dsn:      ``host:port/service_name``.
        **kwargs: Forwarded to ``oracledb.connect()``.

    Raises:
        DatabaseExecutionError: If connecting or session setup fails.
        ConfigurationError:     If the server predates private temporary tables.
    """
    try:
        conn = oracledb.connect(dsn=dsn, user=user, password=password, **kwargs)
    except oracledb.Error as e:
        raise DatabaseExecutionError(f"Failed to connect to Oracle ({dsn}): {e}") from e

    try:
        check_server_version(conn)
        with conn.cursor() as cur:
            for stmt in _SESSION_SQL:
                cur.execute(stmt)
    except oracledb.Error as e:
        _close_quietly(conn, dsn)
        raise DatabaseExecutionError(f"Failed to apply session settings: {e}") from e
    except ConfigurationError:
        _close_quietly(conn, dsn)
        raise

    logger.debug("Connected to %s as %s (server %s)", dsn, user, conn.version)
    return conn


def check_server_version(conn) -> None:
    """
    Raises:
        ConfigurationError: If ``conn.version`` is below 18.
    """
    major = int(str(conn.version).split(".")[0])
    if major < MIN_SERVER_MAJOR:
        raise ConfigurationError(
            f"Oracle {conn.version} has no private temporary tables; "
            f"{MIN_SERVER_MAJOR}c or later is required."
        )


def _close_quietly(conn, dsn: str) -> None:
    try:
        conn.close()
    except oracledb.Error as e:
        logger.warning("Error closing connection to %s: %s", dsn, e)
