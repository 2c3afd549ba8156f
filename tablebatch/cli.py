"""
tablebatch: run a table-bound statement against CSV files.

The statement names its external tables with Oracle's private temporary
table prefix; each ``--entry`` binds every one of them to a CSV file.  One
entry executes once; several entries run as a batch.

    tablebatch execute \\
        --sql "INSERT INTO SALES.ORDERS SELECT * FROM ORA\\$PTT_ORDERS" \\
        --entry ORA\\$PTT_ORDERS=jan.csv \\
        --entry ORA\\$PTT_ORDERS=feb.csv \\
        --continue-on-error

    tablebatch dry-run --sql-file load.sql --entry ORA\\$PTT_ORDERS=jan.csv

Environment variables read (a ``.env`` file is loaded first if present):
    DB_DSN        Oracle DSN string  (e.g. localhost:1521/FREEPDB1)
    DB_USER       Oracle username
    DB_PASSWORD   Oracle password
    CONTINUE_BATCH_ON_ERROR, BATCH_SIZE, VARCHAR2_GROWTH_BUFFER,
    STAGING_TABLE_PREFIX, ERROR_DIR   Optional config overrides

Commands:
    execute   Stage the CSVs and run the statement (once or as a batch).
    dry-run   Print the staging DDL and resolved SQL.  No Oracle connection.

Exit codes:
    0  Success
    1  Batch finished but some entries failed (continue-on-error)
    2  Configuration, argument, source or binding error
    3  Database execution error
"""

from __future__ import annotations

import argparse
import dataclasses
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from tablebatch.configs.config import ExecutorConfig
from tablebatch.configs.exceptions import (
    BindingError,
    ConfigurationError,
    DatabaseExecutionError,
    SourceError,
)
from tablebatch.discovery.csv_reader import csv_table
from tablebatch.discovery.table_refs import find_table_refs
from tablebatch.loaders.error_logging import count_errors_in_log, log_batch_failures
from tablebatch.loaders.runner import OracleRunner
from tablebatch.loaders.staging import build_create_staging
from tablebatch.models.models import ExternalTable
from tablebatch.statement.context import StatementContext
from tablebatch.statement.table_statement import TableBasedStatement

logger = logging.getLogger(__name__)

_VALID_TYPES = ("VARCHAR2", "NUMBER", "DATE", "TIMESTAMP")


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        level=level,
        stream=sys.stdout,
    )


# ---------------------------------------------------------------------------
# Config: CLI flags over environment over defaults
# ---------------------------------------------------------------------------

def _build_config(args: argparse.Namespace) -> ExecutorConfig:
    config = ExecutorConfig()
    overrides: dict = {}
    if getattr(args, "batch_size", None):
        overrides["batch_size"] = args.batch_size
    if getattr(args, "error_dir", None):
        overrides["error_dir"] = Path(args.error_dir)
    if getattr(args, "continue_on_error", False):
        overrides["continue_batch_on_error"] = True
    return dataclasses.replace(config, **overrides) if overrides else config


def _build_connection():
    """
    Open an Oracle connection from DB_DSN / DB_USER / DB_PASSWORD.

    Raises:
        ConfigurationError:     If any of them is missing or the server is too old.
        DatabaseExecutionError: If the connection cannot be opened.
    """
    from tablebatch.discovery.oracle_client import connect, credentials_from_env

    return connect(**credentials_from_env())


# ---------------------------------------------------------------------------
# Argument helpers
# ---------------------------------------------------------------------------

def _entry_arg(raw: str) -> dict[str, Path]:
    """Parse ``NAME=PATH[,NAME=PATH...]``."""
    entry: dict[str, Path] = {}
    for part in raw.split(","):
        name, sep, path = part.partition("=")
        if not sep or not name.strip() or not path.strip():
            raise argparse.ArgumentTypeError(f"expected NAME=PATH, got {part!r}")
        entry[name.strip().upper()] = Path(path.strip())
    return entry


def _types_arg(raw: str) -> dict[str, str]:
    """Parse ``COLUMN=TYPE[,COLUMN=TYPE...]``."""
    types: dict[str, str] = {}
    for part in raw.split(","):
        col, sep, data_type = part.partition("=")
        data_type = data_type.strip().upper()
        if not sep or not col.strip() or data_type not in _VALID_TYPES:
            raise argparse.ArgumentTypeError(
                f"expected COLUMN=TYPE with TYPE in {', '.join(_VALID_TYPES)}, got {part!r}"
            )
        types[col.strip().upper()] = data_type
    return types


def _read_sql(args: argparse.Namespace) -> str:
    if args.sql_file:
        try:
            return Path(args.sql_file).read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigurationError(f"Cannot read SQL file {args.sql_file}: {e}") from e
    return args.sql


def _prepare(args: argparse.Namespace, config: ExecutorConfig):
    """Build the context, required names and one table dict per entry."""
    context = StatementContext(_read_sql(args), config)
    for hint in args.hint or []:
        context.add_hint(hint)

    names = find_table_refs(context.current_sql(), config.staging_prefix)
    if not names:
        raise ConfigurationError(
            f"Statement references no {config.staging_prefix}* tables; nothing to bind."
        )

    entries: list[dict[str, ExternalTable]] = []
    for entry in args.entry:
        entries.append({
            name: csv_table(name, path, config, types=args.types)
            for name, path in entry.items()
        })
    return context, names, entries


# ---------------------------------------------------------------------------
# Subcommand handlers
# ---------------------------------------------------------------------------

def _cmd_execute(args: argparse.Namespace) -> int:
    config = _build_config(args)
    try:
        context, names, entries = _prepare(args, config)
        conn = _build_connection()
    except (ConfigurationError, SourceError) as e:
        print(f"✗ {e}", file=sys.stderr)
        return 2
    except DatabaseExecutionError as e:
        print(f"✗ {e}", file=sys.stderr)
        return 3

    try:
        with TableBasedStatement(context, OracleRunner(conn, config), names) as stmt:
            if len(entries) == 1:
                for name, table in entries[0].items():
                    stmt.bind_name(name, table)
                rows = stmt.execute_update()
                print(f"✓ Executed: {rows} row(s) affected")
                return 0

            for entry in entries:
                for name, table in entry.items():
                    stmt.bind_name(name, table)
                stmt.add_to_batch()
            codes = stmt.run_batch()
            failures = stmt.batch_failures

        print(f"✓ Batch of {len(codes)} entries: {sum(c for c in codes if c > 0)} row(s) affected")
        if failures:
            log_path = log_batch_failures(failures, context.current_sql(), config.error_dir)
            print(
                f"✗ {len(failures)} of {len(codes)} entries failed, see {log_path} "
                f"({count_errors_in_log(config.error_dir)} logged in total)",
                file=sys.stderr,
            )
            return 1
        return 0
    except (ConfigurationError, BindingError) as e:
        print(f"✗ {e}", file=sys.stderr)
        return 2
    except DatabaseExecutionError as e:
        print(f"✗ {e}", file=sys.stderr)
        return 3
    finally:
        try:
            conn.close()
        except Exception as e:
            logger.warning("Error closing connection: %s", e)


def _cmd_dry_run(args: argparse.Namespace) -> int:
    config = _build_config(args)
    try:
        context, names, entries = _prepare(args, config)
        for position, entry in enumerate(entries, start=1):
            missing = [n for n in names if n not in entry]
            if missing:
                raise ConfigurationError(f"Entry {position} is missing table(s): {', '.join(missing)}")
            print(f"── Entry {position} of {len(entries)} ──")
            for name in names:
                print(build_create_staging(entry[name], config))
                print()
    except (ConfigurationError, SourceError) as e:
        print(f"✗ {e}", file=sys.stderr)
        return 2

    print("── Statement ──")
    print(context.current_sql())
    return 0


# ---------------------------------------------------------------------------
# Argument parser (importable for tests)
# ---------------------------------------------------------------------------

def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tablebatch",
        description="Run a table-bound Oracle statement against CSV files",
        epilog=(
            "Credentials (DB_DSN, DB_USER, DB_PASSWORD) are read from environment\n"
            "variables."
        ),
    )
    parser.add_argument("--verbose", "-v", action="store_true")

    sub = parser.add_subparsers(dest="command", required=True)

    def _statement_args(p):
        sql = p.add_mutually_exclusive_group(required=True)
        sql.add_argument("--sql")
        sql.add_argument("--sql-file", dest="sql_file")
        p.add_argument("--entry", action="append", required=True, type=_entry_arg,
                       help="NAME=CSV[,NAME=CSV...]; repeat for each batch entry")
        p.add_argument("--hint", action="append", default=None,
                       help="Optimizer hint to inject, e.g. APPEND")
        p.add_argument("--types", type=_types_arg, default=None,
                       help="COLUMN=TYPE[,...] overrides; columns default to VARCHAR2")
        p.add_argument("--batch-size", type=int, default=None, dest="batch_size")
        p.add_argument("--error-dir", default=None, dest="error_dir")
        p.add_argument("--continue-on-error", action="store_true", dest="continue_on_error")

    p_exec = sub.add_parser("execute", help="Stage CSVs and run the statement")
    _statement_args(p_exec)

    p_dry = sub.add_parser("dry-run", help="Print staging DDL only")
    _statement_args(p_dry)

    return parser


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main(argv: list[str] | None = None) -> None:
    load_dotenv()
    parser = _build_parser()
    args = parser.parse_args(argv)
    _setup_logging(args.verbose)
    handlers = {"execute": _cmd_execute, "dry-run": _cmd_dry_run}
    sys.exit(handlers[args.command](args))


if __name__ == "__main__":
    main()
