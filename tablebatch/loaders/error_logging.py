"""
Batch error log for continue-on-error runs.

Appends one line per failed batch entry to ``tablebatch_batch_errors.log``
in ``error_dir``.  The file is never truncated, so failures from every run
are in one place for ``grep``.

Log format::

    2026-01-15T09:30:00 | sql=3f2a9c1e0b7d | entry=2/5 | ora_code=ORA-00942 | msg=table or view does not exist

``sql`` is a short digest of the statement text so lines from different
statements can be told apart without logging the SQL itself.

Usage::

    codes = statement.run_batch()
    if statement.batch_failures:
        log_batch_failures(statement.batch_failures, sql=context.current_sql(),
                           error_dir=config.error_dir)
"""

from __future__ import annotations

import hashlib
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Sequence

from tablebatch.models.models import BatchFailure

LOG_FILENAME = "tablebatch_batch_errors.log"

_ERROR_CODE_RE = re.compile(r"\b(?:ORA|DPY)-\d+")


def log_batch_failures(
    failures: Sequence[BatchFailure],
    sql: str,
    error_dir: Path | str,
) -> Path:
    """
    Append ``failures`` to the batch error log.

    Args:
        failures:  Failures recorded by ``TableBasedStatement.run_batch``.
        sql:       Statement text the batch ran.
        error_dir: Directory holding the log file.  Created if absent.

    Returns:
        Path to the log file.
    """
    error_dir = Path(error_dir)
    error_dir.mkdir(parents=True, exist_ok=True)

    log_path = error_dir / LOG_FILENAME
    digest = sql_digest(sql)
    timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S")

    with open(log_path, "a", encoding="utf-8") as f:
        for failure in failures:
            message = _root_message(failure.error)
            f.write(
                f"{timestamp} | "
                f"sql={digest} | "
                f"entry={failure.position}/{failure.size} | "
                f"ora_code={extract_error_code(message)} | "
                f"msg={message}\n"
            )

    return log_path


def sql_digest(sql: str) -> str:
    """First 12 hex chars of the SHA-1 of ``sql``."""
    return hashlib.sha1(sql.encode("utf-8")).hexdigest()[:12]


def extract_error_code(message: str) -> str:
    """
    Extract the ``ORA-XXXXX`` (or thin-mode ``DPY-XXXX``) code from a message.

    Returns ``'ORA-UNKNOWN'`` if none is found.
    """
    match = _ERROR_CODE_RE.search(message)
    return match.group(0) if match else "ORA-UNKNOWN"


def _root_message(error: BaseException) -> str:
    """Message of the innermost chained cause, on one line."""
    while error.__cause__ is not None:
        error = error.__cause__
    return " ".join(str(error).split())


def count_errors_in_log(error_dir: Path | str) -> int:
    """Number of lines in the log file; 0 if it does not exist."""
    log_path = Path(error_dir) / LOG_FILENAME
    if not log_path.exists():
        return 0
    with open(log_path, encoding="utf-8") as f:
        return sum(1 for line in f if line.strip())
