"""
Executor configuration.

All tuneable constants live here. Import from this module everywhere;
never hardcode batch sizes, staging prefixes, or Oracle limits inline.

Usage:
    from tablebatch.configs.config import ExecutorConfig
    cfg = ExecutorConfig()                              # defaults / environment
    cfg = ExecutorConfig(continue_batch_on_error=True)

Environment overrides (optional) are read when the config object is
constructed; this module does not load .env files itself.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path


# Batch outcome code recorded for an entry that failed while the batch kept going.
# Callers compare against this value literally.
EXECUTE_FAILED: int = -3

# Oracle hard limits (do not change unless Oracle version changes)
ORACLE_MAX_VARCHAR2_CHAR: int = 4000
"""Hard ceiling for VARCHAR2 with CHAR length semantics."""

ORACLE_MAX_IDENTIFIER_LEN_LEGACY: int = 30
"""Max identifier length for Oracle < 12.2 (pre-long-identifiers)."""

ORACLE_MAX_IDENTIFIER_LEN_EXTENDED: int = 128
"""Max identifier length for Oracle >= 12.2. Private temporary tables need 18c+."""

DEFAULT_STAGING_PREFIX: str = "ORA$PTT_"
"""Oracle's default ``PRIVATE_TEMP_TABLE_PREFIX`` init parameter."""


def _env_flag(key: str, default: str = "false") -> bool:
    return os.environ.get(key, default).strip().lower() in ("1", "true", "yes")


@dataclass(slots=True)
class ExecutorConfig:
    """
    Runtime configuration for table-bound statement execution.

    Attributes:
        continue_batch_on_error: If True, a failed batch entry is recorded as
            ``EXECUTE_FAILED`` and the batch continues. Read once per batch run.
        batch_size: Rows per ``executemany`` call when staging an external table.
            Wide rows (many large VARCHAR2 cols) → lower this.
        varchar2_growth_buffer: Characters added on top of a column's declared
            length when sizing a staging VARCHAR2 column.
        oracle_max_identifier_len: 30 for legacy Oracle, 128 for extended.
        staging_prefix: Name prefix every staged table must carry. Must match the
            database's ``PRIVATE_TEMP_TABLE_PREFIX``.
        error_dir: Where the batch error log is appended.
    """

    continue_batch_on_error: bool = field(
        default_factory=lambda: _env_flag("CONTINUE_BATCH_ON_ERROR")
    )
    batch_size: int = field(
        default_factory=lambda: int(os.environ.get("BATCH_SIZE", "1000"))
    )
    varchar2_growth_buffer: int = field(
        default_factory=lambda: int(os.environ.get("VARCHAR2_GROWTH_BUFFER", "50"))
    )
    oracle_max_identifier_len: int = field(
        default_factory=lambda: int(
            os.environ.get("ORACLE_MAX_IDENTIFIER_LEN", str(ORACLE_MAX_IDENTIFIER_LEN_EXTENDED))
        )
    )
    staging_prefix: str = field(
        default_factory=lambda: os.environ.get("STAGING_TABLE_PREFIX", DEFAULT_STAGING_PREFIX).upper()
    )
    error_dir: Path = field(
        default_factory=lambda: Path(os.environ.get("ERROR_DIR", "data/error"))
    )

    def effective_max_varchar2(self, declared_char_len: int) -> int:
        """
        Return the VARCHAR2 size for a staging column with the given declared
        char length, after applying the growth buffer and capping at the Oracle limit.

        A declared length of 0 means "unknown" and yields the Oracle maximum.

        Raises:
            ValueError: If declared_char_len exceeds ORACLE_MAX_VARCHAR2_CHAR.
        """
        if declared_char_len > ORACLE_MAX_VARCHAR2_CHAR:
            raise ValueError(
                f"declared_char_len {declared_char_len} exceeds "
                f"ORACLE_MAX_VARCHAR2_CHAR {ORACLE_MAX_VARCHAR2_CHAR}"
            )
        if declared_char_len <= 0:
            return ORACLE_MAX_VARCHAR2_CHAR
        return min(declared_char_len + self.varchar2_growth_buffer, ORACLE_MAX_VARCHAR2_CHAR)
