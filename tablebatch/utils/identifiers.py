"""
Identifier helpers that apply executor configuration.

Column names are *sanitized* (CSV headers are arbitrary text).  Staging
table names are only *validated*: the statement text already refers to
them, so silently rewriting one would stage a table nobody reads.

Usage:
    from tablebatch.utils.identifiers import to_column_name, to_staging_name

    col   = to_column_name("Order Id", cfg)      # → "ORDER_ID"
    table = to_staging_name("ora$ptt_orders", cfg)  # → "ORA$PTT_ORDERS"
"""

from __future__ import annotations

import re

from tablebatch.configs.config import ExecutorConfig
from tablebatch.configs.exceptions import ConfigurationError
from tablebatch.utils.sanitizer import sanitize_identifier

_STAGING_NAME_RE = re.compile(r"^[A-Z][A-Z0-9_$#]*$")


def to_column_name(raw: str, config: ExecutorConfig) -> str:
    """
    Sanitize a raw header into an Oracle column name.

    Raises:
        ValueError: If ``raw`` is empty or unsanitizable.
    """
    return sanitize_identifier(raw, max_len=config.oracle_max_identifier_len)


def to_staging_name(raw: str, config: ExecutorConfig) -> str:
    """
    Validate and uppercase a private temporary table name.

    Returns:
        The uppercased name.

    Raises:
        ConfigurationError: If the name lacks ``config.staging_prefix``, contains
            characters Oracle does not allow unquoted, or is too long.
    """
    name = (raw or "").strip().upper()
    prefix = config.staging_prefix
    if not name.startswith(prefix) or len(name) == len(prefix):
        raise ConfigurationError(
            f"Staging table name {raw!r} must start with {prefix!r} and name a table."
        )
    if not _STAGING_NAME_RE.match(name):
        raise ConfigurationError(f"Staging table name {raw!r} is not a valid Oracle identifier.")
    if len(name) > config.oracle_max_identifier_len:
        raise ConfigurationError(
            f"Staging table name {raw!r} exceeds {config.oracle_max_identifier_len} characters."
        )
    return name
