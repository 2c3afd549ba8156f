"""
Oracle identifier sanitizer for staging column names.

CSV headers become column names of a private temporary table, so they pass
through ``sanitize_identifier`` before appearing in any DDL or INSERT.

Rules applied (in order):
1. Strip, uppercase.
2. Replace anything outside A-Z, 0-9, _ with an underscore.
3. Collapse repeated underscores, strip leading/trailing ones.
4. Prefix a leading digit with an underscore.
5. Append ``_COL`` to Oracle reserved words.
6. Truncate to ``max_len``, keeping the ``_COL`` suffix intact.
"""

from __future__ import annotations

import re

from tablebatch.configs.config import ORACLE_MAX_IDENTIFIER_LEN_EXTENDED

# Reserved words most likely to show up as a CSV header.
_RESERVED_WORDS: frozenset[str] = frozenset(
    {
        "ACCESS", "ADD", "ALL", "ALTER", "AND", "ANY", "AS", "ASC", "AUDIT",
        "BETWEEN", "BY", "CHAR", "CHECK", "CLUSTER", "COLUMN", "COMMENT",
        "COMPRESS", "CONNECT", "CREATE", "CURRENT", "DATE", "DECIMAL",
        "DEFAULT", "DELETE", "DESC", "DISTINCT", "DROP", "ELSE", "EXCLUSIVE",
        "EXISTS", "FILE", "FLOAT", "FOR", "FROM", "GRANT", "GROUP", "HAVING",
        "IDENTIFIED", "IMMEDIATE", "IN", "INCREMENT", "INDEX", "INITIAL",
        "INSERT", "INTEGER", "INTERSECT", "INTO", "IS", "LEVEL", "LIKE",
        "LOCK", "LONG", "MINUS", "MODE", "MODIFY", "NOT", "NOWAIT", "NULL",
        "NUMBER", "OF", "OFFLINE", "ON", "ONLINE", "OPTION", "OR", "ORDER",
        "PRIOR", "PRIVILEGES", "PUBLIC", "RAW", "RENAME", "RESOURCE",
        "REVOKE", "ROW", "ROWID", "ROWNUM", "ROWS", "SELECT", "SESSION",
        "SET", "SHARE", "SIZE", "SMALLINT", "START", "SYNONYM", "SYSDATE",
        "TABLE", "THEN", "TO", "TRIGGER", "UID", "UNION", "UNIQUE", "UPDATE",
        "USER", "VALIDATE", "VALUES", "VARCHAR", "VARCHAR2", "VIEW",
        "WHENEVER", "WHERE", "WITH",
    }
)

_INVALID_CHARS_RE = re.compile(r"[^A-Z0-9_]")
_MULTI_UNDERSCORE_RE = re.compile(r"_{2,}")
_SUFFIX = "_COL"


def sanitize_identifier(raw: str, max_len: int = ORACLE_MAX_IDENTIFIER_LEN_EXTENDED) -> str:
    """
    Convert an arbitrary string into a safe Oracle column identifier.

    Raises:
        ValueError: If ``raw`` is empty, reduces to nothing, or ``max_len`` < 1.
    """
    if max_len < 1:
        raise ValueError(f"max_len must be >= 1, got {max_len}")
    if not isinstance(raw, str) or not raw.strip():
        raise ValueError(f"Cannot sanitize empty or non-string identifier: {raw!r}")

    result = _INVALID_CHARS_RE.sub("_", raw.strip().upper())
    result = _MULTI_UNDERSCORE_RE.sub("_", result).strip("_")
    if not result:
        raise ValueError(f"Identifier {raw!r} reduced to empty string after sanitization.")
    if result[0].isdigit():
        result = "_" + result

    if result in _RESERVED_WORDS:
        result += _SUFFIX

    if len(result) > max_len:
        if result.endswith(_SUFFIX) and max_len > len(_SUFFIX):
            result = result[: max_len - len(_SUFFIX)].rstrip("_") + _SUFFIX
        else:
            result = result[:max_len]

    return result


def is_reserved(name: str) -> bool:
    """Return True if ``name`` (uppercased) is an Oracle reserved word."""
    return name.upper() in _RESERVED_WORDS
