"""
Discover the staging tables a statement refers to.

A table-bound statement names its external tables directly in the SQL,
using Oracle's private temporary table prefix:

    INSERT INTO SALES.ORDERS SELECT * FROM ora$ptt_orders o
    WHERE EXISTS (SELECT 1 FROM ORA$PTT_KEYS k WHERE k.id = o.id)

``find_table_refs`` returns ``["ORA$PTT_ORDERS", "ORA$PTT_KEYS"]``, which is
the required-name set a ``TableBasedStatement`` is constructed with.
String literals, quoted identifiers and comments are skipped.
"""

from __future__ import annotations

import re

from tablebatch.configs.config import DEFAULT_STAGING_PREFIX

# Literals, quoted identifiers, line and block comments, in that order.
_SKIP_RE = re.compile(r"'(?:[^']|'')*'|\"[^\"]*\"|--[^\n]*|/\*.*?\*/", re.DOTALL)


def find_table_refs(sql: str, prefix: str = DEFAULT_STAGING_PREFIX) -> list[str]:
    """
    Return distinct staging table names in order of first appearance.

    Matching is case-insensitive; names are returned uppercased.
    """
    stripped = _SKIP_RE.sub(" ", sql or "")
    pattern = re.compile(
        r"(?<![A-Za-z0-9_$#])" + re.escape(prefix) + r"[A-Za-z0-9_$#]+",
        re.IGNORECASE,
    )
    return list(dict.fromkeys(m.group(0).upper() for m in pattern.finditer(stripped)))
