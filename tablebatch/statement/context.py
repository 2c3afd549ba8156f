"""
Live statement context shared by a statement and whoever rewrites it.

The SQL a ``TableBasedStatement`` executes is looked up here on every call,
never cached: callers may rewrite the text between construction and
execution, most often to add an optimizer hint.

    ctx = StatementContext("INSERT INTO SALES.ORDERS SELECT * FROM ORA$PTT_ORDERS", cfg)
    ctx.add_hint("APPEND")
    ctx.current_sql()
    # 'INSERT /*+ APPEND */ INTO SALES.ORDERS SELECT * FROM ORA$PTT_ORDERS'
"""

from __future__ import annotations

import re

from tablebatch.configs.config import ExecutorConfig
from tablebatch.configs.exceptions import ConfigurationError

_LEADING_KEYWORD_RE = re.compile(
    r"^(\s*(?:SELECT|INSERT|UPDATE|DELETE|MERGE)\b)(\s*/\*\+(.*?)\*/)?",
    re.IGNORECASE | re.DOTALL,
)


class StatementContext:
    """
    Current SQL text plus the executor configuration.

    Args:
        sql:    Initial statement text.
        config: Executor configuration; ``continue_batch_on_error`` is read
                from it once per batch run.
    """

    def __init__(self, sql: str, config: ExecutorConfig) -> None:
        self.config = config
        self._sql = ""
        self.rewrite(sql)

    def current_sql(self) -> str:
        return self._sql

    def rewrite(self, sql: str) -> None:
        """
        Replace the statement text.

        Raises:
            ConfigurationError: If ``sql`` is empty.
        """
        if not sql or not sql.strip():
            raise ConfigurationError("Statement text must not be empty.")
        self._sql = sql.strip()

    def add_hint(self, hint: str) -> None:
        """
        Add an optimizer hint after the leading DML/query keyword.

        An existing ``/*+ ... */`` hint block is extended rather than duplicated.

        Raises:
            ConfigurationError: If the statement does not start with SELECT,
                INSERT, UPDATE, DELETE or MERGE, or ``hint`` is empty.
        """
        hint = (hint or "").strip()
        if not hint:
            raise ConfigurationError("Hint must not be empty.")

        match = _LEADING_KEYWORD_RE.match(self._sql)
        if match is None:
            raise ConfigurationError("Hints can only be added to SELECT/INSERT/UPDATE/DELETE/MERGE.")

        keyword = match.group(1)
        existing = (match.group(3) or "").strip()
        merged = f"{existing} {hint}" if existing else hint
        self._sql = f"{keyword} /*+ {merged} */{self._sql[match.end():]}"
