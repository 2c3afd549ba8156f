"""
Binding slots: one per table name a statement requires.

Slots are addressed by 1-based ordinal, in the order the names were
declared.  Each holds ``UNBOUND`` or ``Bound(table)``; the slot count never
changes after construction.
"""

from __future__ import annotations

from typing import Sequence

from tablebatch.configs.exceptions import (
    ConfigurationError,
    MissingBindingsError,
    OrdinalOutOfRangeError,
    UnknownTableError,
    UnsupportedBindingTypeError,
)
from tablebatch.models.models import UNBOUND, BatchEntry, Bound, ExternalTable, SlotValue


class BindingSlots:
    """
    Fixed-length slot array for a statement's required tables.

    Args:
        names: Required table names, kept exactly as given.  Exact duplicates
               collapse to the first position.

    Raises:
        ConfigurationError: If ``names`` is ``None``, empty, or holds a
                            non-string name.
    """

    def __init__(self, names: Sequence[str] | None) -> None:
        if names is None:
            raise ConfigurationError("Non-null table list is required")
        for name in names:
            if not isinstance(name, str):
                raise ConfigurationError(f"Table names must be strings, got {type(name).__name__}")
        self._names: tuple[str, ...] = tuple(dict.fromkeys(names))
        if not self._names:
            raise ConfigurationError("A table-bound statement must reference at least one table")
        self._values: list[SlotValue] = [UNBOUND] * len(self._names)

    def __len__(self) -> int:
        return len(self._names)

    @property
    def names(self) -> tuple[str, ...]:
        return self._names

    def index_for(self, ordinal: int) -> int:
        """
        Translate a 1-based ordinal to a list index.

        Raises:
            OrdinalOutOfRangeError: If ``ordinal`` is outside ``[1, len(self)]``.
        """
        if isinstance(ordinal, bool) or not isinstance(ordinal, int) or not 1 <= ordinal <= len(self._names):
            raise OrdinalOutOfRangeError(ordinal, len(self._names))
        return ordinal - 1

    def ordinal_of(self, name: str) -> int:
        """
        1-based ordinal of a required name.

        An exact match wins.  Otherwise the name matches case-insensitively,
        the way Oracle resolves unquoted identifiers, provided exactly one
        required name folds to it.

        Raises:
            UnknownTableError: If the statement does not require ``name``, or
                               the case-insensitive match is ambiguous.
        """
        if name in self._names:
            return self._names.index(name) + 1
        key = name.strip().upper() if isinstance(name, str) else None
        matches = [i for i, n in enumerate(self._names) if n.strip().upper() == key]
        if len(matches) != 1:
            raise UnknownTableError(name, self._names)
        return matches[0] + 1

    def bind(self, ordinal: int, table: ExternalTable) -> None:
        """
        Store ``table`` at ``ordinal``.

        Raises:
            UnsupportedBindingTypeError: If ``table`` is not an ``ExternalTable``.
            OrdinalOutOfRangeError:      If ``ordinal`` is out of range.
        """
        if not isinstance(table, ExternalTable):
            raise UnsupportedBindingTypeError(type(table).__name__)
        self._values[self.index_for(ordinal)] = Bound(table)

    def clear(self) -> None:
        self._values = [UNBOUND] * len(self._names)

    def missing(self) -> list[str]:
        """Names of every unbound slot, in ordinal order."""
        return [name for name, value in zip(self._names, self._values) if value is UNBOUND]

    def check_complete(self) -> None:
        """
        Raises:
            MissingBindingsError: Naming every unbound table, if any.
        """
        missing = self.missing()
        if missing:
            raise MissingBindingsError(missing)

    def tables(self) -> tuple[ExternalTable, ...]:
        """Bound tables in ordinal order.  Call ``check_complete()`` first."""
        return tuple(v.table for v in self._values if isinstance(v, Bound))

    def snapshot(self) -> BatchEntry:
        """
        Immutable copy of the current bindings.

        Raises:
            MissingBindingsError: If any slot is unbound.
        """
        self.check_complete()
        return BatchEntry(tables=self.tables())
