"""
Custom exceptions for table-bound statement execution.

Hierarchy:
    TableBatchError
    ├── BindingError                     Caller used the binding API wrongly; never isolated.
    │   ├── MissingBindingsError         One or more required tables are unbound.
    │   ├── OrdinalOutOfRangeError       Parameter ordinal outside [1, N].
    │   ├── ScalarBindingNotSupportedError  A scalar setter was called.
    │   ├── UnsupportedBindingTypeError  set_object() got something other than an ExternalTable.
    │   └── UnknownTableError            bind_name() got a name the statement does not declare.
    ├── UnsupportedOperationError        addBatch(sql) style entry point invoked.
    ├── ConfigurationError               Statement or staging set up with invalid settings.
    ├── StatementClosedError             Statement used after close().
    ├── SourceError                      A file-backed table could not be read.
    └── DatabaseExecutionError           Wraps any failure from the execution collaborator.

Only ``DatabaseExecutionError`` raised during a batch entry is subject to
continue-on-error isolation.  Everything else propagates immediately.
"""

from __future__ import annotations


class TableBatchError(Exception):
    """Base class for all executor errors."""


class BindingError(TableBatchError):
    """Base class for binding contract violations."""


class MissingBindingsError(BindingError):
    """
    Raised when one or more required tables are unbound at check time.

    Args:
        missing: Every unbound required name, in slot order.
    """

    def __init__(self, missing: list[str]) -> None:
        super().__init__(f"Missing table(s): {', '.join(missing)}")
        self.missing = list(missing)


class OrdinalOutOfRangeError(BindingError):
    """
    Raised when a parameter ordinal is outside ``[1, size]``.

    Args:
        ordinal: The 1-based ordinal the caller supplied.
        size: Number of binding slots on the statement.
    """

    def __init__(self, ordinal: int, size: int) -> None:
        super().__init__(
            f"Parameter index must be between 1 and {size} but got {ordinal}"
        )
        self.ordinal = ordinal
        self.size = size


class ScalarBindingNotSupportedError(BindingError):
    """Raised by every scalar setter; only external tables may be bound."""

    def __init__(self, message: str = "Please use set_object(ExternalTable) instead") -> None:
        super().__init__(message)


class UnsupportedBindingTypeError(BindingError):
    """
    Raised when ``set_object`` receives a value that is not an ``ExternalTable``.

    Args:
        value_type: Name of the rejected value's type.
    """

    def __init__(self, value_type: str) -> None:
        super().__init__(f"Only ExternalTable is allowed, got {value_type}")
        self.value_type = value_type


class UnknownTableError(BindingError):
    """
    Raised when binding by a name the statement does not reference.

    Args:
        name: The rejected table name.
        known: The names the statement does reference.
    """

    def __init__(self, name: str, known: list[str] | tuple[str, ...] = ()) -> None:
        super().__init__(f"Statement does not reference table {name!r}")
        self.name = name
        self.known = list(known)

    def __str__(self) -> str:
        base = super().__str__()
        if self.known:
            return f"{base} | known={', '.join(self.known)}"
        return base


class UnsupportedOperationError(TableBatchError):
    """Raised for operations a table-bound statement never supports."""


class ConfigurationError(TableBatchError):
    """Raised when a statement, context, or staging table is set up invalidly."""


class StatementClosedError(TableBatchError):
    """Raised when a closed statement is used."""

    def __init__(self, message: str = "Statement is closed") -> None:
        super().__init__(message)


class SourceError(TableBatchError):
    """
    Raised when a file backing an external table cannot be opened or parsed.

    Args:
        message: Human-readable description of the failure.
        source_path: Path of the file being read.
    """

    def __init__(self, message: str, source_path: str | None = None) -> None:
        super().__init__(message)
        self.source_path = source_path

    def __str__(self) -> str:
        base = super().__str__()
        if self.source_path:
            return f"{base} | source={self.source_path}"
        return base


class DatabaseExecutionError(TableBatchError):
    """
    Wraps a failure raised by the execution collaborator.

    The original exception is chained as ``__cause__``.

    Args:
        message: Human-readable description.
        sql: Statement text that was being executed, if available.
        position: 1-based batch position, when raised for a batch entry.
    """

    def __init__(
        self,
        message: str,
        sql: str | None = None,
        position: int | None = None,
    ) -> None:
        super().__init__(message)
        self.sql = sql
        self.position = position

    def __str__(self) -> str:
        base = super().__str__()
        parts = []
        if self.position is not None:
            parts.append(f"entry={self.position}")
        if self.sql:
            parts.append(f"sql={self.sql!r}")
        if parts:
            return f"{base} | {' '.join(parts)}"
        return base
