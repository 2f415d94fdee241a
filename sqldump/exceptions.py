"""
Error types for sqldump.

Every failure of a dump or source operation surfaces as one of these:
- SqlDumpError: Base exception
- ConnectionFailedError: Could not connect to the server
- MetadataQueryError: Enumerating databases, tables, triggers or structure failed
- UnsupportedTypeError: A column type has no formatting rule
- ValueFormatError: A value does not fit its column type
- MalformedStatementError: A restore statement cannot be merged
- StatementExecutionError: The server rejected a restore statement
- CompressionError: Post-dump compression failed
- OperationCancelledError: A cancellation signal was observed
- DsnError: A DSN string could not be parsed
"""

from typing import Any, Optional


FRAGMENT_LENGTH = 200


def statement_fragment(statement: str, length: int = FRAGMENT_LENGTH) -> str:
    """Shorten a statement for error messages."""
    statement = " ".join(statement.split())
    if len(statement) <= length:
        return statement
    return statement[:length] + "..."


class SqlDumpError(Exception):
    """Base exception for all sqldump errors.

    Attributes:
        message: Error message
        details: Additional error context
    """

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConnectionFailedError(SqlDumpError):
    """Failed to connect to the database server."""

    def __init__(self, message: str, address: Optional[str] = None):
        super().__init__(message, details={"address": address})
        self.address = address


class MetadataQueryError(SqlDumpError):
    """A catalog or structure query failed.

    Raised when:
    - SHOW DATABASES / SHOW TABLES fails
    - SHOW CREATE TABLE fails for a table or view
    - SHOW TRIGGERS fails
    """

    def __init__(self, message: str, query: Optional[str] = None):
        super().__init__(message, details={"query": query})
        self.query = query


class UnsupportedTypeError(SqlDumpError):
    """A declared column type has no formatting rule."""

    def __init__(self, type_name: str, table: Optional[str] = None):
        if table:
            message = f"unsupported type: {type_name} (table '{table}')"
        else:
            message = f"unsupported type: {type_name}"
        super().__init__(message, details={"type": type_name, "table": table})
        self.type_name = type_name
        self.table = table


class ValueFormatError(SqlDumpError):
    """A value's Python type does not match its declared column type."""

    def __init__(self, type_name: str, value: Any):
        super().__init__(
            f"cannot format {type(value).__name__} value as {type_name}",
            details={"type": type_name, "value_type": type(value).__name__},
        )
        self.type_name = type_name
        self.value = value


class MalformedStatementError(SqlDumpError):
    """A restore statement does not have the shape the merger expects."""

    def __init__(self, message: str, statement: str):
        super().__init__(
            f"{message}: {statement_fragment(statement)}",
            details={"statement": statement_fragment(statement)},
        )
        self.statement = statement


class StatementExecutionError(SqlDumpError):
    """The target server rejected a statement during restore."""

    def __init__(self, statement: str, cause: Exception):
        super().__init__(
            f"{cause} while executing: {statement_fragment(statement)}",
            details={"statement": statement_fragment(statement)},
        )
        self.statement = statement
        self.cause = cause


class CompressionError(SqlDumpError):
    """Compressing the finished dump failed."""


class OperationCancelledError(SqlDumpError):
    """The caller asked for the running dump or source to stop."""


class DsnError(SqlDumpError):
    """A DSN string is not of the form user:pass@tcp(host:port)/db."""

    def __init__(self, dsn: str):
        super().__init__(f"dsn error: {dsn}", details={"dsn": dsn})
        self.dsn = dsn
