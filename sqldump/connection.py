"""
Database connection management for sqldump.
"""

import logging
from typing import Optional, Any

import mysql.connector
from mysql.connector import Error as MySQLError

from .exceptions import ConnectionFailedError, MetadataQueryError
from .models import ColumnInfo, TableKind, TriggerRecord
from .utils import parse_dsn, quote_identifier


def _as_text(value: Any) -> str:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode('utf-8')
    return '' if value is None else str(value)


class DatabaseConnection:
    """Manages a MySQL connection with context manager support."""

    DEFAULT_PORT = 3306
    DEFAULT_CHARSET = 'utf8mb4'

    def __init__(
        self,
        host: str,
        port: int,
        user: str,
        password: str,
        database: Optional[str] = None
    ):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.database = database
        self.connection = None

    @classmethod
    def from_dsn(cls, dsn: str) -> "DatabaseConnection":
        """Build a connection from 'user:pass@tcp(host:port)/db'."""
        return cls(**parse_dsn(dsn, default_port=cls.DEFAULT_PORT))

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"

    def __enter__(self) -> "DatabaseConnection":
        """Context manager entry - establish connection."""
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit - close connection."""
        self.disconnect()

    def connect(self) -> None:
        """Establish database connection."""
        try:
            self.connection = mysql.connector.connect(
                host=self.host,
                port=self.port,
                user=self.user,
                password=self.password,
                database=self.database,
                charset=self.DEFAULT_CHARSET,
                use_unicode=True
            )
            logging.info(f"Connected to {self.address}/{self.database or 'N/A'}")
        except MySQLError as e:
            logging.error(f"Failed to connect to database: {e}")
            raise ConnectionFailedError(str(e), address=self.address) from e

    def disconnect(self) -> None:
        """Close database connection."""
        if self.connection and self.connection.is_connected():
            self.connection.close()
            logging.debug("Database connection closed")

    def execute_query(self, query: str, params: Optional[tuple] = None) -> list[tuple]:
        """Execute a query and return results."""
        cursor = self.connection.cursor()
        try:
            cursor.execute(query, params)
            return cursor.fetchall()
        finally:
            cursor.close()

    def execute(self, statement: str) -> int:
        """Execute a statement, discarding any result set; returns affected rows."""
        cursor = self.connection.cursor()
        try:
            cursor.execute(statement)
            if cursor.with_rows:
                cursor.fetchall()
            return cursor.rowcount
        finally:
            cursor.close()

    def get_cursor(self, buffered: bool = False):
        """Get a cursor for streaming large results.

        Args:
            buffered: If False (default), rows are fetched from the server as
                     they are iterated. If True, uses buffered cursor.
        """
        return self.connection.cursor(buffered=buffered)

    def _metadata_query(self, query: str, params: Optional[tuple] = None) -> list[tuple]:
        try:
            return self.execute_query(query, params)
        except MySQLError as e:
            raise MetadataQueryError(f"{query}: {e}", query=query) from e

    def get_version(self) -> str:
        """Get the server version string."""
        return self._metadata_query("SELECT version()")[0][0]

    def get_current_database(self) -> Optional[str]:
        return self._metadata_query("SELECT DATABASE()")[0][0]

    def get_databases(self) -> list[str]:
        """Get list of all databases on the server."""
        return [row[0] for row in self._metadata_query("SHOW DATABASES")]

    def use_database(self, database: str) -> None:
        """Switch the session's current database."""
        statement = f"USE {quote_identifier(database)}"
        try:
            self.execute(statement)
        except MySQLError as e:
            raise MetadataQueryError(f"{statement}: {e}", query=statement) from e
        self.database = database

    def get_tables(self) -> list[str]:
        """Get list of all tables and views in the current database."""
        return [row[0] for row in self._metadata_query("SHOW TABLES")]

    def get_table_type(self, table: str) -> Optional[TableKind]:
        """Classify a table by its catalog entry; None for kinds that are not exported."""
        query = (
            "SELECT TABLE_TYPE FROM INFORMATION_SCHEMA.TABLES "
            "WHERE TABLE_SCHEMA = DATABASE() AND TABLE_NAME = %s"
        )
        results = self._metadata_query(query, (table,))
        if not results:
            raise MetadataQueryError(f"Table '{table}' not found in current database", query=query)
        return TableKind.from_catalog(_as_text(results[0][0]))

    def get_table_columns(self, table: str) -> list[ColumnInfo]:
        """Get column information for a table."""
        results = self._metadata_query(f"DESCRIBE {quote_identifier(table)}")
        return [
            ColumnInfo(
                name=row[0],
                type=_as_text(row[1]),
                nullable=row[2],
                key=row[3],
                default=row[4],
                extra=row[5]
            )
            for row in results
        ]

    def get_create_table(self, table: str, if_not_exists: bool = False) -> str:
        """Get CREATE TABLE statement."""
        results = self._metadata_query(f"SHOW CREATE TABLE {quote_identifier(table)}")
        create_statement = _as_text(results[0][1])
        if if_not_exists:
            create_statement = create_statement.replace("CREATE TABLE", "CREATE TABLE IF NOT EXISTS", 1)
        return create_statement

    def get_create_view(self, view: str) -> str:
        """Get CREATE VIEW statement."""
        results = self._metadata_query(f"SHOW CREATE VIEW {quote_identifier(view)}")
        return _as_text(results[0][1])

    def get_triggers(self, database: Optional[str] = None) -> list[TriggerRecord]:
        """Get every trigger of a database (the current one by default)."""
        query = "SHOW TRIGGERS"
        if database:
            query += f" FROM {quote_identifier(database)}"
        try:
            cursor = self.connection.cursor(dictionary=True)
            try:
                cursor.execute(query)
                rows = cursor.fetchall()
            finally:
                cursor.close()
        except MySQLError as e:
            raise MetadataQueryError(f"{query}: {e}", query=query) from e
        return [
            TriggerRecord(
                name=_as_text(row['Trigger']),
                event=_as_text(row['Event']),
                timing=_as_text(row['Timing']),
                statement=_as_text(row['Statement']),
                table=_as_text(row['Table']),
            )
            for row in rows
        ]
