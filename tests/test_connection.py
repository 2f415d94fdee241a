"""
Unit tests for connection.py
"""

from unittest import mock

import pytest
from mysql.connector import Error as MySQLError

from sqldump.connection import DatabaseConnection
from sqldump.exceptions import ConnectionFailedError, DsnError, MetadataQueryError
from sqldump.models import ColumnInfo, TableKind


@pytest.fixture
def mock_cursor():
    return mock.MagicMock()


@pytest.fixture
def conn(mock_cursor):
    """A DatabaseConnection wired to a mocked driver connection."""
    with mock.patch('sqldump.connection.mysql.connector.connect') as mock_connect:
        mock_connection = mock.MagicMock()
        mock_connection.cursor.return_value = mock_cursor
        mock_connect.return_value = mock_connection

        conn = DatabaseConnection(
            host="localhost",
            port=3306,
            user="root",
            password="secret",
            database="testdb"
        )
        conn.connect()
        yield conn


class TestDatabaseConnection:
    """Tests for DatabaseConnection class."""

    def test_init(self):
        """Test connection initialization."""
        conn = DatabaseConnection(
            host="localhost",
            port=3306,
            user="root",
            password="secret",
            database="testdb"
        )
        assert conn.host == "localhost"
        assert conn.port == 3306
        assert conn.user == "root"
        assert conn.password == "secret"
        assert conn.database == "testdb"
        assert conn.connection is None
        assert conn.address == "localhost:3306"

    def test_default_constants(self):
        """Test default constants."""
        assert DatabaseConnection.DEFAULT_PORT == 3306
        assert DatabaseConnection.DEFAULT_CHARSET == 'utf8mb4'

    def test_from_dsn(self):
        """Test building a connection from a DSN."""
        conn = DatabaseConnection.from_dsn("app:p%40ss@tcp(db.local:3307)/shop?charset=utf8")
        assert conn.host == "db.local"
        assert conn.port == 3307
        assert conn.user == "app"
        assert conn.password == "p@ss"
        assert conn.database == "shop"

    def test_from_dsn_invalid(self):
        """Test that a DSN without '@' is rejected."""
        with pytest.raises(DsnError):
            DatabaseConnection.from_dsn("not-a-dsn")

    @mock.patch('sqldump.connection.mysql.connector.connect')
    def test_connect(self, mock_connect):
        """Test database connection establishment."""
        mock_connection = mock.MagicMock()
        mock_connect.return_value = mock_connection

        conn = DatabaseConnection(
            host="localhost",
            port=3306,
            user="root",
            password="secret",
            database="testdb"
        )
        conn.connect()

        mock_connect.assert_called_once_with(
            host="localhost",
            port=3306,
            user="root",
            password="secret",
            database="testdb",
            charset='utf8mb4',
            use_unicode=True
        )
        assert conn.connection == mock_connection

    @mock.patch('sqldump.connection.mysql.connector.connect')
    def test_disconnect(self, mock_connect):
        """Test database disconnection."""
        mock_connection = mock.MagicMock()
        mock_connection.is_connected.return_value = True
        mock_connect.return_value = mock_connection

        conn = DatabaseConnection(
            host="localhost",
            port=3306,
            user="root",
            password="secret"
        )
        conn.connect()
        conn.disconnect()

        mock_connection.close.assert_called_once()

    def test_disconnect_not_connected(self):
        """Test disconnect when not connected."""
        conn = DatabaseConnection(
            host="localhost",
            port=3306,
            user="root",
            password="secret"
        )
        # Should not raise any errors
        conn.disconnect()

    @mock.patch('sqldump.connection.mysql.connector.connect')
    def test_context_manager(self, mock_connect):
        """Test context manager usage."""
        mock_connection = mock.MagicMock()
        mock_connection.is_connected.return_value = True
        mock_connect.return_value = mock_connection

        with DatabaseConnection(
            host="localhost",
            port=3306,
            user="root",
            password="secret",
            database="testdb"
        ) as conn:
            assert conn.connection == mock_connection

        mock_connection.close.assert_called_once()

    @mock.patch('sqldump.connection.mysql.connector.connect')
    def test_connect_error(self, mock_connect):
        """Test connection error handling."""
        mock_connect.side_effect = MySQLError("Connection refused")

        conn = DatabaseConnection(
            host="localhost",
            port=3306,
            user="root",
            password="wrong_password"
        )

        with pytest.raises(ConnectionFailedError) as exc_info:
            conn.connect()
        assert exc_info.value.address == "localhost:3306"
        assert isinstance(exc_info.value.__cause__, MySQLError)


class TestQueries:
    """Tests for query helpers."""

    def test_execute_query(self, conn, mock_cursor):
        """Test query execution."""
        mock_cursor.fetchall.return_value = [("row1",), ("row2",)]

        result = conn.execute_query("SELECT * FROM test")

        assert result == [("row1",), ("row2",)]
        mock_cursor.execute.assert_called_once_with("SELECT * FROM test", None)
        mock_cursor.close.assert_called_once()

    def test_execute_query_with_params(self, conn, mock_cursor):
        """Test query execution with parameters."""
        mock_cursor.fetchall.return_value = [("row1",)]

        conn.execute_query("SELECT * FROM test WHERE id = %s", (1,))

        mock_cursor.execute.assert_called_once_with(
            "SELECT * FROM test WHERE id = %s",
            (1,)
        )

    def test_execute_discards_rows(self, conn, mock_cursor):
        """Test that execute drains a result set and returns the row count."""
        mock_cursor.with_rows = True
        mock_cursor.rowcount = 3

        assert conn.execute("SELECT 1") == 3
        mock_cursor.fetchall.assert_called_once()
        mock_cursor.close.assert_called_once()

    def test_execute_without_rows(self, conn, mock_cursor):
        """Test that execute does not fetch when there is no result set."""
        mock_cursor.with_rows = False
        mock_cursor.rowcount = 1

        assert conn.execute("INSERT INTO t VALUES (1)") == 1
        mock_cursor.fetchall.assert_not_called()

    def test_get_cursor(self, conn):
        """Test getting a cursor."""
        conn.get_cursor()
        conn.connection.cursor.assert_called_with(buffered=False)

        conn.get_cursor(buffered=True)
        conn.connection.cursor.assert_called_with(buffered=True)


class TestMetadata:
    """Tests for catalog and structure queries."""

    def test_get_version(self, conn, mock_cursor):
        mock_cursor.fetchall.return_value = [("8.0.36",)]
        assert conn.get_version() == "8.0.36"

    def test_get_databases(self, conn, mock_cursor):
        mock_cursor.fetchall.return_value = [("information_schema",), ("shop",)]
        assert conn.get_databases() == ["information_schema", "shop"]
        mock_cursor.execute.assert_called_once_with("SHOW DATABASES", None)

    def test_get_tables(self, conn, mock_cursor):
        """Test getting list of tables."""
        mock_cursor.fetchall.return_value = [
            ("users",), ("orders",), ("products",)
        ]

        tables = conn.get_tables()

        assert tables == ["users", "orders", "products"]
        mock_cursor.execute.assert_called_once_with("SHOW TABLES", None)

    def test_get_tables_error(self, conn, mock_cursor):
        """Test that catalog failures become MetadataQueryError."""
        mock_cursor.execute.side_effect = MySQLError("Access denied")

        with pytest.raises(MetadataQueryError) as exc_info:
            conn.get_tables()
        assert exc_info.value.query == "SHOW TABLES"

    def test_use_database(self, conn, mock_cursor):
        mock_cursor.with_rows = False

        conn.use_database("shop")

        mock_cursor.execute.assert_called_once_with("USE `shop`")
        assert conn.database == "shop"

    def test_use_database_error(self, conn, mock_cursor):
        mock_cursor.execute.side_effect = MySQLError("Unknown database")

        with pytest.raises(MetadataQueryError):
            conn.use_database("missing")
        assert conn.database == "testdb"

    @pytest.mark.parametrize("table_type,kind", [
        ("BASE TABLE", TableKind.TABLE),
        ("VIEW", TableKind.VIEW),
        ("SYSTEM VIEW", None),
        (b"BASE TABLE", TableKind.TABLE),
    ])
    def test_get_table_type(self, conn, mock_cursor, table_type, kind):
        mock_cursor.fetchall.return_value = [(table_type,)]

        assert conn.get_table_type("users") == kind
        assert mock_cursor.execute.call_args.args[1] == ("users",)

    def test_get_table_type_missing(self, conn, mock_cursor):
        mock_cursor.fetchall.return_value = []

        with pytest.raises(MetadataQueryError):
            conn.get_table_type("ghost")

    def test_get_table_columns(self, conn, mock_cursor):
        """Test getting column information for a table."""
        mock_cursor.fetchall.return_value = [
            ("id", "int(11)", "NO", "PRI", None, "auto_increment"),
            ("name", b"varchar(255)", "YES", "", None, ""),
            ("created_at", "datetime", "YES", "", "CURRENT_TIMESTAMP", ""),
        ]

        columns = conn.get_table_columns("users")

        assert len(columns) == 3
        assert isinstance(columns[0], ColumnInfo)
        assert columns[0].name == "id"
        assert columns[0].type == "int(11)"
        assert columns[0].type_name == "INT"
        assert columns[0].key == "PRI"
        assert columns[1].type == "varchar(255)"
        assert columns[1].nullable == "YES"
        mock_cursor.execute.assert_called_once_with("DESCRIBE `users`", None)

    def test_get_create_table(self, conn, mock_cursor):
        mock_cursor.fetchall.return_value = [("users", "CREATE TABLE `users` (\n  `id` int\n)")]

        assert conn.get_create_table("users") == "CREATE TABLE `users` (\n  `id` int\n)"

    def test_get_create_table_if_not_exists(self, conn, mock_cursor):
        mock_cursor.fetchall.return_value = [("users", "CREATE TABLE `users` (\n  `id` int\n)")]

        statement = conn.get_create_table("users", if_not_exists=True)

        assert statement.startswith("CREATE TABLE IF NOT EXISTS `users`")

    def test_get_create_view(self, conn, mock_cursor):
        mock_cursor.fetchall.return_value = [
            ("active_users", "CREATE VIEW `active_users` AS select 1", "utf8mb4", "utf8mb4_general_ci")
        ]

        assert conn.get_create_view("active_users") == "CREATE VIEW `active_users` AS select 1"
        mock_cursor.execute.assert_called_once_with("SHOW CREATE VIEW `active_users`", None)

    def test_get_triggers(self, conn, mock_cursor):
        mock_cursor.fetchall.return_value = [
            {
                "Trigger": "users_bi",
                "Event": "INSERT",
                "Table": "users",
                "Statement": "SET NEW.created_at = NOW()",
                "Timing": "BEFORE",
            }
        ]

        triggers = conn.get_triggers("shop")

        conn.connection.cursor.assert_called_with(dictionary=True)
        mock_cursor.execute.assert_called_once_with("SHOW TRIGGERS FROM `shop`")
        assert len(triggers) == 1
        assert triggers[0].name == "users_bi"
        assert triggers[0].table == "users"
        assert triggers[0].timing == "BEFORE"
        assert triggers[0].event == "INSERT"

    def test_get_triggers_current_database(self, conn, mock_cursor):
        mock_cursor.fetchall.return_value = []

        assert conn.get_triggers() == []
        mock_cursor.execute.assert_called_once_with("SHOW TRIGGERS")

    def test_get_triggers_error(self, conn, mock_cursor):
        mock_cursor.execute.side_effect = MySQLError("denied")

        with pytest.raises(MetadataQueryError):
            conn.get_triggers()
        mock_cursor.close.assert_called_once()
