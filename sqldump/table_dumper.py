"""
Per-table section writers for sqldump.
"""

import logging
from typing import Optional, TextIO

from .connection import DatabaseConnection
from .exceptions import UnsupportedTypeError
from .models import DumpOptions, TableDescriptor, TableKind, TableStats
from .row_batch import RowBatchEmitter
from .templates import section_banner
from .trigger_cache import TriggerCache
from .utils import quote_identifier
from .value_formatter import ValueFormatter


class TableDumper:
    """Writes structure, data and trigger sections for tables and views."""

    def __init__(
        self,
        connection: DatabaseConnection,
        options: DumpOptions,
        trigger_cache: TriggerCache,
        formatter: Optional[ValueFormatter] = None
    ):
        self.connection = connection
        self.options = options
        self.trigger_cache = trigger_cache
        self.formatter = formatter or ValueFormatter()

    def dump_table(
        self,
        file_handle: TextIO,
        descriptor: TableDescriptor,
        database: Optional[str] = None
    ) -> TableStats:
        """
        Write every section for one table or view.

        Args:
            file_handle: Output sink.
            descriptor: Table name and kind.
            database: Database the table belongs to, for trigger lookup.

        Returns:
            TableStats with the rows and triggers written.

        Raises:
            SqlDumpError (or a driver error) from any section; nothing
            written before the failure is undone.
        """
        stats = TableStats(table=descriptor.name, kind=descriptor.kind)
        table = descriptor.name

        try:
            if descriptor.kind == TableKind.VIEW:
                if self.options.drop_table:
                    file_handle.write(f"DROP VIEW IF EXISTS {quote_identifier(table)};\n")
                self.write_view_structure(file_handle, table)
                return stats

            if self.options.drop_table:
                file_handle.write(f"DROP TABLE IF EXISTS {quote_identifier(table)};\n")
            self.write_table_structure(file_handle, table)
            if self.options.include_data:
                stats.rows_dumped = self.write_table_data(file_handle, table)
            stats.triggers = self.write_table_triggers(file_handle, table, database)
        except Exception as e:
            logging.error(f"Error dumping {descriptor.kind.value.lower()} '{table}': {e}")
            raise

        return stats

    def write_table_structure(self, file_handle: TextIO, table: str) -> None:
        """Write CREATE TABLE, made idempotent when tables are not dropped first."""
        create_statement = self.connection.get_create_table(
            table, if_not_exists=not self.options.drop_table
        )
        file_handle.write(section_banner(f"Table structure for {table}"))
        file_handle.write(f"{create_statement};\n\n")

    def write_view_structure(self, file_handle: TextIO, view: str) -> None:
        create_statement = self.connection.get_create_view(view)
        file_handle.write(section_banner(f"View structure for {view}"))
        file_handle.write(f"{create_statement};\n\n")

    def _build_select_query(self, table: str, columns: list[str]) -> str:
        """Build SELECT query listing columns in DESCRIBE order."""
        quoted_columns = ', '.join(quote_identifier(col) for col in columns)
        return f"SELECT {quoted_columns} FROM {quote_identifier(table)}"

    def write_table_data(self, file_handle: TextIO, table: str) -> int:
        """Write the locked INSERT section for a table; returns the row count."""
        columns = self.connection.get_table_columns(table)
        column_names = [col.name for col in columns]

        try:
            format_row = self.formatter.row_formatter([col.type for col in columns])
        except UnsupportedTypeError as e:
            raise UnsupportedTypeError(e.type_name, table) from e

        query = self._build_select_query(table, column_names)
        if self.options.verbose:
            logging.info(f"Dumping table '{table}' with query: {query[:200]}")

        file_handle.write(section_banner(f"Dumping data for table {table}"))
        emitter = RowBatchEmitter(file_handle, table, column_names, self.options.batch_size)
        emitter.begin()

        cursor = self.connection.get_cursor()
        try:
            cursor.execute(query)
            for row in cursor:
                emitter.add_row(format_row(row))
        finally:
            cursor.close()

        emitter.finish()
        return emitter.rows_written

    def write_table_triggers(
        self,
        file_handle: TextIO,
        table: str,
        database: Optional[str] = None
    ) -> int:
        """Write CREATE TRIGGER statements for a table; returns the trigger count."""
        triggers = self.trigger_cache.triggers_for(table, database)
        if not triggers:
            return 0

        lines = [section_banner(f"Dump table triggers of {table}").rstrip('\n')]
        for trigger in triggers:
            lines.append("/*!50003 SET @saved_sql_mode = @@SQL_MODE */;")
            lines.append("/*!50003 SET SESSION SQL_MODE=\"\" */;")
            lines.append("DELIMITER ;;")
            lines.append(
                f"/*!50003 CREATE TRIGGER {quote_identifier(trigger.name)} {trigger.timing} {trigger.event} "
                f"ON {quote_identifier(trigger.table)} FOR EACH ROW {trigger.statement} */;;"
            )
            lines.append("DELIMITER ;")
            lines.append("/*!50003 SET SESSION SQL_MODE=@saved_sql_mode */;\n")
        file_handle.write('\n'.join(lines) + '\n')
        return len(triggers)
