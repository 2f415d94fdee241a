"""
Main dump orchestration for sqldump.
"""

import io
import logging
import threading
import time
from datetime import datetime
from pathlib import Path
from typing import Optional, TextIO

from .compression import compress_file
from .connection import DatabaseConnection
from .exceptions import CompressionError, OperationCancelledError, SqlDumpError
from .models import DatabaseStats, DumpOptions, DumpStats, TableDescriptor, TableKind
from .table_dumper import TableDumper
from .templates import render_footer, render_header
from .trigger_cache import TriggerCache
from .utils import LOG_TIMESTAMP_FORMAT, format_duration, quote_identifier
from .value_formatter import ValueFormatter


class DatabaseDumper:
    """
    Runs one dump session: header, then per database an optional USE and
    every selected table or view, then footer.

    The session owns its TriggerCache, so triggers are fetched once per
    database per session and never shared between sessions. Any error
    aborts the whole dump; output already written stays in the sink.
    """

    def __init__(
        self,
        connection: DatabaseConnection,
        options: DumpOptions,
        formatter: Optional[ValueFormatter] = None
    ):
        self.connection = connection
        self.options = options
        self.trigger_cache = TriggerCache(connection)
        self.table_dumper = TableDumper(connection, options, self.trigger_cache, formatter)
        self.stats = DumpStats()

    def run(self, cancel_event: Optional[threading.Event] = None) -> DumpStats:
        """Run the dump.

        Args:
            cancel_event: If set while dumping, the dump stops before the
                next table with OperationCancelledError.
        """
        start_time = datetime.now()
        started = time.monotonic()
        logging.info(f"[dump] started at {start_time.strftime(LOG_TIMESTAMP_FORMAT)}")

        sink, wrapper = self._open_sink()
        try:
            databases = self._resolve_databases()
            use_db = self.options.use_db or len(databases) > 1
            version = self.connection.get_version()

            logging.info(f"Starting dump of {len(databases)} database(s)")
            sink.write(render_header(self.connection.address, databases, start_time, version))

            for database in databases:
                self._dump_database(sink, database, use_db, cancel_event)

            sink.write(render_footer(start_time, datetime.now()))
        finally:
            sink.flush()
            if wrapper is not None:
                wrapper.detach()
            self.stats.elapsed_sec = time.monotonic() - started
            logging.info(f"[dump] finished, execution time {format_duration(self.stats.elapsed_sec)}")

        if self.options.compression is not None:
            self._compress()

        return self.stats

    def _open_sink(self) -> tuple[TextIO, Optional[io.TextIOWrapper]]:
        """Return a text sink; byte sinks are wrapped and detached afterwards."""
        output = self.options.output
        if isinstance(output, io.TextIOBase):
            return output, None
        wrapper = io.TextIOWrapper(output, encoding='utf-8', newline='\n')
        return wrapper, wrapper

    def _resolve_databases(self) -> list[str]:
        if self.options.all_databases:
            return self.connection.get_databases()
        if self.options.databases:
            return list(self.options.databases)
        current = self.connection.database or self.connection.get_current_database()
        if not current:
            raise SqlDumpError("No database selected: set databases or connect with a database name")
        return [current]

    def _dump_database(
        self,
        sink: TextIO,
        database: str,
        use_db: bool,
        cancel_event: Optional[threading.Event]
    ) -> None:
        """Dump a single database."""
        self.connection.use_database(database)
        db_stats = DatabaseStats(name=database)
        self.stats.databases.append(db_stats)

        tables = self.connection.get_tables() if self.options.all_tables else list(self.options.tables)
        logging.info(f"Dumping {len(tables)} table(s) from '{database}'")

        if use_db:
            sink.write(f"USE {quote_identifier(database)};\n")

        for table in tables:
            if cancel_event is not None and cancel_event.is_set():
                raise OperationCancelledError(f"Dump cancelled before table '{database}.{table}'")

            kind = self.connection.get_table_type(table)
            if kind is None:
                logging.debug(f"Skipping '{database}.{table}': not a base table or view")
                self.stats.skipped.append(f"{database}.{table}")
                continue

            table_stats = self.table_dumper.dump_table(sink, TableDescriptor(table, kind), database)

            db_stats.tables.append(table_stats)
            db_stats.total_rows += table_stats.rows_dumped
            self.stats.total_rows += table_stats.rows_dumped
            if kind == TableKind.VIEW:
                self.stats.total_views += 1
            else:
                self.stats.total_tables += 1
            self._log_table_result(table_stats)

    def _log_table_result(self, table_stats) -> None:
        if table_stats.kind == TableKind.VIEW:
            logging.info(f"  ✓ {table_stats.table}: view")
        elif self.options.include_data:
            logging.info(f"  ✓ {table_stats.table}: {table_stats.rows_dumped} rows")
        else:
            logging.info(f"  ✓ {table_stats.table}: structure only")

    def _compress(self) -> Path:
        name = getattr(self.options.writer, 'name', None)
        if not isinstance(name, str) or not Path(name).is_file():
            raise CompressionError("writer stream is not a file, cannot compress")
        return compress_file(name, self.options.compression)


def dump(
    connection: DatabaseConnection,
    options: DumpOptions,
    cancel_event: Optional[threading.Event] = None
) -> DumpStats:
    """Dump the databases and tables selected by options to options.writer."""
    return DatabaseDumper(connection, options).run(cancel_event)
