"""
Multi-row INSERT statement emission for sqldump.
"""

import logging
from typing import TextIO

from .utils import quote_identifier


class RowBatchEmitter:
    """
    Writes the data section of one table as INSERT statements of at most
    batch_size rows each.

    Usage:
        emitter = RowBatchEmitter(handle, 'users', ['id', 'name'], batch_size=100)
        emitter.begin()
        for row_text in rows:
            emitter.add_row(row_text)
        emitter.finish()

    row_text is the already formatted tuple body, e.g. "1,'alice'". A
    batch_size below 2 writes one INSERT per row.
    """

    def __init__(self, file_handle: TextIO, table: str, columns: list[str], batch_size: int = 1):
        self.file_handle = file_handle
        self.table = table
        self.columns = columns
        self.batch_size = batch_size
        self.rows_written = 0
        self.statements_written = 0
        self._rows_in_batch = 0

        quoted_table = quote_identifier(table)
        quoted_columns = ','.join(quote_identifier(col) for col in columns)
        self._insert_prefix = f"INSERT INTO {quoted_table} ({quoted_columns}) VALUES\n"

    def begin(self) -> None:
        """Write the lock and key-disable pragmas that open the data section."""
        quoted_table = quote_identifier(self.table)
        self.file_handle.write(f"LOCK TABLES {quoted_table} WRITE;\n")
        self.file_handle.write(f"/*!40000 ALTER TABLE {quoted_table} DISABLE KEYS */;\n")

    def add_row(self, row_text: str) -> None:
        """Append one formatted row, opening or closing a statement as needed."""
        if self._rows_in_batch == 0:
            self.file_handle.write(self._insert_prefix)
        else:
            self.file_handle.write(",\n")
        self.file_handle.write(f"({row_text})")
        self._rows_in_batch += 1
        self.rows_written += 1

        if self._rows_in_batch >= max(self.batch_size, 1):
            self._terminate_statement()

    def finish(self) -> None:
        """Terminate a partial batch and write the closing pragmas."""
        if self._rows_in_batch:
            self._terminate_statement()
        quoted_table = quote_identifier(self.table)
        self.file_handle.write(f"/*!40000 ALTER TABLE {quoted_table} ENABLE KEYS */;\n")
        self.file_handle.write("UNLOCK TABLES;\n\n")
        logging.debug(
            f"Table '{self.table}': {self.rows_written} rows in {self.statements_written} INSERT statement(s)"
        )

    def _terminate_statement(self) -> None:
        self.file_handle.write(";\n")
        self.statements_written += 1
        self._rows_in_batch = 0
