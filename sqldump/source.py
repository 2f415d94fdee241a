"""
Restore a dump stream into a database.

The stream is split into statements on the current delimiter (';' unless a
DELIMITER directive changes it), ignoring delimiters inside quoted strings,
backquoted identifiers and comments. Consecutive INSERT statements can be
merged into multi-row INSERTs before execution:

    INSERT INTO `test` VALUES (1,'a');
    INSERT INTO `test` VALUES (2,'b');

becomes

    INSERT INTO `test` VALUES (1,'a'),(2,'b');

MergeMode.SAFE only merges statements with the same table and column list.
MergeMode.FAST splices on the VALUES keyword without checking either.
SAFE mode also leaves alone any INSERT ending in a row alias or an
ON DUPLICATE KEY UPDATE clause; FAST mode does not look for them.
"""

import io
import logging
import re
import threading
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Iterator, Optional, TextIO, BinaryIO, Union

from mysql.connector import Error as MySQLError

from .connection import DatabaseConnection
from .exceptions import MalformedStatementError, OperationCancelledError, StatementExecutionError
from .models import MergeMode, SourceOptions, SourceStats
from .utils import LOG_TIMESTAMP_FORMAT, format_duration, quote_identifier


CHUNK_SIZE = 64 * 1024
INSERT_PREFIX = "INSERT INTO"
DEFAULT_DELIMITER = ";"

_LEADING_COMMENTS = re.compile(r'\A(?:(?:--(?=\s|\Z)|#)[^\n]*(?:\n|\Z)\s*)+')
_DELIMITER_DIRECTIVE = re.compile(r'DELIMITER\s', re.IGNORECASE)
_IDENTIFIER = r'(?:`(?:[^`]|``)+`|[^\s(`.]+)'
_INSERT = re.compile(
    rf'\AINSERT\s+INTO\s+(?P<table>{_IDENTIFIER}(?:\.{_IDENTIFIER})?)\s*'
    r'(?P<columns>\([^)]*\))?\s*VALUES\s*(?P<values>.*?)\s*;?\s*\Z',
    re.DOTALL
)
_TRAILING_CLAUSE = re.compile(r'\)\s*(?:AS\s|ON\s+DUPLICATE\s+KEY\s+UPDATE\b)', re.IGNORECASE)


def clean_statement(text: str) -> str:
    """Trim whitespace and drop leading '-- ' and '#' comment lines."""
    text = text.lstrip('\n').strip()
    return _LEADING_COMMENTS.sub('', text).strip()


class StatementReader:
    """
    Iterates over the statements of a text stream, reading it in chunks.

    Every yielded statement ends with ';' whatever delimiter was in effect.
    A trailing statement without delimiter at end of input is yielded too.
    DELIMITER directives are consumed, not yielded.
    """

    def __init__(self, reader: TextIO, chunk_size: int = CHUNK_SIZE):
        self.reader = reader
        self.chunk_size = chunk_size
        self.delimiter = DEFAULT_DELIMITER
        self._data = ''
        self._pos = 0
        self._start = 0
        self._eof = False

    def _fill(self) -> bool:
        """Append the next chunk, dropping text before the current statement."""
        if self._eof:
            return False
        chunk = self.reader.read(self.chunk_size)
        if not chunk:
            self._eof = True
            return False
        self._data = self._data[self._start:] + chunk
        self._pos -= self._start
        self._start = 0
        return True

    def _line_end(self) -> int:
        """Index of the newline ending the current line, reading more input if needed."""
        while True:
            end = self._data.find('\n', self._pos)
            if end != -1:
                return end
            if not self._fill():
                return len(self._data)

    def _finish_statement(self, end: int) -> Optional[str]:
        statement = clean_statement(self._data[self._start:end])
        return statement + ';' if statement else None

    def __iter__(self) -> Iterator[str]:
        quote: Optional[str] = None
        comment: Optional[str] = None
        has_content = False

        while True:
            lookahead = max(len(self.delimiter), len('DELIMITER '))
            if len(self._data) - self._pos < lookahead and self._fill():
                continue
            if self._pos >= len(self._data):
                break

            data = self._data
            pos = self._pos
            ch = data[pos]

            if comment == 'line':
                if ch == '\n':
                    comment = None
                self._pos += 1
            elif comment == 'block':
                if data.startswith('*/', pos):
                    comment = None
                    self._pos += 2
                else:
                    self._pos += 1
            elif quote is not None:
                if ch == '\\' and quote != '`':
                    self._pos += 2
                    continue
                if ch == quote:
                    quote = None
                self._pos += 1
            elif ch.isspace():
                self._pos += 1
            elif not has_content and _DELIMITER_DIRECTIVE.match(data, pos):
                end = self._line_end()
                pos = self._pos
                self.delimiter = self._data[pos + len('DELIMITER'):end].strip() or DEFAULT_DELIMITER
                self._pos = self._start = end + 1
                logging.debug(f"Delimiter changed to '{self.delimiter}'")
            elif ch == '#' or (data.startswith('--', pos) and (pos + 2 >= len(data) or data[pos + 2].isspace())):
                comment = 'line'
                self._pos += 1
            elif data.startswith('/*', pos):
                comment = 'block'
                has_content = True
                self._pos += 2
            elif data.startswith(self.delimiter, pos):
                statement = self._finish_statement(pos)
                self._pos = self._start = pos + len(self.delimiter)
                has_content = False
                if statement:
                    yield statement
            else:
                if ch in ("'", '"', '`'):
                    quote = ch
                has_content = True
                self._pos += 1

        statement = self._finish_statement(len(self._data))
        self._data = ''
        self._pos = self._start = 0
        if statement:
            yield statement


@dataclass(frozen=True)
class InsertStatement:
    """An INSERT split into its prefix and value-tuple list."""
    table: str
    columns: Optional[str]
    prefix: str
    values: str

    @property
    def shape(self) -> tuple[str, str]:
        return self.table, ''.join((self.columns or '').split())

    @classmethod
    def match(cls, statement: str) -> Optional["InsertStatement"]:
        m = _INSERT.match(statement)
        if m is None:
            return None
        values = m.group('values')
        # a row alias or ON DUPLICATE KEY UPDATE cannot be spliced behind more rows
        if not values.endswith(')') or _TRAILING_CLAUSE.search(values):
            return None
        return cls(
            table=m.group('table'),
            columns=m.group('columns'),
            prefix=statement[:m.start('values')],
            values=values,
        )

    @classmethod
    def parse(cls, statement: str) -> "InsertStatement":
        parsed = cls.match(statement)
        if parsed is None:
            raise MalformedStatementError("invalid SQL: not an INSERT ... VALUES statement", statement)
        return parsed


def merge_insert(statements: list[str]) -> str:
    """
    Textually splice INSERT statements: keep the first statement up to its
    ';' and append what follows VALUES in each later one.

    Column lists and tables are not compared.
    """
    if not statements:
        raise ValueError("no input provided")
    parts = [statements[0].rstrip().removesuffix(';')]
    for statement in statements[1:]:
        values_idx = statement.find('VALUES')
        if values_idx == -1:
            raise MalformedStatementError("invalid SQL: missing VALUES keyword", statement)
        values = statement[values_idx + len('VALUES'):].rstrip().removesuffix(';')
        parts.append(',' + values)
    return ''.join(parts) + ';'


def merge_insert_statements(statements: list[InsertStatement]) -> str:
    """Merge INSERT statements of identical shape into one multi-row INSERT."""
    if not statements:
        raise ValueError("no input provided")
    shape = statements[0].shape
    for statement in statements[1:]:
        if statement.shape != shape:
            raise MalformedStatementError(
                f"cannot merge INSERT into {statement.table} with INSERT into {statements[0].table}",
                statement.prefix
            )
    return statements[0].prefix + ','.join(s.values for s in statements) + ';'


class StatementExecutor:
    """
    Sends statements to the server, or only logs and counts them in dry-run
    mode.
    """

    def __init__(self, connection: DatabaseConnection, dry_run: bool = False, debug: bool = False):
        self.connection = connection
        self.dry_run = dry_run
        self.debug = debug
        self.dispatched = 0
        self.executed = 0

    def execute(self, statement: str) -> None:
        if self.debug:
            logging.debug(f"[query]\n{statement}")
        self.dispatched += 1
        if self.dry_run:
            return
        try:
            self.connection.execute(statement)
        except MySQLError as e:
            raise StatementExecutionError(statement, e) from e
        self.executed += 1


class SourceRunner:
    """
    Replays a statement stream: USE, autocommit off, every statement
    (merged where possible), COMMIT, autocommit back on.

    A failing statement stops the run; the open transaction is left to the
    server.
    """

    def __init__(self, connection: DatabaseConnection, options: Optional[SourceOptions] = None):
        self.connection = connection
        self.options = options or SourceOptions()
        self.executor = StatementExecutor(connection, self.options.dry_run, self.options.debug)
        self.stats = SourceStats()

    def run(
        self,
        reader: Union[TextIO, BinaryIO],
        database: Optional[str] = None,
        cancel_event: Optional[threading.Event] = None
    ) -> SourceStats:
        start_time = datetime.now()
        started = time.monotonic()
        logging.info(f"[source] started at {start_time.strftime(LOG_TIMESTAMP_FORMAT)}")
        if self.options.dry_run:
            logging.info("DRY RUN MODE - statements will not be executed")

        wrapper = None
        if not isinstance(reader, io.TextIOBase):
            reader = wrapper = io.TextIOWrapper(reader, encoding='utf-8')

        try:
            database = database or self.connection.database
            if database:
                self.executor.execute(f"USE {quote_identifier(database)};")
            self.executor.execute("SET autocommit=0;")

            for statement in self._statements(reader, cancel_event):
                self.executor.execute(statement)
                self.stats.statements_executed += 1

            self.executor.execute("COMMIT;")
            self.executor.execute("SET autocommit=1;")
        except Exception as e:
            logging.error(f"[source] {e}")
            raise
        finally:
            if wrapper is not None:
                wrapper.detach()
            self.stats.elapsed_sec = time.monotonic() - started
            logging.info(
                f"[source] finished: {self.stats.statements_executed} statement(s) from "
                f"{self.stats.statements_read} read, cost {format_duration(self.stats.elapsed_sec)}"
            )

        return self.stats

    def _statements(self, reader: TextIO, cancel_event: Optional[threading.Event]) -> Iterator[str]:
        """Yield statements ready for execution, merging INSERT runs."""
        statements = iter(StatementReader(reader))
        carried: Optional[str] = None

        while True:
            if cancel_event is not None and cancel_event.is_set():
                raise OperationCancelledError(
                    f"Source cancelled after {self.stats.statements_executed} statement(s)"
                )

            if carried is not None:
                statement, carried = carried, None
            else:
                statement = next(statements, None)
                if statement is None:
                    return
                self.stats.statements_read += 1

            if self.options.merge_insert > 1 and statement.startswith(INSERT_PREFIX):
                statement, carried = self._accumulate(statement, statements)

            yield statement

    def _accumulate(self, first: str, statements: Iterator[str]) -> tuple[str, Optional[str]]:
        """
        Read up to merge_insert - 1 further INSERTs to merge with first.

        Returns the statement to execute and the statement that ended the
        batch, if one was read but not merged.
        """
        safe = self.options.merge_mode == MergeMode.SAFE
        head = InsertStatement.match(first) if safe else None
        if safe and head is None:
            return first, None

        batch = [first]
        parsed = [head]
        carried = None
        for _ in range(self.options.merge_insert - 1):
            statement = next(statements, None)
            if statement is None:
                break
            self.stats.statements_read += 1
            if not statement.startswith(INSERT_PREFIX):
                carried = statement
                break
            if safe:
                insert = InsertStatement.match(statement)
                if insert is None or insert.shape != head.shape:
                    carried = statement
                    break
                parsed.append(insert)
            batch.append(statement)

        if len(batch) == 1:
            return first, carried

        if safe:
            merged = merge_insert_statements(parsed)
        else:
            merged = merge_insert(batch)
        self.stats.inserts_merged += len(batch)
        return merged, carried


def source(
    connection: DatabaseConnection,
    reader: Union[TextIO, BinaryIO],
    options: Optional[SourceOptions] = None,
    database: Optional[str] = None,
    cancel_event: Optional[threading.Event] = None
) -> SourceStats:
    """Import a dump stream into the database behind connection."""
    return SourceRunner(connection, options).run(reader, database, cancel_event)
