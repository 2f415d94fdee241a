"""
sqldump
=======
Dump MySQL/MariaDB databases to SQL text and source such dumps back:
- Per-type SQL literal formatting with loud failure on unknown types
- Multi-row INSERT batches framed by LOCK TABLES / DISABLE KEYS
- Table, view and trigger export
- Streaming statement reader with INSERT merging and dry-run
- Optional gzip compression of the finished dump
"""

from .compression import compress_file
from .config import ConfigLoader
from .connection import DatabaseConnection
from .database_dumper import DatabaseDumper, dump
from .exceptions import (
    CompressionError,
    ConnectionFailedError,
    DsnError,
    MalformedStatementError,
    MetadataQueryError,
    OperationCancelledError,
    SqlDumpError,
    StatementExecutionError,
    UnsupportedTypeError,
    ValueFormatError,
)
from .main import main
from .models import (
    ColumnInfo,
    ColumnValue,
    CompressionLevel,
    DatabaseStats,
    DumpOptions,
    DumpStats,
    MergeMode,
    SourceOptions,
    SourceStats,
    TableDescriptor,
    TableKind,
    TableStats,
    TriggerRecord,
)
from .row_batch import RowBatchEmitter
from .source import SourceRunner, StatementExecutor, StatementReader, merge_insert, source
from .table_dumper import TableDumper
from .trigger_cache import TriggerCache
from .utils import parse_dsn, setup_logging
from .value_formatter import TypeClass, ValueFormatter

__version__ = "1.0.0"

__all__ = [
    # Entry points
    "main",
    "dump",
    "source",
    "compress_file",
    # Core classes
    "ConfigLoader",
    "DatabaseConnection",
    "DatabaseDumper",
    "TableDumper",
    "RowBatchEmitter",
    "TriggerCache",
    "ValueFormatter",
    "TypeClass",
    "SourceRunner",
    "StatementExecutor",
    "StatementReader",
    "merge_insert",
    # Models
    "ColumnInfo",
    "ColumnValue",
    "CompressionLevel",
    "DatabaseStats",
    "DumpOptions",
    "DumpStats",
    "MergeMode",
    "SourceOptions",
    "SourceStats",
    "TableDescriptor",
    "TableKind",
    "TableStats",
    "TriggerRecord",
    # Errors
    "SqlDumpError",
    "CompressionError",
    "ConnectionFailedError",
    "DsnError",
    "MalformedStatementError",
    "MetadataQueryError",
    "OperationCancelledError",
    "StatementExecutionError",
    "UnsupportedTypeError",
    "ValueFormatError",
    # Utilities
    "parse_dsn",
    "setup_logging",
]
