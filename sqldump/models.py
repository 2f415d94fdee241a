"""
Data models and enums for sqldump.
"""

import re
import sys
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Any, TextIO, BinaryIO, Union


_TYPE_PARAMS = re.compile(r'\(.*\)')
_TYPE_MODIFIERS = re.compile(r'\b(UNSIGNED|ZEROFILL)\b')


class TableKind(Enum):
    """Catalog kinds that the dump knows how to export."""
    TABLE = "TABLE"
    VIEW = "VIEW"

    @classmethod
    def from_catalog(cls, table_type: Optional[str]) -> Optional["TableKind"]:
        """Map INFORMATION_SCHEMA.TABLES.TABLE_TYPE to a kind, or None if unknown."""
        if table_type == "BASE TABLE":
            return cls.TABLE
        if table_type == "VIEW":
            return cls.VIEW
        return None


class CompressionLevel(Enum):
    """gzip compression levels for the finished dump."""
    FASTEST = 1
    DEFAULT = 6
    BEST = 9

    @classmethod
    def from_name(cls, name: str) -> "CompressionLevel":
        name = name.strip().upper()
        if name in ("BEST", "MAX"):
            return cls.BEST
        if name in ("FAST", "FASTEST", "MIN"):
            return cls.FASTEST
        return cls.DEFAULT


class MergeMode(Enum):
    """How consecutive INSERT statements are combined during restore."""
    SAFE = "safe"
    FAST = "fast"


@dataclass
class ColumnInfo:
    """Database column metadata."""
    name: str
    type: str
    nullable: str
    key: str
    default: Any
    extra: str

    @property
    def type_name(self) -> str:
        """Declared type normalized for formatter lookup, e.g. 'int(10) unsigned' -> 'INT'."""
        return normalize_type_name(self.type)


def normalize_type_name(declared: str) -> str:
    """Uppercase a declared type and strip parameters, UNSIGNED/ZEROFILL and whitespace."""
    name = _TYPE_PARAMS.sub('', declared.upper())
    name = _TYPE_MODIFIERS.sub('', name)
    return ''.join(name.split())


@dataclass(frozen=True)
class ColumnValue:
    """A raw driver value together with its normalized column type."""
    value: Any
    type_name: str


@dataclass(frozen=True)
class TableDescriptor:
    """A table or view selected for dumping."""
    name: str
    kind: TableKind

    @property
    def has_rows(self) -> bool:
        return self.kind == TableKind.TABLE


@dataclass(frozen=True)
class TriggerRecord:
    """A trigger as reported by SHOW TRIGGERS."""
    name: str
    event: str
    timing: str
    statement: str
    table: str


@dataclass
class TableStats:
    """Statistics for a single table or view."""
    table: str
    kind: TableKind = TableKind.TABLE
    rows_dumped: int = 0
    triggers: int = 0


@dataclass
class DatabaseStats:
    """Statistics for a single database."""
    name: str
    tables: list[TableStats] = field(default_factory=list)
    total_rows: int = 0


@dataclass
class DumpStats:
    """Overall dump statistics."""
    databases: list[DatabaseStats] = field(default_factory=list)
    total_tables: int = 0
    total_views: int = 0
    total_rows: int = 0
    skipped: list[str] = field(default_factory=list)
    elapsed_sec: float = 0.0


@dataclass
class SourceStats:
    """Restore statistics.

    statements_executed counts dispatched statements whether or not the
    executor is in dry-run mode.
    """
    statements_read: int = 0
    statements_executed: int = 0
    inserts_merged: int = 0
    elapsed_sec: float = 0.0


@dataclass
class DumpOptions:
    """Options for a single dump invocation."""
    databases: list[str] = field(default_factory=list)
    all_databases: bool = False
    tables: list[str] = field(default_factory=list)
    all_tables: bool = False
    include_data: bool = False
    drop_table: bool = False
    use_db: bool = False
    batch_size: int = 1
    writer: Optional[Union[TextIO, BinaryIO]] = None
    verbose: bool = False
    compression: Optional[CompressionLevel] = None

    def __post_init__(self):
        if not self.tables:
            self.all_tables = True

    @property
    def output(self) -> Union[TextIO, BinaryIO]:
        return self.writer if self.writer is not None else sys.stdout

    @classmethod
    def from_settings(cls, settings: dict[str, Any], **overrides: Any) -> "DumpOptions":
        """
        Create DumpOptions from a config mapping; keyword overrides take priority.
        """
        values = {}
        for key in ['databases', 'all_databases', 'tables', 'all_tables', 'include_data',
                    'drop_table', 'use_db', 'batch_size', 'verbose']:
            if key in settings:
                values[key] = settings[key]
        compression = settings.get('compression')
        if compression:
            values['compression'] = CompressionLevel.from_name(str(compression))
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


@dataclass
class SourceOptions:
    """Options for a single restore invocation."""
    dry_run: bool = False
    merge_insert: int = 1
    merge_mode: MergeMode = MergeMode.SAFE
    debug: bool = False

    @classmethod
    def from_settings(cls, settings: dict[str, Any], **overrides: Any) -> "SourceOptions":
        values = {}
        for key in ['dry_run', 'merge_insert', 'debug']:
            if key in settings:
                values[key] = settings[key]
        if 'merge_mode' in settings:
            values['merge_mode'] = MergeMode(settings['merge_mode'])
        values.update({k: v for k, v in overrides.items() if v is not None})
        if isinstance(values.get('merge_mode'), str):
            values['merge_mode'] = MergeMode(values['merge_mode'])
        return cls(**values)
