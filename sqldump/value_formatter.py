"""
Column value to SQL literal formatting for sqldump.

Every declared column type maps to exactly one TypeClass, and every
TypeClass maps to exactly one formatting function. Unknown types are
rejected in ValueFormatter.resolve() and nowhere else.
"""

from datetime import date, datetime, time, timedelta
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Iterable, Sequence

from .exceptions import UnsupportedTypeError, ValueFormatError
from .models import ColumnValue, normalize_type_name


class TypeClass(Enum):
    """Formatting rule families."""
    INTEGER = "integer"
    FLOAT = "float"
    DECIMAL = "decimal"
    DATE = "date"
    DATETIME = "datetime"
    TIME = "time"
    YEAR = "year"
    CHAR = "char"
    BINARY = "binary"
    QUOTED = "quoted"
    BOOL = "bool"


TYPE_CLASSES: dict[str, TypeClass] = {
    **dict.fromkeys(['TINYINT', 'SMALLINT', 'MEDIUMINT', 'INT', 'INTEGER', 'BIGINT'], TypeClass.INTEGER),
    **dict.fromkeys(['FLOAT', 'DOUBLE', 'REAL'], TypeClass.FLOAT),
    **dict.fromkeys(['DECIMAL', 'DEC', 'NUMERIC'], TypeClass.DECIMAL),
    'DATE': TypeClass.DATE,
    **dict.fromkeys(['DATETIME', 'TIMESTAMP'], TypeClass.DATETIME),
    'TIME': TypeClass.TIME,
    'YEAR': TypeClass.YEAR,
    **dict.fromkeys(['CHAR', 'VARCHAR', 'TINYTEXT', 'TEXT', 'MEDIUMTEXT', 'LONGTEXT'], TypeClass.CHAR),
    **dict.fromkeys(
        ['BIT', 'BINARY', 'VARBINARY', 'TINYBLOB', 'BLOB', 'MEDIUMBLOB', 'LONGBLOB'], TypeClass.BINARY
    ),
    **dict.fromkeys(['ENUM', 'SET', 'JSON'], TypeClass.QUOTED),
    **dict.fromkeys(['BOOL', 'BOOLEAN'], TypeClass.BOOL),
}

# MySQL string literal escapes; backslash first so it is not doubled twice
ESCAPE_TABLE = str.maketrans({
    '\\': '\\\\',
    '\0': '\\0',
    "'": "\\'",
    '"': '\\"',
    '\b': '\\b',
    '\n': '\\n',
    '\r': '\\r',
    '\x1a': '\\Z',
})

_RAW = (bytes, bytearray, memoryview)


def escape_string(value: str) -> str:
    """Escape a string for use inside a single-quoted MySQL literal."""
    return value.translate(ESCAPE_TABLE)


def format_date(value: date) -> str:
    """Render YYYY-MM-DD with the year zero-padded to four digits."""
    return f"{value.year:04d}-{value.month:02d}-{value.day:02d}"


def format_datetime(value: date) -> str:
    """Render YYYY-MM-DD HH:MM:SS; fractional seconds are dropped and a plain date gets midnight."""
    if not isinstance(value, datetime):
        return f"{format_date(value)} 00:00:00"
    return f"{format_date(value)} {value.hour:02d}:{value.minute:02d}:{value.second:02d}"


def _text(value: Any) -> str:
    """Decode driver byte strings; pass str through."""
    if isinstance(value, _RAW):
        return bytes(value).decode('utf-8')
    return value


def format_timedelta(value: timedelta) -> str:
    """Render a TIME value the way MySQL prints it: [-]HH:MM:SS[.ffffff]."""
    sign = '-' if value < timedelta(0) else ''
    value = abs(value)
    total_seconds = value.days * 86400 + value.seconds
    hours, remainder = divmod(total_seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    text = f"{sign}{hours:02d}:{minutes:02d}:{seconds:02d}"
    if value.microseconds:
        text += f".{value.microseconds:06d}"
    return text


class ValueFormatter:
    """Formats raw driver values as SQL literal text."""

    def __init__(self, type_classes: dict[str, TypeClass] = TYPE_CLASSES):
        self.type_classes = type_classes
        self._formatters: dict[TypeClass, Callable[[Any, str], str]] = {
            TypeClass.INTEGER: self._format_integer,
            TypeClass.FLOAT: self._format_float,
            TypeClass.DECIMAL: self._format_decimal,
            TypeClass.DATE: self._format_date,
            TypeClass.DATETIME: self._format_datetime,
            TypeClass.TIME: self._format_time,
            TypeClass.YEAR: self._format_year,
            TypeClass.CHAR: self._format_char,
            TypeClass.BINARY: self._format_binary,
            TypeClass.QUOTED: self._format_quoted,
            TypeClass.BOOL: self._format_bool,
        }
        missing = set(TypeClass) - set(self._formatters)
        if missing:
            raise TypeError(f"No formatter for type classes: {sorted(c.name for c in missing)}")

    def resolve(self, type_name: str) -> TypeClass:
        """Return the TypeClass for a declared type, or raise UnsupportedTypeError."""
        normalized = normalize_type_name(type_name)
        try:
            return self.type_classes[normalized]
        except KeyError:
            raise UnsupportedTypeError(normalized) from None

    def format_value(self, value: Any, type_name: str) -> str:
        """Format a single value of the given declared type."""
        if value is None:
            return 'NULL'
        type_class = self.resolve(type_name)
        return self._formatters[type_class](value, normalize_type_name(type_name))

    def format_column_value(self, column_value: ColumnValue) -> str:
        return self.format_value(column_value.value, column_value.type_name)

    def row_formatter(self, type_names: Sequence[str]) -> Callable[[Iterable[Any]], str]:
        """
        Resolve every column type up front and return a function that formats
        a whole row as comma-separated literals.

        Raises UnsupportedTypeError before any row has been formatted if one
        of the columns has no formatting rule.
        """
        normalized = [normalize_type_name(t) for t in type_names]
        formatters = [(self._formatters[self.resolve(t)], t) for t in normalized]

        def format_row(row: Iterable[Any]) -> str:
            return ','.join(
                'NULL' if value is None else formatter(value, type_name)
                for value, (formatter, type_name) in zip(row, formatters)
            )

        return format_row

    # Type class formatters. Each receives a non-NULL value and its type name.

    def _format_integer(self, value: Any, type_name: str) -> str:
        if isinstance(value, _RAW):
            return bytes(value).decode('ascii')
        if isinstance(value, str):
            return value
        if isinstance(value, int):
            return '%d' % value
        raise ValueFormatError(type_name, value)

    def _format_float(self, value: Any, type_name: str) -> str:
        if isinstance(value, _RAW):
            return bytes(value).decode('ascii')
        if isinstance(value, str):
            return value
        if isinstance(value, float):
            return repr(value)
        if isinstance(value, (int, Decimal)):
            return str(value)
        raise ValueFormatError(type_name, value)

    def _format_decimal(self, value: Any, type_name: str) -> str:
        if isinstance(value, _RAW):
            return bytes(value).decode('ascii')
        if isinstance(value, str):
            return value
        if isinstance(value, Decimal):
            # 'f' keeps the driver's digits, including trailing zeros, without exponent form
            return format(value, 'f')
        if isinstance(value, int):
            return '%d' % value
        raise ValueFormatError(type_name, value)

    def _format_date(self, value: Any, type_name: str) -> str:
        if isinstance(value, date):
            return f"'{format_date(value)}'"
        if isinstance(value, (str, *_RAW)):
            return f"'{_text(value)}'"
        raise ValueFormatError(type_name, value)

    def _format_datetime(self, value: Any, type_name: str) -> str:
        if isinstance(value, date):
            return f"'{format_datetime(value)}'"
        if isinstance(value, (str, *_RAW)):
            return f"'{_text(value)}'"
        raise ValueFormatError(type_name, value)

    def _format_time(self, value: Any, type_name: str) -> str:
        if isinstance(value, timedelta):
            return f"'{format_timedelta(value)}'"
        if isinstance(value, time):
            return f"'{value.isoformat()}'"
        if isinstance(value, (str, *_RAW)):
            return f"'{_text(value)}'"
        raise ValueFormatError(type_name, value)

    def _format_year(self, value: Any, type_name: str) -> str:
        if isinstance(value, int):
            return '%d' % value
        if isinstance(value, (str, *_RAW)):
            return _text(value)
        raise ValueFormatError(type_name, value)

    def _format_char(self, value: Any, type_name: str) -> str:
        if isinstance(value, (str, *_RAW)):
            return f"'{escape_string(_text(value))}'"
        raise ValueFormatError(type_name, value)

    def _format_binary(self, value: Any, type_name: str) -> str:
        if isinstance(value, str):
            value = value.encode('utf-8')
        if isinstance(value, _RAW):
            data = bytes(value)
            if not data:
                return "X''"
            return '0x' + data.hex().upper()
        if isinstance(value, int):
            return '0x%X' % value
        raise ValueFormatError(type_name, value)

    def _format_quoted(self, value: Any, type_name: str) -> str:
        if isinstance(value, (set, frozenset)):
            return f"'{','.join(sorted(value))}'"
        if isinstance(value, (str, *_RAW)):
            return f"'{_text(value)}'"
        raise ValueFormatError(type_name, value)

    def _format_bool(self, value: Any, type_name: str) -> str:
        if isinstance(value, (bool, int)):
            return 'true' if value else 'false'
        raise ValueFormatError(type_name, value)
