"""
Utility functions for sqldump.
"""

import logging
import sys
from pathlib import Path
from typing import Any, Optional
from urllib.parse import unquote

from .exceptions import DsnError


LOG_TIMESTAMP_FORMAT = '%Y-%m-%d %H:%M:%S'


def setup_logging(log_settings: dict[str, Any]) -> None:
    """Setup logging configuration."""
    log_level = getattr(logging, log_settings.get('level', 'INFO').upper())
    log_file = log_settings.get('file')

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=handlers,
        force=True
    )


def quote_identifier(name: str) -> str:
    """Backquote a table, column or database name."""
    return '`' + name.replace('`', '``') + '`'


def format_duration(seconds: float) -> str:
    """Format an elapsed time like '1m2.345s'."""
    minutes, seconds = divmod(seconds, 60)
    if minutes:
        return f"{int(minutes)}m{seconds:.3f}s"
    return f"{seconds:.3f}s"


def get_db_name_from_dsn(dsn: str) -> str:
    """Get the database name from a DSN like 'user:pass@tcp(host:3306)/db?charset=utf8'."""
    parts = dsn.split('/')
    if len(parts) == 2:
        return parts[1].split('?')[0]
    raise DsnError(dsn)


def get_db_host_from_dsn(dsn: str) -> str:
    """Get 'host:port' from a DSN, defaulting to 127.0.0.1 when the address is empty."""
    parts = dsn.split('@')
    if len(parts) == 2:
        host = parts[1].split('/')[0]
        if host.startswith('tcp(') and host.endswith(')'):
            host = host[4:-1]
        if not host.strip():
            return '127.0.0.1'
        return host
    raise DsnError(dsn)


def parse_dsn(dsn: str, default_port: int = 3306) -> dict[str, Optional[Any]]:
    """
    Parse a DSN into connection arguments.

    Returns a dict with host, port, user, password and database keys.
    """
    if '@' not in dsn:
        raise DsnError(dsn)
    credentials, _, _ = dsn.rpartition('@')
    user, _, password = credentials.partition(':')
    address = get_db_host_from_dsn(dsn)
    host, _, port = address.rpartition(':') if ':' in address else (address, '', '')
    database = get_db_name_from_dsn(dsn)
    try:
        port_number = int(port) if port else default_port
    except ValueError:
        raise DsnError(dsn) from None
    return {
        'host': host or '127.0.0.1',
        'port': port_number,
        'user': unquote(user),
        'password': unquote(password),
        'database': database or None,
    }
