#!/usr/bin/env python3
"""
sqldump - CLI Entry Point
=========================
Dump MySQL/MariaDB databases to SQL text and source such dumps back:
- All or selected databases and tables
- Multi-row INSERT batches
- Optional gzip compression of the finished dump
- Merged INSERTs and dry-run when sourcing
"""

import argparse
import gzip
import logging
import sys
from typing import Any, Optional

import yaml

from .config import ConfigLoader
from .connection import DatabaseConnection
from .database_dumper import dump
from .models import DumpOptions, MergeMode, SourceOptions
from .source import source
from .utils import setup_logging


def build_connection(settings: dict[str, Any]) -> DatabaseConnection:
    """Create a DatabaseConnection from config connection settings."""
    if 'dsn' in settings:
        return DatabaseConnection.from_dsn(settings['dsn'])
    return DatabaseConnection(
        host=settings['host'],
        port=settings.get('port', DatabaseConnection.DEFAULT_PORT),
        user=settings['user'],
        password=settings.get('password', ''),
        database=settings.get('database')
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='sqldump - dump MySQL databases to SQL and source them back'
    )
    parser.add_argument(
        '-c', '--config',
        default='config.yaml',
        help='Path to configuration file (default: config.yaml)'
    )
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Enable verbose output'
    )
    subparsers = parser.add_subparsers(dest='command', required=True)

    dump_parser = subparsers.add_parser('dump', help='Dump databases to a SQL file')
    dump_parser.add_argument('-o', '--output', help='Output file (default: stdout)')
    dump_parser.add_argument(
        '-d', '--database', action='append', dest='databases',
        help='Database to dump (repeatable; default: database of the connection)'
    )
    dump_parser.add_argument('--all-databases', action='store_true', default=None, help='Dump every database')
    dump_parser.add_argument(
        '-t', '--table', action='append', dest='tables',
        help='Table to dump (repeatable; default: all tables)'
    )
    dump_parser.add_argument('--data', action='store_true', default=None, dest='include_data',
                             help='Include table rows')
    dump_parser.add_argument('--drop-table', action='store_true', default=None,
                             help='Write DROP TABLE/VIEW before each structure')
    dump_parser.add_argument('--use-db', action='store_true', default=None,
                             help='Write USE statements even for a single database')
    dump_parser.add_argument('--batch-size', type=int, help='Rows per INSERT statement')
    dump_parser.add_argument(
        '--compress', metavar='LEVEL',
        help='gzip the output file: fast, best or default (requires --output)'
    )

    source_parser = subparsers.add_parser('source', help='Source a SQL dump into a database')
    source_parser.add_argument('-i', '--input', default='-', help='Dump file, .gz allowed (default: stdin)')
    source_parser.add_argument('--dry-run', action='store_true', default=None,
                               help='Read and log statements without executing them')
    source_parser.add_argument('--merge-insert', type=int, help='Merge up to N consecutive INSERTs')
    source_parser.add_argument('--merge-mode', choices=[m.value for m in MergeMode],
                               help='safe: merge same-shaped INSERTs only; fast: splice on VALUES')

    return parser


def run_dump(args: argparse.Namespace, config: ConfigLoader, connection: DatabaseConnection) -> None:
    settings = dict(config.get_dump_settings())
    if args.compress:
        settings['compression'] = args.compress
    output_path = args.output or config.get_output_settings().get('file')

    handle = open(output_path, 'w', encoding='utf-8') if output_path else None
    try:
        options = DumpOptions.from_settings(
            settings,
            databases=args.databases,
            all_databases=args.all_databases,
            tables=args.tables,
            include_data=args.include_data,
            drop_table=args.drop_table,
            use_db=args.use_db,
            batch_size=args.batch_size,
            verbose=args.verbose or None,
            writer=handle,
        )
        stats = dump(connection, options)
    finally:
        if handle is not None:
            handle.close()

    logging.info("=" * 50)
    logging.info("DUMP COMPLETE")
    logging.info(f"Databases: {len(stats.databases)}")
    logging.info(f"Tables: {stats.total_tables}")
    logging.info(f"Views: {stats.total_views}")
    logging.info(f"Total Rows: {stats.total_rows}")


def _open_input(path: str):
    if path == '-':
        return sys.stdin
    if path.endswith('.gz'):
        return gzip.open(path, 'rt', encoding='utf-8')
    return open(path, 'r', encoding='utf-8')


def run_source(args: argparse.Namespace, config: ConfigLoader, connection: DatabaseConnection) -> None:
    options = SourceOptions.from_settings(
        config.get_source_settings(),
        dry_run=args.dry_run,
        merge_insert=args.merge_insert,
        merge_mode=args.merge_mode,
        debug=args.verbose or None,
    )
    reader = _open_input(args.input)
    try:
        stats = source(connection, reader, options)
    finally:
        if reader is not sys.stdin:
            reader.close()

    logging.info("=" * 50)
    logging.info("SOURCE COMPLETE" + (" (dry run)" if options.dry_run else ""))
    logging.info(f"Statements read: {stats.statements_read}")
    logging.info(f"Statements executed: {stats.statements_executed}")
    logging.info(f"INSERTs merged: {stats.inserts_merged}")


def main(argv: Optional[list[str]] = None):
    """Main entry point."""
    args = build_parser().parse_args(argv)

    # Load configuration
    try:
        config = ConfigLoader(args.config)
    except FileNotFoundError:
        print(f"Error: Configuration file '{args.config}' not found", file=sys.stderr)
        sys.exit(1)
    except yaml.YAMLError as e:
        print(f"Error: Invalid YAML in configuration file: {e}", file=sys.stderr)
        sys.exit(1)

    # Setup logging
    log_settings = config.get_logging_settings()
    if args.verbose:
        log_settings['level'] = 'DEBUG'
    setup_logging(log_settings)

    try:
        with build_connection(config.get_connection_settings()) as connection:
            if args.command == 'dump':
                run_dump(args, config, connection)
            else:
                run_source(args, config, connection)
    except Exception as e:
        logging.error(f"Fatal error: {e}")
        sys.exit(1)


if __name__ == '__main__':
    main()
