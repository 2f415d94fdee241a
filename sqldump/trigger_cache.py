"""
Per-session trigger lookup for sqldump.
"""

import logging
from collections import defaultdict
from typing import Optional

from .models import TriggerRecord


class TriggerCache:
    """
    Fetches every trigger of a database once and serves per-table lookups
    from that single result.

    The cache belongs to one dump session; a new session creates a new cache
    and therefore sees triggers created after the previous dump. Within a
    session each database is enumerated at most once.
    """

    def __init__(self, connection):
        self.connection = connection
        self.query_count = 0
        self._triggers: dict[Optional[str], dict[str, list[TriggerRecord]]] = {}

    def triggers_for(self, table: str, database: Optional[str] = None) -> list[TriggerRecord]:
        """Return the triggers owned by a table, in SHOW TRIGGERS order."""
        if database not in self._triggers:
            self._triggers[database] = self._fetch(database)
        return list(self._triggers[database].get(table, []))

    def _fetch(self, database: Optional[str]) -> dict[str, list[TriggerRecord]]:
        grouped: dict[str, list[TriggerRecord]] = defaultdict(list)
        records = self.connection.get_triggers(database)
        self.query_count += 1
        for record in records:
            grouped[record.table].append(record)
        logging.debug(
            f"Fetched {len(records)} trigger(s) for {len(grouped)} table(s) "
            f"in '{database or 'current database'}'"
        )
        return dict(grouped)
