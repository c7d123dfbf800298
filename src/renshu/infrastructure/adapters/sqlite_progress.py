"""
SQLite progress repository: Infrastructure adapter for a local progress file.

Implements ProgressRepository with one ``progress`` table keyed by
(item_key, mode). Blocking sqlite calls run in a worker thread.
"""

import asyncio
import json
import logging
import sqlite3
from contextlib import closing
from datetime import datetime
from pathlib import Path

from renshu.domain.models import (
    ItemKey,
    PracticeMode,
    SchedulingRecord,
    SchedulingState,
    SessionScope,
)
from renshu.domain.ports import ProgressRepository

from .serialization import scheduling_from_dict, scheduling_to_dict

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS progress (
    item_key   TEXT NOT NULL,
    mode       TEXT NOT NULL,
    item_type  TEXT NOT NULL,
    scope      TEXT NOT NULL,
    due_epoch  REAL,
    scheduling TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    PRIMARY KEY (item_key, mode)
)
"""


class SqliteProgressRepository(ProgressRepository):
    """Stores scheduling records in a SQLite database file."""

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)

    def _connect(self) -> sqlite3.Connection:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self.db_path)
        conn.execute(SCHEMA)
        return conn

    def _select(self, query: str, params: tuple) -> list[SchedulingRecord]:
        records: list[SchedulingRecord] = []
        with closing(self._connect()) as conn:
            for item_key, mode, payload in conn.execute(query, params):
                try:
                    records.append(
                        SchedulingRecord(
                            key=ItemKey.parse(item_key),
                            mode=PracticeMode(mode),
                            scheduling=scheduling_from_dict(json.loads(payload)),
                        )
                    )
                except (ValueError, KeyError) as e:
                    logger.warning(f"Skipping unreadable progress row {item_key!r}: {e}")
        return records

    def _upsert(
        self,
        key: ItemKey,
        scheduling: SchedulingState,
        scope: SessionScope,
        mode: PracticeMode,
    ) -> None:
        with closing(self._connect()) as conn, conn:
            conn.execute(
                "INSERT OR REPLACE INTO progress "
                "(item_key, mode, item_type, scope, due_epoch, scheduling, updated_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?)",
                (
                    str(key),
                    mode.value,
                    key.item_type.value,
                    scope.value,
                    scheduling.due.timestamp() if scheduling.due else None,
                    json.dumps(scheduling_to_dict(scheduling)),
                    datetime.now().astimezone().isoformat(),
                ),
            )

    async def get_records(self, mode: PracticeMode) -> list[SchedulingRecord]:
        return await asyncio.to_thread(
            self._select,
            "SELECT item_key, mode, scheduling FROM progress WHERE mode = ?",
            (mode.value,),
        )

    async def get_due_records(self, mode: PracticeMode, now: datetime) -> list[SchedulingRecord]:
        return await asyncio.to_thread(
            self._select,
            "SELECT item_key, mode, scheduling FROM progress "
            "WHERE mode = ? AND due_epoch IS NOT NULL AND due_epoch <= ? "
            "ORDER BY due_epoch ASC",
            (mode.value, now.timestamp()),
        )

    async def persist(
        self,
        key: ItemKey,
        scheduling: SchedulingState,
        scope: SessionScope,
        mode: PracticeMode,
    ) -> None:
        await asyncio.to_thread(self._upsert, key, scheduling, scope, mode)
        logger.debug(f"Saved progress for {key} ({mode.value})")
