# dungeon_server/stats.py - Fire-and-forget recording of finished rounds
import asyncio
import logging
import sqlite3
import time
from dataclasses import dataclass
from typing import Optional, Set

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GameStatsRecord:
    duration_seconds: float
    player_count: int


class NullStatsSink:
    """Sink used when no stats database is configured."""

    def record(self, record: GameStatsRecord):
        logger.debug("Stats disabled, dropping %s", record)

    async def flush(self):
        pass

    def close(self):
        pass


class SqliteStatsStore:
    """Append-only table of finished rounds."""

    CREATE_TABLE = (
        "CREATE TABLE IF NOT EXISTS game_details ("
        "id INTEGER PRIMARY KEY AUTOINCREMENT, "
        "time REAL NOT NULL, "
        "numplayers INTEGER NOT NULL, "
        "recorded_at REAL NOT NULL)"
    )

    def __init__(self, path: str):
        self.path = path
        # writes happen on worker threads via asyncio.to_thread
        self._conn = sqlite3.connect(path, check_same_thread=False)
        with self._conn:
            self._conn.execute(self.CREATE_TABLE)
        logger.info("Stats table ready in %s", path)

    def save(self, record: GameStatsRecord):
        with self._conn:
            self._conn.execute(
                "INSERT INTO game_details (time, numplayers, recorded_at) VALUES (?, ?, ?)",
                (record.duration_seconds, record.player_count, time.time()),
            )

    def load_all(self):
        cur = self._conn.execute("SELECT time, numplayers FROM game_details ORDER BY id")
        return [GameStatsRecord(duration, count) for duration, count in cur.fetchall()]

    def close(self):
        self._conn.close()


class BackgroundStatsSink:
    """Runs store writes off the event loop and never lets them fail a round.

    record() returns immediately; the write outcome is only logged.
    """

    def __init__(self, store):
        self.store = store
        self._pending: Set[asyncio.Task] = set()
        self.failures = 0

    def record(self, record: GameStatsRecord):
        task = asyncio.get_running_loop().create_task(self._write(record))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _write(self, record: GameStatsRecord):
        try:
            await asyncio.to_thread(self.store.save, record)
            logger.info("Recorded round: %.2fs with %d player(s)", record.duration_seconds, record.player_count)
        except Exception:
            self.failures += 1
            logger.exception("Failed to record round stats %s", record)

    async def flush(self):
        """Wait for writes that are still in flight."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def close(self):
        self.store.close()


def open_stats_sink(path: Optional[str]):
    """Build the sink for the configured database path (empty disables stats)."""
    if not path:
        return NullStatsSink()
    return BackgroundStatsSink(SqliteStatsStore(path))
