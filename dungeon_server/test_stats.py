# Tests for round stats recording
import asyncio

from dungeon_server.stats import (
    BackgroundStatsSink,
    GameStatsRecord,
    NullStatsSink,
    SqliteStatsStore,
    open_stats_sink,
)


class FailingStore:
    def save(self, record):
        raise OSError("disk full")

    def close(self):
        pass


def test_sqlite_store_appends_records(tmp_path):
    store = SqliteStatsStore(str(tmp_path / "stats.db"))
    store.save(GameStatsRecord(12.5, 3))
    store.save(GameStatsRecord(0.0, 1))
    assert store.load_all() == [GameStatsRecord(12.5, 3), GameStatsRecord(0.0, 1)]
    store.close()


def test_background_sink_writes_off_loop(tmp_path):
    store = SqliteStatsStore(str(tmp_path / "stats.db"))
    sink = BackgroundStatsSink(store)

    async def scenario():
        sink.record(GameStatsRecord(4.0, 2))
        await sink.flush()

    asyncio.run(scenario())
    assert store.load_all() == [GameStatsRecord(4.0, 2)]
    sink.close()


def test_background_sink_swallows_store_failures():
    sink = BackgroundStatsSink(FailingStore())

    async def scenario():
        sink.record(GameStatsRecord(1.0, 1))
        await sink.flush()

    asyncio.run(scenario())
    assert sink.failures == 1


def test_open_stats_sink_disabled_without_path():
    assert isinstance(open_stats_sink(""), NullStatsSink)
    assert isinstance(open_stats_sink(None), NullStatsSink)
