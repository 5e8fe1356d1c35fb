# dungeon_server/game_server.py - Single-consumer event loop tying the game together
import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, Optional, Union

from .broadcast import Broadcaster, ClientConnection
from .generator import DungeonGenerator
from .movement import Direction
from .players import PlayerRegistry
from .protocol import DungeonData, GetPlayers, NewId, RemovedPlayers, UpdatePlayers
from .round import DungeonOptions, MoveStatus, RoundCoordinator
from .stats import NullStatsSink

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlayerConnected:
    connection: ClientConnection


@dataclass(frozen=True)
class MoveRequested:
    connection: ClientConnection
    direction: Direction


@dataclass(frozen=True)
class PlayerDisconnected:
    connection: ClientConnection


GameEvent = Union[PlayerConnected, MoveRequested, PlayerDisconnected]


class GameServer:
    """Owns every piece of game state and applies events to it one at a time.

    Websocket handlers call submit(); a single consumer task pulls events off
    the queue in arrival order and hands each to process(). process() never
    awaits, so one event's mutations and broadcasts finish before the next
    event is looked at. That ordering is the only synchronization the
    registry, the dungeon and the round state rely on.
    """

    MAX_QUEUED_EVENTS = 1024

    def __init__(self, options: DungeonOptions = DungeonOptions(), generator=None, stats_sink=None, status_interval: float = 30.0, clock=None):
        self.registry = PlayerRegistry()
        self.broadcaster = Broadcaster()
        self.stats_sink = stats_sink or NullStatsSink()
        coordinator_kwargs = {"clock": clock} if clock is not None else {}
        self.coordinator = RoundCoordinator(
            generator or DungeonGenerator(),
            self.registry,
            self.stats_sink,
            options,
            **coordinator_kwargs,
        )
        self.status_interval = status_interval
        self.events_processed = 0
        self._events: asyncio.Queue = asyncio.Queue(maxsize=self.MAX_QUEUED_EVENTS)
        self._consumer_task: Optional[asyncio.Task] = None
        self._status_task: Optional[asyncio.Task] = None

    async def start(self):
        """Generate the first dungeon and start consuming events."""
        self.coordinator.init()
        self._consumer_task = asyncio.create_task(self._consume())
        self._status_task = asyncio.create_task(self._status_loop())
        logger.info("Game server started")

    async def stop(self):
        for task in (self._status_task, self._consumer_task):
            if task:
                task.cancel()
        for task in (self._status_task, self._consumer_task):
            if task:
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        await self.stats_sink.flush()
        logger.info("Game server stopped")

    async def submit(self, event: GameEvent):
        """Queue an event; waits when the queue is full."""
        await self._events.put(event)

    async def join(self):
        """Wait until every submitted event has been processed."""
        await self._events.join()

    async def _consume(self):
        while True:
            event = await self._events.get()
            try:
                self.process(event)
            except Exception:
                logger.exception("Error while processing %r", event)
            finally:
                self._events.task_done()

    def process(self, event: GameEvent):
        self.events_processed += 1
        if isinstance(event, PlayerConnected):
            self._on_connect(event.connection)
        elif isinstance(event, MoveRequested):
            self._on_move(event.connection, event.direction)
        elif isinstance(event, PlayerDisconnected):
            self._on_disconnect(event.connection)
        else:
            raise TypeError(f"unknown event {event!r}")

    def _on_connect(self, connection: ClientConnection):
        player = self.coordinator.admit(connection.connection_id)
        self.broadcaster.add(connection)
        logger.info("Player %d connected (%d online), sending dungeon data", player.id, len(self.registry))
        self.broadcaster.send(connection, NewId(player.id))
        self.broadcaster.send(connection, DungeonData(self.coordinator.snapshot()))
        self.broadcaster.broadcast(GetPlayers(self.registry.snapshot_public()))

    def _on_move(self, connection: ClientConnection, direction: Direction):
        outcome = self.coordinator.handle_move(connection.connection_id, direction)
        if outcome.status is MoveStatus.MOVED:
            self.broadcaster.broadcast(UpdatePlayers(outcome.player.to_public()))
        elif outcome.status is MoveStatus.GOAL_REACHED:
            self.broadcaster.broadcast(DungeonData(self.coordinator.snapshot()))
            self.broadcaster.broadcast(GetPlayers(self.registry.snapshot_public()))

    def _on_disconnect(self, connection: ClientConnection):
        self.broadcaster.discard(connection)
        player = self.registry.get(connection.connection_id)
        index = self.registry.remove(connection.connection_id)
        if index is None:
            return
        logger.info("Player %d disconnected (%d online)", player.id, len(self.registry))
        self.broadcaster.broadcast(RemovedPlayers(index))

    def get_stats(self) -> Dict:
        """Summary of the server state for status reporting."""
        coordinator = self.coordinator
        return {
            "players": len(self.registry),
            "connections": len(self.broadcaster),
            "rounds_completed": coordinator.rounds_completed,
            "round_age": coordinator.round_age(),
            "events_processed": self.events_processed,
            "queued_events": self._events.qsize(),
            "dungeon": repr(coordinator.dungeon),
        }

    async def _status_loop(self):
        """Periodically report server status while anyone is connected."""
        while True:
            await asyncio.sleep(self.status_interval)
            stats = self.get_stats()
            if stats["players"] > 0:
                logger.info(
                    "Status - players: %d, rounds completed: %d, current round: %.0fs, events: %d",
                    stats["players"],
                    stats["rounds_completed"],
                    stats["round_age"],
                    stats["events_processed"],
                )
