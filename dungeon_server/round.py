# dungeon_server/round.py - Round state machine and owner of the live dungeon
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .dungeon import DungeonGenerationError, DungeonModel, Point
from .generator import Generator
from .movement import Blocked, Direction, try_move
from .players import Player, PlayerRegistry
from .stats import GameStatsRecord

logger = logging.getLogger(__name__)


class RoundState(Enum):
    ACTIVE = "active"
    TRANSITIONING = "transitioning"


class MoveStatus(Enum):
    UNKNOWN_CONNECTION = "unknown_connection"
    BLOCKED = "blocked"
    MOVED = "moved"
    GOAL_REACHED = "goal_reached"


@dataclass
class MoveOutcome:
    status: MoveStatus
    player: Optional[Player] = None


@dataclass(frozen=True)
class DungeonOptions:
    width: int = 25
    height: int = 25
    room_count: int = 25
    average_room_size: int = 5


class RoundCoordinator:
    """Owns the dungeon, the start/end points and the round clock.

    All methods are synchronous and are only called from the game server's
    event consumer, one event at a time. A goal-reaching move runs the whole
    transition (stats, regeneration, player reset) before returning, so no
    caller ever sees the TRANSITIONING state.
    """

    GENERATION_ATTEMPTS = 2

    def __init__(self, generator: Generator, registry: PlayerRegistry, stats_sink, options: DungeonOptions = DungeonOptions(), clock=time.time):
        self.generator = generator
        self.registry = registry
        self.stats_sink = stats_sink
        self.options = options
        self.clock = clock

        self.state = RoundState.ACTIVE
        self.dungeon: Optional[DungeonModel] = None
        self.start_point: Optional[Point] = None
        self.end_point: Optional[Point] = None
        self.round_started_at = 0.0
        self.rounds_completed = 0

    def init(self):
        """Generate the first dungeon. Raises DungeonGenerationError if that is impossible."""
        dungeon = self._generate()
        if dungeon is None:
            raise DungeonGenerationError(
                f"could not generate a playable dungeon with {self.options}"
            )
        self._install(dungeon)
        self.round_started_at = self.clock()
        logger.info("Initial dungeon generated: %r", dungeon)

    def admit(self, connection_id: str) -> Player:
        return self.registry.admit(connection_id, self.start_point)

    def handle_move(self, connection_id: str, direction: Direction) -> MoveOutcome:
        player = self.registry.get(connection_id)
        if player is None:
            return MoveOutcome(MoveStatus.UNKNOWN_CONNECTION)

        result = try_move(player.position, direction, self.dungeon)
        if isinstance(result, Blocked):
            return MoveOutcome(MoveStatus.BLOCKED, player)

        self.registry.apply_move(connection_id, result.position, result.facing_right)
        if result.position == self.end_point:
            self.complete_round()
            return MoveOutcome(MoveStatus.GOAL_REACHED, player)
        return MoveOutcome(MoveStatus.MOVED, player)

    def complete_round(self):
        """Record the finished round and start the next one."""
        self.state = RoundState.TRANSITIONING
        try:
            now = self.clock()
            elapsed = max(0.0, now - self.round_started_at)
            self._record(GameStatsRecord(elapsed, len(self.registry)))
            self.rounds_completed += 1
            logger.info("Goal reached after %.2fs by one of %d player(s)", elapsed, len(self.registry))
            self.reset()
        finally:
            self.state = RoundState.ACTIVE

    def reset(self):
        """Swap in a fresh dungeon and put every player on its start point.

        If generation fails twice the previous dungeon stays in place.
        """
        dungeon = self._generate()
        if dungeon is None:
            logger.error("Dungeon regeneration failed, keeping previous dungeon %r", self.dungeon)
        else:
            self._install(dungeon)
            logger.debug("New dungeon generated: %r", dungeon)
        self.registry.reset_all_to_start(self.start_point)
        self.round_started_at = self.clock()

    def snapshot(self):
        return {
            "dungeon": self.dungeon.to_wire(),
            "startingPoint": self.start_point.to_wire(),
            "endingPoint": self.end_point.to_wire(),
        }

    def round_age(self) -> float:
        return self.clock() - self.round_started_at

    def _generate(self) -> Optional[DungeonModel]:
        opts = self.options
        for attempt in range(1, self.GENERATION_ATTEMPTS + 1):
            try:
                dungeon = self.generator(opts.width, opts.height, opts.room_count, opts.average_room_size)
                dungeon.ensure_playable()
                return dungeon
            except DungeonGenerationError as e:
                logger.warning("Dungeon generation attempt %d/%d failed: %s", attempt, self.GENERATION_ATTEMPTS, e)
        return None

    def _install(self, dungeon: DungeonModel):
        self.dungeon = dungeon
        self.start_point = dungeon.start_point
        self.end_point = dungeon.end_point

    def _record(self, record: GameStatsRecord):
        try:
            self.stats_sink.record(record)
        except Exception:
            logger.exception("Stats sink rejected %s", record)
