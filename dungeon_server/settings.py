# dungeon_server/settings.py - Startup configuration from flags and environment
import argparse
import os
from dataclasses import dataclass

from .round import DungeonOptions


class ConfigError(ValueError):
    """Startup configuration that cannot be used."""


@dataclass(frozen=True)
class Settings:
    host: str = "0.0.0.0"
    port: int = 8081
    dungeon_width: int = 25
    dungeon_height: int = 25
    room_count: int = 25
    average_room_size: int = 5
    stats_db: str = "dungeon_stats.db"
    input_rps: float = 30.0
    input_burst: float = 10.0
    log_level: str = "INFO"

    def __post_init__(self):
        for name in ("dungeon_width", "dungeon_height", "room_count", "average_room_size"):
            value = getattr(self, name)
            if not isinstance(value, int) or value <= 0:
                raise ConfigError(f"{name} must be a positive integer, got {value!r}")
        if not 0 < self.port < 65536:
            raise ConfigError(f"port must be between 1 and 65535, got {self.port}")
        if self.input_rps <= 0 or self.input_burst < 1:
            raise ConfigError("input rate must be positive and burst at least 1")

    @property
    def dungeon_options(self) -> DungeonOptions:
        return DungeonOptions(
            width=self.dungeon_width,
            height=self.dungeon_height,
            room_count=self.room_count,
            average_room_size=self.average_room_size,
        )


def _env(name: str, default, cast=str):
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return cast(raw)
    except ValueError as e:
        raise ConfigError(f"environment variable {name}={raw!r} is not a valid {cast.__name__}") from e


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Multiplayer dungeon server")
    parser.add_argument("--host", default=_env("DUNGEON_HOST", Settings.host), help="Interface to bind")
    parser.add_argument("--port", type=int, default=_env("DUNGEON_SERVER_PORT", Settings.port, int), help="Port to bind the game server on")
    parser.add_argument("--width", type=int, default=_env("DUNGEON_WIDTH", Settings.dungeon_width, int), help="Dungeon width in cells")
    parser.add_argument("--height", type=int, default=_env("DUNGEON_HEIGHT", Settings.dungeon_height, int), help="Dungeon height in cells")
    parser.add_argument("--rooms", type=int, default=_env("DUNGEON_ROOMS", Settings.room_count, int), help="Approximate number of rooms to generate")
    parser.add_argument("--room-size", type=int, default=_env("DUNGEON_ROOM_SIZE", Settings.average_room_size, int), help="Average room size")
    parser.add_argument("--stats-db", default=_env("DUNGEON_STATS_DB", Settings.stats_db), help="SQLite file for round stats (empty to disable)")
    parser.add_argument("--input-rps", type=float, default=_env("DUNGEON_INPUT_RPS", Settings.input_rps, float), help="Moves per second allowed per client")
    parser.add_argument("--input-burst", type=float, default=_env("DUNGEON_INPUT_BURST", Settings.input_burst, float), help="Move burst allowed per client")
    parser.add_argument("--log-level", default=_env("DUNGEON_LOG_LEVEL", Settings.log_level), help="Logging level")
    return parser


def load_settings(argv=None) -> Settings:
    args = build_parser().parse_args(argv)
    return Settings(
        host=args.host,
        port=args.port,
        dungeon_width=args.width,
        dungeon_height=args.height,
        room_count=args.rooms,
        average_room_size=args.room_size,
        stats_db=args.stats_db,
        input_rps=args.input_rps,
        input_burst=args.input_burst,
        log_level=args.log_level.upper(),
    )
