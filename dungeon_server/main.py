# dungeon_server/main.py - Websocket entry point for the dungeon server
import asyncio
import contextlib
import logging
import sys

import websockets

from .broadcast import ClientConnection
from .dungeon import DungeonGenerationError
from .game_server import GameServer, MoveRequested, PlayerConnected, PlayerDisconnected
from .protocol import ProtocolError, RateLimited, parse_client_message
from .settings import ConfigError, Settings, load_settings
from .stats import open_stats_sink

logger = logging.getLogger(__name__)


class InputThrottle:
    """Token bucket limiting how fast one client may send moves."""

    def __init__(self, rate: float, burst: float, clock=None):
        self.rate = rate
        self.burst = burst
        self.clock = clock or asyncio.get_running_loop().time
        self.tokens = burst
        self.last_refill = self.clock()
        self.warn_cooldown = 0.0

    def allow(self) -> bool:
        now = self.clock()
        self.tokens = min(self.burst, self.tokens + (now - self.last_refill) * self.rate)
        self.last_refill = now
        if self.tokens >= 1.0:
            self.tokens -= 1.0
            return True
        return False

    def should_warn(self) -> bool:
        """True at most once per second while inputs are being dropped."""
        now = self.clock()
        if now >= self.warn_cooldown:
            self.warn_cooldown = now + 1.0
            return True
        return False


def make_handler(server: GameServer, settings: Settings):
    async def handle_client(websocket, path=None):
        """Handle one player connection for its whole lifetime.
        Compatible with websockets versions that pass either (websocket) or (websocket, path).
        """
        connection = ClientConnection(websocket)
        writer = asyncio.create_task(connection.pump())
        throttle = InputThrottle(settings.input_rps, settings.input_burst)
        logger.debug("Client %r connected", connection)

        try:
            await server.submit(PlayerConnected(connection))
            async for message in websocket:
                try:
                    request = parse_client_message(message)
                    if throttle.allow():
                        await server.submit(MoveRequested(connection, request.move))
                    elif throttle.should_warn():
                        logger.info("[RateLimit] Dropping input from %r", connection)
                        connection.push(RateLimited().encode())
                except ProtocolError as e:
                    logger.debug("Dropping frame from %r: %s", connection, e)
                except Exception:
                    logger.exception("Error handling input from %r", connection)
        except websockets.ConnectionClosedOK:
            logger.debug("Client %r disconnected normally", connection)
        except websockets.ConnectionClosedError as e:
            logger.info("Client %r disconnected with error: %s", connection, e)
        except Exception:
            logger.exception("Unexpected error in handle_client for %r", connection)
        finally:
            await server.submit(PlayerDisconnected(connection))
            writer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await writer
            logger.debug("Client %r connection cleaned up", connection)

    return handle_client


async def main(settings: Settings):
    """Main server function"""
    server = GameServer(settings.dungeon_options, stats_sink=open_stats_sink(settings.stats_db))
    await server.start()

    try:
        async with websockets.serve(make_handler(server, settings), settings.host, settings.port):
            logger.info("Dungeon server running on ws://%s:%d", settings.host, settings.port)
            await asyncio.Event().wait()
    finally:
        await server.stop()
        server.stats_sink.close()
        logger.info("Server stopped")


def run(argv=None):
    try:
        settings = load_settings(argv)
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(2)

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        asyncio.run(main(settings))
    except KeyboardInterrupt:
        logger.info("Server shutdown requested")
    except DungeonGenerationError as e:
        logger.critical("Cannot start: %s", e)
        sys.exit(1)


if __name__ == "__main__":
    run()
