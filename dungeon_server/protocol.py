# dungeon_server/protocol.py - Wire messages exchanged with dungeon clients
import json
from dataclasses import dataclass
from typing import Any, ClassVar, Dict, List

from .movement import Direction


class ProtocolError(ValueError):
    """A client frame that cannot be turned into a known message."""


def encode(msg: dict) -> str:
    """Convert a Python dict to a JSON string."""
    return json.dumps(msg, separators=(",", ":"))


def decode(text: str) -> dict:
    """Convert a JSON string back to a Python dict."""
    return json.loads(text)


class ServerMessage:
    """Base for server->client messages. Frames look like {"type": ..., "data": ...}."""

    TYPE: ClassVar[str] = ""

    def payload(self) -> Any:
        raise NotImplementedError

    def to_frame(self) -> dict:
        return {"type": self.TYPE, "data": self.payload()}

    def encode(self) -> str:
        return encode(self.to_frame())


@dataclass(frozen=True)
class NewId(ServerMessage):
    TYPE: ClassVar[str] = "newId"
    player_id: int

    def payload(self):
        return self.player_id


@dataclass(frozen=True)
class DungeonData(ServerMessage):
    TYPE: ClassVar[str] = "dungeon data"
    snapshot: Dict[str, Any]

    def payload(self):
        return self.snapshot


@dataclass(frozen=True)
class GetPlayers(ServerMessage):
    TYPE: ClassVar[str] = "getPlayers"
    players: List[Dict[str, Any]]

    def payload(self):
        return {"instance": self.players}


@dataclass(frozen=True)
class UpdatePlayers(ServerMessage):
    TYPE: ClassVar[str] = "updatePlayers"
    player: Dict[str, Any]

    def payload(self):
        return self.player


@dataclass(frozen=True)
class RemovedPlayers(ServerMessage):
    TYPE: ClassVar[str] = "removedPlayers"
    index: int

    def payload(self):
        return self.index


@dataclass(frozen=True)
class RateLimited(ServerMessage):
    TYPE: ClassVar[str] = "rateLimit"
    message: str = "Too many inputs; slowing down."

    def payload(self):
        return {"message": self.message}


@dataclass(frozen=True)
class NewCoordinates:
    """Client move request."""

    TYPE: ClassVar[str] = "newCoordinates"
    move: Direction


def parse_client_message(raw) -> NewCoordinates:
    """Validate a raw client frame. Raises ProtocolError for anything unexpected."""
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ProtocolError("frame is not valid UTF-8") from e
    try:
        frame = decode(raw)
    except (TypeError, ValueError, RecursionError) as e:
        raise ProtocolError(f"invalid JSON: {type(e).__name__}") from e

    if not isinstance(frame, dict):
        raise ProtocolError("frame must be a JSON object")
    msg_type = frame.get("type")
    if msg_type != NewCoordinates.TYPE:
        raise ProtocolError(f"unknown message type {msg_type!r}")

    data = frame.get("data")
    if not isinstance(data, dict):
        raise ProtocolError("newCoordinates data must be an object")
    move = data.get("move")
    try:
        return NewCoordinates(Direction(move))
    except ValueError as e:
        raise ProtocolError(f"unknown move {move!r}") from e
