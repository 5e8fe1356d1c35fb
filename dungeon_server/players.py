# dungeon_server/players.py - Connected players and their lifecycle
from dataclasses import dataclass
from typing import Dict, List, Optional

from .dungeon import Point


@dataclass
class Player:
    id: int
    connection_id: str
    x: int
    y: int
    is_moving: bool = False
    animation_frame_index: int = 0
    facing_right: bool = True

    @property
    def position(self) -> Point:
        return Point(self.x, self.y)

    def to_public(self):
        """Fields safe to send to clients (no connection id)."""
        return {
            "x": self.x,
            "y": self.y,
            "isMoving": self.is_moving,
            "animationFrameIndex": self.animation_frame_index,
            "facingRight": self.facing_right,
            "id": self.id,
        }


class PlayerRegistry:
    """Ordered roster of connected players keyed by connection id.

    Player ids come from a counter that only ever grows, so an id is never
    handed out twice while the server runs. The order of the roster is the
    join order; clients mirror it and splice by index on removal.
    """

    def __init__(self):
        self._players: List[Player] = []
        self._by_connection: Dict[str, Player] = {}
        self._last_id = 0

    def __len__(self):
        return len(self._players)

    def __iter__(self):
        return iter(list(self._players))

    def get(self, connection_id: str) -> Optional[Player]:
        return self._by_connection.get(connection_id)

    def admit(self, connection_id: str, start: Point) -> Player:
        if connection_id in self._by_connection:
            return self._by_connection[connection_id]

        self._last_id += 1
        player = Player(id=self._last_id, connection_id=connection_id, x=start.x, y=start.y)
        self._players.append(player)
        self._by_connection[connection_id] = player
        return player

    def remove(self, connection_id: str) -> Optional[int]:
        """Remove a player and return its roster index, or None if unknown."""
        player = self._by_connection.pop(connection_id, None)
        if player is None:
            return None
        index = self._players.index(player)
        del self._players[index]
        return index

    def apply_move(self, connection_id: str, position: Point, facing_right: Optional[bool]) -> Optional[Player]:
        player = self._by_connection.get(connection_id)
        if player is None:
            return None
        player.x, player.y = position
        player.is_moving = True
        if facing_right is not None:
            player.facing_right = facing_right
        return player

    def reset_all_to_start(self, start: Point):
        for player in self._players:
            player.x, player.y = start
            player.is_moving = False

    def snapshot_public(self):
        return [player.to_public() for player in self._players]
