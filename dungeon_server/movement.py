# dungeon_server/movement.py - Pure move validation against dungeon geometry
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from .dungeon import DungeonModel, Point


class Direction(str, Enum):
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"

    @property
    def offset(self):
        return _OFFSETS[self]


_OFFSETS = {
    Direction.UP: (0, -1),
    Direction.DOWN: (0, 1),
    Direction.LEFT: (-1, 0),
    Direction.RIGHT: (1, 0),
}


@dataclass(frozen=True)
class Moved:
    position: Point
    # None for vertical moves: facing is left as it was
    facing_right: Optional[bool]


@dataclass(frozen=True)
class Blocked:
    pass


BLOCKED = Blocked()

MoveResult = Union[Moved, Blocked]


def try_move(position: Point, direction: Direction, dungeon: DungeonModel) -> MoveResult:
    """Return where one step in `direction` lands, or BLOCKED.

    The target must be inside the grid and not a wall. No side effects, so
    the same inputs always give the same answer.
    """
    dx, dy = direction.offset
    nx, ny = position[0] + dx, position[1] + dy
    if not dungeon.walkable(nx, ny):
        return BLOCKED

    facing_right = None
    if direction is Direction.RIGHT:
        facing_right = True
    elif direction is Direction.LEFT:
        facing_right = False
    return Moved(Point(nx, ny), facing_right)
