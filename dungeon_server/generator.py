# dungeon_server/generator.py - Random room-and-corridor dungeon generator
import random
from typing import Callable, List, Optional

from .dungeon import CORRIDOR, FIRST_ROOM_ID, WALL, DungeonModel, Room

# generate(width, height, target_room_count, average_room_size) -> DungeonModel
Generator = Callable[[int, int, int, int], DungeonModel]


class DungeonGenerator:
    """Places non-overlapping rectangular rooms and chains them with corridors.

    - Rooms are sized around average_room_size (+/- 50%) and kept off the
      outer edge, with at least one wall cell between any two rooms
    - Each new room is joined to the previous one by an L-shaped corridor that
      only carves through wall cells, so room ids stay intact
    - May return fewer rooms than requested when the grid fills up
    """

    PLACEMENT_ATTEMPTS_PER_ROOM = 30

    def __init__(self, seed: Optional[int] = None, rng: Optional[random.Random] = None):
        self._rng = rng or random.Random(seed)

    def __call__(self, width, height, target_room_count, average_room_size):
        return self.generate(width, height, target_room_count, average_room_size)

    def generate(self, width: int, height: int, target_room_count: int, average_room_size: int) -> DungeonModel:
        for name, value in (
            ("width", width),
            ("height", height),
            ("target_room_count", target_room_count),
            ("average_room_size", average_room_size),
        ):
            if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
                raise ValueError(f"{name} must be a positive integer, got {value!r}")

        rnd = self._rng
        grid = [[WALL for _ in range(width)] for _ in range(height)]
        rooms: List[Room] = []

        min_size = max(1, average_room_size - average_room_size // 2)
        max_size = max(min_size, average_room_size + average_room_size // 2)
        attempts = target_room_count * self.PLACEMENT_ATTEMPTS_PER_ROOM

        while len(rooms) < target_room_count and attempts > 0:
            attempts -= 1
            room_w = min(rnd.randint(min_size, max_size), width - 2)
            room_h = min(rnd.randint(min_size, max_size), height - 2)
            if room_w < 1 or room_h < 1:
                break
            x = rnd.randint(1, width - room_w - 1)
            y = rnd.randint(1, height - room_h - 1)
            if any(self._overlaps(x, y, room_w, room_h, other) for other in rooms):
                continue

            room = Room(
                id=FIRST_ROOM_ID + len(rooms),
                x=x,
                y=y,
                width=room_w,
                height=room_h,
                center_x=x + room_w // 2,
                center_y=y + room_h // 2,
            )
            for ry in range(y, y + room_h):
                for rx in range(x, x + room_w):
                    grid[ry][rx] = room.id
            if rooms:
                self._carve_corridor(grid, rooms[-1], room)
            rooms.append(room)

        return DungeonModel(width, height, grid, rooms)

    @staticmethod
    def _overlaps(x, y, w, h, other: Room) -> bool:
        # one cell of padding keeps neighbouring rooms separated by a wall
        return not (
            x + w + 1 <= other.x
            or other.x + other.width + 1 <= x
            or y + h + 1 <= other.y
            or other.y + other.height + 1 <= y
        )

    def _carve_corridor(self, grid, a: Room, b: Room):
        ax, ay = a.center_x, a.center_y
        bx, by = b.center_x, b.center_y
        if self._rng.random() < 0.5:
            self._carve_line(grid, ax, bx, ay, horizontal=True)
            self._carve_line(grid, ay, by, bx, horizontal=False)
        else:
            self._carve_line(grid, ay, by, ax, horizontal=False)
            self._carve_line(grid, ax, bx, by, horizontal=True)

    @staticmethod
    def _carve_line(grid, start, end, fixed, horizontal):
        step = 1 if end >= start else -1
        for i in range(start, end + step, step):
            x, y = (i, fixed) if horizontal else (fixed, i)
            if grid[y][x] == WALL:
                grid[y][x] = CORRIDOR


def generate(width: int, height: int, target_room_count: int, average_room_size: int) -> DungeonModel:
    """Generate a dungeon with a fresh unseeded generator."""
    return DungeonGenerator().generate(width, height, target_room_count, average_room_size)
