# dungeon_server/dungeon.py - Immutable dungeon layout for one round
from dataclasses import dataclass
from typing import List, NamedTuple, Sequence, Tuple

WALL = 0
CORRIDOR = 1
FIRST_ROOM_ID = 2


class RoomNotFound(LookupError):
    """Raised when a room id does not exist in the dungeon."""


class DungeonGenerationError(RuntimeError):
    """Raised when a generated dungeon cannot host a round (fewer than 2 rooms)."""


class Point(NamedTuple):
    x: int
    y: int

    def to_wire(self):
        return {"x": self.x, "y": self.y}


@dataclass(frozen=True)
class Room:
    id: int
    x: int
    y: int
    width: int
    height: int
    center_x: int
    center_y: int

    @property
    def center(self) -> Point:
        return Point(self.center_x, self.center_y)

    def to_wire(self):
        return {
            "id": self.id,
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "centerX": self.center_x,
            "centerY": self.center_y,
        }


class DungeonModel:
    """Grid of cells plus room metadata.

    cells[y][x] holds 0 for a wall, 1 for a corridor and the room id (>= 2)
    for room cells. Instances are never mutated after construction; a new
    round gets a new model.
    """

    def __init__(self, width: int, height: int, cells: Sequence[Sequence[int]], rooms: Sequence[Room]):
        if width <= 0 or height <= 0:
            raise ValueError(f"dungeon dimensions must be positive, got {width}x{height}")
        if len(cells) != height or any(len(row) != width for row in cells):
            raise ValueError(f"cell grid does not match {width}x{height}")

        room_ids = [room.id for room in rooms]
        if room_ids and room_ids[0] != FIRST_ROOM_ID:
            raise ValueError(f"first room id must be {FIRST_ROOM_ID}, got {room_ids[0]}")
        if any(b <= a for a, b in zip(room_ids, room_ids[1:])):
            raise ValueError("room ids must be strictly increasing")

        known = set(room_ids)
        for y, row in enumerate(cells):
            for x, value in enumerate(row):
                if value not in (WALL, CORRIDOR) and value not in known:
                    raise ValueError(f"cell ({x}, {y}) holds unknown value {value}")

        self.width = width
        self.height = height
        self.cells: Tuple[Tuple[int, ...], ...] = tuple(tuple(row) for row in cells)
        self.rooms: Tuple[Room, ...] = tuple(rooms)
        self._rooms_by_id = {room.id: room for room in self.rooms}

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def cell(self, x: int, y: int) -> int:
        return self.cells[y][x]

    def walkable(self, x: int, y: int) -> bool:
        """True for in-bounds corridor or room cells."""
        return self.in_bounds(x, y) and self.cells[y][x] >= CORRIDOR

    def center_of(self, room_id: int) -> Point:
        room = self._rooms_by_id.get(room_id)
        if room is None:
            raise RoomNotFound(f"no room with id {room_id}")
        return room.center

    @property
    def room_count(self) -> int:
        return len(self.rooms)

    @property
    def start_point(self) -> Point:
        """Center of the first generated room."""
        return self.center_of(FIRST_ROOM_ID)

    @property
    def end_point(self) -> Point:
        """Center of the last generated room."""
        if not self.rooms:
            raise RoomNotFound("dungeon has no rooms")
        return self.rooms[-1].center

    def ensure_playable(self):
        """Raise DungeonGenerationError unless start and end are distinct walkable rooms."""
        if self.room_count < 2:
            raise DungeonGenerationError(f"dungeon has {self.room_count} room(s), need at least 2")
        for label, point in (("start", self.start_point), ("end", self.end_point)):
            if not self.walkable(point.x, point.y):
                raise DungeonGenerationError(f"{label} point {tuple(point)} is not walkable")
        if self.start_point == self.end_point:
            raise DungeonGenerationError(f"start and end share the cell {tuple(self.start_point)}")

    def to_wire(self):
        return {
            "cells": [list(row) for row in self.cells],
            "width": self.width,
            "height": self.height,
            "rooms": [room.to_wire() for room in self.rooms],
        }

    @classmethod
    def from_rows(cls, rows: List[List[int]], rooms: Sequence[Room]) -> "DungeonModel":
        height = len(rows)
        width = len(rows[0]) if rows else 0
        return cls(width, height, rows, rooms)

    def __repr__(self):
        return f"DungeonModel({self.width}x{self.height}, rooms={self.room_count})"
