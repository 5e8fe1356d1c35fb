# dungeon_server/conftest.py - Shared fixtures for the dungeon server tests
import pytest

from dungeon_server.dungeon import DungeonModel, Room

# Room 2 is a single cell at (2, 2) with a corridor to its right and a
# corridor running down to room 3 at (3, 4).
SMALL_ROWS = [
    [0, 0, 0, 0, 0, 0, 0, 0, 0, 0],
    [0, 0, 0, 0, 0, 0, 0, 0, 0, 0],
    [0, 0, 2, 1, 0, 0, 0, 0, 0, 0],
    [0, 0, 1, 0, 0, 0, 0, 0, 0, 0],
    [0, 0, 1, 3, 0, 0, 0, 0, 0, 0],
    [0, 0, 0, 0, 0, 0, 0, 0, 0, 0],
    [0, 0, 0, 0, 0, 0, 0, 0, 0, 0],
    [0, 0, 0, 0, 0, 0, 0, 0, 0, 0],
    [0, 0, 0, 0, 0, 0, 0, 0, 0, 0],
    [0, 0, 0, 0, 0, 0, 0, 0, 0, 0],
]
SMALL_ROOMS = [
    Room(id=2, x=2, y=2, width=1, height=1, center_x=2, center_y=2),
    Room(id=3, x=3, y=4, width=1, height=1, center_x=3, center_y=4),
]

# A different layout: room 2 at (5, 5), room 3 at (7, 5), joined by (6, 5).
OTHER_ROWS = [[0] * 10 for _ in range(10)]
OTHER_ROWS[5][5] = 2
OTHER_ROWS[5][6] = 1
OTHER_ROWS[5][7] = 3
OTHER_ROOMS = [
    Room(id=2, x=5, y=5, width=1, height=1, center_x=5, center_y=5),
    Room(id=3, x=7, y=5, width=1, height=1, center_x=7, center_y=5),
]

# Only one room: generation "succeeds" but the dungeon is not playable.
ONE_ROOM_ROWS = [[0] * 10 for _ in range(10)]
ONE_ROOM_ROWS[1][1] = 2
ONE_ROOM_ROOMS = [Room(id=2, x=1, y=1, width=1, height=1, center_x=1, center_y=1)]


class SequenceGenerator:
    """Generator double that hands out prepared dungeons in order."""

    def __init__(self, *dungeons):
        self.dungeons = list(dungeons)
        self.calls = []

    def __call__(self, width, height, target_room_count, average_room_size):
        self.calls.append((width, height, target_room_count, average_room_size))
        if len(self.dungeons) > 1:
            return self.dungeons.pop(0)
        return self.dungeons[0]


class MockWebSocket:
    def __init__(self, id_val):
        self._id = id_val
        self.sent = []
        self.closed_with = None

    def __hash__(self):
        return self._id

    def __eq__(self, other):
        return isinstance(other, MockWebSocket) and self._id == other._id

    async def send(self, payload):
        self.sent.append(payload)

    async def close(self, code=1000, reason=""):
        self.closed_with = (code, reason)


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def small_dungeon():
    return DungeonModel.from_rows([list(r) for r in SMALL_ROWS], SMALL_ROOMS)


@pytest.fixture
def other_dungeon():
    return DungeonModel.from_rows([list(r) for r in OTHER_ROWS], OTHER_ROOMS)


@pytest.fixture
def one_room_dungeon():
    return DungeonModel.from_rows([list(r) for r in ONE_ROOM_ROWS], ONE_ROOM_ROOMS)


@pytest.fixture
def sequence_generator():
    return SequenceGenerator


@pytest.fixture
def mock_websocket():
    return MockWebSocket


@pytest.fixture
def clock():
    return FakeClock()
