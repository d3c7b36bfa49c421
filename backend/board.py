"""
Board model for the fruit sorting game.

A board is a fixed row of glasses; each glass is a list of fruit names from
bottom to top. Only the first ``active`` glasses are in play, the rest are
inert padding so every level fits the same 6-wide layout.
"""

from dataclasses import dataclass
from typing import NamedTuple, Sequence

GLASS_CAPACITY = 4
GLASSES_PER_ROW = 6
MAX_GLASSES = GLASSES_PER_ROW * 3

FRUIT_POOL = [
    "fruit_apple",
    "fruit_banana",
    "fruit_blueberry",
    "fruit_cherry",
    "fruit_grape",
    "fruit_kiwi",
    "fruit_lemon",
    "fruit_mango",
    "fruit_orange",
    "fruit_pear",
    "fruit_pineapple",
    "fruit_plum",
    "fruit_raspberry",
    "fruit_strawberry",
    "fruit_watermelon",
]


class Move(NamedTuple):
    src: int
    dst: int
    count: int


@dataclass(frozen=True)
class LevelConfig:
    active: int = 6
    empty: int = 2
    types: int = 4
    obstacles: int = 0

    def __post_init__(self):
        if not 1 <= self.empty < self.active <= MAX_GLASSES:
            raise ValueError(
                f"need 1 <= empty < active <= {MAX_GLASSES}, got empty={self.empty} active={self.active}"
            )
        if self.types != self.active - self.empty:
            raise ValueError(
                f"types must equal active - empty ({self.active - self.empty}), got {self.types}"
            )
        if self.types > len(FRUIT_POOL):
            raise ValueError(f"only {len(FRUIT_POOL)} fruit types available, got {self.types}")
        if not 0 <= self.obstacles <= self.active:
            raise ValueError(f"obstacles must be within 0..{self.active}, got {self.obstacles}")


def is_glass_complete(stack: Sequence[str], capacity: int = GLASS_CAPACITY) -> bool:
    if len(stack) != capacity:
        return False
    return all(f == stack[0] for f in stack)


def is_settled(stack: Sequence[str], capacity: int = GLASS_CAPACITY) -> bool:
    """Empty or complete: the state every glass must reach to win."""
    return len(stack) == 0 or is_glass_complete(stack, capacity)


def top_run(stack: Sequence[str]) -> int:
    """Number of identical fruits at the top of the stack."""
    if not stack:
        return 0
    top = stack[-1]
    count = 0
    for fruit in reversed(stack):
        if fruit != top:
            break
        count += 1
    return count


def legal_moves(glasses: Sequence[Sequence[str]], capacity: int = GLASS_CAPACITY, full_pours: bool = False) -> list[Move]:
    """All legal pours between the given glasses.

    Every count from 1 up to ``min(top_run, free space)`` is a separate move;
    with ``full_pours`` only the largest one per pair is kept, which is the
    pour a player actually makes.
    """
    assert all(len(g) <= capacity for g in glasses), "glass over capacity"
    moves: list[Move] = []
    for src, from_stack in enumerate(glasses):
        if not from_stack:
            continue
        top = from_stack[-1]
        run = top_run(from_stack)
        for dst, to_stack in enumerate(glasses):
            if dst == src:
                continue
            space = capacity - len(to_stack)
            if space <= 0:
                continue
            if to_stack and to_stack[-1] != top:
                continue
            most = min(run, space)
            if full_pours:
                moves.append(Move(src, dst, most))
            else:
                moves.extend(Move(src, dst, n) for n in range(1, most + 1))
    return moves


def transfer(glasses: list[list[str]], move: Move, capacity: int = GLASS_CAPACITY) -> None:
    """Move the top ``count`` fruits, keeping their bottom-to-top order."""
    src, dst, count = move
    from_stack = glasses[src]
    to_stack = glasses[dst]
    assert 0 < count <= len(from_stack), "pour larger than source"
    assert len(to_stack) + count <= capacity, "pour overflows destination"
    moved = from_stack[-count:]
    del from_stack[-count:]
    to_stack.extend(moved)


@dataclass
class Board:
    glasses: list[list[str]]
    active: int
    capacity: int = GLASS_CAPACITY

    def clone(self) -> "Board":
        return Board([g[:] for g in self.glasses], self.active, self.capacity)

    def in_play(self) -> list[list[str]]:
        return self.glasses[: self.active]

    def key(self) -> tuple[tuple[str, ...], ...]:
        """Canonical key: each active glass's contents, in glass order."""
        return tuple(tuple(g) for g in self.in_play())

    def is_solved(self) -> bool:
        return all(is_settled(g, self.capacity) for g in self.in_play())

    def legal_moves(self, full_pours: bool = False) -> list[Move]:
        return legal_moves(self.in_play(), self.capacity, full_pours)

    def apply(self, move: Move) -> None:
        assert move.src < self.active and move.dst < self.active, "move outside active glasses"
        transfer(self.glasses, move, self.capacity)

    def to_dict(self) -> dict:
        return {
            "glasses": [g[:] for g in self.glasses],
            "active": self.active,
            "capacity": self.capacity,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Board":
        glasses = [list(g) for g in data["glasses"]]
        capacity = data.get("capacity", GLASS_CAPACITY)
        assert all(len(g) <= capacity for g in glasses), "glass over capacity"
        return cls(glasses, data["active"], capacity)
