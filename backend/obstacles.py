"""
Covers that hide the contents of a glass until pours peel them away.

A glass gets at most one cover: a full cover hides everything until a number
of fruits has been poured out of it, a partial cover hides specific slots
from the bottom until the top of the stack recedes past them.
"""

from dataclasses import dataclass, field
from typing import Optional, Union

from board import Board, is_glass_complete
from rng import SeededRandom


@dataclass
class FullCover:
    remaining: int

    @property
    def cleared(self) -> bool:
        return self.remaining <= 0


@dataclass
class PartialCover:
    positions: set[int] = field(default_factory=set)

    @property
    def cleared(self) -> bool:
        return not self.positions


Obstacle = Union[FullCover, PartialCover]


def place_obstacles(board: Board, count: int, rng: SeededRandom,
                    full_cover_chance: float = 0.5) -> dict[int, Obstacle]:
    """Cover up to ``count`` mixed glasses, chosen with the cover RNG."""
    candidates = [
        i for i, stack in enumerate(board.in_play())
        if len(stack) > 1 and not is_glass_complete(stack, board.capacity)
    ]
    rng.shuffle(candidates)

    obstacles: dict[int, Obstacle] = {}
    for index in candidates[:count]:
        height = len(board.glasses[index])
        if rng.next() < full_cover_chance:
            obstacles[index] = FullCover(rng.rand_int(1, min(height, board.capacity)))
        else:
            depth = rng.rand_int(1, height - 1)
            obstacles[index] = PartialCover(set(range(depth)))
    return obstacles


def reveal(obstacles: dict[int, Obstacle], index: int, removed: int,
           previous_top: int, new_top: int) -> Optional[Obstacle]:
    """Update the cover of a glass that just lost ``removed`` fruits.

    Returns the cover if it is still in place, None once it has cleared
    (the entry is then dropped from ``obstacles``).
    """
    cover = obstacles.get(index)
    if cover is None:
        return None
    if isinstance(cover, FullCover):
        cover.remaining -= removed
    else:
        cover.positions -= {p for p in cover.positions if new_top <= p <= previous_top}
    if cover.cleared:
        del obstacles[index]
        return None
    return cover


def visible_glass(stack: list[str], cover: Optional[Obstacle]) -> list[Optional[str]]:
    """The stack as a player sees it: hidden fruits become None."""
    if cover is None:
        return stack[:]
    if isinstance(cover, FullCover):
        return [None] * len(stack)
    return [None if i in cover.positions else fruit for i, fruit in enumerate(stack)]


def serialize_obstacles(obstacles: dict[int, Obstacle]) -> dict[str, dict]:
    data = {}
    for index, cover in sorted(obstacles.items()):
        if isinstance(cover, FullCover):
            data[str(index)] = {"kind": "full", "remaining": cover.remaining}
        else:
            data[str(index)] = {"kind": "partial", "positions": sorted(cover.positions)}
    return data


def deserialize_obstacles(data: dict) -> dict[int, Obstacle]:
    obstacles: dict[int, Obstacle] = {}
    for key, entry in data.items():
        if entry["kind"] == "full":
            obstacles[int(key)] = FullCover(entry["remaining"])
        elif entry["kind"] == "partial":
            obstacles[int(key)] = PartialCover(set(entry["positions"]))
        else:
            raise ValueError(f"unknown cover kind {entry['kind']!r}")
    return obstacles
