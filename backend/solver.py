"""
Breadth-first difficulty estimator.

The difficulty of a board is the fewest player pours needed to settle every
active glass. The search is bounded both by depth and by the number of
expanded states; running out of either is reported as "unknown", which the
generator treats like any other board it cannot prove easy.
"""

import logging
from collections import deque
from dataclasses import dataclass
from typing import Optional

from board import Board, LevelConfig, Move, is_settled, legal_moves, top_run

logger = logging.getLogger(__name__)

DEFAULT_MAX_NODES = 60000

State = tuple[tuple[str, ...], ...]


@dataclass
class SolveResult:
    depth: Optional[int]
    nodes: int
    reason: str = "solved"  # solved | depth | nodes | exhausted

    @property
    def solved(self) -> bool:
        return self.depth is not None


def depth_bound(config: LevelConfig) -> int:
    return min(26, 18 + max(0, config.active - 6))


def _is_goal(state: State, capacity: int) -> bool:
    return all(is_settled(g, capacity) for g in state)


def _useful_moves(state: State, capacity: int) -> list[Move]:
    # Drop pours that only relabel glasses; they never shorten a solution.
    moves = []
    first_empty: Optional[int] = None
    for move in legal_moves(state, capacity, full_pours=True):
        source = state[move.src]
        if state[move.dst]:
            moves.append(move)
            continue
        if top_run(source) == len(source):
            continue
        if first_empty is None:
            first_empty = move.dst
        if move.dst == first_empty:
            moves.append(move)
    return moves


def _child(state: State, move: Move) -> State:
    src, dst, count = move
    glasses = list(state)
    moved = state[src][-count:]
    glasses[src] = state[src][:-count]
    glasses[dst] = state[dst] + moved
    return tuple(glasses)


def estimate_difficulty(board: Board, max_depth: int, max_nodes: int = DEFAULT_MAX_NODES) -> SolveResult:
    start: State = board.key()
    capacity = board.capacity
    if _is_goal(start, capacity):
        return SolveResult(0, 0)

    best: dict[State, int] = {start: 0}
    frontier: deque[tuple[State, int]] = deque([(start, 0)])
    nodes = 0
    cut_by_depth = False

    while frontier:
        state, depth = frontier.popleft()
        if best[state] < depth:
            continue
        if depth >= max_depth:
            cut_by_depth = True
            continue
        nodes += 1
        if nodes > max_nodes:
            logger.debug("solver node budget %d exhausted at depth %d", max_nodes, depth)
            return SolveResult(None, nodes, "nodes")
        for move in _useful_moves(state, capacity):
            child = _child(state, move)
            child_depth = depth + 1
            known = best.get(child)
            if known is not None and known <= child_depth:
                continue
            if _is_goal(child, capacity):
                return SolveResult(child_depth, nodes)
            best[child] = child_depth
            frontier.append((child, child_depth))

    if cut_by_depth:
        return SolveResult(None, nodes, "depth")
    return SolveResult(None, nodes, "exhausted")
