"""
Gameplay controller: one GameSession per game in progress.

The session owns the board, its covers, the current selection and the move
counter. Every player action goes through ``click`` or ``pour``; invalid
actions are reported in the returned result and always leave the session
idle, never raise.
"""

import copy
import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from board import Board, LevelConfig, Move, top_run
from generate_level import DEFAULT_CONFIG, GeneratorStrategy, generate_level, level_config
from obstacles import Obstacle, place_obstacles, reveal, serialize_obstacles, visible_glass
from rng import SeededRandom

logger = logging.getLogger(__name__)

MSG_PICK_TARGET = "Pick a glass to pour into."
MSG_FULL = "That glass is full."
MSG_MISMATCH = "You can only pour onto the same fruit or an empty glass."
MSG_EMPTY = "That glass is empty."
MSG_SAME = "Pick a different glass to pour into."
MSG_INVALID = "Invalid glass"
MSG_WON = "🎉 You solved the board!"
MSG_ALREADY_WON = "The board is already solved."


@dataclass
class PourResult:
    ok: bool
    message: str
    move: Optional[Move] = None
    won: bool = False


def score(moves: int, elapsed: float, base_points: int, move_penalty: float, time_penalty: float) -> int:
    return max(0, round(base_points - moves * move_penalty - elapsed * time_penalty))


def daily_seed(date: str) -> int:
    """Seed shared by every player of the daily puzzle (date as yyyymmdd)."""
    if len(date) != 8 or not date.isdigit():
        raise ValueError(f"daily date must be yyyymmdd, got {date!r}")
    return int(date)


class GameSession:
    def __init__(self, clock: Callable[[], float] = time.monotonic,
                 strategy: Optional[GeneratorStrategy] = None):
        self.clock = clock
        self.strategy = strategy
        self.board: Optional[Board] = None
        self.obstacles: dict[int, Obstacle] = {}
        self.selected: Optional[int] = None
        self.moves = 0
        self.won = False
        self.message = ""
        self.score: Optional[int] = None
        self.tier = 2
        self.seed: Optional[int] = None
        self.daily: Optional[str] = None
        self.difficulty: Optional[int] = None
        self.started_at = 0.0
        self.finished_at: Optional[float] = None
        self._initial: Optional[tuple[Board, dict[int, Obstacle]]] = None

    @property
    def state(self) -> str:
        if self.won:
            return "won"
        return "selected" if self.selected is not None else "idle"

    @property
    def tier_config(self) -> dict:
        return DEFAULT_CONFIG.get(self.tier, DEFAULT_CONFIG[2])

    def new_game(self, config: Optional[LevelConfig] = None, tier: int = 2, seed: Optional[int] = None,
                 cover_seed: Optional[int] = None, daily: Optional[str] = None) -> None:
        if tier not in DEFAULT_CONFIG:
            raise ValueError(f"unknown tier {tier}")
        if daily is not None:
            seed = daily_seed(daily)
        if config is None:
            config = level_config(DEFAULT_CONFIG[tier])
        if cover_seed is None and seed is not None:
            cover_seed = seed + 1

        level = generate_level(config, seed, self.strategy)
        obstacles = place_obstacles(level.board, config.obstacles, SeededRandom(cover_seed),
                                    DEFAULT_CONFIG[tier]["full_cover_chance"])
        self.tier = tier
        self.seed = seed
        self.daily = daily
        self.difficulty = level.difficulty
        self.load(level.board, obstacles)
        logger.info("new game: tier=%d seed=%s difficulty=%s covers=%d fallback=%s",
                    tier, seed, level.difficulty, len(obstacles), level.fallback)

    def load(self, board: Board, obstacles: Optional[dict[int, Obstacle]] = None) -> None:
        """Start playing an existing layout; it must not already be solved."""
        if board.is_solved():
            raise ValueError("layout is already solved")
        self.board = board
        self.obstacles = obstacles or {}
        self._initial = (board.clone(), copy.deepcopy(self.obstacles))
        self._restart()

    def reset(self) -> None:
        """Replay the current game from its starting layout."""
        if self._initial is None:
            raise RuntimeError("no game loaded")
        board, obstacles = self._initial
        self.board = board.clone()
        self.obstacles = copy.deepcopy(obstacles)
        self._restart()

    def _restart(self) -> None:
        self.selected = None
        self.moves = 0
        self.won = False
        self.message = ""
        self.score = None
        self.started_at = self.clock()
        self.finished_at = None

    def _in_play(self, index: int) -> bool:
        return self.board is not None and 0 <= index < self.board.active

    def click(self, index: int) -> PourResult:
        if self.board is None:
            return PourResult(False, "No game loaded")
        if self.won:
            return PourResult(False, MSG_ALREADY_WON)
        # Inert glasses are not part of the level
        if not self._in_play(index):
            return PourResult(False, MSG_INVALID)

        if self.selected is None:
            if not self.board.glasses[index]:
                return PourResult(False, MSG_EMPTY)
            self.selected = index
            self.message = MSG_PICK_TARGET
            return PourResult(True, MSG_PICK_TARGET)

        if self.selected == index:
            self.selected = None
            self.message = ""
            return PourResult(True, "Selection cancelled")

        return self.pour(self.selected, index)

    def pour(self, src: int, dst: int) -> PourResult:
        if self.board is None:
            return PourResult(False, "No game loaded")
        if self.won:
            return PourResult(False, MSG_ALREADY_WON)
        self.selected = None

        if not self._in_play(src) or not self._in_play(dst):
            return self._reject(MSG_INVALID)
        if src == dst:
            return self._reject(MSG_SAME)

        from_stack = self.board.glasses[src]
        to_stack = self.board.glasses[dst]
        if not from_stack:
            return self._reject(MSG_EMPTY)

        available = self.board.capacity - len(to_stack)
        if available <= 0:
            return self._reject(MSG_FULL)
        if to_stack and to_stack[-1] != from_stack[-1]:
            return self._reject(MSG_MISMATCH)

        move = Move(src, dst, min(top_run(from_stack), available))
        previous_top = len(from_stack) - 1
        self.board.apply(move)
        self.moves += 1
        self.message = ""
        reveal(self.obstacles, src, move.count, previous_top, len(from_stack) - 1)

        if self.board.is_solved():
            self._win()
        return PourResult(True, self.message or "Poured", move, self.won)

    def _reject(self, message: str) -> PourResult:
        self.message = message
        return PourResult(False, message)

    def _win(self) -> None:
        self.won = True
        self.obstacles.clear()
        self.finished_at = self.clock()
        cfg = self.tier_config
        self.score = score(self.moves, self.elapsed, cfg["base_points"], cfg["move_penalty"], cfg["time_penalty"])
        self.message = MSG_WON
        logger.info("board solved in %d moves, score %d", self.moves, self.score)

    @property
    def elapsed(self) -> float:
        end = self.finished_at if self.finished_at is not None else self.clock()
        return end - self.started_at

    def snapshot(self) -> dict:
        """Everything a client needs to draw the board."""
        if self.board is None:
            return {"loaded": False}
        return {
            "loaded": True,
            "glasses": [visible_glass(stack, self.obstacles.get(i)) for i, stack in enumerate(self.board.glasses)],
            "active": self.board.active,
            "capacity": self.board.capacity,
            "obstacles": serialize_obstacles(self.obstacles),
            "selected": self.selected,
            "state": self.state,
            "moves": self.moves,
            "won": self.won,
            "score": self.score,
            "message": self.message,
            "tier": self.tier,
            "difficulty_name": self.tier_config["name"],
            "difficulty": self.difficulty,
            "seed": self.seed,
            "daily": self.daily,
            "elapsed": round(self.elapsed, 1),
        }
