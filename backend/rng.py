"""Seedable random stream used by level generation and obstacle placement.

Seeded streams are a pure function of a 32-bit state, so the same seed always
produces the same board (daily puzzles rely on this).
"""

import random
from typing import MutableSequence, Optional, Sequence, TypeVar

T = TypeVar("T")

_MASK = 0xFFFFFFFF
_STEP = 0x6D2B79F5


def _imul(a: int, b: int) -> int:
    return (a * b) & _MASK


class SeededRandom:
    """mulberry32 stream; falls back to an OS-seeded generator without a seed."""

    def __init__(self, seed: Optional[int] = None):
        self.seed = seed
        self._state = seed & _MASK if seed is not None else 0
        self._fallback = random.Random() if seed is None else None

    def next(self) -> float:
        if self._fallback is not None:
            return self._fallback.random()
        self._state = (self._state + _STEP) & _MASK
        t = self._state
        t = _imul(t ^ (t >> 15), t | 1)
        t ^= (t + _imul(t ^ (t >> 7), t | 61)) & _MASK
        return ((t ^ (t >> 14)) & _MASK) / 4294967296

    def rand_int(self, lo: int, hi: int) -> int:
        """Uniform integer in [lo, hi], both ends included."""
        return lo + int(self.next() * (hi - lo + 1))

    def choice(self, seq: Sequence[T]) -> T:
        return seq[int(self.next() * len(seq))]

    def shuffle(self, seq: MutableSequence[T]) -> MutableSequence[T]:
        for i in range(len(seq) - 1, 0, -1):
            j = int(self.next() * (i + 1))
            seq[i], seq[j] = seq[j], seq[i]
        return seq
