"""
Utility functions for game mechanics
"""

from __future__ import annotations
import math
import time
from typing import Optional, Sequence, TypeVar

import numpy as np

T = TypeVar("T")


def clamp(x: float, lo: float, hi: float) -> float:
    """Clamp value between low and high bounds"""
    return lo if x < lo else hi if x > hi else x


def distance(x1: float, y1: float, x2: float, y2: float) -> float:
    """Euclidean distance between two points"""
    return math.hypot(x1 - x2, y1 - y2)


def within(x1: float, y1: float, x2: float, y2: float, threshold: float) -> bool:
    """True when two points are strictly closer than `threshold`"""
    dx = x1 - x2
    dy = y1 - y2
    return (dx * dx + dy * dy) < (threshold * threshold)


def make_rng(seed: Optional[int] = None) -> np.random.Generator:
    """Create the single random source a session draws from"""
    return np.random.default_rng(seed)


def pick(rng: np.random.Generator, items: Sequence[T]) -> T:
    """Uniformly choose one element of a non-empty sequence"""
    return items[int(rng.integers(len(items)))]


def monotonic_ms() -> float:
    """Wall clock in milliseconds"""
    return time.monotonic() * 1000.0


class ManualClock:
    """Millisecond clock that only moves when told to (headless runs, tests)"""

    def __init__(self, start: float = 0.0):
        self.now = float(start)

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> float:
        self.now += ms
        return self.now
