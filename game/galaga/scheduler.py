"""
Generation-keyed timers for delayed game transitions.

Respawns, level transitions and the READY countdown are queued here instead
of on a host timer. Every entry records the generation that was current when
it was scheduled; `new_generation()` (called on start/restart) turns all
older entries into no-ops, so a callback left over from a previous game can
never touch the new one. Due entries only run from `run_due`, which the
session calls at the top of its update, so callbacks never interleave with
a tick.
"""

from __future__ import annotations

import heapq
import itertools
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)


@dataclass(order=True)
class TimerEntry:
    due: float
    seq: int
    generation: int = field(compare=False)
    name: str = field(compare=False)
    callback: Callable[[], None] = field(compare=False, repr=False)
    cancelled: bool = field(default=False, compare=False)


class Scheduler:
    """Min-heap of timers, fired in due order"""

    def __init__(self):
        self.generation = 0
        self._heap: List[TimerEntry] = []
        self._seq = itertools.count()

    def new_generation(self) -> int:
        """Invalidate every timer scheduled so far"""
        self.generation += 1
        return self.generation

    def schedule(self, delay_ms: float, callback: Callable[[], None], now: float, name: str = "") -> TimerEntry:
        entry = TimerEntry(
            due=now + delay_ms,
            seq=next(self._seq),
            generation=self.generation,
            name=name,
            callback=callback,
        )
        heapq.heappush(self._heap, entry)
        return entry

    def cancel(self, name: str) -> int:
        """Cancel pending timers by name; returns how many were cancelled"""
        n = 0
        for entry in self._heap:
            if entry.name == name and not entry.cancelled:
                entry.cancelled = True
                n += 1
        return n

    def pending(self, name: Optional[str] = None) -> int:
        return sum(
            1 for e in self._heap
            if not e.cancelled and e.generation == self.generation and (name is None or e.name == name)
        )

    def run_due(self, now: float) -> int:
        """Fire every live entry due at or before `now`; returns how many ran"""
        fired = 0
        while self._heap and self._heap[0].due <= now:
            entry = heapq.heappop(self._heap)
            if entry.cancelled:
                continue
            if entry.generation != self.generation:
                logger.debug("Dropping stale timer %r from generation %d", entry.name, entry.generation)
                continue
            entry.callback()
            fired += 1
        return fired

    def __len__(self) -> int:
        return self.pending()
