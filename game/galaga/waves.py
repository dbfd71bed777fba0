"""
Wave generation and formation/dive motion
-----------------------------------------
- A wave is built from a declarative layout of rows `(type, count[, offset])`
- Each slot becomes a `SpawnDescriptor` queued for timed materialization
- Formation targets and breathing are pure functions of grid cell,
  canvas size and elapsed time
- Dives follow a parametric path steered toward the player
"""

from __future__ import annotations

import math
from collections import deque
from dataclasses import dataclass
from typing import Deque, Iterable, Optional, Sequence, Tuple

from .config import DIVING_CONFIG, FORMATION_CONFIG
from .entities import Enemy, EnemyType
from .errors import UnknownEnemyType


@dataclass(frozen=True)
class LayoutRow:
    type: EnemyType
    count: int
    offset: Optional[int] = None  # first column; None centers the row


@dataclass(frozen=True)
class SpawnDescriptor:
    """A not-yet-materialized formation slot"""
    type: EnemyType
    grid_x: float
    grid_y: int


def parse_layout(rows: Iterable[Sequence]) -> Tuple[LayoutRow, ...]:
    """Accept `(type, count[, offset])` tuples or LayoutRow instances"""
    parsed = []
    for row in rows:
        if isinstance(row, LayoutRow):
            parsed.append(row)
            continue
        type_, count, offset = (tuple(row) + (None,))[:3]
        try:
            enemy_type = EnemyType(type_)
        except ValueError:
            raise UnknownEnemyType(type_) from None
        parsed.append(LayoutRow(enemy_type, int(count), None if offset is None else int(offset)))
    return tuple(parsed)


def generate_wave(layout: Optional[Iterable[Sequence]] = None, cols: Optional[int] = None) -> Deque[SpawnDescriptor]:
    """Expand a layout into the ordered pending-spawn queue"""
    rows = parse_layout(FORMATION_CONFIG["layout"] if layout is None else layout)
    cols = FORMATION_CONFIG["cols"] if cols is None else cols

    queue: Deque[SpawnDescriptor] = deque()
    for grid_y, row in enumerate(rows):
        col_offset = (cols - row.count) / 2 if row.offset is None else row.offset
        if row.count > cols or col_offset < 0 or col_offset + row.count > cols:
            raise ValueError(f"Row {grid_y} ({row.count} from column {col_offset}) does not fit a {cols}-wide grid")
        for i in range(row.count):
            queue.append(SpawnDescriptor(type=row.type, grid_x=col_offset + i, grid_y=grid_y))
    return queue


def formation_target(
    grid_x: float,
    grid_y: int,
    canvas_width: float,
    cols: int = FORMATION_CONFIG["cols"],
    cell_width: float = FORMATION_CONFIG["cell_width"],
    cell_height: float = FORMATION_CONFIG["cell_height"],
    top_offset: float = FORMATION_CONFIG["top_offset"],
) -> Tuple[float, float]:
    """On-screen pixel position of a formation cell"""
    target_x = canvas_width / 2 - (cols * cell_width) / 2 + grid_x * cell_width
    target_y = top_offset + grid_y * cell_height
    return target_x, target_y


def breathing_offset(
    elapsed_s: float,
    amplitude: float = FORMATION_CONFIG["breathing_amplitude"],
    rate: float = FORMATION_CONFIG["breathing_rate"],
) -> float:
    """Horizontal sway shared by the whole formation"""
    return math.sin(elapsed_s * rate) * amplitude


def step_dive(
    enemy: Enemy,
    player_x: float,
    dive_speed: float,
    scale: float = 1.0,
    wobble_amplitude: float = DIVING_CONFIG["wobble_amplitude"],
    steering_gain: float = DIVING_CONFIG["steering_gain"],
    progress_step: float = DIVING_CONFIG["progress_step"],
):
    """Advance a diving enemy by one (scaled) frame"""
    enemy.dive_time += progress_step * scale
    enemy.y += dive_speed * scale

    # S-curve biased toward where the player is now
    enemy.x += (math.sin(enemy.dive_time * 2) * wobble_amplitude + (player_x - enemy.x) * steering_gain) * scale
