"""
Level-indexed difficulty scaling
"""

from dataclasses import dataclass
from typing import Optional

from .config import DIFFICULTY_CONFIG


@dataclass(frozen=True)
class Difficulty:
    """Read-only timing/speed parameters for one level"""
    level: int
    dive_interval: float        # ms between dive starts
    enemy_fire_interval: float  # ms between enemy shots
    dive_speed: float           # px per frame
    aimed_bullet_speed: float
    dropped_bullet_speed: float
    aim_gain: float
    diving_shooter_chance: float


def difficulty_for_level(level: int, config: Optional[dict] = None) -> Difficulty:
    """Pure function of the level number"""
    if level < 1:
        raise ValueError(f"level must be >= 1, got {level}")
    c = DIFFICULTY_CONFIG if config is None else {**DIFFICULTY_CONFIG, **config}
    steps = level - 1
    return Difficulty(
        level=level,
        dive_interval=max(c["min_dive_interval"], c["base_dive_interval"] - steps * c["dive_interval_step"]),
        enemy_fire_interval=max(c["min_fire_interval"], c["base_fire_interval"] - steps * c["fire_interval_step"]),
        dive_speed=c["base_dive_speed"] + level * c["dive_speed_per_level"],
        aimed_bullet_speed=c["aimed_bullet_speed"] + level * c["aimed_bullet_speed_per_level"],
        dropped_bullet_speed=c["dropped_bullet_speed"] + level * c["dropped_bullet_speed_per_level"],
        aim_gain=c["aim_gain"],
        diving_shooter_chance=c["diving_shooter_chance"],
    )
