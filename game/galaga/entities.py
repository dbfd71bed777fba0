"""
Game entity dataclasses
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .errors import IllegalTransition


class EnemyType(str, Enum):
    """Fixed enemy variants; the value is the scoring/visual lookup key"""
    BEE = "bee"
    BUTTERFLY = "butterfly"
    BOSS = "boss"


class EnemyState(str, Enum):
    ENTRY = "ENTRY"
    FORMATION = "FORMATION"
    DIVING = "DIVING"
    DEAD = "DEAD"


class PlayerState(str, Enum):
    ALIVE = "ALIVE"
    EXPLODING = "EXPLODING"
    CAPTURED = "CAPTURED"


# DEAD is terminal
_ENEMY_TRANSITIONS = {
    EnemyState.ENTRY: {EnemyState.FORMATION},
    EnemyState.FORMATION: {EnemyState.DIVING, EnemyState.DEAD},
    EnemyState.DIVING: {EnemyState.FORMATION, EnemyState.DEAD},
    EnemyState.DEAD: set(),
}


@dataclass
class Player:
    """Player fighter"""
    x: float
    y: float
    speed: float = 5.0
    lives: int = 3
    is_dual: bool = False
    is_invincible: bool = False
    invincible_until: float = 0.0  # clock ms
    last_fire_time: Optional[float] = None  # clock ms of last accepted volley
    state: PlayerState = PlayerState.ALIVE

    @property
    def alive(self) -> bool:
        return self.state == PlayerState.ALIVE

    @property
    def vulnerable(self) -> bool:
        return self.alive and not self.is_invincible

    def invincible_remaining(self, now: float) -> float:
        if not self.is_invincible:
            return 0.0
        return max(0.0, self.invincible_until - now)


@dataclass
class Enemy:
    """Formation enemy; `type` only selects scoring and visuals"""
    id: int
    type: EnemyType
    grid_x: float
    grid_y: int
    x: float
    y: float
    target_x: float
    target_y: float
    state: EnemyState = EnemyState.ENTRY
    # dive transients
    dive_time: float = 0.0
    dive_start_x: float = 0.0
    dive_start_y: float = 0.0
    returning: bool = False  # parked above the playfield, waiting to rejoin

    @property
    def alive(self) -> bool:
        return self.state != EnemyState.DEAD

    def transition(self, new_state: EnemyState):
        """Move to `new_state`, rejecting anything off the lifecycle graph"""
        if new_state not in _ENEMY_TRANSITIONS[self.state]:
            raise IllegalTransition(self.id, self.state.value, new_state.value)
        self.state = new_state


@dataclass
class Bullet:
    """Player bullet, travels straight up"""
    x: float
    y: float
    vy: float = -10.0
    active: bool = True


@dataclass
class EnemyBullet:
    """Enemy projectile"""
    x: float
    y: float
    vx: float
    vy: float
    active: bool = True


@dataclass
class Explosion:
    """Short-lived blast, expires after `max_frames` ticks"""
    x: float
    y: float
    timer: float = 0.0  # frames elapsed
    max_frames: int = 20
    is_player: bool = False
    enemy_type: Optional[EnemyType] = None

    @property
    def progress(self) -> float:
        return min(1.0, self.timer / max(1, self.max_frames))

    @property
    def expired(self) -> bool:
        return self.timer >= self.max_frames
