"""
Point values and bonus-life thresholds
"""

from typing import Iterable, Optional

from .config import SCORING
from .entities import EnemyType
from .errors import UnknownEnemyType

_BOSS_DIVE_KEYS = ("DIVING_ALONE", "DIVING_ONE_ESCORT", "DIVING_TWO_ESCORTS")


def points_for(enemy_type: EnemyType, diving: bool, escorts: int = 0, table: Optional[dict] = None) -> int:
    """
    Points for destroying one enemy.

    `diving` must be read before the enemy is marked dead. Bosses use the
    tiered diving values; escorts are capped at two.
    """
    table = SCORING if table is None else table
    key = enemy_type.value if isinstance(enemy_type, EnemyType) else str(enemy_type)
    try:
        values = table[key]
    except KeyError:
        raise UnknownEnemyType(key) from None

    if not diving:
        return int(values["FORMATION"])
    if "DIVING" in values:
        return int(values["DIVING"])
    tier = _BOSS_DIVE_KEYS[max(0, min(escorts, len(_BOSS_DIVE_KEYS) - 1))]
    return int(values[tier])


def bonus_lives_crossed(previous: int, current: int, thresholds: Iterable[int]) -> int:
    """Number of thresholds t with previous < t <= current"""
    return sum(1 for t in thresholds if previous < t <= current)
