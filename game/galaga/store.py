"""
Entity store: the only owner of collection membership
"""

from __future__ import annotations

import itertools
from typing import Callable, Iterator, List, Optional, Set

from .entities import Bullet, Enemy, EnemyBullet, EnemyState, EnemyType, Explosion, Player
from .errors import EntityStoreError


class EntityStore:
    """
    Holds the player and the enemy, bullet, enemy-bullet and explosion lists.

    Other components read through the properties and request membership
    changes through `add_*` / `reap_*`. Enemy ids are unique for the life of
    the store, and an id that has been reaped can never be added back.
    """

    def __init__(self):
        self.player: Optional[Player] = None
        self._enemies: List[Enemy] = []
        self._bullets: List[Bullet] = []
        self._enemy_bullets: List[EnemyBullet] = []
        self._explosions: List[Explosion] = []

        self._ids = itertools.count()
        self._live_ids: Set[int] = set()
        self._removed_ids: Set[int] = set()

    # ----------------------------
    # Read access
    # ----------------------------

    @property
    def enemies(self) -> List[Enemy]:
        return self._enemies

    @property
    def bullets(self) -> List[Bullet]:
        return self._bullets

    @property
    def enemy_bullets(self) -> List[EnemyBullet]:
        return self._enemy_bullets

    @property
    def explosions(self) -> List[Explosion]:
        return self._explosions

    def enemies_in(self, *states: EnemyState) -> List[Enemy]:
        return [e for e in self._enemies if e.state in states]

    def active_bullets(self) -> int:
        return sum(1 for b in self._bullets if b.active)

    def is_removed(self, enemy_id: int) -> bool:
        return enemy_id in self._removed_ids

    def __iter__(self) -> Iterator[object]:
        if self.player is not None:
            yield self.player
        yield from self._enemies
        yield from self._bullets
        yield from self._enemy_bullets
        yield from self._explosions

    # ----------------------------
    # Spawning
    # ----------------------------

    def set_player(self, player: Player) -> Player:
        self.player = player
        return player

    def add_enemy(
        self,
        type: EnemyType,
        grid_x: float,
        grid_y: int,
        target_x: float,
        target_y: float,
        x: Optional[float] = None,
        y: Optional[float] = None,
        enemy_id: Optional[int] = None,
    ) -> Enemy:
        """Materialize an enemy in ENTRY state"""
        if enemy_id is None:
            enemy_id = next(self._ids)
        if enemy_id in self._removed_ids:
            raise EntityStoreError(f"Enemy {enemy_id} was already removed and cannot be revived")
        if enemy_id in self._live_ids:
            raise EntityStoreError(f"Enemy {enemy_id} is already in the store")

        enemy = Enemy(
            id=enemy_id,
            type=type,
            grid_x=grid_x,
            grid_y=grid_y,
            x=target_x if x is None else x,
            y=target_y if y is None else y,
            target_x=target_x,
            target_y=target_y,
        )
        self._enemies.append(enemy)
        self._live_ids.add(enemy_id)
        return enemy

    def add_bullet(self, x: float, y: float, vy: float) -> Bullet:
        bullet = Bullet(x=x, y=y, vy=vy)
        self._bullets.append(bullet)
        return bullet

    def add_enemy_bullet(self, x: float, y: float, vx: float, vy: float) -> EnemyBullet:
        bullet = EnemyBullet(x=x, y=y, vx=vx, vy=vy)
        self._enemy_bullets.append(bullet)
        return bullet

    def add_explosion(
        self,
        x: float,
        y: float,
        max_frames: int,
        is_player: bool = False,
        enemy_type: Optional[EnemyType] = None,
    ) -> Explosion:
        explosion = Explosion(x=x, y=y, max_frames=max_frames, is_player=is_player, enemy_type=enemy_type)
        self._explosions.append(explosion)
        return explosion

    # ----------------------------
    # Reaping
    # ----------------------------

    def reap_enemies(self, predicate: Callable[[Enemy], bool] = lambda e: e.state == EnemyState.DEAD) -> List[Enemy]:
        """Remove enemies matching `predicate`; each id is removed at most once"""
        removed, kept = [], []
        for e in self._enemies:
            (removed if predicate(e) else kept).append(e)
        for e in removed:
            self._live_ids.discard(e.id)
            self._removed_ids.add(e.id)
        self._enemies = kept
        return removed

    def reap_bullets(self, predicate: Callable[[Bullet], bool]) -> int:
        before = len(self._bullets)
        self._bullets = [b for b in self._bullets if not predicate(b)]
        return before - len(self._bullets)

    def reap_enemy_bullets(self, predicate: Callable[[EnemyBullet], bool]) -> int:
        before = len(self._enemy_bullets)
        self._enemy_bullets = [b for b in self._enemy_bullets if not predicate(b)]
        return before - len(self._enemy_bullets)

    def reap_explosions(self, predicate: Callable[[Explosion], bool] = lambda x: x.expired) -> int:
        before = len(self._explosions)
        self._explosions = [x for x in self._explosions if not predicate(x)]
        return before - len(self._explosions)

    def clear_level(self):
        """Drop everything except the player (level reset)"""
        self.reap_enemies(lambda e: True)
        self._bullets = []
        self._enemy_bullets = []
        self._explosions = []
