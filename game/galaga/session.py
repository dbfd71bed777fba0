"""
GameSession - the Galaga simulation core
----------------------------------------
- One explicit session value per game window (no module-level singleton)
- update(dt_ms) runs: timers -> input -> motion -> spawning -> attacks ->
  collisions -> reap -> level-clear check
- State machine: MENU -> READY -> PLAYING -> LEVEL_TRANSITION -> PLAYING ...
  -> GAME_OVER, with pause as an orthogonal flag
- Delayed transitions go through a generation-keyed Scheduler so a restart
  invalidates everything the previous game queued
- Renderers and audio read `snapshot()` and `drain_events()`; nothing else
  leaves the session
"""

from __future__ import annotations

import dataclasses
import logging
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Deque, Dict, List, Optional, Sequence, Tuple

import numpy as np

from .config import (
    COLLISION_CONFIG,
    DIFFICULTY_CONFIG,
    DIVING_CONFIG,
    FORMATION_CONFIG,
    PLAYER_CONFIG,
    SCORING,
    TIMING_CONFIG,
)
from .difficulty import Difficulty, difficulty_for_level
from .entities import Bullet, Enemy, EnemyBullet, EnemyState, Explosion, Player, PlayerState
from .scheduler import Scheduler
from .scoring import bonus_lives_crossed, points_for
from .store import EntityStore
from .utils import clamp, make_rng, monotonic_ms, pick, within
from .waves import SpawnDescriptor, breathing_offset, formation_target, generate_wave, step_dive

logger = logging.getLogger(__name__)


class GameState(str, Enum):
    MENU = "MENU"
    READY = "READY"
    PLAYING = "PLAYING"
    LEVEL_TRANSITION = "LEVEL_TRANSITION"
    GAME_OVER = "GAME_OVER"


@dataclass(frozen=True)
class GameEvent:
    """Fire-and-forget cue for audio/UI"""
    name: str
    data: Dict[str, Any] = field(default_factory=dict)


@dataclass
class InputState:
    """Player intent flags, shared by keyboard and touch"""
    left: bool = False
    right: bool = False
    fire: bool = False


@dataclass(frozen=True)
class GameSnapshot:
    """Read-only view handed to renderers"""
    state: GameState
    paused: bool
    level: int
    score: int
    high_score: int
    lives: int
    frame: int
    time_ms: float
    width: int
    height: int
    player: Optional[Player]
    player_invincible_ms: float
    enemies: Tuple[Enemy, ...]
    bullets: Tuple[Bullet, ...]
    enemy_bullets: Tuple[EnemyBullet, ...]
    explosions: Tuple[Explosion, ...]
    pending_spawns: int
    last_submission: Optional[Any] = None


class GameSession:
    """A single game, from menu to game over and back"""

    def __init__(
        self,
        width: int = 480,
        height: int = 640,
        clock: Optional[Callable[[], float]] = None,
        rng: Optional[np.random.Generator] = None,
        seed: Optional[int] = None,
        leaderboard=None,
        high_scores=None,
        username: Optional[str] = None,
        # player
        player_speed: float = PLAYER_CONFIG["player_speed"],
        bullet_speed: float = PLAYER_CONFIG["bullet_speed"],
        max_bullets: int = PLAYER_CONFIG["max_bullets"],
        max_bullets_dual: int = PLAYER_CONFIG["max_bullets_dual"],
        fire_cooldown_ms: float = PLAYER_CONFIG["fire_cooldown_ms"],
        autofire_interval_ms: Optional[float] = PLAYER_CONFIG["autofire_interval_ms"],
        dual_spread: float = PLAYER_CONFIG["dual_spread"],
        initial_lives: int = PLAYER_CONFIG["initial_lives"],
        respawn_delay_ms: float = PLAYER_CONFIG["respawn_delay_ms"],
        invincibility_ms: float = PLAYER_CONFIG["invincibility_ms"],
        bonus_life_at: Sequence[int] = PLAYER_CONFIG["bonus_life_at"],
        bottom_margin: float = PLAYER_CONFIG["bottom_margin"],
        side_margin: float = PLAYER_CONFIG["side_margin"],
        # timing
        ready_delay_ms: float = TIMING_CONFIG["ready_delay_ms"],
        level_transition_ms: float = TIMING_CONFIG["level_transition_ms"],
        frame_interval_ms: float = TIMING_CONFIG["frame_interval_ms"],
        max_frame_scale: float = TIMING_CONFIG["max_frame_scale"],
        enemy_explosion_frames: int = TIMING_CONFIG["enemy_explosion_frames"],
        player_explosion_frames: int = TIMING_CONFIG["player_explosion_frames"],
        # tables
        formation: Optional[dict] = None,
        diving: Optional[dict] = None,
        difficulty: Optional[dict] = None,
        collision: Optional[dict] = None,
        scoring: Optional[dict] = None,
    ):
        # Arena
        self.width = width
        self.height = height

        # Collaborators
        self.clock = clock or monotonic_ms
        self.rng = rng if rng is not None else make_rng(seed)
        self.leaderboard = leaderboard
        self.high_scores = high_scores
        self.username = username

        # Player config
        self.player_speed = player_speed
        self.bullet_speed = bullet_speed
        self.max_bullets = max_bullets
        self.max_bullets_dual = max_bullets_dual
        self.fire_cooldown_ms = fire_cooldown_ms
        self.autofire_interval_ms = autofire_interval_ms
        self.dual_spread = dual_spread
        self.initial_lives = initial_lives
        self.respawn_delay_ms = respawn_delay_ms
        self.invincibility_ms = invincibility_ms
        self.bonus_life_at = tuple(bonus_life_at)
        self.bottom_margin = bottom_margin
        self.side_margin = side_margin

        # Timing config
        self.ready_delay_ms = ready_delay_ms
        self.level_transition_ms = level_transition_ms
        self.frame_interval_ms = frame_interval_ms
        self.max_frame_scale = max_frame_scale
        self.enemy_explosion_frames = enemy_explosion_frames
        self.player_explosion_frames = player_explosion_frames

        # Tables
        self.formation = {**FORMATION_CONFIG, **(formation or {})}
        self.diving = {**DIVING_CONFIG, **(diving or {})}
        self.difficulty_config = {**DIFFICULTY_CONFIG, **(difficulty or {})}
        self.collision = {**COLLISION_CONFIG, **(collision or {})}
        self.scoring = SCORING if scoring is None else scoring

        # Game state
        self.state = GameState.MENU
        self.paused = False
        self.level = 1
        self.score = 0
        self.high_score = int(high_scores.high_score) if high_scores is not None else 0
        self.difficulty: Difficulty = difficulty_for_level(1, self.difficulty_config)
        self.last_submission = None
        self.submissions = 0

        # World
        self.store = EntityStore()
        self.pending_spawns: Deque[SpawnDescriptor] = deque()
        self.scheduler = Scheduler()
        self.keys = InputState()

        # Clocks
        self.now = self.clock()
        self.frame_count = 0
        self.last_dive_time = self.now
        self.last_enemy_shot = self.now

        self._events: List[GameEvent] = []
        self.store.set_player(self._new_player())

    # ----------------------------
    # Read-only helpers
    # ----------------------------

    @property
    def generation(self) -> int:
        return self.scheduler.generation

    @property
    def player(self) -> Player:
        return self.store.player

    @property
    def lives(self) -> int:
        return self.player.lives

    @property
    def enemies(self) -> List[Enemy]:
        return self.store.enemies

    @property
    def bullets(self) -> List[Bullet]:
        return self.store.bullets

    @property
    def enemy_bullets(self) -> List[EnemyBullet]:
        return self.store.enemy_bullets

    @property
    def explosions(self) -> List[Explosion]:
        return self.store.explosions

    @property
    def bullet_cap(self) -> int:
        return self.max_bullets_dual if self.player.is_dual else self.max_bullets

    def snapshot(self) -> GameSnapshot:
        copy = dataclasses.replace
        player = self.player
        return GameSnapshot(
            state=self.state,
            paused=self.paused,
            level=self.level,
            score=self.score,
            high_score=max(self.high_score, self.score),
            lives=player.lives,
            frame=self.frame_count,
            time_ms=self.now,
            width=self.width,
            height=self.height,
            player=copy(player),
            player_invincible_ms=player.invincible_remaining(self.now),
            enemies=tuple(copy(e) for e in self.enemies),
            bullets=tuple(copy(b) for b in self.bullets),
            enemy_bullets=tuple(copy(b) for b in self.enemy_bullets),
            explosions=tuple(copy(x) for x in self.explosions),
            pending_spawns=len(self.pending_spawns),
            last_submission=self.last_submission,
        )

    def drain_events(self) -> List[GameEvent]:
        events, self._events = self._events, []
        return events

    def _emit(self, name: str, **data):
        self._events.append(GameEvent(name, data))

    # ----------------------------
    # State machine actions
    # ----------------------------

    def start_game(self) -> bool:
        """MENU/GAME_OVER -> READY; play begins after the ready delay"""
        if self.state not in (GameState.MENU, GameState.GAME_OVER):
            return False

        self.now = self.clock()
        generation = self.scheduler.new_generation()

        self.state = GameState.READY
        self.paused = False
        self.level = 1
        self.score = 0
        self.last_submission = None
        self.keys = InputState()
        self.store.set_player(self._new_player())
        self.difficulty = difficulty_for_level(self.level, self.difficulty_config)
        self._reset_level()

        self.scheduler.schedule(self.ready_delay_ms, self._begin_play, self.now, "ready")
        self._emit("game_start", generation=generation)
        logger.info("Game started (generation %d)", generation)
        return True

    def restart_game(self):
        """Abandon the current game and return to the menu"""
        self.now = self.clock()
        generation = self.scheduler.new_generation()
        self.store.clear_level()
        self.pending_spawns.clear()
        self.store.set_player(self._new_player())
        self.keys = InputState()
        self.paused = False
        self.state = GameState.MENU
        logger.info("Game reset to menu (generation %d)", generation)

    def toggle_pause(self) -> bool:
        self.paused = not self.paused
        return self.paused

    def grant_dual_fighter(self) -> bool:
        """Fit the second gun (rescued-fighter reward)"""
        if not self.player.alive:
            return False
        self.player.is_dual = True
        self._emit("rescue")
        return True

    def _begin_play(self):
        if self.state != GameState.READY:
            return
        self.state = GameState.PLAYING
        logger.info("Level %d: play", self.level)

    def _level_complete(self):
        self.state = GameState.LEVEL_TRANSITION
        self._emit("level_clear", level=self.level)
        logger.info("Level %d cleared, score %d", self.level, self.score)
        self.scheduler.schedule(self.level_transition_ms, self._next_level, self.now, "level_transition")

    def _next_level(self):
        if self.state != GameState.LEVEL_TRANSITION:
            return
        self.level += 1
        self.difficulty = difficulty_for_level(self.level, self.difficulty_config)
        self._reset_level()
        self.state = GameState.PLAYING
        logger.info(
            "Level %d: dive every %.0f ms, enemy fire every %.0f ms",
            self.level, self.difficulty.dive_interval, self.difficulty.enemy_fire_interval,
        )

    def _game_over(self):
        self.state = GameState.GAME_OVER
        previous = self.high_score
        self.high_score = max(previous, self.score)
        if self.high_scores is not None:
            self.high_scores.save_high_score(self.score)

        self._emit("game_over", score=self.score, level=self.level, new_high_score=self.score > previous)
        logger.info("Game over: score %d, level %d, high score %d", self.score, self.level, self.high_score)
        self._submit_score()

    def _submit_score(self):
        if self.leaderboard is None:
            return
        if not self.username:
            logger.info("No username set; skipping leaderboard submission")
            return
        self.submissions += 1
        self.leaderboard.submit(self.username, self.score, self.level, generation=self.generation)

    # ----------------------------
    # Input
    # ----------------------------

    def press(self, action: str):
        if action == "left":
            self.keys.left = True
        elif action == "right":
            self.keys.right = True
        elif action == "fire":
            self.keys.fire = True
            self.try_fire()
        elif action == "confirm":
            self.start_game()
        elif action == "pause":
            self.toggle_pause()

    def release(self, action: str):
        if action == "left":
            self.keys.left = False
        elif action == "right":
            self.keys.right = False
        elif action == "fire":
            self.keys.fire = False

    def try_fire(self, now: Optional[float] = None) -> bool:
        """Fire one volley if playing, alive, under the cap and off cooldown"""
        if self.state != GameState.PLAYING or self.paused:
            return False
        player = self.player
        if not player.alive:
            return False

        now = self.clock() if now is None else now
        shots = 2 if player.is_dual else 1
        if self.store.active_bullets() + shots > self.bullet_cap:
            return False
        if player.last_fire_time is not None and now - player.last_fire_time <= self.fire_cooldown_ms:
            return False

        vy = -self.bullet_speed
        if player.is_dual:
            self.store.add_bullet(player.x - self.dual_spread, player.y, vy)
            self.store.add_bullet(player.x + self.dual_spread, player.y, vy)
        else:
            self.store.add_bullet(player.x, player.y - 10, vy)

        player.last_fire_time = now
        self._emit("shoot")
        return True

    # ----------------------------
    # Tick
    # ----------------------------

    def update(self, dt_ms: float):
        """Advance the simulation by one frame of `dt_ms` milliseconds"""
        self.now = self.clock()
        self.frame_count += 1

        self._drain_submissions()
        self.scheduler.run_due(self.now)

        scale = self._frame_scale(dt_ms)
        self._update_explosions(scale)

        if self.state != GameState.PLAYING:
            self.store.reap_explosions()
            return

        self._update_player(scale)
        self._autofire()
        self._update_bullets(scale)
        self._spawn_logic()
        self._dive_logic()
        self._enemy_fire_logic()
        self._update_enemies(scale)
        self._update_enemy_bullets(scale)

        self._handle_collisions()
        self._reap()

        if not self.enemies and not self.pending_spawns:
            self._level_complete()

    def _frame_scale(self, dt_ms: float) -> float:
        return clamp(dt_ms / self.frame_interval_ms, 0.0, self.max_frame_scale)

    def _update_player(self, scale: float):
        player = self.player
        if not player.alive:
            return
        if self.keys.left:
            player.x -= player.speed * scale
        if self.keys.right:
            player.x += player.speed * scale
        player.x = clamp(player.x, self.side_margin, self.width - self.side_margin)

    def _autofire(self):
        if not self.keys.fire or not self.autofire_interval_ms:
            return
        last = self.player.last_fire_time
        if last is None or self.now - last >= self.autofire_interval_ms:
            self.try_fire(self.now)

    def _update_bullets(self, scale: float):
        for b in self.bullets:
            b.y += b.vy * scale
            if b.y <= -20:
                b.active = False

    def _spawn_logic(self):
        if not self.pending_spawns or self.frame_count % self.formation["spawn_every_ticks"] != 0:
            return
        slot = self.pending_spawns.popleft()
        target_x, target_y = formation_target(
            slot.grid_x,
            slot.grid_y,
            self.width,
            cols=self.formation["cols"],
            cell_width=self.formation["cell_width"],
            cell_height=self.formation["cell_height"],
            top_offset=self.formation["top_offset"],
        )
        enemy = self.store.add_enemy(slot.type, slot.grid_x, slot.grid_y, target_x, target_y)
        # no flight-in path: settle straight into the slot
        enemy.transition(EnemyState.FORMATION)

    def _dive_logic(self):
        formation = self.store.enemies_in(EnemyState.FORMATION)
        if not formation or self.now - self.last_dive_time <= self.difficulty.dive_interval:
            return
        diver = pick(self.rng, formation)
        diver.transition(EnemyState.DIVING)
        diver.dive_start_x = diver.x
        diver.dive_start_y = diver.y
        diver.dive_time = 0.0
        diver.returning = False
        self.last_dive_time = self.now
        self._emit("dive", enemy_id=diver.id)

    def _enemy_fire_logic(self):
        if self.now - self.last_enemy_shot <= self.difficulty.enemy_fire_interval:
            return
        d = self.difficulty
        divers = [e for e in self.enemies if e.state == EnemyState.DIVING and not e.returning]
        formation = self.store.enemies_in(EnemyState.FORMATION)

        if divers and self.rng.random() < d.diving_shooter_chance:
            shooter = pick(self.rng, divers)
            vx = (self.player.x - shooter.x) * d.aim_gain
            self.store.add_enemy_bullet(shooter.x, shooter.y + 15, vx, d.aimed_bullet_speed)
        elif formation:
            shooter = pick(self.rng, formation)
            self.store.add_enemy_bullet(shooter.x, shooter.y + 15, 0.0, d.dropped_bullet_speed)
        else:
            shooter = None

        if shooter is not None:
            self._emit("enemy_shoot", enemy_id=shooter.id)
        self.last_enemy_shot = self.now

    def _update_enemies(self, scale: float):
        sway = breathing_offset(
            self.now / 1000.0,
            amplitude=self.formation["breathing_amplitude"],
            rate=self.formation["breathing_rate"],
        )
        for e in self.enemies:
            if e.state == EnemyState.FORMATION:
                e.x = e.target_x + sway
                e.y = e.target_y
            elif e.state == EnemyState.DIVING and not e.returning:
                step_dive(
                    e,
                    self.player.x,
                    self.difficulty.dive_speed,
                    scale=scale,
                    wobble_amplitude=self.diving["wobble_amplitude"],
                    steering_gain=self.diving["steering_gain"],
                    progress_step=self.diving["progress_step"],
                )
                if e.y > self.height:
                    # park above the playfield, rejoin after a short delay
                    e.y = self.diving["reentry_y"]
                    e.x = e.target_x
                    e.returning = True
                    self.scheduler.schedule(
                        self.diving["return_delay_ms"],
                        lambda enemy=e: self._rejoin_formation(enemy),
                        self.now,
                        "rejoin",
                    )

    def _rejoin_formation(self, enemy: Enemy):
        if enemy.state != EnemyState.DIVING or self.store.is_removed(enemy.id):
            return
        enemy.transition(EnemyState.FORMATION)
        enemy.returning = False
        enemy.dive_time = 0.0
        enemy.y = enemy.target_y

    def _update_enemy_bullets(self, scale: float):
        for b in self.enemy_bullets:
            b.x += b.vx * scale
            b.y += b.vy * scale
            if b.y >= self.height + 20 or b.x <= -20 or b.x >= self.width + 20:
                b.active = False

    def _update_explosions(self, scale: float):
        for x in self.explosions:
            x.timer += scale

    # ----------------------------
    # Collisions / scoring / lifecycle
    # ----------------------------

    def _handle_collisions(self):
        # Player bullets vs enemies (single-use bullets)
        hit_r = self.collision["bullet_enemy"]
        for b in self.bullets:
            if not b.active:
                continue
            for e in self.enemies:
                if not e.alive or e.returning:
                    continue
                if within(b.x, b.y, e.x, e.y, hit_r):
                    b.active = False
                    self._destroy_enemy(e)
                    break

        player = self.player

        # Enemies vs player (enemy survives the contact)
        if player.vulnerable:
            body_r = self.collision["enemy_player"]
            for e in self.enemies:
                if e.alive and within(e.x, e.y, player.x, player.y, body_r):
                    self._kill_player()
                    break

        # Enemy bullets vs player
        if player.vulnerable:
            shot_r = self.collision["enemy_bullet_player"]
            for b in self.enemy_bullets:
                if b.active and within(b.x, b.y, player.x, player.y, shot_r):
                    b.active = False
                    self._kill_player()
                    break

    def _reap(self):
        self.store.reap_bullets(lambda b: not b.active)
        self.store.reap_enemy_bullets(lambda b: not b.active)
        self.store.reap_enemies()
        self.store.reap_explosions()

    def _destroy_enemy(self, enemy: Enemy):
        was_diving = enemy.state == EnemyState.DIVING
        points = points_for(enemy.type, was_diving, table=self.scoring)
        enemy.transition(EnemyState.DEAD)
        self._award(points)

        self.store.add_explosion(enemy.x, enemy.y, self.enemy_explosion_frames, enemy_type=enemy.type)
        self._emit("enemy_explosion", enemy_type=enemy.type.value, points=points, diving=was_diving)

    def _award(self, points: int):
        if points < 0:
            raise ValueError(f"points must be non-negative, got {points}")
        previous = self.score
        self.score += points
        extra = bonus_lives_crossed(previous, self.score, self.bonus_life_at)
        if extra:
            self.player.lives += extra
            self._emit("extra_life", lives=self.player.lives)

    def _kill_player(self):
        player = self.player
        player.state = PlayerState.EXPLODING
        player.is_dual = False
        self.store.add_explosion(player.x, player.y, self.player_explosion_frames, is_player=True)
        self._emit("player_death", lives=player.lives)
        self.scheduler.schedule(self.respawn_delay_ms, self._after_death, self.now, "respawn")

    def _after_death(self):
        player = self.player
        player.lives = max(0, player.lives - 1)
        if player.lives > 0:
            player.state = PlayerState.ALIVE
            player.x = self.width / 2
            player.is_invincible = True
            player.invincible_until = self.now + self.invincibility_ms
            self.scheduler.schedule(self.invincibility_ms, self._end_invincibility, self.now, "invincibility")
            self._emit("respawn", lives=player.lives)
        else:
            self._game_over()

    def _end_invincibility(self):
        self.player.is_invincible = False

    def _drain_submissions(self):
        if self.leaderboard is None:
            return
        for generation, result in self.leaderboard.poll():
            if generation != self.generation:
                continue
            self.last_submission = result
            self._emit("submission", success=result.success)

    # ----------------------------
    # Setup
    # ----------------------------

    def _new_player(self) -> Player:
        return Player(
            x=self.width / 2,
            y=self.height - self.bottom_margin,
            speed=self.player_speed,
            lives=self.initial_lives,
        )

    def _reset_level(self):
        self.store.clear_level()
        self.pending_spawns = generate_wave(self.formation["layout"], self.formation["cols"])
        self.last_dive_time = self.now
        self.last_enemy_shot = self.now
