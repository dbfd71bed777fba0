"""
Arcade window: draws GameSnapshots and feeds keyboard intents back
"""

from __future__ import annotations

import logging
from typing import Optional

import arcade
import numpy as np

from .clock import SimulationLoop
from .entities import EnemyState, EnemyType, PlayerState
from .session import GameSnapshot, GameState
from .utils import monotonic_ms

logger = logging.getLogger(__name__)

# keyboard -> intent
KEY_ACTIONS = {
    arcade.key.LEFT: "left",
    arcade.key.A: "left",
    arcade.key.RIGHT: "right",
    arcade.key.D: "right",
    arcade.key.SPACE: "fire",
    arcade.key.Z: "fire",
    arcade.key.ENTER: "confirm",
    arcade.key.RETURN: "confirm",
    arcade.key.P: "pause",
    arcade.key.ESCAPE: "pause",
}

ENEMY_COLORS = {
    EnemyType.BEE: ((65, 105, 225), (255, 215, 0)),
    EnemyType.BUTTERFLY: ((220, 20, 60), (153, 50, 204)),
    EnemyType.BOSS: ((34, 139, 34), (0, 191, 255)),
}
ENEMY_SIZES = {EnemyType.BEE: 12, EnemyType.BUTTERFLY: 14, EnemyType.BOSS: 16}

PLAYER_C = (255, 255, 255)
PLAYER_ACCENT = (6, 182, 212)
BULLET_C = (255, 255, 255)
ENEMY_BULLET_C = (255, 69, 0)
HUD_C = (220, 220, 220)
HUD_RED = (239, 68, 68)
HUD_YELLOW = (251, 191, 36)
EXPLOSION_COLORS = [(255, 69, 0), (255, 215, 0), (255, 99, 71), (255, 255, 255)]
PLAYER_EXPLOSION_COLORS = [(255, 255, 255), (6, 182, 212), (255, 69, 0), (255, 215, 0)]


class Starfield:
    """Scrolling background, independent of the simulation"""

    def __init__(self, width: int, height: int, n: int = 100, seed: Optional[int] = None):
        rng = np.random.default_rng(seed)
        self.width = width
        self.height = height
        self.xy = rng.random((n, 2)) * np.array([width, height])
        self.speed = rng.random(n) * 2 + 0.5
        self.size = np.where(rng.random(n) < 0.9, 1.0, 2.0)

    def update(self, warp: float = 1.0):
        self.xy[:, 1] += self.speed * warp
        wrapped = self.xy[:, 1] > self.height
        self.xy[wrapped, 1] = 0.0

    def draw(self, flip):
        for (x, y), r in zip(self.xy, self.size):
            arcade.draw_point(x, flip(y), (255, 255, 255), r)


class GalagaWindow(arcade.Window):
    """Arcade window that renders snapshots; optionally drives a SimulationLoop"""

    def __init__(self, width: int, height: int, title: str = "Galaga", loop: Optional[SimulationLoop] = None):
        super().__init__(width, height, title)
        self.loop = loop
        self.snapshot: Optional[GameSnapshot] = None
        self.stars = Starfield(width, height)
        arcade.set_background_color((0, 0, 0))

        if loop is not None:
            loop.render = self.show_snapshot

    def show_snapshot(self, snapshot: GameSnapshot):
        self.snapshot = snapshot

    def _flip(self, y: float) -> float:
        # simulation y grows downward, arcade y grows upward
        return self.height - y

    # ----------------------------
    # Window events
    # ----------------------------

    def on_update(self, delta_time: float):
        snap = self.snapshot
        self.stars.update(3.0 if snap is not None and snap.state == GameState.READY else 1.0)
        if self.loop is None:
            return
        self.loop.frame(monotonic_ms())
        for event in self.loop.session.drain_events():
            logger.debug("cue %s %s", event.name, event.data)

    def on_key_press(self, symbol: int, modifiers: int):
        action = KEY_ACTIONS.get(symbol)
        if action and self.loop is not None:
            self.loop.session.press(action)

    def on_key_release(self, symbol: int, modifiers: int):
        action = KEY_ACTIONS.get(symbol)
        if action and self.loop is not None:
            self.loop.session.release(action)

    def on_hide(self):
        if self.loop is not None:
            self.loop.set_visible(False)

    def on_show(self):
        if self.loop is not None:
            self.loop.set_visible(True, monotonic_ms())

    # ----------------------------
    # Drawing
    # ----------------------------

    def on_draw(self):
        self.clear()
        self.stars.draw(self._flip)

        snap = self.snapshot
        if snap is None or snap.state == GameState.MENU:
            self._draw_title()
            return

        if snap.player is not None and snap.player.state == PlayerState.ALIVE:
            # blink while invincible
            if snap.player_invincible_ms <= 0 or (snap.frame // 6) % 2 == 0:
                self._draw_player(snap.player.x, snap.player.y, snap.player.is_dual)

        for e in snap.enemies:
            self._draw_enemy(e)
        for b in snap.bullets:
            arcade.draw_lrbt_rectangle_filled(b.x - 2, b.x + 2, self._flip(b.y + 6), self._flip(b.y - 6), BULLET_C)
        for b in snap.enemy_bullets:
            arcade.draw_circle_filled(b.x, self._flip(b.y), 4, ENEMY_BULLET_C)
        for x in snap.explosions:
            self._draw_explosion(x)

        self._draw_hud(snap)

        cx, cy = self.width / 2, self.height / 2
        if snap.state == GameState.READY:
            arcade.draw_text("READY", cx, cy, HUD_RED, 24, anchor_x="center")
        elif snap.state == GameState.LEVEL_TRANSITION:
            arcade.draw_text(f"STAGE {snap.level} CLEAR", cx, cy, HUD_YELLOW, 20, anchor_x="center")
        elif snap.state == GameState.GAME_OVER:
            arcade.draw_text("GAME OVER", cx, cy, HUD_RED, 28, anchor_x="center")
            arcade.draw_text(f"SCORE {snap.score:,}", cx, cy - 36, HUD_C, 16, anchor_x="center")
            sub = snap.last_submission
            if sub is not None:
                text = f"RANK #{sub.rank}" if sub.success else (sub.error or "OFFLINE")
                if sub.success and sub.is_personal_best:
                    text += "  NEW PERSONAL BEST!"
                arcade.draw_text(text, cx, cy - 64, HUD_YELLOW, 12, anchor_x="center")
            arcade.draw_text("PRESS ENTER", cx, cy - 96, HUD_C, 12, anchor_x="center")
        if snap.paused:
            arcade.draw_text("PAUSED", cx, cy + 40, HUD_C, 20, anchor_x="center")

    def _draw_title(self):
        cx = self.width / 2
        arcade.draw_text("GALAGA", cx, self.height * 2 / 3, HUD_RED, 40, anchor_x="center")
        arcade.draw_text("PRESS ENTER", cx, self.height / 2, HUD_C, 18, anchor_x="center")

    def _draw_player(self, x: float, y: float, dual: bool):
        for ox in ((-16, 16) if dual else (0,)):
            px, py = x + ox, self._flip(y)
            arcade.draw_triangle_filled(px, py + 14, px - 12, py - 12, px + 12, py - 12, PLAYER_C)
            arcade.draw_circle_filled(px, py - 2, 4, PLAYER_ACCENT)

    def _draw_enemy(self, e):
        primary, secondary = ENEMY_COLORS[e.type]
        r = ENEMY_SIZES[e.type]
        x, y = e.x, self._flip(e.y)
        arcade.draw_ellipse_filled(x, y, r * 2.4, r * 1.2, secondary)
        arcade.draw_circle_filled(x, y, r * 0.6, primary)
        if e.state == EnemyState.DIVING:
            arcade.draw_circle_outline(x, y, r, secondary, 1)

    def _draw_explosion(self, x):
        progress = x.progress
        radius = 8 + progress * (40 if x.is_player else 24)
        alpha = int(255 * (1 - progress))
        colors = PLAYER_EXPLOSION_COLORS if x.is_player else EXPLOSION_COLORS
        for i in range(3):
            r, g, b = colors[(i + int(x.timer // 3)) % len(colors)]
            arcade.draw_circle_filled(x.x, self._flip(x.y), radius * (1 - i * 0.2), (r, g, b, alpha))

    def _draw_hud(self, snap: GameSnapshot):
        top = self.height - 24
        arcade.draw_text("1UP", 12, top, HUD_RED, 12)
        arcade.draw_text(f"{snap.score:,}", 12, top - 18, HUD_C, 12)
        arcade.draw_text("HIGH SCORE", self.width / 2, top, HUD_RED, 12, anchor_x="center")
        arcade.draw_text(f"{snap.high_score:,}", self.width / 2, top - 18, HUD_C, 12, anchor_x="center")
        arcade.draw_text(f"STAGE {snap.level}", self.width - 12, 12, HUD_YELLOW, 12, anchor_x="right")
        for i in range(max(0, snap.lives - 1)):
            self._draw_life_icon(20 + i * 22, 20)

    def _draw_life_icon(self, x: float, y: float):
        arcade.draw_triangle_filled(x, y + 8, x - 7, y - 7, x + 7, y - 7, PLAYER_C)
