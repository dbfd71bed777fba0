"""
GalagaEnv - headless Gymnasium wrapper around GameSession
---------------------------------------------------------
- The session runs on a ManualClock advanced by `dt_ms` per step, so
  episodes are deterministic for a given seed
- The READY countdown is skipped on reset; every step is a PLAYING frame
  (or a frame inside a respawn / level transition delay)
- Discrete MultiDiscrete action space: [move(3), fire(2)]
- Vector observation: player state + K nearest enemies + M nearest enemy bullets
- Reward: score gained (scaled) minus a penalty per life lost

Quick test:
    python -m game.galaga.env
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import numpy as np
import gymnasium as gym
from gymnasium import spaces

from .config import ENV_CONFIG
from .entities import EnemyState
from .session import GameSession, GameState
from .utils import ManualClock, clamp


class GalagaEnv(gym.Env):
    """Galaga simulation core as a Gymnasium environment"""

    metadata = {"render_modes": ["human"], "render_fps": 60}

    def __init__(
        self,
        render_mode: Optional[str] = None,
        width: int = ENV_CONFIG["width"],
        height: int = ENV_CONFIG["height"],
        dt_ms: float = ENV_CONFIG["dt_ms"],
        max_steps: int = ENV_CONFIG["max_steps"],
        k_enemies: int = ENV_CONFIG["k_enemies"],
        m_bullets: int = ENV_CONFIG["m_bullets"],
        score_scale: float = ENV_CONFIG["score_scale"],
        life_penalty: float = ENV_CONFIG["life_penalty"],
        session_kwargs: Optional[Dict[str, Any]] = None,
    ):
        super().__init__()

        assert render_mode is None or render_mode in self.metadata["render_modes"]
        self.render_mode = render_mode

        self.width = width
        self.height = height
        self.dt_ms = dt_ms
        self.max_steps = max_steps
        self.k_enemies = k_enemies
        self.m_bullets = m_bullets
        self.score_scale = score_scale
        self.life_penalty = life_penalty
        self.session_kwargs = dict(session_kwargs or {})

        # move: 0 stay, 1 left, 2 right
        # fire: 0/1
        self.action_space = spaces.MultiDiscrete([3, 2])

        # Player: x(1) lives(1) invincible(1) dual(1) bullets-left(1)
        # Each enemy: rel pos(2) diving(1)
        # Each enemy bullet: rel pos(2) vel(2)
        obs_dim = 5 + self.k_enemies * 3 + self.m_bullets * 4
        self.observation_space = spaces.Box(low=-1.0, high=1.0, shape=(obs_dim,), dtype=np.float32)

        self.clock = ManualClock()
        self.session: GameSession = None  # type: ignore
        self._step_count = 0
        self._window = None

    # ----------------------------
    # Gym API
    # ----------------------------

    def reset(self, seed: Optional[int] = None, options: Optional[dict] = None):
        super().reset(seed=seed)

        self._step_count = 0
        self.clock = ManualClock()
        self.session = GameSession(
            width=self.width,
            height=self.height,
            clock=self.clock,
            rng=self.np_random,
            **self.session_kwargs,
        )
        self.session.start_game()

        # skip the intro countdown
        self.clock.advance(self.session.ready_delay_ms)
        self.session.update(self.dt_ms)
        self.session.drain_events()

        return self._get_obs(), self._get_info()

    def step(self, action):
        move, fire = int(action[0]), int(action[1])
        session = self.session

        score_before = session.score
        lives_before = session.lives

        session.keys.left = move == 1
        session.keys.right = move == 2
        if fire:
            session.try_fire()

        self.clock.advance(self.dt_ms)
        session.update(self.dt_ms)
        session.drain_events()

        lives_lost = max(0, lives_before - session.lives)
        reward = (session.score - score_before) * self.score_scale - lives_lost * self.life_penalty

        terminated = session.state == GameState.GAME_OVER
        self._step_count += 1
        truncated = self._step_count >= self.max_steps

        if self.render_mode == "human":
            self.render()

        return self._get_obs(), float(reward), terminated, truncated, self._get_info()

    # ----------------------------
    # Observation / info
    # ----------------------------

    def _get_obs(self) -> np.ndarray:
        s = self.session
        p = s.player

        obs_parts: List[float] = [
            p.x / self.width * 2 - 1,
            min(p.lives, 5) / 5.0 * 2 - 1,
            1.0 if p.is_invincible else -1.0,
            1.0 if p.is_dual else -1.0,
            (s.bullet_cap - s.store.active_bullets()) / max(1, s.bullet_cap) * 2 - 1,
        ]

        def rel(x: float, y: float):
            return clamp((x - p.x) / self.width, -1, 1), clamp((y - p.y) / self.height, -1, 1)

        enemies = sorted(s.enemies, key=lambda e: (e.x - p.x) ** 2 + (e.y - p.y) ** 2)
        for i in range(self.k_enemies):
            if i < len(enemies):
                e = enemies[i]
                obs_parts += [*rel(e.x, e.y), 1.0 if e.state == EnemyState.DIVING else -1.0]
            else:
                obs_parts += [0.0, 0.0, 0.0]

        bullets = sorted(s.enemy_bullets, key=lambda b: (b.x - p.x) ** 2 + (b.y - p.y) ** 2)
        for i in range(self.m_bullets):
            if i < len(bullets):
                b = bullets[i]
                obs_parts += [*rel(b.x, b.y), clamp(b.vx / 10.0, -1, 1), clamp(b.vy / 10.0, -1, 1)]
            else:
                obs_parts += [0.0, 0.0, 0.0, 0.0]

        return np.clip(np.array(obs_parts, dtype=np.float32), -1.0, 1.0)

    def _get_info(self) -> Dict[str, Any]:
        s = self.session
        return {
            "state": s.state.value,
            "score": s.score,
            "level": s.level,
            "lives": s.lives,
            "num_enemies": len(s.enemies),
            "pending_spawns": len(s.pending_spawns),
            "num_bullets": len(s.bullets),
            "num_enemy_bullets": len(s.enemy_bullets),
            "step": self._step_count,
        }

    # ----------------------------
    # Rendering with Arcade
    # ----------------------------

    def render(self):
        if self.render_mode is None:
            return None

        if self._window is None:
            from .render import GalagaWindow
            self._window = GalagaWindow(self.width, self.height, title="GalagaEnv - Arcade")

        self._window.show_snapshot(self.session.snapshot())
        self._window.dispatch_events()
        self._window.on_draw()
        self._window.flip()
        return None

    def close(self):
        if self._window is not None:
            self._window.close()
            self._window = None


# ----------------------------
# Quick sanity test
# ----------------------------

def run_random_episode(render: bool = False, seed: Optional[int] = 42, max_steps: Optional[int] = None) -> Dict[str, Any]:
    """Play one episode with random actions; returns the final info dict"""
    kwargs = {} if max_steps is None else {"max_steps": max_steps}
    env = GalagaEnv(render_mode="human" if render else None, **kwargs)
    obs, info = env.reset(seed=seed)

    terminated = False
    truncated = False
    total = 0.0

    while not (terminated or truncated):
        action = env.action_space.sample()
        obs, reward, terminated, truncated, info = env.step(action)
        total += reward

    print(f"[GalagaEnv] Random episode return: {total:.2f}  "
          f"score={info['score']} level={info['level']} steps={info['step']}")
    env.close()
    info["return"] = total
    return info


if __name__ == "__main__":
    run_random_episode(render=True)
