"""Galaga simulation core - session, entities, waves and headless env"""

from .entities import Bullet, Enemy, EnemyBullet, EnemyState, EnemyType, Explosion, Player, PlayerState
from .session import GameEvent, GameSession, GameSnapshot, GameState, InputState
from .clock import SimulationLoop
from .env import GalagaEnv, run_random_episode

__all__ = [
    'Bullet',
    'Enemy',
    'EnemyBullet',
    'EnemyState',
    'EnemyType',
    'Explosion',
    'Player',
    'PlayerState',
    'GameEvent',
    'GameSession',
    'GameSnapshot',
    'GameState',
    'InputState',
    'SimulationLoop',
    'GalagaEnv',
    'run_random_episode',
]
