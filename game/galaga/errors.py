"""
Exceptions raised by the simulation core
"""


class GalagaError(Exception):
    """Base class for simulation errors"""


class IllegalTransition(GalagaError, ValueError):
    """An enemy was asked to move to a state it cannot reach"""

    def __init__(self, enemy_id: int, current: str, requested: str):
        super().__init__(f"Enemy {enemy_id}: {current} -> {requested} is not allowed")
        self.enemy_id = enemy_id
        self.current = current
        self.requested = requested


class UnknownEnemyType(GalagaError, KeyError):
    """Enemy type has no entry in the scoring table"""


class EntityStoreError(GalagaError, ValueError):
    """Entity store membership rule was violated"""
