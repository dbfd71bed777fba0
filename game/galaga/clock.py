"""
Frame loop driver
"""

from __future__ import annotations

from typing import Callable, Optional

from .session import GameSession, GameSnapshot


class SimulationLoop:
    """
    Called once per display refresh with the host's frame timestamp.

    - hidden: neither update nor render runs (timers keep their wall-clock deadlines)
    - paused: render only
    - becoming visible resyncs the last timestamp so the next dt stays small
    """

    def __init__(self, session: GameSession, render: Optional[Callable[[GameSnapshot], None]] = None):
        self.session = session
        self.render = render
        self.visible = True
        self.last_timestamp: Optional[float] = None
        self.frames = 0
        self.updates = 0

    def set_visible(self, visible: bool, timestamp: Optional[float] = None):
        self.visible = visible
        if visible:
            self.last_timestamp = timestamp

    def frame(self, timestamp: float) -> bool:
        """Run one frame; returns False when skipped because hidden"""
        if not self.visible:
            return False

        dt = 0.0 if self.last_timestamp is None else max(0.0, timestamp - self.last_timestamp)
        self.last_timestamp = timestamp
        self.frames += 1

        if not self.session.paused:
            self.session.update(dt)
            self.updates += 1
        if self.render is not None:
            self.render(self.session.snapshot())
        return True
