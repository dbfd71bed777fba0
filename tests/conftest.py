import pytest

from game.galaga.session import GameSession, GameState
from game.galaga.utils import ManualClock, make_rng
from leaderboard.client import SubmitResult

FRAME = 1000.0 / 60.0

# dives and enemy fire never trigger on their own
CALM = {
    "base_dive_interval": 1e12,
    "min_dive_interval": 1e12,
    "base_fire_interval": 1e12,
    "min_fire_interval": 1e12,
}


def step(session, clock, frames=1, dt=FRAME):
    for _ in range(frames):
        clock.advance(dt)
        session.update(dt)


def start_playing(session, clock):
    session.start_game()
    clock.advance(session.ready_delay_ms)
    session.update(FRAME)
    assert session.state == GameState.PLAYING
    return session


class RecordingLeaderboard:
    """Stands in for LeaderboardAdapter; records submissions"""

    def __init__(self):
        self.submitted = []
        self.results = []

    def submit(self, username, score, level, generation=0):
        self.submitted.append((username, score, level, generation))
        return True

    def resolve(self, result=None, generation=None):
        gen = self.submitted[-1][3] if generation is None else generation
        self.results.append((gen, result or SubmitResult(success=True, rank=1, is_personal_best=True)))

    def poll(self):
        out, self.results = self.results, []
        return out


class MemoryHighScores:
    def __init__(self, high_score=0):
        self.high_score = high_score
        self.saved = []

    def save_high_score(self, score):
        self.saved.append(score)
        self.high_score = max(self.high_score, score)
        return self.high_score


@pytest.fixture
def clock():
    return ManualClock(10_000.0)


@pytest.fixture
def session(clock):
    return GameSession(clock=clock, rng=make_rng(1234))


@pytest.fixture
def calm_session(clock):
    return GameSession(clock=clock, rng=make_rng(1234), difficulty=CALM)


@pytest.fixture
def playing(calm_session, clock):
    return start_playing(calm_session, clock)
