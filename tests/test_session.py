import pytest

from conftest import CALM, FRAME, MemoryHighScores, RecordingLeaderboard, start_playing, step
from game.galaga.difficulty import difficulty_for_level
from game.galaga.entities import EnemyState, EnemyType, PlayerState
from game.galaga.session import GameSession, GameState
from game.galaga.utils import make_rng
from leaderboard.client import SubmitResult
from leaderboard.storage import HighScoreStore


def _formation_enemy(session, type=EnemyType.BEE, x=100.0, y=300.0):
    e = session.store.add_enemy(type, 0, 0, x, y)
    e.transition(EnemyState.FORMATION)
    return e


def _shoot_at(session, x, y):
    # lands on (x, y) after one frame of travel
    return session.store.add_bullet(x, y + session.bullet_speed, -session.bullet_speed)


def _hit_player(session):
    p = session.player
    return session.store.add_enemy_bullet(p.x, p.y, 0.0, 0.0)


def _events(session, name):
    return [e for e in session.drain_events() if e.name == name]


# ----------------------------
# State machine
# ----------------------------

def test_menu_until_started(session, clock):
    step(session, clock, 30)
    assert session.state == GameState.MENU
    assert len(session.pending_spawns) == 0


def test_ready_then_playing_after_delay(calm_session, clock):
    s = calm_session
    assert s.start_game()
    assert s.state == GameState.READY
    assert len(s.pending_spawns) == 40
    assert s.score == 0 and s.lives == 3 and s.level == 1

    clock.advance(3999)
    s.update(FRAME)
    assert s.state == GameState.READY
    clock.advance(1)
    s.update(FRAME)
    assert s.state == GameState.PLAYING


def test_start_ignored_while_playing(playing):
    assert not playing.start_game()
    assert playing.state == GameState.PLAYING


def test_confirm_starts_from_menu(calm_session):
    calm_session.press("confirm")
    assert calm_session.state == GameState.READY


def test_enemies_spawn_every_tenth_tick(playing, clock):
    step(playing, clock, 100)
    assert len(playing.enemies) + len(playing.pending_spawns) == 40
    assert 9 <= len(playing.enemies) <= 11
    assert all(e.state == EnemyState.FORMATION for e in playing.enemies)


def test_formation_sways_in_lockstep(playing, clock):
    step(playing, clock, 60)
    offsets = {round(e.x - e.target_x, 9) for e in playing.enemies}
    assert len(offsets) == 1
    assert all(e.y == e.target_y for e in playing.enemies)


def test_level_transition_fires_once(playing, clock):
    s = playing
    while s.pending_spawns:
        step(s, clock)
    assert len(s.enemies) == 40
    s.drain_events()

    for e in s.enemies:
        _shoot_at(s, e.target_x, e.target_y)
    step(s, clock)

    assert s.enemies == []
    assert s.score == 4 * 150 + 16 * 80 + 20 * 50
    assert s.state == GameState.LEVEL_TRANSITION
    step(s, clock, 30)
    assert len(_events(s, "level_clear")) == 1

    clock.advance(3000)
    s.update(FRAME)
    assert s.state == GameState.PLAYING
    assert s.level == 2
    assert len(s.pending_spawns) == 40
    assert s.difficulty == difficulty_for_level(2, s.difficulty_config)


def test_next_level_uses_default_curve(session, clock):
    s = start_playing(session, clock)
    assert s.difficulty.dive_interval == 2500
    s.pending_spawns.clear()
    s.store.clear_level()
    step(s, clock)
    assert s.state == GameState.LEVEL_TRANSITION

    clock.advance(3000)
    s.update(FRAME)
    assert s.level == 2
    assert s.difficulty.dive_interval == 2350
    assert s.difficulty.enemy_fire_interval == 1400


# ----------------------------
# Firing
# ----------------------------

def test_fire_cooldown(playing, clock):
    t0 = clock.now
    assert playing.try_fire()
    clock.now = t0 + 100
    assert not playing.try_fire()
    clock.now = t0 + 250
    assert playing.try_fire()
    assert playing.store.active_bullets() == 2


def test_single_fighter_capped_at_two(playing, clock):
    for _ in range(5):
        clock.advance(300)
        playing.try_fire()
    assert playing.store.active_bullets() == 2


def test_dual_fighter_capped_at_four(playing, clock):
    playing.grant_dual_fighter()
    fired = []
    for _ in range(4):
        clock.advance(300)
        fired.append(playing.try_fire())
    assert fired == [True, True, False, False]
    assert playing.store.active_bullets() == 4


def test_dual_volley_never_overflows_cap(playing, clock):
    playing.grant_dual_fighter()
    playing.store.add_bullet(0, 300, -10)
    playing.store.add_bullet(0, 300, -10)
    playing.store.add_bullet(0, 300, -10)
    clock.advance(300)
    assert not playing.try_fire()
    assert playing.store.active_bullets() == 3


def test_no_fire_outside_play(calm_session, clock):
    assert not calm_session.try_fire()
    calm_session.start_game()
    assert not calm_session.try_fire()


def test_held_fire_respects_cap_every_tick(playing, clock):
    playing.press("fire")
    for _ in range(400):
        step(playing, clock)
        assert playing.store.active_bullets() <= playing.bullet_cap
    playing.release("fire")


def test_bullets_leave_the_top(playing, clock):
    playing.try_fire()
    step(playing, clock, 80)
    assert playing.bullets == []


# ----------------------------
# Collisions and scoring
# ----------------------------

def test_formation_and_diving_kill_values(playing, clock):
    s = playing
    s.pending_spawns.clear()
    keep = _formation_enemy(s, x=400.0, y=120.0)  # stops the level from clearing

    bee = _formation_enemy(s)
    _shoot_at(s, bee.target_x, bee.target_y)
    step(s, clock)
    assert s.score == 50

    diver = _formation_enemy(s, x=200.0, y=300.0)
    diver.transition(EnemyState.DIVING)
    s.player.x = diver.x
    _shoot_at(s, diver.x, diver.y)
    step(s, clock)
    assert s.score == 150
    assert s.enemies == [keep]


def test_bullet_is_single_use(playing, clock):
    s = playing
    s.pending_spawns.clear()
    _formation_enemy(s, x=400.0, y=120.0)
    bee = _formation_enemy(s)
    _shoot_at(s, bee.target_x, bee.target_y)
    _shoot_at(s, bee.target_x, bee.target_y)
    step(s, clock)
    assert s.score == 50
    assert len(s.bullets) == 1


def test_destruction_spawns_explosion_that_expires(playing, clock):
    s = playing
    s.pending_spawns.clear()
    _formation_enemy(s, x=400.0, y=120.0)
    bee = _formation_enemy(s)
    _shoot_at(s, bee.target_x, bee.target_y)
    step(s, clock)
    assert len(s.explosions) == 1
    assert s.explosions[0].enemy_type == EnemyType.BEE
    step(s, clock, 20)
    assert s.explosions == []


def test_enemy_contact_kills_player_not_enemy(playing, clock):
    s = playing
    p = s.player
    e = _formation_enemy(s, x=p.x, y=p.y)
    step(s, clock)
    assert p.state == PlayerState.EXPLODING
    assert e in s.enemies and e.alive


def test_enemy_bullet_consumed_on_hit(playing, clock):
    _hit_player(playing)
    step(playing, clock)
    assert playing.player.state == PlayerState.EXPLODING
    assert playing.enemy_bullets == []
    assert len([x for x in playing.explosions if x.is_player]) == 1


def test_bonus_life(playing, clock):
    s = playing
    s.pending_spawns.clear()
    _formation_enemy(s, x=400.0, y=120.0)
    s.score = 19950
    bee = _formation_enemy(s)
    _shoot_at(s, bee.target_x, bee.target_y)
    step(s, clock)
    assert s.score == 20000
    assert s.lives == 4
    assert len(_events(s, "extra_life")) == 1


# ----------------------------
# Death, respawn, game over
# ----------------------------

def test_respawn_with_invincibility(playing, clock):
    s = playing
    _hit_player(s)
    step(s, clock)
    assert s.lives == 3

    clock.advance(2000)
    s.update(FRAME)
    p = s.player
    assert s.lives == 2
    assert p.state == PlayerState.ALIVE
    assert p.is_invincible
    assert p.x == s.width / 2

    _hit_player(s)
    s.store.add_enemy(EnemyType.BEE, 0, 0, p.x, p.y).transition(EnemyState.FORMATION)
    for _ in range(10):
        clock.advance(290)
        s.update(FRAME)
        assert s.lives == 2
        assert p.state == PlayerState.ALIVE

    clock.advance(200)
    s.update(FRAME)
    assert not p.is_invincible
    assert p.state == PlayerState.EXPLODING


def test_death_clears_dual(playing, clock):
    playing.grant_dual_fighter()
    _hit_player(playing)
    step(playing, clock)
    assert not playing.player.is_dual


def test_last_life_ends_game_and_submits_once(clock):
    board = RecordingLeaderboard()
    scores = MemoryHighScores(high_score=500)
    s = GameSession(clock=clock, rng=make_rng(0), difficulty=CALM,
                    leaderboard=board, high_scores=scores, username="ACE")
    start_playing(s, clock)
    s.score = 1234
    s.player.lives = 1

    _hit_player(s)
    step(s, clock)
    assert s.state == GameState.PLAYING

    clock.advance(2000)
    s.update(FRAME)
    assert s.state == GameState.GAME_OVER
    assert s.lives == 0
    assert s.high_score == 1234
    assert scores.high_score == 1234
    assert board.submitted == [("ACE", 1234, 1, s.generation)]

    step(s, clock, 200)
    assert len(board.submitted) == 1
    assert s.lives == 0


def test_game_over_survives_unwritable_high_score_file(clock, tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("")
    board = RecordingLeaderboard()
    s = GameSession(clock=clock, rng=make_rng(0), difficulty=CALM, leaderboard=board,
                    high_scores=HighScoreStore(str(blocker / "sub" / "hs.json")), username="ACE")
    start_playing(s, clock)
    s.score = 700
    s.player.lives = 1

    _hit_player(s)
    step(s, clock)
    clock.advance(2000)
    s.update(FRAME)
    assert s.state == GameState.GAME_OVER
    assert s.high_score == 700
    assert board.submitted == [("ACE", 700, 1, s.generation)]


def test_high_score_keeps_previous_best(clock):
    scores = MemoryHighScores(high_score=5000)
    s = GameSession(clock=clock, rng=make_rng(0), difficulty=CALM, high_scores=scores)
    start_playing(s, clock)
    s.score = 100
    s.player.lives = 1
    _hit_player(s)
    step(s, clock)
    clock.advance(2000)
    s.update(FRAME)
    assert s.state == GameState.GAME_OVER
    assert s.high_score == 5000
    assert scores.high_score == 5000


def test_submission_result_lands_on_next_update(clock):
    board = RecordingLeaderboard()
    s = GameSession(clock=clock, rng=make_rng(0), difficulty=CALM, leaderboard=board, username="ACE")
    start_playing(s, clock)
    s.player.lives = 1
    _hit_player(s)
    step(s, clock)
    clock.advance(2000)
    s.update(FRAME)

    board.resolve(SubmitResult(success=True, rank=3, is_personal_best=False))
    board.resolve(SubmitResult(success=True, rank=99), generation=s.generation - 1)
    step(s, clock)
    assert s.last_submission.rank == 3
    assert s.snapshot().last_submission.rank == 3


def test_no_submission_without_username(clock):
    board = RecordingLeaderboard()
    s = GameSession(clock=clock, rng=make_rng(0), difficulty=CALM, leaderboard=board)
    start_playing(s, clock)
    s.player.lives = 1
    _hit_player(s)
    step(s, clock)
    clock.advance(2000)
    s.update(FRAME)
    assert s.state == GameState.GAME_OVER
    assert board.submitted == []


def test_restart_from_game_over(clock):
    s = GameSession(clock=clock, rng=make_rng(0), difficulty=CALM)
    start_playing(s, clock)
    s.player.lives = 1
    _hit_player(s)
    step(s, clock)
    clock.advance(2000)
    s.update(FRAME)
    assert s.state == GameState.GAME_OVER

    s.restart_game()
    assert s.state == GameState.MENU
    assert s.start_game()
    assert s.score == 0 and s.lives == 3


# ----------------------------
# Stale timers
# ----------------------------

def test_stale_respawn_ignored_after_restart(playing, clock):
    s = playing
    _hit_player(s)
    step(s, clock)
    assert s.scheduler.pending("respawn") == 1

    s.restart_game()
    fresh = s.player
    clock.advance(2500)
    s.update(FRAME)

    assert s.state == GameState.MENU
    assert fresh.lives == 3
    assert fresh.state == PlayerState.ALIVE
    assert not fresh.is_invincible


def test_stale_respawn_ignored_in_new_game(playing, clock):
    s = playing
    _hit_player(s)
    step(s, clock)

    s.restart_game()
    s.start_game()
    clock.advance(2000)
    s.update(FRAME)
    assert s.lives == 3
    assert s.player.state == PlayerState.ALIVE


def test_stale_ready_timer_ignored(calm_session, clock):
    calm_session.start_game()
    calm_session.restart_game()
    clock.advance(5000)
    calm_session.update(FRAME)
    assert calm_session.state == GameState.MENU


def test_stale_level_transition_ignored(playing, clock):
    s = playing
    s.pending_spawns.clear()
    step(s, clock)
    assert s.state == GameState.LEVEL_TRANSITION

    s.restart_game()
    clock.advance(3000)
    s.update(FRAME)
    assert s.state == GameState.MENU
    assert s.level == 1


# ----------------------------
# Dives and enemy fire
# ----------------------------

def test_one_dive_per_interval(session, clock):
    s = start_playing(session, clock)
    step(s, clock, 60)
    s.last_enemy_shot = clock.now + 1e9  # keep the shooters quiet
    s.last_dive_time = clock.now
    divers = len(s.store.enemies_in(EnemyState.DIVING))
    s.drain_events()

    clock.advance(s.difficulty.dive_interval - 100)
    s.update(FRAME)
    assert len(s.store.enemies_in(EnemyState.DIVING)) == divers

    clock.advance(101)
    s.update(FRAME)
    assert len(s.store.enemies_in(EnemyState.DIVING)) == divers + 1
    assert len(_events(s, "dive")) == 1

    step(s, clock, 5)
    assert len(s.store.enemies_in(EnemyState.DIVING)) == divers + 1


def test_diver_returns_to_formation(playing, clock):
    s = playing
    s.pending_spawns.clear()
    e = _formation_enemy(s, x=100.0, y=120.0)
    e.transition(EnemyState.DIVING)
    e.y = s.height - 1
    s.player.x = 400.0

    step(s, clock)
    assert e.y == s.diving["reentry_y"]
    assert e.x == e.target_x
    assert e.returning and e.state == EnemyState.DIVING

    clock.advance(500)
    s.update(FRAME)
    assert e.state == EnemyState.FORMATION
    assert e.y == e.target_y
    assert e in s.enemies


def test_parked_diver_cannot_be_shot(playing, clock):
    s = playing
    s.pending_spawns.clear()
    e = _formation_enemy(s, x=100.0, y=120.0)
    e.transition(EnemyState.DIVING)
    e.returning = True
    e.x, e.y = e.target_x, s.diving["reentry_y"]

    # still on screen-ish (-15 > -20) and within 20 px of the parked diver
    b = _shoot_at(s, e.x, -15.0)
    step(s, clock)
    assert b.active
    assert s.score == 0
    assert e.alive and e in s.enemies


class _ScriptedRng:
    def __init__(self, roll):
        self.roll = roll

    def random(self):
        return self.roll

    def integers(self, n):
        return 0


def _shooting_session(clock, roll):
    s = GameSession(clock=clock, rng=_ScriptedRng(roll),
                    difficulty={"base_dive_interval": 1e12, "min_dive_interval": 1e12})
    start_playing(s, clock)
    s.pending_spawns.clear()
    _formation_enemy(s, x=300.0, y=100.0)
    diver = _formation_enemy(s, x=100.0, y=200.0)
    diver.transition(EnemyState.DIVING)
    s.player.x = 400.0
    s.drain_events()
    return s, diver


def test_diving_enemy_aims_at_player(clock):
    s, diver = _shooting_session(clock, roll=0.0)
    clock.advance(s.difficulty.enemy_fire_interval + 1)
    s.update(FRAME)
    assert len(s.enemy_bullets) == 1
    b = s.enemy_bullets[0]
    assert b.vx > 0
    assert b.vy == pytest.approx(s.difficulty.aimed_bullet_speed)
    assert len(_events(s, "enemy_shoot")) == 1


def test_formation_enemy_drops_straight(clock):
    s, _ = _shooting_session(clock, roll=0.99)
    clock.advance(s.difficulty.enemy_fire_interval + 1)
    s.update(FRAME)
    assert len(s.enemy_bullets) == 1
    b = s.enemy_bullets[0]
    assert b.vx == 0.0
    assert b.vy == pytest.approx(s.difficulty.dropped_bullet_speed)


# ----------------------------
# Input / misc
# ----------------------------

def test_player_clamped_to_playfield(playing, clock):
    playing.press("left")
    step(playing, clock, 200)
    assert playing.player.x == playing.side_margin
    playing.release("left")
    playing.press("right")
    step(playing, clock, 200)
    assert playing.player.x == playing.width - playing.side_margin


def test_large_frame_gap_is_capped(playing, clock):
    x0 = playing.player.x
    playing.press("left")
    clock.advance(5000)
    playing.update(5000)
    assert x0 - playing.player.x == pytest.approx(playing.player_speed * playing.max_frame_scale)


def test_snapshot_is_detached(playing, clock):
    step(playing, clock, 20)
    snap = playing.snapshot()
    snap.enemies[0].x = -999
    snap.player.x = -999
    assert playing.enemies[0].x != -999
    assert playing.player.x != -999
    assert snap.pending_spawns == len(playing.pending_spawns)


# ----------------------------
# Long-run invariants
# ----------------------------

ALLOWED = {
    (EnemyState.FORMATION, EnemyState.FORMATION),
    (EnemyState.FORMATION, EnemyState.DIVING),
    (EnemyState.DIVING, EnemyState.DIVING),
    (EnemyState.DIVING, EnemyState.FORMATION),
}


@pytest.mark.parametrize("seed", [0, 1, 2])
def test_invariants_hold_over_long_run(seed, clock):
    s = GameSession(clock=clock, rng=make_rng(seed))
    start_playing(s, clock)
    s.press("fire")
    rng = make_rng(seed + 100)

    last_score = s.score
    seen = {}
    gone = set()
    for tick in range(4000):
        if tick % 30 == 0:
            s.release("left")
            s.release("right")
            s.press(["left", "right", "stay"][int(rng.integers(3))])
        step(s, clock)

        assert s.lives >= 0
        assert s.score >= last_score
        assert s.store.active_bullets() <= s.bullet_cap
        last_score = s.score

        current = {e.id: e.state for e in s.enemies}
        assert not (set(current) & gone)
        for eid, state in current.items():
            assert state != EnemyState.DEAD
            if eid in seen:
                assert (seen[eid], state) in ALLOWED
        gone |= set(seen) - set(current)
        seen = current

        if s.state == GameState.GAME_OVER:
            break
