"""
Gameplay configuration for the Galaga simulation core.
Velocities are per-frame increments tuned at 60 FPS; times are milliseconds.
"""

import os

# ==============================================================================
# PLAYER
# ==============================================================================

PLAYER_CONFIG = {
    "player_speed": 5.0,          # px per frame
    "bullet_speed": 10.0,         # px per frame
    "max_bullets": 2,
    "max_bullets_dual": 4,
    "fire_cooldown_ms": 200.0,    # shots closer than this are rejected
    "autofire_interval_ms": 200.0,
    "dual_spread": 10.0,          # horizontal offset of the twin guns
    "initial_lives": 3,
    "respawn_delay_ms": 2000.0,
    "invincibility_ms": 3000.0,
    "bonus_life_at": (20000, 70000),
    "bottom_margin": 50.0,        # player y = height - bottom_margin
    "side_margin": 20.0,
}

# ==============================================================================
# FORMATION
# Row layout (from top):
#   Row 0: 4 bosses (centered)
#   Row 1-2: 8 butterflies each
#   Row 3-4: 10 bees each
# ==============================================================================

FORMATION_CONFIG = {
    "cols": 10,
    "cell_width": 32.0,
    "cell_height": 32.0,
    "top_offset": 60.0,
    "breathing_amplitude": 10.0,
    "breathing_rate": 2.0,        # rad/s
    "spawn_every_ticks": 10,
    "layout": (
        ("boss", 4, 3),
        ("butterfly", 8, 1),
        ("butterfly", 8, 1),
        ("bee", 10, 0),
        ("bee", 10, 0),
    ),
}

# ==============================================================================
# DIVING
# ==============================================================================

DIVING_CONFIG = {
    "wobble_amplitude": 4.0,
    "steering_gain": 0.02,
    "progress_step": 0.05,        # dive progress per frame
    "return_delay_ms": 500.0,
    "reentry_y": -30.0,
}

# ==============================================================================
# DIFFICULTY
# ==============================================================================

DIFFICULTY_CONFIG = {
    "base_dive_interval": 2500.0,
    "dive_interval_step": 150.0,
    "min_dive_interval": 800.0,
    "base_fire_interval": 1500.0,
    "fire_interval_step": 100.0,
    "min_fire_interval": 500.0,
    "base_dive_speed": 3.0,
    "dive_speed_per_level": 0.2,
    "aimed_bullet_speed": 4.0,
    "aimed_bullet_speed_per_level": 0.3,
    "dropped_bullet_speed": 3.0,
    "dropped_bullet_speed_per_level": 0.2,
    "aim_gain": 0.02,
    "diving_shooter_chance": 0.7,
}

# ==============================================================================
# TIMING
# ==============================================================================

TIMING_CONFIG = {
    "ready_delay_ms": 4000.0,     # intro music before play starts
    "level_transition_ms": 3000.0,
    "frame_interval_ms": 1000.0 / 60.0,
    "max_frame_scale": 4.0,       # cap on dt / frame_interval
    "enemy_explosion_frames": 20,
    "player_explosion_frames": 30,
}

# ==============================================================================
# COLLISION THRESHOLDS (center distance, px)
# ==============================================================================

COLLISION_CONFIG = {
    "bullet_enemy": 20.0,
    "enemy_player": 25.0,
    "enemy_bullet_player": 15.0,
}

# ==============================================================================
# SCORING - per type, formation vs diving
# ==============================================================================

SCORING = {
    "bee": {"FORMATION": 50, "DIVING": 100},
    "butterfly": {"FORMATION": 80, "DIVING": 160},
    "boss": {
        "FORMATION": 150,
        "DIVING_ALONE": 400,
        "DIVING_ONE_ESCORT": 800,
        "DIVING_TWO_ESCORTS": 1600,
    },
}

# ==============================================================================
# LEADERBOARD / LOCAL STORAGE
# ==============================================================================

LEADERBOARD_CONFIG = {
    "base_url": os.environ.get("GALAGA_LEADERBOARD_URL", ""),
    "api_key": os.environ.get("GALAGA_LEADERBOARD_KEY", ""),
    "table": "scores",
    "timeout": 10.0,              # seconds
    "username_min": 3,
    "username_max": 12,
    "default_limit": 10,
}

HIGHSCORE_PATH = os.path.join(
    os.environ.get("GALAGA_HOME", os.path.join(os.path.expanduser("~"), ".galaga")),
    "highscore.json",
)

# ==============================================================================
# SESSION / ENV
# ==============================================================================

SESSION_CONFIG = {
    "width": 480,
    "height": 640,
    **PLAYER_CONFIG,
    **TIMING_CONFIG,
}

ENV_CONFIG = {
    "width": 480,
    "height": 640,
    "dt_ms": 1000.0 / 60.0,
    "max_steps": 18000,           # 5 minutes at 60 FPS
    "k_enemies": 6,
    "m_bullets": 4,
    "score_scale": 0.01,
    "life_penalty": 5.0,
}
