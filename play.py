"""
Play Galaga in an Arcade window, or run headless random-agent episodes
"""

import argparse
import logging

from game.galaga import GameSession, SimulationLoop, run_random_episode
from game.galaga.config import HIGHSCORE_PATH, SESSION_CONFIG
from leaderboard import HighScoreStore, LeaderboardAdapter, LeaderboardClient, validate_username


def main():
    parser = argparse.ArgumentParser(description="Galaga")
    parser.add_argument("--username", type=str, default=None,
                        help="Leaderboard name (3-12 chars, A-Z 0-9 _)")
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--no-leaderboard", action="store_true",
                        help="Keep scores local only")
    parser.add_argument("--highscore-file", type=str, default=HIGHSCORE_PATH)
    parser.add_argument("--headless-episodes", type=int, default=0,
                        help="Run N random-agent episodes without a window and exit")
    parser.add_argument("--max-steps", type=int, default=None)
    parser.add_argument("--log-level", type=str, default="INFO",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.headless_episodes > 0:
        scores = []
        for ep in range(args.headless_episodes):
            seed = None if args.seed is None else args.seed + ep
            info = run_random_episode(render=False, seed=seed, max_steps=args.max_steps)
            scores.append(info["score"])
        print(f"[play] {len(scores)} episodes, mean score {sum(scores) / len(scores):.1f}, best {max(scores)}")
        return

    high_scores = HighScoreStore(args.highscore_file)
    username = args.username or high_scores.username
    if username and not validate_username(username):
        print(f"[play] Ignoring invalid username {username!r} (3-12 characters, A-Z 0-9 _)")
        username = None
    elif args.username:
        high_scores.save_username(args.username)

    leaderboard = None
    if not args.no_leaderboard:
        client = LeaderboardClient()
        if client.configured:
            leaderboard = LeaderboardAdapter(client)
        else:
            print("[play] GALAGA_LEADERBOARD_URL not set; scores stay local")

    session = GameSession(
        seed=args.seed,
        leaderboard=leaderboard,
        high_scores=high_scores,
        username=username,
        **SESSION_CONFIG,
    )

    # Imported late so headless runs never open a display
    import arcade
    from game.galaga.render import GalagaWindow

    loop = SimulationLoop(session)
    GalagaWindow(session.width, session.height, title="Galaga", loop=loop)
    print(f"[play] High score {high_scores.high_score:,}. Press Enter to start.")
    arcade.run()


if __name__ == "__main__":
    main()
