from __future__ import annotations

from pathlib import Path

from smartscore.analytics.leaderboard import fetch_leaderboard
from smartscore.config import load_config, resolve_db_path
from smartscore.db import store


def main() -> None:
    root = Path(__file__).resolve().parents[2]
    config = load_config(root / "config.yaml")
    conn = store.get_connection(resolve_db_path(config, root))
    store.init_db(conn)
    rows = fetch_leaderboard(conn, limit=100)
    conn.close()

    if not rows:
        print("Nobody has scored yet.")
        return
    for row in rows:
        print(f"{row['rank']:>3} {row['username']:<24} {row['smart_score']:>8.1f}")


if __name__ == "__main__":
    main()
