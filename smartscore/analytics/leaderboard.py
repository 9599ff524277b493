from __future__ import annotations

import sqlite3
from typing import Any

from smartscore.db import store


def fetch_leaderboard(conn: sqlite3.Connection, limit: int = 100) -> list[dict[str, Any]]:
    rows = store.fetch_leaderboard(conn, limit)
    leaderboard = []
    for rank, row in enumerate(rows, start=1):
        leaderboard.append(
            {
                "rank": rank,
                "user_id": row["user_id"],
                "username": row["username"] or row["user_id"],
                "smart_score": float(row["smart_score"]),
            }
        )
    return leaderboard


def score_history(conn: sqlite3.Connection, user_id: str) -> list[dict[str, Any]]:
    changes = store.fetch_score_changes(conn, user_id=user_id)
    return list(reversed(changes))
