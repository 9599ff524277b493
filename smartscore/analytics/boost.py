from __future__ import annotations

import sqlite3
from typing import Any, Sequence

from smartscore.db import store
from smartscore.scoring.features import time_multiplier, vote_percentile


def early_boost(
    conn: sqlite3.Connection,
    market_id: str,
    user_id: str,
    tiers: Sequence[Any],
    tail_multiplier: float,
) -> dict[str, Any] | None:
    # Preview only: later switches by other voters can still move this position.
    vote = store.fetch_vote(conn, market_id, user_id)
    if vote is None:
        return None
    total = max(1, store.count_votes(conn, market_id)["total"])
    position = max(1, store.count_votes_locked_by(conn, market_id, vote["final_lock_time"]))
    percentile = vote_percentile(position, total)
    return {
        "market_id": market_id,
        "user_id": user_id,
        "position": position,
        "total": total,
        "percentile": percentile,
        "multiplier": time_multiplier(percentile, tiers, tail_multiplier),
    }
