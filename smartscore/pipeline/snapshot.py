from __future__ import annotations

import logging
import sqlite3
from datetime import datetime
from typing import Any

from smartscore.db import store
from smartscore.scoring.features import crowd_percentages, live_percentages
from smartscore.utils.time import to_iso, utc_now
from smartscore.voting.ledger import VoteListener

logger = logging.getLogger(__name__)


def snapshot_market(
    conn: sqlite3.Connection,
    market_id: str,
    now: datetime | None = None,
) -> dict[str, Any] | None:
    counts = store.count_votes(conn, market_id)
    if counts["total"] == 0:
        logger.debug("Snapshot skipped market=%s no votes", market_id)
        return None

    yes_pct, no_pct = crowd_percentages(counts["yes"], counts["total"])
    snapshot = {
        "market_id": market_id,
        "snapshot_time": to_iso(now or utc_now()),
        "yes_pct": yes_pct,
        "no_pct": no_pct,
    }
    store.insert_snapshot(conn, market_id, snapshot["snapshot_time"], yes_pct, no_pct)
    logger.info(
        "Snapshot market=%s votes=%d yes=%.2f no=%.2f",
        market_id,
        counts["total"],
        yes_pct,
        no_pct,
    )
    return snapshot


def snapshot_open_markets(conn: sqlite3.Connection, now: datetime | None = None) -> int:
    written = 0
    for market in store.list_markets(conn, status="open"):
        if snapshot_market(conn, market["market_id"], now=now) is not None:
            written += 1
    return written


def snapshot_listener(conn: sqlite3.Connection) -> VoteListener:
    def _on_vote_change(change: dict[str, Any]) -> None:
        snapshot_market(conn, change["market_id"])

    return _on_vote_change


def sentiment_series(
    conn: sqlite3.Connection,
    market_id: str,
    min_votes: int,
) -> dict[str, Any]:
    counts = store.count_votes(conn, market_id)
    revealed = counts["total"] >= min_votes
    points: list[dict[str, Any]] = []
    if revealed:
        points = store.fetch_snapshots(conn, market_id)
        if not points and counts["total"] > 0:
            live = live_percentages(counts["yes"], counts["no"])
            points = [
                {
                    "snapshot_time": to_iso(utc_now()),
                    "yes_pct": live["yes"],
                    "no_pct": live["no"],
                }
            ]
    return {
        "market_id": market_id,
        "vote_count": counts["total"],
        "min_votes": min_votes,
        "revealed": revealed,
        "points": points,
    }
