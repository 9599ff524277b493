from __future__ import annotations

import logging
import sqlite3
from datetime import datetime
from typing import Any, Callable, Iterable

from smartscore.db import store
from smartscore.errors import MarketNotFoundError, MarketStateError
from smartscore.scoring.features import live_percentages, switch_penalty, validate_outcome
from smartscore.utils.time import to_iso, utc_now

logger = logging.getLogger(__name__)

VoteListener = Callable[[dict[str, Any]], None]


def cast_vote(
    conn: sqlite3.Connection,
    market_id: str,
    user_id: str,
    choice: str,
    now: datetime | None = None,
    listeners: Iterable[VoteListener] = (),
) -> dict[str, Any]:
    choice = validate_outcome(choice)
    _require_open(conn, market_id, "vote on")

    existing = store.fetch_vote(conn, market_id, user_id)
    if existing and existing["final_choice"] == choice:
        return retract_vote(conn, market_id, user_id, listeners=listeners)

    counts = store.count_votes(conn, market_id)
    crowd = live_percentages(counts["yes"], counts["no"])

    pending_penalty = 0.0
    penalty_total = 0.0
    action = "created"
    if existing:
        action = "switched"
        previous = existing["final_choice"]
        pending_penalty = switch_penalty(existing["entry_pct"], crowd[previous])
        penalty_total = (existing["switch_penalty_total"] or 0.0) + pending_penalty

    vote = {
        "market_id": market_id,
        "user_id": user_id,
        "final_choice": choice,
        "final_lock_time": to_iso(now or utc_now()),
        "entry_pct": crowd[choice],
        "switch_penalty_total": penalty_total,
    }
    store.upsert_vote(conn, vote)
    logger.info(
        "Vote %s market=%s user=%s choice=%s entry_pct=%.2f pending_penalty=%.2f",
        action,
        market_id,
        user_id,
        choice,
        vote["entry_pct"],
        pending_penalty,
    )

    change = {
        "market_id": market_id,
        "user_id": user_id,
        "action": action,
        "choice": choice,
        "entry_pct": vote["entry_pct"],
        "switch_penalty_total": penalty_total,
        "pending_penalty": pending_penalty,
    }
    _notify(listeners, change)
    return change


def retract_vote(
    conn: sqlite3.Connection,
    market_id: str,
    user_id: str,
    listeners: Iterable[VoteListener] = (),
) -> dict[str, Any]:
    _require_open(conn, market_id, "retract a vote on")
    removed = store.delete_vote(conn, market_id, user_id)
    if removed:
        logger.info("Vote retracted market=%s user=%s", market_id, user_id)
    change = {
        "market_id": market_id,
        "user_id": user_id,
        "action": "retracted" if removed else "unchanged",
        "choice": None,
        "entry_pct": None,
        "switch_penalty_total": 0.0,
        "pending_penalty": 0.0,
    }
    if removed:
        _notify(listeners, change)
    return change


def preview_switch_penalty(
    conn: sqlite3.Connection,
    market_id: str,
    user_id: str,
    choice: str,
) -> float:
    choice = validate_outcome(choice)
    existing = store.fetch_vote(conn, market_id, user_id)
    if not existing or existing["final_choice"] == choice:
        return 0.0
    counts = store.count_votes(conn, market_id)
    crowd = live_percentages(counts["yes"], counts["no"])
    return switch_penalty(existing["entry_pct"], crowd[existing["final_choice"]])


def _require_open(conn: sqlite3.Connection, market_id: str, action: str) -> None:
    market = store.fetch_market(conn, market_id)
    if market is None:
        raise MarketNotFoundError(market_id)
    if market["status"] != "open":
        raise MarketStateError(market_id, market["status"], action)


def _notify(listeners: Iterable[VoteListener], change: dict[str, Any]) -> None:
    for listener in listeners:
        listener(change)
