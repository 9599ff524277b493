from __future__ import annotations

import logging
import sqlite3
from typing import Any, Sequence

from smartscore.db import store
from smartscore.errors import MarketNotFoundError, MarketStateError
from smartscore.scoring.features import (
    base_delta,
    count_choices,
    crowd_percentages,
    final_delta,
    time_multiplier,
    vote_percentile,
)
from smartscore.scoring.ordering import voting_order
from smartscore.scoring.settings import ScoringSettings

logger = logging.getLogger(__name__)


def resolve_market(
    conn: sqlite3.Connection,
    market_id: str,
    outcome: str,
    settings: ScoringSettings,
) -> dict[str, Any]:
    market = store.fetch_market(conn, market_id)
    if market is None:
        raise MarketNotFoundError(market_id)
    if market["status"] == "resolved":
        raise MarketStateError(market_id, market["status"], "resolve")

    votes = voting_order(store.fetch_votes(conn, market_id))
    total = len(votes)
    logger.info(
        "Resolving market=%s outcome=%s voters=%d min_voters=%d",
        market_id,
        outcome,
        total,
        settings.min_voters,
    )

    if total == 0 or total < settings.min_voters:
        _transition_resolved(conn, market_id, outcome, None, None)
        logger.info("Market %s resolved without scoring: not enough voters", market_id)
        return {"scored": False, "reason": "not_enough_voters"}

    yes_count, _ = count_choices(votes)
    yes_pct, no_pct = crowd_percentages(yes_count, total)
    changes = compute_score_changes(votes, outcome, yes_pct, no_pct, settings)

    _transition_resolved(conn, market_id, outcome, yes_pct, no_pct)
    for change in changes:
        apply_score_change(conn, change)

    logger.info(
        "Market %s scored voters=%d yes_pct=%.2f no_pct=%.2f",
        market_id,
        total,
        yes_pct,
        no_pct,
    )
    return {"scored": True, "voters": total, "yes_pct": yes_pct, "no_pct": no_pct}


def compute_score_changes(
    votes: Sequence[dict[str, Any]],
    outcome: str,
    yes_pct: float,
    no_pct: float,
    settings: ScoringSettings,
) -> list[dict[str, Any]]:
    total = len(votes)
    changes = []
    for index, vote in enumerate(votes):
        position = index + 1
        percentile = vote_percentile(position, total)
        multiplier = time_multiplier(percentile, settings.tiers, settings.tail_multiplier)
        base = base_delta(vote["final_choice"], outcome, yes_pct, no_pct)
        penalty = float(vote.get("switch_penalty_total") or 0.0)
        changes.append(
            {
                "market_id": vote["market_id"],
                "user_id": vote["user_id"],
                "choice": vote["final_choice"],
                "position": position,
                "percentile": percentile,
                "base_delta": base,
                "multiplier": multiplier,
                "switch_penalty": penalty,
                "final_delta": final_delta(base, multiplier, penalty),
            }
        )
    return changes


def apply_score_change(conn: sqlite3.Connection, change: dict[str, Any]) -> dict[str, Any]:
    user_id = change["user_id"]
    try:
        store.ensure_profile(conn, user_id, commit=False)
        profile = store.fetch_profile(conn, user_id)
        before = float(profile["smart_score"]) if profile else 0.0
        after = before + change["final_delta"]
        store.update_smart_score(conn, user_id, after, commit=False)
        record = {**change, "smart_score_before": before, "smart_score_after": after}
        store.insert_score_change(conn, record, commit=False)
        conn.commit()
    except sqlite3.Error:
        conn.rollback()
        logger.error("Score update failed market=%s user=%s", change["market_id"], user_id)
        raise
    return record


def _transition_resolved(
    conn: sqlite3.Connection,
    market_id: str,
    outcome: str,
    yes_pct: float | None,
    no_pct: float | None,
) -> None:
    if not store.mark_market_resolved(conn, market_id, outcome, yes_pct, no_pct):
        current = store.fetch_market(conn, market_id)
        status = current["status"] if current else None
        logger.warning("Resolution rejected market=%s status=%s", market_id, status)
        raise MarketStateError(market_id, status, "resolve")
