from __future__ import annotations

import logging
import math
import sqlite3
from typing import Any, List

from pydantic import BaseModel

from smartscore.config import AppConfig, MultiplierTier
from smartscore.db import store

logger = logging.getLogger(__name__)

MIN_VOTERS_KEY = "min_voters_scoring"
GRAPH_MIN_VOTES_KEY = "graph_min_votes"


class ScoringSettings(BaseModel):
    min_voters: int
    tiers: List[MultiplierTier]
    tail_multiplier: float


def get_setting(conn: sqlite3.Connection, key: str, default: int) -> int:
    try:
        raw = store.fetch_setting(conn, key)
    except (sqlite3.Error, TypeError, KeyError, IndexError) as exc:
        logger.debug("Setting %s unreadable (%s); using default %s", key, exc, default)
        return default
    parsed = _parse_number(raw)
    if parsed is None:
        logger.debug("Setting %s missing or invalid (%r); using default %s", key, raw, default)
        return default
    return max(0, parsed)


def set_setting(conn: sqlite3.Connection, key: str, value: int) -> None:
    if value < 0:
        raise ValueError(f"{key} must be 0 or more")
    store.upsert_setting(conn, key, int(value))


def load_scoring_settings(conn: sqlite3.Connection, config: AppConfig) -> ScoringSettings:
    return ScoringSettings(
        min_voters=get_setting(conn, MIN_VOTERS_KEY, config.settings_defaults.min_voters_scoring),
        tiers=list(config.scoring.tiers),
        tail_multiplier=config.scoring.tail_multiplier,
    )


def graph_min_votes(conn: sqlite3.Connection, config: AppConfig) -> int:
    return get_setting(conn, GRAPH_MIN_VOTES_KEY, config.settings_defaults.graph_min_votes)


def _parse_number(raw: Any) -> int | None:
    if raw is None or isinstance(raw, bool):
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    if math.isnan(value) or math.isinf(value):
        return None
    return int(value)
