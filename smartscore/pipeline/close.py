from __future__ import annotations

import logging
import sqlite3
from datetime import datetime

from smartscore.db import store
from smartscore.utils.time import to_iso, utc_now

logger = logging.getLogger(__name__)


def close_overdue_markets(conn: sqlite3.Connection, now: datetime | None = None) -> int:
    now_iso = to_iso(now or utc_now())
    overdue = store.fetch_overdue_market_ids(conn, now_iso)
    if not overdue:
        logger.info("No overdue markets")
        return 0
    closed = store.close_markets(conn, overdue)
    logger.info("Closed %d overdue markets", closed)
    return closed
