from __future__ import annotations

import sqlite3
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable

from smartscore.db.schema import SCHEMA_SQL
from smartscore.utils.time import parse_datetime, to_iso, utc_now

MARKET_COLUMNS = (
    "market_id, question, description, category, close_time, status, winning_outcome, "
    "final_yes_pct, final_no_pct, created_at, resolved_at"
)
VOTE_COLUMNS = "market_id, user_id, final_choice, final_lock_time, entry_pct, switch_penalty_total"


def get_connection(db_path: Path) -> sqlite3.Connection:
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    return conn


def init_db(conn: sqlite3.Connection) -> None:
    conn.executescript(SCHEMA_SQL)
    _ensure_column(conn, "markets", "description", "TEXT")
    _ensure_column(conn, "markets", "resolved_at", "TEXT")
    _ensure_column(conn, "score_changes", "switch_penalty", "REAL NOT NULL DEFAULT 0")
    conn.commit()


def _ensure_column(conn: sqlite3.Connection, table: str, column: str, definition: str) -> None:
    try:
        conn.execute(f"ALTER TABLE {table} ADD COLUMN {column} {definition}")
    except sqlite3.OperationalError:
        return


# Markets


def create_market(
    conn: sqlite3.Connection,
    market: dict[str, Any],
    commit: bool = True,
) -> str:
    market_id = market.get("market_id") or uuid.uuid4().hex
    close_time = market["close_time"]
    if not isinstance(close_time, datetime):
        close_time = parse_datetime(close_time)
    if close_time is None:
        raise ValueError(f"invalid close_time {market['close_time']!r}")
    conn.execute(
        """
        INSERT INTO markets
        (market_id, question, description, category, close_time, status, created_at)
        VALUES (?, ?, ?, ?, ?, 'open', ?)
        """,
        (
            market_id,
            market["question"],
            market.get("description"),
            market.get("category"),
            to_iso(close_time),
            to_iso(utc_now()),
        ),
    )
    if commit:
        conn.commit()
    return market_id


def fetch_market(conn: sqlite3.Connection, market_id: str) -> dict[str, Any] | None:
    row = conn.execute(
        f"SELECT {MARKET_COLUMNS} FROM markets WHERE market_id = ?",
        (market_id,),
    ).fetchone()
    return dict(row) if row else None


def list_markets(conn: sqlite3.Connection, status: str | None = None) -> list[dict[str, Any]]:
    if status is None:
        rows = conn.execute(
            f"SELECT {MARKET_COLUMNS} FROM markets ORDER BY close_time DESC, market_id"
        ).fetchall()
    else:
        rows = conn.execute(
            f"SELECT {MARKET_COLUMNS} FROM markets WHERE status = ? ORDER BY close_time ASC, market_id",
            (status,),
        ).fetchall()
    return [dict(row) for row in rows]


def fetch_overdue_market_ids(conn: sqlite3.Connection, now_iso: str) -> list[str]:
    rows = conn.execute(
        "SELECT market_id FROM markets WHERE status = 'open' AND close_time <= ? ORDER BY market_id",
        (now_iso,),
    ).fetchall()
    return [row["market_id"] for row in rows]


def close_markets(
    conn: sqlite3.Connection,
    market_ids: Iterable[str],
    commit: bool = True,
) -> int:
    closed = 0
    for market_id in market_ids:
        cursor = conn.execute(
            "UPDATE markets SET status = 'closed' WHERE market_id = ? AND status = 'open'",
            (market_id,),
        )
        closed += cursor.rowcount
    if commit:
        conn.commit()
    return closed


def mark_market_resolved(
    conn: sqlite3.Connection,
    market_id: str,
    outcome: str,
    yes_pct: float | None,
    no_pct: float | None,
    commit: bool = True,
) -> bool:
    cursor = conn.execute(
        """
        UPDATE markets
        SET status = 'resolved', winning_outcome = ?, final_yes_pct = ?, final_no_pct = ?,
            resolved_at = ?
        WHERE market_id = ? AND status IN ('open', 'closed')
        """,
        (outcome, yes_pct, no_pct, to_iso(utc_now()), market_id),
    )
    if commit:
        conn.commit()
    return cursor.rowcount == 1


# Votes


def fetch_votes(conn: sqlite3.Connection, market_id: str) -> list[dict[str, Any]]:
    rows = conn.execute(
        f"""
        SELECT {VOTE_COLUMNS} FROM votes
        WHERE market_id = ?
        ORDER BY final_lock_time ASC, user_id ASC
        """,
        (market_id,),
    ).fetchall()
    results = []
    for row in rows:
        results.append(
            {
                "market_id": row["market_id"],
                "user_id": row["user_id"],
                "final_choice": row["final_choice"],
                "final_lock_time": row["final_lock_time"],
                "entry_pct": row["entry_pct"],
                "switch_penalty_total": row["switch_penalty_total"] or 0.0,
            }
        )
    return results


def fetch_vote(conn: sqlite3.Connection, market_id: str, user_id: str) -> dict[str, Any] | None:
    row = conn.execute(
        f"SELECT {VOTE_COLUMNS} FROM votes WHERE market_id = ? AND user_id = ?",
        (market_id, user_id),
    ).fetchone()
    return dict(row) if row else None


def upsert_vote(
    conn: sqlite3.Connection,
    vote: dict[str, Any],
    commit: bool = True,
) -> None:
    conn.execute(
        """
        INSERT INTO votes
        (market_id, user_id, final_choice, final_lock_time, entry_pct, switch_penalty_total)
        VALUES (?, ?, ?, ?, ?, ?)
        ON CONFLICT (market_id, user_id) DO UPDATE SET
            final_choice = excluded.final_choice,
            final_lock_time = excluded.final_lock_time,
            entry_pct = excluded.entry_pct,
            switch_penalty_total = excluded.switch_penalty_total
        """,
        (
            vote["market_id"],
            vote["user_id"],
            vote["final_choice"],
            vote["final_lock_time"],
            vote.get("entry_pct"),
            vote.get("switch_penalty_total") or 0.0,
        ),
    )
    if commit:
        conn.commit()


def delete_vote(
    conn: sqlite3.Connection,
    market_id: str,
    user_id: str,
    commit: bool = True,
) -> bool:
    cursor = conn.execute(
        "DELETE FROM votes WHERE market_id = ? AND user_id = ?",
        (market_id, user_id),
    )
    if commit:
        conn.commit()
    return cursor.rowcount > 0


def count_votes(conn: sqlite3.Connection, market_id: str) -> dict[str, int]:
    row = conn.execute(
        """
        SELECT
            COALESCE(SUM(CASE WHEN final_choice = 'yes' THEN 1 ELSE 0 END), 0) AS yes_count,
            COALESCE(SUM(CASE WHEN final_choice = 'no' THEN 1 ELSE 0 END), 0) AS no_count
        FROM votes WHERE market_id = ?
        """,
        (market_id,),
    ).fetchone()
    yes_count = int(row["yes_count"])
    no_count = int(row["no_count"])
    return {"yes": yes_count, "no": no_count, "total": yes_count + no_count}


def count_votes_locked_by(conn: sqlite3.Connection, market_id: str, lock_time: str) -> int:
    row = conn.execute(
        "SELECT COUNT(*) AS count FROM votes WHERE market_id = ? AND final_lock_time <= ?",
        (market_id, lock_time),
    ).fetchone()
    return int(row["count"]) if row else 0


# Snapshots


def insert_snapshot(
    conn: sqlite3.Connection,
    market_id: str,
    snapshot_time: str,
    yes_pct: float,
    no_pct: float,
    commit: bool = True,
) -> None:
    conn.execute(
        """
        INSERT INTO market_snapshots (market_id, snapshot_time, yes_pct, no_pct)
        VALUES (?, ?, ?, ?)
        """,
        (market_id, snapshot_time, yes_pct, no_pct),
    )
    if commit:
        conn.commit()


def fetch_snapshots(conn: sqlite3.Connection, market_id: str) -> list[dict[str, Any]]:
    rows = conn.execute(
        """
        SELECT snapshot_time, yes_pct, no_pct FROM market_snapshots
        WHERE market_id = ?
        ORDER BY snapshot_time ASC, snapshot_id ASC
        """,
        (market_id,),
    ).fetchall()
    return [dict(row) for row in rows]


# Profiles and score changes


def ensure_profile(
    conn: sqlite3.Connection,
    user_id: str,
    username: str | None = None,
    commit: bool = True,
) -> None:
    conn.execute(
        """
        INSERT INTO profiles (user_id, username, smart_score, created_at)
        VALUES (?, ?, 0, ?)
        ON CONFLICT (user_id) DO UPDATE SET username = COALESCE(excluded.username, profiles.username)
        """,
        (user_id, username, to_iso(utc_now())),
    )
    if commit:
        conn.commit()


def fetch_profile(conn: sqlite3.Connection, user_id: str) -> dict[str, Any] | None:
    row = conn.execute(
        "SELECT user_id, username, smart_score, created_at FROM profiles WHERE user_id = ?",
        (user_id,),
    ).fetchone()
    return dict(row) if row else None


def update_smart_score(
    conn: sqlite3.Connection,
    user_id: str,
    smart_score: float,
    commit: bool = True,
) -> None:
    conn.execute(
        "UPDATE profiles SET smart_score = ? WHERE user_id = ?",
        (smart_score, user_id),
    )
    if commit:
        conn.commit()


def fetch_leaderboard(conn: sqlite3.Connection, limit: int) -> list[dict[str, Any]]:
    rows = conn.execute(
        """
        SELECT user_id, username, smart_score FROM profiles
        ORDER BY smart_score DESC, COALESCE(username, user_id) ASC
        LIMIT ?
        """,
        (limit,),
    ).fetchall()
    return [dict(row) for row in rows]


def insert_score_change(
    conn: sqlite3.Connection,
    change: dict[str, Any],
    commit: bool = True,
) -> None:
    conn.execute(
        """
        INSERT INTO score_changes
        (market_id, user_id, base_delta, multiplier, switch_penalty, final_delta,
         smart_score_before, smart_score_after, created_at)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            change["market_id"],
            change["user_id"],
            change["base_delta"],
            change["multiplier"],
            change.get("switch_penalty", 0.0),
            change["final_delta"],
            change["smart_score_before"],
            change["smart_score_after"],
            to_iso(utc_now()),
        ),
    )
    if commit:
        conn.commit()


def fetch_score_changes(
    conn: sqlite3.Connection,
    market_id: str | None = None,
    user_id: str | None = None,
) -> list[dict[str, Any]]:
    clauses = []
    params: list[Any] = []
    if market_id is not None:
        clauses.append("market_id = ?")
        params.append(market_id)
    if user_id is not None:
        clauses.append("user_id = ?")
        params.append(user_id)
    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
    rows = conn.execute(
        f"""
        SELECT change_id, market_id, user_id, base_delta, multiplier, switch_penalty, final_delta,
               smart_score_before, smart_score_after, created_at
        FROM score_changes {where}
        ORDER BY change_id ASC
        """,
        params,
    ).fetchall()
    return [dict(row) for row in rows]


# Settings


def fetch_setting(conn: sqlite3.Connection, key: str) -> Any:
    row = conn.execute("SELECT value FROM settings WHERE key = ?", (key,)).fetchone()
    return row[0] if row else None


def upsert_setting(
    conn: sqlite3.Connection,
    key: str,
    value: Any,
    commit: bool = True,
) -> None:
    conn.execute(
        "INSERT OR REPLACE INTO settings (key, value) VALUES (?, ?)",
        (key, str(value)),
    )
    if commit:
        conn.commit()
