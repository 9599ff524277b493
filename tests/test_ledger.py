from __future__ import annotations

import sqlite3
from datetime import datetime, timedelta, timezone

import pytest

from smartscore.db import store
from smartscore.errors import InvalidOutcomeError, MarketNotFoundError, MarketStateError
from smartscore.voting.ledger import cast_vote, preview_switch_penalty, retract_vote

T0 = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _setup_conn() -> sqlite3.Connection:
    conn = sqlite3.connect(":memory:")
    conn.row_factory = sqlite3.Row
    store.init_db(conn)
    store.create_market(
        conn,
        {"market_id": "m1", "question": "Q1", "close_time": "2026-03-02T12:00:00Z"},
    )
    return conn


def _at(minute: int) -> datetime:
    return T0 + timedelta(minutes=minute)


def test_first_vote_anchors_entry_on_current_crowd() -> None:
    conn = _setup_conn()
    first = cast_vote(conn, "m1", "u1", "yes", now=_at(1))
    assert first["action"] == "created"
    assert first["entry_pct"] == 0.0

    cast_vote(conn, "m1", "u2", "no", now=_at(2))
    third = cast_vote(conn, "m1", "u3", "yes", now=_at(3))
    assert third["entry_pct"] == pytest.approx(50.0)
    assert third["switch_penalty_total"] == 0.0

    vote = store.fetch_vote(conn, "m1", "u3")
    assert vote["final_choice"] == "yes"
    assert vote["final_lock_time"].startswith("2026-03-01T12:03:00")


def test_switch_without_lost_ground_is_free() -> None:
    conn = _setup_conn()
    cast_vote(conn, "m1", "u1", "no", now=_at(1))
    cast_vote(conn, "m1", "u2", "yes", now=_at(2))  # enters yes at 0%
    switched = cast_vote(conn, "m1", "u2", "no", now=_at(3))
    assert switched["action"] == "switched"
    assert switched["pending_penalty"] == 0.0
    assert switched["entry_pct"] == pytest.approx(50.0)
    assert store.fetch_vote(conn, "m1", "u2")["final_lock_time"].startswith("2026-03-01T12:03:00")


def test_penalty_accumulates_and_never_decreases() -> None:
    conn = _setup_conn()
    cast_vote(conn, "m1", "a", "yes", now=_at(1))
    cast_vote(conn, "m1", "u1", "yes", now=_at(2))  # yes at 100%
    cast_vote(conn, "m1", "b", "no", now=_at(3))
    cast_vote(conn, "m1", "c", "no", now=_at(4))

    assert preview_switch_penalty(conn, "m1", "u1", "no") == pytest.approx(50.0)
    first = cast_vote(conn, "m1", "u1", "no", now=_at(5))
    assert first["switch_penalty_total"] == pytest.approx(50.0)

    second = cast_vote(conn, "m1", "u1", "yes", now=_at(6))
    assert second["switch_penalty_total"] >= first["switch_penalty_total"]
    assert store.fetch_vote(conn, "m1", "u1")["switch_penalty_total"] == pytest.approx(
        second["switch_penalty_total"]
    )


def test_reselecting_current_choice_retracts_without_penalty() -> None:
    conn = _setup_conn()
    cast_vote(conn, "m1", "u1", "yes", now=_at(1))
    result = cast_vote(conn, "m1", "u1", "yes", now=_at(2))
    assert result["action"] == "retracted"
    assert store.fetch_vote(conn, "m1", "u1") is None

    again = cast_vote(conn, "m1", "u1", "no", now=_at(3))
    assert again["action"] == "created"
    assert again["switch_penalty_total"] == 0.0


def test_retract_missing_vote_is_unchanged() -> None:
    conn = _setup_conn()
    result = retract_vote(conn, "m1", "nobody")
    assert result["action"] == "unchanged"


def test_listeners_receive_changes() -> None:
    conn = _setup_conn()
    seen = []
    cast_vote(conn, "m1", "u1", "yes", now=_at(1), listeners=[seen.append])
    cast_vote(conn, "m1", "u1", "no", now=_at(2), listeners=[seen.append])
    retract_vote(conn, "m1", "u1", listeners=[seen.append])
    retract_vote(conn, "m1", "u1", listeners=[seen.append])
    assert [change["action"] for change in seen] == ["created", "switched", "retracted"]


def test_voting_requires_open_market() -> None:
    conn = _setup_conn()
    cast_vote(conn, "m1", "u1", "yes", now=_at(1))
    store.close_markets(conn, ["m1"])
    with pytest.raises(MarketStateError):
        cast_vote(conn, "m1", "u2", "yes", now=_at(2))
    with pytest.raises(MarketStateError):
        retract_vote(conn, "m1", "u1")
    assert store.fetch_vote(conn, "m1", "u1") is not None


def test_invalid_choice_and_unknown_market() -> None:
    conn = _setup_conn()
    with pytest.raises(InvalidOutcomeError):
        cast_vote(conn, "m1", "u1", "maybe")
    with pytest.raises(MarketNotFoundError):
        cast_vote(conn, "nope", "u1", "yes")
