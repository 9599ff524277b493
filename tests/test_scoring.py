import pytest

from smartscore.config import AppConfig
from smartscore.errors import InvalidOutcomeError
from smartscore.scoring.features import (
    base_delta,
    crowd_percentages,
    final_delta,
    live_percentages,
    switch_penalty,
    time_multiplier,
    validate_outcome,
    vote_percentile,
)
from smartscore.scoring.ordering import stable_sorted, voting_order

TIERS = AppConfig().scoring.tiers


def _multiplier(position: int, total: int) -> float:
    return time_multiplier(vote_percentile(position, total), TIERS, 0.5)


def test_single_voter_is_earliest_tier():
    assert vote_percentile(1, 1) == 0.0
    assert _multiplier(1, 1) == 1.0


def test_multiplier_tier_boundaries_are_inclusive():
    assert time_multiplier(0.01, TIERS, 0.5) == 1.0
    assert time_multiplier(0.0100001, TIERS, 0.5) == 0.9
    assert time_multiplier(0.10, TIERS, 0.5) == 0.9
    assert time_multiplier(0.50, TIERS, 0.5) == 0.8
    assert time_multiplier(0.90, TIERS, 0.5) == 0.7
    assert time_multiplier(0.91, TIERS, 0.5) == 0.5
    assert time_multiplier(1.0, TIERS, 0.5) == 0.5


def test_multiplier_non_increasing_with_position():
    total = 201
    multipliers = [_multiplier(position, total) for position in range(1, total + 1)]
    assert all(a >= b for a, b in zip(multipliers, multipliers[1:]))
    assert multipliers[0] == 1.0
    assert multipliers[-1] == 0.5


def test_three_voter_percentiles():
    assert [vote_percentile(p, 3) for p in (1, 2, 3)] == [0.0, 0.5, 1.0]
    assert [_multiplier(p, 3) for p in (1, 2, 3)] == [1.0, 0.8, 0.5]


def test_crowd_percentages_sum_to_100():
    yes_pct, no_pct = crowd_percentages(2, 3)
    assert yes_pct == pytest.approx(200 / 3)
    assert yes_pct + no_pct == pytest.approx(100.0)
    with pytest.raises(ValueError):
        crowd_percentages(0, 0)


def test_live_percentages_empty_market():
    assert live_percentages(0, 0) == {"yes": 0.0, "no": 0.0}
    assert live_percentages(1, 3) == {"yes": pytest.approx(25.0), "no": pytest.approx(75.0)}


def test_base_delta_rewards_against_skeptical_crowd():
    yes_pct, no_pct = 70.0, 30.0
    assert base_delta("yes", "yes", yes_pct, no_pct) == 30.0
    assert base_delta("no", "yes", yes_pct, no_pct) == -70.0
    assert base_delta("no", "no", yes_pct, no_pct) == 70.0
    assert base_delta("yes", "no", yes_pct, no_pct) == -30.0


def test_final_delta_charges_penalty_in_full():
    assert final_delta(40.0, 0.5, 3.0) == pytest.approx(17.0)
    assert final_delta(-40.0, 0.5, 3.0) == pytest.approx(-23.0)


def test_switch_penalty_only_when_side_lost_ground():
    assert switch_penalty(60.0, 45.0) == pytest.approx(15.0)
    assert switch_penalty(45.0, 60.0) == 0.0
    assert switch_penalty(None, 40.0) == 0.0


def test_validate_outcome():
    assert validate_outcome("YES") == "yes"
    assert validate_outcome(" no ") == "no"
    for bad in ("maybe", "", None, 1):
        with pytest.raises(InvalidOutcomeError):
            validate_outcome(bad)


def test_voting_order_is_deterministic():
    votes_a = [
        {"user_id": "u2", "final_lock_time": "2026-01-01T00:00:01.000000+00:00"},
        {"user_id": "u3", "final_lock_time": "2026-01-01T00:00:00.000000+00:00"},
        {"user_id": "u1", "final_lock_time": "2026-01-01T00:00:01.000000+00:00"},
    ]
    votes_b = list(reversed(votes_a))
    assert [v["user_id"] for v in voting_order(votes_a)] == ["u3", "u1", "u2"]
    assert [v["user_id"] for v in voting_order(votes_b)] == ["u3", "u1", "u2"]


def test_stable_sort_reverse_uses_tie_breaker():
    rows = [
        {"username": "b", "smart_score": 1.0},
        {"username": "a", "smart_score": 1.0},
        {"username": "c", "smart_score": 2.0},
    ]
    ordered = stable_sorted(rows, key=lambda row: row["smart_score"], reverse=True)
    assert [row["username"] for row in ordered] == ["c", "a", "b"]
