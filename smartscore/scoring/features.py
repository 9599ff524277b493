from __future__ import annotations

from typing import Any, Iterable, Sequence

from smartscore.errors import InvalidOutcomeError

OUTCOMES = ("yes", "no")


def validate_outcome(value: Any) -> str:
    if isinstance(value, str) and value.strip().lower() in OUTCOMES:
        return value.strip().lower()
    raise InvalidOutcomeError(f"outcome must be one of {OUTCOMES}, got {value!r}")


def opposite(choice: str) -> str:
    return "no" if choice == "yes" else "yes"


def crowd_percentages(yes_count: int, total: int) -> tuple[float, float]:
    """Return (yes_pct, no_pct) for a vote tally; no_pct is the complement of yes_pct."""
    if total <= 0:
        raise ValueError("crowd percentages need at least one vote")
    yes_pct = 100.0 * yes_count / total
    return yes_pct, 100.0 - yes_pct


def live_percentages(yes_count: int, no_count: int) -> dict[str, float]:
    # An empty market reports 0 for both sides.
    total = yes_count + no_count
    if total == 0:
        return {"yes": 0.0, "no": 0.0}
    yes_pct, no_pct = crowd_percentages(yes_count, total)
    return {"yes": yes_pct, "no": no_pct}


def vote_percentile(position: int, total: int) -> float:
    if total <= 1:
        return 0.0
    return (position - 1) / (total - 1)


def time_multiplier(
    percentile: float,
    tiers: Sequence[Any],
    tail_multiplier: float,
) -> float:
    for tier in tiers:
        if percentile <= tier.max_percentile:
            return tier.multiplier
    return tail_multiplier


def base_delta(choice: str, outcome: str, yes_pct: float, no_pct: float) -> float:
    pct = {"yes": yes_pct, "no": no_pct}
    if choice == outcome:
        return pct[opposite(outcome)]
    return -pct[outcome]


def final_delta(base: float, multiplier: float, switch_penalty_total: float) -> float:
    return base * multiplier - switch_penalty_total


def switch_penalty(prev_entry_pct: float | None, prev_exit_pct: float) -> float:
    entry = prev_exit_pct if prev_entry_pct is None else prev_entry_pct
    return max(0.0, entry - prev_exit_pct)


def count_choices(votes: Iterable[dict[str, Any]]) -> tuple[int, int]:
    yes_count = 0
    total = 0
    for vote in votes:
        total += 1
        if vote.get("final_choice") == "yes":
            yes_count += 1
    return yes_count, total
