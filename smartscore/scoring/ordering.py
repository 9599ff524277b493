from __future__ import annotations

from typing import Any, Callable, Iterable, TypeVar

T = TypeVar("T")


def stable_sorted(
    items: Iterable[T],
    key: Callable[[T], Any],
    reverse: bool = False,
    tie_breaker: Callable[[T], Any] | None = None,
) -> list[T]:
    if tie_breaker is None:
        tie_breaker = _default_tie_breaker
    items_list = list(items)
    if reverse:
        items_list = sorted(items_list, key=tie_breaker)
        return sorted(items_list, key=key, reverse=True)

    def sort_key(item: T) -> tuple[Any, Any]:
        return (key(item), tie_breaker(item))

    return sorted(items_list, key=sort_key)


def voting_order(votes: Iterable[dict[str, Any]]) -> list[dict[str, Any]]:
    return stable_sorted(
        votes,
        key=lambda vote: vote.get("final_lock_time") or "",
        tie_breaker=lambda vote: str(vote.get("user_id")),
    )


def _default_tie_breaker(item: Any) -> Any:
    if isinstance(item, dict):
        for key in ("user_id", "market_id", "username", "id"):
            if key in item and item[key] is not None:
                return str(item[key])
    return str(item)
