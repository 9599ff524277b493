from __future__ import annotations

import argparse
from pathlib import Path

from smartscore.analytics.boost import early_boost
from smartscore.config import load_config, resolve_db_path
from smartscore.db import store
from smartscore.pipeline.snapshot import sentiment_series
from smartscore.scoring.settings import graph_min_votes


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Show sentiment and early boost for a market.")
    parser.add_argument("market_id")
    parser.add_argument("--user", dest="user_id", default=None)
    args = parser.parse_args(argv)

    root = Path(__file__).resolve().parents[2]
    config = load_config(root / "config.yaml")
    conn = store.get_connection(resolve_db_path(config, root))
    store.init_db(conn)

    market = store.fetch_market(conn, args.market_id)
    if market is None:
        print("Market not found.")
        conn.close()
        return

    series = sentiment_series(conn, args.market_id, graph_min_votes(conn, config))
    boost = None
    if args.user_id:
        boost = early_boost(
            conn,
            args.market_id,
            args.user_id,
            config.scoring.tiers,
            config.scoring.tail_multiplier,
        )
    conn.close()

    print(f"question: {market['question']}")
    print(f"status: {market['status']}")
    if market["status"] == "resolved" and market["final_yes_pct"] is None:
        print("Not enough votes to award points on resolution.")
    elif market["final_yes_pct"] is not None:
        print(f"final: yes={_fmt(market['final_yes_pct'], 1)} no={_fmt(market['final_no_pct'], 1)}")
    if not series["revealed"]:
        print(f"Waiting for more votes to show the graph. ({series['vote_count']}/{series['min_votes']})")
    else:
        for point in series["points"]:
            print(f"- {point['snapshot_time']} yes={_fmt(point['yes_pct'], 1)} no={_fmt(point['no_pct'], 1)}")
    if args.user_id:
        if boost is None:
            print("Vote to get an early commit boost.")
        else:
            print(f"early boost: {boost['multiplier']:.1f}x (position {boost['position']}/{boost['total']})")


def _fmt(value: float | None, digits: int) -> str:
    if value is None:
        return "n/a"
    return f"{value:.{digits}f}"


if __name__ == "__main__":
    main()
