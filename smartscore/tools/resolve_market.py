from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from smartscore.config import load_config, resolve_db_path
from smartscore.db import store
from smartscore.errors import InvalidOutcomeError, MarketNotFoundError, MarketStateError
from smartscore.pipeline.resolve import resolve_market
from smartscore.scoring.features import validate_outcome
from smartscore.scoring.settings import load_scoring_settings


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Resolve a closed market and apply score changes.")
    parser.add_argument("market_id")
    parser.add_argument("outcome", help="yes or no")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    try:
        outcome = validate_outcome(args.outcome)
    except InvalidOutcomeError as exc:
        print(f"Invalid outcome: {exc}", file=sys.stderr)
        return 2

    root = Path(__file__).resolve().parents[2]
    config = load_config(root / "config.yaml")
    conn = store.get_connection(resolve_db_path(config, root))
    store.init_db(conn)
    try:
        settings = load_scoring_settings(conn, config)
        result = resolve_market(conn, args.market_id, outcome, settings)
    except (MarketNotFoundError, MarketStateError) as exc:
        print(f"Not resolved: {exc}", file=sys.stderr)
        return 1
    finally:
        conn.close()

    if result["scored"]:
        print(
            f"resolved {args.market_id} outcome={outcome} voters={result['voters']} "
            f"yes_pct={result['yes_pct']:.2f} no_pct={result['no_pct']:.2f}"
        )
    else:
        print(f"resolved {args.market_id} outcome={outcome} unscored ({result['reason']})")
    return 0


if __name__ == "__main__":
    sys.exit(main())
