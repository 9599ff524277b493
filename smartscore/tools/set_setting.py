from __future__ import annotations

import argparse
import sys
from pathlib import Path

from smartscore.config import load_config, resolve_db_path
from smartscore.db import store
from smartscore.scoring.settings import GRAPH_MIN_VOTES_KEY, MIN_VOTERS_KEY, get_setting, set_setting

DEFAULTS_BY_KEY = {
    MIN_VOTERS_KEY: "min_voters_scoring",
    GRAPH_MIN_VOTES_KEY: "graph_min_votes",
}


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Show or update a scoring threshold.")
    parser.add_argument("key", choices=sorted(DEFAULTS_BY_KEY))
    parser.add_argument("value", nargs="?", type=int)
    args = parser.parse_args(argv)

    root = Path(__file__).resolve().parents[2]
    config = load_config(root / "config.yaml")
    conn = store.get_connection(resolve_db_path(config, root))
    store.init_db(conn)
    try:
        if args.value is not None:
            try:
                set_setting(conn, args.key, args.value)
            except ValueError as exc:
                print(str(exc), file=sys.stderr)
                return 2
        default = getattr(config.settings_defaults, DEFAULTS_BY_KEY[args.key])
        print(f"{args.key} = {get_setting(conn, args.key, default)}")
    finally:
        conn.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
