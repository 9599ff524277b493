from __future__ import annotations

import logging
from pathlib import Path

from smartscore.config import load_config, resolve_db_path
from smartscore.db import store
from smartscore.pipeline.close import close_overdue_markets
from smartscore.pipeline.snapshot import snapshot_open_markets
from smartscore.utils.time import utc_now

logger = logging.getLogger(__name__)


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    root = Path(__file__).resolve().parents[2]
    config = load_config(root / "config.yaml")
    db_path = resolve_db_path(config, root)

    conn = store.get_connection(db_path)
    store.init_db(conn)
    now = utc_now()
    closed = 0
    snapshots = 0
    try:
        if config.sweep.close_overdue:
            closed = close_overdue_markets(conn, now=now)
        if config.sweep.snapshot_open_markets:
            snapshots = snapshot_open_markets(conn, now=now)
    except Exception:  # noqa: BLE001
        conn.rollback()
        logger.exception("Sweep failed")
        raise
    finally:
        logger.info("Sweep summary closed=%s snapshots=%s db=%s", closed, snapshots, db_path)
        conn.close()


if __name__ == "__main__":
    main()
