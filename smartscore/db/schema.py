SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS markets (
    market_id TEXT PRIMARY KEY,
    question TEXT NOT NULL,
    description TEXT,
    category TEXT,
    close_time TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'open'
        CHECK (status IN ('open', 'closed', 'resolved')),
    winning_outcome TEXT CHECK (winning_outcome IN ('yes', 'no')),
    final_yes_pct REAL,
    final_no_pct REAL,
    created_at TEXT NOT NULL,
    resolved_at TEXT,
    CHECK ((final_yes_pct IS NULL) = (final_no_pct IS NULL))
);

CREATE TABLE IF NOT EXISTS votes (
    market_id TEXT NOT NULL,
    user_id TEXT NOT NULL,
    final_choice TEXT NOT NULL CHECK (final_choice IN ('yes', 'no')),
    final_lock_time TEXT NOT NULL,
    entry_pct REAL,
    switch_penalty_total REAL NOT NULL DEFAULT 0,
    PRIMARY KEY (market_id, user_id)
);

CREATE INDEX IF NOT EXISTS idx_votes_market_lock
    ON votes (market_id, final_lock_time);

CREATE TABLE IF NOT EXISTS market_snapshots (
    snapshot_id INTEGER PRIMARY KEY AUTOINCREMENT,
    market_id TEXT NOT NULL,
    snapshot_time TEXT NOT NULL,
    yes_pct REAL NOT NULL,
    no_pct REAL NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_snapshots_market_time
    ON market_snapshots (market_id, snapshot_time);

CREATE TABLE IF NOT EXISTS profiles (
    user_id TEXT PRIMARY KEY,
    username TEXT,
    smart_score REAL NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS score_changes (
    change_id INTEGER PRIMARY KEY AUTOINCREMENT,
    market_id TEXT NOT NULL,
    user_id TEXT NOT NULL,
    base_delta REAL NOT NULL,
    multiplier REAL NOT NULL,
    switch_penalty REAL NOT NULL DEFAULT 0,
    final_delta REAL NOT NULL,
    smart_score_before REAL NOT NULL,
    smart_score_after REAL NOT NULL,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS settings (
    key TEXT PRIMARY KEY,
    value TEXT
);
"""
