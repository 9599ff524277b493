from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List

import yaml
from pydantic import BaseModel


class DatabaseConfig(BaseModel):
    path: str = "data/smartscore.sqlite"


class SettingsDefaults(BaseModel):
    min_voters_scoring: int = 20
    graph_min_votes: int = 5


class MultiplierTier(BaseModel):
    max_percentile: float
    multiplier: float


def _default_tiers() -> List[MultiplierTier]:
    return [
        MultiplierTier(max_percentile=0.01, multiplier=1.0),
        MultiplierTier(max_percentile=0.10, multiplier=0.9),
        MultiplierTier(max_percentile=0.50, multiplier=0.8),
        MultiplierTier(max_percentile=0.90, multiplier=0.7),
    ]


class ScoringConfig(BaseModel):
    tiers: List[MultiplierTier] = _default_tiers()
    tail_multiplier: float = 0.5


class SweepConfig(BaseModel):
    close_overdue: bool = True
    snapshot_open_markets: bool = True


class AppConfig(BaseModel):
    database: DatabaseConfig = DatabaseConfig()
    settings_defaults: SettingsDefaults = SettingsDefaults()
    scoring: ScoringConfig = ScoringConfig()
    sweep: SweepConfig = SweepConfig()


def load_config(path: str | Path) -> AppConfig:
    data: Dict[str, Any] = {}
    config_path = Path(path)
    if config_path.exists():
        with config_path.open("r", encoding="utf-8") as handle:
            loaded = yaml.safe_load(handle)
            if isinstance(loaded, dict):
                data = loaded
    config = AppConfig(**data)
    previous = -1.0
    for tier in config.scoring.tiers:
        if tier.max_percentile <= previous:
            raise ValueError("scoring.tiers must be sorted by max_percentile")
        previous = tier.max_percentile
    return config


def resolve_db_path(config: AppConfig, root: Path) -> Path:
    db_path = Path(config.database.path)
    if not db_path.is_absolute():
        db_path = root / db_path
    return db_path
