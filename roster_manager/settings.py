import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from roster_manager.data.data_manager import DEFAULT_DATA_DIR, JsonRosterStore
from roster_manager.data.repo import SqliteRosterStore
from roster_manager.logic.generator import RankingPolicy

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"
BACKENDS = ("json", "sqlite")


@dataclass
class Settings:
    data_dir: Path = DEFAULT_DATA_DIR
    backend: str = "json"
    autosave_ms: int = 1000
    log_level: str = "INFO"
    seed: Optional[int] = None
    min_rest_days: int = 0

    def ranking_policy(self) -> RankingPolicy:
        return RankingPolicy(seed=self.seed, min_rest_days=self.min_rest_days)


def _int(env: Mapping[str, str], name: str, default):
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    env = os.environ if env is None else env
    backend = env.get("ROSTER_BACKEND", "json").strip().lower() or "json"
    if backend not in BACKENDS:
        raise ValueError(f"ROSTER_BACKEND must be one of {BACKENDS}, got {backend!r}")
    return Settings(
        data_dir=Path(env.get("ROSTER_DATA_DIR") or DEFAULT_DATA_DIR),
        backend=backend,
        autosave_ms=_int(env, "ROSTER_AUTOSAVE_MS", 1000),
        log_level=(env.get("ROSTER_LOG_LEVEL") or "INFO").upper(),
        seed=_int(env, "ROSTER_SEED", None),
        min_rest_days=_int(env, "ROSTER_MIN_REST_DAYS", 0),
    )


def open_store(settings: Settings):
    if settings.backend == "sqlite":
        return SqliteRosterStore(str(settings.data_dir / "roster.sqlite3"))
    return JsonRosterStore(settings.data_dir)


def setup_logging(settings: Settings):
    logging.basicConfig(level=getattr(logging, settings.log_level, logging.INFO), format=LOG_FORMAT)
