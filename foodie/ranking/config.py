from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class RankingConfig:
    ranker_url: str = os.getenv("FOODIE_RANKER_URL", "http://localhost:3001/api")
    timeout: float = float(os.getenv("FOODIE_RANKER_TIMEOUT", "10.0"))
    cache_ttl: float = float(os.getenv("FOODIE_CACHE_TTL", "300"))  # 5 minutes
    remote_enabled: bool = _env_flag("FOODIE_REMOTE_RANKING", True)


DEFAULT_RANKING_CONFIG = RankingConfig()
