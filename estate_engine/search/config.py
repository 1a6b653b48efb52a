from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")


@dataclass(frozen=True)
class QueryCacheConfig:
    max_size: int = int(os.getenv("SEARCH_CACHE_MAX_SIZE", "500"))
    default_ttl: float = float(os.getenv("SEARCH_CACHE_TTL_SECONDS", "300"))
    cleanup_interval: float = float(os.getenv("CACHE_CLEANUP_INTERVAL_SECONDS", "60"))


@dataclass(frozen=True)
class TelemetryConfig:
    window_size: int = int(os.getenv("PERFORMANCE_WINDOW_SIZE", "100"))
    max_tracked_queries: int = int(os.getenv("PERFORMANCE_MAX_TRACKED_QUERIES", "1000"))
    popular_limit: int = 20
    recent_limit: int = 20
    trend_limit: int = 5


DEFAULT_QUERY_CACHE_CONFIG = QueryCacheConfig()
DEFAULT_TELEMETRY_CONFIG = TelemetryConfig()
