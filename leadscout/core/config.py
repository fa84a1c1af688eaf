"""Application configuration helpers."""

import logging
import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

_TRUTHY = {"1", "true", "yes"}


@dataclass(frozen=True)
class Settings:
    google_api_key: str
    database_url: str
    worker_port: int = 9000
    cache_ttl_hours: float = 48.0
    page_token_delay: float = 2.0
    area_pacing_every: int = 3
    area_pacing_delay: float = 1.0
    max_areas_limit: int = 5
    area_workers: int = 1
    dedupe_city_state_fallback: bool = True
    request_timeout: float = 10.0


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings from environment variables with sensible defaults."""
    load_dotenv()

    google_api_key = os.getenv("GOOGLE_PLACES_API_KEY") or os.getenv("GOOGLE_API_KEY", "")
    database_url = os.getenv("DATABASE_URL", "")
    worker_port = int(os.getenv("WORKER_PORT", "9000"))
    cache_ttl_hours = float(os.getenv("SEARCH_CACHE_TTL_HOURS", "48"))
    page_token_delay = float(os.getenv("PAGE_TOKEN_DELAY_SECONDS", "2.0"))
    area_pacing_every = max(1, int(os.getenv("AREA_PACING_EVERY", "3")))
    area_pacing_delay = float(os.getenv("AREA_PACING_DELAY_SECONDS", "1.0"))
    max_areas_limit = max(1, int(os.getenv("MAX_AREAS_LIMIT", "5")))
    area_workers = max(1, int(os.getenv("AREA_WORKERS", "1")))
    dedupe_city_state_fallback = os.getenv("DEDUPE_CITY_STATE_FALLBACK", "true").lower() in _TRUTHY
    request_timeout = float(os.getenv("REQUEST_TIMEOUT_SECONDS", "10"))

    if not google_api_key:
        logger.warning("GOOGLE_PLACES_API_KEY is not configured; Google Places requests will fail.")
    if not database_url:
        logger.warning("DATABASE_URL is not set; falling back to the in-memory corpus store.")

    return Settings(
        google_api_key=google_api_key,
        database_url=database_url,
        worker_port=worker_port,
        cache_ttl_hours=cache_ttl_hours,
        page_token_delay=page_token_delay,
        area_pacing_every=area_pacing_every,
        area_pacing_delay=area_pacing_delay,
        max_areas_limit=max_areas_limit,
        area_workers=area_workers,
        dedupe_city_state_fallback=dedupe_city_state_fallback,
        request_timeout=request_timeout,
    )
