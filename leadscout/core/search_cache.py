"""Time-boxed cache of complete search result sets, keyed by request fingerprint.

Places searches are billed per call, so identical searches (after normalizing
case and whitespace) are served from here for the TTL window regardless of
which caller issued them.
"""

import copy
import hashlib
import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Iterable, Optional

from leadscout.etl.normalize import normalize_text
from leadscout.models import BusinessRecord, CacheEntry, SearchMode, SearchRequest

logger = logging.getLogger(__name__)

DEFAULT_TTL = timedelta(hours=48)
RESULT_TIERS = (20, 50, 100, 200, 500)
STATE_WIDE_SENTINEL = "*statewide*"

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def result_bucket(max_results: int) -> int:
    """Snap a result limit to the nearest tier; ties go to the larger tier."""
    return min(RESULT_TIERS, key=lambda tier: (abs(tier - max_results), -tier))


def radius_bucket(radius_miles: Optional[float]) -> str:
    if radius_miles is None:
        return "0"
    return f"{round(float(radius_miles) * 2) / 2:g}"


def fingerprint(request: SearchRequest) -> str:
    business_type = normalize_text(request.business_type)
    if request.mode is SearchMode.STATE_WIDE:
        area = f"region={normalize_text(request.region)}|{STATE_WIDE_SENTINEL}|areas={request.max_areas}"
    else:
        area = f"location={normalize_text(request.location)}|radius={radius_bucket(request.radius_miles)}"
    core = f"type={business_type}|{area}|results={result_bucket(request.max_results)}"
    return hashlib.sha256(core.encode("utf-8")).hexdigest()


class SearchCache:
    """Whole-entry replacement store; readers always receive private copies."""

    def __init__(self, ttl: timedelta = DEFAULT_TTL, clock: Optional[Clock] = None) -> None:
        self.ttl = ttl
        self._clock = clock or _utcnow
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[CacheEntry]:
        with self._lock:
            entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() > entry.expires_at:
            logger.debug("Cache entry %s expired at %s", key[:12], entry.expires_at.isoformat())
            return None
        return _copy_entry(entry)

    def put(
        self,
        key: str,
        businesses: Iterable[BusinessRecord],
        areas_searched: Optional[int] = None,
        areas_planned: Optional[int] = None,
        exhausted: bool = False,
    ) -> CacheEntry:
        created_at = self._clock()
        entry = CacheEntry(
            fingerprint=key,
            businesses=tuple(copy.deepcopy(list(businesses))),
            created_at=created_at,
            expires_at=created_at + self.ttl,
            areas_searched=areas_searched,
            areas_planned=areas_planned,
            exhausted=exhausted,
        )
        with self._lock:
            self._entries[key] = entry
        logger.info("Cached %d businesses under %s until %s", len(entry.businesses), key[:12], entry.expires_at.isoformat())
        return _copy_entry(entry)

    def purge_expired(self) -> int:
        now = self._clock()
        with self._lock:
            expired = [key for key, entry in self._entries.items() if now > entry.expires_at]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


def _copy_entry(entry: CacheEntry) -> CacheEntry:
    return CacheEntry(
        fingerprint=entry.fingerprint,
        businesses=tuple(copy.deepcopy(list(entry.businesses))),
        created_at=entry.created_at,
        expires_at=entry.expires_at,
        areas_searched=entry.areas_searched,
        areas_planned=entry.areas_planned,
        exhausted=entry.exhausted,
    )
