"""Turns one search request into an ordered, budgeted sequence of provider calls."""

import logging
import math
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, Iterable, List, Optional, Protocol, Tuple

from leadscout.core.errors import GeocodeFailed, InvalidRequest, ProviderUnavailable
from leadscout.core.identity import IdentityResolver
from leadscout.core.search_cache import SearchCache, fingerprint
from leadscout.etl.normalize import normalize_text
from leadscout.etl.transform import miles_to_meters, to_business_record
from leadscout.models import Area, AreaPlan, BusinessRecord, SearchMode, SearchRequest, SearchResult

logger = logging.getLogger(__name__)

Point = Tuple[float, float]
Page = Tuple[List[Dict[str, Any]], Optional[str]]


class PlacesClient(Protocol):
    def geocode(self, area_query: str) -> Optional[Point]: ...

    def search_page(self, point: Point, radius_meters: int, keyword: str, page_token: Optional[str] = None) -> Page: ...

    def search_page_by_text(self, query: str, page_token: Optional[str] = None) -> Page: ...

    def details(self, place_id: str) -> Dict[str, Any]: ...


class AreaSource(Protocol):
    def canonical_region(self, region: str) -> str: ...

    def list_areas(self, region: str, max_areas: int) -> List[str]: ...


@dataclass
class _Crawl:
    businesses: List[BusinessRecord]
    areas_searched: Optional[int] = None
    areas_planned: Optional[int] = None
    cancelled: bool = False
    exhausted: bool = False


def validate_request(request: SearchRequest) -> None:
    if not normalize_text(request.business_type):
        raise InvalidRequest("businessType is required")
    if not isinstance(request.max_results, int) or request.max_results <= 0:
        raise InvalidRequest("maxResults must be a positive integer")

    if request.mode is SearchMode.STATE_WIDE:
        if request.location:
            raise InvalidRequest("location and region are mutually exclusive")
        if not isinstance(request.max_areas, int) or request.max_areas <= 0:
            raise InvalidRequest("maxAreas must be a positive integer")
        return

    if not normalize_text(request.location):
        raise InvalidRequest("location or region is required")
    if request.radius_miles is None or not math.isfinite(request.radius_miles) or request.radius_miles <= 0:
        raise InvalidRequest("radius must be a positive number of miles")


def _is_cancelled(cancel_event: Optional[threading.Event]) -> bool:
    return cancel_event is not None and cancel_event.is_set()


class CrawlPlanner:
    """Cache-aware crawl over one area or many, with first-seen-wins dedupe.

    The planner never touches persisted storage: callers hand in the saved
    corpus to compare against and decide what to do with the result.
    """

    def __init__(
        self,
        provider: PlacesClient,
        cache: SearchCache,
        resolver: Optional[IdentityResolver] = None,
        area_source: Optional[AreaSource] = None,
        *,
        page_token_delay: float = 2.0,
        pacing_every: int = 3,
        pacing_delay: float = 1.0,
        max_areas_limit: int = 5,
        area_workers: int = 1,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.provider = provider
        self.cache = cache
        self.resolver = resolver or IdentityResolver()
        self.area_source = area_source
        self.page_token_delay = page_token_delay
        self.pacing_every = max(1, pacing_every)
        self.pacing_delay = pacing_delay
        self.max_areas_limit = max(1, max_areas_limit)
        self.area_workers = max(1, area_workers)
        self._sleep = sleep

    def search(
        self,
        request: SearchRequest,
        saved: Iterable[BusinessRecord] = (),
        cancel_event: Optional[threading.Event] = None,
    ) -> SearchResult:
        validate_request(request)
        request = self._canonical_request(request)
        saved = list(saved)
        key = fingerprint(request)

        entry = self.cache.get(key)
        if entry is not None and not entry.exhausted and len(entry.businesses) < request.max_results:
            logger.info(
                "Cache entry %s holds %d of %d requested businesses; crawling again",
                key[:12],
                len(entry.businesses),
                request.max_results,
            )
            entry = None
        if entry is not None:
            logger.info("Cache hit for %s (%d businesses)", key[:12], len(entry.businesses))
            businesses = list(entry.businesses)[: request.max_results]
            if saved:
                self.resolver.flag_duplicates(businesses, saved)
            return SearchResult(
                businesses=businesses,
                areas_searched=entry.areas_searched,
                areas_planned=entry.areas_planned,
                from_cache=True,
            )

        logger.info("Cache miss for %s; crawling %s", key[:12], request.mode.value)
        if request.mode is SearchMode.STATE_WIDE:
            crawl = self._crawl_state_wide(request, cancel_event)
        else:
            crawl = self._crawl_single_area(request, cancel_event)

        businesses = crawl.businesses[: request.max_results]
        self.resolver.flag_duplicates(businesses)
        if crawl.cancelled:
            logger.info("Search cancelled after %d businesses; result not cached", len(businesses))
        else:
            # Saved-corpus flags are per caller, so they are applied after caching.
            self.cache.put(key, businesses, crawl.areas_searched, crawl.areas_planned, exhausted=crawl.exhausted)
        if saved:
            self.resolver.flag_duplicates(businesses, saved)

        return SearchResult(
            businesses=businesses,
            areas_searched=crawl.areas_searched,
            areas_planned=crawl.areas_planned,
            cancelled=crawl.cancelled,
        )

    def _canonical_request(self, request: SearchRequest) -> SearchRequest:
        """Resolve region aliases and clamp the area count so equal crawls share a fingerprint."""
        if request.mode is not SearchMode.STATE_WIDE:
            return request
        if self.area_source is None:
            raise InvalidRequest("state-wide search is not available without an area source")
        max_areas = request.max_areas
        if max_areas > self.max_areas_limit:
            logger.warning("maxAreas=%d exceeds limit, clamping to %d", max_areas, self.max_areas_limit)
            max_areas = self.max_areas_limit
        return replace(request, region=self.area_source.canonical_region(request.region), max_areas=max_areas)

    def plan_areas(self, request: SearchRequest) -> AreaPlan:
        if self.area_source is None:
            raise InvalidRequest("state-wide search is not available without an area source")
        max_areas = min(request.max_areas, self.max_areas_limit)

        labels = self.area_source.list_areas(request.region, max_areas)[:max_areas]
        business_type = request.business_type.strip()
        areas = [Area(label=label, query=f"{business_type} in {label}") for label in labels]
        per_area_cap = math.ceil(request.max_results / len(areas)) if areas else 0
        return AreaPlan(areas=areas, per_area_cap=per_area_cap)

    def _crawl_single_area(self, request: SearchRequest, cancel_event: Optional[threading.Event]) -> _Crawl:
        location = request.location.strip()
        point = self.provider.geocode(location)
        if point is None:
            raise GeocodeFailed(f"Could not find location coordinates for {location!r}")

        radius_meters = miles_to_meters(request.radius_miles)
        keyword = request.business_type.strip()

        def fetch(token: Optional[str]) -> Page:
            return self.provider.search_page(point, radius_meters, keyword, token)

        records, cancelled, exhausted = self._paginate(fetch, request.max_results, cancel_event, origin=point)
        return _Crawl(businesses=records, cancelled=cancelled, exhausted=exhausted)

    def _crawl_state_wide(self, request: SearchRequest, cancel_event: Optional[threading.Event]) -> _Crawl:
        plan = self.plan_areas(request)
        planned = len(plan)
        logger.info("Planned %d areas for region=%s, fair share %d per area", planned, request.region, plan.per_area_cap)

        accumulated: List[BusinessRecord] = []
        searched = 0
        started = 0
        since_pause = 0
        cancelled = False
        every_area_exhausted = True

        while started < planned and len(accumulated) < request.max_results:
            if _is_cancelled(cancel_event):
                cancelled = True
                break
            if since_pause >= self.pacing_every:
                self._sleep(self.pacing_delay)
                since_pause = 0

            remaining_budget = request.max_results - len(accumulated)
            remaining_areas = planned - started
            cap = math.ceil(remaining_budget / remaining_areas)
            batch_size = 1 if started == 0 else min(self.area_workers, remaining_areas, self.pacing_every)
            batch = plan.areas[started : started + batch_size]
            first_area = started == 0
            started += len(batch)
            since_pause += len(batch)

            for area, outcome in zip(batch, self._run_batch(batch, cap, cancel_event)):
                if isinstance(outcome, ProviderUnavailable):
                    if first_area:
                        raise outcome
                    logger.warning("Skipping area %s after provider failure: %s", area.label, outcome)
                    every_area_exhausted = False
                    continue
                records, area_cancelled, area_exhausted = outcome
                every_area_exhausted = every_area_exhausted and area_exhausted
                searched += 1
                accumulated.extend(records)
                cancelled = cancelled or area_cancelled
                logger.info("Area %s yielded %d businesses (%d total)", area.label, len(records), len(accumulated))

            if cancelled:
                break

        logger.info("Searched %d of %d planned areas", searched, planned)
        return _Crawl(
            businesses=accumulated,
            areas_searched=searched,
            areas_planned=planned,
            cancelled=cancelled,
            exhausted=not cancelled and started >= planned and every_area_exhausted,
        )

    def _run_batch(self, batch: List[Area], cap: int, cancel_event: Optional[threading.Event]) -> List[Any]:
        if len(batch) == 1:
            return [self._crawl_area(batch[0], cap, cancel_event)]
        with ThreadPoolExecutor(max_workers=len(batch)) as executor:
            return list(executor.map(lambda area: self._crawl_area(area, cap, cancel_event), batch))

    def _crawl_area(self, area: Area, cap: int, cancel_event: Optional[threading.Event]) -> Any:
        def fetch(token: Optional[str]) -> Page:
            return self.provider.search_page_by_text(area.query, token)

        try:
            return self._paginate(fetch, cap, cancel_event, area_label=area.label)
        except ProviderUnavailable as exc:
            return exc

    def _paginate(
        self,
        fetch_page: Callable[[Optional[str]], Page],
        limit: int,
        cancel_event: Optional[threading.Event],
        origin: Optional[Point] = None,
        area_label: Optional[str] = None,
    ) -> Tuple[List[BusinessRecord], bool, bool]:
        """Collect up to ``limit`` records; returns ``(records, cancelled, exhausted)``."""
        records: List[BusinessRecord] = []
        token: Optional[str] = None
        page_number = 0

        while len(records) < limit:
            if _is_cancelled(cancel_event):
                return records, True, False
            if token:
                # Next-page tokens are rejected until the provider has had time to issue them.
                self._sleep(self.page_token_delay)

            candidates, token = fetch_page(token)
            page_number += 1
            for place in candidates:
                if len(records) >= limit:
                    break
                record = self._to_record(place, origin, area_label)
                if record is not None:
                    records.append(record)

            logger.info(
                "Fetched %d/%d businesses after page %d, next page token: %s",
                len(records),
                limit,
                page_number,
                "available" if token else "none",
            )
            if not token:
                return records, False, len(records) < limit
        return records, False, False

    def _to_record(
        self, place: Dict[str, Any], origin: Optional[Point], area_label: Optional[str]
    ) -> Optional[BusinessRecord]:
        place_id = place.get("place_id")
        if not place_id:
            logger.debug("Skipping result without place_id: %s", place)
            return None
        try:
            details = self.provider.details(place_id)
        except ProviderUnavailable as exc:
            logger.warning("Failed to fetch details for %s: %s", place_id, exc)
            return None
        return to_business_record(details, place, origin=origin, area_label=area_label)
