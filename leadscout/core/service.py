"""Search, import and duplicate-flag operations exposed to the CLI and HTTP layers."""

import logging
import math
import threading
from datetime import timedelta
from typing import Any, Dict, Iterable, List, Optional

from leadscout.core.areas import StaticAreaSource, estimate_crawl_cost
from leadscout.core.config import Settings, get_settings
from leadscout.core.corpus import CorpusStore, InMemoryCorpusStore
from leadscout.core.db import PostgresCorpusStore
from leadscout.core.errors import InvalidRequest
from leadscout.core.identity import IdentityResolver
from leadscout.core.planner import CrawlPlanner
from leadscout.core.search_cache import SearchCache
from leadscout.models import BusinessRecord, ImportPolicy, ImportResult, RecordSource, SearchRequest, SearchResult
from leadscout.vendors.google_places import PlacesProvider

logger = logging.getLogger(__name__)


class LeadService:
    def __init__(
        self,
        planner: CrawlPlanner,
        store: CorpusStore,
        resolver: Optional[IdentityResolver] = None,
        area_source: Optional[StaticAreaSource] = None,
    ) -> None:
        self.planner = planner
        self.store = store
        self.resolver = resolver or planner.resolver
        self.area_source = area_source or StaticAreaSource()

    def search(
        self,
        request: SearchRequest,
        owner_id: Optional[str] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> SearchResult:
        """Run a crawl and make its businesses the current search results."""
        saved: List[BusinessRecord] = []
        if owner_id:
            try:
                saved = self.store.list_saved(owner_id)
                logger.info("Found %d saved businesses for owner %s", len(saved), owner_id)
            except Exception as exc:  # noqa: BLE001
                logger.error("Error fetching saved businesses for duplicate check: %s", exc)

        self.store.clear_current_search_results()
        result = self.planner.search(request, saved=saved, cancel_event=cancel_event)
        result.businesses = self.store.replace_current_search_results(result.businesses)
        return result

    def import_bulk(
        self,
        owner_id: str,
        records: Iterable[BusinessRecord],
        policy: ImportPolicy = ImportPolicy.SKIP,
    ) -> ImportResult:
        """Add records to an owner's saved list, resolving duplicates per ``policy``.

        Each stored record joins the comparison corpus, so a file that repeats
        a business is deduplicated against itself as well.
        """
        corpus = self.store.list_saved(owner_id)
        result = ImportResult()

        for incoming in records:
            record = incoming.copy(source=RecordSource.IMPORTED, is_duplicate=False, storage_id=None)
            match = None if policy is ImportPolicy.KEEP else self.resolver.find_match(record, corpus)

            if match is not None and policy is ImportPolicy.SKIP:
                logger.debug("Skipping %s, duplicate of saved %s", record.name, match.storage_id)
                result.skipped += 1
                continue

            if match is not None:
                stored = self.store.upsert_saved(owner_id, record, existing_id=match.storage_id)
                corpus = [stored if existing is match else existing for existing in corpus]
                result.replaced += 1
            else:
                stored = self.store.upsert_saved(owner_id, record)
                corpus.append(stored)
                result.imported += 1
            result.businesses.append(stored)

        logger.info(
            "Import for owner %s: imported=%d skipped=%d replaced=%d",
            owner_id,
            result.imported,
            result.skipped,
            result.replaced,
        )
        return result

    def import_from_search(self, owner_id: str, policy: ImportPolicy = ImportPolicy.SKIP) -> ImportResult:
        """Save the current search results for ``owner_id``, leaving out bad leads."""
        candidates = [record for record in self.store.list_current_search_results() if not record.is_bad_lead]
        if not candidates:
            raise InvalidRequest("No valid businesses to import")
        return self.import_bulk(owner_id, candidates, policy)

    def update_business(self, storage_id: str, **fields: Any) -> Optional[BusinessRecord]:
        """Mark a current search result as a bad lead or edit its notes."""
        try:
            updated = self.store.update_current(storage_id, **fields)
        except ValueError as exc:
            raise InvalidRequest(str(exc)) from exc
        if updated is not None:
            logger.info("Updated business %s: %s", storage_id, ", ".join(sorted(fields)))
        return updated

    def compare(self, records: Iterable[BusinessRecord]) -> int:
        """Flag current search results that already appear in an uploaded list."""
        uploaded = list(records)
        current = self.store.list_current_search_results()
        matched = self.resolver.flag_against(current, uploaded)
        for record in matched:
            if record.storage_id is not None:
                self.store.mark_duplicate(record.storage_id, True)
        logger.info("Found %d duplicate businesses against %d uploaded", len(matched), len(uploaded))
        return len(matched)

    def clear_duplicate_flags(self) -> int:
        cleared = self.store.clear_duplicate_flags()
        logger.info("Cleared %d duplicate flags", cleared)
        return cleared

    def current_results(self) -> List[BusinessRecord]:
        return self.store.list_current_search_results()

    def preview_areas(self, region: str, max_areas: int, max_results: int) -> Dict[str, Any]:
        """List the areas a state-wide crawl would visit and what it would cost."""
        max_areas = min(max_areas, self.planner.max_areas_limit)
        areas = self.area_source.list_areas(region, max_areas)
        per_area = math.ceil(max_results / len(areas)) if areas else 0
        estimate = estimate_crawl_cost(len(areas), per_area)
        return {
            "cities": areas,
            "state": region,
            "count": len(areas),
            "estimatedCost": estimate.to_dict(),
        }


def build_store(settings: Settings) -> CorpusStore:
    if not settings.database_url:
        return InMemoryCorpusStore()
    store = PostgresCorpusStore()
    store.ensure_schema()
    return store


def create_service(settings: Optional[Settings] = None, provider: Any = None, store: Optional[CorpusStore] = None) -> LeadService:
    """Wire the planner, cache, resolver and store from settings."""
    settings = settings or get_settings()
    if provider is None:
        provider = PlacesProvider(settings.google_api_key, timeout=settings.request_timeout)

    resolver = IdentityResolver(city_state_fallback=settings.dedupe_city_state_fallback)
    area_source = StaticAreaSource()
    planner = CrawlPlanner(
        provider,
        SearchCache(ttl=timedelta(hours=settings.cache_ttl_hours)),
        resolver,
        area_source,
        page_token_delay=settings.page_token_delay,
        pacing_every=settings.area_pacing_every,
        pacing_delay=settings.area_pacing_delay,
        max_areas_limit=settings.max_areas_limit,
        area_workers=settings.area_workers,
    )
    return LeadService(planner, store or build_store(settings), resolver, area_source)
