"""Core data models shared by the search, dedupe and import pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class RecordSource(str, Enum):
    LIVE = "live"
    SAVED = "saved"
    IMPORTED = "imported"


class SearchMode(str, Enum):
    SINGLE_AREA = "single_area"
    STATE_WIDE = "state_wide"


class ImportPolicy(str, Enum):
    """What to do with an imported record that matches a saved one."""

    SKIP = "skip"
    REPLACE = "replace"
    KEEP = "keep"


@dataclass(slots=True)
class BusinessRecord:
    """A single lead, whether found live, saved by a user or imported from a file."""

    name: str
    website: Optional[str] = None
    location: Optional[str] = None
    distance_label: Optional[str] = None
    is_bad_lead: bool = False
    notes: str = ""
    career_link: Optional[str] = None
    is_duplicate: bool = False
    source: RecordSource = RecordSource.LIVE
    storage_id: Optional[str] = None

    def copy(self, **changes: Any) -> "BusinessRecord":
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.storage_id,
            "name": self.name,
            "website": self.website,
            "location": self.location,
            "distance": self.distance_label,
            "isBadLead": self.is_bad_lead,
            "notes": self.notes,
            "careerLink": self.career_link,
            "isDuplicate": self.is_duplicate,
            "source": self.source.value,
        }

    @classmethod
    def from_dict(cls, payload: Dict[str, Any], source: RecordSource = RecordSource.IMPORTED) -> "BusinessRecord":
        name = str(payload.get("name") or "").strip()
        if not name:
            raise ValueError("name is required")
        raw_source = payload.get("source")
        try:
            record_source = RecordSource(raw_source) if raw_source else source
        except ValueError as exc:
            raise ValueError(f"unknown source {raw_source!r}") from exc
        return cls(
            name=name,
            website=_strip_or_none(payload.get("website")),
            location=_strip_or_none(payload.get("location")),
            distance_label=_strip_or_none(payload.get("distance")),
            is_bad_lead=parse_bool(payload.get("isBadLead")),
            notes=str(payload.get("notes") or ""),
            career_link=_strip_or_none(payload.get("careerLink")),
            is_duplicate=parse_bool(payload.get("isDuplicate")),
            source=record_source,
            storage_id=_strip_or_none(payload.get("id")),
        )


@dataclass(frozen=True)
class NormalizedKey:
    domain: str = ""
    name: str = ""
    address_core: str = ""


@dataclass(frozen=True)
class SearchRequest:
    """One logical search: either a point+radius or a whole region."""

    business_type: str
    max_results: int
    location: Optional[str] = None
    radius_miles: Optional[float] = None
    region: Optional[str] = None
    max_areas: int = 5

    @classmethod
    def single_area(cls, business_type: str, location: str, radius_miles: float, max_results: int) -> "SearchRequest":
        return cls(
            business_type=business_type,
            max_results=max_results,
            location=location,
            radius_miles=radius_miles,
        )

    @classmethod
    def state_wide(cls, business_type: str, region: str, max_results: int, max_areas: int = 5) -> "SearchRequest":
        return cls(business_type=business_type, max_results=max_results, region=region, max_areas=max_areas)

    @property
    def mode(self) -> SearchMode:
        return SearchMode.STATE_WIDE if self.region else SearchMode.SINGLE_AREA


@dataclass(frozen=True)
class Area:
    label: str
    query: str


@dataclass
class AreaPlan:
    areas: List[Area]
    per_area_cap: int

    def __len__(self) -> int:
        return len(self.areas)


@dataclass(frozen=True)
class CacheEntry:
    fingerprint: str
    businesses: Tuple[BusinessRecord, ...]
    created_at: datetime
    expires_at: datetime
    areas_searched: Optional[int] = None
    areas_planned: Optional[int] = None
    # True when the crawl ran out of provider results before reaching its limit.
    exhausted: bool = False


@dataclass
class SearchResult:
    businesses: List[BusinessRecord]
    areas_searched: Optional[int] = None
    areas_planned: Optional[int] = None
    from_cache: bool = False
    cancelled: bool = False

    @property
    def total(self) -> int:
        return len(self.businesses)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "businesses": [business.to_dict() for business in self.businesses],
            "total": self.total,
        }
        if self.areas_planned is not None:
            payload["areasSearched"] = self.areas_searched
            payload["areasPlanned"] = self.areas_planned
        if self.from_cache:
            payload["cached"] = True
        if self.cancelled:
            payload["cancelled"] = True
        return payload


@dataclass
class ImportResult:
    imported: int = 0
    skipped: int = 0
    replaced: int = 0
    businesses: List[BusinessRecord] = field(default_factory=list, repr=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "imported": self.imported,
            "skipped": self.skipped,
            "replaced": self.replaced,
            "businesses": [business.to_dict() for business in self.businesses],
        }


def _strip_or_none(value: Any) -> Optional[str]:
    if value is None:
        return None
    value_str = str(value).strip()
    return value_str or None


def parse_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "y"}
    return bool(value)
