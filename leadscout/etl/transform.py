"""Utilities for transforming Google Places responses into business records."""

import logging
import math
from typing import Any, Dict, Optional, Tuple

from leadscout.models import BusinessRecord, RecordSource

logger = logging.getLogger(__name__)

EARTH_RADIUS_MILES = 3958.8
METERS_PER_MILE = 1609.34


def haversine_miles(origin: Tuple[float, float], target: Tuple[float, float]) -> float:
    lat1, lng1 = origin
    lat2, lng2 = target
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    return EARTH_RADIUS_MILES * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def miles_to_meters(miles: float) -> int:
    return max(1, round(float(miles) * METERS_PER_MILE))


def career_link_for(website: Optional[str]) -> Optional[str]:
    if not website:
        return None
    return f"{website.rstrip('/')}/careers"


def _place_point(result: Dict[str, Any]) -> Optional[Tuple[float, float]]:
    location = (result.get("geometry") or {}).get("location") or {}
    lat, lng = location.get("lat"), location.get("lng")
    if lat is None or lng is None:
        return None
    try:
        return float(lat), float(lng)
    except (TypeError, ValueError):
        return None


def to_business_record(
    details: Dict[str, Any],
    place: Dict[str, Any],
    origin: Optional[Tuple[float, float]] = None,
    area_label: Optional[str] = None,
) -> Optional[BusinessRecord]:
    """Merge a search candidate with its detail lookup; None when nameless."""
    name = (details.get("name") or place.get("name") or "").strip()
    if not name:
        logger.debug("Skipping place without a name: %s", place.get("place_id"))
        return None

    website = (details.get("website") or "").strip() or None
    location = (
        details.get("formatted_address") or place.get("formatted_address") or place.get("vicinity") or ""
    ).strip() or None

    distance_label = area_label
    if origin is not None:
        point = _place_point(place) or _place_point(details)
        if point is not None:
            distance_label = f"{haversine_miles(origin, point):.1f} mi"

    return BusinessRecord(
        name=name,
        website=website,
        location=location,
        distance_label=distance_label,
        career_link=career_link_for(website),
        source=RecordSource.LIVE,
    )
