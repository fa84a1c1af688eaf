"""Client utilities for the Google Places API."""

import logging
import threading
from typing import Any, Dict, List, Optional, Tuple

import requests

from leadscout.core.errors import ProviderUnavailable

logger = logging.getLogger(__name__)
_SESSION = requests.Session()
_BASE_URL = "https://maps.googleapis.com/maps/api/place"
_OK_STATUSES = {"OK", "ZERO_RESULTS"}
_DETAIL_FIELDS = "place_id,name,website,formatted_address,url,geometry"
MAX_NEARBY_RADIUS_METERS = 50000


class GooglePlacesError(ProviderUnavailable):
    """Raised when the Places API returns a non-successful response."""


def _get(endpoint: str, params: Dict[str, Any], timeout: float) -> Dict[str, Any]:
    try:
        response = _SESSION.get(f"{_BASE_URL}/{endpoint}/json", params=params, timeout=timeout)
        response.raise_for_status()
        payload = response.json()
    except requests.RequestException as exc:
        logger.error("%s request failed: %s", endpoint, exc)
        raise ProviderUnavailable(f"{endpoint} request failed: {exc}") from exc
    except ValueError as exc:
        raise ProviderUnavailable(f"{endpoint} returned a non-JSON payload") from exc

    status = payload.get("status")
    if status not in _OK_STATUSES:
        logger.error("%s failed: status=%s, error_message=%s", endpoint, status, payload.get("error_message"))
        raise GooglePlacesError(payload.get("error_message") or status)
    return payload


def find_place(text: str, api_key: str, timeout: float = 10) -> Dict[str, Any]:
    params = {"input": text, "inputtype": "textquery", "fields": "geometry,formatted_address,name", "key": api_key}
    return _get("findplacefromtext", params, timeout)


def nearby_search(
    location: Tuple[float, float],
    radius_meters: int,
    keyword: str,
    api_key: str,
    pagetoken: Optional[str] = None,
    timeout: float = 10,
) -> Dict[str, Any]:
    lat, lng = location
    params = {
        "location": f"{lat},{lng}",
        "radius": min(MAX_NEARBY_RADIUS_METERS, radius_meters),
        "keyword": keyword,
        "type": "establishment",
        "key": api_key,
    }
    if pagetoken:
        params["pagetoken"] = pagetoken
    return _get("nearbysearch", params, timeout)


def text_search(query: str, api_key: str, pagetoken: Optional[str] = None, timeout: float = 10) -> Dict[str, Any]:
    params = {"query": query, "key": api_key}
    if pagetoken:
        params["pagetoken"] = pagetoken
    return _get("textsearch", params, timeout)


def place_details(place_id: str, api_key: str, timeout: float = 10) -> Dict[str, Any]:
    params = {"place_id": place_id, "key": api_key, "fields": _DETAIL_FIELDS}
    payload = _get("details", params, timeout)
    return payload.get("result", {})


class PlacesProvider:
    """Single-call adapter over the Places endpoints used by the crawl planner.

    Geocodes and place details are memoised for the lifetime of the instance;
    nothing is retried.
    """

    def __init__(self, api_key: str, timeout: float = 10) -> None:
        if not api_key:
            raise ProviderUnavailable("GOOGLE_PLACES_API_KEY is required")
        self.api_key = api_key
        self.timeout = timeout
        self._geocodes: Dict[str, Optional[Tuple[float, float]]] = {}
        self._details: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()

    def geocode(self, area_query: str) -> Optional[Tuple[float, float]]:
        """Return ``(lat, lng)`` for a free-text area, or None when not found."""
        with self._lock:
            if area_query in self._geocodes:
                return self._geocodes[area_query]

        payload = find_place(area_query, self.api_key, timeout=self.timeout)
        candidates = payload.get("candidates") or []
        point = None
        if candidates:
            location = (candidates[0].get("geometry") or {}).get("location") or {}
            if location.get("lat") is not None and location.get("lng") is not None:
                point = (float(location["lat"]), float(location["lng"]))

        with self._lock:
            self._geocodes[area_query] = point
        return point

    def search_page(
        self,
        point: Tuple[float, float],
        radius_meters: int,
        keyword: str,
        page_token: Optional[str] = None,
    ) -> Tuple[List[Dict[str, Any]], Optional[str]]:
        payload = nearby_search(point, radius_meters, keyword, self.api_key, pagetoken=page_token, timeout=self.timeout)
        return payload.get("results", []), payload.get("next_page_token")

    def search_page_by_text(
        self, query: str, page_token: Optional[str] = None
    ) -> Tuple[List[Dict[str, Any]], Optional[str]]:
        payload = text_search(query, self.api_key, pagetoken=page_token, timeout=self.timeout)
        return payload.get("results", []), payload.get("next_page_token")

    def details(self, place_id: str) -> Dict[str, Any]:
        with self._lock:
            cached = self._details.get(place_id)
        if cached is not None:
            return cached

        result = place_details(place_id, self.api_key, timeout=self.timeout)
        with self._lock:
            self._details[place_id] = result
        return result
