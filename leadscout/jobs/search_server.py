"""HTTP entrypoint for searches, imports and duplicate checks (Cloud Run friendly)."""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from typing import Any, Dict, List, Optional, Tuple

from flask import Flask, jsonify, request

from leadscout.core.config import get_settings
from leadscout.core.errors import GeocodeFailed, InvalidRequest, ProviderUnavailable
from leadscout.core.service import LeadService, create_service
from leadscout.models import BusinessRecord, ImportPolicy, RecordSource, SearchRequest, parse_bool

# ---------- Logging ----------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)

# ---------- App ----------
app = Flask(__name__)


@lru_cache(maxsize=1)
def get_service() -> LeadService:
    return create_service()


# ---------- Routes ----------


@app.get("/")
def root() -> Any:
    """Simple root to avoid 404 on GET /"""
    return "ok", 200


@app.get("/healthz")
def healthcheck() -> Any:
    """Lightweight health endpoint; reads settings only, never the provider or database."""
    settings = get_settings()
    return (
        jsonify(
            {
                "status": "ok",
                "worker_port_config": getattr(settings, "worker_port", None),
                "revision": os.getenv("K_REVISION", "unknown"),
            }
        ),
        200,
    )


@app.post("/search")
def search() -> Any:
    """
    Search around one location.
    Required JSON fields: businessType, location, radius (miles), maxResults
    """
    payload: Dict[str, Any] = request.get_json(silent=True) or {}
    missing = [f for f in ("businessType", "location", "radius", "maxResults") if payload.get(f) in (None, "")]
    if missing:
        return jsonify({"error": f"missing fields: {', '.join(missing)}"}), 400

    try:
        radius = float(payload["radius"])
        max_results = int(payload["maxResults"])
    except (TypeError, ValueError):
        return jsonify({"error": "radius and maxResults must be numeric"}), 400

    search_request = SearchRequest.single_area(
        business_type=str(payload["businessType"]),
        location=str(payload["location"]),
        radius_miles=radius,
        max_results=max_results,
    )
    return _run_search(search_request)


@app.post("/search/state")
def search_state() -> Any:
    """
    Search a whole state, city by city.
    Required JSON fields: businessType, state, maxResults
    Optional: maxCities (int, capped by MAX_AREAS_LIMIT)
    """
    payload: Dict[str, Any] = request.get_json(silent=True) or {}
    missing = [f for f in ("businessType", "state", "maxResults") if payload.get(f) in (None, "")]
    if missing:
        return jsonify({"error": f"missing fields: {', '.join(missing)}"}), 400

    try:
        max_results = int(payload["maxResults"])
        max_cities = int(payload.get("maxCities") or get_settings().max_areas_limit)
    except (TypeError, ValueError):
        return jsonify({"error": "maxResults and maxCities must be numeric"}), 400

    search_request = SearchRequest.state_wide(
        business_type=str(payload["businessType"]),
        region=str(payload["state"]),
        max_results=max_results,
        max_areas=max_cities,
    )
    return _run_search(search_request)


@app.post("/state-cities")
def state_cities() -> Any:
    payload: Dict[str, Any] = request.get_json(silent=True) or {}
    state = str(payload.get("state") or "").strip()
    if not state:
        return jsonify({"error": "state is required"}), 400
    try:
        max_cities = int(payload.get("maxCities") or get_settings().max_areas_limit)
        max_results = int(payload.get("maxResults") or 20)
    except (TypeError, ValueError):
        return jsonify({"error": "maxCities and maxResults must be numeric"}), 400

    try:
        preview = get_service().preview_areas(state, max_cities, max_results)
    except InvalidRequest as exc:
        return jsonify({"error": str(exc)}), 400
    return jsonify({"data": preview}), 200


@app.get("/businesses")
def list_businesses() -> Any:
    businesses = get_service().current_results()
    return jsonify({"data": [business.to_dict() for business in businesses]}), 200


@app.post("/businesses/import")
def import_businesses() -> Any:
    """
    Import records into the caller's saved list.
    Required: X-Owner-Id header, JSON field businesses (list)
    Optional: policy ("skip" | "replace" | "keep"), default "skip"
    """
    owner_id = _owner_id()
    if not owner_id:
        return jsonify({"error": "X-Owner-Id header is required"}), 401

    payload: Dict[str, Any] = request.get_json(silent=True) or {}
    records, error = _parse_records(payload.get("businesses"))
    if error:
        return jsonify({"error": error}), 400

    policy = _parse_policy(payload)
    if policy is None:
        return jsonify({"error": "policy must be one of skip, replace, keep"}), 400

    result = get_service().import_bulk(owner_id, records, policy)
    return jsonify({"data": result.to_dict()}), 201


@app.post("/businesses/import-from-search")
def import_from_search() -> Any:
    """
    Save the current search results, minus bad leads, into the caller's list.
    Required: X-Owner-Id header
    Optional JSON: policy ("skip" | "replace" | "keep"), default "skip"
    """
    owner_id = _owner_id()
    if not owner_id:
        return jsonify({"error": "X-Owner-Id header is required"}), 401

    payload: Dict[str, Any] = request.get_json(silent=True) or {}
    policy = _parse_policy(payload)
    if policy is None:
        return jsonify({"error": "policy must be one of skip, replace, keep"}), 400

    try:
        result = get_service().import_from_search(owner_id, policy)
    except InvalidRequest as exc:
        return jsonify({"error": str(exc)}), 400
    return jsonify({"data": result.to_dict()}), 201


@app.patch("/businesses/<storage_id>")
def update_business(storage_id: str) -> Any:
    """Mark a current result as a bad lead or edit its notes (JSON: isBadLead, notes)."""
    payload: Dict[str, Any] = request.get_json(silent=True) or {}
    fields: Dict[str, Any] = {}
    if "isBadLead" in payload:
        fields["is_bad_lead"] = parse_bool(payload["isBadLead"])
    if "notes" in payload:
        fields["notes"] = payload["notes"]
    if not fields:
        return jsonify({"error": "isBadLead or notes is required"}), 400

    try:
        updated = get_service().update_business(storage_id, **fields)
    except InvalidRequest as exc:
        return jsonify({"error": str(exc)}), 400
    if updated is None:
        return jsonify({"error": "Business not found"}), 404
    return jsonify({"data": updated.to_dict()}), 200


@app.post("/businesses/compare")
def compare_businesses() -> Any:
    payload: Dict[str, Any] = request.get_json(silent=True) or {}
    records, error = _parse_records(payload.get("businesses"))
    if error:
        return jsonify({"error": error}), 400

    count = get_service().compare(records)
    return jsonify({"data": {"count": count, "message": f"Found {count} duplicate businesses"}}), 200


@app.post("/businesses/clear-duplicates")
def clear_duplicates() -> Any:
    cleared = get_service().clear_duplicate_flags()
    return jsonify({"data": {"cleared": cleared}}), 200


# ---------- Internals ----------


def _owner_id() -> Optional[str]:
    owner_id = (request.headers.get("X-Owner-Id") or "").strip()
    return owner_id or None


def _parse_policy(payload: Dict[str, Any]) -> Optional[ImportPolicy]:
    try:
        return ImportPolicy(str(payload.get("policy") or ImportPolicy.SKIP.value).lower())
    except ValueError:
        return None


def _parse_records(raw: Any) -> Tuple[List[BusinessRecord], Optional[str]]:
    if not isinstance(raw, list) or not raw:
        return [], "businesses must be a non-empty list"
    records: List[BusinessRecord] = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        try:
            records.append(BusinessRecord.from_dict(item, source=RecordSource.IMPORTED))
        except ValueError as exc:
            logger.debug("Dropping imported row %s: %s", item, exc)
    if not records:
        return [], "No valid businesses to import"
    return records, None


def _run_search(search_request: SearchRequest) -> Any:
    try:
        result = get_service().search(search_request, owner_id=_owner_id())
    except (InvalidRequest, GeocodeFailed) as exc:
        return jsonify({"error": str(exc)}), 400
    except ProviderUnavailable as exc:
        logger.error("Provider unavailable: %s", exc)
        return jsonify({"error": "places provider unavailable", "details": str(exc)}), 502
    except Exception as exc:  # noqa: BLE001
        logger.exception("Search failed: %s", exc)
        return jsonify({"error": "search failed"}), 500
    return jsonify({"data": result.to_dict()}), 200


def main() -> None:
    """Cloud Run injects PORT; fall back to WORKER_PORT locally."""
    env_port = os.getenv("PORT")
    port = int(env_port or get_settings().worker_port)
    logger.info("[BOOT] Binding on 0.0.0.0:%d", port)
    app.run(host="0.0.0.0", port=port)


if __name__ == "__main__":
    main()
