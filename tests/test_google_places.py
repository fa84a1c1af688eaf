import pytest
import requests

from leadscout.core.errors import ProviderUnavailable
from leadscout.vendors import google_places


class DummyResponse:
    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self._payload = payload or {}

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        return self._payload


class DummySession:
    def __init__(self):
        self.calls = []
        self.responses = []

    def get(self, url, params=None, timeout=None):
        self.calls.append((url, params, timeout))
        if len(self.responses) > 1:
            return self.responses.pop(0)
        return self.responses[0]


@pytest.fixture(autouse=True)
def patch_session(monkeypatch):
    session = DummySession()
    monkeypatch.setattr(google_places, "_SESSION", session)
    return session


def test_text_search_success(patch_session):
    patch_session.responses = [DummyResponse(payload={"status": "OK", "results": []})]
    payload = google_places.text_search("plumber in Columbus, OH", "key")
    assert payload["status"] == "OK"
    url, params, timeout = patch_session.calls[0]
    assert "textsearch" in url
    assert params["query"] == "plumber in Columbus, OH"
    assert "pagetoken" not in params
    assert timeout == 10


def test_text_search_zero_results_is_not_an_error(patch_session):
    patch_session.responses = [DummyResponse(payload={"status": "ZERO_RESULTS", "results": []})]
    assert google_places.text_search("yeti", "key")["results"] == []


def test_text_search_error_status(patch_session):
    patch_session.responses = [DummyResponse(payload={"status": "INVALID_REQUEST", "error_message": "bad"})]
    with pytest.raises(google_places.GooglePlacesError):
        google_places.text_search("pizza", "key")


def test_http_failure_is_provider_unavailable(patch_session):
    patch_session.responses = [DummyResponse(status_code=503)]
    with pytest.raises(ProviderUnavailable):
        google_places.text_search("pizza", "key")


def test_nearby_search_clamps_radius_and_passes_token(patch_session):
    patch_session.responses = [DummyResponse(payload={"status": "OK", "results": []})]
    google_places.nearby_search((39.9, -83.0), 90000, "plumber", "key", pagetoken="tok")
    url, params, _ = patch_session.calls[0]
    assert "nearbysearch" in url
    assert params["radius"] == google_places.MAX_NEARBY_RADIUS_METERS
    assert params["location"] == "39.9,-83.0"
    assert params["pagetoken"] == "tok"


def test_place_details_success(patch_session):
    patch_session.responses = [DummyResponse(payload={"status": "OK", "result": {"name": "Acme"}})]
    result = google_places.place_details("pid", "key")
    assert result["name"] == "Acme"


def test_place_details_error(patch_session):
    patch_session.responses = [DummyResponse(payload={"status": "OVER_QUERY_LIMIT", "error_message": "limit"})]
    with pytest.raises(google_places.GooglePlacesError):
        google_places.place_details("pid", "key")


def test_provider_requires_api_key():
    with pytest.raises(ProviderUnavailable):
        google_places.PlacesProvider("")


def test_provider_geocode_is_memoised(patch_session):
    patch_session.responses = [
        DummyResponse(payload={"status": "OK", "candidates": [{"geometry": {"location": {"lat": 1.5, "lng": 2.5}}}]})
    ]
    provider = google_places.PlacesProvider("key")

    assert provider.geocode("Columbus, OH") == (1.5, 2.5)
    assert provider.geocode("Columbus, OH") == (1.5, 2.5)
    assert len(patch_session.calls) == 1


def test_provider_geocode_without_candidates_returns_none(patch_session):
    patch_session.responses = [DummyResponse(payload={"status": "ZERO_RESULTS", "candidates": []})]
    provider = google_places.PlacesProvider("key")

    assert provider.geocode("Atlantis") is None


def test_provider_search_page_returns_next_token(patch_session):
    patch_session.responses = [
        DummyResponse(payload={"status": "OK", "results": [{"place_id": "p1"}], "next_page_token": "next"})
    ]
    provider = google_places.PlacesProvider("key", timeout=3)

    results, token = provider.search_page_by_text("cafe in Akron, OH")

    assert results == [{"place_id": "p1"}]
    assert token == "next"
    assert patch_session.calls[0][2] == 3


def test_provider_details_are_memoised(patch_session):
    patch_session.responses = [DummyResponse(payload={"status": "OK", "result": {"name": "Acme"}})]
    provider = google_places.PlacesProvider("key")

    provider.details("pid")
    provider.details("pid")

    assert len(patch_session.calls) == 1
