import argparse
import json

import pytest

from leadscout.core.errors import GeocodeFailed
from leadscout.jobs import run_search
from leadscout.models import BusinessRecord, SearchMode, SearchResult


class DummySettings:
    def __init__(self, max_areas_limit=5):
        self.max_areas_limit = max_areas_limit


class DummyService:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.calls = []

    def search(self, request, owner_id=None):
        self.calls.append((request, owner_id))
        if self.error:
            raise self.error
        return self.result


def test_build_parser_defaults(monkeypatch):
    monkeypatch.setattr(run_search, "get_settings", lambda: DummySettings(max_areas_limit=7))
    parser = run_search.build_parser()
    args = parser.parse_args(["--type", "plumber", "--location", "Columbus, OH"])
    assert isinstance(parser, argparse.ArgumentParser)
    assert args.type_business == "plumber"
    assert args.radius == 10.0
    assert args.max_results == 20
    assert args.max_areas == 7


def test_build_parser_requires_exactly_one_area(monkeypatch):
    monkeypatch.setattr(run_search, "get_settings", lambda: DummySettings())
    parser = run_search.build_parser()

    with pytest.raises(SystemExit):
        parser.parse_args(["--type", "plumber"])
    with pytest.raises(SystemExit):
        parser.parse_args(["--type", "plumber", "--location", "Akron", "--state", "OH"])


def test_build_request_picks_mode(monkeypatch):
    monkeypatch.setattr(run_search, "get_settings", lambda: DummySettings())
    parser = run_search.build_parser()

    single = run_search.build_request(parser.parse_args(["--type", "cafe", "--location", "Akron", "--radius", "3"]))
    state = run_search.build_request(parser.parse_args(["--type", "cafe", "--state", "Ohio", "--max-areas", "2"]))

    assert single.mode is SearchMode.SINGLE_AREA
    assert single.radius_miles == 3.0
    assert state.mode is SearchMode.STATE_WIDE
    assert state.max_areas == 2


def test_main_prints_json(monkeypatch, capsys):
    service = DummyService(result=SearchResult(businesses=[BusinessRecord(name="Acme")]))
    monkeypatch.setattr(run_search, "get_settings", lambda: DummySettings())
    monkeypatch.setattr(run_search, "create_service", lambda: service)

    run_search.main(["--type", "cafe", "--location", "Akron", "--owner", "alice"])

    payload = json.loads(capsys.readouterr().out)
    assert payload["total"] == 1
    assert payload["businesses"][0]["name"] == "Acme"
    assert service.calls[0][1] == "alice"


def test_main_exits_on_search_error(monkeypatch):
    service = DummyService(error=GeocodeFailed("Could not find location coordinates for 'Atlantis'"))
    monkeypatch.setattr(run_search, "get_settings", lambda: DummySettings())
    monkeypatch.setattr(run_search, "create_service", lambda: service)

    with pytest.raises(SystemExit) as excinfo:
        run_search.main(["--type", "cafe", "--location", "Atlantis"])

    assert excinfo.value.code == 2
