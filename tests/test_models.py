import pytest

from leadscout.models import BusinessRecord, RecordSource, SearchResult


@pytest.mark.parametrize("raw, expected", [("false", False), ("0", False), ("", False), ("true", True), ("Yes", True), (True, True), (None, False)])
def test_from_dict_parses_boolean_flags(raw, expected):
    record = BusinessRecord.from_dict({"name": "Acme", "isBadLead": raw, "isDuplicate": raw})

    assert record.is_bad_lead is expected
    assert record.is_duplicate is expected


def test_from_dict_defaults_to_imported_source():
    record = BusinessRecord.from_dict({"name": " Acme ", "website": "  ", "id": 12})

    assert record.name == "Acme"
    assert record.website is None
    assert record.storage_id == "12"
    assert record.source is RecordSource.IMPORTED


def test_from_dict_rejects_missing_name_and_unknown_source():
    with pytest.raises(ValueError, match="name is required"):
        BusinessRecord.from_dict({"name": ""})
    with pytest.raises(ValueError, match="unknown source"):
        BusinessRecord.from_dict({"name": "Acme", "source": "scraped"})


def test_search_result_to_dict_reports_coverage_only_for_state_searches():
    single = SearchResult(businesses=[BusinessRecord(name="Acme")]).to_dict()
    state = SearchResult(businesses=[], areas_searched=2, areas_planned=3, from_cache=True).to_dict()

    assert single == {"businesses": [BusinessRecord(name="Acme").to_dict()], "total": 1}
    assert state["areasSearched"] == 2
    assert state["areasPlanned"] == 3
    assert state["cached"] is True
