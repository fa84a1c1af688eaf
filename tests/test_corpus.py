import pytest

from leadscout.core.corpus import InMemoryCorpusStore
from leadscout.models import BusinessRecord, RecordSource


def test_upsert_saved_assigns_ids_per_owner():
    store = InMemoryCorpusStore()

    first = store.upsert_saved("alice", BusinessRecord(name="Acme", source=RecordSource.IMPORTED, is_duplicate=True))
    store.upsert_saved("bob", BusinessRecord(name="Globex"))

    assert first.storage_id is not None
    assert first.source is RecordSource.SAVED
    assert first.is_duplicate is False
    assert [record.name for record in store.list_saved("alice")] == ["Acme"]
    assert store.list_saved("carol") == []


def test_upsert_saved_overwrites_existing_record():
    store = InMemoryCorpusStore()
    original = store.upsert_saved("alice", BusinessRecord(name="Acme", website="acme.com"))

    updated = store.upsert_saved("alice", BusinessRecord(name="Acme Inc", website="acme.com"), existing_id=original.storage_id)

    assert updated.storage_id == original.storage_id
    assert [record.name for record in store.list_saved("alice")] == ["Acme Inc"]


def test_upsert_saved_unknown_id_inserts(caplog):
    store = InMemoryCorpusStore()

    with caplog.at_level("WARNING"):
        store.upsert_saved("alice", BusinessRecord(name="Acme"), existing_id="404")

    assert len(store.list_saved("alice")) == 1
    assert "not found" in caplog.text


def test_returned_records_are_copies():
    store = InMemoryCorpusStore()
    store.upsert_saved("alice", BusinessRecord(name="Acme"))

    store.list_saved("alice")[0].name = "Mutated"

    assert store.list_saved("alice")[0].name == "Acme"


def test_replace_current_search_results_swaps_the_whole_set():
    store = InMemoryCorpusStore()
    store.replace_current_search_results([BusinessRecord(name="Old")])

    stored = store.replace_current_search_results([BusinessRecord(name="New 1"), BusinessRecord(name="New 2")])

    assert [record.name for record in store.list_current_search_results()] == ["New 1", "New 2"]
    assert all(record.storage_id for record in stored)


def test_clear_current_search_results():
    store = InMemoryCorpusStore()
    store.replace_current_search_results([BusinessRecord(name="Acme")])

    store.clear_current_search_results()

    assert store.list_current_search_results() == []


def test_mark_and_clear_duplicate_flags():
    store = InMemoryCorpusStore()
    stored = store.replace_current_search_results([BusinessRecord(name="A"), BusinessRecord(name="B")])

    assert store.mark_duplicate(stored[0].storage_id, True) is True
    assert store.mark_duplicate("missing", True) is False
    assert [record.is_duplicate for record in store.list_current_search_results()] == [True, False]

    assert store.clear_duplicate_flags() == 1
    assert not any(record.is_duplicate for record in store.list_current_search_results())


def test_update_current_marks_bad_lead_and_edits_notes():
    store = InMemoryCorpusStore()
    stored = store.replace_current_search_results([BusinessRecord(name="Acme")])

    updated = store.update_current(stored[0].storage_id, is_bad_lead=True, notes="wrong industry")

    assert updated.is_bad_lead is True
    assert updated.notes == "wrong industry"
    assert store.list_current_search_results()[0].is_bad_lead is True


def test_update_current_unknown_record_returns_none():
    store = InMemoryCorpusStore()

    assert store.update_current("missing", notes="x") is None


@pytest.mark.parametrize("fields", [{}, {"name": "Renamed"}, {"is_duplicate": True}])
def test_update_current_rejects_non_editable_fields(fields):
    store = InMemoryCorpusStore()
    stored = store.replace_current_search_results([BusinessRecord(name="Acme")])

    with pytest.raises(ValueError):
        store.update_current(stored[0].storage_id, **fields)
