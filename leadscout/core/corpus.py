"""Corpus store interface plus the in-memory implementation used without a database."""

import abc
import itertools
import logging
import threading
from typing import Any, Dict, List, Optional, Sequence

from leadscout.models import BusinessRecord, RecordSource

logger = logging.getLogger(__name__)

EDITABLE_CURRENT_FIELDS = ("is_bad_lead", "notes")


def editable_changes(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Validate a partial update of a current search result."""
    if not fields:
        raise ValueError("no fields to update")
    unknown = sorted(set(fields) - set(EDITABLE_CURRENT_FIELDS))
    if unknown:
        raise ValueError(f"fields cannot be edited: {', '.join(unknown)}")
    changes = dict(fields)
    if "is_bad_lead" in changes:
        changes["is_bad_lead"] = bool(changes["is_bad_lead"])
    if "notes" in changes:
        changes["notes"] = str(changes["notes"] or "")
    return changes


class CorpusStore(abc.ABC):
    """Saved leads per owner plus the single ephemeral set of current search results."""

    @abc.abstractmethod
    def list_saved(self, owner_id: str) -> List[BusinessRecord]:
        ...

    @abc.abstractmethod
    def upsert_saved(self, owner_id: str, record: BusinessRecord, existing_id: Optional[str] = None) -> BusinessRecord:
        """Insert ``record``, or overwrite the saved record ``existing_id`` with its fields."""

    @abc.abstractmethod
    def list_current_search_results(self) -> List[BusinessRecord]:
        ...

    @abc.abstractmethod
    def replace_current_search_results(self, records: Sequence[BusinessRecord]) -> List[BusinessRecord]:
        ...

    @abc.abstractmethod
    def clear_current_search_results(self) -> None:
        ...

    @abc.abstractmethod
    def update_current(self, storage_id: str, **fields: Any) -> Optional[BusinessRecord]:
        """Apply ``fields`` to one current search result; None when it does not exist."""

    @abc.abstractmethod
    def mark_duplicate(self, storage_id: str, is_duplicate: bool) -> bool:
        ...

    @abc.abstractmethod
    def clear_duplicate_flags(self) -> int:
        ...


class InMemoryCorpusStore(CorpusStore):
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._ids = itertools.count(1)
        self._saved: Dict[str, Dict[str, BusinessRecord]] = {}
        self._current: Dict[str, BusinessRecord] = {}

    def _next_id(self) -> str:
        return str(next(self._ids))

    def list_saved(self, owner_id: str) -> List[BusinessRecord]:
        with self._lock:
            return [record.copy() for record in self._saved.get(owner_id, {}).values()]

    def upsert_saved(self, owner_id: str, record: BusinessRecord, existing_id: Optional[str] = None) -> BusinessRecord:
        with self._lock:
            owned = self._saved.setdefault(owner_id, {})
            if existing_id is not None and existing_id not in owned:
                logger.warning("Saved record %s not found for owner %s; inserting instead", existing_id, owner_id)
                existing_id = None
            storage_id = existing_id or self._next_id()
            stored = record.copy(storage_id=storage_id, source=RecordSource.SAVED, is_duplicate=False)
            owned[storage_id] = stored
            return stored.copy()

    def list_current_search_results(self) -> List[BusinessRecord]:
        with self._lock:
            return [record.copy() for record in self._current.values()]

    def replace_current_search_results(self, records: Sequence[BusinessRecord]) -> List[BusinessRecord]:
        stored: Dict[str, BusinessRecord] = {}
        with self._lock:
            for record in records:
                storage_id = self._next_id()
                stored[storage_id] = record.copy(storage_id=storage_id)
            self._current = stored
        return [record.copy() for record in stored.values()]

    def clear_current_search_results(self) -> None:
        with self._lock:
            self._current = {}

    def update_current(self, storage_id: str, **fields: Any) -> Optional[BusinessRecord]:
        changes = editable_changes(fields)
        with self._lock:
            record = self._current.get(storage_id)
            if record is None:
                return None
            updated = record.copy(**changes)
            self._current[storage_id] = updated
            return updated.copy()

    def mark_duplicate(self, storage_id: str, is_duplicate: bool) -> bool:
        with self._lock:
            record = self._current.get(storage_id)
            if record is None:
                return False
            self._current[storage_id] = record.copy(is_duplicate=is_duplicate)
            return True

    def clear_duplicate_flags(self) -> int:
        with self._lock:
            flagged = [key for key, record in self._current.items() if record.is_duplicate]
            for key in flagged:
                self._current[key] = self._current[key].copy(is_duplicate=False)
        return len(flagged)
