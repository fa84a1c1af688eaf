"""Duplicate detection across live results, saved leads and imported lists.

A candidate is a duplicate of a corpus record when, in order of precedence, the
normalized domains match, the normalized names match, or the normalized
addresses match (verbatim, or by their trailing city and state). Matching is a
best-effort heuristic and never raises: no match is the default answer.
"""

import logging
from itertools import chain
from typing import Iterable, List, Optional, Sequence

from leadscout.etl.normalize import CityState, extract_city_state, normalized_key
from leadscout.models import BusinessRecord

logger = logging.getLogger(__name__)


class _Indexed:
    __slots__ = ("record", "key", "_city_state")

    def __init__(self, record: BusinessRecord) -> None:
        self.record = record
        self.key = normalized_key(record)
        self._city_state: Optional[CityState] = None

    @property
    def city_state(self) -> CityState:
        if self._city_state is None:
            self._city_state = extract_city_state(self.key.address_core) if self.key.address_core else CityState("", "")
        return self._city_state


class IdentityResolver:
    def __init__(self, city_state_fallback: bool = True) -> None:
        self.city_state_fallback = city_state_fallback

    def resolve(self, candidate: BusinessRecord, corpus: Iterable[BusinessRecord]) -> bool:
        """Return True when ``candidate`` matches any record in ``corpus``."""
        return self.find_match(candidate, corpus) is not None

    def find_match(self, candidate: BusinessRecord, corpus: Iterable[BusinessRecord]) -> Optional[BusinessRecord]:
        """Return the corpus record ``candidate`` duplicates, or None.

        A domain match anywhere in the corpus beats a name match, which beats an
        address match. ``candidate`` itself is never compared with itself.
        """
        target = _Indexed(candidate)
        others = [_Indexed(record) for record in corpus if record is not candidate]
        return self._match_indexed(target, others)

    def flag_duplicates(
        self,
        records: Sequence[BusinessRecord],
        saved: Iterable[BusinessRecord] = (),
    ) -> int:
        """Flag later records that repeat an earlier one or a saved record.

        Records are visited in the given order and each one is compared with
        every saved record plus every record before it (first-seen wins).
        Flags are only ever set, never cleared. Returns the number flagged.
        """
        saved_index = [_Indexed(record) for record in saved]
        seen: List[_Indexed] = []
        flagged = 0
        for record in records:
            current = _Indexed(record)
            if self._match_indexed(current, chain(seen, saved_index)) is not None:
                if not record.is_duplicate:
                    flagged += 1
                record.is_duplicate = True
            seen.append(current)
        if flagged:
            logger.info("Flagged %d of %d records as duplicates", flagged, len(records))
        return flagged

    def flag_against(self, records: Iterable[BusinessRecord], corpus: Iterable[BusinessRecord]) -> List[BusinessRecord]:
        """Return the records that match something in an external ``corpus``."""
        corpus_index = [_Indexed(record) for record in corpus]
        return [record for record in records if self._match_indexed(_Indexed(record), corpus_index) is not None]

    def _match_indexed(self, target: _Indexed, corpus: Iterable[_Indexed]) -> Optional[BusinessRecord]:
        key = target.key
        if not (key.domain or key.name or key.address_core):
            return None

        name_match: Optional[BusinessRecord] = None
        address_match: Optional[BusinessRecord] = None
        for other in corpus:
            if other.record is target.record:
                continue
            other_key = other.key
            if key.domain and key.domain == other_key.domain:
                return other.record
            if name_match is None and key.name and key.name == other_key.name:
                name_match = other.record
            if name_match is None and address_match is None and self._address_matches(target, other):
                address_match = other.record
        return name_match or address_match

    def _address_matches(self, target: _Indexed, other: _Indexed) -> bool:
        if not target.key.address_core or not other.key.address_core:
            return False
        if target.key.address_core == other.key.address_core:
            return True
        if not self.city_state_fallback:
            return False
        city_state = target.city_state
        return bool(city_state.city and city_state.state) and city_state == other.city_state

