"""PostgreSQL-backed corpus store."""

import logging
from contextlib import contextmanager
from typing import Any, Dict, List, Optional, Sequence

from psycopg2 import extras, pool

from leadscout.core.config import get_settings
from leadscout.core.corpus import CorpusStore, editable_changes
from leadscout.models import BusinessRecord, RecordSource

logger = logging.getLogger(__name__)

_connection_pool: Optional[pool.ThreadedConnectionPool] = None


def init_pool(minconn: int = 1, maxconn: int = 5) -> pool.ThreadedConnectionPool:
    """Initialise and return the shared connection pool."""
    global _connection_pool
    if _connection_pool is None:
        settings = get_settings()
        if not settings.database_url:
            raise RuntimeError("DATABASE_URL is required for database connections")
        _connection_pool = pool.ThreadedConnectionPool(
            minconn,
            maxconn,
            dsn=settings.database_url,
            connect_timeout=10,
        )
        logger.info("Database connection pool initialised")
    return _connection_pool


@contextmanager
def get_connection():
    """Context manager yielding a pooled connection."""
    pg_pool = init_pool()
    conn = pg_pool.getconn()
    try:
        yield conn
    finally:
        pg_pool.putconn(conn)


_SCHEMA = """
CREATE TABLE IF NOT EXISTS saved_businesses (
    id BIGSERIAL PRIMARY KEY,
    owner_id TEXT NOT NULL,
    name TEXT NOT NULL,
    website TEXT,
    location TEXT,
    distance_label TEXT,
    is_bad_lead BOOLEAN NOT NULL DEFAULT FALSE,
    notes TEXT NOT NULL DEFAULT '',
    career_link TEXT,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
CREATE INDEX IF NOT EXISTS saved_businesses_owner_idx ON saved_businesses (owner_id);
CREATE TABLE IF NOT EXISTS current_search_results (
    id BIGSERIAL PRIMARY KEY,
    name TEXT NOT NULL,
    website TEXT,
    location TEXT,
    distance_label TEXT,
    is_bad_lead BOOLEAN NOT NULL DEFAULT FALSE,
    notes TEXT NOT NULL DEFAULT '',
    career_link TEXT,
    is_duplicate BOOLEAN NOT NULL DEFAULT FALSE,
    source TEXT NOT NULL DEFAULT 'live',
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
"""

_SAVED_COLUMNS = "id, name, website, location, distance_label, is_bad_lead, notes, career_link"
_CURRENT_COLUMNS = f"{_SAVED_COLUMNS}, is_duplicate, source"

_INSERT_SAVED = f"""
INSERT INTO saved_businesses (
    owner_id, name, website, location, distance_label, is_bad_lead, notes, career_link
) VALUES (
    %(owner_id)s, %(name)s, %(website)s, %(location)s, %(distance_label)s, %(is_bad_lead)s, %(notes)s, %(career_link)s
)
RETURNING {_SAVED_COLUMNS};
"""

_REPLACE_SAVED = f"""
UPDATE saved_businesses SET
    name = %(name)s,
    website = %(website)s,
    location = %(location)s,
    distance_label = %(distance_label)s,
    is_bad_lead = %(is_bad_lead)s,
    notes = %(notes)s,
    career_link = %(career_link)s,
    updated_at = NOW()
WHERE id = %(id)s AND owner_id = %(owner_id)s
RETURNING {_SAVED_COLUMNS};
"""

_INSERT_CURRENT = f"""
INSERT INTO current_search_results (
    name, website, location, distance_label, is_bad_lead, notes, career_link, is_duplicate, source
) VALUES (
    %(name)s, %(website)s, %(location)s, %(distance_label)s, %(is_bad_lead)s, %(notes)s, %(career_link)s,
    %(is_duplicate)s, %(source)s
)
RETURNING {_CURRENT_COLUMNS};
"""


def _prepare_params(record: BusinessRecord) -> Dict[str, Any]:
    return {
        "name": record.name,
        "website": record.website,
        "location": record.location,
        "distance_label": record.distance_label,
        "is_bad_lead": record.is_bad_lead,
        "notes": record.notes or "",
        "career_link": record.career_link,
        "is_duplicate": record.is_duplicate,
        "source": record.source.value,
    }


def _to_record(row: Dict[str, Any], source: Optional[RecordSource] = None) -> BusinessRecord:
    return BusinessRecord(
        name=row["name"],
        website=row.get("website"),
        location=row.get("location"),
        distance_label=row.get("distance_label"),
        is_bad_lead=bool(row.get("is_bad_lead")),
        notes=row.get("notes") or "",
        career_link=row.get("career_link"),
        is_duplicate=bool(row.get("is_duplicate", False)),
        source=source or RecordSource(row.get("source") or RecordSource.LIVE.value),
        storage_id=str(row["id"]),
    )


class PostgresCorpusStore(CorpusStore):
    def ensure_schema(self) -> None:
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(_SCHEMA)
            conn.commit()
        logger.info("Corpus schema ensured")

    def list_saved(self, owner_id: str) -> List[BusinessRecord]:
        with get_connection() as conn:
            with conn.cursor(cursor_factory=extras.RealDictCursor) as cur:
                cur.execute(
                    f"SELECT {_SAVED_COLUMNS} FROM saved_businesses WHERE owner_id = %(owner_id)s ORDER BY id",
                    {"owner_id": owner_id},
                )
                rows = cur.fetchall()
        return [_to_record(row, RecordSource.SAVED) for row in rows]

    def upsert_saved(self, owner_id: str, record: BusinessRecord, existing_id: Optional[str] = None) -> BusinessRecord:
        params = _prepare_params(record)
        params["owner_id"] = owner_id
        with get_connection() as conn:
            with conn.cursor(cursor_factory=extras.RealDictCursor) as cur:
                row = None
                if existing_id is not None:
                    params["id"] = int(existing_id)
                    cur.execute(_REPLACE_SAVED, params)
                    row = cur.fetchone()
                    if row is None:
                        logger.warning("Saved record %s not found for owner %s; inserting instead", existing_id, owner_id)
                if row is None:
                    cur.execute(_INSERT_SAVED, params)
                    row = cur.fetchone()
            conn.commit()
        logger.debug("Upserted saved business %s", record.name)
        return _to_record(row, RecordSource.SAVED)

    def list_current_search_results(self) -> List[BusinessRecord]:
        with get_connection() as conn:
            with conn.cursor(cursor_factory=extras.RealDictCursor) as cur:
                cur.execute(f"SELECT {_CURRENT_COLUMNS} FROM current_search_results ORDER BY id")
                rows = cur.fetchall()
        return [_to_record(row) for row in rows]

    def replace_current_search_results(self, records: Sequence[BusinessRecord]) -> List[BusinessRecord]:
        stored: List[BusinessRecord] = []
        with get_connection() as conn:
            with conn.cursor(cursor_factory=extras.RealDictCursor) as cur:
                cur.execute("DELETE FROM current_search_results")
                for record in records:
                    cur.execute(_INSERT_CURRENT, _prepare_params(record))
                    stored.append(_to_record(cur.fetchone()))
            conn.commit()
        logger.info("Replaced current search results with %d businesses", len(stored))
        return stored

    def clear_current_search_results(self) -> None:
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute("DELETE FROM current_search_results")
            conn.commit()

    def update_current(self, storage_id: str, **fields: Any) -> Optional[BusinessRecord]:
        changes = editable_changes(fields)
        assignments = ", ".join(f"{column} = %({column})s" for column in changes)
        params = dict(changes, id=int(storage_id))
        with get_connection() as conn:
            with conn.cursor(cursor_factory=extras.RealDictCursor) as cur:
                cur.execute(
                    f"UPDATE current_search_results SET {assignments} WHERE id = %(id)s RETURNING {_CURRENT_COLUMNS}",
                    params,
                )
                row = cur.fetchone()
            conn.commit()
        return _to_record(row) if row else None

    def mark_duplicate(self, storage_id: str, is_duplicate: bool) -> bool:
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "UPDATE current_search_results SET is_duplicate = %(flag)s WHERE id = %(id)s",
                    {"flag": is_duplicate, "id": int(storage_id)},
                )
                updated = cur.rowcount
            conn.commit()
        return updated > 0

    def clear_duplicate_flags(self) -> int:
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute("UPDATE current_search_results SET is_duplicate = FALSE WHERE is_duplicate")
                updated = cur.rowcount
            conn.commit()
        return updated
