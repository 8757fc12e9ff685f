# db.py
import logging
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple

import psycopg2
from psycopg2 import sql
from psycopg2.extras import RealDictCursor

from .config import Settings, get_settings

log = logging.getLogger(__name__)

# (column, substring) pairs; a row matches if ANY pair matches.
Predicates = Sequence[Tuple[str, str]]


class StoreUnavailable(Exception):
    """The record store is not configured or could not be reached."""


class RecordStore(Protocol):
    def fetch(self, table: str, limit: int, any_of: Predicates = ()) -> List[Dict[str, Any]]:
        ...


def get_db_conn(settings: Optional[Settings] = None):
    settings = settings or get_settings()
    if not settings.store_configured:
        raise StoreUnavailable("DATABASE_URL not set")

    kwargs: Dict[str, Any] = {
        "connect_timeout": settings.db_timeout_seconds,
        "options": f"-c statement_timeout={settings.db_timeout_seconds * 1000}",
    }
    credential = settings.database_credential()
    if credential:
        kwargs["user"], kwargs["password"] = credential
    try:
        return psycopg2.connect(settings.database_url, **kwargs)
    except psycopg2.Error as exc:
        raise StoreUnavailable(f"could not connect: {exc}") from exc


def build_select(table: str, limit: int, any_of: Predicates = ()) -> Tuple[sql.Composed, List[Any]]:
    """SELECT * FROM table [WHERE col::text ILIKE %s OR ...] LIMIT %s"""
    params: List[Any] = []
    query = sql.SQL("SELECT * FROM {}").format(sql.Identifier(table))
    if any_of:
        clauses = []
        for column, needle in any_of:
            clauses.append(
                sql.SQL("CAST({} AS TEXT) ILIKE %s").format(sql.Identifier(column))
            )
            params.append(f"%{needle}%")
        query = query + sql.SQL(" WHERE ") + sql.SQL(" OR ").join(clauses)
    query = query + sql.SQL(" LIMIT %s")
    params.append(int(limit))
    return query, params


class PostgresStore:
    """Record store over a Postgres database. One short-lived connection per fetch."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    def fetch(self, table: str, limit: int, any_of: Predicates = ()) -> List[Dict[str, Any]]:
        conn = get_db_conn(self.settings)
        cur = conn.cursor(cursor_factory=RealDictCursor)
        try:
            query, params = build_select(table, limit, any_of)
            cur.execute(query, params)
            return [dict(row) for row in cur.fetchall()]
        finally:
            cur.close()
            conn.close()

    def ping(self) -> bool:
        try:
            conn = get_db_conn(self.settings)
        except StoreUnavailable:
            return False
        try:
            cur = conn.cursor()
            cur.execute("SELECT 1;")
            cur.fetchone()
            cur.close()
            return True
        except psycopg2.Error as exc:
            log.warning("Health check query failed: %s", exc)
            return False
        finally:
            conn.close()
