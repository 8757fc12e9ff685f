from unittest import mock

import psycopg2
from psycopg2 import sql
import pytest

from collegegpt.config import Settings
from collegegpt.db import PostgresStore, StoreUnavailable, build_select, get_db_conn
from collegegpt.fetcher import fetch_for_intent

from conftest import FACULTY_ROWS, STAFF_ROWS, InMemoryStore


def test_people_intent_reads_both_tables(store):
    result = fetch_for_intent(store, "people", 800)
    assert {r.collection for r in result.records} == {"faculty_list", "staff_list"}
    assert {r.label for r in result.records} == {"faculty", "staff"}
    assert len(result.records) == len(FACULTY_ROWS) + len(STAFF_ROWS)
    assert result.filters == {"faculty_list": "unfiltered", "staff_list": "unfiltered"}
    assert result.errors == {}


def test_department_filter_dropped_when_it_empties_a_table(store):
    result = fetch_for_intent(store, "people", 800, department="computer science")
    assert result.filters == {"faculty_list": "filtered", "staff_list": "filter_dropped"}
    names = [r.name for r in result.records]
    assert "B. Patil" not in names
    assert "C. Mane" in names


def test_one_failing_table_does_not_sink_the_other():
    store = InMemoryStore({"faculty_list": FACULTY_ROWS}, broken={"staff_list"})
    result = fetch_for_intent(store, "people", 800)
    assert len(result.records) == len(FACULTY_ROWS)
    assert "staff_list" in result.errors
    assert "faculty_list" not in result.errors


def test_all_tables_failing_raises():
    store = InMemoryStore(broken={"faculty_list", "staff_list"})
    with pytest.raises(StoreUnavailable):
        fetch_for_intent(store, "people", 800)


def test_missing_store_raises():
    with pytest.raises(StoreUnavailable):
        fetch_for_intent(None, "people", 800)


def test_single_table_intents_and_limit():
    rows = [{"company": f"Company {i}"} for i in range(10)]
    store = InMemoryStore({"placements": rows})
    result = fetch_for_intent(store, "placements", 3)
    assert [r.name for r in result.records] == ["Company 0", "Company 1", "Company 2"]
    assert store.calls == [("placements", ())]


def test_build_select_params():
    _, params = build_select("faculty_list", 800)
    assert params == [800]
    query, params = build_select("faculty_list", 50, [("department", "computer"), ("specialization", "ai")])
    assert params == ["%computer%", "%ai%", 50]
    assert isinstance(query, sql.Composed)


def test_get_db_conn_requires_url():
    with pytest.raises(StoreUnavailable):
        get_db_conn(Settings())
    assert PostgresStore(Settings()).ping() is False


def test_get_db_conn_prefers_service_credential():
    settings = Settings(
        database_url="postgresql://db.test/college",
        database_service_password="svc",
        database_anon_password="anon-pw",
    )
    with mock.patch("collegegpt.db.psycopg2.connect") as connect:
        get_db_conn(settings)
    _, kwargs = connect.call_args
    assert kwargs["user"] == "service_role"
    assert kwargs["password"] == "svc"
    assert kwargs["connect_timeout"] == 5


def test_get_db_conn_wraps_driver_errors():
    settings = Settings(database_url="postgresql://db.test/college")
    with mock.patch("collegegpt.db.psycopg2.connect", side_effect=psycopg2.OperationalError("refused")):
        with pytest.raises(StoreUnavailable):
            get_db_conn(settings)
