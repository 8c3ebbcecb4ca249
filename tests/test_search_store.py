from datetime import datetime, timedelta

import pytest
from sqlalchemy.exc import OperationalError

from conftest import direct_fare, raw_response
from models import SearchResult
from providers.starling import normalize_fares
from services.search_store import SearchResultStore, _to_base36, generate_search_id


@pytest.fixture
def flights(resolver):
    return normalize_fares(raw_response(direct_fare("A", 100), direct_fare("B", 200)), resolver=resolver)


def _row_count(session_factory):
    db = session_factory()
    try:
        return db.query(SearchResult).count()
    finally:
        db.close()


def test_generate_search_id_format():
    now = datetime(2025, 3, 1, 12, 0, 0)
    ms = int((now - datetime(1970, 1, 1)).total_seconds() * 1000)
    sid = generate_search_id("SCL", "MIA", "2025-03-01", "2025-03-10", now=now)
    assert sid == f"SCL_MIA_2025-03-01_2025-03-10_{_to_base36(ms)}"


def test_generate_search_id_keeps_empty_parts():
    sid = generate_search_id("SCL", "MIA", "2025-03-01", None, now=datetime(1970, 1, 1))
    assert sid == "SCL_MIA_2025-03-01__0"


def test_base36():
    assert _to_base36(0) == "0"
    assert _to_base36(35) == "z"
    assert _to_base36(36) == "10"
    assert _to_base36(1700000000000) == "loyw3v28"


def test_save_then_load_round_trip(store, flights):
    store.save("s1", flights, {"origin": "SCL"})
    assert store.load("s1") == flights

    record = store.load_record("s1")
    assert record.searchParams == {"origin": "SCL"}
    assert record.searchId == "s1"


def test_load_missing_is_none(store):
    assert store.load("nope") is None


def test_expired_load_is_miss_and_deletes(store, flights, clock, session_factory):
    store.save("s1", flights)
    clock.now += timedelta(minutes=31)

    assert store.load("s1") is None
    assert _row_count(session_factory) == 0


def test_save_replaces_existing(store, flights):
    store.save("s1", flights)
    store.save("s1", flights[:1], {"v": 2})

    record = store.load_record("s1")
    assert [f.id for f in record.flights] == ["A"]
    assert record.searchParams == {"v": 2}


def test_save_sweeps_stale_rows_first(store, flights, clock, session_factory):
    store.save("old", flights)
    clock.now += timedelta(minutes=20)
    store.save("mid", flights)
    clock.now += timedelta(minutes=15)

    store.save("new", flights)

    assert store.load("old") is None
    assert store.load("mid") is not None
    assert _row_count(session_factory) == 2


def test_cleanup_returns_count(store, flights, clock):
    store.save("a", flights)
    store.save("b", flights)
    clock.now += timedelta(hours=1)
    assert store.cleanup() == 2
    assert store.cleanup() == 0


def test_delete(store, flights):
    store.save("s1", flights)
    assert store.delete("s1") is True
    assert store.delete("s1") is False
    assert store.load("s1") is None


def test_stats_and_clear_all(store, flights):
    store.save("a", flights)
    store.save("b", flights[:1])
    stats = store.stats()
    assert stats["totalSearches"] == 2
    assert stats["totalFlights"] == 3

    assert store.clear_all() == 2
    assert store.stats()["totalSearches"] == 0


def test_storage_errors_propagate(session_factory, clock, flights):
    # No tables on this engine
    from sqlalchemy import create_engine
    from sqlalchemy.orm import sessionmaker
    from sqlalchemy.pool import StaticPool

    bare = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    store = SearchResultStore(session_factory=sessionmaker(bind=bare), clock=clock)

    with pytest.raises(OperationalError):
        store.save("s1", flights)
    with pytest.raises(OperationalError):
        store.load("s1")
