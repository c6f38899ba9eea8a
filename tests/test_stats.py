from datetime import datetime

import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import stats
from db import StorageError
from models import Event
from stats import (
    RECOGNIZED_TYPES,
    compute_stats,
    empty_snapshot,
    get_stats,
    record_event,
    update_stats,
)


def _counters(snapshot):
    return {k: v for k, v in snapshot.items() if k != "lastUpdated"}


def test_empty_store_returns_zeroes(session_factory):
    snapshot = get_stats(session_factory=session_factory)
    assert _counters(snapshot) == {"totalVisits": 0, "totalPagesMerged": 0, "totalPagesSplit": 0}


def test_visits_are_counted(session_factory):
    for _ in range(4):
        update_stats("visit", session_factory=session_factory)
    assert get_stats(session_factory=session_factory)["totalVisits"] == 4


def test_merge_pages_are_summed(session_factory):
    for pages in (3, 8, 1):
        update_stats("merge", {"pageCount": pages}, session_factory=session_factory)
    assert get_stats(session_factory=session_factory)["totalPagesMerged"] == 12


def test_split_and_merge_are_partitioned(session_factory):
    update_stats("split", {"pageCount": 9}, session_factory=session_factory)
    snapshot = get_stats(session_factory=session_factory)
    assert snapshot["totalPagesMerged"] == 0
    assert snapshot["totalPagesSplit"] == 9

    update_stats("merge", {"pageCount": 2}, session_factory=session_factory)
    snapshot = get_stats(session_factory=session_factory)
    assert snapshot["totalPagesMerged"] == 2
    assert snapshot["totalPagesSplit"] == 9


def test_missing_page_count_contributes_zero(session_factory):
    update_stats("merge", {"page": "/merge"}, session_factory=session_factory)
    assert get_stats(session_factory=session_factory)["totalPagesMerged"] == 0


def test_mixed_scenario(session_factory):
    for _ in range(3):
        update_stats("visit", session_factory=session_factory)
    update_stats("merge", {"pageCount": 5}, session_factory=session_factory)
    snapshot = update_stats("split", {"pageCount": 2}, session_factory=session_factory)

    assert _counters(snapshot) == {"totalVisits": 3, "totalPagesMerged": 5, "totalPagesSplit": 2}


def test_update_stats_returns_fresh_snapshot(session_factory):
    snapshot = update_stats("visit", {"userAgent": "curl/8"}, session_factory=session_factory)
    assert snapshot["totalVisits"] == 1
    assert snapshot["lastUpdated"].endswith("Z")
    datetime.fromisoformat(snapshot["lastUpdated"].replace("Z", "+00:00"))


def test_unrecognized_and_unaggregated_types_are_stored(session_factory):
    assert "visit_split" in RECOGNIZED_TYPES
    update_stats("visit_split", session_factory=session_factory)
    update_stats("rotate", session_factory=session_factory)

    snapshot = get_stats(session_factory=session_factory)
    assert _counters(snapshot) == {"totalVisits": 0, "totalPagesMerged": 0, "totalPagesSplit": 0}
    with session_factory() as s:
        assert s.query(Event).count() == 2


def test_revision_one_snapshot(session_factory):
    update_stats("visit", session_factory=session_factory)
    update_stats("merge", {"pageCount": 10}, session_factory=session_factory)
    update_stats("merge", session_factory=session_factory)

    snapshot = get_stats(revision=1, session_factory=session_factory)
    assert _counters(snapshot) == {"totalVisits": 1, "totalMerges": 2}


def test_revision_one_works_on_schema_without_page_count():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    with engine.begin() as conn:
        conn.execute(text(
            "CREATE TABLE events (id INTEGER PRIMARY KEY, type VARCHAR(50) NOT NULL, "
            "user_agent TEXT, referrer TEXT, page TEXT, "
            "created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP NOT NULL)"
        ))
        conn.execute(text("INSERT INTO events (type) VALUES ('visit'), ('merge')"))
    factory = sessionmaker(bind=engine, future=True)

    assert _counters(get_stats(revision=1, session_factory=factory)) == {"totalVisits": 1, "totalMerges": 1}
    # page sums need revision 2 of the schema
    assert not compute_stats(revision=2, session_factory=factory).ok
    engine.dispose()


def test_unknown_revision_is_a_programming_error(session_factory):
    with pytest.raises(ValueError):
        get_stats(revision=3, session_factory=session_factory)
    with pytest.raises(ValueError):
        empty_snapshot(revision=0)


def test_get_stats_fails_soft(broken_session_factory):
    snapshot = get_stats(session_factory=broken_session_factory)
    assert _counters(snapshot) == {"totalVisits": 0, "totalPagesMerged": 0, "totalPagesSplit": 0}
    assert snapshot["lastUpdated"]


def test_update_stats_returns_none_when_insert_fails(broken_session_factory):
    assert update_stats("visit", session_factory=broken_session_factory) is None


def test_failed_insert_writes_nothing(monkeypatch, session_factory):
    def fail(draft, session_factory=None):
        raise StorageError("connection refused")
    monkeypatch.setattr(stats, "insert_event", fail)

    assert update_stats("merge", {"pageCount": 3}, session_factory=session_factory) is None
    with session_factory() as s:
        assert s.query(Event).count() == 0


def test_compute_stats_distinguishes_unavailable(session_factory, broken_session_factory):
    ok = compute_stats(session_factory=session_factory)
    assert ok.ok and ok.unavailable is None

    down = compute_stats(session_factory=broken_session_factory)
    assert not down.ok
    assert down.snapshot is None
    assert down.unavailable.startswith("read failed")


def test_record_event_reports_write_failures(session_factory, broken_session_factory):
    result = record_event("visit", session_factory=session_factory)
    assert result.ok
    assert result.snapshot["totalVisits"] == 1

    failed = record_event("visit", session_factory=broken_session_factory)
    assert not failed.ok
    assert failed.unavailable.startswith("write failed")


def test_infinite_page_count_is_dropped_not_raised(session_factory):
    snapshot = update_stats("merge", {"pageCount": float("inf")}, session_factory=session_factory)
    assert snapshot["totalPagesMerged"] == 0
    with session_factory() as s:
        assert s.query(Event).one().page_count == 0


@pytest.mark.parametrize("bad_type", [None, ""])
def test_missing_type_is_rejected(bad_type, session_factory):
    assert update_stats(bad_type, session_factory=session_factory) is None
    with session_factory() as s:
        assert s.query(Event).count() == 0
        assert s.query(Event).filter(Event.type == "None").count() == 0
