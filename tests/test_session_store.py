from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from research_engine.models.research import Depth, SessionStatus
from research_engine.services import session_store
from research_engine.services.session_store import SessionNotFoundError, SessionStore


def test_create_and_get():
    store = SessionStore()

    session = store.create("  Tidal energy ", "comprehensive", max_content_per_page=8000)

    assert store.get(session.id) is session
    assert session.topic == "Tidal energy"
    assert session.depth == Depth.COMPREHENSIVE
    assert session.max_content_per_page == 8000
    assert session.status == SessionStatus.CREATED
    assert session.id.startswith("rs_")
    assert session.id in store and len(store) == 1


def test_get_unknown_session_raises():
    with pytest.raises(SessionNotFoundError, match="Session not found: rs_missing"):
        SessionStore().get("rs_missing")


def test_sessions_are_isolated_between_stores():
    first, second = SessionStore(), SessionStore()
    session = first.create("A")

    assert session.id not in second


def test_discard_and_archive():
    store = SessionStore()
    dropped = store.create("A")
    kept = store.create("B")

    store.discard(dropped.id)
    store.discard(kept.id, archive=True)

    assert store.list_sessions() == []
    assert store.archived_sessions() == [kept]
    with pytest.raises(SessionNotFoundError):
        store.discard(dropped.id)


def test_cleanup_expired_drops_old_sessions():
    store = SessionStore()
    old = store.create("old")
    fresh = store.create("fresh")
    old.created_at = datetime.now(timezone.utc) - timedelta(hours=10)

    expired = store.cleanup_expired(ttl_hours=5)

    assert expired == [old.id]
    assert store.list_sessions() == [fresh]


def test_create_sweeps_expired_sessions_but_keeps_running_ones():
    store = SessionStore()
    stale = store.create("stale")
    running = store.create("running")
    week_ago = datetime.now(timezone.utc) - timedelta(hours=200)
    stale.created_at = week_ago
    running.created_at = week_ago
    running.status = SessionStatus.RESEARCHING

    newest = store.create("newest")

    assert stale.id not in store
    assert running.id in store
    assert newest.id in store


def test_status_summary(make_source):
    store = SessionStore()
    session = store.create("A", "basic")
    session.merge_sources([make_source("https://agency.gov/1", content="x" * 300)])

    summary = session_store.status(session)

    assert summary["id"] == session.id
    assert summary["sources"] == 1
    assert summary["content_chars"] == 300
    assert summary["max_iterations"] == 2
    assert summary["coverage_score"] is None
