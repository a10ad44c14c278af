"""Tests for API routes."""
from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from conftest import FakeFetch, FakeSearch
from research_engine.agents.lead_researcher import LeadResearcher
from research_engine.models.research import SessionStatus
from research_engine.models.search import ProviderError
from research_engine.services.session_store import SessionStore

PAGE_TEXT = "Official findings published by the agency with supporting data. " * 20


@pytest.fixture(autouse=True)
def reset_sse_app_status():
    # sse-starlette keeps a class-level exit event bound to the first event loop
    from sse_starlette.sse import AppStatus

    AppStatus.should_exit_event = None


@pytest.fixture
def app(gov_search):
    from research_engine.main import app

    original = (app.state.session_store, app.state.researcher)
    app.state.session_store = SessionStore()
    app.state.researcher = LeadResearcher(search=gov_search, fetch=FakeFetch(PAGE_TEXT), inter_batch_delay_ms=0)
    yield app
    app.state.session_store, app.state.researcher = original


@pytest.fixture
def client(app):
    return TestClient(app)


def _create(client, topic="Tidal energy", depth="basic") -> str:
    response = client.post("/api/sessions", json={"topic": topic, "depth": depth})
    assert response.status_code == 200
    return response.json()["id"]


def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["service"] == "research-engine"


def test_run_research(client):
    response = client.post("/api/research", json={"topic": "Tidal energy", "depth": "basic"})

    assert response.status_code == 200
    data = response.json()
    assert data["session_id"].startswith("rs_")
    assert data["coverage_score"] >= 60
    assert data["sources"] > 0
    assert "## References" in data["report"]


def test_research_rejects_unknown_depth(client):
    response = client.post("/api/research", json={"topic": "Tidal energy", "depth": "extreme"})
    assert response.status_code == 422


def test_session_lifecycle(client):
    session_id = _create(client)

    status = client.get(f"/api/sessions/{session_id}").json()
    assert status["status"] == "created"
    assert status["depth"] == "basic"
    assert [s["id"] for s in client.get("/api/sessions").json()["sessions"]] == [session_id]

    response = client.delete(f"/api/sessions/{session_id}")
    assert response.json()["status"] == "deleted"
    assert client.get(f"/api/sessions/{session_id}").status_code == 404


def test_unknown_session_is_404(client):
    response = client.get("/api/sessions/rs_missing")

    assert response.status_code == 404
    assert "rs_missing" in response.json()["detail"]


def test_add_source_citations_and_complete(client):
    session_id = _create(client)

    added = client.post(
        f"/api/sessions/{session_id}/sources",
        json={"url": "https://www.nasa.gov/tides", "title": "NASA Tides"},
    ).json()
    duplicate = client.post(
        f"/api/sessions/{session_id}/sources",
        json={"url": "https://www.nasa.gov/tides", "title": "Again"},
    ).json()

    assert added["added"] is True
    assert added["quality_tier"] == "primary"
    assert duplicate["added"] is False
    assert duplicate["total_sources"] == 1

    citations = client.get(f"/api/sessions/{session_id}/citations", params={"style": "apa"}).json()
    assert "[1] NASA Tides. Retrieved from https://www.nasa.gov/tides" in citations["citations"]

    report = client.post(f"/api/sessions/{session_id}/complete").json()["report"]
    assert "[1] NASA Tides. https://www.nasa.gov/tides (primary)" in report
    assert client.get(f"/api/sessions/{session_id}").json()["status"] == "completed"


def test_add_source_rejects_invalid_url(client):
    session_id = _create(client)

    response = client.post(f"/api/sessions/{session_id}/sources", json={"url": "ftp://x", "title": "X"})

    assert response.status_code == 422


def test_citations_reject_unknown_style(client):
    session_id = _create(client)

    response = client.get(f"/api/sessions/{session_id}/citations", params={"style": "chicago"})

    assert response.status_code == 422


def test_stream_research(client):
    session_id = _create(client)

    response = client.get(f"/api/research/{session_id}/stream")

    assert response.status_code == 200
    assert "event: plan_created" in response.text
    assert "event: research_complete" in response.text
    assert client.get(f"/api/sessions/{session_id}").json()["status"] == "completed"

    again = client.get(f"/api/research/{session_id}/stream")
    assert again.status_code == 409


@pytest.mark.asyncio
async def test_stream_claims_session_before_response_starts(app):
    from fastapi import HTTPException
    from sse_starlette.sse import EventSourceResponse

    from research_engine.api.routes.research import stream_research

    store, researcher = app.state.session_store, app.state.researcher
    session = store.create("Tidal energy", "basic")

    first = await stream_research(session.id, store=store, researcher=researcher)

    assert isinstance(first, EventSourceResponse)
    assert session.status == SessionStatus.PLANNING
    with pytest.raises(HTTPException) as exc_info:
        await stream_research(session.id, store=store, researcher=researcher)
    assert exc_info.value.status_code == 409


def test_running_session_rejects_sources_and_complete(client, app):
    session_id = _create(client)
    app.state.session_store.get(session_id).status = SessionStatus.RESEARCHING

    added = client.post(
        f"/api/sessions/{session_id}/sources",
        json={"url": "https://www.nasa.gov/tides", "title": "NASA Tides"},
    )
    completed = client.post(f"/api/sessions/{session_id}/complete")

    assert added.status_code == 409
    assert completed.status_code == 409
    assert app.state.session_store.get(session_id).sources == []


def test_stream_unknown_session_is_404(client):
    assert client.get("/api/research/rs_missing/stream").status_code == 404


def test_search_endpoint(client):
    response = client.post("/api/search", json={"query": "tides", "max_results": 3})

    assert response.status_code == 200
    results = response.json()["results"]
    assert results[0]["quality_tier"] == "primary"


def test_search_endpoint_maps_provider_error(client, app):
    def fail(query, max_results):
        raise ProviderError("quota exceeded", provider="google")

    app.state.researcher = LeadResearcher(search=FakeSearch(fail), fetch=FakeFetch(PAGE_TEXT))

    response = client.post("/api/search", json={"query": "tides"})

    assert response.status_code == 502
    assert "quota exceeded" in response.json()["detail"]


def test_deep_search_endpoint(client):
    response = client.post("/api/deep-search", json={"query": "tides", "num_results": 2})

    assert response.status_code == 200
    pages = response.json()["pages"]
    assert pages and pages[0]["content_length"] == len(PAGE_TEXT)


def test_fetch_endpoint(client, app):
    assert client.post("/api/fetch", json={"url": "https://agency.gov/page"}).status_code == 200

    app.state.researcher = LeadResearcher(search=FakeSearch(), fetch=FakeFetch(""))
    assert client.post("/api/fetch", json={"url": "https://agency.gov/empty"}).status_code == 422


def test_fetch_endpoint_rejects_malformed_url(client):
    response = client.post("/api/fetch", json={"url": "http://exa mple.com:xx/"})

    assert response.status_code == 422
