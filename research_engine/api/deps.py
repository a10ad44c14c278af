from __future__ import annotations

from fastapi import HTTPException, Request

from research_engine.agents.lead_researcher import LeadResearcher
from research_engine.models.research import Session
from research_engine.services.session_store import SessionNotFoundError, SessionStore


def get_session_store(request: Request) -> SessionStore:
    return request.app.state.session_store


def get_researcher(request: Request) -> LeadResearcher:
    return request.app.state.researcher


def lookup_session(store: SessionStore, session_id: str) -> Session:
    try:
        return store.get(session_id)
    except SessionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
