from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from research_engine.agents.citation_agent import format_citations
from research_engine.agents.lead_researcher import LeadResearcher
from research_engine.api.deps import get_researcher, get_session_store, lookup_session
from research_engine.models.research import SessionStateError
from research_engine.models.schemas import (
    AddSourceRequest,
    AddSourceResponse,
    CitationStyle,
    CitationsResponse,
    ReportResponse,
    SessionCreateRequest,
    SessionListResponse,
    SessionStatusResponse,
)
from research_engine.services import session_store as session_service
from research_engine.services.session_store import SessionStore
from research_engine.tools import web_utils

router = APIRouter(prefix="/api/sessions", tags=["sessions"])


@router.post("", response_model=SessionStatusResponse)
async def create_session(
    request: SessionCreateRequest,
    store: SessionStore = Depends(get_session_store),
):
    session = store.create(
        request.topic,
        request.depth,
        max_content_per_page=request.max_content_per_page,
    )
    return SessionStatusResponse(**session_service.status(session))


@router.get("", response_model=SessionListResponse)
async def list_sessions(store: SessionStore = Depends(get_session_store)):
    return SessionListResponse(
        sessions=[SessionStatusResponse(**session_service.status(s)) for s in store.list_sessions()]
    )


@router.get("/{session_id}", response_model=SessionStatusResponse)
async def get_session(session_id: str, store: SessionStore = Depends(get_session_store)):
    session = lookup_session(store, session_id)
    return SessionStatusResponse(**session_service.status(session))


@router.delete("/{session_id}")
async def delete_session(
    session_id: str,
    archive: bool = False,
    store: SessionStore = Depends(get_session_store),
):
    lookup_session(store, session_id)
    store.discard(session_id, archive=archive)
    return {"status": "archived" if archive else "deleted", "session_id": session_id}


@router.post("/{session_id}/sources", response_model=AddSourceResponse)
async def add_source(
    session_id: str,
    request: AddSourceRequest,
    store: SessionStore = Depends(get_session_store),
    researcher: LeadResearcher = Depends(get_researcher),
):
    session = lookup_session(store, session_id)
    if not web_utils.is_valid_url(request.url):
        raise HTTPException(status_code=422, detail=f"Invalid URL: {request.url}")
    try:
        source, added = await researcher.add_source(
            session, request.url, request.title, fetch=request.fetch_content
        )
    except SessionStateError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    return AddSourceResponse(
        added=added,
        title=source.title,
        url=source.url,
        quality_tier=source.quality_tier.value,
        quality_score=source.quality_score,
        content_length=source.content_length,
        total_sources=len(session.sources),
    )


@router.get("/{session_id}/citations", response_model=CitationsResponse)
async def get_citations(
    session_id: str,
    style: CitationStyle = "markdown",
    store: SessionStore = Depends(get_session_store),
):
    session = lookup_session(store, session_id)
    return CitationsResponse(
        session_id=session_id,
        style=style,
        citations=format_citations(session, style),
    )


@router.post("/{session_id}/complete", response_model=ReportResponse)
async def complete_session(
    session_id: str,
    store: SessionStore = Depends(get_session_store),
    researcher: LeadResearcher = Depends(get_researcher),
):
    session = lookup_session(store, session_id)
    try:
        report = researcher.complete(session)
    except SessionStateError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    return ReportResponse(session_id=session_id, report=report)
