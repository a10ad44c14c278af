from __future__ import annotations

import json as _json

from fastapi import APIRouter, Depends, HTTPException
from sse_starlette.sse import EventSourceResponse

from research_engine.agents.lead_researcher import LeadResearcher
from research_engine.api.deps import get_researcher, get_session_store, lookup_session
from research_engine.models.research import SessionStateError
from research_engine.models.schemas import ResearchRequest, ResearchResponse
from research_engine.services import logger as log_service
from research_engine.services import streaming
from research_engine.services.session_store import SessionStore

router = APIRouter(prefix="/api/research", tags=["research"])


@router.post("", response_model=ResearchResponse)
async def run_research(
    request: ResearchRequest,
    store: SessionStore = Depends(get_session_store),
    researcher: LeadResearcher = Depends(get_researcher),
):
    """Research a topic end to end and return the cited report."""
    session = store.create(
        request.topic,
        request.depth,
        max_content_per_page=request.max_content_per_page,
    )
    log_service.log_event(
        event_type="research_started",
        message="Research started",
        session_id=session.id,
        depth=session.depth.value,
        topic=session.topic[:100],
    )
    report = await researcher.run(session)
    latest = session.memory.latest_result
    return ResearchResponse(
        session_id=session.id,
        report=report,
        coverage_score=latest.coverage_score if latest else 0,
        sources=len(session.sources),
    )


@router.get("/{session_id}/stream")
async def stream_research(
    session_id: str,
    store: SessionStore = Depends(get_session_store),
    researcher: LeadResearcher = Depends(get_researcher),
):
    """SSE endpoint that runs a created session and streams its progress."""
    session = lookup_session(store, session_id)
    # Claimed before the response is returned so a second request sees it.
    try:
        session.claim()
    except SessionStateError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e

    async def event_generator():
        try:
            async for event in researcher.research(session):
                yield {
                    "event": event.event.value,
                    "data": _json.dumps(event.data),
                }
        except Exception as e:
            log_service.log_event(
                event_type="stream_error",
                message="Unhandled error in research stream",
                error=str(e),
                session_id=session_id,
            )
            error_event = streaming.error("Research stream failed unexpectedly.")
            yield {
                "event": error_event.event.value,
                "data": _json.dumps(error_event.data),
            }

    return EventSourceResponse(event_generator())
