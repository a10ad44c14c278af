from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from research_engine.agents.lead_researcher import LeadResearcher
from research_engine.api.deps import get_researcher
from research_engine.models.schemas import (
    DeepSearchRequest,
    DeepSearchResponse,
    FetchRequest,
    PageContent,
    SearchHit,
    SearchRequest,
    SearchResponseModel,
)
from research_engine.models.search import ProviderError
from research_engine.services import lookup
from research_engine.tools import web_utils

router = APIRouter(prefix="/api", tags=["lookup"])


@router.post("/search", response_model=SearchResponseModel)
async def search(request: SearchRequest, researcher: LeadResearcher = Depends(get_researcher)):
    """Quick search with quality scoring; snippets only."""
    try:
        hits = await lookup.quick_search(request.query, request.max_results, search=researcher.search)
    except ProviderError as e:
        raise HTTPException(status_code=502, detail=str(e)) from e
    return SearchResponseModel(query=request.query, results=[SearchHit(**hit) for hit in hits])


@router.post("/deep-search", response_model=DeepSearchResponse)
async def deep_search(request: DeepSearchRequest, researcher: LeadResearcher = Depends(get_researcher)):
    """Search and read the full content of every result."""
    try:
        pages = await lookup.deep_search(
            request.query,
            request.num_results,
            request.max_content_per_page,
            search=researcher.search,
            fetch=researcher.fetch,
        )
    except ProviderError as e:
        raise HTTPException(status_code=502, detail=str(e)) from e
    return DeepSearchResponse(query=request.query, pages=[PageContent(**page) for page in pages])


@router.post("/fetch", response_model=PageContent)
async def fetch(request: FetchRequest, researcher: LeadResearcher = Depends(get_researcher)):
    if not web_utils.is_valid_url(request.url):
        raise HTTPException(status_code=422, detail=f"Invalid URL: {request.url}")
    page = await lookup.fetch_page(request.url, request.max_length, fetch=researcher.fetch)
    if page is None:
        raise HTTPException(status_code=422, detail=f"Could not extract content from: {request.url}")
    return PageContent(**page)
