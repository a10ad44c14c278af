from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from research_engine.models.research import Depth


# --- Requests ---


class ResearchRequest(BaseModel):
    topic: str = Field(min_length=1)
    depth: Depth = Depth.MODERATE
    max_content_per_page: int | None = Field(default=None, ge=5000, le=100000)


class SessionCreateRequest(BaseModel):
    topic: str = Field(min_length=1)
    depth: Depth = Depth.MODERATE
    max_content_per_page: int | None = Field(default=None, ge=5000, le=100000)


class AddSourceRequest(BaseModel):
    url: str
    title: str
    fetch_content: bool = True


class SearchRequest(BaseModel):
    query: str = Field(min_length=1)
    max_results: int = Field(default=10, ge=1, le=10)


class DeepSearchRequest(BaseModel):
    query: str = Field(min_length=1)
    num_results: int = Field(default=5, ge=1, le=10)
    max_content_per_page: int = Field(default=30000, ge=5000, le=100000)


class FetchRequest(BaseModel):
    url: str
    max_length: int = Field(default=50000, ge=1000, le=100000)


CitationStyle = Literal["markdown", "numbered", "apa"]


# --- Responses ---


class SessionStatusResponse(BaseModel):
    id: str
    topic: str
    depth: Depth
    status: str
    iteration: int
    max_iterations: int
    sources: int
    content_chars: int
    queries: int
    aspects_planned: int
    aspects_covered: int
    coverage_score: int | None = None
    created_at: str


class SessionListResponse(BaseModel):
    sessions: list[SessionStatusResponse]


class ResearchResponse(BaseModel):
    session_id: str
    report: str
    coverage_score: int
    sources: int


class ReportResponse(BaseModel):
    session_id: str
    report: str


class AddSourceResponse(BaseModel):
    added: bool
    title: str
    url: str
    quality_tier: str
    quality_score: int
    content_length: int
    total_sources: int


class CitationsResponse(BaseModel):
    session_id: str
    style: CitationStyle
    citations: str


class SearchHit(BaseModel):
    title: str
    url: str
    snippet: str
    domain: str
    quality_score: int
    quality_tier: str


class SearchResponseModel(BaseModel):
    query: str
    results: list[SearchHit]


class PageContent(BaseModel):
    url: str
    title: str
    domain: str
    quality_score: int
    quality_tier: str
    content: str
    content_length: int


class DeepSearchResponse(BaseModel):
    query: str
    pages: list[PageContent]
