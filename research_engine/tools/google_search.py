from __future__ import annotations

from typing import Any

import httpx

from research_engine.config import settings
from research_engine.models.search import ProviderError, SearchResult

GOOGLE_SEARCH_URL = "https://www.googleapis.com/customsearch/v1"

# Custom Search caps a single page of results at 10.
MAX_RESULTS_PER_PAGE = 10


async def search(query: str, *, max_results: int = 10) -> list[SearchResult]:
    """Execute a Google Custom Search query and normalize results."""
    if not settings.google_api_key or not settings.google_cx:
        raise ProviderError("Missing GOOGLE_API_KEY or GOOGLE_CX", provider="google")

    params: dict[str, Any] = {
        "key": settings.google_api_key,
        "cx": settings.google_cx,
        "q": query,
        "num": max(1, min(max_results, MAX_RESULTS_PER_PAGE)),
    }

    async with httpx.AsyncClient(timeout=30.0) as client:
        response = await client.get(GOOGLE_SEARCH_URL, params=params)
        payload = response.json()

    if payload.get("error"):
        message = payload["error"].get("message", "unknown error")
        raise ProviderError(f"Google API Error: {message}", provider="google")
    response.raise_for_status()

    return [
        SearchResult(
            title=item.get("title", ""),
            url=item.get("link", ""),
            snippet=item.get("snippet", "") or "",
        )
        for item in payload.get("items", []) or []
    ]
