from __future__ import annotations

from typing import Any

import httpx

from research_engine.config import settings
from research_engine.models.search import ProviderError, SearchResult

BRAVE_SEARCH_URL = "https://api.search.brave.com/res/v1/web/search"


async def search(query: str, *, max_results: int = 10) -> list[SearchResult]:
    """Execute a Brave web search and normalize results."""
    if not settings.brave_api_key:
        raise ProviderError("BRAVE_API_KEY is not configured", provider="brave")

    params: dict[str, Any] = {
        "q": query,
        "count": max_results,
    }

    async with httpx.AsyncClient(timeout=30.0) as client:
        response = await client.get(
            BRAVE_SEARCH_URL,
            params=params,
            headers={
                "Accept": "application/json",
                "X-Subscription-Token": settings.brave_api_key,
            },
        )
        response.raise_for_status()
        payload = response.json()

    mapped: list[SearchResult] = []
    for item in payload.get("web", {}).get("results", []):
        snippets = item.get("extra_snippets", []) or []
        description = item.get("description", "") or ""
        mapped.append(
            SearchResult(
                title=item.get("title", ""),
                url=item.get("url", ""),
                snippet=description.strip() or " ".join(snippets).strip(),
            )
        )
    return mapped
