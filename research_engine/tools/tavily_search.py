from __future__ import annotations

from tavily import AsyncTavilyClient

from research_engine.config import settings
from research_engine.models.search import ProviderError, SearchResult


async def search(
    query: str,
    *,
    max_results: int = 10,
    search_depth: str = "basic",
) -> list[SearchResult]:
    """Execute a Tavily web search and return structured results."""
    if not settings.tavily_api_key:
        raise ProviderError("TAVILY_API_KEY is not configured", provider="tavily")

    client = AsyncTavilyClient(api_key=settings.tavily_api_key)
    response = await client.search(
        query=query,
        search_depth=search_depth,
        max_results=max_results,
    )

    return [
        SearchResult(
            title=r.get("title", ""),
            url=r.get("url", ""),
            snippet=r.get("content", ""),
        )
        for r in response.get("results", [])
    ]
