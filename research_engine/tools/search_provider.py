from __future__ import annotations

import time

from research_engine.config import settings
from research_engine.models.search import ProviderError, SearchResult
from research_engine.services import logger as log_service
from research_engine.tools import brave_search, google_search, tavily_search

_CLIENTS = {
    "google": google_search,
    "brave": brave_search,
    "tavily": tavily_search,
}


async def _call(provider: str, query: str, max_results: int) -> list[SearchResult]:
    client = _CLIENTS[provider].search
    t0 = time.monotonic()
    try:
        results = await client(query, max_results=max_results)
    except Exception as e:
        elapsed_ms = int((time.monotonic() - t0) * 1000)
        log_service.log_provider_call(provider, query, duration_ms=elapsed_ms, error=str(e))
        if isinstance(e, ProviderError):
            raise
        raise ProviderError(f"{provider} search failed: {e}", provider=provider) from e
    elapsed_ms = int((time.monotonic() - t0) * 1000)
    log_service.log_provider_call(provider, query, results=len(results), duration_ms=elapsed_ms)
    return results


async def search(query: str, max_results: int = 10) -> list[SearchResult]:
    """Search with the configured provider.

    Raises ProviderError when the upstream call fails; zero hits is an
    empty list.
    """
    provider = settings.search_provider.lower().strip()
    if provider not in _CLIENTS:
        raise ProviderError(f"Unsupported SEARCH_PROVIDER: {settings.search_provider}")

    use_fallback = settings.search_fallback_to_tavily and provider != "tavily"
    try:
        results = await _call(provider, query, max_results)
    except ProviderError:
        if not use_fallback:
            raise
        return await _call("tavily", query, max_results)

    if results or not use_fallback:
        return results
    return await _call("tavily", query, max_results)
