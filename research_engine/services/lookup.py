"""One-off search and fetch helpers outside a research session."""
from __future__ import annotations

import asyncio
from typing import Any

from research_engine.agents.subagent import FetchFn, SearchFn
from research_engine.services import source_quality
from research_engine.tools import content_fetcher, search_provider, web_utils

MIN_PAGE_CHARS = 50


def _annotate(title: str, url: str) -> dict[str, Any]:
    score, tier = source_quality.assess(url)
    return {
        "title": title,
        "url": url,
        "domain": web_utils.extract_domain(url),
        "quality_score": score,
        "quality_tier": tier.value,
    }


async def quick_search(
    query: str,
    max_results: int = 10,
    *,
    search: SearchFn | None = None,
) -> list[dict[str, Any]]:
    """Search results annotated with source quality; snippets only."""
    results = await (search or search_provider.search)(query, max_results)
    return [{**_annotate(r.title, r.url), "snippet": r.snippet} for r in results]


async def fetch_page(
    url: str,
    max_length: int = 50000,
    *,
    fetch: FetchFn | None = None,
) -> dict[str, Any] | None:
    """Fetch one page; None when no meaningful content could be extracted."""
    content = await (fetch or content_fetcher.fetch_content)(url, max_length)
    if len(content) < MIN_PAGE_CHARS:
        return None
    return {**_annotate(url, url), "content": content, "content_length": len(content)}


async def deep_search(
    query: str,
    num_results: int = 5,
    max_content_per_page: int = 30000,
    *,
    search: SearchFn | None = None,
    fetch: FetchFn | None = None,
) -> list[dict[str, Any]]:
    """Search, then fetch full content for every result concurrently."""
    results = await (search or search_provider.search)(query, num_results)
    fetcher = fetch or content_fetcher.fetch_content
    contents = await asyncio.gather(*(fetcher(r.url, max_content_per_page) for r in results))
    return [
        {**_annotate(r.title, r.url), "content": content, "content_length": len(content)}
        for r, content in zip(results, contents)
    ]
