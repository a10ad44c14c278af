from __future__ import annotations

import asyncio
import itertools
from typing import Callable

import pytest

from research_engine.models.research import Depth, QualityTier, Session, Source
from research_engine.models.search import SearchResult
from research_engine.services import source_quality
from research_engine.services.memory import MemoryModule
from research_engine.tools import web_utils


class FakeSearch:
    """Async search callable that records queries."""

    def __init__(self, responder: Callable[[str, int], list[SearchResult]] | None = None):
        self.responder = responder
        self.calls: list[str] = []

    async def __call__(self, query: str, max_results: int) -> list[SearchResult]:
        self.calls.append(query)
        if self.responder is None:
            return []
        return self.responder(query, max_results)


class FakeFetch:
    """Async fetch callable returning fixed content, or per-URL content.

    Tracks how many calls are in flight at once in `peak`.
    """

    def __init__(self, content: str = "", by_url: dict[str, str] | None = None, delay: float = 0.0):
        self.content = content
        self.by_url = by_url or {}
        self.delay = delay
        self.calls: list[str] = []
        self.active = 0
        self.peak = 0

    async def __call__(self, url: str, max_chars: int) -> str:
        self.calls.append(url)
        self.active += 1
        self.peak = max(self.peak, self.active)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            return self.by_url.get(url, self.content)[:max_chars]
        finally:
            self.active -= 1


@pytest.fixture
def gov_search() -> FakeSearch:
    """One fresh .gov result per query."""
    counter = itertools.count(1)

    def respond(query: str, max_results: int) -> list[SearchResult]:
        n = next(counter)
        return [SearchResult(title=f"Agency report {n}", url=f"https://agency.gov/doc/{n}", snippet=query)]

    return FakeSearch(respond)


@pytest.fixture
def empty_search() -> FakeSearch:
    return FakeSearch()


@pytest.fixture
def make_session() -> Callable[..., Session]:
    def factory(topic: str = "X", depth: Depth | str = Depth.BASIC, **kwargs) -> Session:
        return Session(topic=topic, depth=Depth(depth), memory=MemoryModule(), **kwargs)

    return factory


@pytest.fixture
def make_source() -> Callable[..., Source]:
    def factory(
        url: str,
        *,
        title: str | None = None,
        aspect: str = "X overview definition",
        content: str = "Body text " * 20,
        tier: QualityTier | None = None,
    ) -> Source:
        score, assessed = source_quality.assess(url)
        if tier is not None:
            score, assessed = source_quality.TIER_SCORES[tier], tier
        return Source(
            title=title or f"Page at {url}",
            url=url,
            content=content,
            quality_score=score,
            quality_tier=assessed,
            domain=web_utils.extract_domain(url),
            aspect=aspect,
        )

    return factory
