from __future__ import annotations

import asyncio
import time
from typing import Any, Awaitable, Callable

from loguru import logger

from research_engine.models.events import SSEEvent
from research_engine.models.research import GapKind, QualityTier, Source, SubagentStatus
from research_engine.models.search import ProviderError, SearchResult
from research_engine.services import source_quality, streaming
from research_engine.services.memory import MemorySnapshot
from research_engine.tools import web_utils

SearchFn = Callable[[str, int], Awaitable[list[SearchResult]]]
FetchFn = Callable[[str, int], Awaitable[str]]
Candidate = tuple[SearchResult, tuple[int, QualityTier]]

MIN_QUALITY_SCORE = 5
MIN_CONTENT_CHARS = 100
MAX_GAP_QUERIES = 2
FINDING_MIN_LINE_CHARS = 50
FINDING_MAX_CHARS = 200

GAP_QUERY_SUFFIX = {
    GapKind.MISSING_COVERAGE: "",
    GapKind.INSUFFICIENT_SOURCES: "research",
    GapKind.NO_PRIMARY_SOURCES: "official documentation research paper",
}


def _first_word(text: str) -> str:
    words = text.split()
    return words[0].lower() if words else ""


def build_queries(snapshot: MemorySnapshot) -> list[str]:
    """Queries for one aspect, shaped by prior findings and open gaps."""
    aspect = " ".join(snapshot.aspect.split())
    queries: list[str] = [aspect]

    if snapshot.prior_findings:
        queries.append(f"{aspect} detailed explanation")
        queries.append(f"{aspect} expert analysis")
    else:
        tail = " ".join(aspect.split()[-2:])
        queries.append(f"{snapshot.topic} {tail}")

    lead = _first_word(aspect)
    gap_queries = [
        f"{gap.aspect} {GAP_QUERY_SUFFIX[gap.kind]}"
        for gap in snapshot.gaps
        if lead and _first_word(gap.aspect) == lead
    ]
    queries.extend(gap_queries[:MAX_GAP_QUERIES])

    deduped: list[str] = []
    seen: set[str] = set()
    for query in queries:
        q = " ".join(query.split()).strip()
        if not q or q.lower() in seen:
            continue
        seen.add(q.lower())
        deduped.append(q)
    return deduped


def extract_finding(source: Source) -> str:
    """One-line takeaway: the first substantial content line, tagged with tier and title."""
    line = next(
        (
            candidate.strip()
            for candidate in source.content.splitlines()
            if len(candidate.strip()) > FINDING_MIN_LINE_CHARS
        ),
        " ".join(source.content.split()),
    )
    return f"[{source.quality_tier.value.upper()}] {source.title}: {line[:FINDING_MAX_CHARS]}"


class Subagent:
    """Worker that researches a single aspect for one iteration.

    Reads only its snapshot; the lead researcher merges its sources and
    findings once the whole batch has finished.
    """

    name = "subagent"

    def __init__(
        self,
        snapshot: MemorySnapshot,
        *,
        agent_id: str,
        iteration: int,
        search: SearchFn,
        fetch: FetchFn,
        max_content_per_page: int,
        sources_per_query: int = 5,
        fetch_timeout_seconds: float = 30.0,
        inter_batch_delay_ms: int = 0,
    ):
        self.snapshot = snapshot
        self.id = agent_id
        self.aspect = snapshot.aspect
        self.iteration = iteration
        self._search = search
        self._fetch = fetch
        self.max_content_per_page = max_content_per_page
        self.sources_per_query = max(sources_per_query, 1)
        self.fetch_timeout_seconds = fetch_timeout_seconds
        self.inter_batch_delay_ms = max(inter_batch_delay_ms, 0)

        self.status = SubagentStatus.PENDING
        self.queries: list[str] = []
        self.sources: list[Source] = []
        self.findings: list[str] = []
        self.events: list[SSEEvent] = []
        self.failed_queries: list[str] = []
        self.error: str | None = None
        self.runtime_ms = 0

    @property
    def is_terminal(self) -> bool:
        return self.status in (SubagentStatus.COMPLETED, SubagentStatus.FAILED)

    async def execute(self) -> Subagent:
        t0 = time.monotonic()
        self.status = SubagentStatus.SEARCHING
        self.queries = build_queries(self.snapshot)
        logger.debug(f"[{self.id}] {len(self.queries)} queries for aspect {self.aspect!r}")

        for index, query in enumerate(self.queries):
            if index > 0 and self.inter_batch_delay_ms:
                await asyncio.sleep(self.inter_batch_delay_ms / 1000)
            await self._run_query(query)

        self.status = SubagentStatus.EVALUATING
        self.findings = [extract_finding(source) for source in self.sources]
        self.status = SubagentStatus.COMPLETED
        self.runtime_ms = int((time.monotonic() - t0) * 1000)
        return self

    async def _run_query(self, query: str) -> None:
        try:
            results = await self._search(query, self.sources_per_query)
        except ProviderError as e:
            logger.warning(f"[{self.id}] Search failed for {query!r}: {e}")
            self.failed_queries.append(query)
            self.events.append(
                streaming.agent_progress(
                    self.name, agent_id=self.id, query=query, status="search_failed", error=str(e)
                )
            )
            return

        candidates = self._select_candidates(results)
        self.events.append(
            streaming.agent_progress(
                self.name,
                agent_id=self.id,
                query=query,
                status="fetching",
                results=len(results),
                candidates=len(candidates),
            )
        )
        if not candidates:
            return

        contents = await asyncio.gather(*(self._fetch_one(result.url) for result, _ in candidates))
        for (result, (score, tier)), content in zip(candidates, contents):
            if len(content) <= MIN_CONTENT_CHARS:
                logger.debug(f"[{self.id}] Dropping {result.url}: {len(content)} chars extracted")
                continue
            self.sources.append(
                Source(
                    title=result.title or web_utils.extract_domain(result.url),
                    url=result.url,
                    snippet=result.snippet,
                    content=content,
                    quality_score=score,
                    quality_tier=tier,
                    domain=web_utils.extract_domain(result.url),
                    aspect=self.aspect,
                )
            )

    def _select_candidates(self, results: list[SearchResult]) -> list[Candidate]:
        seen = set(self.snapshot.known_urls) | {source.url for source in self.sources}
        candidates: list[Candidate] = []
        for result in results:
            if not result.url or result.url in seen:
                continue
            seen.add(result.url)
            score, tier = source_quality.assess(result.url)
            if score < MIN_QUALITY_SCORE:
                continue
            candidates.append((result, (score, tier)))
        return candidates

    async def _fetch_one(self, url: str) -> str:
        try:
            return await asyncio.wait_for(
                self._fetch(url, self.max_content_per_page),
                timeout=self.fetch_timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning(f"[{self.id}] Fetch timed out for {url}")
        except Exception as e:
            logger.warning(f"[{self.id}] Fetch failed for {url}: {e}")
        return ""

    def summary(self) -> dict[str, Any]:
        return {
            "agent_id": self.id,
            "aspect": self.aspect,
            "iteration": self.iteration,
            "status": self.status.value,
            "queries": list(self.queries),
            "failed_queries": list(self.failed_queries),
            "sources": len(self.sources),
            "findings": len(self.findings),
            "runtime_ms": self.runtime_ms,
            "error": self.error,
        }
