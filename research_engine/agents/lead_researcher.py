from __future__ import annotations

import asyncio
import time
from datetime import datetime, timezone
from typing import AsyncGenerator

from loguru import logger

from research_engine.agents.citation_agent import CitationAgent
from research_engine.agents.subagent import FetchFn, SearchFn, Subagent
from research_engine.config import settings
from research_engine.models.events import EventType, SSEEvent
from research_engine.models.research import (
    DEPTH_PROFILES,
    Decision,
    Depth,
    Gap,
    GapKind,
    IterationResult,
    QualityTier,
    Session,
    SessionStateError,
    SessionStatus,
    Source,
    SubagentStatus,
)
from research_engine.services import logger as log_service
from research_engine.services import source_quality, streaming
from research_engine.services.report import synthesize_report
from research_engine.tools import content_fetcher, search_provider, web_utils

# Ordered so that every depth's plan is a prefix of the next deeper one.
ASPECT_SUFFIXES = (
    "overview definition",
    "key concepts fundamentals",
    "how it works mechanisms",
    "applications use cases",
    "benefits challenges limitations",
    "history evolution",
    "current research developments",
    "expert opinions analysis",
    "comparison alternatives",
    "future trends predictions",
    "best practices implementation",
)

FIRST_PASS_ASPECTS = 3
MAX_ASPECTS_PER_PASS = 4

PRIMARY_POINTS, PRIMARY_CAP = 5, 25
AUTHORITATIVE_POINTS, AUTHORITATIVE_CAP = 3, 15
LARGE_CONTENT_CHARS, LARGE_CONTENT_BONUS = 100_000, 10
MEDIUM_CONTENT_CHARS, MEDIUM_CONTENT_BONUS = 50_000, 5


def plan(topic: str, depth: Depth | str) -> list[str]:
    """Break a topic into the aspects researched at the given depth."""
    clean = " ".join(topic.split())
    count = DEPTH_PROFILES[Depth(depth)].aspect_count
    return [f"{clean} {suffix}" for suffix in ASPECT_SUFFIXES[:count]]


def compute_coverage(session: Session) -> int:
    """Coverage score in [0, 100], rebuilt from the full merged source set."""
    memory = session.memory
    planned = len(memory.plan)
    covered = sum(1 for aspect in memory.plan if memory.is_covered(aspect))
    score = 50 * covered / planned if planned else 0.0

    primary = sum(1 for s in session.sources if s.quality_tier == QualityTier.PRIMARY)
    authoritative = sum(1 for s in session.sources if s.quality_tier == QualityTier.AUTHORITATIVE)
    score += min(PRIMARY_CAP, PRIMARY_POINTS * primary)
    score += min(AUTHORITATIVE_CAP, AUTHORITATIVE_POINTS * authoritative)

    total_content = session.total_content_length()
    if total_content > LARGE_CONTENT_CHARS:
        score += LARGE_CONTENT_BONUS
    elif total_content > MEDIUM_CONTENT_CHARS:
        score += MEDIUM_CONTENT_BONUS

    return max(0, min(100, int(score + 0.5)))


def identify_gaps(session: Session) -> list[Gap]:
    memory = session.memory
    profile = session.profile
    gaps: list[Gap] = []
    for aspect in memory.plan:
        if not memory.is_covered(aspect):
            gaps.append(Gap(GapKind.MISSING_COVERAGE, aspect))
            continue
        aspect_sources = session.sources_for(aspect)
        if len(aspect_sources) < profile.min_sources_per_aspect:
            gaps.append(Gap(GapKind.INSUFFICIENT_SOURCES, aspect))
        if session.depth == Depth.COMPREHENSIVE and not any(
            s.quality_tier == QualityTier.PRIMARY for s in aspect_sources
        ):
            gaps.append(Gap(GapKind.NO_PRIMARY_SOURCES, aspect))
    return gaps


def select_aspects(session: Session) -> list[str]:
    """Aspects to research on the session's current iteration."""
    memory = session.memory
    uncovered = memory.uncovered_aspects()
    if session.iteration == 0:
        return uncovered[:FIRST_PASS_ASPECTS]

    selected: list[str] = []
    for aspect in [gap.aspect for gap in memory.gaps] + uncovered:
        if aspect in memory.plan and aspect not in selected:
            selected.append(aspect)
    return selected[:MAX_ASPECTS_PER_PASS]


def aspects_researched_so_far(session: Session, researched: list[str] | tuple[str, ...]) -> list[str]:
    seen: list[str] = []
    for result in session.memory.iteration_history:
        for aspect in result.aspects_researched:
            if aspect not in seen:
                seen.append(aspect)
    for aspect in researched:
        if aspect not in seen:
            seen.append(aspect)
    return seen


def evaluate(session: Session, researched: list[str] | tuple[str, ...]) -> IterationResult:
    """Score the session and decide whether to continue.

    Pure with respect to the session: evaluating an unchanged session twice
    gives the same result.
    """
    profile = session.profile
    score = compute_coverage(session)
    gaps = identify_gaps(session)
    source_count = len(session.sources)
    required = profile.min_sources_per_aspect * len(aspects_researched_so_far(session, researched))
    iteration = session.iteration

    if score >= profile.coverage_threshold and source_count >= required:
        decision = Decision.EXIT
        reasoning = (
            f"Coverage threshold met: {score}% >= {profile.coverage_threshold}% "
            f"with {source_count} sources (required {required})"
        )
    elif iteration + 1 >= profile.max_iterations:
        decision = Decision.EXIT
        reasoning = (
            f"Max iterations reached ({iteration + 1}/{profile.max_iterations}) "
            f"with coverage {score}% and {source_count} sources"
        )
    elif not gaps:
        decision = Decision.EXIT
        reasoning = f"No coverage gaps remain (coverage {score}%, {source_count} sources)"
    else:
        decision = Decision.CONTINUE
        reasoning = (
            f"Coverage {score}% below target {profile.coverage_threshold}% or sources "
            f"{source_count} below required {required}; {len(gaps)} gaps remain"
        )

    return IterationResult(
        iteration=iteration,
        aspects_researched=tuple(researched),
        source_count=source_count,
        coverage_score=score,
        gaps=tuple(gaps),
        decision=decision,
        reasoning=reasoning,
    )


class LeadResearcher:
    """Orchestrates the research loop for one session at a time.

    Flow:
      1. Plan aspects for the session depth
      2. Fan out: one subagent per selected aspect, run concurrently
      3. Fan in: merge sources and findings once every subagent is done
      4. Evaluate coverage and gaps; continue or exit
      5. Synthesize the report and hand it to the citation agent

    The session and its memory are written only here, between batches.
    """

    def __init__(
        self,
        *,
        search: SearchFn | None = None,
        fetch: FetchFn | None = None,
        citation_agent: CitationAgent | None = None,
        sources_per_query: int | None = None,
        fetch_timeout_seconds: float | None = None,
        inter_batch_delay_ms: int | None = None,
    ):
        self.search = search or search_provider.search
        self.fetch = fetch or content_fetcher.fetch_content
        self.citation_agent = citation_agent or CitationAgent()
        self.sources_per_query = max(
            int(sources_per_query if sources_per_query is not None else settings.sources_per_query), 1
        )
        self.fetch_timeout_seconds = float(
            fetch_timeout_seconds if fetch_timeout_seconds is not None else settings.fetch_timeout_seconds
        )
        self.inter_batch_delay_ms = max(
            int(inter_batch_delay_ms if inter_batch_delay_ms is not None else settings.inter_batch_delay_ms), 0
        )

    @staticmethod
    def _ensure_idle(session: Session) -> None:
        if session.is_running:
            raise SessionStateError(f"Session {session.id} is {session.status.value}; wait for it to finish")

    async def _pause(self) -> None:
        if self.inter_batch_delay_ms:
            await asyncio.sleep(self.inter_batch_delay_ms / 1000)

    def _spawn(self, session: Session, aspects: list[str]) -> list[Subagent]:
        known_urls = session.source_urls()
        return [
            Subagent(
                session.memory.snapshot(topic=session.topic, aspect=aspect, known_urls=known_urls),
                agent_id=f"{session.id}_i{session.iteration}_a{index}",
                iteration=session.iteration,
                search=self.search,
                fetch=self.fetch,
                max_content_per_page=session.max_content_per_page,
                sources_per_query=self.sources_per_query,
                fetch_timeout_seconds=self.fetch_timeout_seconds,
                inter_batch_delay_ms=self.inter_batch_delay_ms,
            )
            for index, aspect in enumerate(aspects)
        ]

    async def _execute_batch(self, subagents: list[Subagent]) -> list[Subagent]:
        """Run every subagent concurrently; return them in completion order."""
        finished: list[Subagent] = []

        async def run_one(agent: Subagent) -> None:
            try:
                await agent.execute()
            finally:
                finished.append(agent)

        outcomes = await asyncio.gather(*(run_one(agent) for agent in subagents), return_exceptions=True)
        for agent, outcome in zip(subagents, outcomes):
            if isinstance(outcome, BaseException):
                agent.status = SubagentStatus.FAILED
                agent.error = str(outcome) or type(outcome).__name__
                logger.opt(exception=outcome).error(f"[{agent.id}] Subagent failed: {agent.error}")
        return finished

    def _merge(self, session: Session, agent: Subagent) -> int:
        session.subagents.append(agent)
        session.queries_executed.extend(agent.queries)
        if agent.status != SubagentStatus.COMPLETED:
            return 0
        added = session.merge_sources(agent.sources)
        for finding in agent.findings:
            session.memory.record_finding(agent.aspect, finding)
        if agent.sources:
            session.memory.mark_covered(agent.aspect)
        return added

    async def research(self, session: Session) -> AsyncGenerator[SSEEvent, None]:
        """Run the research loop, yielding progress events along the way."""
        # A created session is claimed here; a claimed one arrives as planning.
        if session.status == SessionStatus.CREATED:
            session.claim()
        elif session.status != SessionStatus.PLANNING:
            raise SessionStateError(f"Session {session.id} is already {session.status.value}")

        t0 = time.monotonic()
        memory = session.memory
        log_service.log_research_step(session.id, "research", "started", {"topic": session.topic})

        if not memory.plan:
            memory.save_plan(plan(session.topic, session.depth))
        yield streaming.plan_created(session.id, list(memory.plan), session.depth.value)

        while session.iteration < session.max_iterations:
            aspects = select_aspects(session)
            if not aspects:
                logger.info(f"[{session.id}] No aspects left to research; stopping early")
                break

            session.status = SessionStatus.RESEARCHING
            yield streaming.iteration_started(session.iteration, aspects)
            subagents = self._spawn(session, aspects)
            for agent in subagents:
                yield streaming.agent_started(
                    agent.name, agent_id=agent.id, aspect=agent.aspect, iteration=session.iteration
                )

            finished = await self._execute_batch(subagents)

            for agent in finished:
                added = self._merge(session, agent)
                for event in agent.events:
                    yield event
                if agent.status == SubagentStatus.FAILED:
                    yield streaming.error(f"Subagent for '{agent.aspect}' failed: {agent.error}", agent.id)
                yield streaming.agent_completed(
                    agent.name, success=agent.status == SubagentStatus.COMPLETED, added=added, **agent.summary()
                )

            session.status = SessionStatus.EVALUATING
            result = evaluate(session, aspects)
            memory.set_gaps(result.gaps)
            memory.append_iteration_result(result)
            log_service.log_research_step(session.id, "evaluate", result.decision.value, result.to_dict())
            yield streaming.iteration_evaluated(result)

            session.iteration += 1
            if result.decision == Decision.EXIT:
                break
            await self._pause()

        session.status = SessionStatus.SYNTHESIZING
        yield streaming.synthesis_started(len(session.sources))
        session.report = synthesize_report(session)

        session.status = SessionStatus.CITING
        session.cited_report = self.citation_agent.process(session)
        yield streaming.citations_assigned(len(session.sources))

        session.status = SessionStatus.COMPLETED
        session.completed_at = datetime.now(timezone.utc)
        latest = memory.latest_result
        log_service.log_research_step(
            session.id,
            "research",
            "completed",
            {"sources": len(session.sources), "iterations": len(memory.iteration_history)},
        )
        yield streaming.research_complete(
            session.id,
            session.cited_report,
            [source.to_dict() for source in session.sources],
            coverage_score=latest.coverage_score if latest else 0,
            runtime_ms=int((time.monotonic() - t0) * 1000),
        )

    async def run(self, session: Session) -> str:
        """Run the research loop to completion and return the cited report."""
        if session.status == SessionStatus.COMPLETED and session.cited_report:
            return session.cited_report
        async for event in self.research(session):
            if event.event == EventType.ERROR:
                logger.warning(f"[{session.id}] {event.data.get('message')}")
        return session.cited_report

    async def add_source(
        self,
        session: Session,
        url: str,
        title: str,
        *,
        fetch: bool = True,
        aspect: str | None = None,
    ) -> tuple[Source, bool]:
        """Manually add a source; returns (source, added). Known URLs are not replaced."""
        self._ensure_idle(session)
        for existing in session.sources:
            if existing.url == url:
                return existing, False

        content = await self.fetch(url, session.max_content_per_page) if fetch else ""
        self._ensure_idle(session)
        score, tier = source_quality.assess(url)
        source = Source(
            title=title,
            url=url,
            content=content,
            quality_score=score,
            quality_tier=tier,
            domain=web_utils.extract_domain(url),
            aspect=aspect or session.topic,
        )
        session.merge_sources([source])
        logger.info(f"[{session.id}] Added source {url} ({tier.value}, {len(content)} chars)")
        return source, True

    def complete(self, session: Session) -> str:
        """Build the cited report from whatever the session holds now."""
        self._ensure_idle(session)
        if not session.memory.plan:
            session.memory.save_plan(plan(session.topic, session.depth))
        session.status = SessionStatus.SYNTHESIZING
        session.report = synthesize_report(session)
        session.status = SessionStatus.CITING
        session.cited_report = self.citation_agent.process(session)
        session.status = SessionStatus.COMPLETED
        session.completed_at = datetime.now(timezone.utc)
        return session.cited_report
