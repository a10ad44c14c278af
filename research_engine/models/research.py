from __future__ import annotations

import random
import string
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import StrEnum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from research_engine.agents.subagent import Subagent
    from research_engine.services.memory import MemoryModule


class Depth(StrEnum):
    BASIC = "basic"
    MODERATE = "moderate"
    COMPREHENSIVE = "comprehensive"


class QualityTier(StrEnum):
    PRIMARY = "primary"
    AUTHORITATIVE = "authoritative"
    QUALITY = "quality"
    GENERAL = "general"
    LOW = "low"


class SessionStatus(StrEnum):
    CREATED = "created"
    PLANNING = "planning"
    RESEARCHING = "researching"
    EVALUATING = "evaluating"
    SYNTHESIZING = "synthesizing"
    CITING = "citing"
    COMPLETED = "completed"


RUNNING_STATUSES = frozenset(
    {
        SessionStatus.PLANNING,
        SessionStatus.RESEARCHING,
        SessionStatus.EVALUATING,
        SessionStatus.SYNTHESIZING,
        SessionStatus.CITING,
    }
)


class SessionStateError(RuntimeError):
    """The session's status does not allow the requested operation."""


class SubagentStatus(StrEnum):
    PENDING = "pending"
    SEARCHING = "searching"
    EVALUATING = "evaluating"
    COMPLETED = "completed"
    FAILED = "failed"


class Decision(StrEnum):
    CONTINUE = "continue"
    EXIT = "exit"


class GapKind(StrEnum):
    MISSING_COVERAGE = "missing_coverage"
    INSUFFICIENT_SOURCES = "insufficient_sources"
    NO_PRIMARY_SOURCES = "no_primary_sources"


GAP_LABELS = {
    GapKind.MISSING_COVERAGE: "Missing coverage",
    GapKind.INSUFFICIENT_SOURCES: "Insufficient sources for",
    GapKind.NO_PRIMARY_SOURCES: "No primary sources for",
}


@dataclass(frozen=True, slots=True)
class DepthProfile:
    max_iterations: int
    aspect_count: int
    coverage_threshold: int
    min_sources_per_aspect: int


DEPTH_PROFILES: dict[Depth, DepthProfile] = {
    Depth.BASIC: DepthProfile(
        max_iterations=2, aspect_count=2, coverage_threshold=60, min_sources_per_aspect=2
    ),
    Depth.MODERATE: DepthProfile(
        max_iterations=3, aspect_count=5, coverage_threshold=75, min_sources_per_aspect=3
    ),
    Depth.COMPREHENSIVE: DepthProfile(
        max_iterations=4, aspect_count=11, coverage_threshold=90, min_sources_per_aspect=5
    ),
}


@dataclass(frozen=True, slots=True)
class Gap:
    """A shortfall for one aspect. The aspect travels with the gap."""

    kind: GapKind
    aspect: str

    def describe(self) -> str:
        return f"{GAP_LABELS[self.kind]}: {self.aspect}"

    def __str__(self) -> str:
        return self.describe()


@dataclass(slots=True)
class Source:
    title: str
    url: str
    content: str
    quality_score: int
    quality_tier: QualityTier
    domain: str
    aspect: str
    snippet: str = ""
    content_length: int = 0
    fetched_at: float = field(default_factory=time.time)
    citation_id: int | None = None

    def __post_init__(self) -> None:
        if not self.content_length:
            self.content_length = len(self.content)

    def to_dict(self, *, include_content: bool = False) -> dict[str, Any]:
        data: dict[str, Any] = {
            "title": self.title,
            "url": self.url,
            "domain": self.domain,
            "aspect": self.aspect,
            "quality_score": self.quality_score,
            "quality_tier": self.quality_tier.value,
            "content_length": self.content_length,
            "fetched_at": self.fetched_at,
            "citation_id": self.citation_id,
        }
        if include_content:
            data["content"] = self.content
        return data


@dataclass(frozen=True, slots=True)
class IterationResult:
    iteration: int
    aspects_researched: tuple[str, ...]
    source_count: int
    coverage_score: int
    gaps: tuple[Gap, ...]
    decision: Decision
    reasoning: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "iteration": self.iteration,
            "aspects_researched": list(self.aspects_researched),
            "source_count": self.source_count,
            "coverage_score": self.coverage_score,
            "gaps": [gap.describe() for gap in self.gaps],
            "decision": self.decision.value,
            "reasoning": self.reasoning,
        }


def new_session_id() -> str:
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=6))
    return f"rs_{int(time.time() * 1000)}_{suffix}"


@dataclass
class Session:
    """Unit of work for one research topic."""

    topic: str
    depth: Depth
    memory: MemoryModule
    max_content_per_page: int = 50000
    id: str = field(default_factory=new_session_id)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    status: SessionStatus = SessionStatus.CREATED
    iteration: int = 0
    sources: list[Source] = field(default_factory=list)
    subagents: list[Subagent] = field(default_factory=list)
    queries_executed: list[str] = field(default_factory=list)
    report: str = ""
    cited_report: str = ""
    completed_at: datetime | None = None

    @property
    def profile(self) -> DepthProfile:
        return DEPTH_PROFILES[self.depth]

    @property
    def max_iterations(self) -> int:
        return self.profile.max_iterations

    @property
    def is_running(self) -> bool:
        return self.status in RUNNING_STATUSES

    def claim(self) -> None:
        """Reserve a created session for exactly one research run."""
        if self.status != SessionStatus.CREATED:
            raise SessionStateError(f"Session {self.id} is already {self.status.value}")
        self.status = SessionStatus.PLANNING

    def source_urls(self) -> set[str]:
        return {source.url for source in self.sources}

    def sources_for(self, aspect: str) -> list[Source]:
        return [source for source in self.sources if source.aspect == aspect]

    def total_content_length(self) -> int:
        return sum(source.content_length for source in self.sources)

    def merge_sources(self, sources: list[Source]) -> int:
        """Add sources not yet known by URL; the first one seen wins."""
        known = self.source_urls()
        added = 0
        for source in sources:
            if source.url in known:
                continue
            self.sources.append(source)
            known.add(source.url)
            added += 1
        return added

    def duration_seconds(self) -> float:
        end = self.completed_at or datetime.now(timezone.utc)
        return (end - self.created_at).total_seconds()
