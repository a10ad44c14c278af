"""Shared research state owned by the lead researcher."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from research_engine.models.research import Gap, IterationResult


@dataclass(frozen=True, slots=True)
class MemorySnapshot:
    """Read-only view handed to a subagent before it is spawned."""

    topic: str
    aspect: str
    prior_findings: tuple[str, ...] = ()
    gaps: tuple[Gap, ...] = ()
    known_urls: frozenset[str] = field(default_factory=frozenset)


class MemoryModule:
    """Plan, findings, gaps, coverage, and iteration history for one session.

    Covered aspects only grow, the iteration history is append-only, and
    the gap list is always the latest snapshot.
    """

    def __init__(self) -> None:
        self.plan: tuple[str, ...] = ()
        self.findings: dict[str, list[str]] = {}
        self.gaps: tuple[Gap, ...] = ()
        self._covered: list[str] = []
        self.iteration_history: list[IterationResult] = []
        self.context: dict[str, Any] = {}

    def save_plan(self, aspects: list[str]) -> None:
        self.plan = tuple(aspects)

    def record_finding(self, aspect: str, text: str) -> None:
        self.findings.setdefault(aspect, []).append(text)

    def set_gaps(self, gaps: list[Gap] | tuple[Gap, ...]) -> None:
        self.gaps = tuple(gaps)

    def mark_covered(self, aspect: str) -> None:
        if aspect not in self._covered:
            self._covered.append(aspect)

    def append_iteration_result(self, record: IterationResult) -> None:
        self.iteration_history.append(record)

    def set_context(self, key: str, value: Any) -> None:
        self.context[key] = value

    def get_context(self, key: str, default: Any = None) -> Any:
        return self.context.get(key, default)

    @property
    def aspects_covered(self) -> tuple[str, ...]:
        return tuple(self._covered)

    def is_covered(self, aspect: str) -> bool:
        return aspect in self._covered

    def uncovered_aspects(self) -> list[str]:
        return [aspect for aspect in self.plan if aspect not in self._covered]

    def findings_for(self, aspect: str) -> tuple[str, ...]:
        return tuple(self.findings.get(aspect, ()))

    @property
    def latest_result(self) -> IterationResult | None:
        return self.iteration_history[-1] if self.iteration_history else None

    def snapshot(self, *, topic: str, aspect: str, known_urls: set[str]) -> MemorySnapshot:
        return MemorySnapshot(
            topic=topic,
            aspect=aspect,
            prior_findings=self.findings_for(aspect),
            gaps=self.gaps,
            known_urls=frozenset(known_urls),
        )
