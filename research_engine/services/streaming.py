from __future__ import annotations

from typing import Any

from research_engine.models.events import EventType, SSEEvent
from research_engine.models.research import IterationResult


def plan_created(session_id: str, aspects: list[str], depth: str) -> SSEEvent:
    return SSEEvent(
        event=EventType.PLAN_CREATED,
        data={"session_id": session_id, "depth": depth, "aspects": aspects},
    )


def iteration_started(iteration: int, aspects: list[str]) -> SSEEvent:
    return SSEEvent(
        event=EventType.ITERATION_STARTED,
        data={"iteration": iteration, "aspects": aspects},
    )


def agent_started(agent: str, **kwargs: Any) -> SSEEvent:
    return SSEEvent(event=EventType.AGENT_STARTED, data={"agent": agent, **kwargs})


def agent_progress(agent: str, **kwargs: Any) -> SSEEvent:
    return SSEEvent(event=EventType.AGENT_PROGRESS, data={"agent": agent, **kwargs})


def agent_completed(agent: str, **kwargs: Any) -> SSEEvent:
    return SSEEvent(event=EventType.AGENT_COMPLETED, data={"agent": agent, **kwargs})


def iteration_evaluated(result: IterationResult) -> SSEEvent:
    return SSEEvent(event=EventType.ITERATION_EVALUATED, data=result.to_dict())


def synthesis_started(sources_count: int) -> SSEEvent:
    return SSEEvent(event=EventType.SYNTHESIS_STARTED, data={"sources_count": sources_count})


def citations_assigned(count: int) -> SSEEvent:
    return SSEEvent(event=EventType.CITATIONS_ASSIGNED, data={"count": count})


def research_complete(
    session_id: str,
    report: str,
    sources: list[dict],
    coverage_score: int,
    runtime_ms: int | None = None,
) -> SSEEvent:
    data: dict[str, Any] = {
        "session_id": session_id,
        "report": report,
        "sources": sources,
        "coverage_score": coverage_score,
    }
    if runtime_ms is not None:
        data["runtime_ms"] = runtime_ms
    return SSEEvent(event=EventType.RESEARCH_COMPLETE, data=data)


def error(message: str, agent: str | None = None) -> SSEEvent:
    data: dict[str, Any] = {"message": message}
    if agent:
        data["agent"] = agent
    return SSEEvent(event=EventType.ERROR, data=data)
