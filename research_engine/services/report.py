"""Structured research report.

Section order is consumed downstream and must stay fixed: executive
summary, research plan, iteration history, subagent reports, detailed
source analysis, sources by tier, session metadata.
"""
from __future__ import annotations

from research_engine.config import settings
from research_engine.models.research import QualityTier, Session, Source
from research_engine.services.source_quality import TIER_SCORES

TIER_HEADINGS = {
    QualityTier.PRIMARY: "Primary Sources",
    QualityTier.AUTHORITATIVE: "Authoritative Sources",
    QualityTier.QUALITY: "Quality Sources",
    QualityTier.GENERAL: "General Sources",
    QualityTier.LOW: "Low Quality Sources",
}


def rank_sources(sources: list[Source]) -> list[Source]:
    """Quality score descending; ties keep their original order."""
    return sorted(sources, key=lambda source: source.quality_score, reverse=True)


def _kchars(count: int, digits: int = 1) -> str:
    return f"{count / 1000:.{digits}f}K"


def _executive_summary(session: Session, ranked: list[Source]) -> str:
    memory = session.memory
    latest = memory.latest_result
    coverage = latest.coverage_score if latest else 0
    total_content = session.total_content_length()
    counts = {tier: sum(1 for s in ranked if s.quality_tier == tier) for tier in QualityTier}

    lines = [
        "## Executive Summary",
        "",
        f"Completed {len(memory.iteration_history)} research iterations with "
        f"{len(session.subagents)} subagents, analyzing **{len(ranked)} sources** "
        f"with **{_kchars(total_content, 0)} characters** of content. "
        f"Final coverage score: **{coverage}%**.",
        "",
        "| Metric | Value |",
        "|--------|-------|",
        f"| Aspects Planned | {len(memory.plan)} |",
        f"| Aspects Covered | {len(memory.aspects_covered)} |",
    ]
    for tier in QualityTier:
        lines.append(f"| {TIER_HEADINGS[tier]} | {counts[tier]} |")
    lines.extend(
        [
            f"| Queries Executed | {len(session.queries_executed)} |",
            f"| Coverage Score | {coverage}% |",
            f"| Duration | {session.duration_seconds():.1f}s |",
        ]
    )
    return "\n".join(lines)


def _research_plan(session: Session) -> str:
    lines = ["## Research Plan", ""]
    for aspect in session.memory.plan:
        marker = "x" if session.memory.is_covered(aspect) else " "
        lines.append(f"- [{marker}] {aspect} ({len(session.sources_for(aspect))} sources)")
    if not session.memory.plan:
        lines.append("No aspects were planned.")
    return "\n".join(lines)


def _iteration_history(session: Session) -> str:
    lines = ["## Iteration History", ""]
    if not session.memory.iteration_history:
        lines.append("No iterations were run.")
    for result in session.memory.iteration_history:
        gaps = "; ".join(gap.describe() for gap in result.gaps) or "none"
        lines.extend(
            [
                f"### Iteration {result.iteration + 1}",
                "",
                f"- **Aspects researched:** {', '.join(result.aspects_researched) or 'none'}",
                f"- **Sources:** {result.source_count}",
                f"- **Coverage:** {result.coverage_score}%",
                f"- **Gaps:** {gaps}",
                f"- **Decision:** {result.decision.value}",
                f"- **Reasoning:** {result.reasoning}",
                "",
            ]
        )
    return "\n".join(lines).rstrip()


def _subagent_reports(session: Session) -> str:
    lines = ["## Subagent Reports", ""]
    if not session.subagents:
        lines.append("No subagents were spawned.")
    for agent in session.subagents:
        lines.extend(
            [
                f"### {agent.id}: {agent.aspect}",
                "",
                f"- **Iteration:** {agent.iteration + 1}",
                f"- **Status:** {agent.status.value}",
                f"- **Queries:** {len(agent.queries)} ({len(agent.failed_queries)} failed)",
                f"- **Sources:** {len(agent.sources)}",
            ]
        )
        if agent.error:
            lines.append(f"- **Error:** {agent.error}")
        if agent.findings:
            lines.append("- **Findings:**")
            lines.extend(f"  - {finding}" for finding in agent.findings)
        lines.append("")
    return "\n".join(lines).rstrip()


def _detailed_sources(ranked: list[Source]) -> str:
    excerpt_chars = max(int(settings.report_excerpt_chars), 0)
    lines = ["## Detailed Source Analysis", ""]
    if not ranked:
        lines.append("No sources were gathered.")
    for index, source in enumerate(ranked[: settings.report_top_sources], 1):
        lines.extend(
            [
                f"### {index}. {source.title}",
                "",
                f"- **URL:** {source.url}",
                f"- **Domain:** {source.domain}",
                f"- **Aspect:** {source.aspect}",
                f"- **Quality:** {source.quality_tier.value} ({source.quality_score}/10)",
                f"- **Content Length:** {_kchars(source.content_length)} chars",
                "",
            ]
        )
        if source.content:
            excerpt = source.content[:excerpt_chars]
            lines.extend(["**Content:**", "", excerpt])
            remaining = len(source.content) - len(excerpt)
            if remaining > 0:
                lines.extend(["", f"*[Content truncated - {_kchars(remaining)} more chars available]*"])
            lines.append("")
        lines.extend(["---", ""])
    return "\n".join(lines).rstrip()


def _sources_by_tier(ranked: list[Source]) -> str:
    lines = ["## Sources by Quality Tier", ""]
    for tier in QualityTier:
        members = [source for source in ranked if source.quality_tier == tier]
        if not members:
            continue
        lines.extend([f"### {TIER_HEADINGS[tier]} (Score {TIER_SCORES[tier]})", ""])
        for index, source in enumerate(members, 1):
            lines.append(
                f"{index}. [{source.title}]({source.url}) - {source.domain} "
                f"({_kchars(source.content_length)})"
            )
        lines.append("")
    if len(lines) == 2:
        lines.append("No sources were gathered.")
    return "\n".join(lines).rstrip()


def _session_metadata(session: Session) -> str:
    lines = [
        "## Session Metadata",
        "",
        f"- **Session ID:** {session.id}",
        f"- **Topic:** {session.topic}",
        f"- **Depth:** {session.depth.value}",
        f"- **Status:** {session.status.value}",
        f"- **Iterations:** {len(session.memory.iteration_history)}/{session.max_iterations}",
        f"- **Total Sources:** {len(session.sources)}",
        f"- **Total Content:** {_kchars(session.total_content_length(), 0)} characters",
        f"- **Started:** {session.created_at.isoformat()}",
        f"- **Duration:** {session.duration_seconds():.1f}s",
    ]
    if session.queries_executed:
        lines.extend(["", "### Queries Executed", ""])
        lines.extend(f'{i}. "{q}"' for i, q in enumerate(session.queries_executed, 1))
    return "\n".join(lines)


def synthesize_report(session: Session) -> str:
    ranked = rank_sources(session.sources)
    sections = [
        f"# Deep Research Report: {session.topic}",
        _executive_summary(session, ranked),
        _research_plan(session),
        _iteration_history(session),
        _subagent_reports(session),
        _detailed_sources(ranked),
        _sources_by_tier(ranked),
        _session_metadata(session),
    ]
    return "\n\n".join(sections) + "\n"
