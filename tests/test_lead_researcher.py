from __future__ import annotations

import pytest

from research_engine.agents import lead_researcher
from research_engine.models.research import (
    DEPTH_PROFILES,
    Decision,
    Depth,
    Gap,
    GapKind,
    QualityTier,
)


def _cover(session, aspect, urls, make_source, **kwargs):
    session.merge_sources([make_source(url, aspect=aspect, **kwargs) for url in urls])
    session.memory.mark_covered(aspect)


@pytest.mark.parametrize("depth,count", [("basic", 2), ("moderate", 5), ("comprehensive", 11)])
def test_plan_returns_aspect_count_for_depth(depth, count):
    aspects = lead_researcher.plan("quantum computing", depth)

    assert len(aspects) == count == DEPTH_PROFILES[Depth(depth)].aspect_count
    assert all(aspect.startswith("quantum computing ") for aspect in aspects)


def test_plan_sets_are_prefixes_of_deeper_plans():
    basic = lead_researcher.plan("X", Depth.BASIC)
    moderate = lead_researcher.plan("X", Depth.MODERATE)
    comprehensive = lead_researcher.plan("X", Depth.COMPREHENSIVE)

    assert moderate[: len(basic)] == basic
    assert comprehensive[: len(moderate)] == moderate


def test_plan_normalizes_topic_whitespace():
    assert lead_researcher.plan("  deep   sea  ", "basic")[0] == "deep sea overview definition"


def test_coverage_is_zero_for_empty_session(make_session):
    session = make_session(depth="moderate")
    session.memory.save_plan(lead_researcher.plan("X", "moderate"))

    assert lead_researcher.compute_coverage(session) == 0


def test_coverage_combines_aspects_tiers_and_volume(make_session, make_source):
    session = make_session(depth="moderate")
    plan = lead_researcher.plan("X", "moderate")
    session.memory.save_plan(plan)
    _cover(session, plan[0], ["https://agency.gov/1"], make_source)
    _cover(session, plan[1], ["https://en.wikipedia.org/wiki/X"], make_source)

    # 50 * 2/5 + 5 primary + 3 authoritative
    assert lead_researcher.compute_coverage(session) == 28


def test_coverage_is_capped_at_100(make_session, make_source):
    session = make_session(depth="basic")
    plan = lead_researcher.plan("X", "basic")
    session.memory.save_plan(plan)
    big = "y" * 60_000
    for aspect in plan:
        _cover(session, aspect, [f"https://agency.gov/{aspect}/{i}" for i in range(6)], make_source, content=big)
    _cover(session, plan[0], [f"https://en.wikipedia.org/wiki/{i}" for i in range(6)], make_source)

    score = lead_researcher.compute_coverage(session)

    assert isinstance(score, int)
    assert score == 100


def test_coverage_rounds_half_up(make_session):
    session = make_session(depth="comprehensive")
    plan = lead_researcher.plan("X", "comprehensive")
    session.memory.save_plan(plan)
    session.memory.mark_covered(plan[0])

    # 50 / 11 = 4.54...
    assert lead_researcher.compute_coverage(session) == 5


def test_identify_gaps_tags_each_aspect(make_session, make_source):
    session = make_session(depth="basic")
    plan = lead_researcher.plan("X", "basic")
    session.memory.save_plan(plan)
    _cover(session, plan[0], ["https://agency.gov/1"], make_source)

    gaps = lead_researcher.identify_gaps(session)

    assert gaps == [
        Gap(GapKind.INSUFFICIENT_SOURCES, plan[0]),
        Gap(GapKind.MISSING_COVERAGE, plan[1]),
    ]


def test_identify_gaps_flags_missing_primary_sources_when_comprehensive(make_session, make_source):
    session = make_session(depth="comprehensive")
    plan = lead_researcher.plan("X", "comprehensive")
    session.memory.save_plan(plan[:1])
    _cover(
        session,
        plan[0],
        [f"https://medium.com/p/{i}" for i in range(5)],
        make_source,
    )

    assert lead_researcher.identify_gaps(session) == [Gap(GapKind.NO_PRIMARY_SOURCES, plan[0])]


def test_select_aspects_first_iteration_takes_three_uncovered(make_session):
    session = make_session(depth="moderate")
    plan = lead_researcher.plan("X", "moderate")
    session.memory.save_plan(plan)

    assert lead_researcher.select_aspects(session) == plan[:3]


def test_select_aspects_later_iterations_prioritize_gaps(make_session):
    session = make_session(depth="moderate")
    plan = lead_researcher.plan("X", "moderate")
    session.memory.save_plan(plan)
    session.memory.mark_covered(plan[0])
    session.memory.mark_covered(plan[4])
    session.memory.set_gaps([Gap(GapKind.INSUFFICIENT_SOURCES, plan[4])])
    session.iteration = 1

    assert lead_researcher.select_aspects(session) == [plan[4], plan[1], plan[2], plan[3]]


def test_evaluate_exits_when_threshold_and_source_floor_are_met(make_session, make_source):
    session = make_session(depth="basic")
    plan = lead_researcher.plan("X", "basic")
    session.memory.save_plan(plan)
    for aspect in plan:
        _cover(session, aspect, [f"https://agency.gov/{aspect}/{i}" for i in range(2)], make_source)

    result = lead_researcher.evaluate(session, plan)

    assert result.coverage_score == 70
    assert result.decision == Decision.EXIT
    assert result.reasoning.startswith("Coverage threshold met")


def test_evaluate_continues_when_source_floor_is_missed(make_session, make_source):
    session = make_session(depth="basic")
    plan = lead_researcher.plan("X", "basic")
    session.memory.save_plan(plan)
    for aspect in plan:
        _cover(session, aspect, [f"https://agency.gov/{aspect}"], make_source)

    result = lead_researcher.evaluate(session, plan)

    # 60% meets the basic threshold, but 2 sources < 2 per aspect x 2 aspects
    assert result.coverage_score == 60
    assert result.decision == Decision.CONTINUE
    assert result.gaps


def test_evaluate_exits_on_last_allowed_iteration(make_session, make_source):
    session = make_session(depth="basic")
    plan = lead_researcher.plan("X", "basic")
    session.memory.save_plan(plan)
    session.iteration = 1

    result = lead_researcher.evaluate(session, plan)

    assert result.decision == Decision.EXIT
    assert result.reasoning.startswith("Max iterations reached (2/2)")


def test_evaluate_exits_when_no_gaps_remain(make_session, make_source):
    session = make_session(depth="moderate")
    plan = lead_researcher.plan("X", "moderate")
    session.memory.save_plan(plan)
    for aspect in plan:
        _cover(session, aspect, [f"https://medium.com/{aspect}/{i}" for i in range(3)], make_source)

    result = lead_researcher.evaluate(session, plan[:3])

    assert result.coverage_score == 50
    assert result.gaps == ()
    assert result.decision == Decision.EXIT
    assert result.reasoning.startswith("No coverage gaps remain")


def test_evaluate_is_idempotent_on_unchanged_session(make_session, make_source):
    session = make_session(depth="moderate")
    plan = lead_researcher.plan("X", "moderate")
    session.memory.save_plan(plan)
    _cover(session, plan[0], ["https://agency.gov/1", "https://example.com/a"], make_source)

    first = lead_researcher.evaluate(session, plan[:3])
    second = lead_researcher.evaluate(session, plan[:3])

    assert first == second
    assert session.memory.iteration_history == []


def test_required_sources_count_aspects_from_earlier_iterations(make_session, make_source):
    session = make_session(depth="basic")
    plan = lead_researcher.plan("X", "basic")
    session.memory.save_plan(plan)
    earlier = lead_researcher.evaluate(session, plan[:1])
    session.memory.append_iteration_result(earlier)

    assert lead_researcher.aspects_researched_so_far(session, plan[1:]) == plan


def test_primary_tier_sources_score_ten(make_source):
    source = make_source("https://agency.gov/1")

    assert source.quality_tier == QualityTier.PRIMARY
    assert source.quality_score == 10
