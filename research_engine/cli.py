"""Research Engine - command line entry point.

Runs one research session and prints progress as it happens.
"""

import argparse
import asyncio
import sys
from pathlib import Path

from research_engine.agents.lead_researcher import LeadResearcher
from research_engine.config import ConfigurationError, settings
from research_engine.models.research import Depth
from research_engine.services.session_store import SessionStore


async def run_research(topic: str, depth: str, max_content_per_page: int | None = None) -> str:
    """Run research on the given topic and return the cited report."""
    print(f"Research topic: {topic} ({depth})")
    print("-" * 50)

    store = SessionStore()
    session = store.create(topic, depth, max_content_per_page=max_content_per_page)
    researcher = LeadResearcher()

    async for event in researcher.research(session):
        event_type = event.event.value
        data = event.data

        if event_type == "plan_created":
            aspects = data.get("aspects", [])
            print(f"\n[*] Research Plan ({len(aspects)} aspects):")
            for i, aspect in enumerate(aspects, 1):
                print(f"  {i}. {aspect}")

        elif event_type == "iteration_started":
            print(f"\n[~] Iteration {data.get('iteration', 0) + 1}: {len(data.get('aspects', []))} aspects")

        elif event_type == "agent_completed" and data.get("agent") == "subagent":
            print(f"  [+] {data.get('aspect')}: {data.get('sources')} sources")

        elif event_type == "iteration_evaluated":
            print(f"  [=] Coverage {data.get('coverage_score')}% -> {data.get('decision')}")
            print(f"      {data.get('reasoning')}")

        elif event_type == "synthesis_started":
            print("\n[+] Synthesizing report...")

        elif event_type == "research_complete":
            print("\n[*] Research Complete!")
            print(f"   Runtime: {data.get('runtime_ms')}ms")
            print(f"   Sources: {len(data.get('sources', []))}")
            print(f"   Coverage: {data.get('coverage_score')}%")

        elif event_type == "error":
            print(f"\n[!] Error: {data.get('message', 'Unknown error')}")

    return session.cited_report


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Research Engine - multi-agent topic research")
    parser.add_argument("topic", help="Topic to research")
    parser.add_argument(
        "--depth",
        "-d",
        choices=[d.value for d in Depth],
        default=Depth.MODERATE.value,
        help="Research depth (default: moderate)",
    )
    parser.add_argument(
        "--max-content-per-page",
        type=int,
        default=None,
        help=f"Characters kept per page (default: {settings.max_content_per_page})",
    )
    parser.add_argument("--output", "-o", help="Write the cited report to this file")

    args = parser.parse_args(argv)

    try:
        settings.require_search_credentials()
    except ConfigurationError as e:
        print(f"[!] {e}", file=sys.stderr)
        return 2

    report = asyncio.run(run_research(args.topic, args.depth, args.max_content_per_page))

    if args.output:
        Path(args.output).write_text(report, encoding="utf-8")
        print(f"\nReport written to {args.output}")
    else:
        print(f"\n{'='*50}")
        print("REPORT:")
        print(f"{'='*50}")
        print(report)
    return 0


if __name__ == "__main__":
    sys.exit(main())
