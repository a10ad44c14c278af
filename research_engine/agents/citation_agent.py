from __future__ import annotations

import re

from loguru import logger

from research_engine.models.research import Session, Source
from research_engine.services.report import rank_sources

# Newlines always end a sentence; spaces only after terminal punctuation.
SENTENCE_BOUNDARY = re.compile(r"(\n+|(?<=[.!?])[ \t]+)")
TRAILING_PUNCTUATION = re.compile(r"[.!?]+$")
TITLE_PREFIX_CHARS = 30

CITATION_STYLES = ("markdown", "numbered", "apa")


class CitationAgent:
    """Assigns citation ids by quality rank and annotates the report.

    Attribution is textual: a sentence mentioning a source's domain or the
    start of its title is credited to that source. At most one marker per
    sentence.
    """

    name = "citation"

    def assign_ids(self, session: Session) -> list[Source]:
        ranked = rank_sources(session.sources)
        for citation_id, source in enumerate(ranked, 1):
            source.citation_id = citation_id
        return ranked

    @staticmethod
    def _match(sentence: str, ranked: list[Source]) -> Source | None:
        lowered = sentence.lower()
        for source in ranked:
            if f"[{source.citation_id}]" in sentence:
                continue
            domain = source.domain.lower()
            title_prefix = source.title[:TITLE_PREFIX_CHARS].strip().lower()
            if (domain and domain in lowered) or (title_prefix and title_prefix in lowered):
                return source
        return None

    @staticmethod
    def _cite(sentence: str, citation_id: int) -> str:
        stripped = sentence.rstrip()
        trailing_ws = sentence[len(stripped):]
        punctuation = TRAILING_PUNCTUATION.search(stripped)
        if punctuation:
            body = stripped[: punctuation.start()]
            return f"{body} [{citation_id}]{punctuation.group()}{trailing_ws}"
        return f"{stripped} [{citation_id}]{trailing_ws}"

    def insert_citations(self, report: str, ranked: list[Source]) -> tuple[str, int]:
        parts = SENTENCE_BOUNDARY.split(report)
        inserted = 0
        # Even indexes are sentences, odd indexes the separators between them.
        for index in range(0, len(parts), 2):
            sentence = parts[index]
            if not sentence.strip():
                continue
            source = self._match(sentence, ranked)
            if source is None:
                continue
            parts[index] = self._cite(sentence, source.citation_id)
            inserted += 1
        return "".join(parts), inserted

    @staticmethod
    def references(ranked: list[Source]) -> str:
        lines = ["## References", ""]
        if not ranked:
            lines.append("No sources were cited.")
        for source in ranked:
            lines.append(
                f"[{source.citation_id}] {source.title}. {source.url} ({source.quality_tier.value})"
            )
        return "\n".join(lines) + "\n"

    def process(self, session: Session) -> str:
        ranked = self.assign_ids(session)
        cited, inserted = self.insert_citations(session.report, ranked)
        logger.info(
            f"Citations for {session.id}: {len(ranked)} ids assigned, {inserted} markers inserted"
        )
        return cited.rstrip("\n") + "\n\n" + self.references(ranked)


def format_citations(session: Session, style: str = "markdown") -> str:
    """Citation list for a session in markdown, numbered, or APA-like style."""
    if style not in CITATION_STYLES:
        raise ValueError(f"Unsupported citation style: {style}")

    ranked = rank_sources(session.sources)
    lines = [f"## Citations: {session.topic}", "", f"{len(ranked)} sources", ""]
    for rank, source in enumerate(ranked, 1):
        number = source.citation_id or rank
        if style == "apa":
            lines.append(f"[{number}] {source.title}. Retrieved from {source.url}")
        elif style == "numbered":
            lines.append(f"[{number}] {source.title}. {source.url} ({source.quality_tier.value})")
        else:
            lines.append(
                f"{number}. [{source.title}]({source.url}) - *{source.quality_tier.value}* "
                f"({source.quality_score}/10)"
            )
    return "\n".join(lines)
