"""Domain-based source quality classification."""
from __future__ import annotations

import re
from urllib.parse import urlparse

from research_engine.models.research import QualityTier

TIER_SCORES: dict[QualityTier, int] = {
    QualityTier.PRIMARY: 10,
    QualityTier.AUTHORITATIVE: 8,
    QualityTier.QUALITY: 7,
    QualityTier.GENERAL: 5,
    QualityTier.LOW: 3,
}

# Ordered: the first tier with a matching pattern wins. Patterns see the
# hostname only, so path-qualified entries such as microsoft.com/research
# never match.
DOMAIN_PATTERNS: list[tuple[QualityTier, list[str]]] = [
    (
        QualityTier.PRIMARY,
        [
            r"\.gov$", r"\.edu$", r"arxiv\.org", r"nature\.com", r"science\.org",
            r"ieee\.org", r"acm\.org", r"ncbi\.nlm\.nih\.gov", r"pubmed", r"nih\.gov",
            r"who\.int", r"cdc\.gov", r"fda\.gov", r"europa\.eu",
            r"springer\.com", r"wiley\.com", r"sciencedirect\.com", r"jstor\.org",
            r"github\.com", r"gitlab\.com", r"docs\.", r"developer\.",
            r"anthropic\.com", r"openai\.com", r"google\.ai", r"microsoft\.com/research",
            r"research\.google", r"deepmind\.com", r"huggingface\.co",
        ],
    ),
    (
        QualityTier.AUTHORITATIVE,
        [
            r"wikipedia\.org", r"britannica\.com",
            r"reuters\.com", r"apnews\.com", r"bbc\.com", r"bbc\.co\.uk",
            r"nytimes\.com", r"wsj\.com", r"economist\.com", r"ft\.com",
            r"theguardian\.com", r"washingtonpost\.com", r"bloomberg\.com",
        ],
    ),
    (
        QualityTier.QUALITY,
        [
            r"stackoverflow\.com", r"stackexchange\.com",
            r"techcrunch\.com", r"wired\.com", r"arstechnica\.com", r"theverge\.com",
            r"hbr\.org", r"forbes\.com", r"businessinsider\.com",
            r"towardsdatascience\.com", r"analyticsvidhya\.com",
        ],
    ),
    (
        QualityTier.GENERAL,
        [r"medium\.com", r"dev\.to", r"hashnode", r"substack\.com", r"notion\.site"],
    ),
    (
        QualityTier.LOW,
        [
            r"pinterest", r"facebook\.com", r"twitter\.com", r"x\.com",
            r"instagram\.com", r"tiktok\.com", r"snapchat\.com",
            r"reddit\.com", r"quora\.com", r"linkedin\.com",
            r"w3schools\.com", r"geeksforgeeks\.org",
        ],
    ),
]

_COMPILED = [
    (tier, [re.compile(pattern) for pattern in patterns])
    for tier, patterns in DOMAIN_PATTERNS
]


def _hostname(url: str) -> str | None:
    try:
        host = urlparse(url).hostname
    except ValueError:
        return None
    return host.lower() if host else None


def assess(url: str) -> tuple[int, QualityTier]:
    """Classify a URL by its origin domain into (score, tier)."""
    host = _hostname(url)
    if host is None:
        return TIER_SCORES[QualityTier.LOW], QualityTier.LOW

    for tier, patterns in _COMPILED:
        if any(pattern.search(host) for pattern in patterns):
            return TIER_SCORES[tier], tier

    return TIER_SCORES[QualityTier.GENERAL], QualityTier.GENERAL
