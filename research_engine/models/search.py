from __future__ import annotations

from dataclasses import dataclass


class ProviderError(RuntimeError):
    """The upstream search call failed."""

    def __init__(self, message: str, *, provider: str | None = None):
        super().__init__(message)
        self.provider = provider


@dataclass(slots=True)
class SearchResult:
    title: str
    url: str
    snippet: str = ""
