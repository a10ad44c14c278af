from __future__ import annotations

import re
from dataclasses import dataclass

from bs4 import BeautifulSoup

STRIP_TAGS = ("script", "style", "nav", "footer", "header", "aside", "noscript", "iframe", "form")
CONTENT_HINT = re.compile(r"content|article|post|entry|text", re.IGNORECASE)


@dataclass
class ExtractedContent:
    url: str
    title: str
    summary: str
    text: str
    method: str
    raw_length: int

    def render(self, max_chars: int) -> str:
        """Title, summary, and body in one clipped blob."""
        parts: list[str] = []
        if self.title:
            parts.append(f"TITLE: {self.title}\n\n")
        if self.summary:
            parts.append(f"SUMMARY: {self.summary}\n\n")
        parts.append(f"CONTENT:\n{self.text}")
        return _truncate("".join(parts), max_chars)


def _normalize_text(text: str) -> str:
    text = text.replace("\xa0", " ")
    text = re.sub(r"\r\n?", "\n", text)
    text = re.sub(r"[ \t]+", " ", text)
    text = re.sub(r" *\n *", "\n", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def _truncate(text: str, max_chars: int) -> str:
    if max_chars <= 0:
        return text
    return text[:max_chars]


def _extract_with_trafilatura(raw_html: str) -> str:
    import trafilatura

    extracted = trafilatura.extract(raw_html, output_format="txt")
    if not isinstance(extracted, str):
        return ""
    return _normalize_text(extracted)


def _extract_with_soup(soup: BeautifulSoup) -> str:
    """Readability-style fallback: article, then main, then a content div, then body."""
    for tag in soup(STRIP_TAGS):
        tag.decompose()

    container = (
        soup.find("article")
        or soup.find("main")
        or soup.find("div", class_=CONTENT_HINT)
        or soup.find("div", id=CONTENT_HINT)
        or soup.body
        or soup
    )
    return _normalize_text(container.get_text("\n"))


def extract_main_content(url: str, raw_html: str) -> ExtractedContent:
    """Extract title, meta description, and main text from a fetched page."""
    seems_html = "<html" in raw_html.lower() or "<body" in raw_html.lower()
    primary_input = raw_html if seems_html else f"<html><body>{raw_html}</body></html>"

    soup = BeautifulSoup(primary_input, "html.parser")
    title = _normalize_text(soup.title.get_text()) if soup.title else ""
    meta = soup.find("meta", attrs={"name": "description"})
    summary = _normalize_text(meta.get("content", "")) if meta else ""

    text = _extract_with_trafilatura(primary_input)
    method = "trafilatura"
    if not text:
        text = _extract_with_soup(soup)
        method = "soup"

    return ExtractedContent(
        url=url,
        title=title,
        summary=summary,
        text=text,
        method=method,
        raw_length=len(raw_html),
    )
