from __future__ import annotations

import asyncio
import re

import httpx
from loguru import logger

from research_engine.config import settings
from research_engine.tools import content_extractor

BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}

BINARY_CONTENT = re.compile(r"image|video|audio|pdf|octet-stream|zip|tar")


async def fetch_content(url: str, max_chars: int) -> str:
    """Fetch a page and return its cleaned text.

    An empty string means nothing usable was obtained: a malformed URL,
    network failure or timeout, a non-2xx status, or a non-text content type.
    """
    try:
        async with httpx.AsyncClient(
            timeout=settings.fetch_timeout_seconds,
            follow_redirects=True,
            headers=BROWSER_HEADERS,
        ) as client:
            response = await client.get(url)
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        logger.warning(f"Fetch error for {url}: {e}")
        return ""

    if not response.is_success:
        logger.warning(f"Fetch failed for {url}: {response.status_code}")
        return ""

    content_type = response.headers.get("content-type", "")
    if BINARY_CONTENT.search(content_type):
        logger.debug(f"Skipping binary content for {url}: {content_type}")
        return ""

    extracted = await asyncio.to_thread(
        content_extractor.extract_main_content, url, response.text
    )
    return extracted.render(max_chars)
