"""Page fetching and article content extraction using trafilatura."""

from __future__ import annotations

import logging

import httpx
import trafilatura

from trustwire.retry import retry_async

logger = logging.getLogger(__name__)

HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/120.0.0.0 Safari/537.36"
    ),
}


async def _get(url: str, timeout: float) -> str:
    async with httpx.AsyncClient(
        timeout=timeout, follow_redirects=True, headers=HEADERS
    ) as client:
        resp = await client.get(url)
        resp.raise_for_status()
        return resp.text


async def fetch_html(url: str, timeout: float = 15, max_retries: int = 2) -> str:
    """Fetch a page or feed body over httpx with retries on transient errors."""
    return await retry_async(_get, url, timeout, max_retries=max_retries, base_delay=0.5)


async def extract_content(url: str) -> str | None:
    """Extract main article text from a URL; None when nothing usable comes back."""
    try:
        html = await fetch_html(url)
        if not html:
            return None
        return trafilatura.extract(html, include_comments=False, include_tables=False)
    except Exception:
        logger.debug("Extraction failed for %s", url, exc_info=True)
        return None
