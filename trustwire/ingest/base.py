"""Abstract base class for all source fetchers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime

from bs4 import BeautifulSoup

from trustwire.config import get_feeds, get_ingestion_config
from trustwire.models import ArticleDraft, utcnow


def html_to_text(html: str, max_chars: int) -> str:
    """Visible text of an HTML fragment, whitespace-collapsed and capped."""
    if not html:
        return ""
    text = BeautifulSoup(html, "html.parser").get_text(" ", strip=True)
    return " ".join(text.split())[:max_chars]


def parse_date(value: str | None) -> datetime:
    """Best-effort date parsing (RFC 2822 or ISO 8601); falls back to now in UTC."""
    if not value:
        return utcnow()
    value = value.strip()
    parsed = None
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return utcnow()
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class BaseSource(ABC):
    """Base class for news source fetchers."""

    def __init__(self, config: dict):
        self.config = config
        ingestion = get_ingestion_config(config)
        self.max_content_chars = ingestion["max_content_chars"]
        self.min_summary_chars = ingestion["min_summary_chars"]

    def feeds(self) -> list[dict]:
        """Configured feed definitions ({name, url, ...}) for this source."""
        return get_feeds(self.config, self.name)

    @abstractmethod
    async def fetch_feed(self, feed: dict) -> list[ArticleDraft]:
        """Fetch one feed. Raises on failure; callers isolate feeds from each other."""
        ...

    @property
    @abstractmethod
    def name(self) -> str:
        """Registry name of the source."""
        ...
