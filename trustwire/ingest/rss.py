"""RSS/Atom feed source fetcher."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

import feedparser

from trustwire.ingest import register_source
from trustwire.ingest.base import BaseSource, html_to_text
from trustwire.ingest.scraper import extract_content, fetch_html
from trustwire.models import ArticleDraft, SourceInfo, utcnow

logger = logging.getLogger(__name__)


def _entry_date(entry) -> datetime:
    for key in ("published_parsed", "updated_parsed"):
        parsed = entry.get(key)
        if parsed:
            return datetime(*parsed[:6], tzinfo=timezone.utc)
    return utcnow()


def _entry_html(entry) -> str:
    content = entry.get("content")
    if content:
        return content[0].get("value", "")
    return entry.get("summary") or entry.get("description") or ""


@register_source("rss")
class RSSSource(BaseSource):
    """Fetch articles from configured RSS feeds."""

    @property
    def name(self) -> str:
        return "rss"

    async def fetch_feed(self, feed: dict) -> list[ArticleDraft]:
        url = feed["url"]
        source = SourceInfo(
            name=feed.get("name", url),
            type="rss-feed",
            feed_url=url,
            logo=feed.get("logo", ""),
        )
        body = await fetch_html(url)
        parsed = feedparser.parse(body)
        if parsed.get("bozo") and not parsed.entries:
            raise ValueError(f"Unparseable feed {url}: {parsed.get('bozo_exception')}")

        drafts = []
        for entry in parsed.entries:
            link = entry.get("link", "")
            if not link:
                continue
            title = (entry.get("title") or "Untitled").strip()

            content = html_to_text(_entry_html(entry), self.max_content_chars)
            if len(content) < self.min_summary_chars:
                extracted = await extract_content(link)
                if extracted:
                    content = extracted[: self.max_content_chars]
            if not content:
                content = title

            drafts.append(
                ArticleDraft(
                    url=link,
                    title=title,
                    content=content,
                    source=source,
                    published_at=_entry_date(entry),
                    author=entry.get("author"),
                    source_categories=[t.get("term", "") for t in entry.get("tags", [])],
                )
            )

        logger.info("RSS fetched %d articles from %s", len(drafts), source.name)
        return drafts
