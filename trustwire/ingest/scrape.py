"""List-page scraper for sites without a feed."""

from __future__ import annotations

import logging
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from trustwire.ingest import register_source
from trustwire.ingest.base import BaseSource, parse_date
from trustwire.ingest.scraper import fetch_html
from trustwire.models import ArticleDraft, SourceInfo

logger = logging.getLogger(__name__)


@register_source("scrape")
class ScrapeSource(BaseSource):
    """Turn each element matching a CSS selector into an article draft.

    Feed entries need ``url`` and ``selector``. Inside each match the first
    h2/h3/a is the title, the first paragraph the content and a ``[datetime]``,
    ``.date`` or ``.time`` element the publication date.
    """

    @property
    def name(self) -> str:
        return "scrape"

    async def fetch_feed(self, feed: dict) -> list[ArticleDraft]:
        url = feed["url"]
        source = SourceInfo(name=feed.get("name", "Web Scrape"), type="web-scrape", feed_url=url)
        soup = BeautifulSoup(await fetch_html(url, timeout=10), "html.parser")

        drafts = []
        for element in soup.select(feed["selector"]):
            title_el = element.find(["h2", "h3", "a"])
            title = title_el.get_text(strip=True) if title_el else ""
            if not title:
                continue

            link_el = title_el if title_el.name == "a" else title_el.find("a") or element.find("a")
            href = link_el.get("href") if link_el else None
            desc_el = element.find("p")
            date_el = element.select_one("[datetime], .date, .time")
            date_value = None
            if date_el is not None:
                date_value = date_el.get("datetime") or date_el.get_text(strip=True)

            drafts.append(
                ArticleDraft(
                    url=urljoin(url, href) if href else url,
                    title=title,
                    content=(desc_el.get_text(" ", strip=True) if desc_el else "")[
                        : self.max_content_chars
                    ] or title,
                    source=source,
                    published_at=parse_date(date_value),
                )
            )

        logger.info("Scraped %d articles from %s", len(drafts), url)
        return drafts
