"""Tests for ingest sources."""

from __future__ import annotations

import time
from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch

import pytest

from trustwire.ingest import SOURCES
from trustwire.ingest.base import html_to_text, parse_date
from trustwire.ingest.rss import RSSSource
from trustwire.ingest.scrape import ScrapeSource


class FakeEntry(dict):
    """Dict subclass that also supports attribute access (like feedparser)."""

    def __getattr__(self, key):
        try:
            return self[key]
        except KeyError:
            raise AttributeError(key)


FEED = {"url": "https://example.com/feed.xml", "name": "TechCrunch"}


@pytest.fixture
def rss_config():
    return {
        "sources": {"rss": {"enabled": True, "feeds": [FEED]}},
        "ingestion": {"min_summary_chars": 50, "max_content_chars": 120},
    }


@pytest.fixture
def mock_feed_data():
    """Mock feedparser result."""
    long_summary = (
        "<p>An open-source language model has matched the performance of leading "
        "commercial models on <b>major benchmarks</b>, potentially disrupting the AI "
        "industry with wide-reaching implications.</p>"
    )
    entries = [
        FakeEntry({
            "title": "AI Chip Startup Raises $500M",
            "link": "https://Example.com/AI-Chip",
            "summary": "A startup raised $500M.",
            "published_parsed": time.struct_time((2025, 3, 1, 8, 30, 0, 5, 60, 0)),
            "author": "Jane Doe",
            "tags": [FakeEntry({"term": "Hardware"}), FakeEntry({"term": "Funding"})],
        }),
        FakeEntry({
            "title": "Open Source LLM Matches Commercial Models",
            "link": "https://example.com/open-source-llm",
            "summary": long_summary,
        }),
        FakeEntry({"title": "No link entry", "summary": "dropped"}),
    ]
    return FakeEntry({"bozo": 0, "entries": entries})


def test_sources_registered():
    assert SOURCES["rss"] is RSSSource
    assert SOURCES["scrape"] is ScrapeSource


def test_html_to_text():
    assert html_to_text("<p>Hello <b>world</b></p>\n<p>again</p>", 100) == "Hello world again"
    assert html_to_text("<p>abcdef</p>", 3) == "abc"
    assert html_to_text("", 10) == ""


def test_parse_date_formats():
    assert parse_date("Sat, 01 Mar 2025 08:30:00 GMT") == datetime(
        2025, 3, 1, 8, 30, tzinfo=timezone.utc
    )
    assert parse_date("2025-03-01T08:30:00Z") == datetime(2025, 3, 1, 8, 30, tzinfo=timezone.utc)
    assert parse_date("2025-03-01").tzinfo is not None


def test_parse_date_invalid_is_now():
    before = datetime.now(timezone.utc)
    assert parse_date("not a date") >= before
    assert parse_date(None) >= before


@pytest.mark.asyncio
@patch("trustwire.ingest.rss.fetch_html", new_callable=AsyncMock)
@patch("trustwire.ingest.rss.extract_content", new_callable=AsyncMock)
@patch("trustwire.ingest.rss.feedparser")
async def test_rss_fetches_articles(mock_fp, mock_extract, mock_fetch, rss_config, mock_feed_data):
    """RSS source parses feed entries into drafts."""
    mock_fetch.return_value = "<rss/>"
    mock_fp.parse.return_value = mock_feed_data
    mock_extract.return_value = "Full article text pulled from the page."

    drafts = await RSSSource(rss_config).fetch_feed(FEED)

    assert len(drafts) == 2
    first, second = drafts
    assert first.url == "https://example.com/ai-chip"
    assert first.source.name == "TechCrunch"
    assert first.source.type == "rss-feed"
    assert first.author == "Jane Doe"
    assert first.published_at == datetime(2025, 3, 1, 8, 30, tzinfo=timezone.utc)
    assert first.source_categories == ["Hardware", "Funding"]
    # Short summary is replaced by the extracted page text
    assert first.content == "Full article text pulled from the page."
    mock_extract.assert_awaited_once_with("https://Example.com/AI-Chip")

    assert "<b>" not in second.content
    assert len(second.content) == 120
    assert second.published_at.tzinfo is not None


@pytest.mark.asyncio
@patch("trustwire.ingest.rss.fetch_html", new_callable=AsyncMock)
@patch("trustwire.ingest.rss.extract_content", new_callable=AsyncMock)
@patch("trustwire.ingest.rss.feedparser")
async def test_rss_falls_back_to_title(mock_fp, mock_extract, mock_fetch, rss_config):
    mock_fp.parse.return_value = FakeEntry({
        "bozo": 0,
        "entries": [FakeEntry({"title": "Only a headline", "link": "https://example.com/h"})],
    })
    mock_extract.return_value = None

    [draft] = await RSSSource(rss_config).fetch_feed(FEED)
    assert draft.content == "Only a headline"


@pytest.mark.asyncio
@patch("trustwire.ingest.rss.fetch_html", new_callable=AsyncMock)
@patch("trustwire.ingest.rss.feedparser")
async def test_rss_broken_feed_raises(mock_fp, mock_fetch, rss_config):
    mock_fp.parse.return_value = FakeEntry({
        "bozo": 1, "bozo_exception": "mismatched tag", "entries": [],
    })
    with pytest.raises(ValueError, match="Unparseable feed"):
        await RSSSource(rss_config).fetch_feed(FEED)


def test_rss_default_feeds():
    source = RSSSource({"sources": {"rss": {"enabled": True}}})
    names = [f["name"] for f in source.feeds()]
    assert names[0] == "Economic Times"
    assert len(names) == 6


SCRAPE_HTML = """
<html><body>
  <div class="post">
    <h2><a href="/news/one">Cloud spending surges</a></h2>
    <p>Enterprises doubled their cloud budgets.</p>
    <time datetime="2025-03-02T10:00:00Z">March 2</time>
  </div>
  <div class="post">
    <h3>Headline without link</h3>
    <span class="date">Mon, 03 Mar 2025 09:00:00 GMT</span>
  </div>
  <div class="post"><p>No title here</p></div>
</body></html>
"""


@pytest.mark.asyncio
@patch("trustwire.ingest.scrape.fetch_html", new_callable=AsyncMock)
async def test_scrape_source(mock_fetch):
    mock_fetch.return_value = SCRAPE_HTML
    feed = {"name": "Example Newsroom", "url": "https://example.com/news", "selector": "div.post"}

    drafts = await ScrapeSource({}).fetch_feed(feed)

    assert len(drafts) == 2
    first, second = drafts
    assert first.title == "Cloud spending surges"
    assert first.url == "https://example.com/news/one"
    assert first.content == "Enterprises doubled their cloud budgets."
    assert first.published_at == datetime(2025, 3, 2, 10, 0, tzinfo=timezone.utc)
    assert first.source.type == "web-scrape"

    assert second.url == "https://example.com/news"
    assert second.content == "Headline without link"
    assert second.published_at == datetime(2025, 3, 3, 9, 0, tzinfo=timezone.utc)
