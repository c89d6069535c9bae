"""Shared test fixtures."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from trustwire.config import load_config
from trustwire.db import get_connection, init_db
from trustwire.models import Article, Insights, SourceInfo, TrustScore

NOW = datetime.now(timezone.utc).replace(microsecond=0)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def sample_config(tmp_path):
    """Minimal config for testing (no real API keys)."""
    config_text = """
llm:
  providers:
    mock:
      type: "openai_compatible"
      api_key: "test-key"
      base_url: "http://localhost:9999"
      default_model: "test-model"
  tasks:
    summarize: { provider: "mock" }
    credibility: { provider: "mock" }
    insights: { provider: "mock" }
    answer: { provider: "mock" }
    embed: { provider: "mock" }

sources:
  rss:
    enabled: true
    feeds:
      - url: "https://example.com/feed.xml"
        name: "TechCrunch"

intelligence:
  timeout: 5
  max_retries: 0
  base_delay: 0.01
  embeddings:
    backend: "provider"
    dimension: 3

schedule:
  initial_delay_seconds: 1

database:
  path: "DB_PATH_PLACEHOLDER"
"""
    db_path = str(tmp_path / "test.db")
    cfg_path = tmp_path / "config.yaml"
    cfg_path.write_text(config_text.replace("DB_PATH_PLACEHOLDER", db_path))
    return load_config(str(cfg_path))


@pytest.fixture
def db_conn(sample_config):
    """Initialized test database connection."""
    db_path = sample_config["database"]["path"]
    init_db(db_path)
    conn = get_connection(db_path)
    yield conn
    conn.close()


def make_article(
    url: str,
    title: str,
    *,
    days_old: float = 1,
    trust: float = 80,
    source: str = "TechCrunch",
    category: str = "technology",
    tags: list[str] | None = None,
    companies: list[str] | None = None,
    industries: list[str] | None = None,
    embedding: list[float] | None = None,
    content: str = "",
    sentiment: str = "neutral",
) -> Article:
    """Article whose trust components all equal ``trust`` (so overall == trust)."""
    return Article(
        url=url,
        title=title,
        content=content or f"{title}. Full story text.",
        source=SourceInfo(name=source, feed_url="https://example.com/feed.xml"),
        published_at=NOW - timedelta(days=days_old),
        summary=f"Summary of {title}",
        category=category,
        tags=tags or [],
        relevant_companies=companies or [],
        relevant_industries=industries or [],
        trust_score=TrustScore(
            source_reputation=trust,
            content_quality=trust,
            author_expertise=trust,
            recency=trust,
            consensus=trust,
            citation_references=trust,
        ),
        insights=Insights(key_insights=[f"Insight on {title}"], sentiment=sentiment),
        embedding=embedding,
    )


@pytest.fixture
def sample_articles():
    """Five articles spanning categories, trust levels and ages."""
    return [
        make_article(
            "https://example.com/openai-gpt5",
            "OpenAI launches GPT-5 with reasoning upgrades",
            trust=85,
            category="ai-ml",
            tags=["openai", "launches"],
            companies=["OpenAI"],
            industries=["artificial-intelligence"],
            embedding=[1.0, 0.0, 0.0],
        ),
        make_article(
            "https://example.com/google-cloud",
            "Google expands cloud regions in India",
            days_old=2,
            trust=70,
            category="cloud",
            tags=["google", "expands", "cloud"],
            companies=["Google"],
            embedding=[0.0, 1.0, 0.0],
        ),
        make_article(
            "https://example.com/startup-funding",
            "Fintech startup raises Series B funding",
            days_old=3,
            trust=65,
            source="Inc42",
            category="startup",
            tags=["fintech", "startup", "raises"],
            industries=["fintech"],
            embedding=[0.6, 0.8, 0.0],
        ),
        make_article(
            "https://example.com/old-policy",
            "Government drafts new data protection policy",
            days_old=30,
            trust=78,
            source="Economic Times",
            category="policy",
            tags=["government", "policy"],
        ),
        make_article(
            "https://example.com/low-trust",
            "Rumor: Microsoft may acquire gaming studio",
            trust=30,
            source="Unknown Blog",
            category="business",
            companies=["Microsoft"],
            embedding=[0.0, 0.0, 1.0],
        ),
    ]


@pytest.fixture
def stored_articles(db_conn, sample_articles):
    """Sample articles persisted to the test database (ids assigned)."""
    from trustwire.db import insert_article

    for article in sample_articles:
        article.id = insert_article(db_conn, article)
    return sample_articles


@pytest.fixture
def article_factory():
    """Build articles with chosen trust, age and classification."""
    return make_article
