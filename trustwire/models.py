"""Core data models for the trustwire pipeline."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone

CATEGORIES = (
    "technology",
    "business",
    "finance",
    "startup",
    "security",
    "policy",
    "market-analysis",
    "enterprise",
    "cloud",
    "ai-ml",
    "sustainability",
    "other",
)

SENTIMENTS = ("positive", "neutral", "negative")

ENGAGEMENT_FIELDS = {"view": "views", "save": "saves", "share": "shares"}

# Weighted contribution of each trust signal; must sum to 1.0
TRUST_WEIGHTS = {
    "source_reputation": 0.30,
    "content_quality": 0.20,
    "author_expertise": 0.15,
    "recency": 0.15,
    "consensus": 0.10,
    "citation_references": 0.10,
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def canonical_url(url: str) -> str:
    """Normalize an article URL into its identity key."""
    return url.strip().lower()


@dataclass
class SourceInfo:
    """Where an article came from."""

    name: str
    type: str = "rss-feed"  # rss-feed, web-scrape, api
    feed_url: str = ""
    logo: str = ""


@dataclass
class CredibilityEvaluation:
    """Credibility sub-scores from the intelligence service (0-100, None if absent)."""

    quality: float | None = None
    author_expertise: float | None = None
    citations: float | None = None
    warnings: list[str] = field(default_factory=list)


@dataclass
class Insights:
    """Key points, risks and opportunities extracted from an article."""

    key_insights: list[str] = field(default_factory=list)
    risk_factors: list[str] = field(default_factory=list)
    opportunities: list[str] = field(default_factory=list)
    sentiment: str = "neutral"


@dataclass
class TrustScore:
    """Six credibility signals and their weighted overall score."""

    source_reputation: float = 50
    content_quality: float = 50
    author_expertise: float = 50
    recency: float = 50
    consensus: float = 50
    citation_references: float = 50
    overall: int = field(init=False)

    def __post_init__(self):
        # Half-up rounding, not banker's rounding
        weighted = sum(getattr(self, name) * weight for name, weight in TRUST_WEIGHTS.items())
        self.overall = int(math.floor(weighted + 0.5))

    def components(self) -> dict[str, float]:
        return {name: getattr(self, name) for name in TRUST_WEIGHTS}


@dataclass
class ArticleDraft:
    """A fetched, classified article that has not been enriched or stored yet."""

    url: str
    title: str
    content: str
    source: SourceInfo
    published_at: datetime
    author: str | None = None
    source_categories: list[str] = field(default_factory=list)
    category: str = "business"
    tags: list[str] = field(default_factory=list)
    relevant_companies: list[str] = field(default_factory=list)
    relevant_industries: list[str] = field(default_factory=list)

    def __post_init__(self):
        self.url = canonical_url(self.url)


@dataclass
class Article:
    """A persisted, trust-scored news article."""

    url: str
    title: str
    content: str
    source: SourceInfo
    published_at: datetime
    author: str | None = None
    summary: str | None = None
    ingested_at: datetime = field(default_factory=utcnow)
    category: str = "other"
    tags: list[str] = field(default_factory=list)
    relevant_companies: list[str] = field(default_factory=list)
    relevant_industries: list[str] = field(default_factory=list)
    trust_score: TrustScore = field(default_factory=TrustScore)
    credibility: CredibilityEvaluation = field(default_factory=CredibilityEvaluation)
    insights: Insights = field(default_factory=Insights)
    embedding: list[float] | None = None
    views: int = 0
    saves: int = 0
    shares: int = 0
    is_active: bool = True
    is_featured: bool = False
    is_verified: bool = False
    duplicate_of: int | None = None
    id: int | None = None

    def __post_init__(self):
        self.url = canonical_url(self.url)

    @classmethod
    def from_draft(
        cls,
        draft: ArticleDraft,
        *,
        summary: str | None,
        trust_score: TrustScore,
        credibility: CredibilityEvaluation,
        insights: Insights,
        embedding: list[float] | None,
    ) -> Article:
        return cls(
            url=draft.url,
            title=draft.title,
            content=draft.content,
            source=draft.source,
            published_at=draft.published_at,
            author=draft.author,
            summary=summary,
            category=draft.category,
            tags=list(draft.tags),
            relevant_companies=list(draft.relevant_companies),
            relevant_industries=list(draft.relevant_industries),
            trust_score=trust_score,
            credibility=credibility,
            insights=insights,
            embedding=embedding,
        )


@dataclass
class IngestionResult:
    """Outcome of ingesting a single fetched item."""

    url: str
    title: str
    success: bool
    skipped: bool = False
    article_id: int | None = None
    error: str | None = None


@dataclass
class PipelineRun:
    """Record of a single ingestion run."""

    started_at: datetime = field(default_factory=utcnow)
    finished_at: datetime | None = None
    status: str = "running"  # running, completed, failed
    articles_fetched: int = 0
    articles_stored: int = 0
    articles_skipped: int = 0
    articles_failed: int = 0
    duplicates_marked: int = 0
    articles_deleted: int = 0
    llm_tokens_used: int = 0
    llm_cost_usd: float = 0.0
    results: list[IngestionResult] = field(default_factory=list)
    id: int | None = None


@dataclass
class SearchFilters:
    """Structured filters shared by every search query."""

    categories: list[str] = field(default_factory=list)
    sources: list[str] = field(default_factory=list)
    companies: list[str] = field(default_factory=list)
    industries: list[str] = field(default_factory=list)
    date_from: datetime | None = None
    date_to: datetime | None = None
    min_trust_score: float | None = None
    sentiment: str | None = None


@dataclass
class RankedArticle:
    """An article with its hybrid-search score breakdown."""

    article: Article
    keyword_rank: int | None = None
    keyword_score: float = 0.0
    semantic_rank: int | None = None
    semantic_score: float = 0.0
    trust_score: float = 0.0
    final_score: float = 0.0


@dataclass
class SearchResponse:
    """Paginated hybrid-search output."""

    query: str
    results: list[RankedArticle]
    total: int
    trending: list[Article] = field(default_factory=list)
    execution_time_ms: float = 0.0
