"""Hybrid search: keyword relevance, semantic similarity and trust in one ranking."""

from __future__ import annotations

import asyncio
import logging
import sqlite3
import time
from itertools import zip_longest

from trustwire import db
from trustwire.config import get_search_config
from trustwire.intelligence import QueryAnswer, TextIntelligenceService
from trustwire.models import Article, RankedArticle, SearchFilters, SearchResponse
from trustwire.process.embeddings import cosine_similarity

logger = logging.getLogger(__name__)

TRENDING_CANDIDATES = 5
TRENDING_ATTACHED = 3
TRENDING_MIN_TRUST = 60
HIGH_TRUST_MIN = 75


def rank_by_similarity(
    query_vector: list[float], articles: list[Article]
) -> list[tuple[Article, float]]:
    scored = [(a, cosine_similarity(query_vector, a.embedding)) for a in articles]
    scored.sort(key=lambda pair: pair[1], reverse=True)
    return scored


def merge_results(
    keyword: list[Article],
    semantic: list[tuple[Article, float]],
    keyword_weight: float = 0.35,
    semantic_weight: float = 0.4,
    trust_weight: float = 0.25,
) -> list[RankedArticle]:
    """Combine both candidate lists into one list ordered by final score.

    Keyword hits are scored by their rank in the keyword list; semantic hits
    keep their raw cosine similarity. Ties keep first-seen order.
    """
    merged: dict[int, RankedArticle] = {}
    total = len(keyword)

    for rank, article in enumerate(keyword):
        merged[article.id] = RankedArticle(
            article=article,
            keyword_rank=rank,
            keyword_score=(1 - rank / total) * keyword_weight,
        )

    for rank, (article, similarity) in enumerate(semantic):
        entry = merged.get(article.id)
        if entry is None:
            entry = merged[article.id] = RankedArticle(article=article)
        entry.semantic_rank = rank
        entry.semantic_score = similarity * semantic_weight

    for entry in merged.values():
        trust = min(1.0, max(0.0, entry.article.trust_score.overall / 100))
        entry.trust_score = trust * trust_weight
        entry.final_score = entry.keyword_score + entry.semantic_score + entry.trust_score

    return sorted(merged.values(), key=lambda e: e.final_score, reverse=True)


class HybridSearchEngine:
    """Read-side queries over the article store."""

    def __init__(
        self,
        config: dict,
        conn: sqlite3.Connection,
        intelligence: TextIntelligenceService | None = None,
    ):
        self.config = config
        self.conn = conn
        self.intelligence = intelligence or TextIntelligenceService(config)
        self.defaults = get_search_config(config)

    async def search(
        self,
        query: str,
        limit: int = 20,
        skip: int = 0,
        filters: SearchFilters | None = None,
        min_trust_score: float | None = None,
        keyword_weight: float | None = None,
        semantic_weight: float | None = None,
        trust_weight: float | None = None,
    ) -> SearchResponse:
        started = time.perf_counter()
        if min_trust_score is None:
            min_trust_score = self.defaults["min_trust_score"]

        # The sqlite reads take turns on the loop; embedding and ranking overlap them
        keyword, semantic, trending = await asyncio.gather(
            self.keyword_search(query, limit * 2, min_trust_score, filters),
            self.semantic_search(query, limit * 2, min_trust_score, filters),
            self._trending_candidates(filters),
        )

        merged = merge_results(
            keyword,
            semantic,
            keyword_weight=self._weight(keyword_weight, "keyword_weight"),
            semantic_weight=self._weight(semantic_weight, "semantic_weight"),
            trust_weight=self._weight(trust_weight, "trust_weight"),
        )
        page = merged[skip:skip + limit]

        top_trending = trending[:TRENDING_ATTACHED]
        page_ids = {entry.article.id for entry in page}
        attached = [] if any(a.id in page_ids for a in top_trending) else top_trending

        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(
            "Search '%s': %d keyword, %d semantic, %d merged (%.1f ms)",
            query, len(keyword), len(semantic), len(merged), elapsed_ms,
        )
        return SearchResponse(
            query=query,
            results=page,
            total=len(merged),
            trending=attached,
            execution_time_ms=elapsed_ms,
        )

    def _weight(self, value: float | None, key: str) -> float:
        return self.defaults[key] if value is None else value

    async def keyword_search(
        self,
        query: str,
        limit: int = 50,
        min_trust_score: float = 0,
        filters: SearchFilters | None = None,
    ) -> list[Article]:
        """FTS lookup on the shared connection; runs on the event loop."""
        try:
            return db.keyword_search(self.conn, query, limit, min_trust_score, filters)
        except Exception:
            logger.exception("Keyword search failed for '%s'", query)
            return []

    async def semantic_search(
        self,
        query: str,
        limit: int = 50,
        min_trust_score: float = 0,
        filters: SearchFilters | None = None,
    ) -> list[tuple[Article, float]]:
        """Embed the query and rank every embedded article by cosine similarity.

        The candidate read stays on the loop with the sqlite connection; the
        similarity ranking runs in a worker thread.
        """
        try:
            query_vector = await self.intelligence.embed(query)
            candidates = db.get_embedded_articles(self.conn, min_trust_score, filters)
            scored = await asyncio.to_thread(rank_by_similarity, query_vector, candidates)
        except Exception:
            logger.exception("Semantic search failed for '%s'", query)
            return []
        return scored[:limit]

    async def _trending_candidates(self, filters: SearchFilters | None) -> list[Article]:
        # Same connection as the other reads, so this one runs on the loop too
        try:
            return self.get_trending_articles(TRENDING_CANDIDATES, filters)
        except Exception:
            logger.exception("Trending lookup failed")
            return []

    def get_trending_articles(
        self,
        limit: int = 10,
        filters: SearchFilters | None = None,
        time_range_days: int = 7,
    ) -> list[Article]:
        return db.get_trending_articles(
            self.conn, limit, filters, time_range_days, min_trust_score=TRENDING_MIN_TRUST
        )

    def get_high_trust_articles(
        self, limit: int = 20, filters: SearchFilters | None = None
    ) -> list[Article]:
        return db.get_high_trust_articles(
            self.conn, limit, filters, min_trust_score=HIGH_TRUST_MIN
        )

    def get_related_articles(self, article_id: int, limit: int = 5) -> list[Article]:
        article = db.get_article(self.conn, article_id)
        if article is None:
            return []
        return db.get_related_articles(self.conn, article, limit)

    def update_engagement(self, article_id: int, kind: str) -> bool:
        updated = db.increment_engagement(self.conn, article_id, kind)
        if not updated:
            logger.warning("Engagement '%s' for unknown article #%d", kind, article_id)
        return updated

    def get_suggestions(self, query: str, limit: int = 8) -> list[str]:
        """Matching tags, companies and categories, taken in turn from each."""
        query = query.strip()
        if not query:
            return []
        groups = [
            db.distinct_values(self.conn, field, query)
            for field in ("tags", "relevant_companies", "category")
        ]
        suggestions: list[str] = []
        for row in zip_longest(*groups):
            for value in row:
                if value is not None and value not in suggestions:
                    suggestions.append(value)
                if len(suggestions) >= limit:
                    return suggestions
        return suggestions

    def get_articles_by_company(
        self, company: str, limit: int = 20, skip: int = 0
    ) -> tuple[list[Article], int]:
        return db.get_articles_by_company(self.conn, company, limit, skip)

    def get_articles_by_category(
        self, category: str, limit: int = 20, skip: int = 0
    ) -> tuple[list[Article], int]:
        return db.get_articles_by_category(self.conn, category, limit, skip)

    async def answer(self, query: str, limit: int = 5) -> QueryAnswer:
        """Search, then answer the question from the top hits."""
        response = await self.search(query, limit=limit)
        articles = [entry.article for entry in response.results]
        return await self.intelligence.answer_query(query, articles)

    def get_stats(self) -> dict:
        by_category = db.count_by_category(self.conn)
        return {
            "total_articles": sum(by_category.values()),
            "by_category": by_category,
        }
