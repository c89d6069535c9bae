"""Ingestion orchestrator: fetch, classify, score, enrich, store, dedup, retire."""

from __future__ import annotations

import asyncio
import logging
import sqlite3
from datetime import datetime

from trustwire.config import get_active_sources, get_ingestion_config, get_schedule_config
from trustwire.db import (
    article_exists,
    delete_old_articles,
    finish_run,
    get_active_articles,
    insert_article,
    insert_run,
    mark_duplicate,
)
from trustwire.ingest import SOURCES
from trustwire.intelligence import TextIntelligenceService
from trustwire.models import (
    Article,
    ArticleDraft,
    IngestionResult,
    PipelineRun,
    utcnow,
)
from trustwire.process import PROCESSORS
from trustwire.process.trust import TrustScorer
from trustwire.scheduler import next_scheduled_run

logger = logging.getLogger(__name__)

EMBEDDING_CONTENT_CHARS = 500


class IngestionOrchestrator:
    """Single-flight ingestion pipeline.

    Construct one per process and hand the same instance to every trigger
    (scheduled, startup, manual). A run started while another is in flight
    returns immediately without touching any state.
    """

    def __init__(
        self,
        config: dict,
        conn: sqlite3.Connection,
        intelligence: TextIntelligenceService | None = None,
    ):
        self.config = config
        self.conn = conn
        self.intelligence = intelligence or TextIntelligenceService(config)
        self.classifier = PROCESSORS["classify"](config)
        self.dedup = PROCESSORS["dedup"](config)
        self.scorer = TrustScorer(config)
        self.retention_days = get_ingestion_config(config)["retention_days"]
        self.schedule_hours = tuple(get_schedule_config(config)["hours"])

        self._lock = asyncio.Lock()
        self.last_ingestion_date: datetime | None = None
        self.ingestion_count = 0

    @property
    def is_running(self) -> bool:
        return self._lock.locked()

    def stats(self, now: datetime | None = None) -> dict:
        return {
            "is_running": self.is_running,
            "last_ingestion_date": self.last_ingestion_date,
            "ingestion_count": self.ingestion_count,
            "status": "in-progress" if self.is_running else "idle",
            "next_scheduled_run": next_scheduled_run(now or utcnow(), self.schedule_hours),
        }

    async def run(self) -> PipelineRun | None:
        """Execute one ingestion run, or do nothing if one is already running."""
        if self._lock.locked():
            logger.info("Ingestion already in progress, skipping")
            return None

        async with self._lock:
            run = PipelineRun()
            run_id = insert_run(self.conn, run)
            run.id = run_id
            self.intelligence.usage.reset()
            logger.info("Ingestion run #%d started", run_id)

            try:
                await self._ingest_all(run)
                run.duplicates_marked = self.mark_duplicates()
                run.articles_deleted = delete_old_articles(self.conn, self.retention_days)
                logger.info("Deleted %d old articles", run.articles_deleted)

                run.status = "completed"
                self.last_ingestion_date = utcnow()
                self.ingestion_count += 1
                logger.info(
                    "Ingestion run #%d completed: %d fetched, %d stored, %d skipped, "
                    "%d failed, %d duplicates, %d deleted",
                    run_id, run.articles_fetched, run.articles_stored,
                    run.articles_skipped, run.articles_failed,
                    run.duplicates_marked, run.articles_deleted,
                )
            except Exception:
                logger.exception("Ingestion run #%d failed", run_id)
                run.status = "failed"
            finally:
                run.finished_at = utcnow()
                run.llm_tokens_used = self.intelligence.usage.total_tokens
                run.llm_cost_usd = self.intelligence.usage.cost_usd
                finish_run(self.conn, run_id, run)

            return run

    async def _ingest_all(self, run: PipelineRun) -> None:
        """Fetch every feed of every active source, one at a time."""
        for source_name in get_active_sources(self.config):
            if source_name not in SOURCES:
                logger.warning("Source '%s' enabled but not registered", source_name)
                continue
            source = SOURCES[source_name](self.config)

            for feed in source.feeds():
                feed_name = feed.get("name", feed.get("url"))
                try:
                    drafts = await source.fetch_feed(feed)
                except Exception:
                    logger.exception("Failed to fetch feed '%s'", feed_name)
                    continue

                run.articles_fetched += len(drafts)
                results = await self.process_batch(drafts)
                run.results.extend(results)

                stored = sum(1 for r in results if r.success and not r.skipped)
                skipped = sum(1 for r in results if r.skipped)
                failed = sum(1 for r in results if not r.success)
                run.articles_stored += stored
                run.articles_skipped += skipped
                run.articles_failed += failed
                logger.info(
                    "Processed %s: %d stored, %d already known, %d failed",
                    feed_name, stored, skipped, failed,
                )

    async def process_batch(self, drafts: list[ArticleDraft]) -> list[IngestionResult]:
        """Ingest drafts sequentially; one failing item never stops the rest."""
        self.classifier.process(drafts)
        results = []
        for draft in drafts:
            try:
                results.append(await self.process_draft(draft))
            except Exception as exc:
                logger.exception("Failed to process article '%s'", draft.title)
                results.append(
                    IngestionResult(url=draft.url, title=draft.title, success=False, error=str(exc))
                )
        return results

    async def process_draft(self, draft: ArticleDraft) -> IngestionResult:
        """Enrich, score and store one draft unless its URL is already known."""
        if article_exists(self.conn, draft.url):
            logger.debug("Article already exists: %s", draft.title)
            return IngestionResult(url=draft.url, title=draft.title, success=True, skipped=True)

        summary, credibility, insights = await self.intelligence.process_article(
            draft.title, draft.content
        )
        trust_score = self.scorer.score(draft.source.name, credibility, draft.published_at)
        embedding = await self.intelligence.embed(
            f"{draft.title} {draft.content[:EMBEDDING_CONTENT_CHARS]}"
        )

        article = Article.from_draft(
            draft,
            summary=summary,
            trust_score=trust_score,
            credibility=credibility,
            insights=insights,
            embedding=embedding,
        )
        article.id = insert_article(self.conn, article)
        logger.debug("Stored article #%d: %s", article.id, article.title)
        return IngestionResult(
            url=article.url, title=article.title, success=True, article_id=article.id
        )

    def mark_duplicates(self) -> int:
        """Run one dedup pass over the whole active set and persist each mark."""
        active = get_active_articles(self.conn)
        marked = self.dedup.mark_duplicates(
            active,
            persist=lambda dup, canonical: mark_duplicate(self.conn, dup.id, canonical.id),
        )
        return len(marked)
