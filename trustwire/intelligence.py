"""Text intelligence service: summaries, credibility, insights, embeddings, Q&A.

Every call is bounded by a timeout and retried with backoff. Failures never
propagate: each operation falls back to a documented default instead.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from dataclasses import dataclass

from trustwire.config import get_embedding_config, get_intelligence_config
from trustwire.llm import build_provider
from trustwire.llm.base import BaseLLMProvider, UsageTracker
from trustwire.llm.prompts import (
    ANSWER,
    ARTICLE,
    ARTICLE_CONTEXT,
    CONTENT_LIMIT,
    SYSTEM_ANSWER,
    SYSTEM_CREDIBILITY,
    SYSTEM_INSIGHTS,
    SYSTEM_SUMMARY,
)
from trustwire.models import SENTIMENTS, Article, CredibilityEvaluation, Insights
from trustwire.process.embeddings import embed_texts, zero_vector
from trustwire.retry import retry_async

logger = logging.getLogger(__name__)

FALLBACK_SUMMARY_CHARS = 200
FALLBACK_ANSWER = "Unable to generate answer at this time."
NEUTRAL_SCORE = 50


@dataclass
class QueryAnswer:
    answer: str
    articles_used: int


SMART_QUOTES = str.maketrans({"“": '"', "”": '"', "‘": "'", "’": "'"})
FENCED = re.compile(r"```(?:json)?\s*\n?(.*?)\n?```", re.DOTALL)
BRACED = re.compile(r"\{.*\}", re.DOTALL)


def _load_object(text: str) -> dict | None:
    for candidate in (text, text.translate(SMART_QUOTES)):
        try:
            data = json.loads(candidate)
        except (json.JSONDecodeError, ValueError):
            continue
        if isinstance(data, dict):
            return data
    return None


def extract_json(text: str) -> dict | None:
    """Pull a JSON object out of model output.

    The raw text is tried first, then the body of a fenced block, then the
    outermost brace span.
    """
    candidates = [text]
    for pattern, group in ((FENCED, 1), (BRACED, 0)):
        found = pattern.search(text)
        if found:
            candidates.append(found.group(group))
    for candidate in candidates:
        data = _load_object(candidate)
        if data is not None:
            return data
    return None


def _score(value) -> float:
    """Clamp a 0-100 score; anything missing or non-numeric is neutral."""
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not value:
        return NEUTRAL_SCORE
    return min(100, max(0, value))


def _string_list(value, limit: int) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value][:limit]


def default_credibility() -> CredibilityEvaluation:
    return CredibilityEvaluation(
        quality=NEUTRAL_SCORE,
        author_expertise=NEUTRAL_SCORE,
        citations=NEUTRAL_SCORE,
    )


class TextIntelligenceService:
    """LLM-backed enrichment with timeout, retry and fallback defaults."""

    def __init__(self, config: dict):
        self.config = config
        call_cfg = get_intelligence_config(config)
        self.timeout = call_cfg["timeout"]
        self.max_retries = call_cfg["max_retries"]
        self.base_delay = call_cfg["base_delay"]
        self.embedding = get_embedding_config(config)
        self.usage = UsageTracker()
        self._providers: dict[str, BaseLLMProvider] = {}

    def _provider(self, task: str) -> BaseLLMProvider:
        if task not in self._providers:
            # Retries happen once, in _call
            self._providers[task] = build_provider(self.config, task, max_retries=0)
        return self._providers[task]

    async def _call(self, fn, *args, **kwargs):
        return await retry_async(
            fn, *args,
            max_retries=self.max_retries,
            base_delay=self.base_delay,
            timeout=self.timeout,
            **kwargs,
        )

    async def _complete(
        self, task: str, prompt: str, system: str, max_tokens: int, temperature: float
    ) -> str:
        provider = self._provider(task)
        response = await self._call(
            provider.complete, prompt,
            system=system, temperature=temperature, max_tokens=max_tokens,
        )
        self.usage.track(response.input_tokens, response.output_tokens, response.model)
        return response.text

    async def summarize(self, title: str, content: str) -> str:
        prompt = ARTICLE.format(title=title, content=content[:CONTENT_LIMIT])
        try:
            text = await self._complete("summarize", prompt, SYSTEM_SUMMARY, 150, 0.5)
        except Exception:
            logger.warning("Summary generation failed for '%s'", title, exc_info=True)
            return content[:FALLBACK_SUMMARY_CHARS]
        return text.strip() or content[:FALLBACK_SUMMARY_CHARS]

    async def evaluate_credibility(self, title: str, content: str) -> CredibilityEvaluation:
        prompt = ARTICLE.format(title=title, content=content[:CONTENT_LIMIT])
        try:
            text = await self._complete("credibility", prompt, SYSTEM_CREDIBILITY, 300, 0.5)
        except Exception:
            logger.warning("Credibility evaluation failed for '%s'", title, exc_info=True)
            return default_credibility()

        data = extract_json(text)
        if data is None:
            logger.warning("Unparseable credibility evaluation for '%s'", title)
            return default_credibility()
        return CredibilityEvaluation(
            quality=_score(data.get("quality")),
            author_expertise=_score(data.get("authorExpertise")),
            citations=_score(data.get("citations")),
            warnings=_string_list(data.get("warnings"), 20),
        )

    async def generate_insights(self, title: str, content: str) -> Insights:
        prompt = ARTICLE.format(title=title, content=content[:CONTENT_LIMIT])
        try:
            text = await self._complete("insights", prompt, SYSTEM_INSIGHTS, 400, 0.6)
        except Exception:
            logger.warning("Insights generation failed for '%s'", title, exc_info=True)
            return Insights()

        data = extract_json(text)
        if data is None:
            logger.warning("Unparseable insights for '%s'", title)
            return Insights()
        sentiment = data.get("sentiment")
        return Insights(
            key_insights=_string_list(data.get("keyInsights"), 4),
            risk_factors=_string_list(data.get("riskFactors"), 3),
            opportunities=_string_list(data.get("opportunities"), 3),
            sentiment=sentiment if sentiment in SENTIMENTS else "neutral",
        )

    async def process_article(
        self, title: str, content: str
    ) -> tuple[str, CredibilityEvaluation, Insights]:
        """Summary, credibility and insights for one article, requested together."""
        summary, credibility, insights = await asyncio.gather(
            self.summarize(title, content),
            self.evaluate_credibility(title, content),
            self.generate_insights(title, content),
        )
        return summary, credibility, insights

    async def embed(self, text: str) -> list[float]:
        """Fixed-length embedding; a zero vector of the configured dimension on failure."""
        dimension = self.embedding["dimension"]
        text = text[: self.embedding["max_chars"]]
        try:
            if self.embedding["backend"] == "provider":
                vector = await self._embed_remote(text)
            else:
                vector = await self._embed_local(text)
        except Exception:
            logger.warning("Embedding generation failed", exc_info=True)
            return zero_vector(dimension)

        if len(vector) != dimension:
            logger.warning(
                "Embedding has %d dimensions, expected %d; using zero vector",
                len(vector), dimension,
            )
            return zero_vector(dimension)
        return vector

    async def _embed_local(self, text: str) -> list[float]:
        async def _encode():
            matrix = await asyncio.to_thread(embed_texts, [text], self.embedding["model"])
            return [float(x) for x in matrix[0]]

        return await self._call(_encode)

    async def _embed_remote(self, text: str) -> list[float]:
        provider = self._provider("embed")
        response = await self._call(provider.embed, text, self.embedding["model"])
        self.usage.track(response.input_tokens, 0, response.model)
        return list(response.vector)

    async def answer_query(self, query: str, articles: list[Article]) -> QueryAnswer:
        """Answer a question using the given trust-scored articles as context."""
        context = "\n\n".join(
            ARTICLE_CONTEXT.format(
                index=i,
                trust=a.trust_score.overall,
                title=a.title,
                summary=a.summary or "",
                insights="; ".join(a.insights.key_insights),
            )
            for i, a in enumerate(articles, 1)
        )
        prompt = ANSWER.format(context=context, query=query)
        try:
            text = await self._complete("answer", prompt, SYSTEM_ANSWER, 500, 0.7)
        except Exception:
            logger.warning("Query answering failed for '%s'", query, exc_info=True)
            return QueryAnswer(answer=FALLBACK_ANSWER, articles_used=0)
        return QueryAnswer(answer=text.strip(), articles_used=len(articles))
