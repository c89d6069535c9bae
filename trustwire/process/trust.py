"""Composite 0-100 trust score from six weighted credibility signals."""

from __future__ import annotations

import math
from datetime import datetime, timezone

from trustwire.config import get_source_reputation
from trustwire.models import CredibilityEvaluation, TrustScore, utcnow

DEFAULT_SIGNAL = 50
DEFAULT_REPUTATION = 50
CONSENSUS_PLACEHOLDER = 50
RECENCY_DECAY_PER_DAY = 3


def recency_score(published_at: datetime, now: datetime | None = None) -> int:
    """100 for today, minus 3 per whole day of age, clamped to [0, 100]."""
    now = now or utcnow()
    if published_at.tzinfo is None:
        published_at = published_at.replace(tzinfo=timezone.utc)
    days = math.floor((now - published_at).total_seconds() / 86400)
    return max(0, min(100, 100 - RECENCY_DECAY_PER_DAY * days))


def _signal(value: float | None) -> float:
    return DEFAULT_SIGNAL if value is None else value


class TrustScorer:
    """Score articles from source reputation, LLM credibility and recency."""

    def __init__(self, config: dict):
        self.config = config
        self.reputation = get_source_reputation(config)

    def source_reputation(self, source_name: str) -> float:
        return self.reputation.get(source_name, DEFAULT_REPUTATION)

    def score(
        self,
        source_name: str,
        credibility: CredibilityEvaluation | None,
        published_at: datetime,
        now: datetime | None = None,
    ) -> TrustScore:
        credibility = credibility or CredibilityEvaluation()
        return TrustScore(
            source_reputation=self.source_reputation(source_name),
            content_quality=_signal(credibility.quality),
            author_expertise=_signal(credibility.author_expertise),
            recency=recency_score(published_at, now),
            consensus=CONSENSUS_PLACEHOLDER,
            citation_references=_signal(credibility.citations),
        )
