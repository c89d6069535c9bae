"""Tests for trust scoring."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from trustwire.models import TRUST_WEIGHTS, CredibilityEvaluation, TrustScore
from trustwire.process.trust import TrustScorer, recency_score

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


def test_weights_sum_to_one():
    assert sum(TRUST_WEIGHTS.values()) == pytest.approx(1.0)


def test_overall_is_rounded_weighted_sum():
    score = TrustScore(
        source_reputation=85,
        content_quality=70,
        author_expertise=60,
        recency=97,
        consensus=50,
        citation_references=40,
    )
    # 25.5 + 14 + 9 + 14.55 + 5 + 4 = 72.05
    assert score.overall == 72


def test_overall_rounds_half_up():
    # 0.30 * 55 = 16.5 plus 0 elsewhere
    score = TrustScore(
        source_reputation=55, content_quality=0, author_expertise=0,
        recency=0, consensus=0, citation_references=0,
    )
    assert score.overall == 17


@pytest.mark.parametrize("value", [0, 37, 50, 100])
def test_overall_within_bounds(value):
    score = TrustScore(*([value] * 6))
    assert 0 <= score.overall <= 100
    assert score.overall == value


def test_recency_now_is_100():
    assert recency_score(NOW, NOW) == 100


def test_recency_decay():
    assert recency_score(NOW - timedelta(days=1), NOW) == 97
    assert recency_score(NOW - timedelta(days=10, hours=5), NOW) == 70
    assert recency_score(NOW - timedelta(days=33), NOW) == 1
    assert recency_score(NOW - timedelta(days=34), NOW) == 0
    assert recency_score(NOW - timedelta(days=400), NOW) == 0


def test_recency_future_is_clamped():
    assert recency_score(NOW + timedelta(days=5), NOW) == 100


def test_recency_monotonic():
    scores = [recency_score(NOW - timedelta(hours=h), NOW) for h in range(0, 24 * 40, 7)]
    assert scores == sorted(scores, reverse=True)


def test_recency_naive_date_is_utc():
    assert recency_score(datetime(2025, 5, 31, 12, 0), NOW) == 97


def test_scorer_uses_reputation_and_credibility():
    scorer = TrustScorer({})
    credibility = CredibilityEvaluation(quality=90, author_expertise=80, citations=70)
    score = scorer.score("TechCrunch", credibility, NOW, now=NOW)

    assert score.source_reputation == 80
    assert score.content_quality == 90
    assert score.author_expertise == 80
    assert score.citation_references == 70
    assert score.recency == 100
    assert score.consensus == 50
    # 24 + 18 + 12 + 15 + 5 + 7 = 81
    assert score.overall == 81


def test_scorer_defaults():
    scorer = TrustScorer({})
    score = scorer.score("Some Blog", None, NOW - timedelta(days=40), now=NOW)
    assert score.source_reputation == 50
    assert score.content_quality == 50
    assert score.recency == 0
    # 15 + 10 + 7.5 + 0 + 5 + 5 = 42.5
    assert score.overall == 43


def test_scorer_reputation_override():
    scorer = TrustScorer({"trust": {"source_reputation": {"Some Blog": 61}}})
    assert scorer.source_reputation("Some Blog") == 61
    assert scorer.source_reputation("Economic Times") == 85
