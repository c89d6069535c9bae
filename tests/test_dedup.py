"""Tests for title-based near-duplicate detection."""

from __future__ import annotations

import itertools
import random
import threading
from datetime import datetime, timedelta, timezone

import pytest

from trustwire.models import Article, SourceInfo
from trustwire.process import PROCESSORS
from trustwire.process.dedup import DedupProcessor, title_similarity

BASE = datetime(2025, 6, 1, tzinfo=timezone.utc)


def _article(article_id: int, title: str, hours: int = 0) -> Article:
    return Article(
        id=article_id,
        url=f"https://example.com/{article_id}",
        title=title,
        content="",
        source=SourceInfo(name="Test"),
        published_at=BASE + timedelta(hours=hours),
    )


def test_title_similarity():
    assert title_similarity("same title", "same title") == 1.0
    assert title_similarity("", "") == 1.0
    assert title_similarity("abc", "") == 0.0
    assert title_similarity("kitten", "sitting") == pytest.approx(1 - 3 / 7)


def test_similarity_is_case_sensitive():
    assert title_similarity("ABC", "abc") == 0.0


def test_gpt5_scenario_is_duplicate():
    similarity = title_similarity("OpenAI launches GPT-5", "OpenAI Launches GPT 5")
    assert similarity > 0.85


def test_newer_article_is_marked():
    older = _article(1, "OpenAI launches GPT-5", hours=0)
    newer = _article(2, "OpenAI Launches GPT 5", hours=3)
    dedup = DedupProcessor({})

    pairs = dedup.mark_duplicates([older, newer])

    assert pairs == [(newer, older)]
    assert newer.is_active is False
    assert newer.duplicate_of == 1
    assert older.is_active is True
    assert older.duplicate_of is None


def test_newer_first_index_is_marked():
    newer = _article(1, "Identical headline here", hours=5)
    older = _article(2, "Identical headline here", hours=1)
    DedupProcessor({}).mark_duplicates([newer, older])
    assert newer.is_active is False
    assert older.is_active is True


def test_date_tie_marks_first_index():
    first = _article(1, "Identical headline here")
    second = _article(2, "Identical headline here")
    DedupProcessor({}).mark_duplicates([first, second])
    assert first.is_active is False
    assert first.duplicate_of == 2
    assert second.is_active is True


def test_unrelated_titles_never_dedup():
    articles = [
        _article(1, "Fed holds interest rates steady"),
        _article(2, "New smartphone launches in India"),
        _article(3, "Startup raises seed round"),
    ]
    assert DedupProcessor({}).mark_duplicates(articles) == []
    assert all(a.is_active for a in articles)


def test_marked_article_is_not_compared_again():
    # 1 is newest; it is marked against 2 and must not be compared with 3
    a1 = _article(1, "Market rally continues today", hours=10)
    a2 = _article(2, "Market rally continues today", hours=0)
    a3 = _article(3, "Market rally continues today", hours=5)
    pairs = DedupProcessor({}).mark_duplicates([a1, a2, a3])

    assert [(d.id, c.id) for d, c in pairs] == [(1, 2), (3, 2)]
    assert a2.is_active is True


def test_canonical_marked_later_takes_its_duplicates():
    newest = _article(1, "OpenAI launches GPT-5", hours=10)
    middle = _article(2, "OpenAI launches GPT-5", hours=5)
    oldest = _article(3, "OpenAI launches GPT-5", hours=0)
    saved = []

    pairs = DedupProcessor({}).mark_duplicates(
        [newest, middle, oldest], persist=lambda dup, canonical: saved.append((dup.id, canonical.id))
    )

    assert [(d.id, c.id) for d, c in pairs] == [(1, 3), (2, 3)]
    assert newest.duplicate_of == 3
    assert middle.duplicate_of == 3
    assert oldest.is_active is True
    assert saved == [(1, 2), (2, 3), (1, 3)]


def test_every_duplicate_points_at_active_article():
    articles = [_article(n, "Identical headline here", hours=10 - n) for n in range(1, 6)]
    DedupProcessor({}).mark_duplicates(articles)

    by_id = {a.id: a for a in articles}
    assert [a.id for a in articles if a.is_active] == [5]
    for article in articles:
        if not article.is_active:
            assert by_id[article.duplicate_of].is_active


def test_process_returns_active_only():
    articles = [
        _article(1, "Same headline", hours=2),
        _article(2, "Same headline", hours=1),
        _article(3, "Something else entirely"),
    ]
    kept = PROCESSORS["dedup"]({}).process(articles)
    assert [a.id for a in kept] == [2, 3]


def test_threshold_from_config():
    dedup = DedupProcessor({"process": {"dedup": {"title_threshold": 0.5}}})
    a = _article(1, "kitten", hours=1)
    b = _article(2, "sitting", hours=0)
    assert dedup.mark_duplicates([a, b]) == [(a, b)]


def test_persist_failure_continues_scan():
    articles = [
        _article(1, "First story headline", hours=1),
        _article(2, "First story headline", hours=0),
        _article(3, "Second story headline!", hours=1),
        _article(4, "Second story headline!", hours=0),
    ]
    calls = []

    def persist(dup, canonical):
        calls.append(dup.id)
        if dup.id == 1:
            raise RuntimeError("disk full")

    pairs = DedupProcessor({}).mark_duplicates(articles, persist=persist)

    assert calls == [1, 3]
    assert [(d.id, c.id) for d, c in pairs] == [(3, 4)]
    # Rolled back, left for the next run
    assert articles[0].is_active is True
    assert articles[0].duplicate_of is None
    assert articles[2].is_active is False


def test_concurrent_pass_is_skipped():
    dedup = DedupProcessor({})
    articles = [_article(1, "Same headline", hours=1), _article(2, "Same headline")]
    entered = threading.Event()
    release = threading.Event()
    results = {}

    def slow_persist(dup, canonical):
        entered.set()
        release.wait(timeout=5)

    def first_pass():
        results["first"] = dedup.mark_duplicates(articles, persist=slow_persist)

    worker = threading.Thread(target=first_pass)
    worker.start()
    assert entered.wait(timeout=5)

    results["second"] = dedup.mark_duplicates([_article(3, "x"), _article(4, "x")])
    release.set()
    worker.join(timeout=5)

    assert results["second"] == []
    assert len(results["first"]) == 1


def _brute_force(articles: list[Article], threshold: float) -> list[tuple[int, int]]:
    processed: set[int] = set()
    marked = []
    for i, j in itertools.combinations(range(len(articles)), 2):
        if i in processed or j in processed:
            continue
        a, b = articles[i], articles[j]
        if title_similarity(a.title, b.title) <= threshold:
            continue
        if a.published_at >= b.published_at:
            processed.add(i)
            marked.append((a.id, b.id))
        else:
            processed.add(j)
            marked.append((b.id, a.id))
    canonical = dict(marked)
    resolved = []
    for dup, canon in marked:
        while canon in canonical:
            canon = canonical[canon]
        resolved.append((dup, canon))
    return resolved


def test_length_blocking_matches_full_scan():
    rng = random.Random(7)
    stems = [
        "OpenAI launches GPT-5",
        "Markets rally on rate cut hopes",
        "Startup raises Series B",
        "Cloud outage hits major region",
    ]
    articles = []
    for n in range(60):
        title = rng.choice(stems)
        for _ in range(rng.randint(0, 4)):
            pos = rng.randrange(len(title) + 1)
            title = title[:pos] + rng.choice("abcxyz -") + title[pos:]
        articles.append(_article(n + 1, title, hours=rng.randint(0, 5)))

    # Independent copies so the reference scan doesn't see our flags
    twins = [_article(a.id, a.title) for a in articles]
    for twin, original in zip(twins, articles):
        twin.published_at = original.published_at
    expected = _brute_force(twins, 0.85)

    pairs = DedupProcessor({}).mark_duplicates(articles)
    assert [(d.id, c.id) for d, c in pairs] == expected
