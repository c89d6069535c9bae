"""Near-duplicate detection over the active corpus by title edit distance."""

from __future__ import annotations

import bisect
import logging
import math
import threading
from collections.abc import Callable

from rapidfuzz.distance import Levenshtein

from trustwire.models import Article
from trustwire.process import register_processor
from trustwire.process.base import BaseProcessor

logger = logging.getLogger(__name__)

SIMILARITY_THRESHOLD = 0.85

PersistFn = Callable[[Article, Article], None]


def title_similarity(a: str, b: str) -> float:
    """1 - levenshtein / longer length; two empty titles are identical."""
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return 1 - Levenshtein.distance(a, b) / longest


def _similarity_upper_bound(len_a: int, len_b: int) -> float:
    # Edit distance is at least the length difference
    longest = max(len_a, len_b)
    if longest == 0:
        return 1.0
    return 1 - abs(len_a - len_b) / longest


@register_processor("dedup")
class DedupProcessor(BaseProcessor):
    """Mark the newer article of each near-identical title pair as a duplicate.

    Pairs are visited in (i, j) index order exactly as a full pairwise scan
    would, but only partners whose title length can still clear the threshold
    are compared; the length window is looked up in a sorted index.
    """

    def __init__(self, config: dict):
        super().__init__(config)
        self._lock = threading.Lock()

    @property
    def name(self) -> str:
        return "dedup"

    @property
    def threshold(self) -> float:
        cfg = self.config.get("process", {}).get("dedup", {})
        return cfg.get("title_threshold", SIMILARITY_THRESHOLD)

    def process(self, items: list[Article]) -> list[Article]:
        """Run a pass in memory and return the articles that stay active."""
        self.mark_duplicates(items)
        return [a for a in items if a.is_active]

    def mark_duplicates(
        self, articles: list[Article], persist: PersistFn | None = None
    ) -> list[tuple[Article, Article]]:
        """Single pass over ``articles``; returns (duplicate, canonical) pairs.

        Every canonical in the result is still active: when a canonical is
        itself marked later in the pass, its earlier duplicates are moved onto
        the article that replaced it. ``persist`` is called for every mark and
        every move. A failing call is logged, the in-memory flags are rolled
        back and the scan carries on.
        """
        if not self._lock.acquire(blocking=False):
            logger.warning("Dedup pass already running, skipping")
            return []
        try:
            return self._scan(articles, persist)
        finally:
            self._lock.release()

    def _scan(
        self, articles: list[Article], persist: PersistFn | None
    ) -> list[tuple[Article, Article]]:
        threshold = self.threshold
        lengths = [len(a.title) for a in articles]
        by_length = sorted(range(len(articles)), key=lambda k: lengths[k])
        sorted_lengths = [lengths[k] for k in by_length]

        processed: set[int] = set()
        canonical_of: dict[int, int] = {}
        dependents: dict[int, list[int]] = {}
        order: list[int] = []
        comparisons = 0
        failures = 0

        for i, first in enumerate(articles):
            if i in processed:
                continue
            len_i = lengths[i]
            lo = bisect.bisect_left(sorted_lengths, math.floor(len_i * threshold))
            hi = bisect.bisect_right(sorted_lengths, math.ceil(len_i / threshold))
            candidates = sorted(k for k in by_length[lo:hi] if k > i)

            for j in candidates:
                if j in processed:
                    continue
                if _similarity_upper_bound(len_i, lengths[j]) <= threshold:
                    continue
                comparisons += 1
                second = articles[j]
                if title_similarity(first.title, second.title) <= threshold:
                    continue

                # The newer article (or the first on a tie) becomes the duplicate
                if first.published_at >= second.published_at:
                    dup_index, canon_index = i, j
                else:
                    dup_index, canon_index = j, i
                duplicate, canonical = articles[dup_index], articles[canon_index]

                processed.add(dup_index)
                if self._apply(duplicate, canonical, persist):
                    canonical_of[dup_index] = canon_index
                    dependents.setdefault(canon_index, []).append(dup_index)
                    order.append(dup_index)
                    # Earlier duplicates of the article just retired follow it to its canonical
                    for child in dependents.pop(dup_index, []):
                        if self._repoint(articles[child], canonical, persist):
                            canonical_of[child] = canon_index
                            dependents[canon_index].append(child)
                        else:
                            failures += 1
                else:
                    failures += 1
                if dup_index == i:
                    break

        logger.info(
            "Dedup marked %d duplicates among %d articles (%d comparisons, %d failed saves)",
            len(order), len(articles), comparisons, failures,
        )
        return [(articles[d], articles[canonical_of[d]]) for d in order]

    @staticmethod
    def _repoint(child: Article, canonical: Article, persist: PersistFn | None) -> bool:
        previous = child.duplicate_of
        child.duplicate_of = canonical.id
        if persist is None:
            return True
        try:
            persist(child, canonical)
            return True
        except Exception:
            logger.exception(
                "Failed to move duplicate '%s' onto canonical '%s'", child.title, canonical.title
            )
            child.duplicate_of = previous
            return False

    @staticmethod
    def _apply(duplicate: Article, canonical: Article, persist: PersistFn | None) -> bool:
        duplicate.is_active = False
        duplicate.duplicate_of = canonical.id
        if persist is None:
            return True
        try:
            persist(duplicate, canonical)
            return True
        except Exception:
            logger.exception(
                "Failed to save duplicate mark for '%s' (canonical '%s')",
                duplicate.title, canonical.title,
            )
            duplicate.is_active = True
            duplicate.duplicate_of = None
            return False
