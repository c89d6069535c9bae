"""Rule-based category, tag, company and industry extraction."""

from __future__ import annotations

import logging
import re

from trustwire.models import ArticleDraft
from trustwire.process import register_processor
from trustwire.process.base import BaseProcessor

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY = "business"
MAX_TAGS = 10
MIN_TAG_LENGTH = 5

# Evaluated in this order; on equal scores the earlier rule wins
CATEGORY_RULES: list[tuple[str, re.Pattern]] = [
    (
        "ai-ml",
        re.compile(
            r"\b(ai|artificial intelligence|machine learning|neural|deep learning"
            r"|llm|gpt|transformer|chatbot)\b",
            re.IGNORECASE,
        ),
    ),
    (
        "security",
        re.compile(
            r"\b(security|breach|vulnerability|hack|cyberattack|malware|threat"
            r"|protection|encryption)\b",
            re.IGNORECASE,
        ),
    ),
    (
        "cloud",
        re.compile(
            r"\b(cloud|aws|azure|gcp|kubernetes|containerization|serverless|devops)\b",
            re.IGNORECASE,
        ),
    ),
    (
        "startup",
        re.compile(
            r"\b(startup|founder|venture|vc|funding|seed|series a|unicorn|entrepreneur)\b",
            re.IGNORECASE,
        ),
    ),
    (
        "finance",
        re.compile(
            r"\b(finance|investment|stock|market|trading|currency|payment|fintech)\b",
            re.IGNORECASE,
        ),
    ),
    (
        "technology",
        re.compile(
            r"\b(tech|software|hardware|platform|api|framework|database|system)\b",
            re.IGNORECASE,
        ),
    ),
    (
        "policy",
        re.compile(
            r"\b(policy|regulation|law|government|compliance|gdpr|legislation)\b",
            re.IGNORECASE,
        ),
    ),
    (
        "sustainability",
        re.compile(
            r"\b(sustainability|green|renewable|carbon|environment|eco|climate)\b",
            re.IGNORECASE,
        ),
    ),
]

KNOWN_COMPANIES = [
    "Apple", "Microsoft", "Google", "Amazon", "Tesla", "Meta", "OpenAI",
    "IBM", "Oracle", "Salesforce", "Adobe", "Accenture", "TCS", "Infosys",
    "Wipro", "HCL", "Cognizant", "Intel", "AMD", "NVIDIA", "Qualcomm",
]


def _category_name(category) -> str:
    """Feed categories arrive as plain strings or dicts with a name/term."""
    if isinstance(category, dict):
        return str(category.get("name") or category.get("term") or "").strip()
    return str(category).strip()


def categorize(title: str, content: str) -> str:
    """Pick the category whose patterns score highest (title 1.0, content 0.5)."""
    best_score = 0.0
    best = DEFAULT_CATEGORY
    for category, pattern in CATEGORY_RULES:
        score = len(pattern.findall(title)) + len(pattern.findall(content)) / 2
        if score > best_score:
            best_score = score
            best = category
    return best


def extract_tags(title: str, source_categories: list | None = None) -> list[str]:
    """Lower-cased long title words first, then source categories; max 10, no repeats."""
    tags: dict[str, None] = {}
    for word in title.lower().split():
        if len(word) >= MIN_TAG_LENGTH:
            tags[word] = None
    for category in source_categories or []:
        name = _category_name(category).lower()
        if name:
            tags[name] = None
    return list(tags)[:MAX_TAGS]


def extract_companies(text: str, known_companies: list[str] | None = None) -> list[str]:
    """Exact-name substring match against a static list (no entity recognition)."""
    return [c for c in known_companies or KNOWN_COMPANIES if c in text]


def extract_industries(source_categories: list | None = None) -> list[str]:
    industries: dict[str, None] = {}
    for category in source_categories or []:
        name = _category_name(category)
        if name:
            industries[name] = None
    return list(industries)


@register_processor("classify")
class ContentClassifier(BaseProcessor):
    """Fill in category, tags, companies and industries on fetched drafts."""

    @property
    def name(self) -> str:
        return "classify"

    @property
    def known_companies(self) -> list[str]:
        cfg = self.config.get("process", {}).get("classify", {})
        extra = cfg.get("known_companies", [])
        return KNOWN_COMPANIES + [c for c in extra if c not in KNOWN_COMPANIES]

    def classify(self, draft: ArticleDraft) -> ArticleDraft:
        draft.category = categorize(draft.title, draft.content)
        draft.tags = extract_tags(draft.title, draft.source_categories)
        draft.relevant_companies = extract_companies(
            f"{draft.title} {draft.content}", self.known_companies
        )
        draft.relevant_industries = extract_industries(draft.source_categories)
        return draft

    def process(self, items: list[ArticleDraft]) -> list[ArticleDraft]:
        for draft in items:
            self.classify(draft)
        logger.debug("Classified %d drafts", len(items))
        return items
