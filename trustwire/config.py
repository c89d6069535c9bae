"""YAML configuration loading, ${VAR} expansion and typed section accessors."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

import yaml

DEFAULT_FEEDS = [
    {"name": "Economic Times", "url": "https://economictimes.indiatimes.com/feed.cms"},
    {"name": "Business Standard", "url": "https://www.business-standard.com/rss"},
    {"name": "TechCrunch", "url": "http://feeds.techcrunch.com/TechCrunch/"},
    {"name": "YourStory", "url": "https://yourstory.com/feed"},
    {"name": "Inc42", "url": "https://inc42.com/feed/"},
    {"name": "HackerNews", "url": "https://news.ycombinator.com/rss"},
]

DEFAULT_SOURCE_REPUTATION = {
    "Economic Times": 85,
    "Business Standard": 82,
    "TechCrunch": 80,
    "YourStory": 78,
    "Inc42": 75,
    "HackerNews": 72,
}

DEFAULT_SEARCH_WEIGHTS = {"keyword": 0.35, "semantic": 0.4, "trust": 0.25}


ENV_PATTERN = re.compile(r"\$\{([^}]+)\}")


def read_env_file(path: str | Path = ".env") -> dict[str, str]:
    """Parse KEY=value lines from a dotenv file; comments and blanks are skipped."""
    env_path = Path(path)
    if not env_path.is_file():
        return {}
    values = {}
    for raw_line in env_path.read_text().splitlines():
        entry = raw_line.strip()
        if entry.startswith("#") or "=" not in entry:
            continue
        key, value = (part.strip() for part in entry.split("=", 1))
        if key:
            values[key] = value.strip("'\"")
    return values


def substitute_env(node: Any) -> Any:
    """Expand ${NAME} references anywhere in a parsed YAML tree.

    Unset variables expand to the empty string.
    """
    if isinstance(node, dict):
        return {key: substitute_env(item) for key, item in node.items()}
    if isinstance(node, list):
        return [substitute_env(item) for item in node]
    if not isinstance(node, str) or "${" not in node:
        return node
    whole = ENV_PATTERN.fullmatch(node)
    if whole:
        return os.environ.get(whole.group(1), "")
    return ENV_PATTERN.sub(lambda m: os.environ.get(m.group(1), ""), node)


def load_config(path: str | Path = "config.yaml") -> dict[str, Any]:
    """Read the YAML config, pulling secrets from ``.env`` and the environment."""
    for key, value in read_env_file().items():
        os.environ.setdefault(key, value)

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path) as f:
        raw = yaml.safe_load(f) or {}

    return substitute_env(raw)


def get_active_sources(config: dict) -> list[str]:
    """Return list of enabled source names."""
    sources = config.get("sources", {})
    return [name for name, cfg in sources.items() if cfg.get("enabled", False)]


def get_feeds(config: dict, source: str = "rss") -> list[dict]:
    """Feed definitions for a source; RSS falls back to the built-in feed list."""
    feeds = config.get("sources", {}).get(source, {}).get("feeds")
    if feeds is None and source == "rss":
        return list(DEFAULT_FEEDS)
    return feeds or []


def get_llm_task_config(config: dict, task: str) -> dict:
    """Resolve which provider, model and connection settings serve ``task``."""
    llm = config.get("llm", {})
    route = llm.get("tasks", {}).get(task, {})
    provider_name = route.get("provider", "openai")
    provider = llm.get("providers", {}).get(provider_name, {})

    return {
        "provider_name": provider_name,
        "provider_type": provider.get("type", "openai_compatible"),
        "api_key": provider.get("api_key", ""),
        "base_url": provider.get("base_url", ""),
        "model": route.get("model") or provider.get("default_model", ""),
        "max_retries": provider.get("max_retries", 3),
        "timeout": provider.get("timeout", 60),
        "json_mode": provider.get("json_mode", False),
    }


def get_db_path(config: dict) -> str:
    """Get database path from config."""
    return config.get("database", {}).get("path", "data/trustwire.db")


def get_source_reputation(config: dict) -> dict[str, float]:
    """Static reputation table, config entries override the defaults."""
    overrides = config.get("trust", {}).get("source_reputation", {})
    return {**DEFAULT_SOURCE_REPUTATION, **overrides}


def get_ingestion_config(config: dict) -> dict:
    cfg = config.get("ingestion", {})
    return {
        "retention_days": cfg.get("retention_days", 90),
        "max_content_chars": cfg.get("max_content_chars", 2000),
        "min_summary_chars": cfg.get("min_summary_chars", 200),
    }


def get_embedding_config(config: dict) -> dict:
    cfg = config.get("intelligence", {}).get("embeddings", {})
    return {
        "backend": cfg.get("backend", "model2vec"),
        "model": cfg.get("model", "minishlab/potion-base-8M"),
        "dimension": cfg.get("dimension", 256),
        "max_chars": cfg.get("max_chars", 8000),
    }


def get_intelligence_config(config: dict) -> dict:
    cfg = config.get("intelligence", {})
    return {
        "timeout": cfg.get("timeout", 30),
        "max_retries": cfg.get("max_retries", 2),
        "base_delay": cfg.get("base_delay", 1.0),
    }


def get_schedule_config(config: dict) -> dict:
    cfg = config.get("schedule", {})
    return {
        "hours": sorted(cfg.get("hours", [0, 6, 12, 18])),
        "initial_delay_seconds": cfg.get("initial_delay_seconds", 30),
        "run_on_start": cfg.get("run_on_start", True),
    }


def get_search_config(config: dict) -> dict:
    cfg = config.get("search", {})
    weights = {**DEFAULT_SEARCH_WEIGHTS, **cfg.get("weights", {})}
    return {
        "min_trust_score": cfg.get("min_trust_score", 40),
        "keyword_weight": weights["keyword"],
        "semantic_weight": weights["semantic"],
        "trust_weight": weights["trust"],
    }
