"""CLI entrypoint: python -m trustwire {run|schedule|init-db|search|trending|high-trust|ask|stats}."""

from __future__ import annotations

import asyncio
import inspect
import logging
import logging.handlers
import os
import sys
from pathlib import Path

from trustwire.config import get_db_path, load_config
from trustwire.db import get_connection, get_recent_runs, init_db
from trustwire.models import Article


def setup_logging(config: dict) -> None:
    """Configure logging with console + rotating file output."""
    root = logging.getLogger()
    root.setLevel(logging.INFO)

    fmt = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console = logging.StreamHandler()
    console.setFormatter(fmt)
    root.addHandler(console)

    # Rotate at 5MB, keep 3 backups
    log_dir = Path(get_db_path(config)).parent
    log_dir.mkdir(parents=True, exist_ok=True)
    file_handler = logging.handlers.RotatingFileHandler(
        str(log_dir / "trustwire.log"), maxBytes=5 * 1024 * 1024, backupCount=3,
    )
    file_handler.setFormatter(fmt)
    root.addHandler(file_handler)

    for noisy in ("httpx", "httpcore", "trafilatura", "feedparser", "apscheduler"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


logger = logging.getLogger("trustwire")


def _open(config: dict):
    db_path = get_db_path(config)
    init_db(db_path)
    return get_connection(db_path)


def _print_articles(articles: list[Article]) -> None:
    if not articles:
        print("No articles found.")
        return
    for a in articles:
        print(f"[{a.trust_score.overall:>3}] {a.title}")
        print(f"      {a.source.name} | {a.category} | {a.published_at:%Y-%m-%d} | {a.url}")


def cmd_init_db(config: dict, args: list[str]) -> None:
    """Initialize the SQLite database."""
    db_path = get_db_path(config)
    init_db(db_path)
    print(f"Database initialized at {db_path}")


async def cmd_run(config: dict, args: list[str]) -> None:
    """Run one ingestion pass."""
    from trustwire.pipeline import IngestionOrchestrator

    conn = _open(config)
    try:
        run = await IngestionOrchestrator(config, conn).run()
    finally:
        conn.close()
    if run is not None:
        print(
            f"Run #{run.id} {run.status}: {run.articles_stored} stored, "
            f"{run.articles_skipped} skipped, {run.articles_failed} failed, "
            f"{run.duplicates_marked} duplicates, {run.articles_deleted} deleted"
        )


async def cmd_schedule(config: dict, args: list[str]) -> None:
    """Run the ingestion scheduler until interrupted."""
    from trustwire.pipeline import IngestionOrchestrator
    from trustwire.scheduler import IngestionScheduler

    conn = _open(config)
    scheduler = IngestionScheduler(config, IngestionOrchestrator(config, conn))
    scheduler.start()
    try:
        await asyncio.Event().wait()
    finally:
        scheduler.stop()
        conn.close()


async def cmd_search(config: dict, args: list[str]) -> None:
    """Hybrid search over stored articles."""
    from trustwire.search import HybridSearchEngine

    if not args:
        print("Usage: python -m trustwire search <query>")
        sys.exit(1)
    query = " ".join(args)
    conn = _open(config)
    try:
        response = await HybridSearchEngine(config, conn).search(query)
    finally:
        conn.close()

    print(f"{response.total} results for '{query}' ({response.execution_time_ms:.0f} ms)\n")
    for entry in response.results:
        print(
            f"{entry.final_score:.3f}  kw={entry.keyword_score:.3f} "
            f"sem={entry.semantic_score:.3f} trust={entry.trust_score:.3f}"
        )
        _print_articles([entry.article])
    if response.trending:
        print("\nTrending:")
        _print_articles(response.trending)


def cmd_trending(config: dict, args: list[str]) -> None:
    """Show trending articles from the last week."""
    from trustwire.search import HybridSearchEngine

    conn = _open(config)
    try:
        _print_articles(HybridSearchEngine(config, conn).get_trending_articles())
    finally:
        conn.close()


def cmd_high_trust(config: dict, args: list[str]) -> None:
    """Show the highest-trust articles."""
    from trustwire.search import HybridSearchEngine

    conn = _open(config)
    try:
        _print_articles(HybridSearchEngine(config, conn).get_high_trust_articles())
    finally:
        conn.close()


async def cmd_ask(config: dict, args: list[str]) -> None:
    """Answer a question from trust-scored articles."""
    from trustwire.search import HybridSearchEngine

    if not args:
        print("Usage: python -m trustwire ask <question>")
        sys.exit(1)
    conn = _open(config)
    try:
        result = await HybridSearchEngine(config, conn).answer(" ".join(args))
    finally:
        conn.close()
    print(result.answer)
    print(f"\n({result.articles_used} articles used)")


def cmd_stats(config: dict, args: list[str]) -> None:
    """Show recent ingestion runs and article counts."""
    from trustwire.search import HybridSearchEngine

    conn = _open(config)
    try:
        runs = get_recent_runs(conn, limit=10)
        stats = HybridSearchEngine(config, conn).get_stats()
    finally:
        conn.close()

    if runs:
        header = (
            f"{'Run':>4} {'Status':<10} {'Fetched':<8} {'Stored':<8} "
            f"{'Dupes':<6} {'Cost':>8} {'Started'}"
        )
        print(header)
        print("-" * 78)
        for r in runs:
            print(
                f"{r['id']:>4} {r['status']:<10} "
                f"{r['articles_fetched']:<8} {r['articles_stored']:<8} "
                f"{r['duplicates_marked']:<6} "
                f"${r['llm_cost_usd']:>7.3f} {r['started_at']}"
            )
    else:
        print("No ingestion runs yet.")

    print(f"\nActive articles: {stats['total_articles']}")
    for category, count in stats["by_category"].items():
        print(f"  {category:<16} {count}")


COMMANDS = {
    "run": cmd_run,
    "schedule": cmd_schedule,
    "init-db": cmd_init_db,
    "search": cmd_search,
    "trending": cmd_trending,
    "high-trust": cmd_high_trust,
    "ask": cmd_ask,
    "stats": cmd_stats,
}


def main() -> None:
    if len(sys.argv) < 2 or sys.argv[1] not in COMMANDS:
        available = ", ".join(COMMANDS)
        print(f"Usage: python -m trustwire {{{available}}}")
        sys.exit(1)

    command = sys.argv[1]
    config = load_config(os.environ.get("CONFIG_PATH", "config.yaml"))
    setup_logging(config)
    handler = COMMANDS[command]

    if inspect.iscoroutinefunction(handler):
        try:
            asyncio.run(handler(config, sys.argv[2:]))
        except KeyboardInterrupt:
            logger.info("Interrupted")
    else:
        handler(config, sys.argv[2:])


if __name__ == "__main__":
    main()
